import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import config
from .crossref import assign_recipe_phases, assign_unique_names
from .details import scrape_item_details
from .enrichment import enrich_items
from .listing import fetch_listing
from .store import RecordStore
from .talents import attach_talent_tooltips, fetch_talent_listing
from .utils import normalize_stage_name, read_json, utc_now_iso, write_json
from .zones import fetch_zones

logger = logging.getLogger(__name__)

IDLE = "IDLE"
RUNNING = "RUNNING"
DONE = "DONE"


class PipelineError(Exception):
    """Raised when a pipeline is asked to do something it cannot."""


@dataclass(frozen=True)
class Stage:
    name: str
    transform: Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]


class Pipeline:
    """Ordered stages; each stage's full output is the next stage's input."""

    def __init__(self, name, stages, output_path=None, id_field="id"):
        if not stages:
            raise PipelineError(f"Pipeline {name} has no stages.")
        self.name = name
        self.stages = list(stages)
        self.output_path = Path(output_path) if output_path else None
        self.id_field = id_field
        self.state = IDLE
        self.current_stage = None
        self.stage_stats = []

    def stage_names(self):
        return [stage.name for stage in self.stages]

    def find_stage(self, name):
        """Look up a stage by name, ignoring case and separators."""
        wanted = normalize_stage_name(name)
        for index, stage in enumerate(self.stages):
            if normalize_stage_name(stage.name) == wanted:
                return index, stage
        raise KeyError(f"Unknown stage {name!r} for {self.name}. Known: {', '.join(self.stage_names())}")

    def _run_one(self, stage, records):
        self.state = RUNNING
        self.current_stage = stage.name
        logger.info("[*] %s: running stage %s on %s records.", self.name, stage.name, len(records))
        started = time.time()
        output = stage.transform(records)
        if output is None:
            raise PipelineError(f"Stage {stage.name} of {self.name} returned nothing.")
        self.stage_stats.append(
            {
                "pipeline": self.name,
                "stage": stage.name,
                "input_count": len(records),
                "output_count": len(output),
                "seconds": round(time.time() - started, 3),
                "finished_at": utc_now_iso(),
            }
        )
        return output

    def _persist(self, records, path):
        RecordStore(records, id_field=self.id_field).save(path)

    def run(self):
        """Run every stage in order and persist the final output."""
        records = []
        try:
            for stage in self.stages:
                records = self._run_one(stage, records)
        finally:
            self.state = DONE
            self.current_stage = None
        if self.output_path:
            self._persist(records, self.output_path)
        return records

    def run_stage(self, name, input_path=None, output_path=None):
        """
        Run a single stage. Input comes from input_path, the first stage starts
        from nothing, and later stages fall back to the persisted dataset.
        Output is persisted only when output_path is given.
        """
        index, stage = self.find_stage(name)
        if input_path:
            records = read_json(input_path)
        elif index == 0:
            records = []
        elif self.output_path and self.output_path.exists():
            records = read_json(self.output_path)
        else:
            raise PipelineError(f"Stage {stage.name} of {self.name} needs an input file.")
        if not isinstance(records, list):
            raise PipelineError(f"Input for {stage.name} must be a JSON array.")
        try:
            records = self._run_one(stage, records)
        finally:
            self.state = DONE
            self.current_stage = None
        if output_path:
            self._persist(records, output_path)
        return records


@dataclass
class BuildContext:
    """Everything the stages need; api_token is None in degraded mode."""

    fetcher: Any
    api_token: Optional[str] = None
    output_dir: Path = config.BUILD_DIR
    id_space: int = config.ID_SPACE
    listing_window: int = config.LISTING_WINDOW
    api_batch_size: int = config.API_BATCH_SIZE
    detail_batch_size: int = config.DETAIL_BATCH_SIZE
    talent_classes: Dict[str, str] = field(default_factory=lambda: dict(config.TALENT_CLASSES))


def items_pipeline(ctx):
    return Pipeline(
        "items",
        [
            Stage("listing", lambda _records: fetch_listing(ctx.fetcher, ctx.id_space, ctx.listing_window)),
            Stage("blizzard-api", lambda records: enrich_items(records, ctx.api_token, ctx.fetcher, ctx.api_batch_size)),
            Stage("wowhead-details", lambda records: scrape_item_details(records, ctx.fetcher, ctx.detail_batch_size)),
            Stage("recipe-phases", assign_recipe_phases),
            Stage("unique-names", lambda records: assign_unique_names(records, id_field="itemId")),
        ],
        output_path=Path(ctx.output_dir) / config.ITEMS_FILE,
        id_field="itemId",
    )


def zones_pipeline(ctx):
    return Pipeline(
        "zones",
        [Stage("listing", lambda _records: fetch_zones(ctx.fetcher))],
        output_path=Path(ctx.output_dir) / config.ZONES_FILE,
    )


def talents_pipeline(ctx):
    return Pipeline(
        "talents",
        [
            Stage("listing", lambda _records: fetch_talent_listing(ctx.fetcher, ctx.talent_classes)),
            Stage("tooltips", lambda records: attach_talent_tooltips(records, ctx.fetcher, ctx.detail_batch_size)),
        ],
        output_path=Path(ctx.output_dir) / config.TALENTS_FILE,
    )


PIPELINE_FACTORIES = {
    "items": items_pipeline,
    "zones": zones_pipeline,
    "talents": talents_pipeline,
}


def build_pipelines(ctx):
    return {name: factory(ctx) for name, factory in PIPELINE_FACTORIES.items()}


def write_run_summary(pipelines, path=config.SUMMARY_FILE):
    """Dump per-stage counts and timings for this run."""
    summary = {
        "run_id": config.RUN_ID,
        "stages": [stat for pipeline in pipelines for stat in pipeline.stage_stats],
    }
    write_json(path, summary)
    return summary
