import argparse
import logging
import sys
from pathlib import Path

from wow_classic_items import config
from wow_classic_items.enrichment import load_api_token
from wow_classic_items.fetching import PageFetcher
from wow_classic_items.pipeline import PIPELINE_FACTORIES, BuildContext, PipelineError, write_run_summary

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Build the WoW Classic items, zones and talents datasets.")
    parser.add_argument(
        "--dataset",
        choices=sorted(PIPELINE_FACTORIES),
        action="append",
        default=None,
        help="Dataset to build (repeatable). Defaults to all of them.",
    )
    parser.add_argument(
        "--stage",
        type=str,
        default=None,
        help="Run a single stage of the selected dataset, e.g. 'blizzard-api'.",
    )
    parser.add_argument("--input", type=str, default=None, help="JSON array fed to --stage.")
    parser.add_argument("--output", type=str, default=None, help="Where --stage writes its result.")
    parser.add_argument(
        "--output-dir",
        type=str,
        default=str(config.BUILD_DIR),
        help="Directory for full-build dataset files.",
    )
    parser.add_argument(
        "--token-file",
        type=str,
        default=str(config.API_TOKEN_FILE),
        help="File holding the Blizzard API bearer token. Missing file skips API enrichment.",
    )
    parser.add_argument("--cache", action="store_true", help="Cache fetched pages in SQLite.")
    parser.add_argument("--id-space", type=int, default=config.ID_SPACE, help="Highest item id to list.")
    parser.add_argument("--api-batch-size", type=int, default=config.API_BATCH_SIZE)
    parser.add_argument("--detail-batch-size", type=int, default=config.DETAIL_BATCH_SIZE)
    parser.add_argument(
        "--summary",
        type=str,
        default=str(config.SUMMARY_FILE),
        help="Where the per-stage run summary is written.",
    )
    return parser.parse_args(argv)


def run(args):
    datasets = args.dataset or list(PIPELINE_FACTORIES)
    if args.stage and len(datasets) != 1:
        raise PipelineError("--stage needs exactly one --dataset.")

    fetcher = PageFetcher(enable_cache=args.cache)
    ctx = BuildContext(
        fetcher=fetcher,
        api_token=load_api_token(args.token_file),
        output_dir=Path(args.output_dir),
        id_space=args.id_space,
        api_batch_size=args.api_batch_size,
        detail_batch_size=args.detail_batch_size,
    )
    pipelines = [PIPELINE_FACTORIES[name](ctx) for name in datasets]
    try:
        for pipeline in pipelines:
            if args.stage:
                records = pipeline.run_stage(args.stage, input_path=args.input, output_path=args.output)
            else:
                records = pipeline.run()
            logger.info("[+] %s finished with %s records.", pipeline.name, len(records))
    finally:
        fetcher.close()
        write_run_summary(pipelines, args.summary)
    logger.info("[*] Fetcher stats: %s", fetcher.stats)


def main(argv=None):
    args = parse_args(argv)
    try:
        run(args)
    except (PipelineError, KeyError, ValueError, OSError) as exc:
        logger.error("[!] Build failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
