import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fakes import FakeFetcher
from wow_classic_items import config
from wow_classic_items.pipeline import (
    DONE,
    IDLE,
    BuildContext,
    Pipeline,
    PipelineError,
    Stage,
    items_pipeline,
    talents_pipeline,
    write_run_summary,
    zones_pipeline,
)
from wow_classic_items.talents import attach_talent_tooltips
from wow_classic_items.utils import read_json, write_json


def api_url(item_id):
    return config.BLIZZARD_ITEM_URL.format(item_id=item_id)


LISTING_PAGE = (
    '<script>WH.Gatherer.addData(3, 4, {"25": {"name_enus": "Worn Shortsword", "icon": "inv_sword_04"}, '
    '"26": {"name_enus": "Ghost Blade", "icon": "inv_sword_05"}, '
    '"27": {"name_enus": "Worn Shortsword", "icon": "inv_sword_04"}});</script>'
)
API_PAYLOAD = {
    "item_class": {"name": "Weapon"},
    "item_subclass": {"name": "Sword"},
    "sell_price": 7,
    "quality": {"name": "Common"},
    "level": 2,
    "required_level": 1,
    "inventory_type": {"type": "ONE_HAND", "name": "One-Hand"},
}


class PipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name)

    def _counting_pipeline(self, output_path=None):
        return Pipeline(
            "numbers",
            [
                Stage("Seed", lambda _records: [{"id": 1}, {"id": 2}]),
                Stage("add_ten", lambda records: [dict(r, value=r["id"] + 10) for r in records]),
                Stage("drop odd", lambda records: [r for r in records if r["id"] % 2 == 0]),
            ],
            output_path=output_path,
        )

    def test_run_threads_stages_and_persists_final_output(self) -> None:
        output = self.root / "numbers.json"
        pipeline = self._counting_pipeline(output)
        self.assertEqual(pipeline.state, IDLE)
        records = pipeline.run()
        self.assertEqual(records, [{"id": 2, "value": 12}])
        self.assertEqual(read_json(output), records)
        self.assertEqual(pipeline.state, DONE)
        self.assertIsNone(pipeline.current_stage)
        self.assertEqual(list(self.root.iterdir()), [output])
        self.assertEqual([s["stage"] for s in pipeline.stage_stats], ["Seed", "add_ten", "drop odd"])

    def test_stage_name_matching_ignores_case_and_separators(self) -> None:
        pipeline = self._counting_pipeline()
        for name in ("add-ten", "ADD TEN", "Add_Ten", "addten"):
            index, stage = pipeline.find_stage(name)
            self.assertEqual(stage.name, "add_ten")
            self.assertEqual(index, 1)

    def test_unknown_stage(self) -> None:
        with self.assertRaises(KeyError):
            self._counting_pipeline().run_stage("nope")

    def test_first_stage_starts_empty(self) -> None:
        self.assertEqual(self._counting_pipeline().run_stage("seed"), [{"id": 1}, {"id": 2}])

    def test_later_stage_without_input_is_an_error(self) -> None:
        with self.assertRaises(PipelineError):
            self._counting_pipeline().run_stage("drop-odd")

    def test_later_stage_falls_back_to_persisted_dataset(self) -> None:
        output = self.root / "numbers.json"
        write_json(output, [{"id": 3}, {"id": 4}])
        self.assertEqual(self._counting_pipeline(output).run_stage("drop odd"), [{"id": 4}])

    def test_input_must_be_array(self) -> None:
        bad = self.root / "bad.json"
        write_json(bad, {"id": 1})
        with self.assertRaises(PipelineError):
            self._counting_pipeline().run_stage("add ten", input_path=bad)

    def test_empty_pipeline_rejected(self) -> None:
        with self.assertRaises(PipelineError):
            Pipeline("empty", [])

    def test_single_stage_touches_only_its_output(self) -> None:
        ctx = BuildContext(
            fetcher=FakeFetcher(json_responses={api_url(25): (200, API_PAYLOAD), api_url(26): (404, {"code": 404})}),
            api_token="token",
            output_dir=self.root,
        )
        pipeline = items_pipeline(ctx)
        published = self.root / config.ITEMS_FILE
        write_json(published, [{"itemId": 1, "name": "Untouched", "icon": "x"}])
        before = published.read_bytes()

        stage_in = self.root / "listing.json"
        stage_out = self.root / "enriched.json"
        write_json(
            stage_in,
            [{"itemId": 25, "name": "Worn Shortsword", "icon": "inv_sword_04"}, {"itemId": 26, "name": "Ghost", "icon": "x"}],
        )
        records = pipeline.run_stage("Blizzard_API", input_path=stage_in, output_path=stage_out)

        self.assertEqual([r["itemId"] for r in records], [25])
        self.assertEqual(read_json(stage_out), records)
        self.assertEqual(published.read_bytes(), before)
        self.assertEqual(sorted(p.name for p in self.root.iterdir()), ["enriched.json", "items.json", "listing.json"])

    def test_items_pipeline_end_to_end(self) -> None:
        fetcher = FakeFetcher(
            pages={config.LISTING_URL.format(start=0, end=500): LISTING_PAGE},
            json_responses={
                api_url(25): (200, API_PAYLOAD),
                api_url(26): (404, {"code": 404}),
                api_url(27): (200, API_PAYLOAD),
            },
        )
        ctx = BuildContext(fetcher=fetcher, api_token="token", output_dir=self.root, id_space=500)
        pipeline = items_pipeline(ctx)
        self.assertEqual(
            pipeline.stage_names(), ["listing", "blizzard-api", "wowhead-details", "recipe-phases", "unique-names"]
        )
        records = pipeline.run()
        self.assertEqual([r["itemId"] for r in records], [25, 27])
        self.assertEqual([r["uniqueName"] for r in records], ["worn-shortsword-25", "worn-shortsword-27"])
        self.assertEqual(read_json(self.root / config.ITEMS_FILE), records)

    def test_zones_and_talents_pipelines(self) -> None:
        zones_page = (
            "<script>new Listview({template: 'zone', id: 'zones', data: ["
            '{"id":1581,"name":"The Deadmines","instance":2,"minlevel":17,"maxlevel":26,"territory":2},'
            '{"id":12,"name":"Elwynn Forest","instance":0,"minlevel":1,"maxlevel":10,"territory":0}]});</script>'
        )
        talent_page = (
            "<script>new Listview({template: 'spell', id: 'talents', data: ["
            '{"id":16689,"name":"@Nature\'s Grasp","icon":"spell_nature_natureswrath"}]});</script>'
        )
        spell_page = r"""<script>g_spells[16689].tooltip_enus = "<table><tr><td><b>Nature's Grasp</b></td></tr></table>";</script>"""
        fetcher = FakeFetcher(
            pages={
                config.ZONES_URL: zones_page,
                config.TALENTS_URL.format(class_slug="druid"): talent_page,
                config.SPELL_URL.format(spell_id=16689): spell_page,
            }
        )
        ctx = BuildContext(fetcher=fetcher, output_dir=self.root, talent_classes={"druid": "Druid"})

        zones = zones_pipeline(ctx).run()
        self.assertEqual(
            zones,
            [
                {"id": 12, "name": "Elwynn Forest", "category": "Open World", "level": [1, 10], "territory": "Alliance"},
                {"id": 1581, "name": "The Deadmines", "category": "Dungeon", "level": [17, 26], "territory": "Contested"},
            ],
        )

        talents = talents_pipeline(ctx).run()
        self.assertEqual(
            talents,
            [
                {
                    "id": 16689,
                    "name": "Nature's Grasp",
                    "icon": "spell_nature_natureswrath",
                    "class": "Druid",
                    "tooltip": [{"label": "Nature's Grasp"}],
                }
            ],
        )

    def test_run_summary(self) -> None:
        pipeline = self._counting_pipeline()
        pipeline.run()
        path = self.root / "logs" / "summary.json"
        summary = write_run_summary([pipeline], path)
        on_disk = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(on_disk, summary)
        self.assertEqual(summary["run_id"], config.RUN_ID)
        self.assertEqual([s["output_count"] for s in summary["stages"]], [2, 2, 1])


class TalentTooltipTests(unittest.TestCase):
    def test_tooltip_failure_keeps_talent_and_batch(self) -> None:
        pages = {config.SPELL_URL.format(spell_id=spell_id): "<p>spell</p>" for spell_id in (1, 2)}
        talents = [{"id": 1, "name": "Ambush"}, {"id": 2, "name": "Backstab"}]

        def flaky(markup):
            if markup == "bad":
                raise AttributeError("no tooltip table")
            return [{"label": markup}]

        markups = {1: "bad", 2: "Backstab"}
        with mock.patch("wow_classic_items.talents.extract_tooltip_markup", lambda page, spell_id, data_type: markups[spell_id]):
            with mock.patch("wow_classic_items.talents.parse_tooltip", flaky):
                with self.assertLogs("wow_classic_items.talents", level="WARNING"):
                    results = attach_talent_tooltips(talents, FakeFetcher(pages=pages), batch_size=5)
        self.assertEqual(results[0], {"id": 1, "name": "Ambush"})
        self.assertEqual(results[1]["tooltip"], [{"label": "Backstab"}])


if __name__ == "__main__":
    unittest.main()
