import tempfile
import unittest
from pathlib import Path
from unittest import mock

from wow_classic_items import Classes, Items, Professions, Talents, Zones
from wow_classic_items import config
from wow_classic_items.store import RecordStore
from wow_classic_items.utils import write_json

ITEMS = [
    {
        "itemId": 25,
        "name": "Worn Shortsword",
        "icon": "inv_sword_04",
        "class": "Weapon",
        "itemLink": "|cffffffff|Hitem:25::::::::::::|h[Worn Shortsword]|h|r",
    },
    {"itemId": 2589, "name": "Linen Cloth", "icon": "inv_fabric_linen_01", "class": "Trade Goods"},
    {"itemId": 2361, "name": "Battleworn Hammer", "icon": "inv_hammer_16", "class": "Weapon"},
]


class DatabaseTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.data_dir = Path(self.tmp.name)
        RecordStore(ITEMS, id_field="itemId").save(self.data_dir / config.ITEMS_FILE)

    def test_loads_all_records_with_icon_urls(self) -> None:
        items = Items(data_dir=self.data_dir)
        self.assertEqual(len(items), 3)
        self.assertEqual(items[0]["icon"], "https://wow.zamimg.com/images/wow/icons/large/inv_sword_04.jpg")

    def test_round_trip_modulo_icons(self) -> None:
        items = Items(data_dir=self.data_dir)
        for loaded, original in zip(items, ITEMS):
            expected = dict(original, icon=config.ICON_TEMPLATES["wowhead"].format(icon=original["icon"]))
            self.assertEqual(loaded, expected)

    def test_blizzard_icons(self) -> None:
        items = Items(icon_src="blizzard", data_dir=self.data_dir)
        self.assertEqual(items[1]["icon"], "https://render-classic-us.worldofwarcraft.com/icons/56/inv_fabric_linen_01.jpg")

    def test_filter_keeps_type_and_options(self) -> None:
        items = Items(icon_src="blizzard", data_dir=self.data_dir)
        weapons = items.filter(lambda item: item["class"] == "Weapon")
        self.assertIsInstance(weapons, Items)
        self.assertEqual(weapons.icon_src, "blizzard")
        self.assertEqual(weapons.data_dir, self.data_dir)
        self.assertEqual([item["itemId"] for item in weapons], [25, 2361])
        self.assertEqual(weapons[0]["icon"], items[0]["icon"])
        self.assertEqual(len(weapons.filter(lambda item: item["itemId"] == 25)), 1)

    def test_find_and_item_link(self) -> None:
        items = Items(data_dir=self.data_dir)
        self.assertEqual(items.find(lambda item: item["itemId"] == 2589)["name"], "Linen Cloth")
        self.assertIsNone(items.find(lambda item: item["itemId"] == 1))
        self.assertEqual(items.get_item_link(25), ITEMS[0]["itemLink"])
        self.assertIsNone(items.get_item_link(2589))

    def test_unknown_icon_source(self) -> None:
        with self.assertRaises(ValueError):
            Items(icon_src="zamimg", data_dir=self.data_dir)

    def test_missing_dataset_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            Zones(data_dir=self.data_dir)

    def test_built_datasets_default_to_build_dir(self) -> None:
        with mock.patch.object(config, "BUILD_DIR", self.data_dir):
            items = Items()
        self.assertEqual(items.data_dir, self.data_dir)
        self.assertEqual(len(items), 3)
        self.assertEqual(Professions().data_dir, Path(config.DATA_DIR))

    def test_zones_and_talents(self) -> None:
        write_json(
            self.data_dir / config.ZONES_FILE,
            [{"id": 12, "name": "Elwynn Forest", "category": "Open World", "level": [1, 10], "territory": "Alliance"}],
        )
        write_json(self.data_dir / config.TALENTS_FILE, [{"id": 16689, "name": "Nature's Grasp", "icon": "spell_nature_natureswrath"}])
        self.assertEqual(Zones(data_dir=self.data_dir)[0]["name"], "Elwynn Forest")
        self.assertTrue(Talents(data_dir=self.data_dir)[0]["icon"].endswith("/spell_nature_natureswrath.jpg"))


class StaticDataTests(unittest.TestCase):
    def test_professions_get_is_case_insensitive(self) -> None:
        professions = Professions()
        alchemy = professions.get("alchemy")
        self.assertEqual(alchemy["name"], "Alchemy")
        self.assertTrue(alchemy["icon"].startswith("https://wow.zamimg.com/"))
        self.assertIsNone(professions.get("Jewelcrafting"))

    def test_classes_template_spec_icons(self) -> None:
        classes = Classes(icon_src="blizzard")
        self.assertEqual(len(classes), 9)
        mage = classes.get("Mage")
        self.assertEqual([spec["name"] for spec in mage["specs"]], ["Arcane", "Fire", "Frost"])
        for spec in mage["specs"]:
            self.assertTrue(spec["icon"].startswith("https://render-classic-us.worldofwarcraft.com/"))

    def test_filter_on_static_data(self) -> None:
        casters = Classes().filter(lambda c: c["name"] in ("Mage", "Warlock"))
        self.assertIsInstance(casters, Classes)
        self.assertEqual(casters.get("warlock")["color"], "#9482C9")


if __name__ == "__main__":
    unittest.main()
