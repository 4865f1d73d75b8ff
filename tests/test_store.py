import json
import tempfile
import unittest
from pathlib import Path

from wow_classic_items.store import RecordStore
from wow_classic_items.utils import iter_records, write_json


class RecordStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name)

    def test_round_trip(self) -> None:
        records = [
            {"itemId": 25, "name": "Worn Shortsword", "icon": "inv_sword_04", "tooltip": [{"label": "Worn Shortsword"}]},
            {"itemId": 2589, "name": "Linen Cloth", "icon": "inv_fabric_linen_01", "dropChance": 0.25},
        ]
        path = self.root / "items.json"
        RecordStore(records, id_field="itemId").save(path)
        loaded = RecordStore.load(path, id_field="itemId")
        self.assertEqual(loaded.to_list(), records)
        self.assertEqual(list(iter_records(path)), records)

    def test_order_is_insertion_order(self) -> None:
        store = RecordStore([{"id": 5}, {"id": 1}, {"id": 3}])
        self.assertEqual([r["id"] for r in store], [5, 1, 3])

    def test_duplicate_id_rejected(self) -> None:
        store = RecordStore([{"id": 1}])
        with self.assertRaises(ValueError):
            store.append({"id": 1})

    def test_non_integer_id_rejected(self) -> None:
        with self.assertRaises(ValueError):
            RecordStore([{"id": "1"}])

    def test_get_remove_contains(self) -> None:
        store = RecordStore([{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])
        self.assertEqual(store.get(2)["name"], "b")
        store.remove(2)
        self.assertNotIn(2, store)
        self.assertEqual(len(store), 1)
        self.assertIsNone(store.get(2))

    def test_load_rejects_non_array(self) -> None:
        path = self.root / "bad.json"
        write_json(path, {"id": 1})
        with self.assertRaises(ValueError):
            RecordStore.load(path)

    def test_write_is_plain_json_array(self) -> None:
        path = self.root / "nested" / "zones.json"
        RecordStore([{"id": 12, "name": "Elwynn Forest"}]).save(path)
        self.assertEqual(json.loads(path.read_text(encoding="utf-8")), [{"id": 12, "name": "Elwynn Forest"}])
        self.assertFalse(path.with_suffix(".json.tmp").exists())


if __name__ == "__main__":
    unittest.main()
