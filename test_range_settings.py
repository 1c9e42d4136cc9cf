# test_range_settings.py
"""
Tests for RangeSettings (persisted interpolation calculator) and the key/value stores.
Run with: python -m pytest test_range_settings.py -v
"""

import sqlite3
import tempfile
import unittest
from pathlib import Path

from database import MemoryKeyValueStore, SqliteKeyValueStore, get_connection, storage_key
from domain.errors import InvalidRange
from domain.models import Range
from services.range_settings_service import DEFAULT_RANGE, MODULE_NAME, RangeSettings


class TestRangeSettings(unittest.TestCase):
    def test_default_range(self):
        settings = RangeSettings(MemoryKeyValueStore())
        self.assertEqual(settings.range, DEFAULT_RANGE)
        self.assertEqual(settings.calculate(50), 500)
        self.assertEqual(settings.reverse_calculate(500), 50)

    def test_update_persists(self):
        store = MemoryKeyValueStore()
        result = RangeSettings(store).update_range(Range(0, 10, 4, 20))
        self.assertTrue(result.ok and result.persisted)
        reloaded = RangeSettings(store)
        self.assertEqual(reloaded.range, Range(0, 10, 4, 20))
        self.assertEqual(reloaded.calculate(5), 12)

    def test_rejected_edit_keeps_prior_range(self):
        store = MemoryKeyValueStore()
        settings = RangeSettings(store)
        settings.update_range(Range(0, 10, 4, 20))
        result = settings.update_range(Range(5, 5, 0, 10))
        self.assertIsInstance(result.error, InvalidRange)
        self.assertEqual(result.error.reason, "equal bounds")
        self.assertEqual(settings.range, Range(0, 10, 4, 20))
        self.assertEqual(RangeSettings(store).range, Range(0, 10, 4, 20))

    def test_invalid_stored_range_falls_back(self):
        store = MemoryKeyValueStore()
        key = storage_key(MODULE_NAME)
        store.store(key, {"minInput": 1, "maxInput": 1, "minOutput": 0, "maxOutput": 1})
        self.assertEqual(RangeSettings(store).range, DEFAULT_RANGE)
        store.store(key, {"minInput": "x"})
        self.assertEqual(RangeSettings(store).range, DEFAULT_RANGE)


class TestKeyValueStores(unittest.TestCase):
    def test_memory_contract(self):
        store = MemoryKeyValueStore()
        self.assertEqual(store.load("k", []), [])
        self.assertTrue(store.store("k", {"a": [1, 2]}))
        self.assertEqual(store.load("k", None), {"a": [1, 2]})
        self.assertFalse(store.store("bad", float("nan")))
        self.assertFalse(store.store("bad", object()))
        self.assertTrue(store.remove("k"))
        self.assertIsNone(store.load("k", None))

    def test_sqlite_contract(self):
        with tempfile.TemporaryDirectory() as tmp:
            store = SqliteKeyValueStore(get_connection(Path(tmp) / "sub" / "kv.db"))
            try:
                self.assertEqual(store.load("k", "default"), "default")
                self.assertTrue(store.store("k", [1, 2, 3]))
                self.assertTrue(store.store("k", [4]))
                self.assertEqual(store.load("k", None), [4])
                self.assertTrue(store.store("j", {}))
                self.assertEqual(store.keys(), ["j", "k"])
                self.assertFalse(store.store("bad", float("inf")))
                self.assertTrue(store.remove("j"))
                self.assertEqual(store.keys(), ["k"])
                self.assertTrue(store.clear())
                self.assertEqual(store.keys(), [])
            finally:
                store.close()

    def test_sqlite_malformed_value_returns_default(self):
        conn = sqlite3.connect(":memory:")
        store = SqliteKeyValueStore(conn)
        conn.execute("INSERT INTO kv_store (key, value) VALUES ('k', '{broken')")
        conn.commit()
        self.assertEqual(store.load("k", []), [])
        store.close()

    def test_sqlite_closed_connection_reports_failure(self):
        conn = sqlite3.connect(":memory:")
        store = SqliteKeyValueStore(conn)
        conn.close()
        self.assertFalse(store.store("k", 1))
        self.assertEqual(store.load("k", "d"), "d")

    def test_storage_key(self):
        self.assertEqual(
            storage_key("pressure_gauge_calibration"),
            "ci_helper_module_settings_pressure_gauge_calibration",
        )
        self.assertEqual(storage_key("m", "ns"), "ns_m")


if __name__ == "__main__":
    unittest.main()
