# test_config.py
"""
Tests for config.load_config: env var > config.json > defaults.
Run with: python -m pytest test_config.py -v
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import config

_ENV_VARS = (
    config.DB_PATH_ENV,
    config.NAMESPACE_ENV,
    config.PASS_THRESHOLD_ENV,
    config.LOG_DIR_ENV,
    config.CONFIG_PATH_ENV,
)


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.config_path = self.dir / "config.json"
        clean_env = {k: v for k, v in os.environ.items() if k not in _ENV_VARS}
        self.env = mock.patch.dict(os.environ, clean_env, clear=True)
        self.env.start()

    def tearDown(self):
        self.env.stop()
        self.tmp.cleanup()

    def test_defaults_without_file(self):
        cfg = config.load_config(self.config_path)
        self.assertEqual(cfg.storage_namespace, config.DEFAULT_NAMESPACE)
        self.assertEqual(cfg.pass_threshold_percent, 1.0)
        self.assertEqual(cfg.db_path, config.get_data_dir() / "calibration.db")

    def test_file_values_relative_to_file(self):
        self.config_path.write_text(json.dumps({
            "db_path": "data/cal.db",
            "storage_namespace": "site_b",
            "pass_threshold_percent": 0.5,
            "log_dir": "logs",
        }), encoding="utf-8")
        cfg = config.load_config(self.config_path)
        self.assertEqual(cfg.db_path, (self.dir / "data" / "cal.db").resolve())
        self.assertEqual(cfg.log_dir, (self.dir / "logs").resolve())
        self.assertEqual(cfg.storage_namespace, "site_b")
        self.assertEqual(cfg.pass_threshold_percent, 0.5)

    def test_env_overrides_file(self):
        self.config_path.write_text(json.dumps({"pass_threshold_percent": 0.5}), encoding="utf-8")
        os.environ[config.PASS_THRESHOLD_ENV] = "2.5"
        os.environ[config.DB_PATH_ENV] = str(self.dir / "env.db")
        cfg = config.load_config(self.config_path)
        self.assertEqual(cfg.pass_threshold_percent, 2.5)
        self.assertEqual(cfg.db_path, self.dir / "env.db")

    def test_bad_values_fall_back(self):
        self.config_path.write_text("{broken", encoding="utf-8")
        self.assertEqual(config.load_config_file(self.config_path), {})
        self.config_path.write_text(json.dumps({"pass_threshold_percent": "lots"}), encoding="utf-8")
        self.assertEqual(config.load_config(self.config_path).pass_threshold_percent, 1.0)
        self.config_path.write_text(json.dumps([1, 2]), encoding="utf-8")
        self.assertEqual(config.load_config_file(self.config_path), {})


if __name__ == "__main__":
    unittest.main()
