# test_crash_log.py
"""
Tests for crash_log: log file setup and the uncaught-exception hook.
Run with: python -m pytest test_crash_log.py -v
"""

import logging
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import crash_log


class TestCrashLog(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.root_level = logging.getLogger().level

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, logging.FileHandler) and str(self.dir) in handler.baseFilename:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(self.root_level)
        self.tmp.cleanup()

    def _file_handlers(self):
        return [
            h for h in logging.getLogger().handlers
            if isinstance(h, logging.FileHandler) and str(self.dir) in h.baseFilename
        ]

    def test_setup_logging_is_idempotent(self):
        first = crash_log.setup_logging(self.dir / "logs")
        second = crash_log.setup_logging(self.dir / "logs")
        self.assertEqual(first, second)
        self.assertEqual(len(self._file_handlers()), 1)

    def test_uncaught_exception_is_logged_then_forwarded(self):
        log_file = crash_log.setup_logging(self.dir)
        try:
            raise RuntimeError("sensor offline")
        except RuntimeError:
            exc_info = sys.exc_info()
        with mock.patch.object(sys, "__excepthook__") as default_hook:
            crash_log.log_exception(*exc_info)
        default_hook.assert_called_once_with(*exc_info)
        for handler in self._file_handlers():
            handler.flush()
        text = log_file.read_text(encoding="utf-8")
        self.assertIn("[CRITICAL] gauge_calibration: Uncaught exception", text)
        self.assertIn("RuntimeError: sensor offline", text)

    def test_keyboard_interrupt_not_logged(self):
        with mock.patch.object(crash_log.logger, "critical") as critical, \
                mock.patch.object(sys, "__excepthook__") as default_hook:
            crash_log.log_exception(KeyboardInterrupt, KeyboardInterrupt(), None)
        critical.assert_not_called()
        default_hook.assert_called_once()


if __name__ == "__main__":
    unittest.main()
