# crash_log.py - Log file setup and last-resort exception logging

import logging
import sys
from pathlib import Path

LOGGER_NAME = "gauge_calibration"
LOG_FILE_NAME = "gauge_calibration.log"

logger = logging.getLogger(LOGGER_NAME)


def setup_logging(log_dir: Path, level: int = logging.INFO) -> Path:
    """
    Attach a file handler to the root logger (once per file) so every module's
    logging.getLogger(__name__) output lands in log_dir. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = (log_dir / LOG_FILE_NAME).resolve()

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file:
            return log_file
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(fh)
    return log_file


def log_exception(exc_type, exc_value, exc_tb):
    """
    sys.excepthook for the CLI: record an uncaught error in the calibration log,
    then hand over to the interpreter's default hook for the console traceback.
    Ctrl-C is passed straight through without a log entry.
    """
    if not issubclass(exc_type, KeyboardInterrupt):
        try:
            logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))
        except Exception:
            # A broken handler must not hide the original traceback
            pass
    sys.__excepthook__(exc_type, exc_value, exc_tb)


def log_current_exception(context: str = ""):
    """Log the exception being handled, with an optional context prefix. No-op outside except."""
    if sys.exc_info()[0] is None:
        return
    prefix = f"[{context}] " if context else ""
    logger.exception("%sCaught exception", prefix)


def install_global_excepthook():
    sys.excepthook = log_exception
