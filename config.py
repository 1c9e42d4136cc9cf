# config.py - Runtime configuration (storage path, key namespace, pass threshold)
#
# Single place for loading configuration. database.py, crash_log.py and main.py
# take their settings from here instead of defining config logic themselves.
# Order for every setting: environment variable > config.json > built-in default.

import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

APP_DIR_NAME = "GaugeCalibration"
CONFIG_FILE_NAME = "config.json"

DB_PATH_ENV = "GAUGE_CAL_DB_PATH"
NAMESPACE_ENV = "GAUGE_CAL_NAMESPACE"
PASS_THRESHOLD_ENV = "GAUGE_CAL_PASS_THRESHOLD"
LOG_DIR_ENV = "GAUGE_CAL_LOG_DIR"
CONFIG_PATH_ENV = "GAUGE_CAL_CONFIG"

DEFAULT_NAMESPACE = "ci_helper_module_settings"
DEFAULT_PASS_THRESHOLD_PERCENT = 1.0


def get_app_base_dir() -> Path:
    """Directory containing the app (install dir when frozen, script dir when run from source)."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent


def get_data_dir() -> Path:
    """Per-user data dir: %APPDATA%\\GaugeCalibration on Windows, ~/.config/GaugeCalibration elsewhere."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA", "")
        base = Path(base) if base else Path.home() / "AppData" / "Roaming"
    else:
        base = Path.home() / ".config"
    return base / APP_DIR_NAME


def _config_file_path() -> Path:
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path and env_path.strip():
        return Path(env_path.strip())
    return get_app_base_dir() / CONFIG_FILE_NAME


def load_config_file(path: Path | None = None) -> dict[str, Any]:
    """Return config.json contents, or {} when missing or malformed (logged)."""
    path = path or _config_file_path()
    if not path.is_file():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not an object", path)
        return {}
    return data


def _setting(env_name: str, file_data: dict[str, Any], file_key: str) -> Any:
    env_value = os.environ.get(env_name)
    if env_value and env_value.strip():
        return env_value.strip()
    return file_data.get(file_key)


def _resolve_path(raw: Any, relative_to: Path) -> Path | None:
    if not (raw and isinstance(raw, str) and raw.strip()):
        return None
    p = Path(raw.strip()).expanduser()
    if not p.is_absolute():
        p = (relative_to / p).resolve()
    return p


@dataclass(frozen=True)
class AppConfig:
    db_path: Path
    storage_namespace: str
    pass_threshold_percent: float
    log_dir: Path


def load_config(config_path: Path | None = None) -> AppConfig:
    config_path = config_path or _config_file_path()
    data = load_config_file(config_path)
    base = config_path.parent

    db_path = _resolve_path(_setting(DB_PATH_ENV, data, "db_path"), base)
    if db_path is None:
        db_path = get_data_dir() / "calibration.db"

    log_dir = _resolve_path(_setting(LOG_DIR_ENV, data, "log_dir"), base)
    if log_dir is None:
        log_dir = get_data_dir() / "logs"

    namespace = _setting(NAMESPACE_ENV, data, "storage_namespace")
    if not (isinstance(namespace, str) and namespace.strip()):
        namespace = DEFAULT_NAMESPACE

    raw_threshold = _setting(PASS_THRESHOLD_ENV, data, "pass_threshold_percent")
    threshold = DEFAULT_PASS_THRESHOLD_PERCENT
    if raw_threshold is not None:
        try:
            threshold = abs(float(raw_threshold))
        except (TypeError, ValueError):
            logger.warning(
                "Invalid pass threshold %r, using %s", raw_threshold, DEFAULT_PASS_THRESHOLD_PERCENT
            )

    return AppConfig(
        db_path=db_path,
        storage_namespace=namespace.strip(),
        pass_threshold_percent=threshold,
        log_dir=log_dir,
    )
