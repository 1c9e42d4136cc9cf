# services/exchange_service.py - Job exchange files (export / import)
#
# File shape: {"version": 1, "exported_at": "...", "jobs": [<job document>, ...]}.
# A bare list of job documents is also accepted on read.

import logging
from pathlib import Path
from typing import Any, Iterable

from domain.errors import ValidationError
from domain.models import Job, jobs_from_document, now_timestamp
from file_utils import atomic_write_json, read_json
from services.import_service import require_finite

logger = logging.getLogger(__name__)

EXCHANGE_VERSION = 1


def export_jobs(path: Path, jobs: Iterable[Job]) -> Path:
    """Write jobs to path atomically. Raises OSError/ValueError on failure."""
    path = Path(path)
    jobs = list(jobs)
    document = {
        "version": EXCHANGE_VERSION,
        "exported_at": now_timestamp(),
        "jobs": [job.to_dict() for job in jobs],
    }
    atomic_write_json(path, document)
    logger.info("Exported %d job(s) to %s", len(jobs), path)
    return path


def read_jobs_file(path: Path) -> list[dict[str, Any]]:
    """
    Read job documents from an exchange file. Raises ValidationError when the file
    cannot be read or is not a job list.
    """
    path = Path(path)
    try:
        document = read_json(path, allow_nan=False)
    except (OSError, ValueError) as e:
        raise ValidationError(f"Cannot read import file {path}: {e}") from None
    if isinstance(document, dict):
        version = document.get("version", EXCHANGE_VERSION)
        if version != EXCHANGE_VERSION:
            raise ValidationError(f"Unsupported exchange file version: {version}")
        document = document.get("jobs")
    if not isinstance(document, list) or not all(isinstance(j, dict) for j in document):
        raise ValidationError(f"Import file {path} does not contain a job list")
    # Parse once up front so a malformed file is rejected before anything is merged.
    try:
        jobs = jobs_from_document(document)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"Malformed job in import file {path}: {e}") from None
    for job in jobs:
        require_finite(job)
    return document
