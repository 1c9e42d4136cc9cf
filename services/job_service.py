# services/job_service.py - Job collection transforms
#
# Pure functions: (jobs, args) -> (new_jobs, result). The input tuple is never
# modified. Raise ValidationError / NotFound; the repository turns those into results.

from dataclasses import replace
from typing import Any, Mapping, Optional

from domain.errors import NotFound, ValidationError
from domain.models import Job, now_timestamp
from services.identity import new_id

Jobs = tuple[Job, ...]

JOB_PATCH_FIELDS = ("name", "description", "location", "technician", "notes")


def _require_name(name: Optional[str]) -> str:
    if name is not None and not isinstance(name, str):
        raise ValidationError("Job name must be text")
    name = (name or "").strip()
    if not name:
        raise ValidationError("Job name is required")
    return name


def find_job(jobs: Jobs, job_id: str) -> Optional[Job]:
    return next((j for j in jobs if j.id == job_id), None)


def require_job(jobs: Jobs, job_id: str) -> Job:
    job = find_job(jobs, job_id)
    if job is None:
        raise NotFound("Job", job_id)
    return job


def replace_job(jobs: Jobs, job: Job) -> Jobs:
    """Substitute the job with the same id, keeping collection order."""
    return tuple(job if j.id == job.id else j for j in jobs)


def create_job(
    jobs: Jobs,
    name: str,
    description: Optional[str] = None,
    location: Optional[str] = None,
    technician: Optional[str] = None,
) -> tuple[Jobs, Job]:
    """Append a new job with no devices. Raises ValidationError if name is blank."""
    job = Job(
        id=new_id(),
        name=_require_name(name),
        created_at=now_timestamp(),
        description=description,
        location=location,
        technician=technician,
    )
    return jobs + (job,), job


def update_job(jobs: Jobs, job_id: str, patch: Mapping[str, Any]) -> tuple[Jobs, Job]:
    """
    Merge patch into the job.
    Raises NotFound for an unknown id, ValidationError for unknown fields or a blank name.
    """
    job = require_job(jobs, job_id)
    unknown = sorted(set(patch) - set(JOB_PATCH_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown job field(s): {', '.join(unknown)}")
    values = dict(patch)
    if "name" in values:
        values["name"] = _require_name(values["name"])
    updated = replace(job, **values)
    return replace_job(jobs, updated), updated


def delete_job(jobs: Jobs, job_id: str) -> tuple[Jobs, bool]:
    """Remove the job and, with it, all of its devices and points. Unknown id is a no-op."""
    remaining = tuple(j for j in jobs if j.id != job_id)
    return remaining, len(remaining) != len(jobs)
