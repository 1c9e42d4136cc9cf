# services/import_service.py - Merge externally sourced jobs into the collection
#
# Imported derived fields (error / error_percent) are trusted as given.
# Ids that collide with an existing job, or repeat within their owner
# (device within job, point within device), are replaced with fresh ids so
# every entity stays uniquely addressable; nothing is merged or dropped.

import logging
import math
from dataclasses import replace
from typing import Any, Iterable, Mapping, Union

from domain.errors import ValidationError
from domain.models import Device, Job
from services.identity import new_id
from services.job_service import Jobs

logger = logging.getLogger(__name__)

RawJob = Union[Job, Mapping[str, Any]]


def _device_numbers(device: Device) -> list[float]:
    numbers = [device.min_range, device.max_range]
    active = device.config.active_map
    if active is not None:
        numbers += [active.out_min, active.out_max]
    for point in device.points:
        numbers += [
            point.input_desired, point.input_actual, point.output_expected, point.output_actual,
        ]
        numbers += [v for v in (point.error, point.error_percent) if v is not None]
    return numbers


def require_finite(job: Job) -> Job:
    """Raise ValidationError if any range, mapping or point value of the job is NaN/inf."""
    for device in job.devices:
        if not all(math.isfinite(n) for n in _device_numbers(device)):
            raise ValidationError(
                f"Job {job.name!r}, device {device.label!r} holds non-finite numbers"
            )
    return job


def _to_job(raw: RawJob) -> Job:
    if isinstance(raw, Job):
        return require_finite(raw)
    try:
        job = Job.from_dict(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"Malformed job in import: {e}") from None
    return require_finite(job)


def _unique_id(entity_id: str, taken: set[str]) -> tuple[str, bool]:
    if entity_id and entity_id not in taken:
        taken.add(entity_id)
        return entity_id, False
    fresh = new_id()
    taken.add(fresh)
    return fresh, True


def _rekey_device(device: Device) -> tuple[Device, int]:
    taken: set[str] = set()
    points = []
    rekeyed = 0
    for point in device.points:
        point_id, changed = _unique_id(point.id, taken)
        rekeyed += changed
        points.append(replace(point, id=point_id) if changed else point)
    return replace(device, points=tuple(points)), rekeyed


def _rekey_job(job: Job, job_id: str) -> tuple[Job, int]:
    taken: set[str] = set()
    devices = []
    rekeyed = 0
    for device in job.devices:
        device_id, changed = _unique_id(device.id, taken)
        rekeyed += changed
        device, point_changes = _rekey_device(replace(device, id=device_id))
        rekeyed += point_changes
        devices.append(device)
    return replace(job, id=job_id, devices=tuple(devices)), rekeyed


def import_jobs(jobs: Jobs, imported: Iterable[RawJob]) -> tuple[Jobs, list[Job]]:
    """
    Append imported jobs after the existing ones, preserving their order.
    Raises ValidationError if any imported job cannot be read; nothing is added in that case.
    """
    incoming = [_to_job(raw) for raw in imported]
    taken = {j.id for j in jobs}
    added: list[Job] = []
    rekeyed = 0
    for job in incoming:
        job_id, changed = _unique_id(job.id, taken)
        rekeyed += changed
        job, nested_changes = _rekey_job(job, job_id)
        rekeyed += nested_changes
        added.append(job)
    if rekeyed:
        logger.info("Import assigned fresh ids to %d colliding entities", rekeyed)
    return jobs + tuple(added), added
