# services/point_service.py - Measurement point transforms
#
# Every point leaving this module has error/error_percent computed from its
# current output_actual/output_expected (MeasurementPoint.create / with_changes).

import math
from dataclasses import replace
from typing import Any, Iterable, Mapping, Union

from domain.errors import NotFound, ValidationError
from domain.models import (
    POINT_VALUE_FIELDS,
    MeasurementPoint,
    PointDraft,
    normalize_point_fields,
)
from services.device_service import replace_device, require_device
from services.identity import new_id
from services.job_service import Jobs

RawPoint = Union[PointDraft, Mapping[str, Any]]

# Derived or identifying keys a caller may echo back in a patch; they are ignored.
_IGNORED_PATCH_KEYS = {"id", "error", "errorPercent", "error_percent"}


def to_draft(raw: RawPoint) -> PointDraft:
    """Coerce a raw point into a PointDraft. Raises ValidationError on non-numeric values."""
    if isinstance(raw, PointDraft):
        draft = raw
    else:
        try:
            draft = PointDraft.from_mapping(raw)
        except (TypeError, ValueError, AttributeError):
            raise ValidationError("Point values must be numbers") from None
    if not draft.is_finite():
        raise ValidationError("Point values must be finite numbers")
    return draft


def add_points(
    jobs: Jobs, job_id: str, device_id: str, raw_points: Iterable[RawPoint]
) -> tuple[Jobs, list[MeasurementPoint]]:
    """
    Append points to the device, each with a fresh id and derived error fields.
    All raw points are validated before any is added.
    """
    job, device = require_device(jobs, job_id, device_id)
    drafts = [to_draft(raw) for raw in raw_points]
    new_points = [MeasurementPoint.create(new_id(), draft) for draft in drafts]
    updated = replace(device, points=device.points + tuple(new_points))
    return replace_device(jobs, job, updated), new_points


def add_point(
    jobs: Jobs, job_id: str, device_id: str, raw_point: RawPoint
) -> tuple[Jobs, MeasurementPoint]:
    jobs, points = add_points(jobs, job_id, device_id, [raw_point])
    return jobs, points[0]


def _patch_values(patch: Mapping[str, Any]) -> dict[str, float]:
    values = {
        k: v for k, v in normalize_point_fields(patch).items()
        if k not in _IGNORED_PATCH_KEYS
    }
    unknown = sorted(set(values) - set(POINT_VALUE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown point field(s): {', '.join(unknown)}")
    result = {}
    for name, value in values.items():
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError("Point values must be numbers") from None
        if not math.isfinite(number):
            raise ValidationError("Point values must be finite numbers")
        result[name] = number
    return result


def update_point(
    jobs: Jobs, job_id: str, device_id: str, point_id: str, patch: Mapping[str, Any]
) -> tuple[Jobs, MeasurementPoint]:
    """
    Merge patch into the point, then recompute error/error_percent unconditionally.
    Raises NotFound for unknown ids, ValidationError for unknown fields or bad values.
    """
    job, device = require_device(jobs, job_id, device_id)
    point = device.find_point(point_id)
    if point is None:
        raise NotFound("Point", point_id)
    updated_point = point.with_changes(**_patch_values(patch))
    points = tuple(updated_point if p.id == point_id else p for p in device.points)
    return replace_device(jobs, job, replace(device, points=points)), updated_point


def delete_point(jobs: Jobs, job_id: str, device_id: str, point_id: str) -> tuple[Jobs, bool]:
    """Remove the point. Unknown job, device or point id is a no-op."""
    try:
        job, device = require_device(jobs, job_id, device_id)
    except NotFound:
        return jobs, False
    if device.find_point(point_id) is None:
        return jobs, False
    points = tuple(p for p in device.points if p.id != point_id)
    return replace_device(jobs, job, replace(device, points=points)), True
