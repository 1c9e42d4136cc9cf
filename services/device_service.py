# services/device_service.py - Device transforms, scoped within a parent job
#
# Pure functions over the job collection. The device's mapping pair is always
# rebuilt through build_device_config, so a transmitter never ends up with an
# output conversion and a gauge never with a current span.

import math
from dataclasses import replace
from typing import Any, Mapping, Optional

from domain.errors import NotFound, ValidationError
from domain.models import DEVICE_TYPES, Device, Job, build_device_config, now_timestamp
from services.identity import new_id
from services.job_service import Jobs, replace_job, require_job

_CAMEL_DEVICE_KEYS = {
    "deviceType": "device_type",
    "minRange": "min_range",
    "maxRange": "max_range",
    "outputUnit": "output_unit",
    "currentMin": "current_min",
    "currentMax": "current_max",
    "outputMin": "output_min",
    "outputMax": "output_max",
}

_CONFIG_FIELDS = ("device_type", "output_unit", "current_min", "current_max", "output_min", "output_max")
DEVICE_PATCH_FIELDS = ("label", "unit", "min_range", "max_range", "notes", "images") + _CONFIG_FIELDS


def _require_label(label: Optional[str]) -> str:
    if label is not None and not isinstance(label, str):
        raise ValidationError("Device label must be text")
    label = (label or "").strip()
    if not label:
        raise ValidationError("Device label is required")
    return label


def _finite(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number") from None
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be a finite number")
    return number


def _optional_finite(name: str, value: Any) -> Optional[float]:
    return None if value is None else _finite(name, value)


def _config(device_type: str, output_unit, current_min, current_max, output_min, output_max):
    if device_type not in DEVICE_TYPES:
        raise ValidationError(f"Device type must be one of: {', '.join(DEVICE_TYPES)}")
    return build_device_config(
        device_type,
        output_unit=output_unit,
        current_min=_optional_finite("Current min", current_min),
        current_max=_optional_finite("Current max", current_max),
        output_min=_optional_finite("Output min", output_min),
        output_max=_optional_finite("Output max", output_max),
    )


def require_device(jobs: Jobs, job_id: str, device_id: str) -> tuple[Job, Device]:
    job = require_job(jobs, job_id)
    device = job.find_device(device_id)
    if device is None:
        raise NotFound("Device", device_id)
    return job, device


def replace_device(jobs: Jobs, job: Job, device: Device) -> Jobs:
    devices = tuple(device if d.id == device.id else d for d in job.devices)
    return replace_job(jobs, replace(job, devices=devices))


def create_device(
    jobs: Jobs,
    job_id: str,
    label: str,
    device_type: str,
    unit: str,
    min_range: float,
    max_range: float,
    current_min: Optional[float] = None,
    current_max: Optional[float] = None,
    output_unit: Optional[str] = None,
    output_min: Optional[float] = None,
    output_max: Optional[float] = None,
) -> tuple[Jobs, Device]:
    """
    Append an empty device to the job.
    Raises NotFound for an unknown job, ValidationError for a blank label,
    unknown device type or non-finite range values.
    """
    job = require_job(jobs, job_id)
    device = Device(
        id=new_id(),
        label=_require_label(label),
        unit=unit or "",
        min_range=_finite("Min range", min_range),
        max_range=_finite("Max range", max_range),
        config=_config(device_type, output_unit, current_min, current_max, output_min, output_max),
        created_at=now_timestamp(),
    )
    updated_job = replace(job, devices=job.devices + (device,))
    return replace_job(jobs, updated_job), device


def update_device(
    jobs: Jobs, job_id: str, device_id: str, patch: Mapping[str, Any]
) -> tuple[Jobs, Device]:
    """
    Merge patch (snake_case or camelCase keys) into the device. Points are not patchable here.
    Raises NotFound for unknown ids, ValidationError for unknown fields or bad values.
    """
    job, device = require_device(jobs, job_id, device_id)
    values = {_CAMEL_DEVICE_KEYS.get(k, k): v for k, v in patch.items()}
    unknown = sorted(set(values) - set(DEVICE_PATCH_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown device field(s): {', '.join(unknown)}")

    changes: dict[str, Any] = {}
    if "label" in values:
        changes["label"] = _require_label(values["label"])
    if "unit" in values:
        changes["unit"] = values["unit"] or ""
    if "min_range" in values:
        changes["min_range"] = _finite("Min range", values["min_range"])
    if "max_range" in values:
        changes["max_range"] = _finite("Max range", values["max_range"])
    if "notes" in values:
        changes["notes"] = values["notes"]
    if "images" in values:
        images = values["images"] or ()
        if not isinstance(images, (list, tuple)):
            raise ValidationError("Images must be a list")
        changes["images"] = tuple(images)
    if any(name in values for name in _CONFIG_FIELDS):
        current = {
            "device_type": device.device_type,
            "output_unit": device.output_unit,
            "current_min": device.current_min,
            "current_max": device.current_max,
            "output_min": device.output_min,
            "output_max": device.output_max,
        }
        if values.get("device_type", device.device_type) != device.device_type:
            current["output_unit"] = None
        current.update({k: v for k, v in values.items() if k in _CONFIG_FIELDS})
        changes["config"] = _config(**current)

    updated = replace(device, **changes)
    return replace_device(jobs, job, updated), updated


def delete_device(jobs: Jobs, job_id: str, device_id: str) -> tuple[Jobs, bool]:
    """Remove the device and its points. Unknown job or device id is a no-op."""
    job = next((j for j in jobs if j.id == job_id), None)
    if job is None or job.find_device(device_id) is None:
        return jobs, False
    remaining = tuple(d for d in job.devices if d.id != device_id)
    return replace_job(jobs, replace(job, devices=remaining)), True
