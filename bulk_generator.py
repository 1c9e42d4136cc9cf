# bulk_generator.py
"""
Bulk calibration table: propose evenly stepped points for a device before they are committed.
Expected outputs come from the device's active mapping (transmitter current span,
gauge output conversion, or identity). Nothing here is persisted.
"""

from __future__ import annotations

import logging
import math

from domain.errors import ValidationError
from domain.models import Device, PointDraft

logger = logging.getLogger(__name__)

# Absorbs floating-point step accumulation so a final value meant to equal `end` is kept.
END_TOLERANCE = 1e-9

# Upper bound on preview rows; also stops a step lost to float resolution from looping forever.
MAX_POINTS = 10_000


def map_linear(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    """Unclamped linear map. A degenerate input span returns out_min instead of failing."""
    if in_min == in_max:
        return out_min
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)


def expected_output(device: Device, value: float) -> float:
    """Expected output for an input value under the device's configured mapping."""
    # Transmitters carry only a current span, gauges only an output conversion.
    mapping = device.config.active_map
    if mapping is not None:
        return map_linear(value, device.min_range, device.max_range, mapping.out_min, mapping.out_max)
    return value


def _check_request(start: float, end: float, step: float) -> None:
    if not all(math.isfinite(v) for v in (start, end, step)):
        raise ValidationError("Start, end and step must be finite numbers")
    if step <= 0:
        raise ValidationError("Step must be greater than zero")
    if start > end:
        raise ValidationError("Start must not be greater than end")


def generate_points(device: Device, start: float, end: float, step: float) -> list[PointDraft]:
    """
    Preview rows for start..end inclusive in `step` increments.
    input_actual is seeded from input_desired and output_actual from output_expected,
    so an unedited row commits with zero error.
    Raises ValidationError on a bad request.
    """
    _check_request(start, end, step)
    limit = end + END_TOLERANCE
    rows: list[PointDraft] = []
    i = 0
    while True:
        v = start + i * step
        if v > limit:
            break
        expected = expected_output(device, v)
        rows.append(PointDraft(
            input_desired=v,
            input_actual=v,
            output_expected=expected,
            output_actual=expected,
        ))
        i += 1
        if len(rows) > MAX_POINTS:
            raise ValidationError(f"Too many points (more than {MAX_POINTS}); use a larger step")
    logger.debug(
        "Generated %d preview points for device %s (%s..%s step %s)",
        len(rows), device.id, start, end, step,
    )
    return rows
