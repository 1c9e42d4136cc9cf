# interpolation_service.py
"""
Range validation and linear interpolation between an input span and an output span.
Single source of truth for: range checks, forward/reverse mapping, clamping.
Used by RangeSettings (interpolation calculator) and the CLI.

Formula: y = y1 + (x - x1) * (y2 - y1) / (x2 - x1)
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from domain.errors import InvalidRange
from domain.models import Range

REASON_EQUAL_BOUNDS = "equal bounds"
REASON_NON_FINITE_INPUT = "non-finite input"
REASON_NON_FINITE_OUTPUT = "non-finite output"


@dataclass(frozen=True)
class RangeValidation:
    is_valid: bool
    reason: str | None = None
    error: str | None = None

    def as_error(self) -> InvalidRange | None:
        if self.is_valid:
            return None
        return InvalidRange(self.error or "Invalid range", reason=self.reason)


def validate_range(range_: Range) -> RangeValidation:
    """
    Check a range before it is committed.
    Invalid when min_input == max_input or any bound is NaN/inf.
    """
    if not (math.isfinite(range_.min_input) and math.isfinite(range_.max_input)):
        return RangeValidation(
            False, REASON_NON_FINITE_INPUT, "Input range values must be finite numbers"
        )
    if range_.min_input == range_.max_input:
        return RangeValidation(
            False, REASON_EQUAL_BOUNDS, "Input range cannot have min equal to max"
        )
    if not (math.isfinite(range_.min_output) and math.isfinite(range_.max_output)):
        return RangeValidation(
            False, REASON_NON_FINITE_OUTPUT, "Output range values must be finite numbers"
        )
    return RangeValidation(True)


def _require_valid(range_: Range) -> None:
    validation = validate_range(range_)
    if not validation.is_valid:
        raise validation.as_error()


def _clamp(value: float, a: float, b: float) -> float:
    """Clamp into [min(a, b), max(a, b)]; works for inverted spans."""
    return max(min(a, b), min(max(a, b), value))


def _lerp(start: float, end: float, ratio: float) -> float:
    # Weighted form returns start/end exactly at ratio 0/1.
    return start * (1.0 - ratio) + end * ratio


def interpolate(value: float, range_: Range) -> float:
    """
    Map value from the input span to the output span.
    value is clamped to the input span first, so the result never leaves the output span.
    Raises InvalidRange on an invalid range.
    """
    _require_valid(range_)
    clamped = _clamp(value, range_.min_input, range_.max_input)
    return interpolate_without_clamping(clamped, range_)


def interpolate_without_clamping(value: float, range_: Range) -> float:
    """Extrapolating variant for diagnostics. Not for user-facing calculation."""
    ratio = (value - range_.min_input) / (range_.max_input - range_.min_input)
    return _lerp(range_.min_output, range_.max_output, ratio)


def reverse_interpolate(output_value: float, range_: Range) -> float:
    """
    Given an output value, find the input value. Clamps to the output span.
    A flat output span (min_output == max_output) maps back to min_input.
    Raises InvalidRange on an invalid range.
    """
    _require_valid(range_)
    if range_.min_output == range_.max_output:
        return range_.min_input
    clamped = _clamp(output_value, range_.min_output, range_.max_output)
    ratio = (clamped - range_.min_output) / (range_.max_output - range_.min_output)
    return _lerp(range_.min_input, range_.max_input, ratio)
