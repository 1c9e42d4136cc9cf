# stats_service.py
"""
Error statistics and pass/fail evaluation for a device's calibration points.
Everything here is computed on demand from the current points; nothing is cached on the device.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from domain.models import CalibrationStats, Device, Job, MeasurementPoint

DEFAULT_PASS_THRESHOLD_PERCENT = 1.0


def calculate_stats(points: Iterable[MeasurementPoint]) -> CalibrationStats:
    """Min/max/mean of error and error_percent. Missing derived fields count as 0."""
    points = list(points)
    if not points:
        return CalibrationStats()
    errors = [p.error or 0.0 for p in points]
    percents = [p.error_percent or 0.0 for p in points]
    return CalibrationStats(
        min_error=min(errors),
        max_error=max(errors),
        avg_error=sum(errors) / len(errors),
        min_error_percent=min(percents),
        max_error_percent=max(percents),
        avg_error_percent=sum(percents) / len(percents),
    )


def passes_threshold(
    points: Iterable[MeasurementPoint],
    threshold_percent: float = DEFAULT_PASS_THRESHOLD_PERCENT,
) -> bool:
    """True when every point has |error_percent| <= threshold (vacuously true for no points)."""
    return all(abs(p.error_percent or 0.0) <= threshold_percent for p in points)


def validate_point(point, device: Device) -> list[str]:
    """
    Advisory checks for a point (or draft) against its device.
    Returns a list of problems; empty when the point looks fine.
    """
    problems: list[str] = []
    if not (math.isfinite(point.input_desired) and math.isfinite(point.input_actual)):
        problems.append("Input values must be numbers")
    if not (math.isfinite(point.output_expected) and math.isfinite(point.output_actual)):
        problems.append("Output values must be numbers")
    low, high = sorted((device.min_range, device.max_range))
    if math.isfinite(point.input_desired) and not (low <= point.input_desired <= high):
        problems.append(
            f"Input desired must be between {device.min_range} and {device.max_range}"
        )
    return problems


def report_label(job_name: str, device_label: str) -> str:
    return f"{job_name} - {device_label}"


@dataclass(frozen=True)
class CalibrationReport:
    """What the report/export collaborator receives. Stats always match device.points."""

    job: Optional[Job]
    device: Device
    stats: CalibrationStats
    passed: bool
    threshold_percent: float
    title: str


def build_report(
    job: Optional[Job],
    device: Device,
    threshold_percent: float = DEFAULT_PASS_THRESHOLD_PERCENT,
) -> CalibrationReport:
    title = report_label(job.name if job else "job", device.label)
    return CalibrationReport(
        job=job,
        device=device,
        stats=calculate_stats(device.points),
        passed=passes_threshold(device.points, threshold_percent),
        threshold_percent=threshold_percent,
        title=title,
    )
