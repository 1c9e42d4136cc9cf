# test_stats_service.py
"""
Unit tests for stats_service: error statistics, pass/fail threshold, point checks, report context.
Run with: python -m pytest test_stats_service.py -v
"""

import math
import unittest

from domain.models import (
    CalibrationStats,
    Device,
    GaugeConfig,
    Job,
    MeasurementPoint,
    PointDraft,
)
from stats_service import (
    build_report,
    calculate_stats,
    passes_threshold,
    report_label,
    validate_point,
)


def _point(expected, actual, pid="p"):
    return MeasurementPoint.create(pid, PointDraft(0, 0, expected, actual))


def _device(points=(), min_range=0.0, max_range=10.0):
    return Device(
        id="d1", label="PT-101", unit="Bar", min_range=min_range, max_range=max_range,
        config=GaugeConfig(), created_at="2026-01-01T00:00:00", points=tuple(points),
    )


class TestCalculateStats(unittest.TestCase):
    def test_empty_is_all_zero(self):
        stats = calculate_stats([])
        self.assertEqual(stats, CalibrationStats())
        self.assertEqual(set(stats.to_dict().values()), {0.0})

    def test_min_max_avg_error(self):
        points = [_point(10, 9), _point(10, 10), _point(10, 13)]
        stats = calculate_stats(points)
        self.assertEqual(stats.min_error, -1)
        self.assertEqual(stats.max_error, 3)
        self.assertAlmostEqual(stats.avg_error, 2 / 3, places=3)
        self.assertAlmostEqual(stats.min_error_percent, -10)
        self.assertAlmostEqual(stats.max_error_percent, 30)
        self.assertAlmostEqual(stats.avg_error_percent, 20 / 3)

    def test_missing_derived_fields_count_as_zero(self):
        imported = MeasurementPoint("x", 0, 0, 5, 7, error=None, error_percent=None)
        stats = calculate_stats([imported, _point(10, 12)])
        self.assertEqual(stats.min_error, 0)
        self.assertEqual(stats.max_error, 2)
        self.assertEqual(stats.avg_error, 1)
        self.assertEqual(stats.max_error_percent, 20)

    def test_accepts_generator(self):
        stats = calculate_stats(p for p in [_point(100, 102)])
        self.assertEqual(stats.avg_error, 2)
        self.assertEqual(stats.avg_error_percent, 2)


class TestPassesThreshold(unittest.TestCase):
    def test_all_within(self):
        self.assertTrue(passes_threshold([_point(100, 101), _point(100, 99)], 1.0))

    def test_one_outside(self):
        self.assertFalse(passes_threshold([_point(100, 101), _point(100, 98.5)], 1.0))

    def test_empty_passes(self):
        self.assertTrue(passes_threshold([], 0.5))

    def test_reflects_current_points(self):
        device = _device([_point(100, 105)])
        self.assertFalse(passes_threshold(device.points, 1.0))
        fixed = device.points[0].with_changes(output_actual=100.5)
        self.assertTrue(passes_threshold([fixed], 1.0))


class TestValidatePoint(unittest.TestCase):
    def test_ok(self):
        self.assertEqual(validate_point(PointDraft(5, 5, 5, 5), _device()), [])

    def test_outside_device_range(self):
        problems = validate_point(PointDraft(12, 12, 12, 12), _device())
        self.assertEqual(len(problems), 1)
        self.assertIn("between 0.0 and 10.0", problems[0])

    def test_inverted_device_range(self):
        self.assertEqual(validate_point(PointDraft(5, 5, 5, 5), _device(min_range=10, max_range=0)), [])

    def test_non_finite(self):
        problems = validate_point(PointDraft(math.nan, 1, 1, math.inf), _device())
        self.assertIn("Input values must be numbers", problems)
        self.assertIn("Output values must be numbers", problems)


class TestBuildReport(unittest.TestCase):
    def test_report_stats_match_points(self):
        device = _device([_point(100, 102), _point(50, 50)])
        job = Job(id="j1", name="Plant A", created_at="2026-01-01T00:00:00", devices=(device,))
        report = build_report(job, device, threshold_percent=1.0)
        self.assertEqual(report.title, "Plant A - PT-101")
        self.assertEqual(report.stats, calculate_stats(device.points))
        self.assertFalse(report.passed)
        self.assertIs(report.device, device)

    def test_report_without_job(self):
        report = build_report(None, _device())
        self.assertIsNone(report.job)
        self.assertTrue(report.passed)
        self.assertEqual(report.title, "job - PT-101")

    def test_report_label(self):
        self.assertEqual(report_label("Job", "G1"), "Job - G1")


if __name__ == "__main__":
    unittest.main()
