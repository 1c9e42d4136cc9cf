# main.py

import argparse
import logging
import sqlite3
import sys
from pathlib import Path

from bulk_generator import generate_points
from config import load_config
from crash_log import install_global_excepthook, log_current_exception, setup_logging
from database import SqliteKeyValueStore, get_connection, run_integrity_check, storage_key
from domain.errors import ValidationError
from domain.models import Range
from domain.results import Result
from repository import MODULE_NAME, CalibrationRepository
from services.exchange_service import export_jobs, read_jobs_file
from services.range_settings_service import MODULE_NAME as RANGE_MODULE_NAME, RangeSettings
from stats_service import build_report

logger = logging.getLogger(__name__)


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _check(result: Result) -> int:
    if not result.ok:
        return _fail(result.message)
    if not result.persisted:
        print("Warning: change kept in memory but could not be saved", file=sys.stderr)
    return 0


def _fmt(value) -> str:
    return "-" if value is None else f"{value:g}"


# ---------- Commands ----------

def cmd_jobs(repo: CalibrationRepository, args) -> int:
    if not repo.jobs:
        print("No jobs yet")
        return 0
    for job in repo.jobs:
        print(f"{job.id}  {job.name}  ({len(job.devices)} device(s), created {job.created_at})")
        for device in job.devices:
            print(
                f"    {device.id}  {device.label} [{device.device_type}] "
                f"{_fmt(device.min_range)}..{_fmt(device.max_range)} {device.unit}  "
                f"{len(device.points)} point(s)"
            )
    return 0


def cmd_create_job(repo: CalibrationRepository, args) -> int:
    result = repo.create_job(args.name, args.description, args.location, args.technician)
    if result.ok:
        print(result.value.id)
    return _check(result)


def cmd_delete_job(repo: CalibrationRepository, args) -> int:
    return _check(repo.delete_job(args.job_id))


def cmd_add_device(repo: CalibrationRepository, args) -> int:
    result = repo.create_device(
        args.job_id, args.label, args.type, args.unit, args.min, args.max,
        current_min=args.current_min, current_max=args.current_max,
        output_unit=args.output_unit, output_min=args.output_min, output_max=args.output_max,
    )
    if result.ok:
        print(result.value.id)
    return _check(result)


def cmd_add_point(repo: CalibrationRepository, args) -> int:
    raw = {
        "input_desired": args.input_desired,
        "input_actual": args.input_actual if args.input_actual is not None else args.input_desired,
        "output_expected": args.output_expected,
        "output_actual": args.output_actual,
    }
    result = repo.add_point(args.job_id, args.device_id, raw)
    if result.ok:
        p = result.value
        print(f"{p.id}  error={p.error:.4f}  error%={p.error_percent:.2f}")
    return _check(result)


def cmd_generate(repo: CalibrationRepository, args) -> int:
    device = repo.get_device(args.job_id, args.device_id)
    if device is None:
        return _fail("Device not found")
    try:
        rows = generate_points(device, args.start, args.end, args.step)
    except ValidationError as e:
        return _fail(str(e))
    for row in rows:
        print(f"{row.input_desired:>12.4f}  ->  {row.output_expected:>12.4f}")
    if not args.commit:
        print(f"{len(rows)} point(s) previewed (use --commit to save)")
        return 0
    result = repo.add_points(args.job_id, args.device_id, rows)
    if result.ok:
        print(f"{len(result.value)} point(s) added")
    return _check(result)


def cmd_stats(repo: CalibrationRepository, args) -> int:
    device = repo.get_device(args.job_id, args.device_id)
    if device is None:
        return _fail("Device not found")
    report = build_report(repo.get_job(args.job_id), device, args.threshold)
    s = report.stats
    print(report.title)
    print(f"  Avg Error: {s.avg_error:.4f} | Min: {s.min_error:.4f} | Max: {s.max_error:.4f}")
    print(
        f"  Avg %: {s.avg_error_percent:.2f}% | Min %: {s.min_error_percent:.2f}% "
        f"| Max %: {s.max_error_percent:.2f}%"
    )
    verdict = "PASS" if report.passed else "FAIL"
    print(f"  {verdict} (all points within ±{report.threshold_percent:g}%)")
    return 0


def cmd_interpolate(settings: RangeSettings, args) -> int:
    if args.set_range:
        result = settings.update_range(Range(*args.set_range))
        code = _check(result)
        if code:
            return code
    if args.value is None:
        r = settings.range
        print(f"Range: {_fmt(r.min_input)}..{_fmt(r.max_input)} -> {_fmt(r.min_output)}..{_fmt(r.max_output)}")
        return 0
    if args.reverse:
        print(f"{settings.reverse_calculate(args.value):g}")
    else:
        print(f"{settings.calculate(args.value):g}")
    return 0


def cmd_export(repo: CalibrationRepository, args) -> int:
    try:
        path = export_jobs(Path(args.path), repo.jobs)
    except (OSError, ValueError) as e:
        return _fail(f"Export failed: {e}")
    print(f"Exported {len(repo.jobs)} job(s) to {path}")
    return 0


def cmd_import(repo: CalibrationRepository, args) -> int:
    try:
        documents = read_jobs_file(Path(args.path))
    except ValidationError as e:
        return _fail(str(e))
    result = repo.import_jobs(documents)
    if result.ok:
        print(f"Imported {len(result.value)} job(s)")
    return _check(result)


# ---------- Entry point ----------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Gauge Calibration (jobs, devices, measurement points, error statistics)"
    )
    parser.add_argument("--db", type=str, default=None, help="Path to the SQLite storage file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("jobs", help="List jobs and their devices")

    p = sub.add_parser("create-job", help="Create an empty job")
    p.add_argument("name")
    p.add_argument("--description")
    p.add_argument("--location")
    p.add_argument("--technician")

    p = sub.add_parser("delete-job", help="Delete a job with all of its devices and points")
    p.add_argument("job_id")

    p = sub.add_parser("add-device", help="Add a gauge or transmitter to a job")
    p.add_argument("job_id")
    p.add_argument("label")
    p.add_argument("--type", choices=("gauge", "transmitter"), default="gauge")
    p.add_argument("--unit", default="Bar")
    p.add_argument("--min", type=float, default=0.0)
    p.add_argument("--max", type=float, default=100.0)
    p.add_argument("--current-min", type=float)
    p.add_argument("--current-max", type=float)
    p.add_argument("--output-unit")
    p.add_argument("--output-min", type=float)
    p.add_argument("--output-max", type=float)

    p = sub.add_parser("add-point", help="Record one measurement point")
    p.add_argument("job_id")
    p.add_argument("device_id")
    p.add_argument("input_desired", type=float)
    p.add_argument("output_expected", type=float)
    p.add_argument("output_actual", type=float)
    p.add_argument("--input-actual", type=float)

    p = sub.add_parser("generate", help="Preview (and optionally commit) a stepped point table")
    p.add_argument("job_id")
    p.add_argument("device_id")
    p.add_argument("--start", type=float, required=True)
    p.add_argument("--end", type=float, required=True)
    p.add_argument("--step", type=float, required=True)
    p.add_argument("--commit", action="store_true")

    p = sub.add_parser("stats", help="Error statistics and pass/fail for a device")
    p.add_argument("job_id")
    p.add_argument("device_id")
    p.add_argument("--threshold", type=float, default=None, help="Pass threshold in percent")

    p = sub.add_parser("interpolate", help="Linear interpolation calculator")
    p.add_argument("value", type=float, nargs="?")
    p.add_argument("--reverse", action="store_true", help="Treat value as an output")
    p.add_argument(
        "--set-range", type=float, nargs=4,
        metavar=("MIN_IN", "MAX_IN", "MIN_OUT", "MAX_OUT"),
    )

    p = sub.add_parser("export", help="Write all jobs to a JSON exchange file")
    p.add_argument("path")

    p = sub.add_parser("import", help="Append jobs from a JSON exchange file")
    p.add_argument("path")
    return parser


def main(argv=None) -> int:
    # Install global hook so any uncaught exception is logged
    install_global_excepthook()
    args = build_parser().parse_args(argv)
    config = load_config()
    setup_logging(config.log_dir)

    db_path = Path(args.db) if args.db else config.db_path
    logger.info("Program start. command=%s db=%s", args.command, db_path)

    try:
        conn = get_connection(db_path)
    except sqlite3.OperationalError as e:
        logger.error("Database file not openable: %s", e)
        return _fail(f"Cannot open database {db_path}: {e}")

    try:
        store = SqliteKeyValueStore(conn)
        integrity_err = run_integrity_check(conn)
        if integrity_err:
            logger.error("Database integrity check failed: %s", integrity_err)
            return _fail(f"Database integrity check failed: {integrity_err}")

        if args.command == "interpolate":
            settings = RangeSettings(store, storage_key(RANGE_MODULE_NAME, config.storage_namespace))
            return cmd_interpolate(settings, args)

        if args.command == "stats" and args.threshold is None:
            args.threshold = config.pass_threshold_percent
        repo = CalibrationRepository(store, storage_key(MODULE_NAME, config.storage_namespace))
        handler = COMMANDS[args.command]
        code = handler(repo, args)
        logger.info("Program exit: %s", code)
        return code
    except Exception:
        log_current_exception("Fatal error in main()")
        raise
    finally:
        conn.close()


COMMANDS = {
    "jobs": cmd_jobs,
    "create-job": cmd_create_job,
    "delete-job": cmd_delete_job,
    "add-device": cmd_add_device,
    "add-point": cmd_add_point,
    "generate": cmd_generate,
    "stats": cmd_stats,
    "export": cmd_export,
    "import": cmd_import,
}


if __name__ == "__main__":
    sys.exit(main())
