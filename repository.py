# repository.py - Authoritative job collection with write-through persistence
#
# Each mutation runs a pure transform from services/ over the current snapshot,
# substitutes the new snapshot as a unit, then writes the entire collection to
# the key/value store. A failed write is logged and reported on the Result; the
# in-memory snapshot stays authoritative for the rest of the session.
# A delete that removes nothing leaves the store untouched.

import logging
from typing import Any, Iterable, Mapping, Optional

from database import KeyValueStore, storage_key
from domain.errors import NotFound, PersistenceFailure, ValidationError
from domain.models import (
    CalibrationStats,
    Device,
    Job,
    MeasurementPoint,
    jobs_from_document,
    jobs_to_document,
)
from domain.results import Result
from services import device_service, import_service, job_service, point_service
from services.point_service import RawPoint
from stats_service import DEFAULT_PASS_THRESHOLD_PERCENT, CalibrationReport, build_report, calculate_stats

logger = logging.getLogger(__name__)

MODULE_NAME = "pressure_gauge_calibration"


class CalibrationRepository:
    def __init__(self, store: KeyValueStore, key: Optional[str] = None):
        self.store = store
        self.key = key or storage_key(MODULE_NAME)
        self._jobs: tuple[Job, ...] = self._load()

    # ---------- Snapshot / persistence ----------

    def _load(self) -> tuple[Job, ...]:
        document = self.store.load(self.key, [])
        try:
            jobs = jobs_from_document(document)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Stored job collection under %s is malformed, starting empty: %s", self.key, e)
            return ()
        logger.info("Loaded %d job(s) from %s", len(jobs), self.key)
        return jobs

    def reload(self) -> tuple[Job, ...]:
        """Discard the in-memory snapshot and read the stored collection again."""
        self._jobs = self._load()
        return self._jobs

    def save(self) -> bool:
        """Write the current snapshot through. Returns False (and logs) on failure."""
        ok = self.store.store(self.key, jobs_to_document(self._jobs))
        if not ok:
            failure = PersistenceFailure(f"Could not save job collection under {self.key}")
            logger.error("%s; keeping in-memory state (%d job(s))", failure, len(self._jobs))
        return ok

    def _commit(self, jobs: tuple[Job, ...]) -> bool:
        self._jobs = jobs
        return self.save()

    def _mutate(self, transform, *args) -> Result:
        try:
            jobs, value = transform(self._jobs, *args)
        except (ValidationError, NotFound) as e:
            logger.info("%s rejected: %s", transform.__name__, e)
            return Result.failure(e)
        return Result(value=value, persisted=self._commit(jobs))

    def _delete(self, transform, *args) -> Result[bool]:
        jobs, removed = transform(self._jobs, *args)
        if not removed:
            # Nothing changed, so there is nothing to write.
            return Result(value=False, persisted=True)
        return Result(value=True, persisted=self._commit(jobs))

    # ---------- Reads ----------

    @property
    def jobs(self) -> tuple[Job, ...]:
        return self._jobs

    def get_job(self, job_id: str) -> Optional[Job]:
        return job_service.find_job(self._jobs, job_id)

    def get_device(self, job_id: str, device_id: str) -> Optional[Device]:
        job = self.get_job(job_id)
        return job.find_device(device_id) if job else None

    def device_stats(self, job_id: str, device_id: str) -> CalibrationStats:
        """Stats for the device's current points; all zero for an unknown device."""
        device = self.get_device(job_id, device_id)
        return calculate_stats(device.points if device else ())

    def report(
        self,
        job_id: str,
        device_id: str,
        threshold_percent: float = DEFAULT_PASS_THRESHOLD_PERCENT,
    ) -> Optional[CalibrationReport]:
        device = self.get_device(job_id, device_id)
        if device is None:
            return None
        return build_report(self.get_job(job_id), device, threshold_percent)

    # ---------- Jobs ----------

    def create_job(
        self,
        name: str,
        description: Optional[str] = None,
        location: Optional[str] = None,
        technician: Optional[str] = None,
    ) -> Result[Job]:
        return self._mutate(job_service.create_job, name, description, location, technician)

    def update_job(self, job_id: str, patch: Mapping[str, Any]) -> Result[Job]:
        return self._mutate(job_service.update_job, job_id, patch)

    def delete_job(self, job_id: str) -> Result[bool]:
        """Cascades to the job's devices and points. Unknown id: value False, not an error."""
        return self._delete(job_service.delete_job, job_id)

    # ---------- Devices ----------

    def create_device(
        self,
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
    ) -> Result[Device]:
        return self._mutate(
            device_service.create_device, job_id, label, device_type, unit,
            min_range, max_range, current_min, current_max,
            output_unit, output_min, output_max,
        )

    def update_device(self, job_id: str, device_id: str, patch: Mapping[str, Any]) -> Result[Device]:
        return self._mutate(device_service.update_device, job_id, device_id, patch)

    def delete_device(self, job_id: str, device_id: str) -> Result[bool]:
        return self._delete(device_service.delete_device, job_id, device_id)

    # ---------- Points ----------

    def add_point(self, job_id: str, device_id: str, raw_point: RawPoint) -> Result[MeasurementPoint]:
        return self._mutate(point_service.add_point, job_id, device_id, raw_point)

    def add_points(
        self, job_id: str, device_id: str, raw_points: Iterable[RawPoint]
    ) -> Result[list[MeasurementPoint]]:
        """Batch insert with a single write-through, however many points are added."""
        return self._mutate(point_service.add_points, job_id, device_id, list(raw_points))

    def update_point(
        self, job_id: str, device_id: str, point_id: str, patch: Mapping[str, Any]
    ) -> Result[MeasurementPoint]:
        return self._mutate(point_service.update_point, job_id, device_id, point_id, patch)

    def delete_point(self, job_id: str, device_id: str, point_id: str) -> Result[bool]:
        return self._delete(point_service.delete_point, job_id, device_id, point_id)

    # ---------- Import ----------

    def import_jobs(self, jobs: Iterable[Any]) -> Result[list[Job]]:
        return self._mutate(import_service.import_jobs, list(jobs))
