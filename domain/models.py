# domain/models.py - Domain entities (frozen dataclasses)
#
# Typed models for the job -> device -> point tree. Conversion from the stored
# JSON document (camelCase keys) happens at the repository boundary only.

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Mapping, Optional, Union

DEVICE_GAUGE = "gauge"
DEVICE_TRANSMITTER = "transmitter"
DEVICE_TYPES = (DEVICE_GAUGE, DEVICE_TRANSMITTER)

# Transmitters report an electrical signal; the UI never lets this change.
TRANSMITTER_OUTPUT_UNIT = "mA"


def _pick(d: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present, non-None value among keys (camelCase or snake_case)."""
    for key in keys:
        value = d.get(key)
        if value is not None:
            return value
    return default


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def now_timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _timestamp_from(value: Any) -> str:
    """Accept ISO strings or legacy millisecond epoch numbers."""
    if value is None:
        return now_timestamp()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000.0).isoformat(timespec="seconds")
    return str(value)


def compute_error(output_expected: float, output_actual: float) -> float:
    return output_actual - output_expected


def compute_error_percent(output_expected: float, output_actual: float) -> float:
    """Error relative to |expected| in percent; 0 when expected is 0."""
    if output_expected == 0:
        return 0.0
    return (output_actual - output_expected) / abs(output_expected) * 100.0


# -----------------------------------------------------------------------------
# Range / mapping value objects
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Range:
    """Input span to output span linear mapping descriptor."""

    min_input: float
    max_input: float
    min_output: float
    max_output: float

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Range":
        return cls(
            min_input=float(_pick(d, "minInput", "min_input")),
            max_input=float(_pick(d, "maxInput", "max_input")),
            min_output=float(_pick(d, "minOutput", "min_output")),
            max_output=float(_pick(d, "maxOutput", "max_output")),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "minInput": self.min_input,
            "maxInput": self.max_input,
            "minOutput": self.min_output,
            "maxOutput": self.max_output,
        }


@dataclass(frozen=True)
class LinearMap:
    """Output span a device's input range maps onto."""

    out_min: float
    out_max: float


@dataclass(frozen=True)
class GaugeConfig:
    output_unit: Optional[str] = None
    output_conversion: Optional[LinearMap] = None

    device_type = DEVICE_GAUGE

    @property
    def active_map(self) -> Optional[LinearMap]:
        return self.output_conversion


@dataclass(frozen=True)
class TransmitterConfig:
    output_unit: str = TRANSMITTER_OUTPUT_UNIT
    current_map: Optional[LinearMap] = None

    device_type = DEVICE_TRANSMITTER

    @property
    def active_map(self) -> Optional[LinearMap]:
        return self.current_map


DeviceConfig = Union[GaugeConfig, TransmitterConfig]


def build_device_config(
    device_type: str,
    output_unit: Optional[str] = None,
    current_min: Optional[float] = None,
    current_max: Optional[float] = None,
    output_min: Optional[float] = None,
    output_max: Optional[float] = None,
) -> DeviceConfig:
    """
    Select the mapping pair that is active for device_type.
    The other pair is dropped; a pair with only one bound set is not a mapping.
    Raises ValueError for an unknown device_type.
    """
    if device_type == DEVICE_TRANSMITTER:
        current_map = None
        if current_min is not None and current_max is not None:
            current_map = LinearMap(float(current_min), float(current_max))
        return TransmitterConfig(current_map=current_map)
    if device_type == DEVICE_GAUGE:
        conversion = None
        if output_min is not None and output_max is not None:
            conversion = LinearMap(float(output_min), float(output_max))
        return GaugeConfig(output_unit=output_unit or None, output_conversion=conversion)
    raise ValueError(f"Unknown device type: {device_type!r}")


# -----------------------------------------------------------------------------
# Points
# -----------------------------------------------------------------------------

POINT_VALUE_FIELDS = ("input_desired", "input_actual", "output_expected", "output_actual")

_CAMEL_POINT_KEYS = {
    "inputDesired": "input_desired",
    "inputActual": "input_actual",
    "outputExpected": "output_expected",
    "outputActual": "output_actual",
}


def normalize_point_fields(d: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase point keys to field names; unknown keys are kept as-is."""
    return {_CAMEL_POINT_KEYS.get(k, k): v for k, v in d.items()}


@dataclass(frozen=True)
class PointDraft:
    """Caller-supplied point values (no id, no derived fields). Also a bulk preview row."""

    input_desired: float
    input_actual: float
    output_expected: float
    output_actual: float

    @classmethod
    def from_mapping(cls, d: Mapping[str, Any]) -> "PointDraft":
        n = normalize_point_fields(d)
        return cls(**{name: float(n.get(name) or 0.0) for name in POINT_VALUE_FIELDS})

    def is_finite(self) -> bool:
        return all(math.isfinite(getattr(self, name)) for name in POINT_VALUE_FIELDS)


@dataclass(frozen=True)
class MeasurementPoint:
    """
    One recorded sample. error and error_percent are derived from
    output_actual/output_expected; use create() or with_changes() so they stay in step.
    Imported points may carry None for the derived fields.
    """

    id: str
    input_desired: float
    input_actual: float
    output_expected: float
    output_actual: float
    error: Optional[float] = 0.0
    error_percent: Optional[float] = 0.0

    @classmethod
    def create(cls, point_id: str, draft: PointDraft) -> "MeasurementPoint":
        return cls(
            id=point_id,
            input_desired=draft.input_desired,
            input_actual=draft.input_actual,
            output_expected=draft.output_expected,
            output_actual=draft.output_actual,
            error=compute_error(draft.output_expected, draft.output_actual),
            error_percent=compute_error_percent(draft.output_expected, draft.output_actual),
        )

    def with_changes(self, **values: float) -> "MeasurementPoint":
        """Merge values, then recompute both derived fields from the merged outputs."""
        merged = replace(self, **values)
        return replace(
            merged,
            error=compute_error(merged.output_expected, merged.output_actual),
            error_percent=compute_error_percent(merged.output_expected, merged.output_actual),
        )

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "MeasurementPoint":
        """Trusts stored/imported derived fields as given."""
        return cls(
            id=str(d["id"]),
            input_desired=float(_pick(d, "inputDesired", "input_desired", default=0.0)),
            input_actual=float(_pick(d, "inputActual", "input_actual", default=0.0)),
            output_expected=float(_pick(d, "outputExpected", "output_expected", default=0.0)),
            output_actual=float(_pick(d, "outputActual", "output_actual", default=0.0)),
            error=_optional_float(_pick(d, "error")),
            error_percent=_optional_float(_pick(d, "errorPercent", "error_percent")),
        )

    def to_dict(self) -> dict[str, Any]:
        d = {
            "id": self.id,
            "inputDesired": self.input_desired,
            "inputActual": self.input_actual,
            "outputExpected": self.output_expected,
            "outputActual": self.output_actual,
        }
        if self.error is not None:
            d["error"] = self.error
        if self.error_percent is not None:
            d["errorPercent"] = self.error_percent
        return d


# -----------------------------------------------------------------------------
# Device / Job
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Device:
    """A gauge or transmitter under calibration. Owns its points by value."""

    id: str
    label: str
    unit: str
    min_range: float
    max_range: float
    config: DeviceConfig
    created_at: str
    points: tuple[MeasurementPoint, ...] = ()
    notes: Optional[str] = None
    images: tuple[str, ...] = ()

    @property
    def device_type(self) -> str:
        return self.config.device_type

    @property
    def output_unit(self) -> Optional[str]:
        return self.config.output_unit

    @property
    def current_min(self) -> Optional[float]:
        m = self.config.active_map if isinstance(self.config, TransmitterConfig) else None
        return m.out_min if m else None

    @property
    def current_max(self) -> Optional[float]:
        m = self.config.active_map if isinstance(self.config, TransmitterConfig) else None
        return m.out_max if m else None

    @property
    def output_min(self) -> Optional[float]:
        m = self.config.active_map if isinstance(self.config, GaugeConfig) else None
        return m.out_min if m else None

    @property
    def output_max(self) -> Optional[float]:
        m = self.config.active_map if isinstance(self.config, GaugeConfig) else None
        return m.out_max if m else None

    def find_point(self, point_id: str) -> Optional[MeasurementPoint]:
        return next((p for p in self.points if p.id == point_id), None)

    def __str__(self) -> str:
        return f"id={self.id}, label={self.label}, type={self.device_type}"

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Device":
        device_type = d.get("deviceType") or d.get("device_type") or DEVICE_GAUGE
        config = build_device_config(
            device_type,
            output_unit=_pick(d, "outputUnit", "output_unit"),
            current_min=_optional_float(_pick(d, "currentMin", "current_min")),
            current_max=_optional_float(_pick(d, "currentMax", "current_max")),
            output_min=_optional_float(_pick(d, "outputMin", "output_min")),
            output_max=_optional_float(_pick(d, "outputMax", "output_max")),
        )
        return cls(
            id=str(d["id"]),
            label=d.get("label") or "",
            unit=d.get("unit") or "",
            min_range=float(_pick(d, "minRange", "min_range", default=0.0)),
            max_range=float(_pick(d, "maxRange", "max_range", default=0.0)),
            config=config,
            created_at=_timestamp_from(_pick(d, "createdAt", "created_at", "timestamp")),
            points=tuple(MeasurementPoint.from_dict(p) for p in d.get("points") or ()),
            notes=d.get("notes"),
            images=tuple(d.get("images") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        """Flat stored shape; the inactive mapping pair is left out entirely."""
        d: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "deviceType": self.device_type,
            "unit": self.unit,
            "minRange": self.min_range,
            "maxRange": self.max_range,
        }
        if self.output_unit:
            d["outputUnit"] = self.output_unit
        if self.current_min is not None:
            d["currentMin"] = self.current_min
            d["currentMax"] = self.current_max
        if self.output_min is not None:
            d["outputMin"] = self.output_min
            d["outputMax"] = self.output_max
        if self.notes is not None:
            d["notes"] = self.notes
        if self.images:
            d["images"] = list(self.images)
        d["points"] = [p.to_dict() for p in self.points]
        d["createdAt"] = self.created_at
        return d


@dataclass(frozen=True)
class Job:
    """A calibration work session. Owns its devices by value."""

    id: str
    name: str
    created_at: str
    devices: tuple[Device, ...] = ()
    description: Optional[str] = None
    location: Optional[str] = None
    technician: Optional[str] = None
    notes: Optional[str] = None

    def find_device(self, device_id: str) -> Optional[Device]:
        return next((dev for dev in self.devices if dev.id == device_id), None)

    def __str__(self) -> str:
        return f"id={self.id}, name={self.name}"

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Job":
        """Accepts the current shape and the older one (gauges / date keys)."""
        devices = d.get("devices")
        if devices is None:
            devices = d.get("gauges") or ()
        return cls(
            id=str(d["id"]),
            name=d.get("name") or "",
            created_at=_timestamp_from(_pick(d, "createdAt", "created_at", "date")),
            devices=tuple(Device.from_dict(dev) for dev in devices),
            description=d.get("description"),
            location=d.get("location"),
            technician=d.get("technician"),
            notes=d.get("notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "name": self.name}
        for key in ("description", "location", "technician"):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        d["createdAt"] = self.created_at
        d["devices"] = [dev.to_dict() for dev in self.devices]
        if self.notes is not None:
            d["notes"] = self.notes
        return d


@dataclass(frozen=True)
class CalibrationStats:
    """Summary error metrics. Derived on demand, never stored."""

    min_error: float = 0.0
    max_error: float = 0.0
    avg_error: float = 0.0
    min_error_percent: float = 0.0
    max_error_percent: float = 0.0
    avg_error_percent: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "minError": self.min_error,
            "maxError": self.max_error,
            "avgError": self.avg_error,
            "minErrorPercent": self.min_error_percent,
            "maxErrorPercent": self.max_error_percent,
            "avgErrorPercent": self.avg_error_percent,
        }


def jobs_to_document(jobs) -> list[dict[str, Any]]:
    return [job.to_dict() for job in jobs]


def jobs_from_document(document) -> tuple[Job, ...]:
    """Raises KeyError/TypeError/ValueError on a malformed document."""
    if not isinstance(document, list):
        raise TypeError("Job collection must be a list")
    return tuple(job if isinstance(job, Job) else Job.from_dict(job) for job in document)
