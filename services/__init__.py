# services - Pure collection transforms and small orchestration helpers
from services import (
    identity,
    job_service,
    device_service,
    point_service,
    import_service,
    exchange_service,
    range_settings_service,
)

__all__ = [
    "identity",
    "job_service",
    "device_service",
    "point_service",
    "import_service",
    "exchange_service",
    "range_settings_service",
]
