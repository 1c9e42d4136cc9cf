# services/range_settings_service.py - Interpolation calculator with a persisted range
#
# The range is only replaced after validate_range() accepts it; a rejected edit
# leaves the previous range in place.

import logging
from typing import Optional

from database import KeyValueStore, storage_key
from domain.models import Range
from domain.results import Result
from interpolation_service import interpolate, reverse_interpolate, validate_range

logger = logging.getLogger(__name__)

MODULE_NAME = "linear_interpolation"
DEFAULT_RANGE = Range(min_input=0.0, max_input=100.0, min_output=0.0, max_output=1000.0)


class RangeSettings:
    def __init__(self, store: KeyValueStore, key: Optional[str] = None):
        self.store = store
        self.key = key or storage_key(MODULE_NAME)
        self._range = self._load()

    def _load(self) -> Range:
        raw = self.store.load(self.key, None)
        if raw is None:
            return DEFAULT_RANGE
        try:
            range_ = Range.from_dict(raw)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Stored range under %s is malformed, using default: %s", self.key, e)
            return DEFAULT_RANGE
        if not validate_range(range_).is_valid:
            logger.warning("Stored range under %s is invalid, using default", self.key)
            return DEFAULT_RANGE
        return range_

    @property
    def range(self) -> Range:
        return self._range

    def update_range(self, new_range: Range) -> Result[Range]:
        validation = validate_range(new_range)
        if not validation.is_valid:
            return Result.failure(validation.as_error())
        self._range = new_range
        persisted = self.store.store(self.key, new_range.to_dict())
        if not persisted:
            logger.error("Could not save interpolation range under %s", self.key)
        return Result(value=new_range, persisted=persisted)

    def calculate(self, value: float) -> float:
        """Input -> output, clamped to the configured range."""
        return interpolate(value, self._range)

    def reverse_calculate(self, output_value: float) -> float:
        """Output -> input, clamped to the configured range."""
        return reverse_interpolate(output_value, self._range)
