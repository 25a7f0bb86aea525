"""Drought detection over a field's soil moisture history."""

import logging
from datetime import datetime
from typing import Iterable, Optional, Protocol

from .models import DroughtCondition, DroughtCriteria
from .exceptions import InvalidArgumentException
from .types import hours_between

logger = logging.getLogger(__name__)


class SoilMoistureReading(Protocol):
    """Anything carrying a soil moisture value and a collection time."""

    @property
    def soil_moisture(self) -> float: ...

    @property
    def collected_at(self) -> datetime: ...


class DroughtDetector:
    """Detects sustained low soil moisture.

    A drought exists when the latest reading is below the threshold and the
    trailing run of contiguous below-threshold readings spans at least the
    minimum duration. Any reading at or above the threshold breaks the run.
    The history is expected to already contain the current reading.
    """

    def detect(
        self,
        measurements: Iterable[SoilMoistureReading],
        threshold: float,
        min_duration_hours: int,
    ) -> Optional[DroughtCondition]:
        if threshold < 0 or threshold > 100:
            raise InvalidArgumentException("threshold", threshold, "must be between 0 and 100")
        if min_duration_hours <= 0:
            raise InvalidArgumentException("min_duration_hours", min_duration_hours, "must be greater than 0")

        ordered = sorted(measurements, key=lambda m: m.collected_at)
        if len(ordered) < 2:
            return None

        current = ordered[-1]
        if current.soil_moisture >= threshold:
            return None

        run_start: Optional[datetime] = None
        for measurement in ordered:
            if measurement.soil_moisture < threshold:
                if run_start is None:
                    run_start = measurement.collected_at
            else:
                run_start = None

        if run_start is None:
            return None

        hours = hours_between(run_start, current.collected_at)
        if hours < min_duration_hours:
            return None

        logger.debug(
            f"Low soil moisture below {threshold}% since {run_start.isoformat()} "
            f"({hours:.1f}h)"
        )
        return DroughtCondition(start_time=run_start, duration=current.collected_at - run_start)

    def detect_with_criteria(
        self,
        measurements: Iterable[SoilMoistureReading],
        criteria: DroughtCriteria,
    ) -> Optional[DroughtCondition]:
        criteria.validate_criteria()
        return self.detect(measurements, criteria.threshold, criteria.minimum_duration_hours)
