"""Heat stress analysis over a field's recent air temperatures."""

import logging
from datetime import datetime
from typing import Iterable, Optional, Protocol

from .exceptions import InvalidArgumentException
from .models import HeatStressCondition, HeatStressLevel
from .types import hours_between

logger = logging.getLogger(__name__)


class AirTemperatureReading(Protocol):

    @property
    def air_temperature(self) -> float: ...

    @property
    def collected_at(self) -> datetime: ...


def stress_level(average_temperature: float) -> HeatStressLevel:
    if average_temperature >= 40:
        return HeatStressLevel.SEVERE
    if average_temperature >= 37:
        return HeatStressLevel.HIGH
    if average_temperature >= 35:
        return HeatStressLevel.MODERATE
    return HeatStressLevel.NONE


class HeatStressAnalyzer:
    """Detects sustained heat that harms photosynthesis and crop development.

    Works like drought detection with the comparison flipped: the latest reading
    must be at or above ``critical_temperature`` and the trailing run of such
    readings must last at least ``minimum_hours``.
    """

    def analyze(
        self,
        measurements: Iterable[AirTemperatureReading],
        critical_temperature: float,
        minimum_hours: int,
    ) -> Optional[HeatStressCondition]:
        if minimum_hours <= 0:
            raise InvalidArgumentException("minimum_hours", minimum_hours, "must be greater than 0")

        ordered = sorted(measurements, key=lambda m: m.collected_at)
        if len(ordered) < 2:
            return None

        current = ordered[-1]
        if current.air_temperature < critical_temperature:
            return None

        run = []
        for measurement in ordered:
            if measurement.air_temperature >= critical_temperature:
                run.append(measurement.air_temperature)
            else:
                run = []

        start_time = ordered[-len(run)].collected_at
        hours = hours_between(start_time, current.collected_at)
        if hours < minimum_hours:
            return None

        average = sum(run) / len(run)
        logger.debug(f"Heat at or above {critical_temperature}°C for {hours:.1f}h (average {average:.1f}°C)")
        return HeatStressCondition(
            level=stress_level(average),
            average_temperature=average,
            peak_temperature=max(run),
            duration=current.collected_at - start_time,
            start_time=start_time,
        )
