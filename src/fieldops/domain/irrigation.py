"""Irrigation recommendations from soil moisture deficit and trend."""

import logging
from typing import Iterable, List, Optional

from .drought import SoilMoistureReading
from .exceptions import InvalidArgumentException
from .models import IrrigationRecommendation, IrrigationUrgency

logger = logging.getLogger(__name__)

TREND_WINDOW = 10


def moisture_trend(ordered: List[SoilMoistureReading]) -> float:
    """Average of the newest readings minus average of the oldest ones.

    Negative means the soil is drying out.
    """
    if len(ordered) < 2:
        return 0.0
    size = min(TREND_WINDOW, len(ordered) // 2)
    recent = sum(m.soil_moisture for m in ordered[-size:]) / size
    older = sum(m.soil_moisture for m in ordered[:size]) / size
    return recent - older


def irrigation_urgency(
    current_moisture: float,
    critical_moisture: float,
    deficit: float,
    trend: float,
) -> IrrigationUrgency:
    if current_moisture <= critical_moisture:
        return IrrigationUrgency.CRITICAL
    if deficit > 20 or (deficit > 10 and trend < -3):
        return IrrigationUrgency.HIGH
    if deficit > 10 or (deficit > 5 and trend < -2):
        return IrrigationUrgency.MEDIUM
    if deficit > 5:
        return IrrigationUrgency.LOW
    return IrrigationUrgency.NONE


def _trend_text(trend: float) -> str:
    if trend < -3:
        return "falling sharply"
    if trend < -1:
        return "falling"
    if trend > 1:
        return "recovering"
    return "stable"


def _reason(deficit: float, trend: float, urgency: IrrigationUrgency) -> str:
    trend_text = _trend_text(trend)
    if urgency is IrrigationUrgency.CRITICAL:
        return f"Critical moisture with a {deficit:.1f}% deficit, trend {trend_text}"
    if urgency is IrrigationUrgency.HIGH:
        return f"High water deficit ({deficit:.1f}%), trend {trend_text}"
    if urgency is IrrigationUrgency.MEDIUM:
        return f"Moderate deficit ({deficit:.1f}%), trend {trend_text}"
    return f"Slight deficit ({deficit:.1f}%), monitor over the next 48h"


class IrrigationAdvisor:
    """Recommends how much water a field needs and how soon."""

    def analyze(
        self,
        measurements: Iterable[SoilMoistureReading],
        optimal_moisture: float,
        critical_moisture: float,
        soil_capacity: float,
    ) -> Optional[IrrigationRecommendation]:
        if soil_capacity <= 0:
            raise InvalidArgumentException("soil_capacity", soil_capacity, "must be greater than 0")
        if critical_moisture > optimal_moisture:
            raise InvalidArgumentException(
                "critical_moisture", critical_moisture, "must not exceed the optimal moisture"
            )

        ordered = sorted(measurements, key=lambda m: m.collected_at)
        if len(ordered) < 2:
            return None

        current = ordered[-1]
        if current.soil_moisture >= optimal_moisture:
            return None

        deficit = optimal_moisture - current.soil_moisture
        trend = moisture_trend(ordered)
        urgency = irrigation_urgency(current.soil_moisture, critical_moisture, deficit, trend)
        if urgency is IrrigationUrgency.NONE:
            return None

        water_amount = deficit / 100 * soil_capacity
        logger.debug(f"Irrigation {urgency.value}: deficit {deficit:.1f}%, trend {trend:+.1f}, {water_amount:.1f} mm")
        return IrrigationRecommendation(
            urgency=urgency,
            water_amount_mm=water_amount,
            current_moisture=current.soil_moisture,
            target_moisture=optimal_moisture,
            reason=_reason(deficit, trend, urgency),
        )
