"""Pest risk assessment from daily temperature and moisture averages.

Insects and fungi thrive between roughly 22 and 32°C with moist soil. Risk grows
with the number of consecutive days that meet those conditions.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from itertools import groupby
from typing import Iterable, List, Optional, Protocol

from .exceptions import InvalidArgumentException
from .models import PestRiskAssessment, PestRiskLevel

logger = logging.getLogger(__name__)


class ClimateReading(Protocol):

    @property
    def soil_moisture(self) -> float: ...

    @property
    def air_temperature(self) -> float: ...

    @property
    def collected_at(self) -> datetime: ...


@dataclass(frozen=True)
class DailyConditions:
    day: date
    average_temperature: float
    average_moisture: float
    favorable: bool


def daily_conditions(
    ordered: List[ClimateReading],
    min_temperature: float,
    max_temperature: float,
    min_moisture: float,
) -> List[DailyConditions]:
    days = []
    for day, readings in groupby(ordered, key=lambda m: m.collected_at.date()):
        readings = list(readings)
        temperature = sum(m.air_temperature for m in readings) / len(readings)
        moisture = sum(m.soil_moisture for m in readings) / len(readings)
        days.append(DailyConditions(
            day=day,
            average_temperature=temperature,
            average_moisture=moisture,
            favorable=min_temperature <= temperature <= max_temperature and moisture >= min_moisture,
        ))
    return days


def longest_favorable_streak(days: List[DailyConditions]) -> int:
    longest = current = 0
    for day in days:
        current = current + 1 if day.favorable else 0
        longest = max(longest, current)
    return longest


def risk_level(consecutive_days: int, average_temperature: float, average_moisture: float, min_moisture: float) -> PestRiskLevel:
    score = 0

    if consecutive_days >= 10:
        score += 4
    elif consecutive_days >= 7:
        score += 3
    elif consecutive_days >= 5:
        score += 2

    if 25 <= average_temperature <= 28:
        score += 3
    elif 22 <= average_temperature <= 32:
        score += 2
    elif 20 <= average_temperature <= 35:
        score += 1

    if average_moisture >= 70:
        score += 3
    elif average_moisture >= min_moisture:
        score += 2

    if score >= 9:
        return PestRiskLevel.CRITICAL
    if score >= 7:
        return PestRiskLevel.HIGH
    if score >= 5:
        return PestRiskLevel.MEDIUM
    if score >= 3:
        return PestRiskLevel.LOW
    return PestRiskLevel.MINIMAL


def risk_factors(
    days: int,
    temperature: float,
    moisture: float,
    min_temperature: float,
    max_temperature: float,
) -> str:
    factors = []
    if days >= 7:
        factors.append(f"{days} consecutive days with favorable conditions")

    if 25 <= temperature <= 28:
        factors.append(f"ideal temperature for pests ({temperature:.1f}°C)")
    elif min_temperature <= temperature <= max_temperature:
        factors.append(f"favorable temperature ({temperature:.1f}°C)")

    if moisture >= 70:
        factors.append(f"very high moisture ({moisture:.1f}%)")
    elif moisture >= 60:
        factors.append(f"high moisture ({moisture:.1f}%)")

    return ", ".join(factors)


class PestRiskAnalyzer:

    def analyze(
        self,
        measurements: Iterable[ClimateReading],
        min_temperature: float,
        max_temperature: float,
        min_moisture: float,
        minimum_days: int,
    ) -> Optional[PestRiskAssessment]:
        """Assess pest risk, or return None when fewer than two favorable days line up.

        A streak shorter than ``minimum_days`` but of at least two days is
        reported as LOW risk.
        """
        if min_temperature > max_temperature:
            raise InvalidArgumentException("min_temperature", min_temperature, "must not exceed max_temperature")
        if minimum_days <= 0:
            raise InvalidArgumentException("minimum_days", minimum_days, "must be greater than 0")

        ordered = sorted(measurements, key=lambda m: m.collected_at)
        if len(ordered) < 2:
            return None

        days = daily_conditions(ordered, min_temperature, max_temperature, min_moisture)
        streak = longest_favorable_streak(days)
        average_temperature = sum(d.average_temperature for d in days) / len(days)
        average_moisture = sum(d.average_moisture for d in days) / len(days)

        if streak < minimum_days:
            if streak < 2:
                return None
            return PestRiskAssessment(
                risk_level=PestRiskLevel.LOW,
                favorable_days_count=streak,
                average_temperature=average_temperature,
                average_moisture=average_moisture,
                risk_factors=f"Only {streak} consecutive days with favorable conditions",
            )

        level = risk_level(streak, average_temperature, average_moisture, min_moisture)
        logger.debug(f"Pest risk {level.value}: {streak} favorable days over {len(days)} days")
        return PestRiskAssessment(
            risk_level=level,
            favorable_days_count=streak,
            average_temperature=average_temperature,
            average_moisture=average_moisture,
            risk_factors=risk_factors(streak, average_temperature, average_moisture, min_temperature, max_temperature),
        )
