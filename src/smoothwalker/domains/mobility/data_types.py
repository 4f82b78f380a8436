"""Mobility data type catalogue.

HealthKit quantity type mappings:
- HKQuantityTypeIdentifierStepCount → cumulative sum, count
- HKQuantityTypeIdentifierDistanceWalkingRunning → cumulative sum, meters
- HKQuantityTypeIdentifierWalkingSpeed → discrete average, meters/second
- HKQuantityTypeIdentifierWalkingStepLength → discrete average, centimeters
- HKQuantityTypeIdentifierSixMinuteWalkTestDistance → discrete average, meters
- HKQuantityTypeIdentifierWalkingAsymmetryPercentage → discrete average, %
- HKQuantityTypeIdentifierWalkingDoubleSupportPercentage → discrete average, %
"""

from __future__ import annotations

from smoothwalker.domains.mobility.connectors.statistics import (
    Statistics,
    StatisticsOptions,
)
from smoothwalker.domains.mobility.connectors.types import AggregationStyle, QuantityType
from smoothwalker.domains.mobility.units import (
    CENTIMETER,
    COUNT,
    METER,
    METERS_PER_SECOND,
    PERCENT,
    Quantity,
    Unit,
)

STEP_COUNT = "HKQuantityTypeIdentifierStepCount"
DISTANCE_WALKING_RUNNING = "HKQuantityTypeIdentifierDistanceWalkingRunning"
WALKING_SPEED = "HKQuantityTypeIdentifierWalkingSpeed"
WALKING_STEP_LENGTH = "HKQuantityTypeIdentifierWalkingStepLength"
SIX_MINUTE_WALK_TEST_DISTANCE = "HKQuantityTypeIdentifierSixMinuteWalkTestDistance"
WALKING_ASYMMETRY_PERCENTAGE = "HKQuantityTypeIdentifierWalkingAsymmetryPercentage"
WALKING_DOUBLE_SUPPORT_PERCENTAGE = "HKQuantityTypeIdentifierWalkingDoubleSupportPercentage"

_CUMULATIVE = AggregationStyle.CUMULATIVE
_DISCRETE = AggregationStyle.DISCRETE

_QUANTITY_TYPES: dict[str, QuantityType] = {
    t.identifier: t
    for t in (
        QuantityType(STEP_COUNT, _CUMULATIVE, COUNT),
        QuantityType(DISTANCE_WALKING_RUNNING, _CUMULATIVE, METER),
        QuantityType(WALKING_SPEED, _DISCRETE, METERS_PER_SECOND),
        QuantityType(WALKING_STEP_LENGTH, _DISCRETE, CENTIMETER),
        QuantityType(SIX_MINUTE_WALK_TEST_DISTANCE, _DISCRETE, METER),
        QuantityType(WALKING_ASYMMETRY_PERCENTAGE, _DISCRETE, PERCENT),
        QuantityType(WALKING_DOUBLE_SUPPORT_PERCENTAGE, _DISCRETE, PERCENT),
    )
}

# Chart units; kept separate from storage units so display can change
# without touching stored samples.
_PREFERRED_UNITS: dict[str, Unit] = {
    STEP_COUNT: COUNT,
    DISTANCE_WALKING_RUNNING: METER,
    WALKING_SPEED: METERS_PER_SECOND,
    WALKING_STEP_LENGTH: CENTIMETER,
    SIX_MINUTE_WALK_TEST_DISTANCE: METER,
    WALKING_ASYMMETRY_PERCENTAGE: PERCENT,
    WALKING_DOUBLE_SUPPORT_PERCENTAGE: PERCENT,
}

# Base metrics charted when not in speed mode
MOBILITY_CONTENT = [STEP_COUNT, DISTANCE_WALKING_RUNNING]


def supported_identifiers() -> list[str]:
    return list(_QUANTITY_TYPES)


def get_sample_type(identifier: str) -> QuantityType | None:
    """Return the sample type for ``identifier``, or None if unsupported."""
    return _QUANTITY_TYPES.get(identifier)


def preferred_unit(identifier: str) -> Unit | None:
    return _PREFERRED_UNITS.get(identifier)


def get_statistics_options(identifier: str) -> StatisticsOptions:
    """Sum cumulative counters, average discrete rates."""
    sample_type = get_sample_type(identifier)
    if sample_type is None:
        return StatisticsOptions.NONE
    if sample_type.is_cumulative:
        return StatisticsOptions.CUMULATIVE_SUM
    return StatisticsOptions.DISCRETE_AVERAGE


def get_statistics_quantity(
    statistics: Statistics, options: StatisticsOptions
) -> Quantity | None:
    """Pick the quantity matching ``options`` (first match wins)."""
    if StatisticsOptions.CUMULATIVE_SUM in options:
        return statistics.sum_quantity()
    if StatisticsOptions.DISCRETE_AVERAGE in options:
        return statistics.average_quantity()
    if StatisticsOptions.DISCRETE_MIN in options:
        return statistics.minimum_quantity()
    if StatisticsOptions.DISCRETE_MAX in options:
        return statistics.maximum_quantity()
    if StatisticsOptions.MOST_RECENT in options:
        return statistics.most_recent_quantity()
    return None
