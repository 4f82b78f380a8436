"""Mock mobility data generators for development and testing.

Mock data describes a moderately active adult whose activity varies by
weekday. Values are deterministic so charts are stable between
runs: weekdays are busier than weekends and every ninth day has no data.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from smoothwalker.domains.mobility.connectors.memory_store import InMemoryHealthStore
from smoothwalker.domains.mobility.connectors.types import QuantitySample
from smoothwalker.domains.mobility.data_types import (
    DISTANCE_WALKING_RUNNING,
    STEP_COUNT,
    WALKING_ASYMMETRY_PERCENTAGE,
    WALKING_DOUBLE_SUPPORT_PERCENTAGE,
    WALKING_SPEED,
    WALKING_STEP_LENGTH,
    get_sample_type,
)
from smoothwalker.domains.mobility.date_buckets import start_of_day
from smoothwalker.domains.mobility.units import Quantity

_WEEKDAY_STEPS = [8400, 9100, 7800, 8800, 9600, 11200, 5300]  # Mon..Sun
_STRIDE_M = 0.74
_SOURCE = "Mock iPhone"


def _sample(identifier: str, value: float, start: datetime, minutes: int) -> QuantitySample:
    sample_type = get_sample_type(identifier)
    return QuantitySample(
        sample_type=sample_type,
        quantity=Quantity(value, sample_type.default_unit),
        start_date=start,
        end_date=start + timedelta(minutes=minutes),
        source_name=_SOURCE,
    )


def get_mock_mobility_samples(now: datetime, days: int = 365) -> list[QuantitySample]:
    """Return ``days`` days of mobility samples ending at ``now``.

    Each day has a morning and an afternoon step/distance sample plus one
    walking-gait reading. Samples never start after ``now``.
    """
    samples: list[QuantitySample] = []
    today = start_of_day(now)
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        if offset % 9 == 4:
            continue  # phone left at home

        steps = _WEEKDAY_STEPS[day.weekday()] + (offset % 5) * 120
        morning = day + timedelta(hours=8)
        afternoon = day + timedelta(hours=16)
        for start, share in ((morning, 0.45), (afternoon, 0.55)):
            if start > now:
                continue
            part = round(steps * share)
            samples.append(_sample(STEP_COUNT, part, start, 60))
            samples.append(_sample(DISTANCE_WALKING_RUNNING, round(part * _STRIDE_M, 1), start, 60))

        gait_start = day + timedelta(hours=12)
        if gait_start > now:
            continue
        samples.append(_sample(WALKING_SPEED, 1.28 + (offset % 7) * 0.02, gait_start, 10))
        samples.append(_sample(WALKING_STEP_LENGTH, 71.0 + (offset % 4), gait_start, 10))
        samples.append(_sample(WALKING_ASYMMETRY_PERCENTAGE, 2.0 + (offset % 3) * 0.5, gait_start, 10))
        samples.append(_sample(WALKING_DOUBLE_SUPPORT_PERCENTAGE, 27.5 + (offset % 6) * 0.4, gait_start, 10))
    return samples


def seed_mock_mobility_data(
    store: InMemoryHealthStore, now: datetime, days: int = 365
) -> int:
    """Save mock samples into ``store``. Returns the number of samples."""
    samples = get_mock_mobility_samples(now, days)
    store.save(samples)
    return len(samples)
