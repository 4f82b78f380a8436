"""Calendar arithmetic for partitioning a date range into chart buckets.

All functions keep the ``tzinfo`` of the datetimes they are given; midnight
and week/month boundaries are computed in that timezone.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class DateStep:
    """A calendar step, e.g. one day, one week or one month."""

    days: int = 0
    weeks: int = 0
    months: int = 0

    def __post_init__(self) -> None:
        if self.days < 0 or self.weeks < 0 or self.months < 0:
            raise ValueError("DateStep components must be non-negative")
        if not (self.days or self.weeks or self.months):
            raise ValueError("DateStep must advance by at least one unit")


def _add_months(date: datetime, months: int) -> datetime:
    index = date.month - 1 + months
    year = date.year + index // 12
    month = index % 12 + 1
    day = min(date.day, calendar.monthrange(year, month)[1])
    return date.replace(year=year, month=month, day=day)


def add_step(date: datetime, step: DateStep, count: int = 1) -> datetime:
    """Advance ``date`` by ``count`` steps (negative counts go backwards).

    Month arithmetic clamps to the last day of the target month, so
    Jan 31 + 1 month is Feb 28 (or 29).
    """
    if step.months:
        date = _add_months(date, step.months * count)
    return date + timedelta(days=step.days * count, weeks=step.weeks * count)


def start_of_day(date: datetime) -> datetime:
    return date.replace(hour=0, minute=0, second=0, microsecond=0)


def align(date: datetime, step: DateStep, first_weekday: int = 0) -> datetime:
    """Floor ``date`` to the start of the calendar bucket that contains it.

    Args:
        date: Any datetime.
        step: The bucket size. Month steps align to the first of the month,
            week steps to ``first_weekday`` and day steps to midnight.
        first_weekday: 0 = Monday ... 6 = Sunday.
    """
    midnight = start_of_day(date)
    if step.months:
        return midnight.replace(day=1)
    if step.weeks:
        return midnight - timedelta(days=(midnight.weekday() - first_weekday) % 7)
    return midnight


def get_start_date(step: DateStep, now: datetime, first_weekday: int = 0) -> datetime:
    """Return the first bucket start of the lookback window for ``step``.

    * day steps look back one week (seven daily buckets including today),
    * week steps look back one calendar month,
    * month steps look back one year (twelve monthly buckets including
      the current month).
    """
    if step.months:
        return align(_add_months(now, -11), step)
    if step.weeks:
        return align(_add_months(now, -1), step, first_weekday)
    return start_of_day(now) - timedelta(days=6)


def iter_buckets(
    start: datetime,
    end: datetime,
    step: DateStep,
    anchor_date: datetime,
) -> Iterator[tuple[datetime, datetime]]:
    """Yield consecutive ``(bucket_start, bucket_end)`` pairs covering a range.

    Bucket boundaries sit at ``anchor_date + k * step`` for integer ``k``.
    The first bucket contains ``start``; iteration stops after the bucket
    that contains ``end``. At least one bucket is always yielded.
    """
    if end < start:
        raise ValueError("end must not precede start")

    # Locate the boundary index k with boundary(k) <= start < boundary(k + 1).
    # Each boundary is computed from the anchor to avoid month-clamp drift.
    k = 0
    if add_step(anchor_date, step, k) <= start:
        while add_step(anchor_date, step, k + 1) <= start:
            k += 1
    else:
        while add_step(anchor_date, step, k) > start:
            k -= 1

    bucket_start = add_step(anchor_date, step, k)
    while True:
        bucket_end = add_step(anchor_date, step, k + 1)
        yield bucket_start, bucket_end
        if bucket_end >= end:
            break
        k += 1
        bucket_start = bucket_end
