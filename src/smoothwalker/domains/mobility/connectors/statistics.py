"""Bucketed statistics over quantity samples.

A ``StatisticsCollection`` partitions samples into calendar buckets
anchored at ``anchor_date``. A sample belongs to the bucket that contains
its start date. Enumerating a range yields every bucket in it, including
buckets with no samples, whose quantity accessors return ``None``.
"""

from __future__ import annotations

import statistics as stats
from collections import defaultdict
from collections.abc import Iterator, Sequence
from datetime import datetime
from enum import Flag, auto

from smoothwalker.domains.mobility.connectors.types import QuantitySample, QuantityType
from smoothwalker.domains.mobility.date_buckets import DateStep, add_step, iter_buckets
from smoothwalker.domains.mobility.units import Quantity


class StatisticsOptions(Flag):
    NONE = 0
    CUMULATIVE_SUM = auto()
    DISCRETE_AVERAGE = auto()
    DISCRETE_MIN = auto()
    DISCRETE_MAX = auto()
    MOST_RECENT = auto()


class Statistics:
    """Aggregates for the samples of one bucket."""

    def __init__(
        self,
        quantity_type: QuantityType,
        start_date: datetime,
        end_date: datetime,
        samples: Sequence[QuantitySample] = (),
    ) -> None:
        self.quantity_type = quantity_type
        self.start_date = start_date
        self.end_date = end_date
        self._samples = list(samples)

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    def _values(self) -> list[float]:
        unit = self.quantity_type.default_unit
        return [s.quantity.double_value(unit) for s in self._samples]

    def _quantity(self, value: float) -> Quantity:
        return Quantity(value, self.quantity_type.default_unit)

    def sum_quantity(self) -> Quantity | None:
        if not self._samples:
            return None
        return self._quantity(sum(self._values()))

    def average_quantity(self) -> Quantity | None:
        if not self._samples:
            return None
        return self._quantity(stats.fmean(self._values()))

    def minimum_quantity(self) -> Quantity | None:
        if not self._samples:
            return None
        return self._quantity(min(self._values()))

    def maximum_quantity(self) -> Quantity | None:
        if not self._samples:
            return None
        return self._quantity(max(self._values()))

    def most_recent_quantity(self) -> Quantity | None:
        if not self._samples:
            return None
        latest = max(self._samples, key=lambda s: s.end_date)
        return latest.quantity

    def __repr__(self) -> str:
        return (
            f"Statistics({self.quantity_type.identifier}, "
            f"{self.start_date.isoformat()}..{self.end_date.isoformat()}, "
            f"n={self.sample_count})"
        )


class StatisticsCollection:
    """Statistics for one quantity type, bucketed by a calendar step."""

    def __init__(
        self,
        quantity_type: QuantityType,
        samples: Sequence[QuantitySample],
        anchor_date: datetime,
        interval: DateStep,
    ) -> None:
        self.quantity_type = quantity_type
        self.anchor_date = anchor_date
        self.interval = interval
        self._samples = sorted(samples, key=lambda s: s.start_date)

    def enumerate_statistics(
        self, start: datetime, end: datetime
    ) -> Iterator[Statistics]:
        """Yield one ``Statistics`` per bucket between ``start`` and ``end``."""
        buckets = list(iter_buckets(start, end, self.interval, self.anchor_date))
        grouped: dict[int, list[QuantitySample]] = defaultdict(list)
        first_start = buckets[0][0]
        last_end = buckets[-1][1]

        index = 0
        for sample in self._samples:
            if sample.start_date < first_start or sample.start_date >= last_end:
                continue
            while sample.start_date >= buckets[index][1]:
                index += 1
            grouped[index].append(sample)

        for i, (bucket_start, bucket_end) in enumerate(buckets):
            yield Statistics(self.quantity_type, bucket_start, bucket_end, grouped.get(i, ()))

    def statistics(self) -> list[Statistics]:
        """All non-empty buckets spanning the collection's samples."""
        if not self._samples:
            return []
        first = self._samples[0].start_date
        end = add_step(self._samples[-1].start_date, self.interval)
        return [s for s in self.enumerate_statistics(first, end) if s.sample_count]
