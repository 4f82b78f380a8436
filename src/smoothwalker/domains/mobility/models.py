"""Mobility chart data models: intervals, bucketed values and tracked series."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple

from smoothwalker.domains.mobility.date_buckets import DateStep


class DataInterval(Enum):
    """Time-bucket granularity for a chart series."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    def label(self) -> str:
        """Display label shown above the chart."""
        return _LABELS[self]

    def date_interval(self) -> DateStep:
        """Calendar step used to bucket a statistics query."""
        return _STEPS[self]


_LABELS = {
    DataInterval.DAY: "Daily",
    DataInterval.WEEK: "Weekly",
    DataInterval.MONTH: "Monthly",
}

_STEPS = {
    DataInterval.DAY: DateStep(days=1),
    DataInterval.WEEK: DateStep(weeks=1),
    DataInterval.MONTH: DateStep(months=1),
}


@dataclass(frozen=True)
class HealthDataTypeValue:
    """One bucketed aggregate for a chart."""

    start_date: datetime
    end_date: datetime
    value: float


class SeriesKey(NamedTuple):
    """Identity of a tracked series: one per (data type, interval) pair."""

    data_type_identifier: str
    interval: DataInterval


@dataclass
class TrackedSeries:
    """A chart series owned by the controller.

    ``values`` is replaced wholesale whenever an aggregation for this
    series completes.
    """

    data_type_identifier: str
    values: list[HealthDataTypeValue] = field(default_factory=list)
    interval: DataInterval = DataInterval.DAY

    @property
    def key(self) -> SeriesKey:
        return SeriesKey(self.data_type_identifier, self.interval)

    def as_dict(self) -> dict:
        return {
            "data_type": self.data_type_identifier,
            "interval": self.interval.value,
            "label": self.interval.label(),
            "values": [
                {
                    "start_date": v.start_date.isoformat(),
                    "end_date": v.end_date.isoformat(),
                    "value": v.value,
                }
                for v in self.values
            ],
        }


class ControllerState(Enum):
    """Lifecycle of a chart controller."""

    UNLOADED = "unloaded"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    LOADING = "loading"
    READY = "ready"
