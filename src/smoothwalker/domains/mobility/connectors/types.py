"""Value types shared by health stores: samples, predicates and queries."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from smoothwalker.domains.mobility.units import Quantity, Unit

# Opaque change-tracking position. Stores hand these out; callers only pass
# them back.
QueryAnchor = int

NO_LIMIT = 0


class HealthStoreError(Exception):
    """Base class for failures reported by a health store."""


class AuthorizationError(HealthStoreError):
    """Raised when the store cannot process an authorization request."""


class QueryError(HealthStoreError):
    """Raised (or delivered to a handler) when a query fails."""


class AggregationStyle(Enum):
    CUMULATIVE = "cumulative"
    DISCRETE = "discrete"


@dataclass(frozen=True)
class QuantityType:
    """A sample type: identifier plus how its samples combine."""

    identifier: str
    aggregation_style: AggregationStyle
    default_unit: Unit

    @property
    def is_cumulative(self) -> bool:
        return self.aggregation_style is AggregationStyle.CUMULATIVE


@dataclass(frozen=True)
class QuantitySample:
    """A single measurement recorded by a device or app."""

    sample_type: QuantityType
    quantity: Quantity
    start_date: datetime
    end_date: datetime
    source_name: str = ""
    uuid: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_payload(self) -> dict:
        return {
            "uuid": self.uuid,
            "type": self.sample_type.identifier,
            "value": self.quantity.value,
            "unit": self.quantity.unit.symbol,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "source_name": self.source_name,
        }


@dataclass(frozen=True)
class DeletedObject:
    """Tombstone for a sample removed from the store."""

    uuid: str
    sample_type: QuantityType


@dataclass(frozen=True)
class SamplePredicate:
    """Matches samples that overlap ``[start_date, end_date)``."""

    start_date: datetime | None = None
    end_date: datetime | None = None

    def matches(self, sample: QuantitySample) -> bool:
        if self.start_date is not None and sample.end_date < self.start_date:
            return False
        if self.end_date is not None and sample.start_date >= self.end_date:
            return False
        return True


# (query, added_samples, deleted_objects, new_anchor, error)
AnchoredQueryHandler = Callable[
    ["AnchoredObjectQuery", Optional[Sequence[QuantitySample]],
     Optional[Sequence[DeletedObject]], Optional[QueryAnchor],
     Optional[HealthStoreError]],
    None,
]


@dataclass(eq=False)
class AnchoredObjectQuery:
    """A long-running change subscription for one sample type.

    The store delivers exactly one initial result to ``results_handler``
    and, while the query is running, every later change to
    ``update_handler``.
    """

    sample_type: QuantityType
    predicate: SamplePredicate | None
    anchor: QueryAnchor | None
    limit: int = NO_LIMIT
    results_handler: AnchoredQueryHandler | None = None
    update_handler: AnchoredQueryHandler | None = None
