"""Health data connectors — abstraction layer over the platform health store."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from smoothwalker.domains.mobility.connectors.statistics import (
        StatisticsCollection,
        StatisticsOptions,
    )
    from smoothwalker.domains.mobility.connectors.types import (
        AnchoredObjectQuery,
        DeletedObject,
        QuantitySample,
        QuantityType,
        QueryAnchor,
        SamplePredicate,
    )
    from smoothwalker.domains.mobility.date_buckets import DateStep


@runtime_checkable
class HealthStore(Protocol):
    """Abstract interface for the health data store.

    Controllers call these methods without knowing whether samples come
    from a device store, an Apple Health export or mock generators.
    """

    async def request_access(self, identifiers: Sequence[str]) -> bool:
        """Ask for read access to ``identifiers``; True when granted."""
        ...

    def execute(self, query: AnchoredObjectQuery) -> None:
        """Start a long-running anchored query."""
        ...

    def stop(self, query: AnchoredObjectQuery) -> None:
        """Stop a running query; no further handler calls are made."""
        ...

    async def fetch_statistics(
        self,
        identifier: str,
        predicate: SamplePredicate | None,
        options: StatisticsOptions,
        anchor_date: datetime,
        interval: DateStep,
    ) -> StatisticsCollection:
        """Run a one-shot statistics collection query.

        Raises:
            QueryError: If the query fails.
        """
        ...


@runtime_checkable
class AnchorStore(Protocol):
    """Keyed change-tracking positions, one per sample type."""

    def get_anchor(self, sample_type: QuantityType) -> QueryAnchor | None:
        ...

    def update_anchor(
        self, anchor: QueryAnchor | None, query: AnchoredObjectQuery
    ) -> None:
        ...


@runtime_checkable
class PushSink(Protocol):
    """Fire-and-forget destination for changed samples."""

    def push(
        self,
        added: Sequence[QuantitySample] | None,
        deleted: Sequence[DeletedObject] | None,
    ) -> None:
        ...
