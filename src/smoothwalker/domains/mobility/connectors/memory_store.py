"""In-memory health store.

Samples live in a sequence-numbered change log; an anchor is simply the
sequence number of the last change a query has seen. Query handlers run
inline by default, or on an injected executor that plays the part of the
platform's anonymous background queue.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor
from datetime import datetime

from smoothwalker.domains.mobility.connectors.statistics import (
    StatisticsCollection,
    StatisticsOptions,
)
from smoothwalker.domains.mobility.connectors.types import (
    NO_LIMIT,
    AnchoredObjectQuery,
    AnchoredQueryHandler,
    DeletedObject,
    HealthStoreError,
    QuantitySample,
    QueryAnchor,
    QueryError,
    SamplePredicate,
)
from smoothwalker.domains.mobility.data_types import get_sample_type
from smoothwalker.domains.mobility.date_buckets import DateStep

logger = logging.getLogger(__name__)


class InMemoryHealthStore:
    """HealthStore backed by process memory.

    Usage::

        store = InMemoryHealthStore()
        store.save([sample, ...])
        if await store.request_access([STEP_COUNT]):
            collection = await store.fetch_statistics(...)
    """

    def __init__(
        self,
        *,
        available: bool = True,
        grant_access: bool = True,
        executor: Executor | None = None,
    ) -> None:
        self._available = available
        self._grant_access = grant_access
        self._executor = executor
        self._lock = threading.RLock()

        self._sequence: QueryAnchor = 0
        self._samples: dict[str, tuple[QueryAnchor, QuantitySample]] = {}
        self._deleted: list[tuple[QueryAnchor, DeletedObject]] = []
        self._running: list[AnchoredObjectQuery] = []
        self._authorized: set[str] = set()

        self._query_errors: dict[str, HealthStoreError] = {}
        self._statistics_errors: dict[tuple[str, DateStep | None], HealthStoreError] = {}

        self.access_requests: list[tuple[str, ...]] = []
        self.executed_queries: list[AnchoredObjectQuery] = []

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def is_health_data_available(self) -> bool:
        return self._available

    def is_authorized(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._authorized

    async def request_access(self, identifiers: Sequence[str]) -> bool:
        """Grant read access to every identifier, or to none of them."""
        self.access_requests.append(tuple(identifiers))
        if not self._available:
            logger.warning("Health data is not available on this store")
            return False

        unknown = [i for i in identifiers if get_sample_type(i) is None]
        if unknown:
            logger.warning("Cannot authorize unknown data types: %s", ", ".join(unknown))
            return False

        if not self._grant_access:
            logger.info("Authorization denied for %s", ", ".join(identifiers))
            return False

        with self._lock:
            self._authorized.update(identifiers)
        logger.info("Authorization granted for %d data type(s)", len(identifiers))
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, samples: Iterable[QuantitySample]) -> QueryAnchor:
        """Add samples and notify running queries of their types.

        Returns:
            The store's sequence number after the write.
        """
        added: list[tuple[QueryAnchor, QuantitySample]] = []
        with self._lock:
            for sample in samples:
                self._sequence += 1
                self._samples[sample.uuid] = (self._sequence, sample)
                added.append((self._sequence, sample))
            current = self._sequence
            running = list(self._running)

        for query in running:
            matching = [
                s for _, s in added
                if s.sample_type == query.sample_type
                and (query.predicate is None or query.predicate.matches(s))
            ]
            if matching:
                self._deliver(query, query.update_handler, matching, [], current)
        return current

    def delete(self, uuids: Iterable[str]) -> QueryAnchor:
        """Remove samples by UUID and notify running queries of tombstones."""
        removed: list[DeletedObject] = []
        with self._lock:
            for sample_uuid in uuids:
                entry = self._samples.pop(sample_uuid, None)
                if entry is None:
                    continue
                self._sequence += 1
                tombstone = DeletedObject(sample_uuid, entry[1].sample_type)
                self._deleted.append((self._sequence, tombstone))
                removed.append(tombstone)
            current = self._sequence
            running = list(self._running)

        for query in running:
            matching = [d for d in removed if d.sample_type == query.sample_type]
            if matching:
                self._deliver(query, query.update_handler, [], matching, current)
        return current

    def samples_of(self, identifier: str) -> list[QuantitySample]:
        with self._lock:
            return [
                s for _, s in sorted(self._samples.values(), key=lambda e: e[0])
                if s.sample_type.identifier == identifier
            ]

    # ------------------------------------------------------------------
    # Anchored object queries
    # ------------------------------------------------------------------

    def execute(self, query: AnchoredObjectQuery) -> None:
        """Start ``query`` and deliver its initial results."""
        with self._lock:
            self._running.append(query)
            self.executed_queries.append(query)
            added, deleted, new_anchor = self._changes_since(query)
        logger.debug(
            "Executing anchored query for %s from anchor %s",
            query.sample_type.identifier, query.anchor,
        )
        self._deliver(query, query.results_handler, added, deleted, new_anchor)

    def stop(self, query: AnchoredObjectQuery) -> None:
        with self._lock:
            if query in self._running:
                self._running.remove(query)

    def running_queries(self) -> list[AnchoredObjectQuery]:
        with self._lock:
            return list(self._running)

    def _changes_since(
        self, query: AnchoredObjectQuery
    ) -> tuple[list[QuantitySample], list[DeletedObject], QueryAnchor]:
        anchor = query.anchor
        entries = sorted(
            (
                (seq, s) for seq, s in self._samples.values()
                if s.sample_type == query.sample_type
                and (anchor is None or seq > anchor)
                and (query.predicate is None or query.predicate.matches(s))
            ),
            key=lambda e: e[0],
        )
        new_anchor = self._sequence
        if query.limit != NO_LIMIT and len(entries) > query.limit:
            entries = entries[:query.limit]
            new_anchor = entries[-1][0]

        # Tombstones are only meaningful relative to a previous anchor.
        deleted: list[DeletedObject] = []
        if anchor is not None:
            deleted = [
                d for seq, d in self._deleted
                if d.sample_type == query.sample_type and anchor < seq <= new_anchor
            ]
        return [s for _, s in entries], deleted, new_anchor

    def _deliver(
        self,
        query: AnchoredObjectQuery,
        handler: AnchoredQueryHandler | None,
        added: Sequence[QuantitySample],
        deleted: Sequence[DeletedObject],
        new_anchor: QueryAnchor,
    ) -> None:
        if handler is None:
            return
        error = self._query_errors.get(query.sample_type.identifier)
        if error is not None:
            self._dispatch(handler, query, None, None, None, error)
        else:
            self._dispatch(handler, query, added, deleted, new_anchor, None)

    def _dispatch(self, handler: Callable[..., None], *args) -> None:
        if self._executor is not None:
            self._executor.submit(self._invoke, handler, *args)
        else:
            self._invoke(handler, *args)

    @staticmethod
    def _invoke(handler: Callable[..., None], *args) -> None:
        try:
            handler(*args)
        except Exception:
            logger.exception("Anchored query handler raised")

    # ------------------------------------------------------------------
    # Statistics collection queries
    # ------------------------------------------------------------------

    async def fetch_statistics(
        self,
        identifier: str,
        predicate: SamplePredicate | None,
        options: StatisticsOptions,
        anchor_date: datetime,
        interval: DateStep,
    ) -> StatisticsCollection:
        """Bucket the samples of ``identifier`` that match ``predicate``.

        Raises:
            QueryError: For unknown or unauthorized types, options that do
                not fit the type, or an injected failure.
        """
        await asyncio.sleep(0)

        error = (
            self._statistics_errors.get((identifier, interval))
            or self._statistics_errors.get((identifier, None))
        )
        if error is not None:
            raise error

        sample_type = get_sample_type(identifier)
        if sample_type is None:
            raise QueryError(f"Unknown quantity type: {identifier}")
        if not self.is_authorized(identifier):
            raise QueryError(f"Authorization not determined for {identifier}")
        if sample_type.is_cumulative and options & ~StatisticsOptions.CUMULATIVE_SUM:
            raise QueryError(f"Statistics options {options} invalid for cumulative {identifier}")
        if not sample_type.is_cumulative and StatisticsOptions.CUMULATIVE_SUM in options:
            raise QueryError(f"Cumulative sum invalid for discrete {identifier}")

        with self._lock:
            samples = [
                s for _, s in self._samples.values()
                if s.sample_type == sample_type
                and (predicate is None or predicate.matches(s))
            ]
        return StatisticsCollection(sample_type, samples, anchor_date, interval)

    # ------------------------------------------------------------------
    # Failure injection
    # ------------------------------------------------------------------

    def fail_queries_for(self, identifier: str, error: HealthStoreError | None = None) -> None:
        """Deliver ``error`` to every anchored-query handler for ``identifier``."""
        self._query_errors[identifier] = error or QueryError(
            f"Anchored query failed for {identifier}"
        )

    def fail_statistics_for(
        self,
        identifier: str,
        interval: DateStep | None = None,
        error: HealthStoreError | None = None,
    ) -> None:
        """Make statistics queries for ``identifier`` (optionally one interval) raise."""
        self._statistics_errors[(identifier, interval)] = error or QueryError(
            f"Statistics query failed for {identifier}"
        )

    def clear_failures(self) -> None:
        self._query_errors.clear()
        self._statistics_errors.clear()
