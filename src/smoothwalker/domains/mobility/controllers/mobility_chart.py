"""Mobility chart controller.

Requests authorization, keeps one anchored change subscription per tracked
sample type, and aggregates statistics into day/week/month series for the
chart view. The view supplies ``reload_data``; it is always called on the
controller's foreground event loop, never on a store callback thread.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from smoothwalker.domains.mobility.connectors import AnchorStore, HealthStore, PushSink
from smoothwalker.domains.mobility.connectors.statistics import (
    StatisticsCollection,
    StatisticsOptions,
)
from smoothwalker.domains.mobility.connectors.types import (
    NO_LIMIT,
    AnchoredObjectQuery,
    DeletedObject,
    HealthStoreError,
    QuantitySample,
    QuantityType,
    QueryAnchor,
    SamplePredicate,
)
from smoothwalker.domains.mobility.data_types import (
    MOBILITY_CONTENT,
    WALKING_SPEED,
    get_sample_type,
    get_statistics_options,
    get_statistics_quantity,
    preferred_unit,
)
from smoothwalker.domains.mobility.date_buckets import get_start_date
from smoothwalker.domains.mobility.models import (
    ControllerState,
    DataInterval,
    HealthDataTypeValue,
    SeriesKey,
    TrackedSeries,
)
from smoothwalker.domains.mobility.units import IncompatibleUnitError

logger = logging.getLogger(__name__)

SUBSCRIPTION_LOOKBACK = timedelta(days=7)


def _local_now() -> datetime:
    return datetime.now().astimezone()


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------

def create_predicate(start_date: datetime, end_date: datetime) -> SamplePredicate:
    return SamplePredicate(start_date=start_date, end_date=end_date)


def create_last_week_predicate(now: datetime) -> SamplePredicate:
    """Samples from the last seven days onwards.

    Open-ended so samples recorded after the subscription starts still
    reach its update handler.
    """
    return SamplePredicate(start_date=now - SUBSCRIPTION_LOOKBACK)


def aggregate_statistics(
    collection: StatisticsCollection,
    identifier: str,
    options: StatisticsOptions,
    start_date: datetime,
    end_date: datetime,
) -> list[HealthDataTypeValue]:
    """Map every bucket of ``collection`` to a value in the preferred unit.

    Buckets with no statistic, or whose unit cannot be resolved, become 0.0
    so the series always has one value per bucket.
    """
    unit = preferred_unit(identifier)
    values: list[HealthDataTypeValue] = []
    for statistics in collection.enumerate_statistics(start_date, end_date):
        value = 0.0
        try:
            quantity = get_statistics_quantity(statistics, options)
            if unit is not None and quantity is not None:
                value = quantity.double_value(unit)
        except IncompatibleUnitError as exc:
            logger.warning("Using 0 for %s bucket at %s: %s", identifier, statistics.start_date, exc)
        values.append(HealthDataTypeValue(statistics.start_date, statistics.end_date, value))
    return values


def _make_anchored_query_handler(
    controller_ref: weakref.ref[MobilityChartController],
    sample_type: QuantityType,
):
    """Build the handler used for both initial results and later updates."""

    def handler(
        query: AnchoredObjectQuery,
        added: Sequence[QuantitySample] | None,
        deleted: Sequence[DeletedObject] | None,
        new_anchor: QueryAnchor | None,
        error: HealthStoreError | None,
    ) -> None:
        controller = controller_ref()
        if controller is None or controller.torn_down:
            return

        if error is not None:
            logger.error(
                "Anchored query with identifier %s failed: %s",
                sample_type.identifier, error,
            )
            return

        logger.info(
            "Anchored query for %s returned %d added and %d deleted sample(s)",
            sample_type.identifier, len(added or ()), len(deleted or ()),
        )
        controller.anchor_store.update_anchor(new_anchor, query)
        controller.push_sink.push(added, deleted)
        controller._call_on_foreground(controller._record_background_update)

    return handler


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class MobilityChartController:
    """Chart data for mobility metrics.

    Usage::

        controller = MobilityChartController(store, anchors, sink, speed_mode=True)
        controller.load()
        await controller.view_will_appear()
        await controller.wait_until_ready()
        for series in controller.data:
            ...

    Every (data type, interval) entry is queried independently; a failed
    query is logged and leaves its entry untouched.
    """

    def __init__(
        self,
        store: HealthStore,
        anchor_store: AnchorStore,
        push_sink: PushSink,
        *,
        speed_mode: bool = False,
        reload_data: Callable[[], None] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        first_weekday: int = 0,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.store = store
        self.anchor_store = anchor_store
        self.push_sink = push_sink
        self.speed_mode = speed_mode
        self.first_weekday = first_weekday

        self.data: list[TrackedSeries] = []
        self.queries: list[AnchoredObjectQuery] = []
        self.state = ControllerState.UNLOADED
        self.torn_down = False
        self.reload_count = 0
        self.background_update_count = 0

        self._reload_data = reload_data
        self._loop = loop
        self._clock = clock
        self._results_lock = asyncio.Lock()
        self._reloaded = asyncio.Event()

    # ------------------------------------------------------------------
    # Life cycle
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Choose the tracked series."""
        if self.speed_mode:
            self.data = [
                TrackedSeries(WALKING_SPEED, [], interval)
                for interval in (DataInterval.DAY, DataInterval.WEEK, DataInterval.MONTH)
            ]
        else:
            self.data = [TrackedSeries(identifier, [], DataInterval.DAY) for identifier in MOBILITY_CONTENT]

    @property
    def tracked_identifiers(self) -> list[str]:
        return list(dict.fromkeys(series.data_type_identifier for series in self.data))

    async def view_will_appear(self) -> None:
        """Authorize, subscribe and run the first aggregation.

        Runs at most once per controller: later calls return immediately,
        including after an authorization failure.
        """
        if self.queries or self.state is not ControllerState.UNLOADED:
            return
        if not self.data:
            self.load()
        self._capture_loop()

        self.state = ControllerState.AWAITING_AUTHORIZATION
        identifiers = self.tracked_identifiers
        try:
            success = await self.store.request_access(identifiers)
        except HealthStoreError as exc:
            logger.error("Health data authorization request failed: %s", exc)
            return

        if not success:
            logger.warning("Health data access not granted for %s", ", ".join(identifiers))
            return

        self.set_up_background_observers()
        await self.load_data()

    def teardown(self) -> None:
        """Stop all subscriptions; pending handlers become no-ops."""
        self.torn_down = True
        for query in self.queries:
            self.store.stop(query)
        logger.info("Stopped %d anchored query(ies)", len(self.queries))

    async def wait_until_ready(self, timeout: float | None = None) -> None:
        """Wait for the reload signal of the current aggregation cycle."""
        await asyncio.wait_for(self._reloaded.wait(), timeout)

    # ------------------------------------------------------------------
    # Data functions
    # ------------------------------------------------------------------

    async def load_data(self) -> None:
        """Re-run the aggregation and signal a reload when it finishes."""
        self._capture_loop()
        self._reloaded.clear()
        self.state = ControllerState.LOADING
        await self.perform_query(lambda: self._call_on_foreground(self._on_reload))

    def set_up_background_observers(self) -> None:
        sample_types = [get_sample_type(i) for i in self.tracked_identifiers]
        for sample_type in sample_types:
            if sample_type is None:
                continue
            self.create_anchored_object_query(sample_type)

    def create_anchored_object_query(self, sample_type: QuantityType) -> AnchoredObjectQuery:
        predicate = create_last_week_predicate(self._clock())
        anchor = self.anchor_store.get_anchor(sample_type)

        handler = _make_anchored_query_handler(weakref.ref(self), sample_type)
        query = AnchoredObjectQuery(
            sample_type=sample_type,
            predicate=predicate,
            anchor=anchor,
            limit=NO_LIMIT,
            results_handler=handler,
            update_handler=handler,
        )
        self.queries.append(query)
        self.store.execute(query)
        return query

    async def perform_query(self, completion: Callable[[], None]) -> None:
        """Aggregate every tracked entry, then call ``completion`` once."""
        now = self._clock()
        tasks = [
            asyncio.ensure_future(self._query_series(series.key, now))
            for series in self.data
        ]
        for next_result in asyncio.as_completed(tasks):
            key, values = await next_result
            if values is not None:
                await self._apply_values(key, values)
        completion()

    async def _query_series(
        self, key: SeriesKey, now: datetime
    ) -> tuple[SeriesKey, list[HealthDataTypeValue] | None]:
        identifier, interval = key
        step = interval.date_interval()
        start_date = get_start_date(step, now, self.first_weekday)
        end_date = now
        predicate = create_predicate(start_date, end_date)
        options = get_statistics_options(identifier)

        try:
            collection = await self.store.fetch_statistics(
                identifier, predicate, options, start_date, step
            )
            values = aggregate_statistics(collection, identifier, options, start_date, end_date)
        except HealthStoreError as exc:
            logger.error(
                "Statistics query for %s (%s) failed: %s",
                identifier, interval.label(), exc,
            )
            return key, None
        except Exception:
            logger.exception(
                "Aggregation for %s (%s) failed; keeping previous values",
                identifier, interval.label(),
            )
            return key, None

        return key, values

    async def _apply_values(self, key: SeriesKey, values: list[HealthDataTypeValue]) -> None:
        async with self._results_lock:
            for series in self.data:
                if series.key == key:
                    series.values = values
                    return
        logger.warning("Dropping results for untracked series %s/%s", key[0], key[1].value)

    # ------------------------------------------------------------------
    # Foreground hand-off
    # ------------------------------------------------------------------

    def _capture_loop(self) -> None:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.get_running_loop()

    def _call_on_foreground(self, callback: Callable[[], None]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            callback()
            return
        loop.call_soon_threadsafe(callback)

    def _on_reload(self) -> None:
        if self.torn_down:
            return
        self.state = ControllerState.READY
        self.reload_count += 1
        self._reloaded.set()
        if self._reload_data is not None:
            self._reload_data()

    def _record_background_update(self) -> None:
        if self.torn_down:
            return
        self.background_update_count += 1
        if self.state is not ControllerState.LOADING:
            self.state = ControllerState.READY
