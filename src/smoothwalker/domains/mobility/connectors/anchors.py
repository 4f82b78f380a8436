"""Process-wide anchor storage for anchored object queries."""

from __future__ import annotations

import logging
import threading

from smoothwalker.domains.mobility.connectors.types import (
    AnchoredObjectQuery,
    QuantityType,
    QueryAnchor,
)

logger = logging.getLogger(__name__)


class InMemoryAnchorStore:
    """Keeps the latest anchor per sample type for the life of the process.

    Handlers run on background threads, so access is serialized.
    """

    def __init__(self) -> None:
        self._anchors: dict[str, QueryAnchor] = {}
        self._lock = threading.Lock()

    def get_anchor(self, sample_type: QuantityType) -> QueryAnchor | None:
        with self._lock:
            return self._anchors.get(sample_type.identifier)

    def update_anchor(
        self, anchor: QueryAnchor | None, query: AnchoredObjectQuery
    ) -> None:
        if anchor is None:
            return
        with self._lock:
            self._anchors[query.sample_type.identifier] = anchor
        logger.debug("Anchor for %s is now %s", query.sample_type.identifier, anchor)

    def snapshot(self) -> dict[str, QueryAnchor]:
        with self._lock:
            return dict(self._anchors)
