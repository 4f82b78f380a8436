"""Push sinks for samples delivered by anchored queries."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from smoothwalker.core.storage.repository import RepositoryError, SampleRepository
from smoothwalker.domains.mobility.connectors.types import DeletedObject, QuantitySample

logger = logging.getLogger(__name__)


class LoggingPushSink:
    """Logs pushes and keeps running totals. Always available."""

    def __init__(self) -> None:
        self.added_count = 0
        self.deleted_count = 0

    def push(
        self,
        added: Sequence[QuantitySample] | None,
        deleted: Sequence[DeletedObject] | None,
    ) -> None:
        added = added or []
        deleted = deleted or []
        self.added_count += len(added)
        self.deleted_count += len(deleted)
        logger.info("Pushing %d added and %d deleted sample(s)", len(added), len(deleted))


class RepositoryPushSink:
    """Writes pushes to the encrypted sample bank.

    Storage failures are logged; a push never fails its caller.
    """

    def __init__(self, repository: SampleRepository) -> None:
        self._repo = repository

    def push(
        self,
        added: Sequence[QuantitySample] | None,
        deleted: Sequence[DeletedObject] | None,
    ) -> None:
        try:
            if added:
                self._repo.save_samples(s.to_payload() for s in added)
            if deleted:
                self._repo.mark_deleted(d.uuid for d in deleted)
        except RepositoryError:
            logger.exception("Failed to store pushed samples")
