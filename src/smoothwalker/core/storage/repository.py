"""Sample repository — writes pushed samples to the encrypted sample bank.

The repository mediates between sample payloads and the SQLite database,
using FieldEncryptor to encrypt/decrypt sample quantities.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from smoothwalker.core.storage.database import SampleDatabase
from smoothwalker.core.storage.encryption import EncryptionError, FieldEncryptor
from smoothwalker.core.storage.models import StoredSample

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


class SampleRepository:
    """Encrypted storage for samples received from anchored queries.

    Usage::

        db = SampleDatabase(":memory:")
        db.initialize()
        repo = SampleRepository(db, FieldEncryptor(key="..."))

        repo.save_samples([sample.to_payload() for sample in added])
        repo.mark_deleted([obj.uuid for obj in deleted])
    """

    _REQUIRED_KEYS = ("uuid", "type", "start_date", "end_date", "value", "unit")

    def __init__(self, database: SampleDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor
        # One connection is shared with background push handlers.
        self._lock = threading.Lock()

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_samples(self, payloads: Iterable[dict[str, Any]]) -> int:
        """Insert or replace samples.

        Args:
            payloads: Dicts with ``uuid``, ``type``, ``start_date``,
                ``end_date``, ``value``, ``unit`` and optional ``source_name``.

        Returns:
            Number of samples written.

        Raises:
            RepositoryError: If a payload is missing a required key, cannot
                be encrypted, or the write fails.
        """
        rows = []
        now = self._now_iso()
        for payload in payloads:
            missing = [k for k in self._REQUIRED_KEYS if k not in payload]
            if missing:
                raise RepositoryError(f"Sample payload missing keys: {', '.join(missing)}")
            quantity = {
                "value": payload["value"],
                "unit": payload["unit"],
                "source_name": payload.get("source_name", ""),
            }
            try:
                quantity_enc = self._enc.encrypt(quantity)
            except EncryptionError as exc:
                raise RepositoryError(f"Failed to encrypt sample {payload['uuid']}: {exc}") from exc
            rows.append((
                payload["uuid"],
                payload["type"],
                payload["start_date"],
                payload["end_date"],
                quantity_enc,
                now,
            ))

        if not rows:
            return 0

        with self._lock:
            conn = self._db.connection
            try:
                conn.executemany(
                    """INSERT OR REPLACE INTO pushed_samples
                       (uuid, sample_type, start_date, end_date, quantity_enc, pushed_at)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    rows,
                )
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                raise RepositoryError(f"Failed to save samples: {exc}") from exc

        logger.info("Saved %d pushed sample(s)", len(rows))
        return len(rows)

    def mark_deleted(self, uuids: Iterable[str]) -> int:
        """Flag samples as deleted. Unknown UUIDs are ignored.

        Returns:
            Number of samples newly marked deleted.
        """
        ids = list(uuids)
        if not ids:
            return 0

        now = self._now_iso()
        with self._lock:
            conn = self._db.connection
            try:
                cursor = conn.executemany(
                    """UPDATE pushed_samples SET deleted = 1, deleted_at = ?
                       WHERE uuid = ? AND deleted = 0""",
                    [(now, sample_uuid) for sample_uuid in ids],
                )
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                raise RepositoryError(f"Failed to mark samples deleted: {exc}") from exc

        count = cursor.rowcount
        logger.info("Marked %d pushed sample(s) deleted", count)
        return count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_samples(
        self,
        *,
        sample_type: str | None = None,
        include_deleted: bool = False,
        limit: int = 100,
    ) -> list[StoredSample]:
        """Return stored samples, newest start date first."""
        conditions: list[str] = []
        params: list[Any] = []
        if sample_type:
            conditions.append("sample_type = ?")
            params.append(sample_type)
        if not include_deleted:
            conditions.append("deleted = 0")

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM pushed_samples{where} ORDER BY start_date DESC LIMIT ?"
        params.append(limit)

        with self._lock:
            rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_sample(row) for row in rows]

    def count_samples(
        self, *, sample_type: str | None = None, include_deleted: bool = False
    ) -> int:
        conditions: list[str] = []
        params: list[Any] = []
        if sample_type:
            conditions.append("sample_type = ?")
            params.append(sample_type)
        if not include_deleted:
            conditions.append("deleted = 0")

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        with self._lock:
            row = self._db.connection.execute(
                f"SELECT COUNT(*) FROM pushed_samples{where}", params
            ).fetchone()
        return row[0]

    def _row_to_sample(self, row: sqlite3.Row) -> StoredSample:
        quantity = self._enc.decrypt(row["quantity_enc"]) or {}
        return StoredSample(
            uuid=row["uuid"],
            sample_type=row["sample_type"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            value=quantity.get("value", 0.0),
            unit=quantity.get("unit", ""),
            source_name=quantity.get("source_name", ""),
            deleted=bool(row["deleted"]),
            pushed_at=row["pushed_at"],
            deleted_at=row["deleted_at"],
        )
