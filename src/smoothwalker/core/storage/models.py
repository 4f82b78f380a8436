"""Data models for the sample persistence layer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class StoredSample:
    """A pushed sample as kept in the sample bank (quantity decrypted)."""

    uuid: str
    sample_type: str
    start_date: str  # ISO 8601
    end_date: str  # ISO 8601
    value: float
    unit: str
    source_name: str = ""
    deleted: bool = False
    pushed_at: str = ""
    deleted_at: str | None = None
