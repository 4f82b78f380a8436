"""Shared test fixtures for SmoothWalker tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("APPLE_HEALTH_EXPORT_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from smoothwalker.domains.mobility.connectors.anchors import InMemoryAnchorStore  # noqa: E402
from smoothwalker.domains.mobility.connectors.memory_store import InMemoryHealthStore  # noqa: E402
from smoothwalker.domains.mobility.connectors.types import QuantitySample  # noqa: E402
from smoothwalker.domains.mobility.data_types import get_sample_type  # noqa: E402
from smoothwalker.domains.mobility.units import Quantity, get_unit  # noqa: E402

# Wednesday afternoon; day buckets Mar 12..18, week buckets from Mon Feb 16,
# month buckets Apr 2025..Mar 2026.
NOW = datetime(2026, 3, 18, 14, 30, tzinfo=timezone.utc)


def make_sample(
    identifier: str,
    value: float,
    start: datetime,
    *,
    minutes: int = 30,
    unit: str | None = None,
) -> QuantitySample:
    """Create a quantity sample with the type's default unit unless given."""
    sample_type = get_sample_type(identifier)
    return QuantitySample(
        sample_type=sample_type,
        quantity=Quantity(value, get_unit(unit) if unit else sample_type.default_unit),
        start_date=start,
        end_date=start + timedelta(minutes=minutes),
        source_name="Test Device",
    )


class RecordingPushSink:
    """PushSink that records every push."""

    def __init__(self) -> None:
        self.pushes: list[tuple[list, list]] = []

    def push(self, added, deleted) -> None:
        self.pushes.append((list(added or []), list(deleted or [])))

    @property
    def added(self) -> list:
        return [s for added, _ in self.pushes for s in added]


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store() -> InMemoryHealthStore:
    return InMemoryHealthStore()


@pytest.fixture
def anchor_store() -> InMemoryAnchorStore:
    return InMemoryAnchorStore()


@pytest.fixture
def push_sink() -> RecordingPushSink:
    return RecordingPushSink()


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_db():
    """Create an in-memory SampleDatabase for testing."""
    from smoothwalker.core.storage.database import SampleDatabase

    db = SampleDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from smoothwalker.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def sample_repository(sample_db, field_encryptor):
    """Create a SampleRepository backed by in-memory SQLite."""
    from smoothwalker.core.storage.repository import SampleRepository

    return SampleRepository(sample_db, field_encryptor)


@pytest.fixture
def sample_factory():
    """Return :func:`make_sample` for building quantity samples."""
    return make_sample
