"""Tests for SampleRepository: encrypted writes, deletion flags, reads."""

from __future__ import annotations

from datetime import timedelta

import pytest

from smoothwalker.core.storage.repository import RepositoryError
from smoothwalker.domains.mobility.data_types import STEP_COUNT, WALKING_SPEED


class TestSaveSamples:
    def test_quantity_is_encrypted_at_rest(self, sample_repository, sample_db, sample_factory, now):
        sample = sample_factory(STEP_COUNT, 4321, now)
        assert sample_repository.save_samples([sample.to_payload()]) == 1

        row = sample_db.connection.execute(
            "SELECT * FROM pushed_samples WHERE uuid = ?", (sample.uuid,)
        ).fetchone()
        assert row["sample_type"] == STEP_COUNT
        assert "4321" not in row["quantity_enc"]

    def test_round_trip_fields(self, sample_repository, sample_factory, now):
        sample = sample_factory(WALKING_SPEED, 4.7, now, unit="km/hr")
        sample_repository.save_samples([sample.to_payload()])

        stored = sample_repository.get_samples()[0]
        assert stored.uuid == sample.uuid
        assert stored.value == pytest.approx(4.7)
        assert stored.unit == "km/hr"
        assert stored.source_name == "Test Device"
        assert stored.start_date == sample.start_date.isoformat()
        assert stored.deleted is False
        assert stored.pushed_at

    def test_same_uuid_replaces(self, sample_repository, sample_factory, now):
        payload = sample_factory(STEP_COUNT, 10, now).to_payload()
        sample_repository.save_samples([payload])
        sample_repository.save_samples([{**payload, "value": 20}])
        assert sample_repository.count_samples() == 1
        assert sample_repository.get_samples()[0].value == 20

    def test_empty_batch(self, sample_repository):
        assert sample_repository.save_samples([]) == 0

    def test_missing_keys_raise(self, sample_repository):
        with pytest.raises(RepositoryError, match="missing keys: unit"):
            sample_repository.save_samples([{
                "uuid": "u1", "type": STEP_COUNT, "start_date": "x",
                "end_date": "y", "value": 1,
            }])
        assert sample_repository.count_samples() == 0

    def test_unencryptable_value_raises_repository_error(self, sample_repository, sample_factory, now):
        payload = sample_factory(STEP_COUNT, 1, now).to_payload()
        with pytest.raises(RepositoryError, match="Failed to encrypt"):
            sample_repository.save_samples([{**payload, "value": object()}])
        assert sample_repository.count_samples() == 0


class TestMarkDeleted:
    def test_marks_and_hides(self, sample_repository, sample_factory, now):
        a = sample_factory(STEP_COUNT, 1, now)
        b = sample_factory(STEP_COUNT, 2, now)
        sample_repository.save_samples([a.to_payload(), b.to_payload()])

        assert sample_repository.mark_deleted([a.uuid, "unknown"]) == 1
        assert [s.uuid for s in sample_repository.get_samples()] == [b.uuid]

        deleted = sample_repository.get_samples(include_deleted=True)
        flagged = next(s for s in deleted if s.uuid == a.uuid)
        assert flagged.deleted is True
        assert flagged.deleted_at is not None

    def test_already_deleted_not_counted_twice(self, sample_repository, sample_factory, now):
        sample = sample_factory(STEP_COUNT, 1, now)
        sample_repository.save_samples([sample.to_payload()])
        sample_repository.mark_deleted([sample.uuid])
        assert sample_repository.mark_deleted([sample.uuid]) == 0

    def test_no_uuids(self, sample_repository):
        assert sample_repository.mark_deleted([]) == 0


class TestQueries:
    @pytest.fixture
    def populated(self, sample_repository, sample_factory, now):
        samples = [
            sample_factory(STEP_COUNT, 1, now - timedelta(days=2)),
            sample_factory(STEP_COUNT, 2, now - timedelta(days=1)),
            sample_factory(WALKING_SPEED, 1.3, now),
        ]
        sample_repository.save_samples(s.to_payload() for s in samples)
        return sample_repository

    def test_filter_by_type(self, populated):
        assert populated.count_samples(sample_type=STEP_COUNT) == 2
        assert populated.count_samples(sample_type=WALKING_SPEED) == 1
        assert populated.count_samples() == 3

    def test_newest_first_with_limit(self, populated):
        values = [s.value for s in populated.get_samples(sample_type=STEP_COUNT, limit=1)]
        assert values == [2]
