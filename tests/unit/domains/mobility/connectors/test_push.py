"""Tests for push sinks and the anchor store."""

from __future__ import annotations

from datetime import timedelta

from smoothwalker.domains.mobility.connectors import AnchorStore, PushSink
from smoothwalker.domains.mobility.connectors.push import LoggingPushSink, RepositoryPushSink
from smoothwalker.domains.mobility.connectors.types import AnchoredObjectQuery, DeletedObject
from smoothwalker.domains.mobility.data_types import STEP_COUNT, WALKING_SPEED, get_sample_type


class TestLoggingPushSink:
    def test_counts_pushes(self, sample_factory, now):
        sink = LoggingPushSink()
        assert isinstance(sink, PushSink)
        sink.push([sample_factory(STEP_COUNT, 1, now)], None)
        sink.push(None, [DeletedObject("abc", get_sample_type(STEP_COUNT))])
        assert sink.added_count == 1
        assert sink.deleted_count == 1


class TestRepositoryPushSink:
    def test_stores_added_and_marks_deleted(self, sample_repository, sample_factory, now):
        sink = RepositoryPushSink(sample_repository)
        keep = sample_factory(STEP_COUNT, 120, now - timedelta(hours=2))
        gone = sample_factory(STEP_COUNT, 80, now - timedelta(hours=1))

        sink.push([keep, gone], [])
        sink.push([], [DeletedObject(gone.uuid, gone.sample_type)])

        stored = sample_repository.get_samples(sample_type=STEP_COUNT)
        assert [s.uuid for s in stored] == [keep.uuid]
        assert stored[0].value == 120
        assert stored[0].unit == "count"
        assert sample_repository.count_samples(include_deleted=True) == 2

    def test_storage_failure_is_logged_not_raised(self, sample_repository, sample_db, sample_factory, now):
        sink = RepositoryPushSink(sample_repository)
        sample_db.connection.execute("DROP TABLE pushed_samples")
        sink.push([sample_factory(STEP_COUNT, 1, now)], None)

    def test_encryption_failure_is_logged_not_raised(self, sample_repository, sample_factory, now, caplog):
        sink = RepositoryPushSink(sample_repository)
        sink.push([sample_factory(STEP_COUNT, object(), now)], None)
        assert "Failed to store pushed samples" in caplog.text
        assert sample_repository.count_samples() == 0


class TestInMemoryAnchorStore:
    def test_tracks_anchor_per_type(self, anchor_store):
        assert isinstance(anchor_store, AnchorStore)
        steps = get_sample_type(STEP_COUNT)
        query = AnchoredObjectQuery(steps, None, None)

        assert anchor_store.get_anchor(steps) is None
        anchor_store.update_anchor(7, query)
        assert anchor_store.get_anchor(steps) == 7
        assert anchor_store.get_anchor(get_sample_type(WALKING_SPEED)) is None
        assert anchor_store.snapshot() == {STEP_COUNT: 7}

    def test_none_anchor_is_ignored(self, anchor_store):
        steps = get_sample_type(STEP_COUNT)
        query = AnchoredObjectQuery(steps, None, None)
        anchor_store.update_anchor(3, query)
        anchor_store.update_anchor(None, query)
        assert anchor_store.get_anchor(steps) == 3
