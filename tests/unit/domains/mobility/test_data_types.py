"""Tests for the mobility data type catalogue and unit conversion."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from smoothwalker.domains.mobility.connectors.statistics import (
    Statistics,
    StatisticsOptions,
)
from smoothwalker.domains.mobility.data_types import (
    DISTANCE_WALKING_RUNNING,
    MOBILITY_CONTENT,
    STEP_COUNT,
    WALKING_SPEED,
    get_sample_type,
    get_statistics_options,
    get_statistics_quantity,
    preferred_unit,
    supported_identifiers,
)
from smoothwalker.domains.mobility.units import (
    IncompatibleUnitError,
    Quantity,
    UnknownUnitError,
    get_unit,
)


class TestCatalogue:
    def test_mobility_content_is_steps_and_distance(self):
        assert MOBILITY_CONTENT == [STEP_COUNT, DISTANCE_WALKING_RUNNING]

    def test_every_supported_type_has_a_preferred_unit(self):
        for identifier in supported_identifiers():
            assert preferred_unit(identifier) is not None, identifier

    def test_unknown_identifier(self):
        assert get_sample_type("HKQuantityTypeIdentifierHeartRate") is None
        assert preferred_unit("HKQuantityTypeIdentifierHeartRate") is None
        assert get_statistics_options("nope") == StatisticsOptions.NONE

    def test_cumulative_types_sum(self):
        assert get_statistics_options(STEP_COUNT) == StatisticsOptions.CUMULATIVE_SUM
        assert get_statistics_options(DISTANCE_WALKING_RUNNING) == StatisticsOptions.CUMULATIVE_SUM

    def test_discrete_types_average(self):
        assert get_statistics_options(WALKING_SPEED) == StatisticsOptions.DISCRETE_AVERAGE


class TestStatisticsQuantity:
    @pytest.fixture
    def bucket(self, sample_factory):
        start = datetime(2026, 3, 18, tzinfo=timezone.utc)
        samples = [
            sample_factory(WALKING_SPEED, 1.2, start.replace(hour=8)),
            sample_factory(WALKING_SPEED, 1.6, start.replace(hour=12)),
            sample_factory(WALKING_SPEED, 1.1, start.replace(hour=18)),
        ]
        return Statistics(get_sample_type(WALKING_SPEED), start, start.replace(day=19), samples)

    def test_selects_by_option(self, bucket):
        assert get_statistics_quantity(bucket, StatisticsOptions.DISCRETE_AVERAGE).value == pytest.approx(1.3)
        assert get_statistics_quantity(bucket, StatisticsOptions.DISCRETE_MIN).value == 1.1
        assert get_statistics_quantity(bucket, StatisticsOptions.DISCRETE_MAX).value == 1.6
        assert get_statistics_quantity(bucket, StatisticsOptions.MOST_RECENT).value == 1.1

    def test_no_option_returns_none(self, bucket):
        assert get_statistics_quantity(bucket, StatisticsOptions.NONE) is None


class TestUnits:
    def test_length_conversion(self):
        assert Quantity(1.0, get_unit("km")).double_value(get_unit("m")) == pytest.approx(1000.0)
        assert Quantity(1.0, get_unit("mi")).double_value(get_unit("m")) == pytest.approx(1609.344)

    def test_speed_conversion(self):
        kmh = Quantity(3.6, get_unit("km/hr"))
        assert kmh.double_value(get_unit("m/s")) == pytest.approx(1.0)

    def test_same_unit_is_identity(self):
        assert Quantity(42.0, get_unit("count")).double_value(get_unit("count")) == 42.0

    def test_incompatible_dimensions_raise(self):
        with pytest.raises(IncompatibleUnitError):
            Quantity(10.0, get_unit("count")).double_value(get_unit("m"))

    def test_unknown_unit_raises(self):
        with pytest.raises(UnknownUnitError):
            get_unit("furlong")
