"""Tests for freezeassay.analysis.aggregation."""

from datetime import datetime, timedelta

import numpy as np
import pytest

from freezeassay.analysis.aggregation import RegionAggregator, state_timeline
from freezeassay.analysis.alignment import TemperatureAligner
from freezeassay.analysis.geometry import TrayGeometry
from freezeassay.core.exceptions import AggregationError
from freezeassay.core.models import PhaseState, Region, WellPhaseTransition

T0 = datetime(2024, 3, 1, 12, 0, 0)


def _freeze(well_id: int, index: int) -> WellPhaseTransition:
    return WellPhaseTransition(
        well_id, index, T0 + timedelta(seconds=10 * index),
        PhaseState.LIQUID, PhaseState.FROZEN,
    )


def _thaw(well_id: int, index: int, is_anomaly: bool = False) -> WellPhaseTransition:
    return WellPhaseTransition(
        well_id, index, T0 + timedelta(seconds=10 * index),
        PhaseState.FROZEN, PhaseState.LIQUID, is_anomaly,
    )


@pytest.fixture
def aggregator(single_tray_config, probes, ramp_samples):
    readings = TemperatureAligner(probes).align(ramp_samples([0, -5, -10, -15, -20]))
    return RegionAggregator(TrayGeometry(single_tray_config), readings)


class TestStateTimeline:
    def test_freeze_then_stays_frozen(self):
        states = state_timeline([_freeze(0, 2)], 5)
        assert states.tolist() == [False, False, True, True, True]

    def test_thaw_returns_to_liquid(self):
        states = state_timeline([_freeze(0, 1), _thaw(0, 3)], 5)
        assert states.tolist() == [False, True, True, False, False]

    def test_anomalous_thaw_ignored(self):
        states = state_timeline([_freeze(0, 1), _thaw(0, 3, is_anomaly=True)], 5)
        assert states.tolist() == [False, True, True, True, True]


class TestRegionAggregator:
    def test_wells_in_region(self, aggregator):
        region = Region("r", 1, 0, 0, 1, 1)
        assert aggregator.wells_in_region(region) == [0, 1, 12, 13]

    def test_region_clipped_to_grid(self, aggregator):
        region = Region("r", 1, 6, 10, 20, 20)
        assert len(aggregator.wells_in_region(region)) == 2 * 2

    def test_empty_after_clipping(self, aggregator):
        with pytest.raises(AggregationError, match="region 'edge'"):
            aggregator.wells_in_region(Region("edge", 1, 8, 0, 9, 3))

    def test_unknown_tray(self, aggregator):
        with pytest.raises(AggregationError):
            aggregator.wells_in_region(Region("r", 5, 0, 0, 1, 1))

    def test_frozen_counts(self, aggregator):
        region = Region("r", 1, 0, 0, 1, 1)
        transitions = {0: [_freeze(0, 1)], 1: [_freeze(1, 3)], 12: [_freeze(12, 3)]}
        curve = aggregator.aggregate(region, transitions)
        assert curve.total == 4
        assert curve.frozen_counts.tolist() == [0, 1, 1, 3, 3]
        np.testing.assert_allclose(curve.fraction_frozen, [0, 0.25, 0.25, 0.75, 0.75])

    def test_fraction_bounded_and_monotone_for_single_freezes(self, aggregator):
        region = Region("r", 1, 0, 0, 3, 3)
        wells = aggregator.wells_in_region(region)
        transitions = {w: [_freeze(w, i % 5)] for i, w in enumerate(wells)}
        curve = aggregator.aggregate(region, transitions)
        fraction = curve.fraction_frozen
        assert ((fraction >= 0) & (fraction <= 1)).all()
        assert (np.diff(fraction) >= 0).all()

    def test_excluded_wells_dropped(self, aggregator):
        region = Region("r", 1, 0, 0, 1, 1)
        curve = aggregator.aggregate(region, {}, exclude={0, 1})
        assert curve.well_ids == (12, 13)

    def test_all_wells_excluded(self, aggregator):
        region = Region("r", 1, 0, 0, 0, 0)
        with pytest.raises(AggregationError, match="no wells left"):
            aggregator.aggregate(region, {}, exclude={0})

    def test_well_region_map_skips_empty_regions(self, aggregator):
        regions = [Region("a", 1, 0, 0, 0, 1), Region("edge", 1, 8, 0, 9, 0)]
        assert aggregator.well_region_map(regions) == {0: "a", 1: "a"}
