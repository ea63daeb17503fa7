"""Tests for freezeassay.core.models."""

from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from freezeassay.core.models import (
    PhaseState,
    Region,
    TemperatureProbe,
    TemperatureReading,
    Tray,
    TrayAssignment,
    TrayConfiguration,
    format_well_coordinate,
    parse_well_coordinate,
)


class TestTray:
    def test_dimensions(self):
        tray = Tray("P1", qty_x_axis=12, qty_y_axis=8)
        assert tray.n_rows == 8
        assert tray.n_cols == 12

    def test_non_positive_dimensions_rejected(self):
        with pytest.raises(ValueError, match="positive dimensions"):
            Tray("P1", qty_x_axis=0, qty_y_axis=8)

    def test_frozen(self):
        tray = Tray("P1", 12, 8)
        with pytest.raises(FrozenInstanceError):
            tray.name = "P2"  # type: ignore[misc]


class TestTrayConfiguration:
    def test_lookup_by_sequence_and_name(self, two_tray_config):
        assert two_tray_config.assignment(2).tray.name == "P2"
        assert two_tray_config.assignment_by_tray_name("P1").order_sequence == 1

    def test_missing_lookup_returns_none(self, two_tray_config):
        assert two_tray_config.assignment(9) is None
        assert two_tray_config.assignment_by_tray_name("P9") is None

    def test_equality_by_value(self):
        tray = Tray("P1", 12, 8)
        a = TrayConfiguration("c", (TrayAssignment(tray, 1),))
        b = TrayConfiguration("c", (TrayAssignment(Tray("P1", 12, 8), 1),))
        assert a == b


class TestTemperatureProbe:
    def test_correct_applies_factor(self):
        probe = TemperatureProbe("Probe 1", 1, correction_factor=0.5)
        assert probe.correct(-10.0) == -5.0

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="must not be empty"):
            TemperatureProbe("  ", 1)

    def test_column_index_must_be_positive(self):
        with pytest.raises(ValueError, match="positive integer"):
            TemperatureProbe("Probe 1", 0)


class TestTemperatureReading:
    def test_average_of_present_probes(self):
        reading = TemperatureReading(0, datetime(2024, 1, 1), {1: -10.0, 2: -12.0, 3: None})
        assert reading.average == pytest.approx(-11.0)

    def test_average_none_when_no_probe_reported(self):
        reading = TemperatureReading(0, datetime(2024, 1, 1), {1: None, 2: None})
        assert reading.average is None


class TestRegion:
    def test_contains(self):
        region = Region("a", 1, row_min=0, col_min=0, row_max=1, col_max=1)
        assert region.contains(1, 1, 1)
        assert not region.contains(1, 2, 0)
        assert not region.contains(2, 0, 0)

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValueError, match="inverted bounds"):
            Region("a", 1, row_min=3, col_min=0, row_max=1, col_max=1)

    def test_negative_bounds_rejected(self):
        with pytest.raises(ValueError, match="negative"):
            Region("a", 1, row_min=-1, col_min=0, row_max=1, col_max=1)

    def test_dilution_below_one_rejected(self):
        with pytest.raises(ValueError, match="dilution_factor"):
            Region("a", 1, 0, 0, 1, 1, dilution_factor=0.5)

    def test_background_cannot_reference_background(self):
        with pytest.raises(ValueError, match="cannot itself"):
            Region("blank", 1, 0, 0, 1, 1, is_background_key=True, background_region="x")


class TestPhaseState:
    def test_stored_values(self):
        assert int(PhaseState.LIQUID) == 0
        assert int(PhaseState.FROZEN) == 1


class TestWellCoordinates:
    def test_parse(self):
        assert parse_well_coordinate("A1") == (0, 0)
        assert parse_well_coordinate("H12") == (7, 11)

    @pytest.mark.parametrize("coordinate", ["", "1A", "a1", "A0", "AA1", "A-1"])
    def test_parse_invalid(self, coordinate):
        with pytest.raises(ValueError):
            parse_well_coordinate(coordinate)

    def test_format(self):
        assert format_well_coordinate(7, 11) == "H12"

    def test_format_invalid(self):
        with pytest.raises(ValueError):
            format_well_coordinate(26, 0)
        with pytest.raises(ValueError):
            format_well_coordinate(-1, 0)
