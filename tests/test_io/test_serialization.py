"""Tests for freezeassay.io.serialization."""

import pytest

from freezeassay.analysis.config import AnalysisConfig
from freezeassay.core.models import TemperatureProbe, Tray
from freezeassay.io.serialization import (
    config_from_yaml,
    config_to_yaml,
    layout_from_yaml,
    layout_to_yaml,
)


class TestLayoutFromYaml:
    def test_full_layout(self, layout_path):
        layout = layout_from_yaml(layout_path)
        assert [t.name for t in layout.trays] == ["P1", "P2"]
        assert layout.trays[1].well_relative_diameter == 0.8
        config = layout.tray_configuration
        assert config.name == "standard"
        assert config.experiment_default
        assert config.assignment(2).rotation_degrees == 180
        assert config.assignment(2).tray == Tray("P2", 12, 8, 0.8)
        assert layout.tray_configuration_name == "standard"
        assert layout.experiment == "exp1"
        assert layout.description == "Soil extract"
        assert layout.probes[1] == TemperatureProbe("Probe 2", 2, 0.98)
        sample = layout.regions[1]
        assert sample.wells == "A1:D6"
        assert sample.dilution_factor == 10.0
        assert sample.background_region == "blank"
        assert layout.regions[0].is_background_key

    def test_configuration_by_name(self, tmp_path):
        path = tmp_path / "l.yaml"
        path.write_text("tray_configuration: standard\nexperiment: exp2\n")
        layout = layout_from_yaml(path)
        assert layout.tray_configuration is None
        assert layout.tray_configuration_name == "standard"
        assert layout.experiment == "exp2"
        assert layout.description == ""

    def test_empty_file(self, tmp_path):
        path = tmp_path / "l.yaml"
        path.write_text("")
        layout = layout_from_yaml(path)
        assert layout.trays == []
        assert layout.experiment is None

    def test_assignment_unknown_tray(self, tmp_path):
        path = tmp_path / "l.yaml"
        path.write_text(
            "tray_configuration:\n  name: c\n  assignments:\n"
            "    - tray: ghost\n      order_sequence: 1\n"
        )
        with pytest.raises(ValueError, match="unknown tray 'ghost'"):
            layout_from_yaml(path)

    def test_missing_required_key(self, tmp_path):
        path = tmp_path / "l.yaml"
        path.write_text("trays:\n  - name: P1\n    qty_x_axis: 12\n")
        with pytest.raises(ValueError, match="missing required key 'qty_y_axis'"):
            layout_from_yaml(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "l.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            layout_from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            layout_from_yaml(tmp_path / "nope.yaml")


class TestLayoutRoundTrip:
    def test_round_trip(self, layout_path, tmp_path):
        layout = layout_from_yaml(layout_path)
        out = tmp_path / "out.yaml"
        layout_to_yaml(layout, out)
        assert layout_from_yaml(out) == layout


class TestAnalysisConfigYaml:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.yaml"
        config = AnalysisConfig(debounce_count=3, droplet_volume_ml=0.02)
        config_to_yaml(config, path)
        assert config_from_yaml(path) == config

    def test_partial_keeps_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("debounce_count: 2\n")
        config = config_from_yaml(path)
        assert config.debounce_count == 2
        assert config.max_workers == AnalysisConfig().max_workers

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("debounce: 2\n")
        with pytest.raises(ValueError, match="Unknown analysis config keys: debounce"):
            config_from_yaml(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("droplet_volume_ml: 0\n")
        with pytest.raises(ValueError):
            config_from_yaml(path)
