"""Shared fixtures for IO module tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from freezeassay.core import AssayStore

LAYOUT_YAML = """\
trays:
  - name: P1
    qty_x_axis: 12
    qty_y_axis: 8
  - name: P2
    qty_x_axis: 12
    qty_y_axis: 8
    well_relative_diameter: 0.8
tray_configuration:
  name: standard
  experiment_default: true
  assignments:
    - tray: P1
      order_sequence: 1
    - tray: P2
      order_sequence: 2
      rotation_degrees: 180
experiment:
  name: exp1
  description: Soil extract
probes:
  - name: Probe 1
    column_index: 1
  - name: Probe 2
    column_index: 2
    correction_factor: 0.98
regions:
  - name: blank
    tray: P2
    wells: A1:H2
    is_background_key: true
  - name: sample
    tray: P1
    wells: A1:D6
    treatment: untreated
    dilution_factor: 10
    background_region: blank
"""


@pytest.fixture
def layout_path(tmp_path: Path) -> Path:
    path = tmp_path / "layout.yaml"
    path.write_text(LAYOUT_YAML)
    return path


@pytest.fixture
def io_store(tmp_path: Path) -> AssayStore:
    """A fresh, empty AssayStore."""
    store = AssayStore.create(tmp_path / "run.assay", name="IO")
    yield store
    store.close()


@pytest.fixture
def write_csv(tmp_path: Path):
    """Write CSV text to a file under tmp_path and return its path."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write
