"""Shared fixtures for CLI module tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from freezeassay.core import AssayStore
from freezeassay.io import LayoutLoader, ReadingIngester, layout_from_yaml

LAYOUT_YAML = """\
trays:
  - name: P1
    qty_x_axis: 12
    qty_y_axis: 8
tray_configuration:
  name: single
  experiment_default: true
  assignments:
    - tray: P1
      order_sequence: 1
experiment:
  name: exp1
probes:
  - name: Probe 1
    column_index: 1
  - name: Probe 2
    column_index: 2
regions:
  - name: sample
    tray: P1
    wells: A1:B2
    treatment: untreated
"""

# Wide format: each reading averages to -5, -10, -15
PROBES_CSV = """\
timestamp,Probe 1,Probe 2
2024-03-01T12:00:00,-4.5,-5.5
2024-03-01T12:00:10,-9.5,-10.5
2024-03-01T12:00:20,-14.5,-15.5
"""

OBSERVATIONS_CSV = """\
timestamp,tray,well,is_frozen
2024-03-01T12:00:00,P1,A1,0
2024-03-01T12:00:10,P1,A1,0
2024-03-01T12:00:20,P1,A1,1
2024-03-01T12:00:00,P1,A2,0
2024-03-01T12:00:10,P1,A2,0
2024-03-01T12:00:20,P1,A2,1
2024-03-01T12:00:00,P1,B1,0
2024-03-01T12:00:10,P1,B1,0
2024-03-01T12:00:20,P1,B1,1
2024-03-01T12:00:00,P1,B2,0
2024-03-01T12:00:10,P1,B2,0
2024-03-01T12:00:20,P1,B2,0
"""


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def store(tmp_path: Path) -> AssayStore:
    """Create a fresh, empty assay store for CLI testing."""
    s = AssayStore.create(tmp_path / "run.assay", name="Test")
    yield s
    s.close()


@pytest.fixture
def store_path(store: AssayStore) -> Path:
    """Path to the test store."""
    return store.path


@pytest.fixture
def layout_file(tmp_path: Path) -> Path:
    path = tmp_path / "layout.yaml"
    path.write_text(LAYOUT_YAML)
    return path


@pytest.fixture
def probe_csv(tmp_path: Path) -> Path:
    path = tmp_path / "probes.csv"
    path.write_text(PROBES_CSV)
    return path


@pytest.fixture
def observation_csv(tmp_path: Path) -> Path:
    path = tmp_path / "observations.csv"
    path.write_text(OBSERVATIONS_CSV)
    return path


@pytest.fixture
def configured_store(store: AssayStore, layout_file: Path) -> AssayStore:
    """Store with the layout applied but no readings."""
    LayoutLoader().apply(layout_from_yaml(layout_file), store)
    return store


@pytest.fixture
def ready_store(
    configured_store: AssayStore, probe_csv: Path, observation_csv: Path,
) -> AssayStore:
    """Store with layout and readings for experiment 'exp1'."""
    ReadingIngester().ingest(
        configured_store, "exp1", probe_csv=probe_csv, observation_csv=observation_csv,
    )
    return configured_store
