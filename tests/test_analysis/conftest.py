"""Fixtures for analysis engine tests."""

from __future__ import annotations

import pytest

from freezeassay.core import AssayStore
from freezeassay.core.models import Region, WellObservation

RAMP = [-5, -10, -15]

# Wells 0, 1, 12 and 13 form the 2x2 "sample" region at A1:B2 of P1
SAMPLE_STATES = {0: "LLF", 1: "LLF", 12: "LLF", 13: "LLL"}


@pytest.fixture
def regions() -> list[Region]:
    return [
        Region("sample", 1, 0, 0, 1, 1, treatment="untreated"),
        Region("edge", 1, 8, 0, 9, 3),
    ]


@pytest.fixture
def make_observations(at):
    """Build observations from a {well_id: "LLF"} mapping."""

    def _make(states: dict[int, str]) -> list[WellObservation]:
        return [
            WellObservation(well_id, at(i), s == "F")
            for well_id, pattern in states.items()
            for i, s in enumerate(pattern)
        ]

    return _make


@pytest.fixture
def analysis_store(
    tmp_store_path, single_tray_config, probes, ramp_samples, make_observations,
) -> AssayStore:
    """Store with experiment 'exp1' ready for analysis."""
    store = AssayStore.create(tmp_store_path, name="Analysis")
    tray = single_tray_config.assignments[0].tray
    store.add_tray(tray.name, tray.qty_x_axis, tray.qty_y_axis)
    store.add_tray_configuration(single_tray_config.name, list(single_tray_config.assignments))
    store.add_experiment("exp1", tray_configuration="single")
    for p in probes:
        store.add_probe("exp1", p.name, p.column_index, p.correction_factor)
    store.add_region("exp1", Region("sample", 1, 0, 0, 1, 1, treatment="untreated"))
    store.add_probe_samples("exp1", ramp_samples(RAMP))
    store.add_well_observations("exp1", make_observations(SAMPLE_STATES))
    yield store
    store.close()
