"""Shared test fixtures for freezeassay."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from freezeassay.core.models import (
    ProbeSample,
    TemperatureProbe,
    Tray,
    TrayAssignment,
    TrayConfiguration,
)

T0 = datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def tmp_store_path(tmp_path):
    """Path for a temporary assay store directory."""
    return tmp_path / "assay"


@pytest.fixture
def at():
    """Timestamp of reading ``i`` on a 10-second ramp."""

    def _at(i: int) -> datetime:
        return T0 + timedelta(seconds=10 * i)

    return _at


@pytest.fixture
def plate96() -> Tray:
    return Tray("P1", qty_x_axis=12, qty_y_axis=8)


@pytest.fixture
def single_tray_config(plate96: Tray) -> TrayConfiguration:
    return TrayConfiguration(
        name="single", assignments=(TrayAssignment(plate96, order_sequence=1),),
    )


@pytest.fixture
def two_tray_config() -> TrayConfiguration:
    """Standard two-plate setup: P1 and P2, P2 rotated 180 degrees."""
    p1 = Tray("P1", qty_x_axis=12, qty_y_axis=8)
    p2 = Tray("P2", qty_x_axis=12, qty_y_axis=8)
    return TrayConfiguration(
        name="standard",
        assignments=(
            TrayAssignment(p1, order_sequence=1, rotation_degrees=0),
            TrayAssignment(p2, order_sequence=2, rotation_degrees=180),
        ),
        experiment_default=True,
    )


@pytest.fixture
def probes() -> list[TemperatureProbe]:
    return [TemperatureProbe("Probe 1", 1), TemperatureProbe("Probe 2", 2)]


@pytest.fixture
def ramp_samples(at):
    """Build probe samples for two probes from a list of temperatures.

    Probe 1 reads ``t + 0.5`` and probe 2 reads ``t - 0.5``, so every
    reading averages exactly ``t``.
    """

    def _ramp(temperatures: list[float]) -> list[ProbeSample]:
        samples = []
        for i, t in enumerate(temperatures):
            samples.append(ProbeSample(probe_index=1, raw_value=t + 0.5, timestamp=at(i)))
            samples.append(ProbeSample(probe_index=2, raw_value=t - 0.5, timestamp=at(i)))
        return samples

    return _ramp
