"""FreezingResultReducer — collapse transition histories to freezing outcomes."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from freezeassay.core.exceptions import WellNotFoundError
from freezeassay.core.models import (
    FreezingResult,
    PhaseState,
    TemperatureReading,
    WellPhaseTransition,
)


class FreezingResultReducer:
    """Reduce per-well transitions to a single FreezingResult.

    The freezing temperature is the average probe temperature of the reading
    at the first accepted liquid-to-frozen transition.
    """

    def __init__(self, readings: list[TemperatureReading]) -> None:
        self._readings = readings
        self._start = readings[0].timestamp if readings else None

    def reduce(
        self,
        well_id: int,
        transitions: Iterable[WellPhaseTransition],
        region: str | None = None,
    ) -> FreezingResult:
        """Reduce one well's transitions.

        Raises:
            WellNotFoundError: If a transition references another well, or a
                reading index outside the run.
        """
        first_freeze: WellPhaseTransition | None = None
        for t in transitions:
            if t.well_id != well_id:
                raise WellNotFoundError(t.well_id)
            if not 0 <= t.reading_index < len(self._readings):
                raise WellNotFoundError(well_id)
            if (
                first_freeze is None
                and not t.is_anomaly
                and t.previous_state == PhaseState.LIQUID
                and t.new_state == PhaseState.FROZEN
            ):
                first_freeze = t

        if first_freeze is None:
            return FreezingResult(
                well_id=well_id, freezing_temperature=None, is_frozen=False, region=region,
            )

        reading = self._readings[first_freeze.reading_index]
        elapsed = (
            (first_freeze.timestamp - self._start).total_seconds()
            if self._start is not None else None
        )
        return FreezingResult(
            well_id=well_id,
            freezing_temperature=reading.average,
            is_frozen=True,
            region=region,
            frozen_at=first_freeze.timestamp,
            nucleation_time_seconds=elapsed,
        )


@dataclass(frozen=True)
class NucleationStatistics:
    """Summary of freezing outcomes for a group of wells (e.g. one region)."""

    total_wells: int = 0
    frozen_count: int = 0
    liquid_count: int = 0
    success_rate: float = 0.0
    mean_nucleation_temperature: float | None = None
    median_nucleation_time_seconds: float | None = None

    @classmethod
    def from_results(cls, results: Iterable[FreezingResult]) -> NucleationStatistics:
        results = list(results)
        total = len(results)
        frozen = [r for r in results if r.is_frozen]
        temps = [r.freezing_temperature for r in frozen if r.freezing_temperature is not None]
        times = [r.nucleation_time_seconds for r in frozen if r.nucleation_time_seconds is not None]
        return cls(
            total_wells=total,
            frozen_count=len(frozen),
            liquid_count=total - len(frozen),
            success_rate=len(frozen) / total if total else 0.0,
            mean_nucleation_temperature=math.fsum(temps) / len(temps) if temps else None,
            median_nucleation_time_seconds=float(np.median(times)) if times else None,
        )
