"""TemperatureAligner — merge per-probe samples into one ordered time series."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import datetime

from freezeassay.core.exceptions import AlignmentError
from freezeassay.core.models import ProbeSample, TemperatureProbe, TemperatureReading

logger = logging.getLogger(__name__)


class TemperatureAligner:
    """Align raw probe samples to one TemperatureReading per timestamp.

    The source stream must already be sorted by timestamp. The aligner never
    reorders; it rejects.

    Args:
        probes: Probes configured for the experiment. Column indices must be
            unique.
    """

    def __init__(self, probes: Iterable[TemperatureProbe]) -> None:
        self._probes: dict[int, TemperatureProbe] = {}
        for probe in probes:
            if probe.column_index in self._probes:
                raise ValueError(
                    f"Duplicate probe column index {probe.column_index} "
                    f"({self._probes[probe.column_index].name!r}, {probe.name!r})"
                )
            self._probes[probe.column_index] = probe

    @property
    def probe_indices(self) -> list[int]:
        return sorted(self._probes)

    def align(self, samples: Iterable[ProbeSample]) -> list[TemperatureReading]:
        """Group samples by timestamp and apply probe correction factors.

        Args:
            samples: Raw samples in non-decreasing timestamp order.

        Returns:
            Readings in timestamp order, each listing every configured probe
            (None where the probe reported nothing).

        Raises:
            AlignmentError: If timestamps go backwards, a probe reports two
                different values for one timestamp, a value is NaN, or a
                sample names an unconfigured probe.
        """
        readings: list[TemperatureReading] = []
        current_ts: datetime | None = None
        current_raw: dict[int, float] = {}

        def flush() -> None:
            if current_ts is None:
                return
            values: dict[int, float | None] = {}
            for idx in self.probe_indices:
                raw = current_raw.get(idx)
                values[idx] = self._probes[idx].correct(raw) if raw is not None else None
            readings.append(
                TemperatureReading(index=len(readings), timestamp=current_ts, values=values)
            )

        n_samples = 0
        for sample in samples:
            n_samples += 1
            if sample.probe_index not in self._probes:
                raise AlignmentError(
                    f"Sample for unconfigured probe index {sample.probe_index}",
                    timestamp=sample.timestamp,
                )
            if math.isnan(sample.raw_value):
                raise AlignmentError(
                    f"Probe {sample.probe_index} reported a NaN value", timestamp=sample.timestamp,
                )
            if current_ts is not None and sample.timestamp < current_ts:
                raise AlignmentError(
                    "Non-monotonic timestamp in source stream", timestamp=sample.timestamp,
                )
            if sample.timestamp != current_ts:
                flush()
                current_ts = sample.timestamp
                current_raw = {}

            previous = current_raw.get(sample.probe_index)
            if previous is not None and previous != sample.raw_value:
                raise AlignmentError(
                    f"Probe {sample.probe_index} reported conflicting values "
                    f"{previous} and {sample.raw_value}",
                    timestamp=sample.timestamp,
                )
            current_raw[sample.probe_index] = sample.raw_value
        flush()

        logger.info(
            "Aligned %d probe samples into %d readings (%d probes)",
            n_samples, len(readings), len(self._probes),
        )
        return readings


def coldest_reading_index(readings: list[TemperatureReading]) -> int | None:
    """Index of the reading with the lowest average temperature.

    Ties resolve to the earliest reading. Returns None when no reading has a
    temperature.
    """
    coldest: int | None = None
    coldest_value: float | None = None
    for reading in readings:
        avg = reading.average
        if avg is None:
            continue
        if coldest_value is None or avg < coldest_value:
            coldest, coldest_value = reading.index, avg
    return coldest
