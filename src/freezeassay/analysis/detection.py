"""PhaseTransitionDetector — debounced per-well liquid/frozen state tracking."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from freezeassay.analysis.alignment import coldest_reading_index
from freezeassay.core.exceptions import DetectionError
from freezeassay.core.models import (
    PhaseState,
    TemperatureReading,
    WellObservation,
    WellPhaseTransition,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WellDetection:
    """Detection output for one well.

    Attributes:
        well_id: The well.
        transitions: Accepted transitions in timestamp order.
        rejected_flickers: Runs of differing observations shorter than the
            debounce count (including an unconfirmed run at stream end).
        anomalies: Number of transitions flagged as late-ramp thaws.
    """

    well_id: int
    transitions: list[WellPhaseTransition] = field(default_factory=list)
    rejected_flickers: int = 0
    anomalies: int = 0


class WellDetector:
    """State machine for a single well: a PhaseState plus a bounded run counter.

    A state change is accepted only after ``debounce_count`` consecutive
    observations disagree with the tracked state. The accepted transition is
    dated at the onset of that run.
    """

    def __init__(self, debounce_count: int = 1) -> None:
        if debounce_count < 1:
            raise ValueError(f"debounce_count must be >= 1, got {debounce_count}")
        self._debounce = debounce_count
        self.state = PhaseState.LIQUID
        self.rejected_flickers = 0
        self._run_length = 0
        self._onset: tuple[int, datetime] | None = None

    @property
    def pending(self) -> int:
        """Length of the current unconfirmed run."""
        return self._run_length

    def observe(
        self, reading_index: int, timestamp: datetime, is_frozen: bool,
    ) -> tuple[int, datetime, PhaseState, PhaseState] | None:
        """Feed one observation.

        Returns:
            ``(reading_index, timestamp, previous_state, new_state)`` of the
            run onset when a transition is confirmed, else None.
        """
        observed = PhaseState.FROZEN if is_frozen else PhaseState.LIQUID
        if observed == self.state:
            if self._run_length:
                self.rejected_flickers += 1
            self._run_length = 0
            self._onset = None
            return None

        if self._run_length == 0:
            self._onset = (reading_index, timestamp)
        self._run_length += 1
        if self._run_length < self._debounce:
            return None

        onset_index, onset_ts = self._onset  # type: ignore[misc]
        previous, self.state = self.state, observed
        self._run_length = 0
        self._onset = None
        return onset_index, onset_ts, previous, observed

    def finish(self) -> None:
        """Close the stream; an unconfirmed trailing run counts as flicker."""
        if self._run_length:
            self.rejected_flickers += 1
        self._run_length = 0
        self._onset = None


class PhaseTransitionDetector:
    """Detect per-well phase transitions against a shared reading timeline.

    Args:
        readings: Aligned temperature readings for the experiment.
        well_ids: Ids of all wells known to the run.
        debounce_count: Consecutive matching observations required before a
            transition is accepted.
    """

    def __init__(
        self,
        readings: list[TemperatureReading],
        well_ids: Iterable[int],
        debounce_count: int = 1,
    ) -> None:
        if debounce_count < 1:
            raise ValueError(f"debounce_count must be >= 1, got {debounce_count}")
        self._readings = readings
        self._reading_index = {r.timestamp: r.index for r in readings}
        self._well_ids = frozenset(well_ids)
        self._debounce = debounce_count
        self._coldest = coldest_reading_index(readings)

    @property
    def coldest_index(self) -> int | None:
        return self._coldest

    def detect_well(
        self, well_id: int, observations: Iterable[WellObservation],
    ) -> WellDetection:
        """Run the state machine over one well's observation stream.

        Raises:
            DetectionError: If the well is unknown, an observation belongs to
                another well, its timestamp matches no reading, or timestamps
                are not strictly increasing.
        """
        if well_id not in self._well_ids:
            raise DetectionError("observation for unknown well", well_id=well_id)

        detector = WellDetector(self._debounce)
        transitions: list[WellPhaseTransition] = []
        anomalies = 0
        last_index = -1

        for obs in observations:
            if obs.well_id != well_id:
                raise DetectionError(
                    f"stream contains observation for well {obs.well_id}",
                    well_id=well_id,
                )
            idx = self._reading_index.get(obs.timestamp)
            if idx is None:
                raise DetectionError(
                    f"observation at {obs.timestamp.isoformat()} is not aligned "
                    "to any temperature reading",
                    well_id=well_id,
                )
            if idx <= last_index:
                raise DetectionError(
                    f"observation at {obs.timestamp.isoformat()} is out of order",
                    well_id=well_id,
                )
            last_index = idx

            accepted = detector.observe(idx, obs.timestamp, obs.is_frozen)
            if accepted is None:
                continue
            onset_index, onset_ts, previous, new = accepted
            is_anomaly = (
                new == PhaseState.LIQUID
                and self._coldest is not None
                and onset_index > self._coldest
            )
            if is_anomaly:
                anomalies += 1
                logger.debug(
                    "Well %d thawed after the coldest reading at %s",
                    well_id, onset_ts.isoformat(),
                )
            transitions.append(
                WellPhaseTransition(
                    well_id=well_id,
                    reading_index=onset_index,
                    timestamp=onset_ts,
                    previous_state=previous,
                    new_state=new,
                    is_anomaly=is_anomaly,
                )
            )

        detector.finish()
        return WellDetection(
            well_id=well_id,
            transitions=transitions,
            rejected_flickers=detector.rejected_flickers,
            anomalies=anomalies,
        )


def group_observations(
    observations: Iterable[WellObservation],
) -> dict[int, list[WellObservation]]:
    """Split a mixed observation stream per well, preserving order."""
    grouped: dict[int, list[WellObservation]] = defaultdict(list)
    for obs in observations:
        grouped[obs.well_id].append(obs)
    return dict(grouped)
