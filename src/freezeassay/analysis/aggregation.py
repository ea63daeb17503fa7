"""RegionAggregator — fraction of each region's wells frozen at every reading."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass

import numpy as np

from freezeassay.analysis.geometry import TrayGeometry
from freezeassay.core.exceptions import AggregationError, GeometryError
from freezeassay.core.models import Region, TemperatureReading, WellPhaseTransition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionCurve:
    """Frozen counts of one region over the reading timeline.

    Attributes:
        region: The region definition.
        well_ids: Wells inside the (clipped) rectangle, ascending.
        frozen_counts: Int array, one entry per reading index.
    """

    region: Region
    well_ids: tuple[int, ...]
    frozen_counts: np.ndarray

    @property
    def total(self) -> int:
        return len(self.well_ids)

    @property
    def fraction_frozen(self) -> np.ndarray:
        return self.frozen_counts / float(self.total)


def state_timeline(
    transitions: Iterable[WellPhaseTransition], n_readings: int,
) -> np.ndarray:
    """Boolean frozen-state of a well at every reading index.

    Anomalous transitions (late-ramp thaws) are ignored.
    """
    states = np.zeros(n_readings, dtype=bool)
    for t in sorted(transitions, key=lambda t: t.reading_index):
        if t.is_anomaly:
            continue
        states[t.reading_index:] = bool(t.new_state)
    return states


class RegionAggregator:
    """Compute fraction-frozen curves for rectangular, tray-scoped regions.

    Regions on one tray are assumed disjoint; that is checked when regions
    are created, not here.
    """

    def __init__(self, geometry: TrayGeometry, readings: list[TemperatureReading]) -> None:
        self._geometry = geometry
        self._n_readings = len(readings)

    def wells_in_region(self, region: Region) -> list[int]:
        """Well ids covered by the region after clipping to the tray grid.

        Raises:
            AggregationError: If the clipped rectangle holds no wells or the
                region's tray is not part of the configuration.
        """
        try:
            n_rows, n_cols = self._geometry.tray_shape(region.tray_sequence)
        except GeometryError as exc:
            raise AggregationError(str(exc), region=region.name) from exc

        row_lo, row_hi = max(region.row_min, 0), min(region.row_max, n_rows - 1)
        col_lo, col_hi = max(region.col_min, 0), min(region.col_max, n_cols - 1)
        if row_lo > row_hi or col_lo > col_hi:
            raise AggregationError(
                "rectangle contains no wells after clipping to the "
                f"{n_rows}x{n_cols} tray grid",
                region=region.name,
            )
        return sorted(
            self._geometry.well_id(region.tray_sequence, r, c)
            for r in range(row_lo, row_hi + 1)
            for c in range(col_lo, col_hi + 1)
        )

    def aggregate(
        self,
        region: Region,
        transitions_by_well: Mapping[int, list[WellPhaseTransition]],
        exclude: Collection[int] = frozenset(),
    ) -> RegionCurve:
        """Count frozen wells of ``region`` at every reading.

        Wells without any transition count as liquid throughout. Wells in
        ``exclude`` (e.g. wells whose observation stream was rejected) are
        left out of the region entirely.

        Raises:
            AggregationError: If no wells remain.
        """
        well_ids = [w for w in self.wells_in_region(region) if w not in exclude]
        if not well_ids:
            raise AggregationError(
                "no wells left after excluding invalid wells", region=region.name,
            )
        if self._n_readings == 0:
            counts = np.zeros(0, dtype=np.int64)
        else:
            matrix = np.vstack([
                state_timeline(transitions_by_well.get(w, []), self._n_readings)
                for w in well_ids
            ])
            counts = matrix.sum(axis=0).astype(np.int64)
        logger.debug(
            "Region %r: %d wells, %d frozen at end of ramp",
            region.name, len(well_ids), int(counts[-1]) if counts.size else 0,
        )
        return RegionCurve(region=region, well_ids=tuple(well_ids), frozen_counts=counts)

    def well_region_map(self, regions: Iterable[Region]) -> dict[int, str]:
        """Map each well id to the region containing it.

        Regions that resolve to no wells are left out.
        """
        mapping: dict[int, str] = {}
        for region in regions:
            try:
                ids = self.wells_in_region(region)
            except AggregationError:
                continue
            for w in ids:
                mapping[w] = region.name
        return mapping
