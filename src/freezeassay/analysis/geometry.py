"""TrayGeometry — map rotated, sequenced trays into one logical well space."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from freezeassay.core.exceptions import GeometryError
from freezeassay.core.models import (
    VALID_ROTATIONS,
    TrayAssignment,
    TrayConfiguration,
    Well,
    parse_well_coordinate,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogicalWell:
    """A well's identity and position in the shared multi-tray space."""

    id: int
    tray_sequence: int
    raw_row: int
    raw_col: int
    row: int
    col: int


@dataclass(frozen=True)
class _Footprint:
    assignment: TrayAssignment
    origin_row: int
    origin_col: int
    n_rows: int  # after rotation
    n_cols: int
    first_id: int

    def overlaps(self, other: _Footprint) -> bool:
        return not (
            self.origin_row + self.n_rows <= other.origin_row
            or other.origin_row + other.n_rows <= self.origin_row
            or self.origin_col + self.n_cols <= other.origin_col
            or other.origin_col + other.n_cols <= self.origin_col
        )


def rotate(
    row: int, col: int, n_rows: int, n_cols: int, rotation_degrees: int,
) -> tuple[int, int]:
    """Rotate a raw 0-based tray coordinate into the tray's rotated frame.

    Raises:
        GeometryError: If rotation_degrees is not one of 0, 90, 180, 270.
    """
    max_row = n_rows - 1
    max_col = n_cols - 1
    if rotation_degrees == 0:
        return row, col
    if rotation_degrees == 90:
        return col, max_row - row
    if rotation_degrees == 180:
        return max_row - row, max_col - col
    if rotation_degrees == 270:
        return max_col - col, row
    raise GeometryError(
        f"Invalid rotation {rotation_degrees!r}; must be one of {sorted(VALID_ROTATIONS)}"
    )


class TrayGeometry:
    """Resolves ``(tray_sequence, raw_row, raw_col)`` to logical wells.

    Trays are placed in ascending ``order_sequence`` side by side along the
    column axis, unless an assignment pins an explicit ``origin``. Well ids
    are dense: each tray takes a contiguous block in sequence order,
    row-major over its raw grid.

    Raises:
        GeometryError: On invalid rotation, duplicate sequence index, or
            overlapping trays.
    """

    def __init__(self, configuration: TrayConfiguration) -> None:
        self._configuration = configuration
        self._footprints: dict[int, _Footprint] = {}
        self._build()

    def _build(self) -> None:
        assignments = sorted(
            self._configuration.assignments, key=lambda a: a.order_sequence,
        )
        seen: set[int] = set()
        next_col = 0
        next_id = 0
        for a in assignments:
            if a.order_sequence in seen:
                raise GeometryError(
                    f"Duplicate sequence index {a.order_sequence} in "
                    f"configuration {self._configuration.name!r}"
                )
            seen.add(a.order_sequence)
            if a.rotation_degrees not in VALID_ROTATIONS:
                raise GeometryError(
                    f"Invalid rotation {a.rotation_degrees!r} for tray "
                    f"{a.tray.name!r}; must be one of {sorted(VALID_ROTATIONS)}"
                )

            if a.rotation_degrees in (90, 270):
                n_rows, n_cols = a.tray.n_cols, a.tray.n_rows
            else:
                n_rows, n_cols = a.tray.n_rows, a.tray.n_cols

            if a.origin is not None:
                origin_row, origin_col = a.origin
            else:
                origin_row, origin_col = 0, next_col

            footprint = _Footprint(
                assignment=a,
                origin_row=origin_row,
                origin_col=origin_col,
                n_rows=n_rows,
                n_cols=n_cols,
                first_id=next_id,
            )
            for other in self._footprints.values():
                if footprint.overlaps(other):
                    raise GeometryError(
                        f"Trays {a.tray.name!r} and {other.assignment.tray.name!r} "
                        f"overlap in configuration {self._configuration.name!r}"
                    )
            self._footprints[a.order_sequence] = footprint
            next_col = max(next_col, origin_col + n_cols)
            next_id += a.tray.n_rows * a.tray.n_cols

        self._n_wells = next_id
        logger.debug(
            "Resolved configuration %r: %d trays, %d wells",
            self._configuration.name, len(self._footprints), self._n_wells,
        )

    # --- Properties ---

    @property
    def configuration(self) -> TrayConfiguration:
        return self._configuration

    @property
    def n_wells(self) -> int:
        return self._n_wells

    @property
    def shape(self) -> tuple[int, int]:
        """(rows, cols) of the bounding logical space."""
        rows = max((f.origin_row + f.n_rows for f in self._footprints.values()), default=0)
        cols = max((f.origin_col + f.n_cols for f in self._footprints.values()), default=0)
        return rows, cols

    # --- Resolution ---

    def _footprint(self, tray_sequence: int) -> _Footprint:
        try:
            return self._footprints[tray_sequence]
        except KeyError:
            raise GeometryError(
                f"No tray with sequence {tray_sequence} in configuration "
                f"{self._configuration.name!r}"
            ) from None

    def tray_shape(self, tray_sequence: int) -> tuple[int, int]:
        """Raw (unrotated) (rows, cols) of the tray at ``tray_sequence``."""
        tray = self._footprint(tray_sequence).assignment.tray
        return tray.n_rows, tray.n_cols

    def resolve(self, tray_sequence: int, raw_row: int, raw_col: int) -> LogicalWell:
        """Map a raw tray coordinate to its logical well."""
        fp = self._footprint(tray_sequence)
        tray = fp.assignment.tray
        if not (0 <= raw_row < tray.n_rows and 0 <= raw_col < tray.n_cols):
            raise GeometryError(
                f"Coordinate ({raw_row}, {raw_col}) outside tray {tray.name!r} "
                f"({tray.n_rows}x{tray.n_cols})"
            )
        row, col = rotate(
            raw_row, raw_col, tray.n_rows, tray.n_cols, fp.assignment.rotation_degrees,
        )
        return LogicalWell(
            id=fp.first_id + raw_row * tray.n_cols + raw_col,
            tray_sequence=tray_sequence,
            raw_row=raw_row,
            raw_col=raw_col,
            row=fp.origin_row + row,
            col=fp.origin_col + col,
        )

    def well_id(self, tray_sequence: int, raw_row: int, raw_col: int) -> int:
        return self.resolve(tray_sequence, raw_row, raw_col).id

    def well_id_for_coordinate(self, tray_name: str, coordinate: str) -> int:
        """Resolve a tray name plus display coordinate (``"P1"``, ``"A1"``)."""
        assignment = self._configuration.assignment_by_tray_name(tray_name)
        if assignment is None:
            raise GeometryError(
                f"Tray not found: {tray_name!r} in configuration "
                f"{self._configuration.name!r}"
            )
        row, col = parse_well_coordinate(coordinate)
        return self.well_id(assignment.order_sequence, row, col)

    def wells(self) -> list[Well]:
        """All wells of the configuration, ordered by id."""
        result: list[Well] = []
        for seq in sorted(self._footprints):
            tray = self._footprints[seq].assignment.tray
            for r in range(tray.n_rows):
                for c in range(tray.n_cols):
                    result.append(
                        Well(id=self.well_id(seq, r, c), tray_sequence=seq, row=r, column=c)
                    )
        return result
