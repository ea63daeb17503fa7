"""Data models for the freezeassay core module."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum

VALID_ROTATIONS = frozenset({0, 90, 180, 270})

_COORDINATE_RE = re.compile(r"^([A-Z])([0-9]+)$")


def parse_well_coordinate(coordinate: str) -> tuple[int, int]:
    """Convert a display coordinate like ``"H12"`` to 0-based ``(row, col)``.

    Rows are single upper-case letters (A = 0), columns are 1-based numbers.

    Raises:
        ValueError: If the coordinate is malformed.
    """
    match = _COORDINATE_RE.match(coordinate)
    if match is None:
        raise ValueError(
            f"Invalid coordinate format, must be like 'A1', provided: {coordinate!r}"
        )
    column = int(match.group(2))
    if column < 1:
        raise ValueError(
            f"Invalid column number in {coordinate!r}, must be a positive integer"
        )
    return ord(match.group(1)) - ord("A"), column - 1


def format_well_coordinate(row: int, col: int) -> str:
    """Convert a 0-based ``(row, col)`` to a display coordinate like ``"A1"``."""
    if row < 0 or col < 0:
        raise ValueError("Invalid coordinate")
    if row > 25:
        raise ValueError("Only supports A-Z for rows")
    return f"{chr(ord('A') + row)}{col + 1}"


class PhaseState(IntEnum):
    """Binary droplet state. Stored as 0/1 in the database."""

    LIQUID = 0
    FROZEN = 1


@dataclass(frozen=True)
class Tray:
    """Grid geometry of a physical tray (plate).

    ``qty_x_axis`` is the number of columns, ``qty_y_axis`` the number of rows,
    so a standard 96-well plate is ``Tray("P1", qty_x_axis=12, qty_y_axis=8)``.
    """

    name: str
    qty_x_axis: int
    qty_y_axis: int
    well_relative_diameter: float | None = None

    def __post_init__(self) -> None:
        if self.qty_x_axis < 1 or self.qty_y_axis < 1:
            raise ValueError(
                f"Tray {self.name!r} must have positive dimensions, "
                f"got {self.qty_y_axis}x{self.qty_x_axis}"
            )

    @property
    def n_rows(self) -> int:
        return self.qty_y_axis

    @property
    def n_cols(self) -> int:
        return self.qty_x_axis


@dataclass(frozen=True)
class TrayAssignment:
    """Placement of a Tray within a TrayConfiguration."""

    tray: Tray
    order_sequence: int
    rotation_degrees: int = 0
    origin: tuple[int, int] | None = None  # (row, col) in logical space


@dataclass(frozen=True)
class TrayConfiguration:
    """Named, immutable template of ordered, rotated tray assignments."""

    name: str
    assignments: tuple[TrayAssignment, ...]
    experiment_default: bool = False

    def assignment(self, order_sequence: int) -> TrayAssignment | None:
        for a in self.assignments:
            if a.order_sequence == order_sequence:
                return a
        return None

    def assignment_by_tray_name(self, tray_name: str) -> TrayAssignment | None:
        for a in self.assignments:
            if a.tray.name == tray_name:
                return a
        return None


@dataclass(frozen=True)
class Well:
    """A well in raw tray coordinates (0-based). ``id`` is the run-local index."""

    id: int
    tray_sequence: int
    row: int
    column: int


@dataclass(frozen=True)
class TemperatureProbe:
    """A temperature probe located by its column in the raw reading stream."""

    name: str
    column_index: int
    correction_factor: float = 1.0

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Probe name must not be empty")
        if self.column_index < 1:
            raise ValueError(
                f"Probe column index must be a positive integer, got {self.column_index}"
            )

    def correct(self, raw_value: float) -> float:
        return raw_value * self.correction_factor


@dataclass(frozen=True)
class ProbeSample:
    """One raw probe value as delivered by the ingestion collaborator."""

    probe_index: int
    raw_value: float
    timestamp: datetime


@dataclass(frozen=True)
class TemperatureReading:
    """All corrected probe values at one timestamp.

    ``values`` maps probe column index to the corrected value, or None when
    the probe reported nothing at this timestamp.
    """

    index: int
    timestamp: datetime
    values: dict[int, float | None] = field(default_factory=dict)

    @property
    def average(self) -> float | None:
        """Mean of the probes that reported, or None if none did."""
        present = [v for v in self.values.values() if v is not None]
        if not present:
            return None
        return math.fsum(present) / len(present)


@dataclass(frozen=True)
class WellObservation:
    """An external classifier's verdict on one well at one timestamp."""

    well_id: int
    timestamp: datetime
    is_frozen: bool


@dataclass(frozen=True)
class WellPhaseTransition:
    """A confirmed liquid/frozen state change of one well."""

    well_id: int
    reading_index: int
    timestamp: datetime
    previous_state: PhaseState
    new_state: PhaseState
    is_anomaly: bool = False


@dataclass(frozen=True)
class Region:
    """Rectangle of wells on one tray, in raw 0-based inclusive coordinates."""

    name: str
    tray_sequence: int
    row_min: int
    col_min: int
    row_max: int
    col_max: int
    treatment: str | None = None
    dilution_factor: float = 1.0
    is_background_key: bool = False
    background_region: str | None = None

    def __post_init__(self) -> None:
        if self.row_min > self.row_max or self.col_min > self.col_max:
            raise ValueError(
                f"Region {self.name!r} has inverted bounds: "
                f"rows {self.row_min}..{self.row_max}, cols {self.col_min}..{self.col_max}"
            )
        if self.row_min < 0 or self.col_min < 0:
            raise ValueError(f"Region {self.name!r} has negative bounds")
        if self.dilution_factor < 1:
            raise ValueError(
                f"Region {self.name!r} dilution_factor must be >= 1, "
                f"got {self.dilution_factor}"
            )
        if self.is_background_key and self.background_region is not None:
            raise ValueError(
                f"Background region {self.name!r} cannot itself reference a background"
            )

    def contains(self, tray_sequence: int, row: int, column: int) -> bool:
        return (
            tray_sequence == self.tray_sequence
            and self.row_min <= row <= self.row_max
            and self.col_min <= column <= self.col_max
        )


@dataclass(frozen=True)
class FreezingResult:
    """Terminal freezing outcome of one well."""

    well_id: int
    freezing_temperature: float | None
    is_frozen: bool
    region: str | None = None
    frozen_at: datetime | None = None
    nucleation_time_seconds: float | None = None


@dataclass(frozen=True)
class InpConcentration:
    """Nucleation-site density of one region at one sampled temperature."""

    region: str
    reading_index: int
    temperature: float
    nm_value: float
    error: float | None
    fraction_frozen: float
    frozen_count: int
    total_count: int


@dataclass(frozen=True)
class ExperimentInfo:
    """Metadata for an experiment registered in the store."""

    id: int
    name: str
    tray_configuration: str | None = None
    description: str = ""
