"""Exception classes for the freezeassay core and analysis modules."""

from __future__ import annotations

from datetime import datetime


class ExperimentError(Exception):
    """Base exception for all experiment-related errors."""


class StoreNotFoundError(ExperimentError):
    """Raised when opening a nonexistent assay store directory."""

    def __init__(self, path: str | None = None) -> None:
        msg = f"Assay store not found: {path}" if path else "Assay store not found"
        super().__init__(msg)
        self.path = path


class ExperimentNotFoundError(ExperimentError):
    """Raised when referencing an undefined experiment."""

    def __init__(self, name: str | None = None) -> None:
        msg = f"Experiment not found: {name}" if name else "Experiment not found"
        super().__init__(msg)
        self.name = name


class TrayConfigurationNotFoundError(ExperimentError):
    """Raised when referencing an undefined tray configuration."""

    def __init__(self, name: str | None = None) -> None:
        msg = (
            f"Tray configuration not found: {name}" if name
            else "Tray configuration not found"
        )
        super().__init__(msg)
        self.name = name


class WellNotFoundError(ExperimentError):
    """Raised when a record references a well that is not part of the run."""

    def __init__(self, well_id: int | None = None) -> None:
        msg = f"Well not found: {well_id}" if well_id is not None else "Well not found"
        super().__init__(msg)
        self.well_id = well_id


class DuplicateError(ExperimentError):
    """Raised when adding a duplicate entity (tray, probe, region, etc.)."""

    def __init__(self, entity: str | None = None, name: str | None = None) -> None:
        if entity and name:
            msg = f"Duplicate {entity}: {name}"
        elif entity:
            msg = f"Duplicate {entity}"
        else:
            msg = "Duplicate entry"
        super().__init__(msg)
        self.entity = entity
        self.name = name


class SchemaVersionError(ExperimentError):
    """Raised when a store was written by an incompatible schema version."""

    def __init__(self, found: str, expected: str) -> None:
        super().__init__(
            f"Unsupported schema version {found} (expected {expected})"
        )
        self.found = found
        self.expected = expected


# ---------------------------------------------------------------------------
# Analysis engine
# ---------------------------------------------------------------------------


class AnalysisError(ExperimentError):
    """Base exception for failures inside the freezing-assay analysis engine."""


class GeometryError(AnalysisError):
    """Invalid tray configuration: bad rotation, clashing sequence, or overlap.

    Fatal: aborts the whole analysis run.
    """


class AlignmentError(AnalysisError):
    """Inconsistent or unsorted raw temperature samples.

    Fatal: aborts the whole analysis run.
    """

    def __init__(self, message: str, timestamp: datetime | None = None) -> None:
        if timestamp is not None:
            message = f"{message} (at {timestamp.isoformat()})"
        super().__init__(message)
        self.timestamp = timestamp


class DetectionError(AnalysisError):
    """Structurally invalid observation stream for one well.

    Fatal for that well only; other wells continue.
    """

    def __init__(self, message: str, well_id: int | None = None) -> None:
        if well_id is not None:
            message = f"well {well_id}: {message}"
        super().__init__(message)
        self.well_id = well_id


class AggregationError(AnalysisError):
    """A region resolved to zero wells. The region is skipped."""

    def __init__(self, message: str, region: str | None = None) -> None:
        if region is not None:
            message = f"region {region!r}: {message}"
        super().__init__(message)
        self.region = region


class ConcentrationError(AnalysisError):
    """Structurally inconsistent concentration input. The region is skipped."""

    def __init__(self, message: str, region: str | None = None) -> None:
        if region is not None:
            message = f"region {region!r}: {message}"
        super().__init__(message)
        self.region = region
