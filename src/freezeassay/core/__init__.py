"""freezeassay core — AssayStore, schema, models, exceptions."""

from freezeassay.core.assay_store import AssayStore
from freezeassay.core.exceptions import (
    AggregationError,
    AlignmentError,
    AnalysisError,
    ConcentrationError,
    DetectionError,
    DuplicateError,
    ExperimentError,
    ExperimentNotFoundError,
    GeometryError,
    SchemaVersionError,
    StoreNotFoundError,
    TrayConfigurationNotFoundError,
    WellNotFoundError,
)
from freezeassay.core.models import (
    ExperimentInfo,
    FreezingResult,
    InpConcentration,
    PhaseState,
    ProbeSample,
    Region,
    TemperatureProbe,
    TemperatureReading,
    Tray,
    TrayAssignment,
    TrayConfiguration,
    Well,
    WellObservation,
    WellPhaseTransition,
)

__all__ = [
    "AssayStore",
    "ExperimentInfo",
    "FreezingResult",
    "InpConcentration",
    "PhaseState",
    "ProbeSample",
    "Region",
    "TemperatureProbe",
    "TemperatureReading",
    "Tray",
    "TrayAssignment",
    "TrayConfiguration",
    "Well",
    "WellObservation",
    "WellPhaseTransition",
    "ExperimentError",
    "StoreNotFoundError",
    "ExperimentNotFoundError",
    "TrayConfigurationNotFoundError",
    "WellNotFoundError",
    "DuplicateError",
    "SchemaVersionError",
    "AnalysisError",
    "GeometryError",
    "AlignmentError",
    "DetectionError",
    "AggregationError",
    "ConcentrationError",
]
