"""AnalysisPipeline — run the freezing-assay engine for one experiment."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from freezeassay.analysis.aggregation import RegionAggregator, RegionCurve
from freezeassay.analysis.alignment import TemperatureAligner
from freezeassay.analysis.concentration import InpConcentrationCalculator
from freezeassay.analysis.config import AnalysisConfig
from freezeassay.analysis.detection import (
    PhaseTransitionDetector,
    WellDetection,
    group_observations,
)
from freezeassay.analysis.geometry import TrayGeometry
from freezeassay.analysis.results import FreezingResultReducer, NucleationStatistics
from freezeassay.core.exceptions import (
    AggregationError,
    ConcentrationError,
    DetectionError,
)
from freezeassay.core.models import (
    FreezingResult,
    InpConcentration,
    ProbeSample,
    Region,
    TemperatureProbe,
    TemperatureReading,
    TrayConfiguration,
    Well,
    WellObservation,
    WellPhaseTransition,
)

logger = logging.getLogger(__name__)

# Pluggable frozen/liquid classifier: (well, reading) -> is_frozen, or None
# when the classifier has no verdict for that reading.
ObservationSource = Callable[[Well, TemperatureReading], "bool | None"]


@dataclass(frozen=True)
class AnalysisInput:
    """Everything one analysis run consumes.

    Exactly one of ``observations`` or ``observation_source`` supplies the
    per-well frozen signal.
    """

    configuration: TrayConfiguration
    probes: list[TemperatureProbe]
    samples: list[ProbeSample]
    observations: list[WellObservation] = field(default_factory=list)
    regions: list[Region] = field(default_factory=list)
    observation_source: ObservationSource | None = None

    def __post_init__(self) -> None:
        names = [r.name for r in self.regions]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate region names: {', '.join(dupes)}")
        if self.observations and self.observation_source is not None:
            raise ValueError("Provide observations or observation_source, not both")


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one analysis run.

    Attributes:
        status: "completed", or "completed_with_warnings" when any well or
            region was skipped.
        warnings: Per-region problems (skipped regions, excluded wells).
        errors: Per-well structural problems (wells dropped from the run).
    """

    status: str
    wells: list[Well]
    readings: list[TemperatureReading]
    transitions: list[WellPhaseTransition]
    freezing_results: list[FreezingResult]
    concentrations: list[InpConcentration]
    curves: dict[str, RegionCurve] = field(default_factory=dict)
    statistics: dict[str, NucleationStatistics] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    rejected_flickers: int = 0
    anomalies: int = 0
    elapsed_seconds: float = 0.0


class AnalysisPipeline:
    """Geometry, alignment, detection, reduction, aggregation, concentration.

    Geometry and alignment errors propagate and abort the run. Detection,
    aggregation and concentration errors are isolated to their well or
    region and reported in the result.

    Args:
        config: Analysis parameters. Defaults to ``AnalysisConfig()``.
    """

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self._config = config or AnalysisConfig()

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def run(self, inputs: AnalysisInput) -> AnalysisResult:
        """Run the full pipeline.

        Raises:
            GeometryError: If the tray configuration is invalid.
            AlignmentError: If the probe samples are inconsistent or unsorted.
        """
        start = time.monotonic()
        warnings: list[str] = []
        errors: list[str] = []

        geometry = TrayGeometry(inputs.configuration)
        wells = geometry.wells()
        readings = TemperatureAligner(inputs.probes).align(inputs.samples)

        if inputs.observation_source is not None:
            observations = _observe(wells, readings, inputs.observation_source)
        else:
            observations = inputs.observations

        # --- Detection (per well) ---
        detector = PhaseTransitionDetector(
            readings, (w.id for w in wells), self._config.debounce_count,
        )
        detections, failed_wells = self._detect(
            detector, group_observations(observations), errors,
        )
        transitions_by_well = {d.well_id: d.transitions for d in detections}

        # --- Aggregation (per region) ---
        aggregator = RegionAggregator(geometry, readings)
        curves = self._aggregate(
            aggregator, inputs.regions, transitions_by_well, failed_wells, warnings,
        )

        # --- Reduction (per well) ---
        well_region = aggregator.well_region_map(inputs.regions)
        reducer = FreezingResultReducer(readings)
        freezing_results = [
            reducer.reduce(w.id, transitions_by_well.get(w.id, []), well_region.get(w.id))
            for w in wells
            if w.id not in failed_wells
        ]

        # --- Concentration (per region) ---
        concentrations = self._concentrations(inputs.regions, curves, readings, warnings)

        statistics = {
            name: NucleationStatistics.from_results(
                r for r in freezing_results if r.region == name
            )
            for name in sorted(curves)
        }

        transitions = sorted(
            (t for d in detections for t in d.transitions),
            key=lambda t: (t.well_id, t.reading_index),
        )
        result = AnalysisResult(
            status="completed_with_warnings" if (warnings or errors) else "completed",
            wells=wells,
            readings=readings,
            transitions=transitions,
            freezing_results=freezing_results,
            concentrations=concentrations,
            curves=curves,
            statistics=statistics,
            warnings=warnings,
            errors=errors,
            rejected_flickers=sum(d.rejected_flickers for d in detections),
            anomalies=sum(d.anomalies for d in detections),
            elapsed_seconds=round(time.monotonic() - start, 3),
        )
        logger.info(
            "Analysis %s: %d wells, %d readings, %d transitions, %d regions, "
            "%d warnings, %d errors",
            result.status, len(wells), len(readings), len(transitions),
            len(curves), len(warnings), len(errors),
        )
        return result

    def _detect(
        self,
        detector: PhaseTransitionDetector,
        grouped: dict[int, list[WellObservation]],
        errors: list[str],
    ) -> tuple[list[WellDetection], set[int]]:
        detections: list[WellDetection] = []
        failed: set[int] = set()
        with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
            futures = {
                pool.submit(detector.detect_well, well_id, obs): well_id
                for well_id, obs in sorted(grouped.items())
            }
            for future in as_completed(futures):
                well_id = futures[future]
                try:
                    detections.append(future.result())
                except DetectionError as exc:
                    logger.warning("Detection failed: %s", exc)
                    errors.append(str(exc))
                    failed.add(well_id)
        detections.sort(key=lambda d: d.well_id)
        errors.sort()
        return detections, failed

    def _aggregate(
        self,
        aggregator: RegionAggregator,
        regions: list[Region],
        transitions_by_well: dict[int, list[WellPhaseTransition]],
        failed_wells: set[int],
        warnings: list[str],
    ) -> dict[str, RegionCurve]:
        def aggregate_one(region: Region) -> RegionCurve:
            excluded = set(aggregator.wells_in_region(region)) & failed_wells
            if excluded:
                warnings.append(
                    f"region {region.name!r}: excluded {len(excluded)} well(s) "
                    "with invalid observation streams"
                )
            return aggregator.aggregate(region, transitions_by_well, exclude=excluded)

        curves: dict[str, RegionCurve] = {}
        with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
            futures = {pool.submit(aggregate_one, r): r for r in regions}
            for future in as_completed(futures):
                region = futures[future]
                try:
                    curves[region.name] = future.result()
                except AggregationError as exc:
                    logger.warning("Skipping region: %s", exc)
                    warnings.append(str(exc))
        warnings.sort()
        return dict(sorted(curves.items()))

    def _concentrations(
        self,
        regions: list[Region],
        curves: dict[str, RegionCurve],
        readings: list[TemperatureReading],
        warnings: list[str],
    ) -> list[InpConcentration]:
        calculator = InpConcentrationCalculator(self._config.droplet_volume_ml)
        rows: list[InpConcentration] = []
        for region in sorted(regions, key=lambda r: r.name):
            curve = curves.get(region.name)
            if curve is None:
                continue
            background = (
                curves.get(region.background_region)
                if region.background_region is not None else None
            )
            try:
                rows.extend(calculator.calculate(curve, readings, background))
            except ConcentrationError as exc:
                logger.warning("Skipping concentration: %s", exc)
                warnings.append(str(exc))
        return rows


def _observe(
    wells: list[Well],
    readings: list[TemperatureReading],
    source: ObservationSource,
) -> list[WellObservation]:
    """Build an observation stream by querying a classifier per well and reading."""
    observations: list[WellObservation] = []
    for well in wells:
        for reading in readings:
            verdict = source(well, reading)
            if verdict is None:
                continue
            observations.append(
                WellObservation(well_id=well.id, timestamp=reading.timestamp, is_frozen=bool(verdict))
            )
    return observations
