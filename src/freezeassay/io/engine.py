"""Layout and reading ingestion into an AssayStore."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from freezeassay.analysis.geometry import TrayGeometry
from freezeassay.core import AssayStore
from freezeassay.core.models import Region, TrayConfiguration
from freezeassay.io.models import AssayLayout, IngestResult, RegionSpec, SetupResult
from freezeassay.io.readers import read_probe_samples, read_well_observations

logger = logging.getLogger(__name__)


class LayoutLoader:
    """Registers an AssayLayout's trays, configuration, probes and regions.

    Re-applying the same layout is a no-op: entities that already exist with
    identical definitions are skipped with a warning. An existing entity with
    a different definition is an error, since configurations and regions are
    referenced by name.
    """

    def apply(self, layout: AssayLayout, store: AssayStore) -> SetupResult:
        """Apply a layout to the store.

        Raises:
            ValueError: If an existing entity conflicts with the layout, or a
                region does not fit the experiment's trays.
            ExperimentError: If a referenced configuration does not exist.
        """
        warnings: list[str] = []

        # Trays
        trays_added = 0
        existing_trays = {t.name: t for t in store.get_trays()}
        for tray in layout.trays:
            current = existing_trays.get(tray.name)
            if current is None:
                store.add_tray(
                    tray.name, tray.qty_x_axis, tray.qty_y_axis, tray.well_relative_diameter,
                )
                trays_added += 1
            elif current != tray:
                raise ValueError(
                    f"Tray {tray.name!r} already exists with a different definition"
                )
            else:
                warnings.append(f"Tray {tray.name!r} already registered, skipped")

        # Tray configuration
        config = layout.tray_configuration
        if config is not None:
            if config.name in store.get_tray_configurations():
                if store.get_tray_configuration(config.name) != config:
                    raise ValueError(
                        f"Tray configuration {config.name!r} already exists "
                        "with a different definition"
                    )
                warnings.append(
                    f"Tray configuration {config.name!r} already registered, skipped"
                )
            else:
                store.add_tray_configuration(
                    config.name, list(config.assignments), config.experiment_default,
                )

        if layout.experiment is None:
            if layout.probes or layout.regions:
                warnings.append("Layout has probes or regions but no experiment; ignored")
            return SetupResult(
                trays_added=trays_added,
                configuration=layout.tray_configuration_name,
                experiment=None,
                probes_added=0,
                regions_added=0,
                warnings=warnings,
            )

        # Experiment
        experiment = layout.experiment
        known = {e.name: e for e in store.get_experiments()}
        if experiment in known:
            info = known[experiment]
            if (
                layout.tray_configuration_name is not None
                and info.tray_configuration != layout.tray_configuration_name
            ):
                raise ValueError(
                    f"Experiment {experiment!r} already uses tray configuration "
                    f"{info.tray_configuration!r}"
                )
            warnings.append(f"Experiment {experiment!r} already registered, reused")
        else:
            store.add_experiment(
                experiment, layout.tray_configuration_name, layout.description,
            )

        # Probes
        probes_added = 0
        existing_probes = set(store.get_probes(experiment))
        for probe in layout.probes:
            if probe in existing_probes:
                continue
            store.add_probe(
                experiment, probe.name, probe.column_index, probe.correction_factor,
            )
            probes_added += 1

        # Regions
        regions_added = 0
        if layout.regions:
            configuration = store.get_experiment_tray_configuration(experiment)
            existing_regions = {r.name: r for r in store.get_regions(experiment)}
            for spec in layout.regions:
                region = _resolve_region(spec, configuration)
                current = existing_regions.get(region.name)
                if current is None:
                    store.add_region(experiment, region)
                    regions_added += 1
                elif current != region:
                    raise ValueError(
                        f"Region {region.name!r} already exists with a different definition"
                    )

            names = {r.name for r in store.get_regions(experiment)}
            for spec in layout.regions:
                if spec.background_region is not None and spec.background_region not in names:
                    warnings.append(
                        f"Region {spec.name!r} references unknown background region "
                        f"{spec.background_region!r}"
                    )

        logger.info(
            "Applied layout to %r: %d trays, %d probes, %d regions",
            experiment, trays_added, probes_added, regions_added,
        )
        return SetupResult(
            trays_added=trays_added,
            configuration=layout.tray_configuration_name,
            experiment=experiment,
            probes_added=probes_added,
            regions_added=regions_added,
            warnings=warnings,
        )


def _resolve_region(spec: RegionSpec, configuration: TrayConfiguration) -> Region:
    assignment = configuration.assignment_by_tray_name(spec.tray)
    if assignment is None:
        raise ValueError(
            f"Region {spec.name!r} references tray {spec.tray!r}, which is not in "
            f"configuration {configuration.name!r}"
        )
    row_min, col_min, row_max, col_max = spec.bounds()
    return Region(
        name=spec.name,
        tray_sequence=assignment.order_sequence,
        row_min=row_min,
        col_min=col_min,
        row_max=row_max,
        col_max=col_max,
        treatment=spec.treatment,
        dilution_factor=spec.dilution_factor,
        is_background_key=spec.is_background_key,
        background_region=spec.background_region,
    )


class ReadingIngester:
    """Reads probe and observation CSV files into an experiment."""

    def ingest(
        self,
        store: AssayStore,
        experiment: str,
        probe_csv: Path | None = None,
        observation_csv: Path | None = None,
        replace: bool = False,
    ) -> IngestResult:
        """Ingest reading files for one experiment.

        Args:
            store: Target AssayStore.
            experiment: Experiment name.
            probe_csv: Probe samples file (long or wide format).
            observation_csv: Well observations file.
            replace: Delete previously ingested raw data first.

        Raises:
            FileNotFoundError: If a file doesn't exist.
            ValueError: If a file is malformed.
            GeometryError: If an observation names an unknown tray or well.
        """
        start = time.monotonic()
        warnings: list[str] = []

        # Parse everything before touching the store
        samples = read_probe_samples(probe_csv) if probe_csv is not None else []
        observations = []
        if observation_csv is not None:
            geometry = TrayGeometry(store.get_experiment_tray_configuration(experiment))
            observations = read_well_observations(observation_csv, geometry)

        configured = {p.column_index for p in store.get_probes(experiment)}
        unknown = sorted({s.probe_index for s in samples} - configured)
        if unknown:
            warnings.append(
                f"Probe indices {unknown} are not configured for {experiment!r}; "
                "analysis will reject them until probes are added"
            )

        if replace:
            store.clear_raw_data(experiment)
        if samples:
            store.add_probe_samples(experiment, samples)
        if observations:
            store.add_well_observations(experiment, observations)

        return IngestResult(
            samples_ingested=len(samples),
            observations_ingested=len(observations),
            elapsed_seconds=round(time.monotonic() - start, 3),
            warnings=warnings,
        )
