"""AssayStore — central interface for a freezing-assay store directory."""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path

import pandas as pd

from freezeassay.core import queries
from freezeassay.core.exceptions import ExperimentError, StoreNotFoundError
from freezeassay.core.models import (
    VALID_ROTATIONS,
    ExperimentInfo,
    FreezingResult,
    InpConcentration,
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
from freezeassay.core.schema import create_schema, open_database

logger = logging.getLogger(__name__)

_VALID_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._ -]{0,254}$")

EXPORT_TABLES = ("concentrations", "results", "transitions", "readings")


def _validate_name(value: str, field: str = "name") -> str:
    """Validate that a name is safe for use in file names and CLI output.

    Raises:
        ValueError: If the name is empty, too long, or contains unsafe characters.
    """
    if not value:
        raise ValueError(f"{field} must not be empty")
    if ".." in value:
        raise ValueError(f"{field} must not contain '..': {value!r}")
    if not _VALID_NAME_RE.match(value):
        raise ValueError(
            f"{field} contains invalid characters: {value!r}. "
            "Only alphanumeric, spaces, dots, hyphens, and underscores are allowed."
        )
    return value


class AssayStore:
    """Central interface for a freezing-assay store.

    A store is a directory containing:
    - assay.db (SQLite: trays, configurations, experiments, raw readings, results)
    - exports/ (CSV exports)
    """

    def __init__(self, path: Path, conn: sqlite3.Connection) -> None:
        self._path = path
        self._conn = conn

    # --- Lifecycle ---

    @classmethod
    def create(cls, path: Path, name: str = "", description: str = "") -> AssayStore:
        """Create a new store directory."""
        path = Path(path)
        if path.exists():
            raise ExperimentError(f"Path already exists: {path}")
        path.mkdir(parents=True)
        conn = create_schema(path / "assay.db", name=name, description=description)
        (path / "exports").mkdir()
        logger.info("Created assay store at %s", path)
        return cls(path, conn)

    @classmethod
    def open(cls, path: Path) -> AssayStore:
        """Open an existing store directory."""
        path = Path(path)
        if not path.exists():
            raise StoreNotFoundError(str(path))
        conn = open_database(path / "assay.db")
        return cls(path, conn)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None  # type: ignore[assignment]

    def __enter__(self) -> AssayStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"AssayStore({self._path!r})"

    # --- Properties ---

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return queries.get_store_name(self._conn)

    @property
    def description(self) -> str:
        return queries.get_store_description(self._conn)

    @property
    def db_path(self) -> Path:
        return self._path / "assay.db"

    @property
    def exports_path(self) -> Path:
        return self._path / "exports"

    # --- Trays ---

    def add_tray(
        self,
        name: str,
        qty_x_axis: int,
        qty_y_axis: int,
        well_relative_diameter: float | None = None,
    ) -> int:
        _validate_name(name, "tray name")
        tray = Tray(name, qty_x_axis, qty_y_axis, well_relative_diameter)
        return queries.insert_tray(self._conn, tray)

    def get_trays(self) -> list[Tray]:
        return queries.select_trays(self._conn)

    # --- Tray Configurations ---

    def add_tray_configuration(
        self,
        name: str,
        assignments: list[TrayAssignment],
        experiment_default: bool = False,
    ) -> int:
        """Register an immutable tray configuration.

        Raises:
            ValueError: If there are no assignments, a rotation is invalid or
                two assignments share an order sequence.
            DuplicateError: If the configuration name is taken.
        """
        _validate_name(name, "tray configuration name")
        if not assignments:
            raise ValueError(f"Tray configuration {name!r} has no tray assignments")
        sequences = [a.order_sequence for a in assignments]
        if len(set(sequences)) != len(sequences):
            raise ValueError(
                f"Tray configuration {name!r} has duplicate order sequences: {sequences}"
            )
        for a in assignments:
            if a.rotation_degrees not in VALID_ROTATIONS:
                raise ValueError(
                    f"Invalid rotation {a.rotation_degrees} for tray {a.tray.name!r}"
                )
        return queries.insert_tray_configuration(
            self._conn, name, assignments, experiment_default,
        )

    def get_tray_configuration(self, name: str) -> TrayConfiguration:
        return queries.select_tray_configuration(self._conn, name)

    def get_tray_configurations(self) -> list[str]:
        return queries.select_tray_configuration_names(self._conn)

    def get_default_tray_configuration(self) -> TrayConfiguration | None:
        name = queries.select_default_tray_configuration_name(self._conn)
        return self.get_tray_configuration(name) if name is not None else None

    # --- Experiments ---

    def add_experiment(
        self,
        name: str,
        tray_configuration: str | None = None,
        description: str = "",
    ) -> int:
        """Register an experiment.

        Without an explicit ``tray_configuration`` the experiment default
        configuration (if any) is used.
        """
        _validate_name(name, "experiment name")
        if tray_configuration is None:
            tray_configuration = queries.select_default_tray_configuration_name(self._conn)
        config_id = (
            queries.select_tray_configuration_id(self._conn, tray_configuration)
            if tray_configuration is not None else None
        )
        return queries.insert_experiment(self._conn, name, description, config_id)

    def get_experiments(self) -> list[ExperimentInfo]:
        return queries.select_experiments(self._conn)

    def get_experiment(self, name: str) -> ExperimentInfo:
        return queries.select_experiment(self._conn, name)

    def get_experiment_tray_configuration(self, experiment: str) -> TrayConfiguration:
        info = self.get_experiment(experiment)
        if info.tray_configuration is None:
            raise ExperimentError(f"Experiment {experiment!r} has no tray configuration")
        return self.get_tray_configuration(info.tray_configuration)

    # --- Probes ---

    def add_probe(
        self,
        experiment: str,
        name: str,
        column_index: int,
        correction_factor: float = 1.0,
    ) -> int:
        info = self.get_experiment(experiment)
        probe = TemperatureProbe(name, column_index, correction_factor)
        return queries.insert_probe(self._conn, info.id, probe)

    def get_probes(self, experiment: str) -> list[TemperatureProbe]:
        return queries.select_probes(self._conn, self.get_experiment(experiment).id)

    # --- Regions ---

    def add_region(self, experiment: str, region: Region) -> int:
        """Add a region after checking it against the experiment's trays.

        Raises:
            ValueError: If the region's tray is not in the configuration, the
                rectangle extends past the tray grid, or it overlaps another
                region on the same tray.
            DuplicateError: If the region name is taken.
        """
        info = self.get_experiment(experiment)
        _validate_name(region.name, "region name")
        configuration = self.get_experiment_tray_configuration(experiment)
        assignment = configuration.assignment(region.tray_sequence)
        if assignment is None:
            raise ValueError(
                f"Region {region.name!r} references tray sequence "
                f"{region.tray_sequence}, which is not in configuration "
                f"{configuration.name!r}"
            )
        tray = assignment.tray
        if region.row_max >= tray.n_rows or region.col_max >= tray.n_cols:
            raise ValueError(
                f"Region {region.name!r} extends past the "
                f"{tray.n_rows}x{tray.n_cols} grid of tray {tray.name!r}"
            )
        for other in queries.select_regions(self._conn, info.id):
            if other.tray_sequence != region.tray_sequence:
                continue
            if (
                region.row_min <= other.row_max and other.row_min <= region.row_max
                and region.col_min <= other.col_max and other.col_min <= region.col_max
            ):
                raise ValueError(
                    f"Region {region.name!r} overlaps region {other.name!r} "
                    f"on tray {tray.name!r}"
                )
        return queries.insert_region(self._conn, info.id, region)

    def get_regions(self, experiment: str) -> list[Region]:
        return queries.select_regions(self._conn, self.get_experiment(experiment).id)

    def get_treatments(self) -> list[str]:
        return queries.select_treatments(self._conn)

    # --- Raw Readings ---

    def add_probe_samples(self, experiment: str, samples: list[ProbeSample]) -> None:
        info = self.get_experiment(experiment)
        queries.insert_probe_samples(self._conn, info.id, samples)
        logger.info("Stored %d probe samples for %r", len(samples), experiment)

    def get_probe_samples(self, experiment: str) -> list[ProbeSample]:
        return queries.select_probe_samples(self._conn, self.get_experiment(experiment).id)

    def add_well_observations(
        self, experiment: str, observations: list[WellObservation],
    ) -> None:
        info = self.get_experiment(experiment)
        queries.insert_well_observations(self._conn, info.id, observations)
        logger.info("Stored %d well observations for %r", len(observations), experiment)

    def get_well_observations(self, experiment: str) -> list[WellObservation]:
        return queries.select_well_observations(
            self._conn, self.get_experiment(experiment).id,
        )

    def clear_raw_data(self, experiment: str) -> None:
        queries.delete_raw_data(self._conn, self.get_experiment(experiment).id)

    def count_raw_data(self, experiment: str) -> tuple[int, int]:
        return queries.count_raw_data(self._conn, self.get_experiment(experiment).id)

    # --- Analysis Results ---

    def replace_analysis_results(
        self,
        experiment: str,
        wells: list[Well],
        readings: list[TemperatureReading],
        transitions: list[WellPhaseTransition],
        freezing_results: list[FreezingResult],
        concentrations: list[InpConcentration],
    ) -> None:
        """Atomically replace an experiment's derived records."""
        info = self.get_experiment(experiment)
        queries.replace_analysis_results(
            self._conn, info.id, wells, readings, transitions,
            freezing_results, concentrations,
        )

    def get_readings(self, experiment: str) -> pd.DataFrame:
        return pd.DataFrame(
            queries.select_readings(self._conn, self.get_experiment(experiment).id)
        )

    def get_transitions(self, experiment: str) -> pd.DataFrame:
        return pd.DataFrame(
            queries.select_transitions(self._conn, self.get_experiment(experiment).id)
        )

    def get_freezing_results(
        self, experiment: str, region: str | None = None,
    ) -> pd.DataFrame:
        rows = queries.select_freezing_results(
            self._conn, self.get_experiment(experiment).id, region=region,
        )
        df = pd.DataFrame(rows)
        if not df.empty:
            df["is_frozen"] = df["is_frozen"].astype(bool)
        return df

    def get_concentrations(
        self, experiment: str, region: str | None = None,
    ) -> pd.DataFrame:
        return pd.DataFrame(
            queries.select_concentrations(
                self._conn, self.get_experiment(experiment).id, region=region,
            )
        )

    # --- Analysis Runs ---

    def start_analysis_run(self, experiment: str, parameters: dict | None = None) -> int:
        info = self.get_experiment(experiment)
        return queries.insert_analysis_run(self._conn, info.id, parameters)

    def complete_analysis_run(
        self, run_id: int, status: str = "completed", message: str = "",
    ) -> None:
        queries.complete_analysis_run(self._conn, run_id, status, message)

    def get_analysis_runs(self, experiment: str | None = None) -> list[dict]:
        """Return analysis runs, optionally for one experiment."""
        experiment_id = (
            self.get_experiment(experiment).id if experiment is not None else None
        )
        return queries.select_analysis_runs(self._conn, experiment_id)

    # --- Export ---

    def export_csv(
        self,
        experiment: str,
        path: Path,
        table: str = "concentrations",
        region: str | None = None,
    ) -> int:
        """Write one result table of an experiment to CSV. Returns the row count."""
        if table == "concentrations":
            df = self.get_concentrations(experiment, region=region)
        elif table == "results":
            df = self.get_freezing_results(experiment, region=region)
        elif table == "transitions":
            df = self.get_transitions(experiment)
        elif table == "readings":
            df = self.get_readings(experiment)
        else:
            raise ValueError(
                f"Unknown table {table!r}; expected one of {', '.join(EXPORT_TABLES)}"
            )
        df.to_csv(path, index=False)
        return len(df)
