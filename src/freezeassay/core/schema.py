"""SQLite schema creation and database opening for freezeassay."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from freezeassay.core.exceptions import SchemaVersionError, StoreNotFoundError

_SCHEMA_SQL = """\
PRAGMA journal_mode = WAL;
PRAGMA synchronous = NORMAL;
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS store_info (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    schema_version TEXT NOT NULL DEFAULT '1.0.0',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS trays (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    qty_x_axis INTEGER NOT NULL CHECK(qty_x_axis > 0),
    qty_y_axis INTEGER NOT NULL CHECK(qty_y_axis > 0),
    well_relative_diameter REAL
);

CREATE TABLE IF NOT EXISTS tray_configurations (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    experiment_default INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS tray_assignments (
    id INTEGER PRIMARY KEY,
    tray_configuration_id INTEGER NOT NULL REFERENCES tray_configurations(id),
    tray_id INTEGER NOT NULL REFERENCES trays(id),
    order_sequence INTEGER NOT NULL,
    rotation_degrees INTEGER NOT NULL DEFAULT 0,
    origin_row INTEGER,
    origin_col INTEGER,
    UNIQUE(tray_configuration_id, order_sequence),
    CHECK(rotation_degrees IN (0, 90, 180, 270))
);

CREATE TABLE IF NOT EXISTS treatments (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS experiments (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL DEFAULT '',
    tray_configuration_id INTEGER REFERENCES tray_configurations(id),
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS probes (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    name TEXT NOT NULL,
    column_index INTEGER NOT NULL CHECK(column_index > 0),
    correction_factor REAL NOT NULL DEFAULT 1.0,
    UNIQUE(experiment_id, name),
    UNIQUE(experiment_id, column_index)
);

CREATE TABLE IF NOT EXISTS regions (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    name TEXT NOT NULL,
    tray_sequence INTEGER NOT NULL,
    row_min INTEGER NOT NULL,
    col_min INTEGER NOT NULL,
    row_max INTEGER NOT NULL,
    col_max INTEGER NOT NULL,
    treatment_id INTEGER REFERENCES treatments(id),
    dilution_factor REAL NOT NULL DEFAULT 1.0,
    is_background_key INTEGER NOT NULL DEFAULT 0,
    background_region TEXT,
    UNIQUE(experiment_id, name),
    CHECK(row_min <= row_max AND col_min <= col_max),
    CHECK(dilution_factor >= 1)
);

CREATE TABLE IF NOT EXISTS probe_samples (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    probe_index INTEGER NOT NULL,
    raw_value REAL NOT NULL,
    timestamp TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS well_observations (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    well_index INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    is_frozen INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS wells (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    well_index INTEGER NOT NULL,
    tray_sequence INTEGER NOT NULL,
    row_number INTEGER NOT NULL,
    column_number INTEGER NOT NULL,
    UNIQUE(experiment_id, well_index),
    UNIQUE(experiment_id, tray_sequence, row_number, column_number)
);

CREATE TABLE IF NOT EXISTS temperature_readings (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    reading_index INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    average REAL,
    UNIQUE(experiment_id, reading_index),
    UNIQUE(experiment_id, timestamp)
);

CREATE TABLE IF NOT EXISTS reading_values (
    reading_id INTEGER NOT NULL REFERENCES temperature_readings(id),
    probe_index INTEGER NOT NULL,
    temperature REAL,
    PRIMARY KEY (reading_id, probe_index)
);

CREATE TABLE IF NOT EXISTS well_phase_transitions (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    well_index INTEGER NOT NULL,
    reading_index INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    previous_state INTEGER NOT NULL,
    new_state INTEGER NOT NULL,
    is_anomaly INTEGER NOT NULL DEFAULT 0,
    UNIQUE(experiment_id, well_index, reading_index),
    CHECK(previous_state IN (0, 1) AND new_state IN (0, 1)),
    CHECK(previous_state != new_state)
);

CREATE TABLE IF NOT EXISTS freezing_results (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    well_index INTEGER NOT NULL,
    freezing_temperature REAL,
    is_frozen INTEGER NOT NULL,
    region_name TEXT,
    frozen_at TEXT,
    nucleation_time_seconds REAL,
    UNIQUE(experiment_id, well_index)
);

CREATE TABLE IF NOT EXISTS inp_concentrations (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    region_name TEXT NOT NULL,
    reading_index INTEGER NOT NULL,
    temperature REAL NOT NULL,
    nm_value REAL NOT NULL,
    error REAL,
    fraction_frozen REAL NOT NULL,
    frozen_count INTEGER NOT NULL,
    total_count INTEGER NOT NULL,
    UNIQUE(experiment_id, region_name, reading_index)
);

CREATE TABLE IF NOT EXISTS analysis_runs (
    id INTEGER PRIMARY KEY,
    experiment_id INTEGER NOT NULL REFERENCES experiments(id),
    parameters TEXT,
    status TEXT NOT NULL DEFAULT 'running',
    message TEXT NOT NULL DEFAULT '',
    started_at TEXT NOT NULL DEFAULT (datetime('now')),
    completed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_probe_samples_experiment ON probe_samples(experiment_id);
CREATE INDEX IF NOT EXISTS idx_well_observations_experiment ON well_observations(experiment_id);
CREATE INDEX IF NOT EXISTS idx_transitions_experiment ON well_phase_transitions(experiment_id);
CREATE INDEX IF NOT EXISTS idx_freezing_results_experiment ON freezing_results(experiment_id);
CREATE INDEX IF NOT EXISTS idx_concentrations_experiment ON inp_concentrations(experiment_id);
CREATE INDEX IF NOT EXISTS idx_regions_experiment ON regions(experiment_id);
"""

EXPECTED_TABLES = frozenset({
    "store_info", "trays", "tray_configurations", "tray_assignments", "treatments",
    "experiments", "probes", "regions", "probe_samples", "well_observations",
    "wells", "temperature_readings", "reading_values", "well_phase_transitions",
    "freezing_results", "inp_concentrations", "analysis_runs",
})

EXPECTED_INDEXES = frozenset({
    "idx_probe_samples_experiment", "idx_well_observations_experiment",
    "idx_transitions_experiment", "idx_freezing_results_experiment",
    "idx_concentrations_experiment", "idx_regions_experiment",
})

EXPECTED_VERSION = "1.0.0"


def create_schema(
    db_path: Path,
    name: str = "",
    description: str = "",
) -> sqlite3.Connection:
    """Create a new assay database with the full schema.

    Args:
        db_path: Path to the SQLite database file (will be created).
        name: Store name.
        description: Store description.

    Returns:
        An open connection to the new database.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.executescript(_SCHEMA_SQL)
    conn.execute(
        "INSERT INTO store_info (name, description, schema_version) VALUES (?, ?, ?)",
        (name, description, EXPECTED_VERSION),
    )
    conn.commit()
    return conn


def open_database(db_path: Path) -> sqlite3.Connection:
    """Open an existing assay database.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        An open connection with WAL mode and foreign keys enabled.

    Raises:
        StoreNotFoundError: If the database file does not exist.
        SchemaVersionError: If the stored schema version is incompatible.
    """
    if not db_path.exists():
        raise StoreNotFoundError(str(db_path))
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA foreign_keys = ON")

    row = conn.execute("SELECT schema_version FROM store_info LIMIT 1").fetchone()
    if row is not None:
        stored = row["schema_version"]
        if stored.split(".")[:2] != EXPECTED_VERSION.split(".")[:2]:
            conn.close()
            raise SchemaVersionError(stored, EXPECTED_VERSION)
    return conn
