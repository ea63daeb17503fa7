"""SQL query functions for the freezeassay core module.

All functions take an open sqlite3.Connection as the first argument.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime

from freezeassay.core.exceptions import (
    DuplicateError,
    ExperimentError,
    ExperimentNotFoundError,
    TrayConfigurationNotFoundError,
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
    format_well_coordinate,
)

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def get_store_name(conn: sqlite3.Connection) -> str:
    row = conn.execute("SELECT name FROM store_info LIMIT 1").fetchone()
    return row["name"] if row else ""


def get_store_description(conn: sqlite3.Connection) -> str:
    row = conn.execute("SELECT description FROM store_info LIMIT 1").fetchone()
    return row["description"] if row else ""


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


# ---------------------------------------------------------------------------
# Trays
# ---------------------------------------------------------------------------


def insert_tray(conn: sqlite3.Connection, tray: Tray) -> int:
    """Insert a tray. Returns the tray ID."""
    try:
        cur = conn.execute(
            "INSERT INTO trays (name, qty_x_axis, qty_y_axis, well_relative_diameter) "
            "VALUES (?, ?, ?, ?)",
            (tray.name, tray.qty_x_axis, tray.qty_y_axis, tray.well_relative_diameter),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        raise DuplicateError("tray", tray.name)
    return cur.lastrowid  # type: ignore[return-value]


def _row_to_tray(r: sqlite3.Row) -> Tray:
    return Tray(
        name=r["name"],
        qty_x_axis=r["qty_x_axis"],
        qty_y_axis=r["qty_y_axis"],
        well_relative_diameter=r["well_relative_diameter"],
    )


def select_trays(conn: sqlite3.Connection) -> list[Tray]:
    rows = conn.execute(
        "SELECT name, qty_x_axis, qty_y_axis, well_relative_diameter "
        "FROM trays ORDER BY name"
    ).fetchall()
    return [_row_to_tray(r) for r in rows]


def select_tray_id(conn: sqlite3.Connection, name: str) -> int:
    row = conn.execute("SELECT id FROM trays WHERE name = ?", (name,)).fetchone()
    if row is None:
        raise ExperimentError(f"Tray not found: {name}")
    return row["id"]


# ---------------------------------------------------------------------------
# Tray Configurations
# ---------------------------------------------------------------------------


def insert_tray_configuration(
    conn: sqlite3.Connection,
    name: str,
    assignments: list[TrayAssignment],
    experiment_default: bool = False,
) -> int:
    """Insert a configuration and its assignments atomically.

    Marking a configuration as the experiment default clears the flag on
    every other configuration.
    """
    tray_ids = [select_tray_id(conn, a.tray.name) for a in assignments]
    try:
        if experiment_default:
            conn.execute("UPDATE tray_configurations SET experiment_default = 0")
        cur = conn.execute(
            "INSERT INTO tray_configurations (name, experiment_default) VALUES (?, ?)",
            (name, int(experiment_default)),
        )
        config_id = cur.lastrowid
        conn.executemany(
            "INSERT INTO tray_assignments (tray_configuration_id, tray_id, "
            "order_sequence, rotation_degrees, origin_row, origin_col) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [
                (
                    config_id, tray_id, a.order_sequence, a.rotation_degrees,
                    a.origin[0] if a.origin else None,
                    a.origin[1] if a.origin else None,
                )
                for a, tray_id in zip(assignments, tray_ids)
            ],
        )
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise DuplicateError("tray configuration", name)
    return config_id  # type: ignore[return-value]


def select_tray_configuration_names(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute("SELECT name FROM tray_configurations ORDER BY name").fetchall()
    return [r["name"] for r in rows]


def select_default_tray_configuration_name(conn: sqlite3.Connection) -> str | None:
    row = conn.execute(
        "SELECT name FROM tray_configurations WHERE experiment_default = 1 LIMIT 1"
    ).fetchone()
    return row["name"] if row else None


def select_tray_configuration_id(conn: sqlite3.Connection, name: str) -> int:
    row = conn.execute(
        "SELECT id FROM tray_configurations WHERE name = ?", (name,)
    ).fetchone()
    if row is None:
        raise TrayConfigurationNotFoundError(name)
    return row["id"]


def select_tray_configuration(conn: sqlite3.Connection, name: str) -> TrayConfiguration:
    header = conn.execute(
        "SELECT id, name, experiment_default FROM tray_configurations WHERE name = ?",
        (name,),
    ).fetchone()
    if header is None:
        raise TrayConfigurationNotFoundError(name)
    rows = conn.execute(
        "SELECT t.name, t.qty_x_axis, t.qty_y_axis, t.well_relative_diameter, "
        "a.order_sequence, a.rotation_degrees, a.origin_row, a.origin_col "
        "FROM tray_assignments a JOIN trays t ON a.tray_id = t.id "
        "WHERE a.tray_configuration_id = ? ORDER BY a.order_sequence",
        (header["id"],),
    ).fetchall()
    assignments = tuple(
        TrayAssignment(
            tray=_row_to_tray(r),
            order_sequence=r["order_sequence"],
            rotation_degrees=r["rotation_degrees"],
            origin=(
                (r["origin_row"], r["origin_col"])
                if r["origin_row"] is not None else None
            ),
        )
        for r in rows
    )
    return TrayConfiguration(
        name=header["name"],
        assignments=assignments,
        experiment_default=bool(header["experiment_default"]),
    )


# ---------------------------------------------------------------------------
# Treatments
# ---------------------------------------------------------------------------


def ensure_treatment(conn: sqlite3.Connection, name: str) -> int:
    """Return the treatment ID, inserting the treatment if it is new."""
    conn.execute("INSERT OR IGNORE INTO treatments (name) VALUES (?)", (name,))
    row = conn.execute("SELECT id FROM treatments WHERE name = ?", (name,)).fetchone()
    return row["id"]


def select_treatments(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute("SELECT name FROM treatments ORDER BY name").fetchall()
    return [r["name"] for r in rows]


# ---------------------------------------------------------------------------
# Experiments
# ---------------------------------------------------------------------------


def insert_experiment(
    conn: sqlite3.Connection,
    name: str,
    description: str = "",
    tray_configuration_id: int | None = None,
) -> int:
    try:
        cur = conn.execute(
            "INSERT INTO experiments (name, description, tray_configuration_id) "
            "VALUES (?, ?, ?)",
            (name, description, tray_configuration_id),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        raise DuplicateError("experiment", name)
    return cur.lastrowid  # type: ignore[return-value]


_EXPERIMENT_SELECT = (
    "SELECT e.id, e.name, e.description, c.name AS tray_configuration "
    "FROM experiments e "
    "LEFT JOIN tray_configurations c ON e.tray_configuration_id = c.id"
)


def _row_to_experiment(r: sqlite3.Row) -> ExperimentInfo:
    return ExperimentInfo(
        id=r["id"],
        name=r["name"],
        tray_configuration=r["tray_configuration"],
        description=r["description"],
    )


def select_experiments(conn: sqlite3.Connection) -> list[ExperimentInfo]:
    rows = conn.execute(_EXPERIMENT_SELECT + " ORDER BY e.name").fetchall()
    return [_row_to_experiment(r) for r in rows]


def select_experiment(conn: sqlite3.Connection, name: str) -> ExperimentInfo:
    row = conn.execute(_EXPERIMENT_SELECT + " WHERE e.name = ?", (name,)).fetchone()
    if row is None:
        raise ExperimentNotFoundError(name)
    return _row_to_experiment(row)


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------


def insert_probe(
    conn: sqlite3.Connection, experiment_id: int, probe: TemperatureProbe,
) -> int:
    try:
        cur = conn.execute(
            "INSERT INTO probes (experiment_id, name, column_index, correction_factor) "
            "VALUES (?, ?, ?, ?)",
            (experiment_id, probe.name, probe.column_index, probe.correction_factor),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        raise DuplicateError("probe", f"{probe.name} (column {probe.column_index})")
    return cur.lastrowid  # type: ignore[return-value]


def select_probes(conn: sqlite3.Connection, experiment_id: int) -> list[TemperatureProbe]:
    rows = conn.execute(
        "SELECT name, column_index, correction_factor FROM probes "
        "WHERE experiment_id = ? ORDER BY column_index",
        (experiment_id,),
    ).fetchall()
    return [
        TemperatureProbe(
            name=r["name"],
            column_index=r["column_index"],
            correction_factor=r["correction_factor"],
        )
        for r in rows
    ]


# ---------------------------------------------------------------------------
# Regions
# ---------------------------------------------------------------------------


def insert_region(conn: sqlite3.Connection, experiment_id: int, region: Region) -> int:
    try:
        treatment_id = (
            ensure_treatment(conn, region.treatment) if region.treatment else None
        )
        cur = conn.execute(
            "INSERT INTO regions (experiment_id, name, tray_sequence, row_min, col_min, "
            "row_max, col_max, treatment_id, dilution_factor, is_background_key, "
            "background_region) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                experiment_id, region.name, region.tray_sequence,
                region.row_min, region.col_min, region.row_max, region.col_max,
                treatment_id, region.dilution_factor, int(region.is_background_key),
                region.background_region,
            ),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise DuplicateError("region", region.name)
    return cur.lastrowid  # type: ignore[return-value]


def select_regions(conn: sqlite3.Connection, experiment_id: int) -> list[Region]:
    rows = conn.execute(
        "SELECT r.name, r.tray_sequence, r.row_min, r.col_min, r.row_max, r.col_max, "
        "t.name AS treatment, r.dilution_factor, r.is_background_key, "
        "r.background_region "
        "FROM regions r LEFT JOIN treatments t ON r.treatment_id = t.id "
        "WHERE r.experiment_id = ? ORDER BY r.name",
        (experiment_id,),
    ).fetchall()
    return [
        Region(
            name=r["name"],
            tray_sequence=r["tray_sequence"],
            row_min=r["row_min"],
            col_min=r["col_min"],
            row_max=r["row_max"],
            col_max=r["col_max"],
            treatment=r["treatment"],
            dilution_factor=r["dilution_factor"],
            is_background_key=bool(r["is_background_key"]),
            background_region=r["background_region"],
        )
        for r in rows
    ]


# ---------------------------------------------------------------------------
# Raw Readings
# ---------------------------------------------------------------------------


def insert_probe_samples(
    conn: sqlite3.Connection, experiment_id: int, samples: list[ProbeSample],
) -> None:
    conn.executemany(
        "INSERT INTO probe_samples (experiment_id, probe_index, raw_value, timestamp) "
        "VALUES (?, ?, ?, ?)",
        [(experiment_id, s.probe_index, s.raw_value, _ts(s.timestamp)) for s in samples],
    )
    conn.commit()


def select_probe_samples(conn: sqlite3.Connection, experiment_id: int) -> list[ProbeSample]:
    """Return raw probe samples in ingestion order."""
    rows = conn.execute(
        "SELECT probe_index, raw_value, timestamp FROM probe_samples "
        "WHERE experiment_id = ? ORDER BY id",
        (experiment_id,),
    ).fetchall()
    return [
        ProbeSample(
            probe_index=r["probe_index"],
            raw_value=r["raw_value"],
            timestamp=_parse_ts(r["timestamp"]),  # type: ignore[arg-type]
        )
        for r in rows
    ]


def insert_well_observations(
    conn: sqlite3.Connection, experiment_id: int, observations: list[WellObservation],
) -> None:
    conn.executemany(
        "INSERT INTO well_observations (experiment_id, well_index, timestamp, is_frozen) "
        "VALUES (?, ?, ?, ?)",
        [
            (experiment_id, o.well_id, _ts(o.timestamp), int(o.is_frozen))
            for o in observations
        ],
    )
    conn.commit()


def select_well_observations(
    conn: sqlite3.Connection, experiment_id: int,
) -> list[WellObservation]:
    """Return raw well observations in ingestion order."""
    rows = conn.execute(
        "SELECT well_index, timestamp, is_frozen FROM well_observations "
        "WHERE experiment_id = ? ORDER BY id",
        (experiment_id,),
    ).fetchall()
    return [
        WellObservation(
            well_id=r["well_index"],
            timestamp=_parse_ts(r["timestamp"]),  # type: ignore[arg-type]
            is_frozen=bool(r["is_frozen"]),
        )
        for r in rows
    ]


def delete_raw_data(conn: sqlite3.Connection, experiment_id: int) -> None:
    """Delete all ingested probe samples and well observations of an experiment."""
    conn.execute("DELETE FROM probe_samples WHERE experiment_id = ?", (experiment_id,))
    conn.execute("DELETE FROM well_observations WHERE experiment_id = ?", (experiment_id,))
    conn.commit()


def count_raw_data(conn: sqlite3.Connection, experiment_id: int) -> tuple[int, int]:
    """Return (probe sample count, well observation count)."""
    samples = conn.execute(
        "SELECT COUNT(*) FROM probe_samples WHERE experiment_id = ?", (experiment_id,)
    ).fetchone()[0]
    observations = conn.execute(
        "SELECT COUNT(*) FROM well_observations WHERE experiment_id = ?", (experiment_id,)
    ).fetchone()[0]
    return samples, observations


# ---------------------------------------------------------------------------
# Analysis Results
# ---------------------------------------------------------------------------

_RESULT_TABLES = (
    "wells", "well_phase_transitions", "freezing_results", "inp_concentrations",
)


def replace_analysis_results(
    conn: sqlite3.Connection,
    experiment_id: int,
    wells: list[Well],
    readings: list[TemperatureReading],
    transitions: list[WellPhaseTransition],
    freezing_results: list[FreezingResult],
    concentrations: list[InpConcentration],
) -> None:
    """Replace every derived record of an experiment in one transaction.

    Either the full new result set is visible afterwards, or (on error) the
    previous one is left untouched.
    """
    try:
        conn.execute(
            "DELETE FROM reading_values WHERE reading_id IN "
            "(SELECT id FROM temperature_readings WHERE experiment_id = ?)",
            (experiment_id,),
        )
        conn.execute(
            "DELETE FROM temperature_readings WHERE experiment_id = ?", (experiment_id,)
        )
        for table in _RESULT_TABLES:
            conn.execute(f"DELETE FROM {table} WHERE experiment_id = ?", (experiment_id,))

        conn.executemany(
            "INSERT INTO wells (experiment_id, well_index, tray_sequence, "
            "row_number, column_number) VALUES (?, ?, ?, ?, ?)",
            [(experiment_id, w.id, w.tray_sequence, w.row, w.column) for w in wells],
        )
        for reading in readings:
            cur = conn.execute(
                "INSERT INTO temperature_readings (experiment_id, reading_index, "
                "timestamp, average) VALUES (?, ?, ?, ?)",
                (experiment_id, reading.index, _ts(reading.timestamp), reading.average),
            )
            conn.executemany(
                "INSERT INTO reading_values (reading_id, probe_index, temperature) "
                "VALUES (?, ?, ?)",
                [(cur.lastrowid, p, v) for p, v in sorted(reading.values.items())],
            )
        conn.executemany(
            "INSERT INTO well_phase_transitions (experiment_id, well_index, "
            "reading_index, timestamp, previous_state, new_state, is_anomaly) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    experiment_id, t.well_id, t.reading_index, _ts(t.timestamp),
                    int(t.previous_state), int(t.new_state), int(t.is_anomaly),
                )
                for t in transitions
            ],
        )
        conn.executemany(
            "INSERT INTO freezing_results (experiment_id, well_index, "
            "freezing_temperature, is_frozen, region_name, frozen_at, "
            "nucleation_time_seconds) VALUES (?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    experiment_id, r.well_id, r.freezing_temperature, int(r.is_frozen),
                    r.region, _ts(r.frozen_at), r.nucleation_time_seconds,
                )
                for r in freezing_results
            ],
        )
        conn.executemany(
            "INSERT INTO inp_concentrations (experiment_id, region_name, reading_index, "
            "temperature, nm_value, error, fraction_frozen, frozen_count, total_count) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    experiment_id, c.region, c.reading_index, c.temperature,
                    c.nm_value, c.error, c.fraction_frozen, c.frozen_count,
                    c.total_count,
                )
                for c in concentrations
            ],
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def select_readings(conn: sqlite3.Connection, experiment_id: int) -> list[dict]:
    """Return temperature readings, one column per probe (``probe_<index>``)."""
    rows = conn.execute(
        "SELECT tr.reading_index, tr.timestamp, tr.average, rv.probe_index, "
        "rv.temperature FROM temperature_readings tr "
        "LEFT JOIN reading_values rv ON rv.reading_id = tr.id "
        "WHERE tr.experiment_id = ? ORDER BY tr.reading_index, rv.probe_index",
        (experiment_id,),
    ).fetchall()
    by_index: dict[int, dict] = {}
    for r in rows:
        entry = by_index.setdefault(r["reading_index"], {
            "reading_index": r["reading_index"],
            "timestamp": r["timestamp"],
            "average": r["average"],
        })
        if r["probe_index"] is not None:
            entry[f"probe_{r['probe_index']}"] = r["temperature"]
    return list(by_index.values())


def _display_coordinate(row: dict) -> str | None:
    r, c = row["row_number"], row["column_number"]
    if r is None or c is None or r > 25:
        return None
    return format_well_coordinate(r, c)


def select_transitions(conn: sqlite3.Connection, experiment_id: int) -> list[dict]:
    rows = conn.execute(
        "SELECT t.well_index AS well_id, w.tray_sequence, w.row_number, "
        "w.column_number, t.reading_index, t.timestamp, "
        "r.average AS temperature_at_change, t.previous_state, "
        "t.new_state, t.is_anomaly "
        "FROM well_phase_transitions t "
        "LEFT JOIN wells w ON w.experiment_id = t.experiment_id "
        "AND w.well_index = t.well_index "
        "LEFT JOIN temperature_readings r ON r.experiment_id = t.experiment_id "
        "AND r.reading_index = t.reading_index "
        "WHERE t.experiment_id = ? ORDER BY t.well_index, t.reading_index",
        (experiment_id,),
    ).fetchall()
    result = []
    for row in rows:
        d = dict(row)
        d["coordinate"] = _display_coordinate(d)
        result.append(d)
    return result


def select_freezing_results(
    conn: sqlite3.Connection,
    experiment_id: int,
    region: str | None = None,
) -> list[dict]:
    """Per-well results with the well's coordinate, region context and history.

    ``final_state`` is the state left by the well's last recorded transition
    (``"liquid"`` when it never changed), and ``total_phase_changes`` counts
    every transition, anomalous ones included.
    """
    query = (
        "SELECT f.well_index AS well_id, w.tray_sequence, w.row_number, "
        "w.column_number, f.region_name AS region, tr.name AS treatment, "
        "g.dilution_factor, f.is_frozen, f.freezing_temperature, f.frozen_at, "
        "f.nucleation_time_seconds, "
        "(SELECT COUNT(*) FROM well_phase_transitions t "
        " WHERE t.experiment_id = f.experiment_id AND t.well_index = f.well_index) "
        "AS total_phase_changes, "
        "(SELECT t.new_state FROM well_phase_transitions t "
        " WHERE t.experiment_id = f.experiment_id AND t.well_index = f.well_index "
        " ORDER BY t.reading_index DESC LIMIT 1) AS last_state "
        "FROM freezing_results f "
        "LEFT JOIN wells w ON w.experiment_id = f.experiment_id "
        "AND w.well_index = f.well_index "
        "LEFT JOIN regions g ON g.experiment_id = f.experiment_id "
        "AND g.name = f.region_name "
        "LEFT JOIN treatments tr ON tr.id = g.treatment_id "
        "WHERE f.experiment_id = ?"
    )
    params: list = [experiment_id]
    if region is not None:
        query += " AND f.region_name = ?"
        params.append(region)
    query += " ORDER BY f.well_index"
    result = []
    for row in conn.execute(query, params).fetchall():
        d = dict(row)
        last_state = d.pop("last_state")
        d["coordinate"] = _display_coordinate(d)
        d["final_state"] = PhaseState(last_state or 0).name.lower()
        result.append(d)
    return result


def select_concentrations(
    conn: sqlite3.Connection,
    experiment_id: int,
    region: str | None = None,
) -> list[dict]:
    query = (
        "SELECT region_name AS region, reading_index, temperature, nm_value, error, "
        "fraction_frozen, frozen_count, total_count "
        "FROM inp_concentrations WHERE experiment_id = ?"
    )
    params: list = [experiment_id]
    if region is not None:
        query += " AND region_name = ?"
        params.append(region)
    query += " ORDER BY region_name, reading_index"
    rows = conn.execute(query, params).fetchall()
    return [dict(r) for r in rows]


# ---------------------------------------------------------------------------
# Analysis Runs
# ---------------------------------------------------------------------------


def insert_analysis_run(
    conn: sqlite3.Connection,
    experiment_id: int,
    parameters: dict | None = None,
) -> int:
    params_json = json.dumps(parameters) if parameters else None
    cur = conn.execute(
        "INSERT INTO analysis_runs (experiment_id, parameters) VALUES (?, ?)",
        (experiment_id, params_json),
    )
    conn.commit()
    return cur.lastrowid  # type: ignore[return-value]


def select_analysis_runs(
    conn: sqlite3.Connection, experiment_id: int | None = None,
) -> list[dict]:
    """Return analysis runs as dicts, optionally for one experiment."""
    query = (
        "SELECT r.id, e.name AS experiment, r.parameters, r.status, r.message, "
        "r.started_at, r.completed_at "
        "FROM analysis_runs r JOIN experiments e ON r.experiment_id = e.id"
    )
    params: list = []
    if experiment_id is not None:
        query += " WHERE r.experiment_id = ?"
        params.append(experiment_id)
    query += " ORDER BY r.id"
    result = []
    for r in conn.execute(query, params).fetchall():
        d = dict(r)
        if d["parameters"]:
            d["parameters"] = json.loads(d["parameters"])
        result.append(d)
    return result


def complete_analysis_run(
    conn: sqlite3.Connection,
    run_id: int,
    status: str = "completed",
    message: str = "",
) -> None:
    conn.execute(
        "UPDATE analysis_runs SET status = ?, message = ?, "
        "completed_at = datetime('now') WHERE id = ?",
        (status, message, run_id),
    )
    conn.commit()
