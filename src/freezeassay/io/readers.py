"""CSV readers for raw probe samples and per-well frozen observations.

Probe files come in two shapes:

- long: ``timestamp,probe_index,raw_value``, one row per probe value;
- wide: ``timestamp`` followed by one column per probe, where the n-th data
  column is probe column index n. Empty cells are missing values.

Observation files are long-form ``timestamp,tray,well,is_frozen`` with
``tray`` a tray name and ``well`` a display coordinate such as ``A1``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from freezeassay.analysis.geometry import TrayGeometry
from freezeassay.core.models import ProbeSample, WellObservation

logger = logging.getLogger(__name__)

PROBE_COLUMNS = ("timestamp", "probe_index", "raw_value")
OBSERVATION_COLUMNS = ("timestamp", "tray", "well", "is_frozen")

_TRUE_VALUES = frozenset({"1", "true", "t", "yes", "y", "frozen"})
_FALSE_VALUES = frozenset({"0", "false", "f", "no", "n", "liquid"})


def _read_csv(path: Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    df = pd.read_csv(path, skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _parse_timestamps(series: pd.Series, path: Path) -> list:
    try:
        parsed = pd.to_datetime(series)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"{path}: unparseable timestamp ({exc})") from exc
    if parsed.isna().any():
        raise ValueError(f"{path}: empty timestamp")
    return [ts.to_pydatetime() for ts in parsed]


def _parse_bool(value: object, line: int, path: Path) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"{path}, line {line}: invalid is_frozen value {value!r}")


def read_probe_samples(path: Path) -> list[ProbeSample]:
    """Read raw probe samples from a long or wide CSV file.

    Rows are returned in file order; sorting is the aligner's concern.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If required columns are missing or values are malformed.
    """
    path = Path(path)
    df = _read_csv(path)
    if "timestamp" not in df.columns:
        raise ValueError(f"{path}: missing required column 'timestamp'")

    if "probe_index" in df.columns or "raw_value" in df.columns:
        missing = [c for c in PROBE_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"{path}: missing required columns: {', '.join(missing)}")
        df = df.dropna(subset=["raw_value"])
        timestamps = _parse_timestamps(df["timestamp"], path)
        samples = [
            ProbeSample(probe_index=int(idx), raw_value=float(raw), timestamp=ts)
            for idx, raw, ts in zip(df["probe_index"], df["raw_value"], timestamps)
        ]
    else:
        data_columns = [c for c in df.columns if c != "timestamp"]
        if not data_columns:
            raise ValueError(f"{path}: no probe columns found")
        timestamps = _parse_timestamps(df["timestamp"], path)
        values = df[data_columns].apply(pd.to_numeric, errors="raise").to_numpy(dtype=float)
        samples = []
        for row, ts in enumerate(timestamps):
            for col in range(len(data_columns)):
                raw = values[row, col]
                if np.isnan(raw):
                    continue
                samples.append(
                    ProbeSample(probe_index=col + 1, raw_value=float(raw), timestamp=ts)
                )

    logger.info("Read %d probe samples from %s", len(samples), path)
    return samples


def read_well_observations(path: Path, geometry: TrayGeometry) -> list[WellObservation]:
    """Read frozen/liquid observations and resolve wells to run-local ids.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If required columns are missing or values are malformed.
        GeometryError: If a row names a tray or well outside the configuration.
    """
    path = Path(path)
    df = _read_csv(path)
    missing = [c for c in OBSERVATION_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing required columns: {', '.join(missing)}")

    timestamps = _parse_timestamps(df["timestamp"], path)
    observations: list[WellObservation] = []
    well_ids: dict[tuple[str, str], int] = {}
    for i, (tray, well, frozen, ts) in enumerate(
        zip(df["tray"], df["well"], df["is_frozen"], timestamps)
    ):
        key = (str(tray).strip(), str(well).strip())
        if key not in well_ids:
            well_ids[key] = geometry.well_id_for_coordinate(*key)
        observations.append(WellObservation(
            well_id=well_ids[key],
            timestamp=ts,
            is_frozen=_parse_bool(frozen, i + 2, path),
        ))

    logger.info(
        "Read %d observations for %d wells from %s", len(observations), len(well_ids), path,
    )
    return observations
