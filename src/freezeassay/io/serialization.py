"""YAML serialization for assay layouts and analysis configs.

Requires pyyaml. Raises ImportError with clear install instructions
if pyyaml is not available.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from freezeassay.analysis.config import AnalysisConfig
from freezeassay.core.models import TemperatureProbe, Tray, TrayAssignment, TrayConfiguration
from freezeassay.io.models import AssayLayout, RegionSpec


def _require_yaml() -> Any:
    """Import and return the yaml module, or raise a helpful error."""
    try:
        import yaml

        return yaml
    except ImportError:
        raise ImportError(
            "pyyaml is required for layout serialization. "
            "Install it with: pip install pyyaml"
        ) from None


def _load_mapping(path: Path, what: str) -> dict[str, Any]:
    yaml = _require_yaml()
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid {what} YAML: expected a mapping, got {type(data).__name__}")
    return data


def _require_keys(entry: dict[str, Any], keys: tuple[str, ...], what: str) -> None:
    for key in keys:
        if key not in entry:
            raise ValueError(f"Invalid layout YAML: {what} is missing required key '{key}'")


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


def layout_to_yaml(layout: AssayLayout, path: Path) -> None:
    """Serialize an AssayLayout to a YAML file."""
    yaml = _require_yaml()

    data: dict[str, Any] = {"trays": []}
    for t in layout.trays:
        tray_entry: dict[str, Any] = {
            "name": t.name,
            "qty_x_axis": t.qty_x_axis,
            "qty_y_axis": t.qty_y_axis,
        }
        if t.well_relative_diameter is not None:
            tray_entry["well_relative_diameter"] = t.well_relative_diameter
        data["trays"].append(tray_entry)

    config = layout.tray_configuration
    if config is not None:
        assignments = []
        for a in config.assignments:
            entry: dict[str, Any] = {
                "tray": a.tray.name,
                "order_sequence": a.order_sequence,
                "rotation_degrees": a.rotation_degrees,
            }
            if a.origin is not None:
                entry["origin"] = list(a.origin)
            assignments.append(entry)
        data["tray_configuration"] = {
            "name": config.name,
            "experiment_default": config.experiment_default,
            "assignments": assignments,
        }
    elif layout.tray_configuration_name is not None:
        data["tray_configuration"] = layout.tray_configuration_name

    if layout.experiment is not None:
        data["experiment"] = {"name": layout.experiment, "description": layout.description}

    data["probes"] = [
        {
            "name": p.name,
            "column_index": p.column_index,
            "correction_factor": p.correction_factor,
        }
        for p in layout.probes
    ]

    regions = []
    for r in layout.regions:
        entry = {"name": r.name, "tray": r.tray, "wells": r.wells}
        if r.treatment is not None:
            entry["treatment"] = r.treatment
        if r.dilution_factor != 1.0:
            entry["dilution_factor"] = r.dilution_factor
        if r.is_background_key:
            entry["is_background_key"] = True
        if r.background_region is not None:
            entry["background_region"] = r.background_region
        regions.append(entry)
    data["regions"] = regions

    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def layout_from_yaml(path: Path) -> AssayLayout:
    """Deserialize an AssayLayout from a YAML file.

    ``tray_configuration`` is either a mapping defining a new configuration
    (assignments reference trays defined in the same file by name) or
    a plain string naming an existing one.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist.
        ValueError: If the YAML is invalid or missing required fields.
    """
    data = _load_mapping(path, "layout")

    trays: list[Tray] = []
    for t in data.get("trays", []) or []:
        _require_keys(t, ("name", "qty_x_axis", "qty_y_axis"), "tray")
        trays.append(Tray(
            name=str(t["name"]),
            qty_x_axis=int(t["qty_x_axis"]),
            qty_y_axis=int(t["qty_y_axis"]),
            well_relative_diameter=t.get("well_relative_diameter"),
        ))
    trays_by_name = {t.name: t for t in trays}

    configuration: TrayConfiguration | None = None
    configuration_name: str | None = None
    tc = data.get("tray_configuration")
    if isinstance(tc, str):
        configuration_name = tc
    elif isinstance(tc, dict):
        _require_keys(tc, ("name", "assignments"), "tray_configuration")
        assignments = []
        for a in tc["assignments"]:
            _require_keys(a, ("tray", "order_sequence"), "tray assignment")
            tray = trays_by_name.get(str(a["tray"]))
            if tray is None:
                raise ValueError(
                    f"Invalid layout YAML: assignment references unknown tray {a['tray']!r}"
                )
            origin = a.get("origin")
            assignments.append(TrayAssignment(
                tray=tray,
                order_sequence=int(a["order_sequence"]),
                rotation_degrees=int(a.get("rotation_degrees", 0)),
                origin=(int(origin[0]), int(origin[1])) if origin is not None else None,
            ))
        configuration = TrayConfiguration(
            name=str(tc["name"]),
            assignments=tuple(assignments),
            experiment_default=bool(tc.get("experiment_default", False)),
        )
        configuration_name = configuration.name
    elif tc is not None:
        raise ValueError("Invalid layout YAML: tray_configuration must be a mapping or a name")

    experiment = data.get("experiment")
    experiment_name: str | None = None
    description = ""
    if isinstance(experiment, str):
        experiment_name = experiment
    elif isinstance(experiment, dict):
        _require_keys(experiment, ("name",), "experiment")
        experiment_name = str(experiment["name"])
        description = str(experiment.get("description", "") or "")

    probes = []
    for p in data.get("probes", []) or []:
        _require_keys(p, ("name", "column_index"), "probe")
        probes.append(TemperatureProbe(
            name=str(p["name"]),
            column_index=int(p["column_index"]),
            correction_factor=float(p.get("correction_factor", 1.0)),
        ))

    regions = []
    for r in data.get("regions", []) or []:
        _require_keys(r, ("name", "tray", "wells"), "region")
        regions.append(RegionSpec(
            name=str(r["name"]),
            tray=str(r["tray"]),
            wells=str(r["wells"]),
            treatment=r.get("treatment"),
            dilution_factor=float(r.get("dilution_factor", 1.0)),
            is_background_key=bool(r.get("is_background_key", False)),
            background_region=r.get("background_region"),
        ))

    return AssayLayout(
        trays=trays,
        tray_configuration=configuration,
        tray_configuration_name=configuration_name,
        experiment=experiment_name,
        description=description,
        probes=probes,
        regions=regions,
    )


# ---------------------------------------------------------------------------
# Analysis config
# ---------------------------------------------------------------------------


def config_to_yaml(config: AnalysisConfig, path: Path) -> None:
    yaml = _require_yaml()
    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def config_from_yaml(path: Path) -> AnalysisConfig:
    """Load an AnalysisConfig; missing keys keep their defaults.

    Raises:
        ValueError: On unknown keys or out-of-range values.
    """
    data = _load_mapping(path, "analysis config")
    known = set(AnalysisConfig.__dataclass_fields__)
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown analysis config keys: {', '.join(unknown)}")
    return AnalysisConfig(**data)
