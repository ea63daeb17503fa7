"""Data models for the IO module."""

from __future__ import annotations

from dataclasses import dataclass, field

from freezeassay.core.models import (
    TemperatureProbe,
    Tray,
    TrayConfiguration,
    parse_well_coordinate,
)


@dataclass(frozen=True)
class RegionSpec:
    """A region as written in a layout file: tray by name, wells as a range.

    ``wells`` is an inclusive display range such as ``"A1:D6"`` or a single
    well ``"B3"``. Resolved to a :class:`~freezeassay.core.models.Region`
    once the experiment's tray configuration is known.
    """

    name: str
    tray: str
    wells: str
    treatment: str | None = None
    dilution_factor: float = 1.0
    is_background_key: bool = False
    background_region: str | None = None

    def bounds(self) -> tuple[int, int, int, int]:
        """Return 0-based ``(row_min, col_min, row_max, col_max)``.

        Raises:
            ValueError: If the range is malformed.
        """
        start, _, end = self.wells.partition(":")
        r0, c0 = parse_well_coordinate(start.strip())
        r1, c1 = parse_well_coordinate(end.strip()) if end else (r0, c0)
        return min(r0, r1), min(c0, c1), max(r0, r1), max(c0, c1)


@dataclass(frozen=True)
class AssayLayout:
    """Physical and logical layout of an assay, as loaded from YAML.

    Attributes:
        trays: Tray definitions to register.
        tray_configuration: Configuration to register, or None to reference
            an existing one by ``tray_configuration_name``.
        tray_configuration_name: Name of the configuration the experiment uses.
        experiment: Experiment name, or None to register trays only.
        description: Experiment description.
        probes: Temperature probes of the experiment.
        regions: Regions of the experiment.
    """

    trays: list[Tray] = field(default_factory=list)
    tray_configuration: TrayConfiguration | None = None
    tray_configuration_name: str | None = None
    experiment: str | None = None
    description: str = ""
    probes: list[TemperatureProbe] = field(default_factory=list)
    regions: list[RegionSpec] = field(default_factory=list)


@dataclass(frozen=True)
class SetupResult:
    """Result of applying an AssayLayout to a store."""

    trays_added: int
    configuration: str | None
    experiment: str | None
    probes_added: int
    regions_added: int
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class IngestResult:
    """Result of ingesting reading files into a store."""

    samples_ingested: int
    observations_ingested: int
    elapsed_seconds: float
    warnings: list[str] = field(default_factory=list)
