"""freezeassay IO — CSV reading ingestion and YAML layout serialization."""

from freezeassay.io.engine import LayoutLoader, ReadingIngester
from freezeassay.io.models import AssayLayout, IngestResult, RegionSpec, SetupResult
from freezeassay.io.readers import read_probe_samples, read_well_observations
from freezeassay.io.serialization import (
    config_from_yaml,
    config_to_yaml,
    layout_from_yaml,
    layout_to_yaml,
)

__all__ = [
    "AssayLayout",
    "IngestResult",
    "LayoutLoader",
    "ReadingIngester",
    "RegionSpec",
    "SetupResult",
    "config_from_yaml",
    "config_to_yaml",
    "layout_from_yaml",
    "layout_to_yaml",
    "read_probe_samples",
    "read_well_observations",
]
