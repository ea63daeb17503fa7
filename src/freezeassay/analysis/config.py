"""AnalysisConfig — tunable parameters of a freezing-assay analysis run."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

DEFAULT_DROPLET_VOLUME_ML = 0.05


@dataclass(frozen=True)
class AnalysisConfig:
    """Parameters for one analysis run.

    Attributes:
        debounce_count: Consecutive matching observations needed before a
            well's state change is accepted.
        droplet_volume_ml: Volume of a single droplet in mL.
        max_workers: Thread pool size for per-well and per-region fan-out.
    """

    debounce_count: int = 1
    droplet_volume_ml: float = DEFAULT_DROPLET_VOLUME_ML
    max_workers: int = 4

    def __post_init__(self) -> None:
        if self.debounce_count < 1:
            raise ValueError(f"debounce_count must be >= 1, got {self.debounce_count}")
        if self.droplet_volume_ml <= 0:
            raise ValueError(
                f"droplet_volume_ml must be positive, got {self.droplet_volume_ml}"
            )
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_overrides(self, **overrides: Any) -> AnalysisConfig:
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self
