"""InpConcentrationCalculator — fraction frozen to nucleation-site density.

Uses the standard droplet-freezing model::

    nm(T) = -ln(1 - f(T)) / V

with Poisson counting error ``nm * sqrt(1/k - 1/n)`` on the frozen-well
count ``k`` out of ``n`` droplets of volume ``V`` (mL).
"""

from __future__ import annotations

import logging
import math

from freezeassay.analysis.aggregation import RegionCurve
from freezeassay.core.exceptions import ConcentrationError
from freezeassay.core.models import InpConcentration, TemperatureReading

logger = logging.getLogger(__name__)


def site_density(frozen: int, total: int, droplet_volume_ml: float) -> float:
    """Cumulative nucleation-site density per mL for ``frozen`` of ``total``.

    When every droplet froze the fraction is taken as ``n / (n + 1)``, the
    largest value resolvable with ``n`` droplets, so the result stays finite.
    """
    if total <= 0:
        raise ValueError("total must be positive")
    if not 0 <= frozen <= total:
        raise ValueError(f"frozen count {frozen} outside 0..{total}")
    if frozen == total:
        fraction = total / (total + 1)
    else:
        fraction = frozen / total
    return -math.log1p(-fraction) / droplet_volume_ml


def poisson_error(nm_value: float, frozen: int, total: int) -> float | None:
    """Counting uncertainty of ``nm_value``; None when nothing froze."""
    if frozen == 0:
        return None
    return nm_value * math.sqrt(max(1.0 / frozen - 1.0 / total, 0.0))


def _combine_errors(a: float | None, b: float | None) -> float | None:
    if a is None and b is None:
        return None
    return math.hypot(a or 0.0, b or 0.0)


class InpConcentrationCalculator:
    """Convert region fraction-frozen curves to InpConcentration rows.

    Args:
        droplet_volume_ml: Volume of a single droplet (well) in mL.
    """

    def __init__(self, droplet_volume_ml: float) -> None:
        if droplet_volume_ml <= 0:
            raise ValueError(f"droplet_volume_ml must be positive, got {droplet_volume_ml}")
        self._volume = droplet_volume_ml

    @property
    def droplet_volume_ml(self) -> float:
        return self._volume

    def calculate(
        self,
        curve: RegionCurve,
        readings: list[TemperatureReading],
        background: RegionCurve | None = None,
    ) -> list[InpConcentration]:
        """One InpConcentration per reading that has a temperature.

        If ``background`` is given its density at the same reading is
        subtracted (floored at zero) before scaling by the region's dilution
        factor.

        Raises:
            ConcentrationError: If the region (or its background) has no
                wells, the background is required but missing, or the curves
                do not match the reading timeline.
        """
        region = curve.region
        if curve.total == 0:
            raise ConcentrationError("region has no wells", region=region.name)
        if len(curve.frozen_counts) != len(readings):
            raise ConcentrationError(
                f"curve has {len(curve.frozen_counts)} points for "
                f"{len(readings)} readings",
                region=region.name,
            )
        if region.background_region is not None and background is None:
            raise ConcentrationError(
                f"background region {region.background_region!r} unavailable",
                region=region.name,
            )
        if background is not None:
            if background.total == 0:
                raise ConcentrationError(
                    f"background region {background.region.name!r} has no wells",
                    region=region.name,
                )
            if len(background.frozen_counts) != len(readings):
                raise ConcentrationError(
                    "background curve does not match the reading timeline",
                    region=region.name,
                )

        n = curve.total
        dilution = region.dilution_factor
        rows: list[InpConcentration] = []
        for reading in readings:
            temperature = reading.average
            if temperature is None:
                continue
            k = int(curve.frozen_counts[reading.index])
            nm = site_density(k, n, self._volume)
            error = poisson_error(nm, k, n)

            if background is not None:
                bk = int(background.frozen_counts[reading.index])
                bn = background.total
                nm_bg = site_density(bk, bn, self._volume)
                error = _combine_errors(error, poisson_error(nm_bg, bk, bn))
                nm = max(nm - nm_bg, 0.0)

            rows.append(
                InpConcentration(
                    region=region.name,
                    reading_index=reading.index,
                    temperature=temperature,
                    nm_value=nm * dilution,
                    error=error * dilution if error is not None else None,
                    fraction_frozen=k / n,
                    frozen_count=k,
                    total_count=n,
                )
            )

        logger.debug("Region %r: %d concentration points", region.name, len(rows))
        return rows
