"""Tests for freezeassay.io.models."""

import pytest

from freezeassay.io.models import AssayLayout, RegionSpec


class TestRegionSpec:
    def test_range_bounds(self):
        assert RegionSpec("r", "P1", "A1:D6").bounds() == (0, 0, 3, 5)

    def test_single_well(self):
        assert RegionSpec("r", "P1", "B3").bounds() == (1, 2, 1, 2)

    def test_reversed_range_normalized(self):
        assert RegionSpec("r", "P1", "D6:A1").bounds() == (0, 0, 3, 5)

    def test_whitespace_tolerated(self):
        assert RegionSpec("r", "P1", " A1 : B2 ").bounds() == (0, 0, 1, 1)

    def test_malformed(self):
        with pytest.raises(ValueError, match="Invalid coordinate"):
            RegionSpec("r", "P1", "A1:ZZ").bounds()


class TestAssayLayout:
    def test_defaults(self):
        layout = AssayLayout()
        assert layout.trays == []
        assert layout.experiment is None
        assert layout.regions == []
