"""Tests for freezeassay.core.exceptions."""

from datetime import datetime

import pytest

from freezeassay.core.exceptions import (
    AggregationError,
    AlignmentError,
    AnalysisError,
    ConcentrationError,
    DetectionError,
    DuplicateError,
    ExperimentError,
    ExperimentNotFoundError,
    GeometryError,
    SchemaVersionError,
    StoreNotFoundError,
    TrayConfigurationNotFoundError,
    WellNotFoundError,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_experiment_error(self):
        for exc_cls in (StoreNotFoundError, ExperimentNotFoundError,
                        TrayConfigurationNotFoundError, WellNotFoundError,
                        DuplicateError, SchemaVersionError, AnalysisError):
            assert issubclass(exc_cls, ExperimentError)

    def test_engine_errors_inherit_from_analysis_error(self):
        for exc_cls in (GeometryError, AlignmentError, DetectionError,
                        AggregationError, ConcentrationError):
            assert issubclass(exc_cls, AnalysisError)

    def test_catch_all_with_base(self):
        with pytest.raises(ExperimentError):
            raise GeometryError("bad rotation")


class TestExceptionMessages:
    def test_store_not_found(self):
        exc = StoreNotFoundError("/some/path")
        assert "/some/path" in str(exc)
        assert exc.path == "/some/path"

    def test_experiment_not_found(self):
        exc = ExperimentNotFoundError("run-7")
        assert "run-7" in str(exc)
        assert exc.name == "run-7"

    def test_tray_configuration_not_found(self):
        exc = TrayConfigurationNotFoundError("standard")
        assert "standard" in str(exc)
        assert exc.name == "standard"

    def test_well_not_found_zero_id(self):
        exc = WellNotFoundError(0)
        assert "0" in str(exc)
        assert exc.well_id == 0

    def test_duplicate(self):
        exc = DuplicateError("tray", "P1")
        assert str(exc) == "Duplicate tray: P1"
        assert exc.entity == "tray"
        assert exc.name == "P1"

    def test_schema_version(self):
        exc = SchemaVersionError("2.0.0", "1.0.0")
        assert "2.0.0" in str(exc)
        assert exc.expected == "1.0.0"

    def test_alignment_error_includes_timestamp(self):
        ts = datetime(2024, 3, 1, 12, 0, 0)
        exc = AlignmentError("Non-monotonic timestamp", timestamp=ts)
        assert "2024-03-01T12:00:00" in str(exc)
        assert exc.timestamp == ts

    def test_detection_error_prefixes_well(self):
        exc = DetectionError("out of order", well_id=5)
        assert str(exc) == "well 5: out of order"
        assert exc.well_id == 5

    def test_aggregation_error_prefixes_region(self):
        exc = AggregationError("empty", region="blank")
        assert str(exc) == "region 'blank': empty"
        assert exc.region == "blank"

    def test_concentration_error_without_region(self):
        exc = ConcentrationError("no wells")
        assert str(exc) == "no wells"
        assert exc.region is None
