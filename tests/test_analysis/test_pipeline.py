"""Tests for freezeassay.analysis.pipeline."""

import pytest

from freezeassay.analysis.config import AnalysisConfig
from freezeassay.analysis.pipeline import AnalysisInput, AnalysisPipeline
from freezeassay.core.exceptions import AlignmentError, GeometryError
from freezeassay.core.models import (
    PhaseState,
    ProbeSample,
    Region,
    TrayAssignment,
    TrayConfiguration,
    WellObservation,
)

STATES = {0: "LLF", 1: "LLF", 12: "LLF", 13: "LLL"}


@pytest.fixture
def inputs(single_tray_config, probes, ramp_samples, make_observations, regions):
    return AnalysisInput(
        configuration=single_tray_config,
        probes=probes,
        samples=ramp_samples([-5, -10, -15]),
        observations=make_observations(STATES),
        regions=regions,
    )


class TestAnalysisInput:
    def test_duplicate_region_names(self, single_tray_config, probes):
        with pytest.raises(ValueError, match="Duplicate region names: a"):
            AnalysisInput(
                single_tray_config, probes, [],
                regions=[Region("a", 1, 0, 0, 0, 0), Region("a", 1, 1, 1, 1, 1)],
            )

    def test_observations_and_source_exclusive(self, single_tray_config, probes,
                                               make_observations):
        with pytest.raises(ValueError, match="not both"):
            AnalysisInput(
                single_tray_config, probes, [],
                observations=make_observations({0: "L"}),
                observation_source=lambda well, reading: False,
            )


class TestAnalysisPipeline:
    def test_sample_region_concentration(self, inputs):
        result = AnalysisPipeline().run(inputs)
        sample = [c for c in result.concentrations if c.region == "sample"]
        assert [c.reading_index for c in sample] == [0, 1, 2]
        last = sample[-1]
        assert last.temperature == -15.0
        assert last.fraction_frozen == 0.75
        assert last.nm_value == pytest.approx(27.7259, abs=1e-4)
        assert last.error == pytest.approx(8.0038, abs=1e-4)

    def test_empty_region_skipped_sibling_computes(self, inputs):
        result = AnalysisPipeline().run(inputs)
        assert set(result.curves) == {"sample"}
        assert {c.region for c in result.concentrations} == {"sample"}
        assert any("region 'edge'" in w for w in result.warnings)
        assert result.status == "completed_with_warnings"

    def test_clean_run_status(self, inputs):
        clean = AnalysisInput(
            inputs.configuration, inputs.probes, inputs.samples,
            observations=inputs.observations, regions=inputs.regions[:1],
        )
        result = AnalysisPipeline().run(clean)
        assert result.status == "completed"
        assert result.warnings == []
        assert result.errors == []

    def test_freezing_results_for_every_well(self, inputs):
        result = AnalysisPipeline().run(inputs)
        assert len(result.wells) == 96
        assert len(result.freezing_results) == 96
        by_id = {r.well_id: r for r in result.freezing_results}
        assert by_id[0].is_frozen
        assert by_id[0].freezing_temperature == -15.0
        assert by_id[0].region == "sample"
        assert not by_id[13].is_frozen
        assert by_id[50].region is None

    def test_statistics_per_region(self, inputs):
        stats = AnalysisPipeline().run(inputs).statistics["sample"]
        assert stats.total_wells == 4
        assert stats.frozen_count == 3
        assert stats.mean_nucleation_temperature == pytest.approx(-15.0)

    def test_transitions_sorted_and_alternating(self, inputs):
        result = AnalysisPipeline().run(inputs)
        keys = [(t.well_id, t.reading_index) for t in result.transitions]
        assert keys == sorted(keys)
        assert all(t.previous_state != t.new_state for t in result.transitions)
        assert all(t.new_state == PhaseState.FROZEN for t in result.transitions)

    def test_rerun_is_identical(self, inputs):
        pipeline = AnalysisPipeline(AnalysisConfig(max_workers=2))
        first = pipeline.run(inputs)
        second = pipeline.run(inputs)
        assert first.concentrations == second.concentrations
        assert first.freezing_results == second.freezing_results
        assert first.transitions == second.transitions
        assert first.warnings == second.warnings

    def test_debounce_from_config(self, single_tray_config, probes, ramp_samples,
                                  make_observations):
        inputs = AnalysisInput(
            single_tray_config, probes, ramp_samples([0, -2, -4, -6, -8]),
            observations=make_observations({0: "LFLFF"}),
            regions=[Region("r", 1, 0, 0, 0, 0)],
        )
        result = AnalysisPipeline(AnalysisConfig(debounce_count=2)).run(inputs)
        assert [t.reading_index for t in result.transitions] == [3]
        assert result.rejected_flickers == 1

    def test_invalid_well_stream_excluded(self, inputs, make_observations, at):
        observations = make_observations(STATES)
        # Out-of-order duplicate for well 13
        observations.append(WellObservation(13, at(0), True))
        broken = AnalysisInput(
            inputs.configuration, inputs.probes, inputs.samples,
            observations=observations, regions=inputs.regions,
        )
        result = AnalysisPipeline().run(broken)
        assert len(result.errors) == 1
        assert result.errors[0].startswith("well 13:")
        assert result.curves["sample"].total == 3
        assert 13 not in {r.well_id for r in result.freezing_results}
        assert any("excluded 1 well(s)" in w for w in result.warnings)

    def test_observation_source(self, single_tray_config, probes, ramp_samples):
        def classifier(well, reading):
            return well.id in (0, 1, 12) and reading.average <= -15

        inputs = AnalysisInput(
            single_tray_config, probes, ramp_samples([-5, -10, -15]),
            regions=[Region("sample", 1, 0, 0, 1, 1)],
            observation_source=classifier,
        )
        result = AnalysisPipeline().run(inputs)
        assert result.concentrations[-1].frozen_count == 3

    def test_geometry_error_is_fatal(self, plate96, probes, ramp_samples):
        config = TrayConfiguration("bad", (TrayAssignment(plate96, 1, 45),))
        with pytest.raises(GeometryError):
            AnalysisPipeline().run(AnalysisInput(config, probes, ramp_samples([0])))

    def test_alignment_error_is_fatal(self, single_tray_config, probes, at):
        samples = [ProbeSample(9, 0.0, at(0))]
        with pytest.raises(AlignmentError):
            AnalysisPipeline().run(AnalysisInput(single_tray_config, probes, samples))

    def test_background_region_missing_is_warning(self, single_tray_config, probes,
                                                  ramp_samples, make_observations):
        inputs = AnalysisInput(
            single_tray_config, probes, ramp_samples([-5, -10, -15]),
            observations=make_observations(STATES),
            regions=[
                Region("sample", 1, 0, 0, 1, 1, background_region="blank"),
                Region("blank", 1, 8, 0, 9, 0, is_background_key=True),
            ],
        )
        result = AnalysisPipeline().run(inputs)
        assert result.concentrations == []
        assert any("background region 'blank' unavailable" in w for w in result.warnings)
