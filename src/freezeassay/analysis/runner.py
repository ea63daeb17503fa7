"""ExperimentAnalyzer — run the pipeline against experiments held in an AssayStore."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from freezeassay.analysis.config import AnalysisConfig
from freezeassay.analysis.pipeline import (
    AnalysisInput,
    AnalysisPipeline,
    AnalysisResult,
    ObservationSource,
)
from freezeassay.core.exceptions import AnalysisError, ExperimentError

if TYPE_CHECKING:
    from freezeassay.core import AssayStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchAnalysisResult:
    """Result of analysing several experiments.

    Attributes:
        results: Successful runs keyed by experiment name.
        failures: Error message of each experiment whose run aborted.
        elapsed_seconds: Wall-clock time in seconds.
    """

    results: dict[str, AnalysisResult] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    elapsed_seconds: float = 0.0


def _summary(result: AnalysisResult) -> str:
    frozen = sum(1 for r in result.freezing_results if r.is_frozen)
    parts = [
        f"{len(result.wells)} wells",
        f"{frozen} frozen",
        f"{len(result.concentrations)} concentration rows",
    ]
    if result.warnings:
        parts.append(f"{len(result.warnings)} warnings")
    if result.errors:
        parts.append(f"{len(result.errors)} errors")
    return ", ".join(parts)


class ExperimentAnalyzer:
    """Load an experiment's inputs, run the pipeline, persist the results.

    Every run is recorded in ``analysis_runs``. Results replace the previous
    result set in full; a run that fails fatally leaves it untouched.

    Args:
        config: Analysis parameters. Defaults to ``AnalysisConfig()``.
    """

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self._config = config or AnalysisConfig()
        self._pipeline = AnalysisPipeline(self._config)

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def load_inputs(
        self,
        store: AssayStore,
        experiment: str,
        observation_source: ObservationSource | None = None,
    ) -> AnalysisInput:
        """Collect everything the pipeline needs for one experiment."""
        configuration = store.get_experiment_tray_configuration(experiment)
        return AnalysisInput(
            configuration=configuration,
            probes=store.get_probes(experiment),
            samples=store.get_probe_samples(experiment),
            observations=(
                [] if observation_source is not None
                else store.get_well_observations(experiment)
            ),
            regions=store.get_regions(experiment),
            observation_source=observation_source,
        )

    def analyze(
        self,
        store: AssayStore,
        experiment: str,
        observation_source: ObservationSource | None = None,
    ) -> AnalysisResult:
        """Analyse one experiment and replace its stored results.

        Raises:
            ExperimentNotFoundError: If the experiment does not exist.
            AnalysisError: If geometry or alignment fails. The run is marked
                ``failed`` and nothing is written.
        """
        run_id = store.start_analysis_run(experiment, self._config.to_dict())
        try:
            inputs = self.load_inputs(store, experiment, observation_source)
            result = self._pipeline.run(inputs)
            self._write(store, experiment, result)
        except Exception as exc:
            logger.error("Analysis of %r failed: %s", experiment, exc)
            store.complete_analysis_run(run_id, status="failed", message=str(exc))
            raise
        store.complete_analysis_run(run_id, status=result.status, message=_summary(result))
        return result

    def analyze_many(
        self,
        store: AssayStore,
        experiments: list[str],
        progress_callback: Callable[[int, int, str], None] | None = None,
    ) -> BatchAnalysisResult:
        """Analyse several experiments.

        Inputs are loaded and results written sequentially on the store's
        connection; the pipelines themselves run in parallel. An
        AnalysisError in one experiment is recorded in ``failures`` and does
        not stop the others. Unknown experiments and failed writes are
        recorded the same way, and every started run is completed.

        Args:
            store: Source and target AssayStore.
            experiments: Experiment names.
            progress_callback: Optional callback(current, total, experiment).
        """
        start = time.monotonic()
        run_ids: dict[str, int] = {}
        outcomes: dict[str, AnalysisResult | ExperimentError] = {}
        inputs: dict[str, AnalysisInput] = {}
        for name in experiments:
            try:
                run_ids[name] = store.start_analysis_run(name, self._config.to_dict())
                inputs[name] = self.load_inputs(store, name)
            except ExperimentError as exc:
                outcomes[name] = exc

        with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
            futures = {name: pool.submit(self._pipeline.run, inp) for name, inp in inputs.items()}
            for name, future in futures.items():
                try:
                    outcomes[name] = future.result()
                except AnalysisError as exc:
                    outcomes[name] = exc

        results: dict[str, AnalysisResult] = {}
        failures: dict[str, str] = {}
        total = len(experiments)
        for i, name in enumerate(experiments):
            outcome = outcomes[name]
            run_id = run_ids.get(name)
            if isinstance(outcome, ExperimentError):
                logger.warning("Analysis of %r failed: %s", name, outcome)
                if run_id is not None:
                    store.complete_analysis_run(run_id, status="failed", message=str(outcome))
                failures[name] = str(outcome)
            else:
                try:
                    self._write(store, name, outcome)
                except Exception as exc:
                    logger.error("Storing results for %r failed: %s", name, exc)
                    store.complete_analysis_run(run_id, status="failed", message=str(exc))
                    failures[name] = str(exc)
                else:
                    store.complete_analysis_run(
                        run_id, status=outcome.status, message=_summary(outcome),
                    )
                    results[name] = outcome
            if progress_callback:
                progress_callback(i + 1, total, name)

        return BatchAnalysisResult(
            results=results,
            failures=failures,
            elapsed_seconds=round(time.monotonic() - start, 3),
        )

    def _write(self, store: AssayStore, experiment: str, result: AnalysisResult) -> None:
        store.replace_analysis_results(
            experiment,
            wells=result.wells,
            readings=result.readings,
            transitions=result.transitions,
            freezing_results=result.freezing_results,
            concentrations=result.concentrations,
        )
        logger.info("Stored analysis results for %r (%s)", experiment, _summary(result))
