"""freezeassay analysis — the freezing-assay analysis engine."""

from freezeassay.analysis.aggregation import RegionAggregator, RegionCurve
from freezeassay.analysis.alignment import TemperatureAligner
from freezeassay.analysis.concentration import InpConcentrationCalculator
from freezeassay.analysis.config import AnalysisConfig
from freezeassay.analysis.detection import PhaseTransitionDetector, WellDetection
from freezeassay.analysis.geometry import TrayGeometry
from freezeassay.analysis.pipeline import AnalysisInput, AnalysisPipeline, AnalysisResult
from freezeassay.analysis.results import FreezingResultReducer, NucleationStatistics
from freezeassay.analysis.runner import BatchAnalysisResult, ExperimentAnalyzer

__all__ = [
    "AnalysisConfig",
    "AnalysisInput",
    "AnalysisPipeline",
    "AnalysisResult",
    "BatchAnalysisResult",
    "ExperimentAnalyzer",
    "FreezingResultReducer",
    "InpConcentrationCalculator",
    "NucleationStatistics",
    "PhaseTransitionDetector",
    "RegionAggregator",
    "RegionCurve",
    "TemperatureAligner",
    "TrayGeometry",
    "WellDetection",
]
