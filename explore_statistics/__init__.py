"""Explore Statistics"""

from ._version import __version__

# Use lazy imports to avoid import issues during test discovery
# Direct imports are defined but modules are imported only when accessed

__all__ = [
    "__version__",
    "ConfidenceInterval",
    "ConfidenceIntervalEstimator",
    "DescriptiveCalculator",
    "ExploreCalculator",
    "ExploreOptions",
    "ExploreResult",
    "FrequencyTableBuilder",
    "PercentileEngine",
    "PercentileMethod",
    "RobustStatisticsEngine",
    "VariableDefinition",
    "WeightedDistribution",
    "WeightedSampleBuilder",
    "run_explore",
    "t_critical_value",
]


def __getattr__(name):
    """Lazy import modules to avoid circular dependencies during test discovery."""
    if name in ["ExploreOptions", "PercentileMethod", "VariableDefinition"]:
        from .config import ExploreOptions, PercentileMethod, VariableDefinition

        return locals()[name]
    elif name == "WeightedDistribution" or name == "WeightedSampleBuilder":
        from .weighted_sample import WeightedDistribution, WeightedSampleBuilder

        return locals()[name]
    elif name == "PercentileEngine":
        from .percentiles import PercentileEngine

        return PercentileEngine
    elif name == "FrequencyTableBuilder":
        from .frequency_table import FrequencyTableBuilder

        return FrequencyTableBuilder
    elif name == "RobustStatisticsEngine":
        from .robust_statistics import RobustStatisticsEngine

        return RobustStatisticsEngine
    elif name in ["ConfidenceInterval", "ConfidenceIntervalEstimator", "t_critical_value"]:
        from .confidence_intervals import (
            ConfidenceInterval,
            ConfidenceIntervalEstimator,
            t_critical_value,
        )

        return locals()[name]
    elif name == "DescriptiveCalculator":
        from .descriptive import DescriptiveCalculator

        return DescriptiveCalculator
    elif name in ["ExploreCalculator", "ExploreResult", "run_explore"]:
        from .explore import ExploreCalculator, ExploreResult, run_explore

        return locals()[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
