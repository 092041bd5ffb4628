"""Explore (EXAMINE) analysis of a single variable.

:class:`ExploreCalculator` wires the engines together for one analysis
request: the weighted distribution is built once, then the frequency
table, descriptives, percentiles, Tukey hinges, trimmed mean, extreme
values, confidence interval and M-estimators are derived from it.

Examples:
    Explore a weighted scale variable::

        from explore_statistics import ExploreCalculator

        calc = ExploreCalculator(
            variable={"name": "score", "measure": "scale", "missing": {"discrete": [-9]}},
            data=[12, 15, 15, 18, -9, 40],
            weights=[1, 2, 1, 1, 1, 1],
            options={"showOutliers": True},
        )
        result = calc.statistics()
        result.hinges.iqr
        result.to_dict()["descriptives"]["confidenceInterval"]
"""

from dataclasses import dataclass
from functools import cached_property
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from .confidence_intervals import ConfidenceInterval, ConfidenceIntervalEstimator
from .config import ExploreOptions, VariableDefinition
from .descriptive import DescriptiveCalculator
from .frequency_table import FrequencyRow, FrequencySummary, FrequencyTableBuilder
from .percentiles import PercentileEngine, PercentileTable
from .robust_statistics import ExtremeValues, MEstimators, RobustStatisticsEngine, TukeyHinges
from .weighted_sample import WeightedSampleBuilder

logger = logging.getLogger(__name__)


@dataclass
class ExploreResult:
    """All statistics produced for one variable.

    Fields that do not apply to the variable (for example percentiles of a
    nominal variable) are None.
    """

    variable: str
    summary: FrequencySummary
    descriptives: Dict[str, Any]
    frequency_table: Optional[List[FrequencyRow]]
    percentiles: Optional[PercentileTable] = None
    hinges: Optional[TukeyHinges] = None
    trimmed_mean: Optional[float] = None
    extreme_values: Optional[ExtremeValues] = None
    m_estimators: Optional[MEstimators] = None
    confidence_interval: Optional[ConfidenceInterval] = None
    z_scores: Optional[List[Optional[float]]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the plain result object consumed by the presentation layer.

        Returns:
            Mapping with ``summary``, ``descriptives``, ``frequencyTable``,
            ``percentiles``, ``hinges``, ``trimmedMean``, ``extremeValues``
            and ``mEstimators`` keys.
        """
        descriptives = dict(self.descriptives)
        if self.confidence_interval is not None:
            descriptives["confidenceInterval"] = self.confidence_interval.to_dict()

        result = {
            "summary": self.summary.to_dict(),
            "descriptives": descriptives,
            "frequencyTable": (
                [row.to_dict() for row in self.frequency_table]
                if self.frequency_table is not None
                else None
            ),
            "percentiles": self.percentiles.to_dict() if self.percentiles else None,
            "hinges": self.hinges.to_dict() if self.hinges else None,
            "trimmedMean": self.trimmed_mean,
            "extremeValues": self.extreme_values.to_dict() if self.extreme_values else None,
            "mEstimators": self.m_estimators.to_dict() if self.m_estimators else None,
        }
        if self.z_scores is not None:
            result["zScores"] = self.z_scores
        return result

    def to_dataframe(self) -> pd.DataFrame:
        """Convert the scalar statistics to a long-format DataFrame.

        Returns:
            DataFrame with ``category``, ``metric`` and ``value`` columns.
        """
        rows = []

        for metric, value in self.descriptives.items():
            if isinstance(value, dict):
                continue
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            rows.append({"category": "descriptives", "metric": metric, "value": value})

        if self.confidence_interval is not None:
            ci = self.confidence_interval
            rows.append({"category": "confidence_interval", "metric": "lower", "value": ci.lower})
            rows.append({"category": "confidence_interval", "metric": "upper", "value": ci.upper})

        if self.percentiles is not None:
            for p, value in self.percentiles.values.items():
                rows.append(
                    {
                        "category": f"percentile_{self.percentiles.method.value}",
                        "metric": f"p{p:g}",
                        "value": value,
                    }
                )

        if self.hinges is not None:
            for metric, value in (
                ("Q1", self.hinges.q1),
                ("Q3", self.hinges.q3),
                ("IQR", self.hinges.iqr),
            ):
                rows.append({"category": "tukey_hinges", "metric": metric, "value": value})

        if self.trimmed_mean is not None:
            rows.append(
                {"category": "robust", "metric": "trimmed_mean", "value": self.trimmed_mean}
            )

        if self.m_estimators is not None:
            for metric, value in self.m_estimators.to_dict().items():
                rows.append({"category": "m_estimator", "metric": metric, "value": value})

        return pd.DataFrame(rows, columns=["category", "metric", "value"])


class ExploreCalculator:
    """Explore statistics for one variable.

    A calculator is built per analysis request. Statistics are computed on
    the first call to :meth:`statistics` and cached; the input arrays must
    not be mutated afterwards.

    Args:
        variable: Variable definition (model or mapping).
        data: Raw observations.
        weights: Optional case weights parallel to ``data``.
        case_numbers: Optional case identifiers parallel to ``data``.
        options: Analysis options (model or mapping, camelCase keys allowed).
    """

    def __init__(
        self,
        variable: Union[VariableDefinition, Dict[str, Any]],
        data: Sequence[Any],
        weights: Optional[Sequence[Any]] = None,
        case_numbers: Optional[Sequence[Any]] = None,
        options: Union[ExploreOptions, Dict[str, Any], None] = None,
    ):
        if not isinstance(variable, VariableDefinition):
            variable = VariableDefinition.model_validate(variable)
        if not isinstance(options, ExploreOptions):
            options = ExploreOptions.from_dict(options)

        self.variable = variable
        self.options = options
        self.sample = WeightedSampleBuilder(variable, data, weights, case_numbers)
        self.robust = RobustStatisticsEngine(self.sample)
        self.descriptive = DescriptiveCalculator(
            self.sample, save_standardized=options.save_standardized
        )

    @property
    def is_numeric(self) -> bool:
        """Whether numeric Explore statistics apply to the variable."""
        return self.robust.is_active

    @cached_property
    def frequencies(self) -> FrequencyTableBuilder:
        return FrequencyTableBuilder(
            self.sample.distribution, is_date=self.variable.core_type == "date"
        )

    @cached_property
    def percentile_engine(self) -> PercentileEngine:
        return PercentileEngine(self.sample.distribution)

    def _base_descriptives(self) -> Dict[str, Any]:
        if self.is_numeric:
            return self.descriptive.statistics()
        summary = self.frequencies.summary()
        return {
            "N": summary.total,
            "Valid": summary.valid,
            "Missing": summary.missing,
            "Mode": self.frequencies.mode(),
        }

    @cached_property
    def _result(self) -> ExploreResult:
        opts = self.options
        result = ExploreResult(
            variable=self.variable.name,
            summary=self.frequencies.summary(),
            descriptives=self._base_descriptives(),
            frequency_table=self.frequencies.frequency_table(),
        )
        if not self.is_numeric:
            logger.debug("Variable %r is not numeric; frequencies only", self.variable.name)
            return result

        result.trimmed_mean = self.robust.trimmed_mean(opts.trim_percent)
        result.percentiles = self.percentile_engine.percentiles(opts.percentile_method)

        result.hinges = self.robust.tukey_hinges()
        if result.hinges is not None:
            result.descriptives["IQR"] = result.hinges.iqr

        if opts.show_outliers:
            count = opts.extreme_count
            if opts.use_hinges_for_outliers and result.hinges is not None:
                result.extreme_values = self.robust.extreme_values(result.hinges, count)
            else:
                result.extreme_values = self.robust.extreme_values_from_percentiles(count)

        estimator = ConfidenceIntervalEstimator(opts.confidence_interval)
        result.confidence_interval = estimator.estimate(
            result.descriptives.get("Mean"),
            result.descriptives.get("SEMean"),
            self.descriptive.valid_weight,
        )

        result.m_estimators = self.robust.m_estimators(
            fallback_mean=result.descriptives.get("Mean")
        )
        result.z_scores = self.descriptive.z_scores()

        logger.debug(
            "Explore statistics for %r: W=%g, method=%s",
            self.variable.name,
            self.sample.distribution.valid_weight,
            opts.percentile_method.value,
        )
        return result

    def statistics(self) -> ExploreResult:
        """Compute (once) and return all Explore statistics."""
        return self._result

    def percentile(self, p: float, method=None) -> Optional[float]:
        """Single percentile with ``method`` (defaults to the configured method)."""
        if not self.is_numeric:
            return None
        return self.percentile_engine.percentile(method or self.options.percentile_method, p)


def run_explore(
    variable: Union[VariableDefinition, Dict[str, Any]],
    data: Sequence[Any],
    weights: Optional[Sequence[Any]] = None,
    case_numbers: Optional[Sequence[Any]] = None,
    options: Union[ExploreOptions, Dict[str, Any], None] = None,
) -> Dict[str, Any]:
    """Run an Explore analysis and return the plain result object."""
    return ExploreCalculator(variable, data, weights, case_numbers, options).statistics().to_dict()
