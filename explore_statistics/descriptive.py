"""Weighted descriptive statistics (N, mean, dispersion, shape).

:class:`DescriptiveCalculator` produces the base statistics an Explore
analysis builds on: counts, mean and standard error, variance with the
``W - 1`` frequency-weight denominator, and SPSS bias-corrected skewness
and kurtosis with their standard errors.
"""

from functools import cached_property
import math
from typing import Any, Dict, List, Optional

import numpy as np

from .config import PercentileMethod
from .frequency_table import FrequencyTableBuilder
from .percentiles import PercentileEngine
from .weighted_sample import WeightedSampleBuilder


class DescriptiveCalculator:
    """Weighted descriptive statistics of one variable.

    Args:
        sample: Builder holding the variable's valid observations.
        save_standardized: Also compute z-scores (see :meth:`z_scores`).

    Examples:
        >>> from explore_statistics.config import VariableDefinition
        >>> sample = WeightedSampleBuilder(VariableDefinition(measure="scale"), [2, 4, 6, 8, 10])
        >>> stats = DescriptiveCalculator(sample).statistics()
        >>> stats["Mean"], stats["Sum"]
        (6.0, 30.0)
    """

    def __init__(self, sample: WeightedSampleBuilder, save_standardized: bool = False):
        self.sample = sample
        self.variable = sample.variable
        self.save_standardized = save_standardized

    @cached_property
    def _moments(self) -> Dict[str, float]:
        """Weighted sums and central moments of the valid values."""
        observations = self.sample.observations if self.sample.numeric else []
        x = np.array([o.value for o in observations], dtype=np.float64)
        w = np.array([o.weight for o in observations], dtype=np.float64)

        total_w = float(w.sum())
        if total_w <= 0:
            return {"W": 0.0, "W2": 0.0, "S": 0.0, "M2": 0.0, "M3": 0.0, "M4": 0.0, "N": 0}

        s = float(np.dot(w, x))
        delta = x - s / total_w
        return {
            "W": total_w,
            "W2": float(np.dot(w, w)),
            "S": s,
            "M2": float(np.dot(w, delta**2)),
            "M3": float(np.dot(w, delta**3)),
            "M4": float(np.dot(w, delta**4)),
            "N": len(x),
            "min": float(x.min()),
            "max": float(x.max()),
        }

    @property
    def valid_weight(self) -> float:
        """Total valid weight ``W``."""
        return self._moments["W"]

    def mean(self) -> Optional[float]:
        m = self._moments
        return m["S"] / m["W"] if m["N"] > 0 else None

    def total(self) -> Optional[float]:
        m = self._moments
        return m["S"] if m["N"] > 0 else None

    def minimum(self) -> Optional[float]:
        return self._moments["min"] if self._moments["N"] > 0 else None

    def maximum(self) -> Optional[float]:
        return self._moments["max"] if self._moments["N"] > 0 else None

    def variance(self) -> Optional[float]:
        """Variance with denominator ``W - 1``; None unless ``W > 1``."""
        m = self._moments
        if m["W"] <= 1:
            return None
        return m["M2"] / (m["W"] - 1)

    def std_dev(self) -> Optional[float]:
        variance = self.variance()
        return math.sqrt(variance) if variance is not None else None

    def se_mean(self) -> Optional[float]:
        sd = self.std_dev()
        if sd is None or self.valid_weight <= 0:
            return None
        return sd / math.sqrt(self.valid_weight)

    def skewness(self) -> Optional[float]:
        """Bias-corrected skewness G1; needs ``W >= 3`` and positive variance."""
        variance = self.variance()
        n = self.valid_weight
        if variance is None or variance == 0 or n < 3:
            return None
        sd = math.sqrt(variance)
        return n * self._moments["M3"] / ((n - 1) * (n - 2) * sd**3)

    def se_skewness(self) -> Optional[float]:
        n = self.valid_weight
        if n < 3:
            return None
        return math.sqrt(6 * n * (n - 1) / ((n - 2) * (n + 1) * (n + 3)))

    def kurtosis(self) -> Optional[float]:
        """Bias-corrected excess kurtosis G2; needs ``W >= 4`` and positive variance."""
        variance = self.variance()
        n = self.valid_weight
        if variance is None or variance == 0 or n < 4:
            return None
        m = self._moments
        numerator = (n + 1) * n * m["M4"] - 3 * m["M2"] ** 2 * (n - 1)
        denominator = (n - 1) * (n - 2) * (n - 3) * variance**2
        return numerator / denominator

    def se_kurtosis(self) -> Optional[float]:
        n = self.valid_weight
        se_skew = self.se_skewness()
        if n < 4 or se_skew is None:
            return None
        return math.sqrt(4 * (n**2 - 1) * se_skew**2 / ((n - 3) * (n + 5)))

    def _counts(self) -> Dict[str, float]:
        dist = self.sample.distribution
        return {
            "N": dist.total_weight,
            "Valid": dist.valid_weight,
            "Missing": dist.missing_weight,
        }

    def _quartiles(self) -> Dict[str, Any]:
        engine = PercentileEngine(self.sample.distribution)
        method = PercentileMethod.WEIGHTED_AVERAGE_4
        p25 = engine.percentile(method, 25)
        p50 = engine.percentile(method, 50)
        p75 = engine.percentile(method, 75)
        return {
            "Median": p50,
            "25th Percentile": p25,
            "75th Percentile": p75,
            "IQR": p75 - p25 if p25 is not None and p75 is not None else None,
            "Percentiles": {"25": p25, "75": p75},
        }

    def statistics(self) -> Dict[str, Any]:
        """Statistics appropriate to the variable's measurement level.

        Nominal variables get counts and mode, ordinal variables add the
        median and quartiles, scale variables add moments.

        Returns:
            Mapping keyed by SPSS statistic names (``Mean``, ``SEMean`` ...).
        """
        measure = self.variable.effective_measure
        stats: Dict[str, Any] = self._counts()
        stats["Mode"] = FrequencyTableBuilder(
            self.sample.distribution, is_date=self.variable.core_type == "date"
        ).mode()
        if measure == "nominal":
            return stats

        stats.update(self._quartiles())
        if measure == "ordinal":
            return stats

        stats.update(
            {
                "Mean": self.mean(),
                "Sum": self.total(),
                "StdDeviation": self.std_dev(),
                "Variance": self.variance(),
                "SEMean": self.se_mean(),
                "Minimum": self.minimum(),
                "Maximum": self.maximum(),
                "Range": (
                    self.maximum() - self.minimum() if self.minimum() is not None else None
                ),
                "Skewness": self.skewness(),
                "SESkewness": self.se_skewness(),
                "Kurtosis": self.kurtosis(),
                "SEKurtosis": self.se_kurtosis(),
            }
        )
        return stats

    def z_scores(self) -> Optional[List[Optional[float]]]:
        """Standardised value of every input row.

        Rows that are missing, invalid or have an unusable weight get None.

        Returns:
            One entry per input row, or None when z-scores were not
            requested or the standard deviation is not positive.
        """
        if not self.save_standardized or self.variable.effective_measure != "scale":
            return None
        mean, sd = self.mean(), self.std_dev()
        if mean is None or not sd:
            return None

        scores: List[Optional[float]] = [None] * len(self.sample.data)
        for obs in self.sample.observations:
            scores[obs.row] = (obs.value - mean) / sd
        return scores
