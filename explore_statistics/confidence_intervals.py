"""Confidence interval for the mean from a tabulated Student-t.

Critical values come from a two-sided t table for alpha 0.01, 0.05 and
0.10 with 1 to 30 degrees of freedom. Beyond 30 degrees of freedom the
value decays exponentially from the df=30 entry towards the normal
quantile; fractional degrees of freedom interpolate linearly between the
bracketing rows. The requested alpha is snapped to the nearest tabulated
level.

``method="exact"`` swaps the table for ``scipy.stats.t.ppf``.
"""

from dataclasses import dataclass
import logging
import math
from typing import Dict, Literal, Optional

from scipy import stats

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_LEVEL = 95.0

# Two-sided critical values t(1 - alpha/2, df), df = 1..30
T_TABLE: Dict[float, Dict[int, float]] = {
    0.01: {
        1: 63.657, 2: 9.925, 3: 5.841, 4: 4.604, 5: 4.032,
        6: 3.707, 7: 3.499, 8: 3.355, 9: 3.250, 10: 3.169,
        11: 3.106, 12: 3.055, 13: 3.012, 14: 2.977, 15: 2.947,
        16: 2.921, 17: 2.898, 18: 2.878, 19: 2.861, 20: 2.845,
        21: 2.831, 22: 2.819, 23: 2.807, 24: 2.797, 25: 2.787,
        26: 2.779, 27: 2.771, 28: 2.763, 29: 2.756, 30: 2.750,
    },
    0.05: {
        1: 12.706, 2: 4.303, 3: 3.182, 4: 2.776, 5: 2.571,
        6: 2.447, 7: 2.365, 8: 2.306, 9: 2.262, 10: 2.228,
        11: 2.201, 12: 2.179, 13: 2.160, 14: 2.145, 15: 2.131,
        16: 2.120, 17: 2.110, 18: 2.101, 19: 2.093, 20: 2.086,
        21: 2.080, 22: 2.074, 23: 2.069, 24: 2.064, 25: 2.060,
        26: 2.056, 27: 2.052, 28: 2.048, 29: 2.045, 30: 2.042,
    },
    0.10: {
        1: 6.314, 2: 2.920, 3: 2.353, 4: 2.132, 5: 2.015,
        6: 1.943, 7: 1.895, 8: 1.860, 9: 1.833, 10: 1.812,
        11: 1.796, 12: 1.782, 13: 1.771, 14: 1.761, 15: 1.753,
        16: 1.746, 17: 1.740, 18: 1.734, 19: 1.729, 20: 1.725,
        21: 1.721, 22: 1.717, 23: 1.714, 24: 1.711, 25: 1.708,
        26: 1.706, 27: 1.703, 28: 1.701, 29: 1.699, 30: 1.697,
    },
}  # fmt: skip

# Two-sided normal quantiles z(1 - alpha/2)
Z_TABLE: Dict[float, float] = {0.01: 2.576, 0.05: 1.96, 0.10: 1.645}

MAX_TABLE_DF = 30
_DECAY_RATE = 0.1


def nearest_alpha(alpha: float) -> float:
    """Snap ``alpha`` to the closest tabulated significance level."""
    return min(T_TABLE, key=lambda a: abs(a - alpha))


def t_critical_value(df: float, alpha: float = 0.05) -> float:
    """Approximate two-sided Student-t critical value.

    Args:
        df: Degrees of freedom (may be fractional, as with weighted counts).
        alpha: Significance level; snapped to 0.01, 0.05 or 0.10.

    Returns:
        Critical value ``t(1 - alpha/2, df)``.

    Examples:
        >>> t_critical_value(10, 0.05)
        2.228
        >>> t_critical_value(0.5, 0.05)
        12.706
    """
    level = nearest_alpha(alpha)
    table = T_TABLE[level]

    if df > MAX_TABLE_DF:
        z = Z_TABLE[level]
        return z + (table[MAX_TABLE_DF] - z) * math.exp(-_DECAY_RATE * (df - MAX_TABLE_DF))
    if df < 1:
        return table[1]

    lower_df = math.floor(df)
    upper_df = math.ceil(df)
    if lower_df == upper_df:
        return table[int(df)]

    fraction = df - lower_df
    return table[lower_df] + fraction * (table[upper_df] - table[lower_df])


@dataclass
class ConfidenceInterval:
    """Two-sided confidence interval for the mean."""

    lower: float
    upper: float
    level: float

    def to_dict(self) -> dict:
        return {"lower": self.lower, "upper": self.upper, "level": self.level}


class ConfidenceIntervalEstimator:
    """Build confidence intervals around an externally computed mean.

    Args:
        level: Confidence level in percent.
        method: ``"table"`` for the tabulated approximation, ``"exact"`` for
            the scipy t quantile.
    """

    def __init__(
        self,
        level: float = DEFAULT_CONFIDENCE_LEVEL,
        method: Literal["table", "exact"] = "table",
    ):
        if not 0 < level < 100:
            raise ValueError(f"Confidence level must be in (0, 100), got {level}")
        if method not in ("table", "exact"):
            raise ValueError(f"Unknown critical value method: {method}")
        self.level = level
        self.method = method

    @property
    def alpha(self) -> float:
        return (100 - self.level) / 100

    def critical_value(self, df: float) -> float:
        """Critical value for ``df`` degrees of freedom."""
        if self.method == "exact":
            return float(stats.t.ppf(1 - self.alpha / 2, df))
        return t_critical_value(df, self.alpha)

    def estimate(
        self, mean: Optional[float], se_mean: Optional[float], valid_weight: float
    ) -> Optional[ConfidenceInterval]:
        """Interval ``mean -/+ t * se_mean`` with ``W - 1`` degrees of freedom.

        Args:
            mean: Sample mean.
            se_mean: Standard error of the mean.
            valid_weight: Valid weight ``W``.

        Returns:
            Interval, or None when ``W <= 1`` or an input is missing.
        """
        if mean is None or se_mean is None or valid_weight is None or valid_weight <= 1:
            return None
        t = self.critical_value(valid_weight - 1)
        logger.debug("t critical value %.4f for df=%g, level=%g", t, valid_weight - 1, self.level)
        return ConfidenceInterval(
            lower=mean - t * se_mean, upper=mean + t * se_mean, level=self.level
        )
