"""Robust location and spread: trimmed mean, Tukey hinges and outliers.

All statistics here are restricted to scale and ordinal variables that
are not stored as dates; for any other variable every method returns
None.

The boxplot fence rule classifies a case as an *outlier* when it lies
more than 1.5 IQR beyond a hinge and as *extreme* beyond 3 IQR.
"""

from dataclasses import dataclass, field
import logging
import math
from typing import Callable, Iterable, List, Optional
import warnings

import numpy as np

from ._warnings import ApproximationWarning
from .config import PercentileMethod
from .percentiles import PercentileEngine, round_half_up
from .weighted_sample import Observation, WeightedSampleBuilder

logger = logging.getLogger(__name__)

INNER_FENCE_MULTIPLIER = 1.5
OUTER_FENCE_MULTIPLIER = 3.0
DEFAULT_TRIM_PERCENT = 5.0
DEFAULT_EXTREME_COUNT = 5

# Absorbs float noise when a tail weight is consumed exactly
_TRIM_TOLERANCE = 1e-12


@dataclass
class TukeyHinges:
    """Tukey hinges and the IQR derived from them.

    Attributes:
        q1: Lower hinge.
        q3: Upper hinge.
        iqr: ``q3 - q1``.
        n: Size of the rank-expanded sample the hinges were read from.
        method: Always ``"tukey_hinges"``.
    """

    q1: float
    q3: float
    iqr: Optional[float]
    n: int
    method: str = "tukey_hinges"

    def to_dict(self) -> dict:
        """Plain mapping with the front-end key names."""
        return {"Q1": self.q1, "Q3": self.q3, "IQR": self.iqr, "method": self.method, "W": self.n}


@dataclass
class Fences:
    """Inner (1.5 IQR) and outer (3 IQR) boxplot fences."""

    lower_inner: float
    upper_inner: float
    lower_outer: float
    upper_outer: float

    @classmethod
    def from_quartiles(cls, q1: float, q3: float) -> "Fences":
        """Compute fences around the quartiles ``q1`` and ``q3``."""
        iqr = q3 - q1
        step = INNER_FENCE_MULTIPLIER * iqr
        return cls(
            lower_inner=q1 - step,
            upper_inner=q3 + step,
            lower_outer=q1 - OUTER_FENCE_MULTIPLIER * iqr,
            upper_outer=q3 + OUTER_FENCE_MULTIPLIER * iqr,
        )

    def is_high_extreme(self, value: float) -> bool:
        return value > self.upper_outer

    def is_low_extreme(self, value: float) -> bool:
        return value < self.lower_outer

    def is_high_outlier(self, value: float) -> bool:
        return self.upper_inner < value <= self.upper_outer

    def is_low_outlier(self, value: float) -> bool:
        return self.lower_outer <= value < self.lower_inner

    def classify(self, value: float) -> str:
        """Return ``"extreme"``, ``"outlier"`` or ``"normal"``."""
        if self.is_high_extreme(value) or self.is_low_extreme(value):
            return "extreme"
        if self.is_high_outlier(value) or self.is_low_outlier(value):
            return "outlier"
        return "normal"

    def to_dict(self) -> dict:
        return {
            "lowerInner": self.lower_inner,
            "upperInner": self.upper_inner,
            "lowerOuter": self.lower_outer,
            "upperOuter": self.upper_outer,
        }


@dataclass
class ExtremeValueEntry:
    """A case listed in the extreme-values table."""

    value: float
    case_index: int
    classification: str
    is_partial: bool = False

    def to_dict(self) -> dict:
        entry = {"value": self.value, "caseNumber": self.case_index, "type": self.classification}
        if self.is_partial:
            entry["isPartial"] = True
        return entry


@dataclass
class ExtremeValues:
    """Highest and lowest cases together with the fences used to flag them."""

    highest: List[ExtremeValueEntry] = field(default_factory=list)
    lowest: List[ExtremeValueEntry] = field(default_factory=list)
    fences: Optional[Fences] = None
    method: str = "tukey_hinges"
    is_truncated: bool = False

    def to_dict(self) -> dict:
        return {
            "highest": [e.to_dict() for e in self.highest],
            "lowest": [e.to_dict() for e in self.lowest],
            "fences": self.fences.to_dict() if self.fences is not None else None,
            "method": self.method,
            "isTruncated": self.is_truncated,
        }


@dataclass
class MEstimators:
    """Robust location estimates reported by EXAMINE."""

    huber: float
    tukey: float
    hampel: float
    andrews: float

    def to_dict(self) -> dict:
        return {
            "huber": self.huber,
            "tukey": self.tukey,
            "hampel": self.hampel,
            "andrews": self.andrews,
        }


def _pick(
    source: Iterable[Observation], predicate: Callable[[float], bool], limit: int
) -> List[Observation]:
    picked: List[Observation] = []
    if limit <= 0:
        return picked
    for obs in source:
        if predicate(obs.value):
            picked.append(obs)
            if len(picked) == limit:
                break
    return picked


def _tail(
    source: List[Observation],
    extreme: Callable[[float], bool],
    outlier: Callable[[float], bool],
    cap: int,
) -> List[Observation]:
    """Fill a tail with extreme cases first, then outliers, up to ``cap``."""
    chosen = _pick(source, extreme, cap)
    chosen.extend(_pick(source, outlier, cap - len(chosen)))
    return chosen


class RobustStatisticsEngine:
    """Trimmed mean, Tukey hinges, fences and extreme values.

    Args:
        sample: Builder holding the variable's valid observations.

    Examples:
        >>> from explore_statistics.config import VariableDefinition
        >>> sample = WeightedSampleBuilder(VariableDefinition(measure="scale"), [2, 4, 6, 8, 10])
        >>> hinges = RobustStatisticsEngine(sample).tukey_hinges()
        >>> (hinges.q1, hinges.q3, hinges.iqr)
        (4.0, 8.0, 4.0)
    """

    def __init__(self, sample: WeightedSampleBuilder):
        self.sample = sample
        self.variable = sample.variable

    @property
    def is_active(self) -> bool:
        """Whether the variable supports robust statistics."""
        return self.variable.is_numeric_measure and self.variable.core_type != "date"

    @property
    def distribution(self):
        return self.sample.distribution

    def trimmed_mean(self, trim_percent: float = DEFAULT_TRIM_PERCENT) -> Optional[float]:
        """Weighted mean after trimming ``trim_percent`` of the weight from each tail.

        A value straddling the cut keeps the part of its weight that was
        not consumed.

        Args:
            trim_percent: Percentage of total weight removed from each tail.

        Returns:
            Trimmed mean, or None when no weight remains.
        """
        if not self.is_active:
            return None
        dist = self.distribution
        if dist.is_empty:
            return None

        weights = dist.weights.copy()
        trim = trim_percent / 100 * dist.valid_weight

        i, j = 0, len(weights) - 1
        lower = trim
        while lower > 0 and i <= j:
            if weights[i] <= lower + _TRIM_TOLERANCE:
                lower -= weights[i]
                weights[i] = 0.0
                i += 1
            else:
                weights[i] -= lower
                lower = 0.0

        upper = trim
        while upper > 0 and j >= i:
            if weights[j] <= upper + _TRIM_TOLERANCE:
                upper -= weights[j]
                weights[j] = 0.0
                j -= 1
            else:
                weights[j] -= upper
                upper = 0.0

        remaining = weights[weights > 0]
        if remaining.sum() <= 0:
            return None
        return float(np.average(dist.values[weights > 0], weights=remaining))

    def tukey_hinges(self) -> Optional[TukeyHinges]:
        """Tukey hinges read from the rank-expanded sample.

        Each distinct value is repeated ``round(weight)`` times (at least
        once); non-integer weights therefore give an approximation.

        Returns:
            Hinges and IQR, or None when there is no valid weight.
        """
        if not self.is_active:
            return None
        dist = self.distribution
        if dist.is_empty:
            return None

        counts = np.maximum(1, np.floor(dist.weights + 0.5)).astype(np.int64)
        if not np.array_equal(counts, dist.weights):
            warnings.warn(
                f"Tukey hinges for {self.variable.name!r} use rounded non-integer weights",
                ApproximationWarning,
                stacklevel=2,
            )
        expanded = np.repeat(dist.values, counts)
        n = len(expanded)

        depth_median = (n + 1) / 2
        depth_hinge = (math.floor(depth_median) + 1) / 2
        lower_index = max(1, round_half_up(depth_hinge))
        upper_index = n - lower_index + 1

        q1 = float(expanded[lower_index - 1])
        q3 = float(expanded[upper_index - 1])
        iqr = q3 - q1 if math.isfinite(q1) and math.isfinite(q3) else None
        return TukeyHinges(q1=q1, q3=q3, iqr=iqr, n=n)

    def extreme_values(
        self, hinges: Optional[TukeyHinges], cap_per_tail: int = DEFAULT_EXTREME_COUNT
    ) -> Optional[ExtremeValues]:
        """List the most extreme cases beyond the hinge fences.

        Each tail is filled with cases beyond the outer fence first, then
        with cases between the inner and outer fences, up to
        ``cap_per_tail`` entries.

        Args:
            hinges: Tukey hinges (see :meth:`tukey_hinges`).
            cap_per_tail: Maximum cases listed per tail.

        Returns:
            Extreme values, or None when the IQR is missing or zero.
        """
        if not self.is_active or hinges is None or not hinges.iqr:
            return None
        ascending = self.sample.sorted_observations
        if not ascending:
            return None

        fences = Fences.from_quartiles(hinges.q1, hinges.q3)
        descending = ascending[::-1]
        highest = _tail(descending, fences.is_high_extreme, fences.is_high_outlier, cap_per_tail)
        lowest = _tail(ascending, fences.is_low_extreme, fences.is_low_outlier, cap_per_tail)

        def tag(obs: Observation) -> ExtremeValueEntry:
            if fences.is_high_extreme(obs.value) or fences.is_low_extreme(obs.value):
                return ExtremeValueEntry(obs.value, obs.case_number, "extreme")
            return ExtremeValueEntry(obs.value, obs.case_number, "outlier")

        return ExtremeValues(
            highest=[tag(o) for o in highest],
            lowest=[tag(o) for o in lowest],
            fences=fences,
            method="tukey_hinges",
        )

    def extreme_values_from_percentiles(
        self, cap_per_tail: int = DEFAULT_EXTREME_COUNT
    ) -> Optional[ExtremeValues]:
        """Highest and lowest cases with fences from weighted-average quartiles.

        Fences come from the ``waverage`` 25th and 75th percentiles.
        Flagged cases are listed first; remaining slots are filled with
        the next most extreme cases (classified ``normal``). The last
        entry of a tail is marked partial when the next case in sort
        order has the same value. A zero IQR lists the plain extremes
        without fences.

        Args:
            cap_per_tail: Maximum cases listed per tail.

        Returns:
            Extreme values, or None when there are no valid cases.
        """
        if not self.is_active:
            return None
        ascending = self.sample.sorted_observations
        if not ascending:
            return None
        descending = ascending[::-1]
        truncated = cap_per_tail > len(ascending)

        engine = PercentileEngine(self.distribution)
        q1 = engine.percentile(PercentileMethod.WEIGHTED_AVERAGE_1, 25)
        q3 = engine.percentile(PercentileMethod.WEIGHTED_AVERAGE_1, 75)
        if q1 is None or q3 is None:
            return None

        if q3 - q1 == 0:
            logger.debug("Zero IQR for %r; listing plain extremes", self.variable.name)
            return ExtremeValues(
                highest=[
                    ExtremeValueEntry(o.value, o.case_number, "normal")
                    for o in descending[:cap_per_tail]
                ],
                lowest=[
                    ExtremeValueEntry(o.value, o.case_number, "normal")
                    for o in ascending[:cap_per_tail]
                ],
                fences=None,
                method="percentiles",
                is_truncated=truncated,
            )

        fences = Fences.from_quartiles(q1, q3)
        highest = _tail(descending, fences.is_high_extreme, fences.is_high_outlier, cap_per_tail)
        lowest = _tail(ascending, fences.is_low_extreme, fences.is_low_outlier, cap_per_tail)

        def fill(chosen: List[Observation], source: List[Observation]) -> List[ExtremeValueEntry]:
            seen = {id(o) for o in chosen}
            for obs in source:
                if len(chosen) >= cap_per_tail:
                    break
                if id(obs) not in seen:
                    chosen.append(obs)
            entries = [
                ExtremeValueEntry(o.value, o.case_number, fences.classify(o.value)) for o in chosen
            ]
            if chosen:
                position = next(k for k, o in enumerate(source) if o is chosen[-1])
                if position + 1 < len(source) and source[position + 1].value == chosen[-1].value:
                    entries[-1].is_partial = True
            return entries

        return ExtremeValues(
            highest=fill(highest, descending),
            lowest=fill(lowest, ascending),
            fences=fences,
            method="percentiles",
            is_truncated=truncated,
        )

    def m_estimators(self, fallback_mean: Optional[float] = None) -> Optional[MEstimators]:
        """Robust location estimates.

        All four estimators currently report the 5% trimmed mean (or
        ``fallback_mean`` when that is undefined) rather than iterating
        their weight functions; downstream reports rely on these values.

        Args:
            fallback_mean: Arithmetic mean used when the trimmed mean is undefined.

        Returns:
            Estimates, or None when neither value is available.
        """
        if not self.is_active:
            return None
        value = self.trimmed_mean(DEFAULT_TRIM_PERCENT)
        if value is None or not math.isfinite(value):
            value = fallback_mean
        if value is None:
            return None
        return MEstimators(huber=value, tukey=value, hampel=value, andrews=value)
