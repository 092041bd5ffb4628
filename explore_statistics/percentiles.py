"""SPSS-compatible percentile definitions over a weighted distribution.

Six definitions are supported, selected by :class:`PercentileMethod`:

* ``waverage`` - weighted average at rank ``W*p`` (SPSS definition 1).
* ``haverage`` - weighted average at rank ``(W+1)*p`` (definition 4, the
  EXAMINE default).
* ``tukeyhinges`` - Tukey's hinges for the 25th/50th/75th percentiles of
  unweighted data; anything else falls back to ``waverage``.
* ``aempirical`` - empirical distribution function, averaging the two
  neighbouring observations when ``W*p`` lands exactly on a rank.
* ``empirical`` - empirical distribution function.
* ``round`` - observation closest to rank ``W*p``.

Ranks refer to positions in the case-weight expanded, sorted sample; they
are resolved through the cumulative weights so the expansion is never
materialised.
"""

from dataclasses import dataclass, field
import logging
import math
from typing import Callable, Dict, Iterable, Optional, Union

import numpy as np

from .config import PercentileMethod
from .weighted_sample import WeightedDistribution

logger = logging.getLogger(__name__)

DEFAULT_PERCENTILE_POINTS = (5, 10, 25, 50, 75, 90, 95)
TUKEY_HINGE_POINTS = (25, 50, 75)

# Ranks closer than this to an integer are treated as exact
_RANK_TOLERANCE = 1e-9


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(x + 0.5))


def _snap(rank: float) -> float:
    nearest = round(rank)
    if abs(rank - nearest) < _RANK_TOLERANCE:
        return float(nearest)
    return rank


@dataclass
class PercentileTable:
    """Percentiles of one variable computed with a single method."""

    method: PercentileMethod
    values: Dict[float, Optional[float]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Plain ``{method, values}`` mapping keyed by percentile."""
        return {"method": self.method.value, "values": dict(self.values)}


class PercentileEngine:
    """Compute percentiles of a :class:`WeightedDistribution`.

    Args:
        distribution: Numeric weighted distribution.

    Examples:
        >>> dist = WeightedDistribution.from_values([2, 4, 6, 8, 10])
        >>> engine = PercentileEngine(dist)
        >>> engine.percentile("haverage", 25)
        3.0
        >>> engine.percentile(PercentileMethod.TUKEY_HINGES, 25)
        4.0
    """

    def __init__(self, distribution: WeightedDistribution):
        self.distribution = distribution
        self._handlers: Dict[PercentileMethod, Callable[[float], float]] = {
            PercentileMethod.WEIGHTED_AVERAGE_1: self._weighted_average_1,
            PercentileMethod.WEIGHTED_AVERAGE_4: self._weighted_average_4,
            PercentileMethod.TUKEY_HINGES: self._tukey_hinges,
            PercentileMethod.EMPIRICAL_AVERAGED: self._empirical_averaged,
            PercentileMethod.EMPIRICAL: self._empirical,
            PercentileMethod.ROUND_NEAREST: self._round_nearest,
        }

    def percentile(self, method: Union[PercentileMethod, str, None], p: float) -> Optional[float]:
        """Compute the ``p``-th percentile.

        Args:
            method: Percentile definition (enum member or name).
            p: Percentile in [0, 100].

        Returns:
            Percentile value, or None when the distribution has no valid
            weight or is not numeric.

        Raises:
            ValueError: If ``p`` is outside [0, 100] or the method is unknown.
        """
        method = PercentileMethod.parse(method)
        if not 0 <= p <= 100:
            raise ValueError(f"Percentile must be between 0 and 100, got {p}")

        dist = self.distribution
        if not dist.numeric or dist.is_empty:
            return None
        return float(self._handlers[method](p))

    def percentiles(
        self,
        method: Union[PercentileMethod, str, None] = PercentileMethod.WEIGHTED_AVERAGE_4,
        points: Iterable[float] = DEFAULT_PERCENTILE_POINTS,
    ) -> PercentileTable:
        """Compute a table of percentiles with one method.

        Args:
            method: Percentile definition.
            points: Percentiles to evaluate.

        Returns:
            Table mapping each point to its value (None when undefined).
        """
        method = PercentileMethod.parse(method)
        return PercentileTable(method, {p: self.percentile(method, p) for p in points})

    # ------------------------------------------------------------------ #
    #  Weighted averages
    # ------------------------------------------------------------------ #

    def _weighted_average(self, target: float) -> float:
        """Interpolate at weight-rank ``target``.

        Within a bucket of weight >= 1 the blend fraction is the rank
        offset itself (capped at 1); buckets lighter than 1 normalise the
        offset by the bucket weight.
        """
        dist = self.distribution
        values, weights, cum = dist.values, dist.weights, dist.cum_weights

        if target <= 0:
            return values[0]
        if target >= dist.valid_weight:
            return values[-1]

        k = int(np.searchsorted(cum, target, side="left"))
        if k >= len(values):
            return values[-1]

        prev_cum = cum[k - 1] if k > 0 else 0.0
        g = target - prev_cum
        w_k = weights[k]
        if g >= w_k:
            return values[k]

        lower = values[k - 1] if k > 0 else values[0]
        frac = min(g, 1.0) if w_k >= 1 else g / w_k
        return (1 - frac) * lower + frac * values[k]

    def _weighted_average_1(self, p: float) -> float:
        return self._weighted_average(self.distribution.valid_weight * p / 100)

    def _weighted_average_4(self, p: float) -> float:
        return self._weighted_average((self.distribution.valid_weight + 1) * p / 100)

    # ------------------------------------------------------------------ #
    #  Tukey hinges
    # ------------------------------------------------------------------ #

    def _tukey_hinges(self, p: float) -> float:
        dist = self.distribution
        if p not in TUKEY_HINGE_POINTS or not dist.unit_weights:
            logger.debug("Tukey hinges unavailable for p=%s; using waverage", p)
            return self._weighted_average_1(p)

        expanded = np.repeat(dist.values, dist.weights.astype(np.int64))
        if p == 50:
            return _median_of_sorted(expanded)

        n = len(expanded)
        if p == 25:
            return _median_of_sorted(expanded[: (n + 1) // 2])
        return _median_of_sorted(expanded[n // 2 :])

    # ------------------------------------------------------------------ #
    #  Empirical distribution function family
    # ------------------------------------------------------------------ #

    def _value_at_rank(self, rank: float) -> float:
        """Value of the ``rank``-th (1-based) case in the expanded sample."""
        cum = self.distribution.cum_weights
        idx = int(np.searchsorted(cum, rank - _RANK_TOLERANCE, side="left"))
        idx = min(max(idx, 0), len(cum) - 1)
        return self.distribution.values[idx]

    def _rank(self, p: float) -> float:
        return _snap(p * self.distribution.valid_weight / 100)

    def _empirical_averaged(self, p: float) -> float:
        rank = self._rank(p)
        k = math.floor(rank)
        if rank - k == 0:
            lower = self._value_at_rank(max(k, 1))
            upper = self._value_at_rank(k + 1)
            return (lower + upper) / 2
        return self._value_at_rank(k + 1)

    def _empirical(self, p: float) -> float:
        k = math.ceil(self._rank(p))
        return self._value_at_rank(max(k, 1))

    def _round_nearest(self, p: float) -> float:
        k = round_half_up(self._rank(p))
        return self._value_at_rank(max(k, 1))


def _median_of_sorted(x: np.ndarray) -> float:
    n = len(x)
    mid = n // 2
    if n % 2 == 1:
        return x[mid]
    return (x[mid - 1] + x[mid]) / 2
