"""Weighted empirical distribution of a single variable.

:class:`WeightedSampleBuilder` turns a raw value stream and optional case
weights into a :class:`WeightedDistribution`: the distinct valid values in
ascending order, the total weight carried by each of them and the running
cumulative weight. Every downstream engine (percentiles, frequency table,
robust statistics) reads this one immutable structure.
"""

from dataclasses import dataclass
from functools import cached_property
import logging
import math
from numbers import Real
from typing import Any, Dict, List, Optional, Sequence, Union
import warnings

import numpy as np

from ._warnings import DataQualityWarning
from .coercion import is_missing, to_label, to_numeric
from .config import VariableDefinition

logger = logging.getLogger(__name__)

Value = Union[float, str]


@dataclass(frozen=True)
class Observation:
    """A valid case: coerced value, positive weight, case number and input row."""

    value: Value
    weight: float
    case_number: int
    row: int


@dataclass(frozen=True)
class WeightedDistribution:
    """Sorted weighted distribution of the valid values of a variable.

    Attributes:
        values: Distinct valid values, strictly ascending.
        weights: Total weight of each value (all > 0).
        cum_weights: Running sum of ``weights``.
        valid_weight: Total valid weight ``W`` (``cum_weights[-1]``, 0 if empty).
        n_valid: Unweighted number of valid observations.
        total_weight: Weight of every case with a usable weight, missing
            values included. Denominator of the frequency ``percent`` column.
        unit_weights: True when every accepted observation had weight 1.
        numeric: False for nominal distributions of text labels.
    """

    values: np.ndarray
    weights: np.ndarray
    cum_weights: np.ndarray
    valid_weight: float
    n_valid: int
    total_weight: float
    unit_weights: bool = True
    numeric: bool = True

    @property
    def size(self) -> int:
        """Number of distinct values."""
        return len(self.values)

    @property
    def is_empty(self) -> bool:
        """True when there is no valid weight."""
        return self.valid_weight <= 0

    @property
    def missing_weight(self) -> float:
        """Weight of cases excluded as missing or non-coercible."""
        return self.total_weight - self.valid_weight

    @classmethod
    def from_weight_map(
        cls,
        weight_map: Dict[Value, float],
        n_valid: int,
        total_weight: float,
        unit_weights: bool = True,
        numeric: bool = True,
    ) -> "WeightedDistribution":
        """Sort a value-to-weight map into a distribution.

        Args:
            weight_map: Accumulated weight per distinct value.
            n_valid: Unweighted count of valid observations.
            total_weight: Weight of all cases, missing included.
            unit_weights: Whether all accepted weights were exactly 1.
            numeric: Whether keys are numbers (else text labels).

        Returns:
            Immutable distribution.
        """
        keys = sorted(weight_map)
        if numeric:
            values = np.array(keys, dtype=np.float64)
        else:
            values = np.array(keys, dtype=object)
        weights = np.array([weight_map[k] for k in keys], dtype=np.float64)
        cum_weights = np.cumsum(weights)
        for arr in (values, weights, cum_weights):
            arr.setflags(write=False)

        valid_weight = float(cum_weights[-1]) if len(cum_weights) else 0.0
        return cls(
            values=values,
            weights=weights,
            cum_weights=cum_weights,
            valid_weight=valid_weight,
            n_valid=n_valid,
            total_weight=float(total_weight),
            unit_weights=unit_weights,
            numeric=numeric,
        )

    @classmethod
    def from_values(
        cls, values: Sequence[float], weights: Optional[Sequence[float]] = None
    ) -> "WeightedDistribution":
        """Build a numeric distribution straight from clean values.

        Convenience for callers that already hold valid numbers; no
        missing-value rule is applied, non-positive weights are dropped.
        """
        builder = WeightedSampleBuilder(VariableDefinition(measure="scale"), values, weights)
        return builder.distribution


def _usable_weight(raw: Any) -> Optional[float]:
    """Return the case weight, or None when the case must be ignored."""
    if raw is None:
        return 1.0
    if isinstance(raw, bool) or not isinstance(raw, Real):
        return None
    weight = float(raw)
    if not math.isfinite(weight) or weight <= 0:
        return None
    return weight


class WeightedSampleBuilder:
    """Build and memoise the weighted distribution of one variable.

    The builder is cheap to construct; the distribution is computed on
    first access and cached for the lifetime of the instance. The input
    arrays must not be mutated afterwards.

    Args:
        variable: Variable metadata (measure, type, missing rule).
        data: Raw observations.
        weights: Optional case weights, parallel to ``data``. ``None``
            entries count as weight 1.
        case_numbers: Optional case identifiers, parallel to ``data``.
            Defaults to the 1-based row index.

    Examples:
        >>> builder = WeightedSampleBuilder(VariableDefinition(measure="scale"), [3, 1, 3])
        >>> builder.distribution.values.tolist()
        [1.0, 3.0]
        >>> builder.distribution.weights.tolist()
        [1.0, 2.0]
    """

    def __init__(
        self,
        variable: VariableDefinition,
        data: Sequence[Any],
        weights: Optional[Sequence[Any]] = None,
        case_numbers: Optional[Sequence[Any]] = None,
    ):
        self.variable = variable
        self.data = data if data is not None else []
        self.weights = weights
        self.case_numbers = case_numbers
        self.numeric = variable.is_numeric_measure

    def _row_count(self) -> int:
        n = len(self.data)
        if self.weights is not None and len(self.weights) != n:
            warnings.warn(
                f"Variable {self.variable.name!r}: {n} values but {len(self.weights)} weights; "
                "using the shorter length",
                DataQualityWarning,
                stacklevel=3,
            )
            n = min(n, len(self.weights))
            logger.debug("Truncated %r to %d rows", self.variable.name, n)
        return n

    def _case_number(self, i: int) -> int:
        if self.case_numbers is not None and i < len(self.case_numbers) and self.case_numbers[i]:
            return self.case_numbers[i]
        return i + 1

    def _coerce(self, raw: Any) -> Optional[Value]:
        rule = self.variable.missing
        if self.numeric:
            num = to_numeric(raw)
            if num is None or is_missing(num, rule, numeric=True):
                return None
            return num
        label = to_label(raw)
        if label is None or is_missing(label, rule, numeric=False):
            return None
        return label

    @cached_property
    def _scan(self):
        observations: List[Observation] = []
        total_weight = 0.0
        for i in range(self._row_count()):
            weight = _usable_weight(self.weights[i] if self.weights is not None else None)
            if weight is None:
                continue
            total_weight += weight

            value = self._coerce(self.data[i])
            if value is None:
                continue
            observations.append(Observation(value, weight, self._case_number(i), i))
        return observations, total_weight

    @property
    def observations(self) -> List[Observation]:
        """Valid observations in input order."""
        return self._scan[0]

    @cached_property
    def sorted_observations(self) -> List[Observation]:
        """Valid observations sorted by value (stable for ties)."""
        return sorted(self.observations, key=lambda o: o.value)

    @cached_property
    def distribution(self) -> WeightedDistribution:
        """Weighted distribution of the valid values."""
        observations, total_weight = self._scan

        weight_map: Dict[Value, float] = {}
        unit_weights = True
        for obs in observations:
            weight_map[obs.value] = weight_map.get(obs.value, 0.0) + obs.weight
            if obs.weight != 1.0:
                unit_weights = False

        distribution = WeightedDistribution.from_weight_map(
            weight_map,
            n_valid=len(observations),
            total_weight=total_weight,
            unit_weights=unit_weights,
            numeric=self.numeric,
        )
        logger.debug(
            "Built distribution for %r: %d distinct values, W=%g, T=%g",
            self.variable.name,
            distribution.size,
            distribution.valid_weight,
            distribution.total_weight,
        )
        return distribution
