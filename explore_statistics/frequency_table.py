"""Modes and frequency tables from a weighted distribution."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Optional, Union

import pandas as pd

from .coercion import spss_seconds_to_date_string
from .weighted_sample import WeightedDistribution

ONE_DECIMAL = Decimal("0.1")


def round_percent(value: float) -> Decimal:
    """Round a percentage half-up to one decimal place.

    Floats are converted via a 10-digit string representation first so
    that binary artifacts such as ``12.349999999`` do not flip the
    rounding direction.
    """
    return Decimal(str(round(value, 10))).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def format_value(value: Union[float, str], is_date: bool = False) -> str:
    """Render a distribution value as a table label."""
    if isinstance(value, str):
        return value
    if is_date:
        text = spss_seconds_to_date_string(value)
        if text is not None:
            return text
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


@dataclass
class FrequencyRow:
    """One row of a frequency table."""

    label: str
    value: Union[float, str]
    frequency: float
    percent: float
    valid_percent: float
    cumulative_percent: float

    def to_dict(self) -> dict:
        """Row as a plain mapping with the front-end key names."""
        return {
            "label": self.label,
            "value": self.value,
            "frequency": self.frequency,
            "percent": self.percent,
            "validPercent": self.valid_percent,
            "cumulativeValidPercent": self.cumulative_percent,
        }


@dataclass
class FrequencySummary:
    """Weighted case counts: valid, missing and total."""

    valid: float
    missing: float
    total: float

    def to_dict(self) -> dict:
        """Summary as a plain mapping."""
        return {"valid": self.valid, "missing": self.missing, "total": self.total}


class FrequencyTableBuilder:
    """Build modes and frequency tables for one variable.

    Args:
        distribution: Weighted distribution of the variable.
        is_date: Render numeric values as ``dd-mm-yyyy`` labels.
    """

    def __init__(self, distribution: WeightedDistribution, is_date: bool = False):
        self.distribution = distribution
        self.is_date = is_date

    def mode(self) -> Optional[List[Any]]:
        """Return every value that carries the maximum weight.

        Returns:
            List of modal values (dates as strings), or None when the
            distribution is empty.
        """
        dist = self.distribution
        if dist.size == 0:
            return None

        max_weight = dist.weights.max()
        modes = [v for v, w in zip(dist.values, dist.weights) if w == max_weight]
        if not dist.numeric:
            return modes
        if self.is_date:
            return [format_value(v, is_date=True) for v in modes]
        return [float(v) for v in modes]

    def summary(self, total_n: Optional[float] = None) -> FrequencySummary:
        """Valid, missing and total weight.

        Args:
            total_n: Total case count including missing cases. Defaults to
                the distribution's total weight.
        """
        dist = self.distribution
        total = dist.total_weight if total_n is None else float(total_n)
        return FrequencySummary(
            valid=dist.valid_weight, missing=total - dist.valid_weight, total=total
        )

    def frequency_table(self, total_n: Optional[float] = None) -> Optional[List[FrequencyRow]]:
        """Build the frequency / percent / cumulative percent table.

        ``percent`` is relative to ``total_n`` (missing cases included) and
        ``valid_percent`` to the valid weight. Both are rounded to one
        decimal; the cumulative column is the running sum of the rounded
        valid percents.

        Args:
            total_n: Total case count including missing cases. Defaults to
                the distribution's total weight.

        Returns:
            Table rows in ascending value order, or None when there is no
            valid weight.
        """
        dist = self.distribution
        valid_n = dist.valid_weight
        if valid_n <= 0:
            return None

        total = dist.total_weight if total_n is None else float(total_n)
        if total <= 0:
            total = valid_n

        rows: List[FrequencyRow] = []
        cumulative = Decimal("0.0")
        for value, freq in zip(dist.values, dist.weights):
            valid_percent = round_percent(freq / valid_n * 100)
            cumulative += valid_percent
            rows.append(
                FrequencyRow(
                    label=format_value(value, self.is_date),
                    value=value if isinstance(value, str) else float(value),
                    frequency=float(freq),
                    percent=float(round_percent(freq / total * 100)),
                    valid_percent=float(valid_percent),
                    cumulative_percent=float(cumulative),
                )
            )
        return rows

    def to_dataframe(self, total_n: Optional[float] = None) -> pd.DataFrame:
        """Frequency table as a DataFrame (empty when undefined)."""
        rows = self.frequency_table(total_n)
        columns = [
            "label",
            "value",
            "frequency",
            "percent",
            "validPercent",
            "cumulativeValidPercent",
        ]
        if rows is None:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([row.to_dict() for row in rows], columns=columns)
