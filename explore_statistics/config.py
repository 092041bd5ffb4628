"""Configuration models using Pydantic v2.

This module holds the validated inputs of an Explore analysis: the
definition of the variable being analysed (measurement level, storage
type and missing-value rule) and the analysis options.

Examples:
    Define a scale variable with a user-missing code::

        from explore_statistics.config import ExploreOptions, VariableDefinition

        variable = VariableDefinition(
            name="income",
            measure="scale",
            missing={"discrete": [-99]},
        )
        options = ExploreOptions(show_outliers=True, percentile_method="waverage")

    Load options saved by the front end (camelCase keys are accepted)::

        options = ExploreOptions.from_dict({"percentileMethod": "haverage", "extremeCount": 3})
"""

from enum import Enum
from pathlib import Path
import re
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
import yaml


class PercentileMethod(Enum):
    """Percentile definitions available to the Explore procedure."""

    WEIGHTED_AVERAGE_1 = "waverage"  # x at rank W*p
    WEIGHTED_AVERAGE_4 = "haverage"  # x at rank (W+1)*p
    TUKEY_HINGES = "tukeyhinges"  # quartiles only
    EMPIRICAL_AVERAGED = "aempirical"  # EDF, averaged at exact ranks
    EMPIRICAL = "empirical"  # EDF
    ROUND_NEAREST = "round"  # closest observation

    @classmethod
    def parse(cls, value: Any) -> "PercentileMethod":
        """Resolve a method from an enum member, value or member name.

        Matching ignores case and underscores, so ``"HAVERAGE"``,
        ``"WeightedAverage4"`` and ``"weighted_average_4"`` all resolve.

        Raises:
            ValueError: If the name matches no method.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.WEIGHTED_AVERAGE_1
        key = str(value).strip().lower().replace("_", "").replace(" ", "")
        for member in cls:
            if key in (member.value, member.name.lower().replace("_", "")):
                return member
        raise ValueError(f"Unknown percentile method: {value!r}")


# SPSS storage formats that hold dates or times as seconds since 1582-10-14
SPSS_DATE_TYPES = frozenset(
    {"DATE", "ADATE", "EDATE", "SDATE", "JDATE", "QYR", "MOYR", "WKYR", "DATETIME", "TIME", "DTIME"}
)

MeasureLevel = Literal["scale", "ordinal", "nominal", "unknown"]
CoreType = Literal["numeric", "string", "date"]


class MissingRange(BaseModel):
    """Inclusive numeric range of user-missing values."""

    min: float
    max: float

    @model_validator(mode="after")
    def validate_bounds(self):
        """Ensure the range is not inverted.

        Returns:
            Validated range.

        Raises:
            ValueError: If ``min`` is greater than ``max``.
        """
        if self.min > self.max:
            raise ValueError(f"Missing range min ({self.min}) must not exceed max ({self.max})")
        return self


class MissingValueRule(BaseModel):
    """User-defined missing values for a variable.

    Attributes:
        discrete: Sentinel values treated as missing. Numeric variables
            compare them numerically, string variables by text.
        range: Optional inclusive range of missing values (numeric and
            date variables only).
    """

    discrete: List[Union[float, str]] = Field(default_factory=list)
    range: Optional[MissingRange] = None


class VariableDefinition(BaseModel):
    """Metadata of the analysed variable.

    Attributes:
        name: Variable name, used only for labelling results.
        measure: Declared measurement level. ``unknown`` is resolved from
            the storage type (see :attr:`effective_measure`).
        type: SPSS storage type name such as ``NUMERIC``, ``STRING`` or
            ``ADATE``.
        missing: Optional user-missing rule.
    """

    name: str = ""
    measure: MeasureLevel = "unknown"
    type: str = "NUMERIC"
    missing: Optional[MissingValueRule] = None

    @field_validator("measure", mode="before")
    @classmethod
    def normalize_measure(cls, v: Any) -> Any:
        """Accept measurement levels in any case."""
        if v is None:
            return "unknown"
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        """Store type names upper-case, as SPSS reports them."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def core_type(self) -> CoreType:
        """Collapse the storage type into numeric, string or date."""
        if self.type == "STRING":
            return "string"
        if self.type in SPSS_DATE_TYPES:
            return "date"
        return "numeric"

    @property
    def effective_measure(self) -> str:
        """Measurement level with ``unknown`` resolved.

        Strings default to nominal; numeric and date variables to scale.
        """
        if self.measure != "unknown":
            return self.measure
        return "nominal" if self.core_type == "string" else "scale"

    @property
    def is_numeric_measure(self) -> bool:
        """Whether values are treated as ordered numbers (scale or ordinal)."""
        return self.effective_measure in ("scale", "ordinal")


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


class ExploreOptions(BaseModel):
    """Options of an Explore analysis.

    Attributes:
        percentile_method: Percentile definition for the percentile table.
        show_outliers: Report the extreme-values table.
        use_hinges_for_outliers: Derive fences from Tukey hinges rather than
            weighted-average quartiles.
        extreme_count: Maximum number of cases listed per tail.
        confidence_interval: Confidence level of the mean interval, in percent.
        trim_percent: Percentage of total weight trimmed from each tail for
            the trimmed mean.
        save_standardized: Also compute z-scores for every case.
    """

    percentile_method: PercentileMethod = PercentileMethod.WEIGHTED_AVERAGE_4
    show_outliers: bool = False
    use_hinges_for_outliers: bool = True
    extreme_count: int = Field(default=5, ge=1, description="Cases listed per tail")
    confidence_interval: float = Field(default=95.0, gt=0, lt=100)
    trim_percent: float = Field(default=5.0, ge=0, lt=50)
    save_standardized: bool = False

    @field_validator("percentile_method", mode="before")
    @classmethod
    def parse_percentile_method(cls, v: Any) -> PercentileMethod:
        """Resolve method names such as ``"HAVERAGE"`` or ``"TukeyHinges"``."""
        return PercentileMethod.parse(v)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExploreOptions":
        """Create options from a dictionary.

        Keys may be snake_case or the camelCase names used by the front
        end (``percentileMethod``, ``showOutliers`` ...). ``None`` values
        are dropped so that defaults apply.

        Args:
            data: Option mapping, or None for all defaults.

        Returns:
            Validated options.
        """
        if not data:
            return cls()
        cleaned = {_snake_case(k): v for k, v in data.items() if v is not None}
        return cls(**cleaned)

    @classmethod
    def from_yaml(cls, path: Path) -> "ExploreOptions":
        """Load options from a YAML file.

        Args:
            path: Path to YAML options file.

        Returns:
            Validated options.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValidationError: If the options are invalid.
        """
        if not path.exists():
            raise FileNotFoundError(f"Options file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        data = {k: v for k, v in data.items() if not k.startswith("_")}
        return cls.from_dict(data)

    def to_yaml(self, path: Path) -> None:
        """Save options to a YAML file.

        Args:
            path: Destination path.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
