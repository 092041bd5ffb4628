"""Value coercion and missing-value tests.

Raw observations arrive as whatever the data grid holds: numbers,
numeric strings, ``dd-mm-yyyy`` date strings, empty cells. Numeric-like
variables coerce them to floats (dates become SPSS seconds, counted from
the start of the Gregorian calendar on 1582-10-14); nominal variables
keep trimmed text.
"""

from datetime import date, timedelta
import math
from numbers import Real
import re
from typing import Any, Optional, Union

from .config import MissingValueRule

SPSS_EPOCH = date(1582, 10, 14)
SECONDS_PER_DAY = 86400

_DATE_PATTERN = re.compile(r"^\s*(\d{1,2})-(\d{1,2})-(\d{4})\s*$")


def is_date_string(value: Any) -> bool:
    """Return True for strings shaped like ``dd-mm-yyyy``."""
    return isinstance(value, str) and _DATE_PATTERN.match(value) is not None


def date_string_to_spss_seconds(value: str) -> Optional[float]:
    """Convert a ``dd-mm-yyyy`` string to SPSS seconds.

    Args:
        value: Date string.

    Returns:
        Seconds since 1582-10-14, or None if the string is not a real date.
    """
    match = _DATE_PATTERN.match(value) if isinstance(value, str) else None
    if match is None:
        return None
    day, month, year = (int(g) for g in match.groups())
    try:
        d = date(year, month, day)
    except ValueError:
        return None
    return float((d - SPSS_EPOCH).days * SECONDS_PER_DAY)


def spss_seconds_to_date_string(seconds: float) -> Optional[str]:
    """Convert SPSS seconds back to ``dd-mm-yyyy``.

    Returns:
        Formatted date, or None when ``seconds`` is not finite or out of range.
    """
    if not isinstance(seconds, Real) or not math.isfinite(seconds):
        return None
    try:
        d = SPSS_EPOCH + timedelta(days=math.floor(seconds / SECONDS_PER_DAY))
    except OverflowError:
        return None
    return f"{d.day:02d}-{d.month:02d}-{d.year:04d}"


def to_numeric(value: Any) -> Optional[float]:
    """Coerce a raw cell to a finite float.

    Date strings are converted to SPSS seconds, finite numbers pass
    through, other strings are parsed. Booleans, empty cells and anything
    non-finite yield None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        if value.strip() == "":
            return None
        if is_date_string(value):
            return date_string_to_spss_seconds(value)
        try:
            num = float(value.strip())
        except ValueError:
            return None
        return num if math.isfinite(num) else None
    if isinstance(value, Real):
        num = float(value)
        return num if math.isfinite(num) else None
    return None


def _text(value: Any) -> str:
    # Whole floats render as integers, so 9.0 reads "9".
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_label(value: Any) -> Optional[str]:
    """Coerce a raw cell to a trimmed, non-empty label for nominal variables."""
    if value is None:
        return None
    return _text(value) or None


def _as_float(value: Union[float, str]) -> Optional[float]:
    if isinstance(value, str):
        return to_numeric(value)
    return float(value)


def is_missing(
    value: Union[float, str], rule: Optional[MissingValueRule], numeric: bool = True
) -> bool:
    """Test a coerced value against a variable's user-missing rule.

    Args:
        value: Coerced value (float for numeric-like variables, label otherwise).
        rule: Missing-value rule, or None when the variable has none.
        numeric: Whether ``value`` is numeric; ranges only apply to numbers.

    Returns:
        True if the value is user-missing.
    """
    if rule is None:
        return False

    for sentinel in rule.discrete:
        if numeric:
            sentinel_num = _as_float(sentinel)
            if sentinel_num is not None and sentinel_num == value:
                return True
        if _text(sentinel) == _text(value):
            return True

    if numeric and rule.range is not None:
        if rule.range.min <= value <= rule.range.max:
            return True

    return False
