"""
Shared utilities for data ingestion: cell type coercion, numeric
conversion and typed equality.
"""

import logging
import math
import re
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

Scalar = str | int | float | bool | None
Row = dict[str, Scalar]

_INT_RE = re.compile(r"^\s*-?\d+\s*$")
_FLOAT_RE = re.compile(r"^\s*-?(\d+\.?|\.\d+|\d+\.\d+)([eE][-+]?\d+)?\s*$")
_TRUE = "true"
_FALSE = "false"


def coerce_cell(val: Any) -> Scalar:
    """Convert a raw CSV cell to int, float, bool, None or str.

    - NaN / None / blank strings -> None
    - integer strings -> int, decimal/exponent strings -> float
    - "true"/"false" (any case) -> bool
    - anything else is returned unchanged as a string
    """
    if val is None:
        return None
    if not isinstance(val, str):
        if isinstance(val, float) and math.isnan(val):
            return None
        return val

    if not val.strip():
        return None
    if _INT_RE.match(val):
        return int(val)
    if _FLOAT_RE.match(val):
        return float(val)

    lowered = val.strip().lower()
    if lowered == _TRUE:
        return True
    if lowered == _FALSE:
        return False
    return val


def parse_number(val: Any) -> float | None:
    """Coerce a value to float, returning None for non-numeric values."""
    if val is None:
        return None
    if isinstance(val, bool):
        return 1.0 if val else 0.0
    if isinstance(val, (int, float)):
        if isinstance(val, float) and not math.isfinite(val):
            return None
        return float(val)
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return 0.0
        try:
            number = float(val)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def to_number(val: Any) -> float:
    """Numeric value of a cell, 0 for missing or unparsable values."""
    number = parse_number(val)
    return 0.0 if number is None else number


def is_missing(val: Any) -> bool:
    if val is None:
        return True
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False


def typed_equal(a: Any, b: Any) -> bool:
    """Equality without cross-type coercion.

    Numbers compare by value (1 == 1.0); otherwise both operands must share
    a type, so "1" != 1 and True != 1.
    """
    a_num = isinstance(a, (int, float)) and not isinstance(a, bool)
    b_num = isinstance(b, (int, float)) and not isinstance(b, bool)
    if a_num and b_num:
        return a == b
    if a_num or b_num:
        return False
    if type(a) is not type(b):
        return False
    return a == b


def display_str(val: Any) -> str:
    """String form used for grouping keys and text comparisons.

    Booleans render lower-case and integral floats drop the ".0", so a key
    read from CSV and one built in code match.
    """
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)
