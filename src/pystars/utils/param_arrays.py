"""
Numeric conversion helpers for STARS message parameters.

Parameters frequently carry delimited numeric lists ("1 2 3", "0.5,1.5").
These helpers turn such a string into a fixed-width numpy array. A conversion
is all-or-nothing: if any element fails to parse or does not fit the target
dtype, an empty array of that dtype is returned.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Union

import numpy as np

logger = logging.getLogger(__name__)

DTypeLike = Union[str, type, np.dtype]

# Integer range used when interpreting boolean flags ("0" / non-zero)
_BOOL_SOURCE_DTYPE = np.dtype(np.int32)


def split_params(text: str, sep: str = " ") -> List[str]:
    """Split a parameter string on a single separator, keeping empty items."""
    if not sep:
        raise ValueError("Separator must be a non-empty string")
    return text.split(sep)


def _parse_int(item: str, dtype: np.dtype) -> int:
    if '_' in item:
        raise ValueError(f"Invalid integer literal: {item!r}")
    value = int(item.strip())
    info = np.iinfo(dtype)
    if value < info.min or value > info.max:
        raise OverflowError(f"{value} out of range for {dtype.name}")
    return value


def _parse_float(item: str) -> float:
    if '_' in item:
        raise ValueError(f"Invalid float literal: {item!r}")
    return float(item.strip())


def to_array(text: str, sep: str = " ", dtype: DTypeLike = np.int32) -> np.ndarray:
    """
    Convert a delimited parameter string to a numeric array.

    Args:
        text: Parameter string, e.g. "10 20 30"
        sep: Separator between items (default: single space)
        dtype: Target integer or floating point dtype

    Returns:
        Array of `dtype` with one element per item, or an empty array of
        `dtype` if any item cannot be converted

    Example:
        >>> to_array("1 2 3", " ", np.int16)
        array([1, 2, 3], dtype=int16)
        >>> to_array("1 x 3", " ", np.int16)
        array([], dtype=int16)
    """
    target = np.dtype(dtype)
    if target.kind not in ('i', 'u', 'f'):
        raise ValueError(f"Unsupported dtype for numeric parameters: {target}")

    items = split_params(text, sep)
    try:
        if target.kind in ('i', 'u'):
            values = [_parse_int(item, target) for item in items]
            return np.array(values, dtype=target)
        values = [_parse_float(item) for item in items]
        with np.errstate(over='ignore'):
            return np.array(values, dtype=target)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Could not convert parameters {text!r} to {target.name}: {e}")
        return np.array([], dtype=target)


def to_bool_array(text: str, sep: str = " ") -> np.ndarray:
    """
    Convert integer flags to booleans: 0 is False, any other integer True.

    Returns an empty bool array if any item is not an integer.
    """
    flags = to_array(text, sep, _BOOL_SOURCE_DTYPE)
    if flags.size == 0:
        return np.array([], dtype=bool)
    return flags != 0


def to_decimal_array(text: str, sep: str = " ") -> np.ndarray:
    """
    Convert items to exact decimals, stored in an object array.

    Returns an empty object array if any item is not a finite decimal.
    """
    try:
        values = []
        for item in split_params(text, sep):
            value = Decimal(item.strip())
            if not value.is_finite():
                raise InvalidOperation(item)
            values.append(value)
    except InvalidOperation:
        logger.debug(f"Could not convert parameters {text!r} to decimals")
        return np.array([], dtype=object)

    result = np.empty(len(values), dtype=object)
    result[:] = values
    return result
