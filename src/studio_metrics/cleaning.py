"""Shared primitives for cleaning the three studio exports.

This module provides the small text, number and date helpers used by every
pipeline stage:

- Text normalization: strip invisible characters, collapse whitespace
- Keyword matching: case-insensitive pipe-delimited alternatives
- Number parsing: currency-like strings to floats
- Date handling: parsing, month periods, week buckets, ordering

All helpers are total: malformed input degrades to a default (None, 0.0,
NaT) instead of raising.

Examples:
    >>> from studio_metrics.cleaning import to_amount, format_date, period_key_of
    >>> to_amount("₹1,200.00")
    1200.0
    >>> period_key_of(format_date("2024-01-05"))
    'January 2024'
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from studio_metrics.config import UNKNOWN_PERIOD

NBSP = "\u00a0"  # Non-breaking space
NNBSP = "\u202f"  # Narrow non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))  # Zero-width characters

# Everything except digits, decimal point and minus sign
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]+")

_TRUE_FLAGS = {"yes", "y", "true", "1"}

# Tried in order before falling back to pandas inference
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %I:%M %p",
    "%d/%m/%Y, %H:%M",
    "%d/%m/%Y, %H:%M:%S",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%b %d, %Y",
    "%d %b %Y",
)

_PERIOD_FORMAT = "%B %Y"


def _is_missing(x: Any) -> bool:
    return x is None or (isinstance(x, float) and pd.isna(x)) or x is pd.NaT


def strip_invisibles(x: Any) -> Optional[str]:
    """Remove invisible characters and collapse whitespace.

    Args:
        x: Value to clean (string, number, or None).

    Returns:
        Cleaned string or None if input is None/NaN.

    Examples:
        >>> strip_invisibles("  Barre  57  ")
        'Barre 57'
    """
    if _is_missing(x):
        return None
    s = str(x)
    s = s.replace("\r", "").replace("\t", " ").replace(NBSP, " ").replace(NNBSP, " ")
    s = re.sub(r"[%s]" % re.escape(ZW), "", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def clean_label(text: Any) -> str:
    """Canonicalize a free-text label such as a class or membership name.

    Examples:
        >>> clean_label("  Studio   Open Barre Class\\n")
        'Studio Open Barre Class'
        >>> clean_label(None)
        ''
    """
    return strip_invisibles(text) or ""


def matches_any_keyword(text: Any, alternatives: str) -> bool:
    """Case-insensitive substring match against pipe-delimited alternatives.

    Args:
        text: Value to test. Missing values never match.
        alternatives: Keywords separated by ``|``, e.g. ``"friends|family|staff"``.

    Returns:
        True if any non-blank alternative occurs in text.

    Examples:
        >>> matches_any_keyword("Staff Comp", "friends|family|staff")
        True
        >>> matches_any_keyword("Newcomers 2 For 1", "2 for 1")
        True
    """
    haystack = clean_label(text).lower()
    if not haystack:
        return False
    for keyword in alternatives.split("|"):
        keyword = keyword.strip().lower()
        if keyword and keyword in haystack:
            return True
    return False


def contains_any(text: Any, needles: Iterable[str]) -> bool:
    """Case-insensitive substring test against a list of needles."""
    return matches_any_keyword(text, "|".join(needles))


def to_amount(x: Any) -> float:
    """Coerce a currency-like value to a float.

    Every character other than digits, ``.`` and ``-`` is removed before
    parsing. Anything that still fails to parse becomes 0.0.

    Examples:
        >>> to_amount("₹ 1,200")
        1200.0
        >>> to_amount("n/a")
        0.0
        >>> to_amount(850)
        850.0
    """
    if _is_missing(x):
        return 0.0
    if isinstance(x, (int, float, np.integer, np.floating)) and not isinstance(x, bool):
        value = float(x)
        return value if np.isfinite(value) else 0.0
    s = _NON_NUMERIC_RE.sub("", str(x))
    try:
        value = float(s)
    except ValueError:
        return 0.0
    return value if np.isfinite(value) else 0.0


def to_flag(x: Any) -> bool:
    """Interpret a YES/NO style export flag.

    Examples:
        >>> to_flag("YES")
        True
        >>> to_flag(" no ")
        False
        >>> to_flag(None)
        False
    """
    if isinstance(x, (bool, np.bool_)):
        return bool(x)
    return clean_label(x).lower() in _TRUE_FLAGS


def format_date(val: Any) -> pd.Timestamp:
    """Parse a date from the formats seen in the exports.

    Time of day is dropped so dates compare at day granularity.

    Args:
        val: Value to parse (string, Timestamp, datetime, or None).

    Returns:
        Normalized Timestamp or pd.NaT if parsing fails.

    Examples:
        >>> format_date("2024-01-05 18:30:00")
        Timestamp('2024-01-05 00:00:00')
        >>> format_date("garbage")
        NaT
    """
    if _is_missing(val):
        return pd.NaT
    if isinstance(val, (pd.Timestamp, np.datetime64, datetime)):
        ts = pd.to_datetime(val, errors="coerce")
        if pd.isna(ts):
            return pd.NaT
        if ts.tzinfo is not None:
            ts = ts.tz_localize(None)
        return ts.normalize()
    s = strip_invisibles(val)
    if not s:
        return pd.NaT
    for fmt in _DATE_FORMATS:
        try:
            return pd.to_datetime(s, format=fmt).normalize()
        except (ValueError, TypeError):
            pass
    ts = pd.to_datetime(s, dayfirst=True, errors="coerce")
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize()


def period_key_of(d: Any) -> str:
    """Month-granularity period label, e.g. ``"January 2024"``.

    Unparseable dates fall into the ``"Unknown"`` period.
    """
    ts = format_date(d)
    if pd.isna(ts):
        return UNKNOWN_PERIOD
    return ts.strftime(_PERIOD_FORMAT)


def period_sort_key(period: str) -> pd.Timestamp:
    """Sort key for period labels; unknown periods sort before every real month."""
    try:
        return pd.Timestamp(datetime.strptime(period, _PERIOD_FORMAT))
    except ValueError:
        return pd.Timestamp.min


def is_strictly_after(a: Any, b: Any) -> bool:
    """True if date a is strictly later than date b; False if either is missing."""
    if pd.isna(a) or pd.isna(b):
        return False
    return pd.Timestamp(a) > pd.Timestamp(b)


def is_on_or_after(a: Any, b: Any) -> bool:
    """True if date a is the same day as or later than date b; False if either is missing."""
    if pd.isna(a) or pd.isna(b):
        return False
    return pd.Timestamp(a) >= pd.Timestamp(b)


def week_start(d: Any) -> Optional[str]:
    """ISO date of the Sunday that starts the week containing d.

    Examples:
        >>> week_start(pd.Timestamp("2024-01-20"))  # a Saturday
        '2024-01-14'
        >>> week_start(pd.Timestamp("2024-01-14"))  # a Sunday
        '2024-01-14'
    """
    if pd.isna(d):
        return None
    ts = pd.Timestamp(d).normalize()
    # weekday(): Monday=0 ... Sunday=6
    offset = (ts.weekday() + 1) % 7
    return (ts - pd.Timedelta(days=offset)).strftime("%Y-%m-%d")


def full_name(first: Any, last: Any) -> str:
    """Join name parts, skipping missing ones."""
    parts = [clean_label(first), clean_label(last)]
    return " ".join(p for p in parts if p)
