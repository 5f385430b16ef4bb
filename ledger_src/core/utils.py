"""Shared parsing helpers for loosely typed CSV cells."""

import math
from datetime import datetime
from typing import Any, Optional

import pandas as pd

from ledger_src.config import DEFAULT_EXCHANGE_RATE


def is_missing(value: Any) -> bool:
    """True for None, NaN/NaT and blank strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a cell to a finite float.

    Accepts ints, floats and numeric strings. Booleans, blanks, NaN and
    infinities return None.
    """
    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
    if not math.isfinite(number):
        return None
    return number


def clean_text(value: Any) -> Optional[str]:
    """Strip a text cell; blanks and NaN become None."""
    if is_missing(value):
        return None
    return str(value).strip()


def sanitize_rate(rate: Optional[float]) -> float:
    """Exchange rates that are missing, non-finite or non-positive act as identity."""
    if rate is None or not math.isfinite(rate) or rate <= 0:
        return DEFAULT_EXCHANGE_RATE
    return rate


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a broker timestamp into a naive datetime.

    ISO strings such as '2024-01-15 10:30:00' take the fast path; anything
    else goes through pandas. A UTC offset is dropped without converting,
    so the exported local calendar day is kept. Unparseable input returns
    None.
    """
    if is_missing(value):
        return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).replace(tzinfo=None)
        except ValueError:
            pass
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.to_pydatetime()


def format_short_date(value: datetime) -> str:
    """Format as 'Jan 5, 2024'."""
    return f"{value:%b} {value.day}, {value.year}"
