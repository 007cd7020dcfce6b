"""
Consistent number and label formatting for brief text.
"""
from typing import Union

import pandas as pd

MISSING = "n/a"

TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"


# =============================================================================
# NUMBER FORMATTERS
# =============================================================================

def fmt_percent(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format percentage: 12%"""
    if value is None or pd.isna(value):
        return MISSING
    return f"{value:,.{decimals}f}%"


def fmt_count(value: Union[float, int, None]) -> str:
    """Format count: 1,234"""
    if value is None or pd.isna(value):
        return MISSING
    return f"{int(value):,}"


def fmt_change(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format relative change with sign: +12%"""
    if value is None or pd.isna(value):
        return MISSING
    return f"{value:+,.{decimals}f}%"


def fmt_points(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format percentage-point change with sign: -30pp"""
    if value is None or pd.isna(value):
        return MISSING
    return f"{value:+,.{decimals}f}pp"


def fmt_days(value: Union[float, int, None]) -> str:
    """Format a day count: 14d"""
    if value is None or pd.isna(value):
        return MISSING
    return f"{value:.0f}d"


def fmt_rank(rank, total) -> str:
    """Format a rank: #3 of 41"""
    if rank is None or pd.isna(rank):
        return MISSING
    return f"#{int(rank)} of {int(total)}"


# =============================================================================
# TREND LABELS
# =============================================================================

def trend_direction(value: Union[float, int, None], threshold: float = 0) -> str:
    """'up' above +threshold, 'down' below -threshold, else 'stable'."""
    if value is None or pd.isna(value):
        return TREND_STABLE
    if value > threshold:
        return TREND_UP
    if value < -threshold:
        return TREND_DOWN
    return TREND_STABLE


def join_names(names) -> str:
    """'A', 'A and B', 'A, B and C'."""
    names = [str(n) for n in names if n]
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + " and " + names[-1]
