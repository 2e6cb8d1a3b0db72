"""Claim-day arithmetic and threshold comparison helpers.

Elapsed time in the engine is measured in *claim-days*: wall-clock seconds
divided by ``claim_day_seconds`` from config. Production uses real days;
a demo host can compress a day into a minute.

Threshold comparisons (``>= 0.5``, ``>= 0.85``) round to ``SCORE_PRECISION``
decimals first so float noise never decides a boundary case.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timedelta

SCORE_PRECISION = 9


def _day_seconds(day_seconds: float | None) -> float:
    if day_seconds is not None:
        return day_seconds
    from .config import get_config

    return get_config().claim_day_seconds


def elapsed_days(start: datetime, end: datetime, day_seconds: float | None = None) -> float:
    """Claim-days from ``start`` to ``end`` (negative if ``end`` is earlier)."""
    return (end - start).total_seconds() / _day_seconds(day_seconds)


def add_days(start: datetime, days: float, day_seconds: float | None = None) -> datetime:
    """Return ``start`` shifted forward by ``days`` claim-days."""
    return start + timedelta(seconds=days * _day_seconds(day_seconds))


def stable_sum(values: Iterable[float]) -> float:
    """Sum floats without accumulating rounding error."""
    return math.fsum(values)


def at_least(value: float, threshold: float) -> bool:
    return round(value, SCORE_PRECISION) >= threshold


def at_most(value: float, threshold: float) -> bool:
    return round(value, SCORE_PRECISION) <= threshold
