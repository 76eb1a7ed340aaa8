"""Rating display helpers.

Average rating is never stored; it is derived from the aggregate sum and
count each time an entity is read.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

_ONE_PLACE = Decimal("0.1")


def average_rating(total_rating_sum: Optional[int], rating_count: Optional[int]) -> Optional[float]:
    """Return sum / count rounded half-up to one decimal, or None when unrated."""
    count = int(rating_count or 0)
    if count <= 0:
        return None
    value = Decimal(int(total_rating_sum or 0)) / Decimal(count)
    return float(value.quantize(_ONE_PLACE, rounding=ROUND_HALF_UP))


__all__ = ["average_rating"]
