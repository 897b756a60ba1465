# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Score normalization.

Converts raw point scores into percentages of a test's total marks.
Percentages are rounded half-up to two decimals so that every value
handed to the presentation layer is stable and JSON-friendly.
"""

import math
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, localcontext

_TWO_PLACES = Decimal("0.01")
_ONE_PLACE = Decimal("0.1")

# Enough digits to quantize any finite float (max exponent 308) to 0.01
_PRECISION = 400


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int too large to convert to float
        return False


def _quantize(value: float, places: Decimal) -> float:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return float(Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP))


def round2(value: float) -> float:
    """Round half-up to two decimal places.

    Args:
        value: Finite number to round.

    Returns:
        Rounded float.

    Example:
        >>> round2(0.125)
        0.13
    """
    return _quantize(value, _TWO_PLACES)


def round1(value: float) -> float:
    """Round half-up to one decimal place."""
    return _quantize(value, _ONE_PLACE)


def normalize(raw_score: float, total_marks: float) -> float | None:
    """Convert a raw score to a percentage of the total marks.

    Args:
        raw_score: Points awarded.
        total_marks: Maximum points for the test.

    Returns:
        Percentage rounded to two decimals, or None when the total is not
        positive, either input is not a finite number, or the percentage
        itself is not representable as a finite float.
    """
    if not _is_number(raw_score) or not _is_number(total_marks):
        return None
    score = float(raw_score)
    total = float(total_marks)
    if total <= 0:
        return None
    pct = score / total * 100
    if not math.isfinite(pct):
        return None
    return round2(pct)


def mean_pct(values: Iterable[float | None]) -> float | None:
    """Mean of the non-null percentages, or None when there are none."""
    present = [value for value in values if value is not None]
    if not present:
        return None
    try:
        mean = math.fsum(present) / len(present)
    except OverflowError:
        # the sum overflows even though the mean does not
        mean = math.fsum(value / len(present) for value in present)
    return round2(mean)
