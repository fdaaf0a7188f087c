"""Absorption scheduling: turn a pace and a unit total into a monthly curve."""

import logging
import math
from datetime import date
from typing import Dict, Iterator, Optional, Tuple

from ..models.parsing import add_months, month_key, month_start

logger = logging.getLogger(__name__)

# Relative slack when dividing units by a fractional pace (0.3 is not exact in binary)
_MONTH_COUNT_TOLERANCE = 1e-9


def months_to_absorb(total_units: float, pace_per_month: float) -> int:
    """Number of months an uncapped absorption curve spans: ceil(total / pace)."""
    if pace_per_month <= 0 or total_units <= 0:
        return 0
    quotient = total_units / pace_per_month
    return max(1, math.ceil(quotient - _MONTH_COUNT_TOLERANCE * max(1.0, quotient)))


def iter_absorption(
    start_date: Optional[date],
    total_units: float,
    pace_per_month: float,
    max_months: Optional[int] = None,
) -> Iterator[Tuple[date, float]]:
    """Yield (month start, units) pairs for an absorption curve.

    Starting with the month containing ``start_date``, every month absorbs
    ``pace`` units except the last, which takes whatever remains. The curve
    spans exactly ``months_to_absorb(total_units, pace)`` months, so
    fractional paces never leave a near-zero trailing month.
    ``max_months`` truncates it further when given.

    Args:
        start_date: Date of the first absorbed unit (any day of the month).
        total_units: Units to absorb.
        pace_per_month: Units absorbed per month.
        max_months: Optional cap on the number of months produced.

    Yields:
        Tuples of (first day of month, units absorbed that month).
    """
    if start_date is None or pace_per_month <= 0 or total_units <= 0:
        return

    months = months_to_absorb(total_units, pace_per_month)
    last_month_units = total_units - pace_per_month * (months - 1)

    produced = months
    if max_months is not None and months > max_months:
        produced = max_months
        logger.warning(
            "Absorption capped at %d months with %.2f of %.2f units unabsorbed",
            max_months, total_units - pace_per_month * max_months, total_units,
        )

    current = month_start(start_date)
    for index in range(produced):
        yield current, pace_per_month if index < months - 1 else last_month_units
        current = add_months(current, 1)


def schedule(
    start_date: Optional[date],
    total_units: float,
    pace_per_month: float,
    max_months: Optional[int] = None,
) -> Dict[str, float]:
    """Schedule unit absorption by calendar month.

    Returns an empty schedule (not an error) when the pace or unit count
    is not positive or there is no start date.

    Args:
        start_date: Date of the first absorbed unit.
        total_units: Units to absorb.
        pace_per_month: Units absorbed per month.
        max_months: Optional cap on the number of months produced.

    Returns:
        Ordered mapping of ``"YYYY-MM"`` to units absorbed that month. The
        values sum to ``total_units`` whenever the schedule is not capped.

    Example:
        >>> schedule(date(2026, 3, 15), 12, 5)
        {'2026-03': 5, '2026-04': 5, '2026-05': 2}
    """
    return {
        month_key(month): units
        for month, units in iter_absorption(start_date, total_units, pace_per_month, max_months)
    }
