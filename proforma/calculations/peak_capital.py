"""Peak capital: the deepest point of the cumulative cash position."""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ..models.parsing import add_months


@dataclass(frozen=True)
class PeakCapitalResult:
    """Maximum capital at risk and when it occurs."""

    amount: float  # Magnitude of the most negative cumulative balance (>= 0)
    month_index: Optional[int]  # None when the balance never goes negative
    month: Optional[date] = None  # Calendar month of month_index, when known


def analyze_peak_capital(
    cash_flows: Sequence[float],
    reference_month: Optional[date] = None,
) -> PeakCapitalResult:
    """Scan the running cumulative sum for its minimum.

    This is the minimum of the cumulative series, not of single-month
    flows: for ``[-100, -50, 30, 200]`` the cumulative balances are
    ``[-100, -150, -120, 80]`` and peak capital is 150 at month 1.

    Args:
        cash_flows: Gapless monthly flows starting at month 0.
        reference_month: Calendar month of index 0. Defaults to the
            series' own reference month when a ``CashFlowSeries`` is
            passed.

    Returns:
        PeakCapitalResult with amount 0 and no month if the cumulative
        balance never drops below zero.
    """
    if reference_month is None:
        reference_month = getattr(cash_flows, "reference_month", None)

    running = 0.0
    lowest = 0.0
    lowest_index: Optional[int] = None

    for index, flow in enumerate(cash_flows):
        running += flow
        if running < lowest:
            lowest = running
            lowest_index = index

    month = None
    if lowest_index is not None and reference_month is not None:
        month = add_months(reference_month, lowest_index)

    return PeakCapitalResult(amount=abs(lowest), month_index=lowest_index, month=month)
