"""Financing cost: interest on construction draws or a flat-rate estimate."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence

from ..models.inputs import DatedAmount
from ..models.parsing import month_offset


class FinancingMethod(str, Enum):
    """How the financing cost was derived."""

    DRAW_WEIGHTED = "draw_weighted"
    FLAT_RATE = "flat_rate"
    MANUAL = "manual"
    NONE = "none"


@dataclass(frozen=True)
class DrawInterest:
    """Interest accrued on a single draw until completion."""

    draw: DatedAmount
    months_outstanding: int
    interest: float


@dataclass(frozen=True)
class FinancingCostResult:
    """Financing cost and the method that produced it."""

    amount: float
    method: FinancingMethod
    draw_interest: List[DrawInterest] = field(default_factory=list)


def calculate_draw_interest(
    draw: DatedAmount,
    completion_date: date,
    annual_rate_pct: float,
) -> DrawInterest:
    """Simple interest on one draw from its month to the completion month.

    Draws dated at or after completion accrue nothing.
    """
    months = max(0, month_offset(draw.date, completion_date))
    interest = draw.amount * (annual_rate_pct / 100) * (months / 12)
    return DrawInterest(draw=draw, months_outstanding=months, interest=interest)


def calculate_financing_cost(
    draws: Sequence[DatedAmount],
    completion_date: Optional[date],
    annual_rate_pct: float,
    loan_term_months: float = 0.0,
    development_costs: float = 0.0,
    manual_override: Optional[float] = None,
) -> FinancingCostResult:
    """Compute loan interest owed on a development.

    Methods, in order of precedence:
    1. Draw-weighted: each dated draw accrues simple interest for the
       months it is outstanding before completion. Later draws accrue
       less, which a flat estimate cannot express.
    2. Flat rate: development costs at the annual rate for the loan term.
    3. The manually entered financing cost.
    4. Zero.

    Args:
        draws: Construction draws.
        completion_date: Development completion date.
        annual_rate_pct: Loan interest rate in percent per year.
        loan_term_months: Loan term for the flat-rate estimate.
        development_costs: Principal for the flat-rate estimate.
        manual_override: Financing cost entered by hand, if any.

    Returns:
        FinancingCostResult with the amount and method used.

    Example:
        >>> result = calculate_financing_cost(
        ...     draws=[DatedAmount(date(2026, 1, 1), 1_000_000)],
        ...     completion_date=date(2027, 1, 1),
        ...     annual_rate_pct=8,
        ... )
        >>> result.amount
        80000.0
    """
    dated_draws = [d for d in draws if d.date is not None]

    if dated_draws and completion_date is not None and annual_rate_pct > 0:
        accruals = [
            calculate_draw_interest(d, completion_date, annual_rate_pct)
            for d in dated_draws
        ]
        return FinancingCostResult(
            amount=sum(a.interest for a in accruals),
            method=FinancingMethod.DRAW_WEIGHTED,
            draw_interest=accruals,
        )

    if loan_term_months > 0 and development_costs > 0 and annual_rate_pct > 0:
        amount = development_costs * (annual_rate_pct / 100) * (loan_term_months / 12)
        return FinancingCostResult(amount=amount, method=FinancingMethod.FLAT_RATE)

    if manual_override is not None:
        return FinancingCostResult(amount=manual_override, method=FinancingMethod.MANUAL)

    return FinancingCostResult(amount=0.0, method=FinancingMethod.NONE)
