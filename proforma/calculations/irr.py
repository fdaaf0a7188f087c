"""Internal rate of return via Newton-Raphson on monthly cash flows.

The solver works on the monthly discount rate ``r`` with

    NPV(r)  = sum(f_t / (1 + r)^t)
    NPV'(r) = sum(-t * f_t / (1 + r)^(t + 1))

and reports the annualized rate ``((1 + r)^12 - 1) * 100``. A missing
result (None) means "indeterminate", never zero.
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

from ..models.config import EngineConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def npv(cash_flows: Sequence[float], rate: float) -> float:
    """Net present value of periodic cash flows at a per-period rate.

    Args:
        cash_flows: Flows for periods 0..n-1 (negative = outflow).
        rate: Discount rate per period (e.g., 0.01 for 1% per month).

    Returns:
        NPV as of period 0.
    """
    flows = np.asarray(cash_flows, dtype=float)
    periods = np.arange(len(flows))
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return float(np.sum(flows / (1 + rate) ** periods))


def npv_derivative(cash_flows: Sequence[float], rate: float) -> float:
    """Derivative of ``npv`` with respect to the rate."""
    flows = np.asarray(cash_flows, dtype=float)
    periods = np.arange(len(flows))
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return float(np.sum(-periods * flows / (1 + rate) ** (periods + 1)))


def monthly_to_annual_pct(monthly_rate: float) -> float:
    """Compound a monthly rate to an annual percentage."""
    return ((1 + monthly_rate) ** 12 - 1) * 100


def solve_monthly_irr(
    cash_flows: Sequence[float],
    guess: float = DEFAULT_CONFIG.proforma_irr_guess,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[float]:
    """Find the monthly rate that zeroes NPV, or None.

    Stops when:
    - the rate step is below ``config.irr_tolerance`` (converged);
    - ``|NPV'|`` is below ``config.irr_min_derivative`` (flat curve);
    - ``config.irr_max_iterations`` steps pass without converging;
    - the rate leaves ``config.irr_rate_bounds`` or becomes NaN.

    Args:
        cash_flows: Gapless monthly flows starting at month 0.
        guess: Starting monthly rate.
        config: Solver settings.

    Returns:
        Monthly IRR as a decimal, or None if it cannot be determined.
    """
    flows = [float(f) for f in cash_flows]
    if len(flows) < 2:
        return None

    # Without both an outflow and an inflow there is no root
    if not any(f > 0 for f in flows) or not any(f < 0 for f in flows):
        logger.debug("IRR undefined: cash flows do not change sign")
        return None

    low, high = config.irr_rate_bounds
    rate = guess

    for iteration in range(config.irr_max_iterations):
        value = npv(flows, rate)
        slope = npv_derivative(flows, rate)

        if abs(slope) < config.irr_min_derivative:
            logger.debug("IRR aborted at iteration %d: NPV derivative %.3g too small", iteration, slope)
            return None

        new_rate = rate - value / slope

        if math.isnan(new_rate) or not low < new_rate < high:
            logger.debug("IRR diverged at iteration %d: rate %s outside (%s, %s)", iteration, new_rate, low, high)
            return None

        if abs(new_rate - rate) < config.irr_tolerance:
            logger.debug("IRR converged in %d iterations: monthly rate %.6f", iteration + 1, new_rate)
            return new_rate

        rate = new_rate

    logger.warning("IRR did not converge within %d iterations", config.irr_max_iterations)
    return None


def solve_irr(
    cash_flows: Sequence[float],
    guess: float = DEFAULT_CONFIG.proforma_irr_guess,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[float]:
    """Annualized IRR (percent) of monthly cash flows, or None.

    Args:
        cash_flows: Gapless monthly flows (a list or ``CashFlowSeries``).
        guess: Starting monthly rate; 0.01 for proformas, 0.10 for
            project timelines.
        config: Solver settings.

    Returns:
        Annualized IRR in percent (10.0 means 10%), or None.

    Example:
        >>> round(solve_irr([-100] + [0] * 11 + [110]), 2)
        10.0
    """
    monthly = solve_monthly_irr(cash_flows, guess, config)
    if monthly is None:
        return None
    return monthly_to_annual_pct(monthly)
