"""Proforma aggregation: cost and revenue roll-up plus derived returns.

``aggregate`` is the single entry point the application calls. It rolls
up static costs and per-product revenue, derives financing cost, builds
the monthly cash-flow timeline and runs the IRR and peak-capital
analyses on it.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from ..models.config import EngineConfig, DEFAULT_CONFIG
from ..models.inputs import ProformaInputs, TimelineEvent
from ..models.parsing import add_months, month_start
from .absorption import months_to_absorb
from .cashflow import (
    CashFlowEvent,
    CashFlowSeries,
    build_proforma_timeline,
    build_timeline_event_series,
)
from .financing import FinancingCostResult, FinancingMethod, calculate_financing_cost
from .irr import solve_irr
from .peak_capital import analyze_peak_capital
from .trace import TraceContext, trace

logger = logging.getLogger(__name__)


def safe_pct(numerator: float, denominator: float) -> float:
    """``numerator / denominator x 100``, or 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return numerator / denominator * 100


@dataclass
class ProductTypeSummary:
    """Roll-up of a single product type."""

    name: str
    units: float
    gross_revenue: float
    net_revenue: float
    direct_costs: float
    permit_costs: float
    absorption_pace: float
    months_to_sell_out: int
    sell_out_month: Optional[date] = None  # Last month with closings


@dataclass
class ProformaMetrics:
    """Derived investment metrics for one proforma.

    Percentages are in percent (12.5 means 12.5%). ``unlevered_irr_pct``
    is None when the IRR cannot be determined, which is not the same as
    zero.
    """

    # Revenue
    gross_revenue: float
    sales_commission: float
    net_revenue: float

    # Costs
    total_direct_costs: float
    total_permit_costs: float
    contingency: float
    financing_costs: float
    net_assets: float  # All capitalized costs excluding financing
    total_costs: float

    # Returns
    profit: float
    roi_pct: float
    profit_margin_pct: float
    gross_margin_pct: float
    rona_pct: float
    unlevered_irr_pct: Optional[float]

    # Capital exposure
    peak_capital_amount: float
    peak_capital_date: Optional[date]
    peak_capital_month_index: Optional[int]

    # Detail
    total_units: float = 0.0
    cost_per_unit: float = 0.0
    financing_method: FinancingMethod = FinancingMethod.NONE
    financing: Optional[FinancingCostResult] = None
    product_summaries: List[ProductTypeSummary] = field(default_factory=list)
    cash_flow: CashFlowSeries = field(default_factory=CashFlowSeries)
    cash_flow_events: List[CashFlowEvent] = field(default_factory=list)
    revenue_start: Optional[date] = None
    units_unscheduled: float = 0.0
    timeline_irr_pct: Optional[float] = None  # From the project timeline events
    trace_context: Optional[TraceContext] = None

    @property
    def is_profitable(self) -> bool:
        return self.profit > 0


def _summarize_products(
    inputs: ProformaInputs,
    revenue_start: Optional[date],
) -> List[ProductTypeSummary]:
    net_factor = 1 - inputs.sales_commission_percentage / 100
    summaries = []
    for pt in inputs.product_types:
        months = months_to_absorb(pt.number_of_units, pt.absorption_pace)
        sell_out = None
        if revenue_start is not None and months > 0:
            sell_out = add_months(month_start(revenue_start), months - 1)
        summaries.append(ProductTypeSummary(
            name=pt.name,
            units=pt.number_of_units,
            gross_revenue=pt.gross_revenue,
            net_revenue=pt.gross_revenue * net_factor,
            direct_costs=pt.total_direct_cost,
            permit_costs=pt.total_permit_cost,
            absorption_pace=pt.absorption_pace,
            months_to_sell_out=months,
            sell_out_month=sell_out,
        ))
    return summaries


def aggregate(
    inputs: ProformaInputs,
    config: Optional[EngineConfig] = None,
) -> ProformaMetrics:
    """Compute the full metrics set for a proforma.

    Formulas:
    - total_direct_costs = sum(units x direct_cost_per_unit)
    - total_permit_costs = sum(units x building_permit_cost)
    - gross_revenue = sum(units x sales_price_per_unit)
    - net_revenue = gross_revenue x (1 - commission%)
    - contingency = (purchase + development + soft + direct + permit) x contingency%
    - total_costs = purchase + development + soft + financing + direct + permit + contingency
    - profit = net_revenue - total_costs
    - roi = profit / total_costs; profit margin = profit / gross_revenue;
      gross margin = (gross_revenue - total_costs) / gross_revenue;
      rona = profit / (total_costs - financing)

    Every ratio with a zero denominator is 0.

    Args:
        inputs: The proforma. Use ``ProformaInputs.from_dict`` for raw
            records.
        config: Engine settings (defaults to ``DEFAULT_CONFIG``).

    Returns:
        ProformaMetrics including the monthly cash-flow series and the
        trace of every formula evaluated.

    Example:
        >>> inputs = ProformaInputs(
        ...     product_types=[ProductType("Lots", 10, 100_000, absorption_pace=2)],
        ...     contingency_percentage=0,
        ...     sales_commission_percentage=0,
        ... )
        >>> metrics = aggregate(inputs)
        >>> metrics.profit, metrics.unlevered_irr_pct
        (1000000.0, None)
    """
    config = config or DEFAULT_CONFIG

    with TraceContext() as ctx:
        # === Costs ===
        total_direct = trace(
            "costs.total_direct_costs",
            sum(pt.total_direct_cost for pt in inputs.product_types),
            {pt.name or f"product_{i}": pt.total_direct_cost for i, pt in enumerate(inputs.product_types)},
        )
        total_permit = trace(
            "costs.total_permit_costs",
            sum(pt.total_permit_cost for pt in inputs.product_types),
            {pt.name or f"product_{i}": pt.total_permit_cost for i, pt in enumerate(inputs.product_types)},
        )

        capitalized_base = (
            inputs.purchase_price
            + inputs.development_costs
            + inputs.soft_costs
            + total_direct
            + total_permit
        )
        contingency = trace(
            "costs.contingency",
            capitalized_base * inputs.contingency_percentage / 100,
            {
                "inputs.purchase_price": inputs.purchase_price,
                "inputs.development_costs": inputs.development_costs,
                "inputs.soft_costs": inputs.soft_costs,
                "costs.total_direct_costs": total_direct,
                "costs.total_permit_costs": total_permit,
                "inputs.contingency_percentage": inputs.contingency_percentage,
            },
        )
        net_assets = trace(
            "costs.net_assets",
            capitalized_base + contingency,
            {"capitalized_base": capitalized_base, "costs.contingency": contingency},
        )

        # === Financing ===
        financing = calculate_financing_cost(
            draws=inputs.construction_draws,
            completion_date=inputs.development_completion_date,
            annual_rate_pct=inputs.loan_interest_rate,
            loan_term_months=inputs.loan_term_months,
            development_costs=inputs.development_costs,
            manual_override=inputs.financing_costs,
        )
        financing_costs = trace(
            "financing.financing_costs",
            financing.amount,
            {
                "inputs.loan_interest_rate": inputs.loan_interest_rate,
                "inputs.loan_term_months": inputs.loan_term_months,
                "inputs.development_costs": inputs.development_costs,
            },
            notes=financing.method.value,
        )

        total_costs = trace(
            "costs.total_costs",
            net_assets + financing_costs,
            {"costs.net_assets": net_assets, "financing.financing_costs": financing_costs},
        )

        # === Revenue ===
        gross_revenue = trace(
            "revenue.gross_revenue",
            sum(pt.gross_revenue for pt in inputs.product_types),
            {pt.name or f"product_{i}": pt.gross_revenue for i, pt in enumerate(inputs.product_types)},
        )
        sales_commission = trace(
            "revenue.sales_commission",
            gross_revenue * inputs.sales_commission_percentage / 100,
            {
                "revenue.gross_revenue": gross_revenue,
                "inputs.sales_commission_percentage": inputs.sales_commission_percentage,
            },
        )
        net_revenue = trace(
            "revenue.net_revenue",
            gross_revenue - sales_commission,
            {"revenue.gross_revenue": gross_revenue, "revenue.sales_commission": sales_commission},
        )

        # === Returns ===
        profit = trace(
            "returns.profit",
            net_revenue - total_costs,
            {"revenue.net_revenue": net_revenue, "costs.total_costs": total_costs},
        )
        roi_pct = trace(
            "returns.roi_pct",
            safe_pct(profit, total_costs),
            {"returns.profit": profit, "costs.total_costs": total_costs},
        )
        profit_margin_pct = trace(
            "returns.profit_margin_pct",
            safe_pct(profit, gross_revenue),
            {"returns.profit": profit, "revenue.gross_revenue": gross_revenue},
        )
        gross_margin_pct = trace(
            "returns.gross_margin_pct",
            safe_pct(gross_revenue - total_costs, gross_revenue),
            {"revenue.gross_revenue": gross_revenue, "costs.total_costs": total_costs},
        )
        rona_pct = trace(
            "returns.rona_pct",
            safe_pct(profit, net_assets),
            {"returns.profit": profit, "costs.net_assets": net_assets},
        )

        # === Timeline ===
        upfront_costs = net_assets
        if inputs.has_takedowns:
            upfront_costs -= inputs.purchase_price
        upfront_costs = trace(
            "costs.upfront_costs",
            upfront_costs,
            {"costs.net_assets": net_assets, "inputs.purchase_price": inputs.purchase_price},
            notes="takedowns scheduled" if inputs.has_takedowns else "",
        )

        timeline = build_proforma_timeline(inputs, upfront_costs, config)
        series = timeline.series

        unlevered_irr = solve_irr(series, guess=config.proforma_irr_guess, config=config)
        if unlevered_irr is not None:
            trace(
                "returns.unlevered_irr_pct",
                unlevered_irr,
                {"months": float(len(series)), "total_cash_flow": series.total},
            )
        elif not series.is_empty:
            logger.info("Unlevered IRR indeterminate for %r (%d months)", inputs.name, len(series))

        peak = analyze_peak_capital(series)
        trace(
            "returns.peak_capital",
            peak.amount,
            {"months": float(len(series))},
            period=peak.month_index,
        )

        timeline_irr = None
        if inputs.timeline_events:
            timeline_irr = timeline_unlevered_irr(inputs.timeline_events, config)

    total_units = inputs.total_units

    return ProformaMetrics(
        gross_revenue=gross_revenue,
        sales_commission=sales_commission,
        net_revenue=net_revenue,
        total_direct_costs=total_direct,
        total_permit_costs=total_permit,
        contingency=contingency,
        financing_costs=financing_costs,
        net_assets=net_assets,
        total_costs=total_costs,
        profit=profit,
        roi_pct=roi_pct,
        profit_margin_pct=profit_margin_pct,
        gross_margin_pct=gross_margin_pct,
        rona_pct=rona_pct,
        unlevered_irr_pct=unlevered_irr,
        peak_capital_amount=peak.amount,
        peak_capital_date=peak.month,
        peak_capital_month_index=peak.month_index,
        total_units=total_units,
        cost_per_unit=total_costs / total_units if total_units > 0 else 0.0,
        financing_method=financing.method,
        financing=financing,
        product_summaries=_summarize_products(inputs, timeline.revenue_start),
        cash_flow=series,
        cash_flow_events=timeline.events,
        revenue_start=timeline.revenue_start,
        units_unscheduled=timeline.units_unscheduled,
        timeline_irr_pct=timeline_irr,
        trace_context=ctx,
    )


def timeline_unlevered_irr(
    events: Iterable[TimelineEvent],
    config: Optional[EngineConfig] = None,
) -> Optional[float]:
    """Unlevered IRR (annualized percent) of a project timeline.

    Development spend is an outflow and home closings an inflow in the
    month they are dated; other events carry no cash. Month 0 is the
    earliest dated event.

    Args:
        events: Timeline events.
        config: Engine settings (defaults to ``DEFAULT_CONFIG``).

    Returns:
        Annualized IRR in percent, or None when it cannot be determined.
    """
    config = config or DEFAULT_CONFIG
    series = build_timeline_event_series(events)
    return solve_irr(series, guess=config.timeline_irr_guess, config=config)
