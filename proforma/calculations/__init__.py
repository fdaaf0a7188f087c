"""Calculation modules for the development proforma engine."""

from .absorption import schedule, iter_absorption, months_to_absorb
from .cashflow import (
    EventCategory,
    CashFlowEvent,
    CashFlowSeries,
    ProformaTimeline,
    build_cash_flow_series,
    build_proforma_events,
    build_proforma_timeline,
    build_timeline_event_series,
    resolve_reference_date,
)
from .irr import npv, npv_derivative, solve_irr, solve_monthly_irr, monthly_to_annual_pct
from .peak_capital import PeakCapitalResult, analyze_peak_capital
from .financing import (
    FinancingMethod,
    DrawInterest,
    FinancingCostResult,
    calculate_financing_cost,
)
from .aggregate import (
    ProductTypeSummary,
    ProformaMetrics,
    aggregate,  # Main entry point
    timeline_unlevered_irr,
    safe_pct,
)
from .burn_schedule import BurnSchedule, build_burn_schedule, compute_row_starts
from .batch import aggregate_many
from .trace import TraceContext, TracedValue, trace
from .formula_registry import FormulaRegistry, FormulaDefinition, FormulaCategory

__all__ = [
    # Absorption
    "schedule",
    "iter_absorption",
    "months_to_absorb",
    # Cash-flow timeline
    "EventCategory",
    "CashFlowEvent",
    "CashFlowSeries",
    "ProformaTimeline",
    "build_cash_flow_series",
    "build_proforma_events",
    "build_proforma_timeline",
    "build_timeline_event_series",
    "resolve_reference_date",
    # IRR
    "npv",
    "npv_derivative",
    "solve_irr",
    "solve_monthly_irr",
    "monthly_to_annual_pct",
    # Peak capital
    "PeakCapitalResult",
    "analyze_peak_capital",
    # Financing
    "FinancingMethod",
    "DrawInterest",
    "FinancingCostResult",
    "calculate_financing_cost",
    # Aggregation
    "ProductTypeSummary",
    "ProformaMetrics",
    "aggregate",
    "timeline_unlevered_irr",
    "safe_pct",
    "aggregate_many",
    # Burn schedule
    "BurnSchedule",
    "build_burn_schedule",
    "compute_row_starts",
    # Tracing
    "TraceContext",
    "TracedValue",
    "trace",
    "FormulaRegistry",
    "FormulaDefinition",
    "FormulaCategory",
]
