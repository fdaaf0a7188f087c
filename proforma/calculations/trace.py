"""Calculation tracing for transparent audit trails.

This module provides runtime tracing of proforma calculations, capturing
the actual values used in each formula for debugging and auditing.

The active context lives in a ``ContextVar`` so concurrent computations
in different threads each see their own trace.
"""

from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .formula_registry import FormulaRegistry, FormulaDefinition


_current_context: ContextVar[Optional["TraceContext"]] = ContextVar(
    "proforma_trace_context", default=None
)


def _format_value(value: float) -> str:
    """Format a value for display."""
    if abs(value) >= 1_000_000:
        return f"${value/1_000_000:,.2f}M"
    elif abs(value) >= 1_000:
        return f"${value/1_000:,.1f}K"
    elif value == 0:
        return "0"
    else:
        return f"{value:,.2f}"


@dataclass
class TracedValue:
    """A single traced calculation.

    Captures the formula definition, actual input values,
    computed result, and formatted formula string.
    """
    field_path: str
    value: float
    formula_def: Optional[FormulaDefinition]
    input_values: Dict[str, float]
    computed_formula: str  # Formula with values substituted
    timestamp: datetime = field(default_factory=datetime.now)
    period: Optional[int] = None
    notes: str = ""

    def format_inputs(self) -> str:
        """Format input values for display."""
        return ", ".join(
            f"{name.split('.')[-1]}={_format_value(val)}"
            for name, val in self.input_values.items()
        )


class TraceContext:
    """Context manager for capturing calculation traces.

    Usage:
        with TraceContext() as ctx:
            metrics = aggregate(inputs)
            # ctx.traces now contains all traced calculations

    Entering a context makes it active; leaving it restores the
    previously active one.
    """

    def __init__(self, enabled: bool = True):
        """Initialize trace context.

        Args:
            enabled: If False, trace() calls are no-ops for performance.
        """
        self.enabled = enabled
        self.traces: Dict[str, TracedValue] = {}
        self._start_time = datetime.now()
        self._token: Optional[Token] = None

    def __enter__(self) -> "TraceContext":
        self._token = _current_context.set(self)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _current_context.reset(self._token)
            self._token = None

    def trace(
        self,
        field_path: str,
        value: float,
        input_values: Dict[str, float],
        period: Optional[int] = None,
        notes: str = "",
    ) -> None:
        """Record a traced calculation.

        Args:
            field_path: The formula field path (e.g., "costs.total_costs")
            value: The calculated result
            input_values: Dict of input name -> value used in calculation
            period: Optional month index for period-specific values
            notes: Optional notes about this specific calculation
        """
        if not self.enabled:
            return

        formula_def = FormulaRegistry.get(field_path)
        formula = formula_def.formula if formula_def else field_path
        if input_values:
            values_str = ", ".join(_format_value(v) for v in input_values.values())
            computed = f"{formula} = f({values_str}) = {_format_value(value)}"
        else:
            computed = f"{formula} = {_format_value(value)}"

        trace_key = f"{field_path}:{period}" if period is not None else field_path

        self.traces[trace_key] = TracedValue(
            field_path=field_path,
            value=value,
            formula_def=formula_def,
            input_values=dict(input_values),
            computed_formula=computed,
            period=period,
            notes=notes,
        )

    def get_trace(self, field_path: str, period: Optional[int] = None) -> Optional[TracedValue]:
        """Get a specific trace by field path and optional period."""
        trace_key = f"{field_path}:{period}" if period is not None else field_path
        return self.traces.get(trace_key)

    def get_traces_by_category(self, category: str) -> Dict[str, TracedValue]:
        """Get all traces in a specific category."""
        return {
            k: v for k, v in self.traces.items()
            if v.formula_def and v.formula_def.category.value == category
        }

    def summary(self) -> str:
        """Generate a summary of all traces."""
        lines = [
            f"Trace Summary ({len(self.traces)} calculations traced)",
            f"Duration: {datetime.now() - self._start_time}",
            "",
        ]

        by_category: Dict[str, List[TracedValue]] = {}
        for traced in self.traces.values():
            cat = traced.formula_def.category.value if traced.formula_def else "Unknown"
            by_category.setdefault(cat, []).append(traced)

        for category, traces in sorted(by_category.items()):
            lines.append(f"=== {category} ({len(traces)} traces) ===")
            for traced in traces:
                lines.append(f"  {traced.field_path}: {traced.computed_formula}")
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def current() -> Optional["TraceContext"]:
        """Get the current active trace context."""
        return _current_context.get()


def trace(
    field_path: str,
    value: float,
    input_values: Dict[str, float],
    period: Optional[int] = None,
    notes: str = "",
) -> float:
    """Trace a calculation and return the value.

    This can be used inline in calculations:
        profit = trace("returns.profit", net - costs, {"net_revenue": net, "total_costs": costs})

    Args:
        field_path: The formula field path
        value: The calculated result
        input_values: Dict of input name -> value
        period: Optional month index
        notes: Optional notes

    Returns:
        The value (unchanged), allowing inline usage
    """
    ctx = TraceContext.current()
    if ctx:
        ctx.trace(field_path, value, input_values, period, notes)
    return value
