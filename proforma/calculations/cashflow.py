"""Monthly cash-flow timeline construction.

Dated events (upfront costs, takedowns, draws, sales closings) are projected
onto a zero-based month axis relative to a reference month, summed per
month, and materialized as a gapless series for the IRR and peak-capital
calculations.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ..models.config import EngineConfig, DEFAULT_CONFIG
from ..models.inputs import ProformaInputs, TimelineEvent
from ..models.parsing import add_months, month_key, month_offset, month_start
from .absorption import iter_absorption, months_to_absorb

logger = logging.getLogger(__name__)


class EventCategory(str, Enum):
    """Source of a cash-flow event."""

    UPFRONT_COST = "upfront_cost"
    PURCHASE_TAKEDOWN = "purchase_takedown"
    CONSTRUCTION_DRAW = "construction_draw"
    SALES_REVENUE = "sales_revenue"
    TIMELINE = "timeline"


@dataclass(frozen=True)
class CashFlowEvent:
    """A signed dated amount (negative = outflow)."""

    date: date
    amount: float
    description: str = ""
    category: EventCategory = EventCategory.UPFRONT_COST


@dataclass(frozen=True)
class CashFlowSeries:
    """Gapless monthly cash flows starting at the reference month.

    ``flows[t]`` is the net amount in month ``t``. Months with no events
    hold 0. The series is never mutated after construction.
    """

    flows: Tuple[float, ...] = ()
    reference_month: Optional[date] = None

    def __len__(self) -> int:
        return len(self.flows)

    def __iter__(self):
        return iter(self.flows)

    def __getitem__(self, index: int) -> float:
        return self.flows[index]

    @property
    def is_empty(self) -> bool:
        return not self.flows

    @property
    def total(self) -> float:
        return sum(self.flows)

    def month_date(self, index: int) -> Optional[date]:
        """Calendar month (first day) of a month index."""
        if self.reference_month is None:
            return None
        return add_months(self.reference_month, index)

    def cumulative(self) -> List[float]:
        """Running cumulative balance, month by month."""
        running = 0.0
        balances = []
        for flow in self.flows:
            running += flow
            balances.append(running)
        return balances

    def to_frame(self) -> pd.DataFrame:
        """Tabular view: month index, calendar month, flow and cumulative."""
        return pd.DataFrame({
            "month_index": list(range(len(self.flows))),
            "month": [
                month_key(self.month_date(i)) if self.reference_month else None
                for i in range(len(self.flows))
            ],
            "cash_flow": list(self.flows),
            "cumulative": self.cumulative(),
        })


def build_cash_flow_series(
    reference_date: Optional[date],
    events: Iterable[CashFlowEvent],
    clamp_negative_offsets: bool = True,
) -> CashFlowSeries:
    """Assemble dated events into a gapless monthly series.

    Each event lands on ``(year - ref.year) * 12 + (month - ref.month)``.
    Events sharing a month are summed. The series runs from month 0 to the
    last populated month; nothing after it is materialized.

    Events dated before the reference month are moved to month 0 when
    ``clamp_negative_offsets`` is set, and dropped otherwise; either way a
    warning is logged.

    Args:
        reference_date: Any date in month 0.
        events: Signed dated amounts.
        clamp_negative_offsets: Fold early events into month 0.

    Returns:
        CashFlowSeries (empty when there is no reference date or no events).
    """
    if reference_date is None:
        return CashFlowSeries()

    reference = month_start(reference_date)
    by_month: Dict[int, float] = {}

    for event in events:
        offset = month_offset(reference, event.date)
        if offset < 0:
            if not clamp_negative_offsets:
                logger.warning(
                    "Dropping %s event dated %s before reference month %s",
                    event.category.value, event.date, reference,
                )
                continue
            logger.warning(
                "Moving %s event dated %s into reference month %s",
                event.category.value, event.date, reference,
            )
            offset = 0
        by_month[offset] = by_month.get(offset, 0.0) + event.amount

    if not by_month:
        return CashFlowSeries(reference_month=reference)

    last = max(by_month)
    flows = tuple(by_month.get(t, 0.0) for t in range(last + 1))
    return CashFlowSeries(flows=flows, reference_month=reference)


def resolve_reference_date(inputs: ProformaInputs) -> Optional[date]:
    """Month 0 for a proforma timeline.

    The development start date when set, otherwise the earliest dated
    takedown, draw or first home closing.
    """
    if inputs.development_start_date is not None:
        return inputs.development_start_date

    candidates = [t.date for t in inputs.purchase_takedowns if t.date is not None]
    candidates += [d.date for d in inputs.construction_draws if d.date is not None]
    if inputs.first_home_closing is not None:
        candidates.append(inputs.first_home_closing)
    return min(candidates) if candidates else None


def resolve_revenue_start(inputs: ProformaInputs, reference_date: date) -> date:
    """First month of sales closings.

    First home closing when set, otherwise development completion,
    otherwise the month after the reference month.
    """
    if inputs.first_home_closing is not None:
        return inputs.first_home_closing
    if inputs.development_completion_date is not None:
        return inputs.development_completion_date
    return add_months(month_start(reference_date), 1)


@dataclass
class ProformaTimeline:
    """Events and series built for a proforma."""

    events: List[CashFlowEvent] = field(default_factory=list)
    series: CashFlowSeries = field(default_factory=CashFlowSeries)
    revenue_start: Optional[date] = None
    units_unscheduled: float = 0.0  # Units cut off by the revenue month cap


def build_proforma_events(
    inputs: ProformaInputs,
    reference_date: date,
    upfront_costs: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Tuple[List[CashFlowEvent], date, float]:
    """Build the signed events of a proforma's unlevered cash flow.

    - Upfront costs (development, soft, direct, permit, contingency, plus
      the purchase price unless takedowns are scheduled) at month 0.
    - Each purchase takedown and construction draw as an outflow in its
      month.
    - Sales revenue net of commission as inflows, per product type at its
      absorption pace, starting at the revenue start month and capped at
      ``config.revenue_max_months``.

    Args:
        inputs: Proforma inputs.
        reference_date: Any date in month 0.
        upfront_costs: Total month-0 outflow (positive number).
        config: Engine settings.

    Returns:
        Tuple of (events, revenue start date, units cut off by the cap).
    """
    reference = month_start(reference_date)
    events: List[CashFlowEvent] = []

    if upfront_costs:
        events.append(CashFlowEvent(
            date=reference,
            amount=-upfront_costs,
            description="Upfront development costs",
            category=EventCategory.UPFRONT_COST,
        ))

    for takedown in inputs.purchase_takedowns:
        if takedown.date is None:
            continue
        events.append(CashFlowEvent(
            date=takedown.date,
            amount=-takedown.amount,
            description=takedown.description or "Purchase takedown",
            category=EventCategory.PURCHASE_TAKEDOWN,
        ))

    for draw in inputs.construction_draws:
        if draw.date is None:
            continue
        events.append(CashFlowEvent(
            date=draw.date,
            amount=-draw.amount,
            description=draw.description or "Construction draw",
            category=EventCategory.CONSTRUCTION_DRAW,
        ))

    revenue_start = resolve_revenue_start(inputs, reference)
    net_of_commission = 1 - inputs.sales_commission_percentage / 100
    unscheduled = 0.0

    for product in inputs.product_types:
        scheduled_units = 0.0
        for month, units in iter_absorption(
            revenue_start,
            product.number_of_units,
            product.absorption_pace,
            max_months=config.revenue_max_months,
        ):
            scheduled_units += units
            events.append(CashFlowEvent(
                date=month,
                amount=units * product.sales_price_per_unit * net_of_commission,
                description=f"{product.name} closings ({units:g} units)",
                category=EventCategory.SALES_REVENUE,
            ))
        if months_to_absorb(product.number_of_units, product.absorption_pace) > config.revenue_max_months:
            unscheduled += product.number_of_units - scheduled_units

    return events, revenue_start, unscheduled


def build_proforma_timeline(
    inputs: ProformaInputs,
    upfront_costs: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> ProformaTimeline:
    """Build events and the monthly series for a proforma.

    Returns an empty timeline when no reference date can be resolved.
    """
    reference = resolve_reference_date(inputs)
    if reference is None:
        logger.debug("No dated inputs for %r; skipping cash-flow timeline", inputs.name)
        return ProformaTimeline()

    events, revenue_start, unscheduled = build_proforma_events(
        inputs, reference, upfront_costs, config
    )
    series = build_cash_flow_series(reference, events, config.clamp_negative_offsets)
    return ProformaTimeline(
        events=events,
        series=series,
        revenue_start=revenue_start,
        units_unscheduled=unscheduled,
    )


def build_timeline_event_series(events: Iterable[TimelineEvent]) -> CashFlowSeries:
    """Series for a project timeline of spend and closing events.

    The reference month is the earliest dated event, so no offset is
    negative. Undated events are ignored.
    """
    dated = [e for e in events if e.date is not None]
    if not dated:
        return CashFlowSeries()

    reference = min(e.date for e in dated)
    return build_cash_flow_series(
        reference,
        (
            CashFlowEvent(
                date=e.date,
                amount=e.signed_amount,
                description=e.description or e.event_type.value,
                category=EventCategory.TIMELINE,
            )
            for e in dated
        ),
    )
