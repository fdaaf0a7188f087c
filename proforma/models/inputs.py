"""Proforma input models for a land-development deal."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .config import DEFAULT_CONTINGENCY_PCT, DEFAULT_SALES_COMMISSION_PCT
from .parsing import parse_date, to_number_or_zero, to_optional_number


def _pct_or_default(value: Any, default: float) -> float:
    """Percentages left blank on the form fall back to the form default."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return to_number_or_zero(value)


@dataclass(frozen=True)
class ProductType:
    """A saleable product (lot or home type) within the deal."""

    name: str
    number_of_units: float = 0.0
    sales_price_per_unit: float = 0.0
    direct_cost_per_unit: float = 0.0
    building_permit_cost: float = 0.0  # Per unit
    absorption_pace: float = 0.0  # Units sold per month
    average_sqft: Optional[float] = None

    @property
    def gross_revenue(self) -> float:
        return self.number_of_units * self.sales_price_per_unit

    @property
    def total_direct_cost(self) -> float:
        return self.number_of_units * self.direct_cost_per_unit

    @property
    def total_permit_cost(self) -> float:
        return self.number_of_units * self.building_permit_cost

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "ProductType":
        """Build from a loosely-typed record, coercing numbers to float."""
        return cls(
            name=str(record.get("name") or ""),
            number_of_units=to_number_or_zero(record.get("number_of_units")),
            sales_price_per_unit=to_number_or_zero(record.get("sales_price_per_unit")),
            direct_cost_per_unit=to_number_or_zero(record.get("direct_cost_per_unit")),
            building_permit_cost=to_number_or_zero(record.get("building_permit_cost")),
            absorption_pace=to_number_or_zero(record.get("absorption_pace")),
            average_sqft=to_optional_number(record.get("average_sqft")),
        )


@dataclass(frozen=True)
class DatedAmount:
    """A scheduled payment: purchase takedown or construction draw."""

    date: Optional[date]
    amount: float
    description: str = ""

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "DatedAmount":
        return cls(
            date=parse_date(record.get("date")),
            amount=to_number_or_zero(record.get("amount")),
            description=str(record.get("description") or ""),
        )


class EventType(str, Enum):
    """Kind of entry on a deal's project timeline."""

    DEVELOPMENT_SPEND = "development_spend"
    HOME_START = "home_start"
    HOME_SALE = "home_sale"
    HOME_CLOSING = "home_closing"


@dataclass(frozen=True)
class TimelineEvent:
    """A dated milestone on the project timeline.

    Only development spend (outflow) and home closings (inflow) move cash;
    starts and sales are informational.
    """

    date: Optional[date]
    event_type: EventType = EventType.DEVELOPMENT_SPEND
    amount: float = 0.0
    units: float = 0.0
    description: str = ""

    @property
    def signed_amount(self) -> float:
        """Cash effect of the event (negative = outflow)."""
        if self.event_type == EventType.DEVELOPMENT_SPEND:
            return -self.amount
        if self.event_type == EventType.HOME_CLOSING:
            return self.amount
        return 0.0

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "TimelineEvent":
        try:
            event_type = EventType(record.get("event_type") or EventType.DEVELOPMENT_SPEND.value)
        except ValueError:
            event_type = EventType.HOME_START  # Unknown types carry no cash
        return cls(
            date=parse_date(record.get("date")),
            event_type=event_type,
            amount=to_number_or_zero(record.get("amount")),
            units=to_number_or_zero(record.get("units")),
            description=str(record.get("description") or ""),
        )


@dataclass(frozen=True)
class BurnScheduleRow:
    """One product/plat row of a burn schedule (home starts over time)."""

    village: str = ""
    plat: str = ""
    product_type: str = ""
    lot_type: str = ""
    total_units: float = 0.0
    absorption_pace: float = 0.0  # Starts per month
    dev_start_date: Optional[date] = None
    dev_duration_months: float = 0.0
    plat_record_date: Optional[date] = None
    hb_start_date: Optional[date] = None  # First homebuilder start

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "BurnScheduleRow":
        return cls(
            village=str(record.get("village") or ""),
            plat=str(record.get("plat") or ""),
            product_type=str(record.get("product_type") or ""),
            lot_type=str(record.get("lot_type") or ""),
            total_units=to_number_or_zero(record.get("total_units")),
            absorption_pace=to_number_or_zero(record.get("absorption_pace")),
            dev_start_date=parse_date(record.get("dev_start_date")),
            dev_duration_months=to_number_or_zero(record.get("dev_duration_months")),
            plat_record_date=parse_date(record.get("plat_record_date")),
            hb_start_date=parse_date(record.get("hb_start_date")),
        )


@dataclass
class ProformaInputs:
    """Complete proforma for one land-development deal.

    Money is in a single currency unit. Percentages are whole numbers
    (5 means 5%). All fields default to "not supplied" so partially
    filled proformas can still be evaluated.
    """

    name: str = ""

    # === Static costs ===
    purchase_price: float = 0.0
    development_costs: float = 0.0
    soft_costs: float = 0.0
    financing_costs: Optional[float] = None  # Manual override

    # === Financing ===
    loan_interest_rate: float = 0.0  # % per year
    loan_term_months: float = 0.0

    # === Percentages ===
    contingency_percentage: float = DEFAULT_CONTINGENCY_PCT
    sales_commission_percentage: float = DEFAULT_SALES_COMMISSION_PCT

    # === Schedules ===
    purchase_takedowns: List[DatedAmount] = field(default_factory=list)
    construction_draws: List[DatedAmount] = field(default_factory=list)
    product_types: List[ProductType] = field(default_factory=list)
    timeline_events: List[TimelineEvent] = field(default_factory=list)

    # === Dates ===
    development_start_date: Optional[date] = None
    development_completion_date: Optional[date] = None
    first_home_closing: Optional[date] = None

    @property
    def total_units(self) -> float:
        """Total units across all product types."""
        return sum(pt.number_of_units for pt in self.product_types)

    @property
    def has_takedowns(self) -> bool:
        return any(t.date is not None for t in self.purchase_takedowns)

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "ProformaInputs":
        """Build inputs from a plain record as stored by the CRM.

        Numeric fields are coerced with ``to_number_or_zero`` and dates
        parsed from ISO-8601 strings. A record without ``product_types`` but
        with the single-product fields (``number_of_units``,
        ``sales_price_per_unit``...) is read as one product type.

        Args:
            record: Mapping of field name to raw value.

        Returns:
            ProformaInputs ready for ``aggregate``.
        """
        product_records = record.get("product_types") or []
        if not product_records and record.get("number_of_units"):
            product_records = [{
                "name": record.get("name") or "All Units",
                "number_of_units": record.get("number_of_units"),
                "sales_price_per_unit": record.get("sales_price_per_unit"),
                "direct_cost_per_unit": record.get("direct_cost_per_unit"),
                "building_permit_cost": record.get("building_permit_cost"),
                "absorption_pace": record.get("absorption_pace"),
            }]

        return cls(
            name=str(record.get("name") or ""),
            purchase_price=to_number_or_zero(record.get("purchase_price")),
            development_costs=to_number_or_zero(record.get("development_costs")),
            soft_costs=to_number_or_zero(record.get("soft_costs")),
            financing_costs=to_optional_number(record.get("financing_costs")),
            loan_interest_rate=to_number_or_zero(record.get("loan_interest_rate")),
            loan_term_months=to_number_or_zero(record.get("loan_term_months")),
            contingency_percentage=_pct_or_default(
                record.get("contingency_percentage"), DEFAULT_CONTINGENCY_PCT
            ),
            sales_commission_percentage=_pct_or_default(
                record.get("sales_commission_percentage"), DEFAULT_SALES_COMMISSION_PCT
            ),
            purchase_takedowns=[
                DatedAmount.from_dict(r) for r in record.get("purchase_takedowns") or []
            ],
            construction_draws=[
                DatedAmount.from_dict(r) for r in record.get("construction_draws") or []
            ],
            product_types=[ProductType.from_dict(r) for r in product_records],
            timeline_events=[
                TimelineEvent.from_dict(r) for r in record.get("timeline_events") or []
            ],
            development_start_date=parse_date(record.get("development_start_date")),
            development_completion_date=parse_date(record.get("development_completion_date")),
            first_home_closing=parse_date(record.get("first_home_closing")),
        )

    def validate(self) -> list[str]:
        """Validate input shapes and return list of errors.

        The engine itself tolerates every case reported here; this is for
        callers that want to reject a record before computing.

        Returns:
            List of validation error messages. Empty if valid.
        """
        errors = []

        for label, value in (
            ("purchase_price", self.purchase_price),
            ("development_costs", self.development_costs),
            ("soft_costs", self.soft_costs),
            ("loan_interest_rate", self.loan_interest_rate),
            ("loan_term_months", self.loan_term_months),
            ("contingency_percentage", self.contingency_percentage),
            ("sales_commission_percentage", self.sales_commission_percentage),
        ):
            if value < 0:
                errors.append(f"{label} must be non-negative, got {value}")

        if self.financing_costs is not None and self.financing_costs < 0:
            errors.append(f"financing_costs must be non-negative, got {self.financing_costs}")

        for i, pt in enumerate(self.product_types):
            label = pt.name or f"product_types[{i}]"
            if pt.number_of_units < 0:
                errors.append(f"{label}: number_of_units must be non-negative, got {pt.number_of_units}")
            if pt.sales_price_per_unit < 0:
                errors.append(f"{label}: sales_price_per_unit must be non-negative")
            if pt.direct_cost_per_unit < 0:
                errors.append(f"{label}: direct_cost_per_unit must be non-negative")
            if pt.building_permit_cost < 0:
                errors.append(f"{label}: building_permit_cost must be non-negative")
            if pt.number_of_units > 0 and pt.absorption_pace <= 0:
                errors.append(f"{label}: absorption_pace must be positive, got {pt.absorption_pace}")

        for schedule_name, schedule in (
            ("purchase_takedowns", self.purchase_takedowns),
            ("construction_draws", self.construction_draws),
        ):
            for i, item in enumerate(schedule):
                if item.amount < 0:
                    errors.append(f"{schedule_name}[{i}]: amount must be non-negative, got {item.amount}")
                if item.date is None:
                    errors.append(f"{schedule_name}[{i}]: date is missing")

        if (
            self.development_start_date is not None
            and self.development_completion_date is not None
            and self.development_completion_date < self.development_start_date
        ):
            errors.append("development_completion_date is before development_start_date")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Plain-record form with ISO-8601 dates (inverse of ``from_dict``)."""

        def _iso(value: Optional[date]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "name": self.name,
            "purchase_price": self.purchase_price,
            "development_costs": self.development_costs,
            "soft_costs": self.soft_costs,
            "financing_costs": self.financing_costs,
            "loan_interest_rate": self.loan_interest_rate,
            "loan_term_months": self.loan_term_months,
            "contingency_percentage": self.contingency_percentage,
            "sales_commission_percentage": self.sales_commission_percentage,
            "purchase_takedowns": [
                {"date": _iso(t.date), "amount": t.amount, "description": t.description}
                for t in self.purchase_takedowns
            ],
            "construction_draws": [
                {"date": _iso(d.date), "amount": d.amount, "description": d.description}
                for d in self.construction_draws
            ],
            "product_types": [
                {
                    "name": pt.name,
                    "number_of_units": pt.number_of_units,
                    "sales_price_per_unit": pt.sales_price_per_unit,
                    "direct_cost_per_unit": pt.direct_cost_per_unit,
                    "building_permit_cost": pt.building_permit_cost,
                    "absorption_pace": pt.absorption_pace,
                    "average_sqft": pt.average_sqft,
                }
                for pt in self.product_types
            ],
            "timeline_events": [
                {
                    "date": _iso(e.date),
                    "event_type": e.event_type.value,
                    "amount": e.amount,
                    "units": e.units,
                    "description": e.description,
                }
                for e in self.timeline_events
            ],
            "development_start_date": _iso(self.development_start_date),
            "development_completion_date": _iso(self.development_completion_date),
            "first_home_closing": _iso(self.first_home_closing),
        }
