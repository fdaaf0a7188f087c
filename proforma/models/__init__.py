"""Data models for the development proforma engine."""

from .config import (
    DEFAULT_CONTINGENCY_PCT,
    DEFAULT_SALES_COMMISSION_PCT,
    MAX_REVENUE_MONTHS,
    EngineConfig,
    DEFAULT_CONFIG,
)
from .inputs import (
    ProductType,
    DatedAmount,
    EventType,
    TimelineEvent,
    BurnScheduleRow,
    ProformaInputs,
)
from .parsing import (
    to_number_or_zero,
    to_optional_number,
    parse_date,
)

__all__ = [
    "DEFAULT_CONTINGENCY_PCT",
    "DEFAULT_SALES_COMMISSION_PCT",
    "MAX_REVENUE_MONTHS",
    "EngineConfig",
    "DEFAULT_CONFIG",
    "ProductType",
    "DatedAmount",
    "EventType",
    "TimelineEvent",
    "BurnScheduleRow",
    "ProformaInputs",
    "to_number_or_zero",
    "to_optional_number",
    "parse_date",
]
