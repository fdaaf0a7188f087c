"""Burn schedule: calendarized home starts across product/plat rows."""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Literal, Optional

import pandas as pd

from ..models.inputs import BurnScheduleRow
from ..models.parsing import add_months, month_key, parse_month_key, quarter_label
from .absorption import iter_absorption

GroupBy = Literal["product_type", "village"]


def generate_months(start: date, end: date) -> List[str]:
    """Ordered ``YYYY-MM`` keys from the month of ``start`` to that of ``end``."""
    months = []
    current = start.replace(day=1)
    last = end.replace(day=1)
    while current <= last:
        months.append(month_key(current))
        current = add_months(current, 1)
    return months


def compute_row_starts(row: BurnScheduleRow) -> Dict[str, float]:
    """Monthly starts for one row, from its homebuilder start date."""
    return {
        month_key(month): units
        for month, units in iter_absorption(row.hb_start_date, row.total_units, row.absorption_pace)
    }


@dataclass
class BurnSchedule:
    """Home starts per row and in aggregate over the union of active months."""

    rows: List[BurnScheduleRow]
    months: List[str]  # Every month from the first to the last active month
    row_starts: List[Dict[str, float]]  # Parallel to rows
    monthly_totals: Dict[str, float] = field(default_factory=dict)

    @property
    def total_units(self) -> float:
        return sum(row.total_units for row in self.rows)

    @property
    def scheduled_units(self) -> float:
        return sum(self.monthly_totals.values())

    @property
    def peak_month(self) -> Optional[str]:
        """Month with the most starts (earliest on ties)."""
        peak, count = None, 0.0
        for month, total in self.monthly_totals.items():
            if total > count:
                peak, count = month, total
        return peak

    @property
    def peak_count(self) -> float:
        peak = self.peak_month
        return self.monthly_totals[peak] if peak else 0.0

    def cumulative_totals(self) -> Dict[str, float]:
        running = 0.0
        cumulative = {}
        for month in self.months:
            running += self.monthly_totals.get(month, 0.0)
            cumulative[month] = running
        return cumulative

    def quarterly_totals(self, group_by: GroupBy = "product_type") -> Dict[str, Dict[str, float]]:
        """Starts per quarter (``Q1'26``) broken out by product type or village.

        Quarters with no starts are omitted. Rows missing the grouping
        field are reported under ``"Unknown"``.
        """
        quarters: Dict[str, Dict[str, float]] = {}
        for row, starts in zip(self.rows, self.row_starts):
            key = getattr(row, group_by) or "Unknown"
            for month, units in starts.items():
                label = quarter_label(parse_month_key(month))
                bucket = quarters.setdefault(label, {})
                bucket[key] = bucket.get(key, 0.0) + units
        return quarters

    def group_keys(self, group_by: GroupBy = "product_type") -> List[str]:
        """Distinct grouping values in row order."""
        keys: List[str] = []
        for row in self.rows:
            key = getattr(row, group_by) or "Unknown"
            if key not in keys:
                keys.append(key)
        return keys

    def to_frame(self) -> pd.DataFrame:
        """Rows x months table of starts, with descriptive columns first."""
        records = []
        for row, starts in zip(self.rows, self.row_starts):
            record = {
                "village": row.village,
                "plat": row.plat,
                "product_type": row.product_type,
                "lot_type": row.lot_type,
                "total_units": row.total_units,
            }
            for month in self.months:
                record[month] = starts.get(month, 0.0)
            records.append(record)
        columns = ["village", "plat", "product_type", "lot_type", "total_units"] + self.months
        return pd.DataFrame.from_records(records, columns=columns)


def build_burn_schedule(rows: Iterable[BurnScheduleRow]) -> BurnSchedule:
    """Schedule starts for every row and total them by calendar month.

    Rows may start in different months; the combined range spans the
    union of all rows' active months. Rows without a start date, units or
    pace contribute an empty schedule.

    Args:
        rows: Burn schedule rows.

    Returns:
        BurnSchedule with per-row and aggregate monthly starts.
    """
    rows = list(rows)
    row_starts = [compute_row_starts(row) for row in rows]

    active = [month for starts in row_starts for month in starts]
    if not active:
        return BurnSchedule(rows=rows, months=[], row_starts=row_starts)

    months = generate_months(parse_month_key(min(active)), parse_month_key(max(active)))
    monthly_totals = {month: 0.0 for month in months}
    for starts in row_starts:
        for month, units in starts.items():
            monthly_totals[month] += units

    return BurnSchedule(
        rows=rows,
        months=months,
        row_starts=row_starts,
        monthly_totals=monthly_totals,
    )
