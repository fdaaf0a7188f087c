"""Tests for the burn schedule."""

from datetime import date

from proforma.calculations.burn_schedule import (
    build_burn_schedule,
    compute_row_starts,
    generate_months,
)
from proforma.models import BurnScheduleRow


def _rows():
    return [
        BurnScheduleRow(village="North", plat="N-1", product_type="50'", total_units=10,
                        absorption_pace=4, hb_start_date=date(2026, 11, 1)),
        BurnScheduleRow(village="South", plat="S-1", product_type="60'", total_units=6,
                        absorption_pace=3, hb_start_date=date(2027, 4, 15)),
    ]


class TestGenerateMonths:

    def test_inclusive_range_across_year(self):
        assert generate_months(date(2026, 11, 20), date(2027, 2, 1)) == [
            "2026-11", "2026-12", "2027-01", "2027-02",
        ]


class TestRowStarts:

    def test_starts_from_homebuilder_start(self):
        starts = compute_row_starts(_rows()[0])

        assert starts == {"2026-11": 4, "2026-12": 4, "2027-01": 2}

    def test_row_without_start_date_is_empty(self):
        assert compute_row_starts(BurnScheduleRow(total_units=10, absorption_pace=2)) == {}


class TestBuildBurnSchedule:
    """Test aggregation across rows."""

    def test_months_span_union_including_gap(self):
        burn = build_burn_schedule(_rows())

        assert burn.months[0] == "2026-11"
        assert burn.months[-1] == "2027-05"
        assert len(burn.months) == 7
        assert burn.monthly_totals["2027-02"] == 0

    def test_totals(self):
        burn = build_burn_schedule(_rows())

        assert burn.total_units == 16
        assert burn.scheduled_units == 16
        assert burn.cumulative_totals()["2027-05"] == 16

    def test_peak_month_is_earliest_on_tie(self):
        burn = build_burn_schedule(_rows())

        assert burn.peak_month == "2026-11"
        assert burn.peak_count == 4

    def test_quarterly_by_product_type(self):
        burn = build_burn_schedule(_rows())

        quarters = burn.quarterly_totals("product_type")

        assert quarters["Q4'26"] == {"50'": 8}
        assert quarters["Q1'27"] == {"50'": 2}
        assert quarters["Q2'27"] == {"60'": 6}

    def test_quarterly_by_village_with_missing_value(self):
        rows = _rows() + [
            BurnScheduleRow(total_units=2, absorption_pace=2, hb_start_date=date(2026, 12, 1)),
        ]

        quarters = build_burn_schedule(rows).quarterly_totals("village")

        assert quarters["Q4'26"] == {"North": 8, "Unknown": 2}

    def test_group_keys(self):
        assert build_burn_schedule(_rows()).group_keys("village") == ["North", "South"]

    def test_empty_rows(self):
        burn = build_burn_schedule([])

        assert burn.months == []
        assert burn.peak_month is None
        assert burn.peak_count == 0

    def test_to_frame(self):
        frame = build_burn_schedule(_rows()).to_frame()

        assert len(frame) == 2
        assert list(frame.columns[:5]) == ["village", "plat", "product_type", "lot_type", "total_units"]
        assert frame.loc[1, "2027-04"] == 3
