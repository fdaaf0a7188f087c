"""Tests for cash-flow timeline construction."""

import logging
from datetime import date

import pytest

from proforma.calculations.cashflow import (
    CashFlowEvent,
    CashFlowSeries,
    EventCategory,
    build_cash_flow_series,
    build_proforma_timeline,
    build_timeline_event_series,
    resolve_reference_date,
    resolve_revenue_start,
)
from proforma.models import (
    DatedAmount,
    EngineConfig,
    EventType,
    ProductType,
    ProformaInputs,
    TimelineEvent,
)


def _event(day: date, amount: float) -> CashFlowEvent:
    return CashFlowEvent(date=day, amount=amount)


class TestBuildCashFlowSeries:
    """Test projecting dated events onto the month axis."""

    def test_series_is_gapless(self):
        """Months with no events are present as 0."""
        series = build_cash_flow_series(
            date(2026, 1, 1),
            [_event(date(2026, 1, 1), -100), _event(date(2026, 6, 1), 150)],
        )

        assert list(series) == [-100, 0, 0, 0, 0, 150]

    def test_same_month_events_sum(self):
        series = build_cash_flow_series(
            date(2026, 1, 1),
            [
                _event(date(2026, 2, 3), -40),
                _event(date(2026, 2, 27), -60),
                _event(date(2026, 3, 1), 25),
            ],
        )

        assert list(series) == [0, -100, 25]

    def test_day_of_month_is_ignored(self):
        """Reference on the 20th and an event on the 1st of the next month are one apart."""
        series = build_cash_flow_series(
            date(2026, 1, 20),
            [_event(date(2026, 2, 1), 10)],
        )

        assert series.reference_month == date(2026, 1, 1)
        assert list(series) == [0, 10]

    def test_offset_spans_years(self):
        series = build_cash_flow_series(
            date(2025, 11, 1),
            [_event(date(2027, 2, 1), 10)],
        )

        assert len(series) == 16
        assert series[15] == 10

    def test_no_reference_date_gives_empty_series(self):
        series = build_cash_flow_series(None, [_event(date(2026, 1, 1), 10)])

        assert series.is_empty
        assert len(series) == 0

    def test_no_events_gives_empty_series(self):
        series = build_cash_flow_series(date(2026, 1, 1), [])

        assert series.is_empty
        assert series.reference_month == date(2026, 1, 1)

    def test_early_event_clamped_to_month_zero(self, caplog):
        with caplog.at_level(logging.WARNING, logger="proforma.calculations.cashflow"):
            series = build_cash_flow_series(
                date(2026, 3, 1),
                [_event(date(2026, 1, 1), -50), _event(date(2026, 3, 1), -50), _event(date(2026, 4, 1), 200)],
            )

        assert list(series) == [-100, 200]
        assert len(caplog.records) == 1
        assert "reference month" in caplog.text

    def test_early_event_dropped_when_not_clamping(self):
        series = build_cash_flow_series(
            date(2026, 3, 1),
            [_event(date(2026, 1, 1), -50), _event(date(2026, 4, 1), 200)],
            clamp_negative_offsets=False,
        )

        assert list(series) == [0, 200]


class TestCashFlowSeries:

    def test_cumulative_and_total(self):
        series = CashFlowSeries(flows=(-100.0, -50.0, 30.0, 200.0), reference_month=date(2026, 1, 1))

        assert series.cumulative() == [-100, -150, -120, 80]
        assert series.total == 80

    def test_month_date(self):
        series = CashFlowSeries(flows=(0.0,) * 14, reference_month=date(2026, 1, 1))

        assert series.month_date(13) == date(2027, 2, 1)
        assert CashFlowSeries().month_date(3) is None

    def test_to_frame(self):
        series = CashFlowSeries(flows=(-10.0, 0.0, 25.0), reference_month=date(2026, 12, 1))

        frame = series.to_frame()

        assert list(frame.columns) == ["month_index", "month", "cash_flow", "cumulative"]
        assert list(frame["month"]) == ["2026-12", "2027-01", "2027-02"]
        assert list(frame["cumulative"]) == [-10, -10, 15]


class TestResolveDates:
    """Test reference date and revenue start fallbacks."""

    def test_reference_prefers_development_start(self, dated_inputs):
        assert resolve_reference_date(dated_inputs) == date(2026, 1, 1)

    def test_reference_falls_back_to_earliest_dated_item(self):
        inputs = ProformaInputs(
            purchase_takedowns=[DatedAmount(date(2026, 5, 1), 100)],
            construction_draws=[DatedAmount(date(2026, 3, 1), 100)],
            first_home_closing=date(2027, 1, 1),
        )

        assert resolve_reference_date(inputs) == date(2026, 3, 1)

    def test_reference_none_without_dates(self, rollup_inputs):
        assert resolve_reference_date(rollup_inputs) is None

    def test_revenue_start_prefers_first_closing(self, dated_inputs):
        assert resolve_revenue_start(dated_inputs, date(2026, 1, 1)) == date(2027, 2, 1)

    def test_revenue_start_falls_back_to_completion(self):
        inputs = ProformaInputs(development_completion_date=date(2026, 10, 1))

        assert resolve_revenue_start(inputs, date(2026, 1, 1)) == date(2026, 10, 1)

    def test_revenue_start_defaults_to_next_month(self):
        assert resolve_revenue_start(ProformaInputs(), date(2026, 1, 15)) == date(2026, 2, 1)


class TestBuildProformaTimeline:
    """Test the proforma's full event set."""

    def test_month_zero_upfront_plus_first_takedown(self, dated_inputs):
        timeline = build_proforma_timeline(dated_inputs, upfront_costs=3_200_000)

        assert timeline.series[0] == pytest.approx(-3_700_000)

    def test_takedowns_and_draws_in_their_months(self, dated_inputs):
        series = build_proforma_timeline(dated_inputs, upfront_costs=3_200_000).series

        assert series[2] == pytest.approx(-400_000)
        assert series[6] == pytest.approx(-500_000)
        assert series[8] == pytest.approx(-600_000)

    def test_revenue_net_of_commission_from_first_closing(self, dated_inputs):
        timeline = build_proforma_timeline(dated_inputs, upfront_costs=3_200_000)
        series = timeline.series

        assert timeline.revenue_start == date(2027, 2, 1)
        assert series[12] == 0
        assert len(series) == 23
        for month in range(13, 23):
            assert series[month] == pytest.approx(4 * 150_000 * 0.97)

    def test_event_categories(self, dated_inputs):
        timeline = build_proforma_timeline(dated_inputs, upfront_costs=3_200_000)
        categories = {event.category for event in timeline.events}

        assert categories == {
            EventCategory.UPFRONT_COST,
            EventCategory.PURCHASE_TAKEDOWN,
            EventCategory.CONSTRUCTION_DRAW,
            EventCategory.SALES_REVENUE,
        }

    def test_no_dates_gives_empty_timeline(self, rollup_inputs):
        timeline = build_proforma_timeline(rollup_inputs, upfront_costs=5_985_000)

        assert timeline.series.is_empty
        assert timeline.events == []

    def test_revenue_months_capped(self):
        inputs = ProformaInputs(
            development_start_date=date(2026, 1, 1),
            product_types=[ProductType(name="Slow", number_of_units=300, sales_price_per_unit=100, absorption_pace=1)],
        )

        timeline = build_proforma_timeline(inputs, upfront_costs=10_000, config=EngineConfig(revenue_max_months=240))

        assert timeline.units_unscheduled == 60
        # Month 0 upfront, revenue from month 1 through month 240
        assert len(timeline.series) == 241

    def test_fractional_pace_revenue_ends_on_last_absorption_month(self):
        inputs = ProformaInputs(
            development_start_date=date(2026, 1, 1),
            product_types=[ProductType(name="Lots", number_of_units=3, sales_price_per_unit=1_000, absorption_pace=0.3)],
        )

        timeline = build_proforma_timeline(inputs, upfront_costs=1_000)

        # Month 0 upfront, ten months of closings from month 1
        assert len(timeline.series) == 11
        assert timeline.series[10] == pytest.approx(0.3 * 1_000 * 0.97)
        assert timeline.units_unscheduled == 0


class TestTimelineEventSeries:
    """Test the project-timeline cash flows."""

    def test_spend_negative_closing_positive(self):
        events = [
            TimelineEvent(date(2026, 3, 1), EventType.DEVELOPMENT_SPEND, 1000),
            TimelineEvent(date(2026, 5, 1), EventType.HOME_START, 0, units=4),
            TimelineEvent(date(2026, 7, 1), EventType.HOME_SALE, 500, units=2),
            TimelineEvent(date(2026, 9, 1), EventType.HOME_CLOSING, 1200, units=2),
        ]

        series = build_timeline_event_series(events)

        assert series.reference_month == date(2026, 3, 1)
        assert list(series) == [-1000, 0, 0, 0, 0, 0, 1200]

    def test_reference_is_earliest_event_regardless_of_order(self):
        events = [
            TimelineEvent(date(2026, 9, 1), EventType.HOME_CLOSING, 1200),
            TimelineEvent(date(2026, 8, 1), EventType.DEVELOPMENT_SPEND, 1000),
        ]

        series = build_timeline_event_series(events)

        assert list(series) == [-1000, 1200]

    def test_undated_events_ignored(self):
        series = build_timeline_event_series([TimelineEvent(None, EventType.HOME_CLOSING, 100)])

        assert series.is_empty
