"""Tests for proforma aggregation."""

from datetime import date

import pytest
import numpy_financial as npf

from proforma.calculations.aggregate import aggregate, safe_pct, timeline_unlevered_irr
from proforma.calculations.financing import FinancingMethod
from proforma.calculations.irr import monthly_to_annual_pct
from proforma.models import (
    DatedAmount,
    EventType,
    ProductType,
    ProformaInputs,
    TimelineEvent,
)


class TestCostRevenueRollup:
    """Test the static roll-up arithmetic."""

    def test_rollup(self, rollup_inputs):
        metrics = aggregate(rollup_inputs)

        assert metrics.gross_revenue == pytest.approx(5_000_000)
        assert metrics.total_direct_costs == pytest.approx(2_000_000)
        assert metrics.total_permit_costs == pytest.approx(500_000)
        assert metrics.contingency == pytest.approx(285_000)
        assert metrics.financing_costs == 0
        assert metrics.total_costs == pytest.approx(5_985_000)
        assert metrics.sales_commission == pytest.approx(150_000)
        assert metrics.net_revenue == pytest.approx(4_850_000)
        assert metrics.profit == pytest.approx(-1_135_000)
        assert not metrics.is_profitable

    def test_ratios(self, rollup_inputs):
        metrics = aggregate(rollup_inputs)

        assert metrics.roi_pct == pytest.approx(-1_135_000 / 5_985_000 * 100)
        assert metrics.profit_margin_pct == pytest.approx(-1_135_000 / 5_000_000 * 100)
        assert metrics.gross_margin_pct == pytest.approx((5_000_000 - 5_985_000) / 5_000_000 * 100)
        assert metrics.rona_pct == pytest.approx(-1_135_000 / 5_985_000 * 100)

    def test_no_dates_means_no_timeline_metrics(self, rollup_inputs):
        metrics = aggregate(rollup_inputs)

        assert metrics.unlevered_irr_pct is None
        assert metrics.peak_capital_amount == 0
        assert metrics.peak_capital_date is None
        assert metrics.cash_flow.is_empty

    def test_undated_deal_profit_without_irr(self):
        inputs = ProformaInputs(
            product_types=[ProductType("Lots", 10, 100_000, absorption_pace=2)],
            contingency_percentage=0,
            sales_commission_percentage=0,
        )

        metrics = aggregate(inputs)

        assert (metrics.profit, metrics.unlevered_irr_pct) == (1_000_000.0, None)

    def test_zero_costs_zero_ratios(self):
        """Empty proforma: every ratio guarded, no exception."""
        metrics = aggregate(ProformaInputs(contingency_percentage=0, sales_commission_percentage=0))

        assert metrics.total_costs == 0
        assert metrics.roi_pct == 0
        assert metrics.profit_margin_pct == 0
        assert metrics.gross_margin_pct == 0
        assert metrics.rona_pct == 0
        assert metrics.cost_per_unit == 0

    def test_manual_financing_added_to_total(self, rollup_inputs):
        rollup_inputs.financing_costs = 100_000

        metrics = aggregate(rollup_inputs)

        assert metrics.financing_method == FinancingMethod.MANUAL
        assert metrics.total_costs == pytest.approx(6_085_000)
        assert metrics.net_assets == pytest.approx(5_985_000)
        # RONA excludes financing from the denominator
        assert metrics.rona_pct == pytest.approx(metrics.profit / 5_985_000 * 100)

    def test_multiple_product_types_sum(self):
        inputs = ProformaInputs(
            contingency_percentage=0,
            sales_commission_percentage=0,
            product_types=[
                ProductType("A", 10, 100_000, 30_000, 2_000, 2),
                ProductType("B", 5, 200_000, 50_000, 3_000, 1),
            ],
        )

        metrics = aggregate(inputs)

        assert metrics.gross_revenue == pytest.approx(2_000_000)
        assert metrics.total_direct_costs == pytest.approx(550_000)
        assert metrics.total_permit_costs == pytest.approx(35_000)
        assert metrics.total_units == 15
        assert [s.months_to_sell_out for s in metrics.product_summaries] == [5, 5]


class TestDatedProforma:
    """Test the timeline-driven metrics on a fully dated deal."""

    def test_draw_weighted_financing(self, dated_inputs):
        metrics = aggregate(dated_inputs)

        assert metrics.financing_method == FinancingMethod.DRAW_WEIGHTED
        assert metrics.financing_costs == pytest.approx(27_000)
        assert metrics.total_costs == pytest.approx(4_227_000)
        assert metrics.profit == pytest.approx(1_593_000)

    def test_takedowns_replace_lump_sum_purchase(self, dated_inputs):
        """Month 0 carries net assets less the purchase price plus the first takedown."""
        metrics = aggregate(dated_inputs)

        assert metrics.cash_flow[0] == pytest.approx(-(4_200_000 - 1_000_000) - 500_000)
        assert metrics.trace_context.get_trace("costs.upfront_costs").value == pytest.approx(3_200_000)

    def test_lump_sum_purchase_without_takedowns(self, dated_inputs):
        dated_inputs.purchase_takedowns = []

        metrics = aggregate(dated_inputs)

        assert metrics.cash_flow[0] == pytest.approx(-4_200_000)

    def test_peak_capital(self, dated_inputs):
        metrics = aggregate(dated_inputs)

        assert metrics.peak_capital_amount == pytest.approx(5_200_000)
        assert metrics.peak_capital_month_index == 8
        assert metrics.peak_capital_date == date(2026, 9, 1)

    def test_unlevered_irr_matches_numpy_financial(self, dated_inputs):
        metrics = aggregate(dated_inputs)

        expected = monthly_to_annual_pct(npf.irr(list(metrics.cash_flow)))

        assert metrics.unlevered_irr_pct is not None
        assert metrics.unlevered_irr_pct > 0
        assert metrics.unlevered_irr_pct == pytest.approx(expected, abs=0.01)

    def test_product_summary_sell_out(self, dated_inputs):
        metrics = aggregate(dated_inputs)
        summary = metrics.product_summaries[0]

        assert summary.months_to_sell_out == 10
        assert summary.sell_out_month == date(2027, 11, 1)

    def test_fractional_pace_sell_out_matches_last_closing_month(self):
        inputs = ProformaInputs(
            development_start_date=date(2026, 1, 1),
            product_types=[ProductType("Lots", 3, 100_000, absorption_pace=0.3)],
        )

        metrics = aggregate(inputs)
        summary = metrics.product_summaries[0]

        assert summary.months_to_sell_out == 10
        assert summary.sell_out_month == date(2026, 11, 1)
        assert metrics.cash_flow.month_date(len(metrics.cash_flow) - 1) == summary.sell_out_month

    def test_draws_move_irr_but_not_rollup(self, dated_inputs):
        base = aggregate(dated_inputs)
        dated_inputs.construction_draws = [
            DatedAmount(d.date, d.amount * 2, d.description) for d in dated_inputs.construction_draws
        ]
        heavier = aggregate(dated_inputs)

        assert heavier.net_assets == pytest.approx(base.net_assets)
        assert heavier.unlevered_irr_pct is not None
        assert heavier.unlevered_irr_pct < base.unlevered_irr_pct
        assert heavier.peak_capital_amount == pytest.approx(base.peak_capital_amount + 1_000_000)

    def test_key_formulas_are_traced(self, dated_inputs):
        ctx = aggregate(dated_inputs).trace_context

        for key in [
            "costs.contingency",
            "costs.total_costs",
            "revenue.net_revenue",
            "financing.financing_costs",
            "returns.profit",
            "returns.roi_pct",
            "returns.unlevered_irr_pct",
        ]:
            assert key in ctx.traces, f"Missing trace: {key}"

    def test_traced_values_match_results(self, dated_inputs):
        metrics = aggregate(dated_inputs)
        ctx = metrics.trace_context

        assert ctx.traces["costs.total_costs"].value == pytest.approx(metrics.total_costs)
        assert ctx.traces["returns.unlevered_irr_pct"].value == pytest.approx(metrics.unlevered_irr_pct)
        assert ctx.traces["financing.financing_costs"].notes == "draw_weighted"


class TestTimelineIRR:
    """Test IRR from project timeline events."""

    def test_ten_percent_over_a_year(self):
        events = [
            TimelineEvent(date(2026, 1, 15), EventType.DEVELOPMENT_SPEND, 1000),
            TimelineEvent(date(2027, 1, 10), EventType.HOME_CLOSING, 1100),
        ]

        assert timeline_unlevered_irr(events) == pytest.approx(10.0, abs=0.01)

    def test_spend_only_is_indeterminate(self):
        events = [
            TimelineEvent(date(2026, 1, 1), EventType.DEVELOPMENT_SPEND, 1000),
            TimelineEvent(date(2026, 6, 1), EventType.DEVELOPMENT_SPEND, 500),
        ]

        assert timeline_unlevered_irr(events) is None

    def test_aggregate_reports_timeline_irr(self, dated_inputs):
        dated_inputs.timeline_events = [
            TimelineEvent(date(2026, 1, 1), EventType.DEVELOPMENT_SPEND, 1000),
            TimelineEvent(date(2027, 1, 1), EventType.HOME_CLOSING, 1100),
        ]

        metrics = aggregate(dated_inputs)

        assert metrics.timeline_irr_pct == pytest.approx(10.0, abs=0.01)

    def test_aggregate_without_timeline_events(self, dated_inputs):
        assert aggregate(dated_inputs).timeline_irr_pct is None


class TestSafePct:

    @pytest.mark.parametrize("numerator,denominator,expected", [
        (25, 100, 25.0),
        (-5, 50, -10.0),
        (10, 0, 0.0),
        (0, 0, 0.0),
    ])
    def test_safe_pct(self, numerator, denominator, expected):
        assert safe_pct(numerator, denominator) == expected
