#!/usr/bin/env python3
"""Example script to run the proforma engine on a sample land deal."""

import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from proforma.models import (
    ProformaInputs,
    ProductType,
    DatedAmount,
    BurnScheduleRow,
)
from proforma.calculations import aggregate, aggregate_many, build_burn_schedule
from proforma.export import WorkbookConfig, generate_proforma_workbook


def get_sample_inputs() -> ProformaInputs:
    """A two-product subdivision with land takedowns and construction draws."""
    return ProformaInputs(
        name="Sample Ridge",
        purchase_price=3_000_000,
        development_costs=4_500_000,
        soft_costs=600_000,
        loan_interest_rate=8.0,
        loan_term_months=18,
        contingency_percentage=5,
        sales_commission_percentage=3,
        purchase_takedowns=[
            DatedAmount(date(2026, 1, 15), 1_500_000, "Phase 1 takedown"),
            DatedAmount(date(2026, 10, 1), 1_500_000, "Phase 2 takedown"),
        ],
        construction_draws=[
            DatedAmount(date(2026, 3, 1), 1_000_000, "Draw 1"),
            DatedAmount(date(2026, 6, 1), 1_000_000, "Draw 2"),
            DatedAmount(date(2026, 9, 1), 750_000, "Draw 3"),
        ],
        product_types=[
            ProductType(
                name="50' Lots",
                number_of_units=60,
                sales_price_per_unit=140_000,
                direct_cost_per_unit=35_000,
                building_permit_cost=6_000,
                absorption_pace=4,
            ),
            ProductType(
                name="60' Lots",
                number_of_units=40,
                sales_price_per_unit=175_000,
                direct_cost_per_unit=42_000,
                building_permit_cost=6_500,
                absorption_pace=3,
            ),
        ],
        development_start_date=date(2026, 1, 1),
        development_completion_date=date(2026, 12, 1),
        first_home_closing=date(2027, 2, 1),
    )


def get_sample_burn_rows() -> list:
    return [
        BurnScheduleRow(village="North", plat="N-1", product_type="50' Lots", total_units=30,
                        absorption_pace=4, hb_start_date=date(2027, 1, 1)),
        BurnScheduleRow(village="North", plat="N-2", product_type="60' Lots", total_units=20,
                        absorption_pace=2, hb_start_date=date(2027, 4, 1)),
        BurnScheduleRow(village="South", plat="S-1", product_type="50' Lots", total_units=30,
                        absorption_pace=3, hb_start_date=date(2027, 7, 1)),
    ]


def run_single_proforma(export_path: str = None):
    """Compute and print the metrics of the sample deal."""
    print("\n" + "=" * 60)
    print("DEVELOPMENT PROFORMA")
    print("=" * 60 + "\n")

    inputs = get_sample_inputs()
    errors = inputs.validate()
    if errors:
        for error in errors:
            print(f"  invalid: {error}")
        return

    metrics = aggregate(inputs)

    irr = f"{metrics.unlevered_irr_pct:.2f}%" if metrics.unlevered_irr_pct is not None else "N/A"
    peak_month = metrics.peak_capital_date.strftime("%b %Y") if metrics.peak_capital_date else "-"

    print(f"{'Gross Revenue':<25} ${metrics.gross_revenue:>15,.0f}")
    print(f"{'Net Revenue':<25} ${metrics.net_revenue:>15,.0f}")
    print(f"{'Financing Costs':<25} ${metrics.financing_costs:>15,.0f}  ({metrics.financing_method.value})")
    print(f"{'Total Costs':<25} ${metrics.total_costs:>15,.0f}")
    print(f"{'Profit':<25} ${metrics.profit:>15,.0f}")
    print("-" * 45)
    print(f"{'ROI':<25} {metrics.roi_pct:>15.2f}%")
    print(f"{'Profit Margin':<25} {metrics.profit_margin_pct:>15.2f}%")
    print(f"{'Gross Margin':<25} {metrics.gross_margin_pct:>15.2f}%")
    print(f"{'RONA':<25} {metrics.rona_pct:>15.2f}%")
    print(f"{'Unlevered IRR':<25} {irr:>16}")
    print(f"{'Peak Capital':<25} ${metrics.peak_capital_amount:>15,.0f}  ({peak_month})")

    print("\nProduct types:")
    for summary in metrics.product_summaries:
        sell_out = summary.sell_out_month.strftime("%b %Y") if summary.sell_out_month else "-"
        print(f"  {summary.name:<12} {summary.units:>5.0f} units  "
              f"{summary.months_to_sell_out:>3d} months  sells out {sell_out}")

    burn = build_burn_schedule(get_sample_burn_rows())
    print(f"\nBurn schedule: {burn.scheduled_units:.0f} starts over {len(burn.months)} months, "
          f"peak {burn.peak_count:.0f} in {burn.peak_month}")
    for quarter, groups in burn.quarterly_totals().items():
        detail = ", ".join(f"{key}: {units:.0f}" for key, units in groups.items())
        print(f"  {quarter}  {detail}")

    if export_path:
        data = generate_proforma_workbook(
            metrics,
            WorkbookConfig(project_name=inputs.name),
            burn_schedule=burn,
        )
        Path(export_path).write_bytes(data)
        print(f"\nWorkbook written to {export_path}")


def run_pace_sensitivity():
    """Recompute the deal at several absorption paces in parallel."""
    print("\n" + "=" * 60)
    print("ABSORPTION PACE SENSITIVITY")
    print("=" * 60 + "\n")

    base = get_sample_inputs()
    multipliers = [0.5, 0.75, 1.0, 1.25, 1.5]
    variants = []
    for multiplier in multipliers:
        record = base.to_dict()
        for product in record["product_types"]:
            product["absorption_pace"] = product["absorption_pace"] * multiplier
        variants.append(ProformaInputs.from_dict(record))

    results = aggregate_many(variants)

    print(f"{'Pace x':<10} {'IRR':>10} {'Peak Capital':>16}")
    print("-" * 38)
    for multiplier, metrics in zip(multipliers, results):
        irr = f"{metrics.unlevered_irr_pct:.2f}%" if metrics.unlevered_irr_pct is not None else "N/A"
        print(f"{multiplier:<10.2f} {irr:>10} ${metrics.peak_capital_amount:>15,.0f}")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Development Proforma Engine")
    parser.add_argument(
        "--sensitivity",
        action="store_true",
        help="Also run the absorption pace sensitivity",
    )
    parser.add_argument(
        "--export",
        metavar="PATH",
        help="Write an Excel workbook of the results",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show engine log messages",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    run_single_proforma(args.export)

    if args.sensitivity:
        run_pace_sensitivity()

    print("\nDone.")


if __name__ == "__main__":
    main()
