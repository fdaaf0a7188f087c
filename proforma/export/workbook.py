"""Proforma workbook export.

Writes the metrics of one proforma to an Excel workbook: headline
summary, cost breakdown, product types, the monthly cash flows the IRR
was computed on, and the formula definitions and traced values behind
each number.
"""

import io
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils.dataframe import dataframe_to_rows

from ..calculations.aggregate import ProformaMetrics
from ..calculations.burn_schedule import BurnSchedule
from ..calculations.formula_registry import FormulaCategory, FormulaRegistry
from ..calculations.trace import TraceContext


@dataclass
class WorkbookConfig:
    """Configuration for workbook generation."""
    include_summary: bool = True
    include_cost_breakdown: bool = True
    include_product_types: bool = True
    include_cash_flows: bool = True
    include_formula_registry: bool = True
    include_traced_values: bool = True
    project_name: str = "Land Development"
    scenario_name: str = "Base Case"


def _format_value(value: Optional[float], unit: str = "$") -> str:
    """Format a value for display in reports."""
    if value is None:
        return "N/A"
    if unit == "%":
        return f"{value:.2f}%"
    elif abs(value) >= 1_000_000:
        return f"${value/1_000_000:,.2f}M"
    elif abs(value) >= 1_000:
        return f"${value/1_000:,.1f}K"
    elif value == 0:
        return "$0"
    else:
        return f"${value:,.0f}"


def _add_header_style(ws, row: int, cols: int) -> None:
    """Apply header styling to a row."""
    header_fill = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
    header_font = Font(color="FFFFFF", bold=True)

    for col in range(1, cols + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center")


def _add_section_header(ws, title: str, row: int) -> int:
    """Add a section header and return next row."""
    ws.cell(row=row, column=1, value=title)
    ws.cell(row=row, column=1).font = Font(bold=True, size=14)
    return row + 1


def generate_proforma_workbook(
    metrics: ProformaMetrics,
    config: Optional[WorkbookConfig] = None,
    burn_schedule: Optional[BurnSchedule] = None,
) -> bytes:
    """Generate an Excel workbook for a computed proforma.

    Args:
        metrics: Result of ``aggregate``.
        config: Optional configuration for the workbook.
        burn_schedule: Optional burn schedule to add as its own sheet.

    Returns:
        Excel file as bytes
    """
    if config is None:
        config = WorkbookConfig()

    wb = Workbook()
    wb.remove(wb.active)

    if config.include_summary:
        _create_summary_sheet(wb.create_sheet("Summary"), metrics, config)

    if config.include_cost_breakdown:
        _create_cost_breakdown_sheet(wb.create_sheet("Cost Breakdown"), metrics)

    if config.include_product_types and metrics.product_summaries:
        _create_product_types_sheet(wb.create_sheet("Product Types"), metrics)

    if config.include_cash_flows and not metrics.cash_flow.is_empty:
        _create_cash_flows_sheet(wb.create_sheet("Cash Flows"), metrics)

    if config.include_formula_registry:
        _create_formula_registry_sheet(wb.create_sheet("Formula Registry"))

    if config.include_traced_values and metrics.trace_context:
        _create_traced_calculations_sheet(wb.create_sheet("Traced Calculations"), metrics.trace_context)

    if burn_schedule is not None and burn_schedule.months:
        _create_burn_schedule_sheet(wb.create_sheet("Burn Schedule"), burn_schedule)

    if not wb.sheetnames:
        wb.create_sheet("Summary")

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


def _create_summary_sheet(ws, metrics: ProformaMetrics, config: WorkbookConfig) -> None:
    row = 1

    ws.cell(row=row, column=1, value=f"Proforma: {config.project_name}")
    ws.cell(row=row, column=1).font = Font(bold=True, size=16)
    row += 1

    ws.cell(row=row, column=1, value=f"Scenario: {config.scenario_name}")
    row += 1

    ws.cell(row=row, column=1, value=f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    row += 2

    row = _add_section_header(ws, "Key Metrics", row)
    row += 1

    peak_date = metrics.peak_capital_date.strftime("%b %Y") if metrics.peak_capital_date else "-"
    lines = [
        ("Gross Revenue", _format_value(metrics.gross_revenue)),
        ("Net Revenue", _format_value(metrics.net_revenue)),
        ("Total Costs", _format_value(metrics.total_costs)),
        ("Profit", _format_value(metrics.profit)),
        ("", ""),
        ("ROI", _format_value(metrics.roi_pct, "%")),
        ("Profit Margin", _format_value(metrics.profit_margin_pct, "%")),
        ("Gross Margin", _format_value(metrics.gross_margin_pct, "%")),
        ("RONA", _format_value(metrics.rona_pct, "%")),
        ("Unlevered IRR", _format_value(metrics.unlevered_irr_pct, "%")),
        ("", ""),
        ("Peak Capital", _format_value(metrics.peak_capital_amount)),
        ("Peak Capital Month", peak_date),
        ("Total Units", f"{metrics.total_units:,.0f}"),
        ("Cost per Unit", _format_value(metrics.cost_per_unit)),
    ]

    for label, value in lines:
        if label:
            ws.cell(row=row, column=1, value=label)
            ws.cell(row=row, column=2, value=value)
        row += 1

    ws.column_dimensions['A'].width = 25
    ws.column_dimensions['B'].width = 20


def _create_cost_breakdown_sheet(ws, metrics: ProformaMetrics) -> None:
    """Costs with share of total and how each was derived."""
    row = 1
    row = _add_section_header(ws, "Cost Breakdown", row)
    row += 1

    headers = ["Item", "Amount", "% of Total", "Formula"]
    for col, header in enumerate(headers, 1):
        ws.cell(row=row, column=col, value=header)
    _add_header_style(ws, row, len(headers))
    row += 1

    ctx = metrics.trace_context
    purchase = development = soft = 0.0
    if ctx:
        contingency_trace = ctx.get_trace("costs.contingency")
        if contingency_trace:
            purchase = contingency_trace.input_values.get("inputs.purchase_price", 0.0)
            development = contingency_trace.input_values.get("inputs.development_costs", 0.0)
            soft = contingency_trace.input_values.get("inputs.soft_costs", 0.0)

    items = [
        ("Purchase Price", purchase, "Input"),
        ("Development Costs", development, "Input"),
        ("Soft Costs", soft, "Input"),
        ("Direct Costs", metrics.total_direct_costs, "sum(units x direct_cost_per_unit)"),
        ("Permit Costs", metrics.total_permit_costs, "sum(units x building_permit_cost)"),
        ("Contingency", metrics.contingency, "base costs x contingency %"),
        ("Financing Costs", metrics.financing_costs, metrics.financing_method.value),
        ("", 0.0, ""),
        ("Total Costs", metrics.total_costs, "net assets + financing"),
    ]

    for label, amount, formula in items:
        if label:
            ws.cell(row=row, column=1, value=label)
            ws.cell(row=row, column=2, value=round(amount, 2))
            ws.cell(row=row, column=2).number_format = '"$"#,##0'
            share = amount / metrics.total_costs if metrics.total_costs else None
            ws.cell(row=row, column=3, value=f"{share:.1%}" if share is not None else "-")
            ws.cell(row=row, column=4, value=formula)
            if label == "Total Costs":
                ws.cell(row=row, column=1).font = Font(bold=True)
                ws.cell(row=row, column=2).font = Font(bold=True)
        row += 1

    ws.column_dimensions['A'].width = 22
    ws.column_dimensions['B'].width = 18
    ws.column_dimensions['C'].width = 12
    ws.column_dimensions['D'].width = 40


def _create_product_types_sheet(ws, metrics: ProformaMetrics) -> None:
    frame = pd.DataFrame([
        {
            "Product Type": summary.name,
            "Units": summary.units,
            "Absorption / Month": summary.absorption_pace,
            "Months to Sell Out": summary.months_to_sell_out,
            "Sell-out Month": summary.sell_out_month.strftime("%Y-%m") if summary.sell_out_month else "-",
            "Gross Revenue": summary.gross_revenue,
            "Net Revenue": summary.net_revenue,
            "Direct Costs": summary.direct_costs,
            "Permit Costs": summary.permit_costs,
        }
        for summary in metrics.product_summaries
    ])
    _write_frame(ws, frame, "Product Types")


def _create_cash_flows_sheet(ws, metrics: ProformaMetrics) -> None:
    frame = metrics.cash_flow.to_frame().rename(columns={
        "month_index": "Month",
        "month": "Calendar Month",
        "cash_flow": "Net Cash Flow",
        "cumulative": "Cumulative",
    })
    _write_frame(ws, frame, "Monthly Unlevered Cash Flows")


def _create_burn_schedule_sheet(ws, burn_schedule: BurnSchedule) -> None:
    frame = burn_schedule.to_frame()
    totals: Dict[str, object] = {
        "village": "Total",
        "plat": "",
        "product_type": "",
        "lot_type": "",
        "total_units": burn_schedule.total_units,
    }
    totals.update(burn_schedule.monthly_totals)
    frame = pd.concat([frame, pd.DataFrame([totals])], ignore_index=True)
    _write_frame(ws, frame, "Burn Schedule - Home Starts by Month")


def _write_frame(ws, frame: pd.DataFrame, title: str) -> None:
    """Write a DataFrame under a section header with a styled header row."""
    row = _add_section_header(ws, title, 1)
    row += 1

    for r_offset, values in enumerate(dataframe_to_rows(frame, index=False, header=True)):
        for col, value in enumerate(values, 1):
            ws.cell(row=row + r_offset, column=col, value=value)
    _add_header_style(ws, row, len(frame.columns))

    for col in range(1, len(frame.columns) + 1):
        ws.column_dimensions[ws.cell(row=row, column=col).column_letter].width = 16


def _create_formula_registry_sheet(ws) -> None:
    """Create the Formula Registry sheet."""
    all_formulas = FormulaRegistry.get_all()

    row = 1
    row = _add_section_header(ws, "Formula Registry - All Calculation Definitions", row)
    row += 2

    headers = ["Category", "Name", "Field Path", "Formula", "Inputs", "Notes"]
    for col, header in enumerate(headers, 1):
        ws.cell(row=row, column=col, value=header)
    _add_header_style(ws, row, len(headers))
    row += 1

    by_category: Dict[FormulaCategory, list] = {}
    for field_path, formula in all_formulas.items():
        by_category.setdefault(formula.category, []).append((field_path, formula))

    for category in FormulaCategory:
        if category not in by_category:
            continue

        for field_path, formula in sorted(by_category[category], key=lambda x: x[0]):
            ws.cell(row=row, column=1, value=category.value)
            ws.cell(row=row, column=2, value=formula.name)
            ws.cell(row=row, column=3, value=field_path)
            ws.cell(row=row, column=4, value=formula.formula)
            ws.cell(row=row, column=5, value=", ".join(formula.inputs) if formula.inputs else "-")
            ws.cell(row=row, column=6, value=formula.notes if formula.notes else "-")
            row += 1

    ws.column_dimensions['A'].width = 15
    ws.column_dimensions['B'].width = 30
    ws.column_dimensions['C'].width = 30
    ws.column_dimensions['D'].width = 50
    ws.column_dimensions['E'].width = 40
    ws.column_dimensions['F'].width = 40


def _create_traced_calculations_sheet(ws, trace_context: TraceContext) -> None:
    """Create the Traced Calculations sheet."""
    row = 1
    row = _add_section_header(ws, "Traced Calculations - Actual Values Used", row)
    row += 2

    headers = ["Field Path", "Result", "Computed Formula", "Notes"]
    for col, header in enumerate(headers, 1):
        ws.cell(row=row, column=col, value=header)
    _add_header_style(ws, row, len(headers))
    row += 1

    for trace_key in sorted(trace_context.traces.keys()):
        traced = trace_context.traces[trace_key]
        unit = "%" if traced.field_path.endswith("_pct") else "$"

        ws.cell(row=row, column=1, value=traced.field_path)
        ws.cell(row=row, column=2, value=_format_value(traced.value, unit))
        ws.cell(row=row, column=3, value=traced.computed_formula[:100])
        ws.cell(row=row, column=4, value=traced.notes if traced.notes else "-")
        row += 1

    ws.column_dimensions['A'].width = 30
    ws.column_dimensions['B'].width = 18
    ws.column_dimensions['C'].width = 80
    ws.column_dimensions['D'].width = 30
