"""Formula Registry for transparent proforma auditing.

This module provides a central registry of the proforma formulas, so a
reviewer can see exactly how each metric is computed and which inputs
feed it.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set
from enum import Enum


class FormulaCategory(str, Enum):
    """Categories for organizing formulas."""
    INPUT = "Input"
    COSTS = "Costs"
    REVENUE = "Revenue"
    FINANCING = "Financing"
    RETURNS = "Returns"
    TIMELINE = "Timeline"


@dataclass
class FormulaDefinition:
    """Definition of a single calculation formula.

    Attributes:
        field_path: Dot-notation path to the field (e.g., "costs.total_costs")
        name: Human-readable name (e.g., "Total Costs")
        formula: Symbolic formula (e.g., "purchase_price + development_costs + ...")
        inputs: List of input field paths that feed into this formula
        category: Category for grouping formulas
        unit: Display unit ("$", "%", "units", "months")
        notes: Optional explanation or caveats
    """
    field_path: str
    name: str
    formula: str
    inputs: List[str]
    category: FormulaCategory
    unit: str = "$"
    notes: str = ""


class FormulaRegistry:
    """Central registry of all proforma formulas.

    Class-level mapping of field paths to their formula definitions,
    populated lazily on first lookup.
    """
    _formulas: Dict[str, FormulaDefinition] = {}
    _initialized: bool = False

    @classmethod
    def register(cls, definition: FormulaDefinition) -> None:
        """Register a formula definition."""
        cls._formulas[definition.field_path] = definition

    @classmethod
    def get(cls, field_path: str) -> Optional[FormulaDefinition]:
        """Get formula definition by field path."""
        cls._ensure_initialized()
        return cls._formulas.get(field_path)

    @classmethod
    def get_all(cls) -> Dict[str, FormulaDefinition]:
        """Get all registered formulas."""
        cls._ensure_initialized()
        return cls._formulas.copy()

    @classmethod
    def get_by_category(cls, category: FormulaCategory) -> List[FormulaDefinition]:
        """Get all formulas in a category."""
        cls._ensure_initialized()
        return [f for f in cls._formulas.values() if f.category == category]

    @classmethod
    def get_inputs(cls, field_path: str) -> List[str]:
        """Get the input field paths for a formula."""
        formula = cls.get(field_path)
        return formula.inputs if formula else []

    @classmethod
    def get_dependents(cls, field_path: str) -> List[str]:
        """Get all formulas that use this field as an input."""
        cls._ensure_initialized()
        return [path for path, formula in cls._formulas.items() if field_path in formula.inputs]

    @classmethod
    def get_all_ancestors(cls, field_path: str) -> Set[str]:
        """Get all upstream dependencies recursively."""
        cls._ensure_initialized()
        ancestors = set()
        to_process = list(cls.get_inputs(field_path))

        while to_process:
            current = to_process.pop()
            if current not in ancestors:
                ancestors.add(current)
                to_process.extend(cls.get_inputs(current))

        return ancestors

    @classmethod
    def _ensure_initialized(cls) -> None:
        """Ensure the registry is populated with formulas."""
        if not cls._initialized:
            _populate_registry()
            cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Reset the registry (mainly for testing)."""
        cls._formulas = {}
        cls._initialized = False


def _populate_registry() -> None:
    """Populate the registry with all proforma formulas."""
    register = FormulaRegistry.register

    # =========================================================================
    # INPUTS
    # =========================================================================
    for path, name, unit in (
        ("inputs.purchase_price", "Purchase Price", "$"),
        ("inputs.development_costs", "Development Costs", "$"),
        ("inputs.soft_costs", "Soft Costs", "$"),
        ("inputs.contingency_percentage", "Contingency %", "%"),
        ("inputs.sales_commission_percentage", "Sales Commission %", "%"),
        ("inputs.loan_interest_rate", "Loan Interest Rate", "%"),
        ("inputs.loan_term_months", "Loan Term", "months"),
    ):
        register(FormulaDefinition(
            field_path=path,
            name=name,
            formula=path.split(".")[-1],
            inputs=[],
            category=FormulaCategory.INPUT,
            unit=unit,
        ))

    # =========================================================================
    # COSTS
    # =========================================================================
    register(FormulaDefinition(
        field_path="costs.total_direct_costs",
        name="Total Direct Costs",
        formula="sum(units x direct_cost_per_unit)",
        inputs=[],
        category=FormulaCategory.COSTS,
        notes="Summed across product types",
    ))
    register(FormulaDefinition(
        field_path="costs.total_permit_costs",
        name="Total Permit Costs",
        formula="sum(units x building_permit_cost)",
        inputs=[],
        category=FormulaCategory.COSTS,
        notes="Summed across product types",
    ))
    register(FormulaDefinition(
        field_path="costs.contingency",
        name="Contingency",
        formula="(purchase_price + development_costs + soft_costs + total_direct_costs + total_permit_costs) x contingency_percentage / 100",
        inputs=[
            "inputs.purchase_price",
            "inputs.development_costs",
            "inputs.soft_costs",
            "costs.total_direct_costs",
            "costs.total_permit_costs",
            "inputs.contingency_percentage",
        ],
        category=FormulaCategory.COSTS,
    ))
    register(FormulaDefinition(
        field_path="costs.net_assets",
        name="Net Assets",
        formula="purchase_price + development_costs + soft_costs + total_direct_costs + total_permit_costs + contingency",
        inputs=[
            "inputs.purchase_price",
            "inputs.development_costs",
            "inputs.soft_costs",
            "costs.total_direct_costs",
            "costs.total_permit_costs",
            "costs.contingency",
        ],
        category=FormulaCategory.COSTS,
        notes="All capitalized costs, excluding financing",
    ))
    register(FormulaDefinition(
        field_path="costs.total_costs",
        name="Total Costs",
        formula="net_assets + financing_costs",
        inputs=["costs.net_assets", "financing.financing_costs"],
        category=FormulaCategory.COSTS,
    ))
    register(FormulaDefinition(
        field_path="costs.upfront_costs",
        name="Month-0 Outflow",
        formula="net_assets - purchase_price (when takedowns are scheduled)",
        inputs=["costs.net_assets", "inputs.purchase_price"],
        category=FormulaCategory.TIMELINE,
        notes="Takedowns replace the lump-sum purchase price on the timeline",
    ))

    # =========================================================================
    # REVENUE
    # =========================================================================
    register(FormulaDefinition(
        field_path="revenue.gross_revenue",
        name="Gross Revenue",
        formula="sum(units x sales_price_per_unit)",
        inputs=[],
        category=FormulaCategory.REVENUE,
    ))
    register(FormulaDefinition(
        field_path="revenue.sales_commission",
        name="Sales Commission",
        formula="gross_revenue x sales_commission_percentage / 100",
        inputs=["revenue.gross_revenue", "inputs.sales_commission_percentage"],
        category=FormulaCategory.REVENUE,
    ))
    register(FormulaDefinition(
        field_path="revenue.net_revenue",
        name="Net Revenue",
        formula="gross_revenue - sales_commission",
        inputs=["revenue.gross_revenue", "revenue.sales_commission"],
        category=FormulaCategory.REVENUE,
    ))

    # =========================================================================
    # FINANCING
    # =========================================================================
    register(FormulaDefinition(
        field_path="financing.financing_costs",
        name="Financing Costs",
        formula="sum(draw x rate x months_outstanding / 12) | development_costs x rate x term / 12 | manual",
        inputs=[
            "inputs.loan_interest_rate",
            "inputs.loan_term_months",
            "inputs.development_costs",
        ],
        category=FormulaCategory.FINANCING,
        notes="Draw-weighted when draws exist, else flat rate, else manual entry",
    ))

    # =========================================================================
    # RETURNS
    # =========================================================================
    register(FormulaDefinition(
        field_path="returns.profit",
        name="Profit",
        formula="net_revenue - total_costs",
        inputs=["revenue.net_revenue", "costs.total_costs"],
        category=FormulaCategory.RETURNS,
    ))
    register(FormulaDefinition(
        field_path="returns.roi_pct",
        name="ROI",
        formula="profit / total_costs x 100",
        inputs=["returns.profit", "costs.total_costs"],
        category=FormulaCategory.RETURNS,
        unit="%",
        notes="0 when total costs are 0",
    ))
    register(FormulaDefinition(
        field_path="returns.profit_margin_pct",
        name="Profit Margin",
        formula="profit / gross_revenue x 100",
        inputs=["returns.profit", "revenue.gross_revenue"],
        category=FormulaCategory.RETURNS,
        unit="%",
    ))
    register(FormulaDefinition(
        field_path="returns.gross_margin_pct",
        name="Gross Margin",
        formula="(gross_revenue - total_costs) / gross_revenue x 100",
        inputs=["revenue.gross_revenue", "costs.total_costs"],
        category=FormulaCategory.RETURNS,
        unit="%",
    ))
    register(FormulaDefinition(
        field_path="returns.rona_pct",
        name="Return on Net Assets",
        formula="profit / net_assets x 100",
        inputs=["returns.profit", "costs.net_assets"],
        category=FormulaCategory.RETURNS,
        unit="%",
    ))
    register(FormulaDefinition(
        field_path="returns.unlevered_irr_pct",
        name="Unlevered IRR",
        formula="((1 + r)^12 - 1) x 100 where NPV(r) = 0",
        inputs=["costs.upfront_costs", "revenue.net_revenue"],
        category=FormulaCategory.RETURNS,
        unit="%",
        notes="Newton-Raphson on monthly cash flows; blank when indeterminate",
    ))
    register(FormulaDefinition(
        field_path="returns.peak_capital",
        name="Peak Capital",
        formula="-min(cumulative cash flow)",
        inputs=["costs.upfront_costs", "revenue.net_revenue"],
        category=FormulaCategory.RETURNS,
    ))
