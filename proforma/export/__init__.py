"""Export module for proforma workbooks."""

from .workbook import (
    WorkbookConfig,
    generate_proforma_workbook,
)

__all__ = [
    "WorkbookConfig",
    "generate_proforma_workbook",
]
