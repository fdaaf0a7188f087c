"""Development proforma financial modeling engine.

Turns a land-development deal's costs, product mix, absorption pace and
dated schedules into profitability, return and capital-exposure metrics.
"""

from .models import ProformaInputs, EngineConfig, DEFAULT_CONFIG
from .calculations import aggregate, aggregate_many, ProformaMetrics

__version__ = "0.1.0"

__all__ = [
    "ProformaInputs",
    "EngineConfig",
    "DEFAULT_CONFIG",
    "aggregate",
    "aggregate_many",
    "ProformaMetrics",
]
