"""Engine configuration and default assumptions."""

from dataclasses import dataclass
from typing import Tuple


# Proforma form defaults for percentages that are not supplied
DEFAULT_CONTINGENCY_PCT = 5.0
DEFAULT_SALES_COMMISSION_PCT = 3.0

# Revenue scheduling safety cap (20 years of monthly closings)
MAX_REVENUE_MONTHS = 240


@dataclass(frozen=True)
class EngineConfig:
    """Numerical settings for a proforma computation.

    The defaults reproduce the proforma and timeline calculations of the
    deal CRM. Callers normally leave this alone and let
    ``DEFAULT_CONFIG`` apply.
    """

    # IRR solver
    proforma_irr_guess: float = 0.01  # 1% per month
    timeline_irr_guess: float = 0.10  # 10% per month
    irr_tolerance: float = 1e-4
    irr_min_derivative: float = 1e-7
    irr_max_iterations: int = 100
    irr_rate_bounds: Tuple[float, float] = (-0.99, 10.0)

    # Revenue scheduling
    revenue_max_months: int = MAX_REVENUE_MONTHS

    # Events dated before the reference month land in month 0
    clamp_negative_offsets: bool = True

    def validate(self) -> list[str]:
        """Validate settings and return list of errors.

        Returns:
            List of validation error messages. Empty if valid.
        """
        errors = []

        low, high = self.irr_rate_bounds
        if not low < high:
            errors.append(f"irr_rate_bounds must be increasing, got {self.irr_rate_bounds}")
        if not low < self.proforma_irr_guess < high:
            errors.append(f"proforma_irr_guess {self.proforma_irr_guess} outside irr_rate_bounds")
        if not low < self.timeline_irr_guess < high:
            errors.append(f"timeline_irr_guess {self.timeline_irr_guess} outside irr_rate_bounds")
        if self.irr_tolerance <= 0:
            errors.append(f"irr_tolerance must be positive, got {self.irr_tolerance}")
        if self.irr_max_iterations < 1:
            errors.append(f"irr_max_iterations must be >= 1, got {self.irr_max_iterations}")
        if self.revenue_max_months < 1:
            errors.append(f"revenue_max_months must be >= 1, got {self.revenue_max_months}")

        return errors


DEFAULT_CONFIG = EngineConfig()
