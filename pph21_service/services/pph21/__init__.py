"""PPh21 calculation engine.

Pure functions over value records; see ``calculator`` for the three
calculation paths and ``tables`` for the statutory constants.
"""
from .calculator import (
    CalculationOutcome,
    LineTotals,
    attempt,
    calculate_annual_from_lines,
    calculate_december,
    calculate_for_month,
    calculate_monthly,
    calculate_standalone_annual,
    summarize_lines,
)
from .tables import PTKP_CODES, PTKP_YEARLY, progressive_tax, ptkp_yearly, resolve_ptkp_code
from .types import (
    CalculationMode,
    CalculationResult,
    DeductionLine,
    DeductionRole,
    EarningLine,
    TaxProfile,
    YtdAggregate,
)

__all__ = [
    # Value records
    "CalculationMode",
    "CalculationResult",
    "DeductionLine",
    "DeductionRole",
    "EarningLine",
    "TaxProfile",
    "YtdAggregate",
    # Tables
    "PTKP_CODES",
    "PTKP_YEARLY",
    "progressive_tax",
    "ptkp_yearly",
    "resolve_ptkp_code",
    # Calculation paths
    "CalculationOutcome",
    "LineTotals",
    "attempt",
    "calculate_annual_from_lines",
    "calculate_december",
    "calculate_for_month",
    "calculate_monthly",
    "calculate_standalone_annual",
    "summarize_lines",
]
