"""Expense validation package."""

from potledger.validation.validator import (
    ExpenseValidator,
    ImbalancedSplitError,
    MissingCustomSplitError,
    SplitValidationError,
    summarize,
)

__all__ = [
    "ExpenseValidator",
    "ImbalancedSplitError",
    "MissingCustomSplitError",
    "SplitValidationError",
    "summarize",
]
