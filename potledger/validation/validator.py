"""
Expense Split Validation

DESIGN DECISION: The calculators are tolerant. A custom split with a
missing member entry counts that member's share as 0 and moves on, and
nothing crashes. That tolerance is for reading whatever is already in the
ledger. New and edited expenses pass through this validator first, at the
command boundary, and a split that doesn't add up is surfaced as an error
instead of quietly producing an unbalanced ledger.

Checks:
- Custom split: every sharer has an amount
- Custom split: amounts for the sharers add up to the expense total (within epsilon)
- Custom split: entries for people who don't share the expense (warning)
- Split list mentions people who aren't in the group (warning)
- Payer isn't in the group (warning)
- Nobody left to share the cost (warning)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them, and strict mode raises.
"""

from decimal import Decimal
from typing import Optional, Sequence

import structlog

from potledger.calculations.money import epsilon_minor, from_minor, to_minor
from potledger.calculations.shares import sharing_set
from potledger.config import get_settings
from potledger.models.ledger import Expense, SplitType
from potledger.models.validation import ValidationIssue, ValidationResult


class SplitValidationError(Exception):
    """An expense's split is inconsistent with its total or its group."""

    def __init__(self, message: str, result: ValidationResult):
        super().__init__(message)
        self.result = result


class ImbalancedSplitError(SplitValidationError):
    """Custom split amounts don't sum to the expense total."""
    pass


class MissingCustomSplitError(SplitValidationError):
    """A sharer of a custom-split expense has no amount."""
    pass


class ExpenseValidator:
    """
    Validates an expense against the members of its group.

    In strict mode (the default, see LEDGER_STRICT_SPLIT_VALIDATION)
    check() raises on error-level issues. Otherwise they are only logged.
    """

    def __init__(
        self,
        strict: Optional[bool] = None,
        epsilon: Optional[Decimal] = None,
        digits: Optional[int] = None,
    ):
        settings = get_settings().ledger
        self._strict = settings.strict_split_validation if strict is None else strict
        self._epsilon = settings.settlement_epsilon if epsilon is None else epsilon
        self._digits = settings.currency_minor_digits if digits is None else digits
        self._logger = structlog.get_logger(__name__)

    @property
    def strict(self) -> bool:
        return self._strict

    def _validate_membership(
        self,
        expense: Expense,
        member_ids: Sequence[str],
    ) -> list[ValidationIssue]:
        issues = []
        known = set(member_ids)

        payer = expense.payer_member_id
        if payer is not None and payer not in known:
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="unknown_payer",
                message=f"Payer {payer} is not a member of this group",
                severity="warning",
                member_id=payer,
            ))

        if expense.is_split:
            for member_id in expense.split_with_member_ids:
                if member_id not in known:
                    issues.append(ValidationIssue(
                        field="split_with_member_ids",
                        issue_type="unknown_member",
                        message=f"{member_id} is not a member and will be ignored",
                        severity="warning",
                        member_id=member_id,
                    ))

        if not sharing_set(expense, member_ids) and expense.amount > 0:
            issues.append(ValidationIssue(
                field="split_with_member_ids",
                issue_type="no_sharers",
                message="Nobody in the group shares this expense",
                severity="warning",
            ))

        return issues

    def _validate_custom_split(
        self,
        expense: Expense,
        member_ids: Sequence[str],
    ) -> list[ValidationIssue]:
        issues = []
        sharers = sharing_set(expense, member_ids)
        sharer_set = set(sharers)

        allocated = 0
        for member_id in sharers:
            amount = expense.custom_amount_for(member_id)
            if amount is None:
                issues.append(ValidationIssue(
                    field="custom_split_amounts",
                    issue_type="missing_custom_amount",
                    message=f"No custom amount given for {member_id}",
                    severity="error",
                    member_id=member_id,
                ))
            else:
                allocated += to_minor(amount, self._digits)

        for entry in expense.custom_split_amounts:
            if entry.member_id not in sharer_set:
                issues.append(ValidationIssue(
                    field="custom_split_amounts",
                    issue_type="unused_custom_amount",
                    message=f"Custom amount for {entry.member_id} is ignored (not sharing)",
                    severity="warning",
                    member_id=entry.member_id,
                ))

        total = to_minor(expense.amount, self._digits)
        if sharers and abs(allocated - total) > epsilon_minor(self._epsilon, self._digits):
            issues.append(ValidationIssue(
                field="custom_split_amounts",
                issue_type="imbalanced",
                message=(
                    f"Custom amounts add up to {from_minor(allocated, self._digits)}, "
                    f"expense total is {from_minor(total, self._digits)}"
                ),
                severity="error",
            ))

        return issues

    def validate(
        self,
        expense: Expense,
        member_ids: Sequence[str],
    ) -> ValidationResult:
        """
        Run every check and collect the issues.

        Never raises.
        """
        issues = self._validate_membership(expense, member_ids)
        if expense.split_type == SplitType.CUSTOM:
            issues.extend(self._validate_custom_split(expense, member_ids))

        return ValidationResult(expense_id=expense.id, issues=issues)

    def check(
        self,
        expense: Expense,
        member_ids: Sequence[str],
    ) -> ValidationResult:
        """
        Validate, and in strict mode raise on the first kind of error found.

        Raises:
            MissingCustomSplitError: A sharer has no custom amount
            ImbalancedSplitError: Custom amounts don't add up to the total
        """
        result = self.validate(expense, member_ids)

        for warning in result.warnings:
            self._logger.warning("expense_validation_warning", expense_id=expense.id, message=warning)

        if not result.has_errors:
            return result

        if not self._strict:
            self._logger.warning(
                "expense_validation_errors_tolerated",
                expense_id=expense.id,
                error_count=result.error_count,
            )
            return result

        summary = summarize(result)
        if result.issues_of_type("missing_custom_amount"):
            raise MissingCustomSplitError(summary, result)
        raise ImbalancedSplitError(summary, result)


def summarize(result: ValidationResult) -> str:
    """One line per error-level issue."""
    errors = [i.message for i in result.issues if i.severity == "error"]
    if not errors:
        return f"Expense {result.expense_id} is valid"
    return f"Expense {result.expense_id} is invalid: " + "; ".join(errors)
