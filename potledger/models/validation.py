"""
Validation result models.

Validators report what they found; they never silently fix an expense.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'imbalanced', 'missing_custom_amount')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    member_id: Optional[str] = Field(
        default=None,
        description="Member the issue is about, if any"
    )


class ValidationResult(BaseModel):
    """Result of validating one expense against its group."""

    expense_id: str
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]

    def issues_of_type(self, issue_type: str) -> list[ValidationIssue]:
        return [i for i in self.issues if i.issue_type == issue_type]
