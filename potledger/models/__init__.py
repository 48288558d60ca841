"""
Data Models Package

This package contains all Pydantic models used in PotLedger.
All records flowing through the settlement engine conform to these schemas.
"""

from potledger.models.ledger import (
    POT,
    Contribution,
    CustomSplitAmount,
    Debt,
    Expense,
    LedgerSnapshot,
    Member,
    MemberPayer,
    NetPosition,
    Payer,
    PotPayer,
    RawSettlement,
    SplitType,
    new_id,
    paid_by_member,
)
from potledger.models.validation import ValidationIssue, ValidationResult
from potledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "POT",
    "Contribution",
    "CustomSplitAmount",
    "Debt",
    "Expense",
    "LedgerSnapshot",
    "Member",
    "MemberPayer",
    "NetPosition",
    "Payer",
    "PotPayer",
    "RawSettlement",
    "SplitType",
    "new_id",
    "paid_by_member",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
