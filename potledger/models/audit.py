"""
Audit Models for PotLedger

Every mutation of a group's ledger is logged for audit purposes.
This provides:
1. Complete traceability of who changed what in a pot or trip
2. Debugging information when balances look wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every mutating command on a group ledger has its own event type.
    """
    # Members
    MEMBER_ADDED = "member_added"
    MEMBER_DELETED = "member_deleted"

    # Contributions
    CONTRIBUTION_ADDED = "contribution_added"
    CONTRIBUTION_DELETED = "contribution_deleted"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    SPLIT_VALIDATION_FAILED = "split_validation_failed"

    # Debt ledger
    DEBTS_GENERATED = "debts_generated"
    DEBTS_REMOVED = "debts_removed"
    DEBT_SETTLED = "debt_settled"
    DEBT_UNSETTLED = "debt_unsettled"

    # Recalculation
    SNAPSHOT_RECOMPUTED = "snapshot_recomputed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Which pot or trip this happened in
    group_id: Optional[str] = Field(
        default=None,
        description="Pot or trip the event belongs to"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'expense', 'debt')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one mutation and its recompute)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "group_id": self.group_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.member_added(group_id, member_id, correlation_id)
        event = AuditEventBuilder.debt_settled(group_id, debt_id, correlation_id)
    """

    @staticmethod
    def member_added(
        group_id: str,
        member_id: str,
        name: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Member added: {name or member_id}",
            details={"name": name},
        )

    @staticmethod
    def member_deleted(
        group_id: str,
        member_id: str,
        rewritten_expense_ids: list[str],
        removed_contributions: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_DELETED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=(
                f"Member deleted; {len(rewritten_expense_ids)} expenses rewritten"
            ),
            details={
                "rewritten_expense_ids": rewritten_expense_ids,
                "removed_contributions": removed_contributions,
            },
        )

    @staticmethod
    def contribution_added(
        group_id: str,
        contribution_id: str,
        member_id: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_ADDED,
            group_id=group_id,
            entity_type="contribution",
            entity_id=contribution_id,
            correlation_id=correlation_id,
            description=f"Contribution of {amount} by {member_id}",
            details={"member_id": member_id, "amount": amount},
        )

    @staticmethod
    def contribution_deleted(
        group_id: str,
        contribution_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_DELETED,
            group_id=group_id,
            entity_type="contribution",
            entity_id=contribution_id,
            correlation_id=correlation_id,
            description="Contribution deleted",
        )

    @staticmethod
    def expense_changed(
        event_type: AuditEventType,
        group_id: str,
        expense_id: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        verb = {
            AuditEventType.EXPENSE_ADDED: "added",
            AuditEventType.EXPENSE_UPDATED: "updated",
            AuditEventType.EXPENSE_DELETED: "deleted",
        }[event_type]
        return AuditEvent(
            event_type=event_type,
            group_id=group_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense {verb}: {amount}",
            details={"amount": amount},
        )

    @staticmethod
    def split_validation_failed(
        group_id: str,
        expense_id: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            group_id=group_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Split validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def debts_generated(
        group_id: str,
        expense_id: str,
        debt_ids: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBTS_GENERATED,
            group_id=group_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"{len(debt_ids)} debts generated",
            details={"debt_ids": debt_ids},
        )

    @staticmethod
    def debts_removed(
        group_id: str,
        reason: str,
        count: int,
        correlation_id: UUID,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBTS_REMOVED,
            group_id=group_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{count} debts removed ({reason})",
            details={"reason": reason, "count": count},
        )

    @staticmethod
    def debt_toggled(
        group_id: str,
        debt_id: str,
        settled: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.DEBT_SETTLED
                if settled
                else AuditEventType.DEBT_UNSETTLED
            ),
            group_id=group_id,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description="Debt marked settled" if settled else "Debt reopened",
        )

    @staticmethod
    def snapshot_recomputed(
        group_id: str,
        member_count: int,
        settlement_count: int,
        residual: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_RECOMPUTED,
            severity=AuditSeverity.DEBUG,
            group_id=group_id,
            correlation_id=correlation_id,
            description=(
                f"Recomputed {member_count} positions, "
                f"{settlement_count} settlements"
            ),
            details={
                "member_count": member_count,
                "settlement_count": settlement_count,
                "residual": residual,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        group_id: Optional[str] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            group_id=group_id,
            description=f"System error: {error_type}",
            error_code=error_type,
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
