"""
Audit Logger

DESIGN DECISION: Every mutation of a group ledger is logged.
This provides:
1. Complete traceability
2. Debugging capability when a balance looks wrong
3. A history of who changed what in a pot or trip

The audit logger:
- Gracefully handles storage failures (doesn't break a ledger command if logging fails)
- Supports correlation IDs to tie a mutation to its recompute
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from potledger.config import get_settings
from potledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from potledger.services.storage import AuditStorageInterface, StorageError


def configure_logging() -> None:
    """
    Configure structlog on top of the standard library.

    Safe to call more than once; reads LOG_LEVEL and LOG_JSON_OUTPUT.
    Only the level of the "potledger" logger is set. Handlers and the root
    logger belong to the application.
    """
    log_settings = get_settings().logging
    logging.getLogger("potledger").setLevel(log_settings.level)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_settings.json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except StorageError as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_member_added(
        self,
        group_id: str,
        member_id: str,
        name: Optional[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.member_added(
            group_id=group_id,
            member_id=member_id,
            name=name,
            correlation_id=correlation_id,
        ))

    def log_member_deleted(
        self,
        group_id: str,
        member_id: str,
        rewritten_expense_ids: list[str],
        removed_contributions: int,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.member_deleted(
            group_id=group_id,
            member_id=member_id,
            rewritten_expense_ids=rewritten_expense_ids,
            removed_contributions=removed_contributions,
            correlation_id=correlation_id,
        ))

    def log_contribution_added(
        self,
        group_id: str,
        contribution_id: str,
        member_id: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.contribution_added(
            group_id=group_id,
            contribution_id=contribution_id,
            member_id=member_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_contribution_deleted(
        self,
        group_id: str,
        contribution_id: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.contribution_deleted(
            group_id=group_id,
            contribution_id=contribution_id,
            correlation_id=correlation_id,
        ))

    def log_expense_changed(
        self,
        event_type: AuditEventType,
        group_id: str,
        expense_id: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log an expense being added, updated or deleted."""
        self.log(AuditEventBuilder.expense_changed(
            event_type=event_type,
            group_id=group_id,
            expense_id=expense_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_split_validation_failed(
        self,
        group_id: str,
        expense_id: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.split_validation_failed(
            group_id=group_id,
            expense_id=expense_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_debts_generated(
        self,
        group_id: str,
        expense_id: str,
        debt_ids: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.debts_generated(
            group_id=group_id,
            expense_id=expense_id,
            debt_ids=debt_ids,
            correlation_id=correlation_id,
        ))

    def log_debts_removed(
        self,
        group_id: str,
        reason: str,
        count: int,
        correlation_id: UUID,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.debts_removed(
            group_id=group_id,
            reason=reason,
            count=count,
            correlation_id=correlation_id,
            entity_type=entity_type,
            entity_id=entity_id,
        ))

    def log_debt_toggled(
        self,
        group_id: str,
        debt_id: str,
        settled: bool,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.debt_toggled(
            group_id=group_id,
            debt_id=debt_id,
            settled=settled,
            correlation_id=correlation_id,
        ))

    def log_snapshot_recomputed(
        self,
        group_id: str,
        member_count: int,
        settlement_count: int,
        residual: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.snapshot_recomputed(
            group_id=group_id,
            member_count=member_count,
            settlement_count=settlement_count,
            residual=residual,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        group_id: Optional[str] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            group_id=group_id,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a ledger command and pass it through the
    mutation, the debt cascade and the recompute.
    """
    return uuid4()
