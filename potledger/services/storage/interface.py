"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the settlement engine free of persistence mechanics
2. Use in-memory storage for testing
3. Swap in a real database later without touching business logic

Every operation is scoped by group id: a household pot or a trip. Groups
never share records.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from potledger.models.audit import AuditEvent
from potledger.models.ledger import Contribution, Debt, Expense, Member


class LedgerStorageInterface(ABC):
    """
    Abstract interface for a group's ledger records.

    Any storage implementation must implement these methods. Lists are
    returned in insertion order; the settlement tie-break depends on it.
    """

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    @abstractmethod
    def list_members(self, group_id: str) -> list[Member]:
        pass

    @abstractmethod
    def get_member(self, group_id: str, member_id: str) -> Optional[Member]:
        pass

    @abstractmethod
    def add_member(self, group_id: str, member: Member) -> Member:
        """
        Add a member to a group.

        Raises:
            DuplicateError: If a member with that id already exists
        """
        pass

    @abstractmethod
    def delete_member(self, group_id: str, member_id: str) -> bool:
        """
        Remove a member record only. Cascades are the caller's job.

        Returns:
            True if a member was removed
        """
        pass

    # -------------------------------------------------------------------------
    # Contributions
    # -------------------------------------------------------------------------

    @abstractmethod
    def list_contributions(
        self,
        group_id: str,
        member_id: Optional[str] = None,
    ) -> list[Contribution]:
        """
        List contributions, optionally only those of one member.
        """
        pass

    @abstractmethod
    def add_contribution(self, group_id: str, contribution: Contribution) -> Contribution:
        pass

    @abstractmethod
    def delete_contribution(self, group_id: str, contribution_id: str) -> bool:
        pass

    @abstractmethod
    def delete_contributions_for_member(self, group_id: str, member_id: str) -> int:
        """
        Returns:
            Number of contributions removed
        """
        pass

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    @abstractmethod
    def list_expenses(self, group_id: str) -> list[Expense]:
        pass

    @abstractmethod
    def get_expense(self, group_id: str, expense_id: str) -> Optional[Expense]:
        pass

    @abstractmethod
    def add_expense(self, group_id: str, expense: Expense) -> Expense:
        """
        Raises:
            DuplicateError: If an expense with that id already exists
        """
        pass

    @abstractmethod
    def update_expense(self, group_id: str, expense: Expense) -> Expense:
        """
        Replace an existing expense.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    def delete_expense(self, group_id: str, expense_id: str) -> bool:
        pass

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    @abstractmethod
    def list_debts(self, group_id: str) -> list[Debt]:
        pass

    @abstractmethod
    def get_debt(self, group_id: str, debt_id: str) -> Optional[Debt]:
        pass

    @abstractmethod
    def add_debts(self, group_id: str, debts: list[Debt]) -> list[Debt]:
        pass

    @abstractmethod
    def update_debt(self, group_id: str, debt: Debt) -> Debt:
        """
        Raises:
            NotFoundError: If the debt doesn't exist
        """
        pass

    @abstractmethod
    def delete_debts_for_expense(self, group_id: str, expense_id: str) -> int:
        """
        Returns:
            Number of debts removed
        """
        pass

    @abstractmethod
    def delete_debts_for_member(self, group_id: str, member_id: str) -> int:
        """
        Remove every debt the member owes or is owed.

        Returns:
            Number of debts removed
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID, in chronological order.
        """
        pass

    @abstractmethod
    def get_events_by_group(
        self,
        group_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent events of one group (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
