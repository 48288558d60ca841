"""
Main Orchestrator for PotLedger

This module ties the components together and enforces the one rule that
keeps balances trustworthy:

    every mutation -> full recompute -> new snapshot, before anyone reads

Each mutating command applies its change to storage, runs the debt ledger
cascade where one applies, recomputes net positions and settlements over
the whole ledger, swaps in the new snapshot and returns it. There is no
incremental update path.

DESIGN DECISION: Mutations of one group are serialized under that group's
lock, so a reader never sees a snapshot older than the last committed
change. Different groups share no lock and no state.
"""

import threading
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from potledger.audit import AuditLogger, create_correlation_id
from potledger.calculations import (
    compute_net_positions,
    generate_settlements,
    unassigned_residual,
)
from potledger.config import get_settings
from potledger.debts import DebtLedgerManager
from potledger.models.audit import AuditEventType
from potledger.models.ledger import (
    Contribution,
    Debt,
    Expense,
    LedgerSnapshot,
    Member,
    NetPosition,
    RawSettlement,
)
from potledger.services.storage import (
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
)
from potledger.validation import ExpenseValidator, SplitValidationError


class GroupLedgerService:
    """
    Commands and queries for group ledgers (household pots and trips).

    Every command that changes members, contributions or expenses returns
    the freshly computed LedgerSnapshot.
    """

    def __init__(
        self,
        storage: Optional[LedgerStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[ExpenseValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        ledger_settings = get_settings().ledger
        self._digits = ledger_settings.currency_minor_digits
        self._epsilon = ledger_settings.settlement_epsilon

        self._storage = storage or InMemoryLedgerStorage()
        self._audit_logger = audit_logger
        self._validator = validator or ExpenseValidator()
        self._clock = clock or datetime.utcnow
        self._debts = DebtLedgerManager(self._storage, clock=self._clock, digits=self._digits)

        self._snapshots: dict[str, LedgerSnapshot] = {}
        self._locks: defaultdict[str, threading.RLock] = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    def _lock(self, group_id: str) -> threading.RLock:
        with self._locks_guard:
            return self._locks[group_id]

    # -------------------------------------------------------------------------
    # Recalculation
    # -------------------------------------------------------------------------

    def _member_ids(self, group_id: str) -> list[str]:
        return [m.id for m in self._storage.list_members(group_id)]

    def _recompute(self, group_id: str, correlation_id: UUID) -> LedgerSnapshot:
        """Recompute from the full current ledger and replace the snapshot."""
        positions = compute_net_positions(
            self._member_ids(group_id),
            self._storage.list_contributions(group_id),
            self._storage.list_expenses(group_id),
            digits=self._digits,
        )
        ordered = list(positions.values())
        snapshot = LedgerSnapshot(
            group_id=group_id,
            positions=positions,
            settlements=generate_settlements(ordered, self._epsilon, self._digits),
            residual=unassigned_residual(ordered, self._digits),
            computed_at=self._clock(),
        )
        self._snapshots[group_id] = snapshot

        if self._audit_logger:
            self._audit_logger.log_snapshot_recomputed(
                group_id=group_id,
                member_count=len(positions),
                settlement_count=len(snapshot.settlements),
                residual=str(snapshot.residual),
                correlation_id=correlation_id,
            )
        return snapshot

    def recompute(self, group_id: str) -> LedgerSnapshot:
        """Force a recompute, e.g. after records were changed in storage directly."""
        with self._lock(group_id):
            return self._recompute(group_id, create_correlation_id())

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    def add_member(self, group_id: str, member: Member) -> LedgerSnapshot:
        correlation_id = create_correlation_id()
        with self._lock(group_id):
            self._storage.add_member(group_id, member)

            if self._audit_logger:
                self._audit_logger.log_member_added(
                    group_id=group_id,
                    member_id=member.id,
                    name=member.name,
                    correlation_id=correlation_id,
                )
            return self._recompute(group_id, correlation_id)

    def delete_member(self, group_id: str, member_id: str) -> LedgerSnapshot:
        """
        Remove a member and everything that refers to them.

        Their contributions and debts are deleted, expenses they paid fall
        back to the pot, and they are stripped from every split (an expense
        left with nobody in its split becomes a whole-group expense).

        Raises:
            NotFoundError: If the member doesn't exist
        """
        correlation_id = create_correlation_id()
        with self._lock(group_id):
            if not self._storage.delete_member(group_id, member_id):
                raise NotFoundError(f"Member not found: {member_id}")

            removed_contributions = self._storage.delete_contributions_for_member(
                group_id, member_id
            )
            removed_debts, rewritten = self._debts.on_member_deleted(group_id, member_id)

            if self._audit_logger:
                self._audit_logger.log_member_deleted(
                    group_id=group_id,
                    member_id=member_id,
                    rewritten_expense_ids=[e.id for e in rewritten],
                    removed_contributions=removed_contributions,
                    correlation_id=correlation_id,
                )
                if removed_debts:
                    self._audit_logger.log_debts_removed(
                        group_id=group_id,
                        reason="member deleted",
                        count=removed_debts,
                        correlation_id=correlation_id,
                        entity_type="member",
                        entity_id=member_id,
                    )
            return self._recompute(group_id, correlation_id)

    # -------------------------------------------------------------------------
    # Contributions
    # -------------------------------------------------------------------------

    def add_contribution(self, group_id: str, contribution: Contribution) -> LedgerSnapshot:
        correlation_id = create_correlation_id()
        with self._lock(group_id):
            if self._storage.get_member(group_id, contribution.member_id) is None:
                raise NotFoundError(f"Member not found: {contribution.member_id}")
            self._storage.add_contribution(group_id, contribution)

            if self._audit_logger:
                self._audit_logger.log_contribution_added(
                    group_id=group_id,
                    contribution_id=contribution.id,
                    member_id=contribution.member_id,
                    amount=str(contribution.amount),
                    correlation_id=correlation_id,
                )
            return self._recompute(group_id, correlation_id)

    def delete_contribution(self, group_id: str, contribution_id: str) -> LedgerSnapshot:
        correlation_id = create_correlation_id()
        with self._lock(group_id):
            if not self._storage.delete_contribution(group_id, contribution_id):
                raise NotFoundError(f"Contribution not found: {contribution_id}")

            if self._audit_logger:
                self._audit_logger.log_contribution_deleted(
                    group_id=group_id,
                    contribution_id=contribution_id,
                    correlation_id=correlation_id,
                )
            return self._recompute(group_id, correlation_id)

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def _validate(
        self,
        group_id: str,
        expense: Expense,
        member_ids: list[str],
        correlation_id: UUID,
    ) -> None:
        try:
            self._validator.check(expense, member_ids)
        except SplitValidationError as e:
            if self._audit_logger:
                self._audit_logger.log_split_validation_failed(
                    group_id=group_id,
                    expense_id=expense.id,
                    issues=[
                        {"field": i.field, "type": i.issue_type, "message": i.message}
                        for i in e.result.issues
                    ],
                    correlation_id=correlation_id,
                )
            raise

    def _audit_debts(
        self,
        group_id: str,
        expense_id: str,
        debts: list[Debt],
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger and debts:
            self._audit_logger.log_debts_generated(
                group_id=group_id,
                expense_id=expense_id,
                debt_ids=[d.id for d in debts],
                correlation_id=correlation_id,
            )

    def add_expense(self, group_id: str, expense: Expense) -> LedgerSnapshot:
        """
        Record an expense and the debts it creates.

        Raises:
            ImbalancedSplitError, MissingCustomSplitError: In strict mode,
                when a custom split doesn't match the expense
        """
        correlation_id = create_correlation_id()
        with self._lock(group_id):
            member_ids = self._member_ids(group_id)
            self._validate(group_id, expense, member_ids, correlation_id)

            self._storage.add_expense(group_id, expense)
            debts = self._debts.on_expense_created(group_id, expense, member_ids)

            if self._audit_logger:
                self._audit_logger.log_expense_changed(
                    event_type=AuditEventType.EXPENSE_ADDED,
                    group_id=group_id,
                    expense_id=expense.id,
                    amount=str(expense.amount),
                    correlation_id=correlation_id,
                )
            self._audit_debts(group_id, expense.id, debts, correlation_id)
            return self._recompute(group_id, correlation_id)

    def update_expense(self, group_id: str, expense: Expense) -> LedgerSnapshot:
        """
        Replace an expense and regenerate its debts from scratch.

        Any debt of this expense that was settled comes back unsettled.

        Raises:
            NotFoundError: If the expense doesn't exist
            ImbalancedSplitError, MissingCustomSplitError: In strict mode
        """
        correlation_id = create_correlation_id()
        with self._lock(group_id):
            member_ids = self._member_ids(group_id)
            self._validate(group_id, expense, member_ids, correlation_id)

            self._storage.update_expense(group_id, expense)
            debts = self._debts.on_expense_updated(group_id, expense, member_ids)

            if self._audit_logger:
                self._audit_logger.log_expense_changed(
                    event_type=AuditEventType.EXPENSE_UPDATED,
                    group_id=group_id,
                    expense_id=expense.id,
                    amount=str(expense.amount),
                    correlation_id=correlation_id,
                )
            self._audit_debts(group_id, expense.id, debts, correlation_id)
            return self._recompute(group_id, correlation_id)

    def delete_expense(self, group_id: str, expense_id: str) -> LedgerSnapshot:
        correlation_id = create_correlation_id()
        with self._lock(group_id):
            expense = self._storage.get_expense(group_id, expense_id)
            if expense is None:
                raise NotFoundError(f"Expense not found: {expense_id}")

            self._storage.delete_expense(group_id, expense_id)
            removed = self._debts.on_expense_deleted(group_id, expense_id)

            if self._audit_logger:
                self._audit_logger.log_expense_changed(
                    event_type=AuditEventType.EXPENSE_DELETED,
                    group_id=group_id,
                    expense_id=expense_id,
                    amount=str(expense.amount),
                    correlation_id=correlation_id,
                )
                if removed:
                    self._audit_logger.log_debts_removed(
                        group_id=group_id,
                        reason="expense deleted",
                        count=removed,
                        correlation_id=correlation_id,
                        entity_type="expense",
                        entity_id=expense_id,
                    )
            return self._recompute(group_id, correlation_id)

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    def settle_debt(self, group_id: str, debt_id: str) -> Debt:
        """Mark a debt paid. Balances and other debts are untouched."""
        with self._lock(group_id):
            debt = self._debts.settle_debt(group_id, debt_id)
            if self._audit_logger:
                self._audit_logger.log_debt_toggled(
                    group_id=group_id,
                    debt_id=debt_id,
                    settled=True,
                    correlation_id=create_correlation_id(),
                )
            return debt

    def unsettle_debt(self, group_id: str, debt_id: str) -> Debt:
        with self._lock(group_id):
            debt = self._debts.unsettle_debt(group_id, debt_id)
            if self._audit_logger:
                self._audit_logger.log_debt_toggled(
                    group_id=group_id,
                    debt_id=debt_id,
                    settled=False,
                    correlation_id=create_correlation_id(),
                )
            return debt

    def debts_owed_by(
        self,
        group_id: str,
        member_id: str,
        include_settled: bool = False,
    ) -> list[Debt]:
        with self._lock(group_id):
            return self._debts.debts_owed_by(group_id, member_id, include_settled)

    def debts_owed_to(
        self,
        group_id: str,
        member_id: str,
        include_settled: bool = False,
    ) -> list[Debt]:
        with self._lock(group_id):
            return self._debts.debts_owed_to(group_id, member_id, include_settled)

    def all_debts(self, group_id: str, include_settled: bool = False) -> list[Debt]:
        with self._lock(group_id):
            return self._debts.all_debts(group_id, include_settled)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self, group_id: str) -> LedgerSnapshot:
        """The latest snapshot; computed on first read of a group."""
        with self._lock(group_id):
            snapshot = self._snapshots.get(group_id)
            if snapshot is None:
                snapshot = self._recompute(group_id, create_correlation_id())
            return snapshot

    def net_position(self, group_id: str, member_id: str) -> NetPosition:
        """
        Raises:
            NotFoundError: If the member isn't in the group
        """
        position = self.snapshot(group_id).position_for(member_id)
        if position is None:
            raise NotFoundError(f"Member not found: {member_id}")
        return position

    def settlements(self, group_id: str) -> list[RawSettlement]:
        return list(self.snapshot(group_id).settlements)

    def member_contributions(self, group_id: str, member_id: str) -> list[Contribution]:
        with self._lock(group_id):
            return self._storage.list_contributions(group_id, member_id=member_id)

    def member_total_contribution(self, group_id: str, member_id: str) -> Decimal:
        """Shortcut for the direct_contribution of a member's position."""
        return self.net_position(group_id, member_id).direct_contribution


def create_ledger_service(
    storage: Optional[LedgerStorageInterface] = None,
    audit: bool = True,
) -> GroupLedgerService:
    """
    Factory function to create a ready-to-use service.

    Args:
        storage: Ledger storage; an in-memory store when None
        audit: Whether to attach a (local-only) audit logger
    """
    audit_logger = AuditLogger() if audit else None
    return GroupLedgerService(
        storage=storage or InMemoryLedgerStorage(),
        audit_logger=audit_logger,
    )
