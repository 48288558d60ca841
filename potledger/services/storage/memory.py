"""
In-memory storage backend.

Keeps every group's records in plain dicts. Models are copied on the way in
and on the way out, so nothing a caller holds can change stored state
behind the engine's back.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from potledger.models.audit import AuditEvent
from potledger.models.ledger import Contribution, Debt, Expense, Member
from potledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
)


@dataclass
class _GroupRecords:
    # dicts keep insertion order
    members: dict[str, Member] = field(default_factory=dict)
    contributions: dict[str, Contribution] = field(default_factory=dict)
    expenses: dict[str, Expense] = field(default_factory=dict)
    debts: dict[str, Debt] = field(default_factory=dict)


def _copy(model):
    return model.model_copy(deep=True)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger storage held in process memory."""

    def __init__(self):
        self._groups: defaultdict[str, _GroupRecords] = defaultdict(_GroupRecords)

    def _group(self, group_id: str) -> _GroupRecords:
        return self._groups[group_id]

    # Members

    def list_members(self, group_id: str) -> list[Member]:
        return [_copy(m) for m in self._group(group_id).members.values()]

    def get_member(self, group_id: str, member_id: str) -> Optional[Member]:
        member = self._group(group_id).members.get(member_id)
        return _copy(member) if member else None

    def add_member(self, group_id: str, member: Member) -> Member:
        members = self._group(group_id).members
        if member.id in members:
            raise DuplicateError(f"Member already exists: {member.id}")
        members[member.id] = _copy(member)
        return _copy(member)

    def delete_member(self, group_id: str, member_id: str) -> bool:
        return self._group(group_id).members.pop(member_id, None) is not None

    # Contributions

    def list_contributions(
        self,
        group_id: str,
        member_id: Optional[str] = None,
    ) -> list[Contribution]:
        return [
            _copy(c)
            for c in self._group(group_id).contributions.values()
            if member_id is None or c.member_id == member_id
        ]

    def add_contribution(self, group_id: str, contribution: Contribution) -> Contribution:
        contributions = self._group(group_id).contributions
        if contribution.id in contributions:
            raise DuplicateError(f"Contribution already exists: {contribution.id}")
        contributions[contribution.id] = _copy(contribution)
        return _copy(contribution)

    def delete_contribution(self, group_id: str, contribution_id: str) -> bool:
        return self._group(group_id).contributions.pop(contribution_id, None) is not None

    def delete_contributions_for_member(self, group_id: str, member_id: str) -> int:
        contributions = self._group(group_id).contributions
        doomed = [cid for cid, c in contributions.items() if c.member_id == member_id]
        for cid in doomed:
            del contributions[cid]
        return len(doomed)

    # Expenses

    def list_expenses(self, group_id: str) -> list[Expense]:
        return [_copy(e) for e in self._group(group_id).expenses.values()]

    def get_expense(self, group_id: str, expense_id: str) -> Optional[Expense]:
        expense = self._group(group_id).expenses.get(expense_id)
        return _copy(expense) if expense else None

    def add_expense(self, group_id: str, expense: Expense) -> Expense:
        expenses = self._group(group_id).expenses
        if expense.id in expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        expenses[expense.id] = _copy(expense)
        return _copy(expense)

    def update_expense(self, group_id: str, expense: Expense) -> Expense:
        expenses = self._group(group_id).expenses
        if expense.id not in expenses:
            raise NotFoundError(f"Expense not found: {expense.id}")
        expenses[expense.id] = _copy(expense)
        return _copy(expense)

    def delete_expense(self, group_id: str, expense_id: str) -> bool:
        return self._group(group_id).expenses.pop(expense_id, None) is not None

    # Debts

    def list_debts(self, group_id: str) -> list[Debt]:
        return [_copy(d) for d in self._group(group_id).debts.values()]

    def get_debt(self, group_id: str, debt_id: str) -> Optional[Debt]:
        debt = self._group(group_id).debts.get(debt_id)
        return _copy(debt) if debt else None

    def add_debts(self, group_id: str, debts: list[Debt]) -> list[Debt]:
        stored = self._group(group_id).debts
        for debt in debts:
            if debt.id in stored:
                raise DuplicateError(f"Debt already exists: {debt.id}")
        for debt in debts:
            stored[debt.id] = _copy(debt)
        return [_copy(d) for d in debts]

    def update_debt(self, group_id: str, debt: Debt) -> Debt:
        stored = self._group(group_id).debts
        if debt.id not in stored:
            raise NotFoundError(f"Debt not found: {debt.id}")
        stored[debt.id] = _copy(debt)
        return _copy(debt)

    def delete_debts_for_expense(self, group_id: str, expense_id: str) -> int:
        stored = self._group(group_id).debts
        doomed = [did for did, d in stored.items() if d.expense_id == expense_id]
        for did in doomed:
            del stored[did]
        return len(doomed)

    def delete_debts_for_member(self, group_id: str, member_id: str) -> int:
        stored = self._group(group_id).debts
        doomed = [
            did for did, d in stored.items()
            if d.owed_by == member_id or d.owed_to == member_id
        ]
        for did in doomed:
            del stored[did]
        return len(doomed)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in process memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_group(
        self,
        group_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.group_id == group_id]
        return list(reversed(events))[:limit]
