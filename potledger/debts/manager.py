"""
Debt Ledger Manager

Maintains per-expense pairwise debts: "B owes A 5 for dinner". These are
separate from the netted settlement list. Each one can be settled and
reopened on its own, and that state survives recomputation of the
snapshot.

Lifecycle:
- Expense created: one debt per sharer other than the payer, when the
  expense is split and a member (not the pot) paid.
- Expense edited: every debt of the expense is deleted and regenerated.
  Settled state on the old debts is NOT carried over; an edited expense
  has to be settled again.
- Expense deleted: its debts go with it.
- Member deleted: their debts go, expenses they paid fall back to the pot,
  and they are removed from every split.
"""

from datetime import datetime
from typing import Callable, Optional, Sequence

import structlog

from potledger.calculations.money import from_minor, minor_digits
from potledger.calculations.shares import individual_shares, sharing_set
from potledger.models.ledger import POT, Debt, Expense
from potledger.services.storage import LedgerStorageInterface, NotFoundError

Clock = Callable[[], datetime]


class DebtLedgerManager:
    """Derives, replaces and toggles the debts of one ledger store."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        clock: Optional[Clock] = None,
        digits: Optional[int] = None,
    ):
        self._storage = storage
        self._clock = clock or datetime.utcnow
        self._digits = minor_digits() if digits is None else digits
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Derivation
    # -------------------------------------------------------------------------

    def debts_for_expense(
        self,
        expense: Expense,
        member_ids: Sequence[str],
    ) -> list[Debt]:
        """
        Build (but don't store) the debts an expense implies.

        Only split expenses with an explicit split list, paid by a member of
        the group, produce debts. Shares are the same ones the net position
        calculator uses; a zero share owes nothing.
        """
        payer = expense.payer_member_id
        if not expense.is_split or not expense.split_with_member_ids:
            return []
        if payer is None or payer not in member_ids:
            return []

        sharers = sharing_set(expense, member_ids)
        shares = individual_shares(expense, sharers, self._digits)
        now = self._clock()

        return [
            Debt(
                expense_id=expense.id,
                expense_description=expense.description,
                amount=from_minor(share, self._digits),
                owed_by=member_id,
                owed_to=payer,
                is_settled=False,
                created_at=now,
            )
            for member_id, share in shares.items()
            if member_id != payer and share > 0
        ]

    # -------------------------------------------------------------------------
    # Expense and member cascades
    # -------------------------------------------------------------------------

    def on_expense_created(
        self,
        group_id: str,
        expense: Expense,
        member_ids: Sequence[str],
    ) -> list[Debt]:
        debts = self.debts_for_expense(expense, member_ids)
        if debts:
            self._storage.add_debts(group_id, debts)
        self._logger.debug(
            "debts_generated",
            group_id=group_id,
            expense_id=expense.id,
            count=len(debts),
        )
        return debts

    def on_expense_updated(
        self,
        group_id: str,
        expense: Expense,
        member_ids: Sequence[str],
    ) -> list[Debt]:
        """
        Replace the expense's debts wholesale.

        This is a full replace, not a diff: a debt that was settled comes
        back unsettled even if nobody's share changed.
        """
        removed = self._storage.delete_debts_for_expense(group_id, expense.id)
        if removed:
            self._logger.info(
                "debts_replaced",
                group_id=group_id,
                expense_id=expense.id,
                removed=removed,
            )
        return self.on_expense_created(group_id, expense, member_ids)

    def on_expense_deleted(self, group_id: str, expense_id: str) -> int:
        return self._storage.delete_debts_for_expense(group_id, expense_id)

    def on_member_deleted(
        self,
        group_id: str,
        member_id: str,
    ) -> tuple[int, list[Expense]]:
        """
        Remove a member from the debt ledger and from every expense.

        Returns:
            The number of debts removed and the expenses that had to be rewritten
        """
        removed = self._storage.delete_debts_for_member(group_id, member_id)

        rewritten = []
        for expense in self._storage.list_expenses(group_id):
            changes = {}

            if expense.payer_member_id == member_id:
                changes["paid_by"] = POT

            if member_id in expense.split_with_member_ids:
                remaining = [m for m in expense.split_with_member_ids if m != member_id]
                changes["split_with_member_ids"] = remaining
                if not remaining:
                    changes["is_split"] = False

            if any(entry.member_id == member_id for entry in expense.custom_split_amounts):
                changes["custom_split_amounts"] = [
                    entry for entry in expense.custom_split_amounts
                    if entry.member_id != member_id
                ]

            if changes:
                updated = expense.model_copy(update=changes)
                self._storage.update_expense(group_id, updated)
                rewritten.append(updated)

        self._logger.info(
            "member_removed_from_ledger",
            group_id=group_id,
            member_id=member_id,
            debts_removed=removed,
            expenses_rewritten=len(rewritten),
        )
        return removed, rewritten

    # -------------------------------------------------------------------------
    # Settle / unsettle
    # -------------------------------------------------------------------------

    def _get_debt(self, group_id: str, debt_id: str) -> Debt:
        debt = self._storage.get_debt(group_id, debt_id)
        if debt is None:
            raise NotFoundError(f"Debt not found: {debt_id}")
        return debt

    def settle_debt(self, group_id: str, debt_id: str) -> Debt:
        """Mark one debt paid. No other debt or balance changes."""
        debt = self._get_debt(group_id, debt_id)
        settled = debt.model_copy(update={"is_settled": True, "settled_at": self._clock()})
        return self._storage.update_debt(group_id, settled)

    def unsettle_debt(self, group_id: str, debt_id: str) -> Debt:
        """Reopen one debt."""
        debt = self._get_debt(group_id, debt_id)
        reopened = debt.model_copy(update={"is_settled": False, "settled_at": None})
        return self._storage.update_debt(group_id, reopened)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def debts_owed_by(
        self,
        group_id: str,
        member_id: str,
        include_settled: bool = False,
    ) -> list[Debt]:
        return [
            d for d in self.all_debts(group_id, include_settled)
            if d.owed_by == member_id
        ]

    def debts_owed_to(
        self,
        group_id: str,
        member_id: str,
        include_settled: bool = False,
    ) -> list[Debt]:
        return [
            d for d in self.all_debts(group_id, include_settled)
            if d.owed_to == member_id
        ]

    def all_debts(self, group_id: str, include_settled: bool = False) -> list[Debt]:
        debts = self._storage.list_debts(group_id)
        if include_settled:
            return debts
        return [d for d in debts if not d.is_settled]
