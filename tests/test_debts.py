"""Tests for the per-expense debt ledger."""

from decimal import Decimal

import pytest

from potledger.debts import DebtLedgerManager
from potledger.models.ledger import (
    POT,
    CustomSplitAmount,
    Expense,
    Member,
    SplitType,
    paid_by_member,
)
from potledger.services.storage import NotFoundError

GROUP = "trip"
MEMBERS = ["A", "B", "C"]


@pytest.fixture
def manager(storage, clock):
    for member_id in MEMBERS:
        storage.add_member(GROUP, Member(id=member_id))
    return DebtLedgerManager(storage, clock=clock, digits=2)


def dinner(**overrides) -> Expense:
    fields = dict(
        id="dinner",
        description="Dinner",
        amount=Decimal("30"),
        is_split=True,
        split_with_member_ids=["A", "B", "C"],
        paid_by=paid_by_member("A"),
    )
    fields.update(overrides)
    return Expense(**fields)


def add(storage, manager, expense):
    storage.add_expense(GROUP, expense)
    return manager.on_expense_created(GROUP, expense, MEMBERS)


class TestDebtGeneration:
    """Tests for deriving debts from an expense."""

    def test_one_debt_per_non_payer_sharer(self, manager, clock):
        debts = manager.debts_for_expense(dinner(), MEMBERS)
        assert [(d.owed_by, d.owed_to, d.amount) for d in debts] == [
            ("B", "A", Decimal("10")),
            ("C", "A", Decimal("10")),
        ]
        for debt in debts:
            assert debt.expense_id == "dinner"
            assert debt.expense_description == "Dinner"
            assert debt.is_settled is False
            assert debt.created_at == clock.now
            assert debt.settled_at is None

    def test_pot_paid_expense_creates_no_debts(self, manager):
        assert manager.debts_for_expense(dinner(paid_by=POT), MEMBERS) == []

    def test_unsplit_expense_creates_no_debts(self, manager):
        assert manager.debts_for_expense(dinner(is_split=False), MEMBERS) == []

    def test_custom_split_amounts(self, manager):
        expense = dinner(
            split_type=SplitType.CUSTOM,
            custom_split_amounts=[
                CustomSplitAmount(member_id="A", amount=Decimal("5")),
                CustomSplitAmount(member_id="B", amount=Decimal("20")),
                CustomSplitAmount(member_id="C", amount=Decimal("5")),
            ],
        )
        debts = manager.debts_for_expense(expense, MEMBERS)
        assert {d.owed_by: d.amount for d in debts} == {"B": Decimal("20"), "C": Decimal("5")}

    def test_zero_share_owes_nothing(self, manager):
        expense = dinner(
            split_type=SplitType.CUSTOM,
            custom_split_amounts=[CustomSplitAmount(member_id="B", amount=Decimal("30"))],
        )
        debts = manager.debts_for_expense(expense, MEMBERS)
        assert [(d.owed_by, d.amount) for d in debts] == [("B", Decimal("30"))]

    def test_unknown_sharers_are_skipped(self, manager):
        debts = manager.debts_for_expense(
            dinner(split_with_member_ids=["A", "ghost", "B"]), MEMBERS
        )
        assert [(d.owed_by, d.amount) for d in debts] == [("B", Decimal("15"))]

    def test_empty_split_list_creates_no_debts(self, manager):
        expense = dinner(split_with_member_ids=[])
        assert manager.debts_for_expense(expense, MEMBERS) == []

    def test_payer_outside_group_creates_no_debts(self, manager):
        expense = dinner(paid_by=paid_by_member("stranger"))
        assert manager.debts_for_expense(expense, MEMBERS) == []


class TestExpenseLifecycle:
    """Tests for create / update / delete cascades."""

    def test_created_debts_are_stored(self, storage, manager):
        add(storage, manager, dinner())
        assert len(manager.all_debts(GROUP)) == 2

    def test_update_replaces_debts(self, storage, manager):
        add(storage, manager, dinner())
        edited = dinner(amount=Decimal("60"), split_with_member_ids=["A", "B"])
        storage.update_expense(GROUP, edited)
        manager.on_expense_updated(GROUP, edited, MEMBERS)

        debts = manager.all_debts(GROUP, include_settled=True)
        assert [(d.owed_by, d.amount) for d in debts] == [("B", Decimal("30"))]

    def test_update_discards_settled_state(self, storage, manager):
        """Test editing an expense reopens its debts even if nothing changed."""
        [b_debt, c_debt] = add(storage, manager, dinner())
        manager.settle_debt(GROUP, b_debt.id)

        manager.on_expense_updated(GROUP, dinner(), MEMBERS)

        debts = manager.all_debts(GROUP, include_settled=True)
        assert len(debts) == 2
        assert all(not d.is_settled for d in debts)
        assert b_debt.id not in {d.id for d in debts}

    def test_update_leaves_other_expenses_alone(self, storage, manager):
        [b_debt, _] = add(storage, manager, dinner())
        manager.settle_debt(GROUP, b_debt.id)
        add(storage, manager, dinner(id="taxi", amount=Decimal("9")))

        manager.on_expense_updated(GROUP, dinner(id="taxi", amount=Decimal("12")), MEMBERS)

        kept = storage.get_debt(GROUP, b_debt.id)
        assert kept is not None and kept.is_settled

    def test_delete_removes_expense_debts(self, storage, manager):
        add(storage, manager, dinner())
        add(storage, manager, dinner(id="taxi"))
        assert manager.on_expense_deleted(GROUP, "dinner") == 2
        assert {d.expense_id for d in manager.all_debts(GROUP)} == {"taxi"}


class TestMemberDeletion:
    """Tests for the member-deletion cascade."""

    def test_cascade(self, storage, manager):
        add(storage, manager, dinner())                                   # paid by A
        add(storage, manager, dinner(id="fuel", paid_by=paid_by_member("B"),
                                     split_with_member_ids=["B", "C"]))
        add(storage, manager, dinner(id="snacks", split_with_member_ids=["B"]))

        removed, rewritten = manager.on_member_deleted(GROUP, "B")

        remaining = manager.all_debts(GROUP, include_settled=True)
        assert all("B" not in (d.owed_by, d.owed_to) for d in remaining)
        assert [(d.owed_by, d.owed_to) for d in remaining] == [("C", "A")]

        expenses = {e.id: e for e in storage.list_expenses(GROUP)}
        assert expenses["dinner"].split_with_member_ids == ["A", "C"]
        assert expenses["fuel"].paid_by == POT
        assert expenses["fuel"].split_with_member_ids == ["C"]
        assert expenses["snacks"].split_with_member_ids == []
        assert expenses["snacks"].is_split is False
        assert {e.id for e in rewritten} == {"dinner", "fuel", "snacks"}
        assert removed == 3

    def test_custom_entries_are_stripped(self, storage, manager):
        expense = dinner(
            split_type=SplitType.CUSTOM,
            custom_split_amounts=[
                CustomSplitAmount(member_id="A", amount=Decimal("10")),
                CustomSplitAmount(member_id="B", amount=Decimal("20")),
            ],
            split_with_member_ids=["A", "B"],
        )
        add(storage, manager, expense)
        manager.on_member_deleted(GROUP, "B")
        stored = storage.get_expense(GROUP, "dinner")
        assert [e.member_id for e in stored.custom_split_amounts] == ["A"]

    def test_untouched_expenses_are_not_rewritten(self, storage, manager):
        add(storage, manager, dinner(split_with_member_ids=["A", "C"]))
        removed, rewritten = manager.on_member_deleted(GROUP, "B")
        assert (removed, rewritten) == (0, [])


class TestSettleToggle:
    """Tests for settle / unsettle and the queries."""

    def test_settle_and_unsettle(self, storage, manager, clock):
        [b_debt, c_debt] = add(storage, manager, dinner())

        clock.advance(hours=2)
        settled = manager.settle_debt(GROUP, b_debt.id)
        assert settled.is_settled is True
        assert settled.settled_at == clock.now

        other = storage.get_debt(GROUP, c_debt.id)
        assert other.is_settled is False

        reopened = manager.unsettle_debt(GROUP, b_debt.id)
        assert reopened.is_settled is False
        assert reopened.settled_at is None

    def test_unknown_debt(self, manager):
        with pytest.raises(NotFoundError):
            manager.settle_debt(GROUP, "nope")
        with pytest.raises(NotFoundError):
            manager.unsettle_debt(GROUP, "nope")

    def test_queries_exclude_settled_by_default(self, storage, manager):
        [b_debt, c_debt] = add(storage, manager, dinner())
        manager.settle_debt(GROUP, b_debt.id)

        assert manager.debts_owed_by(GROUP, "B") == []
        assert len(manager.debts_owed_by(GROUP, "B", include_settled=True)) == 1
        assert [d.id for d in manager.debts_owed_to(GROUP, "A")] == [c_debt.id]
        assert len(manager.debts_owed_to(GROUP, "A", include_settled=True)) == 2
        assert [d.id for d in manager.all_debts(GROUP)] == [c_debt.id]
