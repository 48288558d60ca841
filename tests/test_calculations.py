"""Tests for money helpers, share computation, net positions and settlements."""

import random
from decimal import Decimal

import pytest

from potledger.calculations import (
    compute_net_positions,
    epsilon_minor,
    from_minor,
    generate_settlements,
    individual_shares,
    sharing_set,
    split_evenly,
    to_minor,
    unassigned_residual,
)
from potledger.models.ledger import (
    POT,
    Contribution,
    CustomSplitAmount,
    Expense,
    NetPosition,
    SplitType,
    paid_by_member,
)


def position(member_id: str, net: str) -> NetPosition:
    return NetPosition(member_id=member_id, net_share=Decimal(net))


def as_tuples(settlements):
    return [(s.owed_by, s.owed_to, s.amount) for s in settlements]


class TestMoney:
    """Tests for fixed-point conversions."""

    def test_to_minor_rounds_half_up(self):
        assert to_minor(Decimal("12.345"), 2) == 1235
        assert to_minor(Decimal("12.344"), 2) == 1234
        assert to_minor(Decimal("-0.005"), 2) == -1

    def test_to_minor_accepts_ints_and_strings(self):
        assert to_minor(7, 2) == 700
        assert to_minor("0.1", 2) == 10

    def test_from_minor(self):
        assert from_minor(4750, 2) == Decimal("47.5")
        assert from_minor(-1000, 2) == Decimal("-10")
        assert from_minor(5, 0) == Decimal("5")

    def test_split_evenly(self):
        assert split_evenly(1000, 3) == 333
        assert split_evenly(200, 3) == 67
        assert split_evenly(1500, 2) == 750

    def test_split_evenly_never_divides_by_zero(self):
        assert split_evenly(1000, 0) == 1000

    def test_epsilon_in_minor_units(self):
        assert epsilon_minor(Decimal("0.005"), 2) == Decimal("0.5")

    def test_defaults_come_from_settings(self):
        assert to_minor(Decimal("1.23")) == 123
        assert epsilon_minor() == Decimal("0.5")


class TestShares:
    """Tests for sharing sets and individual shares."""

    MEMBERS = ["A", "B", "C"]

    def test_non_split_expense_is_shared_by_everyone(self):
        expense = Expense(amount=30, is_split=False, split_with_member_ids=["A"])
        assert sharing_set(expense, self.MEMBERS) == ["A", "B", "C"]

    def test_split_list_filters_unknown_and_duplicate_ids(self):
        expense = Expense(amount=30, is_split=True, split_with_member_ids=["C", "ghost", "A", "C"])
        assert sharing_set(expense, self.MEMBERS) == ["C", "A"]

    def test_split_with_empty_list_means_whole_group(self):
        expense = Expense(amount=30, is_split=True, split_with_member_ids=[])
        assert sharing_set(expense, self.MEMBERS) == self.MEMBERS

    def test_split_with_only_unknown_ids_is_empty(self):
        expense = Expense(amount=30, is_split=True, split_with_member_ids=["ghost"])
        assert sharing_set(expense, self.MEMBERS) == []

    def test_even_shares(self):
        expense = Expense(amount=Decimal("10"))
        assert individual_shares(expense, ["A", "B", "C"], 2) == {"A": 333, "B": 333, "C": 333}

    def test_custom_shares_fall_back_to_zero(self):
        expense = Expense(
            amount=Decimal("10"),
            split_type=SplitType.CUSTOM,
            custom_split_amounts=[CustomSplitAmount(member_id="A", amount=Decimal("7.25"))],
        )
        assert individual_shares(expense, ["A", "B"], 2) == {"A": 725, "B": 0}


class TestNetPositions:
    """Tests for the net position calculator."""

    def test_empty_ledger_is_all_zero(self):
        positions = compute_net_positions(["A", "B"], [], [])
        for p in positions.values():
            assert p.direct_contribution == 0
            assert p.amount_personally_paid_for_group == 0
            assert p.total_share_of_expenses == 0
            assert p.net_share == 0

    def test_single_contribution(self):
        positions = compute_net_positions(
            ["A"], [Contribution(member_id="A", amount=Decimal("100"))], []
        )
        assert positions["A"].direct_contribution == Decimal("100")
        assert positions["A"].net_share == Decimal("100")

    def test_pot_paid_expense(self):
        """Test a pot-paid expense debits the sharer without crediting anyone."""
        positions = compute_net_positions(
            ["A"],
            [Contribution(member_id="A", amount=Decimal("100"))],
            [Expense(amount=Decimal("30"), paid_by=POT)],
        )
        assert positions["A"].total_share_of_expenses == Decimal("30")
        assert positions["A"].amount_personally_paid_for_group == 0
        assert positions["A"].net_share == Decimal("70")

    def test_two_members_even_split_paid_by_one(self):
        positions = compute_net_positions(
            ["A", "B"],
            [],
            [Expense(
                amount=Decimal("10"),
                is_split=True,
                split_with_member_ids=["A", "B"],
                paid_by=paid_by_member("A"),
            )],
        )
        a, b = positions["A"], positions["B"]
        assert a.amount_personally_paid_for_group == Decimal("10")
        assert a.total_share_of_expenses == Decimal("5")
        assert a.net_share == Decimal("5")
        assert b.total_share_of_expenses == Decimal("5")
        assert b.net_share == Decimal("-5")

        assert as_tuples(generate_settlements(positions.values())) == [("B", "A", Decimal("5"))]

    def test_three_members_with_pot_and_member_expenses(self):
        positions = compute_net_positions(
            ["A", "B", "C"],
            [
                Contribution(member_id="A", amount=Decimal("50")),
                Contribution(member_id="B", amount=Decimal("20")),
            ],
            [
                Expense(
                    amount=Decimal("30"),
                    is_split=True,
                    split_with_member_ids=["A", "B", "C"],
                    paid_by=POT,
                ),
                Expense(
                    amount=Decimal("15"),
                    is_split=True,
                    split_with_member_ids=["A", "B"],
                    paid_by=paid_by_member("A"),
                ),
            ],
        )
        assert positions["A"].net_share == Decimal("47.5")
        assert positions["B"].net_share == Decimal("2.5")
        assert positions["C"].net_share == Decimal("-10")

        settlements = generate_settlements(positions.values())
        assert as_tuples(settlements) == [("C", "A", Decimal("10"))]
        assert unassigned_residual(positions.values()) == Decimal("40")

    def test_net_share_identity_holds(self):
        positions = compute_net_positions(
            ["A", "B", "C"],
            [Contribution(member_id="B", amount=Decimal("33.33"))],
            [
                Expense(amount=Decimal("10"), paid_by=paid_by_member("C")),
                Expense(amount=Decimal("7.01"), is_split=True, split_with_member_ids=["A", "C"]),
            ],
        )
        for p in positions.values():
            assert p.net_share == (
                p.direct_contribution
                + p.amount_personally_paid_for_group
                - p.total_share_of_expenses
            )

    def test_custom_split(self):
        positions = compute_net_positions(
            ["A", "B"],
            [],
            [Expense(
                amount=Decimal("100"),
                is_split=True,
                split_with_member_ids=["A", "B"],
                split_type=SplitType.CUSTOM,
                custom_split_amounts=[
                    CustomSplitAmount(member_id="A", amount=Decimal("70")),
                    CustomSplitAmount(member_id="B", amount=Decimal("30")),
                ],
                paid_by=paid_by_member("B"),
            )],
        )
        assert positions["A"].net_share == Decimal("-70")
        assert positions["B"].net_share == Decimal("70")

    def test_unknown_ids_are_ignored(self):
        """Test contributions, payers and sharers outside the group are dropped."""
        positions = compute_net_positions(
            ["A"],
            [Contribution(member_id="ghost", amount=Decimal("100"))],
            [Expense(
                amount=Decimal("20"),
                is_split=True,
                split_with_member_ids=["A", "ghost"],
                paid_by=paid_by_member("ghost"),
            )],
        )
        assert set(positions) == {"A"}
        assert positions["A"].total_share_of_expenses == Decimal("20")
        assert positions["A"].net_share == Decimal("-20")

    def test_empty_sharing_set_debits_nobody(self):
        positions = compute_net_positions(
            ["A", "B"],
            [],
            [Expense(
                amount=Decimal("20"),
                is_split=True,
                split_with_member_ids=["ghost"],
                paid_by=paid_by_member("A"),
            )],
        )
        assert positions["A"].net_share == Decimal("20")
        assert positions["B"].net_share == 0

    def test_positions_follow_member_order(self):
        positions = compute_net_positions(["C", "A", "B"], [], [])
        assert list(positions) == ["C", "A", "B"]


class TestSettlements:
    """Tests for the greedy settlement generator."""

    def test_no_settlements_when_balanced(self):
        assert generate_settlements([position("A", "0"), position("B", "0")]) == []

    def test_single_member_never_settles(self):
        assert generate_settlements([position("A", "-12")]) == []

    def test_largest_first_matching(self):
        settlements = generate_settlements([
            position("A", "-10"),
            position("B", "-30"),
            position("C", "25"),
            position("D", "15"),
        ])
        assert as_tuples(settlements) == [
            ("B", "C", Decimal("25")),
            ("B", "D", Decimal("5")),
            ("A", "D", Decimal("10")),
        ]

    def test_ties_keep_input_order(self):
        settlements = generate_settlements([
            position("X", "-3"),
            position("Z", "3"),
            position("Y", "-3"),
            position("W", "3"),
        ])
        assert as_tuples(settlements) == [
            ("X", "Z", Decimal("3")),
            ("Y", "W", Decimal("3")),
        ]

    def test_amounts_within_epsilon_are_settled(self):
        settlements = generate_settlements([
            position("A", "-0.004"),
            position("B", "0.004"),
        ])
        assert settlements == []

    def test_uneven_split_leaves_cent_unassigned(self):
        positions = compute_net_positions(
            ["A", "B", "C"],
            [],
            [Expense(amount=Decimal("10"), paid_by=paid_by_member("A"))],
        )
        assert positions["A"].net_share == Decimal("6.67")
        settlements = generate_settlements(positions.values())
        assert as_tuples(settlements) == [
            ("B", "A", Decimal("3.33")),
            ("C", "A", Decimal("3.33")),
        ]
        assert unassigned_residual(positions.values()) == Decimal("0.01")

    def test_pot_deficit_left_unassigned(self):
        """Test a non-zero-sum set resolves member debt and stops."""
        settlements = generate_settlements([
            position("A", "-50"),
            position("B", "20"),
        ])
        assert as_tuples(settlements) == [("A", "B", Decimal("20"))]

    def test_deterministic_and_idempotent(self):
        positions = [position("A", "-7.5"), position("B", "2.5"), position("C", "5")]
        assert generate_settlements(positions) == generate_settlements(positions)

    @pytest.mark.parametrize("seed", range(20))
    def test_no_overshoot_and_bounded_count(self, seed):
        rng = random.Random(seed)
        positions = [
            position(f"M{i}", str(Decimal(rng.randint(-10000, 10000)) / 100))
            for i in range(rng.randint(2, 9))
        ]
        settlements = generate_settlements(positions)

        debtors = [p for p in positions if p.net_share < Decimal("-0.005")]
        creditors = [p for p in positions if p.net_share > Decimal("0.005")]
        if debtors and creditors:
            assert len(settlements) <= len(debtors) + len(creditors) - 1

        paid = {p.member_id: Decimal(0) for p in positions}
        received = {p.member_id: Decimal(0) for p in positions}
        for s in settlements:
            assert s.amount > 0
            paid[s.owed_by] += s.amount
            received[s.owed_to] += s.amount

        for p in positions:
            if p.net_share < 0:
                assert paid[p.member_id] <= -p.net_share
                assert received[p.member_id] == 0
            else:
                assert received[p.member_id] <= p.net_share
                assert paid[p.member_id] == 0

        # whichever side is smaller is fully resolved
        owed = sum(-p.net_share for p in debtors)
        due = sum(p.net_share for p in creditors)
        assert sum(s.amount for s in settlements) == min(owed, due)
