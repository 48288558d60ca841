"""
Net Position Calculator

Turns a group's contributions and expenses into one NetPosition per member:

    net_share = direct_contribution
              + amount_personally_paid_for_group
              - total_share_of_expenses

DESIGN DECISION: This is a pure function. It reads nothing but its
arguments, never raises on inconsistent records, and is re-run over the
whole ledger after every mutation. There is no incremental path.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from potledger.calculations.money import from_minor, minor_digits, to_minor
from potledger.calculations.shares import individual_shares, sharing_set
from potledger.models.ledger import Contribution, Expense, NetPosition


@dataclass
class _Accumulator:
    """Running totals for one member, in minor units."""
    contributed: int = 0
    paid_for_group: int = 0
    share_of_expenses: int = 0

    @property
    def net(self) -> int:
        return self.contributed + self.paid_for_group - self.share_of_expenses


def compute_net_positions(
    member_ids: Sequence[str],
    contributions: Iterable[Contribution],
    expenses: Iterable[Expense],
    digits: Optional[int] = None,
) -> dict[str, NetPosition]:
    """
    Compute every member's net position.

    Args:
        member_ids: The group's members, in display order
        contributions: Cash put into the pot
        expenses: Group expenses, paid by a member or by the pot
        digits: Currency minor-unit digits (defaults to configuration)

    Returns:
        Mapping of member id to NetPosition, in member_ids order.
        Contributions and payers that aren't group members are ignored.
    """
    if digits is None:
        digits = minor_digits()

    totals = {member_id: _Accumulator() for member_id in member_ids}

    for contribution in contributions:
        acc = totals.get(contribution.member_id)
        if acc is not None:
            acc.contributed += to_minor(contribution.amount, digits)

    for expense in expenses:
        sharers = sharing_set(expense, member_ids)
        shares = individual_shares(expense, sharers, digits)

        payer = expense.payer_member_id
        if payer is not None and payer in totals:
            # They advanced the money
            totals[payer].paid_for_group += to_minor(expense.amount, digits)

        # A pot-paid expense has no offsetting credit: the pot absorbed it
        for member_id, share in shares.items():
            totals[member_id].share_of_expenses += share

    return {
        member_id: NetPosition(
            member_id=member_id,
            direct_contribution=from_minor(acc.contributed, digits),
            amount_personally_paid_for_group=from_minor(acc.paid_for_group, digits),
            total_share_of_expenses=from_minor(acc.share_of_expenses, digits),
            net_share=from_minor(acc.net, digits),
        )
        for member_id, acc in totals.items()
    }
