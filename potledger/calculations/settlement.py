"""
Settlement Generator

Greedy largest-first matching of debtors to creditors. Produces at most
(debtors + creditors - 1) transfers and never moves more than a member's
own balance.

If the net shares don't sum to zero (money left in, or owed to, the pot)
all member-to-member debt is still resolved and the remainder is left
unassigned. Paying out the pot is someone else's job.
"""

from decimal import Decimal
from typing import Iterable, Optional

from potledger.calculations.money import epsilon_minor, from_minor, minor_digits, to_minor
from potledger.models.ledger import NetPosition, RawSettlement


def generate_settlements(
    positions: Iterable[NetPosition],
    epsilon: Optional[Decimal] = None,
    digits: Optional[int] = None,
) -> list[RawSettlement]:
    """
    Minimal list of transfers that brings every member back to balance.

    Balances within epsilon of zero (default 0.005) count as settled.
    Debtors and creditors are each sorted by descending magnitude; the sort
    is stable, so ties keep the order the positions were given in.
    """
    if digits is None:
        digits = minor_digits()
    eps = epsilon_minor(epsilon, digits)

    balances = [(p.member_id, to_minor(p.net_share, digits)) for p in positions]

    debtors = [[member_id, -units] for member_id, units in balances if units < -eps]
    creditors = [[member_id, units] for member_id, units in balances if units > eps]
    debtors.sort(key=lambda entry: entry[1], reverse=True)
    creditors.sort(key=lambda entry: entry[1], reverse=True)

    settlements = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        transfer = min(debtor[1], creditor[1])
        if transfer > eps:
            settlements.append(RawSettlement(
                owed_by=debtor[0],
                owed_to=creditor[0],
                amount=from_minor(transfer, digits),
            ))
        debtor[1] -= transfer
        creditor[1] -= transfer

        if debtor[1] <= eps:
            i += 1
        if creditor[1] <= eps:
            j += 1

    return settlements


def unassigned_residual(
    positions: Iterable[NetPosition],
    digits: Optional[int] = None,
) -> Decimal:
    """Sum of all net shares: pot surplus if positive, deficit if negative."""
    if digits is None:
        digits = minor_digits()
    total = sum(to_minor(p.net_share, digits) for p in positions)
    return from_minor(total, digits)
