"""
Who shares an expense, and how much each sharer owes.

Both the net position calculator and the debt ledger go through these two
functions so they can never disagree about a share.
"""

from typing import Sequence

import structlog

from potledger.calculations.money import split_evenly, to_minor
from potledger.models.ledger import Expense, SplitType

logger = structlog.get_logger(__name__)


def sharing_set(expense: Expense, member_ids: Sequence[str]) -> list[str]:
    """
    Members who share the cost of `expense`.

    A split expense is shared by its split list, minus ids that aren't in the
    group (dropped silently) and minus repeats. A non-split expense, or one
    whose split list is empty, is shared by the whole group.
    """
    if expense.is_split and expense.split_with_member_ids:
        known = set(member_ids)
        return list(dict.fromkeys(
            member_id
            for member_id in expense.split_with_member_ids
            if member_id in known
        ))
    return list(dict.fromkeys(member_ids))


def individual_shares(
    expense: Expense,
    sharers: Sequence[str],
    digits: int,
) -> dict[str, int]:
    """
    Each sharer's portion of the expense, in minor units.

    Custom splits read the caller's per-member amounts. A sharer without an
    entry owes 0; that inconsistency is logged, not raised. Validation that
    rejects it lives in potledger.validation.
    """
    if expense.split_type == SplitType.CUSTOM:
        shares = {}
        for member_id in sharers:
            amount = expense.custom_amount_for(member_id)
            if amount is None:
                logger.warning(
                    "custom_split_entry_missing",
                    expense_id=expense.id,
                    member_id=member_id,
                )
                shares[member_id] = 0
            else:
                shares[member_id] = to_minor(amount, digits)
        return shares

    each = split_evenly(to_minor(expense.amount, digits), len(sharers))
    return {member_id: each for member_id in sharers}
