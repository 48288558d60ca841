"""
Core Data Models for PotLedger

These models define the schemas for every record the settlement engine
reads or produces. They are designed to:
1. Enforce type safety at runtime
2. Keep money as Decimal at the boundary (never float)
3. Be serializable for storage and logging

DESIGN DECISION: Who paid for an expense is a tagged union rather than a
magic member id. A member can be called anything, including "pot", without
ever being confused with the communal pot.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_id() -> str:
    """Generate a fresh record identifier."""
    return str(uuid4())


# =============================================================================
# ENUMS
# =============================================================================

class SplitType(str, Enum):
    """How an expense is divided among the people sharing it."""
    EVEN = "even"      # Equal division among sharers
    CUSTOM = "custom"  # Caller-specified per-member amounts


# =============================================================================
# PAYER
# =============================================================================

class MemberPayer(BaseModel):
    """An individual member advanced the money and should be credited."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["member"] = "member"
    member_id: str = Field(..., min_length=1)


class PotPayer(BaseModel):
    """
    The expense was paid from communal funds.

    No individual is credited; the pot absorbs the cost.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["pot"] = "pot"


Payer = Annotated[Union[MemberPayer, PotPayer], Field(discriminator="kind")]

POT = PotPayer()


def paid_by_member(member_id: str) -> MemberPayer:
    return MemberPayer(member_id=member_id)


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Member(BaseModel):
    """A person in a household pot or on a trip."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    name: Optional[str] = Field(default=None, max_length=100)


class Contribution(BaseModel):
    """Cash a member put into the pot."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    member_id: str = Field(..., min_length=1)
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount contributed, in currency units"
    )
    contributed_on: date = Field(default_factory=date.today)
    notes: Optional[str] = Field(default=None, max_length=500)


class CustomSplitAmount(BaseModel):
    """One member's share of a custom-split expense."""

    member_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)


class Expense(BaseModel):
    """
    A group expense.

    If is_split is False (or the split list is empty) the expense is
    shared evenly by the entire group. custom_split_amounts is only read
    when split_type is CUSTOM.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    amount: Decimal = Field(..., ge=0)
    is_split: bool = False
    split_with_member_ids: list[str] = Field(default_factory=list)
    paid_by: Payer = Field(default=POT)
    split_type: SplitType = SplitType.EVEN
    custom_split_amounts: list[CustomSplitAmount] = Field(default_factory=list)

    description: Optional[str] = Field(default=None, max_length=200)
    incurred_on: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @property
    def payer_member_id(self) -> Optional[str]:
        """The paying member's id, or None when the pot paid."""
        if isinstance(self.paid_by, MemberPayer):
            return self.paid_by.member_id
        return None

    def custom_amount_for(self, member_id: str) -> Optional[Decimal]:
        for entry in self.custom_split_amounts:
            if entry.member_id == member_id:
                return entry.amount
        return None


class Debt(BaseModel):
    """
    A per-expense pairwise obligation.

    Independent of the netted settlement: each Debt can be settled and
    unsettled on its own without touching any other record.
    """

    id: str = Field(default_factory=new_id, min_length=1)
    expense_id: str = Field(..., min_length=1)
    expense_description: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    owed_by: str = Field(..., min_length=1)
    owed_to: str = Field(..., min_length=1)
    is_settled: bool = False
    created_at: datetime
    settled_at: Optional[datetime] = None


# =============================================================================
# DERIVED RESULTS
# =============================================================================

class NetPosition(BaseModel):
    """
    A member's overall balance.

    net_share > 0 means the group owes them; net_share < 0 means they owe.
    Always equal to direct_contribution + amount_personally_paid_for_group
    - total_share_of_expenses.
    """
    model_config = ConfigDict(frozen=True)

    member_id: str
    direct_contribution: Decimal = Decimal("0")
    amount_personally_paid_for_group: Decimal = Decimal("0")
    total_share_of_expenses: Decimal = Decimal("0")
    net_share: Decimal = Decimal("0")


class RawSettlement(BaseModel):
    """A single transfer: owed_by pays owed_to."""
    model_config = ConfigDict(frozen=True)

    owed_by: str
    owed_to: str
    amount: Decimal

    @field_validator('amount')
    @classmethod
    def amount_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Settlement amount must be positive")
        return v


class LedgerSnapshot(BaseModel):
    """
    Everything a consumer reads about a group's balances.

    Recomputed wholesale after every mutation. residual is the sum of all
    net shares: money left in the pot (positive) or owed to it (negative),
    which the settlement list deliberately does not assign to anyone.
    """
    model_config = ConfigDict(frozen=True)

    group_id: str
    positions: dict[str, NetPosition] = Field(default_factory=dict)
    settlements: list[RawSettlement] = Field(default_factory=list)
    residual: Decimal = Decimal("0")
    computed_at: datetime = Field(default_factory=datetime.utcnow)

    def position_for(self, member_id: str) -> Optional[NetPosition]:
        return self.positions.get(member_id)
