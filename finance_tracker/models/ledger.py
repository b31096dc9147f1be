"""
Core Data Models for Finance Tracker

These models define the strict schemas for every ledger entity.
They are designed to:
1. Enforce the ledger invariants at construction time
2. Provide clear validation error messages
3. Round-trip through storage rows without losing cent precision
4. Stay immutable once built (updates produce new, re-validated objects)

DESIGN DECISION: Invalid input is rejected, never coerced. A split whose
parts don't add up, a paid transaction without a payment date or a card
closing on day 0 raise pydantic's ValidationError (a ValueError).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Parts of a split may differ from the amount by rounding noise only.
SPLIT_TOLERANCE = Decimal("0.000001")

DEFAULT_EXPENSE_CATEGORIES = [
    "Alimentação",
    "Moradia",
    "Transporte",
    "Lazer",
    "Saúde",
    "Cartão",
    "Outros",
]
DEFAULT_INCOME_CATEGORIES = [
    "Salário",
    "Freelance",
    "Investimentos",
    "Presentes",
    "Outros",
]


def new_id() -> str:
    return str(uuid4())


def coerce_calendar_date(value: Any) -> Any:
    """
    Reduce date-like input to its calendar date.

    Rows written by other clients carry full ISO timestamps
    ("2024-01-31T12:00:00.000Z"). Only the YYYY-MM-DD portion matters;
    the time of day and the offset are dropped without conversion.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class AccountType(str, Enum):
    """Kind of account holding money."""
    CHECKING = "checking"
    INVESTMENT = "investment"
    CASH = "cash"
    SAVINGS = "savings"
    OTHER = "other"


class CategoryScope(str, Enum):
    """Registry lists that can be edited by the user."""
    EXPENSE = "expense"
    INCOME = "income"
    PAYERS = "payers"


# =============================================================================
# BASE
# =============================================================================

class LedgerEntity(BaseModel):
    """Common configuration and row codec for persisted entities."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    def to_row(self) -> dict:
        """
        Convert to a storage row.

        Keys mirror the data model names, decimals are exact base-10
        strings and dates are ISO calendar dates.
        """
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_row(cls, row: dict):
        """Build an entity from a storage row (re-validates everything)."""
        return cls.model_validate(row)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class SplitDetails(LedgerEntity):
    """
    How a transaction is shared between the owner and one partner.

    partnerName should match an entry of the payer registry; names that
    don't are still aggregated under their literal string.
    """

    user_part: Decimal = Field(
        ...,
        ge=0,
        alias="userPart",
        description="Share owned by the account owner"
    )
    partner_part: Decimal = Field(
        ...,
        ge=0,
        alias="partnerPart",
        description="Share owed by the partner"
    )
    partner_name: str = Field(
        default="",
        max_length=100,
        alias="partnerName",
        description="Partner the share belongs to"
    )


class Transaction(LedgerEntity):
    """
    A single income or expense entry.

    `date` is the due/scheduled date; `payment_date` is set only once the
    transaction is paid.
    """

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique transaction ID"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Full amount in currency units"
    )
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    date: date
    payment_date: Optional[date] = None
    is_paid: bool = False

    # Source of the money
    card_id: Optional[str] = None
    account_id: Optional[str] = None

    # Sharing
    is_split: bool = False
    split_details: Optional[SplitDetails] = None

    is_reserve_withdrawal: bool = Field(
        default=False,
        description="Expense funded from the account's invested pool"
    )

    @field_validator("date", "payment_date", mode="before")
    @classmethod
    def keep_calendar_date(cls, v: Any) -> Any:
        return coerce_calendar_date(v)

    @model_validator(mode="after")
    def validate_invariants(self) -> "Transaction":
        """Validate the relationships between fields."""
        if self.is_split and self.split_details is None:
            raise ValueError("Split transactions require split details")
        if not self.is_split and self.split_details is not None:
            raise ValueError("Split details given for a transaction that is not split")

        if self.split_details is not None:
            parts = self.split_details.user_part + self.split_details.partner_part
            if abs(parts - self.amount) > SPLIT_TOLERANCE:
                raise ValueError(
                    f"Split parts ({parts}) must add up to the amount ({self.amount})"
                )

        if self.is_paid and self.payment_date is None:
            raise ValueError("Paid transactions require a payment date")
        if not self.is_paid and self.payment_date is not None:
            raise ValueError("Pending transactions cannot have a payment date")

        if self.is_reserve_withdrawal and self.type != TransactionType.EXPENSE:
            raise ValueError("Only expenses can be reserve withdrawals")

        return self

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def partner_name(self) -> Optional[str]:
        """Partner of a split transaction, None when not split."""
        if self.is_split and self.split_details is not None:
            return self.split_details.partner_name
        return None


# =============================================================================
# CARDS AND ACCOUNTS
# =============================================================================

class CreditCard(LedgerEntity):
    """Credit card with a limit and a monthly statement cycle."""

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default="#4f46e5", max_length=20)
    credit_limit: Decimal = Field(
        ...,
        gt=0,
        description="Total credit available on the card"
    )
    closing_day: int = Field(default=5, ge=1, le=31)
    due_day: int = Field(default=15, ge=1, le=31)
    account_id: Optional[str] = Field(
        default=None,
        description="Account that pays this card's statements"
    )


class Account(LedgerEntity):
    """
    Money holder with a liquid balance and an invested/reserve pool.

    Both initial balances are the starting point; the current values are
    derived from paid transactions (see engine.accounts).
    """

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType = AccountType.CHECKING
    color: str = Field(default="#4f46e5", max_length=20)
    initial_balance: Decimal = Decimal("0")
    initial_invested_balance: Decimal = Field(default=Decimal("0"), ge=0)


# =============================================================================
# CATEGORY / PAYER REGISTRY
# =============================================================================

class UserCategories(LedgerEntity):
    """
    Registry of category names, payer names and their display metadata.

    Colors and icons are plain name -> value maps; lookups fall back to a
    default instead of returning None.
    """

    expense: list[str] = Field(default_factory=lambda: list(DEFAULT_EXPENSE_CATEGORIES))
    income: list[str] = Field(default_factory=lambda: list(DEFAULT_INCOME_CATEGORIES))
    payers: list[str] = Field(default_factory=list)
    colors: dict[str, str] = Field(default_factory=dict)
    icons: dict[str, str] = Field(default_factory=dict)

    def names(self, scope: CategoryScope) -> list[str]:
        return list(getattr(self, CategoryScope(scope).value))

    def contains(self, scope: CategoryScope, name: str) -> bool:
        return name in self.names(scope)

    def has_payer(self, name: str) -> bool:
        return name in self.payers

    def color_for(self, name: str, default: str = "#94a3b8") -> str:
        return self.colors.get(name, default)

    def icon_for(self, name: str, default: str = "tag") -> str:
        return self.icons.get(name, default)

    def with_entry(
        self,
        scope: CategoryScope,
        name: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> "UserCategories":
        """Return a registry with `name` added to `scope` (no duplicates)."""
        scope = CategoryScope(scope)
        name = name.strip()
        if not name:
            raise ValueError("Category name cannot be empty")

        names = self.names(scope)
        if name not in names:
            names.append(name)

        colors = dict(self.colors)
        icons = dict(self.icons)
        if color:
            colors[name] = color
        if icon:
            icons[name] = icon

        return self.model_validate({
            **self.model_dump(),
            scope.value: names,
            "colors": colors,
            "icons": icons,
        })

    def without_entry(self, scope: CategoryScope, name: str) -> "UserCategories":
        """
        Return a registry with `name` removed from `scope`.

        Color and icon are dropped only when no other list still uses the name.
        """
        scope = CategoryScope(scope)
        names = [n for n in self.names(scope) if n != name]

        still_used = any(
            name in self.names(other)
            for other in CategoryScope
            if other != scope
        )
        colors = dict(self.colors)
        icons = dict(self.icons)
        if not still_used:
            colors.pop(name, None)
            icons.pop(name, None)

        return self.model_validate({
            **self.model_dump(),
            scope.value: names,
            "colors": colors,
            "icons": icons,
        })


class LedgerSnapshot(BaseModel):
    """Immutable view of everything the derivation engine reads."""

    model_config = ConfigDict(frozen=True)

    transactions: tuple[Transaction, ...] = ()
    cards: tuple[CreditCard, ...] = ()
    accounts: tuple[Account, ...] = ()
    categories: UserCategories = Field(default_factory=UserCategories)

    def find_card(self, card_id: Optional[str]) -> Optional[CreditCard]:
        return find_by_id(self.cards, card_id)

    def find_account(self, account_id: Optional[str]) -> Optional[Account]:
        return find_by_id(self.accounts, account_id)


def find_by_id(entities, entity_id: Optional[str]):
    """Return the entity with `entity_id`, None when absent or stale."""
    if not entity_id:
        return None
    for entity in entities:
        if entity.id == entity_id:
            return entity
    return None
