"""
View Filter Models

The presentation layer describes *which* transactions a view shows with a
FilterSpec. The filter engine and the aggregation engine read these values;
they never look at raw UI state.

DESIGN DECISION: The payer selection is a first-class value with an explicit
kind (everyone / individual only / single payer / mixed) instead of a loose
list of strings inspected ad hoc. Summaries change their attribution rule
depending on that kind, so it has to be unambiguous.
"""

import calendar
from datetime import date
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from finance_tracker.models.ledger import Transaction, coerce_calendar_date


ALL_TOKEN = "all"
INDIVIDUAL_TOKEN = "individual"


class StatusFilter(str, Enum):
    """Paid-status predicate."""
    ALL = "all"
    PAID = "paid"
    PENDING = "pending"


class TypeFilter(str, Enum):
    """Transaction direction predicate."""
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


class SelectionKind(str, Enum):
    """How a payer selection attributes split amounts."""
    ALL = "all"                          # full amounts
    INDIVIDUAL_ONLY = "individual_only"  # owner's share of splits
    SINGLE_PAYER = "single_payer"        # that partner's share of splits
    MIXED = "mixed"                      # full amounts


class DateRange(BaseModel):
    """Inclusive calendar date range."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @field_validator("start", "end", mode="before")
    @classmethod
    def keep_calendar_date(cls, v: Any) -> Any:
        return coerce_calendar_date(v)

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("Date range end cannot be before start")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @classmethod
    def month_of(cls, day: date) -> "DateRange":
        """The calendar month containing `day` (default period of every view)."""
        last_day = calendar.monthrange(day.year, day.month)[1]
        return cls(
            start=day.replace(day=1),
            end=day.replace(day=last_day),
        )


class PayerSelection(BaseModel):
    """
    Set of payer selector tokens.

    Tokens are "all", "individual" (transactions that are not split) or
    literal payer names (split transactions whose partnerName matches).
    Selectors combine as a union.
    """

    model_config = ConfigDict(frozen=True)

    tokens: frozenset[str] = Field(
        default_factory=lambda: frozenset({ALL_TOKEN}),
        min_length=1,
    )

    @field_validator("tokens", mode="before")
    @classmethod
    def clean_tokens(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple, set, frozenset)):
            # Non-string tokens pass through for frozenset[str] to reject.
            return [
                t.strip() if isinstance(t, str) else t
                for t in v
                if not isinstance(t, str) or t.strip()
            ]
        return v

    @classmethod
    def everyone(cls) -> "PayerSelection":
        return cls(tokens=frozenset({ALL_TOKEN}))

    @classmethod
    def individual_only(cls) -> "PayerSelection":
        return cls(tokens=frozenset({INDIVIDUAL_TOKEN}))

    @classmethod
    def named(cls, *names: str) -> "PayerSelection":
        return cls(tokens=frozenset(names))

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> "PayerSelection":
        return cls(tokens=frozenset(tokens))

    @property
    def includes_all(self) -> bool:
        return ALL_TOKEN in self.tokens

    @property
    def includes_individual(self) -> bool:
        return INDIVIDUAL_TOKEN in self.tokens

    @property
    def payer_names(self) -> frozenset[str]:
        return self.tokens - {ALL_TOKEN, INDIVIDUAL_TOKEN}

    @property
    def kind(self) -> SelectionKind:
        if self.tokens == {INDIVIDUAL_TOKEN}:
            return SelectionKind.INDIVIDUAL_ONLY
        if len(self.tokens) == 1 and self.payer_names:
            return SelectionKind.SINGLE_PAYER
        if self.includes_all and len(self.tokens) == 1:
            return SelectionKind.ALL
        return SelectionKind.MIXED

    @property
    def single_payer(self) -> Optional[str]:
        """The payer name when the selection is exactly one payer."""
        if self.kind == SelectionKind.SINGLE_PAYER:
            return next(iter(self.payer_names))
        return None

    def matches(self, transaction: Transaction) -> bool:
        """Union of the selectors."""
        if self.includes_all:
            return True
        if self.includes_individual and not transaction.is_split:
            return True
        partner = transaction.partner_name
        return partner is not None and partner in self.tokens


class FilterSpec(BaseModel):
    """
    Predicates selecting the working set of a view.

    Every active predicate must pass (logical AND).
    """

    model_config = ConfigDict(frozen=True)

    date_range: Optional[DateRange] = Field(
        default=None,
        description="Inclusive range on the transaction date; None = all time"
    )
    category: str = Field(
        default=ALL_TOKEN,
        min_length=1,
        description="'all' or an exact category name"
    )
    status: StatusFilter = StatusFilter.ALL
    transaction_type: TypeFilter = TypeFilter.ALL
    payers: PayerSelection = Field(default_factory=PayerSelection.everyone)

    @classmethod
    def for_month(cls, day: date, **kwargs) -> "FilterSpec":
        return cls(date_range=DateRange.month_of(day), **kwargs)
