"""Tests for view filter models and the filter engine."""

import pytest
from datetime import date
from decimal import Decimal
from pydantic import ValidationError

from finance_tracker.engine.filters import (
    matches,
    select_transactions,
    sort_by_date_desc,
)
from finance_tracker.models.filters import (
    DateRange,
    FilterSpec,
    PayerSelection,
    SelectionKind,
    StatusFilter,
    TypeFilter,
)
from finance_tracker.models.ledger import SplitDetails, Transaction


def tx(
    id: str,
    day: date,
    amount: str = "100",
    type: str = "expense",
    category: str = "Lazer",
    paid: bool = False,
    partner: str = None,
) -> Transaction:
    values = {
        "id": id,
        "description": f"Transaction {id}",
        "amount": Decimal(amount),
        "type": type,
        "category": category,
        "date": day,
        "is_paid": paid,
        "payment_date": day if paid else None,
    }
    if partner is not None:
        half = Decimal(amount) / 2
        values["is_split"] = True
        values["split_details"] = SplitDetails(
            user_part=half, partner_part=half, partner_name=partner,
        )
    return Transaction(**values)


JANUARY = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))


class TestDateRange:
    """Tests for the inclusive date range."""

    def test_rejects_end_before_start(self):
        with pytest.raises(ValueError):
            DateRange(start=date(2024, 2, 1), end=date(2024, 1, 1))

    def test_single_day_range(self):
        day_range = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 1))
        assert day_range.contains(date(2024, 1, 1))

    def test_month_of_leap_february(self):
        """Test that month_of covers the whole calendar month."""
        month = DateRange.month_of(date(2024, 2, 10))
        assert month.start == date(2024, 2, 1)
        assert month.end == date(2024, 2, 29)

    def test_accepts_iso_datetimes(self):
        day_range = DateRange(start="2024-01-01T00:00:00Z", end="2024-01-31T23:59:59Z")
        assert day_range == JANUARY


class TestPayerSelection:
    """Tests for the tagged payer selection."""

    def test_kinds(self):
        assert PayerSelection.everyone().kind == SelectionKind.ALL
        assert PayerSelection.individual_only().kind == SelectionKind.INDIVIDUAL_ONLY
        assert PayerSelection.named("Ana").kind == SelectionKind.SINGLE_PAYER
        assert PayerSelection.named("Ana", "Bruno").kind == SelectionKind.MIXED
        assert PayerSelection.from_tokens(["individual", "Ana"]).kind == SelectionKind.MIXED
        assert PayerSelection.from_tokens(["all", "Ana"]).kind == SelectionKind.MIXED

    def test_single_payer_name(self):
        assert PayerSelection.named("Ana").single_payer == "Ana"
        assert PayerSelection.everyone().single_payer is None

    def test_empty_selection_rejected(self):
        """Test that a selection must hold at least one token."""
        with pytest.raises(ValueError):
            PayerSelection.from_tokens([])
        with pytest.raises(ValueError):
            PayerSelection.from_tokens(["  "])

    def test_tokens_are_stripped(self):
        assert PayerSelection.from_tokens([" Ana "]).single_payer == "Ana"

    def test_non_string_token_rejected(self):
        with pytest.raises(ValidationError):
            PayerSelection(tokens=["Ana", 5])

    def test_individual_matches_only_unsplit(self):
        selection = PayerSelection.individual_only()
        assert selection.matches(tx("a", date(2024, 1, 1)))
        assert not selection.matches(tx("b", date(2024, 1, 1), partner="Ana"))

    def test_named_matches_only_that_partner(self):
        selection = PayerSelection.named("Ana")
        assert selection.matches(tx("a", date(2024, 1, 1), partner="Ana"))
        assert not selection.matches(tx("b", date(2024, 1, 1), partner="Bruno"))
        assert not selection.matches(tx("c", date(2024, 1, 1)))

    def test_union_of_selectors(self):
        """Test that multi-select is a union, not an intersection."""
        selection = PayerSelection.from_tokens(["individual", "Bruno"])
        assert selection.matches(tx("a", date(2024, 1, 1)))
        assert selection.matches(tx("b", date(2024, 1, 1), partner="Bruno"))
        assert not selection.matches(tx("c", date(2024, 1, 1), partner="Ana"))


class TestFilterEngine:
    """Tests for select_transactions."""

    def test_date_boundaries_are_inclusive(self):
        """Test that the last day is in and the next day is out."""
        last_day = tx("a", date(2024, 1, 31))
        next_day = tx("b", date(2024, 2, 1))
        first_day = tx("c", date(2024, 1, 1))
        spec = FilterSpec(date_range=JANUARY)

        selected = select_transactions([last_day, next_day, first_day], spec)
        assert [t.id for t in selected] == ["a", "c"]

    def test_for_month(self):
        spec = FilterSpec.for_month(date(2024, 1, 15))
        assert spec.date_range == JANUARY

    def test_no_range_means_all_time(self):
        transactions = [tx("a", date(2020, 1, 1)), tx("b", date(2030, 1, 1))]
        assert len(select_transactions(transactions, FilterSpec())) == 2

    def test_category_filter(self):
        transactions = [
            tx("a", date(2024, 1, 5), category="Lazer"),
            tx("b", date(2024, 1, 5), category="Moradia"),
        ]
        selected = select_transactions(transactions, FilterSpec(category="Moradia"))
        assert [t.id for t in selected] == ["b"]

    def test_status_filter(self):
        transactions = [
            tx("a", date(2024, 1, 5), paid=True),
            tx("b", date(2024, 1, 5)),
        ]
        paid = select_transactions(transactions, FilterSpec(status=StatusFilter.PAID))
        pending = select_transactions(transactions, FilterSpec(status="pending"))
        assert [t.id for t in paid] == ["a"]
        assert [t.id for t in pending] == ["b"]

    def test_type_filter(self):
        transactions = [
            tx("a", date(2024, 1, 5), type="income", category="Salário"),
            tx("b", date(2024, 1, 5)),
        ]
        selected = select_transactions(
            transactions, FilterSpec(transaction_type=TypeFilter.INCOME),
        )
        assert [t.id for t in selected] == ["a"]

    def test_all_predicates_must_pass(self):
        """Test that predicates combine with AND."""
        transaction = tx("a", date(2024, 1, 5), category="Lazer", partner="Ana")
        assert matches(transaction, FilterSpec(
            date_range=JANUARY,
            category="Lazer",
            payers=PayerSelection.named("Ana"),
        ))
        assert not matches(transaction, FilterSpec(
            date_range=JANUARY,
            category="Lazer",
            payers=PayerSelection.individual_only(),
        ))

    def test_selection_preserves_input_order(self):
        transactions = [
            tx("a", date(2024, 1, 20)),
            tx("b", date(2024, 1, 5)),
            tx("c", date(2024, 1, 25)),
        ]
        selected = select_transactions(transactions, FilterSpec())
        assert [t.id for t in selected] == ["a", "b", "c"]
        assert selected is not transactions

    def test_sort_by_date_desc_is_stable(self):
        transactions = [
            tx("a", date(2024, 1, 5)),
            tx("b", date(2024, 1, 20)),
            tx("c", date(2024, 1, 5)),
        ]
        assert [t.id for t in sort_by_date_desc(transactions)] == ["b", "a", "c"]
