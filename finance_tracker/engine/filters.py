"""
Filter Engine

Selects the working set of a view from the full ledger. Selection keeps the
input order; views that need newest-first ordering sort afterwards with
sort_by_date_desc.
"""

from typing import Iterable

from finance_tracker.models.filters import (
    ALL_TOKEN,
    FilterSpec,
    StatusFilter,
    TypeFilter,
)
from finance_tracker.models.ledger import Transaction


def matches_date(transaction: Transaction, spec: FilterSpec) -> bool:
    if spec.date_range is None:
        return True
    return spec.date_range.contains(transaction.date)


def matches_category(transaction: Transaction, spec: FilterSpec) -> bool:
    return spec.category == ALL_TOKEN or transaction.category == spec.category


def matches_status(transaction: Transaction, spec: FilterSpec) -> bool:
    if spec.status == StatusFilter.PAID:
        return transaction.is_paid
    if spec.status == StatusFilter.PENDING:
        return not transaction.is_paid
    return True


def matches_type(transaction: Transaction, spec: FilterSpec) -> bool:
    if spec.transaction_type == TypeFilter.ALL:
        return True
    return transaction.type.value == spec.transaction_type.value


def matches(transaction: Transaction, spec: FilterSpec) -> bool:
    """True when the transaction passes every predicate of `spec`."""
    return (
        matches_date(transaction, spec)
        and matches_category(transaction, spec)
        and matches_status(transaction, spec)
        and matches_type(transaction, spec)
        and spec.payers.matches(transaction)
    )


def select_transactions(
    transactions: Iterable[Transaction],
    spec: FilterSpec,
) -> list[Transaction]:
    """
    Return the transactions selected by `spec`, in their original order.

    Args:
        transactions: Full ledger (or any subset of it)
        spec: View predicates

    Returns:
        New list; the input is not modified.
    """
    return [t for t in transactions if matches(t, spec)]


def sort_by_date_desc(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest first. Stable, so same-day entries keep their relative order."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)
