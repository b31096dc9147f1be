"""Ledger store package."""

from finance_tracker.store.ledger_store import (
    EDITABLE_CARD_FIELDS,
    EDITABLE_TRANSACTION_FIELDS,
    LedgerStore,
)

__all__ = ["EDITABLE_CARD_FIELDS", "EDITABLE_TRANSACTION_FIELDS", "LedgerStore"]
