"""
In-Memory Storage Implementation

Keeps every entity as a storage row (the `to_row()` shape) in plain dicts,
so reads go through the same row codec a remote backend would use. Used by
the default app wiring and by the tests.

TRADEOFFS:
- Nothing survives the process
- No concurrency control (callers are expected to debounce)
"""

from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import (
    Account,
    CreditCard,
    Transaction,
    UserCategories,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """
    Ledger storage backed by dictionaries of rows.

    Rows are keyed by entity ID and kept in insertion order.
    """

    def __init__(
        self,
        transactions: Optional[list[Transaction]] = None,
        cards: Optional[list[CreditCard]] = None,
        accounts: Optional[list[Account]] = None,
        categories: Optional[UserCategories] = None,
    ):
        self._transactions: dict[str, dict] = {
            t.id: t.to_row() for t in transactions or []
        }
        self._cards: dict[str, dict] = {c.id: c.to_row() for c in cards or []}
        self._accounts: dict[str, dict] = {a.id: a.to_row() for a in accounts or []}
        self._categories: Optional[dict] = categories.to_row() if categories else None

    # ===== Row helpers =====

    @staticmethod
    def _insert(table: dict[str, dict], entity, kind: str):
        if entity.id in table:
            raise DuplicateError(f"{kind} already exists: {entity.id}")
        table[entity.id] = entity.to_row()
        return type(entity).from_row(table[entity.id])

    @staticmethod
    def _replace(table: dict[str, dict], entity, kind: str):
        if entity.id not in table:
            raise NotFoundError(f"{kind} not found: {entity.id}")
        table[entity.id] = entity.to_row()
        return type(entity).from_row(table[entity.id])

    # ===== Transactions =====

    async def list_transactions(self) -> list[Transaction]:
        return [Transaction.from_row(row) for row in self._transactions.values()]

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        return self._insert(self._transactions, transaction, "Transaction")

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        return self._replace(self._transactions, transaction, "Transaction")

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._transactions.pop(transaction_id, None) is not None

    # ===== Cards =====

    async def list_cards(self) -> list[CreditCard]:
        return [CreditCard.from_row(row) for row in self._cards.values()]

    async def insert_card(self, card: CreditCard) -> CreditCard:
        return self._insert(self._cards, card, "Card")

    async def update_card(self, card: CreditCard) -> CreditCard:
        return self._replace(self._cards, card, "Card")

    async def delete_card(self, card_id: str) -> bool:
        return self._cards.pop(card_id, None) is not None

    # ===== Accounts =====

    async def list_accounts(self) -> list[Account]:
        return [Account.from_row(row) for row in self._accounts.values()]

    async def insert_account(self, account: Account) -> Account:
        return self._insert(self._accounts, account, "Account")

    async def delete_account(self, account_id: str) -> bool:
        return self._accounts.pop(account_id, None) is not None

    # ===== Registry =====

    async def load_categories(self) -> Optional[UserCategories]:
        if self._categories is None:
            return None
        return UserCategories.from_row(self._categories)

    async def save_categories(self, categories: UserCategories) -> UserCategories:
        self._categories = categories.to_row()
        return UserCategories.from_row(self._categories)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
