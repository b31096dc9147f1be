"""
Abstract Storage Interface

DESIGN DECISION: The ledger store never talks to a backend directly. It goes
through this interface, which allows us to:
1. Plug in any remote database without touching the ledger logic
2. Use in-memory storage for wiring and tests
3. Fail a write in tests to check the snapshot stays consistent

Writes return the entity as persisted (backends may normalize it); the
store mirrors that value, never its own input.

The interface is intentionally simple - we're not building a full ORM.
Just the operations the ledger needs.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import (
    Account,
    CreditCard,
    Transaction,
    UserCategories,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation must implement these methods. Failures are
    reported by raising StorageError (or one of its subclasses).
    """

    # ===== TRANSACTIONS =====

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """
        Load every transaction of the ledger.

        Returns:
            Transactions in storage order

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        """
        Persist a new transaction.

        Args:
            transaction: The validated transaction

        Returns:
            The transaction as stored

        Raises:
            DuplicateError: If the ID is already taken
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Replace an existing transaction (matched by ID).

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction by ID.

        Returns:
            True if a row was deleted, False if it didn't exist
        """
        pass

    # ===== CARDS =====

    @abstractmethod
    async def list_cards(self) -> list[CreditCard]:
        pass

    @abstractmethod
    async def insert_card(self, card: CreditCard) -> CreditCard:
        pass

    @abstractmethod
    async def update_card(self, card: CreditCard) -> CreditCard:
        pass

    @abstractmethod
    async def delete_card(self, card_id: str) -> bool:
        pass

    # ===== ACCOUNTS =====

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        pass

    @abstractmethod
    async def insert_account(self, account: Account) -> Account:
        pass

    @abstractmethod
    async def delete_account(self, account_id: str) -> bool:
        pass

    # ===== CATEGORY / PAYER REGISTRY =====

    @abstractmethod
    async def load_categories(self) -> Optional[UserCategories]:
        """
        Load the category registry.

        Returns:
            The stored registry, None when nothing was saved yet
        """
        pass

    @abstractmethod
    async def save_categories(self, categories: UserCategories) -> UserCategories:
        """
        Replace the whole category registry.

        Returns:
            The registry as stored
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one installment plan).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'transaction', 'card')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceFailure(StorageError):
    """The backend rejected or could not complete a write."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
