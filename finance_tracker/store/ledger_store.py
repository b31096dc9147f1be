"""
Ledger Store

Owns the in-memory ledger snapshot and routes every mutation through the
storage collaborator.

DESIGN DECISION: Storage first, snapshot second. A mutation:
1. Validates its input (ValidationError / ValueError, storage untouched)
2. Writes through LedgerStorageInterface
3. Only on success, swaps the snapshot for one holding the entity exactly
   as storage returned it

If storage raises StorageError the snapshot stays as it was, the failure is
logged and audited, and the call returns False. There is no automatic
retry; the caller decides whether to try again.

Readers get immutable LedgerSnapshot values, so a derivation never sees a
half-applied mutation.
"""

from datetime import date
from typing import Any, Awaitable, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.engine.installments import InstallmentMode, plan_installments
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import (
    Account,
    CategoryScope,
    CreditCard,
    LedgerSnapshot,
    Transaction,
    UserCategories,
    find_by_id,
)
from finance_tracker.services.storage import LedgerStorageInterface, StorageError
from finance_tracker.validation import TransactionValidator


logger = structlog.get_logger(__name__)

# Fields a transaction edit may touch; id is immutable.
EDITABLE_TRANSACTION_FIELDS = frozenset({
    "description",
    "amount",
    "type",
    "category",
    "date",
    "payment_date",
    "is_paid",
    "card_id",
    "account_id",
    "is_split",
    "split_details",
    "is_reserve_withdrawal",
})

EDITABLE_CARD_FIELDS = frozenset({
    "name",
    "color",
    "credit_limit",
    "closing_day",
    "due_day",
    "account_id",
})

_FAILED = object()


def _coerce(model, value):
    """Accept a model instance or a raw mapping (validated on the spot)."""
    if isinstance(value, model):
        return value
    return model.model_validate(value)


def _check_update_keys(updates: dict, allowed: frozenset) -> None:
    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(unknown)}")


class LedgerStore:
    """
    Single writer of the ledger.

    Usage:
        store = LedgerStore(InMemoryLedgerStorage(), AuditLogger())
        await store.load()
        await store.create_transaction({...})
        snapshot = store.snapshot()
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or TransactionValidator()
        self._snapshot = LedgerSnapshot()

    def snapshot(self) -> LedgerSnapshot:
        """Current immutable view of the ledger."""
        return self._snapshot

    # ===== Internals =====

    def _replace(self, **changes) -> None:
        self._snapshot = self._snapshot.model_copy(update=changes)

    async def _persist(
        self,
        call: Awaitable,
        entity_type: str,
        operation: str,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        """
        Await a storage call.

        Returns the call's result, or _FAILED after logging and auditing a
        StorageError.
        """
        try:
            return await call
        except StorageError as e:
            logger.error(
                "ledger_save_failed",
                entity_type=entity_type,
                operation=operation,
                entity_id=entity_id,
                error=str(e),
            )
            await self._audit_logger.log_save_failed(
                entity_type=entity_type,
                operation=operation,
                error_message=str(e),
                entity_id=entity_id,
                correlation_id=correlation_id,
            )
            return _FAILED

    async def _audit_warnings(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        result = self._validator.validate(transaction, self._snapshot)
        if result.has_warnings:
            await self._audit_logger.log_validation_warnings(
                transaction_id=transaction.id,
                warnings=result.warnings,
                correlation_id=correlation_id,
            )

    def _find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        transaction = find_by_id(self._snapshot.transactions, transaction_id)
        if transaction is None:
            logger.warning("transaction_not_found", transaction_id=transaction_id)
        return transaction

    def _swap_transaction(self, persisted: Transaction) -> None:
        self._replace(transactions=tuple(
            persisted if t.id == persisted.id else t
            for t in self._snapshot.transactions
        ))

    # ===== Loading =====

    async def load(self) -> bool:
        """
        Replace the snapshot with the ledger held by storage.

        A storage without a saved registry yields the default categories.
        """
        async def read_all():
            return (
                await self._storage.list_transactions(),
                await self._storage.list_cards(),
                await self._storage.list_accounts(),
                await self._storage.load_categories(),
            )

        result = await self._persist(read_all(), "ledger", "load")
        if result is _FAILED:
            return False

        transactions, cards, accounts, categories = result
        self._snapshot = LedgerSnapshot(
            transactions=tuple(transactions),
            cards=tuple(cards),
            accounts=tuple(accounts),
            categories=categories or UserCategories(),
        )
        logger.info(
            "ledger_loaded",
            transactions=len(transactions),
            cards=len(cards),
            accounts=len(accounts),
        )
        return True

    # ===== Transactions =====

    async def create_transaction(
        self,
        transaction: Union[Transaction, dict],
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Persist a new transaction.

        Raises:
            ValidationError: If the transaction is malformed
        """
        transaction = _coerce(Transaction, transaction)
        await self._audit_warnings(transaction, correlation_id)

        persisted = await self._persist(
            self._storage.insert_transaction(transaction),
            "transaction", "create", transaction.id, correlation_id,
        )
        if persisted is _FAILED:
            return False

        self._replace(transactions=self._snapshot.transactions + (persisted,))
        await self._audit_logger.log_transaction_created(
            transaction_id=persisted.id,
            description=persisted.description,
            amount=str(persisted.amount),
            correlation_id=correlation_id,
        )
        return True

    async def create_installments(
        self,
        template: Union[Transaction, dict],
        count: int,
        mode: InstallmentMode = InstallmentMode.DIVIDE,
    ) -> bool:
        """
        Persist every installment of a purchase as one unit.

        If storage rejects any installment, the ones already written are
        deleted again and the snapshot is left untouched.
        """
        template = _coerce(Transaction, template)
        installments = plan_installments(template, count, mode)
        correlation_id = create_correlation_id()

        persisted_all: list[Transaction] = []
        for installment in installments:
            await self._audit_warnings(installment, correlation_id)
            persisted = await self._persist(
                self._storage.insert_transaction(installment),
                "transaction", "create", installment.id, correlation_id,
            )
            if persisted is _FAILED:
                await self._rollback_installments(persisted_all, correlation_id)
                return False
            persisted_all.append(persisted)

        self._replace(transactions=self._snapshot.transactions + tuple(persisted_all))
        for persisted in persisted_all:
            await self._audit_logger.log_transaction_created(
                transaction_id=persisted.id,
                description=persisted.description,
                amount=str(persisted.amount),
                correlation_id=correlation_id,
            )
        return True

    async def _rollback_installments(
        self,
        written: list[Transaction],
        correlation_id: UUID,
    ) -> list[str]:
        """
        Delete installments already written by a failed plan.

        Returns the ids storage still holds. Those are audited as one system
        error; the next `load()` brings them into the snapshot.
        """
        orphaned = []
        for transaction in written:
            deleted = await self._persist(
                self._storage.delete_transaction(transaction.id),
                "transaction", "rollback", transaction.id, correlation_id,
            )
            if deleted is _FAILED or not deleted:
                orphaned.append(transaction.id)

        if orphaned:
            logger.error(
                "installment_rollback_incomplete",
                orphaned_ids=orphaned,
                correlation_id=str(correlation_id),
            )
            await self._audit_logger.log_error(
                error_type="installment_rollback_incomplete",
                error_message=f"{len(orphaned)} installment(s) left in storage",
                details={"orphaned_ids": orphaned},
                correlation_id=correlation_id,
            )
        return orphaned

    async def update_transaction(
        self,
        transaction_id: str,
        updates: dict,
    ) -> bool:
        """
        Edit fields of an existing transaction.

        Marking a transaction as pending without giving a payment date
        clears the payment date; un-splitting it without split details
        clears the details.

        Raises:
            ValueError: If `updates` names a field that cannot be edited
            ValidationError: If the edited transaction is malformed
        """
        _check_update_keys(updates, EDITABLE_TRANSACTION_FIELDS)
        current = self._find_transaction(transaction_id)
        if current is None:
            return False

        values = {**current.model_dump(), **updates}
        if updates.get("is_paid") is False and "payment_date" not in updates:
            values["payment_date"] = None
        if updates.get("is_split") is False and "split_details" not in updates:
            values["split_details"] = None
        edited = Transaction.model_validate(values)
        await self._audit_warnings(edited)

        persisted = await self._persist(
            self._storage.update_transaction(edited),
            "transaction", "update", transaction_id,
        )
        if persisted is _FAILED:
            return False

        self._swap_transaction(persisted)
        await self._audit_logger.log_transaction_updated(
            transaction_id=transaction_id,
            fields=sorted(updates),
        )
        return True

    async def delete_transaction(self, transaction_id: str) -> bool:
        if self._find_transaction(transaction_id) is None:
            return False

        deleted = await self._persist(
            self._storage.delete_transaction(transaction_id),
            "transaction", "delete", transaction_id,
        )
        if deleted is _FAILED:
            return False
        if not deleted:
            logger.warning("storage_row_missing", operation="delete", entity_id=transaction_id)
            return False

        self._replace(transactions=tuple(
            t for t in self._snapshot.transactions if t.id != transaction_id
        ))
        await self._audit_logger.log_transaction_deleted(transaction_id=transaction_id)
        return True

    async def set_paid_status(
        self,
        transaction_id: str,
        paid: bool,
        payment_date: Optional[date] = None,
    ) -> bool:
        """
        Mark a transaction as paid or pending.

        Paying without a payment date uses today; going back to pending
        always clears the payment date.
        """
        current = self._find_transaction(transaction_id)
        if current is None:
            return False

        if paid:
            payment_date = payment_date or date.today()
        else:
            payment_date = None
        edited = Transaction.model_validate({
            **current.model_dump(),
            "is_paid": paid,
            "payment_date": payment_date,
        })

        persisted = await self._persist(
            self._storage.update_transaction(edited),
            "transaction", "set_paid_status", transaction_id,
        )
        if persisted is _FAILED:
            return False

        self._swap_transaction(persisted)
        await self._audit_logger.log_payment_status(
            transaction_id=transaction_id,
            is_paid=persisted.is_paid,
            payment_date=persisted.payment_date.isoformat() if persisted.payment_date else None,
        )
        return True

    async def toggle_paid(
        self,
        transaction_id: str,
        payment_date: Optional[date] = None,
    ) -> bool:
        """Flip the paid status of a transaction."""
        current = self._find_transaction(transaction_id)
        if current is None:
            return False
        return await self.set_paid_status(transaction_id, not current.is_paid, payment_date)

    # ===== Cards =====

    async def create_card(self, card: Union[CreditCard, dict]) -> bool:
        card = _coerce(CreditCard, card)
        persisted = await self._persist(
            self._storage.insert_card(card), "card", "create", card.id,
        )
        if persisted is _FAILED:
            return False

        self._replace(cards=self._snapshot.cards + (persisted,))
        await self._audit_logger.log_entity_changed(
            AuditEventType.CARD_CREATED, "card", persisted.id, persisted.name,
        )
        return True

    async def update_card(self, card_id: str, updates: dict) -> bool:
        """
        Edit fields of an existing card.

        Raises:
            ValueError: If `updates` names a field that cannot be edited
            ValidationError: If the edited card is malformed
        """
        _check_update_keys(updates, EDITABLE_CARD_FIELDS)
        current = self._snapshot.find_card(card_id)
        if current is None:
            logger.warning("card_not_found", card_id=card_id)
            return False

        edited = CreditCard.model_validate({**current.model_dump(), **updates})
        persisted = await self._persist(
            self._storage.update_card(edited), "card", "update", card_id,
        )
        if persisted is _FAILED:
            return False

        self._replace(cards=tuple(
            persisted if c.id == card_id else c for c in self._snapshot.cards
        ))
        await self._audit_logger.log_entity_changed(
            AuditEventType.CARD_UPDATED, "card", card_id, persisted.name,
        )
        return True

    async def delete_card(self, card_id: str) -> bool:
        """
        Delete a card.

        Transactions charged on it keep their card_id; views treat the
        stale reference as "no card".
        """
        current = self._snapshot.find_card(card_id)
        if current is None:
            logger.warning("card_not_found", card_id=card_id)
            return False

        deleted = await self._persist(
            self._storage.delete_card(card_id), "card", "delete", card_id,
        )
        if deleted is _FAILED:
            return False
        if not deleted:
            logger.warning("storage_row_missing", operation="delete", entity_id=card_id)
            return False

        self._replace(cards=tuple(c for c in self._snapshot.cards if c.id != card_id))
        await self._audit_logger.log_entity_changed(
            AuditEventType.CARD_DELETED, "card", card_id, current.name,
        )
        return True

    # ===== Accounts =====

    async def create_account(self, account: Union[Account, dict]) -> bool:
        account = _coerce(Account, account)
        persisted = await self._persist(
            self._storage.insert_account(account), "account", "create", account.id,
        )
        if persisted is _FAILED:
            return False

        self._replace(accounts=self._snapshot.accounts + (persisted,))
        await self._audit_logger.log_entity_changed(
            AuditEventType.ACCOUNT_CREATED, "account", persisted.id, persisted.name,
        )
        return True

    async def delete_account(self, account_id: str) -> bool:
        """Delete an account; linked cards and transactions are left as they are."""
        current = self._snapshot.find_account(account_id)
        if current is None:
            logger.warning("account_not_found", account_id=account_id)
            return False

        deleted = await self._persist(
            self._storage.delete_account(account_id), "account", "delete", account_id,
        )
        if deleted is _FAILED:
            return False
        if not deleted:
            logger.warning("storage_row_missing", operation="delete", entity_id=account_id)
            return False

        self._replace(accounts=tuple(
            a for a in self._snapshot.accounts if a.id != account_id
        ))
        await self._audit_logger.log_entity_changed(
            AuditEventType.ACCOUNT_DELETED, "account", account_id, current.name,
        )
        return True

    # ===== Category / payer registry =====

    async def _save_categories(
        self,
        categories: UserCategories,
        event_type: AuditEventType,
        scope: CategoryScope,
        name: str,
    ) -> bool:
        operation = "upsert" if event_type == AuditEventType.CATEGORY_UPSERTED else "delete"
        persisted = await self._persist(
            self._storage.save_categories(categories), "category", operation, name,
        )
        if persisted is _FAILED:
            return False

        self._replace(categories=persisted)
        await self._audit_logger.log_entity_changed(
            event_type, "category", name, f"{scope.value}/{name}",
        )
        return True

    async def upsert_category(
        self,
        scope: CategoryScope,
        name: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> bool:
        """
        Add a category or payer (or update its color/icon).

        Raises:
            ValueError: If the name is blank or the scope unknown
        """
        scope = CategoryScope(scope)
        categories = self._snapshot.categories.with_entry(scope, name, color, icon)
        return await self._save_categories(
            categories, AuditEventType.CATEGORY_UPSERTED, scope, name.strip(),
        )

    async def delete_category(self, scope: CategoryScope, name: str) -> bool:
        """
        Remove a category or payer from the registry.

        Transactions using the name keep it.
        """
        scope = CategoryScope(scope)
        if not self._snapshot.categories.contains(scope, name):
            logger.warning("category_not_found", scope=scope.value, name=name)
            return False

        categories = self._snapshot.categories.without_entry(scope, name)
        return await self._save_categories(
            categories, AuditEventType.CATEGORY_DELETED, scope, name,
        )
