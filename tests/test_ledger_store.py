"""Tests for the ledger store (async mutations over in-memory storage)."""

import asyncio

import pytest
from datetime import date
from decimal import Decimal

from finance_tracker.audit import AuditLogger
from finance_tracker.engine.installments import InstallmentMode
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import (
    Account,
    CategoryScope,
    CreditCard,
    Transaction,
    UserCategories,
)
from finance_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    PersistenceFailure,
)
from finance_tracker.store import LedgerStore


class FailingStorage(InMemoryLedgerStorage):
    """Rejects every insert after the first `succeed` ones."""

    def __init__(self, succeed: int = 0, **kwargs):
        super().__init__(**kwargs)
        self._remaining = succeed

    async def insert_transaction(self, transaction):
        if self._remaining <= 0:
            raise PersistenceFailure("backend offline")
        self._remaining -= 1
        return await super().insert_transaction(transaction)

    async def update_transaction(self, transaction):
        raise PersistenceFailure("backend offline")

    async def save_categories(self, categories):
        raise PersistenceFailure("backend offline")


class StuckStorage(FailingStorage):
    """Also rejects every delete, so nothing written can be undone."""

    async def delete_transaction(self, transaction_id):
        raise PersistenceFailure("backend offline")


def expense(**overrides) -> dict:
    values = {
        "id": "t1",
        "description": "Mercado",
        "amount": "150.00",
        "type": "expense",
        "category": "Alimentação",
        "date": "2024-01-10",
    }
    values.update(overrides)
    return values


def make_store(storage=None):
    audit_storage = InMemoryAuditStorage()
    store = LedgerStore(
        storage if storage is not None else InMemoryLedgerStorage(),
        AuditLogger(audit_storage),
    )
    return store, audit_storage


def event_types(audit_storage: InMemoryAuditStorage) -> list[AuditEventType]:
    return [e.event_type for e in audit_storage.events]


class TestLoad:
    """Tests for loading the snapshot from storage."""

    def test_load_reads_everything(self):
        storage = InMemoryLedgerStorage(
            transactions=[Transaction(**expense())],
            cards=[CreditCard(id="c1", name="Nubank", credit_limit=Decimal("1000"))],
            accounts=[Account(id="a1", name="Conta")],
            categories=UserCategories(payers=["Ana"]),
        )
        store, _ = make_store(storage)

        assert asyncio.run(store.load())
        snapshot = store.snapshot()
        assert [t.id for t in snapshot.transactions] == ["t1"]
        assert snapshot.find_card("c1").name == "Nubank"
        assert snapshot.find_account("a1").name == "Conta"
        assert snapshot.categories.payers == ["Ana"]

    def test_load_without_registry_uses_defaults(self):
        store, _ = make_store()
        assert asyncio.run(store.load())
        assert store.snapshot().categories == UserCategories()


class TestTransactionMutations:
    """Tests for create / update / delete of transactions."""

    def test_create_transaction(self):
        store, audit = make_store()
        assert asyncio.run(store.create_transaction(expense()))

        transaction = store.snapshot().transactions[0]
        assert transaction.amount == Decimal("150.00")
        assert AuditEventType.TRANSACTION_CREATED in event_types(audit)

    def test_malformed_transaction_raises_before_storage(self):
        storage = InMemoryLedgerStorage()
        store, _ = make_store(storage)
        with pytest.raises(ValueError):
            asyncio.run(store.create_transaction(expense(amount="-5")))
        assert asyncio.run(storage.list_transactions()) == []
        assert store.snapshot().transactions == ()

    def test_storage_failure_leaves_snapshot_unchanged(self):
        store, audit = make_store(FailingStorage())
        before = store.snapshot()

        assert not asyncio.run(store.create_transaction(expense()))
        assert store.snapshot() == before
        assert AuditEventType.SAVE_FAILED in event_types(audit)
        assert AuditEventType.TRANSACTION_CREATED not in event_types(audit)

    def test_semantic_warnings_are_audited_not_blocking(self):
        """Test that an unregistered partner is saved with a warning."""
        store, audit = make_store()
        created = asyncio.run(store.create_transaction(expense(
            is_split=True,
            split_details={"userPart": "75", "partnerPart": "75", "partnerName": "Carla"},
        )))
        assert created
        warnings = [
            e for e in audit.events
            if e.event_type == AuditEventType.VALIDATION_WARNING
        ]
        assert len(warnings) == 1
        assert any("Carla" in w for w in warnings[0].details["warnings"])

    def test_update_transaction(self):
        store, audit = make_store()
        asyncio.run(store.create_transaction(expense()))

        assert asyncio.run(store.update_transaction("t1", {"amount": "200", "category": "Lazer"}))
        transaction = store.snapshot().transactions[0]
        assert transaction.amount == Decimal("200")
        assert transaction.category == "Lazer"
        assert AuditEventType.TRANSACTION_UPDATED in event_types(audit)

    def test_update_rejects_unknown_fields(self):
        store, _ = make_store()
        asyncio.run(store.create_transaction(expense()))
        with pytest.raises(ValueError):
            asyncio.run(store.update_transaction("t1", {"id": "other"}))

    def test_update_revalidates(self):
        store, _ = make_store()
        asyncio.run(store.create_transaction(expense()))
        with pytest.raises(ValueError):
            asyncio.run(store.update_transaction("t1", {"is_paid": True}))

    def test_update_to_pending_clears_payment_date(self):
        store, _ = make_store()
        asyncio.run(store.create_transaction(expense(is_paid=True, payment_date="2024-01-11")))
        assert asyncio.run(store.update_transaction("t1", {"is_paid": False}))
        assert store.snapshot().transactions[0].payment_date is None

    def test_update_unknown_id_returns_false(self):
        store, _ = make_store()
        assert not asyncio.run(store.update_transaction("missing", {"amount": "1"}))

    def test_update_storage_failure(self):
        store, _ = make_store(FailingStorage(succeed=1))
        asyncio.run(store.create_transaction(expense()))
        before = store.snapshot()
        assert not asyncio.run(store.update_transaction("t1", {"amount": "999"}))
        assert store.snapshot() == before

    def test_delete_transaction(self):
        store, audit = make_store()
        asyncio.run(store.create_transaction(expense()))
        assert asyncio.run(store.delete_transaction("t1"))
        assert store.snapshot().transactions == ()
        assert not asyncio.run(store.delete_transaction("t1"))
        assert AuditEventType.TRANSACTION_DELETED in event_types(audit)


class TestPaidStatus:
    """Tests for paying and un-paying transactions."""

    def test_set_paid_with_date(self):
        store, audit = make_store()
        asyncio.run(store.create_transaction(expense()))
        assert asyncio.run(store.set_paid_status("t1", True, date(2024, 1, 12)))
        transaction = store.snapshot().transactions[0]
        assert transaction.is_paid
        assert transaction.payment_date == date(2024, 1, 12)
        assert AuditEventType.PAYMENT_STATUS_UPDATED in event_types(audit)

    def test_set_paid_defaults_to_today(self):
        store, _ = make_store()
        asyncio.run(store.create_transaction(expense()))
        asyncio.run(store.set_paid_status("t1", True))
        assert store.snapshot().transactions[0].payment_date == date.today()

    def test_toggle_twice_restores_pending(self):
        store, _ = make_store()
        asyncio.run(store.create_transaction(expense()))
        assert asyncio.run(store.toggle_paid("t1", date(2024, 1, 12)))
        assert store.snapshot().transactions[0].is_paid
        assert asyncio.run(store.toggle_paid("t1"))
        transaction = store.snapshot().transactions[0]
        assert not transaction.is_paid
        assert transaction.payment_date is None

    def test_toggle_unknown_id(self):
        store, _ = make_store()
        assert not asyncio.run(store.toggle_paid("missing"))


class TestInstallments:
    """Tests for persisting installment plans."""

    def test_create_installments(self):
        store, audit = make_store()
        assert asyncio.run(store.create_installments(expense(amount="100"), 3))

        transactions = store.snapshot().transactions
        assert len(transactions) == 3
        assert sum(t.amount for t in transactions) == Decimal("100")
        created = [
            e for e in audit.events
            if e.event_type == AuditEventType.TRANSACTION_CREATED
        ]
        assert len(created) == 3
        assert len({e.correlation_id for e in created}) == 1

    def test_repeat_mode(self):
        store, _ = make_store()
        asyncio.run(store.create_installments(expense(amount="40"), 2, InstallmentMode.REPEAT))
        assert [t.amount for t in store.snapshot().transactions] == [Decimal("40")] * 2

    def test_partial_failure_rolls_back(self):
        """Test that a rejected installment undoes the ones already written."""
        storage = FailingStorage(succeed=2)
        store, audit = make_store(storage)

        assert not asyncio.run(store.create_installments(expense(amount="90"), 3))
        assert store.snapshot().transactions == ()
        assert asyncio.run(storage.list_transactions()) == []
        assert AuditEventType.SAVE_FAILED in event_types(audit)

    def test_failed_rollback_is_reported(self):
        """Test that installments storage refuses to delete are audited together."""
        storage = StuckStorage(succeed=2)
        store, audit = make_store(storage)

        assert not asyncio.run(store.create_installments(expense(amount="90"), 3))
        assert store.snapshot().transactions == ()
        left = asyncio.run(storage.list_transactions())
        assert len(left) == 2

        errors = [e for e in audit.events if e.event_type == AuditEventType.SYSTEM_ERROR]
        assert len(errors) == 1
        assert sorted(errors[0].details["orphaned_ids"]) == sorted(t.id for t in left)

        asyncio.run(store.load())
        assert len(store.snapshot().transactions) == 2


class TestCardsAndAccounts:
    """Tests for card and account mutations."""

    def test_card_lifecycle(self):
        store, audit = make_store()
        assert asyncio.run(store.create_card({"id": "c1", "name": "Nubank", "credit_limit": "1000"}))
        assert asyncio.run(store.update_card("c1", {"credit_limit": "2500", "closing_day": 10}))

        card = store.snapshot().find_card("c1")
        assert card.credit_limit == Decimal("2500")
        assert card.closing_day == 10

        assert asyncio.run(store.delete_card("c1"))
        assert store.snapshot().cards == ()
        assert event_types(audit) == [
            AuditEventType.CARD_CREATED,
            AuditEventType.CARD_UPDATED,
            AuditEventType.CARD_DELETED,
        ]

    def test_update_card_rejects_unknown_fields(self):
        store, _ = make_store()
        asyncio.run(store.create_card({"id": "c1", "name": "Nubank", "credit_limit": "1000"}))
        with pytest.raises(ValueError):
            asyncio.run(store.update_card("c1", {"balance": "5"}))

    def test_update_card_rejects_invalid_day(self):
        store, _ = make_store()
        asyncio.run(store.create_card({"id": "c1", "name": "Nubank", "credit_limit": "1000"}))
        with pytest.raises(ValueError):
            asyncio.run(store.update_card("c1", {"due_day": 32}))

    def test_delete_card_keeps_transaction_references(self):
        """Test that deleting a card does not cascade to transactions."""
        store, _ = make_store()
        asyncio.run(store.create_card({"id": "c1", "name": "Nubank", "credit_limit": "1000"}))
        asyncio.run(store.create_transaction(expense(card_id="c1")))
        asyncio.run(store.delete_card("c1"))
        assert store.snapshot().transactions[0].card_id == "c1"

    def test_delete_unknown_card(self):
        store, _ = make_store()
        assert not asyncio.run(store.delete_card("missing"))

    def test_account_lifecycle(self):
        store, audit = make_store()
        assert asyncio.run(store.create_account({"id": "a1", "name": "Conta", "type": "checking"}))
        assert store.snapshot().find_account("a1") is not None
        assert asyncio.run(store.delete_account("a1"))
        assert not asyncio.run(store.delete_account("a1"))
        assert AuditEventType.ACCOUNT_DELETED in event_types(audit)


class TestCategories:
    """Tests for registry edits."""

    def test_upsert_payer(self):
        store, audit = make_store()
        assert asyncio.run(store.upsert_category(CategoryScope.PAYERS, "Ana", color="#ff00aa"))
        categories = store.snapshot().categories
        assert categories.payers == ["Ana"]
        assert categories.color_for("Ana") == "#ff00aa"
        assert AuditEventType.CATEGORY_UPSERTED in event_types(audit)

    def test_upsert_blank_name_raises(self):
        store, _ = make_store()
        with pytest.raises(ValueError):
            asyncio.run(store.upsert_category("expense", " "))

    def test_delete_category(self):
        store, _ = make_store()
        assert asyncio.run(store.delete_category(CategoryScope.EXPENSE, "Lazer"))
        assert "Lazer" not in store.snapshot().categories.expense
        assert not asyncio.run(store.delete_category(CategoryScope.EXPENSE, "Lazer"))

    def test_registry_save_failure(self):
        store, audit = make_store(FailingStorage())
        before = store.snapshot()
        assert not asyncio.run(store.upsert_category(CategoryScope.PAYERS, "Ana"))
        assert store.snapshot() == before
        assert AuditEventType.SAVE_FAILED in event_types(audit)
