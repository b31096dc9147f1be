"""Tests for semantic transaction validation."""

from datetime import date
from decimal import Decimal

from finance_tracker.models.ledger import (
    Account,
    CreditCard,
    LedgerSnapshot,
    SplitDetails,
    Transaction,
    UserCategories,
)
from finance_tracker.validation import (
    TransactionValidator,
    ValidationIssue,
    ValidationResult,
)


SNAPSHOT = LedgerSnapshot(
    cards=(CreditCard(id="c1", name="Nubank", credit_limit=Decimal("1000")),),
    accounts=(Account(id="a1", name="Conta"),),
    categories=UserCategories(payers=["Ana"]),
)


def tx(**overrides) -> Transaction:
    values = {
        "id": "t1",
        "description": "Mercado",
        "amount": Decimal("150"),
        "type": "expense",
        "category": "Alimentação",
        "date": date(2024, 1, 10),
    }
    values.update(overrides)
    return Transaction(**values)


def issue_types(result: ValidationResult) -> list[str]:
    return [issue.issue_type for issue in result.issues]


class TestTransactionValidator:
    """Tests for the semantic checks."""

    def test_clean_transaction(self):
        result = TransactionValidator().validate(tx(card_id="c1"), SNAPSHOT)
        assert result.issues == []
        assert not result.has_warnings
        assert result.transaction_id == "t1"

    def test_unknown_category(self):
        result = TransactionValidator().validate(tx(category="Pets"), SNAPSHOT)
        assert issue_types(result) == ["unknown_category"]

    def test_category_checked_against_own_scope(self):
        """Test that an expense category does not validate an income."""
        result = TransactionValidator().validate(
            tx(type="income", category="Moradia"), SNAPSHOT,
        )
        assert issue_types(result) == ["unknown_category"]

    def test_unregistered_partner(self):
        transaction = tx(
            is_split=True,
            split_details=SplitDetails(
                user_part=Decimal("75"), partner_part=Decimal("75"), partner_name="Carla",
            ),
        )
        result = TransactionValidator().validate(transaction, SNAPSHOT)
        assert issue_types(result) == ["unregistered_partner"]
        assert result.has_warnings

    def test_registered_partner(self):
        transaction = tx(
            is_split=True,
            split_details=SplitDetails(
                user_part=Decimal("75"), partner_part=Decimal("75"), partner_name="Ana",
            ),
        )
        assert TransactionValidator().validate(transaction, SNAPSHOT).issues == []

    def test_blank_partner(self):
        transaction = tx(
            is_split=True,
            split_details=SplitDetails(user_part=Decimal("75"), partner_part=Decimal("75")),
        )
        result = TransactionValidator().validate(transaction, SNAPSHOT)
        assert issue_types(result) == ["missing_partner"]
        assert "Indefinido" in result.warnings[0]

    def test_unresolved_references(self):
        result = TransactionValidator().validate(
            tx(card_id="gone", account_id="gone"), SNAPSHOT,
        )
        assert issue_types(result) == [
            "unknown_reference", "unknown_reference", "ambiguous_source",
        ]

    def test_both_sources(self):
        result = TransactionValidator().validate(
            tx(card_id="c1", account_id="a1"), SNAPSHOT,
        )
        assert issue_types(result) == ["ambiguous_source"]

    def test_reserve_withdrawal_without_account(self):
        result = TransactionValidator().validate(
            tx(is_reserve_withdrawal=True), SNAPSHOT,
        )
        assert issue_types(result) == ["missing_account"]

    def test_suspicious_amount(self):
        result = TransactionValidator().validate(
            tx(amount=Decimal("2000000")), SNAPSHOT,
        )
        assert issue_types(result) == ["suspicious_value"]

    def test_suspicious_amount_threshold_from_env(self, monkeypatch):
        monkeypatch.setenv("LEDGER_SUSPICIOUS_AMOUNT", "100")
        result = TransactionValidator().validate(tx(), SNAPSHOT)
        assert issue_types(result) == ["suspicious_value"]


class TestValidationResult:
    """Tests for ValidationResult helpers."""

    def test_warnings_only_lists_warning_messages(self):
        result = ValidationResult(
            transaction_id="t1",
            issues=[
                ValidationIssue(field="amount", issue_type="x", message="careful"),
                ValidationIssue(field="date", issue_type="y", message="fyi", severity="info"),
            ],
        )
        assert result.warnings == ["careful"]
        assert result.has_warnings
