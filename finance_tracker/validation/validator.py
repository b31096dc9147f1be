"""
Semantic Transaction Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION (models.ledger):
- Types, required fields, positive amounts
- Split parts adding up, paid <=> payment date
- Violations raise ValidationError and the transaction never exists

STAGE 2 - SEMANTIC VALIDATION (this module):
- Checks against the rest of the ledger: registry, cards, accounts
- Suspicious amount detection
- Findings are warnings only; the transaction is still saved and the
  warnings are recorded in the audit log

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.config import get_settings
from finance_tracker.models.ledger import (
    CategoryScope,
    LedgerSnapshot,
    Transaction,
)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'unknown_reference', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="warning",
        pattern="^(error|warning|info)$",
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of the semantic checks on one transaction."""

    transaction_id: str
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


class TransactionValidator:
    """
    Checks a schema-valid transaction against the current ledger.

    Never raises for semantic problems; every finding is a ValidationIssue.
    """

    def __init__(self):
        self._settings = get_settings().ledger

    def _check_category(
        self,
        transaction: Transaction,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        scope = CategoryScope.INCOME if transaction.is_income else CategoryScope.EXPENSE
        if snapshot.categories.contains(scope, transaction.category):
            return []
        return [ValidationIssue(
            field="category",
            issue_type="unknown_category",
            message=(
                f"Category '{transaction.category}' is not registered "
                f"for {scope.value} transactions"
            ),
            suggested_fix="Add the category to the registry or pick an existing one",
        )]

    def _check_partner(
        self,
        transaction: Transaction,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        name = transaction.partner_name
        if name is None:
            return []
        if not name:
            return [ValidationIssue(
                field="split_details.partnerName",
                issue_type="missing_partner",
                message=(
                    "Split transaction has no partner name; its share is "
                    f"reported as '{self._settings.undefined_partner_label}'"
                ),
            )]
        if snapshot.categories.has_payer(name):
            return []
        return [ValidationIssue(
            field="split_details.partnerName",
            issue_type="unregistered_partner",
            message=f"Partner '{name}' is not in the payer registry",
            suggested_fix="Register the payer so the settlement report lists them",
        )]

    def _check_references(
        self,
        transaction: Transaction,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        issues = []

        if transaction.card_id and snapshot.find_card(transaction.card_id) is None:
            issues.append(ValidationIssue(
                field="card_id",
                issue_type="unknown_reference",
                message=f"Card {transaction.card_id} does not exist",
            ))
        if transaction.account_id and snapshot.find_account(transaction.account_id) is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_reference",
                message=f"Account {transaction.account_id} does not exist",
            ))
        if transaction.card_id and transaction.account_id:
            issues.append(ValidationIssue(
                field="card_id",
                issue_type="ambiguous_source",
                message="Transaction is linked to both a card and an account",
                suggested_fix="Keep only the card or the account",
            ))
        if transaction.is_reserve_withdrawal and not transaction.account_id:
            issues.append(ValidationIssue(
                field="is_reserve_withdrawal",
                issue_type="missing_account",
                message="Reserve withdrawal is not linked to any account",
            ))

        return issues

    def _check_amount(self, transaction: Transaction) -> list[ValidationIssue]:
        if transaction.amount <= self._settings.suspicious_amount:
            return []
        return [ValidationIssue(
            field="amount",
            issue_type="suspicious_value",
            message=f"Amount {transaction.amount} is unusually high",
            suggested_fix="Check for a misplaced decimal separator",
        )]

    def validate(
        self,
        transaction: Transaction,
        snapshot: LedgerSnapshot,
    ) -> ValidationResult:
        """
        Run every semantic check.

        Args:
            transaction: A transaction that already passed schema validation
            snapshot: Ledger state the transaction is checked against

        Returns:
            ValidationResult listing all issues found
        """
        issues = [
            *self._check_category(transaction, snapshot),
            *self._check_partner(transaction, snapshot),
            *self._check_references(transaction, snapshot),
            *self._check_amount(transaction),
        ]
        return ValidationResult(transaction_id=transaction.id, issues=issues)
