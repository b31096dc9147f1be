"""Semantic validation package."""

from finance_tracker.validation.validator import (
    TransactionValidator,
    ValidationIssue,
    ValidationResult,
)

__all__ = ["TransactionValidator", "ValidationIssue", "ValidationResult"]
