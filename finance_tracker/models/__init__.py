"""
Data Models Package

This package contains all Pydantic models used in Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.ledger import (
    Account,
    AccountType,
    CategoryScope,
    CreditCard,
    LedgerSnapshot,
    SplitDetails,
    Transaction,
    TransactionType,
    UserCategories,
)
from finance_tracker.models.filters import (
    DateRange,
    FilterSpec,
    PayerSelection,
    SelectionKind,
    StatusFilter,
    TypeFilter,
)
from finance_tracker.models.reports import (
    AccountMetrics,
    AccountStatement,
    CardDebtMetrics,
    CardGroup,
    CategoryTotal,
    DashboardView,
    PatrimonyOverview,
    PayerSettlement,
    PeriodStats,
    SettlementReport,
    Summary,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountType",
    "CategoryScope",
    "CreditCard",
    "LedgerSnapshot",
    "SplitDetails",
    "Transaction",
    "TransactionType",
    "UserCategories",
    # Filter models
    "DateRange",
    "FilterSpec",
    "PayerSelection",
    "SelectionKind",
    "StatusFilter",
    "TypeFilter",
    # Report models
    "AccountMetrics",
    "AccountStatement",
    "CardDebtMetrics",
    "CardGroup",
    "CategoryTotal",
    "DashboardView",
    "PatrimonyOverview",
    "PayerSettlement",
    "PeriodStats",
    "SettlementReport",
    "Summary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
