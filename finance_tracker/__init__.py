"""
Finance Tracker - Source Package

Personal finance ledger: transactions split between the owner and partners,
credit cards, accounts, and the derivation engine that turns the raw ledger
into balances, card debt, settlements and period reports.

DESIGN PRINCIPLES:
1. Derived views are pure functions over a full snapshot
2. Fail early, fail visibly (invalid input is rejected, never coerced)
3. Stale references degrade to "no card" / "no account", never crash
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
