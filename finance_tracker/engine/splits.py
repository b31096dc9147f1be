"""
Split Resolution

Decides how much of a transaction belongs to whom, and builds the settlement
report (what every partner owes the owner).

The owner's view of a split transaction is its userPart; a partner's view is
its partnerPart, but only when the transaction is split with that partner.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from finance_tracker.models.filters import DateRange, PayerSelection, SelectionKind
from finance_tracker.models.ledger import Transaction
from finance_tracker.models.reports import ZERO, PayerSettlement, SettlementReport


logger = structlog.get_logger(__name__)


def resolve_share(
    transaction: Transaction,
    partner_name: Optional[str] = None,
) -> Decimal:
    """
    Share of `transaction` belonging to a viewer.

    Args:
        transaction: Any transaction
        partner_name: None for the owner, otherwise the partner's name

    Returns:
        Owner: userPart when split, else the full amount.
        Partner: partnerPart when split with that partner, else 0.
    """
    details = transaction.split_details if transaction.is_split else None

    if partner_name is None:
        return details.user_part if details is not None else transaction.amount

    if details is not None and details.partner_name == partner_name:
        return details.partner_part
    return ZERO


def contribution_amount(
    transaction: Transaction,
    selection: PayerSelection,
) -> Decimal:
    """
    Amount a transaction adds to a summary under the current payer lens.

    Only the "individual only" and "single payer" selections look at split
    parts; every other selection counts full amounts.
    """
    details = transaction.split_details if transaction.is_split else None
    if details is None:
        return transaction.amount

    kind = selection.kind
    if kind == SelectionKind.INDIVIDUAL_ONLY:
        return details.user_part
    if kind == SelectionKind.SINGLE_PAYER:
        return details.partner_part
    return transaction.amount


def payer_settlement(
    payers: Iterable[str],
    transactions: Iterable[Transaction],
    date_range: Optional[DateRange] = None,
) -> SettlementReport:
    """
    Compute what each partner owes over split transactions in a period.

    Every registered payer is listed, even without transactions. Partner
    names missing from the registry are still reported, after the
    registered ones, in the order they first appear.

    Args:
        payers: Payer registry
        transactions: Full ledger
        date_range: Inclusive period; None means all time

    Returns:
        SettlementReport with one entry per payer
    """
    registered = list(dict.fromkeys(payers))
    totals: dict[str, dict] = {
        name: _empty_totals(registered=True) for name in registered
    }

    for transaction in transactions:
        name = transaction.partner_name
        if name is None:
            continue
        if date_range is not None and not date_range.contains(transaction.date):
            continue

        if name not in totals:
            logger.debug("unregistered_partner", partner_name=name, transaction_id=transaction.id)
            totals[name] = _empty_totals(registered=False)

        share = resolve_share(transaction, name)
        entry = totals[name]
        entry["total_to_receive"] += share
        if transaction.is_paid:
            entry["paid"] += share
        else:
            entry["pending"] += share
        entry["transactions"].append(transaction)

    return SettlementReport(
        payers=[
            PayerSettlement(name=name, **entry)
            for name, entry in totals.items()
        ]
    )


def _empty_totals(registered: bool) -> dict:
    return {
        "registered": registered,
        "total_to_receive": ZERO,
        "paid": ZERO,
        "pending": ZERO,
        "transactions": [],
    }
