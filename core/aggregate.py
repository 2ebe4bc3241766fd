"""
Aggregation of normalized entries into per-subject totals.

Two status conventions coexist and are used at different call sites:
the per-subject detail view signs the balance as debit - credit, the
bulk/summary view as credit - debit.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from core.classify import settlement_entries
from core.schema import DetailStatus, LedgerEntry, SubjectTotals, SummaryStatus


def detail_status(balance: float) -> DetailStatus:
    """Status for a single subject, ``balance = debit - credit``."""
    if balance > 0:
        return "Payable"
    if balance < 0:
        return "Advance"
    return "Settled"


def detail_badge(balance: float) -> str:
    """Header badge text for a single subject's ledger view."""
    if balance > 0:
        return "Amount Payable"
    if balance < 0:
        return "Advance Paid"
    return "Settled"


def summary_status(credit_total: float, debit_total: float) -> SummaryStatus:
    """Status for bulk exports and dashboards, signed as ``credit - debit``."""
    net = credit_total - debit_total
    if net > 0:
        return "Net Advance"
    if net < 0:
        return "Total Payable"
    return "Settled"


def aggregate(entries: Iterable[LedgerEntry]) -> SubjectTotals:
    """
    Sum one subject's entries.

    debit_total covers every debit entry; credit_total covers every credit
    entry plus debit entries not bought on credit.
    """
    entries = list(entries)
    debit_total = sum(e.amount for e in entries if e.side == "debit")
    credit_total = sum(e.amount for e in settlement_entries(entries))

    balance = debit_total - credit_total
    return SubjectTotals(
        debit_total=debit_total,
        credit_total=credit_total,
        balance=balance,
        status=detail_status(balance),
    )


def chronological(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    """Oldest first; undated entries keep their relative order at the end."""
    entries = list(entries)
    dated = sorted((e for e in entries if e.date is not None), key=lambda e: e.date)
    return dated + [e for e in entries if e.date is None]


def most_recent_first(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    """Newest first for on-screen tables; undated entries still sort last."""
    entries = list(entries)
    dated = sorted(
        (e for e in entries if e.date is not None), key=lambda e: e.date, reverse=True
    )
    return dated + [e for e in entries if e.date is None]


def last_transaction_date(entries: Iterable[LedgerEntry]) -> Optional[datetime]:
    dates = [e.date for e in entries if e.date is not None]
    return max(dates) if dates else None
