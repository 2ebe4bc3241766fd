"""
Debit/credit classification of normalized ledger entries.

Purchases and expenses are obligations (debit); payments and receipts are
settlements (credit). A debit entry that was not bought on credit was paid
for at the time of purchase, so its amount also counts toward the credit
side while it stays listed once under debit.
"""
from typing import Iterable, List

from core.schema import CREDIT_METHOD, LedgerEntry, Origin, Side, SubjectLedger

DEBIT_ORIGINS = frozenset({"purchase", "expense"})
CREDIT_ORIGINS = frozenset({"payment", "receipt"})


def initial_side(origin: Origin) -> Side:
    """Side an entry occupies before the cash-purchase rule is applied."""
    if origin in DEBIT_ORIGINS:
        return "debit"
    if origin in CREDIT_ORIGINS:
        return "credit"
    raise ValueError(f"Unknown entry origin: {origin!r}")


def is_credit_purchase(entry: LedgerEntry) -> bool:
    """True only for an explicit ``Credit`` payment method."""
    return entry.payment_method == CREDIT_METHOD


def is_settled_at_purchase(entry: LedgerEntry) -> bool:
    """
    Debit entry paid by cash, bank, UPI or cheque when it was recorded.

    A missing payment method is not ``Credit`` and therefore counts as settled.
    """
    return entry.side == "debit" and not is_credit_purchase(entry)


def counts_toward_credit(entry: LedgerEntry) -> bool:
    """Whether an entry's amount is part of the credit total."""
    return entry.side == "credit" or is_settled_at_purchase(entry)


def settlement_entries(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    """Entries contributing to the credit total, in input order."""
    return [e for e in entries if counts_toward_credit(e)]


def credit_column(ledger: SubjectLedger) -> List[LedgerEntry]:
    """
    Entries listed under the credit column of a ledger view:
    purchases settled at purchase time followed by all payments.
    """
    return [*(e for e in ledger.debit if is_settled_at_purchase(e)), *ledger.credit]
