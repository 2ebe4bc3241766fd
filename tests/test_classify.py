"""
Unit tests for debit/credit classification.
"""
import pytest

from conftest import payment, purchase
from core.aggregate import aggregate
from core.classify import (
    counts_toward_credit,
    credit_column,
    initial_side,
    is_settled_at_purchase,
    settlement_entries,
)
from core.normalize import normalize_entry, normalize_ledger
from core.schema import LedgerEntry


def test_initial_side_by_origin():
    assert initial_side("purchase") == "debit"
    assert initial_side("expense") == "debit"
    assert initial_side("payment") == "credit"
    assert initial_side("receipt") == "credit"


def test_initial_side_rejects_unknown_origin():
    with pytest.raises(ValueError):
        initial_side("refund")


@pytest.mark.parametrize("method", ["Cash", "Bank Transfer", "UPI", "Cheque"])
def test_non_credit_purchase_counts_toward_credit(method):
    entry = normalize_entry(purchase(1000, method=method), "purchase", "v1")
    assert is_settled_at_purchase(entry)
    assert counts_toward_credit(entry)


def test_credit_purchase_is_debit_only():
    entry = normalize_entry(purchase(1000, method="Credit"), "purchase", "v1")
    assert not is_settled_at_purchase(entry)
    assert not counts_toward_credit(entry)


def test_missing_payment_method_counts_as_settled():
    """No method recorded means it was not bought on credit."""
    raw = purchase(1000)
    del raw["paymentMethod"]
    entry = normalize_entry(raw, "purchase", "v1")
    assert entry.payment_method is None
    assert is_settled_at_purchase(entry)


def test_payment_entries_always_count_toward_credit():
    entry = normalize_entry(payment(400, method="Credit"), "payment", "v1")
    assert counts_toward_credit(entry)
    assert not is_settled_at_purchase(entry)


def test_credit_column_lists_settled_purchases_then_payments():
    ledger = normalize_ledger(
        {
            "debit": [
                purchase(100, method="Cash", _id="d1"),
                purchase(200, method="Credit", _id="d2"),
                purchase(300, method="UPI", _id="d3"),
            ],
            "credit": [payment(50, _id="c1")],
        },
        "vendor",
        "v1",
    )

    assert [e.id for e in credit_column(ledger)] == ["d1", "d3", "c1"]
    # Settled purchases stay listed once under debit
    assert [e.id for e in ledger.debit] == ["d1", "d2", "d3"]
    assert [e.id for e in settlement_entries(ledger.entries)] == ["d1", "d3", "c1"]


def test_receipt_entry_is_a_settlement():
    """Backend credit rows arrive as payments; a receipt built directly is still credit."""
    receipt = LedgerEntry(id="r1", subject_id="v1", origin="receipt", side=initial_side("receipt"), amount=75)
    assert counts_toward_credit(receipt)
    assert aggregate([receipt]).credit_total == 75

    ledger = normalize_ledger({"credit": [payment(75)]}, "vendor", "v1")
    assert ledger.credit[0].origin == "payment"
