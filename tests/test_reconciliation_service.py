"""
Tests for the reconciliation service.
"""
import asyncio
from datetime import date, datetime

import pytest

from conftest import payment, purchase
from core.exceptions import FetchError
from core.schema import DateRange, Subject, SubjectTotals
from services.reconciliation_service import ReconciliationService, build_grand_totals

VENDORS = [
    Subject(id="a", name="Alpha Traders"),
    Subject(id="b", name="Beta Supplies"),
    Subject(id="c", name="Gamma Steel"),
]

LEDGERS = {
    "a": {"debit": [purchase(1000, method="Credit")], "credit": [payment(400)]},
    "b": {"debit": [purchase(250, method="Cash")], "credit": []},
    "c": {"debit": [purchase(500, method="Credit")], "credit": [payment(800)]},
}


def test_grand_totals_are_sums_of_successful_subjects(make_client):
    service = ReconciliationService(make_client(LEDGERS))
    batch = asyncio.run(service.reconcile_all(VENDORS))

    assert batch.grand.subject_count == 3
    assert batch.grand.total_debit == sum(t.debit_total for t in batch.per_subject.values())
    assert batch.grand.total_credit == sum(t.credit_total for t in batch.per_subject.values())
    assert batch.grand.total_debit == 1750
    assert batch.grand.total_credit == 1450
    assert batch.grand.total_balance == -300
    assert batch.grand.status == "Total Payable"


def test_failed_subject_is_skipped(make_client):
    """One failing fetch leaves the other subjects' totals intact."""
    service = ReconciliationService(make_client(LEDGERS, failing=["b"]))
    batch = asyncio.run(service.reconcile_all(VENDORS))

    assert set(batch.per_subject) == {"a", "c"}
    assert batch.grand.subject_count == 2
    assert batch.grand.total_debit == 1500
    assert batch.grand.total_credit == 1200
    assert [o.subject.id for o in batch.failed] == ["b"]
    assert "HTTP 500" in batch.failed[0].error


def test_malformed_ledger_only_drops_its_subject(make_client, monkeypatch):
    """A normalization failure is a failed outcome, not a batch failure."""
    ledgers = dict(LEDGERS)
    ledgers["b"] = {"debit": [{"amount": 10**400}], "credit": []}
    batch = asyncio.run(ReconciliationService(make_client(ledgers)).reconcile_all(VENDORS))
    assert set(batch.per_subject) == {"a", "b", "c"}
    assert batch.per_subject["b"].debit_total == 0

    def broken(payload, kind, subject_id):
        raise TypeError("bad payload")

    monkeypatch.setattr("services.reconciliation_service.normalize_ledger", broken)
    service = ReconciliationService(make_client(LEDGERS))
    outcome = asyncio.run(service.load_subject(VENDORS[1]))
    assert not outcome.ok
    assert outcome.error == "bad payload"


def test_all_subjects_failing_raises(make_client):
    service = ReconciliationService(make_client(LEDGERS, failing=["a", "b", "c"]))

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(service.reconcile_all(VENDORS))
    assert exc_info.value.details["failed"] == ["a", "b", "c"]


def test_empty_subject_list_is_not_an_error(make_client):
    service = ReconciliationService(make_client())
    batch = asyncio.run(service.reconcile_all([]))

    assert batch.per_subject == {}
    assert batch.grand.subject_count == 0
    assert batch.grand.status == "Settled"


def test_unexpected_error_becomes_failed_outcome(make_client):
    client = make_client(LEDGERS)

    def broken(kind, subject_id, date_range=None, company_id=None):
        raise RuntimeError("connection pool exhausted")

    client.fetch_ledger = broken
    outcome = asyncio.run(ReconciliationService(client).load_subject(VENDORS[0]))

    assert not outcome.ok
    assert outcome.totals is None
    assert outcome.error == "connection pool exhausted"


def test_subjects_fetched_in_input_order_with_filters(make_client):
    client = make_client(LEDGERS)
    window = DateRange(from_date=date(2024, 3, 1), to_date=date(2024, 3, 31))

    asyncio.run(ReconciliationService(client).reconcile_all(VENDORS[::-1], window, "company-9"))

    assert [call[1] for call in client.calls] == ["c", "b", "a"]
    assert all(call[2] == window and call[3] == "company-9" for call in client.calls)


def test_outcomes_keep_input_order(make_client):
    service = ReconciliationService(make_client(LEDGERS, failing=["a"]))
    batch = asyncio.run(service.reconcile_all([VENDORS[2], VENDORS[0], VENDORS[1]]))

    assert [o.subject.id for o in batch.outcomes] == ["c", "b"]


def test_build_grand_totals_uses_summary_sign():
    """Grand balance is credit - debit, unlike the per-subject balance."""
    per_subject = {
        "a": SubjectTotals(debit_total=500, credit_total=800, balance=-300, status="Advance"),
    }
    grand = build_grand_totals(per_subject)

    assert grand.total_balance == 300
    assert grand.status == "Net Advance"
    assert grand.subject_count == 1


def test_subject_view_orders_newest_first(make_client):
    ledgers = {
        "a": {
            "debit": [
                purchase(100, method="Cash", date="2024-01-10", _id="cash-jan"),
                purchase(200, method="Credit", date="2024-03-01", _id="credit-mar"),
            ],
            "credit": [payment(50, date="2024-02-15", _id="pay-feb")],
        }
    }
    view = asyncio.run(ReconciliationService(make_client(ledgers)).subject_view(VENDORS[0]))

    assert [e.id for e in view.debit] == ["credit-mar", "cash-jan"]
    assert [e.id for e in view.credit] == ["pay-feb", "cash-jan"]
    assert view.totals.debit_total == 300
    assert view.totals.credit_total == 150
    assert view.totals.status == "Payable"
    assert view.badge == "Amount Payable"


def test_subject_view_propagates_fetch_error(make_client):
    service = ReconciliationService(make_client(LEDGERS, failing=["a"]))
    with pytest.raises(FetchError):
        asyncio.run(service.subject_view(VENDORS[0]))


def test_dashboard_summary(make_client):
    expenses = [
        Subject(id="rent", name="Rent", kind="expense"),
        Subject(id="power", name="Electricity", kind="expense"),
    ]
    ledgers = dict(LEDGERS)
    ledgers["rent"] = {
        "debit": [purchase(3000, method="Bank Transfer", date="2024-04-01")],
        "credit": [],
    }
    ledgers["power"] = {"debit": [purchase(900, method="Credit")], "credit": [payment(600, date="2024-05-02")]}

    summary = asyncio.run(
        ReconciliationService(make_client(ledgers, failing=["c"])).dashboard_summary(VENDORS, expenses)
    )

    assert summary.total_vendors == 3
    assert summary.total_expenses == 2
    assert summary.total_debit == 1250
    assert summary.total_credit == 650
    assert summary.net_balance == -600
    assert summary.settled_vendors == 1
    assert summary.expense_totals == {"rent": 3000, "power": 600}
    assert summary.total_expense_amount == 3600
    assert summary.last_transaction_dates["power"] == datetime(2024, 5, 2)
    assert "c" not in summary.last_transaction_dates
