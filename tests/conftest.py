"""
Shared fixtures: an in-memory stand-in for the ledger backend.
"""
from typing import Any, Dict, Iterable, List, Optional

import pytest

from core.config import reset_settings
from core.exceptions import FetchError
from core.schema import Subject


class FakeLedgerClient:
    """Serves canned ledger payloads; ids in ``failing`` raise FetchError."""

    def __init__(
        self,
        ledgers: Optional[Dict[str, Any]] = None,
        failing: Iterable[str] = (),
        subjects: Optional[List[Subject]] = None,
    ):
        self.ledgers = ledgers or {}
        self.failing = set(failing)
        self.subjects = subjects or []
        self.calls = []

    def fetch_ledger(self, kind, subject_id, date_range=None, company_id=None):
        self.calls.append((kind, subject_id, date_range, company_id))
        if subject_id in self.failing:
            raise FetchError(f"HTTP 500 for {subject_id}", details={"subject_id": subject_id})
        return self.ledgers.get(subject_id, {"debit": [], "credit": []})

    def list_subjects(self, kind, company_id=None):
        return [s for s in self.subjects if s.kind == kind]


@pytest.fixture
def make_client():
    """Factory for FakeLedgerClient instances."""
    return FakeLedgerClient


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test with exports written under tmp_path."""
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "exports"))
    reset_settings()
    yield
    reset_settings()


def purchase(amount, method="Credit", date="2024-03-01", **extra):
    """Raw debit row as the backend returns it."""
    return {"_id": extra.pop("_id", f"p-{amount}-{date}"), "date": date, "amount": amount,
            "paymentMethod": method, **extra}


def payment(amount, date="2024-03-10", method="Bank Transfer", **extra):
    """Raw credit row as the backend returns it."""
    return {"_id": extra.pop("_id", f"pay-{amount}-{date}"), "date": date, "amount": amount,
            "paymentMethod": method, **extra}
