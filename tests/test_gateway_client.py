"""
Tests for the backend REST client.
"""
import json
from datetime import date

import pytest
import requests

from core.exceptions import FetchError
from core.schema import DateRange
from gateway.client import LedgerGatewayClient, build_ledger_params, extract_records, to_subject


def make_response(status_code=200, body=None, raw=None):
    response = requests.Response()
    response.status_code = status_code
    response.url = "http://backend.test/api"
    response.reason = "Internal Server Error" if status_code >= 400 else "OK"
    response._content = raw if raw is not None else json.dumps(body).encode("utf-8")
    return response


class RecordingSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, params=None, headers=None):
        self.requests.append({"url": url, "params": params, "headers": headers})
        if self.error is not None:
            raise self.error
        return self.response


def make_client(session, token="secret"):
    client = LedgerGatewayClient(base_url="http://backend.test/", token=token)
    client.session = session
    return client


def test_fetch_ledger_request():
    session = RecordingSession(make_response(body={"debit": [], "credit": []}))
    client = make_client(session)
    window = DateRange(from_date=date(2024, 3, 1), to_date=date(2024, 3, 31))

    payload = client.fetch_ledger("vendor", "v1", window, "company-9")

    assert payload == {"debit": [], "credit": []}
    sent = session.requests[0]
    assert sent["url"] == "http://backend.test/api/ledger/vendor-payables"
    assert sent["params"] == {
        "vendorId": "v1",
        "fromDate": "2024-03-01",
        "toDate": "2024-03-31",
        "companyId": "company-9",
    }
    assert sent["headers"]["Authorization"] == "Bearer secret"


def test_expense_ledger_params_omit_unset_filters():
    assert build_ledger_params("expense", "e1") == {"expenseId": "e1"}
    assert build_ledger_params("expense", "e1", DateRange(to_date=date(2024, 1, 31))) == {
        "expenseId": "e1",
        "toDate": "2024-01-31",
    }


def test_no_authorization_header_without_token():
    session = RecordingSession(make_response(body={}))
    make_client(session, token="").fetch_ledger("vendor", "v1")
    assert "Authorization" not in session.requests[0]["headers"]


def test_http_error_becomes_fetch_error():
    client = make_client(RecordingSession(make_response(status_code=500, body={"error": "boom"})))

    with pytest.raises(FetchError) as exc_info:
        client.fetch_ledger("vendor", "v1")
    assert exc_info.value.details["status_code"] == 500


def test_invalid_json_becomes_fetch_error():
    client = make_client(RecordingSession(make_response(raw=b"<html>gateway</html>")))

    with pytest.raises(FetchError) as exc_info:
        client.fetch_ledger("vendor", "v1")
    assert "invalid JSON" in exc_info.value.message


def test_connection_error_becomes_fetch_error():
    client = make_client(RecordingSession(error=requests.exceptions.ConnectionError("refused")))

    with pytest.raises(FetchError) as exc_info:
        client.fetch_ledger("expense", "e1")
    assert "refused" in exc_info.value.details["error"]


def test_list_subjects():
    body = {
        "vendors": [
            {"_id": "v1", "vendorName": "Alpha Traders", "company": {"_id": "c1"}},
            {"vendorName": "No id"},
            {"_id": "v2", "name": "Beta Supplies"},
        ]
    }
    session = RecordingSession(make_response(body=body))

    subjects = make_client(session).list_subjects("vendor", "c1")

    assert session.requests[0]["url"] == "http://backend.test/api/vendors"
    assert session.requests[0]["params"] == {"companyId": "c1"}
    assert [(s.id, s.name, s.company) for s in subjects] == [
        ("v1", "Alpha Traders", "c1"),
        ("v2", "Beta Supplies", None),
    ]
    assert all(s.kind == "vendor" for s in subjects)


def test_extract_records_shapes():
    assert extract_records([{"_id": 1}]) == [{"_id": 1}]
    assert extract_records({"expenses": [{"_id": 2}]}) == [{"_id": 2}]
    assert extract_records({"data": [{"_id": 3}]}) == [{"_id": 3}]
    assert extract_records({"unexpected": True}) == []


def test_to_subject_expense_name():
    subject = to_subject({"id": "e1", "name": "Rent"}, "expense")
    assert (subject.id, subject.name, subject.kind) == ("e1", "Rent", "expense")
