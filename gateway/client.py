"""
REST client for the transaction persistence backend.
Fetches per-subject ledgers and the vendor / expense-category listings.
"""
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from core.config import get_settings
from core.exceptions import FetchError
from core.logger import setup_logger
from core.schema import DateRange, Subject, SubjectKind

logger = setup_logger(__name__)

LEDGER_ENDPOINTS: Dict[str, str] = {
    "vendor": "/api/ledger/vendor-payables",
    "expense": "/api/ledger/expense-payables",
}
SUBJECT_PARAMS: Dict[str, str] = {"vendor": "vendorId", "expense": "expenseId"}
LISTING_ENDPOINTS: Dict[str, str] = {
    "vendor": "/api/vendors",
    "expense": "/api/payment-expenses",
}


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def build_ledger_params(
    kind: SubjectKind,
    subject_id: str,
    date_range: Optional[DateRange] = None,
    company_id: Optional[str] = None,
) -> Dict[str, str]:
    """
    Query parameters for a ledger request; unset filters are omitted.
    """
    params = {SUBJECT_PARAMS[kind]: subject_id}
    if date_range is not None:
        if date_range.from_date:
            params["fromDate"] = _iso(date_range.from_date)
        if date_range.to_date:
            params["toDate"] = _iso(date_range.to_date)
    if company_id:
        params["companyId"] = company_id
    return params


def extract_records(payload: Any, keys: tuple = ("expenses", "vendors", "data")) -> List[Dict[str, Any]]:
    """Pull a record list out of a bare array or a ``{<key>: [...]}`` wrapper."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


def to_subject(record: Dict[str, Any], kind: SubjectKind) -> Optional[Subject]:
    """Build a Subject from a listing record; records without an id are dropped."""
    subject_id = record.get("_id") or record.get("id")
    if not subject_id:
        return None
    name_key = "vendorName" if kind == "vendor" else "name"
    company = record.get("company")
    if isinstance(company, dict):
        company = company.get("_id")
    return Subject(
        id=str(subject_id),
        name=str(record.get(name_key) or record.get("name") or ""),
        kind=kind,
        company=str(company) if company else None,
    )


class LedgerGatewayClient:
    """Thin wrapper over the backend's REST endpoints."""

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None):
        """Initialize REST client from explicit values or settings."""
        settings = get_settings()
        self.base_url = (base_url or settings.ledger_api_base_url).rstrip("/")
        self.token = token if token is not None else settings.ledger_api_token
        self.session = requests.Session()

        logger.info(f"Initialized ledger gateway client for {self.base_url}")

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get(self, path: str, params: Dict[str, str]) -> Any:
        """
        GET a JSON document from the backend.

        Raises:
            FetchError: On transport errors, non-2xx responses or invalid JSON
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, headers=self._headers())
            response.raise_for_status()
            return response.json()

        except requests.exceptions.HTTPError as e:
            logger.error(f"Backend HTTP error for {path}: {e}")
            raise FetchError(
                f"Backend returned HTTP error: {e}",
                details={
                    "url": url,
                    "params": params,
                    "status_code": getattr(e.response, "status_code", None),
                },
            )

        except requests.exceptions.JSONDecodeError as e:
            logger.error(f"Backend returned invalid JSON for {path}: {e}")
            raise FetchError(
                f"Backend returned invalid JSON: {e}",
                details={"url": url, "params": params},
            )

        except requests.exceptions.RequestException as e:
            logger.error(f"Backend request failed for {path}: {e}")
            raise FetchError(
                f"Failed to connect to backend: {e}",
                details={"url": url, "params": params, "error": str(e)},
            )

    def fetch_ledger(
        self,
        kind: SubjectKind,
        subject_id: str,
        date_range: Optional[DateRange] = None,
        company_id: Optional[str] = None,
    ) -> Any:
        """
        Fetch the raw ``{debit, credit}`` ledger of one vendor or expense category.

        Args:
            kind: "vendor" or "expense"
            subject_id: Vendor id or expense-category id
            date_range: Optional date filter
            company_id: Optional owning company scope

        Returns:
            Decoded JSON payload
        """
        params = build_ledger_params(kind, subject_id, date_range, company_id)
        return self._get(LEDGER_ENDPOINTS[kind], params)

    def list_subjects(self, kind: SubjectKind, company_id: Optional[str] = None) -> List[Subject]:
        """Fetch all vendors or expense categories visible in the company scope."""
        params = {"companyId": company_id} if company_id else {}
        records = extract_records(self._get(LISTING_ENDPOINTS[kind], params))

        subjects = [s for s in (to_subject(r, kind) for r in records if isinstance(r, dict)) if s]
        logger.info(f"Fetched {len(subjects)} {kind} subjects")
        return subjects


# Singleton client instance
_client: Optional[LedgerGatewayClient] = None


def get_client() -> LedgerGatewayClient:
    """
    Get or create the gateway client singleton.

    Returns:
        LedgerGatewayClient instance
    """
    global _client
    if _client is None:
        _client = LedgerGatewayClient()
    return _client
