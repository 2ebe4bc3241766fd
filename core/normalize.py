"""
Normalization of raw backend ledger rows into LedgerEntry objects.
Handles historical field-name variants, amount cleaning and date parsing.
"""
import math
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence

import pandas as pd

from core.classify import initial_side
from core.logger import setup_logger
from core.schema import LedgerEntry, Origin, SubjectKind, SubjectLedger

logger = setup_logger(__name__)

# Field-name priority lists, first usable value wins
AMOUNT_FIELDS = ("amount", "totalAmount", "grandTotal", "netAmount", "value", "total")
DATE_FIELDS = ("date", "createdAt", "invoiceDate", "voucherDate")
ID_FIELDS = ("_id", "id")
INVOICE_FIELDS = ("invoiceNo", "invoiceNumber")
REFERENCE_FIELDS = ("referenceNumber", "reference")
DESCRIPTION_FIELDS = ("description", "narration", "notes")
PAYMENT_METHOD_FIELDS = ("paymentMethod", "paymentMode")

# Backend timestamps are UTC; ledger dates are read in the business's local time
LEDGER_TIMEZONE = "Asia/Kolkata"

# Origin of rows found under each key of a ledger payload. The backend
# returns settlements in a single "credit" collection; those rows are tagged
# "payment". "receipt" is only produced by callers building entries directly.
DEBIT_ORIGINS: Dict[str, Origin] = {"vendor": "purchase", "expense": "expense"}
CREDIT_ORIGIN: Origin = "payment"


def is_present(value: Any) -> bool:
    """
    Truthiness used for field resolution.

    None, NaN, empty/blank strings, zero and False are all "absent".
    """
    if value is None or value is False:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)):
        return value != 0
    return bool(value)


def first_present(record: Dict[str, Any], keys: Sequence[str], default: Any = None) -> Any:
    """
    Return the value of the first key in ``keys`` that holds a usable value.

    Args:
        record: Raw record
        keys: Field names in priority order
        default: Returned when no key holds a usable value

    Returns:
        First usable value or default
    """
    for key in keys:
        value = record.get(key)
        if is_present(value):
            return value
    return default


def parse_amount(value: Any) -> float:
    """
    Clean and normalize a monetary amount.
    Strips currency symbols, spaces and thousands separators.

    Args:
        value: Raw amount value (string or number)

    Returns:
        Non-negative float, 0.0 when the value is unusable
    """
    if not is_present(value):
        return 0.0

    if isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        try:
            result = float(value)
        except OverflowError:
            logger.warning(f"Amount out of range: {value!r}, using 0")
            return 0.0
    else:
        cleaned = "".join(ch for ch in str(value) if ch.isdigit() or ch in ".-")
        if not cleaned:
            logger.debug(f"Amount has no numeric content: {value!r}")
            return 0.0
        try:
            result = float(cleaned)
        except ValueError:
            logger.warning(f"Failed to parse amount: {value!r}")
            return 0.0

    if math.isnan(result) or math.isinf(result):
        return 0.0
    if result < 0:
        logger.warning(f"Negative amount detected: {result}, using absolute value")
        return abs(result)
    return result


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp into a naive local datetime.

    Numbers are read as epoch milliseconds. Unparseable input gives None.
    """
    if not is_present(value):
        return None

    try:
        if isinstance(value, (int, float)):
            ts = pd.to_datetime(value, unit="ms", utc=True)
        else:
            ts = pd.to_datetime(value, errors="coerce")
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug(f"Unparseable date {value!r}: {e}")
        return None

    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(LEDGER_TIMEZONE).tz_localize(None)
    return ts.to_pydatetime()


def _optional_text(record: Dict[str, Any], keys: Sequence[str]) -> Optional[str]:
    value = first_present(record, keys)
    return None if value is None else str(value).strip()


def _company_id(value: Any) -> str:
    if isinstance(value, dict):
        value = first_present(value, ID_FIELDS, "")
    return str(value) if is_present(value) else ""


def normalize_entry(raw: Any, origin: Origin, subject_id: str) -> LedgerEntry:
    """
    Normalize a single raw ledger row to a LedgerEntry.
    Never raises on malformed content; unusable amount/date become 0 / None.

    Args:
        raw: Raw record from the backend
        origin: Collection the record came from
        subject_id: Vendor or expense-category id the row belongs to

    Returns:
        Normalized LedgerEntry
    """
    record = raw if isinstance(raw, dict) else {}
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring non-object ledger row for subject {subject_id}: {raw!r}")

    return LedgerEntry(
        id=str(first_present(record, ID_FIELDS, "")),
        date=parse_date(first_present(record, DATE_FIELDS)),
        subject_id=subject_id,
        origin=origin,
        side=initial_side(origin),
        payment_method=_optional_text(record, PAYMENT_METHOD_FIELDS),
        amount=parse_amount(first_present(record, AMOUNT_FIELDS)),
        invoice_no=_optional_text(record, INVOICE_FIELDS),
        reference_number=_optional_text(record, REFERENCE_FIELDS),
        description=_optional_text(record, DESCRIPTION_FIELDS),
        company=_company_id(record.get("company")),
    )


def _rows(value: Any) -> Iterable[Any]:
    return value if isinstance(value, list) else []


def normalize_ledger(payload: Any, kind: SubjectKind, subject_id: str) -> SubjectLedger:
    """
    Normalize a ``{debit: [...], credit: [...]}`` ledger payload.
    A ``data`` wrapper is unwrapped; missing sides are treated as empty.

    Args:
        payload: Decoded JSON from a ledger endpoint
        kind: "vendor" or "expense"
        subject_id: Subject the ledger was fetched for

    Returns:
        SubjectLedger with normalized debit and credit entries
    """
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    if not isinstance(payload, dict):
        logger.warning(f"Unexpected ledger payload for {kind} {subject_id}: {type(payload).__name__}")
        payload = {}

    debit_origin = DEBIT_ORIGINS[kind]
    ledger = SubjectLedger(
        debit=[normalize_entry(row, debit_origin, subject_id) for row in _rows(payload.get("debit"))],
        credit=[normalize_entry(row, CREDIT_ORIGIN, subject_id) for row in _rows(payload.get("credit"))],
    )

    logger.debug(
        f"Normalized {kind} {subject_id}: {len(ledger.debit)} debit, {len(ledger.credit)} credit"
    )
    return ledger
