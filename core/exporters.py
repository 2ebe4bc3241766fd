"""
Spreadsheet exporters for reconciled ledgers.
Bulk and individual vendor exports are .xlsx workbooks; individual
expense-category exports are BOM-prefixed UTF-8 CSV.
"""
import csv
import io
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from core.aggregate import aggregate, chronological, detail_status
from core.exceptions import ExportError, ValidationError
from core.formatting import (
    COUNT_NUMBER_FORMAT,
    CURRENCY_NUMBER_FORMAT,
    CURRENCY_SYMBOL,
    DATE_NUMBER_FORMAT,
    format_amount,
    format_date,
    format_report_date,
    sanitize_name,
)
from core.logger import setup_logger
from core.schema import (
    DateRange,
    GrandTotals,
    LedgerEntry,
    Subject,
    SubjectKind,
    SubjectLedger,
    SubjectOutcome,
)

logger = setup_logger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
CSV_BOM = "\ufeff"

# Wording that differs between vendor and expense-category exports
KIND_LABELS: Dict[str, Dict[str, str]] = {
    "vendor": {
        "title": "Vendor Ledger",
        "subject_column": "Vendor Name",
        "debit_type": "Purchase",
        "count_label": "Total Vendors",
        "credit_label": "Total Credit (Cash Purchases + Payments)",
        "debit_label": "Total Debit (Purchases)",
        "file_prefix": "vendor-ledger",
    },
    "expense": {
        "title": "Expense Ledger",
        "subject_column": "Expense Category",
        "debit_type": "Expense",
        "count_label": "Total Expense Categories",
        "credit_label": "Total Credit (Cash Expenses + Payments)",
        "debit_label": "Total Debit (Expenses)",
        "file_prefix": "expense-ledger",
    },
}
PAYMENT_TYPE = "Payment"

BULK_COLUMNS = [
    "{subject_column}",
    "Invoice No",
    "Transaction Date",
    "Transaction Type",
    "Payment Method",
    "Amount",
    "Reference Number",
    "Description",
]
BULK_WIDTHS = [25, 16, 16, 16, 18, 14, 18, 30]

VENDOR_COLUMNS = [
    "S.No",
    "Date",
    "Type",
    "Description",
    "Invoice No",
    "Payment Method",
    "Amount",
    "Reference Number",
]
VENDOR_WIDTHS = [10, 15, 15, 30, 15, 18, 15, 20]

EXPENSE_CSV_COLUMNS = [
    "S.No",
    "Date",
    "Type",
    "Description",
    "Payment Method",
    f"Amount ({CURRENCY_SYMBOL})",
    "Company",
    "Reference Number",
]

# Colours for the status banner, keyed by bulk status
STATUS_COLORS = {"Net Advance": "#008000", "Total Payable": "#C00000", "Settled": "#808080"}
AMOUNT_COLORS = {"Net Advance": "#008000", "Total Payable": "#FF0000", "Settled": "#000000"}


def entry_type(entry: LedgerEntry, kind: SubjectKind) -> str:
    """Transaction type column text for an entry."""
    return KIND_LABELS[kind]["debit_type"] if entry.side == "debit" else PAYMENT_TYPE


def ledger_rows(ledger: SubjectLedger) -> List[LedgerEntry]:
    """Debit and credit entries merged into one chronological list."""
    return chronological(ledger.entries)


def date_range_text(date_range: Optional[DateRange]) -> Optional[str]:
    """``05 Mar 2024 to End`` style description, or None when unfiltered."""
    if date_range is None or not date_range.is_active:
        return None
    start = format_date(date_range.from_date) if date_range.from_date else "Start"
    end = format_date(date_range.to_date) if date_range.to_date else "End"
    return f"{start} to {end}"


def _range_suffix(date_range: Optional[DateRange]) -> str:
    if date_range is None or not date_range.is_active:
        return ""
    start = format_date(date_range.from_date).replace(" ", "-") if date_range.from_date else "start"
    end = format_date(date_range.to_date).replace(" ", "-") if date_range.to_date else "end"
    return f"-{start}-to-{end}"


def individual_filename(
    subject: Subject,
    date_range: Optional[DateRange] = None,
    today: Optional[date] = None,
) -> str:
    """
    Filename for a single-subject export.

    Vendors: ``vendor-ledger-<name>[-<from>-to-<to>]_<YYYY-MM-DD>.xlsx``.
    Expense categories: ``expense-ledger-<name>[-<from>-to-<to>].csv``.
    """
    today = today or date.today()
    name = sanitize_name(subject.name) or "export"
    base = f"{KIND_LABELS[subject.kind]['file_prefix']}-{name}{_range_suffix(date_range)}"
    if subject.kind == "expense":
        return f"{base}.csv"
    return f"{base}_{today.isoformat()}.xlsx"


def bulk_filename(kind: SubjectKind, today: Optional[date] = None) -> str:
    today = today or date.today()
    title = KIND_LABELS[kind]["title"].replace(" ", "_")
    return f"{title}_{today.isoformat()}.xlsx"


def _formats(workbook) -> Dict[str, Any]:
    """Cell formats shared by the workbook exports."""
    thin_grey = {"border": 1, "border_color": "#BFBFBF"}
    return {
        "title": workbook.add_format(
            {"bold": True, "font_size": 16, "font_color": "#2E75B6", "align": "center", "valign": "vcenter"}
        ),
        "section": workbook.add_format({"bold": True, "font_size": 14, "font_color": "#2E75B6"}),
        "info_label": workbook.add_format({"bold": True, "font_color": "#1F4E78"}),
        "header": workbook.add_format(
            {
                "bold": True,
                "font_color": "#FFFFFF",
                "bg_color": "#305496",
                "align": "center",
                "valign": "vcenter",
                **thin_grey,
            }
        ),
        "subject": workbook.add_format({"bold": True, "font_color": "#1F4E78", "bg_color": "#E8F1FA"}),
        "currency": workbook.add_format({"num_format": CURRENCY_NUMBER_FORMAT}),
        "summary_label": workbook.add_format({"bold": True, "font_color": "#1F4E78", "bg_color": "#DDEBF7"}),
        "summary_value": workbook.add_format(
            {"bold": True, "font_color": "#375623", "bg_color": "#E2EFDA", "align": "right"}
        ),
        "summary_currency": workbook.add_format(
            {
                "bold": True,
                "font_color": "#375623",
                "bg_color": "#E2EFDA",
                "align": "right",
                "num_format": CURRENCY_NUMBER_FORMAT,
            }
        ),
        "summary_count": workbook.add_format(
            {
                "bold": True,
                "font_color": "#375623",
                "bg_color": "#E2EFDA",
                "align": "right",
                "num_format": COUNT_NUMBER_FORMAT,
            }
        ),
    }


def _write_header(worksheet, row: int, columns: Sequence[str], fmt) -> None:
    # Replace pandas' default header styling
    for col_idx, name in enumerate(columns):
        worksheet.write(row, col_idx, name, fmt)


def _write_amounts(worksheet, first_row: int, col: int, amounts, fmt) -> None:
    for offset, amount in enumerate(amounts):
        worksheet.write_number(first_row + offset, col, float(amount), fmt)


def _set_widths(worksheet, widths: Sequence[int]) -> None:
    for idx, width in enumerate(widths):
        worksheet.set_column(idx, idx, width)


def _write_summary(worksheet, row: int, items: Sequence[Tuple[str, Any, str]], formats) -> int:
    """Write label/value rows; returns the next free row."""
    for label, value, kind in items:
        worksheet.write(row, 0, label, formats["summary_label"])
        worksheet.write(row, 1, value, formats[kind])
        row += 1
    return row


def build_bulk_workbook(
    outcomes: Sequence[SubjectOutcome],
    grand: GrandTotals,
    kind: SubjectKind = "vendor",
) -> Tuple[bytes, int]:
    """
    Build the all-subjects workbook.

    One row per (subject, entry), entries oldest first within each subject
    block, followed by the grand totals and a net balance/status banner
    signed as credit - debit.

    Args:
        outcomes: Successfully loaded subjects, in export order
        grand: Grand totals over the same subjects
        kind: "vendor" or "expense"

    Returns:
        Tuple of (xlsx bytes, number of entry rows)

    Raises:
        ValidationError: If there is not a single entry to export
        ExportError: If the workbook cannot be written
    """
    labels = KIND_LABELS[kind]
    columns = [c.format(**labels) for c in BULK_COLUMNS]

    records = []
    for outcome in outcomes:
        if not outcome.ok:
            continue
        for entry in ledger_rows(outcome.ledger):
            records.append(
                {
                    columns[0]: outcome.subject.name,
                    "Invoice No": entry.invoice_no or "-",
                    "Transaction Date": entry.date,
                    "Transaction Type": entry_type(entry, kind),
                    "Payment Method": entry.payment_method or "-",
                    "Amount": entry.amount,
                    "Reference Number": entry.reference_number or "",
                    "Description": entry.description or "-",
                }
            )

    if not records:
        raise ValidationError(
            "No ledger entries to export",
            details={"kind": kind, "subjects": len(outcomes)},
        )

    df = pd.DataFrame.from_records(records, columns=columns)
    df["Transaction Date"] = pd.to_datetime(df["Transaction Date"])
    sheet_name = labels["title"]

    buffer = io.BytesIO()
    try:
        with pd.ExcelWriter(
            buffer,
            engine="xlsxwriter",
            datetime_format=DATE_NUMBER_FORMAT,
            date_format=DATE_NUMBER_FORMAT,
        ) as writer:
            df.to_excel(writer, sheet_name=sheet_name, startrow=2, index=False)

            workbook = writer.book
            worksheet = writer.sheets[sheet_name]
            formats = _formats(workbook)

            worksheet.merge_range(0, 0, 0, len(columns) - 1, f"{labels['title']} Report", formats["title"])
            _write_header(worksheet, 2, columns, formats["header"])

            first_data_row = 3
            for offset, name in enumerate(df[columns[0]]):
                worksheet.write(first_data_row + offset, 0, name, formats["subject"])

            _write_amounts(worksheet, first_data_row, columns.index("Amount"), df["Amount"], formats["currency"])
            _set_widths(worksheet, BULK_WIDTHS)

            row = first_data_row + len(df) + 1
            row = _write_summary(
                worksheet,
                row,
                [
                    (labels["count_label"], grand.subject_count, "summary_count"),
                    (labels["credit_label"], grand.total_credit, "summary_currency"),
                    (labels["debit_label"], grand.total_debit, "summary_currency"),
                ],
                formats,
            )

            row += 2
            status = grand.status
            banner_head = workbook.add_format(
                {
                    "bold": True,
                    "font_size": 13,
                    "font_color": "#2E75B6",
                    "bg_color": "#D9E1F2",
                    "align": "center",
                    "valign": "vcenter",
                    "border": 1,
                }
            )
            status_cell = workbook.add_format(
                {
                    "bold": True,
                    "font_color": "#FFFFFF",
                    "bg_color": STATUS_COLORS[status],
                    "align": "center",
                    "valign": "vcenter",
                    "border": 1,
                }
            )
            amount_cell = workbook.add_format(
                {
                    "bold": True,
                    "font_color": AMOUNT_COLORS[status],
                    "bg_color": "#E2EFDA",
                    "align": "center",
                    "valign": "vcenter",
                    "border": 1,
                    "num_format": CURRENCY_NUMBER_FORMAT,
                }
            )
            worksheet.write(row, 0, status, banner_head)
            worksheet.write(row, 1, "Status", status_cell)
            worksheet.write(row + 1, 0, abs(grand.total_balance), amount_cell)
            worksheet.write(row + 1, 1, status, status_cell)
    except Exception as e:
        logger.error(f"Failed to build bulk {kind} workbook: {e}")
        raise ExportError(
            "Failed to build bulk workbook",
            details={"kind": kind, "error": str(e)},
        )

    logger.info(f"Built bulk {kind} workbook: {len(df)} rows across {grand.subject_count} subjects")
    return buffer.getvalue(), len(df)


def build_vendor_workbook(
    subject: Subject,
    ledger: SubjectLedger,
    date_range: Optional[DateRange] = None,
    today: Optional[date] = None,
) -> Tuple[bytes, int]:
    """
    Build a single vendor's workbook: report header, serial-numbered
    chronological entries, then a summary using the per-vendor status
    (balance = debit - credit).

    Returns:
        Tuple of (xlsx bytes, number of entry rows)
    """
    today = today or date.today()
    entries = ledger_rows(ledger)
    totals = aggregate(ledger.entries)

    info_rows: List[Tuple[str, str]] = [
        ("Vendor Name", subject.name or "Unknown Vendor"),
        ("Report Date", format_report_date(today)),
    ]
    range_text = date_range_text(date_range)
    if range_text:
        info_rows.append(("Date Range", range_text))

    df = pd.DataFrame.from_records(
        [
            {
                "S.No": serial,
                "Date": entry.date,
                "Type": entry_type(entry, "vendor"),
                "Description": entry.description or "-",
                "Invoice No": entry.invoice_no or "-",
                "Payment Method": entry.payment_method or "-",
                "Amount": entry.amount,
                "Reference Number": entry.reference_number or "-",
            }
            for serial, entry in enumerate(entries, start=1)
        ],
        columns=VENDOR_COLUMNS,
    )
    df["Date"] = pd.to_datetime(df["Date"])

    header_row = len(info_rows) + 1
    sheet_name = KIND_LABELS["vendor"]["title"]

    buffer = io.BytesIO()
    try:
        with pd.ExcelWriter(
            buffer,
            engine="xlsxwriter",
            datetime_format=DATE_NUMBER_FORMAT,
            date_format=DATE_NUMBER_FORMAT,
        ) as writer:
            df.to_excel(writer, sheet_name=sheet_name, startrow=header_row, index=False)

            workbook = writer.book
            worksheet = writer.sheets[sheet_name]
            formats = _formats(workbook)

            for idx, (label, value) in enumerate(info_rows):
                worksheet.write(idx, 0, label, formats["info_label"])
                worksheet.write(idx, 1, value)

            _write_header(worksheet, header_row, VENDOR_COLUMNS, formats["header"])

            _write_amounts(
                worksheet, header_row + 1, VENDOR_COLUMNS.index("Amount"), df["Amount"], formats["currency"]
            )
            _set_widths(worksheet, VENDOR_WIDTHS)

            row = header_row + 1 + len(df) + 1
            worksheet.write(row, 0, "SUMMARY", formats["section"])
            _write_summary(
                worksheet,
                row + 1,
                [
                    ("Total Purchases", totals.debit_total, "summary_currency"),
                    ("Total Payments", totals.credit_total, "summary_currency"),
                    ("Net Balance", abs(totals.balance), "summary_currency"),
                    ("Status", detail_status(totals.balance), "summary_value"),
                ],
                formats,
            )
    except Exception as e:
        logger.error(f"Failed to build workbook for vendor {subject.id}: {e}")
        raise ExportError(
            "Failed to build vendor workbook",
            details={"subject_id": subject.id, "error": str(e)},
        )

    logger.info(f"Built workbook for vendor {subject.id}: {len(df)} rows")
    return buffer.getvalue(), len(df)


def build_expense_csv(
    subject: Subject,
    ledger: SubjectLedger,
    date_range: Optional[DateRange] = None,
    company_name: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[bytes, int]:
    """
    Build a single expense category's CSV: report header, serial-numbered
    chronological entries, then the totals block (per-subject status).
    Every cell is quoted and the file starts with a UTF-8 byte-order mark.

    Returns:
        Tuple of (csv bytes, number of entry rows)
    """
    today = today or date.today()
    entries = ledger_rows(ledger)
    totals = aggregate(ledger.entries)

    rows: List[List[Any]] = [["Expense Ledger Report", "", "", "", "", "", "", ""]]
    rows.append(["Expense Category", subject.name])
    rows.append(["Report Date", format_report_date(today)])
    range_text = date_range_text(date_range)
    if range_text:
        rows.append(["Date Range", range_text])
    rows.append([])
    rows.append(EXPENSE_CSV_COLUMNS)

    for serial, entry in enumerate(entries, start=1):
        rows.append(
            [
                serial,
                format_date(entry.date),
                entry_type(entry, "expense"),
                entry.description or "",
                entry.payment_method or "",
                format_amount(entry.amount),
                company_name or entry.company,
                entry.reference_number or "",
            ]
        )

    rows.append([])
    rows.append(["SUMMARY"])
    rows.append(["Total Expenses", format_amount(totals.credit_total)])
    rows.append(["Net Balance", format_amount(abs(totals.balance))])
    rows.append(["Status", detail_status(totals.balance)])

    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)

    logger.info(f"Built CSV for expense category {subject.id}: {len(entries)} rows")
    return (CSV_BOM + out.getvalue()).encode("utf-8"), len(entries)


def save_export(content: bytes, filename: str, base_path: str) -> str:
    """
    Write export bytes under the storage directory.

    Returns:
        Path to created file

    Raises:
        ExportError: If the file cannot be written
    """
    output_file = Path(base_path) / filename
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_bytes(content)
    except OSError as e:
        logger.error(f"Failed to write export {output_file}: {e}")
        raise ExportError(
            "Failed to write export file",
            details={"output_path": str(output_file), "error": str(e)},
        )

    logger.info(f"Successfully exported to {output_file}")
    return str(output_file)
