"""
Export orchestration: fetch, reconcile, render and store ledger exports.
"""
from datetime import date
from typing import Optional, Sequence

from core.config import get_settings
from core.exceptions import FetchError, ValidationError
from core.exporters import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    build_bulk_workbook,
    build_expense_csv,
    build_vendor_workbook,
    bulk_filename,
    individual_filename,
    save_export,
)
from core.logger import setup_logger
from core.schema import DateRange, ExportResult, Subject, SubjectKind
from services.reconciliation_service import ReconciliationService

logger = setup_logger(__name__)

SELECTION_LABELS = {"vendor": "vendor", "expense": "expense category"}


class ExportService:
    """Service producing bulk and individual ledger exports."""

    def __init__(
        self,
        reconciliation: Optional[ReconciliationService] = None,
        storage_path: Optional[str] = None,
    ):
        self.reconciliation = reconciliation or ReconciliationService()
        self.storage_path = storage_path or get_settings().export_storage_path

    async def export_bulk(
        self,
        subjects: Sequence[Subject],
        kind: SubjectKind = "vendor",
        date_range: Optional[DateRange] = None,
        company_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ExportResult:
        """
        Export every subject's entries into one workbook.

        Args:
            subjects: Subjects to include, in output order
            kind: "vendor" or "expense"
            date_range: Optional filter applied to every subject
            company_id: Optional owning company scope
            today: Date used in the filename (defaults to today)

        Returns:
            ExportResult

        Raises:
            FetchError: If every subject failed to load
            ValidationError: If there are no entries to export
            ExportError: If the file cannot be written
        """
        logger.info(f"Starting bulk {kind} export for {len(subjects)} subjects")
        batch = await self.reconciliation.reconcile_all(subjects, date_range, company_id)

        content, row_count = build_bulk_workbook(batch.outcomes, batch.grand, kind)
        filename = bulk_filename(kind, today)
        path = save_export(content, filename, self.storage_path)

        if batch.failed:
            logger.warning(
                f"Bulk export skipped {len(batch.failed)} subjects: "
                f"{', '.join(o.subject.name or o.subject.id for o in batch.failed)}"
            )
        return ExportResult(path=path, filename=filename, media_type=XLSX_MEDIA_TYPE, row_count=row_count)

    async def export_individual(
        self,
        kind: SubjectKind,
        subject: Optional[Subject],
        date_range: Optional[DateRange] = None,
        company_id: Optional[str] = None,
        company_name: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ExportResult:
        """
        Export one subject: a workbook for vendors, a CSV for expense categories.

        Raises:
            ValidationError: If no subject is selected or it has the wrong kind
            FetchError: If the subject's ledger cannot be fetched
            ExportError: If the file cannot be written
        """
        label = SELECTION_LABELS[kind]
        if subject is None:
            raise ValidationError(
                "Selection Required",
                details={"message": f"Please select a {label} to export individual {label} data."},
            )
        if subject.kind != kind:
            raise ValidationError(
                f"Subject {subject.id} is not a {label}",
                details={"subject_id": subject.id, "kind": subject.kind},
            )

        outcome = await self.reconciliation.load_subject(subject, date_range, company_id)
        if not outcome.ok:
            raise FetchError(
                f"Failed to fetch ledger for {label} {subject.name or subject.id}",
                details={"subject_id": subject.id, "error": outcome.error},
            )

        if kind == "vendor":
            content, row_count = build_vendor_workbook(subject, outcome.ledger, date_range, today)
            media_type = XLSX_MEDIA_TYPE
        else:
            content, row_count = build_expense_csv(subject, outcome.ledger, date_range, company_name, today)
            media_type = CSV_MEDIA_TYPE

        filename = individual_filename(subject, date_range, today)
        path = save_export(content, filename, self.storage_path)
        return ExportResult(path=path, filename=filename, media_type=media_type, row_count=row_count)
