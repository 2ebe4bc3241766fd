"""
FastAPI routes for ledger totals and exports.
Thin HTTP layer over the reconciliation and export services.
"""
import asyncio
from datetime import date
from pathlib import Path
from typing import List, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse, Response

from core.config import get_settings
from core.exceptions import (
    DataNotFoundError,
    ExportError,
    FetchError,
    LedgerReconciliationException,
    ValidationError,
)
from core.exporters import CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE
from core.logger import setup_logger
from core.schema import DateRange, Subject
from services.export_service import ExportService
from services.reconciliation_service import ReconciliationService

logger = setup_logger(__name__)
settings = get_settings()

Kind = Literal["vendor", "expense"]

# Initialize FastAPI app
app = FastAPI(
    title="Ledger Reconciliation Service",
    description="Vendor and expense-category payables ledgers, totals and exports",
    version="1.0.0",
)

# Service instances
reconciliation_service = ReconciliationService()
export_service = ExportService(reconciliation_service)

ERROR_STATUS = {
    ValidationError: 400,
    DataNotFoundError: 404,
    FetchError: 502,
    ExportError: 500,
}


def to_http_error(e: LedgerReconciliationException) -> HTTPException:
    """Map a service exception onto an HTTP error response."""
    status_code = ERROR_STATUS.get(type(e), 500)
    return HTTPException(status_code=status_code, detail={"message": e.message, "details": e.details})


def build_date_range(from_date: Optional[date], to_date: Optional[date]) -> Optional[DateRange]:
    """Date filter from query parameters; None when both bounds are absent."""
    if from_date is None and to_date is None:
        return None
    try:
        return DateRange(from_date=from_date, to_date=to_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date range: {e}")


async def list_subjects(kind: Kind, company_id: Optional[str]) -> List[Subject]:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, reconciliation_service.client.list_subjects, kind, company_id
    )


async def resolve_subject(
    kind: Kind,
    subject_id: str,
    name: Optional[str],
    company_id: Optional[str],
) -> Subject:
    """
    Subject for a path id; looks the name up in the backend listing when
    the caller did not pass one.

    Raises:
        DataNotFoundError: If the id is not in the listing
    """
    if name:
        return Subject(id=subject_id, name=name, kind=kind)

    for subject in await list_subjects(kind, company_id):
        if subject.id == subject_id:
            return subject
    raise DataNotFoundError(
        f"Unknown {kind} {subject_id}",
        details={"kind": kind, "subject_id": subject_id, "company_id": company_id},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "ledger_reconciliation",
        "version": "1.0.0"
    }


@app.get("/favicon.ico")
async def favicon():
    """Return empty response for favicon to avoid 404 errors."""
    return Response(status_code=204)


@app.get("/ledger/{kind}/summary")
async def ledger_summary(
    kind: Kind,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    company_id: Optional[str] = None,
):
    """
    Per-subject and grand totals across every vendor or expense category.
    """
    date_range = build_date_range(from_date, to_date)
    try:
        subjects = await list_subjects(kind, company_id)
        batch = await reconciliation_service.reconcile_all(subjects, date_range, company_id)
    except LedgerReconciliationException as e:
        logger.error(f"Summary for {kind} failed: {e.message}")
        raise to_http_error(e)

    return {
        "per_subject": {sid: totals.model_dump() for sid, totals in batch.per_subject.items()},
        "grand": batch.grand.model_dump(),
        "failed": [{"id": o.subject.id, "name": o.subject.name, "error": o.error} for o in batch.failed],
    }


@app.get("/ledger/{kind}/{subject_id}")
async def subject_ledger(
    kind: Kind,
    subject_id: str,
    name: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    company_id: Optional[str] = None,
):
    """
    One subject's ledger: debit entries and credit column, newest first,
    with totals and status.
    """
    date_range = build_date_range(from_date, to_date)
    try:
        subject = await resolve_subject(kind, subject_id, name, company_id)
        view = await reconciliation_service.subject_view(subject, date_range, company_id)
    except LedgerReconciliationException as e:
        logger.error(f"Ledger view for {kind} {subject_id} failed: {e.message}")
        raise to_http_error(e)

    return view.model_dump(mode="json")


@app.get("/dashboard")
async def dashboard(
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    company_id: Optional[str] = None,
):
    """Headline totals for the vendor and expense list page."""
    date_range = build_date_range(from_date, to_date)
    try:
        vendors = await list_subjects("vendor", company_id)
        expenses = await list_subjects("expense", company_id)
        summary = await reconciliation_service.dashboard_summary(vendors, expenses, date_range, company_id)
    except LedgerReconciliationException as e:
        logger.error(f"Dashboard failed: {e.message}")
        raise to_http_error(e)

    return summary.model_dump(mode="json")


@app.post("/export/bulk")
async def export_bulk(
    kind: Kind = "vendor",
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    company_id: Optional[str] = None,
):
    """Write the all-subjects workbook and return its download name."""
    date_range = build_date_range(from_date, to_date)
    try:
        subjects = await list_subjects(kind, company_id)
        result = await export_service.export_bulk(subjects, kind, date_range, company_id)
    except LedgerReconciliationException as e:
        logger.error(f"Bulk {kind} export failed: {e.message}")
        raise to_http_error(e)

    return {"filename": result.filename, "rows": result.row_count, "media_type": result.media_type}


@app.post("/export/{kind}/{subject_id}")
async def export_individual(
    kind: Kind,
    subject_id: str,
    name: Optional[str] = None,
    company_name: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    company_id: Optional[str] = None,
):
    """Write one subject's export and return its download name."""
    date_range = build_date_range(from_date, to_date)
    try:
        subject = await resolve_subject(kind, subject_id, name, company_id)
        result = await export_service.export_individual(
            kind, subject, date_range, company_id, company_name
        )
    except LedgerReconciliationException as e:
        logger.error(f"Export for {kind} {subject_id} failed: {e.message}")
        raise to_http_error(e)

    return {"filename": result.filename, "rows": result.row_count, "media_type": result.media_type}


@app.get("/download/{filename}")
async def download_file(filename: str):
    """
    Download an export file.

    Args:
        filename: Name of the file to download

    Returns:
        File response
    """
    # Security: Validate filename to prevent path traversal
    if ".." in filename or "/" in filename or "\\" in filename:
        raise HTTPException(status_code=400, detail="Invalid filename")

    if filename.endswith(".xlsx"):
        media_type = XLSX_MEDIA_TYPE
    elif filename.endswith(".csv"):
        media_type = CSV_MEDIA_TYPE
    else:
        raise HTTPException(status_code=400, detail="Invalid file type")

    storage_root = Path(settings.export_storage_path).resolve()
    file_path = (storage_root / filename).resolve()
    if storage_root not in file_path.parents:
        raise HTTPException(status_code=400, detail="Invalid file path")

    if not file_path.exists():
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(path=str(file_path), filename=filename, media_type=media_type)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
