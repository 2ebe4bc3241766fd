"""
Pydantic schemas for the canonical ledger shapes.
Raw backend records are normalized into these before any arithmetic.
"""
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

Origin = Literal["purchase", "payment", "receipt", "expense"]
Side = Literal["debit", "credit"]
SubjectKind = Literal["vendor", "expense"]

DetailStatus = Literal["Payable", "Advance", "Settled"]
SummaryStatus = Literal["Net Advance", "Total Payable", "Settled"]

CREDIT_METHOD = "Credit"


class LedgerEntry(BaseModel):
    """A single normalized transaction on one side of a subject's ledger."""
    id: str
    date: Optional[datetime] = None
    subject_id: str
    origin: Origin
    side: Side
    payment_method: Optional[str] = None
    amount: float = Field(default=0.0, ge=0.0)
    invoice_no: Optional[str] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    company: str = ""


class SubjectLedger(BaseModel):
    """Debit and credit entries for one subject, as returned by the backend."""
    debit: List[LedgerEntry] = Field(default_factory=list)
    credit: List[LedgerEntry] = Field(default_factory=list)

    @property
    def entries(self) -> List[LedgerEntry]:
        return [*self.debit, *self.credit]


class Subject(BaseModel):
    """A vendor or an expense category."""
    id: str
    name: str
    kind: SubjectKind = "vendor"
    company: Optional[str] = None


class DateRange(BaseModel):
    """Optional inclusive date filter passed through to the backend."""
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError("from_date must not be after to_date")
        return self

    @property
    def is_active(self) -> bool:
        return self.from_date is not None or self.to_date is not None


class SubjectTotals(BaseModel):
    """Aggregated totals for one subject (detail-view sign convention)."""
    debit_total: float = 0.0
    credit_total: float = 0.0
    balance: float = 0.0
    status: DetailStatus = "Settled"


class SubjectOutcome(BaseModel):
    """
    Result of loading one subject during reconciliation.

    Exactly one of ``totals`` and ``error`` is set.
    """
    subject: Subject
    ledger: SubjectLedger = Field(default_factory=SubjectLedger)
    totals: Optional[SubjectTotals] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class GrandTotals(BaseModel):
    """Cross-subject totals (summary-view sign convention)."""
    total_debit: float = 0.0
    total_credit: float = 0.0
    total_balance: float = 0.0
    subject_count: int = 0
    status: SummaryStatus = "Settled"


class BatchReconciliation(BaseModel):
    """Output of a batch run over many subjects."""
    per_subject: Dict[str, SubjectTotals] = Field(default_factory=dict)
    grand: GrandTotals = Field(default_factory=GrandTotals)
    outcomes: List[SubjectOutcome] = Field(default_factory=list)
    failed: List[SubjectOutcome] = Field(default_factory=list)


class SubjectLedgerView(BaseModel):
    """Single-subject payload for on-screen display, newest entries first."""
    subject: Subject
    debit: List[LedgerEntry]
    credit: List[LedgerEntry]
    totals: SubjectTotals
    badge: str
    date_range: Optional[DateRange] = None


class DashboardSummary(BaseModel):
    """Headline figures for the vendor/expense list page."""
    total_vendors: int = 0
    total_expenses: int = 0
    total_credit: float = 0.0
    total_debit: float = 0.0
    net_balance: float = 0.0
    settled_vendors: int = 0
    total_expense_amount: float = 0.0
    expense_totals: Dict[str, float] = Field(default_factory=dict)
    last_transaction_dates: Dict[str, datetime] = Field(default_factory=dict)


class ExportResult(BaseModel):
    """Metadata about a written export file."""
    path: str
    filename: str
    media_type: str
    row_count: int
