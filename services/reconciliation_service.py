"""
Ledger reconciliation service.
Fetches subject ledgers one at a time and aggregates them into per-subject
and cross-subject totals.
"""
import asyncio
from typing import Any, Dict, List, Optional, Sequence

from core.aggregate import (
    aggregate,
    detail_badge,
    last_transaction_date,
    most_recent_first,
    summary_status,
)
from core.classify import credit_column
from core.exceptions import FetchError
from core.logger import setup_logger
from core.normalize import normalize_ledger
from core.schema import (
    BatchReconciliation,
    DashboardSummary,
    DateRange,
    GrandTotals,
    Subject,
    SubjectLedgerView,
    SubjectOutcome,
    SubjectTotals,
)
from gateway.client import LedgerGatewayClient, get_client

logger = setup_logger(__name__)

# Log batch progress every N subjects
PROGRESS_EVERY = 10


def build_outcome(subject: Subject, payload: Any) -> SubjectOutcome:
    """Normalize a fetched payload and aggregate it for one subject."""
    ledger = normalize_ledger(payload, subject.kind, subject.id)
    return SubjectOutcome(subject=subject, ledger=ledger, totals=aggregate(ledger.entries))


def build_grand_totals(per_subject: Dict[str, SubjectTotals]) -> GrandTotals:
    """
    Sum per-subject totals.

    ``total_balance`` is credit - debit, the bulk/summary convention.
    """
    total_debit = sum(t.debit_total for t in per_subject.values())
    total_credit = sum(t.credit_total for t in per_subject.values())
    return GrandTotals(
        total_debit=total_debit,
        total_credit=total_credit,
        total_balance=total_credit - total_debit,
        subject_count=len(per_subject),
        status=summary_status(total_credit, total_debit),
    )


class ReconciliationService:
    """Service for reconciling vendor and expense-category ledgers."""

    def __init__(self, client: Optional[LedgerGatewayClient] = None):
        """Initialize with a gateway client (defaults to the shared one)."""
        self.client = client or get_client()

    async def _fetch(
        self,
        subject: Subject,
        date_range: Optional[DateRange],
        company_id: Optional[str],
    ) -> Any:
        # The gateway client is synchronous; keep the event loop free
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self.client.fetch_ledger, subject.kind, subject.id, date_range, company_id
        )

    async def load_subject(
        self,
        subject: Subject,
        date_range: Optional[DateRange] = None,
        company_id: Optional[str] = None,
    ) -> SubjectOutcome:
        """
        Fetch and aggregate one subject.

        Fetch and normalization failures are returned as an outcome with
        ``error`` set instead of being raised.

        Args:
            subject: Vendor or expense category
            date_range: Optional date filter
            company_id: Optional owning company scope

        Returns:
            SubjectOutcome
        """
        try:
            payload = await self._fetch(subject, date_range, company_id)
            return build_outcome(subject, payload)
        except FetchError as e:
            logger.warning(f"Ledger fetch failed for {subject.kind} {subject.id} ({subject.name}): {e.message}")
            return SubjectOutcome(subject=subject, error=e.message)
        except Exception as e:
            logger.error(f"Unexpected error loading {subject.kind} {subject.id}: {e}", exc_info=True)
            return SubjectOutcome(subject=subject, error=str(e))

    async def run_batch(
        self,
        subjects: Sequence[Subject],
        date_range: Optional[DateRange] = None,
        company_id: Optional[str] = None,
    ) -> BatchReconciliation:
        """
        Reconcile subjects sequentially, in input order, skipping failures.
        """
        total = len(subjects)
        per_subject: Dict[str, SubjectTotals] = {}
        outcomes: List[SubjectOutcome] = []
        failed: List[SubjectOutcome] = []

        for idx, subject in enumerate(subjects, start=1):
            outcome = await self.load_subject(subject, date_range, company_id)
            if outcome.ok:
                per_subject[subject.id] = outcome.totals
                outcomes.append(outcome)
            else:
                failed.append(outcome)

            if idx % PROGRESS_EVERY == 0 or idx == total:
                logger.info(f"Progress: {idx}/{total} subjects reconciled ({len(failed)} skipped)")

        return BatchReconciliation(
            per_subject=per_subject,
            grand=build_grand_totals(per_subject),
            outcomes=outcomes,
            failed=failed,
        )

    async def reconcile_all(
        self,
        subjects: Sequence[Subject],
        date_range: Optional[DateRange] = None,
        company_id: Optional[str] = None,
    ) -> BatchReconciliation:
        """
        Reconcile every subject and compute grand totals.

        A failing subject is logged and left out; partial results are
        returned.

        Raises:
            FetchError: If the subject list is non-empty and every fetch failed
        """
        logger.info(f"Reconciling {len(subjects)} subjects (date_range={date_range}, company={company_id})")
        batch = await self.run_batch(subjects, date_range, company_id)

        if subjects and not batch.outcomes:
            raise FetchError(
                "Failed to fetch ledger data for every subject",
                details={"failed": [o.subject.id for o in batch.failed]},
            )

        grand = batch.grand
        logger.info(
            f"Reconciled {grand.subject_count}/{len(subjects)} subjects: "
            f"debit={grand.total_debit:,.2f} credit={grand.total_credit:,.2f} "
            f"balance={grand.total_balance:,.2f} ({grand.status})"
        )
        return batch

    async def subject_view(
        self,
        subject: Subject,
        date_range: Optional[DateRange] = None,
        company_id: Optional[str] = None,
    ) -> SubjectLedgerView:
        """
        Single-subject ledger for on-screen display: debit entries, the credit
        column (cash purchases plus payments), both newest first, and totals.

        Raises:
            FetchError: If the ledger cannot be fetched
        """
        payload = await self._fetch(subject, date_range, company_id)
        outcome = build_outcome(subject, payload)

        return SubjectLedgerView(
            subject=subject,
            debit=most_recent_first(outcome.ledger.debit),
            credit=most_recent_first(credit_column(outcome.ledger)),
            totals=outcome.totals,
            badge=detail_badge(outcome.totals.balance),
            date_range=date_range,
        )

    async def dashboard_summary(
        self,
        vendors: Sequence[Subject],
        expenses: Sequence[Subject],
        date_range: Optional[DateRange] = None,
        company_id: Optional[str] = None,
    ) -> DashboardSummary:
        """
        Headline figures for the vendor/expense list page.

        Vendor totals feed credit, debit and net balance (credit - debit);
        each expense category contributes its credit total to the
        expense amount. Failed subjects contribute nothing.
        """
        vendor_batch = await self.run_batch(vendors, date_range, company_id)
        expense_batch = await self.run_batch(expenses, date_range, company_id)

        expense_totals = {sid: t.credit_total for sid, t in expense_batch.per_subject.items()}
        last_dates = {}
        for outcome in [*vendor_batch.outcomes, *expense_batch.outcomes]:
            latest = last_transaction_date(outcome.ledger.entries)
            if latest is not None:
                last_dates[outcome.subject.id] = latest

        grand = vendor_batch.grand
        return DashboardSummary(
            total_vendors=len(vendors),
            total_expenses=len(expenses),
            total_credit=grand.total_credit,
            total_debit=grand.total_debit,
            net_balance=grand.total_balance,
            settled_vendors=sum(1 for t in vendor_batch.per_subject.values() if t.balance == 0),
            total_expense_amount=sum(expense_totals.values()),
            expense_totals=expense_totals,
            last_transaction_dates=last_dates,
        )
