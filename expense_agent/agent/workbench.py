"""Workbench - owns the report collection, navigation and in-progress drafts"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..config import Settings, get_settings
from ..delivery import send_override_code, submit_report_to_webhook
from ..models import (
    ExpenseEntry,
    ExpenseReport,
    ReportStatus,
    sample_reports,
)
from ..models.constants import DEFAULT_PROJECT_CODE, find_currency
from .core import ExpenseAgent
from .draft import CodeSender, EntryDraft, Extractor
from .validation import ComplianceJudge

logger = logging.getLogger(__name__)

Submitter = Callable[[Sequence[ExpenseEntry], str, str], Awaitable[None]]

SUBMISSION_FALLBACK_MESSAGE = "An unknown error occurred during submission."


class ReportError(Exception):
    """A report operation was refused."""


class NotFoundError(ReportError):
    """Unknown report or draft id."""


class View(str, Enum):
    """What the user is looking at"""
    LIST = "list"
    DETAIL = "detail"
    NEW_ENTRY = "new_entry"


@dataclass
class SubmissionResult:
    """Outcome of one report submission"""
    success: bool
    report_id: str
    submitted: bool = False  # False when nothing was sent (empty or already submitted)
    error: Optional[str] = None


class ExpenseWorkbench:
    """Application state coordinator.

    The report collection is a tuple replaced on every mutation; entries are
    only ever appended through a saved draft or ``add_entry``.
    """

    def __init__(
        self,
        *,
        submitter: Optional[Submitter] = None,
        extractor: Optional[Extractor] = None,
        judge: Optional[ComplianceJudge] = None,
        code_sender: Optional[CodeSender] = None,
        settings: Optional[Settings] = None,
        reports: Optional[Iterable[ExpenseReport]] = None,
    ):
        """Initialise the workbench

        Args:
            submitter: submission channel (defaults to the workflow webhook)
            extractor: extraction gateway (defaults to the vision model)
            judge: compliance judge (defaults to the vision model)
            code_sender: passcode delivery channel (defaults to the OTP webhook)
            settings: configuration
            reports: initial reports; demo reports are used when configured
        """
        self.settings = settings or get_settings()
        if extractor is None or judge is None:
            agent = ExpenseAgent(self.settings)
            extractor = extractor or agent.extract_fields
            judge = judge or agent.judge_compliance
        self._extractor = extractor
        self._judge = judge
        self._code_sender = code_sender or self._send_override_code
        self._submitter = submitter or self._submit_to_webhook

        if reports is None and self.settings.seed_sample_reports:
            reports = sample_reports()
        self.reports: Tuple[ExpenseReport, ...] = tuple(reports or ())
        self.selected_report_id: Optional[str] = None
        self.view = View.LIST
        self.drafts: Dict[str, EntryDraft] = {}
        self.submitting: Set[str] = set()
        self.submission_error: Optional[str] = None
        self.logger = logging.getLogger(f"{__name__}.ExpenseWorkbench")

    async def _send_override_code(self, code, fields, project_code, currency) -> None:
        await send_override_code(code, fields, project_code, currency, settings=self.settings)

    async def _submit_to_webhook(self, entries, report_id, currency) -> None:
        await submit_report_to_webhook(entries, report_id, currency, settings=self.settings)

    # ---------------------------------------------------------------- lookups

    def get_report(self, report_id: str) -> ExpenseReport:
        for report in self.reports:
            if report.report_id == report_id:
                return report
        raise NotFoundError(f"Report not found: {report_id}")

    def find_report(self, report_id: str) -> Optional[ExpenseReport]:
        try:
            return self.get_report(report_id)
        except NotFoundError:
            return None

    @property
    def selected_report(self) -> Optional[ExpenseReport]:
        if self.selected_report_id is None:
            return None
        return self.find_report(self.selected_report_id)

    def reports_by_status(self) -> Dict[ReportStatus, List[ExpenseReport]]:
        grouped: Dict[ReportStatus, List[ExpenseReport]] = {status: [] for status in ReportStatus}
        for report in self.reports:
            grouped[report.status].append(report)
        return grouped

    def _replace_report(self, updated: ExpenseReport) -> None:
        self.reports = tuple(
            updated if report.report_id == updated.report_id else report
            for report in self.reports
        )

    # ------------------------------------------------------------ report CRUD

    def create_report(self, name: str, currency: str) -> ExpenseReport:
        """Create a draft report at the top of the list."""
        cleaned = (name or "").strip()
        if not cleaned:
            raise ReportError("Report name cannot be empty.")
        if find_currency(currency) is None:
            raise ReportError(f"Unsupported currency: {currency}")

        report = ExpenseReport(name=cleaned, currency=currency, status=ReportStatus.DRAFT)
        self.reports = (report,) + self.reports
        self.logger.info(f"Created report {report.report_id} ({cleaned}, {currency})")
        return report

    def select_report(self, report_id: str) -> ExpenseReport:
        """Open a report; viewing a draft report opens it."""
        report = self.get_report(report_id)
        if report.status == ReportStatus.DRAFT:
            report = report.with_status(ReportStatus.OPEN)
            self._replace_report(report)
            self.logger.info(f"Report {report_id} opened")
        self.selected_report_id = report_id
        self.submission_error = None
        self.view = View.DETAIL
        return report

    def back_to_list(self) -> None:
        self.selected_report_id = None
        self.view = View.LIST

    def rename_report(self, report_id: str, name: str) -> ExpenseReport:
        """Rename in place; a blank name leaves the report unchanged."""
        report = self.get_report(report_id)
        cleaned = (name or "").strip()
        if not cleaned:
            return report
        report = report.renamed(cleaned)
        self._replace_report(report)
        return report

    def delete_report(self, report_id: str) -> None:
        """Remove a report and any draft started for it."""
        self.get_report(report_id)
        self.reports = tuple(r for r in self.reports if r.report_id != report_id)
        for draft_id in [d.draft_id for d in self.drafts.values() if d.report_id == report_id]:
            del self.drafts[draft_id]
        if self.selected_report_id == report_id:
            self.back_to_list()
        self.logger.info(f"Deleted report {report_id}")

    def _ensure_accepts_entries(self, report_id: str) -> ExpenseReport:
        report = self.get_report(report_id)
        if not report.can_accept_entries:
            raise ReportError("Entries cannot be added to a submitted report.")
        if report_id in self.submitting:
            raise ReportError("Entries cannot be added while the report is being submitted.")
        return report

    def add_entry(self, report_id: str, entry: ExpenseEntry) -> ExpenseReport:
        """Append an entry; the report becomes open."""
        report = self._ensure_accepts_entries(report_id).with_entry(entry)
        self._replace_report(report)
        return report

    # ----------------------------------------------------------------- drafts

    def start_draft(self, report_id: str, project_code: Optional[str] = None) -> EntryDraft:
        report = self.get_report(report_id)
        if not report.can_accept_entries:
            raise ReportError("Entries cannot be added to a submitted report.")

        draft = EntryDraft(
            report_id=report_id,
            currency=report.currency,
            extractor=self._extractor,
            judge=self._judge,
            code_sender=self._code_sender,
            project_code=project_code or DEFAULT_PROJECT_CODE,
            settings=self.settings,
        )
        self.drafts[draft.draft_id] = draft
        self.selected_report_id = report_id
        self.view = View.NEW_ENTRY
        return draft

    def get_draft(self, draft_id: str) -> EntryDraft:
        draft = self.drafts.get(draft_id)
        if draft is None:
            raise NotFoundError(f"Draft not found: {draft_id}")
        return draft

    def discard_draft(self, draft_id: str) -> None:
        draft = self.drafts.pop(draft_id, None)
        if draft is not None and self.find_report(draft.report_id) is not None:
            self.selected_report_id = draft.report_id
            self.view = View.DETAIL

    async def save_draft(self, draft_id: str) -> Optional[ExpenseEntry]:
        """Save a draft into its report

        Returns:
            the appended entry, or None when the draft is blocked

        Raises:
            ReportError: the report is submitted or being submitted
            NotFoundError: the report is gone

            In both cases the draft stays open and can be saved again later.
        """
        draft = self.get_draft(draft_id)
        self._ensure_accepts_entries(draft.report_id)

        entry = await draft.save(commit=False)
        if entry is None:
            return None

        # The report may have changed while the judge was running
        self.add_entry(draft.report_id, entry)
        draft.mark_committed(entry)
        self.drafts.pop(draft_id, None)
        self.selected_report_id = draft.report_id
        self.view = View.DETAIL
        return entry

    # ------------------------------------------------------------- submission

    async def submit_report(self, report_id: str) -> SubmissionResult:
        """Deliver all entries of a report to the workflow endpoint

        Raises:
            ReportError: a submission for this report is already outstanding
        """
        report = self.get_report(report_id)
        if report.status == ReportStatus.SUBMITTED or not report.entries:
            return SubmissionResult(success=False, report_id=report_id)
        if report_id in self.submitting:
            raise ReportError("This report is already being submitted.")

        self.submitting.add(report_id)
        self.submission_error = None
        try:
            await self._submitter(report.entries, report.report_id, report.currency)
        except Exception as e:
            message = str(e) or SUBMISSION_FALLBACK_MESSAGE
            self.logger.error(f"Submission failed for report {report_id}: {message}")
            self.submission_error = message
            return SubmissionResult(success=False, report_id=report_id, submitted=True, error=message)
        finally:
            self.submitting.discard(report_id)

        current = self.find_report(report_id)
        if current is not None:
            self._replace_report(current.with_status(ReportStatus.SUBMITTED))
        self.logger.info(f"Report {report_id} submitted with {len(report.entries)} entries")
        self.back_to_list()
        return SubmissionResult(success=True, report_id=report_id, submitted=True)


__all__ = [
    "ExpenseWorkbench",
    "NotFoundError",
    "ReportError",
    "SubmissionResult",
    "View",
]
