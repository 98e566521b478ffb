"""Agent module - receipt extraction, validation and the entry workflow"""

from .core import ComplianceVerdict, ExpenseAgent, ExtractionError
from .draft import DraftError, DraftState, EntryDraft
from .override import OverrideError, OverrideSession, OverrideState
from .validation import ValidationOutcome, check_required_fields, validate_expense
from .workbench import ExpenseWorkbench, NotFoundError, ReportError, SubmissionResult, View

__all__ = [
    "ComplianceVerdict",
    "DraftError",
    "DraftState",
    "EntryDraft",
    "ExpenseAgent",
    "ExpenseWorkbench",
    "ExtractionError",
    "NotFoundError",
    "OverrideError",
    "OverrideSession",
    "OverrideState",
    "ReportError",
    "SubmissionResult",
    "ValidationOutcome",
    "View",
    "check_required_fields",
    "validate_expense",
]
