"""Entry draft - state machine turning one receipt upload into a saved expense entry"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple
from uuid import uuid4

from ..config import Settings, get_settings
from ..models import (
    DEFAULT_PROJECT_CODE,
    ExpenseEntry,
    ExpenseFieldSet,
    ReceiptDocument,
    is_supported_media_type,
)
from ..models.constants import is_known_project_code
from ..models.serialization import document_to_dict, field_set_to_dict
from .core import ExtractionError
from .override import OverrideError, OverrideSession, generate_override_code
from .validation import (
    ComplianceJudge,
    ValidationOutcome,
    ValidationTier,
    check_required_fields,
    validate_expense,
)

logger = logging.getLogger(__name__)

INVALID_FILE_TYPE_MESSAGE = "Please select a valid image or PDF file."
EXTRACTION_FALLBACK_MESSAGE = "Failed to analyze receipt. Please fill details manually."
OTP_DELIVERY_FALLBACK_MESSAGE = "Could not send OTP to webhook."

Extractor = Callable[[ReceiptDocument], Awaitable[ExpenseFieldSet]]
CodeSender = Callable[[str, ExpenseFieldSet, str, str], Awaitable[None]]


class DraftState(str, Enum):
    """Draft entry states"""
    IDLE = "idle"  # no receipt chosen yet
    EXTRACTING = "extracting"  # waiting for the extraction gateway
    VALIDATING = "validating"  # waiting for the compliance judge
    READY = "ready"  # fields shown for confirmation, violations if any
    ERROR = "error"  # fill in manually; message in ``error``


class DraftError(Exception):
    """The requested action is not possible in the draft's current state."""


class EntryDraft:
    """One in-progress expense entry.

    Every document selection, field edit and save bumps a generation counter;
    results of async calls started under an older generation are dropped, so
    a superseded receipt can never overwrite the current one.
    """

    def __init__(
        self,
        *,
        report_id: str,
        currency: str,
        extractor: Extractor,
        judge: ComplianceJudge,
        code_sender: CodeSender,
        project_code: str = DEFAULT_PROJECT_CODE,
        settings: Optional[Settings] = None,
        code_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialise the draft

        Args:
            report_id: report the entry will be appended to
            currency: report currency, sent along with override requests
            extractor: async extraction gateway
            judge: async compliance judge
            code_sender: async passcode delivery channel
            project_code: project the expense is billed to
            settings: configuration (override policy, zero-amount rule)
            code_factory: override code generator
            clock: monotonic clock used for override code expiry
        """
        self.draft_id = f"drf-{uuid4().hex[:12]}"
        self.report_id = report_id
        self.currency = currency
        self.settings = settings or get_settings()
        self.project_code = DEFAULT_PROJECT_CODE
        self.set_project_code(project_code)

        self._extractor = extractor
        self._judge = judge
        self._code_sender = code_sender
        self._code_factory = code_factory or generate_override_code
        self._clock = clock or time.monotonic

        self.state = DraftState.IDLE
        self.error: Optional[str] = None
        self.document: Optional[ReceiptDocument] = None
        self.fields = ExpenseFieldSet()
        self.outcome: Optional[ValidationOutcome] = None
        self.override = self._new_override()
        self.committed = False
        self.created_at = datetime.now()
        self.updated_at = self.created_at

        self._generation = 0
        self.logger = logging.getLogger(f"{__name__}.{self.draft_id}")

    # ------------------------------------------------------------------ state

    @property
    def violations(self) -> Tuple[str, ...]:
        return self.outcome.violations if self.outcome else ()

    @property
    def busy(self) -> bool:
        return self.state in (DraftState.EXTRACTING, DraftState.VALIDATING)

    @property
    def can_save(self) -> bool:
        if self.committed or self.busy or self.document is None:
            return False
        return not self.violations or self.override.is_active

    @property
    def can_request_override(self) -> bool:
        return (
            not self.committed
            and not self.busy
            and self.outcome is not None
            and self.outcome.tier == ValidationTier.POLICY
            and bool(self.violations)
            and not self.override.is_active
        )

    def update_state(self, new_state: DraftState) -> None:
        if new_state != self.state:
            self.logger.info(f"{self.state.value} -> {new_state.value}")
        self.state = new_state
        self.updated_at = datetime.now()

    def set_error(self, error: str) -> None:
        self.error = error
        self.update_state(DraftState.ERROR)

    def set_project_code(self, project_code: str) -> None:
        if not is_known_project_code(project_code):
            raise DraftError(f"Unknown project code: {project_code}")
        self.project_code = project_code

    def _ensure_open(self) -> None:
        if self.committed:
            raise DraftError("This entry has already been saved.")

    def _advance(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and not self.committed

    def _new_override(self) -> OverrideSession:
        return OverrideSession(
            max_attempts=self.settings.override_max_attempts,
            code_ttl=self.settings.override_code_ttl,
            clock=self._clock,
        )

    def _reset_override(self) -> None:
        # A fresh object, so a delivery still in flight for the old one is ignored
        self.override = self._new_override()

    # --------------------------------------------------------------- document

    async def select_document(self, document: ReceiptDocument) -> DraftState:
        """Choose (or replace) the receipt and run extraction and validation

        Args:
            document: the uploaded receipt

        Returns:
            the state the draft settled in for this document
        """
        self._ensure_open()
        generation = self._advance()

        self.fields = ExpenseFieldSet()
        self.outcome = None
        self.error = None
        self._reset_override()

        if not is_supported_media_type(document.media_type):
            self.logger.warning(f"Rejected receipt {document.reference}: {document.media_type}")
            self.document = None
            self.set_error(INVALID_FILE_TYPE_MESSAGE)
            return self.state

        self.document = document
        self.update_state(DraftState.EXTRACTING)

        try:
            extracted = await self._extractor(document)
        except Exception as e:
            if not self._is_current(generation):
                self.logger.warning(f"Dropping stale extraction failure for {document.reference}")
                return self.state
            message = str(e) if isinstance(e, ExtractionError) and str(e) else EXTRACTION_FALLBACK_MESSAGE
            self.logger.error(f"Extraction failed for {document.reference}: {e}")
            self.fields = ExpenseFieldSet.manual_defaults()
            self.set_error(message)
            return self.state

        if not self._is_current(generation):
            self.logger.warning(f"Dropping stale extraction result for {document.reference}")
            return self.state

        self.fields = extracted.copy()
        await self._run_validation(generation)
        return self.state

    async def _run_validation(self, generation: int) -> Optional[ValidationOutcome]:
        document = self.document
        self.update_state(DraftState.VALIDATING)
        outcome = await validate_expense(
            self.fields.copy(),
            document,
            self._judge,
            allow_zero_amount=self.settings.allow_zero_amount,
        )
        if not self._is_current(generation):
            self.logger.warning("Dropping stale validation result")
            return None

        self.outcome = outcome
        self.error = None
        self.update_state(DraftState.READY)
        if outcome.violations:
            self.logger.info(f"Validation failed: {list(outcome.violations)}")
        return outcome

    # ----------------------------------------------------------------- fields

    def update_field(self, name: str, value: Any) -> None:
        self.update_fields({name: value})

    def update_fields(self, changes: Mapping[str, Any]) -> None:
        """Edit fields by hand

        Edits never re-run validation; they drop any override attempt and
        supersede an extraction or validation still in flight.

        Raises:
            DraftError: no receipt chosen or draft already saved
            ValueError: unknown field or invalid value (nothing is applied)
        """
        self._ensure_open()
        if self.document is None:
            raise DraftError("Choose a receipt before editing the fields.")

        candidate = self.fields.copy()
        for name, value in changes.items():
            candidate.update(name, value)

        self._advance()
        self.fields = candidate
        if self.busy:
            self.logger.info(f"Manual edit superseded {self.state.value}")
            self.outcome = None
            self.update_state(DraftState.READY)
        self._reset_override()
        self.updated_at = datetime.now()

    # --------------------------------------------------------------- override

    async def request_override(self) -> OverrideSession:
        """Generate an override code and send it to the approver

        The code input is available as soon as the code is generated; a
        delivery failure is reported but leaves the code usable.

        Raises:
            OverrideError: no policy violation to override, or already approved
        """
        self._ensure_open()
        session = self.override
        if session.is_active:
            raise OverrideError("Override is already approved.")
        if session.sending:
            return session
        if not self.can_request_override:
            raise OverrideError("There is no policy violation to override.")

        code = self._code_factory()
        session.issue(code)
        session.sending = True
        self.logger.info("Override code issued; delivering to approver")

        try:
            await self._code_sender(code, self.fields.copy(), self.project_code, self.currency)
        except Exception as e:
            self.logger.error(f"Override code delivery failed: {e}")
            if session is self.override and not session.is_active:
                message = str(e) or OTP_DELIVERY_FALLBACK_MESSAGE
                session.last_error = (
                    f"Error: {message} Please check the webhook connection and try again."
                )
        finally:
            session.sending = False
        return session

    def enter_override_code(self, value: str) -> bool:
        """Feed the typed code; the comparison happens at 4 characters."""
        self._ensure_open()
        approved = self.override.enter(value)
        if approved:
            self.logger.info("Override approved")
        return approved

    # ------------------------------------------------------------------- save

    async def save(self, commit: bool = True) -> Optional[ExpenseEntry]:
        """Commit the draft if it is allowed

        Without an approved override the fields are validated again so that
        a stale result can never be saved.

        Args:
            commit: close the draft once the entry is built; with False the
                caller closes it through ``mark_committed`` after storing the entry

        Returns:
            the new entry, or None when blocked by violations or superseded

        Raises:
            DraftError: no receipt, still processing, or already saved
        """
        self._ensure_open()
        if self.document is None:
            raise DraftError("A supporting invoice/receipt image is required.")
        if self.busy:
            raise DraftError("The receipt is still being processed.")

        generation = self._advance()

        if self.override.is_active:
            missing = check_required_fields(
                self.fields,
                self.document,
                allow_zero_amount=self.settings.allow_zero_amount,
            )
            if missing:
                self.outcome = ValidationOutcome(tuple(missing), ValidationTier.REQUIRED_FIELDS)
                self._reset_override()
                self.update_state(DraftState.READY)
                return None
            return self._commit(overridden=True, commit=commit)

        self.error = None
        outcome = await self._run_validation(generation)
        if outcome is None or not outcome.is_compliant:
            return None
        return self._commit(overridden=False, commit=commit)

    def _commit(self, overridden: bool, commit: bool = True) -> ExpenseEntry:
        entry = ExpenseEntry(
            fields=self.fields.copy(),
            project_code=self.project_code,
            receipt=self.document,
            overridden=overridden,
        )
        if commit:
            self.mark_committed(entry)
        return entry

    def mark_committed(self, entry: ExpenseEntry) -> None:
        """Close the draft once its entry is stored in the report."""
        self.committed = True
        self.updated_at = datetime.now()
        self.logger.info(f"Committed entry {entry.entry_id} (overridden={entry.overridden})")

    # --------------------------------------------------------------- snapshot

    def snapshot(self) -> Dict[str, Any]:
        return {
            "draft_id": self.draft_id,
            "report_id": self.report_id,
            "state": self.state.value,
            "error": self.error,
            "currency": self.currency,
            "project_code": self.project_code,
            "document": document_to_dict(self.document) if self.document else None,
            "fields": field_set_to_dict(self.fields),
            "show_people_count": bool(self.fields.category and self.fields.category.tracks_headcount),
            "validated": self.outcome is not None,
            "violations": list(self.violations),
            "override": self.override.snapshot(),
            "can_request_override": self.can_request_override,
            "can_save": self.can_save,
            "committed": self.committed,
        }


__all__ = [
    "CodeSender",
    "DraftError",
    "DraftState",
    "EXTRACTION_FALLBACK_MESSAGE",
    "EntryDraft",
    "Extractor",
    "INVALID_FILE_TYPE_MESSAGE",
]
