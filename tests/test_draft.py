import asyncio
from datetime import date

import pytest

from expense_agent.agent.core import EXTRACTION_FAILED_MESSAGE, ComplianceVerdict, ExtractionError
from expense_agent.agent.draft import (
    EXTRACTION_FALLBACK_MESSAGE,
    INVALID_FILE_TYPE_MESSAGE,
    DraftError,
    DraftState,
    EntryDraft,
)
from expense_agent.agent.override import OverrideError, OverrideState
from expense_agent.agent.validation import MISSING_FIELDS_MESSAGE, ValidationTier
from expense_agent.models import ExpenseCategory, ReceiptDocument

from .helpers import FakeCodeSender, FakeExtractor, FakeJudge, make_fields, make_settings

POLICY_REASON = "Meals above 1000 per person need prior approval."


class BlockingExtractor:
    """Extractor whose results are released by the test, per filename."""

    def __init__(self):
        self.started = {}
        self.release = {}
        self.results = {}

    def prepare(self, filename, fields):
        self.started[filename] = asyncio.Event()
        self.release[filename] = asyncio.Event()
        self.results[filename] = fields

    async def __call__(self, document):
        self.started[document.filename].set()
        await self.release[document.filename].wait()
        return self.results[document.filename].copy()


class BlockingJudge:
    def __init__(self, verdict=None):
        self.verdict = verdict or ComplianceVerdict(is_valid=True)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, fields, document):
        self.started.set()
        await self.release.wait()
        return self.verdict


class BlockingCodeSender:
    def __init__(self, error=None):
        self.error = error
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, code, fields, project_code, currency):
        self.started.set()
        await self.release.wait()
        if self.error is not None:
            raise self.error


def make_draft(extractor=None, judge=None, code_sender=None, **settings_overrides):
    return EntryDraft(
        report_id="rep-1",
        currency="INR",
        extractor=extractor or FakeExtractor(),
        judge=judge or FakeJudge(),
        code_sender=code_sender or FakeCodeSender(),
        settings=make_settings(**settings_overrides),
        code_factory=lambda: "4821",
    )


def receipt_named(filename, media_type="image/jpeg"):
    return ReceiptDocument(content=b"data-" + filename.encode(), media_type=media_type, filename=filename)


async def rejected_draft(code_sender=None):
    judge = FakeJudge(ComplianceVerdict(is_valid=False, reason=POLICY_REASON))
    draft = make_draft(judge=judge, code_sender=code_sender)
    await draft.select_document(receipt_named("dinner.jpg"))
    return draft


@pytest.mark.asyncio
async def test_compliant_receipt_is_ready_to_save(receipt):
    draft = make_draft()
    state = await draft.select_document(receipt)

    assert state == DraftState.READY
    assert draft.violations == ()
    assert draft.can_save
    assert draft.fields.merchant == "Cafe Coffee Day"


@pytest.mark.asyncio
async def test_unsupported_file_type_is_rejected():
    extractor = FakeExtractor()
    draft = make_draft(extractor=extractor)

    state = await draft.select_document(receipt_named("notes.txt", media_type="text/plain"))

    assert state == DraftState.ERROR
    assert draft.error == INVALID_FILE_TYPE_MESSAGE
    assert draft.document is None
    assert extractor.calls == []


@pytest.mark.asyncio
async def test_pdf_receipts_are_accepted():
    draft = make_draft()
    state = await draft.select_document(receipt_named("invoice.pdf", media_type="application/pdf"))
    assert state == DraftState.READY


@pytest.mark.asyncio
async def test_extraction_failure_seeds_manual_defaults(receipt):
    draft = make_draft(extractor=FakeExtractor(error=ExtractionError(EXTRACTION_FAILED_MESSAGE)))

    state = await draft.select_document(receipt)

    assert state == DraftState.ERROR
    assert draft.error == EXTRACTION_FAILED_MESSAGE
    assert draft.fields.date == date.today()
    assert draft.fields.amount == 0.0
    assert draft.fields.category == ExpenseCategory.OFFICE
    assert draft.document is receipt


@pytest.mark.asyncio
async def test_unexpected_extraction_failure_uses_generic_message(receipt):
    draft = make_draft(extractor=FakeExtractor(error=RuntimeError("boom")))
    await draft.select_document(receipt)
    assert draft.error == EXTRACTION_FALLBACK_MESSAGE


@pytest.mark.asyncio
async def test_manual_entry_after_extraction_failure_can_be_saved(receipt):
    draft = make_draft(extractor=FakeExtractor(error=RuntimeError("boom")))
    await draft.select_document(receipt)

    draft.update_fields({"amount": "120.50", "title": "Stationery", "comment": "Printer paper"})
    entry = await draft.save()

    assert entry is not None
    assert entry.fields.amount == 120.5
    assert draft.committed


@pytest.mark.asyncio
async def test_stale_extraction_result_is_dropped():
    extractor = BlockingExtractor()
    extractor.prepare("first.jpg", make_fields(merchant="First Merchant"))
    extractor.prepare("second.jpg", make_fields(merchant="Second Merchant"))
    draft = make_draft(extractor=extractor)
    first, second = receipt_named("first.jpg"), receipt_named("second.jpg")

    first_task = asyncio.create_task(draft.select_document(first))
    await extractor.started["first.jpg"].wait()

    extractor.release["second.jpg"].set()
    await draft.select_document(second)
    assert draft.fields.merchant == "Second Merchant"

    extractor.release["first.jpg"].set()
    await first_task

    assert draft.document is second
    assert draft.fields.merchant == "Second Merchant"
    assert draft.state == DraftState.READY


@pytest.mark.asyncio
async def test_edit_during_validation_supersedes_verdict(receipt):
    judge = BlockingJudge(ComplianceVerdict(is_valid=False, reason=POLICY_REASON))
    draft = make_draft(judge=judge)

    task = asyncio.create_task(draft.select_document(receipt))
    await judge.started.wait()
    assert draft.state == DraftState.VALIDATING

    draft.update_field("comment", "Team offsite lunch")
    assert draft.state == DraftState.READY
    assert draft.outcome is None

    judge.release.set()
    await task

    assert draft.outcome is None
    assert draft.violations == ()
    assert draft.fields.comment == "Team offsite lunch"


@pytest.mark.asyncio
async def test_edit_requires_a_document():
    with pytest.raises(DraftError):
        make_draft().update_field("amount", 10)


@pytest.mark.asyncio
async def test_invalid_edit_applies_nothing(receipt):
    draft = make_draft()
    await draft.select_document(receipt)

    with pytest.raises(ValueError):
        draft.update_fields({"title": "Changed", "amount": -5})

    assert draft.fields.title == "Client lunch"
    assert draft.fields.amount == 450.0


@pytest.mark.asyncio
async def test_unknown_project_code_is_refused():
    draft = make_draft()
    with pytest.raises(DraftError):
        draft.set_project_code("NOPE-999")


@pytest.mark.asyncio
async def test_policy_violation_blocks_save():
    draft = await rejected_draft()

    assert draft.violations == (POLICY_REASON,)
    assert draft.can_request_override
    assert not draft.can_save
    assert await draft.save() is None
    assert not draft.committed


@pytest.mark.asyncio
async def test_override_flow_saves_overridden_entry():
    sender = FakeCodeSender()
    draft = await rejected_draft(code_sender=sender)

    session = await draft.request_override()
    assert session.state == OverrideState.CODE_SENT
    assert sender.sent[0][0] == "4821"
    assert sender.sent[0][2] == draft.project_code
    assert sender.sent[0][3] == "INR"

    assert draft.enter_override_code("1234") is False
    assert draft.override.last_error == "Invalid OTP. Please try again."
    assert draft.enter_override_code("4821") is True
    assert draft.can_save

    entry = await draft.save()
    assert entry is not None
    assert entry.overridden
    assert entry.project_code == draft.project_code


@pytest.mark.asyncio
async def test_override_refused_for_missing_fields(receipt):
    draft = make_draft(extractor=FakeExtractor(make_fields(comment="")))
    await draft.select_document(receipt)

    assert draft.outcome.tier == ValidationTier.REQUIRED_FIELDS
    assert not draft.can_request_override
    with pytest.raises(OverrideError):
        await draft.request_override()


@pytest.mark.asyncio
async def test_override_refused_without_violations(receipt):
    draft = make_draft()
    await draft.select_document(receipt)
    with pytest.raises(OverrideError):
        await draft.request_override()


@pytest.mark.asyncio
async def test_delivery_failure_is_reported_but_code_stays_usable():
    draft = await rejected_draft(code_sender=FakeCodeSender(error=RuntimeError("HTTP 503")))

    session = await draft.request_override()

    assert session.last_error == "Error: HTTP 503 Please check the webhook connection and try again."
    assert session.state == OverrideState.CODE_SENT
    assert draft.enter_override_code("4821") is True


@pytest.mark.asyncio
async def test_late_delivery_failure_ignored_after_edit():
    sender = BlockingCodeSender(error=RuntimeError("timeout"))
    draft = await rejected_draft(code_sender=sender)

    task = asyncio.create_task(draft.request_override())
    await sender.started.wait()
    draft.update_field("comment", "Dinner with partners")
    sender.release.set()
    await task

    assert draft.override.state == OverrideState.NO_REQUEST
    assert draft.override.last_error is None


@pytest.mark.asyncio
async def test_edit_resets_approved_override():
    draft = await rejected_draft()
    await draft.request_override()
    draft.enter_override_code("4821")

    draft.update_field("amount", 900)

    assert draft.override.state == OverrideState.NO_REQUEST
    assert not draft.can_save


@pytest.mark.asyncio
async def test_approved_override_still_requires_fields():
    draft = await rejected_draft()
    await draft.request_override()
    draft.enter_override_code("4821")
    draft.fields.comment = ""

    assert await draft.save() is None
    assert draft.violations == (MISSING_FIELDS_MESSAGE,)
    assert draft.override.state == OverrideState.NO_REQUEST
    assert not draft.committed


@pytest.mark.asyncio
async def test_save_revalidates_against_the_judge(receipt):
    judge = FakeJudge()
    draft = make_draft(judge=judge)
    await draft.select_document(receipt)
    assert len(judge.calls) == 1

    judge.verdict = ComplianceVerdict(is_valid=False, reason=POLICY_REASON)
    assert await draft.save() is None
    assert len(judge.calls) == 2
    assert draft.violations == (POLICY_REASON,)


@pytest.mark.asyncio
async def test_save_without_document_is_refused():
    with pytest.raises(DraftError):
        await make_draft().save()


@pytest.mark.asyncio
async def test_saved_draft_cannot_change(receipt):
    draft = make_draft()
    await draft.select_document(receipt)
    assert await draft.save() is not None

    with pytest.raises(DraftError):
        await draft.save()
    with pytest.raises(DraftError):
        draft.update_field("title", "Other")


@pytest.mark.asyncio
async def test_new_document_clears_previous_state():
    draft = await rejected_draft()
    await draft.request_override()

    await draft.select_document(receipt_named("taxi.jpg"))

    assert draft.override.state == OverrideState.NO_REQUEST
    assert draft.document.filename == "taxi.jpg"


@pytest.mark.asyncio
async def test_snapshot_shows_people_count_for_food(receipt):
    draft = make_draft()
    await draft.select_document(receipt)
    snapshot = draft.snapshot()

    assert snapshot["show_people_count"] is True
    assert snapshot["state"] == "ready"
    assert snapshot["fields"]["category"] == "Food Expense"


class DocumentJudge:
    """Judge that holds the verdict for one receipt and rejects it."""

    def __init__(self, held_filename):
        self.held_filename = held_filename
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, fields, document):
        if document.filename == self.held_filename:
            self.started.set()
            await self.release.wait()
            return ComplianceVerdict(is_valid=False, reason=f"Rejected {document.filename}")
        return ComplianceVerdict(is_valid=True)


@pytest.mark.asyncio
async def test_stale_verdict_dropped_after_document_replaced():
    extractor = BlockingExtractor()
    extractor.prepare("first.jpg", make_fields(merchant="First Merchant"))
    extractor.prepare("second.jpg", make_fields(merchant="Second Merchant"))
    extractor.release["first.jpg"].set()
    extractor.release["second.jpg"].set()
    judge = DocumentJudge("first.jpg")
    draft = make_draft(extractor=extractor, judge=judge)
    second = receipt_named("second.jpg")

    first_task = asyncio.create_task(draft.select_document(receipt_named("first.jpg")))
    await judge.started.wait()
    assert draft.state == DraftState.VALIDATING

    await draft.select_document(second)
    judge.release.set()
    await first_task

    assert draft.document is second
    assert draft.fields.merchant == "Second Merchant"
    assert draft.outcome is not None
    assert draft.outcome.is_compliant
    assert draft.violations == ()
    assert draft.state == DraftState.READY
