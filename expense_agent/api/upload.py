"""Draft endpoints - receipt upload, field edits, override and save"""

import logging
import mimetypes
from typing import Any, List, Optional, Union

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from ..agent.draft import DraftError, EntryDraft
from ..agent.override import OverrideError
from ..agent.workbench import ExpenseWorkbench, NotFoundError, ReportError
from ..models import ReceiptDocument
from ..models.serialization import entry_to_dict, report_to_dict
from .dependencies import get_workbench

logger = logging.getLogger(__name__)

router = APIRouter()

# Upload size limit (5MB)
MAX_FILE_SIZE = 5 * 1024 * 1024


class DraftResponse(BaseModel):
    success: bool
    draft: Optional[dict] = None
    error: Optional[str] = None


class FieldUpdateRequest(BaseModel):
    date: Optional[str] = None
    amount: Optional[Union[float, str]] = None
    merchant: Optional[str] = None
    title: Optional[str] = None
    category: Optional[str] = None
    comment: Optional[str] = None
    people_count: Optional[int] = None
    project_code: Optional[str] = None


class OverrideCodeRequest(BaseModel):
    code: str


class OverrideCodeResponse(BaseModel):
    approved: bool
    draft: dict


class SaveResponse(BaseModel):
    success: bool
    entry: Optional[dict] = None
    report: Optional[dict] = None
    violations: List[str] = []
    draft: Optional[dict] = None


async def read_receipt(file: UploadFile) -> ReceiptDocument:
    """Read an uploaded receipt, enforcing the size limit"""
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Receipt file name is empty")

    try:
        content = await file.read()
    except Exception as e:
        logger.error(f"[upload] failed to read receipt: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to read receipt file: {e}",
        )

    size = len(content)
    logger.info(f"[upload] receipt {file.filename}: {size} bytes, type={file.content_type}")
    if size == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Receipt file is empty")
    if size > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Receipt file is too large, maximum {MAX_FILE_SIZE / 1024 / 1024:.1f}MB "
                f"(got {size / 1024 / 1024:.2f}MB)"
            ),
        )

    media_type = file.content_type
    if not media_type or media_type == "application/octet-stream":
        media_type = mimetypes.guess_type(file.filename)[0] or "application/octet-stream"

    return ReceiptDocument(content=content, media_type=media_type, filename=file.filename)


def _get_draft_or_404(workbench: ExpenseWorkbench, draft_id: str) -> EntryDraft:
    try:
        return workbench.get_draft(draft_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/reports/{report_id}/drafts", response_model=DraftResponse, status_code=status.HTTP_201_CREATED)
async def create_draft(
    report_id: str,
    file: UploadFile = File(...),
    project_code: Optional[str] = Form(None),
    workbench: ExpenseWorkbench = Depends(get_workbench),
):
    """Start a new entry from a receipt; runs extraction and validation

    Args:
        report_id: report the entry belongs to
        file: receipt image or PDF
        project_code: project to bill (defaults to the first project)

    Returns:
        the draft snapshot
    """
    document = await read_receipt(file)
    try:
        draft = workbench.start_draft(report_id, project_code=project_code)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (ReportError, DraftError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    await draft.select_document(document)
    logger.info(f"[upload] draft {draft.draft_id} settled in {draft.state.value}")
    return DraftResponse(success=draft.error is None, draft=draft.snapshot(), error=draft.error)


@router.get("/drafts/{draft_id}", response_model=DraftResponse)
async def get_draft(draft_id: str, workbench: ExpenseWorkbench = Depends(get_workbench)):
    draft = _get_draft_or_404(workbench, draft_id)
    return DraftResponse(success=True, draft=draft.snapshot(), error=draft.error)


@router.put("/drafts/{draft_id}/document", response_model=DraftResponse)
async def replace_document(
    draft_id: str,
    file: UploadFile = File(...),
    workbench: ExpenseWorkbench = Depends(get_workbench),
):
    """Replace the receipt; the draft starts over"""
    draft = _get_draft_or_404(workbench, draft_id)
    document = await read_receipt(file)
    try:
        await draft.select_document(document)
    except DraftError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return DraftResponse(success=draft.error is None, draft=draft.snapshot(), error=draft.error)


@router.patch("/drafts/{draft_id}/fields", response_model=DraftResponse)
async def update_fields(
    draft_id: str,
    request: FieldUpdateRequest,
    workbench: ExpenseWorkbench = Depends(get_workbench),
):
    """Edit fields by hand; resets any override in progress"""
    draft = _get_draft_or_404(workbench, draft_id)
    changes: dict[str, Any] = request.model_dump(exclude_unset=True)
    project_code = changes.pop("project_code", None)

    try:
        if project_code is not None:
            draft.set_project_code(project_code)
        if changes:
            draft.update_fields(changes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DraftError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return DraftResponse(success=True, draft=draft.snapshot(), error=draft.error)


@router.post("/drafts/{draft_id}/override", response_model=DraftResponse)
async def request_override(draft_id: str, workbench: ExpenseWorkbench = Depends(get_workbench)):
    """Send an override code to the approver"""
    draft = _get_draft_or_404(workbench, draft_id)
    try:
        session = await draft.request_override()
    except (OverrideError, DraftError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return DraftResponse(success=session.last_error is None, draft=draft.snapshot(), error=session.last_error)


@router.post("/drafts/{draft_id}/override/code", response_model=OverrideCodeResponse)
async def enter_override_code(
    draft_id: str,
    request: OverrideCodeRequest,
    workbench: ExpenseWorkbench = Depends(get_workbench),
):
    """Check the typed override code (compared once 4 characters are in)"""
    draft = _get_draft_or_404(workbench, draft_id)
    try:
        approved = draft.enter_override_code(request.code)
    except (OverrideError, DraftError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return OverrideCodeResponse(approved=approved, draft=draft.snapshot())


@router.post("/drafts/{draft_id}/save", response_model=SaveResponse)
async def save_draft(draft_id: str, workbench: ExpenseWorkbench = Depends(get_workbench)):
    """Save the draft into its report

    A draft blocked by violations answers 422 with the violations.
    """
    draft = _get_draft_or_404(workbench, draft_id)
    try:
        entry = await workbench.save_draft(draft_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (ReportError, DraftError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "The entry does not pass validation.",
                "violations": list(draft.violations),
                "draft": draft.snapshot(),
            },
        )

    report = workbench.get_report(draft.report_id)
    return SaveResponse(success=True, entry=entry_to_dict(entry), report=report_to_dict(report))


@router.delete("/drafts/{draft_id}", response_model=DraftResponse)
async def discard_draft(draft_id: str, workbench: ExpenseWorkbench = Depends(get_workbench)):
    _get_draft_or_404(workbench, draft_id)
    workbench.discard_draft(draft_id)
    return DraftResponse(success=True)


__all__ = ["router", "read_receipt", "MAX_FILE_SIZE"]
