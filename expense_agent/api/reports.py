"""Report endpoints - listing, CRUD, selection and submission"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, constr

from ..agent.workbench import ExpenseWorkbench, NotFoundError, ReportError
from ..models import CURRENCIES, DEFAULT_CURRENCY, EXPENSE_CATEGORIES, PROJECT_CODES, ReportStatus
from ..models.serialization import report_to_dict
from .dependencies import get_workbench

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateReportRequest(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    currency: str = DEFAULT_CURRENCY


class RenameReportRequest(BaseModel):
    name: str


class ReportResponse(BaseModel):
    success: bool
    report: Optional[dict] = None
    error: Optional[str] = None


class ReportListResponse(BaseModel):
    open: List[dict]
    draft: List[dict]
    submitted: List[dict]
    selectedReportId: Optional[str] = None
    view: str
    submissionError: Optional[str] = None


class ReferenceResponse(BaseModel):
    currencies: List[dict]
    projectCodes: List[dict]
    categories: List[str]


def _get_report_or_404(workbench: ExpenseWorkbench, report_id: str):
    try:
        return workbench.get_report(report_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/reference", response_model=ReferenceResponse)
async def get_reference_data():
    """Currencies, project codes and categories for the entry form"""
    return ReferenceResponse(
        currencies=[{"code": c.code, "name": c.name, "symbol": c.symbol} for c in CURRENCIES],
        projectCodes=[{"code": p.code, "name": p.name} for p in PROJECT_CODES],
        categories=[category.value for category in EXPENSE_CATEGORIES],
    )


@router.get("/reports", response_model=ReportListResponse)
async def list_reports(workbench: ExpenseWorkbench = Depends(get_workbench)):
    """List reports grouped by status"""
    grouped = workbench.reports_by_status()
    return ReportListResponse(
        open=[report_to_dict(r) for r in grouped[ReportStatus.OPEN]],
        draft=[report_to_dict(r) for r in grouped[ReportStatus.DRAFT]],
        submitted=[report_to_dict(r) for r in grouped[ReportStatus.SUBMITTED]],
        selectedReportId=workbench.selected_report_id,
        view=workbench.view.value,
        submissionError=workbench.submission_error,
    )


@router.post("/reports", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    request: CreateReportRequest,
    workbench: ExpenseWorkbench = Depends(get_workbench),
):
    try:
        report = workbench.create_report(request.name, request.currency)
    except ReportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ReportResponse(success=True, report=report_to_dict(report))


@router.get("/reports/{report_id}", response_model=ReportResponse)
async def get_report(report_id: str, workbench: ExpenseWorkbench = Depends(get_workbench)):
    report = _get_report_or_404(workbench, report_id)
    return ReportResponse(success=True, report=report_to_dict(report))


@router.patch("/reports/{report_id}", response_model=ReportResponse)
async def rename_report(
    report_id: str,
    request: RenameReportRequest,
    workbench: ExpenseWorkbench = Depends(get_workbench),
):
    """Rename a report; a blank name is ignored"""
    _get_report_or_404(workbench, report_id)
    report = workbench.rename_report(report_id, request.name)
    return ReportResponse(success=True, report=report_to_dict(report))


@router.delete("/reports/{report_id}", response_model=ReportResponse)
async def delete_report(report_id: str, workbench: ExpenseWorkbench = Depends(get_workbench)):
    _get_report_or_404(workbench, report_id)
    workbench.delete_report(report_id)
    logger.info(f"[reports] deleted {report_id}")
    return ReportResponse(success=True)


@router.post("/reports/{report_id}/select", response_model=ReportResponse)
async def select_report(report_id: str, workbench: ExpenseWorkbench = Depends(get_workbench)):
    """Open a report for viewing; draft reports become open"""
    _get_report_or_404(workbench, report_id)
    report = workbench.select_report(report_id)
    return ReportResponse(success=True, report=report_to_dict(report))


@router.post("/reports/{report_id}/submit", response_model=ReportResponse)
async def submit_report(report_id: str, workbench: ExpenseWorkbench = Depends(get_workbench)):
    """Submit all entries of a report to the workflow endpoint"""
    _get_report_or_404(workbench, report_id)
    try:
        result = await workbench.submit_report(report_id)
    except ReportError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if not result.submitted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only open reports with at least one entry can be submitted.",
        )
    if not result.success:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)

    report = workbench.get_report(report_id)
    return ReportResponse(success=True, report=report_to_dict(report))


__all__ = ["router"]
