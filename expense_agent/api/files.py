"""File access - serves the receipt attached to a saved entry"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from ..agent.workbench import ExpenseWorkbench, NotFoundError
from .dependencies import get_workbench

router = APIRouter()


@router.get("/reports/{report_id}/entries/{entry_id}/receipt")
async def get_entry_receipt(
    report_id: str,
    entry_id: str,
    workbench: ExpenseWorkbench = Depends(get_workbench),
):
    """Return the receipt bytes of an entry

    Args:
        report_id: report id
        entry_id: entry id

    Returns:
        the receipt with its original media type
    """
    try:
        report = workbench.get_report(report_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    entry = report.find_entry(entry_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entry not found: {entry_id}",
        )
    if entry.receipt is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="This entry has no receipt attached",
        )

    receipt = entry.receipt
    headers = {}
    if receipt.filename:
        headers["Content-Disposition"] = f'inline; filename="{receipt.filename}"'
    return Response(content=receipt.content, media_type=receipt.media_type, headers=headers)
