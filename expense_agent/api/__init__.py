"""API router aggregator."""

from fastapi import APIRouter

from .files import router as files_router
from .reports import router as reports_router
from .upload import router as upload_router

api_router = APIRouter()
api_router.include_router(reports_router, prefix="/api", tags=["reports"])
api_router.include_router(upload_router, prefix="/api", tags=["drafts"])
api_router.include_router(files_router, prefix="/api", tags=["files"])

__all__ = ["api_router"]
