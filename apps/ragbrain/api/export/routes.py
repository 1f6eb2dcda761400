from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ragbrain.api.dependencies import get_db_session, require_api_key
from ragbrain.schemas.export import ExportResponse
from ragbrain.services.export_service import ExportService

router = APIRouter(prefix="/export", tags=["export"], dependencies=[Depends(require_api_key)])


@router.get("", response_model=ExportResponse)
def export(since: int = 0, session: Session = Depends(get_db_session)) -> ExportResponse:
    """Everything changed after `since` (epoch ms) plus the next checkpoint."""
    return ExportService(session).export(since)
