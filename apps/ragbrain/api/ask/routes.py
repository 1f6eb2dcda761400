from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ragbrain.api.dependencies import get_db_session, require_api_key
from ragbrain.schemas.ask import AskRequest, AskResponse
from ragbrain.services.ask_service import AskService

router = APIRouter(prefix="/ask", tags=["ask"], dependencies=[Depends(require_api_key)])


@router.post("", response_model=AskResponse)
def ask(payload: AskRequest, session: Session = Depends(get_db_session)) -> AskResponse:
    """Hybrid search over thoughts and conversations with a cited answer."""
    svc = AskService(session)
    return svc.ask(payload.query, time_window=payload.time_window, tags=payload.tags)
