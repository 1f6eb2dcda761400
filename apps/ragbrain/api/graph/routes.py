from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ragbrain.api.dependencies import get_db_session, require_api_key
from ragbrain.schemas.graph import GraphResponse
from ragbrain.services.graph_service import GraphService

router = APIRouter(prefix="/graph", tags=["graph"], dependencies=[Depends(require_api_key)])


@router.get("", response_model=GraphResponse)
def get_graph(
    month: str | None = Query(default=None, description="YYYY-MM"),
    min_similarity: float | None = Query(default=None, alias="minSimilarity"),
    session: Session = Depends(get_db_session),
) -> GraphResponse:
    return GraphService(session).graph(month=month, min_similarity=min_similarity)
