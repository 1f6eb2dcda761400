from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from ragbrain.api.dependencies import get_db_session, require_api_key
from ragbrain.models.thought import Thought
from ragbrain.schemas.graph import RelatedResponse
from ragbrain.schemas.thoughts import (
    CaptureResponse,
    ThoughtCreate,
    ThoughtOut,
    ThoughtPageOut,
    ThoughtUpdate,
)
from ragbrain.services.graph_service import GraphService
from ragbrain.services.smart_id import generate_smart_id
from ragbrain.services.thought_service import DEFAULT_PAGE_SIZE, ThoughtService

router = APIRouter(prefix="/thoughts", tags=["thoughts"], dependencies=[Depends(require_api_key)])


def _thought_out(thought: Thought) -> ThoughtOut:
    return ThoughtOut(
        id=thought.id,
        smart_id=generate_smart_id(thought.text, thought.id),
        text=thought.text,
        type=thought.type,
        tags=list(thought.tags or []),
        context=thought.context,
        decision_score=thought.decision_score,
        created_at=thought.created_at,
        updated_at=thought.updated_at,
        summary=thought.summary,
        auto_tags=thought.auto_tags,
        category=thought.category,
        intent=thought.intent,
        entities=thought.entities,
        related_ids=thought.related_ids,
        enriched=thought.has_derived,
    )


@router.post("", response_model=CaptureResponse, status_code=status.HTTP_201_CREATED)
def capture_thought(
    payload: ThoughtCreate,
    session: Session = Depends(get_db_session),
) -> CaptureResponse:
    svc = ThoughtService(session)
    thought = svc.capture(
        text=payload.text,  # type: ignore[arg-type]
        type=payload.type,
        tags=payload.tags,
        context=payload.context.model_dump(exclude_none=True) if payload.context else None,
    )
    return CaptureResponse(
        id=thought.id,
        smart_id=generate_smart_id(thought.text, thought.id),
        type=thought.type,
        tags=list(thought.tags),
        created_at=thought.created_at,
    )


@router.get("", response_model=ThoughtPageOut)
def list_thoughts(
    type: str | None = None,
    tag: str | None = None,
    cursor: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    session: Session = Depends(get_db_session),
) -> ThoughtPageOut:
    svc = ThoughtService(session)
    page = svc.list_thoughts(type=type, tag=tag, cursor=cursor, limit=limit)
    return ThoughtPageOut(
        thoughts=[_thought_out(t) for t in page.thoughts],
        cursor=page.cursor,
        has_more=page.has_more,
    )


@router.get("/{thought_id}", response_model=ThoughtOut)
def get_thought(thought_id: str, session: Session = Depends(get_db_session)) -> ThoughtOut:
    return _thought_out(ThoughtService(session).get(thought_id))


@router.get("/{thought_id}/related", response_model=RelatedResponse)
def related_thoughts(
    thought_id: str, session: Session = Depends(get_db_session)
) -> RelatedResponse:
    return GraphService(session).related(thought_id)


@router.put("/{thought_id}", response_model=ThoughtOut)
def update_thought(
    thought_id: str,
    payload: ThoughtUpdate,
    session: Session = Depends(get_db_session),
) -> ThoughtOut:
    svc = ThoughtService(session)
    data = payload.model_dump(exclude_unset=True)
    if payload.context is not None:
        data["context"] = payload.context.model_dump(exclude_none=True)
    thought = svc.update(thought_id, **data)
    return _thought_out(thought)


@router.delete("/{thought_id}", response_model=dict)
def delete_thought(thought_id: str, session: Session = Depends(get_db_session)) -> dict:
    ThoughtService(session).delete(thought_id)
    return {"id": thought_id, "deleted": True}
