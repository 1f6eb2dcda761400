from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from ragbrain.api.dependencies import get_db_session, require_api_key
from ragbrain.schemas.conversations import (
    ConversationCreate,
    ConversationOut,
    ConversationPage,
    ConversationSummaryOut,
    ConversationUpdate,
    MessageCreate,
    MessageExchangeOut,
)
from ragbrain.services.conversation_service import DEFAULT_PAGE_SIZE, ConversationService

router = APIRouter(
    prefix="/conversations", tags=["conversations"], dependencies=[Depends(require_api_key)]
)


@router.post("", response_model=ConversationOut, status_code=status.HTTP_201_CREATED)
def create_conversation(
    payload: ConversationCreate,
    session: Session = Depends(get_db_session),
) -> ConversationOut:
    svc = ConversationService(session)
    return svc.create_conversation(title=payload.title, initial_message=payload.initial_message)


@router.get("", response_model=ConversationPage)
def list_conversations(
    status: str | None = None,
    cursor: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    session: Session = Depends(get_db_session),
) -> ConversationPage:
    return ConversationService(session).list_conversations(
        status=status, cursor=cursor, limit=limit
    )


@router.get("/{conversation_id}", response_model=ConversationOut)
def get_conversation(
    conversation_id: str, session: Session = Depends(get_db_session)
) -> ConversationOut:
    return ConversationService(session).get_conversation(conversation_id)


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageExchangeOut,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    conversation_id: str,
    payload: MessageCreate,
    session: Session = Depends(get_db_session),
) -> MessageExchangeOut:
    return ConversationService(session).send_message(conversation_id, content=payload.content)


@router.put("/{conversation_id}", response_model=ConversationSummaryOut)
def update_conversation(
    conversation_id: str,
    payload: ConversationUpdate,
    session: Session = Depends(get_db_session),
) -> ConversationSummaryOut:
    return ConversationService(session).update_conversation(
        conversation_id, title=payload.title, status=payload.status
    )


@router.delete("/{conversation_id}", response_model=dict)
def delete_conversation(
    conversation_id: str, session: Session = Depends(get_db_session)
) -> dict:
    ConversationService(session).delete_conversation(conversation_id)
    return {"id": conversation_id, "deleted": True}
