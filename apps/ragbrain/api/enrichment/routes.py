from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ragbrain.api.dependencies import get_db_session, require_api_key
from ragbrain.schemas.enrichment import DeadLetterList, DeadLetterOut
from ragbrain.services.enrichment_service import EnrichmentService

router = APIRouter(
    prefix="/enrichment", tags=["enrichment"], dependencies=[Depends(require_api_key)]
)


@router.get("/dead-letters", response_model=DeadLetterList)
def list_dead_letters(
    include_replayed: bool = False, session: Session = Depends(get_db_session)
) -> DeadLetterList:
    entries = EnrichmentService(session).list_dead_letters(include_replayed=include_replayed)
    return DeadLetterList(
        dead_letters=[DeadLetterOut.model_validate(e) for e in entries], count=len(entries)
    )


@router.post("/dead-letters/{dead_letter_id}/replay", response_model=DeadLetterOut)
def replay_dead_letter(
    dead_letter_id: int, session: Session = Depends(get_db_session)
) -> DeadLetterOut:
    entry = EnrichmentService(session).replay_dead_letter(dead_letter_id)
    return DeadLetterOut.model_validate(entry)
