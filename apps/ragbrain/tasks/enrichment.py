from __future__ import annotations

import logging

from celery import shared_task

from ragbrain.core.database import SessionLocal
from ragbrain.core.exceptions import TransientUpstreamError
from ragbrain.core.settings import settings
from ragbrain.services.enrichment_queue import ENRICH_TASK_NAME, compute_backoff
from ragbrain.services.enrichment_service import EnrichmentService

logger = logging.getLogger(__name__)


@shared_task(bind=True, name=ENRICH_TASK_NAME)
def enrich_item(self, *, item_id: str, enqueued_at: int) -> dict:
    """Compute and merge derived fields for one thought or conversation.

    Upstream failures retry with capped exponential backoff; once the retry
    budget is spent the message is dead-lettered and the task completes.
    """
    attempt = int(self.request.retries or 0)
    with SessionLocal() as session:
        svc = EnrichmentService(session)
        try:
            return svc.enrich(item_id, enqueued_at).as_dict()
        except TransientUpstreamError as exc:
            if attempt >= settings.enrichment_max_retries:
                entry = svc.record_dead_letter(
                    item_id, enqueued_at, attempts=attempt + 1, error=exc.message
                )
                return {"item_id": item_id, "status": "dead_lettered", "dead_letter_id": entry.id}
            countdown = compute_backoff(attempt)
            logger.warning(
                "Enrichment for %s failed (attempt %d), retrying in %ss",
                item_id,
                attempt + 1,
                countdown,
            )
            raise self.retry(
                exc=exc, countdown=countdown, max_retries=settings.enrichment_max_retries
            ) from exc
