"""Producer side of the enrichment queue.

Capture paths call `enqueue_enrichment` only after their store write has
committed. Broker failures are logged and swallowed: capture never depends on
enrichment availability.
"""

from __future__ import annotations

import logging

from ragbrain.core.celery_client import get_celery_client
from ragbrain.core.settings import settings
from ragbrain.core.utils import now_ms

logger = logging.getLogger(__name__)

ENRICH_TASK_NAME = "ragbrain.tasks.enrichment.enrich_item"


def compute_backoff(attempt: int) -> int:
    """Seconds to wait before retry number `attempt` (0-based), capped."""
    base = settings.enrichment_backoff_base_seconds
    cap = settings.enrichment_backoff_max_seconds
    return int(min(cap, base * (2 ** max(0, attempt))))


def enqueue_enrichment(
    item_id: str, *, enqueued_at: int | None = None, countdown: int | None = None
) -> int | None:
    """Send an enrichment message for `item_id`.

    `countdown` delays delivery by that many seconds.

    Returns the message's enqueue timestamp (epoch ms), or None when the broker
    rejected the send.
    """
    stamp = enqueued_at if enqueued_at is not None else now_ms()
    try:
        get_celery_client().send_task(
            ENRICH_TASK_NAME,
            kwargs={"item_id": item_id, "enqueued_at": stamp},
            queue=settings.enrichment_queue,
            countdown=countdown,
        )
    except Exception as exc:  # broker outages must not fail capture
        logger.warning("Failed to enqueue enrichment for %s: %s", item_id, exc)
        return None
    logger.debug("Enqueued enrichment for %s at %s", item_id, stamp)
    return stamp


__all__ = ["ENRICH_TASK_NAME", "compute_backoff", "enqueue_enrichment"]
