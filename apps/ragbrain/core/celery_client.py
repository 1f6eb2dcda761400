from __future__ import annotations

from functools import lru_cache

from celery import Celery

from ragbrain.core.celery import create_celery_app


@lru_cache
def get_celery_client() -> Celery:
    """Return a lightweight Celery client for the API process.

    This client only enqueues tasks; it does not import task modules (which pull
    in the LLM and embedding stack).
    """

    return create_celery_app(include_tasks=False)
