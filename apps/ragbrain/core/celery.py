from __future__ import annotations

from celery import Celery
from kombu import Queue

from ragbrain.core.settings import settings


def create_celery_app(*, include_tasks: bool = True) -> Celery:
    """Create a configured Celery app.

    `include_tasks=False` creates a lightweight client suitable for the API
    process (enqueue only) without importing task modules.
    """

    task_modules = ["ragbrain.tasks.enrichment"] if include_tasks else []

    celery_app = Celery(
        "ragbrain",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=task_modules,
    )
    celery_app.conf.update(
        accept_content=["json"],
        enable_utc=True,
        result_serializer="json",
        task_serializer="json",
        timezone="UTC",
        task_track_started=True,
        worker_prefetch_multiplier=1,
        # Late acks + reject on lost worker gives at-least-once delivery.
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_default_queue="default",
        task_queues=(
            Queue("default"),
            Queue(settings.enrichment_queue),
        ),
        task_routes={
            "ragbrain.tasks.enrichment.enrich_item": {"queue": settings.enrichment_queue},
            "ragbrain.tasks.enrichment.*": {"queue": "default"},
        },
    )

    if include_tasks:
        celery_app.autodiscover_tasks(["ragbrain"])
        # Be explicit to avoid "Received unregistered task" when running workers from
        # different entrypoints/working directories.
        import ragbrain.tasks.enrichment  # noqa: F401

    return celery_app
