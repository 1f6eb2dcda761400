from ragbrain.core.celery import create_celery_app
from ragbrain.core.settings import settings
from ragbrain.services.enrichment_queue import ENRICH_TASK_NAME, compute_backoff


def test_client_app_routes_enrichment_to_its_queue():
    app = create_celery_app(include_tasks=False)

    assert app.conf.task_acks_late is True
    assert app.conf.task_serializer == "json"
    assert app.conf.task_routes[ENRICH_TASK_NAME] == {"queue": settings.enrichment_queue}
    assert {q.name for q in app.conf.task_queues} == {"default", settings.enrichment_queue}


def test_backoff_is_exponential_and_capped():
    base = settings.enrichment_backoff_base_seconds
    assert compute_backoff(0) == base
    assert compute_backoff(1) == base * 2
    assert compute_backoff(3) == base * 8
    assert compute_backoff(50) == settings.enrichment_backoff_max_seconds
