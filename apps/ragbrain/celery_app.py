import logging

from ragbrain.core.celery import create_celery_app
from ragbrain.core.logging import setup_logging

# Worker entrypoint: `celery -A ragbrain.celery_app worker -Q default,enrichment`

setup_logging()

app = create_celery_app(include_tasks=True)

logging.getLogger(__name__).info("Celery app initialized")
