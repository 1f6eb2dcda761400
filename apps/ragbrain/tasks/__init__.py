"""Celery task package.

Tasks are imported explicitly here so Celery's autodiscovery can find them via
`app.autodiscover_tasks(["ragbrain"])` without the API process needing to import
task modules.
"""

from . import enrichment as enrichment  # noqa: F401
