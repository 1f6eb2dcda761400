import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Environment is loaded by Pydantic Settings (see ragbrain.core.settings).
from ragbrain.api import register_routes
from ragbrain.core.exceptions import register_exception_handlers
from ragbrain.core.logging import setup_logging
from ragbrain.core.settings import settings

# Initialize logging early so all modules inherit the handlers/level
setup_logging()

app = FastAPI(title="ragbrain API", debug=False)
register_exception_handlers(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)

logger = logging.getLogger(__name__)
logger.info("ragbrain API initialized")
