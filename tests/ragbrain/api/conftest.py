from __future__ import annotations

from typing import Callable

import pytest
from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient
from ragbrain.api.dependencies import get_db_session
from ragbrain.core.exceptions import register_exception_handlers
from sqlalchemy.engine import Engine
from sqlmodel import Session


def create_app(engine: Engine, *routers: APIRouter) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    for router in routers:
        app.include_router(router)

    def _session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    return app


@pytest.fixture
def api_client(engine: Engine) -> Callable[..., TestClient]:
    def _client(*routers: APIRouter) -> TestClient:
        return TestClient(create_app(engine, *routers))

    return _client
