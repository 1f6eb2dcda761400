"""API router registration helpers.

To avoid import-time side effects (e.g., initializing LLM clients) during test
collection or when importing submodules, routers are imported lazily inside
`register_routes` rather than at module import time.
"""

from fastapi import FastAPI


def register_routes(app: FastAPI) -> None:
    """Attach all API routers (lazy imports)."""
    from ragbrain.api.ask import router as ask_router
    from ragbrain.api.conversations import router as conversations_router
    from ragbrain.api.enrichment import router as enrichment_router
    from ragbrain.api.export import router as export_router
    from ragbrain.api.graph import router as graph_router
    from ragbrain.api.thoughts import router as thoughts_router

    routers = [
        thoughts_router,
        conversations_router,
        ask_router,
        graph_router,
        export_router,
        enrichment_router,
    ]
    for router in routers:
        app.include_router(router)
