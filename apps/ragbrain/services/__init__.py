"""Service layer package.

Keep imports lazy to avoid initializing heavyweight dependencies at import time
(e.g., LLM clients). Downstream code can still access common symbols from
`ragbrain.services` thanks to `__getattr__` proxies.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "AskService",
    "ConversationService",
    "EnrichmentService",
    "ExportService",
    "GraphService",
    "ThoughtService",
]

_MODULES = {
    "AskService": "ask_service",
    "ConversationService": "conversation_service",
    "EnrichmentService": "enrichment_service",
    "ExportService": "export_service",
    "GraphService": "graph_service",
    "ThoughtService": "thought_service",
}


def __getattr__(name: str) -> Any:  # PEP 562 lazy attribute access
    module_name = _MODULES.get(name)
    if module_name is None:
        raise AttributeError(name)
    from importlib import import_module

    module = import_module(f"{__name__}.{module_name}")
    return getattr(module, name)
