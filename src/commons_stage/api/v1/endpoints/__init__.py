# src/commons_stage/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .communities import router as communities_router
from .items import router as items_router
from .system import router as system_router

__all__ = [
    "communities_router",
    "items_router",
    "system_router",
]
