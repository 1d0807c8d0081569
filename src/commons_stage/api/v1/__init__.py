# src/commons_stage/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    communities_router,
    items_router,
    system_router,
)

__all__ = [
    "communities_router",
    "items_router",
    "system_router",
]
