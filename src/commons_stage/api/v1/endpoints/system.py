# src/commons_stage/api/v1/endpoints/system.py
"""System and transparency endpoints for the Commons API."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from commons_stage.core.settings import settings
from commons_stage.models import Community, CommunityItem

from ..dependencies import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "jwt_algorithm": settings.jwt_algorithm,
        },
        "communities": {
            "member_cap": settings.community_member_cap,
            "default_member_limit": settings.default_member_limit,
            "my_items_page_size": settings.my_items_page_size,
            "activity_page_size": settings.activity_page_size,
        },
    }


@router.get("/health")
async def get_system_health(db: SessionDep) -> dict[str, object]:
    """Health check endpoint reporting database connectivity.

    Args:
        db: Database session

    Returns:
        Dictionary with overall status, component health and version info
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        db_status = f"unhealthy: {e}"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {"database": db_status},
        "version": settings.app_version,
    }


@router.get("/stats")
async def get_system_stats(db: SessionDep) -> dict[str, int]:
    """Return coarse counts of active communities and items."""
    communities = db.scalar(
        select(func.count()).select_from(Community).where(Community.is_active.is_(True))
    )
    items = db.scalar(
        select(func.count()).select_from(CommunityItem).where(CommunityItem.is_active.is_(True))
    )
    return {"active_communities": communities or 0, "active_items": items or 0}
