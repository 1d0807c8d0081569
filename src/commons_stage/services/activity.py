"""Community activity log writes and reads."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from commons_stage.models import CommunityActivity, CommunityItem
from commons_stage.models.enums import ActivityType

logger = logging.getLogger(__name__)

__all__ = ["list_activity", "record_activity"]


def record_activity(
    db: Session,
    activity_type: ActivityType,
    user_id: int,
    item: CommunityItem,
) -> CommunityActivity:
    """Append an activity row for ``item``; the caller owns the commit."""
    entry = CommunityActivity(
        community_id=item.community_id,
        user_id=user_id,
        item_id=item.id,
        type=activity_type,
        title=item.title or "",
    )
    db.add(entry)
    logger.debug("Activity %s by user %s on item %s", activity_type.value, user_id, item.id)
    return entry


def list_activity(db: Session, community_id: int, limit: int) -> Sequence[CommunityActivity]:
    """Return the newest activity rows of a community first."""
    return db.scalars(
        select(CommunityActivity)
        .where(CommunityActivity.community_id == community_id)
        .order_by(CommunityActivity.created_at.desc(), CommunityActivity.id.desc())
        .limit(limit)
    ).all()
