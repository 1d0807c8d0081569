"""Community lifecycle: creation, settings, summaries, announcements and activity."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from commons_stage.core.errors import NotFoundError
from commons_stage.core.settings import settings
from commons_stage.models import (
    Community,
    CommunityActivity,
    CommunityAnnouncement,
    CommunityMember,
)
from commons_stage.models.enums import MemberRole, MembershipStatus
from commons_stage.policies.permissions import (
    can_change_images,
    can_deactivate_community,
    can_edit_community,
    can_post_announcement,
    can_view_members,
    require,
)
from commons_stage.schemas.community import AnnouncementCreate, CommunityCreate, CommunityUpdate
from commons_stage.services.activity import list_activity
from commons_stage.services.membership import actor_for, get_active_community, get_membership

logger = logging.getLogger(__name__)

__all__ = ["CommunityService", "HIGHLIGHT_COMPLETION_RATE"]

HIGHLIGHT_COMPLETION_RATE = 75
_IMAGE_FIELDS = ("avatar_url", "banner_url")


class CommunityService:
    """Service for communities and their announcements."""

    @staticmethod
    def create(db: Session, owner_id: int, payload: CommunityCreate) -> Community:
        """Create a community together with its owner's admin membership.

        Both rows are written in one transaction; a failure leaves neither.

        Args:
            db: Database session.
            owner_id: User creating the community.
            payload: Validated creation request.

        Returns:
            The persisted community.
        """
        community = Community(
            name=payload.name,
            description=payload.description or "",
            owner_id=owner_id,
            avatar_url=payload.avatar_url or "",
            banner_url=payload.banner_url or "",
            visibility=payload.visibility,
            interests=list(payload.interests),
            member_limit=settings.clamp_member_limit(payload.member_limit),
            member_count=1,
        )
        try:
            db.add(community)
            db.flush()
            db.add(
                CommunityMember(
                    community_id=community.id,
                    user_id=owner_id,
                    role=MemberRole.ADMIN,
                    status=MembershipStatus.ACTIVE,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to create community %r for user %s", payload.name, owner_id)
            raise
        db.refresh(community)
        logger.info("User %s created community %s", owner_id, community.id)
        return community

    @staticmethod
    def get_summary(db: Session, community_id: int, user_id: int) -> dict[str, Any]:
        """Return the community plus the caller's role and membership flag."""
        community = get_active_community(db, community_id)
        membership = get_membership(db, community_id, user_id)
        is_member = membership is not None and membership.status == MembershipStatus.ACTIVE
        return {
            "community": community,
            "role": membership.role if is_member else None,
            "is_member": is_member,
        }

    @staticmethod
    def list_mine(db: Session, user_id: int) -> list[tuple[Community, MemberRole]]:
        """Active communities where ``user_id`` is an active member, largest first."""
        rows = db.execute(
            select(Community, CommunityMember.role)
            .join(CommunityMember, CommunityMember.community_id == Community.id)
            .where(
                CommunityMember.user_id == user_id,
                CommunityMember.status == MembershipStatus.ACTIVE,
                Community.is_active.is_(True),
            )
            .order_by(Community.member_count.desc(), Community.id)
        ).all()
        return [(community, role) for community, role in rows]

    @staticmethod
    def update(
        db: Session,
        community_id: int,
        requester_id: int,
        payload: CommunityUpdate,
    ) -> Community:
        """Patch details and settings; image fields need the image permission too.

        Raises:
            NotFoundError: If the community is missing or inactive.
            ForbiddenError: If the requester may not edit or change images.
        """
        community = get_active_community(db, community_id)
        actor = actor_for(db, community_id, requester_id)
        require(can_edit_community(actor))

        changes = payload.model_dump(exclude_unset=True)
        if any(field in changes for field in _IMAGE_FIELDS):
            require(can_change_images(community.settings, actor))
        if "member_limit" in changes:
            if changes["member_limit"] is None:
                changes.pop("member_limit")
            else:
                changes["member_limit"] = settings.clamp_member_limit(changes["member_limit"])

        for field, value in changes.items():
            if value is None:
                continue
            setattr(community, field, value)
        db.commit()
        db.refresh(community)
        logger.info(
            "User %s updated community %s: %s",
            requester_id,
            community_id,
            ", ".join(sorted(changes)) or "no changes",
        )
        return community

    @staticmethod
    def get_dashboard(db: Session, community_id: int) -> dict[str, Any]:
        """Return the community stats plus human readable highlights."""
        community = get_active_community(db, community_id)
        highlights: list[str] = []
        if (community.completion_rate or 0) >= HIGHLIGHT_COMPLETION_RATE:
            highlights.append(f"Community hit {HIGHLIGHT_COMPLETION_RATE}% of shared goals this week")
        return {"stats": community, "highlights": highlights}

    @staticmethod
    def deactivate(db: Session, community_id: int, requester_id: int) -> None:
        """Soft-delete a community; the owner or an admin only."""
        community = get_active_community(db, community_id)
        require(
            can_deactivate_community(
                actor_for(db, community_id, requester_id),
                is_owner=community.owner_id == requester_id,
            )
        )
        community.is_active = False
        db.commit()
        logger.info("User %s deactivated community %s", requester_id, community_id)

    @staticmethod
    def post_announcement(
        db: Session,
        community_id: int,
        author_id: int,
        payload: AnnouncementCreate,
    ) -> CommunityAnnouncement:
        get_active_community(db, community_id)
        require(can_post_announcement(actor_for(db, community_id, author_id)))
        announcement = CommunityAnnouncement(
            community_id=community_id,
            author_id=author_id,
            title=payload.title,
            body=payload.body,
            is_pinned=payload.is_pinned,
        )
        db.add(announcement)
        db.commit()
        db.refresh(announcement)
        logger.info("User %s posted announcement %s in community %s", author_id, announcement.id, community_id)
        return announcement

    @staticmethod
    def list_announcements(
        db: Session,
        community_id: int,
        requester_id: int,
    ) -> Sequence[CommunityAnnouncement]:
        """Active announcements, pinned first and then newest first."""
        get_active_community(db, community_id)
        require(can_view_members(actor_for(db, community_id, requester_id)))
        return db.scalars(
            select(CommunityAnnouncement)
            .where(
                CommunityAnnouncement.community_id == community_id,
                CommunityAnnouncement.is_active.is_(True),
            )
            .order_by(
                CommunityAnnouncement.is_pinned.desc(),
                CommunityAnnouncement.created_at.desc(),
                CommunityAnnouncement.id.desc(),
            )
        ).all()

    @staticmethod
    def remove_announcement(
        db: Session,
        community_id: int,
        announcement_id: int,
        requester_id: int,
    ) -> None:
        get_active_community(db, community_id)
        require(can_post_announcement(actor_for(db, community_id, requester_id)))
        announcement = db.get(CommunityAnnouncement, announcement_id)
        if (
            announcement is None
            or announcement.community_id != community_id
            or not announcement.is_active
        ):
            raise NotFoundError("Announcement not found")
        announcement.is_active = False
        db.commit()
        logger.info("User %s removed announcement %s", requester_id, announcement_id)

    @staticmethod
    def list_activity(
        db: Session,
        community_id: int,
        requester_id: int,
        limit: int | None = None,
    ) -> Sequence[CommunityActivity]:
        """Recent item activity, newest first, visible to whoever can see members."""
        get_active_community(db, community_id)
        require(can_view_members(actor_for(db, community_id, requester_id)))
        page_size = settings.activity_page_size
        if limit is None or limit < 1:
            limit = page_size
        return list_activity(db, community_id, min(limit, page_size))
