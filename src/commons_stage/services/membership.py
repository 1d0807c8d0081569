"""Membership lifecycle: join, approval, leave and member listings."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from commons_stage.core.errors import ForbiddenError, LimitReachedError, NotFoundError
from commons_stage.core.settings import settings
from commons_stage.db.time import utcnow
from commons_stage.models import Community, CommunityMember, User
from commons_stage.models.enums import MemberRole, MembershipStatus
from commons_stage.policies.permissions import (
    Actor,
    PolicyDecision,
    can_manage_members,
    can_remove_members,
    can_view_members,
    require,
)

logger = logging.getLogger(__name__)

__all__ = [
    "MembershipService",
    "actor_for",
    "bump_member_count",
    "get_active_community",
    "get_membership",
]


def get_active_community(db: Session, community_id: int) -> Community:
    """Return an active community or raise :class:`NotFoundError`."""
    community = db.get(Community, community_id)
    if community is None or not community.is_active:
        raise NotFoundError("Community not found")
    return community


def get_membership(db: Session, community_id: int, user_id: int) -> CommunityMember | None:
    """Return the single membership row of ``user_id`` in a community, if any."""
    return db.scalars(
        select(CommunityMember).where(
            CommunityMember.community_id == community_id,
            CommunityMember.user_id == user_id,
        )
    ).first()


def actor_for(db: Session, community_id: int, user_id: int) -> Actor | None:
    """Re-read the caller's membership and return its policy snapshot."""
    membership = get_membership(db, community_id, user_id)
    return membership.as_actor() if membership is not None else None


def bump_member_count(db: Session, community_id: int, delta: int) -> None:
    """Apply an atomic increment or decrement to ``member_count``."""
    stmt = (
        update(Community)
        .where(Community.id == community_id)
        .values(member_count=Community.member_count + delta)
    )
    if delta < 0:
        stmt = stmt.where(Community.member_count + delta >= 0)
    db.execute(stmt)
    logger.debug("member_count of community %s moved by %+d", community_id, delta)


def _member_cap(community: Community) -> int:
    return max(1, min(settings.community_member_cap, community.member_limit or 1))


def _ensure_below_cap(community: Community) -> None:
    # Checked with a plain read before the atomic increment: two concurrent
    # joins may both pass and overshoot the cap by one.
    if (community.member_count or 0) >= _member_cap(community):
        raise LimitReachedError("Community member limit reached")


class MembershipService:
    """Service handling the community <-> user relationship."""

    @staticmethod
    def join(db: Session, user_id: int, community_id: int) -> CommunityMember:
        """Join a community or request to join it.

        Public communities without ``membership_approval_required`` activate
        the membership immediately and increment ``member_count``; every other
        community records a pending request. Re-joining as an already active
        member returns the existing row unchanged.

        Raises:
            NotFoundError: If the community is missing or inactive.
            LimitReachedError: If the community is at its member cap.
        """
        community = get_active_community(db, community_id)
        existing = get_membership(db, community_id, user_id)
        if existing is not None and existing.status == MembershipStatus.ACTIVE:
            return existing

        _ensure_below_cap(community)

        status = (
            MembershipStatus.PENDING if community.requires_approval else MembershipStatus.ACTIVE
        )
        if existing is None:
            membership = CommunityMember(
                community_id=community_id,
                user_id=user_id,
                role=MemberRole.MEMBER,
                status=status,
            )
            db.add(membership)
        else:
            membership = existing
            membership.role = MemberRole.MEMBER
            membership.status = status
            membership.joined_at = utcnow()

        db.flush()
        if status == MembershipStatus.ACTIVE:
            bump_member_count(db, community_id, 1)
            logger.info("User %s joined community %s", user_id, community_id)
        else:
            logger.info("User %s requested to join community %s", user_id, community_id)
        db.commit()
        db.refresh(membership)
        return membership

    @staticmethod
    def decide_membership(
        db: Session,
        community_id: int,
        target_user_id: int,
        approver_id: int,
        approve: bool = True,
    ) -> CommunityMember:
        """Approve or reject a pending membership request.

        Raises:
            NotFoundError: If the community is inactive or no request is pending.
            ForbiddenError: If the approver may not manage members.
            LimitReachedError: If approving would exceed the member cap.
        """
        community = get_active_community(db, community_id)
        decision = can_manage_members(community.settings, actor_for(db, community_id, approver_id))
        _require_logged(decision, approver_id, community_id, "decide membership")

        membership = get_membership(db, community_id, target_user_id)
        if membership is None or membership.status != MembershipStatus.PENDING:
            raise NotFoundError("No pending membership request for this user")

        if approve:
            _ensure_below_cap(community)
            membership.status = MembershipStatus.ACTIVE
            membership.joined_at = utcnow()
            db.flush()
            bump_member_count(db, community_id, 1)
        else:
            membership.status = MembershipStatus.REJECTED
        db.commit()
        db.refresh(membership)
        logger.info(
            "User %s %s membership of user %s in community %s",
            approver_id,
            "approved" if approve else "rejected",
            target_user_id,
            community_id,
        )
        return membership

    @staticmethod
    def leave(db: Session, user_id: int, community_id: int) -> bool:
        """Leave a community; returns False when the user was not active.

        Raises:
            ForbiddenError: If the user is the community's last active admin.
        """
        membership = get_membership(db, community_id, user_id)
        if membership is None or membership.status != MembershipStatus.ACTIVE:
            return False

        if membership.role == MemberRole.ADMIN and _active_admin_count(db, community_id) <= 1:
            raise ForbiddenError("the last admin cannot leave the community")

        membership.status = MembershipStatus.REMOVED
        db.flush()
        bump_member_count(db, community_id, -1)
        db.commit()
        logger.info("User %s left community %s", user_id, community_id)
        return True

    @staticmethod
    def remove_member(
        db: Session,
        community_id: int,
        target_user_id: int,
        requester_id: int,
    ) -> CommunityMember:
        """Remove another active member from a community.

        Only admins may remove an admin, and the last active admin can never
        be removed.

        Raises:
            NotFoundError: If the community is inactive or the target is not an active member.
            ForbiddenError: If the requester may not remove this member.
        """
        community = get_active_community(db, community_id)
        actor = actor_for(db, community_id, requester_id)
        _require_logged(
            can_remove_members(community.settings, actor),
            requester_id,
            community_id,
            "remove member",
        )

        membership = get_membership(db, community_id, target_user_id)
        if membership is None or membership.status != MembershipStatus.ACTIVE:
            raise NotFoundError("User is not an active member of this community")

        if membership.role == MemberRole.ADMIN:
            if actor is None or not actor.is_admin:
                raise ForbiddenError("only admins can remove an admin")
            if _active_admin_count(db, community_id) <= 1:
                raise ForbiddenError("the last admin cannot be removed")

        membership.status = MembershipStatus.REMOVED
        db.flush()
        bump_member_count(db, community_id, -1)
        db.commit()
        db.refresh(membership)
        logger.info(
            "User %s removed user %s from community %s",
            requester_id,
            target_user_id,
            community_id,
        )
        return membership

    @staticmethod
    def list_pending_members(
        db: Session,
        community_id: int,
        requester_id: int,
    ) -> Sequence[tuple[CommunityMember, User | None]]:
        """List pending requests; gated like membership decisions."""
        community = get_active_community(db, community_id)
        decision = can_manage_members(community.settings, actor_for(db, community_id, requester_id))
        _require_logged(decision, requester_id, community_id, "list pending members")
        return _members_with_users(db, community_id, MembershipStatus.PENDING)

    @staticmethod
    def list_members(
        db: Session,
        community_id: int,
        requester_id: int,
    ) -> Sequence[tuple[CommunityMember, User | None]]:
        """List active members; open to any active member."""
        get_active_community(db, community_id)
        _require_logged(
            can_view_members(actor_for(db, community_id, requester_id)),
            requester_id,
            community_id,
            "list members",
        )
        return _members_with_users(db, community_id, MembershipStatus.ACTIVE)

    @staticmethod
    def count_owned_active(db: Session, user_id: int) -> int:
        """Number of active communities owned by ``user_id``."""
        return db.scalar(
            select(func.count()).select_from(Community).where(
                Community.owner_id == user_id,
                Community.is_active.is_(True),
            )
        ) or 0

    @staticmethod
    def count_joined_active(db: Session, user_id: int) -> int:
        """Number of active memberships of ``user_id`` in active communities."""
        return db.scalar(
            select(func.count())
            .select_from(CommunityMember)
            .join(Community, Community.id == CommunityMember.community_id)
            .where(
                CommunityMember.user_id == user_id,
                CommunityMember.status == MembershipStatus.ACTIVE,
                Community.is_active.is_(True),
            )
        ) or 0


def _active_admin_count(db: Session, community_id: int) -> int:
    return db.scalar(
        select(func.count()).select_from(CommunityMember).where(
            CommunityMember.community_id == community_id,
            CommunityMember.role == MemberRole.ADMIN,
            CommunityMember.status == MembershipStatus.ACTIVE,
        )
    ) or 0


_ROLE_ORDER = {MemberRole.ADMIN: 0, MemberRole.MODERATOR: 1, MemberRole.MEMBER: 2}


def _members_with_users(
    db: Session,
    community_id: int,
    status: MembershipStatus,
) -> list[tuple[CommunityMember, User | None]]:
    rows = db.execute(
        select(CommunityMember, User)
        .outerjoin(User, User.id == CommunityMember.user_id)
        .where(
            CommunityMember.community_id == community_id,
            CommunityMember.status == status,
        )
        .order_by(CommunityMember.joined_at, CommunityMember.id)
    ).all()
    result = [(member, user) for member, user in rows]
    result.sort(key=lambda pair: _ROLE_ORDER.get(pair[0].role, len(_ROLE_ORDER)))
    return result


def _require_logged(decision: PolicyDecision, user_id: int, community_id: int, action: str) -> None:
    if not decision.allowed:
        logger.warning(
            "Denied %s for user %s in community %s: %s",
            action,
            user_id,
            community_id,
            decision.reason,
        )
    require(decision)
