"""Participation rows and community progress aggregation.

Progress is pull-computed: every read recomputes the caller's personal value
from the source record, aggregates the stored snapshots of all joined
participants and writes the caller's fresh snapshot back.

Two aggregation modes exist. A collaborative goal sums the contributions of
its participants toward one shared target and caps the sum at 100. Every
other item (individual goals and habits) reports the rounded mean of its
participants' personal values, or 0 when nobody has joined.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from commons_stage.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from commons_stage.core.settings import settings
from commons_stage.db.time import utcnow
from commons_stage.models import Community, CommunityItem, CommunityParticipation
from commons_stage.models.enums import (
    ActivityType,
    ItemStatus,
    ItemType,
    ParticipationStatus,
)
from commons_stage.policies.permissions import can_participate, require
from commons_stage.services.activity import record_activity
from commons_stage.services.membership import actor_for, get_active_community
from commons_stage.services.source_records import (
    SourceRecordProvider,
    SqlSourceRecordProvider,
    goal_progress,
    habit_progress,
    round_half_up,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ItemProgress",
    "ProgressService",
    "community_progress",
    "ensure_joined",
]


@dataclass(frozen=True)
class ItemProgress:
    personal: int
    community: int


def community_progress(collaborative: bool, values: Sequence[int]) -> int:
    """Aggregate joined participants' snapshots into the community value."""
    if collaborative:
        return min(100, round_half_up(sum(values)))
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def bump_participant_count(db: Session, item_id: int, delta: int) -> None:
    """Apply an atomic increment or decrement to ``participant_count``."""
    stmt = (
        update(CommunityItem)
        .where(CommunityItem.id == item_id)
        .values(participant_count=CommunityItem.participant_count + delta)
    )
    if delta < 0:
        stmt = stmt.where(CommunityItem.participant_count + delta >= 0)
    db.execute(stmt)


def get_participation(
    db: Session,
    community_id: int,
    item_id: int,
    user_id: int,
) -> CommunityParticipation | None:
    return db.scalars(
        select(CommunityParticipation).where(
            CommunityParticipation.community_id == community_id,
            CommunityParticipation.item_id == item_id,
            CommunityParticipation.user_id == user_id,
        )
    ).first()


def _insert_if_absent(
    db: Session,
    item: CommunityItem,
    user_id: int,
    status: ParticipationStatus,
    progress_percent: int,
) -> bool:
    """Insert a participation row unless the unique triple already exists.

    Returns True when this call created the row. A concurrent insert of the
    same triple is absorbed by re-reading instead of surfacing a conflict.
    """
    values = {
        "community_id": item.community_id,
        "item_id": item.id,
        "user_id": user_id,
        "type": item.type,
        "status": status,
        "progress_percent": progress_percent,
        "last_updated_at": utcnow(),
    }
    dialect = db.get_bind().dialect.name
    if dialect in ("sqlite", "postgresql"):
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        else:
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        stmt = dialect_insert(CommunityParticipation).values(**values).on_conflict_do_nothing(
            index_elements=["community_id", "item_id", "user_id"]
        )
        created = db.execute(stmt).rowcount == 1
    else:
        try:
            with db.begin_nested():
                db.execute(insert(CommunityParticipation).values(**values))
            created = True
        except IntegrityError:
            created = False
    if not created:
        logger.warning(
            "Participation of user %s on item %s already existed; reusing it",
            user_id,
            item.id,
        )
    return created


def ensure_joined(db: Session, item: CommunityItem, user_id: int) -> tuple[CommunityParticipation, bool]:
    """Upsert the (community, item, user) row to joined.

    Returns the row and whether this call moved it into the joined state;
    ``participant_count`` changes only on that transition.
    """
    existing = get_participation(db, item.community_id, item.id, user_id)
    if existing is not None and existing.status == ParticipationStatus.JOINED:
        return existing, False

    if existing is None:
        transitioned = _insert_if_absent(db, item, user_id, ParticipationStatus.JOINED, 0)
    else:
        result = db.execute(
            update(CommunityParticipation)
            .where(
                CommunityParticipation.id == existing.id,
                CommunityParticipation.status == ParticipationStatus.LEFT,
            )
            .values(status=ParticipationStatus.JOINED, last_updated_at=utcnow())
        )
        transitioned = result.rowcount == 1

    if transitioned:
        bump_participant_count(db, item.id, 1)
    participation = get_participation(db, item.community_id, item.id, user_id)
    if participation is None:
        raise ConflictError("Participation row could not be read back")
    db.refresh(participation)
    return participation, transitioned


def _get_visible_item(db: Session, community_id: int, item_id: int) -> CommunityItem:
    item = db.scalars(
        select(CommunityItem).where(
            CommunityItem.id == item_id,
            CommunityItem.community_id == community_id,
            CommunityItem.status == ItemStatus.APPROVED,
            CommunityItem.is_active.is_(True),
        )
    ).first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def _page_limit(requested: int | None) -> int:
    """Cap a requested page length at the configured joined-items page size."""
    page_size = settings.my_items_page_size
    if requested is None or requested < 1:
        return page_size
    return min(requested, page_size)


def _require_participant(db: Session, community_id: int, user_id: int) -> None:
    decision = can_participate(actor_for(db, community_id, user_id))
    if not decision.allowed:
        logger.warning("Denied item access for user %s in community %s", user_id, community_id)
    require(decision)


def _ensure_personal_copy(provider: SourceRecordProvider, item: CommunityItem, user_id: int) -> int | None:
    """Give ``user_id`` a linked copy of the item's record unless one exists."""
    if provider.owner_of(item.type, item.source_id) == user_id:
        return None
    existing = provider.linked_copy(item.type, user_id, item.id)
    if existing is not None:
        return existing
    fields = provider.static_fields(item.type, item.source_id)
    if fields is None:
        logger.warning("Source record of item %s is gone; no personal copy made", item.id)
        return None
    return provider.create_record(
        item.type,
        user_id,
        fields,
        community_id=item.community_id,
        community_item_id=item.id,
    )


class ProgressService:
    """Service owning participation rows and progress reads."""

    @staticmethod
    def join_item(
        db: Session,
        user_id: int,
        community_id: int,
        item_id: int,
        provider: SourceRecordProvider | None = None,
    ) -> CommunityParticipation:
        """Join an approved item; joining twice is a no-op.

        On a real transition the joiner also receives a private personal copy
        of the item's record, linked back to the item. Nobody gets a second
        copy, and the owner of the source record gets none.
        """
        get_active_community(db, community_id)
        _require_participant(db, community_id, user_id)
        item = _get_visible_item(db, community_id, item_id)
        participation, transitioned = ensure_joined(db, item, user_id)
        if transitioned:
            _ensure_personal_copy(provider or SqlSourceRecordProvider(db), item, user_id)
            record_activity(db, ActivityType.ITEM_JOINED, user_id, item)
        db.commit()
        if transitioned:
            logger.info("User %s joined item %s", user_id, item_id)
        return participation

    @staticmethod
    def leave_item(
        db: Session,
        user_id: int,
        community_id: int,
        item_id: int,
        delete_personal_copy: bool = False,
        transfer_to_personal: bool = True,
        provider: SourceRecordProvider | None = None,
    ) -> bool:
        """Flip the caller's row to left; returns False when not joined.

        The linked personal copy is deleted when ``delete_personal_copy`` is
        set. Otherwise ``transfer_to_personal`` turns it into a plain personal
        record, and with both flags off the copy keeps its link so a later
        re-join reuses it.
        """
        _require_participant(db, community_id, user_id)
        result = db.execute(
            update(CommunityParticipation)
            .where(
                CommunityParticipation.community_id == community_id,
                CommunityParticipation.item_id == item_id,
                CommunityParticipation.user_id == user_id,
                CommunityParticipation.status == ParticipationStatus.JOINED,
            )
            .values(status=ParticipationStatus.LEFT, last_updated_at=utcnow())
        )
        if result.rowcount != 1:
            return False
        bump_participant_count(db, item_id, -1)

        item = db.get(CommunityItem, item_id)
        if item is not None:
            provider = provider or SqlSourceRecordProvider(db)
            copy_id = provider.linked_copy(item.type, user_id, item.id)
            if copy_id is not None:
                if delete_personal_copy:
                    provider.delete_record(item.type, copy_id)
                elif transfer_to_personal:
                    provider.unlink_record(item.type, copy_id)
            record_activity(db, ActivityType.ITEM_LEFT, user_id, item)
        db.commit()
        logger.info("User %s left item %s", user_id, item_id)
        return True

    @staticmethod
    def get_item_progress(
        db: Session,
        user_id: int,
        community_id: int,
        item_id: int,
        provider: SourceRecordProvider | None = None,
    ) -> ItemProgress:
        """Compute the caller's personal and the community-wide progress.

        The community value aggregates the snapshots stored before this call;
        the caller's fresh personal value is persisted afterwards.
        """
        item = _get_visible_item(db, community_id, item_id)
        _require_participant(db, community_id, user_id)
        provider = provider or SqlSourceRecordProvider(db)
        existing = get_participation(db, community_id, item_id, user_id)

        personal = 0
        if item.type == ItemType.GOAL:
            if item.is_collaborative:
                # Contributions are written through record_contribution.
                personal = existing.progress_percent if existing is not None else 0
            else:
                goal = provider.goal_snapshot(item.source_id)
                if goal is not None:
                    personal = goal_progress(goal)
        else:
            habit = provider.habit_snapshot(item.source_id)
            if habit is not None:
                personal = habit_progress(habit)

        joined = db.scalars(
            select(CommunityParticipation.progress_percent).where(
                CommunityParticipation.community_id == community_id,
                CommunityParticipation.item_id == item_id,
                CommunityParticipation.status == ParticipationStatus.JOINED,
            )
        ).all()
        community = community_progress(item.is_collaborative, [v or 0 for v in joined])

        if existing is None:
            # Readers who never joined get a left snapshot so the counter stays exact.
            if not _insert_if_absent(db, item, user_id, ParticipationStatus.LEFT, personal):
                existing = get_participation(db, community_id, item_id, user_id)
        if existing is not None:
            existing.progress_percent = personal
            existing.last_updated_at = utcnow()
        db.commit()
        logger.debug(
            "Progress of item %s for user %s: personal=%s community=%s",
            item_id,
            user_id,
            personal,
            community,
        )
        return ItemProgress(personal=personal, community=community)

    @staticmethod
    def record_contribution(
        db: Session,
        user_id: int,
        community_id: int,
        item_id: int,
        percent: int,
    ) -> CommunityParticipation:
        """Store the caller's contribution toward a collaborative goal.

        Raises:
            InvalidRequestError: If the item is not a collaborative goal.
            ForbiddenError: If contributions are disabled or the caller has not joined.
        """
        community = get_active_community(db, community_id)
        _require_participant(db, community_id, user_id)
        item = _get_visible_item(db, community_id, item_id)
        if not item.is_collaborative:
            raise InvalidRequestError("Contributions apply to collaborative goals only")
        if not community.allow_contributions:
            raise ForbiddenError("contributions are disabled in this community")
        participation = get_participation(db, community_id, item_id, user_id)
        if participation is None or participation.status != ParticipationStatus.JOINED:
            raise ForbiddenError("join this goal before contributing to it")
        participation.progress_percent = max(0, min(100, int(percent)))
        participation.last_updated_at = utcnow()
        db.commit()
        db.refresh(participation)
        logger.info(
            "User %s contributed %s%% to item %s",
            user_id,
            participation.progress_percent,
            item_id,
        )
        return participation

    @staticmethod
    def list_my_joined_items(
        db: Session,
        user_id: int,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return the caller's joined items shaped for a feed.

        Rows whose item or community is no longer active and approved are
        treated as implicitly left and omitted.
        """
        rows = db.execute(
            select(CommunityParticipation, CommunityItem, Community)
            .join(CommunityItem, CommunityItem.id == CommunityParticipation.item_id)
            .join(Community, Community.id == CommunityItem.community_id)
            .where(
                CommunityParticipation.user_id == user_id,
                CommunityParticipation.status == ParticipationStatus.JOINED,
                CommunityItem.is_active.is_(True),
                CommunityItem.status == ItemStatus.APPROVED,
                Community.is_active.is_(True),
            )
            .order_by(CommunityParticipation.last_updated_at.desc(), CommunityParticipation.id.desc())
            .limit(_page_limit(limit))
        ).all()
        return [
            {
                "item_id": item.id,
                "community_id": community.id,
                "community_name": community.name,
                "type": item.type,
                "participation_type": item.participation_type,
                "source_id": item.source_id,
                "title": item.title,
                "description": item.description,
                "participant_count": item.participant_count,
                "personal_percent": participation.progress_percent or 0,
            }
            for participation, item, community in rows
        ]
