"""Item lifecycle: suggest, create, copy, review, remove and list."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from commons_stage.core.errors import ForbiddenError, NotFoundError
from commons_stage.db.time import utcnow
from commons_stage.models import CommunityItem, CommunityParticipation
from commons_stage.models.enums import (
    ActivityType,
    ItemStatus,
    ItemType,
    ParticipationStatus,
    ParticipationType,
)
from commons_stage.policies.permissions import (
    allows_unrestricted_add,
    can_add_item,
    can_remove_item,
    can_review_items,
    can_suggest_item,
    require,
)
from commons_stage.services.activity import record_activity
from commons_stage.services.membership import actor_for, get_active_community
from commons_stage.services.progress import ensure_joined
from commons_stage.services.source_records import (
    SourceRecordProvider,
    SqlSourceRecordProvider,
    StaticFields,
)

logger = logging.getLogger(__name__)

__all__ = ["ItemService"]


def _participation_type_for(item_type: ItemType, requested: ParticipationType | None) -> ParticipationType:
    if item_type == ItemType.HABIT or requested is None:
        return ParticipationType.INDIVIDUAL
    return requested


def _get_item(db: Session, community_id: int, item_id: int) -> CommunityItem:
    item = db.scalars(
        select(CommunityItem).where(
            CommunityItem.id == item_id,
            CommunityItem.community_id == community_id,
        )
    ).first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def _wrap_record(
    db: Session,
    community_id: int,
    user_id: int,
    item_type: ItemType,
    source_id: int,
    fields: StaticFields,
    participation_type: ParticipationType | None,
    status: ItemStatus,
) -> CommunityItem:
    """Insert the item row and auto-join its creator in the same transaction."""
    item = CommunityItem(
        community_id=community_id,
        type=item_type,
        participation_type=_participation_type_for(item_type, participation_type),
        source_id=source_id,
        title=fields.title,
        description=fields.description,
        created_by=user_id,
        status=status,
        is_active=True,
        participant_count=0,
    )
    if status == ItemStatus.APPROVED:
        item.approved_at = utcnow()
    db.add(item)
    db.flush()
    ensure_joined(db, item, user_id)
    if status == ItemStatus.APPROVED:
        record_activity(db, ActivityType.ITEM_ADDED, user_id, item)
    db.commit()
    db.refresh(item)
    return item


class ItemService:
    """Service handling community goals and habits."""

    @staticmethod
    def suggest(
        db: Session,
        community_id: int,
        user_id: int,
        item_type: ItemType,
        source_id: int,
        title: str | None = None,
        description: str | None = None,
        participation_type: ParticipationType | None = None,
        provider: SourceRecordProvider | None = None,
    ) -> CommunityItem:
        """Share one of the caller's own personal records with the community.

        The item is approved right away when the community lets any member
        add this type; otherwise it waits for review.

        Raises:
            NotFoundError: If the community or the source record is missing.
            ForbiddenError: If the caller is not an active member or does not own the record.
        """
        community = get_active_community(db, community_id)
        require(can_suggest_item(actor_for(db, community_id, user_id)))
        provider = provider or SqlSourceRecordProvider(db)

        owner = provider.owner_of(item_type, source_id)
        if owner is None:
            raise NotFoundError(f"Personal {item_type.value} not found")
        if owner != user_id:
            raise ForbiddenError(f"you can only share your own {item_type.value}s")

        fields = provider.static_fields(item_type, source_id)
        if fields is None:
            raise NotFoundError(f"Personal {item_type.value} not found")
        fields = StaticFields(
            title=title or fields.title,
            description=description if description is not None else fields.description,
        )
        status = (
            ItemStatus.APPROVED
            if allows_unrestricted_add(community.settings, item_type)
            else ItemStatus.PENDING
        )
        item = _wrap_record(
            db, community_id, user_id, item_type, source_id, fields, participation_type, status
        )
        logger.info(
            "User %s suggested %s %s in community %s (%s)",
            user_id,
            item_type.value,
            item.id,
            community_id,
            status.value,
        )
        return item

    @staticmethod
    def create_owned(
        db: Session,
        community_id: int,
        user_id: int,
        item_type: ItemType,
        title: str,
        description: str = "",
        category: str | None = None,
        frequency: str | None = None,
        participation_type: ParticipationType | None = None,
        provider: SourceRecordProvider | None = None,
    ) -> CommunityItem:
        """Build a zero-progress personal record and share it as an approved item.

        Raises:
            NotFoundError: If the community is missing or inactive.
            ForbiddenError: If the caller may not add items of this type.
        """
        community = get_active_community(db, community_id)
        require(can_add_item(community.settings, actor_for(db, community_id, user_id), item_type))
        provider = provider or SqlSourceRecordProvider(db)

        fields = StaticFields(
            title=title,
            description=description or "",
            category=category if item_type == ItemType.GOAL else None,
            frequency=frequency if item_type == ItemType.HABIT else None,
        )
        source_id = provider.create_record(item_type, user_id, fields)
        item = _wrap_record(
            db,
            community_id,
            user_id,
            item_type,
            source_id,
            fields,
            participation_type,
            ItemStatus.APPROVED,
        )
        logger.info("User %s created %s %s in community %s", user_id, item_type.value, item.id, community_id)
        return item

    @staticmethod
    def copy_from_personal(
        db: Session,
        community_id: int,
        user_id: int,
        item_type: ItemType,
        source_id: int,
        participation_type: ParticipationType | None = None,
        provider: SourceRecordProvider | None = None,
    ) -> CommunityItem:
        """Clone the static fields of a personal record into a fresh shared item.

        Progress is never copied; the new record starts at zero.
        """
        community = get_active_community(db, community_id)
        require(can_add_item(community.settings, actor_for(db, community_id, user_id), item_type))
        provider = provider or SqlSourceRecordProvider(db)

        owner = provider.owner_of(item_type, source_id)
        if owner is None:
            raise NotFoundError(f"Personal {item_type.value} not found")
        if owner != user_id:
            raise ForbiddenError(f"you can only copy your own {item_type.value}s")
        fields = provider.static_fields(item_type, source_id)
        if fields is None:
            raise NotFoundError(f"Personal {item_type.value} not found")

        new_source_id = provider.create_record(item_type, user_id, fields)
        item = _wrap_record(
            db,
            community_id,
            user_id,
            item_type,
            new_source_id,
            fields,
            participation_type,
            ItemStatus.APPROVED,
        )
        logger.info(
            "User %s copied %s %s into item %s of community %s",
            user_id,
            item_type.value,
            source_id,
            item.id,
            community_id,
        )
        return item

    @staticmethod
    def approve(
        db: Session,
        community_id: int,
        item_id: int,
        approver_id: int,
        approve: bool = True,
    ) -> CommunityItem:
        """Approve or reject an item; admins and moderators only."""
        get_active_community(db, community_id)
        decision = can_review_items(actor_for(db, community_id, approver_id))
        if not decision.allowed:
            logger.warning("Denied item review for user %s in community %s", approver_id, community_id)
        require(decision)

        item = _get_item(db, community_id, item_id)
        if not item.is_active:
            raise NotFoundError("Item not found")
        if approve and item.status != ItemStatus.APPROVED:
            record_activity(db, ActivityType.ITEM_ADDED, item.created_by, item)
        item.status = ItemStatus.APPROVED if approve else ItemStatus.REJECTED
        item.approver_id = approver_id
        item.approved_at = utcnow() if approve else None
        db.commit()
        db.refresh(item)
        logger.info(
            "User %s %s item %s in community %s",
            approver_id,
            "approved" if approve else "rejected",
            item_id,
            community_id,
        )
        return item

    @staticmethod
    def remove(db: Session, community_id: int, item_id: int, requester_id: int) -> CommunityItem:
        """Soft-remove an item and flip every participation on it to left.

        The creator's personal record is left untouched.

        Raises:
            NotFoundError: If the community or item is missing.
            ForbiddenError: If the requester is neither the creator nor an admin.
        """
        get_active_community(db, community_id)
        item = _get_item(db, community_id, item_id)
        decision = can_remove_item(
            actor_for(db, community_id, requester_id),
            is_creator=item.created_by == requester_id,
        )
        if not decision.allowed:
            logger.warning("Denied removal of item %s for user %s", item_id, requester_id)
        require(decision)

        if not item.is_active:
            return item

        result = db.execute(
            update(CommunityParticipation)
            .where(
                CommunityParticipation.item_id == item_id,
                CommunityParticipation.status == ParticipationStatus.JOINED,
            )
            .values(status=ParticipationStatus.LEFT, last_updated_at=utcnow())
        )
        item.is_active = False
        item.status = ItemStatus.REJECTED
        item.participant_count = 0
        db.commit()
        db.refresh(item)
        logger.info(
            "User %s removed item %s from community %s; %s participants left",
            requester_id,
            item_id,
            community_id,
            result.rowcount,
        )
        return item

    @staticmethod
    def list_items(db: Session, community_id: int) -> Sequence[CommunityItem]:
        """Approved, active items; most joined first."""
        get_active_community(db, community_id)
        return db.scalars(
            select(CommunityItem)
            .where(
                CommunityItem.community_id == community_id,
                CommunityItem.status == ItemStatus.APPROVED,
                CommunityItem.is_active.is_(True),
            )
            .order_by(CommunityItem.participant_count.desc(), CommunityItem.created_at.desc())
        ).all()

    @staticmethod
    def list_pending_items(db: Session, community_id: int, requester_id: int) -> Sequence[CommunityItem]:
        """Items waiting for review, newest first."""
        get_active_community(db, community_id)
        require(can_review_items(actor_for(db, community_id, requester_id)))
        return db.scalars(
            select(CommunityItem)
            .where(
                CommunityItem.community_id == community_id,
                CommunityItem.status == ItemStatus.PENDING,
                CommunityItem.is_active.is_(True),
            )
            .order_by(CommunityItem.created_at.desc(), CommunityItem.id.desc())
        ).all()
