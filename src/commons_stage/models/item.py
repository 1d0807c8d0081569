"""SQLAlchemy models for community items and per-user participation."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from commons_stage.db.session import Base
from commons_stage.db.time import utcnow
from commons_stage.models.enums import (
    ItemStatus,
    ItemType,
    ParticipationStatus,
    ParticipationType,
    enum_column,
)


class CommunityItem(Base):
    """A goal or habit shared for participation inside a community.

    ``source_id`` points at a personal record owned exclusively by
    ``created_by``. Only approved, active items take part in joins and
    progress reads.
    """

    __tablename__ = "community_item"
    __table_args__ = (
        CheckConstraint("participant_count >= 0", name="ck_item_participant_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=False,
        index=True,
    )
    type: Mapped[ItemType] = mapped_column(enum_column(ItemType, "item_type"), nullable=False)
    # Goals only; habits are always individual.
    participation_type: Mapped[ParticipationType] = mapped_column(
        enum_column(ParticipationType, "participation_type"),
        nullable=False,
        default=ParticipationType.INDIVIDUAL,
    )
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
        index=True,
    )
    status: Mapped[ItemStatus] = mapped_column(
        enum_column(ItemStatus, "item_status"),
        nullable=False,
        default=ItemStatus.PENDING,
        index=True,
    )
    approver_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    participant_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def is_visible(self) -> bool:
        return self.status == ItemStatus.APPROVED and self.is_active

    @property
    def is_collaborative(self) -> bool:
        return (
            self.type == ItemType.GOAL
            and self.participation_type == ParticipationType.COLLABORATIVE
        )


class CommunityParticipation(Base):
    """A user's join state and latest progress snapshot on one item.

    Rows are never deleted; ``status`` flips between joined and left.
    For collaborative goals ``progress_percent`` is the user's contribution
    toward the shared target.
    """

    __tablename__ = "community_participation"
    __table_args__ = (
        UniqueConstraint("community_id", "item_id", "user_id", name="uq_participation"),
        CheckConstraint(
            "progress_percent >= 0 AND progress_percent <= 100",
            name="ck_participation_progress",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community_item.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
        index=True,
    )
    type: Mapped[ItemType] = mapped_column(enum_column(ItemType, "item_type"), nullable=False)
    status: Mapped[ParticipationStatus] = mapped_column(
        enum_column(ParticipationStatus, "participation_status"),
        nullable=False,
        default=ParticipationStatus.JOINED,
        index=True,
    )
    progress_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
