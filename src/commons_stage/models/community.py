"""SQLAlchemy models for communities, membership and announcements."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from commons_stage.db.session import Base
from commons_stage.db.time import utcnow
from commons_stage.models.enums import (
    MemberRole,
    MembershipStatus,
    Visibility,
    enum_column,
)
from commons_stage.policies.permissions import Actor, CommunitySettings


class Community(Base):
    """A named group sharing goals and habits under common settings.

    Communities are never hard-deleted; ``is_active`` flips to False instead.
    ``member_count`` is maintained with atomic increments and mirrors the
    number of active membership rows.
    """

    __tablename__ = "community"
    __table_args__ = (
        CheckConstraint("member_limit > 0 AND member_limit <= 100", name="ck_community_member_limit"),
        CheckConstraint("member_count >= 0", name="ck_community_member_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    avatar_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    banner_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    visibility: Mapped[Visibility] = mapped_column(
        enum_column(Visibility, "community_visibility"),
        nullable=False,
        default=Visibility.PUBLIC,
        index=True,
    )
    interests: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
        index=True,
    )

    # Settings toggles; see commons_stage.policies.permissions.
    membership_approval_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    only_admins_can_add_items: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    only_admins_can_add_goals: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    only_admins_can_add_habits: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    only_admins_can_change_images: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    only_admins_can_add_members: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    only_admins_can_remove_members: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_contributions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    member_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Stats
    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1, index=True)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekly_activity_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    @property
    def settings(self) -> CommunitySettings:
        """Return the settings columns as an immutable struct."""
        return CommunitySettings(
            membership_approval_required=self.membership_approval_required,
            only_admins_can_add_items=self.only_admins_can_add_items,
            only_admins_can_add_goals=self.only_admins_can_add_goals,
            only_admins_can_add_habits=self.only_admins_can_add_habits,
            only_admins_can_change_images=self.only_admins_can_change_images,
            only_admins_can_add_members=self.only_admins_can_add_members,
            only_admins_can_remove_members=self.only_admins_can_remove_members,
            allow_contributions=self.allow_contributions,
            member_limit=self.member_limit,
        )

    @property
    def requires_approval(self) -> bool:
        """Non-public communities and opted-in public ones queue new members."""
        return self.visibility != Visibility.PUBLIC or self.membership_approval_required


class CommunityMember(Base):
    """Membership of a user in a community.

    Exactly one row exists per (community, user); status transitions replace
    the previous state rather than adding rows.
    """

    __tablename__ = "community_member"
    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_member"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
        index=True,
    )
    role: Mapped[MemberRole] = mapped_column(
        enum_column(MemberRole, "member_role"),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    status: Mapped[MembershipStatus] = mapped_column(
        enum_column(MembershipStatus, "membership_status"),
        nullable=False,
        default=MembershipStatus.ACTIVE,
        index=True,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    def as_actor(self) -> Actor:
        """Return the snapshot consumed by the permission policies."""
        return Actor(role=self.role, status=self.status)


class CommunityAnnouncement(Base):
    """Pinned or regular announcement posted by a community manager."""

    __tablename__ = "community_announcement"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    body: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
