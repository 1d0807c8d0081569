"""Enumerated states shared by the community models.

Every enum is stored as its lowercase value so rows stay readable from SQL.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Enum as SAEnum


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    INVITE_ONLY = "invite-only"


class MemberRole(str, Enum):
    ADMIN = "admin"
    MODERATOR = "moderator"
    MEMBER = "member"


class MembershipStatus(str, Enum):
    """Membership lifecycle: pending -> active|rejected, active -> removed."""

    ACTIVE = "active"
    PENDING = "pending"
    REJECTED = "rejected"
    REMOVED = "removed"


class ItemType(str, Enum):
    GOAL = "goal"
    HABIT = "habit"


class ParticipationType(str, Enum):
    INDIVIDUAL = "individual"
    COLLABORATIVE = "collaborative"


class ItemStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ParticipationStatus(str, Enum):
    JOINED = "joined"
    LEFT = "left"


class ActivityType(str, Enum):
    ITEM_ADDED = "item_added"
    ITEM_JOINED = "item_joined"
    ITEM_LEFT = "item_left"


def enum_column(enum_cls: type[Enum], name: str) -> SAEnum:
    """Return a portable (non-native) column type storing enum values."""
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
        length=16,
    )
