# src/commons_stage/models/__init__.py
"""SQLAlchemy models for the Commons application."""

from .activity import CommunityActivity
from .community import Community, CommunityAnnouncement, CommunityMember
from .enums import (
    ActivityType,
    ItemStatus,
    ItemType,
    MemberRole,
    MembershipStatus,
    ParticipationStatus,
    ParticipationType,
    Visibility,
)
from .item import CommunityItem, CommunityParticipation
from .personal import PersonalGoal, PersonalGoalHabitLink, PersonalHabit, PersonalSubGoal
from .user import User

__all__ = [
    "CommunityActivity",
    "Community", "CommunityAnnouncement", "CommunityMember",
    "CommunityItem", "CommunityParticipation",
    "PersonalGoal", "PersonalGoalHabitLink", "PersonalHabit", "PersonalSubGoal",
    "User",
    "ActivityType", "ItemStatus", "ItemType", "MemberRole", "MembershipStatus",
    "ParticipationStatus", "ParticipationType", "Visibility",
]
