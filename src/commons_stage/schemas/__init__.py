# src/commons_stage/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .community import (
    ActivityResponse,
    AnnouncementCreate,
    AnnouncementResponse,
    CommunityCreate,
    CommunityEnvelope,
    CommunityResponse,
    CommunityUpdate,
    MembershipResponse,
)
from .item import (
    ContributionUpdate,
    ItemCopy,
    ItemCreate,
    ItemLeave,
    ItemResponse,
    ItemSuggest,
    ParticipationResponse,
    ProgressResponse,
)

__all__ = [
    "ActivityResponse", "AnnouncementCreate", "AnnouncementResponse",
    "CommunityCreate", "CommunityEnvelope", "CommunityResponse", "CommunityUpdate",
    "MembershipResponse",
    "ContributionUpdate", "ItemCopy", "ItemCreate", "ItemLeave", "ItemResponse", "ItemSuggest",
    "ParticipationResponse", "ProgressResponse",
]
