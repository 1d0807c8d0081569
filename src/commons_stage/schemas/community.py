# src/commons_stage/schemas/community.py
"""Community and membership Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from commons_stage.models.enums import ActivityType, MemberRole, MembershipStatus, Visibility


def _lenient_member_limit(value: object) -> int | None:
    """Treat a member limit that is not a whole number as not given."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CommunityCreate(BaseModel):
    """Schema for creating a new community."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=1000)
    visibility: Visibility = Visibility.PUBLIC
    interests: list[str] = Field(default_factory=list)
    avatar_url: str = ""
    banner_url: str = ""
    member_limit: int | None = Field(None, description="Clamped to 1..100")

    @field_validator("member_limit", mode="before")
    @classmethod
    def parse_member_limit(cls, value: object) -> int | None:
        return _lenient_member_limit(value)


class CommunityUpdate(BaseModel):
    """Partial update; unset fields are left untouched."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    visibility: Visibility | None = None
    interests: list[str] | None = None
    avatar_url: str | None = None
    banner_url: str | None = None
    member_limit: int | None = None
    membership_approval_required: bool | None = None
    only_admins_can_add_items: bool | None = None
    only_admins_can_add_goals: bool | None = None
    only_admins_can_add_habits: bool | None = None
    only_admins_can_change_images: bool | None = None
    only_admins_can_add_members: bool | None = None
    only_admins_can_remove_members: bool | None = None
    allow_contributions: bool | None = None

    @field_validator("member_limit", mode="before")
    @classmethod
    def parse_member_limit(cls, value: object) -> int | None:
        return _lenient_member_limit(value)


class CommunitySettingsResponse(BaseModel):
    membership_approval_required: bool
    only_admins_can_add_items: bool
    only_admins_can_add_goals: bool
    only_admins_can_add_habits: bool
    only_admins_can_change_images: bool
    only_admins_can_add_members: bool
    only_admins_can_remove_members: bool
    allow_contributions: bool
    member_limit: int

    model_config = ConfigDict(from_attributes=True)


class CommunityStats(BaseModel):
    member_count: int
    total_points: int
    weekly_activity_count: int
    completion_rate: float

    model_config = ConfigDict(from_attributes=True)


class CommunityResponse(BaseModel):
    """Schema for community information returned by the API."""

    id: int
    name: str
    description: str
    avatar_url: str
    banner_url: str
    visibility: Visibility
    interests: list[str]
    owner_id: int
    is_active: bool
    created_at: datetime | None = None
    settings: CommunitySettingsResponse
    stats: CommunityStats

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _split_settings_and_stats(cls, data: object) -> object:
        if isinstance(data, dict):
            return data
        extracted: dict[str, object | None] = {}
        for field_name in cls.model_fields:
            if field_name in ("settings", "stats"):
                continue
            extracted[field_name] = getattr(data, field_name, None)
        extracted["interests"] = list(extracted.get("interests") or [])
        extracted["settings"] = CommunitySettingsResponse.model_validate(getattr(data, "settings"))
        extracted["stats"] = CommunityStats.model_validate(data)
        return extracted


class CommunityEnvelope(BaseModel):
    community: CommunityResponse


class MyCommunityResponse(CommunityResponse):
    role: MemberRole | None = None


class CommunitySummaryResponse(BaseModel):
    community: CommunityResponse
    role: MemberRole | None
    is_member: bool


class DashboardResponse(BaseModel):
    stats: CommunityStats
    highlights: list[str]


class MembershipResponse(BaseModel):
    """A membership row as exposed to clients."""

    id: int
    community_id: int
    user_id: int
    role: MemberRole
    status: MembershipStatus
    joined_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class MembershipEnvelope(BaseModel):
    membership: MembershipResponse


class MemberUser(BaseModel):
    id: int
    display_name: str | None = None
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class MemberResponse(BaseModel):
    id: int
    role: MemberRole
    status: MembershipStatus
    joined_at: datetime | None = None
    user: MemberUser | None = None


class MembershipDecision(BaseModel):
    approve: bool = True


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    body: str = Field("", max_length=2000)
    is_pinned: bool = False


class AnnouncementResponse(BaseModel):
    id: int
    community_id: int
    author_id: int
    title: str
    body: str
    is_pinned: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class OkResponse(BaseModel):
    ok: bool = True


class ActivityResponse(BaseModel):
    id: int
    community_id: int
    user_id: int
    item_id: int | None = None
    type: ActivityType
    title: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
