# src/commons_stage/schemas/item.py
"""Community item and participation Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from commons_stage.models.enums import (
    ItemStatus,
    ItemType,
    ParticipationStatus,
    ParticipationType,
)


class ItemCreate(BaseModel):
    """Schema for building a brand-new goal or habit inside a community."""

    type: ItemType
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    category: str | None = Field(None, max_length=50, description="Goals only")
    frequency: str | None = Field(None, max_length=20, description="Habits only")
    participation_type: ParticipationType = ParticipationType.INDIVIDUAL


class ItemSuggest(BaseModel):
    """Schema for sharing one of the caller's existing personal records."""

    type: ItemType
    source_id: int
    title: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=2000)
    participation_type: ParticipationType = ParticipationType.INDIVIDUAL


class ItemCopy(BaseModel):
    """Schema for cloning a personal record as a fresh community template."""

    type: ItemType
    source_id: int
    participation_type: ParticipationType = ParticipationType.INDIVIDUAL


class ItemDecision(BaseModel):
    approve: bool = True


class ItemLeave(BaseModel):
    """What happens to the caller's linked personal copy on leave."""

    delete_personal_copy: bool = False
    transfer_to_personal: bool = True


class ContributionUpdate(BaseModel):
    percent: int = Field(..., ge=0, le=100)


class ItemResponse(BaseModel):
    """Schema for item information returned by the API."""

    id: int
    community_id: int
    type: ItemType
    participation_type: ParticipationType
    source_id: int
    title: str
    description: str
    created_by: int
    status: ItemStatus
    approver_id: int | None = None
    approved_at: datetime | None = None
    is_active: bool
    participant_count: int
    total_completions: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ItemEnvelope(BaseModel):
    item: ItemResponse


class ParticipationResponse(BaseModel):
    id: int
    community_id: int
    item_id: int
    user_id: int
    type: ItemType
    status: ParticipationStatus
    progress_percent: int
    last_updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ParticipationEnvelope(BaseModel):
    participation: ParticipationResponse


class ProgressResponse(BaseModel):
    personal: int
    community: int


class JoinedItemResponse(BaseModel):
    """One row of the caller's joined-items feed."""

    item_id: int
    community_id: int
    community_name: str
    type: ItemType
    participation_type: ParticipationType
    source_id: int
    title: str
    description: str
    participant_count: int
    personal_percent: int
