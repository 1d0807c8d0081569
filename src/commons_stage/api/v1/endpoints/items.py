# src/commons_stage/api/v1/endpoints/items.py
"""Community item and participation endpoints for the Commons API."""

from __future__ import annotations

from fastapi import APIRouter, status

from commons_stage.models import CommunityItem
from commons_stage.schemas.community import OkResponse
from commons_stage.schemas.item import (
    ContributionUpdate,
    ItemCopy,
    ItemCreate,
    ItemDecision,
    ItemEnvelope,
    ItemLeave,
    ItemResponse,
    ItemSuggest,
    ParticipationEnvelope,
    ParticipationResponse,
    ProgressResponse,
)
from commons_stage.services.items import ItemService
from commons_stage.services.progress import ProgressService

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/communities/{community_id}/items", tags=["items"])


def _item_envelope(item: CommunityItem) -> ItemEnvelope:
    return ItemEnvelope(item=ItemResponse.model_validate(item))


@router.get("", response_model=list[ItemResponse])
async def list_items(
    community_id: int,
    _current_user: CurrentUserDep,
    db: SessionDep,
) -> list[CommunityItem]:
    """List approved items, most joined first."""
    return list(ItemService.list_items(db, community_id))


@router.get("/pending", response_model=list[ItemResponse])
async def list_pending_items(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[CommunityItem]:
    """List suggestions waiting for review."""
    return list(ItemService.list_pending_items(db, community_id, current_user.id))


@router.post("", response_model=ItemEnvelope, status_code=status.HTTP_201_CREATED)
async def create_item(
    community_id: int,
    item_data: ItemCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ItemEnvelope:
    """Create a brand-new goal or habit owned by the caller."""
    item = ItemService.create_owned(
        db,
        community_id,
        current_user.id,
        item_data.type,
        title=item_data.title,
        description=item_data.description,
        category=item_data.category,
        frequency=item_data.frequency,
        participation_type=item_data.participation_type,
    )
    return _item_envelope(item)


@router.post("/suggest", response_model=ItemEnvelope, status_code=status.HTTP_201_CREATED)
async def suggest_item(
    community_id: int,
    suggestion: ItemSuggest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ItemEnvelope:
    """Share one of the caller's personal goals or habits."""
    item = ItemService.suggest(
        db,
        community_id,
        current_user.id,
        suggestion.type,
        suggestion.source_id,
        title=suggestion.title,
        description=suggestion.description,
        participation_type=suggestion.participation_type,
    )
    return _item_envelope(item)


@router.post("/copy", response_model=ItemEnvelope, status_code=status.HTTP_201_CREATED)
async def copy_item(
    community_id: int,
    copy_data: ItemCopy,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ItemEnvelope:
    """Copy a personal goal or habit as a fresh template."""
    item = ItemService.copy_from_personal(
        db,
        community_id,
        current_user.id,
        copy_data.type,
        copy_data.source_id,
        participation_type=copy_data.participation_type,
    )
    return _item_envelope(item)


@router.patch("/{item_id}/approve", response_model=ItemEnvelope)
async def approve_item(
    community_id: int,
    item_id: int,
    decision: ItemDecision,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ItemEnvelope:
    item = ItemService.approve(db, community_id, item_id, current_user.id, approve=decision.approve)
    return _item_envelope(item)


@router.delete("/{item_id}", response_model=OkResponse)
async def remove_item(
    community_id: int,
    item_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> OkResponse:
    ItemService.remove(db, community_id, item_id, current_user.id)
    return OkResponse()


@router.post("/{item_id}/join", response_model=ParticipationEnvelope)
async def join_item(
    community_id: int,
    item_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ParticipationEnvelope:
    participation = ProgressService.join_item(db, current_user.id, community_id, item_id)
    return ParticipationEnvelope(participation=ParticipationResponse.model_validate(participation))


@router.post("/{item_id}/leave", response_model=OkResponse)
async def leave_item(
    community_id: int,
    item_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    options: ItemLeave | None = None,
) -> OkResponse:
    """Leave an item, deciding what happens to the linked personal copy."""
    options = options or ItemLeave()
    ProgressService.leave_item(
        db,
        current_user.id,
        community_id,
        item_id,
        delete_personal_copy=options.delete_personal_copy,
        transfer_to_personal=options.transfer_to_personal,
    )
    return OkResponse()


@router.get("/{item_id}/progress", response_model=ProgressResponse)
async def get_item_progress(
    community_id: int,
    item_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ProgressResponse:
    """Return the caller's personal progress and the community-wide value."""
    progress = ProgressService.get_item_progress(db, current_user.id, community_id, item_id)
    return ProgressResponse(personal=progress.personal, community=progress.community)


@router.put("/{item_id}/contribution", response_model=ParticipationEnvelope)
async def record_contribution(
    community_id: int,
    item_id: int,
    contribution: ContributionUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ParticipationEnvelope:
    """Set the caller's contribution toward a collaborative goal."""
    participation = ProgressService.record_contribution(
        db,
        current_user.id,
        community_id,
        item_id,
        contribution.percent,
    )
    return ParticipationEnvelope(participation=ParticipationResponse.model_validate(participation))
