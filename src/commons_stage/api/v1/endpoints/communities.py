# src/commons_stage/api/v1/endpoints/communities.py
"""Community, membership, announcement and activity endpoints for the Commons API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from commons_stage.models import Community, CommunityActivity, CommunityAnnouncement
from commons_stage.schemas.community import (
    AnnouncementCreate,
    AnnouncementResponse,
    ActivityResponse,
    CommunityCreate,
    CommunityEnvelope,
    CommunityResponse,
    CommunityStats,
    CommunitySummaryResponse,
    CommunityUpdate,
    DashboardResponse,
    MemberResponse,
    MemberUser,
    MembershipDecision,
    MembershipEnvelope,
    MembershipResponse,
    MyCommunityResponse,
    OkResponse,
)
from commons_stage.schemas.item import JoinedItemResponse
from commons_stage.services.communities import CommunityService
from commons_stage.services.membership import MembershipService
from commons_stage.services.progress import ProgressService

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/communities", tags=["communities"])


def _member_rows(rows: list) -> list[MemberResponse]:
    return [
        MemberResponse(
            id=member.id,
            role=member.role,
            status=member.status,
            joined_at=member.joined_at,
            user=MemberUser.model_validate(user) if user is not None else None,
        )
        for member, user in rows
    ]


@router.post("/",
          response_model=CommunityEnvelope,
          status_code=status.HTTP_201_CREATED)
async def create_community(
    community_data: CommunityCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommunityEnvelope:
    """Create a new community owned by the caller."""
    community = CommunityService.create(db, current_user.id, community_data)
    return CommunityEnvelope(community=CommunityResponse.model_validate(community))


@router.get("/mine", response_model=list[MyCommunityResponse])
async def list_my_communities(
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[MyCommunityResponse]:
    """List the communities the caller is an active member of."""
    return [
        MyCommunityResponse(
            **CommunityResponse.model_validate(community).model_dump(),
            role=role,
        )
        for community, role in CommunityService.list_mine(db, current_user.id)
    ]


@router.get("/items/joined", response_model=list[JoinedItemResponse])
async def list_my_joined_items(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> list[dict]:
    """List every item the caller currently participates in."""
    return ProgressService.list_my_joined_items(db, current_user.id, limit=limit)


@router.get("/{community_id}", response_model=CommunitySummaryResponse)
async def get_community(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommunitySummaryResponse:
    """Get a community together with the caller's role in it."""
    summary = CommunityService.get_summary(db, community_id, current_user.id)
    return CommunitySummaryResponse(
        community=CommunityResponse.model_validate(summary["community"]),
        role=summary["role"],
        is_member=summary["is_member"],
    )


@router.patch("/{community_id}", response_model=CommunityResponse)
async def update_community(
    community_id: int,
    changes: CommunityUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Community:
    """Update community details and settings."""
    return CommunityService.update(db, community_id, current_user.id, changes)


@router.delete("/{community_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_community(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Response:
    """Soft-delete a community."""
    CommunityService.deactivate(db, community_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{community_id}/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    community_id: int,
    _current_user: CurrentUserDep,
    db: SessionDep,
) -> DashboardResponse:
    dashboard = CommunityService.get_dashboard(db, community_id)
    return DashboardResponse(
        stats=CommunityStats.model_validate(dashboard["stats"]),
        highlights=dashboard["highlights"],
    )


@router.post("/{community_id}/join", response_model=MembershipEnvelope)
async def join_community(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MembershipEnvelope:
    """Join a community, or request to join when approval is required."""
    membership = MembershipService.join(db, current_user.id, community_id)
    return MembershipEnvelope(membership=MembershipResponse.model_validate(membership))


@router.post("/{community_id}/leave", response_model=OkResponse)
async def leave_community(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> OkResponse:
    """Leave a community."""
    MembershipService.leave(db, current_user.id, community_id)
    return OkResponse()


@router.get("/{community_id}/members", response_model=list[MemberResponse])
async def list_members(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[MemberResponse]:
    return _member_rows(MembershipService.list_members(db, community_id, current_user.id))


@router.get("/{community_id}/members/pending", response_model=list[MemberResponse])
async def list_pending_members(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[MemberResponse]:
    return _member_rows(MembershipService.list_pending_members(db, community_id, current_user.id))


@router.post("/{community_id}/members/{user_id}/approve", response_model=MembershipEnvelope)
async def decide_membership(
    community_id: int,
    user_id: int,
    decision: MembershipDecision,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MembershipEnvelope:
    """Approve or reject a pending membership request."""
    membership = MembershipService.decide_membership(
        db,
        community_id,
        user_id,
        current_user.id,
        approve=decision.approve,
    )
    return MembershipEnvelope(membership=MembershipResponse.model_validate(membership))


@router.delete("/{community_id}/members/{user_id}", response_model=OkResponse)
async def remove_member(
    community_id: int,
    user_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> OkResponse:
    """Remove another member from the community."""
    MembershipService.remove_member(db, community_id, user_id, current_user.id)
    return OkResponse()


@router.get("/{community_id}/announcements", response_model=list[AnnouncementResponse])
async def list_announcements(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[CommunityAnnouncement]:
    return list(CommunityService.list_announcements(db, community_id, current_user.id))


@router.post("/{community_id}/announcements",
          response_model=AnnouncementResponse,
          status_code=status.HTTP_201_CREATED)
async def post_announcement(
    community_id: int,
    announcement: AnnouncementCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommunityAnnouncement:
    return CommunityService.post_announcement(db, community_id, current_user.id, announcement)


@router.delete("/{community_id}/announcements/{announcement_id}", response_model=OkResponse)
async def remove_announcement(
    community_id: int,
    announcement_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> OkResponse:
    CommunityService.remove_announcement(db, community_id, announcement_id, current_user.id)
    return OkResponse()


@router.get("/{community_id}/activity", response_model=list[ActivityResponse])
async def list_activity(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> list[CommunityActivity]:
    """Recent item activity in the community, newest first."""
    return list(CommunityService.list_activity(db, community_id, current_user.id, limit=limit))
