# tests/test_permissions.py
"""Tests for the pure permission rules."""

import pytest

from commons_stage.core.errors import ForbiddenError
from commons_stage.models.enums import ItemType, MemberRole, MembershipStatus
from commons_stage.policies.permissions import (
    Actor,
    CommunitySettings,
    allows_unrestricted_add,
    can_add_item,
    can_change_images,
    can_deactivate_community,
    can_edit_community,
    can_manage_members,
    can_remove_item,
    can_remove_members,
    can_review_items,
    can_suggest_item,
    require,
)

ADMIN = Actor(MemberRole.ADMIN, MembershipStatus.ACTIVE)
MODERATOR = Actor(MemberRole.MODERATOR, MembershipStatus.ACTIVE)
MEMBER = Actor(MemberRole.MEMBER, MembershipStatus.ACTIVE)


def test_goal_toggle_opens_goals_but_not_habits() -> None:
    """Opening the goal toggle lets members add goals while habits stay locked."""
    settings = CommunitySettings(only_admins_can_add_items=True, only_admins_can_add_goals=False)

    assert can_add_item(settings, MEMBER, ItemType.GOAL).allowed
    decision = can_add_item(settings, MEMBER, ItemType.HABIT)
    assert not decision.allowed
    assert decision.reason == "only admins can add habits here"


def test_global_toggle_opens_every_type() -> None:
    settings = CommunitySettings(only_admins_can_add_items=False)

    assert allows_unrestricted_add(settings, ItemType.GOAL)
    assert allows_unrestricted_add(settings, ItemType.HABIT)
    assert can_add_item(settings, MEMBER, ItemType.HABIT).allowed


def test_fully_restricted_add_is_admin_only() -> None:
    settings = CommunitySettings()

    assert can_add_item(settings, ADMIN, ItemType.GOAL).allowed
    assert not can_add_item(settings, MODERATOR, ItemType.GOAL).allowed
    assert not can_add_item(settings, MEMBER, ItemType.HABIT).allowed


@pytest.mark.parametrize(
    "status",
    [MembershipStatus.PENDING, MembershipStatus.REJECTED, MembershipStatus.REMOVED],
)
def test_inactive_actors_are_always_denied(status: MembershipStatus) -> None:
    """Even an admin role is denied without an active membership."""
    open_settings = CommunitySettings(
        only_admins_can_add_items=False,
        only_admins_can_add_members=False,
        only_admins_can_change_images=False,
    )
    actor = Actor(MemberRole.ADMIN, status)

    assert not can_add_item(open_settings, actor, ItemType.GOAL).allowed
    assert not can_manage_members(open_settings, actor).allowed
    assert not can_change_images(open_settings, actor).allowed
    assert not can_review_items(actor).allowed
    assert not can_suggest_item(actor).allowed


def test_missing_membership_is_denied() -> None:
    assert not can_suggest_item(None).allowed
    assert not can_edit_community(None).allowed
    assert not can_manage_members(CommunitySettings(), None).allowed


def test_role_tiered_rules_follow_the_toggle() -> None:
    restrictive = CommunitySettings(only_admins_can_add_members=True)
    permissive = CommunitySettings(only_admins_can_add_members=False)

    assert can_manage_members(restrictive, ADMIN).allowed
    assert not can_manage_members(restrictive, MODERATOR).allowed
    assert can_manage_members(permissive, MODERATOR).allowed
    # Plain members never manage, whatever the toggle says.
    assert not can_manage_members(permissive, MEMBER).allowed
    assert not can_manage_members(restrictive, MEMBER).allowed


def test_remove_members_and_images_use_their_own_toggles() -> None:
    settings = CommunitySettings(
        only_admins_can_remove_members=False,
        only_admins_can_change_images=True,
    )

    assert can_remove_members(settings, MODERATOR).allowed
    assert not can_change_images(settings, MODERATOR).allowed
    assert can_change_images(settings, ADMIN).allowed


def test_item_removal_by_creator_or_admin() -> None:
    assert can_remove_item(None, is_creator=True).allowed
    assert can_remove_item(ADMIN, is_creator=False).allowed
    assert not can_remove_item(MODERATOR, is_creator=False).allowed
    assert not can_remove_item(Actor(MemberRole.ADMIN, MembershipStatus.REMOVED), is_creator=False).allowed


def test_deactivation_by_owner_or_admin() -> None:
    assert can_deactivate_community(None, is_owner=True).allowed
    assert can_deactivate_community(ADMIN, is_owner=False).allowed
    assert not can_deactivate_community(MODERATOR, is_owner=False).allowed


def test_require_raises_with_reason() -> None:
    decision = can_review_items(MEMBER)

    with pytest.raises(ForbiddenError) as excinfo:
        require(decision)

    assert excinfo.value.message == "only admins and moderators can review items"
    assert excinfo.value.status_code == 403
    require(can_review_items(MODERATOR))
