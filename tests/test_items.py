# tests/test_items.py
"""Tests for the item lifecycle service."""

import pytest

from commons_stage.core.errors import ForbiddenError, NotFoundError
from commons_stage.models import CommunityParticipation, PersonalGoal, PersonalHabit
from commons_stage.models.enums import (
    ItemStatus,
    ItemType,
    MemberRole,
    ParticipationStatus,
    ParticipationType,
)
from commons_stage.services.items import ItemService
from commons_stage.services.progress import ProgressService


def _participations(db_session, item_id: int) -> list[CommunityParticipation]:
    return db_session.query(CommunityParticipation).filter_by(item_id=item_id).all()


def test_member_may_add_goal_but_not_habit_when_goals_open(
    db_session, make_community, make_user, add_member
) -> None:
    """Opening goals alone keeps habits admin-only."""
    community = make_community(only_admins_can_add_items=True, only_admins_can_add_goals=False)
    member = make_user()
    add_member(community, member)

    goal_item = ItemService.create_owned(db_session, community.id, member.id, ItemType.GOAL, title="Read 12 books")
    assert goal_item.status == ItemStatus.APPROVED

    with pytest.raises(ForbiddenError) as excinfo:
        ItemService.create_owned(db_session, community.id, member.id, ItemType.HABIT, title="Stretch")
    assert excinfo.value.message == "only admins can add habits here"


def test_create_owned_builds_fresh_record_and_auto_joins(db_session, community, test_user) -> None:
    item = ItemService.create_owned(
        db_session,
        community.id,
        test_user.id,
        ItemType.GOAL,
        title="Learn Spanish",
        description="Daily lessons",
        category="Education",
        participation_type=ParticipationType.COLLABORATIVE,
    )

    goal = db_session.get(PersonalGoal, item.source_id)
    assert goal.user_id == test_user.id
    assert goal.category == "Education"
    assert goal.completed is False
    assert item.participation_type == ParticipationType.COLLABORATIVE
    assert item.participant_count == 1
    (participation,) = _participations(db_session, item.id)
    assert participation.user_id == test_user.id
    assert participation.status == ParticipationStatus.JOINED


def test_habits_are_always_individual(db_session, community, test_user) -> None:
    item = ItemService.create_owned(
        db_session,
        community.id,
        test_user.id,
        ItemType.HABIT,
        title="Journal",
        frequency="weekly",
        participation_type=ParticipationType.COLLABORATIVE,
    )

    assert item.participation_type == ParticipationType.INDIVIDUAL
    assert db_session.get(PersonalHabit, item.source_id).frequency == "weekly"


def test_suggest_in_restricted_community_is_pending(
    db_session, community, make_user, add_member, make_goal
) -> None:
    member = make_user()
    add_member(community, member)
    goal = make_goal(member)

    item = ItemService.suggest(db_session, community.id, member.id, ItemType.GOAL, goal.id)

    assert item.status == ItemStatus.PENDING
    assert item.source_id == goal.id
    assert item.title == goal.title
    assert item not in ItemService.list_items(db_session, community.id)


def test_suggest_in_open_community_is_approved(db_session, make_community, make_user, add_member, make_habit) -> None:
    community = make_community(only_admins_can_add_habits=False)
    member = make_user()
    add_member(community, member)
    habit = make_habit(member, name="Cold shower")

    item = ItemService.suggest(db_session, community.id, member.id, ItemType.HABIT, habit.id, title="Brrr")

    assert item.status == ItemStatus.APPROVED
    assert item.title == "Brrr"
    assert item.approved_at is not None


def test_suggest_requires_ownership(db_session, community, test_user, make_user, add_member, make_goal) -> None:
    member = make_user()
    add_member(community, member)
    foreign_goal = make_goal(test_user)

    with pytest.raises(ForbiddenError):
        ItemService.suggest(db_session, community.id, member.id, ItemType.GOAL, foreign_goal.id)
    with pytest.raises(NotFoundError):
        ItemService.suggest(db_session, community.id, member.id, ItemType.GOAL, foreign_goal.id + 999)


def test_suggest_requires_membership(db_session, community, make_user, make_goal) -> None:
    stranger = make_user()
    goal = make_goal(stranger)

    with pytest.raises(ForbiddenError):
        ItemService.suggest(db_session, community.id, stranger.id, ItemType.GOAL, goal.id)


def test_copy_from_personal_drops_progress(db_session, community, test_user, make_habit) -> None:
    habit = make_habit(test_user, name="Walk", current_streak=12, longest_streak=20)

    item = ItemService.copy_from_personal(db_session, community.id, test_user.id, ItemType.HABIT, habit.id)

    assert item.source_id != habit.id
    copy = db_session.get(PersonalHabit, item.source_id)
    assert copy.name == "Walk"
    assert copy.current_streak == 0
    assert copy.longest_streak == 0
    assert item.status == ItemStatus.APPROVED


def test_approve_and_reject(db_session, community, test_user, make_user, add_member, make_goal) -> None:
    member = make_user()
    add_member(community, member)
    first = ItemService.suggest(db_session, community.id, member.id, ItemType.GOAL, make_goal(member).id)
    second = ItemService.suggest(db_session, community.id, member.id, ItemType.GOAL, make_goal(member).id)
    assert {item.id for item in ItemService.list_pending_items(db_session, community.id, test_user.id)} == {
        first.id,
        second.id,
    }

    approved = ItemService.approve(db_session, community.id, first.id, test_user.id)
    rejected = ItemService.approve(db_session, community.id, second.id, test_user.id, approve=False)

    assert approved.status == ItemStatus.APPROVED
    assert approved.approver_id == test_user.id
    assert approved.approved_at is not None
    assert rejected.status == ItemStatus.REJECTED
    assert rejected.approved_at is None
    assert [item.id for item in ItemService.list_items(db_session, community.id)] == [first.id]


def test_plain_member_cannot_review(db_session, community, make_user, add_member, make_goal) -> None:
    member = make_user()
    add_member(community, member)
    item = ItemService.suggest(db_session, community.id, member.id, ItemType.GOAL, make_goal(member).id)

    with pytest.raises(ForbiddenError):
        ItemService.approve(db_session, community.id, item.id, member.id)
    with pytest.raises(ForbiddenError):
        ItemService.list_pending_items(db_session, community.id, member.id)


def test_moderator_can_review(db_session, community, make_user, add_member, make_goal) -> None:
    member, moderator = make_user(), make_user()
    add_member(community, member)
    add_member(community, moderator, role=MemberRole.MODERATOR)
    item = ItemService.suggest(db_session, community.id, member.id, ItemType.GOAL, make_goal(member).id)

    assert ItemService.approve(db_session, community.id, item.id, moderator.id).status == ItemStatus.APPROVED


def test_remove_by_creator_flips_every_participation(
    db_session, make_community, make_user, add_member
) -> None:
    """Removing an item with three participants leaves all of them."""
    community = make_community(only_admins_can_add_items=False)
    creator, second, third = make_user(), make_user(), make_user()
    for user in (creator, second, third):
        add_member(community, user)
    item = ItemService.create_owned(db_session, community.id, creator.id, ItemType.GOAL, title="Ship it")
    ProgressService.join_item(db_session, second.id, community.id, item.id)
    ProgressService.join_item(db_session, third.id, community.id, item.id)

    removed = ItemService.remove(db_session, community.id, item.id, creator.id)

    rows = _participations(db_session, item.id)
    assert len(rows) == 3
    assert all(row.status == ParticipationStatus.LEFT for row in rows)
    assert removed.is_active is False
    assert removed.participant_count == 0
    assert item.id not in [i.id for i in ItemService.list_items(db_session, community.id)]
    # The creator's personal record survives.
    assert db_session.get(PersonalGoal, item.source_id) is not None


def test_remove_permissions(db_session, make_community, test_user, make_user, add_member) -> None:
    community = make_community(only_admins_can_add_items=False)
    creator, moderator = make_user(), make_user()
    add_member(community, creator)
    add_member(community, moderator, role=MemberRole.MODERATOR)
    item = ItemService.create_owned(db_session, community.id, creator.id, ItemType.HABIT, title="Floss")

    with pytest.raises(ForbiddenError):
        ItemService.remove(db_session, community.id, item.id, moderator.id)

    ItemService.remove(db_session, community.id, item.id, test_user.id)
    # Removing twice is a no-op.
    assert ItemService.remove(db_session, community.id, item.id, test_user.id).is_active is False


def test_list_items_orders_by_participants(
    db_session, community, test_user, make_user, add_member, make_item
) -> None:
    make_item(community, title="Quiet")
    busy = make_item(community, title="Busy")
    member = make_user()
    add_member(community, member)
    ProgressService.join_item(db_session, member.id, community.id, busy.id)

    titles = [item.title for item in ItemService.list_items(db_session, community.id)]

    assert titles == ["Busy", "Quiet"]
