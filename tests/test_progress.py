# tests/test_progress.py
"""Tests for progress formulas and the progress read path."""

import pytest

from commons_stage.core.errors import ForbiddenError, InvalidRequestError, NotFoundError
from commons_stage.models import CommunityParticipation, PersonalHabit
from commons_stage.models.enums import ItemType, ParticipationStatus, ParticipationType
from commons_stage.services.items import ItemService
from commons_stage.services.progress import ProgressService, community_progress
from commons_stage.services.source_records import (
    GoalSnapshot,
    HabitSnapshot,
    goal_progress,
    habit_progress,
    round_half_up,
)


@pytest.fixture()
def community(make_community):
    """Community where any member may add goals and habits."""
    return make_community(only_admins_can_add_items=False)


def test_round_half_up_matches_half_away_from_zero() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(66.66) == 67
    assert round_half_up(33.33) == 33


def test_habit_progress_is_current_over_longest_streak() -> None:
    assert habit_progress(HabitSnapshot(current_streak=3, longest_streak=6)) == 50
    assert habit_progress(HabitSnapshot(current_streak=0, longest_streak=0)) == 0
    assert habit_progress(HabitSnapshot(current_streak=9, longest_streak=4)) == 100


def test_goal_progress_counts_subgoals_and_linked_habits() -> None:
    assert goal_progress(GoalSnapshot(True, 4, 0, 0)) == 100
    assert goal_progress(GoalSnapshot(False, 2, 1, 2)) == 25
    assert goal_progress(GoalSnapshot(False, 3, 2, 0)) == 67
    assert goal_progress(GoalSnapshot(False, 0, 0, 0)) == 0


def test_collaborative_progress_sums_and_caps() -> None:
    assert community_progress(True, [40, 70]) == 100
    assert community_progress(True, [20, 30]) == 50
    assert community_progress(True, []) == 0


def test_individual_progress_is_rounded_mean() -> None:
    assert community_progress(False, [40, 70]) == 55
    assert community_progress(False, [0, 0, 1]) == 0
    assert community_progress(False, []) == 0


def test_habit_item_progress_for_creator(db_session, community, test_user, make_habit) -> None:
    """A habit at streak 3 of 6 is 50; the group value catches up on the next read."""
    habit = make_habit(test_user, current_streak=3, longest_streak=6)
    item = ItemService.suggest(db_session, community.id, test_user.id, ItemType.HABIT, habit.id)

    progress = ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id)
    assert progress.personal == 50
    # Aggregated from the snapshot stored before this read.
    assert progress.community == 0

    again = ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id)
    assert again.personal == 50
    assert again.community == 50


def test_goal_item_progress_follows_source_record(db_session, community, test_user, make_goal) -> None:
    goal = make_goal(test_user, subgoals=(True, True, False, False))
    item = ItemService.suggest(db_session, community.id, test_user.id, ItemType.GOAL, goal.id)

    ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id)
    progress = ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id)

    assert progress.personal == 50
    assert progress.community == 50


def test_collaborative_goal_sums_contributions(
    db_session, community, test_user, make_user, add_member, make_item
) -> None:
    """Contributions of 40 and 70 cap at 100 instead of 110 or 55."""
    partner = make_user()
    add_member(community, partner)
    item = make_item(community, participation_type=ParticipationType.COLLABORATIVE)
    ProgressService.join_item(db_session, partner.id, community.id, item.id)

    ProgressService.record_contribution(db_session, test_user.id, community.id, item.id, 40)
    ProgressService.record_contribution(db_session, partner.id, community.id, item.id, 70)

    progress = ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id)
    assert progress.personal == 40
    assert progress.community == 100


def test_contribution_is_carried_forward(db_session, community, test_user, make_item) -> None:
    item = make_item(community, participation_type=ParticipationType.COLLABORATIVE)
    ProgressService.record_contribution(db_session, test_user.id, community.id, item.id, 30)

    for _ in range(2):
        progress = ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id)
        assert progress.personal == 30
        assert progress.community == 30


def test_contribution_rules(db_session, community, test_user, make_user, add_member, make_item) -> None:
    individual = make_item(community)
    with pytest.raises(InvalidRequestError):
        ProgressService.record_contribution(db_session, test_user.id, community.id, individual.id, 10)

    shared = make_item(community, participation_type=ParticipationType.COLLABORATIVE)
    outsider = make_user()
    add_member(community, outsider)
    with pytest.raises(ForbiddenError):
        ProgressService.record_contribution(db_session, outsider.id, community.id, shared.id, 10)

    community.allow_contributions = False
    db_session.commit()
    with pytest.raises(ForbiddenError):
        ProgressService.record_contribution(db_session, test_user.id, community.id, shared.id, 10)


def test_contribution_is_clamped(db_session, community, test_user, make_item) -> None:
    item = make_item(community, participation_type=ParticipationType.COLLABORATIVE)

    participation = ProgressService.record_contribution(db_session, test_user.id, community.id, item.id, 250)

    assert participation.progress_percent == 100


def test_reader_without_row_gets_left_snapshot(
    db_session, community, test_user, make_user, add_member, make_habit
) -> None:
    """Reading progress never joins the reader or moves the participant count."""
    habit = make_habit(test_user, current_streak=2, longest_streak=4)
    item = ItemService.suggest(db_session, community.id, test_user.id, ItemType.HABIT, habit.id)
    reader = make_user()
    add_member(community, reader)

    ProgressService.get_item_progress(db_session, reader.id, community.id, item.id)

    row = db_session.query(CommunityParticipation).filter_by(item_id=item.id, user_id=reader.id).one()
    assert row.status == ParticipationStatus.LEFT
    assert row.progress_percent == 50
    db_session.refresh(item)
    assert item.participant_count == 1


def test_progress_requires_visible_item_and_membership(
    db_session, community, test_user, make_user, make_item
) -> None:
    item = make_item(community)
    stranger = make_user()

    with pytest.raises(ForbiddenError):
        ProgressService.get_item_progress(db_session, stranger.id, community.id, item.id)
    with pytest.raises(NotFoundError):
        ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id + 999)


def test_progress_reads_live_streaks(db_session, community, test_user, make_habit) -> None:
    habit = make_habit(test_user, current_streak=1, longest_streak=4)
    item = ItemService.suggest(db_session, community.id, test_user.id, ItemType.HABIT, habit.id)

    assert ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id).personal == 25

    stored = db_session.get(PersonalHabit, habit.id)
    stored.current_streak = 4
    db_session.commit()

    assert ProgressService.get_item_progress(db_session, test_user.id, community.id, item.id).personal == 100


def test_joined_items_feed(db_session, community, test_user, make_item) -> None:
    first = make_item(community, title="First")
    second = make_item(community, item_type=ItemType.HABIT, title="Second")
    ItemService.remove(db_session, community.id, first.id, test_user.id)

    feed = ProgressService.list_my_joined_items(db_session, test_user.id)

    assert [row["item_id"] for row in feed] == [second.id]
    row = feed[0]
    assert row["community_name"] == community.name
    assert row["type"] == ItemType.HABIT
    assert row["participation_type"] == ParticipationType.INDIVIDUAL
    assert row["personal_percent"] == 0
