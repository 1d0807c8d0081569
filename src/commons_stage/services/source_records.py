"""Adapter over personal goal and habit records.

The community engine never owns personal records. It reads progress
snapshots through a :class:`SourceRecordProvider`, and asks the provider to
create fresh zero-progress records when a member builds, copies or joins an
item. Copies made on join carry a link back to the community item until the
member leaves it.
:class:`SqlSourceRecordProvider` is the implementation backed by the
``personal_*`` tables.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from commons_stage.models import PersonalGoal, PersonalHabit
from commons_stage.models.enums import ItemType

__all__ = [
    "GoalSnapshot",
    "HabitSnapshot",
    "SourceRecordProvider",
    "SqlSourceRecordProvider",
    "StaticFields",
    "goal_progress",
    "habit_progress",
    "round_half_up",
]


@dataclass(frozen=True)
class GoalSnapshot:
    completed: bool
    subgoal_count: int
    completed_subgoal_count: int
    linked_habit_count: int


@dataclass(frozen=True)
class HabitSnapshot:
    current_streak: int
    longest_streak: int


@dataclass(frozen=True)
class StaticFields:
    """Fields copied when a record is cloned; progress is never copied."""

    title: str
    description: str
    category: str | None = None
    frequency: str | None = None


def round_half_up(value: float) -> int:
    """Round halves away from zero for non-negative values (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def goal_progress(snapshot: GoalSnapshot) -> int:
    """Return a goal's personal progress in ``[0, 100]``.

    A completed goal is 100. Otherwise the completed sub-goals are divided by
    every sub-unit (sub-goals plus linked habits, at least one).
    """
    if snapshot.completed:
        return 100
    total = max(1, snapshot.subgoal_count + snapshot.linked_habit_count)
    return min(100, round_half_up(snapshot.completed_subgoal_count / total * 100))


def habit_progress(snapshot: HabitSnapshot) -> int:
    """Return a habit's personal progress: current over longest streak."""
    denominator = max(1, snapshot.longest_streak)
    return min(100, round_half_up(max(0, snapshot.current_streak) / denominator * 100))


class SourceRecordProvider(Protocol):
    """Contract of the personal goal/habit service consumed by this engine."""

    def goal_snapshot(self, goal_id: int) -> GoalSnapshot | None: ...

    def habit_snapshot(self, habit_id: int) -> HabitSnapshot | None: ...

    def owner_of(self, item_type: ItemType, record_id: int) -> int | None: ...

    def static_fields(self, item_type: ItemType, record_id: int) -> StaticFields | None: ...

    def create_record(
        self,
        item_type: ItemType,
        owner_id: int,
        fields: StaticFields,
        community_id: int | None = None,
        community_item_id: int | None = None,
    ) -> int: ...

    def linked_copy(self, item_type: ItemType, owner_id: int, community_item_id: int) -> int | None: ...

    def delete_record(self, item_type: ItemType, record_id: int) -> None: ...

    def unlink_record(self, item_type: ItemType, record_id: int) -> None: ...


class SqlSourceRecordProvider:
    """Source record provider reading the personal tables in the same session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def goal_snapshot(self, goal_id: int) -> GoalSnapshot | None:
        goal = self.db.get(PersonalGoal, goal_id)
        if goal is None:
            return None
        return GoalSnapshot(
            completed=goal.completed,
            subgoal_count=len(goal.subgoals),
            completed_subgoal_count=sum(1 for sub in goal.subgoals if sub.completed),
            linked_habit_count=len(goal.habit_links),
        )

    def habit_snapshot(self, habit_id: int) -> HabitSnapshot | None:
        habit = self.db.get(PersonalHabit, habit_id)
        if habit is None:
            return None
        return HabitSnapshot(
            current_streak=habit.current_streak or 0,
            longest_streak=habit.longest_streak or 0,
        )

    def owner_of(self, item_type: ItemType, record_id: int) -> int | None:
        record = self._load(item_type, record_id)
        return record.user_id if record is not None else None

    def static_fields(self, item_type: ItemType, record_id: int) -> StaticFields | None:
        record = self._load(item_type, record_id)
        if record is None:
            return None
        if isinstance(record, PersonalGoal):
            return StaticFields(
                title=record.title,
                description=record.description or "",
                category=record.category,
            )
        return StaticFields(
            title=record.name,
            description=record.description or "",
            frequency=record.frequency,
        )

    def create_record(
        self,
        item_type: ItemType,
        owner_id: int,
        fields: StaticFields,
        community_id: int | None = None,
        community_item_id: int | None = None,
    ) -> int:
        """Insert a zero-progress record owned by ``owner_id`` and return its id.

        Passing ``community_item_id`` marks the record as the owner's copy of
        that community item.
        """
        record: PersonalGoal | PersonalHabit
        if item_type == ItemType.GOAL:
            record = PersonalGoal(
                user_id=owner_id,
                title=fields.title,
                description=fields.description,
                category=fields.category or "Other",
                completed=False,
            )
        else:
            record = PersonalHabit(
                user_id=owner_id,
                name=fields.title,
                description=fields.description,
                frequency=fields.frequency or "daily",
                current_streak=0,
                longest_streak=0,
            )
        record.community_id = community_id
        record.community_item_id = community_item_id
        self.db.add(record)
        self.db.flush()
        return record.id

    def linked_copy(self, item_type: ItemType, owner_id: int, community_item_id: int) -> int | None:
        """Return the id of ``owner_id``'s copy of a community item, if any."""
        model = self._model(item_type)
        return self.db.scalars(
            select(model.id)
            .where(model.user_id == owner_id, model.community_item_id == community_item_id)
            .order_by(model.id)
        ).first()

    def delete_record(self, item_type: ItemType, record_id: int) -> None:
        record = self._load(item_type, record_id)
        if record is not None:
            self.db.delete(record)
            self.db.flush()

    def unlink_record(self, item_type: ItemType, record_id: int) -> None:
        """Turn a linked copy into a plain personal record."""
        record = self._load(item_type, record_id)
        if record is not None:
            record.community_id = None
            record.community_item_id = None
            self.db.flush()

    @staticmethod
    def _model(item_type: ItemType) -> type[PersonalGoal] | type[PersonalHabit]:
        return PersonalGoal if item_type == ItemType.GOAL else PersonalHabit

    def _load(self, item_type: ItemType, record_id: int) -> PersonalGoal | PersonalHabit | None:
        return self.db.get(self._model(item_type), record_id)
