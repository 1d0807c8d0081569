"""Personal goal and habit records backing community items.

These tables belong to the personal tracking side of the product. The
community engine reads their progress fields, creates fresh zero-progress
records when an item is created or copied, and keeps a linked private copy
for each member who joins an item.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commons_stage.db.session import Base
from commons_stage.db.time import utcnow


class PersonalGoal(Base):
    """A user's own goal; sub-goals and linked habits count toward progress."""

    __tablename__ = "personal_goal"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(Text, nullable=False, default="Other")
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Set while the goal is a copy of a joined community item.
    community_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("community.id"), nullable=True)
    community_item_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("community_item.id"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    subgoals: Mapped[list[PersonalSubGoal]] = relationship(
        "PersonalSubGoal",
        back_populates="goal",
        cascade="all, delete-orphan",
    )
    habit_links: Mapped[list[PersonalGoalHabitLink]] = relationship(
        "PersonalGoalHabitLink",
        back_populates="goal",
        cascade="all, delete-orphan",
    )


class PersonalSubGoal(Base):
    """A checklist step inside a personal goal."""

    __tablename__ = "personal_subgoal"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    goal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("personal_goal.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    goal: Mapped[PersonalGoal] = relationship("PersonalGoal", back_populates="subgoals")


class PersonalGoalHabitLink(Base):
    """A habit attached to a goal as one of its sub-units."""

    __tablename__ = "personal_goal_habit_link"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    goal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("personal_goal.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    habit_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("personal_habit.id"),
        nullable=False,
    )

    goal: Mapped[PersonalGoal] = relationship("PersonalGoal", back_populates="habit_links")


class PersonalHabit(Base):
    """A user's own recurring habit with streak counters."""

    __tablename__ = "personal_habit"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    frequency: Mapped[str] = mapped_column(Text, nullable=False, default="daily")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    community_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("community.id"), nullable=True)
    community_item_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("community_item.id"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
