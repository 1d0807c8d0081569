"""initial community schema

Revision ID: 3c1f9a2b7d40
Revises:
Create Date: 2026-10-18 09:12:44.201533

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1f9a2b7d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=16)


def upgrade() -> None:
    """Create users, personal records and the community tables."""
    op.create_table(
        "app_user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "personal_goal",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personal_goal_user_id", "personal_goal", ["user_id"])

    op.create_table(
        "personal_habit",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("frequency", sa.Text(), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False),
        sa.Column("longest_streak", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personal_habit_user_id", "personal_habit", ["user_id"])

    op.create_table(
        "personal_subgoal",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("goal_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["goal_id"], ["personal_goal.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personal_subgoal_goal_id", "personal_subgoal", ["goal_id"])

    op.create_table(
        "personal_goal_habit_link",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("goal_id", sa.Integer(), nullable=False),
        sa.Column("habit_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["goal_id"], ["personal_goal.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["habit_id"], ["personal_habit.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personal_goal_habit_link_goal_id", "personal_goal_habit_link", ["goal_id"])

    op.create_table(
        "community",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=False),
        sa.Column("banner_url", sa.Text(), nullable=False),
        sa.Column(
            "visibility",
            _enum("community_visibility", "public", "private", "invite-only"),
            nullable=False,
        ),
        sa.Column("interests", sa.JSON(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("membership_approval_required", sa.Boolean(), nullable=False),
        sa.Column("only_admins_can_add_items", sa.Boolean(), nullable=False),
        sa.Column("only_admins_can_add_goals", sa.Boolean(), nullable=False),
        sa.Column("only_admins_can_add_habits", sa.Boolean(), nullable=False),
        sa.Column("only_admins_can_change_images", sa.Boolean(), nullable=False),
        sa.Column("only_admins_can_add_members", sa.Boolean(), nullable=False),
        sa.Column("only_admins_can_remove_members", sa.Boolean(), nullable=False),
        sa.Column("allow_contributions", sa.Boolean(), nullable=False),
        sa.Column("member_limit", sa.Integer(), nullable=False),
        sa.Column("member_count", sa.Integer(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("weekly_activity_count", sa.Integer(), nullable=False),
        sa.Column("completion_rate", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("member_limit > 0 AND member_limit <= 100", name="ck_community_member_limit"),
        sa.CheckConstraint("member_count >= 0", name="ck_community_member_count"),
        sa.ForeignKeyConstraint(["owner_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_community_name", "community", ["name"])
    op.create_index("ix_community_visibility", "community", ["visibility"])
    op.create_index("ix_community_owner_id", "community", ["owner_id"])
    op.create_index("ix_community_member_count", "community", ["member_count"])
    op.create_index("ix_community_is_active", "community", ["is_active"])

    op.create_table(
        "community_member",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("community_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role", _enum("member_role", "admin", "moderator", "member"), nullable=False),
        sa.Column(
            "status",
            _enum("membership_status", "active", "pending", "rejected", "removed"),
            nullable=False,
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["community_id"], ["community.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("community_id", "user_id", name="uq_community_member"),
    )
    op.create_index("ix_community_member_community_id", "community_member", ["community_id"])
    op.create_index("ix_community_member_user_id", "community_member", ["user_id"])
    op.create_index("ix_community_member_status", "community_member", ["status"])

    op.create_table(
        "community_item",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("community_id", sa.Integer(), nullable=False),
        sa.Column("type", _enum("item_type", "goal", "habit"), nullable=False),
        sa.Column(
            "participation_type",
            _enum("participation_type", "individual", "collaborative"),
            nullable=False,
        ),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("status", _enum("item_status", "pending", "approved", "rejected"), nullable=False),
        sa.Column("approver_id", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("participant_count", sa.Integer(), nullable=False),
        sa.Column("total_completions", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("participant_count >= 0", name="ck_item_participant_count"),
        sa.ForeignKeyConstraint(["community_id"], ["community.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["app_user.id"]),
        sa.ForeignKeyConstraint(["approver_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_community_item_community_id", "community_item", ["community_id"])
    op.create_index("ix_community_item_created_by", "community_item", ["created_by"])
    op.create_index("ix_community_item_status", "community_item", ["status"])
    op.create_index("ix_community_item_is_active", "community_item", ["is_active"])

    op.create_table(
        "community_participation",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("community_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", _enum("item_type", "goal", "habit"), nullable=False),
        sa.Column("status", _enum("participation_status", "joined", "left"), nullable=False),
        sa.Column("progress_percent", sa.Integer(), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "progress_percent >= 0 AND progress_percent <= 100",
            name="ck_participation_progress",
        ),
        sa.ForeignKeyConstraint(["community_id"], ["community.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["community_item.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("community_id", "item_id", "user_id", name="uq_participation"),
    )
    op.create_index("ix_community_participation_community_id", "community_participation", ["community_id"])
    op.create_index("ix_community_participation_item_id", "community_participation", ["item_id"])
    op.create_index("ix_community_participation_user_id", "community_participation", ["user_id"])
    op.create_index("ix_community_participation_status", "community_participation", ["status"])

    op.create_table(
        "community_announcement",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("community_id", sa.Integer(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("body", sa.String(length=2000), nullable=False),
        sa.Column("is_pinned", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["community_id"], ["community.id"]),
        sa.ForeignKeyConstraint(["author_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_community_announcement_community_id", "community_announcement", ["community_id"])
    op.create_index("ix_community_announcement_author_id", "community_announcement", ["author_id"])
    op.create_index("ix_community_announcement_is_pinned", "community_announcement", ["is_pinned"])
    op.create_index("ix_community_announcement_is_active", "community_announcement", ["is_active"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    for table in (
        "community_announcement",
        "community_participation",
        "community_item",
        "community_member",
        "community",
        "personal_goal_habit_link",
        "personal_subgoal",
        "personal_habit",
        "personal_goal",
        "app_user",
    ):
        op.drop_table(table)
