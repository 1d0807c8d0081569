"""personal copy links and community activity

Revision ID: 8e52d0c4a9b1
Revises: 3c1f9a2b7d40
Create Date: 2026-10-18 16:40:03.518209

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8e52d0c4a9b1"
down_revision: Union[str, Sequence[str], None] = "3c1f9a2b7d40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_LINKED_TABLES = ("personal_goal", "personal_habit")


def upgrade() -> None:
    """Link personal copies to community items and add the activity log."""
    for table in _LINKED_TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.add_column(sa.Column("community_id", sa.Integer(), nullable=True))
            batch_op.add_column(sa.Column("community_item_id", sa.Integer(), nullable=True))
            batch_op.create_foreign_key(f"fk_{table}_community_id", "community", ["community_id"], ["id"])
            batch_op.create_foreign_key(
                f"fk_{table}_community_item_id",
                "community_item",
                ["community_item_id"],
                ["id"],
            )
            batch_op.create_index(f"ix_{table}_community_item_id", ["community_item_id"])

    op.create_table(
        "community_activity",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("community_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=True),
        sa.Column(
            "type",
            sa.Enum("item_added", "item_joined", "item_left", name="activity_type", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["community_id"], ["community.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["community_item.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_community_activity_community_id", "community_activity", ["community_id"])
    op.create_index("ix_community_activity_created_at", "community_activity", ["created_at"])


def downgrade() -> None:
    """Drop the activity log and the personal copy links."""
    op.drop_table("community_activity")
    for table in _LINKED_TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.drop_index(f"ix_{table}_community_item_id")
            batch_op.drop_constraint(f"fk_{table}_community_item_id", type_="foreignkey")
            batch_op.drop_constraint(f"fk_{table}_community_id", type_="foreignkey")
            batch_op.drop_column("community_item_id")
            batch_op.drop_column("community_id")
