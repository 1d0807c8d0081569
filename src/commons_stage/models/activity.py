"""Community activity log."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from commons_stage.db.session import Base
from commons_stage.db.time import utcnow
from commons_stage.models.enums import ActivityType, enum_column


class CommunityActivity(Base):
    """One line of a community's recent activity.

    Rows are append-only. ``title`` is the item title at the time of the
    event so the log still reads correctly after the item is removed.
    """

    __tablename__ = "community_activity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_user.id"), nullable=False)
    item_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("community_item.id"),
        nullable=True,
    )
    type: Mapped[ActivityType] = mapped_column(
        enum_column(ActivityType, "activity_type"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
    )
