"""
models/group_follower.py — Follower graph (user follows group).

Read by the notification dispatcher to find who hears about a group's lives.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stagehub.app.extensions import db


class GroupFollower(db.Model):
    __tablename__ = "group_followers"

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_followers_group_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<GroupFollower group_id={self.group_id} user_id={self.user_id}>"
