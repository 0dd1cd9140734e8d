"""
models/live_performer.py — Accepted performer of a live.

A row exists only for a group that is actually performing: the host (written
at creation) or a guest whose performance request was accepted. Never updated.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stagehub.app.extensions import db


class LivePerformer(db.Model):
    __tablename__ = "live_performers"

    __table_args__ = (
        UniqueConstraint("live_id", "group_id", name="uq_live_performers_live_group"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    live_id: Mapped[int] = mapped_column(
        ForeignKey("lives.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    live: Mapped["Live"] = relationship(  # noqa: F821
        "Live",
        back_populates="performers",
    )

    group: Mapped["Group"] = relationship("Group")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return f"<LivePerformer live_id={self.live_id} group_id={self.group_id}>"
