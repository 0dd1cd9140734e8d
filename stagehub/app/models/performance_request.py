"""
models/performance_request.py — Invitation for a guest group to perform.

State machine:
  pending → accepted   (a LivePerformer row is written in the same transaction)
  pending → denied
accepted and denied are terminal. performance_request_service moves rows out
of pending with a guarded UPDATE so two concurrent replies cannot both win.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stagehub.app.extensions import db


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DENIED = "denied"


class PerformanceRequest(db.Model):
    __tablename__ = "performance_requests"

    __table_args__ = (
        UniqueConstraint(
            "live_id", "group_id", name="uq_performance_requests_live_group"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    live_id: Mapped[int] = mapped_column(
        ForeignKey("lives.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # The guest group being asked to perform.
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[RequestStatus] = mapped_column(
        Enum(
            RequestStatus,
            name="request_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=RequestStatus.PENDING,
        server_default=RequestStatus.PENDING.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    live: Mapped["Live"] = relationship(  # noqa: F821
        "Live",
        back_populates="performance_requests",
    )

    group: Mapped["Group"] = relationship("Group")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<PerformanceRequest id={self.id} "
            f"live_id={self.live_id} "
            f"group_id={self.group_id} "
            f"status={self.status}>"
        )
