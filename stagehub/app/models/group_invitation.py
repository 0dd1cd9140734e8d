"""
models/group_invitation.py — Single-use group invitation.

Lifecycle:
  created with invited=false, membership_id=NULL
  → redeemed once: invited=true, membership_id=<new membership>
  → immutable afterwards (no un-invite)

The CHECK keeps the two columns in lockstep so a half-redeemed row cannot
be written even by code that bypasses group_service.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, false, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stagehub.app.extensions import db


class GroupInvitation(db.Model):
    __tablename__ = "group_invitations"

    __table_args__ = (
        CheckConstraint(
            "(invited AND membership_id IS NOT NULL) "
            "OR (NOT invited AND membership_id IS NULL)",
            name="ck_group_invitations_redeemed_consistent",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    invited: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    # One invitation can produce at most one membership and vice versa.
    membership_id: Mapped[int | None] = mapped_column(
        ForeignKey("memberships.id", ondelete="RESTRICT"),
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="invitations",
    )

    membership: Mapped["Membership"] = relationship(  # noqa: F821
        "Membership",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<GroupInvitation id={self.id} "
            f"group_id={self.group_id} "
            f"invited={self.invited}>"
        )
