"""
models/ticket.py — Ticket ledger row.

Lifecycle: reserved → refunded (terminal). A refund never deletes the row;
reserving again after a refund inserts a new one, so the table is the
reservation history of (live, user).

At most one *reserved* ticket per (live, user). That rule is a partial unique
index rather than a table constraint, so refunded history rows never collide
with a fresh reservation. It is declared for both PostgreSQL and SQLite so the
test database enforces it too.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stagehub.app.extensions import db


class TicketStatus(str, enum.Enum):
    RESERVED = "reserved"
    REFUNDED = "refunded"


class Ticket(db.Model):
    __tablename__ = "tickets"

    __table_args__ = (
        Index(
            "uq_tickets_live_user_reserved",
            "live_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'reserved'"),
            sqlite_where=text("status = 'reserved'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    live_id: Mapped[int] = mapped_column(
        ForeignKey("lives.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ON DELETE RESTRICT — cannot delete a user who holds tickets.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[TicketStatus] = mapped_column(
        Enum(
            TicketStatus,
            name="ticket_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=TicketStatus.RESERVED,
        server_default=TicketStatus.RESERVED.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    live: Mapped["Live"] = relationship(  # noqa: F821
        "Live",
        back_populates="tickets",
    )

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="tickets",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Ticket id={self.id} "
            f"live_id={self.live_id} "
            f"user_id={self.user_id} "
            f"status={self.status}>"
        )
