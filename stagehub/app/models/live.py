"""
models/live.py — Live event table definition.

No business logic. No imports from services or routes.

Key design points:
  - Only the style *kind* is stored here. The performers of a live are the
    rows in live_performers (accepted groups); pending and denied guests live
    in performance_requests.
  - `price` is a whole amount in the smallest currency unit. CHECK(price >= 0)
    is the last line of defence behind the schema and live_service.
  - host_group_id and author_id are ON DELETE RESTRICT — a group or user that
    has lives cannot be deleted. Child rows (performers, requests, tickets)
    cascade with the live.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stagehub.app.domain.live_style import StyleKind
from stagehub.app.extensions import db


class Live(db.Model):
    __tablename__ = "lives"

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_lives_price_nonnegative"),
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_lives_title_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    style: Mapped[StyleKind] = mapped_column(
        Enum(
            StyleKind,
            name="live_style",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    price: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    artwork_url: Mapped[str | None] = mapped_column(String(500))

    host_group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # The artist who created the live. Receives performance-request replies.
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    live_house: Mapped[str | None] = mapped_column(String(200))
    date: Mapped[dt.date | None] = mapped_column(Date)
    end_date: Mapped[dt.date | None] = mapped_column(Date)
    open_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    start_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    host_group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        foreign_keys=[host_group_id],
    )

    author: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[author_id],
    )

    performers: Mapped[list["LivePerformer"]] = relationship(  # noqa: F821
        "LivePerformer",
        back_populates="live",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="LivePerformer.id",
    )

    performance_requests: Mapped[list["PerformanceRequest"]] = relationship(  # noqa: F821
        "PerformanceRequest",
        back_populates="live",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    tickets: Mapped[list["Ticket"]] = relationship(  # noqa: F821
        "Ticket",
        back_populates="live",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Live id={self.id} "
            f"title={self.title!r} "
            f"style={self.style} "
            f"host_group_id={self.host_group_id}>"
        )
