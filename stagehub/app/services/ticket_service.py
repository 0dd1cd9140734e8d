"""
services/ticket_service.py — Ticket reservation, refund and participants.

Ledger rules:
  - At most one reserved ticket per (live, user) at any instant.
  - Refund flips reserved → refunded on the existing row. Reserving again
    afterwards inserts a new row; refunded rows stay as history.

The pre-insert lookup gives a friendly error in the common case. The actual
guarantee is the partial unique index uq_tickets_live_user_reserved: when two
reservations race past the lookup, the second INSERT fails and is reported as
TICKET_ALREADY_RESERVED. No savepoint is needed because UnitOfWork rolls the
whole transaction back on the raised AppError.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the caller's responsibility (UnitOfWork) — only flush here.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stagehub.app.errors import AppError, ErrorCode, conflict, not_found
from stagehub.app.models.live import Live
from stagehub.app.models.ticket import Ticket, TicketStatus
from stagehub.app.models.user import User
from stagehub.app.services.pagination import paginate


# ── Private helpers ────────────────────────────────────────────────────────

def _get_live_or_404(live_id: int, session: Session) -> Live:
    """Returns the Live or raises LIVE_NOT_FOUND (404)."""
    live = session.get(Live, live_id)
    if live is None:
        raise not_found(ErrorCode.LIVE_NOT_FOUND, "Live", live_id)
    return live


def _find_reserved_ticket(live_id: int, user_id: int, session: Session) -> Ticket | None:
    return session.execute(
        select(Ticket).where(
            Ticket.live_id == live_id,
            Ticket.user_id == user_id,
            Ticket.status == TicketStatus.RESERVED,
        )
    ).scalar_one_or_none()


def _already_reserved(live_id: int) -> AppError:
    return conflict(
        ErrorCode.TICKET_ALREADY_RESERVED,
        f"You already hold a reserved ticket for live {live_id}.",
        field="live_id",
    )


def _build_ticket_dict(ticket: Ticket) -> dict:
    return {
        "id": ticket.id,
        "status": ticket.status.value,
        "user_id": ticket.user_id,
        "live": {
            "id": ticket.live.id,
            "title": ticket.live.title,
            "date": ticket.live.date.isoformat() if ticket.live.date else None,
        },
        "created_at": ticket.created_at.isoformat() if ticket.created_at else None,
    }


def _build_participant_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "name": user.name,
        "role": user.role.value,
    }


# ── Ledger lookups used by live views ──────────────────────────────────────

def participant_count(live_id: int, session: Session) -> int:
    """Number of reserved tickets for live_id."""
    return session.execute(
        select(func.count())
        .select_from(Ticket)
        .where(
            Ticket.live_id == live_id,
            Ticket.status == TicketStatus.RESERVED,
        )
    ).scalar_one()


def reserved_ticket_for(live_id: int, user_id: int, session: Session) -> dict | None:
    """The reserved ticket user_id holds for live_id, serialised, or None."""
    ticket = _find_reserved_ticket(live_id, user_id, session)
    return _build_ticket_dict(ticket) if ticket is not None else None


def has_reserved_ticket(live_id: int, user_id: int, session: Session) -> bool:
    return session.execute(
        select(Ticket.id).where(
            Ticket.live_id == live_id,
            Ticket.user_id == user_id,
            Ticket.status == TicketStatus.RESERVED,
        )
    ).first() is not None


# ── Public service functions ───────────────────────────────────────────────

def reserve(live_id: int, user_id: int, session: Session) -> dict:
    """
    Reserves a ticket for user_id.

    Raises:
      AppError(LIVE_NOT_FOUND, 404)
      AppError(TICKET_ALREADY_RESERVED, 409)
    """
    _get_live_or_404(live_id, session)

    if _find_reserved_ticket(live_id, user_id, session) is not None:
        raise _already_reserved(live_id)

    ticket = Ticket(live_id=live_id, user_id=user_id, status=TicketStatus.RESERVED)
    session.add(ticket)
    try:
        session.flush()
    except IntegrityError:
        raise _already_reserved(live_id) from None

    return _build_ticket_dict(ticket)


def refund(ticket_id: int, user_id: int, session: Session) -> dict:
    """
    Refunds a reserved ticket owned by user_id.

    Raises:
      AppError(TICKET_NOT_FOUND, 404)
      AppError(TICKET_PERMISSION_ERROR, 403) — ticket belongs to someone else
      AppError(TICKET_ALREADY_REFUNDED, 409)
    """
    ticket = session.get(Ticket, ticket_id)
    if ticket is None:
        raise not_found(ErrorCode.TICKET_NOT_FOUND, "Ticket", ticket_id)

    if ticket.user_id != user_id:
        raise AppError(
            ErrorCode.TICKET_PERMISSION_ERROR,
            "You can only refund your own tickets.",
            403,
        )

    if ticket.status == TicketStatus.REFUNDED:
        raise conflict(
            ErrorCode.TICKET_ALREADY_REFUNDED,
            f"Ticket {ticket_id} has already been refunded.",
        )

    ticket.status = TicketStatus.REFUNDED
    session.flush()

    return _build_ticket_dict(ticket)


def participants(live_id: int, page: int, per: int, session: Session) -> dict:
    """
    Users holding a reserved ticket for live_id, most recent reservation first.

    Raises:
      AppError(LIVE_NOT_FOUND, 404)
    """
    _get_live_or_404(live_id, session)

    stmt = (
        select(User)
        .join(Ticket, Ticket.user_id == User.id)
        .where(
            Ticket.live_id == live_id,
            Ticket.status == TicketStatus.RESERVED,
        )
        .order_by(Ticket.id.desc())
    )
    return paginate(stmt, page, per, session, render=_build_participant_dict)


def list_my_tickets(user_id: int, page: int, per: int, session: Session) -> dict:
    """Every ticket user_id has held, refunded ones included, newest first."""
    stmt = (
        select(Ticket)
        .where(Ticket.user_id == user_id)
        .order_by(Ticket.id.desc())
    )
    return paginate(stmt, page, per, session, render=_build_ticket_dict)
