"""
services/live_service.py — Live creation, editing and lookup.

Performer assignment on create (one transaction):
  - declared performer == host group → LivePerformer row (auto-accepted)
  - any other declared performer     → PerformanceRequest(pending)
The host is only a performer if it is declared. A oneman live always declares
the host, so it always has exactly one LivePerformer.

Input invariants, checked before any write and independent of stored state:
  INVALID_PRICE                 — price < 0 or price > INTEGER_MAX
  ONEMAN_PERFORMER_MUST_BE_HOST — oneman performer differs from the host
  DUPLICATE_PERFORMER           — a non-host group declared more than once
Repeated host ids in a battle/festival collapse to a single LivePerformer.

Edits touch descriptive fields only (EDITABLE_FIELDS). Style, host,
performers and price are fixed at creation.

Reads (get_live, list_group_lives) are caller-aware: they report whether the
caller holds a reserved ticket.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the caller's responsibility (UnitOfWork) — only flush here.
  - Mutations return (live_dict, events); events are dispatched after commit.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from stagehub.app.domain.events import GroupRef, LiveCreated
from stagehub.app.domain.live_style import (
    LiveStyle,
    Oneman,
    StyleKind,
    build_style,
    kind_of,
    map_performers,
    performers_of,
    style_to_dict,
)
from stagehub.app.errors import ErrorCode, forbidden, invalid_input, not_found
from stagehub.app.models import INTEGER_MAX
from stagehub.app.models.group import Group
from stagehub.app.models.live import Live
from stagehub.app.models.live_performer import LivePerformer
from stagehub.app.models.performance_request import PerformanceRequest, RequestStatus
from stagehub.app.models.user import User
from stagehub.app.services import group_service, ticket_service
from stagehub.app.services.pagination import paginate

EDITABLE_FIELDS = (
    "title",
    "artwork_url",
    "live_house",
    "date",
    "end_date",
    "open_at",
    "start_at",
)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_live_or_404(live_id: int, session: Session) -> Live:
    """Returns the Live or raises LIVE_NOT_FOUND (404)."""
    live = session.get(Live, live_id)
    if live is None:
        raise not_found(ErrorCode.LIVE_NOT_FOUND, "Live", live_id)
    return live


def _get_artist_or_403(user_id: int, code: str, message: str, session: Session) -> User:
    """Returns the User if it is an artist; raises `code` (403) for fans."""
    user = session.get(User, user_id)
    if user is None:
        raise not_found(ErrorCode.USER_NOT_FOUND, "User", user_id)
    if not user.is_artist:
        raise forbidden(code, message)
    return user


def _validate_live_input(
        host_group_id: int,
        style: LiveStyle[int],
        price: int,
) -> list[int]:
    """
    Checks the storage-independent invariants of a new live.

    Returns the non-host performer ids in declaration order.
    """
    if not 0 <= price <= INTEGER_MAX:
        raise invalid_input(
            ErrorCode.INVALID_PRICE,
            f"Price must be between 0 and {INTEGER_MAX}.",
            field="price",
        )

    if isinstance(style, Oneman) and style.performer != host_group_id:
        raise invalid_input(
            ErrorCode.ONEMAN_PERFORMER_MUST_BE_HOST,
            "A oneman live must be performed by its host group.",
            field="style",
        )

    guests: list[int] = []
    for performer_id in performers_of(style):
        if performer_id == host_group_id:
            continue
        if performer_id in guests:
            raise invalid_input(
                ErrorCode.DUPLICATE_PERFORMER,
                f"Group {performer_id} is declared more than once.",
                field="style",
            )
        guests.append(performer_id)
    return guests


def _load_groups(group_ids: list[int], session: Session) -> dict[int, Group]:
    """Loads groups by id; raises GROUP_NOT_FOUND (404) for the first missing id."""
    if not group_ids:
        return {}
    groups = session.execute(
        select(Group).where(Group.id.in_(group_ids))
    ).scalars().all()
    by_id = {group.id: group for group in groups}
    for group_id in group_ids:
        if group_id not in by_id:
            raise not_found(ErrorCode.GROUP_NOT_FOUND, "Group", group_id)
    return by_id


def resolve_style(live: Live, session: Session) -> LiveStyle[Group]:
    """
    Rebuilds the style of a stored live with Group rows as performers.

    Performers are the accepted ones (live_performers). A oneman live always
    resolves to its host group.
    """
    if live.style == StyleKind.ONEMAN:
        return build_style(live.style, [live.host_group])

    performers = session.execute(
        select(Group)
        .join(LivePerformer, LivePerformer.group_id == Group.id)
        .where(LivePerformer.live_id == live.id)
        .order_by(LivePerformer.id.asc())
    ).scalars().all()
    return build_style(live.style, list(performers))


def build_live_dict(live: Live, session: Session) -> dict:
    """Serialises a Live with its resolved style and host group."""
    return {
        "id": live.id,
        "title": live.title,
        "style": style_to_dict(
            map_performers(resolve_style(live, session), group_service.build_group_dict)
        ),
        "price": live.price,
        "artwork_url": live.artwork_url,
        "host_group": group_service.build_group_dict(live.host_group),
        "author_id": live.author_id,
        "live_house": live.live_house,
        "date": live.date.isoformat() if live.date else None,
        "end_date": live.end_date.isoformat() if live.end_date else None,
        "open_at": live.open_at.isoformat() if live.open_at else None,
        "start_at": live.start_at.isoformat() if live.start_at else None,
        "created_at": live.created_at.isoformat() if live.created_at else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def create_live(data: dict, author_id: int, session: Session) -> tuple[dict, list]:
    """
    Creates a live, its host performer row and the pending requests for
    every guest performer.

    Args:
        data:      Validated dict from CreateLiveSchema. Keys: title,
                   style (LiveStyle[int]), price, host_group_id, and the
                   optional descriptive fields.
        author_id: The authenticated user (flask.g.user_id).

    Raises:
      AppError(FAN_CANNOT_CREATE_LIVE, 403)
      AppError(GROUP_NOT_FOUND, 404)         — host or any declared performer
      AppError(NOT_MEMBER_OF_GROUP, 403)     — author not in the host group
      AppError(INVALID_PRICE | ONEMAN_PERFORMER_MUST_BE_HOST |
               DUPLICATE_PERFORMER, 400)

    Returns:
        (live_dict, [LiveCreated])
    """
    _get_artist_or_403(
        author_id,
        ErrorCode.FAN_CANNOT_CREATE_LIVE,
        "Fans cannot create lives.",
        session,
    )

    host_group_id: int = data["host_group_id"]
    style: LiveStyle[int] = data["style"]

    host = session.get(Group, host_group_id)
    if host is None:
        raise not_found(ErrorCode.GROUP_NOT_FOUND, "Group", host_group_id)

    group_service.require_member(host_group_id, author_id, session)

    guest_ids = _validate_live_input(host_group_id, style, data["price"])
    guests = _load_groups(guest_ids, session)

    live = Live(
        title=data["title"],
        style=kind_of(style),
        price=data["price"],
        host_group_id=host_group_id,
        author_id=author_id,
        **{field: data.get(field) for field in EDITABLE_FIELDS if field != "title"},
    )
    session.add(live)
    session.flush()  # populate live.id before the child rows

    if host_group_id in performers_of(style):
        session.add(LivePerformer(live_id=live.id, group_id=host_group_id))

    for guest_id in guest_ids:
        session.add(
            PerformanceRequest(
                live_id=live.id,
                group_id=guest_id,
                status=RequestStatus.PENDING,
            )
        )
    session.flush()

    event = LiveCreated(
        live_id=live.id,
        title=live.title,
        host_group=GroupRef(host.id, host.name),
        guest_performers=tuple(
            GroupRef(guest_id, guests[guest_id].name) for guest_id in guest_ids
        ),
    )
    return build_live_dict(live, session), [event]


def edit_live(live_id: int, data: dict, author_id: int, session: Session) -> dict:
    """
    Updates the descriptive fields of a live.

    Only keys present in `data` are written. Keys outside EDITABLE_FIELDS are
    ignored (EditLiveSchema rejects them before they get here).

    Raises:
      AppError(FAN_CANNOT_EDIT_LIVE, 403)
      AppError(LIVE_NOT_FOUND, 404)
      AppError(NOT_MEMBER_OF_GROUP, 403) — editor not in the live's host group
    """
    _get_artist_or_403(
        author_id,
        ErrorCode.FAN_CANNOT_EDIT_LIVE,
        "Fans cannot edit lives.",
        session,
    )

    live = _get_live_or_404(live_id, session)
    group_service.require_member(live.host_group_id, author_id, session)

    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(live, field, data[field])
    session.flush()

    return build_live_dict(live, session)


def get_live(live_id: int, user_id: int, session: Session) -> dict:
    """
    Live detail as seen by user_id.

    Adds to the live dict:
      participants : number of reserved tickets
      ticket       : user_id's reserved ticket, or None
      has_ticket   : ticket is not None

    Raises:
      AppError(LIVE_NOT_FOUND, 404)
    """
    live = _get_live_or_404(live_id, session)
    ticket = ticket_service.reserved_ticket_for(live.id, user_id, session)

    data = build_live_dict(live, session)
    data["participants"] = ticket_service.participant_count(live.id, session)
    data["ticket"] = ticket
    data["has_ticket"] = ticket is not None
    return data


def list_group_lives(
        group_id: int,
        user_id: int,
        page: int,
        per: int,
        session: Session,
) -> dict:
    """
    Lives group_id performs at (accepted performers only), latest date first.
    Lives without a date come last. Each item carries has_ticket for user_id.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
    """
    if session.get(Group, group_id) is None:
        raise not_found(ErrorCode.GROUP_NOT_FOUND, "Group", group_id)

    stmt = (
        select(Live)
        .join(LivePerformer, LivePerformer.live_id == Live.id)
        .where(LivePerformer.group_id == group_id)
        .order_by(Live.date.is_(None), Live.date.desc(), Live.id.desc())
    )

    def render(live: Live) -> dict:
        data = build_live_dict(live, session)
        data["has_ticket"] = ticket_service.has_reserved_ticket(live.id, user_id, session)
        return data

    return paginate(stmt, page, per, session, render=render)
