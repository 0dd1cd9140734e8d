"""
services/performance_request_service.py — Guest performer accept/deny.

State machine: pending → accepted | denied. Both outcomes are terminal.

Concurrency:
  The transition is a compare-and-set:
      UPDATE performance_requests SET status = :new
      WHERE id = :id AND status = 'pending'
  Zero affected rows means another reply committed first, reported as
  REQUEST_ALREADY_RESOLVED. Accept writes the LivePerformer row in the same
  transaction, so a request is never accepted without its performer row.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the caller's responsibility (UnitOfWork) — only flush here.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from stagehub.app.domain.events import GroupRef, PerformanceRequestReplied
from stagehub.app.errors import AppError, ErrorCode, conflict, forbidden, not_found
from stagehub.app.models.live import Live
from stagehub.app.models.live_performer import LivePerformer
from stagehub.app.models.membership import Membership
from stagehub.app.models.performance_request import PerformanceRequest, RequestStatus
from stagehub.app.models.user import User
from stagehub.app.services import group_service
from stagehub.app.services.pagination import paginate

ACCEPT = "accept"
DENY = "deny"


# ── Private helpers ────────────────────────────────────────────────────────

def _get_request_or_404(request_id: int, session: Session) -> PerformanceRequest:
    """Returns the PerformanceRequest or raises REQUEST_NOT_FOUND (404)."""
    request = session.get(PerformanceRequest, request_id)
    if request is None:
        raise not_found(ErrorCode.REQUEST_NOT_FOUND, "Performance request", request_id)
    return request


def _already_resolved(request_id: int) -> AppError:
    return conflict(
        ErrorCode.REQUEST_ALREADY_RESOLVED,
        f"Performance request {request_id} has already been answered.",
    )


def _led_requests_stmt(user_id: int):
    """Requests addressed to any group user_id leads."""
    return (
        select(PerformanceRequest)
        .join(Membership, Membership.group_id == PerformanceRequest.group_id)
        .where(
            Membership.user_id == user_id,
            Membership.is_leader.is_(True),
        )
    )


def build_request_dict(request: PerformanceRequest) -> dict:
    live: Live = request.live
    return {
        "id": request.id,
        "status": request.status.value,
        "live": {
            "id": live.id,
            "title": live.title,
            "host_group": group_service.build_group_dict(live.host_group),
        },
        "group": group_service.build_group_dict(request.group),
        "created_at": request.created_at.isoformat() if request.created_at else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def reply(
        request_id: int,
        decision: str,
        user_id: int,
        session: Session,
) -> tuple[dict, list]:
    """
    Accepts or denies a pending performance request on behalf of the
    requested group's leader.

    Args:
        decision: "accept" or "deny" (validated by ReplyRequestSchema).

    Raises:
      AppError(FAN_CANNOT_BE_PERFORMER, 403)
      AppError(REQUEST_NOT_FOUND, 404)
      AppError(NOT_MEMBER_OF_GROUP, 403)
      AppError(ONLY_LEADER_CAN_ACCEPT, 403)
      AppError(REQUEST_ALREADY_RESOLVED, 409)

    Returns:
        (request_dict, [PerformanceRequestReplied])
    """
    user = session.get(User, user_id)
    if user is None:
        raise not_found(ErrorCode.USER_NOT_FOUND, "User", user_id)
    if not user.is_artist:
        raise forbidden(
            ErrorCode.FAN_CANNOT_BE_PERFORMER,
            "Fans cannot answer performance requests.",
        )

    request = _get_request_or_404(request_id, session)

    if not group_service.is_leader(request.group_id, user_id, session):
        raise forbidden(
            ErrorCode.ONLY_LEADER_CAN_ACCEPT,
            "Only the group leader may answer a performance request.",
        )

    if request.status != RequestStatus.PENDING:
        raise _already_resolved(request_id)

    accepted = decision == ACCEPT
    new_status = RequestStatus.ACCEPTED if accepted else RequestStatus.DENIED

    result = session.execute(
        update(PerformanceRequest)
        .where(
            PerformanceRequest.id == request_id,
            PerformanceRequest.status == RequestStatus.PENDING,
        )
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise _already_resolved(request_id)

    session.refresh(request)

    if accepted:
        session.add(LivePerformer(live_id=request.live_id, group_id=request.group_id))
        session.flush()

    live: Live = request.live
    event = PerformanceRequestReplied(
        request_id=request.id,
        live_id=live.id,
        live_title=live.title,
        group=GroupRef(request.group.id, request.group.name),
        author_id=live.author_id,
        accepted=accepted,
    )
    return build_request_dict(request), [event]


def list_requests(user_id: int, page: int, per: int, session: Session) -> dict:
    """Performance requests for every group user_id leads, newest first."""
    stmt = _led_requests_stmt(user_id).order_by(PerformanceRequest.id.desc())
    return paginate(stmt, page, per, session, render=build_request_dict)


def pending_request_count(user_id: int, session: Session) -> int:
    """Number of pending requests across every group user_id leads."""
    stmt = _led_requests_stmt(user_id).where(
        PerformanceRequest.status == RequestStatus.PENDING
    )
    return session.execute(
        select(func.count()).select_from(stmt.subquery())
    ).scalar_one()
