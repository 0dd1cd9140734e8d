"""
routes/lives.py — Live, performance-request and ticket route handlers.

Layer rules:
  - Parse, validate, call ONE service inside a UnitOfWork, return envelope.
  - Services that emit domain events return (result, events); the route
    hands the events to the UnitOfWork, which dispatches them after commit.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/lives):
  POST   /lives                          → 201  create live
  POST   /lives/edit/:id                 → 200  edit descriptive fields
  GET    /lives/:id                      → 200  live detail (+ participants, my ticket)
  POST   /lives/reply                    → 200  accept/deny performance request
  GET    /lives/requests                 → 200  requests for groups I lead (page)
  GET    /lives/pending_request_count    → 200  {"count": n}
  POST   /lives/reserve                  → 201  reserve ticket
  POST   /lives/refund                   → 200  refund ticket
  GET    /lives/:id/participants         → 200  reserved ticket holders (page)
  GET    /lives/my_tickets               → 200  caller's tickets (page)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from stagehub.app.extensions import db, get_notification_dispatcher
from stagehub.app.middleware.auth_middleware import require_auth
from stagehub.app.routes.paging import page_args
from stagehub.app.schemas.live_schema import (
    CreateLiveSchema,
    EditLiveSchema,
    RefundTicketSchema,
    ReplyRequestSchema,
    ReserveTicketSchema,
)
from stagehub.app.services import (
    live_service,
    performance_request_service,
    ticket_service,
)
from stagehub.app.unit_of_work import UnitOfWork

lives_bp = Blueprint("lives", __name__)


# ── Lives ──────────────────────────────────────────────────────────────────

@lives_bp.route("/", methods=["POST"])
@require_auth
def create_live():
    """POST /lives — Create a live. Guests get pending performance requests."""
    data = CreateLiveSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session, get_notification_dispatcher()) as uow:
        result, events = live_service.create_live(
            data=data,
            author_id=g.user_id,
            session=uow.session,
        )
        uow.emit(events)
    return jsonify({"data": result, "warnings": []}), 201


@lives_bp.route("/edit/<int(max=2147483647):live_id>", methods=["POST"])
@require_auth
def edit_live(live_id: int):
    """POST /lives/edit/:id — Update descriptive fields only."""
    data = EditLiveSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session) as uow:
        result = live_service.edit_live(
            live_id=live_id,
            data=data,
            author_id=g.user_id,
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 200


@lives_bp.route("/<int(max=2147483647):live_id>", methods=["GET"])
@require_auth
def get_live(live_id: int):
    """GET /lives/:id — Live detail: performers, participant count, my ticket."""
    result = live_service.get_live(
        live_id=live_id,
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


# ── Performance requests ───────────────────────────────────────────────────

@lives_bp.route("/reply", methods=["POST"])
@require_auth
def reply():
    """POST /lives/reply — Accept or deny a pending performance request."""
    data = ReplyRequestSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session, get_notification_dispatcher()) as uow:
        result, events = performance_request_service.reply(
            request_id=data["request_id"],
            decision=data["reply"],
            user_id=g.user_id,
            session=uow.session,
        )
        uow.emit(events)
    return jsonify({"data": result, "warnings": []}), 200


@lives_bp.route("/requests", methods=["GET"])
@require_auth
def list_requests():
    """GET /lives/requests — Requests addressed to groups the caller leads."""
    page, per = page_args()
    result = performance_request_service.list_requests(
        user_id=g.user_id,
        page=page,
        per=per,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@lives_bp.route("/pending_request_count", methods=["GET"])
@require_auth
def pending_request_count():
    """GET /lives/pending_request_count — Badge count for the caller."""
    count = performance_request_service.pending_request_count(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": {"count": count}, "warnings": []}), 200


# ── Tickets ────────────────────────────────────────────────────────────────

@lives_bp.route("/reserve", methods=["POST"])
@require_auth
def reserve_ticket():
    """POST /lives/reserve — Reserve a ticket for the caller."""
    data = ReserveTicketSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session) as uow:
        result = ticket_service.reserve(
            live_id=data["live_id"],
            user_id=g.user_id,
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 201


@lives_bp.route("/refund", methods=["POST"])
@require_auth
def refund_ticket():
    """POST /lives/refund — Refund one of the caller's reserved tickets."""
    data = RefundTicketSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session) as uow:
        result = ticket_service.refund(
            ticket_id=data["ticket_id"],
            user_id=g.user_id,
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 200


@lives_bp.route("/<int(max=2147483647):live_id>/participants", methods=["GET"])
@require_auth
def participants(live_id: int):
    """GET /lives/:id/participants — Users holding a reserved ticket."""
    page, per = page_args()
    result = ticket_service.participants(
        live_id=live_id,
        page=page,
        per=per,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@lives_bp.route("/my_tickets", methods=["GET"])
@require_auth
def my_tickets():
    """GET /lives/my_tickets — The caller's tickets, refunded ones included."""
    page, per = page_args()
    result = ticket_service.list_my_tickets(
        user_id=g.user_id,
        page=page,
        per=per,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
