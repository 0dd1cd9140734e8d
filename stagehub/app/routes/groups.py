"""
routes/groups.py — Group, invitation and follower route handlers.

Layer rules:
  - Parse, validate, call ONE service inside a UnitOfWork, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/groups):
  POST   /groups                → 201  create group (caller becomes leader)
  GET    /groups/:id            → 200  group + members
  GET    /groups/:id/lives      → 200  lives the group performs at (page)
  GET    /groups/memberships/:artist_id → 200  groups the artist belongs to
  POST   /groups/invite         → 201  issue invitation (leader only)
  POST   /groups/join           → 201  redeem invitation
  POST   /groups/:id/follow     → 201  follow group
  DELETE /groups/:id/follow     → 200  unfollow group
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from stagehub.app.extensions import db
from stagehub.app.middleware.auth_middleware import require_auth
from stagehub.app.routes.paging import page_args
from stagehub.app.schemas.group_schema import CreateGroupSchema, InviteSchema, JoinSchema
from stagehub.app.services import group_service, live_service
from stagehub.app.unit_of_work import UnitOfWork

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["POST"])
@require_auth
def create_group():
    """POST /groups — Create a group. Artists only; caller becomes its leader."""
    data = CreateGroupSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session) as uow:
        result = group_service.create_group(
            data=data,
            creator_id=g.user_id,
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int(max=2147483647):group_id>", methods=["GET"])
@require_auth
def get_group(group_id: int):
    """GET /groups/:id — Group profile with its member list."""
    result = group_service.get_group(group_id=group_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int(max=2147483647):group_id>/lives", methods=["GET"])
@require_auth
def group_lives(group_id: int):
    """GET /groups/:id/lives — Lives this group performs at, latest first."""
    page, per = page_args()
    result = live_service.list_group_lives(
        group_id=group_id,
        user_id=g.user_id,
        page=page,
        per=per,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/memberships/<int(max=2147483647):artist_id>", methods=["GET"])
@require_auth
def memberships(artist_id: int):
    """GET /groups/memberships/:artist_id — Groups the artist is a member of."""
    result = group_service.list_memberships(artist_id=artist_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/invite", methods=["POST"])
@require_auth
def invite():
    """POST /groups/invite — Issue a single-use invitation. Leader only."""
    data = InviteSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session) as uow:
        result = group_service.invite_to_group(
            group_id=data["group_id"],
            caller_id=g.user_id,
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/join", methods=["POST"])
@require_auth
def join():
    """POST /groups/join — Redeem an invitation and join its group."""
    data = JoinSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session) as uow:
        result = group_service.redeem_invitation(
            invitation_id=data["invitation_id"],
            user_id=g.user_id,
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int(max=2147483647):group_id>/follow", methods=["POST"])
@require_auth
def follow(group_id: int):
    """POST /groups/:id/follow — Start receiving this group's notifications."""
    with UnitOfWork(db.session) as uow:
        result = group_service.follow_group(
            group_id=group_id,
            user_id=g.user_id,
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int(max=2147483647):group_id>/follow", methods=["DELETE"])
@require_auth
def unfollow(group_id: int):
    """DELETE /groups/:id/follow — Stop following a group."""
    with UnitOfWork(db.session) as uow:
        result = group_service.unfollow_group(
            group_id=group_id,
            user_id=g.user_id,
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 200
