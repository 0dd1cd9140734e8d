"""
tests/integration/test_lives.py — Live creation, editing, lookup and the
notifications a new live fans out.

Endpoints covered:
  POST /lives            → 201
  POST /lives/edit/:id   → 200
  GET  /lives/:id        → 200

Rules verified:
  - A oneman live is performed by its host; nothing is written otherwise
  - Declaring the host makes it a performer immediately; every other
    declared group gets a pending performance request instead
  - A group declared twice is rejected before any write
  - Edits change descriptive fields only
  - The detail view carries the participant count and the caller's ticket
  - Ids and prices beyond the integer column range are rejected as input
    errors, never reaching the database
  - Followers of the host and of every guest are notified after commit
"""

from __future__ import annotations

from sqlalchemy import func, select

from stagehub.app.extensions import db
from stagehub.app.models.live import Live
from stagehub.app.models.live_performer import LivePerformer
from stagehub.app.models.performance_request import PerformanceRequest, RequestStatus

from .conftest import (
    add_member,
    auth_headers,
    follow,
    make_group,
    make_live,
    register,
    reserve,
)


def _count(app, model, **filters) -> int:
    with app.app_context():
        stmt = select(func.count()).select_from(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        return db.session.execute(stmt).scalar_one()


def _three_groups(client):
    """Three artists, each leading one group. Returns (tokens, group ids)."""
    tokens, ids = [], []
    for n in (1, 2, 3):
        artist = register(client, f"artist{n}")
        group = make_group(client, artist["access_token"], f"Group {n}")
        tokens.append(artist["access_token"])
        ids.append(group["id"])
    return tokens, ids


# ═══════════════════════════════════════════════════════════════════════════
# POST /lives — oneman
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateOneman:

    def test_host_is_the_only_performer(self, app, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"], "Kessoku Band")

        resp = make_live(client, alice["access_token"], group["id"], title="Solo Night")

        assert resp.status_code == 201
        live = resp.get_json()["data"]
        assert live["title"] == "Solo Night"
        assert live["author_id"] == alice["user"]["id"]
        assert live["host_group"]["id"] == group["id"]
        assert live["style"]["kind"] == "oneman"
        assert live["style"]["value"]["id"] == group["id"]
        assert _count(app, LivePerformer, live_id=live["id"]) == 1
        assert _count(app, PerformanceRequest, live_id=live["id"]) == 0

    def test_oneman_with_other_performer_writes_nothing(self, app, client):
        tokens, (g1, g2, _) = _three_groups(client)

        resp = make_live(
            client, tokens[0], g1,
            style={"kind": "oneman", "value": g2},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "ONEMAN_PERFORMER_MUST_BE_HOST"
        assert _count(app, Live) == 0
        assert _count(app, PerformanceRequest) == 0

    def test_descriptive_fields_round_trip(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = make_live(
            client, alice["access_token"], group["id"],
            live_house="Starry",
            date="2026-11-03",
            artwork_url="https://example.com/flyer.png",
        )

        live = resp.get_json()["data"]
        assert live["live_house"] == "Starry"
        assert live["date"] == "2026-11-03"
        assert live["artwork_url"] == "https://example.com/flyer.png"
        assert live["open_at"] is None

    def test_free_live_is_allowed(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = make_live(client, alice["access_token"], group["id"], price=0)

        assert resp.status_code == 201
        assert resp.get_json()["data"]["price"] == 0


# ═══════════════════════════════════════════════════════════════════════════
# POST /lives — battle / festival
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateMultiPerformer:

    def test_battle_host_performs_and_guests_are_requested(self, app, client):
        tokens, (g1, g2, g3) = _three_groups(client)

        resp = make_live(
            client, tokens[0], g1,
            style={"kind": "battle", "value": [g1, g2, g3]},
        )

        assert resp.status_code == 201
        live = resp.get_json()["data"]
        assert live["style"]["kind"] == "battle"
        # Only accepted performers are listed; guests are still pending.
        assert [p["id"] for p in live["style"]["value"]] == [g1]
        assert _count(app, LivePerformer, live_id=live["id"]) == 1
        assert _count(app, PerformanceRequest, live_id=live["id"], status=RequestStatus.PENDING) == 2

    def test_festival_without_host_declared_has_no_performer_yet(self, app, client):
        tokens, (g1, g2, g3) = _three_groups(client)

        resp = make_live(
            client, tokens[0], g1,
            style={"kind": "festival", "value": [g2, g3]},
        )

        assert resp.status_code == 201
        live = resp.get_json()["data"]
        assert live["style"] == {"kind": "festival", "value": []}
        assert _count(app, LivePerformer, live_id=live["id"]) == 0
        assert _count(app, PerformanceRequest, live_id=live["id"]) == 2

    def test_repeated_host_collapses_to_one_performer(self, app, client):
        tokens, (g1, g2, _) = _three_groups(client)

        resp = make_live(
            client, tokens[0], g1,
            style={"kind": "battle", "value": [g1, g2, g1]},
        )

        assert resp.status_code == 201
        live_id = resp.get_json()["data"]["id"]
        assert _count(app, LivePerformer, live_id=live_id) == 1
        assert _count(app, PerformanceRequest, live_id=live_id) == 1

    def test_duplicate_guest_returns_400_and_writes_nothing(self, app, client):
        tokens, (g1, g2, _) = _three_groups(client)

        resp = make_live(
            client, tokens[0], g1,
            style={"kind": "festival", "value": [g1, g2, g2]},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "DUPLICATE_PERFORMER"
        assert _count(app, Live) == 0

    def test_unknown_guest_returns_404_and_writes_nothing(self, app, client):
        tokens, (g1, _, _) = _three_groups(client)

        resp = make_live(
            client, tokens[0], g1,
            style={"kind": "battle", "value": [g1, 99999]},
        )

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"
        assert _count(app, Live) == 0


# ═══════════════════════════════════════════════════════════════════════════
# POST /lives — rejected input and permissions
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateRejections:

    def test_negative_price_returns_invalid_price(self, app, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = make_live(client, alice["access_token"], group["id"], price=-1)

        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_PRICE"
        assert error["field"] == "price"
        assert _count(app, Live) == 0

    def test_price_beyond_integer_column_returns_invalid_price(self, app, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = make_live(client, alice["access_token"], group["id"], price=2**63)

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_PRICE"
        assert _count(app, Live) == 0

    def test_host_id_beyond_integer_column_returns_400(self, app, client):
        alice = register(client, "alice")

        resp = make_live(
            client, alice["access_token"], 2**63,
            style={"kind": "oneman", "value": 1},
        )

        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_FIELD"
        assert error["field"] == "host_group_id"

    def test_performer_id_beyond_integer_column_returns_invalid_live_style(self, app, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = make_live(
            client, alice["access_token"], group["id"],
            style={"kind": "battle", "value": [group["id"], 2**63]},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_LIVE_STYLE"
        assert _count(app, Live) == 0

    def test_unknown_style_kind_returns_invalid_live_style(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = make_live(
            client, alice["access_token"], group["id"],
            style={"kind": "duet", "value": [group["id"]]},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_LIVE_STYLE"

    def test_battle_with_scalar_value_returns_invalid_live_style(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = make_live(
            client, alice["access_token"], group["id"],
            style={"kind": "battle", "value": group["id"]},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_LIVE_STYLE"

    def test_fan_cannot_create_live(self, client):
        alice = register(client, "alice")
        fan = register(client, "fan", role="fan")
        group = make_group(client, alice["access_token"])

        resp = make_live(client, fan["access_token"], group["id"])

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FAN_CANNOT_CREATE_LIVE"

    def test_author_must_belong_to_host(self, app, client):
        alice = register(client, "alice")
        carol = register(client, "carol")
        group = make_group(client, alice["access_token"])

        resp = make_live(client, carol["access_token"], group["id"])

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "NOT_MEMBER_OF_GROUP"
        assert _count(app, Live) == 0

    def test_non_leader_member_can_create(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        add_member(client, alice["access_token"], bob["access_token"], group["id"])

        resp = make_live(client, bob["access_token"], group["id"])

        assert resp.status_code == 201

    def test_unknown_host_returns_404(self, client):
        alice = register(client, "alice")
        resp = make_live(
            client, alice["access_token"], 99999,
            style={"kind": "oneman", "value": 99999},
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# POST /lives/edit/:id, GET /lives/:id
# ═══════════════════════════════════════════════════════════════════════════

class TestEditLive:

    def test_member_updates_descriptive_fields(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])
        live = make_live(client, alice["access_token"], group["id"]).get_json()["data"]

        resp = client.post(
            f"/api/v1/lives/edit/{live['id']}",
            json={"title": "Renamed", "live_house": "Starry"},
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["title"] == "Renamed"
        assert data["live_house"] == "Starry"
        assert data["price"] == live["price"]
        assert data["style"] == live["style"]

    def test_price_is_not_editable(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])
        live = make_live(client, alice["access_token"], group["id"]).get_json()["data"]

        resp = client.post(
            f"/api/v1/lives/edit/{live['id']}",
            json={"price": 1},
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_FIELD"
        assert error["field"] == "price"

    def test_style_is_not_editable(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])
        live = make_live(client, alice["access_token"], group["id"]).get_json()["data"]

        resp = client.post(
            f"/api/v1/lives/edit/{live['id']}",
            json={"style": {"kind": "festival", "value": [group["id"]]}},
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "style"

    def test_outsider_cannot_edit(self, client):
        alice = register(client, "alice")
        carol = register(client, "carol")
        group = make_group(client, alice["access_token"])
        live = make_live(client, alice["access_token"], group["id"]).get_json()["data"]

        resp = client.post(
            f"/api/v1/lives/edit/{live['id']}",
            json={"title": "Hijacked"},
            headers=auth_headers(carol["access_token"]),
        )

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "NOT_MEMBER_OF_GROUP"

    def test_fan_cannot_edit(self, client):
        alice = register(client, "alice")
        fan = register(client, "fan", role="fan")
        group = make_group(client, alice["access_token"])
        live = make_live(client, alice["access_token"], group["id"]).get_json()["data"]

        resp = client.post(
            f"/api/v1/lives/edit/{live['id']}",
            json={"title": "Hijacked"},
            headers=auth_headers(fan["access_token"]),
        )

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FAN_CANNOT_EDIT_LIVE"

    def test_unknown_live_returns_404(self, client):
        alice = register(client, "alice")
        resp = client.post(
            "/api/v1/lives/edit/99999",
            json={"title": "Anything"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "LIVE_NOT_FOUND"

    def test_id_beyond_integer_column_returns_404(self, client):
        alice = register(client, "alice")
        resp = client.post(
            f"/api/v1/lives/edit/{2**63}",
            json={"title": "Anything"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "NOT_FOUND"


class TestGetLive:

    def test_anyone_authenticated_can_read(self, client):
        alice = register(client, "alice")
        fan = register(client, "fan", role="fan")
        group = make_group(client, alice["access_token"])
        live = make_live(client, alice["access_token"], group["id"]).get_json()["data"]

        resp = client.get(
            f"/api/v1/lives/{live['id']}",
            headers=auth_headers(fan["access_token"]),
        )

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert {k: v for k, v in data.items() if k in live} == live
        assert data["participants"] == 0
        assert data["ticket"] is None
        assert data["has_ticket"] is False

    def test_detail_reports_participants_and_callers_ticket(self, client):
        alice = register(client, "alice")
        fan = register(client, "fan", role="fan")
        other = register(client, "other", role="fan")
        group = make_group(client, alice["access_token"])
        live_id = make_live(client, alice["access_token"], group["id"]).get_json()["data"]["id"]
        ticket = reserve(client, fan["access_token"], live_id).get_json()["data"]
        reserve(client, other["access_token"], live_id)

        mine = client.get(
            f"/api/v1/lives/{live_id}",
            headers=auth_headers(fan["access_token"]),
        ).get_json()["data"]
        theirs = client.get(
            f"/api/v1/lives/{live_id}",
            headers=auth_headers(alice["access_token"]),
        ).get_json()["data"]

        assert mine["participants"] == 2
        assert mine["has_ticket"] is True
        assert mine["ticket"]["id"] == ticket["id"]
        assert theirs["participants"] == 2
        assert theirs["has_ticket"] is False
        assert theirs["ticket"] is None

    def test_refunded_ticket_is_not_reported(self, client):
        alice = register(client, "alice")
        fan = register(client, "fan", role="fan")
        group = make_group(client, alice["access_token"])
        live_id = make_live(client, alice["access_token"], group["id"]).get_json()["data"]["id"]
        ticket = reserve(client, fan["access_token"], live_id).get_json()["data"]
        client.post(
            "/api/v1/lives/refund",
            json={"ticket_id": ticket["id"]},
            headers=auth_headers(fan["access_token"]),
        )

        data = client.get(
            f"/api/v1/lives/{live_id}",
            headers=auth_headers(fan["access_token"]),
        ).get_json()["data"]

        assert data["participants"] == 0
        assert data["has_ticket"] is False

    def test_unknown_live_returns_404(self, client):
        fan = register(client, "fan", role="fan")
        resp = client.get("/api/v1/lives/99999", headers=auth_headers(fan["access_token"]))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "LIVE_NOT_FOUND"

    def test_id_beyond_integer_column_returns_404(self, client):
        fan = register(client, "fan", role="fan")
        headers = auth_headers(fan["access_token"])

        for path in (f"/api/v1/lives/{2**63}", f"/api/v1/lives/{2**63}/participants"):
            resp = client.get(path, headers=headers)
            assert resp.status_code == 404
            assert resp.get_json()["error"]["code"] == "NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# Notifications on create
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateNotifications:

    def test_host_followers_are_notified(self, client, pushes):
        alice = register(client, "alice")
        fan = register(client, "fan", role="fan")
        group = make_group(client, alice["access_token"], "Kessoku Band")
        follow(client, fan["access_token"], group["id"])

        make_live(client, alice["access_token"], group["id"])

        assert pushes.published == [
            (fan["user"]["id"], "Kessoku Band published a new live"),
        ]

    def test_guest_followers_hear_about_the_invitation(self, client, pushes):
        tokens, (g1, g2, g3) = _three_groups(client)
        fan = register(client, "fan", role="fan")
        follow(client, fan["access_token"], g2)

        make_live(
            client, tokens[0], g1,
            style={"kind": "battle", "value": [g1, g2, g3]},
            title="Battle Night",
        )

        assert pushes.messages_for(fan["user"]["id"]) == [
            "Group 2 has been invited to perform at Battle Night",
        ]

    def test_follower_of_host_and_guest_gets_one_push_per_group(self, client, pushes):
        tokens, (g1, g2, _) = _three_groups(client)
        fan = register(client, "fan", role="fan")
        follow(client, fan["access_token"], g1)
        follow(client, fan["access_token"], g2)

        make_live(
            client, tokens[0], g1,
            style={"kind": "battle", "value": [g1, g2]},
            title="Battle Night",
        )

        assert pushes.messages_for(fan["user"]["id"]) == [
            "Group 1 published a new live",
            "Group 2 has been invited to perform at Battle Night",
        ]

    def test_rejected_live_sends_nothing(self, client, pushes):
        tokens, (g1, g2, _) = _three_groups(client)
        fan = register(client, "fan", role="fan")
        follow(client, fan["access_token"], g1)

        resp = make_live(
            client, tokens[0], g1,
            style={"kind": "oneman", "value": g2},
        )

        assert resp.status_code == 400
        assert pushes.published == []

    def test_failing_transport_does_not_fail_the_request(self, app, client, pushes, monkeypatch):
        alice = register(client, "alice")
        fan = register(client, "fan", role="fan")
        group = make_group(client, alice["access_token"])
        follow(client, fan["access_token"], group["id"])

        def boom(to_user_id, message):
            raise RuntimeError("push gateway down")

        monkeypatch.setattr(pushes, "publish", boom)

        resp = make_live(client, alice["access_token"], group["id"])

        assert resp.status_code == 201
        assert _count(app, Live) == 1
