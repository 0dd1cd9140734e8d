"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against TEST_DATABASE_URL, defaulting to in-memory SQLite
    (Flask-SQLAlchemy keeps one shared connection for it). Point the variable
    at PostgreSQL to run the suite against the production dialect.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.
  - The testing config uses the in-memory push transport; the `pushes`
    fixture hands it to tests and empties it first.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)          → dict with user + access_token
  - auth_headers(token)            → {"Authorization": "Bearer <token>"}
  - make_group(client, ...)        → group dict (caller becomes leader)
  - invite(client, ...)            → invitation dict
  - add_member(client, ...)        → membership dict (invite + redeem)
  - make_live(client, ...)         → HTTP response
  - follow(client, ...)            → HTTP response
  - reserve(client, ...)           → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from stagehub.app import create_app
from stagehub.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Tables are created from model metadata (db.create_all), which also
    creates the partial unique index on reserved tickets for both dialects.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    Children of lives first, then the group-owned tables, then groups and
    users last.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM tickets"))
            conn.execute(text("DELETE FROM performance_requests"))
            conn.execute(text("DELETE FROM live_performers"))
            conn.execute(text("DELETE FROM lives"))
            conn.execute(text("DELETE FROM group_invitations"))
            conn.execute(text("DELETE FROM group_followers"))
            conn.execute(text("DELETE FROM memberships"))
            conn.execute(text("DELETE FROM groups"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client / transport fixtures
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def pushes(app):
    """The RecordingPushTransport used by the testing app, emptied."""
    transport = app.extensions["notification_dispatcher"].transport
    transport.clear()
    yield transport
    transport.clear()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    username: str = "alice",
    role: str = "artist",
    email: str | None = None,
    password: str = "Password1",
    name: str | None = None,
) -> dict:
    """
    Registers a new user and returns the full response data dict.
    Returns: {"user": {...}, "access_token": "..."}
    """
    if email is None:
        email = f"{username}@test.com"
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "username": username,
            "email": email,
            "password": password,
            "role": role,
            "name": name or username.capitalize(),
        },
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_group(client, token: str, name: str = "Test Group") -> dict:
    """
    Creates a group and returns the group data dict.
    The caller (token owner) becomes the group leader.
    """
    resp = client.post(
        "/api/v1/groups/",
        json={"name": name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def invite(client, token: str, group_id: int) -> dict:
    """Issues an invitation (leader token required) and returns its dict."""
    resp = client.post(
        "/api/v1/groups/invite",
        json={"group_id": group_id},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"invite failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join(client, token: str, invitation_id: int):
    """Redeems an invitation. Returns the HTTP response."""
    return client.post(
        "/api/v1/groups/join",
        json={"invitation_id": invitation_id},
        headers=auth_headers(token),
    )


def add_member(client, leader_token: str, member_token: str, group_id: int) -> dict:
    """Invites and seats a non-leader member. Returns the membership dict."""
    invitation = invite(client, leader_token, group_id)
    resp = join(client, member_token, invitation["id"])
    assert resp.status_code == 201, f"join failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_live(
    client,
    token: str,
    host_group_id: int,
    style: dict | None = None,
    price: int = 3000,
    title: str = "Test Live",
    **extra,
):
    """
    Creates a live and returns the HTTP response.
    Defaults to a oneman live performed by the host.
    """
    if style is None:
        style = {"kind": "oneman", "value": host_group_id}
    payload = {
        "title": title,
        "host_group_id": host_group_id,
        "style": style,
        "price": price,
        **extra,
    }
    return client.post("/api/v1/lives/", json=payload, headers=auth_headers(token))


def follow(client, token: str, group_id: int):
    """Follows a group. Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/follow",
        headers=auth_headers(token),
    )


def reserve(client, token: str, live_id: int):
    """Reserves a ticket. Returns the HTTP response."""
    return client.post(
        "/api/v1/lives/reserve",
        json={"live_id": live_id},
        headers=auth_headers(token),
    )
