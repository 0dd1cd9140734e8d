"""Initial schema — all tables, enums, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. PostgreSQL enum types (must exist before tables that reference them)
  2. Tables in FK dependency order (users → groups → memberships →
     group_invitations, group_followers → lives → live_performers,
     performance_requests, tickets)
  3. Indexes, including the partial unique index on reserved tickets

ON DELETE policies:
  memberships / group_invitations / group_followers .group_id → CASCADE
  lives.host_group_id, lives.author_id                        → RESTRICT
  live_performers / performance_requests / tickets .live_id   → CASCADE
  memberships.user_id, tickets.user_id                        → RESTRICT
  group_invitations.membership_id                             → RESTRICT
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _enum(name: str, *values: str) -> postgresql.ENUM:
    # create_type=False: the type is created explicitly in Step 1.
    return postgresql.ENUM(*values, name=name, create_type=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )


def upgrade() -> None:
    """
    Apply the full initial schema.

    Enum types are created via op.execute() so the exact SQL is explicit and
    reviewable; autogenerate does not reliably track PostgreSQL custom types.
    """

    # ── Step 1: PostgreSQL enum types ─────────────────────────────────────

    op.execute("CREATE TYPE user_role AS ENUM ('artist', 'fan')")
    op.execute("CREATE TYPE live_style AS ENUM ('oneman', 'battle', 'festival')")
    op.execute(
        "CREATE TYPE request_status AS ENUM ('pending', 'accepted', 'denied')"
    )
    op.execute("CREATE TYPE ticket_status AS ENUM ('reserved', 'refunded')")

    # ── Step 2: users ──────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", _enum("user_role", "artist", "fan"), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    # ── Step 3: groups ─────────────────────────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("english_name", sa.String(100), nullable=True),
        sa.Column("biography", sa.Text(), nullable=True),
        sa.Column("since", sa.Date(), nullable=True),
        sa.Column("artwork_url", sa.String(500), nullable=True),
        sa.Column("twitter_id", sa.String(100), nullable=True),
        sa.Column("youtube_channel_id", sa.String(100), nullable=True),
        sa.Column("hometown", sa.String(100), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    # ── Step 4: memberships ────────────────────────────────────────────────
    # UNIQUE(group_id, user_id) is the guard for racing invitation redeems.

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_memberships_group"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_memberships_user"),
            nullable=False,
        ),
        sa.Column(
            "is_leader",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_memberships"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_memberships_group_user"),
    )

    # ── Step 5: group_invitations ──────────────────────────────────────────
    # Single-use: invited flips to TRUE exactly once, together with
    # membership_id. membership_id is UNIQUE (one membership per invitation).

    op.create_table(
        "group_invitations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_group_invitations_group"),
            nullable=False,
        ),
        sa.Column(
            "invited",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "membership_id",
            sa.Integer(),
            sa.ForeignKey(
                "memberships.id",
                ondelete="RESTRICT",
                name="fk_group_invitations_membership",
            ),
            nullable=True,
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_group_invitations"),
        sa.UniqueConstraint("membership_id", name="uq_group_invitations_membership"),
        sa.CheckConstraint(
            "(invited AND membership_id IS NOT NULL) "
            "OR (NOT invited AND membership_id IS NULL)",
            name="ck_group_invitations_redeemed_consistent",
        ),
    )

    # ── Step 6: group_followers ────────────────────────────────────────────

    op.create_table(
        "group_followers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_group_followers_group"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_group_followers_user"),
            nullable=False,
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_group_followers"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_followers_group_user"),
    )

    # ── Step 7: lives ──────────────────────────────────────────────────────
    # Only the style kind is stored; performers live in live_performers.

    op.create_table(
        "lives",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column(
            "style",
            _enum("live_style", "oneman", "battle", "festival"),
            nullable=False,
        ),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("artwork_url", sa.String(500), nullable=True),
        sa.Column(
            "host_group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_lives_host_group"),
            nullable=False,
        ),
        sa.Column(
            "author_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_lives_author"),
            nullable=False,
        ),
        sa.Column("live_house", sa.String(200), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("open_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_lives"),
        sa.CheckConstraint("price >= 0", name="ck_lives_price_nonnegative"),
        sa.CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_lives_title_nonempty",
        ),
    )

    # ── Step 8: live_performers ────────────────────────────────────────────

    op.create_table(
        "live_performers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "live_id",
            sa.Integer(),
            sa.ForeignKey("lives.id", ondelete="CASCADE", name="fk_live_performers_live"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_live_performers_group"),
            nullable=False,
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_live_performers"),
        sa.UniqueConstraint("live_id", "group_id", name="uq_live_performers_live_group"),
    )

    # ── Step 9: performance_requests ───────────────────────────────────────

    op.create_table(
        "performance_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "live_id",
            sa.Integer(),
            sa.ForeignKey("lives.id", ondelete="CASCADE", name="fk_performance_requests_live"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey(
                "groups.id",
                ondelete="RESTRICT",
                name="fk_performance_requests_group",
            ),
            nullable=False,
        ),
        sa.Column(
            "status",
            _enum("request_status", "pending", "accepted", "denied"),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_performance_requests"),
        sa.UniqueConstraint(
            "live_id", "group_id", name="uq_performance_requests_live_group"
        ),
    )

    # ── Step 10: tickets ───────────────────────────────────────────────────

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "live_id",
            sa.Integer(),
            sa.ForeignKey("lives.id", ondelete="CASCADE", name="fk_tickets_live"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_tickets_user"),
            nullable=False,
        ),
        sa.Column(
            "status",
            _enum("ticket_status", "reserved", "refunded"),
            nullable=False,
            server_default=sa.text("'reserved'"),
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_tickets"),
    )

    # ── Step 11: indexes ───────────────────────────────────────────────────

    op.create_index("ix_memberships_group_id", "memberships", ["group_id"])
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"])
    op.create_index("ix_group_invitations_group_id", "group_invitations", ["group_id"])
    op.create_index("ix_group_followers_group_id", "group_followers", ["group_id"])
    op.create_index("ix_group_followers_user_id", "group_followers", ["user_id"])
    op.create_index("ix_lives_host_group_id", "lives", ["host_group_id"])
    op.create_index("ix_lives_author_id", "lives", ["author_id"])
    op.create_index("ix_live_performers_live_id", "live_performers", ["live_id"])
    op.create_index("ix_live_performers_group_id", "live_performers", ["group_id"])
    op.create_index("ix_performance_requests_live_id", "performance_requests", ["live_id"])
    op.create_index("ix_performance_requests_group_id", "performance_requests", ["group_id"])
    op.create_index("ix_tickets_live_id", "tickets", ["live_id"])
    op.create_index("ix_tickets_user_id", "tickets", ["user_id"])

    # At most one reserved ticket per (live, user). Refunded rows are history
    # and fall outside the predicate.
    op.create_index(
        "uq_tickets_live_user_reserved",
        "tickets",
        ["live_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'reserved'"),
    )


def downgrade() -> None:
    """Drop everything created by upgrade(), in reverse dependency order."""
    op.drop_table("tickets")
    op.drop_table("performance_requests")
    op.drop_table("live_performers")
    op.drop_table("lives")
    op.drop_table("group_followers")
    op.drop_table("group_invitations")
    op.drop_table("memberships")
    op.drop_table("groups")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS ticket_status")
    op.execute("DROP TYPE IF EXISTS request_status")
    op.execute("DROP TYPE IF EXISTS live_style")
    op.execute("DROP TYPE IF EXISTS user_role")
