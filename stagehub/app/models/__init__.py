"""
models — one table per module.

Relationships name their targets as strings ("Live", "Ticket", ...). Importing
every module here means any `from stagehub.app.models.x import X` leaves the
whole registry resolvable, so model instances can be built outside the app
factory (unit tests, Alembic).

INTEGER_MAX is the largest value an `Integer` column (ids, price) holds on
PostgreSQL. Inputs above it are rejected at the API layer.
"""

INTEGER_MAX = 2_147_483_647

from stagehub.app.models import (  # noqa: E402, F401
    group,
    group_follower,
    group_invitation,
    live,
    live_performer,
    membership,
    performance_request,
    ticket,
    user,
)
