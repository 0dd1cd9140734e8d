"""
services/notification_service.py — Push notification fan-out.

Responsibilities:
  - Resolve recipients from the follower graph (group_followers)
  - Turn domain events into push messages
  - Hand each message to a pluggable PushTransport

Delivery contract:
  - dispatch() is called by UnitOfWork only AFTER the transaction commits.
    Nothing here can roll back or fail the operation that produced the event.
  - One publish per (group, follower): a user following both the host and a
    guest of a battle hears about each group separately.
  - Best effort. A failing publish is logged and the remaining recipients are
    still attempted.

Layer rules:
  - No Flask imports. The session is passed in, as for every other service.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from stagehub.app.domain.events import (
    DomainEvent,
    GroupRef,
    LiveCreated,
    PerformanceRequestReplied,
)
from stagehub.app.models.group_follower import GroupFollower

logger = logging.getLogger(__name__)


# ── Transports ─────────────────────────────────────────────────────────────

class PushTransport:
    """Delivers one message to one user. Subclasses implement publish()."""

    def publish(self, to_user_id: int, message: str) -> None:
        raise NotImplementedError


class LoggingPushTransport(PushTransport):
    """Default transport: every push becomes an INFO log line."""

    def publish(self, to_user_id: int, message: str) -> None:
        logger.info("push to user %s: %s", to_user_id, message)


class RecordingPushTransport(PushTransport):
    """Keeps pushes in memory as (user_id, message) pairs. Used by tests."""

    def __init__(self) -> None:
        self.published: list[tuple[int, str]] = []

    def publish(self, to_user_id: int, message: str) -> None:
        self.published.append((to_user_id, message))

    def messages_for(self, user_id: int) -> list[str]:
        return [message for to, message in self.published if to == user_id]

    def clear(self) -> None:
        self.published.clear()


_TRANSPORTS = {
    "log": LoggingPushTransport,
    "memory": RecordingPushTransport,
}


def build_transport(name: str) -> PushTransport:
    """
    Returns a transport instance for a NOTIFICATION_TRANSPORT config value.

    Raises ValueError for an unknown name so a typo fails at startup rather
    than silently dropping notifications.
    """
    try:
        return _TRANSPORTS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown NOTIFICATION_TRANSPORT {name!r}. "
            f"Expected one of: {', '.join(sorted(_TRANSPORTS))}."
        ) from None


# ── Message templates ──────────────────────────────────────────────────────

def live_published_message(host: GroupRef) -> str:
    return f"{host.name} published a new live"


def guest_announced_message(guest: GroupRef, live_title: str) -> str:
    return f"{guest.name} has been invited to perform at {live_title}"


def request_replied_message(group: GroupRef, accepted: bool) -> str:
    verb = "accepted" if accepted else "denied"
    return f"{group.name} {verb} your performance request"


# ── Dispatcher ─────────────────────────────────────────────────────────────

class NotificationDispatcher:
    """
    Maps committed domain events to pushes.

    One instance lives in app.extensions["notification_dispatcher"] for the
    lifetime of the app; it holds no per-request state.
    """

    def __init__(self, transport: PushTransport) -> None:
        self.transport = transport

    def followers_of(self, group_id: int, session: Session) -> set[int]:
        return set(
            session.execute(
                select(GroupFollower.user_id).where(GroupFollower.group_id == group_id)
            ).scalars().all()
        )

    def publish(self, to_user_id: int, message: str) -> None:
        try:
            self.transport.publish(to_user_id, message)
        except Exception:
            logger.exception("Failed to publish push to user %s", to_user_id)

    def publish_to_followers(self, group_id: int, message: str, session: Session) -> None:
        for user_id in sorted(self.followers_of(group_id, session)):
            self.publish(user_id, message)

    def dispatch(self, events: list[DomainEvent], session: Session) -> None:
        """
        Sends the pushes for every event in order.

        A failure while handling one event is logged with the event name and
        does not stop the events after it.
        """
        for event in events:
            try:
                self._dispatch_one(event, session)
            except Exception:
                logger.exception(
                    "Notification dispatch failed for %s", type(event).__name__
                )

    def _dispatch_one(self, event: DomainEvent, session: Session) -> None:
        if isinstance(event, LiveCreated):
            self.publish_to_followers(
                event.host_group.id,
                live_published_message(event.host_group),
                session,
            )
            for guest in event.guest_performers:
                self.publish_to_followers(
                    guest.id,
                    guest_announced_message(guest, event.title),
                    session,
                )
        elif isinstance(event, PerformanceRequestReplied):
            if event.author_id is not None:
                self.publish(
                    event.author_id,
                    request_replied_message(event.group, event.accepted),
                )
        else:
            raise TypeError(f"Unknown domain event: {event!r}")
