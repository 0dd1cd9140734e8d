"""
unit_of_work.py — One database transaction per mutating request.

Usage in a route:

    with UnitOfWork(db.session, get_notification_dispatcher()) as uow:
        live, events = live_service.create_live(..., session=uow.session)
        uow.emit(events)
    # committed here; events dispatched after the commit

Rules:
  - Leaving the block normally commits. Any exception rolls back and
    propagates unchanged (AppError still reaches the global error handler).
  - Events collected with emit() are dispatched only after a successful
    commit. A rolled-back transaction dispatches nothing.
  - Dispatch errors are logged and swallowed. The response the client gets
    reflects the committed state, never the notification outcome.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session: Session, dispatcher=None) -> None:
        self.session = session
        self.dispatcher = dispatcher
        self.events: list = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback()
            return False

        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise

        self._publish_events()
        return False

    def emit(self, events) -> None:
        """Queues events for dispatch after commit. Accepts one event or a list."""
        if isinstance(events, (list, tuple)):
            self.events.extend(events)
        else:
            self.events.append(events)

    def rollback(self) -> None:
        self.events.clear()
        self.session.rollback()

    def _publish_events(self) -> None:
        if not self.events or self.dispatcher is None:
            self.events.clear()
            return

        events, self.events = self.events, []
        try:
            self.dispatcher.dispatch(events, self.session)
        except Exception:
            logger.exception(
                "Failed to dispatch %d event(s) after commit", len(events)
            )
