"""
domain/events.py — Values emitted by state transitions.

Services return these alongside their result; the UnitOfWork hands them to
the NotificationDispatcher only after the transaction has committed. An event
carries everything its notifications need, so dispatch never re-reads the
rows that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GroupRef:
    id: int
    name: str


@dataclass(frozen=True)
class LiveCreated:
    live_id: int
    title: str
    host_group: GroupRef
    # Non-host declared performers of a battle/festival (empty for oneman).
    guest_performers: tuple[GroupRef, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PerformanceRequestReplied:
    request_id: int
    live_id: int
    live_title: str
    group: GroupRef
    author_id: int | None
    accepted: bool


DomainEvent = LiveCreated | PerformanceRequestReplied
