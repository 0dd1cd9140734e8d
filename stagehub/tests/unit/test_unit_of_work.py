"""
Unit tests for UnitOfWork: commit/rollback and post-commit event dispatch.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from stagehub.app.errors import AppError, ErrorCode
from stagehub.app.unit_of_work import UnitOfWork


def test_commits_on_success():
    session = MagicMock()

    with UnitOfWork(session):
        pass

    session.commit.assert_called_once()
    session.rollback.assert_not_called()


def test_rolls_back_and_propagates_app_error():
    session = MagicMock()
    dispatcher = MagicMock()

    with pytest.raises(AppError):
        with UnitOfWork(session, dispatcher) as uow:
            uow.emit(["event"])
            raise AppError(ErrorCode.LIVE_NOT_FOUND, "nope", 404)

    session.rollback.assert_called_once()
    session.commit.assert_not_called()
    dispatcher.dispatch.assert_not_called()


def test_dispatches_events_after_commit():
    order = []
    session = MagicMock()
    session.commit.side_effect = lambda: order.append("commit")
    dispatcher = MagicMock()
    dispatcher.dispatch.side_effect = lambda events, s: order.append(("dispatch", events))

    with UnitOfWork(session, dispatcher) as uow:
        uow.emit(["a", "b"])
        uow.emit("c")

    assert order == ["commit", ("dispatch", ["a", "b", "c"])]
    dispatcher.dispatch.assert_called_once_with(["a", "b", "c"], session)


def test_failed_commit_dispatches_nothing():
    session = MagicMock()
    session.commit.side_effect = RuntimeError("connection lost")
    dispatcher = MagicMock()

    with pytest.raises(RuntimeError):
        with UnitOfWork(session, dispatcher) as uow:
            uow.emit(["event"])

    session.rollback.assert_called_once()
    dispatcher.dispatch.assert_not_called()


def test_dispatch_error_is_logged_not_raised(caplog):
    session = MagicMock()
    dispatcher = MagicMock()
    dispatcher.dispatch.side_effect = RuntimeError("boom")

    with UnitOfWork(session, dispatcher) as uow:
        uow.emit(["event"])

    session.commit.assert_called_once()
    assert "Failed to dispatch 1 event(s) after commit" in caplog.text


def test_no_dispatcher_drops_events():
    session = MagicMock()

    with UnitOfWork(session) as uow:
        uow.emit(["event"])

    assert uow.events == []
    session.commit.assert_called_once()
