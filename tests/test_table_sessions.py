"""Tests for the table session registry"""

import asyncio

import pytest

from pos_core.exceptions import ConflictError, InvalidSelection, NotFound, SessionClosed, Unauthorized
from pos_core.services import table_sessions
from pos_core.services.scope import ActorScope


async def test_create_session_issues_token(test_db, cashier_scope, test_branch, publisher):
    session = await table_sessions.create_session(test_db, cashier_scope, 5, publisher)

    assert session.branch_id == test_branch.id
    assert session.table_number == 5
    assert session.status == "OPEN"
    assert len(session.token) >= 24
    assert publisher.types() == ["qr_session_opened"]


async def test_second_open_session_for_table_conflicts(test_db, cashier_scope, test_branch, publisher):
    await table_sessions.create_session(test_db, cashier_scope, 5, publisher)

    with pytest.raises(ConflictError):
        await table_sessions.create_session(test_db, cashier_scope, 5, publisher)

    assert publisher.types() == ["qr_session_opened"]


async def test_concurrent_open_for_same_table(session_factory, cashier_scope, test_branch, publisher):
    async def attempt():
        async with session_factory() as db:
            try:
                await table_sessions.create_session(db, cashier_scope, 7, publisher)
                return "ok"
            except ConflictError:
                return "conflict"

    results = await asyncio.gather(attempt(), attempt())

    assert sorted(results) == ["conflict", "ok"]

    async with session_factory() as db:
        open_sessions = await table_sessions.list_sessions(db, cashier_scope)
    assert [s.table_number for s in open_sessions] == [7]


async def test_same_table_number_in_other_branch(test_db, manager_scope, test_branch, other_branch, publisher):
    first = await table_sessions.create_session(test_db, manager_scope, 1, publisher, branch_id=test_branch.id)
    second = await table_sessions.create_session(test_db, manager_scope, 1, publisher, branch_id=other_branch.id)

    assert first.id != second.id


async def test_invalid_table_number(test_db, cashier_scope, test_branch, publisher):
    with pytest.raises(InvalidSelection):
        await table_sessions.create_session(test_db, cashier_scope, 0, publisher)


async def test_close_then_reopen_table(test_db, cashier_scope, test_branch, publisher):
    session = await table_sessions.create_session(test_db, cashier_scope, 3, publisher)

    closed = await table_sessions.close_session(test_db, cashier_scope, session.id, publisher)
    assert closed.status == "CLOSED"
    assert closed.closed_at is not None
    assert closed.open_key is None

    reopened = await table_sessions.create_session(test_db, cashier_scope, 3, publisher)
    assert reopened.id != session.id
    assert reopened.token != session.token


async def test_close_is_idempotent(test_db, cashier_scope, test_branch, publisher):
    session = await table_sessions.create_session(test_db, cashier_scope, 4, publisher)

    await table_sessions.close_session(test_db, cashier_scope, session.id, publisher)
    again = await table_sessions.close_session(test_db, cashier_scope, session.id, publisher)

    assert again.status == "CLOSED"
    assert publisher.types() == ["qr_session_opened", "qr_session_closed"]


async def test_resolve_and_require_open(test_db, cashier_scope, test_branch, publisher):
    session = await table_sessions.create_session(test_db, cashier_scope, 8, publisher)

    assert (await table_sessions.resolve(test_db, session.token)).id == session.id

    await table_sessions.close_session(test_db, cashier_scope, session.id, publisher)

    # Closed sessions still resolve, but cannot take orders
    assert (await table_sessions.resolve(test_db, session.token)).status == "CLOSED"
    with pytest.raises(SessionClosed):
        await table_sessions.require_open(test_db, session.token)


async def test_resolve_unknown_token(test_db):
    with pytest.raises(NotFound):
        await table_sessions.resolve(test_db, "no-such-token")


async def test_list_sessions_by_status(test_db, cashier_scope, test_branch, publisher):
    open_one = await table_sessions.create_session(test_db, cashier_scope, 1, publisher)
    closed_one = await table_sessions.create_session(test_db, cashier_scope, 2, publisher)
    await table_sessions.close_session(test_db, cashier_scope, closed_one.id, publisher)

    assert [s.id for s in await table_sessions.list_sessions(test_db, cashier_scope)] == [open_one.id]
    assert [s.id for s in await table_sessions.list_sessions(test_db, cashier_scope, "closed")] == [closed_one.id]
    assert len(await table_sessions.list_sessions(test_db, cashier_scope, "ALL")) == 2

    with pytest.raises(InvalidSelection):
        await table_sessions.list_sessions(test_db, cashier_scope, "PAUSED")


async def test_cashier_cannot_open_session_in_other_branch(test_db, cashier_scope, other_branch, publisher):
    with pytest.raises(Unauthorized):
        await table_sessions.create_session(test_db, cashier_scope, 1, publisher, branch_id=other_branch.id)


async def test_cashier_cannot_close_other_branch_session(test_db, manager_scope, other_branch, cashier_scope, publisher):
    session = await table_sessions.create_session(test_db, manager_scope, 9, publisher, branch_id=other_branch.id)

    with pytest.raises(Unauthorized):
        await table_sessions.close_session(test_db, cashier_scope, session.id, publisher)


async def test_manager_needs_branch_context(test_db, manager_scope, test_branch, publisher):
    with pytest.raises(Unauthorized):
        await table_sessions.create_session(test_db, manager_scope, 1, publisher)


async def test_manager_of_other_org_is_denied(test_db, test_branch, publisher):
    from uuid import uuid4

    outsider = ActorScope(actor_id="x", role="MANAGER", organization_id=uuid4())

    with pytest.raises(Unauthorized):
        await table_sessions.create_session(test_db, outsider, 1, publisher, branch_id=test_branch.id)
