"""Tests for the session registry."""

import asyncio

import pytest

from motionbridge.core.errors import SessionNotFoundError
from motionbridge.mcp.sessions import SessionRegistry


class _Transport:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_create_lookup_destroy():
    registry = SessionRegistry()
    transport = _Transport()

    session = await registry.create(transport)

    assert registry.count() == 1
    found = await registry.lookup(session.session_id)
    assert found.transport is transport

    await registry.destroy(session.session_id)
    assert await registry.lookup(session.session_id) is None
    assert registry.count() == 0


@pytest.mark.asyncio
async def test_lookup_of_unknown_or_empty_id_is_none():
    registry = SessionRegistry()
    assert await registry.lookup("nope") is None
    assert await registry.lookup(None) is None
    assert await registry.lookup("") is None


@pytest.mark.asyncio
async def test_destroy_twice_raises():
    registry = SessionRegistry()
    session = await registry.create(_Transport())
    await registry.destroy(session.session_id)

    with pytest.raises(SessionNotFoundError) as exc_info:
        await registry.destroy(session.session_id)
    assert exc_info.value.session_id == session.session_id


@pytest.mark.asyncio
async def test_concurrent_creates_get_distinct_ids():
    registry = SessionRegistry()

    sessions = await asyncio.gather(*(registry.create(_Transport()) for _ in range(50)))

    ids = {s.session_id for s in sessions}
    assert len(ids) == 50
    assert registry.count() == 50


@pytest.mark.asyncio
async def test_destroying_one_session_leaves_others_alone():
    registry = SessionRegistry()
    first = await registry.create(_Transport())
    second = await registry.create(_Transport())

    await registry.destroy(first.session_id)

    assert await registry.lookup(second.session_id) is second


@pytest.mark.asyncio
async def test_close_all_closes_every_transport():
    registry = SessionRegistry()
    transports = [_Transport() for _ in range(3)]
    sessions = [await registry.create(t) for t in transports]

    await registry.close_all()

    assert registry.count() == 0
    assert all(t.closed for t in transports)
    for session in sessions:
        assert await registry.lookup(session.session_id) is None


@pytest.mark.asyncio
async def test_create_destroy_cycles_leave_no_state_behind():
    registry = SessionRegistry()
    seen = set()

    for _ in range(1000):
        session = await registry.create(_Transport())
        seen.add(session.session_id)
        await registry.destroy(session.session_id)

    assert len(seen) == 1000
    assert registry.count() == 0
    assert registry._sessions == {}
    assert vars(registry).keys() == {"_sessions", "_lock"}
