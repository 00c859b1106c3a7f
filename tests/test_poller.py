"""Tests for the long-running operation poller."""

import asyncio
import time

import pytest

from motionbridge.mcp.poller import poll_until


def _scripted(results):
    calls = {"count": 0}

    async def status():
        index = min(calls["count"], len(results) - 1)
        calls["count"] += 1
        value = results[index]
        if isinstance(value, Exception):
            raise value
        return value

    return status, calls


@pytest.mark.asyncio
async def test_returns_first_done_result():
    status, calls = _scripted([[], [], [], ["dev-a", "dev-b"]])

    outcome = await poll_until(status, lambda r: len(r) > 0, timeout=1.0, interval=0.01)

    assert outcome.result == ["dev-a", "dev-b"]
    assert outcome.timed_out is False
    assert outcome.elapsed >= 0.03
    assert outcome.polls == 4
    assert calls["count"] == 4


@pytest.mark.asyncio
async def test_times_out_with_last_result_never_early():
    status, _ = _scripted([[]])
    started = time.monotonic()

    outcome = await poll_until(status, lambda r: len(r) > 0, timeout=0.2, interval=0.05)

    wall = time.monotonic() - started
    assert outcome.timed_out is True
    assert outcome.result == []
    assert outcome.elapsed >= 0.2
    assert wall >= 0.2
    assert wall < 1.0


@pytest.mark.asyncio
async def test_status_failures_do_not_stop_the_loop():
    status, calls = _scripted([RuntimeError("backend restarting"), RuntimeError("still down"), {"done": True}])

    outcome = await poll_until(status, lambda r: r.get("done"), timeout=1.0, interval=0.01)

    assert outcome.timed_out is False
    assert outcome.result == {"done": True}
    assert calls["count"] == 3


@pytest.mark.asyncio
async def test_timeout_with_only_failures_returns_none():
    status, _ = _scripted([RuntimeError("down")])

    outcome = await poll_until(status, lambda r: True, timeout=0.05, interval=0.01)

    assert outcome.timed_out is True
    assert outcome.result is None


@pytest.mark.asyncio
async def test_concurrent_polls_do_not_block_each_other():
    slow, _ = _scripted([[]])
    fast, _ = _scripted([[], ["x"]])

    slow_task = asyncio.ensure_future(poll_until(slow, bool, timeout=0.3, interval=0.02))
    fast_outcome = await poll_until(fast, bool, timeout=1.0, interval=0.01)

    assert fast_outcome.timed_out is False
    assert not slow_task.done()
    slow_outcome = await slow_task
    assert slow_outcome.timed_out is True
