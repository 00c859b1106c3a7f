"""
Long-running operation poller.

Backend operations such as device discovery return as soon as they are
started. ``poll_until`` repeatedly queries a status coroutine until a
terminal condition is observed or the timeout elapses, and hands back the
best-known result either way.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from motionbridge.core.types import PollOutcome, PollState

logger = logging.getLogger("Motionbridge.mcp.poller")

StatusFn = Callable[[], Awaitable[Any]]
DoneFn = Callable[[Any], bool]


async def poll_until(
    status_fn: StatusFn,
    is_done: DoneFn,
    timeout: float,
    interval: float,
    target: str = "",
) -> PollOutcome:
    """
    Poll ``status_fn`` every ``interval`` seconds until ``is_done`` or ``timeout``.

    A failing status call is logged and the loop keeps going. A timed-out
    outcome is never produced before ``timeout`` seconds have elapsed.
    """
    state = PollState(target=target, started_at=time.monotonic())

    while True:
        state.poll_count += 1
        try:
            result = await status_fn()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Status check %d for %s failed: %s", state.poll_count, target or "operation", e)
        else:
            state.last_result = result
            if is_done(result):
                elapsed = time.monotonic() - state.started_at
                logger.info(
                    "Poll for %s finished after %d checks (%.2fs)",
                    target or "operation",
                    state.poll_count,
                    elapsed,
                )
                return PollOutcome(
                    result=result,
                    elapsed=elapsed,
                    timed_out=False,
                    polls=state.poll_count,
                )

        elapsed = time.monotonic() - state.started_at
        remaining = timeout - elapsed
        if remaining <= 0:
            logger.info(
                "Poll for %s timed out after %d checks (%.2fs)",
                target or "operation",
                state.poll_count,
                elapsed,
            )
            return PollOutcome(
                result=state.last_result,
                elapsed=elapsed,
                timed_out=True,
                polls=state.poll_count,
            )
        await asyncio.sleep(min(interval, remaining))
