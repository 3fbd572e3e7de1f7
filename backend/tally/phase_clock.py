"""Campaign lifecycle phase derived from start/end timestamps."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

from tally.models import Phase, PhaseState

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60


def _countdown(phase: Phase, remaining: int) -> PhaseState:
    remaining = max(remaining, 0)
    return PhaseState(
        phase=phase,
        days=remaining // SECONDS_PER_DAY,
        hours=(remaining % SECONDS_PER_DAY) // SECONDS_PER_HOUR,
        minutes=(remaining % SECONDS_PER_HOUR) // SECONDS_PER_MINUTE,
        seconds=remaining % SECONDS_PER_MINUTE,
    )


def compute_phase(start_time: Any, end_time: Any, now: float) -> PhaseState:
    """Phase of a campaign at ``now`` (unix seconds).

    - loading: either timestamp is unset (None or 0), or a timestamp or
      ``now`` is not a finite number
    - preparing: now < start; counts down to start
    - active: start <= now <= end; counts down to end
    - ended: now > end; terminal, all counters zero
    """
    try:
        start = int(start_time or 0)
        end = int(end_time or 0)
    except (TypeError, ValueError, OverflowError):
        return PhaseState(phase=Phase.LOADING)
    if start <= 0 or end <= 0:
        return PhaseState(phase=Phase.LOADING)

    try:
        current = int(now)
    except (TypeError, ValueError, OverflowError):
        return PhaseState(phase=Phase.LOADING)
    if current < start:
        return _countdown(Phase.PREPARING, start - current)
    if current <= end:
        return _countdown(Phase.ACTIVE, end - current)
    return PhaseState(phase=Phase.ENDED)


class PhaseTicker:
    """Recompute a campaign's phase once per second on the running loop.

    The owner must stop the ticker when its view goes away, either with
    ``await ticker.stop()`` or by using it as an async context manager. The
    ticker also stops itself once the campaign has ended.

    Example:
        async with PhaseTicker(campaign.start_time, campaign.end_time, render):
            await wait_until_view_closed()
    """

    def __init__(
        self,
        start_time: int,
        end_time: int,
        on_tick: Callable[[PhaseState], None],
        interval: float = 1.0,
        clock: Callable[[], float] = time.time,
    ):
        self.start_time = start_time
        self.end_time = end_time
        self.on_tick = on_tick
        self.interval = interval
        self.clock = clock
        self.state = PhaseState(phase=Phase.LOADING)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Calling start on a running ticker is a no-op."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the timer task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            self.state = compute_phase(self.start_time, self.end_time, self.clock())
            self.on_tick(self.state)
            if self.state.is_terminal:
                logger.debug("Campaign ended; phase ticker stopping")
                return
            await asyncio.sleep(self.interval)

    async def __aenter__(self) -> PhaseTicker:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
