"""Cosmetic progress ticker shown while the wallet waits for a signature.

The wait has no deadline, so the bar creeps forward on its own. The ticker
is a background task and must not outlive the wait: use it as an async
context manager so it is cancelled on every exit path.

Example:
    async with ProgressTicker(job, ceiling=1.9 / 4):
        op = await wallet.originate(code, storage)
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

TICK_STEP = 0.002
TICK_INTERVAL = 1 / 60  # seconds, one display frame


class HasProgress(Protocol):
    progress: float


class ProgressTicker:
    """Advance ``target.progress`` toward a ceiling until cancelled."""

    def __init__(
        self,
        target: HasProgress,
        ceiling: float,
        step: float = TICK_STEP,
        interval: float = TICK_INTERVAL,
        on_tick: Optional[Callable[[], Any]] = None,
    ):
        """Initialize the ticker.

        Args:
            target: Object whose progress attribute is advanced
            ceiling: Progress is never pushed past this value
            step: Increment per tick
            interval: Seconds between ticks
            on_tick: Called after every increment
        """
        self.target = target
        self.ceiling = ceiling
        self.step = step
        self.interval = interval
        self.on_tick = on_tick
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            self.target.progress = min(self.ceiling, self.target.progress + self.step)
            if self.on_tick:
                self.on_tick()
            await asyncio.sleep(self.interval)

    def start(self) -> "ProgressTicker":
        if not self.running:
            self._task = asyncio.create_task(self._run())
        return self

    def cancel(self) -> None:
        """Stop ticking. Safe to call more than once."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def __aenter__(self) -> "ProgressTicker":
        return self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        return False
