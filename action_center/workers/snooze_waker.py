"""SnoozeWaker — background poller returning elapsed snoozes to the open queue.

Runs as an asyncio.Task started in the FastAPI lifespan, NOT a separate
process. Each cycle calls ``wake_due`` and sleeps ``interval`` seconds.
Failures are logged and polling continues.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime

import structlog

logger = structlog.get_logger(__name__)

_DEFAULT_INTERVAL = 60.0


class SnoozeWaker:
    """Periodic snooze expiry.

    Usage:
        waker = SnoozeWaker(action_center.wake_due, interval=60)
        task = asyncio.create_task(waker.run())
        ...
        await waker.stop(task)
    """

    def __init__(
        self,
        wake_due: Callable[[datetime | None], Awaitable[list[str]]],
        interval: float = _DEFAULT_INTERVAL,
    ) -> None:
        self.wake_due = wake_due
        self.interval = interval
        self.stop_event = asyncio.Event()

    async def run_once(self) -> list[str]:
        try:
            return await self.wake_due(None)
        except Exception as exc:
            logger.warning("snooze_wake_failed", error=str(exc), error_type=type(exc).__name__)
            return []

    async def run(self) -> None:
        """Wake due items every ``interval`` seconds until ``stop`` is called."""
        logger.info("snooze_waker_started", interval_seconds=self.interval)

        while not self.stop_event.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self.stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue

        logger.info("snooze_waker_stopped")

    async def stop(self, task: asyncio.Task | None = None) -> None:
        self.stop_event.set()
        if task is not None:
            await task
