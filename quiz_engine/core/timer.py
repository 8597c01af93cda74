"""Countdown timer for quiz sessions and timing policy selection."""
import asyncio
import enum
import logging
from typing import Awaitable, Callable, Optional

from quiz_engine.api.models import TestDefinition
from quiz_engine.config import settings

logger = logging.getLogger(__name__)


class TimerPolicy(enum.Enum):
    """Timing policy of a test, fixed once the test is loaded."""
    TOTAL = "total"
    PER_QUESTION = "per_question"
    NONE = "none"

    @classmethod
    def for_test(cls, test: TestDefinition) -> "TimerPolicy":
        # A total limit always wins over the per-question one
        if test.total_time_limit is not None and test.total_time_limit > 0:
            return cls.TOTAL
        if test.time_per_question is not None and test.time_per_question > 0:
            return cls.PER_QUESTION
        return cls.NONE

    def initial_seconds(self, test: TestDefinition) -> Optional[int]:
        """Counter value at the start of an attempt (None when no timer)."""
        if self is TimerPolicy.TOTAL:
            return test.total_time_limit_seconds
        if self is TimerPolicy.PER_QUESTION:
            return test.time_per_question
        return None


class TimerManager:
    """
    Owns the single countdown task of a session.

    Ticks every ``interval`` seconds while running, decrementing ``remaining``
    and awaiting ``on_expire`` once when it reaches zero. ``start`` on a
    running timer is a no-op; ``stop`` is idempotent and takes effect
    immediately. Exceptions raised by the callbacks are logged and do not
    end the countdown task.
    """

    def __init__(
        self,
        on_expire: Callable[[], Awaitable[None]],
        *,
        on_tick: Optional[Callable[[int], None]] = None,
        interval: Optional[float] = None,
    ):
        self._on_expire = on_expire
        self._on_tick = on_tick
        self.interval = settings.TIMER_TICK_SECONDS if interval is None else interval
        self._remaining: Optional[int] = None
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def remaining(self) -> Optional[int]:
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, seconds: int) -> None:
        """Start counting down from ``seconds``. No-op if already running."""
        if self._running:
            logger.debug("Timer already running, start(%s) ignored", seconds)
            return
        self._remaining = seconds
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Timer started at %ss", seconds)

    def reset(self, seconds: Optional[int]) -> None:
        """Set the counter without touching the running state."""
        self._remaining = seconds

    def stop(self) -> None:
        """Cancel the countdown task. Safe to call repeatedly."""
        task, self._task = self._task, None
        was_running, self._running = self._running, False
        # on_expire runs inside the timer task and may be the caller here;
        # it must not cancel itself mid-callback.
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        if was_running:
            logger.debug("Timer stopped at %ss", self._remaining)

    async def tick(self) -> None:
        """One countdown step; the interval loop calls this every ``interval``."""
        if self._remaining is None or self._remaining <= 0:
            return
        self._remaining -= 1
        if self._on_tick is not None:
            try:
                self._on_tick(self._remaining)
            except Exception:
                logger.exception("Timer tick callback failed at %ss", self._remaining)
        if self._remaining <= 0:
            self._remaining = 0
            logger.debug("Timer expired")
            try:
                await self._on_expire()
            except Exception:
                logger.exception("Timer expiry callback failed")

    async def _run(self) -> None:
        me = self._task
        try:
            while self._running and self._task is me:
                await asyncio.sleep(self.interval)
                if not self._running or self._task is not me:
                    break
                await self.tick()
        finally:
            # Task ended without stop(): leave the manager startable again
            if self._task is me:
                self._task = None
                self._running = False


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        # stop() from synchronous teardown with no running loop
        return None
