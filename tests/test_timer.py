"""Tests for the countdown timer and timing policy selection."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from quiz_engine.core.timer import TimerManager, TimerPolicy

from conftest import build_test, choice_question


# ============================================================================
# POLICY
# ============================================================================


class TestTimerPolicy:
    """Selection of the timing policy from the test definition."""

    @pytest.mark.parametrize(
        "total, per_question, expected",
        [
            (2, None, TimerPolicy.TOTAL),
            (2, 10, TimerPolicy.TOTAL),
            (None, 10, TimerPolicy.PER_QUESTION),
            (0, 10, TimerPolicy.PER_QUESTION),
            (-1, 10, TimerPolicy.PER_QUESTION),
            (None, None, TimerPolicy.NONE),
            (0, 0, TimerPolicy.NONE),
        ],
    )
    def test_policy_selection(self, total, per_question, expected):
        """A positive total limit always disables the per-question timer."""
        test = build_test([choice_question(1)], total_time_limit=total, time_per_question=per_question)
        assert TimerPolicy.for_test(test) is expected

    def test_total_limit_is_minutes(self):
        """total_time_limit = 1 gives a 60 second countdown."""
        test = build_test([choice_question(1)], total_time_limit=1, time_per_question=10)
        assert TimerPolicy.TOTAL.initial_seconds(test) == 60

    def test_per_question_seconds(self):
        """time_per_question is used as is."""
        test = build_test([choice_question(1)], time_per_question=10)
        assert TimerPolicy.PER_QUESTION.initial_seconds(test) == 10

    def test_no_timer_is_none(self):
        """No-timer mode has no counter at all."""
        test = build_test([choice_question(1)])
        assert TimerPolicy.NONE.initial_seconds(test) is None


# ============================================================================
# MANUAL TICKS
# ============================================================================


class TestTimerTick:
    """Countdown logic driven through tick()."""

    async def test_tick_decrements_and_notifies(self):
        """Each tick lowers the counter by one and reports it."""
        on_tick = MagicMock()
        timer = TimerManager(AsyncMock(), on_tick=on_tick, interval=3600)
        timer.reset(3)

        await timer.tick()

        assert timer.remaining == 2
        on_tick.assert_called_once_with(2)

    async def test_expiry_fires_once(self):
        """Reaching zero awaits on_expire exactly once, further ticks do nothing."""
        on_expire = AsyncMock()
        timer = TimerManager(on_expire, interval=3600)
        timer.reset(2)

        for _ in range(5):
            await timer.tick()

        on_expire.assert_awaited_once()
        assert timer.remaining == 0

    async def test_reset_rearms_expiry(self):
        """After a reset the countdown can expire again."""
        on_expire = AsyncMock()
        timer = TimerManager(on_expire, interval=3600)
        timer.reset(1)
        await timer.tick()
        timer.reset(1)
        await timer.tick()

        assert on_expire.await_count == 2

    async def test_no_counter_never_expires(self):
        """A None counter (no-timer mode) ignores ticks."""
        on_expire = AsyncMock()
        timer = TimerManager(on_expire, interval=3600)

        await timer.tick()

        assert timer.remaining is None
        on_expire.assert_not_awaited()


# ============================================================================
# INTERVAL LOOP
# ============================================================================


class TestTimerLoop:
    """The owned asyncio task behind start/stop."""

    async def test_runs_to_expiry(self):
        """A started timer counts down on its own and expires once."""
        on_expire = AsyncMock()
        timer = TimerManager(on_expire, interval=0.01)

        timer.start(3)
        await asyncio.sleep(0.2)

        on_expire.assert_awaited_once()
        assert timer.remaining == 0
        timer.stop()

    async def test_start_twice_is_noop(self):
        """A second start keeps the first task and counter."""
        timer = TimerManager(AsyncMock(), interval=3600)
        timer.start(5)
        task = timer._task

        timer.start(10)

        assert timer._task is task
        assert timer.remaining == 5
        timer.stop()

    async def test_stop_is_idempotent(self):
        """stop() cancels the task and can be repeated."""
        timer = TimerManager(AsyncMock(), interval=3600)
        timer.start(5)
        task = timer._task

        timer.stop()
        timer.stop()
        await asyncio.sleep(0.01)

        assert not timer.is_running
        assert timer._task is None
        assert task.cancelled()

    async def test_stop_before_start(self):
        """Stopping a timer that never ran is harmless."""
        timer = TimerManager(AsyncMock(), interval=3600)
        timer.stop()
        assert not timer.is_running

    async def test_stop_inside_expiry_callback(self):
        """on_expire may stop the timer and still run to completion."""
        finished = asyncio.Event()

        async def on_expire():
            timer.stop()
            await asyncio.sleep(0.01)
            finished.set()

        timer = TimerManager(on_expire, interval=0.01)
        timer.start(1)

        await asyncio.wait_for(finished.wait(), timeout=1)
        assert not timer.is_running

    async def test_restart_after_stop(self):
        """A stopped timer can be started again with a new counter."""
        on_expire = AsyncMock()
        timer = TimerManager(on_expire, interval=0.01)
        timer.start(100)
        timer.stop()

        timer.start(1)
        await asyncio.sleep(0.1)

        on_expire.assert_awaited_once()
        timer.stop()


# ============================================================================
# CALLBACK FAILURES
# ============================================================================


class TestTimerCallbackErrors:
    """A raising callback must not freeze the countdown."""

    async def test_tick_callback_error_keeps_counting(self):
        """on_tick raising on every tick still reaches expiry."""
        on_expire = AsyncMock()
        timer = TimerManager(on_expire, on_tick=MagicMock(side_effect=RuntimeError("render")), interval=0.005)

        timer.start(3)
        await asyncio.sleep(0.2)

        on_expire.assert_awaited_once()
        assert timer.remaining == 0
        timer.stop()

    async def test_expiry_error_is_contained(self):
        """A failing on_expire leaves the task alive and the timer reusable."""
        on_expire = AsyncMock(side_effect=RuntimeError("boom"))
        timer = TimerManager(on_expire, interval=0.005)

        timer.start(1)
        await asyncio.sleep(0.05)
        task = timer._task

        on_expire.assert_awaited_once()
        assert not task.done()

        timer.stop()
        timer.start(2)
        assert timer.remaining == 2
        assert timer._task is not task
        timer.stop()

    async def test_task_ending_on_its_own_resets_state(self):
        """If the loop task dies, start() is accepted again."""
        timer = TimerManager(AsyncMock(), interval=0.005)

        async def crash():
            raise RuntimeError("loop failure")

        timer.tick = crash
        timer.start(5)
        task = timer._task
        await asyncio.sleep(0.05)

        assert task.done()
        assert not timer.is_running
        assert timer._task is None

        del timer.tick
        timer.start(1)
        assert timer.is_running
        timer.stop()
        # Collect the crashed task's exception
        assert isinstance(task.exception(), RuntimeError)
