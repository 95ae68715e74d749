"""Tests for the debounce timer."""

import asyncio
from unittest.mock import MagicMock

import pytest

from godot_build_mcp.reload.debounce import DebounceTimer


class TestDebounceTimer:
    """Tests for single-slot restart semantics."""

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            DebounceTimer(-1.0, MagicMock())

    @pytest.mark.parametrize("delay", [float("nan"), float("inf")])
    def test_non_finite_delay_rejected(self, delay):
        with pytest.raises(ValueError, match="finite"):
            DebounceTimer(delay, MagicMock())

    def test_initially_idle(self):
        timer = DebounceTimer(0.1, MagicMock())
        assert not timer.is_pending
        assert timer.restart_count == 0
        assert timer.fire_count == 0

    @pytest.mark.asyncio
    async def test_fires_once_after_delay(self):
        callback = MagicMock()
        timer = DebounceTimer(0.01, callback)

        timer.restart()
        assert timer.is_pending
        await asyncio.sleep(0.05)

        callback.assert_called_once_with()
        assert not timer.is_pending
        assert timer.fire_count == 1

    @pytest.mark.asyncio
    async def test_rapid_restarts_coalesce(self):
        """Test two restarts leave one pending fire and fire once."""
        callback = MagicMock()
        timer = DebounceTimer(0.02, callback)

        timer.restart()
        timer.restart()

        assert timer.restart_count == 2
        assert timer.is_pending
        await asyncio.sleep(0.08)

        assert callback.call_count == 1
        assert timer.fire_count == 1

    @pytest.mark.asyncio
    async def test_restart_pushes_deadline(self):
        callback = MagicMock()
        timer = DebounceTimer(0.1, callback)

        timer.restart()
        await asyncio.sleep(0.06)
        timer.restart()
        await asyncio.sleep(0.06)

        # 0.12s after the first restart, but only 0.06s after the second
        callback.assert_not_called()
        await asyncio.sleep(0.15)
        callback.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_stop_cancels_pending(self):
        callback = MagicMock()
        timer = DebounceTimer(0.01, callback)

        timer.restart()
        timer.stop()
        await asyncio.sleep(0.03)

        callback.assert_not_called()
        assert not timer.is_pending

    @pytest.mark.asyncio
    async def test_can_restart_after_fire(self):
        callback = MagicMock()
        timer = DebounceTimer(0.01, callback)

        timer.restart()
        await asyncio.sleep(0.03)
        timer.restart()
        await asyncio.sleep(0.03)

        assert callback.call_count == 2

    @pytest.mark.asyncio
    async def test_callback_exception_logged(self, caplog):
        timer = DebounceTimer(0.01, MagicMock(side_effect=RuntimeError("boom")))

        timer.restart()
        await asyncio.sleep(0.03)

        assert "Debounce callback error" in caplog.text
        assert timer.fire_count == 1

    @pytest.mark.asyncio
    async def test_coroutine_callback_awaited(self):
        fired = asyncio.Event()

        async def callback():
            fired.set()

        timer = DebounceTimer(0.01, callback)
        timer.restart()

        await asyncio.wait_for(fired.wait(), timeout=1.0)
        assert timer.fire_count == 1

    def test_restart_requires_running_loop(self):
        timer = DebounceTimer(0.01, MagicMock())
        with pytest.raises(RuntimeError):
            timer.restart()

    def test_explicit_loop(self):
        loop = asyncio.new_event_loop()
        try:
            callback = MagicMock()
            timer = DebounceTimer(0.01, callback, loop=loop)

            timer.restart()
            timer.restart()
            loop.run_until_complete(asyncio.sleep(0.05))

            callback.assert_called_once_with()
        finally:
            loop.close()
