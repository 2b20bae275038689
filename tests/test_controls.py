"""Tests for pause, resume and cancel controls."""

import asyncio

from kleerframe.dedup.controls import PipelineControls


class TestPipelineControls:
    def test_initial_state(self):
        controls = PipelineControls()
        assert not controls.is_paused
        assert not controls.is_cancelled

    def test_pause_and_resume(self):
        controls = PipelineControls()
        controls.pause()
        assert controls.is_paused
        controls.resume()
        assert not controls.is_paused

    def test_cancel_clears_pause(self):
        controls = PipelineControls()
        controls.pause()
        controls.cancel()
        assert controls.is_cancelled
        assert not controls.is_paused

    def test_pause_after_cancel_ignored(self):
        controls = PipelineControls()
        controls.cancel()
        controls.pause()
        assert not controls.is_paused

    def test_wait_when_running(self):
        assert asyncio.run(PipelineControls().wait_if_paused()) is True

    def test_wait_when_cancelled(self):
        controls = PipelineControls()
        controls.cancel()
        assert asyncio.run(controls.wait_if_paused()) is False

    def test_wait_blocks_until_resume(self):
        controls = PipelineControls()
        controls.pause()

        async def _run():
            waiter = asyncio.create_task(controls.wait_if_paused())
            await asyncio.sleep(0.01)
            assert not waiter.done()
            controls.resume()
            return await asyncio.wait_for(waiter, timeout=5)

        assert asyncio.run(_run()) is True

    def test_cancel_wakes_waiter(self):
        controls = PipelineControls()
        controls.pause()

        async def _run():
            waiter = asyncio.create_task(controls.wait_if_paused())
            await asyncio.sleep(0.01)
            controls.cancel()
            return await asyncio.wait_for(waiter, timeout=5)

        assert asyncio.run(_run()) is False
