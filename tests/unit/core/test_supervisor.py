"""Unit tests for the RecordingSupervisor main loop."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from rtsp_recorder.core.retry_governor import RetryPolicy
from rtsp_recorder.core.segment_recorder import SegmentOutcome, SegmentRecorder, SegmentResult
from rtsp_recorder.core.supervisor import RecordingSupervisor
from tests.infrastructure.mocks import make_capture_factory


def _result(outcome, size=0):
    return SegmentResult(outcome=outcome, size_bytes=size)


class ScriptedRecorder:
    """Returns queued results; requests shutdown once the script runs out."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.supervisor = None
        self.stop = AsyncMock()

    async def record_segment(self):
        self.calls += 1
        if not self.outcomes:
            self.supervisor.shutdown_event.set()
            return _result(SegmentOutcome.INTERRUPTED)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _supervisor(config, outcomes, **kwargs):
    recorder = ScriptedRecorder(outcomes)
    housekeeping = AsyncMock()
    supervisor = RecordingSupervisor(config, recorder=recorder, housekeeping=housekeeping, **kwargs)
    recorder.supervisor = supervisor
    pauses = []

    async def record_pause(delay):
        pauses.append(delay)

    supervisor._pause = record_pause
    return supervisor, recorder, housekeeping, pauses


class TestLoopDecisions:

    @pytest.mark.asyncio
    async def test_failure_then_success(self, recorder_config):
        supervisor, recorder, _, pauses = _supervisor(
            recorder_config,
            [_result(SegmentOutcome.TOOL_FAILED), _result(SegmentOutcome.SUCCESS, 1000)],
        )

        stats = await supervisor.run()

        assert pauses == [5.0, 1.0]
        assert stats.segments_failed == 1
        assert stats.segments_recorded == 1
        assert stats.bytes_recorded == 1000
        assert supervisor.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_ten_failures_trigger_cooldown_and_reset(self, recorder_config):
        failures = [_result(SegmentOutcome.NO_DISK_SPACE) for _ in range(10)]
        supervisor, _, _, pauses = _supervisor(recorder_config, failures)

        stats = await supervisor.run()

        assert pauses == [5.0] * 9 + [30.0]
        assert supervisor.consecutive_failures == 0
        assert stats.cooldowns == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_counts_as_failure(self, recorder_config):
        supervisor, _, _, pauses = _supervisor(recorder_config, [RuntimeError("boom")])

        stats = await supervisor.run()

        assert pauses == [5.0]
        assert stats.segments_failed == 1

    @pytest.mark.asyncio
    async def test_interrupted_segment_ends_loop_without_pause(self, recorder_config):
        supervisor, recorder, _, pauses = _supervisor(
            recorder_config, [_result(SegmentOutcome.INTERRUPTED)]
        )

        await supervisor.run()

        assert recorder.calls == 1
        assert pauses == []

    @pytest.mark.asyncio
    async def test_housekeeping_when_streak_is_multiple_of_ten(self, recorder_config):
        outcomes = [_result(SegmentOutcome.TOOL_FAILED) for _ in range(3)]
        outcomes.append(_result(SegmentOutcome.SUCCESS, 10))
        supervisor, _, housekeeping, _ = _supervisor(recorder_config, outcomes)

        await supervisor.run()

        # Iteration 1 (streak 0) and iteration 5 (streak reset by success).
        assert housekeeping.await_count == 2
        housekeeping.assert_awaited_with(recorder_config)


class TestEndToEndWithRecorder:

    @pytest.mark.asyncio
    async def test_failed_capture_increments_streak_and_waits(self, recorder_config):
        factory = make_capture_factory(exit_code=1, write_bytes=0)
        recorder = SegmentRecorder(recorder_config, capture_factory=factory)
        supervisor = RecordingSupervisor(recorder_config, recorder=recorder, housekeeping=AsyncMock())
        observed = []

        async def pause(delay):
            observed.append((delay, supervisor.consecutive_failures))
            supervisor.shutdown_event.set()

        supervisor._pause = pause

        stats = await supervisor.run()

        assert observed == [(5.0, 1)]
        assert stats.segments_failed == 1
        assert not factory.created[0].output_path.exists()


class TestShutdown:

    @pytest.mark.asyncio
    async def test_stop_interrupts_pause(self, recorder_config):
        failures = [_result(SegmentOutcome.TOOL_FAILED) for _ in range(5)]
        recorder = ScriptedRecorder(failures)
        supervisor = RecordingSupervisor(
            recorder_config,
            recorder=recorder,
            housekeeping=AsyncMock(),
            policy=RetryPolicy(retry_delay=60.0),
        )
        recorder.supervisor = supervisor

        task = asyncio.create_task(supervisor.run())
        while recorder.calls == 0:
            await asyncio.sleep(0)
        await supervisor.stop()
        stats = await asyncio.wait_for(task, timeout=2.0)

        assert recorder.calls == 1
        assert stats.segments_failed == 1
        recorder.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_terminates_active_capture(self, recorder_config):
        factory = make_capture_factory(write_bytes=256, run_for=60.0)
        recorder = SegmentRecorder(recorder_config, capture_factory=factory)
        supervisor = RecordingSupervisor(recorder_config, recorder=recorder, housekeeping=AsyncMock())

        task = asyncio.create_task(supervisor.run())
        while recorder.active_capture is None:
            await asyncio.sleep(0)
        await supervisor.stop()
        stats = await asyncio.wait_for(task, timeout=2.0)

        assert factory.created[0].stop_requested is True
        assert len(factory.created) == 1
        assert stats.segments_recorded == 0
        assert stats.segments_failed == 0
