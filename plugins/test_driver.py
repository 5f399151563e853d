#!/usr/bin/env python3
"""
Tests for the frame driver loop.

Verifies:
1. One step then one render per frame, never interleaved across frames
2. Sink content always equals the latest frame's render
3. The first displayed frame is post-step, never the initial state
4. HALT policy: failure stops scheduling and the sink keeps the last good frame
5. CONTINUE policy: failures are skipped and the loop keeps going
6. start()/stop() state machine rules
7. Failures an engine raises itself keep their kind; one driver failing
   does not starve another on the same host
"""

import io
import logging

import pytest

from life_loop.config import DriverConfig, ErrorPolicy
from life_loop.driver import DriverState, FrameDriver
from life_loop.errors import (
    DriverHaltedError,
    EngineRenderFailure,
    EngineStepFailure,
    SinkWriteFailure,
)
from life_loop.scheduling import ManualFrameScheduler
from life_loop.sinks import BufferSink, StreamSink


class RecordingEngine:
    """Engine whose render is state-N after N successful steps."""

    def __init__(self, log=None, fail_step_on=(), fail_render_on=()):
        self.log = log if log is not None else []
        self.attempts = 0  # step() calls, including failed ones
        self.steps = 0
        self.renders = 0
        self.fail_step_on = set(fail_step_on)
        self.fail_render_on = set(fail_render_on)

    def step(self):
        self.attempts += 1
        self.log.append(("step", self.attempts))
        if self.attempts in self.fail_step_on:
            raise RuntimeError(f"step {self.attempts} exploded")
        self.steps += 1

    def render(self):
        self.renders += 1
        self.log.append(("render", self.steps))
        if self.steps in self.fail_render_on:
            raise RuntimeError("render exploded")
        return f"state-{self.steps}"


class RecordingSink(BufferSink):
    def __init__(self, log, initial=""):
        super().__init__(initial=initial, keep_history=True)
        self.log = log

    def write(self, text):
        self.log.append(("write", text))
        super().write(text)


def _driver(config=None):
    host = ManualFrameScheduler()
    return host, FrameDriver(host, config)


def test_each_frame_is_step_render_write():
    log = []
    host, driver = _driver()
    driver.start(RecordingEngine(log), RecordingSink(log))

    assert host.advance(3) == 3
    assert log == [
        ("step", 1), ("render", 1), ("write", "state-1"),
        ("step", 2), ("render", 2), ("write", "state-2"),
        ("step", 3), ("render", 3), ("write", "state-3"),
    ]
    assert driver.frame_count == 3
    assert host.pending == 1, "Driver should have re-registered for frame 4"


def test_start_only_registers():
    engine = RecordingEngine()
    host, driver = _driver()
    driver.start(engine, BufferSink())

    assert driver.state is DriverState.RUNNING
    assert host.pending == 1
    assert engine.steps == 0 and engine.renders == 0, "start() must not run a frame"


def test_first_displayed_frame_is_post_step():
    engine = RecordingEngine()
    sink = BufferSink(keep_history=True)
    assert engine.render() == "state-0"  # initial state

    host, driver = _driver()
    driver.start(engine, sink)
    host.advance(1)

    assert "state-0" not in sink.history
    assert sink.content == "state-1"


def test_thousand_frames():
    engine = RecordingEngine()
    sink = BufferSink()
    host, driver = _driver()
    driver.start(engine, sink)

    host.advance(1000)

    assert engine.steps == 1000
    assert engine.renders == 1000
    assert sink.writes == 1000
    assert sink.content == "state-1000"


def test_sink_matches_every_frame():
    engine = RecordingEngine()
    sink = BufferSink(keep_history=True)
    host, driver = _driver()
    driver.start(engine, sink)
    host.advance(25)

    assert sink.history == [f"state-{k}" for k in range(1, 26)]


def test_step_failure_halts_and_keeps_previous_frame(caplog):
    engine = RecordingEngine(fail_step_on={4})
    sink = BufferSink()
    host, driver = _driver()
    driver.start(engine, sink)
    host.advance(3)

    with caplog.at_level(logging.ERROR, logger="life_loop.driver"):
        with pytest.raises(EngineStepFailure) as excinfo:
            host.advance(1)

    assert excinfo.value.frame == 4
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert driver.state is DriverState.HALTED
    assert host.pending == 0, "No frame 5 may be scheduled"
    assert sink.content == "state-3"
    assert engine.renders == 3, "Render must not run after a failed step"
    assert "Frame 4 step failed" in caplog.text

    assert host.advance(10) == 0
    assert engine.steps == 3


def test_render_failure_halts_and_keeps_previous_frame():
    engine = RecordingEngine(fail_render_on={2})
    sink = BufferSink(initial="boot")
    host, driver = _driver()
    driver.start(engine, sink)
    host.advance(1)

    with pytest.raises(EngineRenderFailure) as excinfo:
        host.advance(1)

    assert excinfo.value.frame == 2
    assert excinfo.value.kind == "render"
    assert sink.content == "state-1"
    assert sink.writes == 1
    assert host.pending == 0


def test_failure_on_first_frame_leaves_sink_untouched():
    sink = BufferSink(initial="boot")
    host, driver = _driver()
    driver.start(RecordingEngine(fail_step_on={1}), sink)

    with pytest.raises(EngineStepFailure):
        host.advance(1)
    assert sink.content == "boot"
    assert sink.writes == 0


def test_closed_stream_is_sink_failure():
    stream = io.StringIO()
    host, driver = _driver()
    driver.start(RecordingEngine(), StreamSink(stream, clear=False))
    host.advance(2)
    assert stream.getvalue() == "state-1state-2"

    stream.close()
    with pytest.raises(SinkWriteFailure) as excinfo:
        host.advance(1)
    assert excinfo.value.frame == 3, "Driver should stamp the frame number"
    assert driver.state is DriverState.HALTED


def test_arbitrary_sink_error_is_wrapped():
    class BrokenSink:
        def write(self, text):
            raise KeyError("detached")

    host, driver = _driver()
    driver.start(RecordingEngine(), BrokenSink())
    with pytest.raises(SinkWriteFailure) as excinfo:
        host.advance(1)
    assert isinstance(excinfo.value.__cause__, KeyError)


def test_continue_policy_skips_failed_frames():
    engine = RecordingEngine(fail_step_on={2, 3})
    sink = BufferSink(keep_history=True)
    host, driver = _driver(DriverConfig(error_policy=ErrorPolicy.CONTINUE))
    driver.start(engine, sink)

    assert host.advance(5) == 5
    assert driver.state is DriverState.RUNNING
    assert driver.failure_count == 2
    assert driver.frame_count == 3
    assert isinstance(driver.last_error, EngineStepFailure)
    # Failed frames never write; frames 1, 4, 5 do
    assert sink.history == ["state-1", "state-2", "state-3"]
    assert driver.consecutive_failures == 0


def test_continue_policy_halts_after_max_failures():
    engine = RecordingEngine(fail_step_on={2, 3, 4})
    config = DriverConfig(error_policy="continue", max_failures=3)
    host, driver = _driver(config)
    driver.start(engine, BufferSink())

    host.advance(3)
    assert driver.running
    with pytest.raises(EngineStepFailure):
        host.advance(1)
    assert driver.state is DriverState.HALTED
    assert host.pending == 0


def test_second_start_is_noop(caplog):
    first = RecordingEngine()
    second = RecordingEngine()
    sink_a, sink_b = BufferSink(), BufferSink()
    host, driver = _driver()

    driver.start(first, sink_a)
    with caplog.at_level(logging.WARNING, logger="life_loop.driver"):
        driver.start(second, sink_b)

    assert host.pending == 1, "Only one loop may be registered"
    host.advance(4)
    assert first.steps == 4
    assert second.steps == 0
    assert sink_b.writes == 0
    assert "ignoring" in caplog.text


def test_start_requires_engine_and_sink():
    host, driver = _driver()
    with pytest.raises(ValueError):
        driver.start(None, BufferSink())
    assert driver.state is DriverState.IDLE


def test_stop_cancels_pending_frame():
    engine = RecordingEngine()
    host, driver = _driver()
    driver.start(engine, BufferSink())
    host.advance(2)

    driver.stop()
    assert driver.state is DriverState.HALTED
    assert host.pending == 0
    assert host.advance(5) == 0
    assert engine.steps == 2

    driver.stop()  # idempotent
    assert driver.state is DriverState.HALTED


def test_stop_from_inside_a_frame():
    host = ManualFrameScheduler()
    driver = FrameDriver(host)

    class StoppingSink(BufferSink):
        def write(self, text):
            super().write(text)
            if self.writes == 2:
                driver.stop()

    sink = StoppingSink()
    driver.start(RecordingEngine(), sink)
    host.advance(10)

    assert sink.content == "state-2", "The frame that stopped still finishes its write"
    assert driver.frame_count == 2
    assert host.pending == 0


def test_stop_before_start_and_restart_refused():
    host, driver = _driver()
    driver.stop()
    assert driver.state is DriverState.HALTED
    with pytest.raises(DriverHaltedError):
        driver.start(RecordingEngine(), BufferSink())
    assert host.pending == 0


def test_stale_callback_after_stop_does_nothing():
    engine = RecordingEngine()
    host, driver = _driver()
    driver.start(engine, BufferSink())
    driver.stop()

    driver.on_frame()
    assert engine.steps == 0


def test_max_frames_stops_the_loop():
    engine = RecordingEngine()
    host, driver = _driver(DriverConfig(max_frames=7))
    driver.start(engine, BufferSink())

    assert host.advance(100) == 7
    assert engine.steps == 7
    assert driver.state is DriverState.HALTED
    assert driver.last_error is None


def test_engine_frame_failure_is_not_rewrapped():
    class SelfReportingEngine(RecordingEngine):
        def step(self):
            raise EngineRenderFailure("engine-level render issue")

    host, driver = _driver()
    driver.start(SelfReportingEngine(), BufferSink())
    with pytest.raises(EngineRenderFailure) as excinfo:
        host.advance(1)

    failure = excinfo.value
    assert failure.kind == "render"
    assert failure.frame == 1, "Driver should stamp the frame number"
    assert str(failure) == "frame 1: render failed: engine-level render issue"
    assert failure.__cause__ is None


def test_render_raising_frame_failure_keeps_its_frame():
    class ReportingRenderer(RecordingEngine):
        def render(self):
            raise SinkWriteFailure("renderer saw a dead target", frame=99)

    host, driver = _driver()
    driver.start(ReportingRenderer(), BufferSink())
    with pytest.raises(SinkWriteFailure) as excinfo:
        host.advance(1)
    assert excinfo.value.frame == 99


def test_halted_driver_does_not_starve_others_on_same_host():
    host = ManualFrameScheduler()
    broken = FrameDriver(host)
    healthy = FrameDriver(host)
    healthy_engine = RecordingEngine()
    broken.start(RecordingEngine(fail_step_on={1}), BufferSink())
    healthy.start(healthy_engine, BufferSink())

    with pytest.raises(EngineStepFailure):
        host.advance(1)
    assert broken.state is DriverState.HALTED
    assert healthy.state is DriverState.RUNNING
    assert host.pending == 1, "The healthy driver's request must survive"

    host.advance(5)
    assert healthy_engine.steps == 5
    assert host.pending == 1
