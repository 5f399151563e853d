"""
Frame Driver - step, render, display, repeat

Drives a simulation engine one generation per host frame:

    scheduler -> on_frame -> engine.step() -> engine.render()
              -> sink.write(text) -> scheduler.request_frame(on_frame)

The driver owns no thread or timer. Pacing belongs to the injected
FrameScheduler, which is one-shot, so on_frame re-registers itself as its
last action. A frame's work therefore always finishes before the next one
is requested and frames never overlap.

States:
    IDLE     constructed, not started
    RUNNING  a frame is pending (or executing)
    HALTED   stopped or failed; terminal

Failures follow DriverConfig.error_policy. Under HALT the failure is
logged, nothing more is scheduled, and the wrapped error propagates out
of the callback. Under CONTINUE it is logged and the next frame is
scheduled anyway. A failed frame never writes to the sink.
"""

import enum
import logging

from .config import DriverConfig, ErrorPolicy
from .errors import (
    DriverHaltedError,
    EngineRenderFailure,
    EngineStepFailure,
    FrameFailure,
    SinkWriteFailure,
)

logger = logging.getLogger(__name__)


def _stamp(failure, frame):
    if failure.frame is None:
        failure.frame = frame


class DriverState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    HALTED = "halted"


class FrameDriver:
    """Runs (step, render, write) once per scheduled frame until halted."""

    def __init__(self, scheduler, config=None):
        self.scheduler = scheduler
        self.config = config if config is not None else DriverConfig()
        self.engine = None
        self.sink = None
        self.state = DriverState.IDLE
        self.frame_count = 0
        self.failure_count = 0
        self.consecutive_failures = 0
        self.last_error = None
        self._handle = None
        self._frame_number = 0  # frames attempted, 1-based during a frame

    @property
    def running(self):
        return self.state is DriverState.RUNNING

    def start(self, engine, sink):
        """Begin the loop. Returns immediately.

        Calling start() again while running is a no-op: the first engine
        and sink stay in use and only one loop progresses.
        """
        if self.state is DriverState.HALTED:
            raise DriverHaltedError("driver has halted and cannot be restarted")
        if self.state is DriverState.RUNNING:
            logger.warning("start() called on a running driver; ignoring")
            return
        if engine is None or sink is None:
            raise ValueError("start() needs both an engine and a sink")

        self.engine = engine
        self.sink = sink
        self.state = DriverState.RUNNING
        logger.info("Frame driver started (%s, policy=%s)",
                    type(engine).__name__, self.config.error_policy.value)
        self._schedule()

    def stop(self):
        """Cancel the pending frame and halt. Safe to call repeatedly."""
        if self.state is DriverState.HALTED:
            return
        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            self._handle = None
        self.state = DriverState.HALTED
        logger.info("Frame driver stopped after %d frames", self.frame_count)

    def _schedule(self):
        self._handle = self.scheduler.request_frame(self.on_frame)

    def on_frame(self):
        """One frame: step, render, write, then request the next frame."""
        self._handle = None
        if self.state is not DriverState.RUNNING:
            return

        self._frame_number += 1
        frame = self._frame_number
        try:
            text = self._run_frame(frame)
        except FrameFailure as failure:
            self._on_failure(failure)
            return

        self.frame_count += 1
        self.consecutive_failures = 0
        logger.debug("Frame %d written (%d chars)", frame, len(text))

        max_frames = self.config.max_frames
        if max_frames is not None and self.frame_count >= max_frames:
            logger.info("Reached max_frames=%d", max_frames)
            self.stop()
            return

        # stop() may have been called from inside the engine or sink
        if self.state is DriverState.RUNNING:
            self._schedule()

    def _run_frame(self, frame):
        try:
            self.engine.step()
        except FrameFailure as e:
            _stamp(e, frame)
            raise
        except Exception as e:
            raise EngineStepFailure(str(e), frame=frame) from e

        try:
            text = self.engine.render()
        except FrameFailure as e:
            _stamp(e, frame)
            raise
        except Exception as e:
            raise EngineRenderFailure(str(e), frame=frame) from e

        try:
            self.sink.write(text)
        except FrameFailure as e:
            _stamp(e, frame)
            raise
        except Exception as e:
            raise SinkWriteFailure(str(e), frame=frame) from e
        return text

    def _on_failure(self, failure):
        self.failure_count += 1
        self.consecutive_failures += 1
        self.last_error = failure

        if self.config.error_policy is ErrorPolicy.CONTINUE:
            limit = self.config.max_failures
            if limit is None or self.consecutive_failures < limit:
                logger.error("Frame %d %s failed, continuing (%d consecutive)",
                             failure.frame, failure.kind,
                             self.consecutive_failures, exc_info=failure)
                if self.state is DriverState.RUNNING:
                    self._schedule()
                return
            logger.error("Frame %d %s failed, %d consecutive failures; halting",
                         failure.frame, failure.kind, self.consecutive_failures,
                         exc_info=failure)
        else:
            logger.error("Frame %d %s failed after %d good frames; halting",
                         failure.frame, failure.kind, self.frame_count,
                         exc_info=failure)

        self.state = DriverState.HALTED
        raise failure
