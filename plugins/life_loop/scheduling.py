"""
Frame Schedulers - pluggable pacing for the frame driver

A scheduler is the host's "call me at the next frame" primitive. It is
one-shot: request_frame() fires the callback once, and anything that wants
to keep looping has to ask again from inside the callback.

Three hosts ship here:
- ManualFrameScheduler: frames advance only when told to (tests, headless
  snapshots, and the pygame window loop which ticks it once per refresh)
- AsyncioFrameScheduler: fixed refresh clock on an asyncio event loop
- DelayedFrameScheduler: wait a fixed interval, then ask an inner scheduler
  for its next frame (timer plus refresh, the throttled variant)
"""

import asyncio
import itertools
from abc import ABC, abstractmethod


class FrameScheduler(ABC):
    """Host primitive: run a zero-argument callback once, next frame."""

    @abstractmethod
    def request_frame(self, callback):
        """Schedule `callback` for the next frame. Returns a handle."""

    @abstractmethod
    def cancel_frame(self, handle):
        """Drop a pending request. No-op if it already ran or was cancelled."""


class ManualFrameScheduler(FrameScheduler):
    """Deterministic host: each advance() is one display refresh.

    Callbacks requested while a frame is running land in the *next* frame,
    never the current one, so a self re-registering callback runs exactly
    once per advance().
    """

    def __init__(self):
        self._pending = {}
        self._batch = None
        self._ids = itertools.count(1)
        self.frame_index = 0

    def request_frame(self, callback):
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle):
        self._pending.pop(handle, None)
        if self._batch is not None:
            self._batch.pop(handle, None)

    @property
    def pending(self):
        return len(self._pending)

    def run_frame(self):
        """Run every callback that was pending when the frame began.

        If a callback raises, the error propagates and the callbacks that
        had not run yet stay pending, ahead of any new requests.

        Returns the number of callbacks run.
        """
        batch = self._pending
        self._pending = {}
        self._batch = batch
        self.frame_index += 1
        ran = 0
        try:
            while batch:
                handle = next(iter(batch))
                callback = batch.pop(handle)
                callback()
                ran += 1
        finally:
            self._batch = None
            if batch:
                batch.update(self._pending)
                self._pending = batch
        return ran

    def advance(self, frames=1):
        """Run up to `frames` frames, stopping early once nothing is pending.

        Returns the number of frames that actually ran a callback.
        """
        ran = 0
        for _ in range(frames):
            if not self._pending:
                break
            self.run_frame()
            ran += 1
        return ran


class AsyncioFrameScheduler(FrameScheduler):
    """Refresh-synchronised host on an asyncio event loop.

    Frames land on the boundaries of a fixed 1/fps clock anchored at the
    first request, so a callback that re-registers from inside its own
    frame is called again on the following boundary rather than
    immediately.
    """

    def __init__(self, fps=60, loop=None):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.fps = fps
        self.period = 1.0 / fps
        self._loop = loop
        self._origin = None

    @property
    def loop(self):
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _next_boundary(self):
        now = self.loop.time()
        if self._origin is None:
            self._origin = now
        elapsed = now - self._origin
        n = int(elapsed / self.period) + 1
        return self._origin + n * self.period

    def request_frame(self, callback):
        return self.loop.call_at(self._next_boundary(), callback)

    def cancel_frame(self, handle):
        handle.cancel()


class _DelayedHandle:
    """Tracks which stage a delayed request is in so it can be cancelled."""

    def __init__(self):
        self.timer = None
        self.inner = None
        self.cancelled = False


class DelayedFrameScheduler(FrameScheduler):
    """Wait `delay` seconds, then request a frame from `inner`.

    Caps the frame rate at roughly 1/delay while still landing each frame
    on the inner host's refresh.
    """

    def __init__(self, inner, delay=0.05, loop=None):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.inner = inner
        self.delay = delay
        self._loop = loop

    @property
    def loop(self):
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def request_frame(self, callback):
        handle = _DelayedHandle()

        def _on_timer():
            handle.timer = None
            if not handle.cancelled:
                handle.inner = self.inner.request_frame(callback)

        handle.timer = self.loop.call_later(self.delay, _on_timer)
        return handle

    def cancel_frame(self, handle):
        handle.cancelled = True
        if handle.timer is not None:
            handle.timer.cancel()
            handle.timer = None
        if handle.inner is not None:
            self.inner.cancel_frame(handle.inner)
            handle.inner = None
