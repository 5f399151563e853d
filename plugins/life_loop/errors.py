"""
Error Types for the Frame Loop

Every failure that can stop a frame is a FrameFailure carrying the
frame number it happened on and which stage failed (step, render, write).
Sinks raise SinkWriteFailure without knowing the frame; the driver fills
it in before logging.
"""


class LifeLoopError(Exception):
    """Base class for all life_loop errors."""


class DriverHaltedError(LifeLoopError):
    """Raised when start() is called on a driver that has already halted."""


class FrameFailure(LifeLoopError):
    """A single frame failed at one of its stages."""

    kind = "frame"

    def __init__(self, message="", frame=None):
        super().__init__(message)
        self.message = message
        self.frame = frame

    def __str__(self):
        where = f"frame {self.frame}" if self.frame is not None else "frame ?"
        text = f"{where}: {self.kind} failed"
        if self.message:
            text += f": {self.message}"
        return text


class EngineStepFailure(FrameFailure):
    kind = "step"


class EngineRenderFailure(FrameFailure):
    kind = "render"


class SinkWriteFailure(FrameFailure):
    """The display target is invalid or detached."""

    kind = "write"
