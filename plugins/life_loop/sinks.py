"""
Display Sinks

A sink receives one full text frame per write() and replaces whatever it
showed before. There are no partial or incremental updates.
"""

import sys
from abc import ABC, abstractmethod

from .errors import SinkWriteFailure


# Cursor home + clear screen
ANSI_CLEAR = "\x1b[H\x1b[2J"


class TextSink(ABC):
    """Write target for rendered frames."""

    @abstractmethod
    def write(self, text):
        """Replace the displayed content with `text`."""


class BufferSink(TextSink):
    """In-memory sink. Keeps the latest content and, optionally, history."""

    def __init__(self, initial="", keep_history=False):
        self.content = initial
        self.writes = 0
        self.history = [] if keep_history else None

    def write(self, text):
        self.content = text
        self.writes += 1
        if self.history is not None:
            self.history.append(text)


class StreamSink(TextSink):
    """Draws frames into a text stream, stdout by default.

    With `clear=True` each frame starts with an ANSI clear so the terminal
    shows only the latest frame.
    """

    def __init__(self, stream=None, clear=True):
        self.stream = stream if stream is not None else sys.stdout
        self.clear = clear

    def write(self, text):
        if getattr(self.stream, "closed", False):
            raise SinkWriteFailure("stream is closed")
        payload = (ANSI_CLEAR + text) if self.clear else text
        try:
            self.stream.write(payload)
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise SinkWriteFailure(str(e)) from e
