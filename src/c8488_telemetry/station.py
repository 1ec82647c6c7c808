"""Blocking read loop that turns console reports into complete messages."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterator, Protocol

from .protocol.commands import build_clock_frames
from .protocol.framing import FRAME_SIZE, FrameAssembler, PushResult

logger = logging.getLogger(__name__)


class MalformedFrameError(ConnectionError):
    """The device returned a report that is not one frame long."""


class FrameSource(Protocol):
    def read(self) -> bytes: ...

    def write(self, data: bytes) -> int: ...


class StationReader:
    """Owns the frame assembler and applies the reset policy.

    Sequencing, completion and encoding faults drop the partial message
    and reassembly restarts with the next frame. A report of the wrong
    size raises :class:`MalformedFrameError`.
    """

    def __init__(self, connection: FrameSource) -> None:
        self._connection = connection
        self._assembler = FrameAssembler()
        self.resets = 0

    def _reset(self, result: PushResult) -> None:
        logger.warning("assembler error `%s`, resetting", result.value)
        self.resets += 1
        self._assembler = FrameAssembler()

    def feed(self, frame: bytes) -> tuple[int, str] | None:
        """Push one frame; return ``(type, body)`` once a message completes."""
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("frame: %s", frame.hex(" "))
        result = self._assembler.push(frame)

        if result.fatal:
            raise MalformedFrameError(
                f"Expected a {FRAME_SIZE}-byte report, got {len(frame)} bytes"
            )
        if result.needs_reset:
            self._reset(result)
            return None

        if self._assembler.is_complete():
            message = self._assembler.finish()
            self._assembler = FrameAssembler()
            return message
        return None

    def read_message(self) -> tuple[int, str]:
        """Block until a complete message of any type arrives."""
        while True:
            message = self.feed(self._connection.read())
            if message is not None:
                return message

    def messages(self) -> Iterator[tuple[int, str]]:
        """Yield complete messages forever."""
        while True:
            yield self.read_message()

    def set_clock(self, when: datetime | None = None) -> None:
        """Send the date and time clock-set frames to the console."""
        for frame in build_clock_frames(when):
            self._connection.write(frame)
        logger.info("Clock set command sent")
