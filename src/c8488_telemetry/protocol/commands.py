"""Message type codes and host-to-console command builders.

The console tags every message with a single type byte. Only the
human-readable SI record is decoded; the others are recognised so they
can be logged by name.
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum

from .framing import build_frame


class MessageType(IntEnum):
    """Message type identifiers."""

    NONE = 0x00
    REST_SI = 0xF1
    IMPERIAL_URLENCODED = 0xFB
    CLOCK_SET = 0xFC
    TEXT_SI = 0xFE


def describe_type(msg_type: int) -> str:
    """Return a log-friendly name such as ``TEXT_SI (0xFE)``."""
    try:
        return f"{MessageType(msg_type).name} (0x{msg_type:02X})"
    except ValueError:
        return f"unknown (0x{msg_type:02X})"


def build_clock_date(when: datetime) -> bytes:
    """Build the date half of a clock-set command (``YYYY-MM-DD``)."""
    return build_frame(MessageType.CLOCK_SET, when.strftime("%Y-%m-%d").encode("ascii"))


def build_clock_time(when: datetime) -> bytes:
    """Build the time half of a clock-set command (``HH:MM:SS``)."""
    return build_frame(MessageType.CLOCK_SET, when.strftime("%H:%M:%S").encode("ascii"))


def build_clock_frames(when: datetime | None = None) -> list[bytes]:
    """Build both clock-set frames, date first.

    Args:
        when: Time to set; defaults to the current local time.
    """
    if when is None:
        when = datetime.now()
    return [build_clock_date(when), build_clock_time(when)]
