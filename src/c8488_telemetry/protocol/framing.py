"""Frame parser/builder and message reassembly for 64-byte USB HID reports.

Frame layout::

    +------+-----------+-----------+-----------+---------+------------+----------+-----+
    | Type | Hist. len | Hist. idx | Total/Idx | Pay len |  Payload   | Checksum | End |
    | 1 B  | 2 B (BE)  | 2 B (BE)  | 1 B       | 1 B     |  54 B slot | 2 B (BE) | 1 B |
    +------+-----------+-----------+-----------+---------+------------+----------+-----+

- Type: message type code, 0 is never sent by the console
- Total/Idx: high nibble is the fragment count, low nibble the 1-based index
- Pay len: number of significant bytes in the payload slot (0-54)
- Checksum: present on the wire but not verified
- End: always 0xFD

A logical message is split over one or more frames; :class:`FrameAssembler`
glues the payload slices back together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

FRAME_SIZE = 64
MAX_PAYLOAD_PER_FRAME = 54
END_MARKER = 0xFD

OFF_TYPE = 0
OFF_HISTORY_LENGTH = 1
OFF_HISTORY_INDEX = 3
OFF_FRAGMENT = 5
OFF_PAYLOAD_LENGTH = 6
OFF_PAYLOAD = 7
OFF_CHECKSUM = 61
OFF_END = 63


@dataclass
class Frame:
    """A parsed 64-byte frame."""

    type: int
    history_length: int
    history_index: int
    total: int
    index: int
    payload: bytes
    checksum: int
    end: int

    def __repr__(self) -> str:
        return (
            f"Frame(type=0x{self.type:02X}, fragment={self.index}/{self.total}, "
            f"payload={self.payload!r})"
        )


def parse_frame(data: bytes) -> Frame | None:
    """Split a 64-byte report into its fields.

    Returns ``None`` if ``data`` is not exactly one frame long. The payload
    is clipped to the 54-byte slot even if the length byte claims more.
    """
    if len(data) != FRAME_SIZE:
        return None

    payload_length = data[OFF_PAYLOAD_LENGTH]
    slot = data[OFF_PAYLOAD:OFF_CHECKSUM]
    return Frame(
        type=data[OFF_TYPE],
        history_length=int.from_bytes(data[OFF_HISTORY_LENGTH:OFF_HISTORY_INDEX], "big"),
        history_index=int.from_bytes(data[OFF_HISTORY_INDEX:OFF_FRAGMENT], "big"),
        total=data[OFF_FRAGMENT] >> 4,
        index=data[OFF_FRAGMENT] & 0x0F,
        payload=bytes(slot[:payload_length]),
        checksum=int.from_bytes(data[OFF_CHECKSUM:OFF_END], "big"),
        end=data[OFF_END],
    )


def build_frame(
    msg_type: int,
    payload: bytes = b"",
    index: int = 1,
    total: int = 1,
    history_length: int = 0,
    history_index: int = 0,
) -> bytes:
    """Build a single 64-byte frame.

    Args:
        msg_type: Message type byte (non-zero).
        payload: Up to 54 bytes of fragment payload.
        index: 1-based fragment index (1-15).
        total: Fragment count of the whole message (1-15).
        history_length: Value for the history-length field.
        history_index: Value for the history-index field.

    Returns:
        A 64-byte ``bytes`` object. The checksum field is left zeroed.
    """
    if not 0 < msg_type <= 0xFF:
        raise ValueError(f"Message type must be 1-255, got {msg_type}")
    if len(payload) > MAX_PAYLOAD_PER_FRAME:
        raise ValueError(
            f"Payload must be at most {MAX_PAYLOAD_PER_FRAME} bytes, got {len(payload)}"
        )
    if not 1 <= total <= 0x0F or not 1 <= index <= 0x0F:
        raise ValueError(f"Fragment {index}/{total} out of range 1-15")

    buf = bytearray(FRAME_SIZE)
    buf[OFF_TYPE] = msg_type
    buf[OFF_HISTORY_LENGTH:OFF_HISTORY_INDEX] = history_length.to_bytes(2, "big")
    buf[OFF_HISTORY_INDEX:OFF_FRAGMENT] = history_index.to_bytes(2, "big")
    buf[OFF_FRAGMENT] = (total << 4) | index
    buf[OFF_PAYLOAD_LENGTH] = len(payload)
    buf[OFF_PAYLOAD : OFF_PAYLOAD + len(payload)] = payload
    buf[OFF_END] = END_MARKER
    return bytes(buf)


def build_fragmented_frames(msg_type: int, payload: bytes) -> list[bytes]:
    """Split a payload over as many frames as needed (at most 15).

    For payloads that fit in one slot this returns a single frame
    identical to :func:`build_frame`.
    """
    chunks = [
        payload[offset : offset + MAX_PAYLOAD_PER_FRAME]
        for offset in range(0, len(payload), MAX_PAYLOAD_PER_FRAME)
    ] or [b""]
    if len(chunks) > 0x0F:
        raise ValueError(f"Payload of {len(payload)} bytes needs more than 15 frames")
    return [
        build_frame(msg_type, chunk, index=i, total=len(chunks))
        for i, chunk in enumerate(chunks, start=1)
    ]


class PushResult(Enum):
    """Outcome of :meth:`FrameAssembler.push`."""

    ACCEPTED = "accepted"
    COMPLETED_ALREADY = "completed_already"
    SEQUENCE_ERROR = "sequence_error"
    ENCODING_ERROR = "encoding_error"
    MALFORMED_FRAME = "malformed_frame"

    @property
    def needs_reset(self) -> bool:
        """True when the caller must discard the accumulator."""
        return self not in (PushResult.ACCEPTED, PushResult.MALFORMED_FRAME)

    @property
    def fatal(self) -> bool:
        return self is PushResult.MALFORMED_FRAME


@dataclass
class Message:
    """The in-progress logical message. ``type == 0`` means nothing adopted yet."""

    data: str = ""
    type: int = 0
    total_fragments: int = 0
    received_fragments: int = 0


class FrameAssembler:
    """Accumulates the frames of one logical message.

    The assembler only reports problems; it never resets itself. On any
    result other than ``ACCEPTED`` the owner drops this instance and starts
    a fresh one (or, for ``MALFORMED_FRAME``, gives up on the transport).

    Usage::

        assembler = FrameAssembler()
        result = assembler.push(frame)
        if result.needs_reset:
            assembler = FrameAssembler()
        elif assembler.is_complete():
            msg_type, body = assembler.finish()
    """

    def __init__(self) -> None:
        self._message: Message | None = Message()

    @property
    def message(self) -> Message:
        if self._message is None:
            raise RuntimeError("Message has already been finished")
        return self._message

    def push(self, frame: bytes) -> PushResult:
        """Feed one 64-byte frame into the message."""
        if len(frame) != FRAME_SIZE:
            return PushResult.MALFORMED_FRAME

        msg = self._message
        if msg is None:
            return PushResult.COMPLETED_ALREADY
        parsed = parse_frame(frame)

        if msg.type == 0:
            msg.type = parsed.type
            msg.total_fragments = parsed.total

        if msg.received_fragments >= msg.total_fragments:
            return PushResult.COMPLETED_ALREADY

        expected = (msg.type, msg.total_fragments, msg.received_fragments + 1, END_MARKER)
        actual = (parsed.type, parsed.total, parsed.index, parsed.end)
        if (
            parsed.type == 0
            or actual != expected
            or frame[OFF_PAYLOAD_LENGTH] > MAX_PAYLOAD_PER_FRAME
        ):
            logger.debug("Rejected fragment %s, expected %s", actual, expected)
            return PushResult.SEQUENCE_ERROR

        try:
            text = parsed.payload.decode("utf-8")
        except UnicodeDecodeError:
            return PushResult.ENCODING_ERROR

        logger.debug("payload: %s", text)
        msg.data += text
        msg.received_fragments += 1
        return PushResult.ACCEPTED

    def is_complete(self) -> bool:
        msg = self._message
        if msg is None:
            return False
        return msg.type != 0 and msg.received_fragments == msg.total_fragments

    def finish(self) -> tuple[int, str]:
        """Hand over ``(type, data)`` of the completed message.

        Raises:
            RuntimeError: If the message is not complete yet.
        """
        if not self.is_complete():
            raise RuntimeError("finish() called on an incomplete message")
        msg = self._message
        self._message = None
        return msg.type, msg.data
