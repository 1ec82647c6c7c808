"""Protocol layer: frame reassembly, message types, record decoding and line encoding."""

from .framing import FrameAssembler, PushResult, build_frame, parse_frame
from .commands import MessageType, build_clock_frames
from .parser import InvalidFieldFormat, ReadingsError, TruncatedMessage, parse_readings
from .line_protocol import encode_line, encode_readings
