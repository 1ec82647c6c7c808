"""MCP server entry point for the weather station console.

Exposes the frame reader, record decoder and line-protocol encoder as
Model Context Protocol tools over stdio.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from mcp.server.fastmcp import FastMCP

from .protocol.commands import MessageType, describe_type
from .protocol.line_protocol import DEFAULT_MEASUREMENT, DEFAULT_STATION, encode_line
from .protocol.parser import ReadingsError, parse_readings
from .station import StationReader
from .transport.hid_connection import DEFAULT_DEVICE, HIDConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "c8488-telemetry",
    instructions="Read and decode telemetry from a USB HID weather station console",
)

# Global connection state
_connection: HIDConnection | None = None
_reader: StationReader | None = None


def _get_reader() -> StationReader:
    """Get the active station reader, raising if not connected."""
    if _connection is None or not _connection.connected or _reader is None:
        raise RuntimeError("Not connected to device. Use the 'connect' tool first.")
    return _reader


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    device: str = DEFAULT_DEVICE,
    vendor_id: int | None = None,
    product_id: int | None = None,
    use_hidapi: bool = False,
) -> dict[str, Any]:
    """Open the console.

    Args:
        device: hidraw node to open (default /dev/hidraw0).
        use_hidapi: Open ``device`` through hidapi instead of as a file.
        vendor_id: USB vendor ID; opens via hidapi/pyusb when given.
        product_id: USB product ID, required with vendor_id.
    """
    global _connection, _reader
    if _connection is not None and _connection.connected:
        return {"connected": True, "message": "Already connected"}

    try:
        _connection = HIDConnection(
            device,
            vendor_id=vendor_id,
            product_id=product_id,
            use_hidapi=use_hidapi,
        )
        info = _connection.open()
    except (ConnectionError, ValueError) as e:
        _connection = None
        return {"error": str(e)}

    _reader = StationReader(_connection)
    return {
        "connected": True,
        "backend": info.backend,
        "path": info.path,
        "product": info.product,
        "manufacturer": info.manufacturer,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the console connection."""
    global _connection, _reader
    if _connection is not None:
        _connection.close()
    _connection = None
    _reader = None
    return {"disconnected": True}


# ─── TELEMETRY TOOLS ──────────────────────────────────────────────────

@mcp.tool()
def read_message() -> dict[str, Any]:
    """Block until the next complete message of any type and return it raw."""
    reader = _get_reader()
    msg_type, body = reader.read_message()
    return {"type": msg_type, "type_name": describe_type(msg_type), "body": body}


@mcp.tool()
def read_readings(
    station: str = DEFAULT_STATION,
    measurement: str = DEFAULT_MEASUREMENT,
) -> dict[str, Any]:
    """Wait for the next SI record, skipping other message types.

    Args:
        station: Station tag for the line-protocol rendering.
        measurement: Measurement name for the line-protocol rendering.
    """
    reader = _get_reader()
    while True:
        msg_type, body = reader.read_message()
        if msg_type == MessageType.TEXT_SI:
            break
        logger.info("Skipping message type %s", describe_type(msg_type))

    result = decode_body(body)
    if "error" not in result:
        result["line"] = encode_body(body, station, measurement).get("line")
    return result


@mcp.tool()
def set_clock(when: str | None = None) -> dict[str, Any]:
    """Set the console clock.

    Args:
        when: ISO 8601 local time, e.g. "2024-03-01T12:30:00". Defaults to now.
    """
    reader = _get_reader()
    try:
        moment = datetime.fromisoformat(when) if when else datetime.now()
    except ValueError:
        return {"error": f"Invalid ISO 8601 time: {when!r}"}
    reader.set_clock(moment)
    return {"clock_set": moment.isoformat(timespec="seconds")}


# ─── CODEC TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def decode_body(body: str) -> dict[str, Any]:
    """Decode a 0xFE message body into structured readings.

    Args:
        body: Space-separated record text as sent by the console.
    """
    try:
        readings = parse_readings(body)
    except ReadingsError as e:
        return {"error": str(e), "error_type": type(e).__name__}
    return {"readings": readings.to_dict(), "body": body}


@mcp.tool()
def encode_body(
    body: str,
    station: str = DEFAULT_STATION,
    measurement: str = DEFAULT_MEASUREMENT,
) -> dict[str, Any]:
    """Render a 0xFE message body as a line-protocol record.

    Args:
        body: Space-separated record text as sent by the console.
        station: Station tag value.
        measurement: Measurement name.
    """
    try:
        return {"line": encode_line(body, station, measurement)}
    except ValueError as e:
        return {"error": str(e)}


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
