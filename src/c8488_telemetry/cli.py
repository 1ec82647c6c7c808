"""Command-line entry point: stream console readings as line protocol.

Usage:
    c8488-telemetry [--device /dev/hidraw0] [--station ID] [--udp HOST:PORT]
    c8488-telemetry --vendor-id 0xVVVV --product-id 0xPPPP --set-clock
"""

from __future__ import annotations

import argparse
import logging
import sys

from .protocol.commands import MessageType, describe_type
from .protocol.line_protocol import DEFAULT_MEASUREMENT, DEFAULT_STATION, encode_readings
from .protocol.parser import ReadingsError, parse_readings
from .station import MalformedFrameError, StationReader
from .transport.hid_connection import DEFAULT_DEVICE, HIDConnection
from .transport.udp_sink import UDPSink, parse_endpoint

logger = logging.getLogger(__name__)


def _usb_id(value: str) -> int:
    """Accept hex (``0x04d8``) or decimal (``1240``)."""
    number = int(value, 0)
    if not 0 <= number <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"USB id out of range: {value}")
    return number


def _endpoint(value: str) -> tuple[str, int]:
    try:
        return parse_endpoint(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="c8488-telemetry",
        description="Decode weather station console telemetry into line protocol",
    )
    parser.add_argument(
        "--device", "-d",
        default=DEFAULT_DEVICE,
        help=f"hidraw device node (default: {DEFAULT_DEVICE})",
    )
    parser.add_argument(
        "--hidapi",
        action="store_true",
        help="Open --device through hidapi instead of as a hidraw file",
    )
    parser.add_argument(
        "--vendor-id",
        type=_usb_id,
        default=None,
        help="Open by USB vendor ID via hidapi/pyusb instead of --device",
    )
    parser.add_argument(
        "--product-id",
        type=_usb_id,
        default=None,
        help="USB product ID, required with --vendor-id",
    )
    parser.add_argument(
        "--station", "-s",
        default=DEFAULT_STATION,
        help=f"Value of the station tag (default: {DEFAULT_STATION})",
    )
    parser.add_argument(
        "--measurement", "-m",
        default=DEFAULT_MEASUREMENT,
        help=f"Measurement name (default: {DEFAULT_MEASUREMENT})",
    )
    parser.add_argument(
        "--udp", "-u",
        type=_endpoint,
        default=None,
        metavar="HOST:PORT",
        help="Also send every record as a UDP datagram to HOST:PORT",
    )
    parser.add_argument(
        "--set-clock",
        action="store_true",
        help="Set the console clock to the local time before reading",
    )
    parser.add_argument(
        "--readings",
        action="store_true",
        help="Print the decoded readings after each record",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit on a record that cannot be decoded instead of skipping it",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


def handle_message(
    msg_type: int,
    body: str,
    args: argparse.Namespace,
    sink: UDPSink | None = None,
) -> str | None:
    """Decode and emit one complete message; return the emitted line."""
    if msg_type != MessageType.TEXT_SI:
        logger.info("Ignoring message type %s: %s", describe_type(msg_type), body)
        return None

    try:
        readings = parse_readings(body)
        line = encode_readings(readings, args.station, args.measurement)
    except ReadingsError as e:
        if args.strict:
            raise
        logger.warning("Skipping undecodable record (%s): %s", e, body)
        return None
    except ValueError as e:
        logger.warning("Skipping record (%s): %s", e, body)
        return None

    print(line, flush=True)
    if args.readings:
        print(readings.to_dict(), flush=True)
    if sink is not None:
        sink.send(line)
    return line


def run(args: argparse.Namespace) -> None:
    connection = HIDConnection(
        device=args.device,
        vendor_id=args.vendor_id,
        product_id=args.product_id,
        use_hidapi=args.hidapi,
    )
    sink = UDPSink(*args.udp) if args.udp else None
    try:
        with connection:
            reader = StationReader(connection)
            if args.set_clock:
                reader.set_clock()
            for msg_type, body in reader.messages():
                handle_message(msg_type, body, args, sink)
    finally:
        if sink is not None:
            sink.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.vendor_id is None) != (args.product_id is None):
        parser.error("--vendor-id and --product-id must be given together")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        run(args)
    except KeyboardInterrupt:
        return 0
    except MalformedFrameError as e:
        logger.error("Transport broken: %s", e)
        return 1
    except ConnectionError as e:
        logger.error("%s", e)
        return 1
    except ReadingsError as e:
        logger.error("Undecodable record: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
