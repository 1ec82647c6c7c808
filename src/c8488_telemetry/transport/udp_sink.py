"""Best-effort UDP sender for line-protocol records."""

from __future__ import annotations

import logging
import socket

logger = logging.getLogger(__name__)


def parse_endpoint(value: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6addr]:port``) into its parts.

    Raises:
        ValueError: If the port is missing or not 1-65535.
    """
    host, sep, port = value.rpartition(":")
    if not sep or not host:
        raise ValueError(f"Expected HOST:PORT, got {value!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not port.isdigit() or not 0 < int(port) <= 0xFFFF:
        raise ValueError(f"Invalid port in {value!r}")
    return host, int(port)


class UDPSink:
    """Sends each record as one UTF-8 datagram, without acknowledgment.

    Socket errors are not caught.
    """

    def __init__(self, host: str, port: int) -> None:
        self._address = (host, port)
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        self._sock = socket.socket(family, socket.SOCK_DGRAM)

    @property
    def address(self) -> tuple[str, int]:
        return self._address

    def send(self, line: str) -> int:
        data = line.encode("utf-8")
        sent = self._sock.sendto(data, self._address)
        logger.debug("Sent %d bytes to %s:%d", sent, *self._address)
        return sent

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> UDPSink:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
