"""Device and network collaborators."""

from .hid_connection import DEFAULT_DEVICE, DeviceInfo, HIDConnection
from .udp_sink import UDPSink, parse_endpoint
