"""USB HID connection to the weather station console.

Three backends are supported:

- ``hidraw``: the Linux ``/dev/hidrawN`` node opened as a plain file
  (default, needs no extra libraries)
- ``hidapi``: the ``hid`` package, by vendor/product ID, or by device
  path when ``use_hidapi`` is set (platforms without hidraw)
- ``pyusb``: libusb via ``pyusb``, used when a vendor/product ID is given
  and hidapi cannot open the device

All reads block until the console sends a report; there is no timeout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..protocol.framing import FRAME_SIZE

logger = logging.getLogger(__name__)

DEFAULT_DEVICE = "/dev/hidraw0"
HID_INTERFACE = 0
REPORT_ID = 0x00


@dataclass
class DeviceInfo:
    """Basic device identification."""

    path: str = ""
    vendor_id: int | None = None
    product_id: int | None = None
    manufacturer: str = ""
    product: str = ""
    backend: str = ""


class HIDConnection:
    """Reads frames from (and writes commands to) the console.

    Usage::

        with HIDConnection("/dev/hidraw0") as conn:
            frame = conn.read()
            conn.write(command_frame)
    """

    def __init__(
        self,
        device: str | None = DEFAULT_DEVICE,
        vendor_id: int | None = None,
        product_id: int | None = None,
        use_hidapi: bool = False,
    ) -> None:
        if (vendor_id is None) != (product_id is None):
            raise ValueError("vendor_id and product_id must be given together")
        self._path = device
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._use_hidapi = use_hidapi
        self._device = None
        self._ep_in = None
        self._ep_out = None
        self._backend: str = ""
        self._connected = False
        self._device_info = DeviceInfo(
            path=device or "", vendor_id=vendor_id, product_id=product_id
        )

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    def __enter__(self) -> HIDConnection:
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def open(self) -> DeviceInfo:
        """Open the console.

        With a vendor/product ID, hidapi is tried first, then pyusb.
        Otherwise the device path is opened directly, or through hidapi's
        ``open_path`` when ``use_hidapi`` is set.

        Raises:
            ConnectionError: If the device cannot be opened.
        """
        if self._vendor_id is None:
            try:
                if self._use_hidapi:
                    return self._open_hidapi()
                return self._open_hidraw()
            except (OSError, ImportError) as e:
                raise ConnectionError(
                    f"Could not open {self._path}. Ensure the console is "
                    f"connected and you have permissions. Last error: {e}"
                ) from e

        try:
            return self._open_hidapi()
        except Exception as e:
            logger.debug("hidapi backend failed: %s, trying pyusb", e)

        try:
            return self._open_pyusb()
        except Exception as e:
            raise ConnectionError(
                f"Could not connect to console "
                f"({self._vendor_id:#06x}:{self._product_id:#06x}). "
                f"Ensure the device is connected and you have permissions. "
                f"Last error: {e}"
            ) from e

    def _open_hidraw(self) -> DeviceInfo:
        """Open the hidraw node as an unbuffered binary file."""
        self._device = open(self._path, "r+b", buffering=0)
        self._backend = "hidraw"
        self._connected = True
        self._device_info = DeviceInfo(path=self._path, backend=self._backend)
        logger.info("Opened %s", self._path)
        return self._device_info

    def _open_hidapi(self) -> DeviceInfo:
        """Open using the hidapi library."""
        import hid

        device = hid.device()
        if self._vendor_id is None:
            device.open_path(self._path.encode())
        else:
            device.open(self._vendor_id, self._product_id)
        device.set_nonblocking(False)

        self._device = device
        self._backend = "hidapi"
        self._connected = True
        self._device_info = DeviceInfo(
            path=self._path if self._vendor_id is None else "",
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=device.get_manufacturer_string() or "",
            product=device.get_product_string() or "",
            backend=self._backend,
        )

        logger.info(
            "Connected via hidapi: %s %s",
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def _open_pyusb(self) -> DeviceInfo:
        """Open using pyusb + libusb."""
        import usb.core
        import usb.util

        dev = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
        if dev is None:
            raise ConnectionError("Device not found via pyusb")

        if dev.is_kernel_driver_active(HID_INTERFACE):
            dev.detach_kernel_driver(HID_INTERFACE)

        usb.util.claim_interface(dev, HID_INTERFACE)
        intf = dev.get_active_configuration()[(HID_INTERFACE, 0)]
        self._ep_in = usb.util.find_descriptor(
            intf,
            custom_match=lambda e: usb.util.endpoint_direction(e.bEndpointAddress)
            == usb.util.ENDPOINT_IN,
        )
        self._ep_out = usb.util.find_descriptor(
            intf,
            custom_match=lambda e: usb.util.endpoint_direction(e.bEndpointAddress)
            == usb.util.ENDPOINT_OUT,
        )
        if self._ep_in is None:
            usb.util.release_interface(dev, HID_INTERFACE)
            raise ConnectionError("No interrupt IN endpoint on HID interface")

        self._device = dev
        self._backend = "pyusb"
        self._connected = True
        self._device_info = DeviceInfo(
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=usb.util.get_string(dev, dev.iManufacturer) or "",
            product=usb.util.get_string(dev, dev.iProduct) or "",
            backend=self._backend,
        )

        logger.info(
            "Connected via pyusb: %s %s",
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def close(self) -> None:
        """Close the connection."""
        if not self._connected:
            return

        try:
            if self._backend in ("hidraw", "hidapi"):
                self._device.close()
            elif self._backend == "pyusb":
                import usb.util
                usb.util.release_interface(self._device, HID_INTERFACE)
        except Exception as e:
            logger.warning("Error closing device: %s", e)
        finally:
            self._device = None
            self._ep_in = None
            self._ep_out = None
            self._connected = False
            logger.info("Disconnected")

    def read(self) -> bytes:
        """Block until the console sends a report and return it.

        The result is normally 64 bytes; a short read is returned as-is
        and left for the caller to reject.

        Raises:
            ConnectionError: If not connected.
            OSError: If the read fails.
        """
        if not self._connected:
            raise ConnectionError("Not connected to device")

        if self._backend == "hidraw":
            data = self._device.read(FRAME_SIZE)
            return data or b""
        elif self._backend == "hidapi":
            return bytes(self._device.read(FRAME_SIZE))
        elif self._backend == "pyusb":
            return bytes(self._ep_in.read(FRAME_SIZE, timeout=0))
        else:
            raise RuntimeError(f"Unknown backend: {self._backend}")

    def write(self, data: bytes) -> int:
        """Write a 64-byte frame to the console.

        The report ID byte is prepended for the hidraw and hidapi backends.

        Returns:
            Number of bytes written, including the report ID.

        Raises:
            ConnectionError: If not connected.
            ValueError: If ``data`` is not one frame long.
        """
        if not self._connected:
            raise ConnectionError("Not connected to device")

        if len(data) != FRAME_SIZE:
            raise ValueError(f"Frame must be {FRAME_SIZE} bytes, got {len(data)}")

        if self._backend in ("hidraw", "hidapi"):
            return self._device.write(bytes([REPORT_ID]) + data)
        elif self._backend == "pyusb":
            if self._ep_out is not None:
                return self._ep_out.write(data)
            # No OUT endpoint: send as a SET_REPORT control transfer
            return self._device.ctrl_transfer(0x21, 0x09, 0x0200, HID_INTERFACE, data)
        else:
            raise RuntimeError(f"Unknown backend: {self._backend}")
