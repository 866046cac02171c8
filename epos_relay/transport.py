"""Raw byte transports to the printer.

Two interchangeable writers, one for a USB character device (``/dev/usb/lp0``)
and one for a raw TCP socket (``host:port``, port 9100 by default). Both
delegate to python-escpos device classes and expose the same three calls:
``open()``, ``write_raw(data)`` and ``close()``.
"""

import logging
import threading
from enum import Enum

from escpos.exceptions import Error as EscposError
from escpos.printer import File, Network

from epos_relay.errors import PrinterConnectionError

logger = logging.getLogger(__name__)

DEFAULT_TCP_PORT = 9100


class ConnectionType(Enum):
    USB = "USB"
    TCP = "TCP"


class _EscposWriter:
    """Lifecycle shared by both writers.

    open() on an open writer and close() on a closed one are no-ops.
    write_raw() requires an open connection.
    """

    label = "RAW"

    def __init__(self, target: str):
        self.target = target
        self._lock = threading.Lock()
        self._device = None

    def _create_device(self):
        raise NotImplementedError

    @property
    def is_open(self) -> bool:
        return self._device is not None

    def open(self):
        with self._lock:
            if self._device is not None:
                logger.warning(f"[{self.label}] Connection already open to: {self.target}")
                return

            logger.info(f"[{self.label}] Opening connection to: {self.target}")
            device = self._create_device()
            try:
                device.open()
            except (OSError, EscposError) as e:
                logger.error(f"[{self.label}] Failed to open {self.target}: {e}")
                raise PrinterConnectionError(f"failed to open {self.target}: {e}") from e

            self._device = device
            logger.info(f"[{self.label}] Connected: {self.target}")

    def write_raw(self, data: bytes):
        with self._lock:
            if self._device is None:
                logger.error(f"[{self.label}] Write attempted but no active connection to: {self.target}")
                raise PrinterConnectionError("No active connection. Reconnect")

            logger.info(f"[{self.label}] Writing {len(data)} bytes to {self.target}")
            try:
                self._device._raw(data)
            except (OSError, EscposError) as e:
                logger.error(f"[{self.label}] Write failed to {self.target}: {e}")
                raise PrinterConnectionError(f"write to {self.target} failed: {e}") from e

    def close(self):
        with self._lock:
            if self._device is None:
                logger.warning(f"[{self.label}] No active connection to close for: {self.target}")
                return

            device, self._device = self._device, None
            try:
                device.close()
            except (OSError, EscposError) as e:
                logger.error(f"[{self.label}] Error closing connection {self.target}: {e}")
                raise PrinterConnectionError(f"error closing connection {self.target}: {e}") from e

            logger.info(f"[{self.label}] Connection closed: {self.target}")


class UsbWriter(_EscposWriter):
    """Writes to a printer character device such as /dev/usb/lp0."""

    label = "USB"

    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def _create_device(self):
        return File(self.path, auto_flush=True)


class TcpWriter(_EscposWriter):
    """Writes to a network printer's raw port."""

    label = "TCP"

    def __init__(self, address: str):
        super().__init__(address)
        self.address = address
        host, sep, port = address.rpartition(":")
        if sep and port.isdigit():
            self.host, self.port = host, int(port)
        else:
            self.host, self.port = address, DEFAULT_TCP_PORT

    def _create_device(self):
        return Network(self.host, self.port)


def create_writer(connection_string: str, connection_type: ConnectionType):
    """Pick the writer implementation for a connection type."""
    if connection_type is ConnectionType.USB:
        return UsbWriter(connection_string)
    if connection_type is ConnectionType.TCP:
        return TcpWriter(connection_string)
    raise ValueError(f"Unknown connection type: {connection_type}")
