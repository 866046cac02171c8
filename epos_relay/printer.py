"""Printer connection management and ESC/POS operations."""

import logging
import threading
import time
from typing import Callable, Iterable, TypeVar

from epos_relay import protocol
from epos_relay.config import (
    CONNECT_RETRY_DELAY,
    CUT_RETRIES,
    DRAWER_RETRIES,
    IMAGE_RETRIES,
    RETRY_DELAY,
)
from epos_relay.parser import Cut, Image, Instruction, Pulse
from epos_relay.transport import ConnectionType, create_writer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Printer:
    """A receipt printer behind one exclusively owned transport writer.

    Every hardware operation runs inside with_retry(), which closes and
    reopens the writer between failed attempts.
    """

    def __init__(
        self,
        connection_string: str,
        receipt_width: int,
        connection,
        retry_delay: float = RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.connection_string = connection_string
        self.receipt_width = receipt_width
        self.connection = connection
        self.retry_delay = retry_delay
        self.sleep = sleep
        self._lock = threading.RLock()

    def print_graphics(self, data: bytes, width: int, height: int):
        """Print a raster image, centered when narrower than the receipt."""
        logger.info(f"Printing image {width}x{height} ({len(data)} bytes)")
        command = protocol.raster_command(data, width, height, self.receipt_width)

        with self._lock:
            with_retry(self, IMAGE_RETRIES, lambda: self.connection.write_raw(command))

        logger.info(f"Sent {len(command)} bytes to printer")

    def kick_drawer(self):
        """Kick the cash drawer."""
        with self._lock:
            with_retry(self, DRAWER_RETRIES, lambda: self.connection.write_raw(protocol.KICK_CMD))
        logger.info("Drawer kicked")

    def cut(self):
        """Cut the paper, then feed.

        Both writes form one unit: a failed feed retries the cut as well.
        """
        cut_cmd, feed_cmd = protocol.cut_commands()

        def cut_and_feed():
            self.connection.write_raw(cut_cmd)
            self.connection.write_raw(feed_cmd)

        with self._lock:
            with_retry(self, CUT_RETRIES, cut_and_feed)
        logger.info("Paper cut")

    def execute(self, instruction: Instruction):
        """Run a single parsed instruction."""
        if isinstance(instruction, Image):
            self.print_graphics(instruction.data, instruction.width, instruction.height)
        elif isinstance(instruction, Pulse):
            self.kick_drawer()
        elif isinstance(instruction, Cut):
            self.cut()
        else:
            raise TypeError(f"Unsupported instruction: {instruction!r}")

    def execute_all(self, instructions: Iterable[Instruction]):
        """Run instructions in order; the first failure stops the rest."""
        for instruction in instructions:
            self.execute(instruction)

    def close(self):
        """Close the transport. Safe to call more than once."""
        logger.info(f"Closing printer: {self.connection_string}")
        if self.connection is None:
            logger.warning("No connection, nothing to close")
            return
        self.connection.close()


def with_retry(printer: Printer, attempts: int, fn: Callable[[], T]) -> T:
    """Call fn up to `attempts` times, reconnecting the printer in between.

    After a failure the connection is closed; unless that was the last
    attempt, we wait retry_delay and reopen it. A failed close is logged
    and ignored; a failed reopen becomes the error to report. Raises the
    last error once every attempt has failed.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")
    last_error = None

    for attempt in range(attempts):
        try:
            result = fn()
        except Exception as e:
            last_error = e
            error_type = type(e).__name__
            error_msg = str(e) or "(no message)"
            logger.warning(f"Error (attempt {attempt + 1}/{attempts}): [{error_type}] {error_msg}")
        else:
            if attempt:
                logger.info(f"Operation succeeded after {attempt} retry attempt(s)")
            return result

        if printer.connection is None:
            logger.warning("Connection is None, cannot close")
        else:
            try:
                printer.connection.close()
            except Exception as e:
                logger.warning(f"Failed to close connection during retry: {e}")

        if attempt < attempts - 1 and printer.connection is not None:
            printer.sleep(printer.retry_delay)
            logger.info("Reconnecting...")
            try:
                printer.connection.open()
            except Exception as e:
                logger.error(f"Failed to reopen connection: {e}")
                last_error = e

    logger.error(f"Operation failed after {attempts} attempts: {last_error}")
    raise last_error


def new_printer(
    connection_string: str,
    receipt_width: int,
    connection_type: ConnectionType,
    sleep: Callable[[float], None] = time.sleep,
) -> Printer:
    """Create a printer and block until its transport opens.

    There is no attempt limit: with no printer attached this waits forever.
    """
    connection = create_writer(connection_string, connection_type)
    printer = Printer(connection_string, receipt_width, connection, sleep=sleep)
    logger.info(
        f"Connecting to {connection_type.value} printer {connection_string} "
        f"(receipt width {receipt_width}px)"
    )

    while True:
        try:
            connection.open()
        except Exception as e:
            logger.warning(f"Initial connection attempt failed: {e}")
            logger.info(f"Retrying in {CONNECT_RETRY_DELAY} seconds...")
            sleep(CONNECT_RETRY_DELAY)
        else:
            logger.info(f"Connected to printer: {connection_string}")
            return printer
