"""ESC/POS command encoding.

Pure functions building the byte sequences sent to the printer. Nothing in
here touches a transport.
"""

import logging

from escpos.constants import ESC, GS

from epos_relay.errors import ValidationError

logger = logging.getLogger(__name__)

# GS V 0 - full cut
CUT_CMD = GS + b"V\x00"

# GS v 0 m (m=0 normal) - print raster bit image
RASTER_CMD = GS + b"\x76\x30\x00"

# ESC p m t1 t2 - pulse on pin m
# t1: pulse on time (units of 2ms), 25 = 50ms
# t2: pulse off time (units of 2ms), 25 = 50ms
KICK_CMD = ESC + bytes([0x70, 0x00, 25, 25])

CUT_FEED_LINES = 2
IMAGE_FEED_LINES = 12


def feed(lines: int) -> bytes:
    """ESC d n - print and feed n lines."""
    return ESC + bytes([0x64, lines & 0xFF])


def cut_commands():
    """The cut and the feed that follows it, as two separate writes."""
    return CUT_CMD, feed(CUT_FEED_LINES)


def center(data: bytes, width_bytes: int, paper_width_bytes: int, height: int) -> bytes:
    """Pad every row with zero bytes so the image sits in the middle of the paper.

    The right side takes the odd byte when the difference is odd.
    """
    expected = width_bytes * height
    if len(data) < expected:
        raise ValidationError(f"center: data too short: got {len(data)} bytes, need {expected} bytes")

    left = (paper_width_bytes - width_bytes) // 2
    right = paper_width_bytes - width_bytes - left
    left_pad = b"\x00" * max(left, 0)
    right_pad = b"\x00" * max(right, 0)

    centered = bytearray()
    for y in range(height):
        row_start = y * width_bytes
        row_end = row_start + width_bytes
        if row_end > len(data):
            raise ValidationError(f"center: row out of bounds at y={y}")

        centered.extend(left_pad)
        centered.extend(data[row_start:row_end])
        centered.extend(right_pad)

    logger.debug(
        f"Centered {width_bytes} -> {paper_width_bytes} bytes per row "
        f"(padding: {left} left, {right} right)"
    )
    return bytes(centered)


def raster_command(data: bytes, width: int, height: int, receipt_width: int) -> bytes:
    """Build the complete raster print command for one image.

    Images narrower than the receipt are centered; wider ones are sent as is.
    Data beyond width/8 * height bytes is dropped.
    """
    width_bytes = width // 8
    required = width_bytes * height
    if len(data) < required:
        raise ValidationError(f"data too short: got {len(data)} bytes, need {required} bytes")

    raster_data = bytes(data[:required])
    paper_width_bytes = receipt_width // 8

    if width < receipt_width:
        raster_data = center(raster_data, width_bytes, paper_width_bytes, height)
        width_bytes = paper_width_bytes
        logger.info(f"Centered: {width}px -> {receipt_width}px")

    xL = width_bytes & 0xFF
    xH = (width_bytes >> 8) & 0xFF
    yL = height & 0xFF
    yH = (height >> 8) & 0xFF

    buf = bytearray(RASTER_CMD)
    buf.extend(bytes([xL, xH, yL, yH]))
    buf.extend(raster_data)
    buf.extend(feed(IMAGE_FEED_LINES))
    return bytes(buf)
