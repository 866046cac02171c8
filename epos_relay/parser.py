"""Epson ePOS XML parsing.

Turns an ``epos-print`` request body into an ordered list of print
instructions. The document is consumed as a stream of start-tag, text and
end-tag events; no element tree is built.

Only elements whose namespace contains ``epson-pos`` are recognised, so
schema revisions (``.../2012/10/epos-print`` and friends) all match.
Unqualified or foreign elements with the same local name are ignored.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union
from xml.parsers import expat

from epos_relay.errors import ParseError

logger = logging.getLogger(__name__)

EPOS_NAMESPACE_MARKER = "epson-pos"

# expat reports namespaced names as "<uri><sep><local>"
_NS_SEPARATOR = " "

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_XML_DECLARATION = re.compile(rb"\s*<\?xml\s[^>]*?\?>")
_DECLARED_ENCODING = re.compile(rb"""encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")
_UTF8_BOM = b"\xef\xbb\xbf"

# Unqualified, so the namespace filter never matches it
_WRAPPER = b"epos-relay-body"

# Line breaks are allowed inside base64 text; other whitespace is not
_LINE_BREAKS = str.maketrans("", "", "\r\n")


@dataclass(frozen=True)
class Image:
    """Monochrome raster image, 1 bit per pixel, rows MSB first."""

    width: int
    height: int
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class Pulse:
    """Kick the cash drawer."""


@dataclass(frozen=True)
class Cut:
    """Cut the paper."""


Instruction = Union[Image, Pulse, Cut]


@dataclass
class EposDocument:
    """Instructions in document order, plus the root element name if seen."""

    root: Optional[str] = None
    instructions: List[Instruction] = field(default_factory=list)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)


def _split_name(name: str):
    if _NS_SEPARATOR in name:
        return tuple(name.rsplit(_NS_SEPARATOR, 1))
    return "", name


def _parse_dimension(value: Optional[str]) -> int:
    """Read a leading decimal integer, defaulting to 0."""
    if value is None:
        return 0
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else 0


class _EposHandler:
    """Collects instructions from expat callbacks."""

    def __init__(self):
        self.document = EposDocument()
        self._in_image = False
        self._width = 0
        self._height = 0
        self._image_data = bytearray()
        self._text: List[str] = []

    def start_element(self, name, attrs):
        self.flush_text()
        space, local = _split_name(name)
        if EPOS_NAMESPACE_MARKER not in space:
            return

        if local == "epos-print":
            self.document.root = name
        elif local == "pulse":
            self.document.instructions.append(Pulse())
        elif local == "cut":
            self.document.instructions.append(Cut())
        elif local == "image":
            self._in_image = True
            self._width = _parse_dimension(attrs.get("width"))
            self._height = _parse_dimension(attrs.get("height"))
            self._image_data = bytearray()

    def end_element(self, name):
        self.flush_text()
        space, local = _split_name(name)
        if local != "image" or EPOS_NAMESPACE_MARKER not in space or not self._in_image:
            return

        self._in_image = False
        expected = (self._width // 8) * self._height
        if len(self._image_data) != expected:
            raise ParseError(
                f"image data incomplete: got {len(self._image_data)} bytes, "
                f"expected {expected} bytes (width={self._width}, height={self._height})"
            )
        self.document.instructions.append(
            Image(width=self._width, height=self._height, data=bytes(self._image_data))
        )
        logger.debug(f"Parsed image {self._width}x{self._height} ({expected} bytes)")
        self._image_data = bytearray()

    def character_data(self, data):
        self._text.append(data)

    def comment(self, data):
        self.flush_text()

    def flush_text(self):
        """Decode the pending text run if it belongs to an open image.

        Runs end at tags, comments and CDATA boundaries; each run is
        decoded on its own and appended.
        """
        text, self._text = "".join(self._text), []
        if not self._in_image:
            return
        content = text.strip().translate(_LINE_BREAKS)
        if not content:
            return
        try:
            self._image_data.extend(base64.b64decode(content, validate=True))
        except (binascii.Error, ValueError) as e:
            raise ParseError(f"failed to decode image base64: {e}") from e


def _split_declaration(xml_data: bytes):
    """Separate a leading XML declaration, returning (encoding, rest)."""
    match = _XML_DECLARATION.match(xml_data)
    if match is None:
        return None, xml_data
    declared = _DECLARED_ENCODING.search(match.group(0))
    encoding = declared.group(1).decode("ascii") if declared else None
    return encoding, xml_data[match.end():]


def parse(xml_data: bytes) -> EposDocument:
    """Parse an ePOS request body into instructions.

    Any number of top-level elements is accepted; the body is parsed inside
    an unqualified wrapper element that the namespace filter skips. An empty
    body, or one without recognised elements, yields an empty document.
    Raises ParseError on malformed XML, bad base64 image data or an image
    whose decoded size does not match its width and height.
    """
    handler = _EposHandler()
    if isinstance(xml_data, str):
        xml_data = xml_data.encode("utf-8")
    if not xml_data or not xml_data.strip():
        return handler.document

    if xml_data.startswith(_UTF8_BOM):
        xml_data = xml_data[len(_UTF8_BOM):]
    encoding, body = _split_declaration(xml_data)

    xml_parser = expat.ParserCreate(encoding, namespace_separator=_NS_SEPARATOR)
    xml_parser.buffer_text = True
    xml_parser.StartElementHandler = handler.start_element
    xml_parser.EndElementHandler = handler.end_element
    xml_parser.CharacterDataHandler = handler.character_data
    xml_parser.CommentHandler = handler.comment
    xml_parser.StartCdataSectionHandler = handler.flush_text
    xml_parser.EndCdataSectionHandler = handler.flush_text

    try:
        xml_parser.Parse(b"<" + _WRAPPER + b">", False)
        xml_parser.Parse(body, False)
        xml_parser.Parse(b"</" + _WRAPPER + b">", True)
    except expat.ExpatError as e:
        logger.warning(f"XML parsing error: {e}")
        raise ParseError(f"malformed XML: {e}") from e

    return handler.document


def must_parse(xml_data: bytes) -> EposDocument:
    """Parse a body the caller knows is valid; any ParseError is fatal."""
    try:
        return parse(xml_data)
    except ParseError as e:
        raise RuntimeError(f"must_parse: {e}") from e
