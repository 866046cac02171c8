"""Exception types raised by the relay."""


class EposRelayError(Exception):
    """Base class for all relay errors."""


class ParseError(EposRelayError):
    """The ePOS XML document could not be turned into instructions."""


class ValidationError(EposRelayError):
    """Image data does not fit the dimensions it was sent with."""


class PrinterConnectionError(EposRelayError, ConnectionError):
    """Opening, writing to or closing a printer transport failed."""
