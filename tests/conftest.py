"""Shared fixtures: recording mock writers and printers that never sleep."""

import pytest

from epos_relay.printer import Printer

EPOS_NS = "http://www.epson-pos.com/schemas/2012/10/epos-print"


class MockWriter:
    """Records calls; optional errors are raised from each call."""

    def __init__(self, write_error=None, open_error=None, close_error=None):
        self.write_error = write_error
        self.open_error = open_error
        self.close_error = close_error
        self.writes = []
        self.open_calls = 0
        self.close_calls = 0
        self.events = []

    def write_raw(self, data):
        self.writes.append(bytes(data))
        self.events.append("write")
        if self.write_error is not None:
            raise self.write_error

    def open(self):
        self.open_calls += 1
        self.events.append("open")
        if self.open_error is not None:
            raise self.open_error

    def close(self):
        self.close_calls += 1
        self.events.append("close")
        if self.close_error is not None:
            raise self.close_error


class PartialFailWriter(MockWriter):
    """Accepts the first `fail_after` writes, then fails every write."""

    def __init__(self, fail_after):
        super().__init__()
        self.fail_after = fail_after

    def write_raw(self, data):
        self.writes.append(bytes(data))
        if len(self.writes) > self.fail_after:
            raise ConnectionError("write failed")


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def mock_writer():
    return MockWriter()


@pytest.fixture
def make_printer(sleeps):
    def factory(connection, receipt_width=576):
        return Printer("/test", receipt_width, connection, retry_delay=0, sleep=sleeps.append)

    return factory


@pytest.fixture
def printer(make_printer, mock_writer):
    return make_printer(mock_writer)


def epos(body: str, namespace: str = EPOS_NS) -> bytes:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<epos-print xmlns="{namespace}">\n{body}\n</epos-print>'
    ).encode("utf-8")
