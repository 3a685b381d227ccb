"""Shared fixtures: an in-memory stand-in for the I2C bus."""

import pytest

from pibattery.errors import TransportError


class FakeBus:
    """
    Records writes and serves canned register bytes.

    Failures are injected per (device address, register) pair.
    """

    def __init__(self):
        self.writes = []
        self.registers = {}
        self.fail_writes = set()
        self.fail_reads = set()

    def write(self, address, data):
        data = bytes(data)
        if (address, data[0]) in self.fail_writes:
            raise TransportError(address, "write failed: [Errno 121] Remote I/O error")
        self.writes.append((address, data))

    def write_read(self, address, data, length):
        reg = data[0]
        if (address, reg) in self.fail_reads:
            raise TransportError(address, "read failed: [Errno 121] Remote I/O error")
        return bytes(self.registers[(address, reg)][:length])

    def close(self):
        pass


class StubSource:
    """A driver stand-in returning a fixed status or raising an error."""

    def __init__(self, status=None, error=None):
        self.status = status
        self.error = error
        self.calls = 0

    def get_status(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.status


@pytest.fixture
def bus():
    return FakeBus()
