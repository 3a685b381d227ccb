"""Tests for the locked smbus2 transport."""

import threading

import pytest

from pibattery.bus import I2CBus
from pibattery.errors import TransportError


class FakeSMBus:
    """Answers combined transactions from a register table."""

    def __init__(self, registers=None, error=None):
        self.registers = registers or {}
        self.error = error
        self.transactions = []
        self.closed = False

    def i2c_rdwr(self, *msgs):
        if self.error is not None:
            raise self.error
        write = msgs[0]
        data = bytes(list(write))
        self.transactions.append((write.addr, data))
        if len(msgs) > 1:
            read = msgs[1]
            reply = self.registers[(read.addr, data[0])]
            for i in range(read.len):
                read.buf[i] = bytes([reply[i]])

    def close(self):
        self.closed = True


def test_write():
    smbus = FakeSMBus()
    I2CBus(bus=smbus).write(0x6A, bytes([0x07, 0x8D]))
    assert smbus.transactions == [(0x6A, bytes([0x07, 0x8D]))]


def test_write_read_preserves_byte_order():
    smbus = FakeSMBus({(0x36, 0x02): [0x34, 0x12]})

    data = I2CBus(bus=smbus).write_read(0x36, bytes([0x02]), 2)

    assert data == bytes([0x34, 0x12])
    assert smbus.transactions == [(0x36, bytes([0x02]))]


def test_os_error_becomes_transport_error():
    bus = I2CBus(bus=FakeSMBus(error=OSError(121, "Remote I/O error")))

    with pytest.raises(TransportError) as excinfo:
        bus.write_read(0x36, bytes([0x04]), 2)

    assert excinfo.value.address == 0x36
    assert "0x36" in str(excinfo.value)


def test_context_manager_closes():
    smbus = FakeSMBus()
    with I2CBus(bus=smbus):
        pass
    assert smbus.closed


class BlockingSMBus(FakeSMBus):
    """Holds the first transaction open until released, counting overlap."""

    def __init__(self, registers):
        super().__init__(registers)
        self.entered = threading.Event()
        self.release = threading.Event()
        self.active = 0
        self.max_active = 0
        self._counter = threading.Lock()

    def i2c_rdwr(self, *msgs):
        with self._counter:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if not self.entered.is_set():
                self.entered.set()
                self.release.wait(5)
            super().i2c_rdwr(*msgs)
        finally:
            with self._counter:
                self.active -= 1


def test_transactions_never_overlap():
    smbus = BlockingSMBus({(0x36, 0x02): [0x34, 0x12], (0x6A, 0x0B): [0x14]})
    bus = I2CBus(bus=smbus)
    results = {}

    gauge_read = threading.Thread(
        target=lambda: results.update(gauge=bus.write_read(0x36, bytes([0x02]), 2))
    )
    charger_read = threading.Thread(
        target=lambda: results.update(charger=bus.write_read(0x6A, bytes([0x0B]), 1))
    )

    gauge_read.start()
    assert smbus.entered.wait(5)
    charger_read.start()
    charger_read.join(0.1)

    # the second transaction waits on the bus while the first is in flight
    assert charger_read.is_alive()
    assert smbus.transactions == []

    smbus.release.set()
    gauge_read.join(5)
    charger_read.join(5)

    assert smbus.max_active == 1
    assert smbus.transactions == [(0x36, bytes([0x02])), (0x6A, bytes([0x0B]))]
    assert results == {"gauge": bytes([0x34, 0x12]), "charger": bytes([0x14])}
