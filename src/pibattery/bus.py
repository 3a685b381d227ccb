"""
Shared I2C bus transport.

Both chips sit on the same bus. Every transaction holds the bus lock, so a
register address write and the data read that follows it are never
interleaved with another driver's traffic.
"""

import logging
from threading import Lock

from smbus2 import SMBus, i2c_msg

from .errors import TransportError

logger = logging.getLogger(__name__)


class I2CBus:
    """Serialized access to one /dev/i2c-N bus."""

    def __init__(self, busnum: int = 1, bus: SMBus = None):
        self.busnum = busnum
        self._bus = bus if bus is not None else SMBus(busnum)
        self._lock = Lock()

    def write(self, address: int, data: bytes):
        """Write raw bytes to a device."""
        msg = i2c_msg.write(address, list(data))
        with self._lock:
            try:
                self._bus.i2c_rdwr(msg)
            except OSError as e:
                raise TransportError(address, f"write failed: {e}") from e

    def write_read(self, address: int, data: bytes, length: int) -> bytes:
        """
        Write bytes then read `length` bytes back in one combined transaction.

        Returns:
            The bytes read, in the order the device sent them.
        """
        write = i2c_msg.write(address, list(data))
        read = i2c_msg.read(address, length)
        with self._lock:
            try:
                self._bus.i2c_rdwr(write, read)
            except OSError as e:
                raise TransportError(address, f"read failed: {e}") from e
        return bytes(list(read))

    def close(self):
        """Release the bus file descriptor."""
        with self._lock:
            self._bus.close()
        logger.debug("Closed I2C bus %d", self.busnum)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
