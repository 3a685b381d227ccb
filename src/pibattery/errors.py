"""
Error types raised by the bus transport, the chip drivers and the HTTP layer.
"""


class BatteryError(Exception):
    """Base class for all pibattery errors."""


class TransportError(BatteryError):
    """An I2C write or read against a device failed."""

    def __init__(self, address: int, message: str):
        super().__init__(f"I2C device 0x{address:02X}: {message}")
        self.address = address


class InitializationError(BatteryError):
    """A configuration write failed while initializing a chip."""


class SerializationError(BatteryError):
    """A battery report could not be encoded for the response."""
