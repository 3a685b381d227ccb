"""
MAX17048 fuel gauge driver.
"""

from dataclasses import dataclass

from .errors import InitializationError, TransportError

# VCELL LSB is 78.125uV
VCELL_UV_PER_LSB = 78.125
# SOC LSB is 1/256 %
SOC_LSB_PER_PERCENT = 256.0


@dataclass(frozen=True)
class GaugeStatus:
    voltage: float
    state_of_charge: float


def swap_word(data: bytes) -> int:
    """
    Build a 16-bit register value from two received bytes.

    The first byte received goes in the high position and the second in the
    low position, matching how this gauge's readings have always been decoded.
    """
    return (data[0] << 8) | data[1]


class MAX17048:
    ADDRESS = 0x36

    REG_VCELL = 0x02
    REG_SOC = 0x04
    REG_CMD = 0xFE

    CMD_RESET = 0xFFFF

    def __init__(self, bus, address: int = ADDRESS):
        self.bus = bus
        self.address = address

    def _read_word(self, reg: int) -> int:
        return swap_word(self.bus.write_read(self.address, bytes([reg]), 2))

    def initialize(self):
        """Send the reset command. The gauge is not read back."""
        data = bytes([self.REG_CMD, self.CMD_RESET >> 8, self.CMD_RESET & 0xFF])
        try:
            self.bus.write(self.address, data)
        except TransportError as e:
            raise InitializationError(f"MAX17048 reset failed: {e}") from e

    def get_status(self) -> GaugeStatus:
        """Read cell voltage (volts) and state of charge (percent)."""
        voltage = self._read_word(self.REG_VCELL) * VCELL_UV_PER_LSB / 1_000_000
        soc = self._read_word(self.REG_SOC) / SOC_LSB_PER_PERCENT
        return GaugeStatus(voltage=voltage, state_of_charge=soc)
