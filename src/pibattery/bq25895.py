"""
BQ25895 charge controller driver.

Configures the charger at startup and reads charge state and battery voltage
through the chip's one-shot ADC. The ADC needs a fixed conversion time
between the start command and the result reads.
"""

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from threading import Lock

from .errors import InitializationError, TransportError

logger = logging.getLogger(__name__)

# Battery pack used for the time-remaining estimate
BAT_CAPACITY_MAH = 2500
CURRENT_DRAW_MA = 2000

# Operating voltage range mapped onto 0-100%
VOLT_MIN = 3.5
VOLT_MAX = 4.184

# REG0E: 2.304V offset plus one weight per bit, bit 6 down to bit 0
BATV_OFFSET = 2.304
BATV_WEIGHTS = (1.280, 0.640, 0.320, 0.160, 0.080, 0.040, 0.020)


class InputPower(Enum):
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"


class ChargeStage(Enum):
    NOT_CHARGING = "Not Charging"
    PRE_CHARGE = "Pre-Charge"
    CHARGING = "Charging"
    CHARGE_DONE = "Charging done"


# CHRG_STAT bits [4:3] of REG0B
CHARGE_STAGES = {
    0b00: ChargeStage.NOT_CHARGING,
    0b01: ChargeStage.PRE_CHARGE,
    0b10: ChargeStage.CHARGING,
    0b11: ChargeStage.CHARGE_DONE,
}


@dataclass(frozen=True)
class ChargeStatus:
    """One decoded charger poll."""

    input_power: InputPower
    charge_stage: ChargeStage
    battery_voltage: float
    battery_percentage: float
    minutes_remaining: int


def decode_status(status: int):
    """Split REG0B into (input power, charge stage)."""
    power_good = (status >> 2) & 0b1
    input_power = InputPower.CONNECTED if power_good else InputPower.DISCONNECTED
    charge_stage = CHARGE_STAGES[(status >> 3) & 0b11]
    return input_power, charge_stage


def decode_battery_voltage(raw: int) -> float:
    """Convert the 7-bit BATV field of REG0E to volts. Bit 7 is ignored."""
    voltage = BATV_OFFSET
    for bit, weight in zip(range(6, -1, -1), BATV_WEIGHTS):
        if (raw >> bit) & 1:
            voltage += weight
    return voltage


def translate(value, in_from, in_to, out_from, out_to):
    """Linearly map value from one range onto another."""
    in_range = in_to - in_from
    out_range = out_to - out_from
    return out_from + ((value - in_from) / in_range) * out_range


def voltage_to_fraction(voltage: float) -> float:
    """Map battery voltage onto [0, 1] across the operating range."""
    fraction = translate(voltage, VOLT_MIN, VOLT_MAX, 0.0, 1.0)
    return max(0.0, min(1.0, fraction))


def estimate_minutes_remaining(fraction: float, input_power: InputPower) -> int:
    """
    Minutes of runtime left at the nominal draw.

    Returns -1 while input power is connected, since the pack is charging.
    """
    if input_power is InputPower.CONNECTED:
        return -1
    return math.floor(fraction * 60 * BAT_CAPACITY_MAH / CURRENT_DRAW_MA)


class BQ25895:
    ADDRESS = 0x6A

    # I2C registers
    REG_ILIM = 0x00       # input current limit
    REG_CONV_ADC = 0x02   # ADC control
    REG_ICHG = 0x04       # fast charge current limit
    REG_WATCHDOG = 0x07   # watchdog timer control
    REG_BATFET = 0x09     # battery FET control
    REG_STATUS = 0x0B     # system status
    REG_BATV = 0x0E       # battery voltage ADC result

    # register patterns
    BYTE_WATCHDOG_STOP = 0b10001101
    BYTE_ICHG = 0b01111111          # conservative fast charge current
    BYTE_BATFET = 0b01001000        # delay before battery is disconnected
    BYTE_BATFET_DIS = 0b01101000
    BYTE_CONV_ADC_START = 0b10011101
    BYTE_CONV_ADC_STOP = 0b00011101

    INPUT_LIMITS = {
        "2A": 0b01101000,
        "3A": 0b01111100,
        "3.25A": 0b01111111,
    }
    DEFAULT_INPUT_LIMIT = "3.25A"

    # seconds the ADC needs between start and result
    ADC_CONVERSION_TIME = 1.2

    def __init__(self, bus, address: int = ADDRESS):
        self.bus = bus
        self.address = address
        self._adc_lock = Lock()

    def _write_reg(self, reg: int, value: int):
        self.bus.write(self.address, bytes([reg, value]))

    def _read_reg(self, reg: int) -> int:
        return self.bus.write_read(self.address, bytes([reg]), 1)[0]

    def initialize(self, input_limit: str = DEFAULT_INPUT_LIMIT):
        """
        Stop the watchdog and program input limit, charge current and BATFET.

        The watchdog must be stopped first or the chip reverts to its default
        limits. The first failed write aborts the rest.

        Raises:
            InitializationError: naming the step that failed.
        """
        if input_limit not in self.INPUT_LIMITS:
            logger.warning(
                "Unknown input limit %r, using %s", input_limit, self.DEFAULT_INPUT_LIMIT
            )
            input_limit = self.DEFAULT_INPUT_LIMIT

        steps = [
            ("stop watchdog", self.REG_WATCHDOG, self.BYTE_WATCHDOG_STOP),
            (f"set input limit {input_limit}", self.REG_ILIM, self.INPUT_LIMITS[input_limit]),
            ("set charge current", self.REG_ICHG, self.BYTE_ICHG),
            ("set BATFET delay", self.REG_BATFET, self.BYTE_BATFET),
        ]
        for name, reg, value in steps:
            try:
                self._write_reg(reg, value)
            except TransportError as e:
                raise InitializationError(f"BQ25895 {name} failed: {e}") from e

        logger.info("BQ25895 configured (input limit %s)", input_limit)

    def get_status(self) -> ChargeStatus:
        """
        Run one ADC conversion and decode charge state and battery voltage.

        Blocks for ADC_CONVERSION_TIME. Under-voltage disables the BATFET.

        Raises:
            TransportError: if starting the ADC or reading a result fails.
        """
        status, raw_batv = self._convert()

        input_power, charge_stage = decode_status(status)
        voltage = decode_battery_voltage(raw_batv)
        fraction = voltage_to_fraction(voltage)
        minutes = estimate_minutes_remaining(fraction, input_power)

        if voltage < VOLT_MIN:
            self._protect(voltage)

        return ChargeStatus(
            input_power=input_power,
            charge_stage=charge_stage,
            battery_voltage=voltage,
            battery_percentage=fraction,
            minutes_remaining=minutes,
        )

    def _convert(self):
        """Start the ADC, wait out the conversion, read status and BATV, stop the ADC."""
        # whole conversions are serialized across callers
        with self._adc_lock:
            self._write_reg(self.REG_CONV_ADC, self.BYTE_CONV_ADC_START)
            time.sleep(self.ADC_CONVERSION_TIME)

            try:
                status = self._read_reg(self.REG_STATUS)
                raw_batv = self._read_reg(self.REG_BATV)
            finally:
                try:
                    self._write_reg(self.REG_CONV_ADC, self.BYTE_CONV_ADC_STOP)
                except TransportError as e:
                    logger.warning("BQ25895 ADC stop failed: %s", e)
        return status, raw_batv

    def _protect(self, voltage: float):
        """Disconnect the battery to stop an under-voltage discharge."""
        logger.warning("Battery at %.3f V, below %.1f V: disabling BATFET", voltage, VOLT_MIN)
        try:
            self._write_reg(self.REG_BATFET, self.BYTE_BATFET_DIS)
        except TransportError as e:
            logger.error("BQ25895 BATFET disable failed: %s", e)
