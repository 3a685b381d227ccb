"""
Battery state aggregation.

Merges one BQ25895 poll and one MAX17048 poll into a single BatteryReport.
Either source may be missing for a cycle; the report degrades instead of
failing. Level and voltage come from the fuel gauge when it answered, the
charge state always comes from the charger.
"""

import logging
import math
from concurrent.futures import wait
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .bq25895 import ChargeStage, ChargeStatus, InputPower
from .errors import BatteryError
from .max17048 import GaugeStatus

logger = logging.getLogger(__name__)


class BatteryState(str, Enum):
    CHARGING = "Charging"
    FULL = "Full"
    NOT_CHARGING = "NotCharging"
    DISCHARGING = "Discharging"


class BatteryReport(BaseModel):
    """The reconciled battery status served to clients."""

    model_config = ConfigDict(populate_by_name=True)

    level_percent: int = Field(0, ge=0, le=100, alias="sensor.battery_level")
    voltage: float = Field(0.0, alias="sensor.battery_voltage")
    state: BatteryState = Field(BatteryState.DISCHARGING, alias="sensor.battery_state")

    @computed_field(alias="sensor.is_charging")
    @property
    def is_charging(self) -> bool:
        return self.state is BatteryState.CHARGING


def _clamp_level(value: float) -> int:
    # halves round up: 54.5% reads as 55
    return max(0, min(100, math.floor(value + 0.5)))


def classify(charge: Optional[ChargeStatus]) -> BatteryState:
    """Derive the battery state from the charger reading alone."""
    if charge is None:
        return BatteryState.DISCHARGING
    if charge.charge_stage is ChargeStage.CHARGE_DONE:
        return BatteryState.FULL
    if charge.charge_stage in (ChargeStage.CHARGING, ChargeStage.PRE_CHARGE):
        return BatteryState.CHARGING
    if charge.input_power is InputPower.CONNECTED:
        return BatteryState.NOT_CHARGING
    return BatteryState.DISCHARGING


def build_report(
    charge: Optional[ChargeStatus], gauge: Optional[GaugeStatus]
) -> BatteryReport:
    """
    Combine whatever sources answered this cycle.

    Args:
        charge: BQ25895 reading, or None if the charger was unreachable
        gauge: MAX17048 reading, or None if the gauge was unreachable

    Returns:
        BatteryReport with level/voltage from the gauge when present, else
        from the charger, else zero.
    """
    level = 0
    voltage = 0.0
    if gauge is not None:
        level = _clamp_level(gauge.state_of_charge)
        voltage = gauge.voltage
    elif charge is not None:
        level = _clamp_level(charge.battery_percentage * 100)
        voltage = charge.battery_voltage

    return BatteryReport(level_percent=level, voltage=voltage, state=classify(charge))


class BatteryAggregator:
    """
    Polls the charger and the fuel gauge and builds one report per cycle.

    With an executor the two polls run concurrently, which hides the
    charger's ADC wait behind the gauge reads. The bus lock still
    serializes their actual traffic.
    """

    def __init__(self, charger=None, gauge=None, executor=None):
        self.charger = charger
        self.gauge = gauge
        self.executor = executor

    def _poll(self, name, source):
        if source is None:
            return None
        try:
            return source.get_status()
        except BatteryError as e:
            logger.error("Error reading %s: %s", name, e)
            return None

    def collect(self, timeout: Optional[float] = None):
        """
        Poll both sources once.

        Returns:
            Tuple of (ChargeStatus or None, GaugeStatus or None)
        """
        sources = [("BQ25895", self.charger), ("MAX17048", self.gauge)]

        if self.executor is None:
            return tuple(self._poll(name, source) for name, source in sources)

        futures = [self.executor.submit(self._poll, name, source) for name, source in sources]
        done, _ = wait(futures, timeout=timeout)

        results = []
        for (name, _source), future in zip(sources, futures):
            if future in done:
                results.append(future.result())
            else:
                # The poll keeps running on its worker; its result is dropped.
                logger.warning("%s poll did not finish within %ss, skipping it", name, timeout)
                results.append(None)
        return tuple(results)

    def report(self, timeout: Optional[float] = None) -> BatteryReport:
        """Poll both sources and build the report."""
        return build_report(*self.collect(timeout))
