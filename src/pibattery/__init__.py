"""
pibattery - Battery status for a Raspberry Pi UPS with BQ25895 + MAX17048.

This package provides:
- BQ25895 charge controller driver (ADC polling, under-voltage protection)
- MAX17048 fuel gauge driver
- Aggregation of both chips into one battery report
- HTTP JSON endpoint serving the report
- One-shot status output for conky
"""

__version__ = "1.0.0"

from .aggregation import (
    BatteryAggregator,
    BatteryReport,
    BatteryState,
    build_report,
)
from .bq25895 import BQ25895, ChargeStage, ChargeStatus, InputPower
from .bus import I2CBus
from .errors import (
    BatteryError,
    InitializationError,
    SerializationError,
    TransportError,
)
from .max17048 import MAX17048, GaugeStatus

__all__ = [
    "BatteryAggregator",
    "BatteryReport",
    "BatteryState",
    "build_report",
    "BQ25895",
    "ChargeStage",
    "ChargeStatus",
    "InputPower",
    "I2CBus",
    "BatteryError",
    "InitializationError",
    "SerializationError",
    "TransportError",
    "MAX17048",
    "GaugeStatus",
]
