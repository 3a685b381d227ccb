"""
Battery status helper for conky and other scripts.
Outputs battery level, charge flag and time remaining.
"""

from . import config
from .aggregation import BatteryAggregator, BatteryState, build_report
from .bq25895 import BQ25895
from .bus import I2CBus
from .max17048 import MAX17048


def format_status(report, charge) -> list:
    """Lines to print for one report and the charger reading it came from."""
    status = " CHG" if report.state is BatteryState.CHARGING else ""
    lines = [f"> {report.level_percent}%{status}"]

    if charge is not None and charge.minutes_remaining >= 0:
        hours, minutes = divmod(charge.minutes_remaining, 60)
        if hours > 0:
            lines.append(f"  {hours}h {minutes}m remaining")
        else:
            lines.append(f"  {minutes}m remaining")
    return lines


def main():
    """Entry point for battery status output."""
    try:
        bus = I2CBus(config.I2C_BUS)
    except OSError:
        print("> N/A")
        return

    try:
        # Chips are polled as configured by the server; no re-initialization.
        aggregator = BatteryAggregator(BQ25895(bus), MAX17048(bus))
        charge, gauge = aggregator.collect()
        for line in format_status(build_report(charge, gauge), charge):
            print(line)
    except Exception:
        print("> ERR")
    finally:
        bus.close()


if __name__ == "__main__":
    main()
