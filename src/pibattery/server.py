#!/usr/bin/env python3
"""
Battery status HTTP server.

Serves the reconciled battery report as JSON on GET /. A failed chip read
still answers 200 with a degraded report; only a report that cannot be
encoded answers 500.
"""

import argparse
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from . import __version__, config
from .aggregation import BatteryAggregator, BatteryReport
from .bq25895 import BQ25895
from .bus import I2CBus
from .errors import InitializationError, SerializationError
from .max17048 import MAX17048

logger = logging.getLogger(__name__)


def encode_report(report: BatteryReport) -> str:
    """Encode a report as the JSON body clients expect."""
    try:
        return json.dumps(report.model_dump(by_alias=True), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"cannot encode battery report: {e}") from e


def create_app(aggregator: BatteryAggregator, poll_timeout: float = config.POLL_TIMEOUT) -> FastAPI:
    """Build the FastAPI app around an aggregator."""
    app = FastAPI(
        title="pibattery",
        description="Battery status from a BQ25895 charger and a MAX17048 fuel gauge",
        version=__version__,
    )

    @app.exception_handler(SerializationError)
    async def serialization_error_handler(request: Request, exc: SerializationError):
        logger.error("%s", exc)
        return PlainTextResponse("Failed to encode response", status_code=500)

    @app.get("/")
    def battery_status():
        report = aggregator.report(timeout=poll_timeout)
        return Response(content=encode_report(report), media_type="application/json")

    return app


def init_drivers(bus, input_limit: str = config.INPUT_LIMIT):
    """
    Construct both drivers and configure the chips.

    A chip that fails to configure is still returned: it is polled
    unconfigured rather than dropped.
    """
    charger = BQ25895(bus)
    try:
        charger.initialize(input_limit)
    except InitializationError as e:
        logger.error("Failed to configure BQ25895: %s", e)

    gauge = MAX17048(bus)
    try:
        gauge.initialize()
    except InitializationError as e:
        logger.error("Failed to configure MAX17048: %s", e)

    logger.info(
        "Hardware initialized: BQ25895 (Addr: 0x%X), MAX17048 (Addr: 0x%X)",
        charger.address,
        gauge.address,
    )
    return charger, gauge


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Serve battery status over HTTP")
    parser.add_argument("--host", default=config.HOST, help="listen address")
    parser.add_argument("--port", type=int, default=config.PORT, help="listen port")
    parser.add_argument("--bus", type=int, default=config.I2C_BUS, help="I2C bus number")
    parser.add_argument(
        "--input-limit",
        default=config.INPUT_LIMIT,
        choices=sorted(BQ25895.INPUT_LIMITS),
        help="BQ25895 input current limit",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Entry point for the battery status server."""
    args = parse_args(argv)
    config.setup_logging()
    logger.info("Starting pibattery %s...", __version__)

    try:
        bus = I2CBus(args.bus)
    except OSError as e:
        logger.critical("Failed to open I2C bus %d: %s", args.bus, e)
        sys.exit(1)

    charger, gauge = init_drivers(bus, args.input_limit)

    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="poll")
    aggregator = BatteryAggregator(charger, gauge, executor=executor)
    app = create_app(aggregator, config.POLL_TIMEOUT)

    logger.info("Listening on %s:%d", args.host, args.port)
    try:
        uvicorn.run(app, host=args.host, port=args.port, log_level=config.LOG_LEVEL.lower())
    finally:
        executor.shutdown(wait=False)
        bus.close()


if __name__ == "__main__":
    main()
