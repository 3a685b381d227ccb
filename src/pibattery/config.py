"""
Runtime configuration for the battery status server.

Values are read once at import from the environment, after loading a
.env file from the working directory if one exists.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv

load_dotenv()

# HTTP listener
HOST = os.getenv("PIBATTERY_HOST", "0.0.0.0")
PORT = int(os.getenv("PIBATTERY_PORT", "3000"))

# I2C bus number (/dev/i2c-N)
I2C_BUS = int(os.getenv("PIBATTERY_I2C_BUS", "1"))

# BQ25895 input current tier: "2A", "3A" or "3.25A"
INPUT_LIMIT = os.getenv("PIBATTERY_INPUT_LIMIT", "3.25A")

# Seconds to wait for one reporting cycle before answering with what we have
POLL_TIMEOUT = float(os.getenv("PIBATTERY_POLL_TIMEOUT", "10"))

# Logging
LOG_LEVEL = os.getenv("PIBATTERY_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("PIBATTERY_LOG_FILE")
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 3


def setup_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE):
    """Configure the root logger: stderr always, a rotating file if asked."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
        )

    # replaces handlers left by an earlier call
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, handlers=handlers, force=True)
