import os
from dataclasses import dataclass


@dataclass
class AppSettings:
    """Environment-driven defaults for the command line tool"""

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
    LOG_FILE = os.getenv("IRTT_TELEGRAF_LOG_FILE") or None

    # irtt client invocation
    IRTT_BINARY = os.getenv("IRTT_BINARY", "irtt")
    IRTT_TIMEOUT = float(os.getenv("IRTT_TIMEOUT", "30"))  # seconds, on top of the test duration

    # Output defaults, overridable per command
    TELEGRAF_FORMAT = os.getenv("TELEGRAF_FORMAT", "json")
    TELEGRAF_JSON_SHAPE = os.getenv("TELEGRAF_JSON_SHAPE", "nested")
