"""Constants for the filament extruder monitor."""

from __future__ import annotations

CONF_PORT = "port"
CONF_BAUDRATE = "baudrate"
CONF_TIMEOUT = "timeout"
CONF_HISTORY_SIZE = "history_size"
CONF_WARNING_LIMIT = "warning_limit"

DEFAULT_BAUDRATE = 115200
DEFAULT_TIMEOUT = 0.1
DEFAULT_HISTORY_SIZE = 500
DEFAULT_WARNING_LIMIT = 10
RECONNECT_DELAY = 2.0

FIELD_COUNT = 37
STATUS_POSITION = 29
INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

WAKEUP_PAYLOAD = b"\n"
