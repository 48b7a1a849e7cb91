from __future__ import annotations

DEFAULT_DELIMITER = ";"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3306
DEFAULT_TIMEOUT = 60.0          # seconds per statement

# Verbosity levels understood by the executor
VERBOSITY_NONE = 0
VERBOSITY_LOW = 1
VERBOSITY_MEDIUM = 2
VERBOSITY_FULL = 3

VERBOSITY_NAMES = {
    "none": VERBOSITY_NONE,
    "n": VERBOSITY_NONE,
    "low": VERBOSITY_LOW,
    "l": VERBOSITY_LOW,
    "medium": VERBOSITY_MEDIUM,
    "med": VERBOSITY_MEDIUM,
    "m": VERBOSITY_MEDIUM,
    "full": VERBOSITY_FULL,
    "f": VERBOSITY_FULL,
}
