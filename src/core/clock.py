"""Wall-clock source expressed in epoch milliseconds."""
import time
from collections.abc import Callable

# A clock returns the current time as epoch milliseconds. Token expiry is stored
# and compared in the same unit.
Clock = Callable[[], int]

MILLIS_PER_HOUR = 3_600_000


def system_clock() -> int:
    """Return the current system time in epoch milliseconds."""
    return time.time_ns() // 1_000_000
