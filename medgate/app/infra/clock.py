"""Host clock handing out non-decreasing integer UNIX timestamps.

The floor lives in process memory and is re-seeded from stored records by
`init_db`; workers in separate processes each keep their own floor.
"""
import threading
import time

_lock = threading.Lock()
_last = 0


def current_timestamp() -> int:
    global _last
    with _lock:
        _last = max(int(time.time()), _last)
        return _last


def advance_to(timestamp: int) -> None:
    """Never hand out anything older than timestamp from now on."""
    global _last
    with _lock:
        _last = max(timestamp, _last)
