import time
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], int]


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def format_ms(epoch_ms: int | None) -> str:
    if epoch_ms is None:
        return "none"
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat(timespec="milliseconds")
