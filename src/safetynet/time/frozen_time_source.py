from datetime import datetime, timedelta
from src.safetynet.interfaces.time_source import TimeSource

class FrozenTimeSource(TimeSource):
    """
    Test time source.
    Stands still until advanced, so window edges can be hit exactly.
    """
    def __init__(self, start_time: datetime):
        if start_time.tzinfo is None:
            raise ValueError("FrozenTimeSource requires timezone-aware datetime")
        self._current_time = start_time

    def now(self) -> datetime:
        return self._current_time

    def advance(self, delta: timedelta) -> None:
        self._current_time += delta

