from abc import ABC, abstractmethod
from datetime import datetime

class TimeSource(ABC):
    """
    Abstract source of time for delivery decisions.
    Ensures all timestamps are UTC-aware and controllable in tests.
    """
    @abstractmethod
    def now(self) -> datetime:
        pass
