from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Union

from src.safetynet.domain.policy import Disabled

DEFAULT_DENIAL_MESSAGE = "Safetynet has caught a method!"


@dataclass(frozen=True)
class DenialNotice:
    """
    Payload handed to a DenialNotifier when a delivery is refused.
    """
    address: str
    channel: str
    action: str
    limit: Union[int, Disabled]
    timeframe: Union[timedelta, Disabled]
    message: str = DEFAULT_DENIAL_MESSAGE

    def properties(self) -> Dict[str, Any]:
        return {
            "limit": self.limit,
            "timeframe": self.timeframe,
            "message": self.message,
        }
