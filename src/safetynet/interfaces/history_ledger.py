from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from src.safetynet.domain.delivery_record import DeliveryRecord


class HistoryLedger(ABC):
    """
    Append-only log of permitted deliveries.
    Matching is exact string equality on address, channel and action.
    Implementations raise StorageError when the backing store fails.
    """
    @abstractmethod
    def record(self, address: str, channel: str, action: str, timestamp: datetime) -> UUID:
        pass

    @abstractmethod
    def count_matching(
        self,
        address: str,
        channel: str,
        action: str,
        since: Optional[datetime] = None,
    ) -> int:
        """
        Count records for the exact tuple with created_at >= since.
        No lower bound when since is None.
        """
        pass

    @abstractmethod
    def purge_all(self) -> None:
        pass

    @abstractmethod
    def history(self, address: Optional[str] = None) -> List[DeliveryRecord]:
        pass
