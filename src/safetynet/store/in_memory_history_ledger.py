from datetime import datetime
from threading import Lock
from typing import List, Optional
from uuid import UUID, uuid4

from src.safetynet.domain.delivery_record import DeliveryRecord
from src.safetynet.interfaces.history_ledger import HistoryLedger


class InMemoryHistoryLedger(HistoryLedger):
    """
    Process-local ledger for tests and single-process deployments.
    Every operation takes the lock, so reads always see completed writes.
    """

    def __init__(self):
        self._records: List[DeliveryRecord] = []
        self._lock = Lock()

    def record(self, address: str, channel: str, action: str, timestamp: datetime) -> UUID:
        record = DeliveryRecord(
            id=uuid4(),
            address=address,
            channel=channel,
            action=action,
            created_at=timestamp,
        )
        with self._lock:
            self._records.append(record)
        return record.id

    def count_matching(
        self,
        address: str,
        channel: str,
        action: str,
        since: Optional[datetime] = None,
    ) -> int:
        with self._lock:
            return sum(
                1
                for r in self._records
                if r.address == address
                and r.channel == channel
                and r.action == action
                and (since is None or r.created_at >= since)
            )

    def purge_all(self) -> None:
        with self._lock:
            self._records.clear()

    def history(self, address: Optional[str] = None) -> List[DeliveryRecord]:
        with self._lock:
            records = [r for r in self._records if address is None or r.address == address]
        return sorted(records, key=lambda r: r.created_at)
