from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class DeliveryRecord:
    """
    Immutable ledger row for one permitted delivery.
    Created only when a delivery was just permitted; never updated.
    """
    id: UUID
    address: str
    channel: str
    action: str
    created_at: datetime
