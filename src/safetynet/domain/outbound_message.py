from dataclasses import dataclass, field
from typing import List


@dataclass
class OutboundMessage:
    """
    Composed-but-not-yet-sent message handed to the DeliveryGuard.
    Mutable: the guard rewrites recipients and the delivery flag in place.
    """
    action: str
    recipients: List[str] = field(default_factory=list)
    perform_deliveries: bool = True
