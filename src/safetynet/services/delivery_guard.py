import logging
from typing import Optional

from src.safetynet.domain.outbound_message import OutboundMessage
from src.safetynet.domain.policy import PolicyContext
from src.safetynet.logging.structured_logger import StructuredEventLogger
from src.safetynet.services.rate_decision_engine import RateDecisionEngine


class DeliveryGuard:
    """
    Hook a sending pipeline calls after composing a message and before transport.
    Drops refused recipients and switches delivery off when none remain.
    """

    def __init__(
        self,
        engine: RateDecisionEngine,
        context: PolicyContext,
        event_logger: Optional[StructuredEventLogger] = None,
    ):
        self.engine = engine
        self.context = context
        self.event_logger = event_logger or engine.event_logger

    def watches(self, action: str) -> bool:
        return self.context.filters.watches(action)

    def check_window(self, message: OutboundMessage) -> bool:
        # Already stopped upstream
        if message.perform_deliveries is False:
            return False

        if not self.watches(message.action):
            self.event_logger.emit(
                "DELIVERY_WINDOW_SKIPPED", level=logging.DEBUG, action=message.action
            )
            return True

        decision = self.engine.filter_recipients(
            message.recipients,
            self.context,
            channel=self.context.channel,
            action=message.action,
        )
        message.recipients = list(decision.permitted)
        message.perform_deliveries = decision.proceed

        self.event_logger.emit(
            "DELIVERY_WINDOW_CHECKED",
            action=message.action,
            channel=self.context.channel,
            permitted=len(decision.permitted),
            denied=len(decision.denied),
            perform_deliveries=message.perform_deliveries,
        )
        return message.perform_deliveries
