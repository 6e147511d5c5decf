import logging
import sys
from typing import Iterable, Optional

from src.safetynet.adapters.notifiers import NoopDenialNotifier
from src.safetynet.domain.batch_decision import BatchDecision
from src.safetynet.domain.channel import channel_tag
from src.safetynet.domain.denial_notice import DEFAULT_DENIAL_MESSAGE, DenialNotice
from src.safetynet.domain.policy import (
    DISABLED,
    Limit,
    PolicyContext,
    Timeframe,
    validate_limit,
    validate_timeframe,
)
from src.safetynet.interfaces.denial_notifier import DenialNotifier
from src.safetynet.interfaces.history_ledger import HistoryLedger
from src.safetynet.interfaces.rate_limitable import RateLimitable
from src.safetynet.interfaces.time_source import TimeSource
from src.safetynet.logging.structured_logger import StructuredEventLogger
from src.safetynet.time.system_time_source import SystemTimeSource

logger = logging.getLogger(__name__)


def _caller_name(depth: int) -> str:
    # depth counts frames above the function calling _caller_name
    return sys._getframe(depth + 1).f_code.co_name


class RateDecisionEngine:
    """
    Decides whether a delivery to (address, channel, action) may go out.

    The count and the record are two separate ledger calls: concurrent
    evaluations of the same tuple may both see the pre-increment count and
    both permit. Single-process callers never observe this.
    """

    def __init__(
        self,
        ledger: HistoryLedger,
        notifier: Optional[DenialNotifier] = None,
        time_source: Optional[TimeSource] = None,
        event_logger: Optional[StructuredEventLogger] = None,
    ):
        self.ledger = ledger
        self.notifier = notifier or NoopDenialNotifier()
        self.time_source = time_source or SystemTimeSource()
        self.event_logger = event_logger or StructuredEventLogger()

    def is_whitelisted(self, address: str, context: PolicyContext) -> bool:
        if context.whitelist is None:
            return False
        return context.whitelist.search(address) is not None

    def evaluate(
        self,
        address: str,
        context: PolicyContext,
        channel=None,
        action: Optional[str] = None,
        limit: Optional[Limit] = None,
        timeframe: Optional[Timeframe] = None,
    ) -> bool:
        """
        Return True when the delivery is permitted, recording it in the ledger.

        channel defaults to the context's channel and action to the name of
        the calling function. limit/timeframe override the channel options;
        pass DISABLED to switch a dimension off.
        """
        if self.is_whitelisted(address, context):
            self.event_logger.emit("DELIVERY_WHITELISTED", level=logging.DEBUG, address=address)
            return True

        channel = channel_tag(channel) if channel is not None else context.channel
        if action is None:
            action = _caller_name(1)

        if limit is None or timeframe is None:
            options = context.options_for(channel)
            limit = options.limit if limit is None else limit
            timeframe = options.timeframe if timeframe is None else timeframe
        validate_limit(limit)
        validate_timeframe(timeframe)

        now = self.time_source.now()
        count = None
        permitted = True
        if limit is not DISABLED:
            since = None if timeframe is DISABLED else now - timeframe
            count = self.ledger.count_matching(address, channel, action, since)
            permitted = count < limit

        if permitted:
            self.ledger.record(address, channel, action, now)
            self.event_logger.emit(
                "DELIVERY_PERMITTED",
                address=address,
                channel=channel,
                action=action,
                count=count,
                limit=limit,
            )
            return True

        self.event_logger.emit(
            "DELIVERY_DENIED",
            level=logging.WARNING,
            address=address,
            channel=channel,
            action=action,
            count=count,
            limit=limit,
            timeframe=timeframe,
        )
        self._notify(
            DenialNotice(
                address=address,
                channel=channel,
                action=action,
                limit=limit,
                timeframe=timeframe,
                message=DEFAULT_DENIAL_MESSAGE,
            )
        )
        return False

    def filter_recipients(
        self,
        addresses: Iterable[str],
        context: PolicyContext,
        channel=None,
        action: Optional[str] = None,
        limit: Optional[Limit] = None,
        timeframe: Optional[Timeframe] = None,
    ) -> BatchDecision:
        """
        Evaluate each address of one outbound operation independently, in order.
        """
        if action is None:
            action = _caller_name(1)
        permitted = []
        denied = []
        for address in addresses:
            if self.is_whitelisted(address, context) or self.evaluate(
                address, context, channel, action, limit, timeframe
            ):
                permitted.append(address)
            else:
                denied.append(address)
        return BatchDecision(permitted=permitted, denied=denied)

    def permit_delivery(
        self,
        owner: RateLimitable,
        address: str,
        channel=None,
        action: Optional[str] = None,
        limit: Optional[Limit] = None,
        timeframe: Optional[Timeframe] = None,
    ) -> bool:
        if action is None:
            action = _caller_name(1)
        return self.evaluate(address, owner.resolve_policy(), channel, action, limit, timeframe)

    def _notify(self, notice: DenialNotice) -> None:
        try:
            self.notifier.notify(notice)
        except Exception as exc:
            logger.exception("denial notifier failed for %s", notice.address)
            self.event_logger.emit(
                "DENIAL_NOTIFIER_FAILED",
                level=logging.ERROR,
                address=notice.address,
                channel=notice.channel,
                action=notice.action,
                error=repr(exc),
            )
