import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, List, Optional

from src.safetynet.domain.denial_notice import DenialNotice
from src.safetynet.interfaces.denial_notifier import DenialNotifier
from src.safetynet.logging.structured_logger import StructuredEventLogger

logger = logging.getLogger(__name__)


class NoopDenialNotifier(DenialNotifier):
    def notify(self, notice: DenialNotice) -> None:
        return


class LoggingDenialNotifier(DenialNotifier):
    """
    Reports denials as structured log events.
    """

    def __init__(self, event_logger: Optional[StructuredEventLogger] = None):
        self.event_logger = event_logger or StructuredEventLogger()

    def notify(self, notice: DenialNotice) -> None:
        self.event_logger.emit(
            "DELIVERY_DENIED_NOTICE",
            level=logging.WARNING,
            address=notice.address,
            channel=notice.channel,
            action=notice.action,
            **notice.properties(),
        )


class SmtpDenialNotifier(DenialNotifier):
    """
    Mails every denial to one operator address.
    A fresh connection per notice; denials are rare by construction.
    """

    def __init__(
        self,
        host: str,
        recipient: str,
        sender: Optional[str] = None,
        port: int = 587,
        use_ssl: bool = False,
        timeout: float = 30.0,
        username: Optional[str] = None,
        password: Optional[str] = None,
        smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None,
    ):
        self.host = host
        self.port = port
        self.recipient = recipient
        self.sender = sender or recipient
        self.use_ssl = use_ssl
        self.timeout = timeout
        self.username = username
        self.password = password
        self._smtp_factory = smtp_factory

    def build_message(self, notice: DenialNotice) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = self.recipient
        msg["Subject"] = f"Delivery denied: {notice.channel} to {notice.address}"
        msg.set_content(
            "\n".join(
                [
                    notice.message,
                    "",
                    f"address:   {notice.address}",
                    f"channel:   {notice.channel}",
                    f"action:    {notice.action}",
                    f"limit:     {notice.limit!r}",
                    f"timeframe: {notice.timeframe!r}",
                ]
            )
        )
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self._smtp_factory is not None:
            return self._smtp_factory(self.host, self.port, timeout=self.timeout)
        if self.use_ssl:
            return smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        smtp.starttls(context=ssl.create_default_context())
        return smtp

    def notify(self, notice: DenialNotice) -> None:
        msg = self.build_message(notice)
        with self._connect() as smtp:
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(msg, from_addr=self.sender, to_addrs=[self.recipient])
        logger.info("denial notice for %s mailed to %s", notice.address, self.recipient)


class CompositeDenialNotifier(DenialNotifier):
    """
    Fans a notice out to several notifiers; one failing member does not stop the rest.
    """

    def __init__(self, *notifiers: DenialNotifier):
        self.notifiers: List[DenialNotifier] = list(notifiers)

    def notify(self, notice: DenialNotice) -> None:
        for notifier in self.notifiers:
            try:
                notifier.notify(notice)
            except Exception:
                logger.exception(
                    "%s failed for %s", type(notifier).__name__, notice.address
                )
