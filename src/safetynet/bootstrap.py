from typing import Optional

from src.config.settings import SafetynetSettings
from src.config.settings import settings as process_settings
from src.safetynet.adapters.notifiers import (
    CompositeDenialNotifier,
    LoggingDenialNotifier,
    SmtpDenialNotifier,
)
from src.safetynet.interfaces.denial_notifier import DenialNotifier
from src.safetynet.interfaces.history_ledger import HistoryLedger
from src.safetynet.interfaces.time_source import TimeSource
from src.safetynet.logging.structured_logger import configure_logging
from src.safetynet.services.policy_resolver import PolicyResolver
from src.safetynet.services.rate_decision_engine import RateDecisionEngine
from src.safetynet.store.sql_history_ledger import SqlHistoryLedger
from src.safetynet.time.system_time_source import SystemTimeSource


def _settings(settings: Optional[SafetynetSettings]) -> SafetynetSettings:
    return settings if settings is not None else process_settings


def build_notifier(settings: SafetynetSettings) -> DenialNotifier:
    logging_notifier = LoggingDenialNotifier()
    if not settings.SMTP_HOST:
        return logging_notifier
    smtp_notifier = SmtpDenialNotifier(
        host=settings.SMTP_HOST,
        recipient=settings.NOTIFICATION_EMAIL,
        sender=settings.NOTIFICATION_SENDER,
        port=settings.SMTP_PORT,
        use_ssl=settings.SMTP_SSL,
        timeout=settings.SMTP_TIMEOUT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
    )
    return CompositeDenialNotifier(logging_notifier, smtp_notifier)


def build_resolver(settings: Optional[SafetynetSettings] = None) -> PolicyResolver:
    return PolicyResolver.from_settings(_settings(settings))


def build_engine(
    settings: Optional[SafetynetSettings] = None,
    ledger: Optional[HistoryLedger] = None,
    notifier: Optional[DenialNotifier] = None,
    time_source: Optional[TimeSource] = None,
) -> RateDecisionEngine:
    """
    Wire a RateDecisionEngine from process settings.
    Explicit collaborators win over the ones settings would build.
    """
    settings = _settings(settings)
    configure_logging(settings.LOG_LEVEL)
    return RateDecisionEngine(
        ledger=ledger or SqlHistoryLedger.from_dsn(settings.DATABASE_URL),
        notifier=notifier or build_notifier(settings),
        time_source=time_source or SystemTimeSource(),
    )
