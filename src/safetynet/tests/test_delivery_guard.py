from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from src.safetynet.domain.denial_notice import DenialNotice
from src.safetynet.domain.outbound_message import OutboundMessage
from src.safetynet.domain.policy import ActionFilter, PolicyLayer
from src.safetynet.interfaces.denial_notifier import DenialNotifier
from src.safetynet.services.delivery_guard import DeliveryGuard
from src.safetynet.services.policy_resolver import PolicyResolver, channel_patches
from src.safetynet.services.rate_decision_engine import RateDecisionEngine
from src.safetynet.store.in_memory_history_ledger import InMemoryHistoryLedger
from src.safetynet.time.frozen_time_source import FrozenTimeSource


# --- Mocks ---

class RecordingNotifier(DenialNotifier):
    def __init__(self):
        self.notices: List[DenialNotice] = []

    def notify(self, notice: DenialNotice) -> None:
        self.notices.append(notice)


MAILER_CONTEXT = PolicyResolver().resolve(
    "email",
    PolicyLayer(channels=channel_patches({"email": {"limit": 1, "timeframe": timedelta(minutes=5)}})),
    filters=ActionFilter(excluded=("send_email_uncaught",)),
)

USER = "test1@email.com"
USER2 = "test2@email.com"


# --- Fixtures ---

@pytest.fixture
def ledger():
    return InMemoryHistoryLedger()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(ledger, notifier):
    clock = FrozenTimeSource(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))
    return RateDecisionEngine(ledger, notifier, clock)


@pytest.fixture
def guard(engine):
    return DeliveryGuard(engine, MAILER_CONTEXT)


def deliver(guard: DeliveryGuard, action: str, recipients: List[str]) -> OutboundMessage:
    message = OutboundMessage(action=action, recipients=list(recipients))
    guard.check_window(message)
    return message


# --- Tests ---

def test_disallows_watched_actions_outside_the_limit(guard):
    mail1 = deliver(guard, "send_email", [USER])
    assert mail1.perform_deliveries is True
    mail2 = deliver(guard, "send_email", [USER])
    assert mail2.perform_deliveries is False
    assert mail2.recipients == []


def test_ignores_unwatched_actions(guard, ledger, notifier):
    for _ in range(3):
        mail = deliver(guard, "send_email_uncaught", [USER])
        assert mail.perform_deliveries is True
        assert mail.recipients == [USER]

    assert ledger.history() == []
    assert notifier.notices == []


def test_only_filter_limits_watched_actions(engine):
    context = PolicyResolver().resolve("email", filters=ActionFilter(only=("welcome",)))
    guard = DeliveryGuard(engine, context)

    assert guard.watches("welcome") is True
    assert guard.watches("digest") is False


def test_stopped_message_stays_stopped(guard, ledger):
    message = OutboundMessage(action="send_email", recipients=[USER], perform_deliveries=False)

    assert guard.check_window(message) is False
    assert message.recipients == [USER]
    assert ledger.history() == []


def test_treats_actions_independently(guard):
    assert deliver(guard, "send_email", [USER]).perform_deliveries is True
    assert deliver(guard, "send_email", [USER]).perform_deliveries is False
    assert deliver(guard, "send_email2", [USER]).perform_deliveries is True
    assert deliver(guard, "send_email2", [USER]).perform_deliveries is False


def test_always_allows_deliveries_to_example_com(guard, notifier):
    for _ in range(3):
        mail = deliver(guard, "send_email2", ["test@example.com"])
        assert mail.perform_deliveries is True
        assert mail.recipients == ["test@example.com"]

    assert notifier.notices == []


def test_selectively_removes_addresses_from_mass_emails(guard, notifier):
    mail1 = deliver(guard, "send_mass_email", [USER, "test@email.com"])
    assert mail1.recipients == [USER, "test@email.com"]
    assert mail1.perform_deliveries is True

    mail2 = deliver(guard, "send_mass_email", [USER, USER2, "test@email.com"])

    assert mail2.recipients == [USER2]
    assert mail2.perform_deliveries is True
    assert [n.address for n in notifier.notices] == [USER, "test@email.com"]
    for notice in notifier.notices:
        assert notice.channel == "email"
        assert notice.action == "send_mass_email"
        assert notice.properties() == {
            "limit": 1,
            "timeframe": timedelta(seconds=300),
            "message": "Safetynet has caught a method!",
        }


def test_permits_all_fresh_recipients(guard, notifier):
    recipients = ["test@email.com", USER, USER2]
    mail = deliver(guard, "send_mass_email", recipients)

    assert mail.recipients == recipients
    assert mail.perform_deliveries is True
    assert notifier.notices == []


def test_batch_keeps_order_and_notifies_each_denied_address(engine, ledger, notifier):
    now = engine.time_source.now()
    ledger.record("a@x.com", "email", "digest", now)
    ledger.record("b@x.com", "email", "digest", now)

    decision = engine.filter_recipients(
        ["a@x.com", "b@x.com", "c@x.com"], MAILER_CONTEXT, action="digest"
    )

    assert decision.permitted == ["c@x.com"]
    assert decision.denied == ["a@x.com", "b@x.com"]
    assert decision.proceed is True
    assert len(notifier.notices) == 2


def test_batch_with_whitelisted_and_denied_keeps_relative_order(engine, ledger):
    ledger.record("b@x.com", "email", "digest", engine.time_source.now())

    decision = engine.filter_recipients(
        ["a@example.com", "b@x.com", "c@x.com", "d@example.com"], MAILER_CONTEXT, action="digest"
    )

    assert decision.permitted == ["a@example.com", "c@x.com", "d@example.com"]
    assert decision.denied == ["b@x.com"]


def test_empty_result_disables_delivery_without_error(guard, ledger):
    ledger.record(USER, "email", "send_email", guard.engine.time_source.now())
    ledger.record(USER2, "email", "send_email", guard.engine.time_source.now())

    message = OutboundMessage(action="send_email", recipients=[USER, USER2])

    assert guard.check_window(message) is False
    assert message.recipients == []
    assert message.perform_deliveries is False


def test_duplicate_recipient_in_one_batch_sees_its_own_record(engine):
    decision = engine.filter_recipients(["a@x.com", "a@x.com"], MAILER_CONTEXT, action="digest")

    assert decision.permitted == ["a@x.com"]
    assert decision.denied == ["a@x.com"]
