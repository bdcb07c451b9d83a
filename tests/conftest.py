from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from shipwatch.alerts.application import IChatClient, IContactLookup, IMailer, NotificationRouter
from shipwatch.alerts.domain import Contact, OutgoingEmail
from shipwatch.classification.application import RuleBasedClassifier
from shipwatch.config import Settings
from shipwatch.core import BoardAPIException, ChatException, ContactLookupException
from shipwatch.tracking.application import IBoardClient, MonitorState, create_monitor
from shipwatch.tracking.domain import MonitorConfig, TrackedEntity


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeBoardClient(IBoardClient):
    def __init__(self):
        self.entities: Dict[str, TrackedEntity] = {}
        self.writes: List[tuple] = []
        self.fetches: List[str] = []
        self.fail_fetch = False

    def add(self, entity: TrackedEntity) -> TrackedEntity:
        self.entities[entity.id] = entity
        return entity

    async def fetch_entity(self, entity_id: str) -> Optional[TrackedEntity]:
        self.fetches.append(entity_id)
        if self.fail_fetch:
            raise BoardAPIException("board unavailable")
        entity = self.entities.get(entity_id)
        if entity is None:
            return None
        # Fresh copy per fetch, like the real API
        return TrackedEntity(entity.id, entity.name, entity.board_id, dict(entity.fields))

    async def write_field(self, board_id: str, entity_id: str, field_key: str, value: str) -> None:
        self.writes.append((board_id, entity_id, field_key, value))

    async def check_connection(self) -> dict:
        return {"name": "Test User"}


class FakeChatClient(IChatClient):
    def __init__(self):
        self.messages: List[dict] = []
        self.fail = False

    async def post_message(self, channel_id: str, text: str, blocks: List[dict]) -> Optional[str]:
        if self.fail:
            raise ChatException("slack down")
        self.messages.append({"channel": channel_id, "text": text, "blocks": blocks})
        return f"ts-{len(self.messages)}"


class FakeMailer(IMailer):
    def __init__(self, enabled: bool = True):
        self._enabled = enabled
        self.sent: List[OutgoingEmail] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def send_mail(self, email: OutgoingEmail) -> str:
        self.sent.append(email)
        return f"<msg-{len(self.sent)}@test>"


class FakeContactLookup(IContactLookup):
    def __init__(self, contact: Optional[Contact] = None):
        self.contact = contact
        self.fail = False
        self.calls: List[tuple] = []

    async def find_contact(self, company: str, customer_name: Optional[str] = None) -> Optional[Contact]:
        self.calls.append((company, customer_name))
        if self.fail:
            raise ContactLookupException("hubspot down")
        return self.contact


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        environment="test",
        monday_token="monday-test-token",
        slack_bot_token="xoxb-test",
        slack_channel_id="C-ALERTS",
        llm_provider="mock",
        board_config_path="does-not-exist.yaml",
        sweep_interval_seconds=0,
    )


@pytest.fixture
def monitor_config():
    return MonitorConfig()


@pytest.fixture
def board_client():
    return FakeBoardClient()


@pytest.fixture
def chat_client():
    return FakeChatClient()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def disabled_mailer():
    return FakeMailer(enabled=False)


@pytest.fixture
def contact_lookup():
    return FakeContactLookup(Contact(email="jane@acme.example", first_name="Jane", last_name="Doe", company="Acme"))


@pytest.fixture
def metrics():
    exporter = MagicMock()

    async def _export_alert(**kwargs):
        return False

    exporter.export_alert = MagicMock(side_effect=_export_alert)
    return exporter


@pytest.fixture
def router(chat_client, mailer, contact_lookup, monitor_config, metrics):
    return NotificationRouter(
        chat_client,
        "C-ALERTS",
        lambda: monitor_config,
        mailer=mailer,
        contact_lookup=contact_lookup,
        from_address="support@geomiq.example",
        from_name="Geomiq Support",
        reply_to="support@geomiq.com",
        bcc="1234@bcc.hubspot.example",
        metrics=metrics
    )


@pytest.fixture
def monitor(test_settings, board_client, router, monitor_config, clock):
    return create_monitor(
        test_settings,
        board_client,
        RuleBasedClassifier(),
        router,
        lambda: monitor_config,
        state=MonitorState(),
        clock=clock
    )
