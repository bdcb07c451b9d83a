"""
HTTP-level tests for the webhook, debug and health routes.
"""

import pytest
from fastapi.testclient import TestClient

from shipwatch.config import Settings
from shipwatch.core import ConfigurationException
from shipwatch.main import create_app
from shipwatch.tracking.domain import TrackedEntity

pytestmark = pytest.mark.integration

INDIA_BOARD = "9371038978"


@pytest.fixture
def client(monitor, test_settings):
    app = create_app(monitor=monitor, config=test_settings)
    with TestClient(app) as test_client:
        yield test_client


def _webhook(text: str, board_id=INDIA_BOARD, pulse_id=1234567890) -> dict:
    return {
        "event": {
            "pulseId": pulse_id,
            "pulseName": "PO-10452",
            "boardId": int(board_id),
            "columnId": "status_text",
            "value": {"value": text},
        }
    }


def test_challenge_is_echoed(client):
    response = client.post("/monday-webhook", json={"challenge": "3eZbrw1aBm2rZgRNFdxV2595E9CY3gmdALWMmHkvFXO7tYXAYQ"})

    assert response.status_code == 200
    assert response.json() == {"challenge": "3eZbrw1aBm2rZgRNFdxV2595E9CY3gmdALWMmHkvFXO7tYXAYQ"}


def test_event_is_accepted_and_processed(client, board_client, chat_client):
    board_client.add(TrackedEntity("1234567890", "PO-10452", INDIA_BOARD, {"text5__1": "Delhi, India"}))

    response = client.post("/monday-webhook", json=_webhook("UPS: Held by customs - import duties required"))

    assert response.status_code == 200
    assert response.json() == {"status": "accepted"}
    assert board_client.fetches == ["1234567890"]
    assert chat_client.messages[0]["text"].startswith("<@D08HQ5GQCAW> PO-10452 is held in customs from Delhi, India")


def test_malformed_body_is_acknowledged(client, board_client):
    response = client.post(
        "/monday-webhook",
        content=b"not json at all",
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}
    assert board_client.fetches == []


def test_event_without_ids_is_acknowledged(client):
    response = client.post("/monday-webhook", json={"event": {"columnId": "status"}})

    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}


def test_body_without_event_is_acknowledged(client):
    response = client.post("/monday-webhook", json={"type": "ping"})

    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}


def test_processing_error_still_returns_200(client, monitor):
    async def explode(event):
        raise RuntimeError("boom")

    monitor.handle_event = explode

    response = client.post("/monday-webhook", json=_webhook("Held by customs"))

    assert response.status_code == 200
    assert response.json() == {"status": "accepted"}


def test_debug_classify(client):
    response = client.post(
        "/debug/classify",
        json={"text": "Shipment on hold at EAST MIDLANDS - GB", "carrier_hint": "DHL"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["issue"]["kind"] == "hub-delay"
    assert data["issue"]["carrier"] == "DHL"
    assert data["location"] == "East Midlands, United Kingdom"
    assert data["classifier"] == "rules"


def test_debug_classify_prefers_location_field(client):
    response = client.post(
        "/debug/classify",
        json={"text": "Delay due to weather", "location_field": "Leeds, UK"}
    )

    assert response.json()["location"] == "Leeds, UK"


def test_debug_classify_rejects_empty_text(client):
    response = client.post("/debug/classify", json={"text": ""})

    assert response.status_code == 422


def test_debug_state_counts(client, board_client):
    board_client.add(TrackedEntity("1234567890", "PO-10452", INDIA_BOARD, {}))
    client.post("/monday-webhook", json=_webhook("Customs clearance in progress"))

    response = client.get("/debug/state")

    assert response.status_code == 200
    assert response.json() == {"update_history": 1, "ambiguous_statuses": 1, "recent_alerts": 0}


def test_debug_entity(client, board_client):
    board_client.add(TrackedEntity("77", "PO-1", INDIA_BOARD, {"text3": "Acme Ltd"}))

    response = client.get("/debug/entities/77")

    assert response.status_code == 200
    assert response.json()["fields"] == {"text3": "Acme Ltd"}


def test_debug_entity_not_found(client):
    response = client.get("/debug/entities/404404")

    assert response.status_code == 404


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["checks"]["board_config"] == "loaded (3 boards)"
    assert data["checks"]["classifier"] == "rules"
    assert data["checks"]["sweep_scheduler"] == "stopped"


def test_correlation_id_is_echoed(client):
    response = client.get("/health", headers={"X-Correlation-ID": "corr-123"})

    assert response.headers["X-Correlation-ID"] == "corr-123"


def test_missing_credentials_abort_startup(monkeypatch):
    for name in ("MONDAY_TOKEN", "SLACK_BOT_TOKEN", "SLACK_CHANNEL_ID"):
        monkeypatch.delenv(name, raising=False)
    config = Settings(_env_file=None, environment="test")

    with pytest.raises(ConfigurationException):
        with TestClient(create_app(config=config)):
            pass


def test_board_failure_on_debug_route_is_502(monitor, test_settings, board_client):
    board_client.fail_fetch = True
    app = create_app(monitor=monitor, config=test_settings)

    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/debug/entities/77", headers={"X-Correlation-ID": "corr-502"})

    assert response.status_code == 502
    assert response.json()["detail"] == "Board API unavailable"
    assert response.json()["correlation_id"] == "corr-502"
