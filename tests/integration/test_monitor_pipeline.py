"""
End-to-end tests of the event pipeline with fake collaborators.
"""

import pytest

from shipwatch.config import IssueKind, IssueSource
from shipwatch.tracking.application import ProcessingStatus
from shipwatch.tracking.domain import BoardEvent, TrackedEntity

pytestmark = pytest.mark.integration

MAIN_BOARD = "162479257"
CHINA_BOARD = "9371034380"
INDIA_BOARD = "9371038978"


def _shipment(entity_id: str = "item-1", board_id: str = MAIN_BOARD, **fields) -> TrackedEntity:
    values = {
        "text1": "Jane Doe",
        "text3": "Acme Ltd",
        "text0": "PN-4411",
        "text_mkvcdqrw": "1Z999AA10123456784",
        "text5__1": "",
    }
    values.update(fields)
    return TrackedEntity(entity_id, "Bracket order #42", board_id, values)


def _event(text, board_id: str = MAIN_BOARD, entity_id: str = "item-1", column_id: str = "text_status") -> BoardEvent:
    return BoardEvent(entity_id=entity_id, board_id=board_id, column_id=column_id, text=text)


@pytest.mark.asyncio
async def test_customs_hold_on_india_board(monitor, board_client, chat_client, mailer):
    board_client.add(_shipment(board_id=INDIA_BOARD, text5__1="Mumbai, India"))

    result = await monitor.handle_event(_event("UPS: Held by customs - import duties required", INDIA_BOARD))

    assert result.status == ProcessingStatus.PROCESSED
    assert [issue.kind for issue in result.issues] == [IssueKind.HELD_IN_CUSTOMS]
    assert result.outcomes[0].alert_sent
    assert result.outcomes[0].email_skipped_reason == "no_customer_action"
    assert mailer.sent == []
    assert chat_client.messages[0]["text"] == (
        "<@D08HQ5GQCAW> Bracket order #42 is held in customs from Mumbai, India. Please review."
    )


@pytest.mark.asyncio
async def test_failed_delivery_emails_customer(monitor, board_client, chat_client, mailer):
    board_client.add(_shipment())

    result = await monitor.handle_event(_event("UPS: Delivery attempted - consignee premises closed"))

    assert result.issues[0].kind == IssueKind.DELIVERY_FAILURE
    assert result.outcomes[0].email_sent
    assert mailer.sent[0].to_address == "jane@acme.example"
    assert "Carrier Update: UPS: Delivery attempted - consignee premises closed" in mailer.sent[0].body
    assert len(chat_client.messages) == 1


@pytest.mark.asyncio
async def test_lookup_failure_does_not_block_alert(monitor, board_client, chat_client, contact_lookup):
    contact_lookup.fail = True
    board_client.add(_shipment())

    result = await monitor.handle_event(_event("Delivery attempted - recipient unavailable"))

    assert result.outcomes[0].email_skipped_reason == "lookup_failed"
    assert result.outcomes[0].alert_sent
    assert len(chat_client.messages) == 1


@pytest.mark.asyncio
async def test_tracking_url_is_normalized(monitor, board_client, chat_client):
    url = "https://www.dhl.com/gb-en/home/tracking/tracking-express.html?tracking-id=1234567890"

    result = await monitor.handle_event(_event(url, CHINA_BOARD))

    assert result.status == ProcessingStatus.TRACKING_NORMALIZED
    assert result.tracking_number == "1234567890"
    assert board_client.writes == [(CHINA_BOARD, "item-1", "text_mkvcdqrw", "1234567890")]
    assert board_client.fetches == []
    assert chat_client.messages == []


@pytest.mark.asyncio
async def test_india_board_tracking_column(monitor, board_client):
    await monitor.handle_event(_event("https://www.ups.com/track?tracknum=1Z999AA10123456784", INDIA_BOARD))

    assert board_client.writes[0][2] == "text_mkvcce8m"


@pytest.mark.asyncio
async def test_unmonitored_board_is_ignored(monitor, board_client):
    result = await monitor.handle_event(_event("Held by customs", board_id="42"))

    assert result.status == ProcessingStatus.IGNORED_BOARD
    assert board_client.fetches == []


@pytest.mark.asyncio
async def test_empty_text_is_ignored(monitor, board_client):
    result = await monitor.handle_event(_event("   "))

    assert result.status == ProcessingStatus.IGNORED_EMPTY
    assert board_client.fetches == []


@pytest.mark.asyncio
async def test_other_columns_ignored_when_status_column_configured(monitor, monitor_config, board_client):
    monitor_config.boards[0] = monitor_config.boards[0].model_copy(update={"status_field": "status"})

    result = await monitor.handle_event(_event("Held by customs", column_id="text5__1"))

    assert result.status == ProcessingStatus.IGNORED_COLUMN
    assert board_client.fetches == []


@pytest.mark.asyncio
async def test_missing_entity(monitor, chat_client):
    result = await monitor.handle_event(_event("Held by customs"))

    assert result.status == ProcessingStatus.ENTITY_MISSING
    assert chat_client.messages == []


@pytest.mark.asyncio
async def test_board_failure_is_treated_as_missing(monitor, board_client, chat_client):
    board_client.add(_shipment())
    board_client.fail_fetch = True

    result = await monitor.handle_event(_event("Held by customs"))

    assert result.status == ProcessingStatus.ENTITY_MISSING
    assert chat_client.messages == []


@pytest.mark.asyncio
async def test_duplicate_within_window_is_suppressed(monitor, board_client, chat_client, clock):
    board_client.add(_shipment())
    event = _event("UPS: Held by customs - import duties required")

    await monitor.handle_event(event)
    clock.advance(minutes=1)
    second = await monitor.handle_event(event)

    assert second.suppressed == [IssueKind.HELD_IN_CUSTOMS]
    assert second.outcomes == []
    assert len(chat_client.messages) == 1


@pytest.mark.asyncio
async def test_stale_tracking_alerts_without_email(monitor, board_client, chat_client, mailer, clock):
    board_client.add(_shipment())
    event = _event("UPS: Arrived at Facility")

    first = await monitor.handle_event(event)
    assert first.issues == []

    clock.advance(hours=37)
    result = await monitor.handle_event(event)

    assert [issue.kind for issue in result.issues] == [IssueKind.STALE_TRACKING]
    assert result.issues[0].source == IssueSource.STALENESS
    assert result.outcomes[0].email_skipped_reason == "not_customer_facing"
    assert mailer.sent == []
    assert "showing no tracking movement" in chat_client.messages[0]["text"]


@pytest.mark.asyncio
async def test_ambiguous_status_times_out(monitor, board_client, clock):
    board_client.add(_shipment(board_id=CHINA_BOARD))
    event = _event("DHL: Shipment on hold", CHINA_BOARD)

    first = await monitor.handle_event(event)
    assert IssueKind.AMBIGUOUS_TIMEOUT not in [issue.kind for issue in first.issues]

    clock.advance(hours=7)
    result = await monitor.handle_event(event)

    kinds = [issue.kind for issue in result.issues]
    assert kinds[0] == IssueKind.AMBIGUOUS_TIMEOUT
    assert monitor.state.ambiguous.get("item-1") is None


@pytest.mark.asyncio
async def test_tracking_write_back_echo_keeps_ambiguous_timer(monitor, board_client, clock):
    board_client.add(_shipment(board_id=CHINA_BOARD))
    on_hold = _event("DHL: Shipment on hold", CHINA_BOARD)
    await monitor.handle_event(on_hold)

    clock.advance(hours=1)
    url = "https://www.dhl.com/gb-en/home/tracking/tracking-express.html?tracking-id=1234567890"
    await monitor.handle_event(_event(url, CHINA_BOARD, column_id="text_mkvcdqrw"))
    echo = await monitor.handle_event(_event("1234567890", CHINA_BOARD, column_id="text_mkvcdqrw"))

    assert echo.status == ProcessingStatus.IGNORED_COLUMN
    assert monitor.state.ambiguous.get("item-1") is not None

    clock.advance(hours=6)
    result = await monitor.handle_event(on_hold)

    assert IssueKind.AMBIGUOUS_TIMEOUT in [issue.kind for issue in result.issues]


@pytest.mark.asyncio
async def test_detail_column_edits_are_ignored(monitor, board_client):
    board_client.add(_shipment())

    result = await monitor.handle_event(_event("Leipzig", column_id="text5__1"))

    assert result.status == ProcessingStatus.IGNORED_COLUMN
    assert board_client.fetches == []


@pytest.mark.asyncio
async def test_delivered_update_is_quiet(monitor, board_client, chat_client):
    board_client.add(_shipment())

    result = await monitor.handle_event(_event("DHL: Delivered - signed for by J SMITH"))

    assert result.status == ProcessingStatus.PROCESSED
    assert result.issues == []
    assert chat_client.messages == []


@pytest.mark.asyncio
async def test_result_serializes(monitor, board_client):
    board_client.add(_shipment())

    result = await monitor.handle_event(_event("Package damaged in handling"))
    data = result.to_dict()

    assert data["status"] == "processed"
    assert data["issues"][0]["kind"] == "damage-or-loss"
    assert data["outcomes"][0]["alert_sent"] is True
