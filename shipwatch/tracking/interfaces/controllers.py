"""
Tracking Controllers (API Routes)
==================================

The monday.com webhook and the state inspection routes.

The webhook acknowledges immediately and processes the event as a
background task, so upstream never retries because of our failures.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from pydantic import ValidationError

from shipwatch.shared.infrastructure.logging import get_logger
from shipwatch.tracking.application import (
    EntityResponse,
    ShipmentMonitor,
    StateResponse,
    WebhookRequest,
)
from shipwatch.tracking.domain import BoardEvent

logger = get_logger(__name__)
router = APIRouter(tags=["Webhook"])
debug_router = APIRouter(prefix="/debug", tags=["Debug"])

WEBHOOK_EVENT_EXAMPLE = {
    "event": {
        "pulseId": 1234567890,
        "pulseName": "PO-10452",
        "boardId": 9371038978,
        "columnId": "status_text",
        "value": {"value": "UPS: Held by customs - import duties required"}
    }
}


# ========== Dependencies ==========

def get_monitor(request: Request) -> ShipmentMonitor:
    """Monitor built during application startup."""
    return request.app.state.monitor


async def process_event(monitor: ShipmentMonitor, event: BoardEvent) -> None:
    """Background task body; logs instead of raising."""
    try:
        result = await monitor.handle_event(event)
    except Exception as e:
        logger.exception(
            "Webhook processing failed",
            extra={"entity_id": event.entity_id, "board_id": event.board_id, "error": str(e)}
        )
        return

    logger.info("Webhook event handled", extra=result.to_dict())


# ========== Routes ==========

@router.post(
    "/monday-webhook",
    summary="monday.com webhook",
    description="Echoes subscription challenges; acknowledges every event with 200 and processes it in the background.",
    openapi_extra={"requestBody": {"content": {"application/json": {"example": WEBHOOK_EVENT_EXAMPLE}}}}
)
async def monday_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    monitor: ShipmentMonitor = Depends(get_monitor)
) -> dict:
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Webhook body is not JSON")
        return {"status": "ignored"}

    if isinstance(body, dict) and body.get("challenge") is not None:
        return {"challenge": body["challenge"]}

    try:
        payload = WebhookRequest.model_validate(body)
    except ValidationError as e:
        logger.warning("Malformed webhook payload", extra={"errors": e.error_count()})
        return {"status": "ignored"}

    if payload.event is None:
        return {"status": "ignored"}

    event = payload.event.to_domain()
    logger.info(
        "Webhook event received",
        extra={"entity_id": event.entity_id, "board_id": event.board_id, "column_id": event.column_id}
    )
    background_tasks.add_task(process_event, monitor, event)
    return {"status": "accepted"}


@debug_router.get(
    "/entities/{entity_id}",
    response_model=EntityResponse,
    summary="Show a board item's fields"
)
async def get_entity(
    entity_id: str,
    monitor: ShipmentMonitor = Depends(get_monitor)
) -> EntityResponse:
    entity = await monitor.board_client.fetch_entity(entity_id)
    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {entity_id} not found"
        )
    return EntityResponse(id=entity.id, name=entity.name, board_id=entity.board_id, fields=entity.fields)


@debug_router.get(
    "/state",
    response_model=StateResponse,
    summary="Sizes of the in-process tables"
)
async def get_state(monitor: ShipmentMonitor = Depends(get_monitor)) -> StateResponse:
    return StateResponse(**monitor.state.sizes())
