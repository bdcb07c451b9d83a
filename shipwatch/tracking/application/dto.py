"""
Tracking Application DTOs
==========================

Webhook payloads as sent by monday.com, and debug responses.
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shipwatch.tracking.domain import BoardEvent


class WebhookEventPayload(BaseModel):
    """The ``event`` object of a monday.com webhook call."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    pulse_id: Union[int, str] = Field(..., alias="pulseId")
    board_id: Union[int, str] = Field(..., alias="boardId")
    column_id: Optional[str] = Field(None, alias="columnId")
    pulse_name: Optional[str] = Field(None, alias="pulseName")
    value: Optional[Any] = None
    text_body: Optional[str] = Field(None, alias="textBody")

    def update_text(self) -> Optional[str]:
        """Text of the changed column (text columns nest it under ``value.value``)."""
        if isinstance(self.value, dict):
            text = self.value.get("value", self.value.get("text"))
            return str(text) if text is not None else None
        if isinstance(self.value, str):
            return self.value
        return self.text_body

    def to_domain(self) -> BoardEvent:
        return BoardEvent(
            entity_id=str(self.pulse_id),
            board_id=str(self.board_id),
            column_id=self.column_id,
            text=self.update_text(),
            entity_name=self.pulse_name
        )


class WebhookRequest(BaseModel):
    """Either a subscription handshake or a change event."""
    challenge: Optional[str] = None
    event: Optional[WebhookEventPayload] = None


class EntityResponse(BaseModel):
    id: str
    name: str
    board_id: Optional[str]
    fields: Dict[str, str]


class StateResponse(BaseModel):
    update_history: int
    ambiguous_statuses: int
    recent_alerts: int
