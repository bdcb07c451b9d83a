"""
Board API Infrastructure
========================

monday.com GraphQL client: fetch an item with its column texts, write
one column value, and probe authentication.
"""

from typing import Any, Dict, Optional

import httpx

from shipwatch.core import BoardAPIException
from shipwatch.shared.infrastructure.logging import get_logger
from shipwatch.tracking.application.monitor import IBoardClient
from shipwatch.tracking.domain import TrackedEntity

logger = get_logger(__name__)

ITEM_QUERY = """
query($itemIds: [ID!]) {
  items(ids: $itemIds) {
    id
    name
    board { id }
    column_values { id text }
  }
}
"""

CHANGE_COLUMN_MUTATION = """
mutation($itemId: ID!, $boardId: ID!, $columnId: String!, $value: String!) {
  change_simple_column_value(item_id: $itemId, board_id: $boardId, column_id: $columnId, value: $value) {
    id
  }
}
"""

ME_QUERY = "query { me { name email } }"


class MondayBoardClient(IBoardClient):
    """monday.com API v2 client over httpx."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.monday.com/v2",
        timeout_seconds: float = 10.0,
        api_version: str = "2024-10"
    ):
        self._token = token
        self._api_url = api_url
        self._timeout = timeout_seconds
        self._api_version = api_version
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def _execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {
            "Authorization": self._token,
            "API-Version": self._api_version,
            "Content-Type": "application/json",
        }
        try:
            client = await self._get_client()
            response = await client.post(
                self._api_url,
                headers=headers,
                json={"query": query, "variables": variables or {}}
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise BoardAPIException(f"Request failed: {e}")

        if body.get("errors"):
            raise BoardAPIException("GraphQL errors", details={"errors": body["errors"]})
        return body.get("data") or {}

    async def fetch_entity(self, entity_id: str) -> Optional[TrackedEntity]:
        data = await self._execute(ITEM_QUERY, {"itemIds": [str(entity_id)]})
        items = data.get("items") or []
        if not items:
            return None

        item = items[0]
        return TrackedEntity(
            id=str(item["id"]),
            name=item.get("name") or str(item["id"]),
            board_id=str((item.get("board") or {}).get("id") or "") or None,
            fields={col["id"]: col.get("text") or "" for col in item.get("column_values") or []}
        )

    async def write_field(self, board_id: str, entity_id: str, field_key: str, value: str) -> None:
        await self._execute(CHANGE_COLUMN_MUTATION, {
            "itemId": str(entity_id),
            "boardId": str(board_id),
            "columnId": field_key,
            "value": value,
        })
        logger.info(
            "Board column updated",
            extra={"entity_id": entity_id, "board_id": board_id, "column": field_key}
        )

    async def check_connection(self) -> Dict[str, Any]:
        data = await self._execute(ME_QUERY)
        return data.get("me") or {}

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
