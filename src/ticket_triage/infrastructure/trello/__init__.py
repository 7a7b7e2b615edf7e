"""
Trello Client Infrastructure
============================

Async wrapper around the Trello REST API cards endpoints.

Only the three calls the triage pipeline needs are implemented: create a
card, move it to another list, and replace its description. Every transport,
auth or validation failure surfaces as ``TicketingGatewayError``.
"""

from typing import Any, Dict, Optional

import httpx

from ticket_triage.config import TriageConfig
from ticket_triage.core import TicketingGatewayError
from ticket_triage.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


class CardResult:
    """Subset of a Trello card returned on creation."""

    def __init__(self, id: str, short_url: str, list_id: str, name: str, desc: str):
        self.id = id
        self.short_url = short_url
        self.list_id = list_id
        self.name = name
        self.desc = desc


class TrelloClient:
    """
    Trello cards client.

    Credentials are sent as ``key``/``token`` query parameters on every call.
    """

    def __init__(
        self,
        config: TriageConfig,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._base_url = config.trello_api_url
        self._auth = {"key": config.trello_key, "token": config.trello_token}
        self._timeout = config.trello_timeout_seconds
        self._http_client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Accept": "application/json"}
            )
        return self._http_client

    async def _request(
        self,
        method: str,
        path: str,
        payload: Dict[str, Any],
        operation: str
    ) -> httpx.Response:
        client = self._get_client()
        try:
            async with log_latency(logger, operation):
                response = await client.request(
                    method,
                    f"{self._base_url}{path}",
                    params=self._auth,
                    json=payload
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TicketingGatewayError(
                f"{operation} returned HTTP {e.response.status_code}",
                {"status_code": e.response.status_code}
            ) from e
        except httpx.HTTPError as e:
            raise TicketingGatewayError(
                f"{operation} failed: {type(e).__name__}"
            ) from e
        return response

    async def create_card(self, list_id: str, name: str, desc: str) -> CardResult:
        """
        Create a card in a list.

        Raises:
            TicketingGatewayError: on HTTP failure or a malformed response
        """
        payload = {"idList": list_id, "name": name, "desc": desc, "due": None}
        response = await self._request("POST", "/cards", payload, "trello_create_card")

        try:
            data = response.json()
            card = CardResult(
                id=data["id"],
                short_url=data.get("shortUrl") or data.get("url", ""),
                list_id=data.get("idList", list_id),
                name=data.get("name", name),
                desc=data.get("desc", desc)
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise TicketingGatewayError("trello_create_card returned a malformed card") from e

        logger.info("Trello card created", extra={"card_id": card.id})
        return card

    async def move_card(self, card_id: str, list_id: str) -> None:
        """Move a card to another list."""
        await self._request("PUT", f"/cards/{card_id}", {"idList": list_id}, "trello_move_card")
        logger.info("Trello card moved", extra={"card_id": card_id, "list_id": list_id})

    async def update_card_description(self, card_id: str, desc: str) -> None:
        """Replace a card's description."""
        await self._request("PUT", f"/cards/{card_id}", {"desc": desc}, "trello_update_card")
        logger.info("Trello card updated", extra={"card_id": card_id})

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
