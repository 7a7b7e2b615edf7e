"""
Triage External Service Adapters
==================================

Adapters for external services used by the triage module.

Implements the gateway interfaces defined in the application layer using
concrete infrastructure clients:
- Ticketing: Trello cards
- Inference: Ollama / OpenAI-compatible / mock LLM clients
- Human handoff: structured log record, Slack webhook, or several at once
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx

from ticket_triage.core import ExternalServiceException
from ticket_triage.infrastructure.llm import ILLMClient
from ticket_triage.infrastructure.trello import TrelloClient
from ticket_triage.shared.infrastructure.logging import get_logger
from ticket_triage.triage.application import (
    IHandoffNotifier,
    IInferenceGateway,
    ITicketingGateway,
)
from ticket_triage.triage.domain import HandoffNotification, Ticket

logger = get_logger(__name__)


class TrelloTicketingAdapter(ITicketingGateway):
    """
    Adapter that wraps the Trello client.

    Implements the application layer ITicketingGateway interface.
    """

    def __init__(self, client: TrelloClient):
        self._client = client

    async def create_ticket(self, list_id: str, title: str, description: str) -> Ticket:
        card = await self._client.create_card(list_id, title, description)
        return Ticket(
            id=card.id,
            url=card.short_url,
            list_id=card.list_id,
            title=card.name,
            description=card.desc
        )

    async def move_ticket(self, ticket_id: str, target_list_id: str) -> None:
        await self._client.move_card(ticket_id, target_list_id)

    async def update_ticket_description(self, ticket_id: str, description: str) -> None:
        await self._client.update_card_description(ticket_id, description)


class LLMInferenceAdapter(IInferenceGateway):
    """
    Adapter that wraps an infrastructure LLM client.

    Generation parameters are fixed by the client defaults; callers only
    supply the prompt.
    """

    def __init__(self, client: ILLMClient):
        self._client = client

    async def generate(self, prompt: str) -> str:
        result = await self._client.generate(prompt)
        return result.content


# ========== Human handoff notifiers ==========

class LoggingHandoffNotifier(IHandoffNotifier):
    """Records the handoff as a structured log entry."""

    async def notify(self, notification: HandoffNotification) -> None:
        logger.info(
            "Question escalated to human agent",
            extra={
                "ticket_id": notification.ticket_id,
                "ticket_url": notification.ticket_url,
                "question": notification.question,
                "ai_answer": notification.answer,
                "escalated_at": notification.timestamp.isoformat()
            }
        )


class CompositeHandoffNotifier(IHandoffNotifier):
    """
    Fans a notification out to several sinks.

    A failing sink does not stop the others; the first error is re-raised
    once every sink has been tried.
    """

    def __init__(self, notifiers: List[IHandoffNotifier]):
        self._notifiers = list(notifiers)

    async def notify(self, notification: HandoffNotification) -> None:
        first_error: Optional[Exception] = None
        for notifier in self._notifiers:
            try:
                await notifier.notify(notification)
            except Exception as e:
                logger.error(
                    "Handoff sink failed",
                    extra={"sink": type(notifier).__name__, "error": str(e)}
                )
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    async def close(self) -> None:
        for notifier in self._notifiers:
            await notifier.close()


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class SlackHandoffNotifier(IHandoffNotifier):
    """
    Slack webhook notifier with circuit breaker and retry logic.

    Sends a Block Kit message per escalated ticket with:
    - Circuit breaker to prevent cascade failures
    - Exponential backoff retry
    - Timeout handling
    """

    def __init__(
        self,
        webhook_url: str,
        channel: str,
        timeout: float = 5.0,
        max_retries: int = 3,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._webhook_url = webhook_url
        self._channel = channel
        self._timeout = timeout
        self._max_retries = max_retries
        self._circuit_breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def _build_message(self, notification: HandoffNotification) -> Dict[str, Any]:
        """Build Slack Block Kit message."""
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": ":bust_in_silhouette: Question needs a human",
                    "emoji": True
                }
            },
            {
                "type": "section",
                "fields": [
                    {
                        "type": "mrkdwn",
                        "text": f"*Ticket:*\n<{notification.ticket_url}|{notification.ticket_id}>"
                    },
                    {
                        "type": "mrkdwn",
                        "text": f"*Escalated at:*\n{notification.timestamp.isoformat()}"
                    }
                ]
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Question:*\n{notification.question}"}
            },
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": f"AI answer: {notification.answer}"}
                ]
            }
        ]

        return {"channel": self._channel, "blocks": blocks}

    async def notify(self, notification: HandoffNotification) -> None:
        """
        Send the handoff to Slack.

        Raises:
            ExternalServiceException: when every attempt failed or the
                circuit is open
        """
        if not self._circuit_breaker.allow_request():
            raise ExternalServiceException(
                "Slack",
                "Circuit breaker open, notification skipped",
                {"ticket_id": notification.ticket_id}
            )

        message = self._build_message(notification)

        for attempt in range(self._max_retries):
            try:
                response = await self._get_client().post(self._webhook_url, json=message)

                if response.status_code == 200:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Slack notification sent",
                        extra={"ticket_id": notification.ticket_id}
                    )
                    return

                logger.warning(
                    "Slack webhook returned non-200",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                logger.warning(
                    "Slack notification attempt failed",
                    extra={
                        "error": str(e),
                        "attempt": attempt + 1,
                        "ticket_id": notification.ticket_id
                    }
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        raise ExternalServiceException(
            "Slack",
            f"Notification failed after {self._max_retries} attempts",
            {"ticket_id": notification.ticket_id}
        )

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
