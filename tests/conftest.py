"""
Test Configuration
==================

Pytest fixtures for ticket triage tests.
"""

import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

os.environ["ENVIRONMENT"] = "testing"

from ticket_triage.config import TriageConfig  # noqa: E402
from ticket_triage.core import InferenceGatewayError, TicketingGatewayError  # noqa: E402
from ticket_triage.triage.application import (  # noqa: E402
    IHandoffNotifier,
    IInferenceGateway,
    ITicketingGateway,
    TriageService,
)
from ticket_triage.triage.domain import HandoffNotification, Ticket  # noqa: E402

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeBoard(ITicketingGateway):
    """In-memory ticketing board that records every call in a shared log."""

    def __init__(self, calls: List[Tuple[str, ...]]):
        self.calls = calls
        self.cards: Dict[str, Dict[str, str]] = {}
        self.fail_create = False
        self.fail_move = False
        self.fail_update = False

    async def create_ticket(self, list_id: str, title: str, description: str) -> Ticket:
        self.calls.append(("create", list_id))
        if self.fail_create:
            raise TicketingGatewayError("create rejected")
        card_id = f"card-{len(self.cards) + 1}"
        self.cards[card_id] = {"list_id": list_id, "title": title, "description": description}
        return Ticket(
            id=card_id,
            url=f"https://trello.com/c/{card_id}",
            list_id=list_id,
            title=title,
            description=description
        )

    async def move_ticket(self, ticket_id: str, target_list_id: str) -> None:
        self.calls.append(("move", ticket_id, target_list_id))
        if self.fail_move:
            raise TicketingGatewayError("move rejected")
        self.cards[ticket_id]["list_id"] = target_list_id

    async def update_ticket_description(self, ticket_id: str, description: str) -> None:
        self.calls.append(("update", ticket_id))
        if self.fail_update:
            raise TicketingGatewayError("update rejected")
        self.cards[ticket_id]["description"] = description


class ScriptedModel(IInferenceGateway):
    """Inference gateway returning a fixed answer or raising a fixed error."""

    def __init__(self, calls: List[Tuple[str, ...]]):
        self.calls = calls
        self.answer = "ERR_FOR_HUMAN"
        self.error: Optional[Exception] = None
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.calls.append(("generate",))
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


class RecordingNotifier(IHandoffNotifier):
    def __init__(self):
        self.notifications: List[HandoffNotification] = []

    async def notify(self, notification: HandoffNotification) -> None:
        self.notifications.append(notification)


@pytest.fixture
def triage_config() -> TriageConfig:
    return TriageConfig(
        trello_key="test-key",
        trello_token="test-token",
        intake_list_id="list-intake",
        ai_resolved_list_id="list-ai",
        human_review_list_id="list-human",
        trello_api_url="https://trello.test/1",
    )


@pytest.fixture
def calls() -> List[Tuple[str, ...]]:
    return []


@pytest.fixture
def board(calls) -> FakeBoard:
    return FakeBoard(calls)


@pytest.fixture
def model(calls) -> ScriptedModel:
    return ScriptedModel(calls)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(triage_config, board, model, notifier) -> TriageService:
    return TriageService(
        config=triage_config,
        ticketing=board,
        inference=model,
        notifier=notifier,
        clock=lambda: FIXED_NOW
    )


@pytest.fixture
def inference_timeout() -> InferenceGatewayError:
    return InferenceGatewayError("Ollama request failed: ReadTimeout")


@pytest.fixture
def mock_service() -> AsyncMock:
    """TriageService double for controller tests."""
    return AsyncMock(spec=TriageService)
