"""Tests for the triage orchestrator."""

from unittest.mock import AsyncMock, patch

import pytest

from ticket_triage.config import TriageConfig
from ticket_triage.core import TicketingGatewayError
from ticket_triage.triage.application import TriageService
from ticket_triage.triage.domain import (
    EscalatedToHuman,
    Failed,
    ResolvedByAi,
    Ticket,
    TriageLane,
)

from tests.conftest import FIXED_NOW

DIRECT_ANSWER = (
    "Open Settings > Security, click 'Reset password' and follow the link we "
    "email you. The link expires after 24 hours."
)


class TestTicketCreation:

    @pytest.mark.asyncio
    async def test_ticket_created_in_intake_before_inference(self, service, calls, model):
        model.answer = DIRECT_ANSWER

        await service.triage("How do I reset my password?")

        assert calls[0] == ("create", "list-intake")
        assert calls[1] == ("generate",)
        assert [c for c in calls if c[0] == "create"] == [("create", "list-intake")]

    @pytest.mark.asyncio
    async def test_title_from_short_question(self, service, board):
        await service.triage("How do I reset my password?")

        card = board.cards["card-1"]
        assert card["title"] == "Consulta: How do I reset my password?"

    @pytest.mark.asyncio
    async def test_intake_description_embeds_question_and_timestamp(self, triage_config, calls, model, notifier):
        board = AsyncMock()
        board.create_ticket.side_effect = TicketingGatewayError("boom")
        service = TriageService(triage_config, board, model, notifier, clock=lambda: FIXED_NOW)

        await service.triage("Where are my invoices?")

        _, title, description = board.create_ticket.call_args.args
        assert title == "Consulta: Where are my invoices?"
        assert "Where are my invoices?" in description
        assert FIXED_NOW.isoformat() in description

    @pytest.mark.asyncio
    async def test_long_question_title_truncated(self, service, board):
        question = "x" * 51
        await service.triage(question)

        assert board.cards["card-1"]["title"] == "Consulta: " + "x" * 50 + "..."

    @pytest.mark.asyncio
    async def test_fifty_character_question_not_truncated(self, service, board):
        question = "y" * 50
        await service.triage(question)

        assert board.cards["card-1"]["title"] == "Consulta: " + question

    @pytest.mark.asyncio
    async def test_create_failure_fails_run_without_inference(self, service, board, model, calls):
        board.fail_create = True

        outcome = await service.triage("How do I reset my password?")

        assert isinstance(outcome, Failed)
        assert outcome.reason == "The ticket could not be created"
        assert ("generate",) not in calls
        assert model.prompts == []


class TestRouting:

    @pytest.mark.asyncio
    async def test_scenario_resolved_by_ai(self, service, board, model, notifier):
        model.answer = ("Go to Settings > Security and choose 'Reset password'. "
                        "A reset link will arrive by email within a few minutes.")
        assert len(model.answer) > 50

        outcome = await service.triage("How do I reset my password?")

        assert isinstance(outcome, ResolvedByAi)
        assert outcome.answer == model.answer
        assert outcome.ticket.lane is TriageLane.AI_RESOLVED
        assert board.cards["card-1"]["list_id"] == "list-ai"
        assert model.answer in board.cards["card-1"]["description"]
        assert "Resolved by AI" in board.cards["card-1"]["description"]
        assert notifier.notifications == []

    @pytest.mark.asyncio
    async def test_scenario_escalated_on_sentinel(self, service, board, model, notifier):
        model.answer = "ERR_FOR_HUMAN"
        question = "What is user X's salary?"

        outcome = await service.triage(question)

        assert isinstance(outcome, EscalatedToHuman)
        assert outcome.ticket.lane is TriageLane.HUMAN_REVIEW
        assert board.cards["card-1"]["list_id"] == "list-human"
        assert "Escalated to human" in board.cards["card-1"]["description"]

        assert len(notifier.notifications) == 1
        notification = notifier.notifications[0]
        assert notification.question == question
        assert notification.answer == "ERR_FOR_HUMAN"
        assert notification.ticket_id == "card-1"
        assert notification.ticket_url == "https://trello.com/c/card-1"
        assert notification.timestamp == FIXED_NOW

    @pytest.mark.asyncio
    async def test_scenario_inference_timeout(self, service, board, model, notifier, inference_timeout):
        model.error = inference_timeout

        outcome = await service.triage("How do I export my data?")

        assert isinstance(outcome, EscalatedToHuman)
        assert outcome.answer == "ERR_FOR_HUMAN"
        assert board.cards["card-1"]["list_id"] == "list-human"
        assert len(notifier.notifications) == 1

    @pytest.mark.asyncio
    async def test_unexpected_inference_exception_escalates(self, service, board, model):
        model.error = RuntimeError("connection reset")

        outcome = await service.triage("How do I export my data?")

        assert isinstance(outcome, EscalatedToHuman)
        assert board.cards["card-1"]["list_id"] == "list-human"

    @pytest.mark.asyncio
    async def test_short_answer_escalates(self, service, model):
        model.answer = "Sure."

        outcome = await service.triage("Can you help?")

        assert isinstance(outcome, EscalatedToHuman)
        assert outcome.answer == "Sure."

    @pytest.mark.asyncio
    async def test_prompt_embeds_question(self, service, model):
        await service.triage("How do I change my email?")

        prompt = model.prompts[0]
        assert '"How do I change my email?"' in prompt
        assert "ERR_FOR_HUMAN" in prompt

    @pytest.mark.asyncio
    async def test_ticket_moved_exactly_once(self, service, calls, model):
        model.answer = DIRECT_ANSWER

        await service.triage("How do I reset my password?")

        moves = [c for c in calls if c[0] == "move"]
        assert moves == [("move", "card-1", "list-ai")]


class TestFailurePolicy:

    @pytest.mark.asyncio
    async def test_move_failure_fails_run(self, service, board, model, notifier):
        board.fail_move = True
        model.answer = DIRECT_ANSWER

        outcome = await service.triage("How do I reset my password?")

        assert isinstance(outcome, Failed)
        assert "AI responses" in outcome.reason
        assert notifier.notifications == []

    @pytest.mark.asyncio
    async def test_move_failure_on_escalation_skips_notification(self, service, board, notifier):
        board.fail_move = True

        outcome = await service.triage("What is user X's salary?")

        assert isinstance(outcome, Failed)
        assert notifier.notifications == []

    @pytest.mark.asyncio
    async def test_update_failure_still_resolved(self, service, board, model):
        board.fail_update = True
        model.answer = DIRECT_ANSWER

        outcome = await service.triage("How do I reset my password?")

        assert isinstance(outcome, ResolvedByAi)
        assert board.cards["card-1"]["list_id"] == "list-ai"

    @pytest.mark.asyncio
    async def test_update_failure_still_escalated(self, service, board, notifier):
        board.fail_update = True

        outcome = await service.triage("What is user X's salary?")

        assert isinstance(outcome, EscalatedToHuman)
        assert board.cards["card-1"]["list_id"] == "list-human"
        assert len(notifier.notifications) == 1

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_fail_run(self, triage_config, board, model):
        notifier = AsyncMock()
        notifier.notify.side_effect = RuntimeError("smtp down")
        service = TriageService(triage_config, board, model, notifier)

        outcome = await service.triage("What is user X's salary?")

        assert isinstance(outcome, EscalatedToHuman)
        notifier.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, service, board, calls):
        board.fail_move = True

        await service.triage("What is user X's salary?")

        assert len([c for c in calls if c[0] == "move"]) == 1


class TestRetries:

    @pytest.fixture
    def retrying_config(self, triage_config) -> TriageConfig:
        return TriageConfig(
            trello_key=triage_config.trello_key,
            trello_token=triage_config.trello_token,
            intake_list_id=triage_config.intake_list_id,
            ai_resolved_list_id=triage_config.ai_resolved_list_id,
            human_review_list_id=triage_config.human_review_list_id,
            ticketing_max_retries=3,
        )

    @pytest.mark.asyncio
    @patch("ticket_triage.triage.application.services.asyncio.sleep", new_callable=AsyncMock)
    async def test_move_retried_until_success(self, mock_sleep, retrying_config, model, notifier):
        board = AsyncMock()
        board.create_ticket.return_value = _ticket()
        board.move_ticket.side_effect = [TicketingGatewayError("502"), None]
        service = TriageService(retrying_config, board, model, notifier)

        outcome = await service.triage("What is user X's salary?")

        assert isinstance(outcome, EscalatedToHuman)
        assert board.move_ticket.await_count == 2
        mock_sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    @patch("ticket_triage.triage.application.services.asyncio.sleep", new_callable=AsyncMock)
    async def test_create_never_retried(self, mock_sleep, retrying_config, model, notifier):
        board = AsyncMock()
        board.create_ticket.side_effect = TicketingGatewayError("502")
        service = TriageService(retrying_config, board, model, notifier)

        outcome = await service.triage("What is user X's salary?")

        assert isinstance(outcome, Failed)
        assert board.create_ticket.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("ticket_triage.triage.application.services.asyncio.sleep", new_callable=AsyncMock)
    async def test_move_gives_up_after_max_attempts(self, mock_sleep, retrying_config, model, notifier):
        board = AsyncMock()
        board.create_ticket.return_value = _ticket()
        board.move_ticket.side_effect = TicketingGatewayError("502")
        service = TriageService(retrying_config, board, model, notifier)

        outcome = await service.triage("What is user X's salary?")

        assert isinstance(outcome, Failed)
        assert board.move_ticket.await_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]


def _ticket() -> Ticket:
    return Ticket(id="card-9", url="https://trello.com/c/card-9", list_id="list-intake")
