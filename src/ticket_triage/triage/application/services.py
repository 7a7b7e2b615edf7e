"""
Triage Application Services
============================

Application services for ticket triage.

``TriageService`` drives one question through the pipeline:
create ticket -> ask the model -> classify -> move ticket -> notify on handoff.
The gateways it talks to are defined here as interfaces and implemented in
the infrastructure layer.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from ticket_triage.config import TriageConfig
from ticket_triage.core import GatewayError
from ticket_triage.shared.infrastructure.logging import get_logger
from ticket_triage.triage.domain import (
    AnswerPromptBuilder,
    ConfidenceClassifier,
    EscalatedToHuman,
    Failed,
    HandoffNotification,
    ModelAnswer,
    ResolvedByAi,
    Ticket,
    TriageLane,
    TriageOutcome,
    utcnow,
)

logger = get_logger(__name__)


# ========== Gateway Interfaces ==========

class ITicketingGateway(ABC):
    """Interface for the external ticketing board."""

    @abstractmethod
    async def create_ticket(self, list_id: str, title: str, description: str) -> Ticket:
        """Create a ticket in the given list."""

    @abstractmethod
    async def move_ticket(self, ticket_id: str, target_list_id: str) -> None:
        """Move a ticket to another list."""

    @abstractmethod
    async def update_ticket_description(self, ticket_id: str, description: str) -> None:
        """Replace a ticket's description."""


class IInferenceGateway(ABC):
    """Interface for answer generation."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Generate an answer for the prompt."""


class IHandoffNotifier(ABC):
    """Interface for telling a human that a ticket needs them."""

    @abstractmethod
    async def notify(self, notification: HandoffNotification) -> None:
        """Deliver a handoff notification."""

    async def close(self) -> None:
        """Release network resources, if any."""


# ========== Application Services ==========

class TriageService:
    """
    Orchestrates a single triage run.

    Failure policy:
    - ticket creation or move fails -> the run fails
    - inference fails -> answer becomes the escalation sentinel
    - description update or notification fails -> logged, run still succeeds

    Holds no per-request state, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        config: TriageConfig,
        ticketing: ITicketingGateway,
        inference: IInferenceGateway,
        notifier: IHandoffNotifier,
        classifier: Optional[ConfidenceClassifier] = None,
        clock: Callable = utcnow
    ):
        self._config = config
        self._ticketing = ticketing
        self._inference = inference
        self._notifier = notifier
        self._classifier = classifier or ConfidenceClassifier()
        self._clock = clock
        self._lane_lists = {
            TriageLane.INTAKE: config.intake_list_id,
            TriageLane.AI_RESOLVED: config.ai_resolved_list_id,
            TriageLane.HUMAN_REVIEW: config.human_review_list_id,
        }

    async def triage(self, question: str) -> TriageOutcome:
        """
        Run the triage pipeline for one question.

        Args:
            question: The user's question

        Returns:
            ResolvedByAi, EscalatedToHuman or Failed
        """
        logger.info("New question received", extra={"question_length": len(question)})

        try:
            ticket = await self._create_ticket(question)
        except GatewayError as e:
            logger.error("Ticket creation failed", extra={"error": str(e)})
            return Failed(reason="The ticket could not be created")

        answer = await self._ask_model(question)

        verdict = self._classifier.evaluate(answer.text)
        target = TriageLane.AI_RESOLVED if verdict.resolvable else TriageLane.HUMAN_REVIEW
        logger.info(
            "Answer classified",
            extra={
                "ticket_id": ticket.id,
                "resolvable": verdict.resolvable,
                "reason": verdict.reason.value,
                "from_fallback": answer.from_fallback
            }
        )
        if verdict.reason.is_heuristic:
            # Escalated without the model asking for it; kept for calibration
            logger.warning(
                "Heuristic escalation",
                extra={
                    "ticket_id": ticket.id,
                    "reason": verdict.reason.value,
                    "answer_length": len(answer.text)
                }
            )

        try:
            await self._move(ticket, target)
        except GatewayError as e:
            logger.error(
                "Ticket move failed",
                extra={"ticket_id": ticket.id, "target_lane": target.value, "error": str(e)}
            )
            return Failed(reason=f"The ticket could not be moved to the {target.display_name} lane")

        await self._annotate(ticket, answer.text, target)

        if target is TriageLane.AI_RESOLVED:
            logger.info("Question resolved by AI", extra={"ticket_id": ticket.id})
            return ResolvedByAi(question=question, answer=answer.text, ticket=ticket)

        await self._notify_human(ticket, question, answer.text)
        logger.info("Question escalated to a human agent", extra={"ticket_id": ticket.id})
        return EscalatedToHuman(question=question, answer=answer.text, ticket=ticket)

    # ========== Pipeline steps ==========

    async def _create_ticket(self, question: str) -> Ticket:
        list_id = self._lane_lists[TriageLane.INTAKE]
        title = Ticket.build_title(question)
        description = Ticket.build_intake_description(question, self._clock())

        ticket = await self._ticketing.create_ticket(list_id, title, description)
        ticket.lane = TriageLane.INTAKE
        logger.info("Ticket created", extra={"ticket_id": ticket.id, "ticket_url": ticket.url})
        return ticket

    async def _ask_model(self, question: str) -> ModelAnswer:
        prompt = AnswerPromptBuilder.build_prompt(question)
        try:
            text = await self._inference.generate(prompt)
        except Exception as e:
            # Any inference failure routes to a human instead of failing the run
            logger.error(
                "Inference failed, escalating",
                extra={"error_type": type(e).__name__, "error": str(e)}
            )
            return ModelAnswer.fallback()

        if not isinstance(text, str):
            logger.warning("Inference returned non-text answer", extra={"type": type(text).__name__})
            return ModelAnswer.fallback()

        return ModelAnswer(text=text)

    async def _move(self, ticket: Ticket, lane: TriageLane) -> None:
        list_id = self._lane_lists[lane]
        await self._with_retries(
            "move_ticket",
            lambda: self._ticketing.move_ticket(ticket.id, list_id)
        )
        ticket.list_id = list_id
        ticket.lane = lane
        logger.info("Ticket moved", extra={"ticket_id": ticket.id, "lane": lane.value})

    async def _annotate(self, ticket: Ticket, answer: str, lane: TriageLane) -> None:
        description = Ticket.build_resolution_description(answer, lane, self._clock())
        try:
            await self._with_retries(
                "update_ticket_description",
                lambda: self._ticketing.update_ticket_description(ticket.id, description)
            )
        except GatewayError as e:
            logger.error(
                "Ticket description update failed",
                extra={"ticket_id": ticket.id, "error": str(e)}
            )
            return
        ticket.description = description

    async def _notify_human(self, ticket: Ticket, question: str, answer: str) -> None:
        notification = HandoffNotification(
            ticket_id=ticket.id,
            ticket_url=ticket.url,
            question=question,
            answer=answer,
            timestamp=self._clock()
        )
        try:
            await self._notifier.notify(notification)
        except Exception as e:
            logger.error(
                "Handoff notification failed",
                extra={"ticket_id": ticket.id, "error": str(e)}
            )

    async def _with_retries(
        self,
        operation: str,
        call: Callable[[], Awaitable[None]]
    ) -> None:
        """Run an idempotent ticketing call with exponential backoff."""
        attempts = self._config.ticketing_max_retries
        for attempt in range(attempts):
            try:
                await call()
                return
            except GatewayError as e:
                if attempt == attempts - 1:
                    raise
                logger.warning(
                    f"{operation} failed, retrying",
                    extra={"attempt": attempt + 1, "error": str(e)}
                )
                await asyncio.sleep(2 ** attempt)
