"""
Triage Domain Entities
======================

Domain entities for the ticket triage module.

Contains pure Python business objects: the ticket as seen on the board,
the lanes a ticket moves through, the model answer and the outcome variants
returned to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union

from ticket_triage.config import ESCALATION_SENTINEL, TITLE_MAX_LENGTH


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TriageLane(str, Enum):
    """Board lanes a ticket can sit in."""
    INTAKE = "intake"
    AI_RESOLVED = "ai_resolved"
    HUMAN_REVIEW = "human_review"

    @property
    def display_name(self) -> str:
        return LANE_DISPLAY_NAMES[self]


LANE_DISPLAY_NAMES = {
    TriageLane.INTAKE: "Intake",
    TriageLane.AI_RESOLVED: "AI responses",
    TriageLane.HUMAN_REVIEW: "Human responses",
}

STATUS_LABELS = {
    TriageLane.INTAKE: "In progress",
    TriageLane.AI_RESOLVED: "Resolved by AI",
    TriageLane.HUMAN_REVIEW: "Escalated to human",
}


@dataclass
class Ticket:
    """
    A card on the external board.

    The board is the system of record; this object only mirrors what the
    current request created or changed.
    """
    id: str
    url: str
    list_id: str
    title: str = ""
    description: str = ""
    lane: TriageLane = TriageLane.INTAKE

    @staticmethod
    def build_title(question: str) -> str:
        """Title derived from the question, truncated with an ellipsis."""
        suffix = "..." if len(question) > TITLE_MAX_LENGTH else ""
        return f"Consulta: {question[:TITLE_MAX_LENGTH]}{suffix}"

    @staticmethod
    def build_intake_description(question: str, created_at: datetime) -> str:
        return (
            f"**Question:** {question}\n\n"
            f"**Status:** {STATUS_LABELS[TriageLane.INTAKE]}\n"
            f"**Date:** {created_at.isoformat()}"
        )

    @staticmethod
    def build_resolution_description(
        answer: str,
        lane: TriageLane,
        resolved_at: datetime
    ) -> str:
        return (
            f"**AI answer:** {answer}\n\n"
            f"**Status:** {STATUS_LABELS[lane]}\n"
            f"**Resolution date:** {resolved_at.isoformat()}"
        )


@dataclass(frozen=True)
class ModelAnswer:
    """Raw text produced by the inference call for one question."""
    text: str
    from_fallback: bool = False

    @classmethod
    def fallback(cls) -> "ModelAnswer":
        """Answer substituted when inference failed."""
        return cls(text=ESCALATION_SENTINEL, from_fallback=True)


@dataclass(frozen=True)
class HandoffNotification:
    """Payload sent to whoever picks up escalated tickets."""
    ticket_id: str
    ticket_url: str
    question: str
    answer: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class ResolvedByAi:
    question: str
    answer: str
    ticket: Ticket


@dataclass(frozen=True)
class EscalatedToHuman:
    question: str
    answer: str
    ticket: Ticket


@dataclass(frozen=True)
class Failed:
    reason: str


TriageOutcome = Union[ResolvedByAi, EscalatedToHuman, Failed]


class AnswerPromptBuilder:
    """
    Builds the helpdesk prompt sent to the model.

    All prompt logic in one place.
    """

    TEMPLATE = """
You are a specialised helpdesk assistant for a business application.

CRITICAL INSTRUCTIONS:
1. Answer the question DIRECTLY if you are absolutely sure of the answer.
2. If the question is about basic features, simple configuration, or common problems, ANSWER DIRECTLY.
3. ONLY if the question requires:
   - Sensitive or confidential information
   - Advanced system configuration
   - Important business decisions
   - Specific context you do not have
   - Access to private user data
   THEN return EXACTLY: "{sentinel}"

User question: "{question}"

If you can answer with confidence, give a clear and helpful answer. Otherwise, return EXACTLY "{sentinel}" with no additional explanation.
"""

    @classmethod
    def build_prompt(cls, question: str) -> str:
        return cls.TEMPLATE.format(sentinel=ESCALATION_SENTINEL, question=question)


@dataclass(frozen=True)
class GenerationOptions:
    """
    Fixed sampling parameters for answer generation.

    Low temperature, bounded output, repetition discouraged, and generation
    stops at the sentinel or at a simulated next user turn.
    """
    temperature: float = 0.3
    top_p: float = 0.9
    top_k: int = 40
    max_tokens: int = 512
    repeat_penalty: float = 1.1
    stop: tuple = (ESCALATION_SENTINEL, "Usuario:")


DEFAULT_GENERATION_OPTIONS = GenerationOptions()
