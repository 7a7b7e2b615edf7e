"""
Triage Application DTOs
========================

Data Transfer Objects for the triage API layer.

Pydantic models for request/response validation.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ticket_triage.shared.api.middleware import GENERIC_ERROR_MESSAGE
from ticket_triage.triage.domain import (
    EscalatedToHuman,
    Failed,
    ResolvedByAi,
    Ticket,
    TriageOutcome,
)

HANDOFF_MESSAGE = "Your question has been forwarded to a specialist"


# ========== Request DTOs ==========

class AskRequest(BaseModel):
    """Request model for a new question."""
    question: str = Field(..., min_length=1, description="The user's question")

    @field_validator("question")
    @classmethod
    def validate_question(cls, v: str) -> str:
        """Reject blank and overly long questions."""
        if not v.strip():
            raise ValueError("Question must not be blank")
        if len(v) > 2000:
            raise ValueError("Question too long (max 2000 characters)")
        return v


# ========== Response DTOs ==========

class TicketInfo(BaseModel):
    """Ticket reference in API responses."""
    id: str
    url: str
    lane: str

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketInfo":
        return cls(id=ticket.id, url=ticket.url, lane=ticket.lane.display_name)


class ResolvedResponse(BaseModel):
    """Response when the AI answered the question."""
    status: Literal["success"] = "success"
    resolved_by: Literal["ai"] = "ai"
    question: str
    ai_answer: str
    ticket: TicketInfo


class EscalatedResponse(BaseModel):
    """Response when the question was handed to a human."""
    status: Literal["success"] = "success"
    resolved_by: Literal["human"] = "human"
    question: str
    ai_answer: str
    message: str = HANDOFF_MESSAGE
    ticket: TicketInfo


class ErrorResponse(BaseModel):
    """Generic failure payload."""
    error: str = GENERIC_ERROR_MESSAGE
    details: Optional[str] = None


AskResponse = Union[ResolvedResponse, EscalatedResponse]


def outcome_to_response(outcome: TriageOutcome) -> Union[AskResponse, ErrorResponse]:
    """Serialize a triage outcome into its API payload."""
    if isinstance(outcome, ResolvedByAi):
        return ResolvedResponse(
            question=outcome.question,
            ai_answer=outcome.answer,
            ticket=TicketInfo.from_domain(outcome.ticket)
        )
    if isinstance(outcome, EscalatedToHuman):
        return EscalatedResponse(
            question=outcome.question,
            ai_answer=outcome.answer,
            ticket=TicketInfo.from_domain(outcome.ticket)
        )
    if isinstance(outcome, Failed):
        return ErrorResponse(details=outcome.reason)
    raise TypeError(f"Unknown triage outcome: {type(outcome).__name__}")
