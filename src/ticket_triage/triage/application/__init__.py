"""
Triage Application Layer
=========================

Application layer for ticket triage module.

Contains:
- Services: the triage orchestrator and the gateway interfaces it depends on
- DTOs: Data transfer objects for API serialization
"""

from ticket_triage.triage.application.dto import (
    AskRequest,
    AskResponse,
    ResolvedResponse,
    EscalatedResponse,
    ErrorResponse,
    TicketInfo,
    outcome_to_response,
)
from ticket_triage.triage.application.services import (
    TriageService,
    ITicketingGateway,
    IInferenceGateway,
    IHandoffNotifier,
)

__all__ = [
    # DTOs
    "AskRequest",
    "AskResponse",
    "ResolvedResponse",
    "EscalatedResponse",
    "ErrorResponse",
    "TicketInfo",
    "outcome_to_response",
    # Services
    "TriageService",
    # Gateway Interfaces
    "ITicketingGateway",
    "IInferenceGateway",
    "IHandoffNotifier",
]
