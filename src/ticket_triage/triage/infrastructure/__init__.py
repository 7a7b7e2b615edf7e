"""
Triage Infrastructure Layer
============================

Infrastructure adapters for the ticket triage module.

Contains:
- External: gateway adapters (Trello, LLM) and human handoff notifiers
"""

from ticket_triage.triage.infrastructure.external import (
    TrelloTicketingAdapter,
    LLMInferenceAdapter,
    LoggingHandoffNotifier,
    CompositeHandoffNotifier,
    SlackHandoffNotifier,
    CircuitBreaker,
    CircuitState,
)

__all__ = [
    "TrelloTicketingAdapter",
    "LLMInferenceAdapter",
    "LoggingHandoffNotifier",
    "CompositeHandoffNotifier",
    "SlackHandoffNotifier",
    "CircuitBreaker",
    "CircuitState",
]
