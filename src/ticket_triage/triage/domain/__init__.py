"""
Triage Domain Layer
===================

Domain layer for ticket triage module.

Contains:
- Entities: Ticket, lanes, model answers, outcome variants
- Prompt building and generation parameters
- ConfidenceClassifier: pure answer-to-verdict decision

This layer is framework-agnostic and contains pure business logic.
"""

from ticket_triage.triage.domain.entities import (
    TriageLane,
    Ticket,
    ModelAnswer,
    HandoffNotification,
    ResolvedByAi,
    EscalatedToHuman,
    Failed,
    TriageOutcome,
    AnswerPromptBuilder,
    GenerationOptions,
    DEFAULT_GENERATION_OPTIONS,
    utcnow,
)
from ticket_triage.triage.domain.classifier import (
    ConfidenceClassifier,
    ClassificationVerdict,
    VerdictReason,
)

__all__ = [
    "TriageLane",
    "Ticket",
    "ModelAnswer",
    "HandoffNotification",
    "ResolvedByAi",
    "EscalatedToHuman",
    "Failed",
    "TriageOutcome",
    "AnswerPromptBuilder",
    "GenerationOptions",
    "DEFAULT_GENERATION_OPTIONS",
    "utcnow",
    "ConfidenceClassifier",
    "ClassificationVerdict",
    "VerdictReason",
]
