"""
Confidence Classifier
=====================

Decides whether a model answer is good enough to close a ticket without a
human. This is a heuristic over the raw text, not a semantic evaluation, and
it leans towards escalation: a wrong "resolved" costs more than an
unnecessary handoff.
"""

from dataclasses import dataclass
from enum import Enum

from ticket_triage.config import (
    ESCALATION_SENTINEL,
    MIN_ANSWER_LENGTH,
    ERROR_ANSWER_MAX_LENGTH,
)


class VerdictReason(str, Enum):
    """Which rule decided the verdict."""
    SENTINEL_EXACT = "sentinel_exact"
    SENTINEL_CONTAINED = "sentinel_contained"
    TOO_SHORT = "too_short"
    LOOKS_LIKE_ERROR = "looks_like_error"
    ACCEPTED = "accepted"

    @property
    def is_heuristic(self) -> bool:
        """True when escalation came from a length/keyword rule, not the sentinel."""
        return self in (VerdictReason.TOO_SHORT, VerdictReason.LOOKS_LIKE_ERROR)


@dataclass(frozen=True)
class ClassificationVerdict:
    resolvable: bool
    reason: VerdictReason


class ConfidenceClassifier:
    """
    Pure decision function mapping an answer to "can be auto-resolved".

    Rules, first match wins:
    1. trimmed answer is exactly the sentinel -> escalate
    2. answer contains the sentinel anywhere -> escalate
    3. trimmed answer shorter than MIN_ANSWER_LENGTH -> escalate
    4. mentions "error" and shorter than ERROR_ANSWER_MAX_LENGTH -> escalate
    5. otherwise -> resolvable
    """

    def __init__(
        self,
        sentinel: str = ESCALATION_SENTINEL,
        min_length: int = MIN_ANSWER_LENGTH,
        error_max_length: int = ERROR_ANSWER_MAX_LENGTH
    ):
        self.sentinel = sentinel
        self.min_length = min_length
        self.error_max_length = error_max_length

    def evaluate(self, answer: str) -> ClassificationVerdict:
        stripped = answer.strip()

        if stripped == self.sentinel:
            return ClassificationVerdict(False, VerdictReason.SENTINEL_EXACT)

        if self.sentinel in answer:
            return ClassificationVerdict(False, VerdictReason.SENTINEL_CONTAINED)

        if len(stripped) < self.min_length:
            return ClassificationVerdict(False, VerdictReason.TOO_SHORT)

        # Length here is the untrimmed length
        if "error" in answer.lower() and len(answer) < self.error_max_length:
            return ClassificationVerdict(False, VerdictReason.LOOKS_LIKE_ERROR)

        return ClassificationVerdict(True, VerdictReason.ACCEPTED)

    def classify(self, answer: str) -> bool:
        """Return True when the AI may resolve the ticket on its own."""
        return self.evaluate(answer).resolvable
