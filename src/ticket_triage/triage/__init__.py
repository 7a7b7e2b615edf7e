"""
Triage Module
=============

Bounded context for question triage.

Responsibilities:
- Record every incoming question as a ticket on the board
- Ask the LLM for an answer and decide whether it can close the ticket
- Route the ticket to the AI-resolved or human-review lane
- Notify a human when a ticket is escalated
"""

__version__ = "1.0.0"
