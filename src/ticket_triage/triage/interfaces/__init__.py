"""
Triage Interfaces Layer
========================

Interface adapters (controllers) for ticket triage module.

Contains:
- Controllers: FastAPI route handlers
"""

from ticket_triage.triage.interfaces.controllers import router as triage_router

__all__ = ["triage_router"]
