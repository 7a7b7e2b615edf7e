"""
Ticket Triage
=============

Helpdesk question triage: Trello tickets routed by an LLM's confidence.
"""

__version__ = "1.0.0"
