"""
Shared Kernel Module
====================

Generic infrastructure used across the application: structured logging,
HTTP middleware and the global exception handler.

DO NOT add triage business logic to the shared kernel.
"""
