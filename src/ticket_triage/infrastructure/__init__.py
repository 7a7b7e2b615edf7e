"""
Infrastructure Layer
=====================

Clients for the external systems the service talks to:
- Trello REST API (ticketing board)
- LLM providers (Ollama, OpenAI-compatible)
"""
