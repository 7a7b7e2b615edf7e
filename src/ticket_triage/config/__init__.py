"""
Configuration Module
====================

Application settings and configuration management using Pydantic.

Settings are read from the environment (and an optional ``.env`` file).
The triage pipeline itself never touches ``Settings`` directly: it receives
an immutable ``TriageConfig`` built once at startup by ``build_triage_config``.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ticket_triage.core.exceptions import ConfigurationException


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="ticket-triage", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port", ge=1, le=65535)

    # ========== Trello (ticketing board) ==========
    trello_key: Optional[str] = Field(default=None, description="Trello API key")
    trello_token: Optional[str] = Field(default=None, description="Trello API token")
    trello_id_list_consultas: Optional[str] = Field(
        default=None,
        description="List id of the intake lane"
    )
    trello_id_list_ia: Optional[str] = Field(
        default=None,
        description="List id of the AI-resolved lane"
    )
    trello_id_list_human: Optional[str] = Field(
        default=None,
        description="List id of the human-review lane"
    )
    trello_api_url: str = Field(
        default="https://api.trello.com/1",
        description="Trello REST API base URL"
    )
    trello_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for Trello API calls",
        ge=0.1,
        le=120
    )
    ticketing_max_retries: int = Field(
        default=1,
        description="Attempts for idempotent ticket move/update calls (1 = no retry)",
        ge=1,
        le=5
    )

    # ========== LLM Settings ==========
    llm_provider: str = Field(default="ollama", description="Inference backend: ollama or openai")
    llm_model: str = Field(default="llama3", description="Model used for answers")
    llm_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for inference calls",
        ge=1,
        le=600
    )
    ollama_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server base URL"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI-compatible API key")
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for OpenAI-compatible servers (Groq, vLLM, ...)"
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )

    # ========== Slack Integration ==========
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for human handoff notifications"
    )
    slack_channel: str = Field(
        default="#helpdesk-handoffs",
        description="Slack channel for handoff notifications"
    )
    slack_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Slack API calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        allowed = {"ollama", "openai"}
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"llm_provider must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

ESCALATION_SENTINEL = "ERR_FOR_HUMAN"

TITLE_MAX_LENGTH = 50
MIN_ANSWER_LENGTH = 10
ERROR_ANSWER_MAX_LENGTH = 50


# ========== Triage configuration ==========

REQUIRED_TRELLO_VARS = (
    ("TRELLO_KEY", "trello_key"),
    ("TRELLO_TOKEN", "trello_token"),
    ("TRELLO_ID_LIST_CONSULTAS", "trello_id_list_consultas"),
    ("TRELLO_ID_LIST_IA", "trello_id_list_ia"),
    ("TRELLO_ID_LIST_HUMAN", "trello_id_list_human"),
)


@dataclass(frozen=True)
class TriageConfig:
    """
    Immutable configuration handed to the triage pipeline at construction.

    Built and validated once at startup; never re-read per request.
    """
    trello_key: str
    trello_token: str
    intake_list_id: str
    ai_resolved_list_id: str
    human_review_list_id: str
    trello_api_url: str = "https://api.trello.com/1"
    trello_timeout_seconds: float = 10.0
    ticketing_max_retries: int = 1


def build_triage_config(settings: Settings) -> TriageConfig:
    """
    Validate the ticketing settings and freeze them into a TriageConfig.

    Raises:
        ConfigurationException: naming every missing variable
    """
    missing = [
        env_name for env_name, attr in REQUIRED_TRELLO_VARS
        if not getattr(settings, attr)
    ]
    if missing:
        raise ConfigurationException(
            f"Missing required configuration: {', '.join(missing)}",
            {"missing": missing}
        )

    return TriageConfig(
        trello_key=settings.trello_key,
        trello_token=settings.trello_token,
        intake_list_id=settings.trello_id_list_consultas,
        ai_resolved_list_id=settings.trello_id_list_ia,
        human_review_list_id=settings.trello_id_list_human,
        trello_api_url=settings.trello_api_url.rstrip("/"),
        trello_timeout_seconds=settings.trello_timeout_seconds,
        ticketing_max_retries=settings.ticketing_max_retries,
    )
