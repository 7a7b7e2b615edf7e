"""
Ticket Triage - Main Application
================================

Helpdesk question triage service.

Every question becomes a ticket on the Trello board. An LLM tries to answer
it; confident answers close the ticket in the AI lane, everything else goes
to the human-review lane and a human is notified.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Triage service, gateway interfaces and DTOs
- Domain: Entities, prompt and confidence classifier
- Infrastructure: Trello and LLM clients, handoff notifiers
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ticket_triage.config import Settings, build_triage_config, settings as default_settings
from ticket_triage.infrastructure.llm import create_llm_client
from ticket_triage.infrastructure.trello import TrelloClient
from ticket_triage.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
)
from ticket_triage.shared.infrastructure.logging import get_logger, setup_logging
from ticket_triage.triage.application import IHandoffNotifier, TriageService
from ticket_triage.triage.infrastructure import (
    CompositeHandoffNotifier,
    LLMInferenceAdapter,
    LoggingHandoffNotifier,
    SlackHandoffNotifier,
    TrelloTicketingAdapter,
)
from ticket_triage.triage.interfaces import triage_router

logger = get_logger(__name__)


def build_notifier(settings: Settings) -> IHandoffNotifier:
    """Log every handoff; also post to Slack when a webhook is configured."""
    if not settings.slack_webhook_url:
        return LoggingHandoffNotifier()
    return CompositeHandoffNotifier([
        LoggingHandoffNotifier(),
        SlackHandoffNotifier(
            webhook_url=settings.slack_webhook_url,
            channel=settings.slack_channel,
            timeout=settings.slack_timeout_seconds
        ),
    ])


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI application."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        Application lifespan manager.

        STARTUP:
        1. Setup structured logging
        2. Validate ticketing configuration (fatal if incomplete)
        3. Initialize Trello and LLM clients
        4. Build the triage service

        SHUTDOWN:
        1. Close HTTP clients
        """
        # === STARTUP ===
        setup_logging(level=settings.log_level, environment=settings.environment)
        logger.info("Starting Ticket Triage", extra={
            "version": settings.app_version,
            "environment": settings.environment
        })

        triage_config = build_triage_config(settings)
        logger.info("Trello configuration loaded", extra={
            "intake_list": triage_config.intake_list_id,
            "ai_resolved_list": triage_config.ai_resolved_list_id,
            "human_review_list": triage_config.human_review_list_id
        })

        trello_client = TrelloClient(triage_config)
        llm_client = create_llm_client(settings)
        notifier = build_notifier(settings)

        app.state.triage_service = TriageService(
            config=triage_config,
            ticketing=TrelloTicketingAdapter(trello_client),
            inference=LLMInferenceAdapter(llm_client),
            notifier=notifier
        )
        app.state.llm_provider = "mock" if settings.mock_llm else settings.llm_provider

        logger.info("Ticket Triage started successfully")

        yield  # Application runs here

        # === SHUTDOWN ===
        logger.info("Shutting down Ticket Triage")
        await trello_client.close()
        await llm_client.close()
        await notifier.close()
        logger.info("Ticket Triage shutdown complete")

    app = FastAPI(
        title="Ticket Triage API",
        description="""
    ## Helpdesk question triage

    `POST /ask` records the question as a Trello card, asks the LLM for an
    answer and moves the card to **AI responses** or **Human responses**.
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Added last so it runs first and the logging middleware sees the id
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(triage_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        service_ready = getattr(request.app.state, "triage_service", None) is not None
        return {
            "status": "healthy" if service_ready else "degraded",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": {
                "triage_service": "ready" if service_ready else "not_initialized",
                "llm_provider": getattr(request.app.state, "llm_provider", "unknown"),
                "slack_notifications": "enabled" if settings.slack_webhook_url else "disabled"
            }
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Ticket Triage",
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/health",
            "endpoints": ["POST /ask - Triage a question"]
        }

    return app


app = create_app()


# === Development Entry Point ===

def run() -> None:
    import uvicorn

    uvicorn.run(
        "ticket_triage.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.environment == "development",
        log_level="info"
    )


if __name__ == "__main__":
    run()
