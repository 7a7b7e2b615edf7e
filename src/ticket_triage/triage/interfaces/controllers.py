"""
Triage Controllers (API Routes)
================================

FastAPI routes for ticket triage endpoints.

Controllers delegate to application services.
"""

import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ticket_triage.shared.infrastructure.logging import get_logger
from ticket_triage.triage.application import (
    AskRequest,
    ErrorResponse,
    EscalatedResponse,
    ResolvedResponse,
    TriageService,
    outcome_to_response,
)

logger = get_logger(__name__)
router = APIRouter(tags=["Ticket Triage"])


# ========== Example payloads for Swagger ==========

ASK_RESOLVED_EXAMPLE = {
    "status": "success",
    "resolved_by": "ai",
    "question": "How do I reset my password?",
    "ai_answer": "Open Settings > Security, choose 'Reset password' and follow the link sent to your email.",
    "ticket": {"id": "65f1c0ffee", "url": "https://trello.com/c/AbCdEf12", "lane": "AI responses"}
}

ASK_ESCALATED_EXAMPLE = {
    "status": "success",
    "resolved_by": "human",
    "question": "What is user X's salary?",
    "ai_answer": "ERR_FOR_HUMAN",
    "message": "Your question has been forwarded to a specialist",
    "ticket": {"id": "65f1c0ffee", "url": "https://trello.com/c/AbCdEf12", "lane": "Human responses"}
}

ASK_ERROR_EXAMPLE = {
    "error": "The request could not be processed.",
    "details": "The ticket could not be created"
}


# ========== Dependencies ==========

def get_triage_service(request: Request) -> TriageService:
    """Get the triage service built at startup."""
    service = getattr(request.app.state, "triage_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Triage service not available"
        )
    return service


# ========== Route Handlers ==========

@router.post(
    "/ask",
    response_model=ResolvedResponse | EscalatedResponse,
    summary="Submit a question for triage",
    description="""
    Record the question as a ticket on the board, ask the model for an answer
    and route the ticket:

    - **AI responses** lane when the model answered with confidence
    - **Human responses** lane when the model declined (`ERR_FOR_HUMAN`),
      produced an unusable answer, or could not be reached

    A failure to create or move the ticket returns the generic error payload.
    """,
    responses={
        200: {
            "description": "Question triaged",
            "content": {
                "application/json": {
                    "examples": {
                        "resolved": {"value": ASK_RESOLVED_EXAMPLE},
                        "escalated": {"value": ASK_ESCALATED_EXAMPLE}
                    }
                }
            }
        },
        502: {
            "description": "Ticketing board failure",
            "model": ErrorResponse,
            "content": {"application/json": {"example": ASK_ERROR_EXAMPLE}}
        },
        503: {"description": "Triage service not available"}
    }
)
async def ask(
    request: Request,
    payload: AskRequest,
    service: TriageService = Depends(get_triage_service)
):
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    outcome = await service.triage(payload.question)
    response = outcome_to_response(outcome)

    logger.info(
        "Triage finished",
        extra={
            "correlation_id": correlation_id,
            "outcome": type(outcome).__name__,
            "processing_time_ms": int((time.perf_counter() - start_time) * 1000)
        }
    )

    if isinstance(response, ErrorResponse):
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=response.model_dump()
        )
    return response
