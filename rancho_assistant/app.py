#!/usr/bin/env python3
"""
Rancho Cordova assistant API
FastAPI surface: chat, agent catalogue and health check
"""

import logging
from datetime import datetime
from typing import List

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from rancho_assistant import __version__
from rancho_assistant.config import configure_logging, load_settings
from rancho_assistant.data_models import Query
from rancho_assistant.errors import AssistantError, ConfigurationError, ModelLoadingError, UpstreamError
from rancho_assistant.prompts import AGENT_PROFILES
from rancho_assistant.router import route_message
from rancho_assistant.schemas import MAX_MESSAGE_LENGTH, AgentInfo, ChatRequest, ChatResponse, ErrorResponse, ModelLoadingResponse, Source
from rancho_assistant.services import ServiceContext, get_service_context

configure_logging()
logger = logging.getLogger(__name__)

SYSTEM_UNAVAILABLE = "The system is temporarily unavailable. Please try again shortly."

settings = load_settings()

app = FastAPI(
    title="Rancho Cordova Assistant",
    description="City services and energy Q&A over vector search and city records",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_chat],
    enabled=settings.rate_limit_enabled,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


def error_response(exc: AssistantError) -> JSONResponse:
    """Single mapping from the error taxonomy to HTTP status and body"""
    if isinstance(exc, ModelLoadingError):
        body = ModelLoadingResponse(estimated_time=exc.estimated_time)
        return JSONResponse(status_code=503, content=body.model_dump())
    if isinstance(exc, ConfigurationError):
        logger.error(f"❌ Configuration error: {exc}")
        return JSONResponse(status_code=500, content={"error": "Server configuration error"})
    if isinstance(exc, UpstreamError):
        return JSONResponse(status_code=500, content={"error": SYSTEM_UNAVAILABLE})
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError):
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = {str(part) for err in errors for part in err.get("loc", ())}
    if any(err.get("type") == "string_too_long" and "message" in err.get("loc", ()) for err in errors):
        detail = f"Message is too long (max {MAX_MESSAGE_LENGTH} characters)"
    elif "message" in fields:
        detail = "Message is required"
    elif "agentType" in fields:
        detail = "agentType must be 'customer' or 'energy'"
    else:
        detail = "Invalid request body"
    return JSONResponse(status_code=400, content={"error": detail})


@app.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 503: {"model": ModelLoadingResponse}},
)
async def chat(request: ChatRequest, ctx: ServiceContext = Depends(get_service_context)):
    """Answer one resident message"""
    message = request.message.strip()
    if not message:
        return JSONResponse(status_code=400, content={"error": "Message is required"})
    try:
        result = await route_message(ctx, Query(message=message, agent_type=request.agentType))
    except AssistantError as e:
        logger.warning(f"⚠️ /api/chat failed: {type(e).__name__}: {e}")
        return error_response(e)
    except Exception:
        logger.exception("/api/chat error")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return ChatResponse(
        response=result.response,
        chartData=result.chart_data,
        sources=[Source(**s) for s in result.sources[:3]],
    )


@app.get("/api/agents", response_model=List[AgentInfo])
async def list_agents():
    """Agent catalogue shown on the selection screen"""
    return [
        AgentInfo(agentType=p.agent_type, name=p.name, description=p.description, greeting=p.greeting)
        for p in AGENT_PROFILES.values()
    ]


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
