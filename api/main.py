"""
Work-OS - chat context service for the Work-OS task assistant
FastAPI Application Entry Point

Run with:

    uvicorn api.main:app --host 0.0.0.0 --port 8000

or `python -m api.main`, which binds WORKOS_HOST and WORKOS_PORT.
"""
# Load environment variables from .env file first, before any imports
from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import build_chat_orchestrator
from api.routes import avoidance_router, chat_router, ingestion_router
from config.settings import settings

logger = logging.getLogger(__name__)


app = FastAPI(
    title="Work-OS",
    description="Notebook-routed conversation context for the Work-OS chat assistant",
    version="0.3.0",
)

# CORS middleware for the dashboard dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.chat_orchestrator = build_chat_orchestrator(settings)

# Include routers
app.include_router(chat_router)
app.include_router(ingestion_router)
app.include_router(avoidance_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert validation errors to 400 with clear messages."""
    errors = exc.errors()

    # Sanitize errors for JSON serialization (convert bytes to string)
    sanitized_errors = []
    for error in errors:
        sanitized = dict(error)
        if "input" in sanitized and isinstance(sanitized["input"], bytes):
            sanitized["input"] = sanitized["input"].decode("utf-8", errors="replace")
        sanitized.pop("ctx", None)
        sanitized_errors.append(sanitized)

    for error in errors:
        if "message" in [str(part) for part in error.get("loc", [])]:
            return JSONResponse(
                status_code=400,
                content={"error": "Message is required", "detail": sanitized_errors}
            )
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "detail": sanitized_errors}
    )


@app.get("/health")
async def health_check():
    """Health check endpoint reporting configuration status."""
    checks = {
        "chat_provider_configured": settings.chat_enabled,
    }

    return {
        "status": "healthy" if all(checks.values()) else "degraded",
        "service": "work-os",
        "checks": checks,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
