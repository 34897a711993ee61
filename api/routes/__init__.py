"""
Work-OS API Routes Package.

This package contains all FastAPI route handlers organized by domain.
Use this module to import routers for registration with the FastAPI app.

Example:
    from api.routes import chat_router

    app.include_router(chat_router)
"""

from api.routes.chat import router as chat_router
from api.routes.ingestion import router as ingestion_router
from api.routes.avoidance import router as avoidance_router


__all__ = [
    "chat_router",
    "ingestion_router",
    "avoidance_router",
]
