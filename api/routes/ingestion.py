"""
Ingestion routing API.

Tells ingestion sources (Telegram webhook, Google Drive sync, chat) which
notebook a piece of content belongs to.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter
from pydantic import AliasChoices, BaseModel, Field

from api.services.ingestion_routing import resolve_ingestion_route

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ingestion", tags=["ingestion"])


class IngestionRouteRequest(BaseModel):
    content: str = Field(..., description="Text being ingested")
    source: Optional[str] = Field(default=None, description="chat, telegram, google_drive or assistant")
    notebook_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("notebook_id", "notebookId"),
    )
    source_metadata: Optional[dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("source_metadata", "sourceMetadata"),
    )


class IngestionRouteResponse(BaseModel):
    notebook_id: str
    source: str
    source_metadata: dict[str, Any]
    routing: dict[str, Any]


@router.post("/route", response_model=IngestionRouteResponse)
async def route_ingestion(request: IngestionRouteRequest):
    """Resolve the notebook for ingested content."""
    route = resolve_ingestion_route(
        content=request.content,
        source=request.source,
        notebook_id=request.notebook_id,
        source_metadata=request.source_metadata,
    )
    return IngestionRouteResponse(
        notebook_id=route.notebook_id,
        source=route.source,
        source_metadata=route.source_metadata,
        routing=route.routing.to_dict(),
    )
