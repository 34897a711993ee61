"""
Avoidance report API.

The caller posts the raw activity it gathered (stale clients, deferral
counts, recent completions); the response is the scored report plus the
summary text used as chat avoidance context.
"""
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from api.services.avoidance import (
    CompletedTask,
    DeferredTask,
    StaleClient,
    build_avoidance_report,
    detect_avoidance_patterns,
    stale_severity,
    summarize_avoidance,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/avoidance", tags=["avoidance"])


class StaleClientModel(BaseModel):
    name: str
    days_since_touch: int = Field(..., ge=0)
    last_move_title: Optional[str] = None


class DeferredTaskModel(BaseModel):
    task_id: int
    title: str
    client_name: str = "Unknown"
    defer_count: int = Field(..., ge=0)
    days_since_created: int = Field(default=0, ge=0)


class CompletedTaskModel(BaseModel):
    completed_at: datetime
    client_id: Optional[int] = None
    drain_type: Optional[str] = None


class AvoidanceRequest(BaseModel):
    stale_clients: list[StaleClientModel] = Field(default_factory=list)
    frequently_deferred: list[DeferredTaskModel] = Field(default_factory=list)
    completed_tasks: list[CompletedTaskModel] = Field(default_factory=list)
    now: Optional[datetime] = None


@router.post("/report")
async def avoidance_report(request: AvoidanceRequest):
    """Score avoidance and summarize it for the chat context."""
    stale = [
        StaleClient(
            name=c.name,
            days_since_touch=c.days_since_touch,
            last_move_title=c.last_move_title,
            severity=stale_severity(c.days_since_touch),
        )
        for c in request.stale_clients
    ]
    deferred = [DeferredTask(**t.model_dump()) for t in request.frequently_deferred]
    patterns = detect_avoidance_patterns(
        [CompletedTask(**t.model_dump()) for t in request.completed_tasks],
        now=request.now,
    )

    report = build_avoidance_report(stale, deferred, patterns)
    logger.info(f"Avoidance report: score={report.overall_score} patterns={len(patterns)}")

    return {
        **asdict(report),
        "summary": summarize_avoidance(report),
    }
