"""
Chat API endpoints.

- POST /api/chat/context: merged context and routing for a chat turn (no LLM call)
- POST /api/chat: prepare the turn and run it through the chat provider
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import AliasChoices, BaseModel, Field

from api.dependencies import ChatOrchestratorDep
from api.services.chat_context import ConversationTurn, NotebookRoutingOptions
from api.services.llm_client import ChatClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class TurnModel(BaseModel):
    role: str = Field(..., description="user or assistant")
    content: str = ""
    notebook_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("notebook_id", "notebookId"),
        description="Notebook tag, if the turn was routed at ingestion",
    )

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(role=self.role, content=self.content, notebook_id=self.notebook_id)


class RoutingModel(BaseModel):
    mode: Optional[Literal["auto", "specific"]] = None
    notebook_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("notebook_id", "notebookId"),
    )
    candidate_notebook_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("candidate_notebook_ids", "candidateNotebookIds"),
    )

    def to_options(self) -> NotebookRoutingOptions:
        return NotebookRoutingOptions(
            mode=self.mode,
            notebook_id=self.notebook_id,
            candidate_notebook_ids=list(self.candidate_notebook_ids),
        )


class ChatRequest(BaseModel):
    """Conversation snapshot plus the message being answered."""
    message: str
    history: list[TurnModel] = Field(default_factory=list)
    avoidance_context: str = ""
    routing: Optional[RoutingModel] = None


def _unpack(request: ChatRequest):
    if not request.message.strip():
        raise HTTPException(status_code=400, detail="Message cannot be empty")
    history = [turn.to_turn() for turn in request.history]
    routing = request.routing.to_options() if request.routing else None
    return history, routing


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/context")
async def chat_context(request: ChatRequest, orchestrator: ChatOrchestratorDep):
    """Build the merged context block and routing metadata for a chat turn."""
    history, routing = _unpack(request)
    plan = orchestrator.prepare_turn(
        history=history,
        message=request.message,
        avoidance_context=request.avoidance_context,
        routing=routing,
    )
    return plan.to_dict()


@router.post("")
async def chat(request: ChatRequest, orchestrator: ChatOrchestratorDep):
    """
    Answer a chat turn.

    Tool calls are returned untouched for the caller to execute.
    """
    history, routing = _unpack(request)
    if orchestrator.client is None:
        raise HTTPException(status_code=503, detail="Chat provider is not configured")

    try:
        reply = await orchestrator.respond(
            history=history,
            message=request.message,
            avoidance_context=request.avoidance_context,
            routing=routing,
        )
    except ChatClientError as e:
        logger.error(f"Chat provider failed: {e}")
        raise HTTPException(status_code=502, detail="Chat provider request failed")

    return {
        "content": reply.content,
        "tool_calls": reply.tool_calls,
        "context": reply.plan.to_dict(),
    }
