"""
Dependency injection for FastAPI routes.

The chat orchestrator and its LLM client are built once per app from
settings and stored on app.state; routes receive them through Depends, and
tests swap them with app.dependency_overrides.
"""
import logging
from typing import Annotated

from fastapi import Depends, Request

from api.services.chat_orchestrator import ChatOrchestrator
from api.services.llm_client import OpenAIChatClient
from config.settings import Settings

logger = logging.getLogger(__name__)


def build_chat_orchestrator(settings: Settings) -> ChatOrchestrator:
    """
    Build the orchestrator for an app.

    Without an API key the orchestrator has no client: context endpoints
    still work, completion endpoints report the provider as unavailable.
    """
    client = None
    if settings.chat_enabled:
        client = OpenAIChatClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.openai_timeout,
        )
    else:
        logger.warning("OPENAI_API_KEY not set, chat completions disabled")

    return ChatOrchestrator(
        client=client,
        decomposition_max_chars=settings.decomposition_max_chars,
    )


def get_chat_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.chat_orchestrator


ChatOrchestratorDep = Annotated[ChatOrchestrator, Depends(get_chat_orchestrator)]
