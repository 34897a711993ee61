"""
Work-OS Services Package.

This package contains the chat context pipeline and the pure heuristics
around it. Use this module to import commonly-used services.

Example:
    from api.services import (
        build_merged_context_block,
        resolve_ingestion_route,
    )

Key service modules:
- chat_context: notebook routing, retrieval and context assembly
- ingestion_routing: notebook classification for incoming content
- decomposition_intent: when to force the decompose_task tool
- task_domain: Work / Personal / Unknown tagging
- avoidance: avoidance report and summary
- chat_orchestrator: prompt assembly around an injected LLM client
"""

# ============================================================================
# Chat Context
# ============================================================================

from api.services.chat_context import (
    ConversationTurn,
    MergedContext,
    NotebookRoutingMetadata,
    NotebookRoutingOptions,
    NotebookScore,
    build_decomposition_rag_context,
    build_merged_context_block,
    build_notebook_stores,
    clip_context,
    pick_retrieved_history,
    resolve_notebook_routing,
    tokenize_for_retrieval,
)

# ============================================================================
# Classification
# ============================================================================

from api.services.ingestion_routing import (
    DEFAULT_NOTEBOOK_ID,
    classify_notebook_id_from_text,
    normalize_notebook_id,
    resolve_ingestion_route,
)

from api.services.decomposition_intent import (
    is_decomposition_intent,
    should_force_decomposition_workflow,
)

from api.services.task_domain import TaskDomain, classify_task_domain

# ============================================================================
# Orchestration
# ============================================================================

from api.services.chat_orchestrator import ChatOrchestrator, ChatTurnPlan


__all__ = [
    # Chat context
    "ConversationTurn",
    "MergedContext",
    "NotebookRoutingMetadata",
    "NotebookRoutingOptions",
    "NotebookScore",
    "build_decomposition_rag_context",
    "build_merged_context_block",
    "build_notebook_stores",
    "clip_context",
    "pick_retrieved_history",
    "resolve_notebook_routing",
    "tokenize_for_retrieval",
    # Classification
    "DEFAULT_NOTEBOOK_ID",
    "classify_notebook_id_from_text",
    "normalize_notebook_id",
    "resolve_ingestion_route",
    "is_decomposition_intent",
    "should_force_decomposition_workflow",
    "TaskDomain",
    "classify_task_domain",
    # Orchestration
    "ChatOrchestrator",
    "ChatTurnPlan",
]
