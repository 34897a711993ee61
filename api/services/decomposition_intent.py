"""
Decomposition intent detection.

Decides when a chat turn should be forced into the task decomposition tool
call instead of leaving tool choice to the model. Pure regex heuristics:

- Direct requests: "break this down", "implementation plan", "subtasks"
- Follow-ups: a short or continuation-style reply ("yes", "do it",
  "for the citrix one") while planning vocabulary is in recent or
  retrieved context
"""
import logging
import re
from typing import Sequence

from api.services.chat_context import ConversationTurn

logger = logging.getLogger(__name__)

DECOMPOSITION_INTENT_RE = re.compile(
    r"\b(break\s*(it|this|that)?\s*down|breakdown|decompose|subtasks?|step[-\s]?by[-\s]?step"
    r"|plan\s+(this|that|it|my|the)|execution plan|implementation plan|roadmap)\b",
    re.IGNORECASE,
)

DECOMPOSITION_CONTEXT_RE = re.compile(
    r"\b(subtasks?|decompose|decomposition|step[-\s]?by[-\s]?step|execution plan"
    r"|implementation plan|roadmap|next step)\b",
    re.IGNORECASE,
)

FOLLOW_UP_CONTINUATION_RE = re.compile(
    r"\b(yes|yep|yeah|do it|continue|go on|next|and then|for (this|that|it|the)|for the"
    r"|that one|this one|expand|refine|make it smaller|more detail)\b",
    re.IGNORECASE,
)

# Replies this short are treated as follow-ups even without a continuation phrase
SHORT_FOLLOW_UP_WORDS = 7


def is_decomposition_intent(message: str) -> bool:
    """Check if a message directly asks for a task to be broken down."""
    text = str(message or "").strip()
    if not text:
        return False
    return bool(DECOMPOSITION_INTENT_RE.search(text))


def should_force_decomposition_workflow(
    latest_user_message: str,
    recent_turns: Sequence[ConversationTurn],
    retrieved_turns: Sequence[ConversationTurn],
) -> bool:
    """
    Decide whether to force the decomposition tool call for this turn.

    Args:
        latest_user_message: The message being answered
        recent_turns: Recent conversation window from the merged context
        retrieved_turns: Turns retrieved from the selected notebooks

    Returns:
        True for a direct decomposition request, or for a follow-up while
        planning context is present.
    """
    latest = str(latest_user_message or "").strip()
    if not latest:
        return False

    if is_decomposition_intent(latest):
        logger.debug("Decomposition forced: direct intent")
        return True

    has_planning_context = any(
        DECOMPOSITION_CONTEXT_RE.search(turn.content or "")
        for turn in [*recent_turns, *retrieved_turns]
    )
    looks_like_follow_up = (
        bool(FOLLOW_UP_CONTINUATION_RE.search(latest))
        or len(latest.split()) <= SHORT_FOLLOW_UP_WORDS
    )

    if has_planning_context and looks_like_follow_up:
        logger.debug("Decomposition forced: follow-up with planning context")
        return True
    return False
