"""
Chat orchestrator for Work-OS.

Prepares each chat turn: merged context, decomposition forcing and the
outbound message list. The LLM client is injected at construction time, so
the same orchestrator runs against a real provider or a test double.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from api.services.chat_context import (
    DECOMPOSITION_MAX_CHARS,
    ConversationTurn,
    MergedContext,
    NotebookRoutingOptions,
    as_turn,
    build_decomposition_rag_context,
    build_merged_context_block,
)
from api.services.decomposition_intent import should_force_decomposition_workflow
from api.services.llm_client import ChatCompletionClient, ToolChoice
from api.services.prompts import CHAT_TOOLS, DECOMPOSE_TASK_TOOL_NAME, WORK_OS_PROMPT
from api.services.task_domain import TaskDomain, classify_task_domain

logger = logging.getLogger(__name__)

# Raw history turns sent to the model alongside the merged context
PROMPT_HISTORY_TURNS = 20
EMPTY_REPLY_FALLBACK = "Done."


@dataclass
class ChatTurnPlan:
    """Everything needed to run one chat completion."""
    context: MergedContext
    force_decomposition: bool
    decomposition_context: Optional[str]
    task_domain: TaskDomain
    messages: list[dict] = field(default_factory=list)
    tool_choice: ToolChoice = "auto"

    def to_dict(self) -> dict:
        return {
            **self.context.to_dict(),
            "force_decomposition": self.force_decomposition,
            "decomposition_context": self.decomposition_context,
            "task_domain": self.task_domain.value,
            "tool_choice": self.tool_choice,
        }


@dataclass
class ChatReply:
    """Assistant reply plus the plan it was produced from."""
    content: str
    tool_calls: list[dict]
    plan: ChatTurnPlan


class ChatOrchestrator:
    """
    Builds prompts from conversation history and runs them through an LLM.

    Stateless between calls: every turn is computed from the history passed in.
    """

    def __init__(
        self,
        client: Optional[ChatCompletionClient] = None,
        system_prompt: str = WORK_OS_PROMPT,
        decomposition_max_chars: int = DECOMPOSITION_MAX_CHARS,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: Chat completion client (required for respond())
            system_prompt: System prompt placed before the merged context
            decomposition_max_chars: Budget for the decomposition RAG context
        """
        self.client = client
        self.system_prompt = system_prompt
        self.decomposition_max_chars = decomposition_max_chars

    def prepare_turn(
        self,
        history: Sequence[ConversationTurn],
        message: str,
        avoidance_context: str = "",
        routing: Optional[NotebookRoutingOptions] = None,
    ) -> ChatTurnPlan:
        """
        Build the plan for answering `message`.

        Args:
            history: Conversation so far, oldest first (may already end
                with `message`)
            message: Latest user message
            avoidance_context: Avoidance summary to include in the context
            routing: Notebook routing hints

        Returns:
            ChatTurnPlan with context, forcing decision and outbound messages
        """
        history = [as_turn(turn) for turn in history]
        context = build_merged_context_block(
            history=history,
            latest_user_message=message,
            avoidance_context=avoidance_context,
            routing=routing,
        )

        force = should_force_decomposition_workflow(
            latest_user_message=message,
            recent_turns=context.recent_turns,
            retrieved_turns=context.retrieved_turns,
        )
        decomposition_context = None
        tool_choice: ToolChoice = "auto"
        if force:
            decomposition_context = build_decomposition_rag_context(
                latest_user_message=message,
                recent_turns=context.recent_turns,
                retrieved_turns=context.retrieved_turns,
                routing=context.routing,
                max_chars=self.decomposition_max_chars,
            )
            tool_choice = {"type": "function", "function": {"name": DECOMPOSE_TASK_TOOL_NAME}}
            logger.info(
                f"Forcing {DECOMPOSE_TASK_TOOL_NAME} for notebooks {context.routing.selected_notebook_ids}"
            )

        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "system", "content": context.text},
        ]
        if decomposition_context:
            messages.append({"role": "system", "content": decomposition_context})
        for turn in history[-PROMPT_HISTORY_TURNS:]:
            if turn.role in ("user", "assistant") and turn.content:
                messages.append({"role": turn.role, "content": turn.content})
        if not (history and history[-1].role == "user" and history[-1].content == message):
            messages.append({"role": "user", "content": message})

        return ChatTurnPlan(
            context=context,
            force_decomposition=force,
            decomposition_context=decomposition_context,
            task_domain=classify_task_domain(message),
            messages=messages,
            tool_choice=tool_choice,
        )

    async def respond(
        self,
        history: Sequence[ConversationTurn],
        message: str,
        avoidance_context: str = "",
        routing: Optional[NotebookRoutingOptions] = None,
    ) -> ChatReply:
        """
        Prepare the turn and run one completion through the injected client.

        Tool calls are returned to the caller for execution.

        Raises:
            RuntimeError: If no client was injected
            ChatClientError: If the provider call fails
        """
        if self.client is None:
            raise RuntimeError("ChatOrchestrator has no chat completion client")

        plan = self.prepare_turn(history, message, avoidance_context, routing)
        completion = await self.client.complete(
            plan.messages,
            tools=CHAT_TOOLS,
            tool_choice=plan.tool_choice,
        )
        return ChatReply(
            content=completion.content or EMPTY_REPLY_FALLBACK,
            tool_calls=completion.tool_calls,
            plan=plan,
        )
