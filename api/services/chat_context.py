"""
Chat Context - builds the merged context block for each chat turn.

Conversation history is partitioned into notebooks (topical buckets), the
notebooks most relevant to the latest message are selected, and older turns
from those notebooks are retrieved by lexical overlap. The result is a text
block spliced into the LLM prompt, plus routing metadata for the caller.

Everything here is pure and recomputed per request:
- no I/O, no caching across conversations
- degenerate input (empty history, terse query, unknown notebook) degrades
  to a best-effort result instead of raising
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Optional, Sequence

from api.services.ingestion_routing import (
    DEFAULT_NOTEBOOK_ID,
    classify_notebook_id_from_text,
    compact_whitespace,
    normalize_notebook_id,
)

logger = logging.getLogger(__name__)

RECENT_CONTEXT_TURNS = 10
RETRIEVED_CONTEXT_TURNS = 6
MAX_CONTEXT_CHARS = 220

# Notebook-level scoring looks at this many of a notebook's latest turns
NOTEBOOK_SCORE_WINDOW = 12
MIN_TURN_SCORE = 0.05
MIN_NOTEBOOK_SCORE = 0.02
MAX_SELECTED_NOTEBOOKS = 3
CLASSIFIER_AGREEMENT_BOOST = 0.25

LAST_QUESTION_MAX_CHARS = 300
AVOIDANCE_MAX_CHARS = 1200
DECOMPOSITION_MAX_CHARS = 2200

NotebookRoutingMode = Literal["auto", "specific"]

_TOKEN_RE = re.compile(r"[a-z0-9_]+")
_TRAILING_QUESTION_RE = re.compile(r"\?\s*$")


@dataclass(frozen=True)
class ConversationTurn:
    """One message in a conversation. Order in the history carries recency."""
    role: str  # "user" or "assistant"
    content: str
    notebook_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationTurn":
        """Build a turn from a mapping, accepting notebook_id or notebookId."""
        notebook_id = data.get("notebook_id", data.get("notebookId"))
        return cls(
            role=str(data.get("role") or ""),
            content=str(data.get("content") or ""),
            notebook_id=notebook_id,
        )

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content, "notebook_id": self.notebook_id}


@dataclass
class NotebookRoutingOptions:
    """Caller hints for notebook routing."""
    mode: Optional[NotebookRoutingMode] = None
    notebook_id: Optional[str] = None
    candidate_notebook_ids: list[str] = field(default_factory=list)


@dataclass
class NotebookScore:
    """A ranked notebook candidate."""
    notebook_id: str
    score: float
    retrieved_turns: int

    def to_dict(self) -> dict:
        return {
            "notebook_id": self.notebook_id,
            "score": self.score,
            "retrieved_turns": self.retrieved_turns,
        }


@dataclass
class NotebookRoutingMetadata:
    """Which notebooks were considered and selected for a chat turn."""
    mode: NotebookRoutingMode
    requested_notebook_id: Optional[str]
    candidate_notebook_ids: list[str]
    selected_notebook_ids: list[str]
    notebook_scores: list[NotebookScore] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "requested_notebook_id": self.requested_notebook_id,
            "candidate_notebook_ids": list(self.candidate_notebook_ids),
            "selected_notebook_ids": list(self.selected_notebook_ids),
            "notebook_scores": [score.to_dict() for score in self.notebook_scores],
        }


@dataclass
class MergedContext:
    """Per-request context block and the turns/routing it was built from."""
    text: str
    recent_turns: list[ConversationTurn]
    retrieved_turns: list[ConversationTurn]
    routing: NotebookRoutingMetadata

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "recent_turns": [turn.to_dict() for turn in self.recent_turns],
            "retrieved_turns": [turn.to_dict() for turn in self.retrieved_turns],
            "routing": self.routing.to_dict(),
        }


# =============================================================================
# Tokenizing and clipping
# =============================================================================

def clip_context(text: str, max_chars: int = MAX_CONTEXT_CHARS) -> str:
    """
    Compact whitespace and hard-clip to max_chars, ending with "..." if cut.

    Idempotent: clipping an already clipped string returns it unchanged.
    """
    normalized = compact_whitespace(text or "")
    if len(normalized) <= max_chars:
        return normalized
    return f"{normalized[:max(0, max_chars - 3)]}..."


def tokenize_for_retrieval(text: str) -> set[str]:
    """Lower-case text and return its alphanumeric tokens longer than 2 chars."""
    normalized = compact_whitespace((text or "").lower())
    return {token for token in _TOKEN_RE.findall(normalized) if len(token) > 2}


def _overlap(query_tokens: set[str], tokens: set[str]) -> int:
    return sum(1 for token in query_tokens if token in tokens)


# =============================================================================
# Notebook stores
# =============================================================================

def as_turn(turn) -> ConversationTurn:
    """Accept a ConversationTurn or a mapping with role, content and notebook_id/notebookId."""
    if isinstance(turn, ConversationTurn):
        return turn
    return ConversationTurn.from_dict(turn)


def infer_notebook_id(turn: ConversationTurn) -> str:
    """Use the turn's own notebook tag if it has one, otherwise classify it."""
    turn = as_turn(turn)
    tag = turn.notebook_id
    if tag:
        return normalize_notebook_id(tag)
    return classify_notebook_id_from_text(turn.content)


def build_notebook_stores(history: Iterable[ConversationTurn]) -> dict[str, list[ConversationTurn]]:
    """
    Partition history into per-notebook buckets.

    Every turn lands in exactly one bucket; turns keep their encounter order
    and buckets are ordered by first appearance.
    """
    stores: dict[str, list[ConversationTurn]] = {}
    for turn in map(as_turn, history):
        stores.setdefault(infer_notebook_id(turn), []).append(turn)
    return stores


# =============================================================================
# Scoring and retrieval
# =============================================================================

def score_notebook_for_query(history: Sequence[ConversationTurn], query: str) -> float:
    """
    Score how well a notebook's latest turns cover the query tokens.

    Returns the overlap ratio against the last NOTEBOOK_SCORE_WINDOW turns.
    A query without tokens falls back to a density proxy so terse follow-ups
    still prefer notebooks with more history.
    """
    if not history:
        return 0.0
    query_tokens = tokenize_for_retrieval(query)
    if not query_tokens:
        return min(0.2, len(history) / 120)

    joined = " ".join(turn.content for turn in history[-NOTEBOOK_SCORE_WINDOW:])
    tokens = tokenize_for_retrieval(joined)
    if not tokens:
        return 0.0

    return _overlap(query_tokens, tokens) / len(query_tokens)


def _recent_window(history: Sequence[ConversationTurn], size: int) -> list[ConversationTurn]:
    return list(history[max(0, len(history) - size):])


def pick_retrieved_history(history: Sequence[ConversationTurn], query: str) -> list[ConversationTurn]:
    """
    Pick up to RETRIEVED_CONTEXT_TURNS older turns relevant to the query.

    Turns are scored by query-token overlap plus a small recency boost. Each
    match pulls in its neighbours for coherence, and the expanded set is cut
    back to its latest RETRIEVED_CONTEXT_TURNS indexes.

    Never empty for a non-empty history: a query with no usable tokens
    ("do it", "next") or no matches falls back to the latest turns.
    """
    if not history:
        return []

    query_tokens = tokenize_for_retrieval(query)
    if not query_tokens:
        return _recent_window(history, RETRIEVED_CONTEXT_TURNS)

    total = len(history)
    scored: list[tuple[int, float]] = []
    for idx, turn in enumerate(history):
        turn_tokens = tokenize_for_retrieval(turn.content)
        if not turn_tokens:
            scored.append((idx, 0.0))
            continue
        lexical = _overlap(query_tokens, turn_tokens) / max(len(query_tokens), 1)
        recency = ((idx + 1) / total) * 0.05
        scored.append((idx, lexical + recency))

    top_matches = sorted(
        (item for item in scored if item[1] > MIN_TURN_SCORE),
        key=lambda item: item[1],
        reverse=True,
    )[:RETRIEVED_CONTEXT_TURNS]

    if not top_matches:
        return _recent_window(history, RETRIEVED_CONTEXT_TURNS)

    expanded: set[int] = set()
    for idx, _ in top_matches:
        expanded.add(idx)
        if idx - 1 >= 0:
            expanded.add(idx - 1)
        if idx + 1 < total:
            expanded.add(idx + 1)

    # Keeps the latest indexes, which can drop an early strong match
    selected = sorted(expanded)[max(0, len(expanded) - RETRIEVED_CONTEXT_TURNS):]
    return [history[idx] for idx in selected]


# =============================================================================
# Notebook routing
# =============================================================================

def _dedupe(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    unique = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def resolve_notebook_routing(
    stores: dict[str, list[ConversationTurn]],
    latest_user_message: str,
    retrieval_query: str,
    options: Optional[NotebookRoutingOptions] = None,
) -> NotebookRoutingMetadata:
    """
    Select the notebook(s) to pull context from.

    Specific mode (an explicit notebook id, or mode="specific") pins the
    requested notebook regardless of score. Auto mode ranks candidates by

        0.8 * latest-message score
      + 0.2 * retrieval-query score
      + 0.25 if the classifier puts the latest message in that notebook
      + min(0.1, turns / 100)

    and keeps up to three above the threshold, falling back to the single
    best candidate.

    Args:
        stores: Notebook id -> turns, from build_notebook_stores
        latest_user_message: The message being answered
        retrieval_query: Latest message plus recent user turns
        options: Routing hints from the caller

    Returns:
        NotebookRoutingMetadata; selected_notebook_ids is never empty.
    """
    options = options or NotebookRoutingOptions()
    all_notebook_ids = list(stores.keys())
    requested = normalize_notebook_id(options.notebook_id) if options.notebook_id else None
    mode: NotebookRoutingMode = "specific" if requested or options.mode == "specific" else "auto"

    if not all_notebook_ids:
        fallback = [requested or DEFAULT_NOTEBOOK_ID]
        return NotebookRoutingMetadata(
            mode=mode,
            requested_notebook_id=requested,
            candidate_notebook_ids=list(fallback),
            selected_notebook_ids=list(fallback),
            notebook_scores=[],
        )

    requested_candidates = [normalize_notebook_id(value) for value in options.candidate_notebook_ids or []]
    if mode == "specific" and requested:
        candidates = [requested]
    elif requested_candidates:
        candidates = requested_candidates
    else:
        candidates = all_notebook_ids
    candidates = _dedupe(candidates)

    inferred_notebook = classify_notebook_id_from_text(latest_user_message)
    scored: list[NotebookScore] = []
    for notebook_id in candidates:
        notebook_history = stores.get(notebook_id, [])
        latest_score = score_notebook_for_query(notebook_history, latest_user_message)
        retrieval_score = score_notebook_for_query(notebook_history, retrieval_query or latest_user_message)
        classifier_boost = CLASSIFIER_AGREEMENT_BOOST if inferred_notebook == notebook_id else 0.0
        density = min(0.1, len(notebook_history) / 100)
        scored.append(NotebookScore(
            notebook_id=notebook_id,
            score=latest_score * 0.8 + retrieval_score * 0.2 + classifier_boost + density,
            retrieved_turns=len(notebook_history),
        ))

    if mode == "specific" and requested:
        logger.debug(f"Notebook routing pinned to '{requested}'")
        return NotebookRoutingMetadata(
            mode=mode,
            requested_notebook_id=requested,
            candidate_notebook_ids=candidates,
            selected_notebook_ids=[requested],
            notebook_scores=scored,
        )

    scored.sort(key=lambda item: item.score, reverse=True)
    selected = [
        item.notebook_id for item in scored if item.score > MIN_NOTEBOOK_SCORE
    ][:MAX_SELECTED_NOTEBOOKS]
    if not selected:
        selected = [scored[0].notebook_id if scored else DEFAULT_NOTEBOOK_ID]

    logger.debug(
        f"Notebook routing ({mode}): selected={selected} "
        f"scores={[(s.notebook_id, round(s.score, 3)) for s in scored]}"
    )
    return NotebookRoutingMetadata(
        mode=mode,
        requested_notebook_id=requested,
        candidate_notebook_ids=candidates,
        selected_notebook_ids=selected,
        notebook_scores=scored,
    )


# =============================================================================
# Context assembly
# =============================================================================

def find_last_assistant_question(history: Sequence[ConversationTurn]) -> Optional[ConversationTurn]:
    """Return the most recent assistant turn ending in a question mark."""
    for turn in reversed(history):
        if turn.role == "assistant" and _TRAILING_QUESTION_RE.search(turn.content or ""):
            return turn
    return None


def build_merged_context_block(
    history: Sequence[ConversationTurn],
    latest_user_message: str,
    avoidance_context: str = "",
    routing: Optional[NotebookRoutingOptions] = None,
) -> MergedContext:
    """
    Build the merged context block for a chat turn.

    The block always carries the last RECENT_CONTEXT_TURNS turns of the whole
    conversation, whatever the routing outcome. Retrieval only looks at turns
    older than each selected notebook's own recent window.

    Args:
        history: Full conversation so far, oldest first
        latest_user_message: The message being answered
        avoidance_context: Free-text avoidance summary (optional)
        routing: Notebook routing hints (optional)

    Returns:
        MergedContext with text, recent turns, retrieved turns and routing
    """
    history = [as_turn(turn) for turn in history]
    stores = build_notebook_stores(history)
    recent_turns = _recent_window(history, RECENT_CONTEXT_TURNS)

    recent_user_text = " ".join(
        turn.content for turn in [t for t in recent_turns if t.role == "user"][-3:]
    )
    retrieval_query = f"{latest_user_message or ''} {recent_user_text}".strip()

    routing_metadata = resolve_notebook_routing(
        stores=stores,
        latest_user_message=latest_user_message or "",
        retrieval_query=retrieval_query,
        options=routing,
    )

    retrieved: list[ConversationTurn] = []
    for notebook_id in routing_metadata.selected_notebook_ids:
        notebook_history = stores.get(notebook_id, [])
        older = notebook_history[:max(0, len(notebook_history) - RECENT_CONTEXT_TURNS)]
        retrieved.extend(pick_retrieved_history(older, retrieval_query))

    lines = ["## MERGED CONTEXT"]
    lines.append(
        f"Routing metadata: mode={routing_metadata.mode}; "
        f"selected={', '.join(routing_metadata.selected_notebook_ids)}; "
        f"candidates={', '.join(routing_metadata.candidate_notebook_ids)}"
    )

    last_question = find_last_assistant_question(history)
    if last_question:
        lines.append(f"Last assistant question: {clip_context(last_question.content, LAST_QUESTION_MAX_CHARS)}")

    lines.append("Recent conversation:")
    for turn in recent_turns:
        if not turn.content:
            continue
        lines.append(f"- {turn.role}: {clip_context(turn.content)}")

    if retrieved:
        lines.append("Retrieved prior context:")
        for turn in retrieved:
            lines.append(f"- {turn.role}: {clip_context(turn.content)}")

    if avoidance_context:
        lines.append("Avoidance context:")
        lines.append(clip_context(avoidance_context, AVOIDANCE_MAX_CHARS))

    return MergedContext(
        text="\n".join(lines),
        recent_turns=recent_turns,
        retrieved_turns=retrieved,
        routing=routing_metadata,
    )


def build_decomposition_rag_context(
    latest_user_message: str,
    recent_turns: Sequence[ConversationTurn],
    retrieved_turns: Sequence[ConversationTurn],
    routing: NotebookRoutingMetadata,
    max_chars: int = DECOMPOSITION_MAX_CHARS,
) -> str:
    """
    Build the compact context handed to the task decomposition tool call.

    Smaller and differently shaped than the merged block: the latest request,
    selected notebooks, the last 8 recent turns and all retrieved turns,
    clipped as a whole to max_chars.
    """
    lines = ["DECOMPOSITION RAG CONTEXT"]
    lines.append(f"Latest request: {clip_context(latest_user_message, 400)}")
    lines.append(f"Selected notebooks: {', '.join(routing.selected_notebook_ids) or DEFAULT_NOTEBOOK_ID}")

    if recent_turns:
        lines.append("Recent thread context:")
        for turn in list(recent_turns)[-8:]:
            lines.append(f"- {turn.role}: {clip_context(turn.content, 240)}")

    if retrieved_turns:
        lines.append("Retrieved notebook context:")
        for turn in retrieved_turns:
            lines.append(f"- {turn.role}: {clip_context(turn.content, 260)}")

    return clip_context("\n".join(lines), max_chars)
