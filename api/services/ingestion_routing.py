"""
Ingestion routing for Work-OS.

Assigns incoming content (chat turns, Telegram messages, Google Drive
documents) to a notebook - a topical bucket of conversation used by the
chat context builder to partition history.

Classification is keyword based:
- **work**: client/project/delivery vocabulary
- **personal**: home/family/errand vocabulary
- **general**: no signal, or a tie between the two
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

IngestionSource = Literal["chat", "google_drive", "telegram", "assistant"]

DEFAULT_NOTEBOOK_ID = "general"
PERSONAL_NOTEBOOK_ID = "personal"
WORK_NOTEBOOK_ID = "work"

WORK_HINTS = (
    "client", "clients", "project", "projects", "milestone", "milestones",
    "deliverable", "deliverables", "implementation", "rollout", "status",
    "backlog", "triage", "citrix", "ehr", "sow", "proposal",
)

PERSONAL_HINTS = (
    "personal", "home", "family", "kids", "doctor", "dentist", "grocery",
    "shopping", "vacation", "trip", "todoist", "house",
)

# Metadata fields folded into the classified text, per source
TELEGRAM_METADATA_FIELDS = ("chatTitle", "channelTitle", "chatType", "senderName", "tags", "topic")
GOOGLE_DRIVE_METADATA_FIELDS = ("fileName", "title", "path", "folder", "owner")

_WHITESPACE_RE = re.compile(r"\s+")
_NOTEBOOK_ID_INVALID_RE = re.compile(r"[^a-z0-9_-]+")


@dataclass
class NotebookClassification:
    """Result of keyword classification."""
    notebook_id: str
    confidence: float
    reason: str


@dataclass
class IngestionRouting:
    """How a notebook was chosen for a piece of content."""
    notebook_id: str
    classifier: IngestionSource
    confidence: float
    explicit: bool
    reason: str

    def to_dict(self) -> dict:
        return {
            "notebook_id": self.notebook_id,
            "classifier": self.classifier,
            "confidence": self.confidence,
            "explicit": self.explicit,
            "reason": self.reason,
        }


@dataclass
class ResolvedIngestionRoute:
    """Notebook, source and annotated metadata for ingested content."""
    notebook_id: str
    source: IngestionSource
    routing: IngestionRouting
    source_metadata: dict[str, Any] = field(default_factory=dict)


def compact_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and strip the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_notebook_id(value: Optional[str]) -> str:
    """
    Normalize a notebook id into a slug.

    Never fails: None or blank input becomes DEFAULT_NOTEBOOK_ID. Runs of
    other characters collapse to a single "-", so "Ops Notes" is "ops-notes".
    """
    text = compact_whitespace(str(value or "").lower())
    normalized = _NOTEBOOK_ID_INVALID_RE.sub("-", text)
    return normalized or DEFAULT_NOTEBOOK_ID


def normalize_source(value: Optional[str]) -> IngestionSource:
    """Map free-form source names onto the known ingestion sources."""
    normalized = compact_whitespace(str(value or "").lower())
    if normalized == "telegram":
        return "telegram"
    if normalized in ("google_drive", "gdrive", "google-drive"):
        return "google_drive"
    if normalized == "assistant":
        return "assistant"
    return "chat"


def _hint_score(text: str, hints: tuple[str, ...]) -> int:
    return sum(1 for hint in hints if hint in text)


def classify_notebook_from_text(content: str) -> NotebookClassification:
    """
    Classify text into a notebook by counting work and personal hints.

    Hints are matched as substrings, so "projects" also counts "project".

    Args:
        content: Free text to classify

    Returns:
        NotebookClassification with notebook id, confidence (0-0.99) and reason
    """
    text = compact_whitespace((content or "").lower())
    if not text:
        return NotebookClassification(DEFAULT_NOTEBOOK_ID, 0.8, "empty_default_general")

    work_hits = _hint_score(text, WORK_HINTS)
    personal_hits = _hint_score(text, PERSONAL_HINTS)
    total_hits = work_hits + personal_hits

    if total_hits == 0:
        return NotebookClassification(DEFAULT_NOTEBOOK_ID, 0.8, "no_hints_default_general")

    if work_hits == personal_hits:
        # Conflicting signal
        return NotebookClassification(DEFAULT_NOTEBOOK_ID, 0.45, "hint_tie_default_general")

    notebook_id = WORK_NOTEBOOK_ID if work_hits > personal_hits else PERSONAL_NOTEBOOK_ID
    strength = abs(work_hits - personal_hits) / max(total_hits, 1)
    base = min(0.9, 0.55 + total_hits * 0.08)
    confidence = max(0.0, min(0.99, base + strength * 0.25))
    reason = "work_hints" if notebook_id == WORK_NOTEBOOK_ID else "personal_hints"

    return NotebookClassification(notebook_id, confidence, reason)


def classify_notebook_id_from_text(content: str) -> str:
    """Classify text and return only the notebook id."""
    return classify_notebook_from_text(content).notebook_id


def _metadata_notebook(metadata: dict[str, Any]) -> Optional[str]:
    value = metadata.get("notebookId")
    if not isinstance(value, str):
        value = metadata.get("notebookKey")
    if isinstance(value, str) and value.strip():
        return value
    return None


def _metadata_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value)
    return str(value)


def _classify_with_metadata(
    content: str,
    metadata: dict[str, Any],
    fields: tuple[str, ...],
    prefix: str,
) -> NotebookClassification:
    pinned = _metadata_notebook(metadata)
    if pinned:
        return NotebookClassification(normalize_notebook_id(pinned), 0.99, "metadata_notebook")

    parts = [_metadata_text(metadata[name]) for name in fields if metadata.get(name)]
    metadata_text = compact_whitespace(" ".join(parts).lower())
    classified = classify_notebook_from_text(compact_whitespace(f"{content} {metadata_text}"))
    classified.reason = f"{prefix}_{classified.reason}"
    return classified


def classify_telegram_notebook(content: str, metadata: dict[str, Any]) -> NotebookClassification:
    """Classify a Telegram message using its text plus chat metadata."""
    return _classify_with_metadata(content, metadata, TELEGRAM_METADATA_FIELDS, "telegram")


def classify_google_drive_notebook(content: str, metadata: dict[str, Any]) -> NotebookClassification:
    """Classify a Google Drive document using its text plus file metadata."""
    return _classify_with_metadata(content, metadata, GOOGLE_DRIVE_METADATA_FIELDS, "google_drive")


def resolve_ingestion_route(
    content: str,
    source: Optional[str] = None,
    notebook_id: Optional[str] = None,
    source_metadata: Optional[dict[str, Any]] = None,
) -> ResolvedIngestionRoute:
    """
    Decide which notebook a piece of ingested content belongs to.

    An explicit notebook id always wins (confidence 1.0). Otherwise the
    source-specific classifier runs.

    Args:
        content: Text being ingested
        source: Source name (chat, telegram, google_drive, assistant)
        notebook_id: Caller-pinned notebook id, if any
        source_metadata: Source-specific metadata (chat title, file name, ...)

    Returns:
        ResolvedIngestionRoute; its source_metadata is a copy of the input
        annotated with "source" and "routing".
    """
    resolved_source = normalize_source(source)
    metadata = dict(source_metadata) if isinstance(source_metadata, dict) else {}

    if resolved_source == "telegram":
        classified = classify_telegram_notebook(content, metadata)
    elif resolved_source == "google_drive":
        classified = classify_google_drive_notebook(content, metadata)
    else:
        classified = classify_notebook_from_text(content)

    explicit_id = normalize_notebook_id(notebook_id) if notebook_id else ""
    explicit = bool(explicit_id)

    routing = IngestionRouting(
        notebook_id=explicit_id or classified.notebook_id,
        classifier=resolved_source,
        confidence=1.0 if explicit else classified.confidence,
        explicit=explicit,
        reason="explicit_notebook" if explicit else classified.reason,
    )
    logger.debug(
        f"Ingestion route: source={resolved_source} notebook={routing.notebook_id} "
        f"reason={routing.reason} confidence={routing.confidence:.2f}"
    )

    return ResolvedIngestionRoute(
        notebook_id=routing.notebook_id,
        source=resolved_source,
        routing=routing,
        source_metadata={**metadata, "source": resolved_source, "routing": routing.to_dict()},
    )
