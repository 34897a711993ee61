"""
Task domain classifier for Work-OS.

Tags a task or request as Work, Personal or Unknown. Used by the chat
orchestrator to label a turn, and by callers deciding whether a task belongs
on the client board or the personal list.

Derived from the notebook classifier so the two never disagree:
- work notebook -> WORK
- personal notebook -> PERSONAL
- anything else (general, custom notebooks, ties) -> UNKNOWN
"""
import logging
from enum import Enum
from typing import Optional

from api.services.ingestion_routing import (
    PERSONAL_NOTEBOOK_ID,
    WORK_NOTEBOOK_ID,
    classify_notebook_id_from_text,
    normalize_notebook_id,
)

logger = logging.getLogger(__name__)


class TaskDomain(Enum):
    """Domain a task belongs to."""
    WORK = "work"
    PERSONAL = "personal"
    UNKNOWN = "unknown"


def task_domain_for_notebook(notebook_id: Optional[str]) -> TaskDomain:
    """Map a notebook id onto a task domain."""
    normalized = normalize_notebook_id(notebook_id)
    if normalized == WORK_NOTEBOOK_ID:
        return TaskDomain.WORK
    if normalized == PERSONAL_NOTEBOOK_ID:
        return TaskDomain.PERSONAL
    return TaskDomain.UNKNOWN


def classify_task_domain(text: str) -> TaskDomain:
    """
    Classify free text (a task title or chat request) into a task domain.

    Args:
        text: Task title or message

    Returns:
        TaskDomain.WORK, TaskDomain.PERSONAL or TaskDomain.UNKNOWN
    """
    domain = task_domain_for_notebook(classify_notebook_id_from_text(text or ""))
    logger.debug(f"Task domain: {domain.value}")
    return domain
