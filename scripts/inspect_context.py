#!/usr/bin/env python3
"""
Inspect the merged chat context for a saved conversation.

Reads a JSON file holding a list of turns ({"role", "content", "notebookId"})
and prints the context block, routing metadata and whether the turn would be
forced into task decomposition.

Usage:
    # Auto routing
    python scripts/inspect_context.py history.json --message "do it"

    # Pin a notebook
    python scripts/inspect_context.py history.json --message "what did we decide?" --notebook work

    # Restrict auto routing to candidates, print JSON
    python scripts/inspect_context.py history.json --message "status?" --candidates work personal --json
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import json
import logging

from api.services.chat_context import ConversationTurn, NotebookRoutingOptions
from api.services.chat_orchestrator import ChatOrchestrator

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


def load_history(path: Path) -> list[ConversationTurn]:
    """Load conversation turns from a JSON file."""
    data = json.loads(path.read_text())
    if isinstance(data, dict):
        data = data.get("history", data.get("messages", []))
    return [ConversationTurn.from_dict(item) for item in data if isinstance(item, dict)]


def inspect_context(
    history_path: Path,
    message: str,
    notebook_id: str | None = None,
    candidates: list[str] | None = None,
    avoidance: str = "",
    as_json: bool = False,
) -> None:
    history = load_history(history_path)
    logger.info(f"Loaded {len(history)} turns from {history_path}")

    routing = NotebookRoutingOptions(
        mode="specific" if notebook_id else "auto",
        notebook_id=notebook_id,
        candidate_notebook_ids=candidates or [],
    )
    plan = ChatOrchestrator().prepare_turn(history, message, avoidance, routing)

    if as_json:
        print(json.dumps(plan.to_dict(), indent=2))
        return

    print(plan.context.text)
    print()
    print("Notebook scores:")
    for score in plan.context.routing.notebook_scores:
        print(f"  {score.notebook_id:<20} {score.score:.3f}  ({score.retrieved_turns} turns)")
    print(f"Task domain: {plan.task_domain.value}")
    print(f"Force decomposition: {plan.force_decomposition}")
    if plan.decomposition_context:
        print()
        print(plan.decomposition_context)


def main():
    parser = argparse.ArgumentParser(description='Inspect the merged chat context for a conversation')
    parser.add_argument('history', type=Path, help='JSON file with conversation turns')
    parser.add_argument('--message', required=True, help='Latest user message')
    parser.add_argument('--notebook', help='Pin routing to this notebook')
    parser.add_argument('--candidates', nargs='+', help='Candidate notebooks for auto routing')
    parser.add_argument('--avoidance', default='', help='Avoidance summary text')
    parser.add_argument('--json', action='store_true', help='Print the full plan as JSON')

    args = parser.parse_args()

    inspect_context(
        history_path=args.history,
        message=args.message,
        notebook_id=args.notebook,
        candidates=args.candidates,
        avoidance=args.avoidance,
        as_json=args.json,
    )


if __name__ == '__main__':
    main()
