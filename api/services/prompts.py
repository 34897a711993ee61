"""
Prompts and tool definitions for the Work-OS chat assistant.
"""

WORK_OS_PROMPT = """You are THANOS, a chief of staff and productivity architect for a consultant juggling client work and a personal task list.

## CRITICAL RULES
- If the user implies a state change (starting, finishing, moving, deferring a task), call the matching tool immediately.
- Never say "I will update that". Call the tool, then say "I have updated that".
- Terse follow-ups ("do it", "yes", "next") refer to the last assistant question and the merged context below.

## CORE CONCEPTS
- Active: the one thing happening right now
- Queued: the one thing happening next
- Backlog: everything else

## RESPONSE STRUCTURE
**Actions Taken** - what you executed
**Next Best Move** - one clear recommendation
**Pattern Detection** - productivity patterns or avoidance you noticed

## CLIENT CONTEXT
Stale clients (more than 2 days untouched) are a risk. Prefer small tasks that touch them.
"""

DECOMPOSE_TASK_TOOL_NAME = "decompose_task"

DECOMPOSE_TASK_TOOL = {
    "type": "function",
    "function": {
        "name": DECOMPOSE_TASK_TOOL_NAME,
        "description": (
            "Break a task into concrete subtasks. Mandatory first step when user asks to break down, "
            "plan, or sequence work, including follow-up planning turns."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Task text, title, or reference to decompose",
                },
                "max_subtasks": {
                    "type": "number",
                    "enum": [2, 3, 4, 5, 6],
                    "description": "Optional number of subtasks to return (default: 4)",
                },
                "rag_context": {
                    "type": "string",
                    "description": "Optional retrieved context from prior conversation for follow-up continuity",
                },
            },
            "required": ["query"],
        },
    },
}

CHAT_TOOLS = [DECOMPOSE_TASK_TOOL]
