"""Prompt construction for the task extraction oracle."""

from __future__ import annotations

from schemas.tasks import ConversationContext


TASK_EXTRACTION_INSTRUCTIONS = """
INSTRUCTIONS:
1. Identify all distinct software engineering tasks or action items that
   require coding, testing, deployment, or design work.
2. If the transcript is too vague or doesn't contain clear engineering tasks,
   ask for clarification.
3. If the transcript is NOT about software development work (a greeting, a
   personal reminder, an unrelated request), respond with ZERO tasks and a
   short explanation of why no work was created.
4. For each task, extract:
   - A clear, concise title (max 60 characters)
   - A detailed description
   - Priority level (low, medium, high, or urgent)
   - Relevant tags (e.g., bug, feature, implement, design, api, authentication)
   - Due date if mentioned (ISO format YYYY-MM-DD)
5. Keep the original product or domain wording ("User Service", "Driver
   Service", "trip", "wallet") that appears in the transcript. Correct obvious
   speech-to-text mistakes, but never invent features that were not mentioned.
6. The description must restate the key nouns and expectations from the
   transcript (no boilerplate text).
7. Use the previous conversation to resolve references such as "that bug" or
   answers to a question you asked earlier.

8. Return ONLY valid JSON in ONE of these formats:

IF TASKS ARE CLEAR:
{
  "tasks": [
    {
      "title": "Task title here",
      "description": "Detailed description here",
      "priority": "medium",
      "tags": ["tag1", "tag2"],
      "dueDate": "2025-11-30"
    }
  ]
}

IF CLARIFICATION IS NEEDED:
{
  "needsClarification": true,
  "clarificationQuestion": "Your specific question here",
  "tasks": []
}

IF THERE ARE NO SOFTWARE TASKS:
{
  "tasks": [],
  "message": "Explain briefly why no tasks were generated"
}

REFERENCE EXAMPLE:
Transcript: "On user service I need to create and cancel trips. On driver
service I should be able to accept or cancel trips."
Response:
{
  "tasks": [
    {
      "title": "User Service: create/cancel trips",
      "description": "Implement endpoints that let riders create a trip request and cancel it before it is accepted.",
      "priority": "high",
      "tags": ["api", "user-service", "trip"],
      "dueDate": null
    },
    {
      "title": "Driver Service: accept/cancel trips",
      "description": "Update the driver workflow so drivers can accept assigned trips and cancel them when necessary with a reason.",
      "priority": "high",
      "tags": ["driver-service", "workflow"],
      "dueDate": null
    }
  ]
}
"""


def format_history(history: ConversationContext) -> str:
    if not history:
        return ""
    lines = [f"{turn.role.value.upper()}: {turn.content}" for turn in history]
    return "\n\nPREVIOUS CONVERSATION:\n" + "\n".join(lines) + "\n"


def build_task_extraction_prompt(
    transcript: str, history: ConversationContext = ()
) -> str:
    """Compose the full oracle prompt for one transcript."""
    return (
        "You are a task extraction assistant. Analyze the following transcript "
        "and extract all tasks mentioned."
        f"{format_history(history)}\n"
        f'CURRENT TRANSCRIPT:\n"{transcript}"\n'
        f"{TASK_EXTRACTION_INSTRUCTIONS}\n"
        "RESPONSE (JSON ONLY):"
    )
