# File: autoscheduler/llm/prompt_builder.py
"""
Prompt construction for the task text parser.
"""

import datetime
import json
from typing import Optional

SYSTEM_PROMPT = (
    "You are a task parsing assistant. You turn one line of natural language "
    "into a structured task for a calendar. Use the provided 'now' and "
    "'timeZone' to interpret relative dates. Always respond with valid JSON only."
)

OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "duration_min": {"type": "integer", "minimum": 5, "maximum": 1440},
        "priority": {"type": "string", "enum": ["low", "medium", "high"]},
        "deadline": {"type": ["string", "null"]},
        "start": {"type": ["string", "null"]},
    },
    "required": ["title", "duration_min", "priority"],
}

RULES = """Extract the following fields:
1. title: a clear, concise, actionable title (required)
2. duration_min: estimated duration in minutes (use {default_duration} when not stated)
3. priority: 'low', 'medium' or 'high', inferred from words like "urgent", "ASAP", "important" (default 'medium')
4. deadline: YYYY-MM-DD or null; "today", "tomorrow" and weekday names resolve relative to now
5. start: ISO 8601 date-time in the user's time zone, ONLY when the text names a concrete start time, else null

Respond with ONLY a JSON object of this shape:
{schema}"""


def build_parse_prompt(
    text: str,
    now: datetime.datetime,
    time_zone: Optional[str] = None,
    default_duration_min: int = 60
) -> str:
    """
    Build the user prompt for one task line.

    Args:
        text: Raw user input
        now: Reference instant for relative dates
        time_zone: Label of the user's time zone
        default_duration_min: Duration to assume when the text names none

    Returns:
        Prompt string
    """
    context = {
        "text": text,
        "now": now.isoformat(),
        "timeZone": time_zone or "UTC",
    }
    rules = RULES.format(
        default_duration=default_duration_min,
        schema=json.dumps(OUTPUT_SCHEMA, indent=2),
    )
    return f"{json.dumps(context)}\n\n{rules}"
