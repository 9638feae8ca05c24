# File: autoscheduler/llm/client.py
"""
Natural-language task parsing through the Groq chat-completions API.

The parser is an optional oracle: every failure path returns None and the
caller stores the text verbatim with the default duration.
"""

import json
import re
import datetime
from typing import Any, Dict, Optional

import pytz
import requests

from autoscheduler.core.config_manager import Config
from autoscheduler.llm.prompt_builder import SYSTEM_PROMPT, build_parse_prompt
from autoscheduler.models.api import ParsedTask
from autoscheduler.models.common import parse_iso_datetime
from autoscheduler.models.enums import Priority
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def _extract_json(llm_text: str) -> Optional[Dict[str, Any]]:
    """
    Extract the LAST valid JSON object from the text.

    Args:
        llm_text: Raw text response from LLM

    Returns:
        Parsed JSON dictionary or None if extraction fails
    """
    if not llm_text:
        logger.warning("Empty LLM text provided to _extract_json")
        return None

    json_candidates = list(re.finditer(r'\{[\s\S]*\}', llm_text))
    if not json_candidates:
        logger.error("No JSON-like blocks found in LLM response")
        return None

    last_block = json_candidates[-1].group(0)

    try:
        result = json.loads(last_block)
    except json.JSONDecodeError:
        logger.debug("Direct JSON parsing failed, trying unescape")
        try:
            result = json.loads(bytes(last_block, "utf-8").decode("unicode_escape"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.error("All JSON extraction attempts failed")
            return None

    return result if isinstance(result, dict) else None


def _clamp_duration(raw: Any, default_duration_min: int) -> int:
    if isinstance(raw, bool):
        return default_duration_min
    try:
        duration = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return default_duration_min
    return max(Config.MIN_TASK_MINUTES, min(Config.MAX_TASK_MINUTES, duration))


def _normalize_priority(raw: Any) -> Priority:
    try:
        return Priority(str(raw).strip().lower())
    except ValueError:
        return Priority.MEDIUM


def _parse_start(raw: Any, tz) -> Optional[datetime.datetime]:
    if not raw:
        return None
    start = parse_iso_datetime(str(raw))
    if start is None:
        logger.warning(f"Ignoring unparseable start {raw!r}")
        return None
    if start.tzinfo is None:
        start = tz.localize(start)
    return start


def parsed_task_from_dict(
    data: Dict[str, Any],
    time_zone: Optional[str] = None,
    default_duration_min: int = 60
) -> Optional[ParsedTask]:
    """
    Normalize the model's JSON into a ParsedTask.

    Missing durations fall back to the default, durations are clamped to the
    allowed task range, unknown priorities become medium and malformed
    deadlines are dropped. Returns None when there is no usable title.
    """
    title = data.get('title') or data.get('summary')
    if not isinstance(title, str) or not title.strip():
        logger.warning("Parsed task has no title")
        return None

    deadline = None
    raw_deadline = data.get('deadline')
    if isinstance(raw_deadline, str) and DATE_PATTERN.match(raw_deadline.strip()):
        try:
            deadline = datetime.date.fromisoformat(raw_deadline.strip())
        except ValueError:
            deadline = None
    elif raw_deadline:
        logger.warning(f"Invalid deadline format, ignoring: {raw_deadline!r}")

    tz = pytz.timezone(time_zone or Config.TARGET_TIMEZONE)
    return ParsedTask(
        title=title.strip(),
        duration_min=_clamp_duration(
            data.get('duration_min', data.get('durationMin')), default_duration_min
        ),
        priority=_normalize_priority(data.get('priority')),
        deadline=deadline,
        start=_parse_start(data.get('start') or data.get('startDateTime'), tz),
    )


class TaskTextParser:
    """Turns free text into a ParsedTask using a Groq-hosted model."""

    def __init__(
        self,
        api_key: Optional[str] = Config.GROQ_API_KEY,
        model_id: str = Config.MODEL_ID,
        api_url: str = Config.GROQ_API_URL,
        timeout: int = Config.REQUEST_TIMEOUT_SECONDS
    ):
        self.api_key = api_key
        self.model_id = model_id
        self.api_url = api_url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def parse(
        self,
        text: str,
        now: datetime.datetime,
        time_zone: Optional[str] = None,
        default_duration_min: int = 60
    ) -> Optional[ParsedTask]:
        """
        Parse one line of user input.

        Args:
            text: Raw task text
            now: Reference instant for relative dates
            time_zone: User time zone label
            default_duration_min: Duration when the text names none

        Returns:
            ParsedTask, or None when no key is configured or the call fails
        """
        if not self.enabled:
            logger.debug("No Groq API key configured; skipping parse")
            return None
        if not text or not text.strip():
            return None

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = {
            "model": self.model_id,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_parse_prompt(text, now, time_zone, default_duration_min)}
            ],
            "temperature": 0.1,
            "response_format": {"type": "json_object"},
        }

        try:
            logger.info(f"Parsing task text with model {self.model_id}")
            response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            logger.error("Groq API request timed out")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling Groq: {e}", exc_info=True)
            return None
        except ValueError as e:
            logger.error(f"Invalid response from Groq: {e}", exc_info=True)
            return None

        choices = data.get("choices") or []
        if not choices:
            logger.error("Groq API returned no choices")
            return None

        content = (choices[0].get("message") or {}).get("content")
        extracted = _extract_json(content or "")
        if not extracted:
            return None

        parsed = parsed_task_from_dict(extracted, time_zone, default_duration_min)
        if parsed:
            logger.info(f"Parsed task '{parsed.title}' ({parsed.duration_min} min, {parsed.priority.value})")
        return parsed
