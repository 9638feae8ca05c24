# File: tests/unit/test_llm_client.py
"""
Unit tests for the natural-language task parser.
"""

import json
import pytest
from datetime import date, datetime, timedelta
from unittest.mock import Mock, patch

import requests

from autoscheduler.llm.client import TaskTextParser, _extract_json, parsed_task_from_dict
from autoscheduler.llm.prompt_builder import build_parse_prompt
from autoscheduler.models import Priority

pytestmark = pytest.mark.unit


def _response(content):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"choices": [{"message": {"content": content}}]}
    return response


class TestExtractJson:
    """Pulling the JSON object out of model output."""

    def test_plain_object(self):
        assert _extract_json('{"title": "Gym"}') == {"title": "Gym"}

    def test_object_wrapped_in_prose(self):
        text = 'Here you go:\n```json\n{"title": "Gym", "duration_min": 60}\n```'
        assert _extract_json(text) == {"title": "Gym", "duration_min": 60}

    def test_no_object(self):
        assert _extract_json("I cannot help with that") is None
        assert _extract_json("") is None

    def test_unterminated_object(self):
        assert _extract_json('{"a": 1') is None


class TestParsedTaskFromDict:
    """Normalizing model output."""

    def test_full_payload(self):
        parsed = parsed_task_from_dict({
            "title": "  Call the bank ",
            "duration_min": 15,
            "priority": "HIGH",
            "deadline": "2026-10-21",
        }, "UTC")

        assert parsed.title == "Call the bank"
        assert parsed.duration_min == 15
        assert parsed.priority == Priority.HIGH
        assert parsed.deadline == date(2026, 10, 21)
        assert parsed.start is None

    @pytest.mark.parametrize("raw,expected", [
        (3, 5),
        (5000, 1440),
        ("45", 45),
        (None, 60),
        (True, 60),
        ("an hour", 60),
        (float("inf"), 60),
        ("1e999", 60),
        (float("nan"), 60),
    ])
    def test_duration_clamped_or_defaulted(self, raw, expected):
        parsed = parsed_task_from_dict({"title": "Gym", "duration_min": raw}, "UTC", 60)
        assert parsed.duration_min == expected

    def test_camel_case_keys(self):
        parsed = parsed_task_from_dict({
            "summary": "Gym",
            "durationMin": 90,
            "startDateTime": "2026-10-20T07:00:00Z",
        }, "UTC")
        assert parsed.title == "Gym"
        assert parsed.duration_min == 90
        assert parsed.start.hour == 7

    def test_unknown_priority_becomes_medium(self):
        assert parsed_task_from_dict({"title": "Gym", "priority": "urgent"}).priority == Priority.MEDIUM

    @pytest.mark.parametrize("deadline", ["next week", "2026-13-40", "21/10/2026", 20261021])
    def test_malformed_deadline_dropped(self, deadline):
        assert parsed_task_from_dict({"title": "Gym", "deadline": deadline}).deadline is None

    def test_naive_start_localized(self):
        parsed = parsed_task_from_dict({"title": "Gym", "start": "2026-10-20T14:00:00"}, "Europe/Amsterdam")
        assert parsed.start.utcoffset() == timedelta(hours=2)

    def test_unparseable_start_ignored(self):
        assert parsed_task_from_dict({"title": "Gym", "start": "after lunch"}, "UTC").start is None

    def test_missing_title(self):
        assert parsed_task_from_dict({"duration_min": 30}) is None
        assert parsed_task_from_dict({"title": "   "}) is None


class TestPrompt:
    """Prompt contents."""

    def test_prompt_carries_context(self):
        prompt = build_parse_prompt("gym tomorrow", datetime(2026, 10, 19, 8, 0), "Europe/Amsterdam", 45)
        context = json.loads(prompt.split("\n\n", 1)[0])

        assert context == {"text": "gym tomorrow", "now": "2026-10-19T08:00:00", "timeZone": "Europe/Amsterdam"}
        assert "use 45 when not stated" in prompt


class TestTaskTextParser:
    """HTTP behaviour of the parser."""

    @pytest.fixture
    def parser(self):
        return TaskTextParser(api_key="test-key", model_id="test-model", api_url="https://llm.test/chat")

    def test_disabled_without_key(self, at):
        parser = TaskTextParser(api_key=None)
        with patch("autoscheduler.llm.client.requests.post") as post:
            assert parser.parse("gym", at(8)) is None
        post.assert_not_called()
        assert parser.enabled is False

    def test_blank_text_skipped(self, parser, at):
        with patch("autoscheduler.llm.client.requests.post") as post:
            assert parser.parse("   ", at(8)) is None
        post.assert_not_called()

    def test_successful_parse(self, parser, at):
        content = json.dumps({"title": "Gym", "duration_min": 45, "priority": "low"})
        with patch("autoscheduler.llm.client.requests.post", return_value=_response(content)) as post:
            parsed = parser.parse("gym for 45 minutes", at(8), "UTC")

        assert parsed.title == "Gym"
        assert parsed.duration_min == 45
        assert parsed.priority == Priority.LOW

        _, kwargs = post.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert kwargs["json"]["model"] == "test-model"
        assert kwargs["timeout"] == parser.timeout

    def test_timeout_returns_none(self, parser, at):
        with patch("autoscheduler.llm.client.requests.post", side_effect=requests.exceptions.Timeout()):
            assert parser.parse("gym", at(8)) is None

    def test_http_error_returns_none(self, parser, at):
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("500")
        with patch("autoscheduler.llm.client.requests.post", return_value=response):
            assert parser.parse("gym", at(8)) is None

    def test_invalid_json_body_returns_none(self, parser, at):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("not json")
        with patch("autoscheduler.llm.client.requests.post", return_value=response):
            assert parser.parse("gym", at(8)) is None

    def test_no_choices_returns_none(self, parser, at):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = {"choices": []}
        with patch("autoscheduler.llm.client.requests.post", return_value=response):
            assert parser.parse("gym", at(8)) is None

    def test_unusable_content_returns_none(self, parser, at):
        with patch("autoscheduler.llm.client.requests.post", return_value=_response("no idea")):
            assert parser.parse("gym", at(8)) is None
