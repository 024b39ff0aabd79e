"""
Claude-backed task parser and productivity analyzer.
Both raise their own error type on any failure; callers decide the fallback.
"""
import json
import logging
import os
from datetime import datetime

import anthropic
from dotenv import load_dotenv
from pydantic import ValidationError

from models import DailyAnalysis, Task, TaskDraft
from prompts import ANALYSIS_PROMPT, PARSE_PROMPT

load_dotenv()

logger = logging.getLogger(__name__)

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
MODEL = os.getenv("DAYLINE_MODEL", "claude-sonnet-4-5")


class ParserError(Exception):
    pass


class AnalyzerError(Exception):
    pass


def api_key_configured(api_key) -> bool:
    return bool(api_key) and api_key != "your-api-key-here"


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block, if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # ```json
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


class _ClaudeClient:
    """Shared plumbing: one prompt in, parsed JSON out."""

    error_class = Exception
    max_tokens = 1024

    def __init__(self, api_key: str | None = None, model: str = MODEL, client=None):
        self.api_key = api_key if api_key is not None else ANTHROPIC_API_KEY
        self.model = model
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def _ask_json(self, system_prompt: str, content: str):
        if self._client is None and not api_key_configured(self.api_key):
            raise self.error_class("API key not configured")
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIError as e:
            raise self.error_class(f"API error: {e}") from e

        if not response.content:
            raise self.error_class("Empty response from model")
        ai_text = getattr(response.content[0], "text", None)
        if not isinstance(ai_text, str):
            raise self.error_class("Model response does not start with a text block")
        logger.debug("Claude response: %s", ai_text)

        try:
            return json.loads(strip_code_fence(ai_text))
        except json.JSONDecodeError as e:
            raise self.error_class("Failed to parse AI response") from e


class TaskParser(_ClaudeClient):
    error_class = ParserError

    async def parse(self, text: str, today: str) -> list[TaskDraft]:
        """Turn free text into drafts. Drafts without a date get today."""
        day_name = datetime.strptime(today, "%Y-%m-%d").strftime("%A")
        system_prompt = PARSE_PROMPT.format(today=today, day_name=day_name)
        parsed = await self._ask_json(system_prompt, text)

        items = parsed if isinstance(parsed, list) else [parsed]
        drafts = []
        try:
            for item in items:
                if not isinstance(item, dict):
                    raise ParserError(f"Unexpected item in AI response: {item!r}")
                item = dict(item)
                if not item.get("date"):
                    item["date"] = today
                drafts.append(TaskDraft.model_validate(item))
        except ValidationError as e:
            raise ParserError(f"Invalid task in AI response: {e}") from e
        return drafts


class ProductivityAnalyzer(_ClaudeClient):
    error_class = AnalyzerError

    async def analyze(self, tasks: list[Task], day: str) -> DailyAnalysis:
        task_summary = [
            {
                "title": task.title,
                "category": task.category,
                "status": task.status.value,
                "duration": task.duration_minutes,
                "priority": task.priority.value,
            }
            for task in tasks
        ]
        system_prompt = ANALYSIS_PROMPT.format(day=day, tasks=json.dumps(task_summary, ensure_ascii=False))
        parsed = await self._ask_json(system_prompt, f"Analyze my day {day}.")

        if not isinstance(parsed, dict):
            raise AnalyzerError("Analysis response is not an object")
        try:
            return DailyAnalysis.model_validate({**parsed, "date": day})
        except ValidationError as e:
            raise AnalyzerError(f"Invalid analysis in AI response: {e}") from e
