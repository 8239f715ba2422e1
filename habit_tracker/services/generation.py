"""Schedule generation through the OpenAI chat completions API."""

import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Protocol
from uuid import uuid4

from fastapi import Request
from openai import AsyncOpenAI, OpenAIError

from ..config import GENERATION_TIMEOUT_SECONDS, OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL
from ..errors import GenerationError, GenerationParseError
from ..schemas.schedule import DailyTask, GeneratedSchedule, ProgressSnapshot

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert habit formation coach and schedule optimizer. You help users "
    "create realistic, achievable habit schedules and adapt them based on their progress."
)

DEFAULT_REASONING = "Schedule generated based on habit formation principles"
DEFAULT_RECOMMENDATIONS = ["Stay consistent", "Track your progress", "Be patient with yourself"]
DEFAULT_TASK_DESCRIPTION = "Spend a few focused minutes on your habit"
DEFAULT_PRIORITY = 3

OUTPUT_FORMAT = """OUTPUT FORMAT (JSON only):
{{
  "tasks": [
    {{
      "id": "unique-id",
      "date": "YYYY-MM-DD",
      "task_description": "Specific task description",
      "is_completed": false,
      "priority": 1-5
    }}
  ],
  "reasoning": "Brief explanation of the {kind} strategy",
  "recommendations": [{tips}]
}}"""


class ScheduleGenerator(Protocol):
    async def generate_schedule(
        self,
        habit_name: str,
        user_history: Optional[str],
        start_date: date,
        end_date: date,
    ) -> GeneratedSchedule:
        ...

    async def reschedule_tasks(
        self,
        habit_name: str,
        user_history: Optional[str],
        start_date: date,
        end_date: date,
        current_progress: ProgressSnapshot,
    ) -> GeneratedSchedule:
        ...


def calculate_days_between(start_date: date, end_date: date) -> int:
    """Number of calendar days in the range, both ends included."""
    return (end_date - start_date).days + 1


def build_schedule_prompt(
    habit_name: str,
    user_history: Optional[str],
    start_date: date,
    end_date: date,
) -> str:
    total_days = calculate_days_between(start_date, end_date)
    lines = [
        "Create a personalized habit schedule for the following:",
        "",
        f"HABIT: {habit_name}",
        f"DURATION: {total_days} days ({start_date.isoformat()} to {end_date.isoformat()})",
    ]
    if user_history:
        lines.append(f"USER HISTORY: {user_history}")
    lines += [
        "",
        "REQUIREMENTS:",
        f"1. Create {total_days} daily tasks that progressively build the habit, one per date",
        "2. Start with easy, achievable tasks and gradually increase difficulty",
        "3. Consider the user's history and any mentioned challenges",
        "4. Make tasks specific, measurable, and time-bound",
        "5. Include variety to maintain engagement",
        "6. Account for potential setbacks and provide flexibility",
        "",
        OUTPUT_FORMAT.format(kind="schedule", tips='"Tip 1", "Tip 2", "Tip 3"'),
        "",
        "Generate the schedule now:",
    ]
    return "\n".join(lines)


def build_reschedule_prompt(
    habit_name: str,
    user_history: Optional[str],
    start_date: date,
    end_date: date,
    current_progress: ProgressSnapshot,
) -> str:
    total_days = calculate_days_between(start_date, end_date)
    total_tasks = current_progress.total_tasks or total_days
    missed = ", ".join(d.isoformat() for d in current_progress.missed_dates) or "None"
    lines = [
        "Reschedule the remaining habit tasks based on current progress:",
        "",
        f"HABIT: {habit_name}",
        f"ORIGINAL DURATION: {total_days} days ({start_date.isoformat()} to {end_date.isoformat()})",
        f"CURRENT PROGRESS: {current_progress.completed_tasks}/{total_tasks} tasks completed",
        f"MISSED DATES: {missed}",
    ]
    if user_history:
        lines.append(f"USER HISTORY: {user_history}")
    lines += [
        "",
        "REQUIREMENTS:",
        "1. Redistribute remaining tasks across the remaining days",
        "2. Maintain the progressive difficulty curve",
        "3. Account for the user's current progress and missed days",
        "4. Adjust task difficulty based on performance",
        "5. Provide encouragement and realistic expectations",
        "6. Don't overload any single day",
        "",
        OUTPUT_FORMAT.format(
            kind="rescheduling",
            tips='"Encouragement tip 1", "Strategy tip 2", "Motivation tip 3"',
        ),
        "",
        "Generate the rescheduled plan now:",
    ]
    return "\n".join(lines)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Find a JSON object in free-form model output.

    Tries the whole text first, then every ``{`` in turn. An object with a
    ``tasks`` key wins over one without.
    """
    try:
        payload = json.loads(text)
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        return payload

    decoder = json.JSONDecoder()
    fallback = None
    position = text.find("{")
    while position != -1:
        try:
            candidate, _ = decoder.raw_decode(text, position)
        except ValueError:
            candidate = None
        if isinstance(candidate, dict):
            if "tasks" in candidate:
                return candidate
            if fallback is None:
                fallback = candidate
        position = text.find("{", position + 1)
    return fallback


def _parse_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _coerce_priority(value: Any) -> int:
    try:
        priority = int(value)
    except (TypeError, ValueError):
        return DEFAULT_PRIORITY
    return min(max(priority, 1), 5)


def _coerce_recommendations(value: Any) -> List[str]:
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    if isinstance(value, list):
        tips = [str(item).strip() for item in value if str(item).strip()]
        if tips:
            return tips
    return list(DEFAULT_RECOMMENDATIONS)


def parse_schedule_response(text: str, start_date: date, end_date: date) -> GeneratedSchedule:
    """Decode model output into a schedule, filling gaps with defaults.

    Raises GenerationParseError only when there is no JSON object or it has
    no ``tasks`` array. Tasks without a date inside the range are dropped.
    """
    payload = extract_json_object(text or "")
    if payload is None:
        logger.error("No JSON found in generated text: %r", (text or "")[:500])
        raise GenerationParseError("No JSON found in generated text")

    raw_tasks = payload.get("tasks")
    if not isinstance(raw_tasks, list):
        raise GenerationParseError("Invalid response structure: tasks array missing")

    tasks = []
    seen_ids = set()
    for index, raw in enumerate(raw_tasks):
        if not isinstance(raw, dict):
            logger.warning("Dropping generated task %d: not an object", index)
            continue
        task_date = _parse_date(raw.get("date"))
        if task_date is None or not start_date <= task_date <= end_date:
            logger.warning("Dropping generated task %d: date %r outside schedule", index, raw.get("date"))
            continue

        task_id = str(raw.get("id") or "").strip()
        # Models like to echo the "unique-id" placeholder for every task
        if not task_id or task_id in seen_ids:
            task_id = str(uuid4())
        seen_ids.add(task_id)

        description = str(raw.get("task_description") or raw.get("description") or "").strip()
        tasks.append(DailyTask(
            id=task_id,
            date=task_date,
            task_description=description or DEFAULT_TASK_DESCRIPTION,
            is_completed=raw.get("is_completed") is True,
            priority=_coerce_priority(raw.get("priority", DEFAULT_PRIORITY)),
        ))

    tasks.sort(key=lambda task: task.date)

    reasoning = payload.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = DEFAULT_REASONING

    return GeneratedSchedule(
        tasks=tasks,
        reasoning=reasoning.strip(),
        recommendations=_coerce_recommendations(payload.get("recommendations")),
    )


class OpenAIScheduleGenerator:
    """Generates and reshuffles daily tasks with a chat completion model."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = OPENAI_MODEL,
        api_key: str = OPENAI_API_KEY,
        base_url: Optional[str] = OPENAI_BASE_URL,
        timeout: float = GENERATION_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.model = model
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use so the API can start without a key configured
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def _complete(self, prompt: str) -> str:
        logger.info("[generation] model=%s prompt_chars=%d", self.model, len(prompt))
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=2000,
                temperature=0.7,
            )
        except OpenAIError as exc:
            logger.error("[generation] OpenAI API call failed: %s", exc)
            raise GenerationError(f"OpenAI API call failed: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate_schedule(
        self,
        habit_name: str,
        user_history: Optional[str],
        start_date: date,
        end_date: date,
    ) -> GeneratedSchedule:
        prompt = build_schedule_prompt(habit_name, user_history, start_date, end_date)
        text = await self._complete(prompt)
        return parse_schedule_response(text, start_date, end_date)

    async def reschedule_tasks(
        self,
        habit_name: str,
        user_history: Optional[str],
        start_date: date,
        end_date: date,
        current_progress: ProgressSnapshot,
    ) -> GeneratedSchedule:
        prompt = build_reschedule_prompt(
            habit_name, user_history, start_date, end_date, current_progress
        )
        text = await self._complete(prompt)
        return parse_schedule_response(text, start_date, end_date)


def get_generator(request: Request) -> ScheduleGenerator:
    """Dependency to get the application's schedule generator."""
    return request.app.state.generator
