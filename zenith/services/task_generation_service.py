"""Task generation service: personalised daily tasks from the LLM collaborator.

Generation is gated to once per calendar day by the user's preferences and
allows at most one request in flight. A response that cannot be turned into
tasks is a soft failure: a fixed set of fallback tasks is returned instead.
Only collaborator errors (network, HTTP, missing key) propagate, as
LLMServiceError, and they leave the preferences untouched.
"""

import json
import logging
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from zenith.core.clock import Clock, days_ago, utc_now
from zenith.core.config import Constants, settings
from zenith.core.errors import GenerationInProgressError
from zenith.core.events import EngineEvent, EventHub
from zenith.core.logging import span
from zenith.domain.preferences import UserPreferences
from zenith.domain.task import Task, TaskCategory, TaskPriority
from zenith.models.service_models import GenerationStatus
from zenith.services.persistence_store import PersistenceStore


logger = logging.getLogger(__name__)


TASK_SYSTEM_PROMPT = (
    "You are a helpful personal productivity assistant that generates daily tasks. "
    "Always respond with valid JSON matching the requested format."
)

COACH_SYSTEM_PROMPT = "You are a supportive personal growth coach. Your name is Zenith."

_JSON_FORMAT = """Format your response as a JSON array with this structure:
[
  {
    "title": "Task title",
    "description": "Detailed description",
    "priority": "Low/Medium/High/Critical",
    "category": "Work/Health/Personal/Learning/Social/Finance/Other"
  }
]"""

_LOW_RATE_HINT = "Adaptation: User has low completion rate. Focus on simpler, shorter tasks to build momentum."
_HIGH_RATE_HINT = "Adaptation: User has high completion rate. Consider slightly more challenging tasks."


class CompletionProvider(Protocol):
    """Anything that can turn a prompt pair into completion text."""

    async def generate_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str: ...


class GeneratedTask(BaseModel):
    """One entry of the model's JSON array, before enum mapping."""

    title: str
    description: str = ""
    priority: str
    category: str
    estimated_minutes: int | None = Field(default=None, alias="estimatedMinutes")

    def to_task(self) -> Task | None:
        """Map onto a Task, or None when the title is blank or an enum value is unknown."""
        title = self.title.strip()
        if not title:
            return None
        try:
            priority = TaskPriority(self.priority)
            category = TaskCategory(self.category)
        except ValueError:
            return None
        return Task(title=title, description=self.description, priority=priority, category=category)


def fallback_tasks() -> list[Task]:
    """Generic tasks used when a response cannot be parsed."""
    return [
        Task(
            title="Morning Reflection",
            description="Take 5 minutes to plan your day",
            priority=TaskPriority.MEDIUM,
            category=TaskCategory.PERSONAL,
        ),
        Task(
            title="Healthy Snack",
            description="Choose a nutritious snack for energy",
            priority=TaskPriority.LOW,
            category=TaskCategory.HEALTH,
        ),
        Task(
            title="Quick Learning",
            description="Read or watch something educational for 15 minutes",
            priority=TaskPriority.MEDIUM,
            category=TaskCategory.LEARNING,
        ),
    ]


def extract_json_array(text: str) -> str:
    """Return the substring from the first '[' to the last ']'.

    Text without a bracket pair is returned unchanged.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end < start:
        return text
    return text[start : end + 1]


def parse_generated_tasks(text: str) -> list[Task]:
    """Decode tasks from completion text, dropping entries with unknown enum values.

    Returns an empty list when nothing usable could be decoded.
    """
    candidate = extract_json_array(text)
    try:
        raw = json.loads(candidate)
    except ValueError:
        logger.warning("Generated text is not valid JSON", extra={"length": len(text)})
        return []
    if not isinstance(raw, list):
        return []

    tasks = []
    for entry in raw:
        try:
            generated = GeneratedTask.model_validate(entry)
        except ValidationError:
            logger.debug("Skipping malformed generated task")
            continue
        task = generated.to_task()
        if task is None:
            logger.debug(
                "Skipping generated task with blank title or unknown enum value",
                extra={"title": generated.title, "priority": generated.priority, "category": generated.category},
            )
            continue
        tasks.append(task)
    return tasks


def completion_rate(tasks: list[Task]) -> float:
    """Share of tasks completed, 0.5 when there is no history."""
    if not tasks:
        return Constants.NEUTRAL_COMPLETION_RATE
    return sum(1 for task in tasks if task.is_completed) / len(tasks)


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def recent_tasks_summary(completed_tasks: list[Task]) -> str:
    recent = completed_tasks[-Constants.RECENT_TASK_CONTEXT_LIMIT :]
    if not recent:
        return "No recent tasks completed."
    return "\n".join(f"- {task.title} ({task.category.value})" for task in recent)


def build_task_prompt(
    preferences: UserPreferences,
    current_streak: int,
    completed_tasks: list[Task],
    *,
    rate: float | None = None,
) -> str:
    """User prompt describing the profile, recent history, and expected JSON shape."""
    lines = [
        f"Generate {preferences.daily_task_count} personalized daily tasks "
        "for a user with the following profile:",
        "",
        "User Preferences:",
        f"- Preferred categories: {preferences.preferred_categories_string}",
        f"- Difficulty level: {preferences.preferred_difficulty.value}",
        f"- Time availability: {preferences.time_availability.value}",
        f"- Focus areas: {', '.join(preferences.focus_areas)}",
        f"- Include routine tasks: {_yes_no(preferences.include_routine_tasks)}",
        f"- Include challenges: {_yes_no(preferences.include_challenges)}",
        f"- Morning preference: {_yes_no(preferences.prefer_morning_tasks)}",
        f"- Max duration per task: {preferences.max_task_duration} minutes",
        f"- Current Streak: {current_streak} days",
    ]
    if preferences.avoid_categories:
        lines.append(f"- Avoid categories: {', '.join(c.value for c in preferences.avoid_categories)}")

    lines += ["", "Recently Completed Tasks:", recent_tasks_summary(completed_tasks)]

    if rate is not None:
        if rate < Constants.LOW_COMPLETION_RATE:
            lines += ["", _LOW_RATE_HINT]
        elif rate > Constants.HIGH_COMPLETION_RATE:
            lines += ["", _HIGH_RATE_HINT]

    lines += [
        "",
        "Please generate tasks that are:",
        "1. Achievable within the available time",
        "2. Appropriate for the difficulty level",
        "3. Varied and not repetitive of recent tasks",
        "4. Focused on the specified areas",
        "5. Motivating to continue the streak",
        "",
        _JSON_FORMAT,
    ]
    return "\n".join(lines)


def build_motivation_prompt(streak: int, level: int) -> str:
    return "\n".join(
        [
            "Generate a short, encouraging message for a user who has:",
            f"- Current streak: {streak} days",
            f"- Current level: {level}",
            "",
            "The message should be motivational, personal, and under 50 words.",
            "Respond with just the message text, no quotes or extra formatting.",
        ]
    )


class TaskGenerationService:
    """Coordinates prompt construction, the LLM call, parsing, and fallback."""

    def __init__(
        self,
        llm: CompletionProvider,
        persistence: PersistenceStore,
        *,
        events: EventHub | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.llm = llm
        self.persistence = persistence
        self.events = events or EventHub()
        self.clock = clock
        self.is_generating = False
        self.last_generated_tasks: list[Task] = []

    async def generate(
        self,
        preferences: UserPreferences,
        current_streak: int,
        recent_tasks: list[Task],
    ) -> list[Task]:
        """Generate today's tasks.

        Args:
            preferences: User preferences; updated in place and persisted on success
            current_streak: Streak length included in the prompt
            recent_tasks: Task history; completed ones give context, tasks from
                the last 7 days drive the adaptive difficulty hint

        Returns:
            Generated tasks, the fallback set when the response was unusable,
            or an empty list when today's generation already happened

        Raises:
            GenerationInProgressError: If another generation is in flight
            LLMServiceError: If the collaborator fails
        """
        if self.is_generating:
            raise GenerationInProgressError("A task generation is already in progress")

        now = self.clock()
        if not preferences.should_generate_today(now):
            logger.info("Tasks already generated today")
            return []

        self.is_generating = True
        try:
            with span("task_generation.generate"):
                window_start = days_ago(now, Constants.RECENT_HISTORY_DAYS)
                rate = completion_rate([task for task in recent_tasks if task.created_date >= window_start])
                completed = [task for task in recent_tasks if task.is_completed]
                prompt = build_task_prompt(preferences, current_streak, completed, rate=rate)

                text = await self.llm.generate_completion(
                    TASK_SYSTEM_PROMPT,
                    prompt,
                    max_tokens=settings.llm_max_tokens,
                    temperature=settings.llm_temperature,
                )

                tasks = parse_generated_tasks(text)
                used_fallback = not tasks
                if used_fallback:
                    logger.warning("Using fallback tasks, generated response could not be parsed")
                    tasks = fallback_tasks()
                for task in tasks:
                    task.created_date = now

                preferences.update_last_generation(now)
                preferences.add_to_history(prompt)
                await self.persistence.save_preferences(preferences)

                self.last_generated_tasks = tasks
                logger.info("Generated tasks", extra={"count": len(tasks), "fallback": used_fallback})
                self.events.emit(EngineEvent.TASKS_GENERATED, count=len(tasks), fallback=used_fallback)
                return [task.model_copy() for task in tasks]
        finally:
            self.is_generating = False

    async def generate_motivational_message(self, streak: int, level: int) -> str:
        """Short coaching message for the current streak and level.

        Raises:
            LLMServiceError: If the collaborator fails
        """
        with span("task_generation.motivational_message"):
            text = await self.llm.generate_completion(COACH_SYSTEM_PROMPT, build_motivation_prompt(streak, level))
            return text.strip()

    def generation_status(self, preferences: UserPreferences, recent_tasks: list[Task]) -> GenerationStatus:
        now = self.clock()
        window_start = days_ago(now, Constants.RECENT_HISTORY_DAYS)
        return GenerationStatus(
            is_generating=self.is_generating,
            can_generate_today=preferences.should_generate_today(now),
            last_generation_date=preferences.last_generation_date,
            completion_rate=completion_rate([task for task in recent_tasks if task.created_date >= window_start]),
        )
