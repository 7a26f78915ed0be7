"""zenith - task gamification engine with points, levels, and daily streaks."""

import logging
from types import TracebackType

from zenith.core.clock import Clock, utc_now
from zenith.core.events import EventHub
from zenith.core.kv_store import KeyValueStore, SQLiteKeyValueStore
from zenith.core.logging import configure_logfire, instrument_httpx
from zenith.domain.preferences import UserPreferences
from zenith.domain.task import Task
from zenith.interface.llm_client import LLMClient
from zenith.services.analytics_service import StatsAggregator
from zenith.services.persistence_store import PersistenceStore
from zenith.services.points_engine import PointsEngine
from zenith.services.streak_engine import StreakEngine
from zenith.services.task_generation_service import CompletionProvider, TaskGenerationService
from zenith.services.task_store import TaskStore
from zenith.services.workflow_service import ProgressWorkflow


logger = logging.getLogger(__name__)


class ZenithApp:
    """One session's worth of engines, wired together and sharing one store.

    Usage:
        async with await ZenithApp.create() as app:
            result = await app.workflow.complete_task(task_id)
    """

    def __init__(
        self,
        *,
        kv_store: KeyValueStore,
        clock: Clock = utc_now,
        llm: CompletionProvider | None = None,
    ) -> None:
        self.kv_store = kv_store
        self.clock = clock
        self.events = EventHub()

        self.persistence = PersistenceStore(kv_store, clock=clock)
        self.task_store = TaskStore(self.persistence, events=self.events, clock=clock)
        self.points_engine = PointsEngine(self.persistence, events=self.events, clock=clock)
        self.streak_engine = StreakEngine(self.persistence, self.task_store, events=self.events, clock=clock)
        self.stats = StatsAggregator(self.task_store, clock=clock)
        self.llm = llm or LLMClient(self.persistence)
        self.generator = TaskGenerationService(self.llm, self.persistence, events=self.events, clock=clock)
        self.workflow = ProgressWorkflow(
            persistence=self.persistence,
            task_store=self.task_store,
            points_engine=self.points_engine,
            streak_engine=self.streak_engine,
            events=self.events,
        )
        self.preferences = UserPreferences()
        self._started = False

    @classmethod
    async def create(
        cls,
        *,
        db_path: str | None = None,
        kv_store: KeyValueStore | None = None,
        clock: Clock = utc_now,
        llm: CompletionProvider | None = None,
        configure_logging: bool = False,
    ) -> "ZenithApp":
        """Build and start a session.

        Args:
            db_path: SQLite file, defaults to Settings.database_path
            kv_store: Store to use instead of SQLite
            clock: Time source shared by every engine
            llm: Completion provider, defaults to LLMClient
            configure_logging: Configure Logfire and httpx tracing first
        """
        if configure_logging:
            configure_logfire()
            instrument_httpx()

        app = cls(kv_store=kv_store or SQLiteKeyValueStore(db_path), clock=clock, llm=llm)
        await app.start()
        return app

    async def start(self) -> None:
        """Open the store and load every engine. Idempotent."""
        if self._started:
            return
        await self.kv_store.connect()
        await self.task_store.load()
        await self.points_engine.load()
        await self.streak_engine.load()
        self.preferences = await self.persistence.load_preferences()
        self._started = True
        logger.info(
            "Zenith session started",
            extra={
                "active_tasks": len(self.task_store.tasks),
                "level": self.points_engine.level,
                "current_streak": self.streak_engine.current_streak,
            },
        )

    async def close(self) -> None:
        if not self._started:
            return
        await self.kv_store.close()
        self._started = False
        logger.info("Zenith session closed")

    async def __aenter__(self) -> "ZenithApp":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def update_preferences(self, preferences: UserPreferences) -> None:
        self.preferences = preferences
        await self.persistence.save_preferences(preferences)

    async def generate_daily_tasks(self) -> list[Task]:
        """Generate today's tasks and add them to the active list.

        Raises:
            GenerationInProgressError: If a generation is already running
            LLMServiceError: If the collaborator fails
        """
        tasks = await self.generator.generate(
            self.preferences,
            self.streak_engine.current_streak,
            self.task_store.all_tasks(),
        )
        if not tasks:
            return []
        return await self.task_store.add_tasks(tasks)
