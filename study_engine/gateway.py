"""
Command Gateway - single-writer queue in front of the StudyEngine.

Callers may fire commands concurrently (UI handlers, background tasks);
the gateway runs them strictly one at a time, in submission order, on a
single consumer task. Each command executes on a worker thread so
database I/O never blocks the event loop.

Every command resolves to a CommandResult: success with a value, or
failure with the error. The named coroutines (review, undo, ...) unwrap
the result and raise the error instead.

Usage:
    async with CommandGateway(StudyEngine(settings)) as gateway:
        card_id = await gateway.pick_next(["unit-1"])
        outcome = await gateway.review(card_id, Rating.GOOD, elapsed_ms=3100)
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from study_engine.engine import StudyEngine
from study_engine.exceptions import EngineNotReadyError, StudyEngineError, ValidationError

logger = logging.getLogger(__name__)

COMMANDS = frozenset({
    "startup",
    "load_project",
    "pick_next",
    "preview_ratings",
    "review",
    "undo",
    "suspend",
    "unsuspend",
    "bury",
    "unbury_all",
    "count_due",
    "update_score",
    "get_scores",
    "reset_section",
    "record_activity",
    "get_activity",
    "clear_activity",
    "activity_score",
    "dashboard",
    "get_card_state",
    "get_review_log",
    "get_model_params",
    "set_model_params",
    "add_note",
    "get_notes",
})


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command: `value` when ok, `error` otherwise."""
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

    def unwrap(self) -> Any:
        if not self.ok:
            raise self.error
        return self.value


class CommandGateway:
    """
    Serializes every engine call through one asyncio queue.
    """

    def __init__(self, engine: StudyEngine):
        self.engine = engine
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self.running = False

    # ---- Lifecycle ----

    async def start(self) -> CommandResult:
        """
        Start the consumer task and run startup migrations through it.

        If migrations fail the gateway keeps running but every command
        fails with EngineNotReadyError until a later start() succeeds.
        """
        if self._worker is None:
            self.running = True
            self._worker = asyncio.create_task(self._process_commands())
            logger.info("[GATEWAY] Started")

        result = await self.submit("startup")
        if not result.ok:
            logger.error(f"[GATEWAY] Startup failed, refusing commands: {result.error}")
        return result

    async def stop(self) -> None:
        """Finish queued commands, then stop the consumer and release the engine."""
        if self._worker is None:
            return

        self.running = False
        await self._queue.put(None)
        await self._worker
        self._worker = None
        await asyncio.to_thread(self.engine.close)
        logger.info("[GATEWAY] Stopped")

    async def __aenter__(self) -> CommandGateway:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ---- Queue ----

    async def submit(self, name: str, *args, **kwargs) -> CommandResult:
        """
        Queue a command and wait for its result.

        Never raises for command failures; inspect `ok` / `error`.
        """
        if name not in COMMANDS:
            return CommandResult(ok=False, error=ValidationError(f"Unknown command: {name}"))
        if not self.running:
            return CommandResult(ok=False, error=EngineNotReadyError("Gateway is not running"))

        future = asyncio.get_running_loop().create_future()
        await self._queue.put((name, args, kwargs, future))
        return await future

    async def _process_commands(self) -> None:
        """Consume commands one at a time until the stop sentinel arrives."""
        while True:
            item = await self._queue.get()
            try:
                if item is None:
                    break
                name, args, kwargs, future = item
                result = await self._execute(name, args, kwargs)
                # The submitter may have been cancelled while waiting
                if not future.done():
                    future.set_result(result)
            finally:
                self._queue.task_done()

    async def _execute(self, name: str, args: tuple, kwargs: dict) -> CommandResult:
        try:
            value = await asyncio.to_thread(getattr(self.engine, name), *args, **kwargs)
        except StudyEngineError as exc:
            logger.warning(f"[GATEWAY] {name} failed: {exc}")
            return CommandResult(ok=False, error=exc)
        except Exception as exc:
            logger.exception(f"[GATEWAY] {name} raised unexpectedly")
            return CommandResult(ok=False, error=exc)
        return CommandResult(ok=True, value=value)

    async def _call(self, name: str, *args, **kwargs) -> Any:
        result = await self.submit(name, *args, **kwargs)
        return result.unwrap()

    # ---- Named commands ----

    async def load_project(self, section_ids, cards=(), project_id=None):
        return await self._call("load_project", section_ids, cards, project_id=project_id)

    async def pick_next(
        self,
        section_ids: Sequence[str],
        new_per_session: Optional[int] = None,
        card_type=None,
        project_id: Optional[str] = None
    ):
        return await self._call(
            "pick_next", section_ids, new_per_session, card_type, project_id=project_id
        )

    async def preview_ratings(self, card_id: str):
        return await self._call("preview_ratings", card_id)

    async def review(self, card_id: str, rating, elapsed_ms: Optional[int] = None, **kwargs):
        return await self._call("review", card_id, rating, elapsed_ms, **kwargs)

    async def undo(self):
        return await self._call("undo")

    async def suspend(self, card_id: str):
        return await self._call("suspend", card_id)

    async def unsuspend(self, card_id: str):
        return await self._call("unsuspend", card_id)

    async def bury(self, card_id: str):
        return await self._call("bury", card_id)

    async def unbury_all(self, project_id: Optional[str] = None):
        return await self._call("unbury_all", project_id)

    async def count_due(self, section_ids: Sequence[str], card_type=None, project_id=None):
        return await self._call("count_due", section_ids, card_type, project_id=project_id)

    async def update_score(self, section_id: str, correct: bool, project_id=None):
        return await self._call("update_score", section_id, correct, project_id=project_id)

    async def get_scores(self, section_ids=None, project_id=None):
        return await self._call("get_scores", section_ids, project_id=project_id)

    async def reset_section(self, section_id: str, project_id=None):
        return await self._call("reset_section", section_id, project_id=project_id)

    async def record_activity(self, section_id, rating, project_id=None):
        return await self._call("record_activity", section_id, rating, project_id=project_id)

    async def get_activity(self, limit=None, section_id=None, project_id=None):
        return await self._call(
            "get_activity", limit, section_id=section_id, project_id=project_id
        )

    async def clear_activity(self, project_id=None):
        return await self._call("clear_activity", project_id)

    async def activity_score(self, section_id=None, project_id=None):
        return await self._call("activity_score", section_id, project_id=project_id)

    async def dashboard(self, project_id=None):
        return await self._call("dashboard", project_id)

    async def get_card_state(self, card_id: str):
        return await self._call("get_card_state", card_id)

    async def get_review_log(self, project_id=None, limit: int = 1000, card_id=None):
        return await self._call("get_review_log", project_id, limit, card_id)

    async def get_model_params(self, project_id=None):
        return await self._call("get_model_params", project_id)

    async def set_model_params(self, retention: float, weights=None, project_id=None):
        return await self._call("set_model_params", retention, weights, project_id=project_id)

    async def add_note(self, text: str, project_id=None):
        return await self._call("add_note", text, project_id=project_id)

    async def get_notes(self, project_id=None):
        return await self._call("get_notes", project_id)
