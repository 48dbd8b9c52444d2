"""Long-polling worker that feeds Telegram updates to the workflow engine."""

import asyncio
import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from insurance_bot.adapters.telegram_client import TelegramUpdatesClient
from insurance_bot.api.app import to_inbound_message
from insurance_bot.api.telegram_models import TelegramUpdate
from insurance_bot.services.workflow import WorkflowEngine

_logger = logging.getLogger(__name__)


@dataclass
class TelegramPollingWorker:
    """Fetch updates with getUpdates and handle each one in its own task."""

    updates_client: TelegramUpdatesClient
    engine: WorkflowEngine
    poll_timeout: int = 30
    error_backoff_seconds: float = 5.0
    offset: int | None = None
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False, repr=False)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Poll until ``stop_event`` is set, then cancel in-flight handlers."""
        _logger.info("Polling worker started")
        try:
            while not stop_event.is_set():
                await self._poll_until_stopped(stop_event)
        finally:
            await self.stop()
            _logger.info("Polling worker stopped")

    async def _poll_until_stopped(self, stop_event: asyncio.Event) -> None:
        """Run one poll, abandoning it if ``stop_event`` is set first."""
        poll = asyncio.create_task(self.poll_once())
        stopped = asyncio.create_task(stop_event.wait())
        try:
            await asyncio.wait({poll, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            poll.cancel()
            stopped.cancel()
            await asyncio.gather(poll, stopped, return_exceptions=True)

    async def poll_once(self) -> int:
        """Fetch one batch of updates, schedule handlers and return the count."""
        try:
            raw_updates = await self.updates_client.get_updates(
                offset=self.offset, timeout=self.poll_timeout
            )
        except Exception:
            _logger.exception("Telegram polling error")
            await asyncio.sleep(self.error_backoff_seconds)
            return 0

        for raw in raw_updates:
            update_id = raw.get("update_id")
            if isinstance(update_id, int):
                self.offset = update_id + 1
            try:
                update = TelegramUpdate.model_validate(raw)
            except ValidationError:
                _logger.warning("Skipping malformed update", extra={"update": raw})
                continue
            if update.message is None:
                continue
            task = asyncio.create_task(
                self.engine.handle(to_inbound_message(update.message))
            )
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)
        return len(raw_updates)

    async def drain(self) -> None:
        """Wait for all in-flight handlers to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Cancel in-flight handlers and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Update handler failed", exc_info=exc)
