from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from telegram_playground_bots.core.collector import CollectionSession, Language, LineCollector

DEFAULT_WINDOW_SECONDS = 60.0
logger = logging.getLogger(__name__)

WindowCloseHandler = Callable[[int, Language, str], Awaitable[None]]


class CollectionWindows:
    """One-shot timers that close each chat's collection session.

    A window opens together with the collector session and stays open until
    ``on_close`` has finished with the drained source, so a chat remains busy
    while its code is running. Windows cannot be reset or cancelled by users;
    ``aclose`` only exists for process shutdown.
    """

    def __init__(
        self,
        collector: LineCollector,
        on_close: WindowCloseHandler,
        *,
        delay: float = DEFAULT_WINDOW_SECONDS,
    ) -> None:
        if delay < 0:
            raise ValueError(delay)
        self._collector = collector
        self._on_close = on_close
        self._delay = delay
        self._pending: dict[int, asyncio.Task[None]] = {}

    @property
    def delay(self) -> float:
        return self._delay

    def open(self, *, chat_id: int, language: Language) -> CollectionSession:
        session = self._collector.begin_session(chat_id=chat_id, language=language)
        task = asyncio.create_task(self._expire(chat_id, language), name=f"collection-window-{chat_id}")
        session.deadline = task
        self._pending[chat_id] = task
        task.add_done_callback(lambda done: self._forget(chat_id, done))
        logger.info("Collection window opened: chat_id=%s language=%s", chat_id, language.name)
        return session

    def is_open(self, chat_id: int) -> bool:
        return chat_id in self._pending

    async def aclose(self) -> None:
        pending = dict(self._pending)
        for task in pending.values():
            task.cancel()
        await asyncio.gather(*pending.values(), return_exceptions=True)
        for chat_id in pending:
            self._collector.drain_and_close(chat_id)
        self._pending.clear()
        if pending:
            logger.info("Dropped %s open collection window(s) on shutdown", len(pending))

    async def _expire(self, chat_id: int, language: Language) -> None:
        await asyncio.sleep(self._delay)
        source = self._collector.drain_and_close(chat_id)
        if source is None:
            logger.warning("Collection window closed without a session: chat_id=%s", chat_id)
            return
        logger.info("Collection window closed: chat_id=%s source_chars=%s", chat_id, len(source))
        try:
            await self._on_close(chat_id, language, source)
        except Exception:
            logger.exception("Unhandled error while closing collection window for chat %s", chat_id)

    def _forget(self, chat_id: int, task: asyncio.Task[None]) -> None:
        if self._pending.get(chat_id) is task:
            del self._pending[chat_id]
