from __future__ import annotations

import asyncio
from collections.abc import MutableMapping
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class Language:
    """Execution environment bound to one slash command."""

    name: str
    version: str
    label: str


class SessionActiveError(ValueError):
    """Raised when a chat already has a collection session in progress."""


@dataclass(slots=True)
class CollectionSession:
    """Lines of code collected from one chat while its window is open."""

    chat_id: int
    language: Language
    buffer: list[str] = field(default_factory=list)
    deadline: asyncio.Task[None] | None = None

    @property
    def source(self) -> str:
        return "".join(self.buffer).strip()


class LineCollector:
    """Chat-keyed registry of collection sessions, one session per chat."""

    def __init__(self, store: MutableMapping[int, CollectionSession] | None = None) -> None:
        self._sessions: MutableMapping[int, CollectionSession] = {} if store is None else store

    def begin_session(self, *, chat_id: int, language: Language) -> CollectionSession:
        if chat_id in self._sessions:
            raise SessionActiveError(chat_id)
        session = CollectionSession(chat_id=chat_id, language=language)
        self._sessions[chat_id] = session
        return session

    def append_line(self, *, chat_id: int, text: str) -> bool:
        if not text:
            return False
        session = self._sessions.get(chat_id)
        if session is None:
            return False
        session.buffer.append(f"{text}\n")
        return True

    def drain_and_close(self, chat_id: int) -> str | None:
        session = self._sessions.pop(chat_id, None)
        if session is None:
            return None
        return session.source

    def get(self, chat_id: int) -> CollectionSession | None:
        return self._sessions.get(chat_id)

    def is_active(self, chat_id: int) -> bool:
        return chat_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
