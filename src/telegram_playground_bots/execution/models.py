from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from telegram_playground_bots.core.collector import Language

LANGUAGES: dict[str, Language] = {
    "python": Language(name="python", version="3.10.0", label="Python"),
    "dart": Language(name="dart", version="2.19.6", label="Dart"),
    "javascript": Language(name="javascript", version="18.15.0", label="JavaScript"),
    "csharp": Language(name="csharp", version="6.12.0", label="C#"),
    "java": Language(name="java", version="15.0.2", label="Java"),
    "kotlin": Language(name="kotlin", version="1.8.20", label="Kotlin"),
    "lua": Language(name="lua", version="5.4.4", label="Lua"),
    "php": Language(name="php", version="8.2.3", label="PHP"),
    "perl": Language(name="perl", version="5.36.0", label="Perl"),
    "ruby": Language(name="ruby", version="3.0.1", label="Ruby"),
    "rust": Language(name="rust", version="1.68.2", label="Rust"),
    "swift": Language(name="swift", version="5.3.3", label="Swift"),
    "sqlite3": Language(name="sqlite3", version="3.36.0", label="SQLite"),
}


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    """Normalized response from the code-execution service."""

    output: str | None = None
    error: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None
