from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from application.ports.logger import LoggerPort


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    level: str
    event: str
    fields: Dict[str, Any]


@dataclass(frozen=True)
class MemoryLogger(LoggerPort):
    """Keep log events in memory (flow reports, tests)."""

    entries: List[LogEntry] = field(default_factory=list)
    bound: Dict[str, Any] = field(default_factory=dict)

    def bind(self, **fields: Any) -> "MemoryLogger":
        merged = dict(self.bound)
        merged.update(fields)
        # entries は共有する（bind しても同じ記録先）
        return MemoryLogger(entries=self.entries, bound=merged)

    def debug(self, event: str, **fields: Any) -> None:
        self._emit("debug", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit("error", event, fields)

    def events(self, event: str) -> List[LogEntry]:
        return [e for e in self.entries if e.event == event]

    def _emit(self, level: str, event: str, fields: Dict[str, Any]) -> None:
        payload = dict(self.bound)
        payload.update(fields)
        self.entries.append(
            LogEntry(
                timestamp=datetime.now(timezone.utc),
                level=level,
                event=event,
                fields=payload,
            )
        )
