from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from application.ports.logger import LoggerPort


@dataclass(frozen=True)
class CompositeLogger(LoggerPort):
    """Send every event to several loggers (console + flow report)."""

    loggers: Tuple[LoggerPort, ...]

    @classmethod
    def of(cls, *loggers: LoggerPort) -> "CompositeLogger":
        return cls(tuple(loggers))

    def bind(self, **fields: Any) -> "CompositeLogger":
        return CompositeLogger(tuple(logger.bind(**fields) for logger in self.loggers))

    def debug(self, event: str, **fields: Any) -> None:
        for logger in self.loggers:
            logger.debug(event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        for logger in self.loggers:
            logger.info(event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        for logger in self.loggers:
            logger.warning(event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        for logger in self.loggers:
            logger.error(event, **fields)
