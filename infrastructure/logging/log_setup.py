from __future__ import annotations

from typing import Optional

from loguru import logger


def setup_console_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Route loguru to stdout (message only, ConsoleLogger already formats the
    line). With ``log_file`` every event is also appended to that file at
    DEBUG, so a failed flow can be inspected hop by hop afterwards.
    """
    logger.remove()
    logger.add(lambda msg: print(msg, end=""), level=level.upper(), format="{message}")
    if log_file:
        logger.add(log_file, level="DEBUG", format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} {level} {message}", encoding="utf-8")
