from __future__ import annotations

from infrastructure.logging.composite_logger import CompositeLogger
from infrastructure.logging.memory_logger import MemoryLogger


def test_memory_logger_bind_shares_entries() -> None:
    root = MemoryLogger()
    child = root.bind(component="idp")

    child.info("idp.login", user="alice")
    root.error("flow.unexpected_status", actual=400)

    assert [e.event for e in root.entries] == ["idp.login", "flow.unexpected_status"]
    assert root.events("idp.login")[0].fields == {"component": "idp", "user": "alice"}
    assert root.entries[1].level == "error"


def test_composite_logger_fans_out_and_binds_each() -> None:
    a = MemoryLogger()
    b = MemoryLogger()
    logger = CompositeLogger.of(a, b).bind(flow="code")

    logger.warning("flow.set_cookie_invalid", error="bad")
    logger.debug("flow.cookie_diff")

    for memory in (a, b):
        assert [e.event for e in memory.entries] == ["flow.set_cookie_invalid", "flow.cookie_diff"]
        assert memory.entries[0].fields == {"flow": "code", "error": "bad"}
