# domain/exceptions.py
from __future__ import annotations

from typing import Any, List, Optional, Sequence


class FlowAssertionError(AssertionError):
    """
    Base class of every flow failure.

    AssertionError を継承しているので pytest 上は test failure として表示される。
    """

    def __init__(self, hop: Optional[str], message: str):
        self.hop = hop
        prefix = f"[{hop}] " if hop else ""
        super().__init__(f"{prefix}{message}")


class UnexpectedStatusError(FlowAssertionError):
    def __init__(self, hop: Optional[str], expected: Any, actual: int, location: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.location = location
        message = f"status: expected {expected}, actual {actual}"
        if location:
            message += f" (location={location})"
        super().__init__(hop, message)


class MissingParameterError(FlowAssertionError):
    def __init__(self, hop: Optional[str], name: str, source: str):
        self.name = name
        self.source = source
        super().__init__(hop, f"parameter '{name}': expected in {source}, actual <missing>")


class CookieMismatchError(FlowAssertionError):
    def __init__(self, hop: Optional[str], expected_name: str, mismatches: Sequence[Any]):
        self.expected_name = expected_name
        self.mismatches: List[Any] = list(mismatches)
        lines = [f"cookie '{expected_name}' does not match"]
        for m in self.mismatches:
            lines.append(f"  - {m}")
        super().__init__(hop, "\n".join(lines))


class FormNotFoundError(FlowAssertionError):
    def __init__(self, hop: Optional[str], selector: str, found: int):
        self.selector = selector
        self.found = found
        super().__init__(hop, f"form '{selector}': expected exactly 1, actual {found}")


class IdentityStoreError(Exception):
    """Unknown application/user or an invalid authorization code."""
