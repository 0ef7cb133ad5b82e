# domain/flow.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from domain.cookies import SetCookie


@dataclass(frozen=True)
class FlowStep:
    """
    One HTTP exchange of a flow (request + response).

    A step is created per hop and never reused for the next request.
    """

    index: int
    name: str
    method: str
    url: str
    status: int
    headers: Dict[str, str]
    set_cookies: List[SetCookie] = field(default_factory=list)
    location: Optional[str] = None
    text: str = ""
    content_type: Optional[str] = None

    @property
    def hop(self) -> str:
        return f"#{self.index} {self.name} {self.method} {self.url}"

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400

    def cookies_named(self, name: str) -> List[SetCookie]:
        return [c for c in self.set_cookies if c.name == name]


@dataclass(frozen=True)
class HtmlForm:
    action: str
    method: str
    fields: List[Tuple[str, str]]
    auto_submit: bool = False

    def field(self, name: str) -> Optional[str]:
        for k, v in self.fields:
            if k == name:
                return v
        return None

    def with_field(self, name: str, value: str) -> "HtmlForm":
        """Return a copy where ``name`` is set to ``value`` (appended when absent)."""
        replaced = False
        out: List[Tuple[str, str]] = []
        for k, v in self.fields:
            if k == name:
                if not replaced:
                    out.append((k, value))
                    replaced = True
                continue
            out.append((k, v))
        if not replaced:
            out.append((name, value))
        return HtmlForm(action=self.action, method=self.method, fields=out, auto_submit=self.auto_submit)
