# infrastructure/url/base_url_resolver.py
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urljoin


@dataclass(frozen=True)
class BaseUrlResolver:
    base_url: str

    def resolve_url(self, url: str, relative_to: str | None = None) -> str:
        """
        Absolute URLs pass through; relative ones (including Location headers)
        are joined to ``relative_to`` when given, else to the base URL.
        """
        if url.startswith("http://") or url.startswith("https://"):
            return url
        base = relative_to or (self.base_url.rstrip("/") + "/")
        return urljoin(base, url)
