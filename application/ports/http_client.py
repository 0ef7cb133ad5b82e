# application/ports/http_client.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Optional


@dataclass(frozen=True)
class HttpResponse:
    status: int
    url: str
    text: str
    headers: Dict[str, str]
    # Set-Cookie は複数来るので headers とは別に全件保持する
    set_cookies: List[str] = field(default_factory=list)
    encoding: Optional[str] = None
    content: Optional[bytes] = None

    def header(self, name: str) -> Optional[str]:
        lname = name.lower()
        for k, v in (self.headers or {}).items():
            if k.lower() == lname:
                return v
        return None


class HttpClientPort(ABC):
    """
    Transport used by the flow driver.

    Implementations must not follow redirects and must not keep cookies:
    the driver owns the cookie jar and sends the Cookie header itself.
    """

    @abstractmethod
    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        form_list: Optional[List[Tuple[str, str]]] = None,
    ) -> HttpResponse:
        ...
