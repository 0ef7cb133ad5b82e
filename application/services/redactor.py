# application/services/redactor.py
from __future__ import annotations

from typing import Any, Dict, List, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

MASK = "********"

SENSITIVE_KEYS = {
    "password",
    "passwd",
    "pass",
    "authorization",
    "cookie",
    "set-cookie",
    "code",
    "id_token",
    "access_token",
    "client_secret",
}


def mask_value(key: str, value: Any) -> Any:
    if key.lower() in SENSITIVE_KEYS and value is not None:
        return MASK
    return value


def mask_pairs(pairs: List[Tuple[str, str]]) -> List[Tuple[str, Any]]:
    return [(k, mask_value(k, v)) for k, v in pairs]


def mask_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: mask_value(k, v) for k, v in d.items()}


def mask_url(url: str) -> str:
    """Mask sensitive query parameters (code, id_token ...) of a URL."""
    if not url or "?" not in url:
        return url
    parts = urlsplit(url)
    query = urlencode(mask_pairs(parse_qsl(parts.query, keep_blank_values=True)), safe="*")
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
