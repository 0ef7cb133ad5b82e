# domain/cookies.py
from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Set, Tuple
from urllib.parse import urlsplit

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# ExpectedCookie.expires に指定すると「削除された cookie」を意味する
DELETE = EPOCH


def _parse_expires(raw: str) -> Optional[datetime]:
    try:
        value = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class SetCookie:
    """One parsed Set-Cookie response header."""

    name: str
    value: str
    path: Optional[str] = None
    domain: Optional[str] = None
    expires: Optional[datetime] = None
    max_age: Optional[int] = None
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None

    @classmethod
    def parse(cls, header: str) -> "SetCookie":
        """
        Parse one Set-Cookie header the way user agents do (RFC 6265 5.2).

        Unknown attributes (Priority, Partitioned, ...) and attributes with
        unparsable values are ignored. Only a missing name=value pair is an error.
        """
        pair, _, unparsed = (header or "").partition(";")
        if "=" not in pair:
            raise ValueError(f"invalid Set-Cookie header: {header!r}")
        name, _, value = pair.partition("=")
        name, value = name.strip(), value.strip()
        if not name:
            raise ValueError(f"invalid Set-Cookie header: {header!r}")
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]

        attrs: Dict[str, object] = {}
        for av in unparsed.split(";"):
            key, _, raw = av.partition("=")
            key, raw = key.strip().lower(), raw.strip()
            if key == "expires":
                expires = _parse_expires(raw)
                if expires is not None:
                    attrs["expires"] = expires
            elif key == "max-age":
                if re.fullmatch(r"-?\d+", raw):
                    attrs["max_age"] = int(raw)
            elif key == "domain":
                if raw:
                    attrs["domain"] = raw.lstrip(".").lower()
            elif key == "path":
                # "/" で始まらない path は default-path 扱い
                attrs["path"] = raw if raw.startswith("/") else None
            elif key == "secure":
                attrs["secure"] = True
            elif key == "httponly":
                attrs["http_only"] = True
            elif key == "samesite":
                attrs["same_site"] = raw or None

        return cls(name=name, value=value, **attrs)

    def is_deletion(self) -> bool:
        if self.max_age is not None and self.max_age <= 0:
            return True
        return self.expires is not None and self.expires <= EPOCH


@dataclass(frozen=True)
class ExpectedCookie:
    name: str
    value: Optional[str] = None
    path: Optional[str] = None
    secure: bool = False
    http_only: bool = False
    expires: Optional[datetime] = None


class CookieComparison(enum.Flag):
    NAME_EQUALS = 1
    NAME_STARTS_WITH = 2
    VALUE = 4
    PATH = 8
    SECURE = 16
    HTTP_ONLY = 32
    EXPIRES = 64
    DELETE = 128

    STRICT = NAME_EQUALS | VALUE | PATH | SECURE | HTTP_ONLY | EXPIRES

    def checks(self) -> List[str]:
        """Names of the individual checks enabled by this combination."""
        return [m.name.lower() for m in _SINGLE_FLAGS if m in self]


_SINGLE_FLAGS = [
    CookieComparison.NAME_EQUALS,
    CookieComparison.NAME_STARTS_WITH,
    CookieComparison.VALUE,
    CookieComparison.PATH,
    CookieComparison.SECURE,
    CookieComparison.HTTP_ONLY,
    CookieComparison.EXPIRES,
    CookieComparison.DELETE,
]


@dataclass(frozen=True)
class CookieDiff:
    added: Set[str]
    removed: Set[str]
    changed: Set[str]


@dataclass
class CookieJar:
    """
    Cookie store of a single flow.

    Key は (name, path)。domain は見ない（1 フローは 1 ホストが前提）。
    """

    _cookies: Dict[Tuple[str, str], SetCookie] = field(default_factory=dict)

    def apply(self, cookie: SetCookie, now: Optional[datetime] = None) -> None:
        key = (cookie.name, cookie.path or "/")
        now = now or datetime.now(timezone.utc)
        expired = cookie.expires is not None and cookie.expires <= now
        if cookie.is_deletion() or expired:
            self._cookies.pop(key, None)
            return
        self._cookies[key] = cookie

    def header_for(self, url: str) -> Optional[str]:
        parts = urlsplit(url)
        request_path = parts.path or "/"
        is_https = parts.scheme.lower() == "https"

        pairs: List[str] = []
        # 長い path を先に送る（ブラウザと同じ順序）
        for (name, path), cookie in sorted(self._cookies.items(), key=lambda kv: -len(kv[0][1])):
            if cookie.secure and not is_https:
                continue
            if not _path_matches(request_path, path):
                continue
            pairs.append(f"{name}={cookie.value}")
        return "; ".join(pairs) if pairs else None

    def get(self, name: str) -> Optional[SetCookie]:
        for (n, _path), cookie in self._cookies.items():
            if n == name:
                return cookie
        return None

    def names(self) -> List[str]:
        return sorted({name for name, _path in self._cookies})

    def snapshot(self) -> List[Dict[str, object]]:
        return [
            {
                "name": c.name,
                "value": c.value,
                "path": path,
                "secure": c.secure,
                "expires": c.expires.isoformat() if c.expires else None,
            }
            for (_name, path), c in self._cookies.items()
        ]

    def __len__(self) -> int:
        return len(self._cookies)


def _path_matches(request_path: str, cookie_path: str) -> bool:
    if request_path == cookie_path:
        return True
    if request_path.startswith(cookie_path):
        return cookie_path.endswith("/") or request_path[len(cookie_path)] == "/"
    return False


def diff_snapshots(before: List[Dict[str, object]], after: List[Dict[str, object]]) -> CookieDiff:
    b = {(str(c.get("name", "")), str(c.get("path", ""))): c for c in before or []}
    a = {(str(c.get("name", "")), str(c.get("path", ""))): c for c in after or []}

    changed: Set[str] = set()
    for k in a.keys() & b.keys():
        # 値そのものはログに出さない。変化の有無だけ
        if a[k].get("value") != b[k].get("value"):
            changed.add(k[0])

    return CookieDiff(
        added={k[0] for k in a.keys() - b.keys()},
        removed={k[0] for k in b.keys() - a.keys()},
        changed=changed,
    )
