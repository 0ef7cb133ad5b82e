# api/cookies.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from starlette.responses import Response

from domain.cookies import EPOCH


def issue_cookie(
    response: Response,
    name: str,
    value: str,
    path: str = "/",
    lifetime: Optional[timedelta] = None,
) -> None:
    expires = datetime.now(timezone.utc) + lifetime if lifetime else None
    response.set_cookie(
        name,
        value,
        path=path,
        expires=expires,
        secure=True,
        httponly=True,
        samesite="none",
    )


def expire_cookie(response: Response, name: str, path: str = "/") -> None:
    """Delete a cookie with an explicit epoch expiry (not Max-Age=0)."""
    response.set_cookie(
        name,
        "",
        path=path,
        expires=EPOCH,
        secure=True,
        httponly=True,
        samesite="none",
    )
