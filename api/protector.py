# api/protector.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

_ALGORITHM = "HS256"


class InvalidPayloadError(Exception):
    pass


class DataProtector:
    """
    Sign small payloads (state, cookie tickets, id tokens) with HS256.

    ``purpose`` is embedded and checked so a value protected for one use
    (e.g. a state parameter) cannot be replayed as another (a session cookie).
    """

    def __init__(self, secret: str):
        self._secret = secret

    def protect(self, purpose: str, payload: Dict[str, Any], lifetime: Optional[timedelta] = None) -> str:
        claims = dict(payload)
        claims["pur"] = purpose
        if lifetime is not None:
            claims["exp"] = datetime.now(timezone.utc) + lifetime
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def unprotect(self, purpose: str, token: Optional[str]) -> Dict[str, Any]:
        if not token:
            raise InvalidPayloadError(f"{purpose}: missing")
        try:
            claims = jwt.decode(token, self._secret, algorithms=[_ALGORITHM], options={"verify_aud": False})
        except jwt.PyJWTError as e:
            raise InvalidPayloadError(f"{purpose}: {e}") from e
        if claims.pop("pur", None) != purpose:
            raise InvalidPayloadError(f"{purpose}: wrong purpose")
        return claims

    def create_id_token(self, claims: Dict[str, Any], lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        body = dict(claims)
        body.setdefault("iat", now)
        body["exp"] = now + lifetime
        return jwt.encode(body, self._secret, algorithm=_ALGORITHM)

    def read_id_token(self, token: str, audience: str, issuer: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self._secret, algorithms=[_ALGORITHM], audience=audience, issuer=issuer)
        except jwt.PyJWTError as e:
            raise InvalidPayloadError(f"id_token: {e}") from e
