# api/token_service.py
from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel

from api.protector import DataProtector
from api.server_config import ServerConfig
from infrastructure.identity.in_memory_identity_store import InMemoryIdentityStore


class TokenResponse(BaseModel):
    id_token: str
    token_type: str = "Bearer"
    expires_in: int
    scope: str = ""


class TokenService:
    """Issue id tokens and redeem authorization codes for the identity provider."""

    def __init__(self, config: ServerConfig, store: InMemoryIdentityStore, protector: DataProtector):
        self._config = config
        self._store = store
        self._protector = protector

    def issue_id_token(self, user_name: str, client_id: str, nonce: Optional[str]) -> str:
        claims: Dict[str, Any] = {
            "iss": self._config.issuer,
            "aud": client_id,
            "sub": user_name,
            "name": user_name,
        }
        if nonce:
            claims["nonce"] = nonce
        return self._protector.create_id_token(claims, timedelta(seconds=self._config.token_lifetime_sec))

    def redeem(self, code: str, client_id: str, redirect_uri: str) -> TokenResponse:
        # IdentityStoreError はそのまま呼び出し元へ
        grant = self._store.redeem_code(code, client_id, redirect_uri)
        return TokenResponse(
            id_token=self.issue_id_token(grant.user_name, grant.client_id, grant.nonce),
            expires_in=self._config.token_lifetime_sec,
            scope=" ".join(grant.scopes),
        )

    def read_id_token(self, id_token: str, client_id: str) -> Dict[str, Any]:
        return self._protector.read_id_token(id_token, audience=client_id, issuer=self._config.issuer)
