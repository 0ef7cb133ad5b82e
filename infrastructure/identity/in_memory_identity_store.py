# infrastructure/identity/in_memory_identity_store.py
from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Dict, List, Optional, Tuple

from domain.exceptions import IdentityStoreError
from domain.reference_data import ClientApplication, ReferenceData, UserAccount

CODE_LIFETIME = timedelta(minutes=5)


@dataclass(frozen=True)
class AuthorizationGrant:
    code: str
    client_id: str
    redirect_uri: str
    user_name: str
    nonce: Optional[str]
    scopes: Tuple[str, ...]
    expires_at: datetime


def _hash_password(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 10_000)


class InMemoryIdentityStore:
    """
    Applications, users and one-time authorization codes, seeded from
    ReferenceData. One instance per server; nothing is shared across servers.
    """

    def __init__(self) -> None:
        self._clients: Dict[str, ClientApplication] = {}
        self._users: Dict[str, Tuple[UserAccount, bytes, bytes]] = {}
        self._codes: Dict[str, AuthorizationGrant] = {}
        self._lock = Lock()

    @classmethod
    def seeded(cls, data: ReferenceData) -> "InMemoryIdentityStore":
        store = cls()
        store.seed(data)
        return store

    def seed(self, data: ReferenceData) -> None:
        with self._lock:
            for client in data.clients:
                self._clients[client.client_id] = client
            for user in data.users:
                salt = secrets.token_bytes(16)
                self._users[user.user_name.lower()] = (user, salt, _hash_password(user.password, salt))

    # -------------------------
    # applications
    # -------------------------

    def get_client(self, client_id: str) -> Optional[ClientApplication]:
        with self._lock:
            return self._clients.get(client_id)

    def is_redirect_uri_allowed(self, client_id: str, redirect_uri: str) -> bool:
        client = self.get_client(client_id)
        return client is not None and redirect_uri in client.redirect_uris

    def remove_redirect_uri(self, client_id: str, redirect_uri: str) -> ClientApplication:
        with self._lock:
            client = self._clients.get(client_id)
            if client is None:
                raise IdentityStoreError(f"Unknown client application: {client_id}")
            if redirect_uri not in client.redirect_uris:
                raise IdentityStoreError(f"Redirect URI not registered for {client_id}: {redirect_uri}")
            updated = replace(client, redirect_uris=tuple(u for u in client.redirect_uris if u != redirect_uri))
            self._clients[client_id] = updated
            return updated

    # -------------------------
    # users
    # -------------------------

    def find_user(self, user_name: str) -> Optional[UserAccount]:
        with self._lock:
            entry = self._users.get(user_name.lower())
        return entry[0] if entry else None

    def verify_password(self, user_name: str, password: str) -> Optional[UserAccount]:
        with self._lock:
            entry = self._users.get(user_name.lower())
        if entry is None:
            return None
        user, salt, digest = entry
        if not hmac.compare_digest(digest, _hash_password(password, salt)):
            return None
        return user

    def user_names(self) -> List[str]:
        with self._lock:
            return [user.user_name for user, _salt, _digest in self._users.values()]

    # -------------------------
    # authorization codes
    # -------------------------

    def issue_code(
        self,
        client_id: str,
        redirect_uri: str,
        user_name: str,
        nonce: Optional[str],
        scopes: Tuple[str, ...] = (),
    ) -> str:
        code = secrets.token_urlsafe(32)
        grant = AuthorizationGrant(
            code=code,
            client_id=client_id,
            redirect_uri=redirect_uri,
            user_name=user_name,
            nonce=nonce,
            scopes=scopes,
            expires_at=datetime.now(timezone.utc) + CODE_LIFETIME,
        )
        with self._lock:
            self._codes[code] = grant
        return code

    def redeem_code(self, code: str, client_id: str, redirect_uri: str) -> AuthorizationGrant:
        """Consume a code; a code can be redeemed only once."""
        with self._lock:
            grant = self._codes.pop(code, None)
        if grant is None:
            raise IdentityStoreError("invalid_grant: unknown or already redeemed code")
        if grant.expires_at <= datetime.now(timezone.utc):
            raise IdentityStoreError("invalid_grant: code expired")
        if grant.client_id != client_id:
            raise IdentityStoreError("invalid_grant: client_id mismatch")
        if grant.redirect_uri != redirect_uri:
            raise IdentityStoreError("invalid_grant: redirect_uri mismatch")
        return grant
