# domain/reference_data.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

DEFAULT_ORIGIN = "https://localhost"


@dataclass(frozen=True)
class ClientApplication:
    client_id: str
    name: str
    redirect_uris: Tuple[str, ...] = ()
    logout_redirect_uris: Tuple[str, ...] = ()
    scopes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResourceApplication:
    resource_id: str
    name: str
    scopes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UserAccount:
    user_name: str
    password: str


@dataclass
class ReferenceData:
    """
    Seed data for the credentials server: client and resource applications
    and users. Builder methods return ``self`` so seeds can be chained.
    """

    clients: List[ClientApplication] = field(default_factory=list)
    resources: List[ResourceApplication] = field(default_factory=list)
    users: List[UserAccount] = field(default_factory=list)

    def create_integrated_web_client_application(
        self,
        client_id: str,
        name: str = "IntegratedWebClient",
        origin: str = DEFAULT_ORIGIN,
    ) -> "ReferenceData":
        origin = origin.rstrip("/")
        self.clients.append(
            ClientApplication(
                client_id=client_id,
                name=name,
                redirect_uris=(f"{origin}/signin-oidc",),
                logout_redirect_uris=(f"{origin}/signout-callback-oidc",),
                scopes=("openid", "profile"),
            )
        )
        return self

    def create_resource_application(self, resource_id: str, name: str, *scopes: str) -> "ReferenceData":
        self.resources.append(ResourceApplication(resource_id=resource_id, name=name, scopes=tuple(scopes)))
        return self

    def create_user(self, user_name: str, password: str) -> "ReferenceData":
        self.users.append(UserAccount(user_name=user_name, password=password))
        return self

    def get_user(self, user_name: str) -> Optional[UserAccount]:
        for user in self.users:
            if user.user_name.lower() == user_name.lower():
                return user
        return None

    def get_default_user(self) -> Optional[UserAccount]:
        return self.users[0] if self.users else None

    def get_client(self, client_id: str) -> Optional[ClientApplication]:
        for client in self.clients:
            if client.client_id == client_id:
                return client
        return None
