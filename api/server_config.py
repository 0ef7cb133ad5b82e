# api/server_config.py
from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import List

from domain.oidc import ResponseMode, ResponseType
from domain.reference_data import DEFAULT_ORIGIN, ReferenceData

AUTHORITY_PATH = "/tfp/Identity/signinsignup"
LOGIN_PATH = f"{AUTHORITY_PATH}/Account/Login"
AUTHORIZE_PATH = f"{AUTHORITY_PATH}/oauth2/v2.0/authorize"
TOKEN_PATH = f"{AUTHORITY_PATH}/oauth2/v2.0/token"
CALLBACK_PATH = "/signin-oidc"


@dataclass
class OpenIdConnectClientOptions:
    client_id: str
    response_type: str = ResponseType.ID_TOKEN
    response_mode: str = ResponseMode.FORM_POST
    scopes: List[str] = field(default_factory=lambda: ["openid", "profile"])
    callback_path: str = CALLBACK_PATH
    correlation_cookie_path: str = "/"
    nonce_cookie_path: str = "/"


@dataclass
class ServerConfig:
    """
    Everything the credentials server needs, populated before the server is
    built. Nothing is mutated after build_credentials_server() runs.
    """

    reference_data: ReferenceData
    oidc: OpenIdConnectClientOptions
    automatic_sign_in: bool = True
    base_url: str = DEFAULT_ORIGIN
    login_path: str = LOGIN_PATH
    signing_key: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    token_lifetime_sec: int = 3600

    def __post_init__(self) -> None:
        if self.oidc.response_type not in (ResponseType.CODE, ResponseType.ID_TOKEN):
            raise ValueError(f"Unsupported response_type: {self.oidc.response_type}")
        if self.oidc.response_mode not in (ResponseMode.QUERY, ResponseMode.FORM_POST):
            raise ValueError(f"Unsupported response_mode: {self.oidc.response_mode}")
        # id_token を query で返すことはしない
        if self.oidc.response_type == ResponseType.ID_TOKEN and self.oidc.response_mode == ResponseMode.QUERY:
            raise ValueError("response_type=id_token cannot be combined with response_mode=query")
        if self.reference_data.get_client(self.oidc.client_id) is None:
            raise ValueError(f"Client application is not registered: {self.oidc.client_id}")

    @property
    def issuer(self) -> str:
        return self.base_url.rstrip("/") + AUTHORITY_PATH + "/v2.0/"

    @property
    def callback_url(self) -> str:
        return self.base_url.rstrip("/") + self.oidc.callback_path

    def absolute(self, path: str) -> str:
        return self.base_url.rstrip("/") + path
