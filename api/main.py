"""FastAPI アプリケーション - credentials server のエントリポイント"""
from __future__ import annotations

import os
from typing import Mapping, Optional

from fastapi import FastAPI

from api.credentials_server import (
    DEFAULT_CLIENT_ID,
    build_credentials_server,
    default_reference_data,
)
from api.server_config import OpenIdConnectClientOptions, ServerConfig
from domain.oidc import ResponseMode, ResponseType
from domain.reference_data import DEFAULT_ORIGIN
from infrastructure.logging.console_logger import ConsoleLogger
from infrastructure.reference_data.yaml_loader import YamlReferenceDataLoader


def _flag(raw: Optional[str], default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() not in ("0", "false", "no")


def config_from_env(env: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Build the server configuration from environment variables.

      OIDC_SERVER_BASE_URL        public origin of the server
      OIDC_SERVER_CLIENT_ID       relying party client id
      OIDC_SERVER_RESPONSE_TYPE   "code" or "id_token"
      OIDC_SERVER_AUTO_SIGN_IN    "false" to show the real login form
      OIDC_SERVER_REFERENCE_DATA  YAML file with clients/resources/users
      OIDC_SERVER_SIGNING_KEY     fixed HS256 key (random when unset)
    """
    env = os.environ if env is None else env
    base_url = env.get("OIDC_SERVER_BASE_URL") or DEFAULT_ORIGIN
    client_id = env.get("OIDC_SERVER_CLIENT_ID") or DEFAULT_CLIENT_ID

    reference_path = env.get("OIDC_SERVER_REFERENCE_DATA")
    if reference_path:
        reference_data = YamlReferenceDataLoader().load_from_file(reference_path)
    else:
        reference_data = default_reference_data(client_id, origin=base_url)

    response_type = env.get("OIDC_SERVER_RESPONSE_TYPE") or ResponseType.CODE
    if response_type == ResponseType.CODE:
        response_mode = ResponseMode.QUERY
    elif response_type == ResponseType.ID_TOKEN:
        response_mode = ResponseMode.FORM_POST
    else:
        raise ValueError(f"OIDC_SERVER_RESPONSE_TYPE must be 'code' or 'id_token': {response_type!r}")

    kwargs = {}
    if env.get("OIDC_SERVER_SIGNING_KEY"):
        kwargs["signing_key"] = env["OIDC_SERVER_SIGNING_KEY"]

    return ServerConfig(
        reference_data=reference_data,
        oidc=OpenIdConnectClientOptions(
            client_id=client_id,
            response_type=response_type,
            response_mode=response_mode,
        ),
        automatic_sign_in=_flag(env.get("OIDC_SERVER_AUTO_SIGN_IN"), True),
        base_url=base_url,
        **kwargs,
    )


def create_app(env: Optional[Mapping[str, str]] = None) -> FastAPI:
    return build_credentials_server(config_from_env(env), ConsoleLogger())


app = create_app()
