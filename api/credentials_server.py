# api/credentials_server.py
"""
Assemble the in-process credentials server: identity provider, relying
party and the applications pages, all in one FastAPI app.
"""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from api.applications import create_applications_router
from api.auto_sign_in import install_auto_sign_in
from api.identity_provider import SignInManager, create_identity_provider_router
from api.protector import DataProtector
from api.relying_party import OpenIdConnectHandler, create_relying_party_router
from api.server_config import OpenIdConnectClientOptions, ServerConfig
from api.token_service import TokenService
from application.flow_driver import FlowDriver
from application.ports.logger import LoggerPort
from domain.oidc import USER_HINT_HEADER, ResponseMode, ResponseType
from domain.reference_data import DEFAULT_ORIGIN, ReferenceData
from infrastructure.http.asgi_client import AsgiHttpClient
from infrastructure.identity.in_memory_identity_store import InMemoryIdentityStore
from infrastructure.logging.console_logger import ConsoleLogger
from infrastructure.url.base_url_resolver import BaseUrlResolver

DEFAULT_CLIENT_ID = "a0c0e2cd-3b1f-4f4e-9d0b-0d4f1a3c2e11"
DEFAULT_USER = "user@example.com"
DEFAULT_PASSWORD = "Pa$$w0rd"


def default_reference_data(client_id: str = DEFAULT_CLIENT_ID, origin: str = DEFAULT_ORIGIN) -> ReferenceData:
    return (
        ReferenceData()
        .create_integrated_web_client_application(client_id, origin=origin)
        .create_resource_application("resource", "Resource", "read", "write")
        .create_user(DEFAULT_USER, DEFAULT_PASSWORD)
    )


def code_flow_config(reference_data: Optional[ReferenceData] = None, client_id: str = DEFAULT_CLIENT_ID) -> ServerConfig:
    return ServerConfig(
        reference_data=reference_data or default_reference_data(client_id),
        oidc=OpenIdConnectClientOptions(
            client_id=client_id,
            response_type=ResponseType.CODE,
            response_mode=ResponseMode.QUERY,
        ),
    )


def id_token_flow_config(reference_data: Optional[ReferenceData] = None, client_id: str = DEFAULT_CLIENT_ID) -> ServerConfig:
    return ServerConfig(
        reference_data=reference_data or default_reference_data(client_id),
        oidc=OpenIdConnectClientOptions(
            client_id=client_id,
            response_type=ResponseType.ID_TOKEN,
            response_mode=ResponseMode.FORM_POST,
        ),
    )


def build_credentials_server(config: ServerConfig, logger: Optional[LoggerPort] = None) -> FastAPI:
    logger = (logger or ConsoleLogger()).bind(component="credentials_server")

    store = InMemoryIdentityStore.seeded(config.reference_data)
    protector = DataProtector(config.signing_key)
    tokens = TokenService(config, store, protector)
    sign_in = SignInManager(store, protector)
    handler = OpenIdConnectHandler(config, protector, tokens, logger)

    app = FastAPI(title="Credentials Server", version="1.0.0")
    app.include_router(create_identity_provider_router(config, store, protector, tokens, sign_in, logger))
    app.include_router(create_applications_router(config, store, sign_in, logger))
    app.include_router(create_relying_party_router(handler, config.oidc.callback_path))

    if config.automatic_sign_in:
        install_auto_sign_in(app, config.login_path, config.reference_data, sign_in, logger)

    logger.info(
        "credentials_server.built",
        client_id=config.oidc.client_id,
        response_type=config.oidc.response_type,
        response_mode=config.oidc.response_mode,
        automatic_sign_in=config.automatic_sign_in,
    )
    return app


def build_flow_driver(
    config: ServerConfig,
    logger: Optional[LoggerPort] = None,
    user_hint: Optional[str] = None,
) -> FlowDriver:
    """Build a server for ``config`` and a driver wired to it in-process."""
    logger = logger or ConsoleLogger()
    app = build_credentials_server(config, logger)
    headers = {USER_HINT_HEADER: user_hint} if user_hint else None
    client = AsgiHttpClient(app, base_url=config.base_url, base_headers=headers)
    return FlowDriver(client, logger.bind(component="flow_driver"), url_resolver=BaseUrlResolver(config.base_url))
