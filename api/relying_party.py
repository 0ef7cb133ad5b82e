# api/relying_party.py
from __future__ import annotations

import secrets
from datetime import timedelta
from html import escape
from typing import Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse, Response

from api.cookies import expire_cookie, issue_cookie
from api.identity_provider import read_form
from api.pages import error_page, page
from api.protector import DataProtector, InvalidPayloadError
from api.server_config import AUTHORIZE_PATH, ServerConfig
from api.token_service import TokenService
from application.ports.logger import LoggerPort
from domain.exceptions import IdentityStoreError
from domain.oidc import (
    COOKIE_MARKER,
    CORRELATION_COOKIE_LIFETIME_MIN,
    CORRELATION_COOKIE_PREFIX,
    NONCE_COOKIE_PREFIX,
    RELYING_PARTY_SESSION_COOKIE,
    Param,
    ResponseType,
)

STATE_PURPOSE = "oidc.state"
SESSION_PURPOSE = "relying_party.session"
PROTECTED_RESOURCE_PATH = "/Home/About"


class RemoteFailure(Exception):
    """The callback could not be validated (correlation, nonce, code...)."""


class OpenIdConnectHandler:
    """
    Relying-party side of the flow: challenge on unauthenticated access,
    validate the callback, then swap the correlation/nonce cookies for a
    session cookie.
    """

    def __init__(self, config: ServerConfig, protector: DataProtector, tokens: TokenService, logger: LoggerPort):
        self._config = config
        self._options = config.oidc
        self._protector = protector
        self._tokens = tokens
        self._logger = logger
        self._cookie_lifetime = timedelta(minutes=CORRELATION_COOKIE_LIFETIME_MIN)

    def current_user(self, request: Request) -> Optional[str]:
        try:
            ticket = self._protector.unprotect(SESSION_PURPOSE, request.cookies.get(RELYING_PARTY_SESSION_COOKIE))
        except InvalidPayloadError:
            return None
        return str(ticket.get("sub") or "") or None

    def challenge(self, redirect_after: str) -> Response:
        correlation_id = secrets.token_urlsafe(16)
        nonce = secrets.token_urlsafe(16)
        state = self._protector.protect(
            STATE_PURPOSE,
            {"correlation": correlation_id, "redirect": redirect_after},
            self._cookie_lifetime,
        )
        params = {
            Param.CLIENT_ID: self._options.client_id,
            Param.REDIRECT_URI: self._config.callback_url,
            Param.RESPONSE_TYPE: self._options.response_type,
            Param.RESPONSE_MODE: self._options.response_mode,
            Param.SCOPE: " ".join(self._options.scopes),
            Param.STATE: state,
            Param.NONCE: nonce,
        }
        response = RedirectResponse(self._config.absolute(AUTHORIZE_PATH) + "?" + urlencode(params), status_code=302)
        issue_cookie(
            response,
            NONCE_COOKIE_PREFIX + nonce,
            COOKIE_MARKER,
            path=self._options.nonce_cookie_path,
            lifetime=self._cookie_lifetime,
        )
        issue_cookie(
            response,
            CORRELATION_COOKIE_PREFIX + correlation_id,
            COOKIE_MARKER,
            path=self._options.correlation_cookie_path,
            lifetime=self._cookie_lifetime,
        )
        self._logger.info("rp.challenge", redirect=redirect_after)
        return response

    def handle_callback(self, request: Request, message: Dict[str, str]) -> Response:
        try:
            if message.get(Param.ERROR):
                raise RemoteFailure(f"identity provider returned error: {message[Param.ERROR]}")
            try:
                properties = self._protector.unprotect(STATE_PURPOSE, message.get(Param.STATE))
            except InvalidPayloadError as e:
                raise RemoteFailure(f"invalid state: {e}") from e

            correlation_cookie = CORRELATION_COOKIE_PREFIX + str(properties.get("correlation", ""))
            if request.cookies.get(correlation_cookie) != COOKIE_MARKER:
                raise RemoteFailure("correlation failed")

            claims = self._read_identity(message)
            nonce_cookie = NONCE_COOKIE_PREFIX + str(claims.get("nonce", ""))
            if not claims.get("nonce") or request.cookies.get(nonce_cookie) != COOKIE_MARKER:
                raise RemoteFailure("nonce cookie not found")
        except RemoteFailure as e:
            self._logger.warning("rp.callback_failed", error=str(e))
            return error_page("Remote failure", str(e))

        redirect = str(properties.get("redirect") or "/")
        response = RedirectResponse(redirect, status_code=302)
        session = self._protector.protect(SESSION_PURPOSE, {"sub": claims["sub"]})
        issue_cookie(response, RELYING_PARTY_SESSION_COOKIE, session)
        expire_cookie(response, correlation_cookie, path=self._options.correlation_cookie_path)
        expire_cookie(response, nonce_cookie, path=self._options.nonce_cookie_path)
        self._logger.info("rp.signed_in", user=claims["sub"], redirect=redirect)
        return response

    def _read_identity(self, message: Dict[str, str]) -> Dict[str, object]:
        if self._options.response_type == ResponseType.CODE:
            code = message.get(Param.CODE)
            if not code:
                raise RemoteFailure("code missing")
            try:
                token = self._tokens.redeem(code, self._options.client_id, self._config.callback_url)
            except IdentityStoreError as e:
                raise RemoteFailure(str(e)) from e
            id_token = token.id_token
        else:
            id_token = message.get(Param.ID_TOKEN) or ""
            if not id_token:
                raise RemoteFailure("id_token missing")
        try:
            return self._tokens.read_id_token(id_token, self._options.client_id)
        except InvalidPayloadError as e:
            raise RemoteFailure(str(e)) from e


def create_relying_party_router(handler: OpenIdConnectHandler, callback_path: str) -> APIRouter:
    router = APIRouter()

    @router.get("/")
    def home() -> Response:
        return page("Home", f'<h1>Home</h1><a href="{PROTECTED_RESOURCE_PATH}">About</a>')

    @router.get(PROTECTED_RESOURCE_PATH)
    def about(request: Request) -> Response:
        user = handler.current_user(request)
        if user is None:
            return handler.challenge(PROTECTED_RESOURCE_PATH)
        return page("About", f"<h1>About</h1><p>Signed in as {escape(user)}.</p>")

    @router.get(callback_path)
    def callback_query(request: Request) -> Response:
        return handler.handle_callback(request, dict(request.query_params))

    @router.post(callback_path)
    async def callback_form_post(request: Request) -> Response:
        return handler.handle_callback(request, await read_form(request))

    return router
