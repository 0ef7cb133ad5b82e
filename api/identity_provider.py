# api/identity_provider.py
from __future__ import annotations

from datetime import timedelta
from typing import Dict, Optional
from urllib.parse import parse_qsl, urlencode

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from api.cookies import issue_cookie
from api.pages import auto_post_form, error_page, login_form
from api.protector import DataProtector, InvalidPayloadError
from api.server_config import AUTHORIZE_PATH, TOKEN_PATH, ServerConfig
from api.token_service import TokenService
from application.ports.logger import LoggerPort
from domain.exceptions import IdentityStoreError
from domain.oidc import (
    APPLICATIONS_SESSION_COOKIE,
    IDENTITY_APPLICATION_COOKIE,
    LOGIN_PASSWORD_FIELD,
    LOGIN_USER_FIELD,
    Param,
    ResponseMode,
    ResponseType,
)
from domain.reference_data import UserAccount
from infrastructure.identity.in_memory_identity_store import InMemoryIdentityStore

LOGIN_PURPOSE = "identity.application"
SESSION_PURPOSE = "applications.session"
LOGIN_LIFETIME = timedelta(hours=1)


async def read_form(request: Request) -> Dict[str, str]:
    body = (await request.body()).decode("utf-8", errors="replace")
    # 同名キーは最後の値を採用
    return dict(parse_qsl(body, keep_blank_values=True))


def safe_return_url(raw: Optional[str]) -> Optional[str]:
    """Only local paths are accepted as a post-login destination."""
    if not raw or not raw.startswith("/") or raw.startswith("//"):
        return None
    return raw


def return_url_of(request: Request) -> Optional[str]:
    for key, value in request.query_params.items():
        if key.lower() == "returnurl":
            return value
    return None


class SignInManager:
    """Issue and read the identity provider's login cookie."""

    def __init__(self, store: InMemoryIdentityStore, protector: DataProtector):
        self._store = store
        self._protector = protector

    def current_user(self, request: Request) -> Optional[UserAccount]:
        try:
            ticket = self._protector.unprotect(LOGIN_PURPOSE, request.cookies.get(IDENTITY_APPLICATION_COOKIE))
        except InvalidPayloadError:
            return None
        return self._store.find_user(str(ticket.get("sub", "")))

    def password_sign_in(self, user_name: str, password: str) -> Optional[UserAccount]:
        return self._store.verify_password(user_name, password)

    def sign_in_redirect(self, user: UserAccount, return_url: str) -> RedirectResponse:
        response = RedirectResponse(return_url, status_code=302)
        ticket = self._protector.protect(LOGIN_PURPOSE, {"sub": user.user_name}, LOGIN_LIFETIME)
        issue_cookie(response, IDENTITY_APPLICATION_COOKIE, ticket)
        return response


def create_identity_provider_router(
    config: ServerConfig,
    store: InMemoryIdentityStore,
    protector: DataProtector,
    tokens: TokenService,
    sign_in: SignInManager,
    logger: LoggerPort,
) -> APIRouter:
    router = APIRouter()

    @router.get(AUTHORIZE_PATH)
    def authorize(request: Request) -> Response:
        q = request.query_params
        client_id = q.get(Param.CLIENT_ID, "")
        redirect_uri = q.get(Param.REDIRECT_URI, "")
        state = q.get(Param.STATE)

        if not store.is_redirect_uri_allowed(client_id, redirect_uri):
            # 未登録の redirect_uri には絶対にリダイレクトしない
            logger.warning("idp.authorize_rejected", client_id=client_id, redirect_uri=redirect_uri)
            return error_page("Invalid request", f"Unknown client or redirect URI: {client_id}")

        user = sign_in.current_user(request)
        if user is None:
            return_url = request.url.path + ("?" + request.url.query if request.url.query else "")
            login_url = config.login_path + "?" + urlencode({"ReturnUrl": return_url})
            logger.info("idp.login_required", client_id=client_id)
            return RedirectResponse(login_url, status_code=302)

        response_type = q.get(Param.RESPONSE_TYPE, "")
        response_mode = q.get(Param.RESPONSE_MODE) or (
            ResponseMode.QUERY if response_type == ResponseType.CODE else ResponseMode.FORM_POST
        )
        nonce = q.get(Param.NONCE)
        scopes = tuple((q.get(Param.SCOPE) or "").split())

        if response_type == ResponseType.CODE:
            code = store.issue_code(client_id, redirect_uri, user.user_name, nonce, scopes)
            params = {Param.CODE: code}
        elif response_type == ResponseType.ID_TOKEN:
            params = {Param.ID_TOKEN: tokens.issue_id_token(user.user_name, client_id, nonce)}
        else:
            params = {Param.ERROR: "unsupported_response_type"}
        if state is not None:
            params[Param.STATE] = state

        if response_mode == ResponseMode.FORM_POST:
            response: Response = auto_post_form(redirect_uri, list(params.items()))
        else:
            sep = "&" if "?" in redirect_uri else "?"
            response = RedirectResponse(redirect_uri + sep + urlencode(params), status_code=302)

        session = protector.protect(SESSION_PURPOSE, {"sub": user.user_name, "client_id": client_id}, LOGIN_LIFETIME)
        issue_cookie(response, APPLICATIONS_SESSION_COOKIE, session)
        logger.info(
            "idp.authorized",
            client_id=client_id,
            user=user.user_name,
            response_type=response_type,
            response_mode=response_mode,
        )
        return response

    @router.get(config.login_path)
    def login_page(request: Request) -> Response:
        return_url = safe_return_url(return_url_of(request)) or "/"
        return login_form(config.login_path, return_url)

    @router.post(config.login_path)
    async def login(request: Request) -> Response:
        form = await read_form(request)
        return_url = safe_return_url(form.get("ReturnUrl") or return_url_of(request)) or "/"
        user = sign_in.password_sign_in(form.get(LOGIN_USER_FIELD, ""), form.get(LOGIN_PASSWORD_FIELD, ""))
        if user is None:
            logger.warning("idp.login_failed", user=form.get(LOGIN_USER_FIELD, ""))
            return login_form(config.login_path, return_url, error="Invalid login attempt.", status_code=400)
        logger.info("idp.login", user=user.user_name)
        return sign_in.sign_in_redirect(user, return_url)

    @router.post(TOKEN_PATH)
    async def token(request: Request) -> Response:
        form = await read_form(request)
        if form.get("grant_type") != "authorization_code":
            return JSONResponse({"error": "unsupported_grant_type"}, status_code=400)
        try:
            result = tokens.redeem(
                form.get(Param.CODE, ""),
                form.get(Param.CLIENT_ID, ""),
                form.get(Param.REDIRECT_URI, ""),
            )
        except IdentityStoreError as e:
            logger.warning("idp.token_rejected", error=str(e))
            return JSONResponse({"error": "invalid_grant", "error_description": str(e)}, status_code=400)
        return JSONResponse(result.model_dump())

    return router
