# api/auto_sign_in.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import Response

from api.identity_provider import SignInManager, return_url_of, safe_return_url
from api.pages import error_page
from application.ports.logger import LoggerPort
from domain.oidc import USER_HINT_HEADER
from domain.reference_data import ReferenceData


def install_auto_sign_in(
    app: FastAPI,
    login_path: str,
    reference_data: ReferenceData,
    sign_in: SignInManager,
    logger: LoggerPort,
) -> None:
    """
    Short-circuit the login page: any request to ``login_path`` that carries
    a return URL signs in a reference user and redirects back.

    The user comes from the X-Identity-Test-User-Hint header when present,
    otherwise the first reference user is used. Credentials still go through
    the real password check.
    """
    prefix = login_path.rstrip("/").lower()

    @app.middleware("http")
    async def auto_sign_in(request: Request, call_next) -> Response:
        path = request.url.path.rstrip("/").lower()
        if path != prefix and not path.startswith(prefix + "/"):
            return await call_next(request)

        return_url = safe_return_url(return_url_of(request))
        if return_url is None:
            return await call_next(request)

        hint = request.headers.get(USER_HINT_HEADER)
        account = reference_data.get_user(hint) if hint else reference_data.get_default_user()
        if account is None:
            logger.error("idp.auto_sign_in_failed", hint=hint, reason="unknown user")
            return error_page("Sign-in failed", f"No reference user for hint: {hint}")

        user = sign_in.password_sign_in(account.user_name, account.password)
        if user is None:
            logger.error("idp.auto_sign_in_failed", hint=hint, reason="password rejected")
            return error_page("Sign-in failed", f"Password sign-in failed for {account.user_name}")

        logger.info("idp.auto_sign_in", user=user.user_name)
        return sign_in.sign_in_redirect(user, return_url)
