# api/applications.py
from __future__ import annotations

from html import escape
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import RedirectResponse, Response

from api.identity_provider import SignInManager, read_form
from api.pages import hidden_inputs, page
from api.server_config import ServerConfig
from api.view_models import ApplicationViewModel, RemoveRedirectUriViewModel
from application.ports.logger import LoggerPort
from domain.exceptions import IdentityStoreError
from infrastructure.identity.in_memory_identity_store import InMemoryIdentityStore

APPLICATIONS_PATH = "/Identity/Applications"


def create_applications_router(
    config: ServerConfig,
    store: InMemoryIdentityStore,
    sign_in: SignInManager,
    logger: LoggerPort,
) -> APIRouter:
    router = APIRouter()

    def _require_login(request: Request) -> Response | None:
        if sign_in.current_user(request) is not None:
            return None
        return_url = request.url.path + ("?" + request.url.query if request.url.query else "")
        return RedirectResponse(config.login_path + "?" + urlencode({"ReturnUrl": return_url}), status_code=302)

    def _application(client_id: str) -> ApplicationViewModel:
        client = store.get_client(client_id)
        if client is None:
            raise HTTPException(status_code=404, detail=f"Unknown application: {client_id}")
        return ApplicationViewModel(client_id=client.client_id, name=client.name, redirect_uris=list(client.redirect_uris))

    @router.get(APPLICATIONS_PATH + "/{client_id}")
    def application_details(client_id: str, request: Request) -> Response:
        redirect = _require_login(request)
        if redirect is not None:
            return redirect
        model = _application(client_id)
        items = "".join(f"<li>{escape(uri)}</li>" for uri in model.redirect_uris)
        return page(model.name, f"<h1>{escape(model.name)}</h1><ul class=\"redirect-uris\">{items}</ul>")

    @router.get(APPLICATIONS_PATH + "/{client_id}/RemoveRedirectUri")
    def remove_redirect_uri_page(client_id: str, redirectUri: str, request: Request) -> Response:
        redirect = _require_login(request)
        if redirect is not None:
            return redirect
        application = _application(client_id)
        if redirectUri not in application.redirect_uris:
            raise HTTPException(status_code=404, detail=f"Redirect URI not registered: {redirectUri}")

        model = RemoveRedirectUriViewModel(name=application.name, redirect_uri=redirectUri)
        action = f"{APPLICATIONS_PATH}/{client_id}/RemoveRedirectUri"
        body = (
            f"<h1>Remove redirect URI from {escape(model.name)}</h1>"
            f"<p>{escape(model.redirect_uri)}</p>"
            f'<form method="post" action="{escape(action)}">'
            f"{hidden_inputs([('RedirectUri', model.redirect_uri)])}"
            '<button type="submit">Remove</button>'
            "</form>"
        )
        return page("Remove redirect URI", body)

    @router.post(APPLICATIONS_PATH + "/{client_id}/RemoveRedirectUri")
    async def remove_redirect_uri(client_id: str, request: Request) -> Response:
        redirect = _require_login(request)
        if redirect is not None:
            return redirect
        form = await read_form(request)
        try:
            store.remove_redirect_uri(client_id, form.get("RedirectUri", ""))
        except IdentityStoreError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        logger.info("idp.redirect_uri_removed", client_id=client_id, redirect_uri=form.get("RedirectUri", ""))
        return RedirectResponse(f"{APPLICATIONS_PATH}/{client_id}", status_code=302)

    return router
