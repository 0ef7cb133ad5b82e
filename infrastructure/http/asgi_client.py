# infrastructure/http/asgi_client.py
from __future__ import annotations

from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

from fastapi import FastAPI
from fastapi.testclient import TestClient

from application.ports.http_client import HttpClientPort, HttpResponse


class AsgiHttpClient(HttpClientPort):
    """
    In-process transport: requests go straight into an ASGI app.

    Redirects are not followed and the underlying client's cookie store is
    cleared after every call, so the flow driver's jar stays authoritative.
    """

    def __init__(self, app: FastAPI, base_url: str = "https://localhost", base_headers: Optional[Dict[str, str]] = None):
        self._client = TestClient(app, base_url=base_url, follow_redirects=False)
        self._base_headers = base_headers or {}

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        form_list: Optional[List[Tuple[str, str]]] = None,
    ) -> HttpResponse:
        merged = dict(self._base_headers)
        if headers:
            merged.update(headers)

        content: Optional[bytes] = None
        if form_list is not None:
            content = urlencode(form_list).encode("ascii")
            merged.setdefault("Content-Type", "application/x-www-form-urlencoded")

        resp = self._client.request(method.upper(), url, headers=merged, content=content)
        self._client.cookies.clear()

        return HttpResponse(
            status=resp.status_code,
            url=str(resp.url),
            text=resp.text,
            headers=dict(resp.headers),
            set_cookies=resp.headers.get_list("set-cookie"),
            encoding=resp.encoding,
            content=resp.content,
        )

    def close(self) -> None:
        self._client.close()
