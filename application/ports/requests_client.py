# application/ports/requests_client.py
from __future__ import annotations

import requests
from typing import Dict, List, Tuple, Optional

from application.ports.http_client import HttpClientPort, HttpResponse


def _set_cookie_headers(resp: requests.Response) -> List[str]:
    raw_headers = getattr(getattr(resp, "raw", None), "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        return list(raw_headers.getlist("Set-Cookie"))
    # raw が無い（モック等）場合は結合済みヘッダしか取れない
    value = resp.headers.get("Set-Cookie")
    return [value] if value else []


class RequestsSessionHttpClient(HttpClientPort):
    def __init__(self, base_headers: Optional[Dict[str, str]] = None, timeout_sec: int = 20, verify: bool = True):
        self._session = requests.Session()
        self._base_headers = base_headers or {}
        self._timeout = timeout_sec
        self._verify = verify

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

        resp = self._session.request(
            method=method.upper(),
            url=url,
            headers=merged,
            data=form_list,              # list[tuple] OK、同名キー複数OK
            timeout=self._timeout,
            allow_redirects=False,
            verify=self._verify,
        )
        # cookie は FlowDriver の jar が持つので session 側には残さない
        self._session.cookies.clear()

        return HttpResponse(
            status=resp.status_code,
            url=str(resp.url),
            text=resp.text,
            headers=dict(resp.headers),
            set_cookies=_set_cookie_headers(resp),
            encoding=resp.encoding,
            content=resp.content,
        )

    def close(self) -> None:
        self._session.close()
