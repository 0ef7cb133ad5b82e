# application/flow_driver.py
from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Tuple
from urllib.parse import urlencode, urljoin

from application.ports.http_client import HttpClientPort, HttpResponse
from application.ports.logger import LoggerPort
from application.services.redactor import mask_dict, mask_pairs, mask_url
from domain.cookies import CookieJar, SetCookie, diff_snapshots
from domain.exceptions import UnexpectedStatusError
from domain.flow import FlowStep, HtmlForm


class UrlResolverPort(Protocol):
    def resolve_url(self, url: str, relative_to: Optional[str] = None) -> str:
        ...


def _parse_set_cookies(resp: HttpResponse, logger: LoggerPort, hop: str) -> List[SetCookie]:
    parsed: List[SetCookie] = []
    for header in resp.set_cookies or []:
        try:
            parsed.append(SetCookie.parse(header))
        except ValueError as e:
            # 壊れた Set-Cookie はブラウザ同様に無視する（ログには残す）
            logger.warning("flow.set_cookie_invalid", hop=hop, error=str(e))
    return parsed


class FlowDriver:
    """
    Issue the requests of one flow, one hop at a time.

    Redirects are never followed automatically: each hop returns a FlowStep
    and the caller decides where to go next. The driver owns the cookie jar
    and updates it from the Set-Cookie headers of every response before the
    step is returned.
    """

    def __init__(
        self,
        http_client: HttpClientPort,
        logger: LoggerPort,
        url_resolver: Optional[UrlResolverPort] = None,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        self._http = http_client
        self._logger = logger
        self._resolver = url_resolver
        self._default_headers = dict(default_headers or {})
        self._jar = CookieJar()
        self._steps: List[FlowStep] = []

    @property
    def cookies(self) -> CookieJar:
        return self._jar

    @property
    def steps(self) -> List[FlowStep]:
        return list(self._steps)

    @property
    def last(self) -> Optional[FlowStep]:
        return self._steps[-1] if self._steps else None

    def get(
        self,
        url: str,
        name: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        expect_redirect: bool = False,
    ) -> FlowStep:
        return self._send("GET", url, name, headers, None, expect_redirect)

    def send_form(
        self,
        form: HtmlForm,
        name: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        expect_redirect: bool = False,
    ) -> FlowStep:
        """Submit ``form`` with its current field values."""
        method = (form.method or "GET").upper()
        if method == "GET":
            sep = "&" if "?" in form.action else "?"
            url = form.action + (sep + urlencode(form.fields) if form.fields else "")
            return self._send("GET", url, name, headers, None, expect_redirect)
        return self._send(method, form.action, name, headers, list(form.fields), expect_redirect)

    def follow(
        self,
        step: FlowStep,
        name: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        expect_redirect: bool = False,
    ) -> FlowStep:
        """GET the Location of a redirect step."""
        if not step.is_redirect or not step.location:
            raise UnexpectedStatusError(step.hop, "3xx with Location", step.status, step.location)
        return self.get(step.location, name=name, headers=headers, expect_redirect=expect_redirect)

    def _resolve(self, url: str) -> str:
        if self._resolver is None:
            return url
        return self._resolver.resolve_url(url)

    def _send(
        self,
        method: str,
        url: str,
        name: Optional[str],
        headers: Optional[Dict[str, str]],
        form_list: Optional[List[Tuple[str, str]]],
        expect_redirect: bool,
    ) -> FlowStep:
        index = len(self._steps) + 1
        url = self._resolve(url)
        step_name = name or f"step{index}"
        hop = f"#{index} {step_name}"

        merged = dict(self._default_headers)
        if headers:
            merged.update(headers)
        cookie_header = self._jar.header_for(url)
        if cookie_header:
            merged["Cookie"] = cookie_header

        self._logger.info(
            "flow.request",
            hop=hop,
            method=method,
            url=mask_url(url),
            headers=mask_dict(merged),
            form=mask_pairs(form_list or []),
        )

        resp = self._http.request(method=method, url=url, headers=merged, form_list=form_list)

        set_cookies = _parse_set_cookies(resp, self._logger, hop)
        before = self._jar.snapshot()
        for cookie in set_cookies:
            self._jar.apply(cookie)
        diff = diff_snapshots(before, self._jar.snapshot())

        location = resp.header("Location")
        if location:
            location = self._resolver.resolve_url(location, relative_to=url) if self._resolver else urljoin(url, location)

        step = FlowStep(
            index=index,
            name=step_name,
            method=method,
            url=url,
            status=resp.status,
            headers=dict(resp.headers or {}),
            set_cookies=set_cookies,
            location=location,
            text=resp.text or "",
            content_type=resp.header("Content-Type"),
        )
        self._steps.append(step)

        self._logger.info(
            "flow.response",
            hop=hop,
            status=step.status,
            location=mask_url(location) if location else None,
            content_type=step.content_type,
            set_cookie=[c.name for c in set_cookies],
            body_len=len(step.text),
        )
        self._logger.debug(
            "flow.cookie_diff",
            hop=hop,
            added=sorted(diff.added),
            removed=sorted(diff.removed),
            changed=sorted(diff.changed),
        )

        if expect_redirect and not step.is_redirect:
            self._logger.error("flow.unexpected_status", hop=hop, expected="3xx", actual=step.status)
            raise UnexpectedStatusError(step.hop, "3xx", step.status, location)

        return step
