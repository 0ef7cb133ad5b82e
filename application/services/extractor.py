# application/services/extractor.py
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urljoin, urlsplit

from bs4 import BeautifulSoup

from domain.exceptions import FormNotFoundError, MissingParameterError
from domain.flow import HtmlForm

# requests/httpx では JS を実行できないので、自動 submit は HTML から判定する
_WHITESPACE_RE = re.compile(r"\s+")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def extract_query_params(url: str, *names: str, hop: Optional[str] = None) -> Dict[str, str]:
    """
    Extract the named query parameters from ``url``.

    Raises MissingParameterError for the first absent (or empty) name.
    Repeated parameters keep their first value.
    """
    query = parse_qs(urlsplit(url or "").query, keep_blank_values=True)
    out: Dict[str, str] = {}
    for name in names:
        values = query.get(name)
        if not values or not values[0]:
            raise MissingParameterError(hop, name, f"query of {url}")
        out[name] = values[0]
    return out


def _form_fields(form) -> List[Tuple[str, str]]:
    fields: List[Tuple[str, str]] = []
    for node in form.find_all(["input", "textarea", "select"]):
        name = node.get("name")
        if not name or node.has_attr("disabled"):
            continue

        if node.name == "input":
            kind = (node.get("type") or "text").lower()
            if kind in ("submit", "button", "image", "reset", "file"):
                continue
            if kind in ("checkbox", "radio") and not node.has_attr("checked"):
                continue
            default = "on" if kind in ("checkbox", "radio") else ""
            fields.append((name, node.get("value", default) or ""))
        elif node.name == "textarea":
            fields.append((name, node.get_text()))
        else:
            option = node.find("option", selected=True) or node.find("option")
            if option is not None:
                fields.append((name, option.get("value", option.get_text(strip=True))))
    return fields


def _submit_targets(soup: BeautifulSoup, form) -> List[str]:
    """JS expressions that refer to ``form``, normalised (no whitespace, single quotes)."""
    targets: List[str] = []
    forms = soup.find_all("form")
    if forms and forms[0] is form:
        targets.append("document.forms[0]")
    name = form.get("name")
    if name:
        targets += [f"document.forms['{name}']", f"document.forms.{name}", f"document.{name}"]
    form_id = form.get("id")
    if form_id:
        targets += [f"document.getElementById('{form_id}')", f"document.querySelector('#{form_id}')"]
    return [t + ".submit()" for t in targets]


def _is_auto_submit(soup: BeautifulSoup, form) -> bool:
    targets = _submit_targets(soup, form)
    if not targets:
        return False

    sources: List[str] = []
    body = soup.body
    if body is not None:
        sources.append(body.get("onload", "") or "")
    sources += [s.get_text() or "" for s in soup.find_all("script")]

    for source in sources:
        text = _WHITESPACE_RE.sub("", source).replace('"', "'")
        if any(t in text for t in targets):
            return True
    return False


def form_from_document(
    soup: BeautifulSoup,
    selector: str = "form",
    base_url: Optional[str] = None,
    hop: Optional[str] = None,
) -> HtmlForm:
    nodes = soup.select(selector)
    if len(nodes) != 1:
        raise FormNotFoundError(hop, selector, len(nodes))

    form = nodes[0]
    action = form.get("action") or base_url or ""
    if base_url:
        action = urljoin(base_url, action)

    return HtmlForm(
        action=action,
        method=(form.get("method") or "GET").upper(),
        fields=_form_fields(form),
        auto_submit=_is_auto_submit(soup, form),
    )


def extract_form_params(form: HtmlForm, *names: str, hop: Optional[str] = None) -> Dict[str, str]:
    """Same contract as extract_query_params, for the fields of a form."""
    out: Dict[str, str] = {}
    for name in names:
        value = form.field(name)
        if not value:
            raise MissingParameterError(hop, name, f"form posting to {form.action}")
        out[name] = value
    return out


def extract_form(
    html: str,
    selector: str = "form",
    base_url: Optional[str] = None,
    hop: Optional[str] = None,
) -> HtmlForm:
    """
    Extract a single form (action, method, current field values) from HTML.

    Zero or several matches raise FormNotFoundError.
    """
    return form_from_document(parse_html(html), selector=selector, base_url=base_url, hop=hop)
