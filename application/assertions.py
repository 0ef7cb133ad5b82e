# application/assertions.py
"""
Declarative per-hop assertions.

Every helper raises a FlowAssertionError subclass naming the hop and the
field that diverged. Nothing here retries.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Union

from bs4 import BeautifulSoup

from application.services.cookie_comparator import CookieComparator, CookieComparisonResult, name_matches
from application.services.extractor import extract_form_params, extract_query_params, form_from_document, parse_html
from domain.cookies import CookieComparison, ExpectedCookie
from domain.exceptions import CookieMismatchError, FlowAssertionError, UnexpectedStatusError
from domain.flow import FlowStep, HtmlForm

_COMPARATOR = CookieComparator()


def assert_status(step: FlowStep, expected: Union[int, Iterable[int]]) -> None:
    allowed = {expected} if isinstance(expected, int) else set(expected)
    if step.status not in allowed:
        shown = expected if isinstance(expected, int) else sorted(allowed)
        raise UnexpectedStatusError(step.hop, shown, step.status, step.location)


def assert_redirect(step: FlowStep) -> str:
    """Assert a 3xx response carrying a Location header and return it."""
    if not step.is_redirect:
        raise UnexpectedStatusError(step.hop, "3xx", step.status, step.location)
    if not step.location:
        raise FlowAssertionError(step.hop, "header 'Location': expected present, actual <missing>")
    return step.location


def assert_ok(step: FlowStep) -> None:
    assert_status(step, 200)


def assert_html(step: FlowStep) -> BeautifulSoup:
    content_type = (step.content_type or "").split(";", 1)[0].strip().lower()
    if content_type != "text/html":
        raise FlowAssertionError(step.hop, f"content type: expected 'text/html', actual {step.content_type!r}")
    return parse_html(step.text)


def assert_has_form(document: BeautifulSoup, selector: str = "form", base_url: Optional[str] = None, hop: Optional[str] = None) -> HtmlForm:
    return form_from_document(document, selector=selector, base_url=base_url, hop=hop)


def assert_location_has_query_parameters(step: FlowStep, *names: str) -> Dict[str, str]:
    location = assert_redirect(step)
    return extract_query_params(location, *names, hop=step.hop)


def assert_form_has_parameters(step: FlowStep, form: HtmlForm, *names: str) -> Dict[str, str]:
    return extract_form_params(form, *names, hop=step.hop)


def assert_has_cookie(
    expected: Union[ExpectedCookie, str],
    step: FlowStep,
    criteria: Optional[CookieComparison] = None,
) -> CookieComparisonResult:
    """
    Assert that ``step`` set a cookie matching ``expected`` under ``criteria``.

    A plain string is shorthand for an ExpectedCookie with only a name and
    is compared by name alone unless criteria say otherwise; an
    ExpectedCookie defaults to STRICT.
    When several candidates share the name, any full match passes; otherwise
    the mismatches of the closest candidate are reported.
    """
    if isinstance(expected, str):
        expected = ExpectedCookie(name=expected)
        if criteria is None:
            criteria = CookieComparison.NAME_EQUALS
    if criteria is None:
        criteria = CookieComparison.STRICT

    candidates: List[CookieComparisonResult] = [
        _COMPARATOR.compare(expected, actual, criteria)
        for actual in step.set_cookies
        if name_matches(expected.name, actual.name, criteria)
    ]
    for result in candidates:
        if result.matched:
            return result

    if not candidates:
        seen = [c.name for c in step.set_cookies]
        raise CookieMismatchError(step.hop, expected.name, [f"name: expected a Set-Cookie, actual {seen!r}"])

    best = min(candidates, key=lambda r: len(r.mismatches))
    raise CookieMismatchError(step.hop, expected.name, best.mismatches)
