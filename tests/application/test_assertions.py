from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from application.assertions import (
    assert_has_cookie,
    assert_has_form,
    assert_html,
    assert_location_has_query_parameters,
    assert_ok,
    assert_redirect,
    assert_status,
)
from domain.cookies import CookieComparison, ExpectedCookie, SetCookie
from domain.exceptions import (
    CookieMismatchError,
    FlowAssertionError,
    FormNotFoundError,
    MissingParameterError,
    UnexpectedStatusError,
)
from domain.flow import FlowStep


def _step(status: int = 200, **overrides) -> FlowStep:
    values = dict(index=1, name="hop", method="GET", url="https://localhost/x", status=status, headers={})
    values.update(overrides)
    return FlowStep(**values)


def test_assert_status_accepts_one_or_many() -> None:
    assert_status(_step(302), 302)
    assert_status(_step(303), [302, 303])

    with pytest.raises(UnexpectedStatusError) as excinfo:
        assert_status(_step(200), [302, 303])
    assert excinfo.value.expected == [302, 303]


def test_assert_redirect_returns_location() -> None:
    assert assert_redirect(_step(302, location="https://localhost/y")) == "https://localhost/y"


def test_assert_redirect_without_location_fails() -> None:
    with pytest.raises(FlowAssertionError):
        assert_redirect(_step(302))


def test_assert_redirect_on_200_fails_with_status() -> None:
    with pytest.raises(UnexpectedStatusError) as excinfo:
        assert_redirect(_step(200))
    assert excinfo.value.actual == 200


def test_assert_ok_rejects_error_status() -> None:
    with pytest.raises(UnexpectedStatusError):
        assert_ok(_step(400))


def test_assert_html_requires_html_content_type() -> None:
    document = assert_html(_step(content_type="text/html; charset=utf-8", text="<form></form>"))
    assert document.find("form") is not None

    with pytest.raises(FlowAssertionError):
        assert_html(_step(content_type="application/json", text="{}"))


def test_assert_has_form_counts_matches() -> None:
    document = assert_html(_step(content_type="text/html", text="<form></form><form></form>"))

    with pytest.raises(FormNotFoundError):
        assert_has_form(document, hop="#1 hop")


def test_assert_location_has_query_parameters() -> None:
    step = _step(302, location="https://localhost/signin-oidc?code=c&state=s")

    assert assert_location_has_query_parameters(step, "code", "state") == {"code": "c", "state": "s"}
    with pytest.raises(MissingParameterError):
        assert_location_has_query_parameters(step, "id_token")


def test_assert_has_cookie_by_name() -> None:
    step = _step(set_cookies=[SetCookie(name=".AspNetCore.Cookies", value="x")])

    result = assert_has_cookie(".AspNetCore.Cookies", step, CookieComparison.NAME_EQUALS)

    assert result.actual.value == "x"


def test_assert_has_cookie_by_name_defaults_to_name_only() -> None:
    step = _step(set_cookies=[SetCookie(name=".AspNetCore.Cookies", value="x", path="/", secure=True)])

    result = assert_has_cookie(".AspNetCore.Cookies", step)

    assert result.matched is True


def test_assert_has_cookie_expected_cookie_defaults_to_strict() -> None:
    step = _step(set_cookies=[SetCookie(name="sid", value="x", path="/")])

    with pytest.raises(CookieMismatchError) as excinfo:
        assert_has_cookie(ExpectedCookie(name="sid", value="y", path="/"), step)

    assert "value" in [m.field for m in excinfo.value.mismatches]


def test_assert_has_cookie_reports_missing_cookie_with_seen_names() -> None:
    step = _step(set_cookies=[SetCookie(name="other", value="x")])

    with pytest.raises(CookieMismatchError) as excinfo:
        assert_has_cookie(".AspNetCore.Cookies", step, CookieComparison.NAME_EQUALS)

    assert "other" in str(excinfo.value)


def test_assert_has_cookie_reports_closest_candidate() -> None:
    expires = datetime.now(timezone.utc) + timedelta(minutes=15)
    step = _step(
        set_cookies=[
            SetCookie(name="c.1", value="bad", path="/x", expires=expires),
            SetCookie(name="c.2", value="bad", path="/", secure=True, http_only=True, expires=expires),
        ]
    )
    expected = ExpectedCookie(name="c.", value="N", path="/", secure=True, http_only=True, expires=expires)
    criteria = CookieComparison.STRICT & ~CookieComparison.NAME_EQUALS | CookieComparison.NAME_STARTS_WITH

    with pytest.raises(CookieMismatchError) as excinfo:
        assert_has_cookie(expected, step, criteria)

    assert [m.field for m in excinfo.value.mismatches] == ["value"]


def test_assert_has_cookie_any_full_match_passes() -> None:
    step = _step(set_cookies=[SetCookie(name="c.1", value="bad"), SetCookie(name="c.2", value="N")])
    criteria = CookieComparison.NAME_STARTS_WITH | CookieComparison.VALUE

    result = assert_has_cookie(ExpectedCookie(name="c.", value="N"), step, criteria)

    assert result.actual.name == "c.2"
