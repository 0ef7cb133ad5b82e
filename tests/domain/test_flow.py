from __future__ import annotations

from domain.cookies import SetCookie
from domain.exceptions import CookieMismatchError, FlowAssertionError, UnexpectedStatusError
from domain.flow import FlowStep, HtmlForm


def _step(**overrides) -> FlowStep:
    values = dict(index=2, name="callback", method="POST", url="https://localhost/signin-oidc", status=302, headers={})
    values.update(overrides)
    return FlowStep(**values)


def test_hop_names_index_name_method_and_url() -> None:
    assert _step().hop == "#2 callback POST https://localhost/signin-oidc"


def test_is_redirect_covers_3xx_only() -> None:
    assert _step(status=302).is_redirect is True
    assert _step(status=200).is_redirect is False
    assert _step(status=400).is_redirect is False


def test_cookies_named_filters_by_exact_name() -> None:
    step = _step(set_cookies=[SetCookie(name="a", value="1"), SetCookie(name="ab", value="2")])

    assert [c.value for c in step.cookies_named("a")] == ["1"]


def test_form_with_field_replaces_first_and_drops_duplicates() -> None:
    form = HtmlForm(action="/login", method="POST", fields=[("UserName", ""), ("x", "1"), ("UserName", "dup")])

    updated = form.with_field("UserName", "alice").with_field("Password", "pw")

    assert updated.fields == [("UserName", "alice"), ("x", "1"), ("Password", "pw")]
    assert form.field("UserName") == ""


def test_flow_errors_are_assertion_errors_prefixed_with_hop() -> None:
    err = UnexpectedStatusError("#1 resource GET /", 302, 200)

    assert isinstance(err, AssertionError)
    assert isinstance(err, FlowAssertionError)
    assert str(err) == "[#1 resource GET /] status: expected 302, actual 200"


def test_cookie_mismatch_lists_every_field() -> None:
    err = CookieMismatchError("#1", "name", ["value: expected 'N', actual 'x'", "path: expected '/', actual None"])

    lines = str(err).splitlines()
    assert lines[0] == "[#1] cookie 'name' does not match"
    assert len(lines) == 3
