from __future__ import annotations

import pytest

from application.flow_driver import FlowDriver
from domain.exceptions import UnexpectedStatusError
from domain.flow import HtmlForm
from infrastructure.logging.memory_logger import MemoryLogger
from infrastructure.url.base_url_resolver import BaseUrlResolver
from tests.mock_http_client import MockHttpClient, html, redirect

BASE = "https://localhost"


def _driver(client: MockHttpClient, logger: MemoryLogger | None = None) -> FlowDriver:
    return FlowDriver(client, logger or MemoryLogger(), url_resolver=BaseUrlResolver(BASE))


def test_redirects_are_not_followed_and_location_is_absolute() -> None:
    # Arrange
    client = MockHttpClient([redirect(f"{BASE}/Home/About", "/tfp/authorize?state=s")])
    driver = _driver(client)

    # Act
    step = driver.get("/Home/About", name="resource")

    # Assert
    assert step.status == 302
    assert step.location == f"{BASE}/tfp/authorize?state=s"
    assert step.hop == f"#1 resource GET {BASE}/Home/About"
    assert len(client.requests) == 1


def test_cookies_from_one_hop_are_sent_on_the_next() -> None:
    # Arrange
    client = MockHttpClient(
        [
            redirect(f"{BASE}/a", "/b", set_cookies=["sid=1; path=/; secure", "scoped=2; path=/other"]),
            html(f"{BASE}/b", "<p>ok</p>"),
        ]
    )
    driver = _driver(client)

    # Act
    first = driver.get("/a")
    driver.follow(first)

    # Assert
    assert "Cookie" not in client.requests[0].headers
    assert client.requests[1].headers["Cookie"] == "sid=1"
    assert driver.cookies.names() == ["scoped", "sid"]


def test_deleted_cookie_is_dropped_from_the_jar() -> None:
    client = MockHttpClient(
        [
            html(f"{BASE}/a", "", set_cookies=["sid=1; path=/"]),
            html(f"{BASE}/b", "", set_cookies=['sid=""; expires=Thu, 01 Jan 1970 00:00:00 GMT; path=/']),
            html(f"{BASE}/c", ""),
        ]
    )
    driver = _driver(client)

    driver.get("/a")
    driver.get("/b")
    driver.get("/c")

    assert "Cookie" not in client.requests[2].headers
    assert len(driver.cookies) == 0


def test_invalid_set_cookie_is_logged_and_skipped() -> None:
    logger = MemoryLogger()
    client = MockHttpClient([html(f"{BASE}/a", "", set_cookies=["", "ok=1; path=/"])])
    driver = _driver(client, logger)

    step = driver.get("/a")

    assert [c.name for c in step.set_cookies] == ["ok"]
    assert len(logger.events("flow.set_cookie_invalid")) == 1


def test_cookie_with_unknown_attribute_is_stored_and_sent() -> None:
    client = MockHttpClient(
        [
            html(f"{BASE}/a", "", set_cookies=["sid=abc; Path=/; Secure; HttpOnly; Priority=High"]),
            html(f"{BASE}/b", "", set_cookies=["pid=p1; Path=/; Secure; Partitioned"]),
            html(f"{BASE}/c", ""),
        ]
    )
    driver = _driver(client)

    step = driver.get("/a")
    driver.get("/b")
    driver.get("/c")

    assert [c.name for c in step.set_cookies] == ["sid"]
    assert driver.cookies.get("sid").value == "abc"
    assert client.requests[2].headers["Cookie"] == "sid=abc; pid=p1"


def test_expect_redirect_raises_on_non_redirect() -> None:
    logger = MemoryLogger()
    client = MockHttpClient([html(f"{BASE}/signin-oidc", "<p>Remote failure</p>", status=400)])
    driver = _driver(client, logger)

    with pytest.raises(UnexpectedStatusError) as excinfo:
        driver.get("/signin-oidc?code=bad", name="callback", expect_redirect=True)

    assert excinfo.value.actual == 400
    assert "#1 callback" in str(excinfo.value)
    assert logger.events("flow.unexpected_status")[0].fields["actual"] == 400
    # 失敗した hop も記録される
    assert driver.last is not None and driver.last.status == 400


def test_send_form_posts_fields_and_get_form_encodes_query() -> None:
    client = MockHttpClient([html(f"{BASE}/x", ""), html(f"{BASE}/y", "")])
    driver = _driver(client)

    driver.send_form(HtmlForm(action=f"{BASE}/signin-oidc", method="POST", fields=[("state", "s"), ("id_token", "t")]))
    driver.send_form(HtmlForm(action=f"{BASE}/search?a=1", method="GET", fields=[("q", "x y")]))

    assert client.requests[0].method == "POST"
    assert client.requests[0].form_list == [("state", "s"), ("id_token", "t")]
    assert client.requests[1].method == "GET"
    assert client.requests[1].url == f"{BASE}/search?a=1&q=x+y"
    assert client.requests[1].form_list is None


def test_follow_requires_a_redirect() -> None:
    client = MockHttpClient([html(f"{BASE}/a", "")])
    driver = _driver(client)
    step = driver.get("/a")

    with pytest.raises(UnexpectedStatusError):
        driver.follow(step)


def test_request_log_masks_cookie_and_code() -> None:
    logger = MemoryLogger()
    client = MockHttpClient(
        [
            redirect(f"{BASE}/a", "/b", set_cookies=["sid=secret-session; path=/"]),
            html(f"{BASE}/b?code=secret-code", ""),
        ]
    )
    driver = _driver(client, logger)

    driver.get("/a")
    driver.get("/b?code=secret-code")

    second = logger.events("flow.request")[1].fields
    assert second["headers"]["Cookie"] == "********"
    assert "secret-code" not in second["url"]
    assert logger.events("flow.cookie_diff")[0].fields["added"] == ["sid"]
