# application/flows.py
"""
Protocol stage scripts.

Authorization Code:
    ResourceRequest -> Authorize(unauthenticated) -> Login
    -> Authorize(authenticated) -> Callback(code, state)
    -> ResourceRequest(authenticated)

ID Token (form_post):
    ... Login -> Authorize(authenticated) -> AutoSubmitForm -> Callback
    -> ResourceRequest(authenticated)

Terminal state for both: 200 OK HTML on the protected resource.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from application.assertions import (
    assert_form_has_parameters,
    assert_has_cookie,
    assert_has_form,
    assert_html,
    assert_location_has_query_parameters,
    assert_ok,
    assert_redirect,
)
from application.flow_driver import FlowDriver
from domain.cookies import DELETE, CookieComparison, ExpectedCookie
from domain.exceptions import FlowAssertionError
from domain.flow import FlowStep
from domain.oidc import (
    APPLICATIONS_SESSION_COOKIE,
    COOKIE_MARKER,
    CORRELATION_COOKIE_LIFETIME_MIN,
    CORRELATION_COOKIE_PREFIX,
    IDENTITY_APPLICATION_COOKIE,
    LOGIN_PASSWORD_FIELD,
    LOGIN_USER_FIELD,
    NONCE_COOKIE_PREFIX,
    RELYING_PARTY_SESSION_COOKIE,
    Param,
)

# correlation / nonce cookie は名前の後ろにランダム値が付くので prefix で照合する
OIDC_COOKIE_CRITERIA = CookieComparison.STRICT & ~CookieComparison.NAME_EQUALS | CookieComparison.NAME_STARTS_WITH


def _oidc_cookie(prefix: str, expires: Optional[datetime]) -> ExpectedCookie:
    if expires is None:
        expires = datetime.now(timezone.utc) + timedelta(minutes=CORRELATION_COOKIE_LIFETIME_MIN)
    return ExpectedCookie(
        name=prefix,
        value=COOKIE_MARKER,
        path="/",
        secure=True,
        http_only=True,
        expires=expires,
    )


def expected_correlation_cookie(expires: Optional[datetime] = None) -> ExpectedCookie:
    return _oidc_cookie(CORRELATION_COOKIE_PREFIX, expires)


def expected_nonce_cookie(expires: Optional[datetime] = None) -> ExpectedCookie:
    return _oidc_cookie(NONCE_COOKIE_PREFIX, expires)


@dataclass
class FlowResult:
    steps: List[FlowStep] = field(default_factory=list)
    authorize_parameters: Dict[str, str] = field(default_factory=dict)
    callback_parameters: Dict[str, str] = field(default_factory=dict)

    @property
    def final(self) -> FlowStep:
        return self.steps[-1]


def challenge(driver: FlowDriver, resource_url: str, result: FlowResult) -> str:
    """Unauthenticated resource request: expect the authorize redirect."""
    step = driver.get(resource_url, name="resource_request")
    result.steps.append(step)

    location = assert_redirect(step)
    assert_has_cookie(expected_nonce_cookie(), step, OIDC_COOKIE_CRITERIA)
    assert_has_cookie(expected_correlation_cookie(), step, OIDC_COOKIE_CRITERIA)
    result.authorize_parameters = assert_location_has_query_parameters(step, Param.STATE)
    return location


def sign_in(
    driver: FlowDriver,
    authorize_url: str,
    result: FlowResult,
    credentials: Optional[Tuple[str, str]] = None,
) -> str:
    """
    Authorize without a login cookie, then log in.

    Without credentials the login endpoint is expected to sign in on GET
    (automatic sign-in); with credentials the login form is filled and
    submitted. Returns the authenticated authorize URL.
    """
    step = driver.get(authorize_url, name="authorize_unauthenticated")
    result.steps.append(step)
    login_url = assert_redirect(step)

    step = driver.get(login_url, name="login")
    result.steps.append(step)
    if credentials is not None:
        assert_ok(step)
        form = assert_has_form(assert_html(step), "form", base_url=step.url, hop=step.hop)
        user_name, password = credentials
        form = form.with_field(LOGIN_USER_FIELD, user_name).with_field(LOGIN_PASSWORD_FIELD, password)
        step = driver.send_form(form, name="login_submit")
        result.steps.append(step)

    location = assert_redirect(step)
    assert_has_cookie(IDENTITY_APPLICATION_COOKIE, step, CookieComparison.NAME_EQUALS)
    return location


def complete_callback(callback: FlowStep) -> str:
    """The relying party callback response: session set, correlation + nonce deleted."""
    location = assert_redirect(callback)
    assert_has_cookie(RELYING_PARTY_SESSION_COOKIE, callback, CookieComparison.NAME_EQUALS)
    assert_has_cookie(expected_correlation_cookie(DELETE), callback, CookieComparison.DELETE)
    assert_has_cookie(expected_nonce_cookie(DELETE), callback, CookieComparison.DELETE)
    return location


def _assert_same_state(step: FlowStep, result: FlowResult) -> None:
    expected_state = result.authorize_parameters.get(Param.STATE)
    actual_state = result.callback_parameters.get(Param.STATE)
    if expected_state != actual_state:
        raise FlowAssertionError(step.hop, f"state: expected {expected_state!r}, actual {actual_state!r}")


def load_protected_resource(driver: FlowDriver, url: str, result: FlowResult) -> FlowStep:
    step = driver.get(url, name="resource_authenticated")
    result.steps.append(step)
    assert_ok(step)
    assert_html(step)
    return step


def run_authorization_code_flow(
    driver: FlowDriver,
    resource_url: str,
    credentials: Optional[Tuple[str, str]] = None,
) -> FlowResult:
    result = FlowResult()

    authorize_url = challenge(driver, resource_url, result)
    location = sign_in(driver, authorize_url, result, credentials)

    step = driver.get(location, name="authorize_authenticated")
    result.steps.append(step)
    callback_url = assert_redirect(step)
    assert_has_cookie(APPLICATIONS_SESSION_COOKIE, step, CookieComparison.NAME_EQUALS)
    result.callback_parameters = assert_location_has_query_parameters(step, Param.CODE, Param.STATE)

    _assert_same_state(step, result)

    callback = driver.get(callback_url, name="callback")
    result.steps.append(callback)
    resource_location = complete_callback(callback)

    load_protected_resource(driver, resource_location, result)
    return result


def run_id_token_flow(
    driver: FlowDriver,
    resource_url: str,
    credentials: Optional[Tuple[str, str]] = None,
) -> FlowResult:
    result = FlowResult()

    authorize_url = challenge(driver, resource_url, result)
    location = sign_in(driver, authorize_url, result, credentials)

    step = driver.get(location, name="authorize_authenticated")
    result.steps.append(step)
    assert_ok(step)
    document = assert_html(step)
    form = assert_has_form(document, "form", base_url=step.url, hop=step.hop)
    if not form.auto_submit:
        raise FlowAssertionError(step.hop, "form: expected auto-submit, actual manual submit")
    result.callback_parameters = assert_form_has_parameters(step, form, Param.ID_TOKEN, Param.STATE)
    _assert_same_state(step, result)

    callback = driver.send_form(form, name="callback")
    result.steps.append(callback)
    resource_location = complete_callback(callback)

    load_protected_resource(driver, resource_location, result)
    return result
