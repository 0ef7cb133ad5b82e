# domain/oidc.py
"""
Wire-level names shared by the flow scripts and the credentials server.

Cookie names must stay bit-exact: the flows assert on them.
"""

IDENTITY_APPLICATION_COOKIE = ".AspNetCore.Identity.Application"
APPLICATIONS_SESSION_COOKIE = "Microsoft.AspNetCore.Applications.Authentication.Cookie"
RELYING_PARTY_SESSION_COOKIE = ".AspNetCore.Cookies"
CORRELATION_COOKIE_PREFIX = ".AspNetCore.Correlation.OpenIdConnect."
NONCE_COOKIE_PREFIX = ".AspNetCore.OpenIdConnect.Nonce."

# correlation / nonce cookie の値は固定マーカー
COOKIE_MARKER = "N"
CORRELATION_COOKIE_LIFETIME_MIN = 15

USER_HINT_HEADER = "X-Identity-Test-User-Hint"


class ResponseType:
    CODE = "code"
    ID_TOKEN = "id_token"


class ResponseMode:
    QUERY = "query"
    FORM_POST = "form_post"


class Param:
    CLIENT_ID = "client_id"
    REDIRECT_URI = "redirect_uri"
    RESPONSE_TYPE = "response_type"
    RESPONSE_MODE = "response_mode"
    SCOPE = "scope"
    STATE = "state"
    NONCE = "nonce"
    CODE = "code"
    ID_TOKEN = "id_token"
    ERROR = "error"


LOGIN_USER_FIELD = "UserName"
LOGIN_PASSWORD_FIELD = "Password"
