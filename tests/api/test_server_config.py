from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.credentials_server import DEFAULT_CLIENT_ID, default_reference_data
from api.main import config_from_env, create_app
from api.server_config import AUTHORIZE_PATH, TOKEN_PATH, OpenIdConnectClientOptions, ServerConfig
from domain.oidc import ResponseMode, ResponseType


def test_id_token_with_query_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        ServerConfig(
            reference_data=default_reference_data(),
            oidc=OpenIdConnectClientOptions(
                client_id=DEFAULT_CLIENT_ID,
                response_type=ResponseType.ID_TOKEN,
                response_mode=ResponseMode.QUERY,
            ),
        )


def test_unregistered_client_is_rejected() -> None:
    with pytest.raises(ValueError) as excinfo:
        ServerConfig(reference_data=default_reference_data(), oidc=OpenIdConnectClientOptions(client_id="other"))

    assert "not registered" in str(excinfo.value)


def test_urls_are_derived_from_base_url() -> None:
    config = ServerConfig(
        reference_data=default_reference_data(origin="https://rp.example"),
        oidc=OpenIdConnectClientOptions(client_id=DEFAULT_CLIENT_ID),
        base_url="https://rp.example/",
    )

    assert config.callback_url == "https://rp.example/signin-oidc"
    assert config.issuer == "https://rp.example/tfp/Identity/signinsignup/v2.0/"


def test_config_from_env_defaults_to_code_flow() -> None:
    config = config_from_env({})

    assert config.oidc.response_type == ResponseType.CODE
    assert config.oidc.response_mode == ResponseMode.QUERY
    assert config.automatic_sign_in is True


def test_config_from_env_reads_overrides(tmp_path) -> None:
    reference = tmp_path / "reference.yaml"
    reference.write_text(
        "clients:\n  - client_id: web\nusers:\n  - user_name: alice\n    password: pw\n",
        encoding="utf-8",
    )

    config = config_from_env(
        {
            "OIDC_SERVER_CLIENT_ID": "web",
            "OIDC_SERVER_RESPONSE_TYPE": "id_token",
            "OIDC_SERVER_AUTO_SIGN_IN": "false",
            "OIDC_SERVER_REFERENCE_DATA": str(reference),
            "OIDC_SERVER_SIGNING_KEY": "k" * 40,
        }
    )

    assert config.oidc.response_mode == ResponseMode.FORM_POST
    assert config.automatic_sign_in is False
    assert config.signing_key == "k" * 40
    assert config.reference_data.get_default_user().user_name == "alice"


def test_config_from_env_rejects_unknown_response_type() -> None:
    with pytest.raises(ValueError):
        config_from_env({"OIDC_SERVER_RESPONSE_TYPE": "token"})


@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/signin-oidc"),
        ("POST", "/signin-oidc"),
        ("GET", AUTHORIZE_PATH),
        ("POST", TOKEN_PATH),
    ],
)
def test_create_app_serves_oidc_routes(method: str, path: str) -> None:
    client = TestClient(create_app({}), base_url="https://localhost", follow_redirects=False)

    response = client.request(method, path)

    # 登録済みのルートはパラメータ不足で 400、未登録なら 404
    assert response.status_code == 400


def test_unknown_route_is_not_found() -> None:
    client = TestClient(create_app({}), base_url="https://localhost")

    assert client.get("/tfp/unknown").status_code == 404
