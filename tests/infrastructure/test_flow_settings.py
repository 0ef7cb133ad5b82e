from __future__ import annotations

import pytest

from infrastructure.config.flow_settings import FlowSettings


def test_defaults_from_empty_mapping() -> None:
    settings = FlowSettings.from_mapping({})

    assert settings.base_url == "https://localhost"
    assert settings.resource_url == "https://localhost/Home/About"
    assert settings.timeout_sec == 20
    assert settings.user_hint is None
    assert settings.verify_tls is True


def test_mapping_overrides() -> None:
    settings = FlowSettings.from_mapping(
        {
            "OIDC_FLOW_BASE_URL": "https://rp.example/",
            "OIDC_FLOW_RESOURCE_PATH": "Home/Private",
            "OIDC_FLOW_TIMEOUT_SEC": "5",
            "OIDC_FLOW_USER_HINT": "alice",
            "OIDC_FLOW_VERIFY_TLS": "false",
            "OIDC_FLOW_LOG_LEVEL": "DEBUG",
        }
    )

    assert settings.resource_url == "https://rp.example/Home/Private"
    assert settings.timeout_sec == 5
    assert settings.user_hint == "alice"
    assert settings.verify_tls is False
    assert settings.log_level == "DEBUG"


def test_invalid_timeout_raises() -> None:
    with pytest.raises(ValueError) as excinfo:
        FlowSettings.from_mapping({"OIDC_FLOW_TIMEOUT_SEC": "soon"})

    assert "OIDC_FLOW_TIMEOUT_SEC" in str(excinfo.value)


def test_from_env_reads_dotenv_then_environment(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("OIDC_FLOW_BASE_URL=https://from-file\nOIDC_FLOW_USER_HINT=file-user\n", encoding="utf-8")
    monkeypatch.delenv("OIDC_FLOW_BASE_URL", raising=False)
    monkeypatch.setenv("OIDC_FLOW_USER_HINT", "env-user")

    settings = FlowSettings.from_env(env_file)

    assert settings.base_url == "https://from-file"
    assert settings.user_hint == "env-user"
