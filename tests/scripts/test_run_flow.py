from __future__ import annotations

import json
import sys

import pytest
import requests

from scripts import run_flow


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for key in ("OIDC_FLOW_BASE_URL", "OIDC_FLOW_RESOURCE_PATH", "OIDC_FLOW_USER_HINT", "OIDC_FLOW_TIMEOUT_SEC"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(run_flow.FlowSettings, "from_env", classmethod(lambda cls, env_file=None: cls()))


def test_in_process_code_flow_succeeds(monkeypatch, capsys) -> None:
    # Arrange
    monkeypatch.setattr(sys, "argv", ["run_flow.py", "code", "--in-process"])

    # Act
    with pytest.raises(SystemExit) as excinfo:
        run_flow.main()

    # Assert
    captured = capsys.readouterr()
    assert excinfo.value.code == 0
    assert "Success: True (6 hops)" in captured.out
    assert "#5 callback GET https://localhost/signin-oidc" in captured.out


def test_in_process_id_token_flow_with_manual_login(monkeypatch, capsys) -> None:
    monkeypatch.setattr(
        sys,
        "argv",
        ["run_flow.py", "id-token", "--in-process", "--user", "user@example.com", "--password", "Pa$$w0rd"],
    )

    with pytest.raises(SystemExit) as excinfo:
        run_flow.main()

    assert excinfo.value.code == 0
    assert "login_submit POST" in capsys.readouterr().out


def test_flow_failure_exits_1(monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["run_flow.py", "code", "--in-process", "--user-hint", "nobody"])

    with pytest.raises(SystemExit) as excinfo:
        run_flow.main()

    captured = capsys.readouterr()
    assert excinfo.value.code == 1
    assert "ERROR: [#3 login GET" in captured.out


def test_user_without_password_is_rejected(monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["run_flow.py", "code", "--user", "alice"])

    with pytest.raises(SystemExit) as excinfo:
        run_flow.main()

    assert excinfo.value.code == 1
    assert "--user and --password must be given together" in capsys.readouterr().out


def test_transport_error_exits_1(monkeypatch, capsys) -> None:
    def fake_request(self, *args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(run_flow.RequestsSessionHttpClient, "request", fake_request)
    monkeypatch.setattr(sys, "argv", ["run_flow.py", "code", "--base-url", "https://rp.invalid"])

    with pytest.raises(SystemExit) as excinfo:
        run_flow.main()

    assert excinfo.value.code == 1
    assert "ERROR: request failed: refused" in capsys.readouterr().out


def test_report_is_written_even_when_the_flow_fails(monkeypatch, tmp_path) -> None:
    report = tmp_path / "report.json"
    monkeypatch.setattr(
        sys,
        "argv",
        ["run_flow.py", "code", "--in-process", "--user-hint", "nobody", "--report", str(report)],
    )

    with pytest.raises(SystemExit) as excinfo:
        run_flow.main()

    entries = json.loads(report.read_text(encoding="utf-8"))
    assert excinfo.value.code == 1
    assert [e["event"] for e in entries if e["event"] == "flow.request"]
    assert any(e["event"] == "idp.auto_sign_in_failed" for e in entries)
    assert all(e["flow"] == "code" for e in entries)
