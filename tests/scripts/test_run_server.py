from __future__ import annotations

from scripts import run_server


def test_run_server_passes_options_to_uvicorn(monkeypatch) -> None:
    captured = {}

    def fake_run(app, **kwargs):
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(run_server.uvicorn, "run", fake_run)

    run_server.main(["--port", "8443", "--ssl-certfile", "cert.pem", "--ssl-keyfile", "key.pem"])

    assert captured["app"] == "api.main:app"
    assert captured["port"] == 8443
    assert captured["ssl_certfile"] == "cert.pem"
    assert captured["reload"] is False
