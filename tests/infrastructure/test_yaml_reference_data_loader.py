from __future__ import annotations

import pytest

from infrastructure.reference_data.yaml_loader import ReferenceDataLoadError, YamlReferenceDataLoader


def test_load_from_file(tmp_path) -> None:
    path = tmp_path / "reference.yaml"
    path.write_text(
        """
clients:
  - client_id: web
    name: Web
    origin: https://rp.example
resources:
  - resource_id: api
    name: Api
    scopes: [read, write]
users:
  - user_name: alice
    password: pw
""",
        encoding="utf-8",
    )

    data = YamlReferenceDataLoader().load_from_file(str(path))

    assert data.get_client("web").redirect_uris == ("https://rp.example/signin-oidc",)
    assert data.resources[0].scopes == ("read", "write")
    assert data.get_user("ALICE").password == "pw"


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(ReferenceDataLoadError):
        YamlReferenceDataLoader().load_from_file(str(tmp_path / "missing.yaml"))


def test_empty_file_raises(tmp_path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    with pytest.raises(ReferenceDataLoadError):
        YamlReferenceDataLoader().load_from_file(str(path))


def test_entry_without_required_key_raises() -> None:
    with pytest.raises(ReferenceDataLoadError) as excinfo:
        YamlReferenceDataLoader().load_from_dict({"users": [{"password": "pw"}]})

    assert "user_name" in str(excinfo.value)


def test_section_must_be_a_list() -> None:
    with pytest.raises(ReferenceDataLoadError):
        YamlReferenceDataLoader().load_from_dict({"clients": {"client_id": "web"}})
