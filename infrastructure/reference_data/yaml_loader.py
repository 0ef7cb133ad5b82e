# infrastructure/reference_data/yaml_loader.py
"""
YAMLファイルから ReferenceData を生成

    clients:
      - client_id: 0d6a...
        name: IntegratedWebClient
        origin: https://localhost
    resources:
      - resource_id: api
        name: Api
        scopes: [read, write]
    users:
      - user_name: user@example.com
        password: Pa$$w0rd
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml

from domain.reference_data import DEFAULT_ORIGIN, ReferenceData


class ReferenceDataLoadError(Exception):
    pass


class YamlReferenceDataLoader:
    """YAMLファイルから ReferenceData をロード"""

    def load_from_file(self, path: str) -> ReferenceData:
        p = Path(path)
        if not p.exists():
            raise ReferenceDataLoadError(f"Reference data file not found: {path}")

        with p.open("r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ReferenceDataLoadError(f"Reference data file is not valid YAML: {path}: {e}") from e

        if data is None:
            raise ReferenceDataLoadError(f"Reference data file is empty: {path}")

        if not isinstance(data, dict):
            raise ReferenceDataLoadError(f"Reference data file is invalid: {path}")

        return self.load_from_dict(data)

    def load_from_dict(self, data: Dict[str, Any]) -> ReferenceData:
        reference_data = ReferenceData()
        for item in self._items(data, "clients"):
            client_id = self._required(item, "client_id", "clients")
            reference_data.create_integrated_web_client_application(
                client_id,
                name=item.get("name", "IntegratedWebClient"),
                origin=item.get("origin", DEFAULT_ORIGIN),
            )
        for item in self._items(data, "resources"):
            reference_data.create_resource_application(
                self._required(item, "resource_id", "resources"),
                item.get("name", ""),
                *[str(s) for s in item.get("scopes", [])],
            )
        for item in self._items(data, "users"):
            reference_data.create_user(
                self._required(item, "user_name", "users"),
                str(item.get("password", "")),
            )
        return reference_data

    def _items(self, data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
        items = data.get(key) or []
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise ReferenceDataLoadError(f"'{key}' must be a list of mappings")
        return items

    def _required(self, item: Dict[str, Any], name: str, section: str) -> str:
        value = item.get(name)
        if not value:
            raise ReferenceDataLoadError(f"'{section}' entry is missing '{name}'")
        return str(value)
