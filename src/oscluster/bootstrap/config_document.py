# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/config_document.py

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

import yaml


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in data.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping) and value:
            out.update(_flatten(value, path))
        else:
            out[path] = value
    return out


class ConfigDocument:
    """
    Flat ``opensearch.yml`` document keyed by dotted paths.

    Setting an existing key keeps its original position, so layering overlays
    preserves the insertion order of the keys they do not touch while the last
    writer decides the value.
    """

    def __init__(self, entries: Optional[Mapping[str, Any]] = None):
        self._entries: Dict[str, Any] = {}
        if entries:
            self._entries.update(_flatten(entries))

    @classmethod
    def from_yaml(cls, text: str) -> "ConfigDocument":
        data = yaml.safe_load(text) or {}
        if not isinstance(data, Mapping):
            raise ValueError("config document must be a YAML mapping")
        return cls(data)

    def set(self, key: str, value: Any) -> "ConfigDocument":
        self._entries[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def merged(self, *overlays: "ConfigDocument") -> "ConfigDocument":
        out = self.copy()
        for overlay in overlays:
            for key, value in overlay.items():
                out._entries[key] = value
        return out

    def subset(self, keys: Iterable[str]) -> "ConfigDocument":
        wanted = set(keys)
        return ConfigDocument({k: v for k, v in self._entries.items() if k in wanted})

    def without(self, keys: Iterable[str]) -> "ConfigDocument":
        dropped = set(keys)
        return ConfigDocument({k: v for k, v in self._entries.items() if k not in dropped})

    def copy(self) -> "ConfigDocument":
        return ConfigDocument(self._entries)

    def keys(self):
        return self._entries.keys()

    def items(self):
        return self._entries.items()

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._entries)

    def dump(self) -> str:
        """Serialize in opensearch.yml syntax, one dotted key per line."""
        if not self._entries:
            return ""
        return yaml.safe_dump(
            self._entries,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ConfigDocument):
            return list(self._entries.items()) == list(other._entries.items())
        return NotImplemented

    def __repr__(self) -> str:
        return f"ConfigDocument({self._entries!r})"
