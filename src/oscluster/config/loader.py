# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/config/loader.py

import logging
import os
from pathlib import Path

import yaml

from .models import ClusterSpec

log = logging.getLogger("oscluster")


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def load_spec(path: str | Path, overrides: dict | None = None) -> ClusterSpec:
    """
    Load and validate a cluster definition.

    The file may either be the flat ClusterSpec mapping or wrap it under a
    top-level ``cluster:`` key. ``${ENV_VAR}`` placeholders are resolved at
    load time, and *overrides* (typically CLI flags) are deep-merged on top
    before pydantic validation.
    """
    path = Path(path)
    data = _load_yaml(path)
    if "cluster" in data and isinstance(data["cluster"], dict):
        data = data["cluster"]

    if overrides:
        log.debug("Merging %d override(s) into %s", len(overrides), path)
        _deep_merge(data, overrides)

    return ClusterSpec.model_validate(data)
