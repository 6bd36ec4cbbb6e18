# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/templates.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from .config_document import ConfigDocument
from .errors import TemplateError
from ..topology.models import Role, RoleGroup

log = logging.getLogger("oscluster")

DATA_DIR = Path(__file__).parent / "data"

SINGLE_NODE_BASE = "single-node-base-config.yml"
MULTI_NODE_BASE = "multi-node-base-config.yml"
NODE_OVERLAYS = "node-overlays.yml"


@dataclass(frozen=True)
class ConfigTemplates:
    """Pre-loaded opensearch.yml templates handed to the composer."""
    single_node_base: ConfigDocument
    multi_node_base: ConfigDocument
    overlays: Dict[str, ConfigDocument] = field(default_factory=dict)

    def base_for(self, group: RoleGroup) -> ConfigDocument:
        if group.role == Role.SINGLE:
            return self.single_node_base.copy()
        return self.multi_node_base.copy()

    def overlay_for(self, group: RoleGroup) -> Optional[ConfigDocument]:
        """
        Seed groups use their seed-specific overlay when the table has one and
        fall back to the manager overlay otherwise.
        """
        if group.role == Role.SINGLE:
            return None
        candidates = [group.overlay_key or group.role.value]
        if group.role == Role.SEED:
            candidates.append(Role.MANAGER.value)
        for key in candidates:
            if key in self.overlays:
                return self.overlays[key].copy()
        raise TemplateError(
            f"No node overlay for role '{group.role.value}' (tried {', '.join(candidates)})"
        )


def _read_mapping(path: Path) -> dict:
    if not path.exists():
        raise TemplateError(f"Template file not found: {path}")
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise TemplateError(f"Template {path} must contain a YAML mapping")
    return data


def load_templates(directory: Optional[Path] = None) -> ConfigTemplates:
    """
    Load the base documents and the overlay table.

    *directory* defaults to the templates shipped with the package; a custom
    directory must hold the same three file names.
    """
    directory = Path(directory) if directory else DATA_DIR
    log.debug("loading config templates from %s", directory)

    overlays_raw = _read_mapping(directory / NODE_OVERLAYS)
    overlays: Dict[str, ConfigDocument] = {}
    for key, body in overlays_raw.items():
        if not isinstance(body, dict):
            raise TemplateError(f"Overlay '{key}' in {NODE_OVERLAYS} must be a mapping")
        overlays[str(key)] = ConfigDocument(body)

    return ConfigTemplates(
        single_node_base=ConfigDocument(_read_mapping(directory / SINGLE_NODE_BASE)),
        multi_node_base=ConfigDocument(_read_mapping(directory / MULTI_NODE_BASE)),
        overlays=overlays,
    )
