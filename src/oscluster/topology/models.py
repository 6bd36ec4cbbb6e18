# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/topology/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Role(str, Enum):
    SINGLE = "single"
    MANAGER = "manager"
    SEED = "seed"
    DATA = "data"
    CLIENT = "client"
    ML = "ml"


@dataclass(frozen=True)
class RoleGroup:
    """
    A set of identically configured instances sharing a role, a capacity
    and one bootstrap plan.
    """
    role: Role
    capacity: int
    instance_type: str
    storage_gib: int
    is_load_balancer_target: bool = False
    # key into the node overlay table; None for the single-node group
    overlay_key: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ListenerBinding:
    name: str                 # "opensearch" | "dashboards"
    port: int                 # load balancer port
    target_port: int          # instance port
    protocol: str = "TCP"


@dataclass(frozen=True)
class TopologyPlan:
    role_groups: Tuple[RoleGroup, ...]
    seed_role: Role
    listeners: Tuple[ListenerBinding, ...] = ()
    internet_facing: bool = True

    def group(self, role: Role) -> Optional[RoleGroup]:
        return next((g for g in self.role_groups if g.role == role), None)

    def roles(self) -> List[Role]:
        return [g.role for g in self.role_groups]

    def load_balancer_targets(self) -> List[RoleGroup]:
        return [g for g in self.role_groups if g.is_load_balancer_target]

    def launch_waves(self) -> List[List[RoleGroup]]:
        """
        Start order handed to the provisioning platform: the seed group alone,
        then every other group in parallel once the seed reports healthy.
        """
        seed = [g for g in self.role_groups if g.role == self.seed_role]
        rest = [g for g in self.role_groups if g.role != self.seed_role]
        return [seed, rest] if rest else [seed]
