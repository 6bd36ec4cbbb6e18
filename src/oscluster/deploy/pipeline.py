# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..bootstrap.composer import Composer
from ..bootstrap.steps import BootstrapPlan
from ..bootstrap.templates import ConfigTemplates, load_templates
from ..config.models import ClusterSpec
from ..topology.models import Role, RoleGroup, TopologyPlan
from ..topology.planner import plan

# Observer bits
from ..observers.dispatcher import EventBus
from ..observers.events import new_ctx

log = logging.getLogger("oscluster")


@dataclass(frozen=True)
class Deployment:
    """Topology plus one bootstrap plan per role group, ready for hand-off."""
    spec: ClusterSpec
    topology: TopologyPlan
    plans: Dict[Role, BootstrapPlan] = field(default_factory=dict)

    def plan_for(self, role: Role) -> BootstrapPlan:
        return self.plans[role]

    def launch_waves(self) -> List[List[RoleGroup]]:
        return self.topology.launch_waves()


def build_deployment(
    spec: ClusterSpec,
    templates: Optional[ConfigTemplates] = None,
    bus: Optional[EventBus] = None,
    run_ctx: Optional[dict] = None,
) -> Deployment:
    """
    Plan the topology, then compose a bootstrap plan for each group.
    Planner errors surface here, before anything is composed.
    """
    ctx = run_ctx or new_ctx(cluster=spec.cluster_name)
    topology = plan(spec, bus=bus, run_ctx=ctx)

    composer = Composer(templates or load_templates(), bus=bus)
    plans: Dict[Role, BootstrapPlan] = {}
    for group in topology.role_groups:
        plans[group.role] = composer.compose(group, spec, run_ctx=ctx)

    log.info(
        "deployment for %s: %s",
        spec.cluster_name,
        ", ".join(f"{g.role.value}x{g.capacity}" for g in topology.role_groups),
    )
    return Deployment(spec=spec, topology=topology, plans=plans)
