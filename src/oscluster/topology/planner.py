# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from typing import List, Optional

from ..config.models import ClusterSpec
from .errors import InvalidSpecError
from .models import ListenerBinding, Role, RoleGroup, TopologyPlan

# Observer bits
from ..observers.dispatcher import EventBus
from ..observers.events import PlanComputed, PlanFailed, new_ctx

log = logging.getLogger("oscluster")

# Root volume for manager and client classes, which hold no shard data.
DEFAULT_STORAGE_GIB = 50

SEARCH_PORT = 9200
DASHBOARDS_PORT = 5601

_DEFAULT_INSTANCE_TYPE = {"x64": "c5.xlarge", "arm64": "c6g.xlarge"}
_SINGLE_NODE_INSTANCE_TYPE = {"x64": "r5.xlarge", "arm64": "r6g.xlarge"}


def _validate_counts(spec: ClusterSpec) -> None:
    counts = {
        "manager": spec.manager_count,
        "data": spec.data_count,
        "ingest": spec.ingest_count,
        "client": spec.client_count,
        "ml": spec.ml_count,
    }
    negative = {k: v for k, v in counts.items() if v < 0}
    if negative:
        raise InvalidSpecError(f"Node counts must be non-negative, got {negative}")

    if spec.single_node:
        return

    if not any(counts.values()):
        raise InvalidSpecError("All node counts are 0 and single_node is false")
    if spec.data_count < 1:
        raise InvalidSpecError(
            "A multi-node cluster needs at least one data node "
            f"(manager={spec.manager_count}, data={spec.data_count})"
        )
    if spec.manager_count == 0 and spec.data_count == 1 and spec.client_count == 0:
        raise InvalidSpecError(
            "The only data node becomes the seed and no client or data group "
            "is left to receive search traffic; add a data or client node"
        )


def _listeners(spec: ClusterSpec) -> List[ListenerBinding]:
    port = 443 if spec.security_plugin_active else 80
    listeners = [ListenerBinding(name="opensearch", port=port, target_port=SEARCH_PORT)]
    if spec.dashboards_enabled:
        listeners.append(ListenerBinding(name="dashboards", port=8443, target_port=DASHBOARDS_PORT))
    return listeners


def _single_node(spec: ClusterSpec) -> List[RoleGroup]:
    return [
        RoleGroup(
            role=Role.SINGLE,
            capacity=1,
            instance_type=_SINGLE_NODE_INSTANCE_TYPE[spec.cpu_arch],
            storage_gib=spec.data_storage_gib,
            is_load_balancer_target=True,
            tags={"role": "client"},
        )
    ]


def _multi_node(spec: ClusterSpec) -> List[RoleGroup]:
    default_type = _DEFAULT_INSTANCE_TYPE[spec.cpu_arch]
    groups: List[RoleGroup] = []

    # Seed election: a manager node is preferred over a data node.
    if spec.manager_count > 0:
        manager_capacity = spec.manager_count - 1
        data_capacity = spec.data_count
        seed = RoleGroup(
            role=Role.SEED,
            capacity=1,
            instance_type=default_type,
            storage_gib=DEFAULT_STORAGE_GIB,
            overlay_key="seed-manager",
            tags={"role": "manager"},
        )
    else:
        manager_capacity = 0
        data_capacity = spec.data_count - 1
        seed = RoleGroup(
            role=Role.SEED,
            capacity=1,
            instance_type=spec.data_instance_type,
            storage_gib=spec.data_storage_gib,
            overlay_key="seed-data",
            tags={"role": "manager"},
        )
    groups.append(seed)

    if manager_capacity > 0:
        groups.append(
            RoleGroup(
                role=Role.MANAGER,
                capacity=manager_capacity,
                instance_type=default_type,
                storage_gib=DEFAULT_STORAGE_GIB,
                overlay_key="manager",
                tags={"role": "manager"},
            )
        )

    if data_capacity > 0:
        groups.append(
            RoleGroup(
                role=Role.DATA,
                capacity=data_capacity,
                instance_type=spec.data_instance_type,
                storage_gib=spec.data_storage_gib,
                # without client nodes, search traffic goes straight to data nodes
                is_load_balancer_target=spec.client_count == 0,
                overlay_key="data",
                tags={"role": "data"},
            )
        )

    if spec.client_count > 0:
        groups.append(
            RoleGroup(
                role=Role.CLIENT,
                capacity=spec.client_count,
                instance_type=default_type,
                storage_gib=DEFAULT_STORAGE_GIB,
                is_load_balancer_target=True,
                overlay_key="client",
                tags={"role": "client", "cluster": spec.cluster_name},
            )
        )

    if spec.ml_count > 0:
        groups.append(
            RoleGroup(
                role=Role.ML,
                capacity=spec.ml_count,
                instance_type=spec.ml_instance_type,
                storage_gib=spec.ml_storage_gib,
                overlay_key="ml",
                tags={"role": "ml-node"},
            )
        )

    return groups


def plan(
    spec: ClusterSpec,
    bus: Optional[EventBus] = None,
    run_ctx: Optional[dict] = None,
) -> TopologyPlan:
    """
    Turn node counts into role groups.
    Emits PlanComputed / PlanFailed if an EventBus is provided.
    """
    ctx = run_ctx or new_ctx(cluster=spec.cluster_name)
    try:
        _validate_counts(spec)

        if spec.single_node:
            log.info("single_node is set, planning a single-node cluster")
            groups = _single_node(spec)
            seed_role = Role.SINGLE
        else:
            groups = _multi_node(spec)
            seed_role = Role.SEED

        topology = TopologyPlan(
            role_groups=tuple(groups),
            seed_role=seed_role,
            listeners=tuple(_listeners(spec)),
            internet_facing=not spec.is_internal,
        )
        summary = [f"{g.role.value}:{g.capacity}" for g in groups]
        log.debug("topology for %s: %s", spec.cluster_name, summary)

        if bus:
            bus.emit(PlanComputed(groups=summary, seed_role=seed_role.value, **ctx))
        return topology

    except Exception as e:
        if bus:
            bus.emit(PlanFailed(error=str(e), **ctx))
        raise
