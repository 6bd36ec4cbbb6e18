# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/config/models.py

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Older cluster definitions spell an absent optional string as "undefined".
_ABSENT_MARKERS = ("undefined", "")


class ClusterSpec(BaseModel):
    """Everything the planner and the composer need to know about one cluster."""

    model_config = ConfigDict(frozen=True)

    # Identity
    cluster_name: str
    log_group_name: Optional[str] = None

    # Distribution
    opensearch_version: str
    cpu_arch: Literal["x64", "arm64"] = "x64"
    distribution_url: str
    dashboards_url: Optional[str] = None
    min_distribution: bool = False
    security_disabled: bool = False

    # Topology
    single_node: bool = False
    manager_count: int = Field(default=3, ge=0)
    data_count: int = Field(default=2, ge=0)
    ingest_count: int = Field(default=0, ge=0)   # carried, never assigned a group
    client_count: int = Field(default=0, ge=0)
    ml_count: int = Field(default=0, ge=0)

    # Hardware profiles
    data_instance_type: str = "r5.large"
    ml_instance_type: str = "r5.xlarge"
    data_storage_gib: int = Field(default=100, gt=0)
    ml_storage_gib: int = Field(default=100, gt=0)

    # Engine tuning
    jvm_sys_props: Optional[str] = None
    additional_config: Optional[str] = None
    use_50_percent_heap: bool = False

    # Load balancer
    is_internal: bool = False

    # "abort": optional config steps fail the bootstrap, "warn": log and continue
    optional_step_failure: Literal["abort", "warn"] = "abort"

    @field_validator("jvm_sys_props", "additional_config", "dashboards_url", "log_group_name", mode="before")
    @classmethod
    def _absent_marker_to_none(cls, value):
        if isinstance(value, str) and value.strip() in _ABSENT_MARKERS:
            return None
        return value

    @property
    def dashboards_enabled(self) -> bool:
        return self.dashboards_url is not None

    @property
    def log_group(self) -> str:
        return self.log_group_name or f"{self.cluster_name}LogGroup/opensearch.log"

    @property
    def security_plugin_active(self) -> bool:
        """The bundled security plugin only exists in full distributions."""
        return not self.security_disabled and not self.min_distribution
