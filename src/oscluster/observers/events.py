# src/oscluster/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single invocation
    cluster: str      # cluster name the run is about
    role: Optional[str]  # role group, when the event is group-scoped

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(cluster: str, role: Optional[str] = None, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "cluster": cluster,
        "role": role,
    }


# ---------------------------------------------------------------------
# Planner / composer
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PlanComputed(BaseEvent):
    groups: List[str]       # "role:capacity" in emission order
    seed_role: Optional[str]

@dataclass(frozen=True)
class PlanFailed(BaseEvent):
    error: str

@dataclass(frozen=True)
class PlanComposed(BaseEvent):
    steps: List[str]


# ---------------------------------------------------------------------
# Instance bootstrap
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StepStarted(BaseEvent):
    step: str
    kind: str

@dataclass(frozen=True)
class StepSucceeded(BaseEvent):
    step: str
    duration_ms: int

@dataclass(frozen=True)
class StepFailed(BaseEvent):
    step: str
    fatal: bool
    error: str

@dataclass(frozen=True)
class BootstrapSummary(BaseEvent):
    ok: int
    failed: int
    warned: int
    status: str        # "OK" | "FAILED"
