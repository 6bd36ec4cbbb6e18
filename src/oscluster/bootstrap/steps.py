# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/steps.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union

from ..topology.models import Role


class StepKind(str, Enum):
    PACKAGE_INSTALL = "PackageInstall"
    WRITE_FILE = "WriteFile"
    RUN_COMMAND = "RunCommand"


@dataclass(frozen=True)
class PackageInstall:
    package: str
    manager: Optional[str] = None    # None: the instance default package manager


@dataclass(frozen=True)
class WriteFile:
    path: str
    content: str
    append: bool = False


@dataclass(frozen=True)
class RunCommand:
    command: str
    cwd: str = "/home/ec2-user"


Payload = Union[PackageInstall, WriteFile, RunCommand]

_KIND_BY_PAYLOAD = {
    PackageInstall: StepKind.PACKAGE_INSTALL,
    WriteFile: StepKind.WRITE_FILE,
    RunCommand: StepKind.RUN_COMMAND,
}


@dataclass(frozen=True)
class BootstrapStep:
    name: str             # dotted step id, e.g. "engine.download"
    payload: Payload
    fatal: bool = True

    @property
    def kind(self) -> StepKind:
        return _KIND_BY_PAYLOAD[type(self.payload)]


@dataclass(frozen=True)
class BootstrapPlan:
    """Ordered first-boot actions for every instance of one role group."""
    role: Role
    steps: Tuple[BootstrapStep, ...]

    def __iter__(self) -> Iterator[BootstrapStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def names(self) -> List[str]:
        return [s.name for s in self.steps]

    def kinds(self) -> List[StepKind]:
        return [s.kind for s in self.steps]

    def step(self, name: str) -> BootstrapStep:
        for s in self.steps:
            if s.name == name:
                return s
        raise KeyError(name)

    def has(self, prefix: str) -> bool:
        return any(s.name == prefix or s.name.startswith(prefix + ".") for s in self.steps)

    @classmethod
    def from_dict(cls, data: dict) -> "BootstrapPlan":
        """Rebuild a plan from its manifest form (see render.plan_to_dict)."""
        steps = []
        for raw in data.get("steps") or data.get("bootstrap") or []:
            payload_cls = _PAYLOAD_BY_KIND[StepKind(raw["kind"])]
            steps.append(
                BootstrapStep(
                    name=raw["name"],
                    payload=payload_cls(**raw["payload"]),
                    fatal=bool(raw.get("fatal", True)),
                )
            )
        return cls(role=Role(data["role"]), steps=tuple(steps))


_PAYLOAD_BY_KIND = {kind: payload for payload, kind in _KIND_BY_PAYLOAD.items()}
