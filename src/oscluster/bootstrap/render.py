# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/render.py

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..utils.serialize import to_jsonable
from .steps import BootstrapPlan

SCRIPTS_DIR = Path(__file__).parent / "scripts"
USER_DATA_TEMPLATE = "user-data.sh.j2"

# heredoc delimiter; content containing it on its own line would end the heredoc early
HEREDOC_EOF = "OSCLUSTER_EOF"


def _trim_newline(value: str) -> str:
    return value[:-1] if value.endswith("\n") else value


class TemplateRenderer:
    def __init__(self, templates_dir: Path = SCRIPTS_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["trim_newline"] = _trim_newline

    def render(self, template_name: str, context: dict) -> str:
        tmpl = self.env.get_template(template_name)
        return tmpl.render(**context)


def render_script(
    plan: BootstrapPlan,
    cluster: str,
    renderer: Optional[TemplateRenderer] = None,
    package_manager: str = "yum",
) -> str:
    """
    Render *plan* as a bash user-data script.

    Fatal steps exit the script with the step's exit code so the instance is
    never signaled healthy; non-fatal steps log a warning and carry on.
    """
    for step in plan:
        content = getattr(step.payload, "content", "")
        if HEREDOC_EOF in content.splitlines():
            raise ValueError(f"step '{step.name}' content contains the heredoc delimiter")

    renderer = renderer or TemplateRenderer()
    steps = [
        {"name": s.name, "kind": s.kind.value, "fatal": s.fatal, "payload": s.payload}
        for s in plan
    ]
    return renderer.render(
        USER_DATA_TEMPLATE,
        {
            "cluster": cluster,
            "role": plan.role.value,
            "steps": steps,
            "eof": HEREDOC_EOF,
            "package_manager": package_manager,
        },
    )


def plan_to_dict(plan: BootstrapPlan) -> Dict[str, Any]:
    return {
        "role": plan.role.value,
        "steps": [
            {"name": s.name, "kind": s.kind.value, "fatal": s.fatal, "payload": to_jsonable(s.payload)}
            for s in plan
        ],
    }


def to_manifest(deployment) -> Dict[str, Any]:
    """JSON-able hand-off document for the provisioning platform."""
    topology = deployment.topology
    groups = []
    for g in topology.role_groups:
        groups.append(
            {
                "role": g.role.value,
                "capacity": g.capacity,
                "instance_type": g.instance_type,
                "storage_gib": g.storage_gib,
                "is_load_balancer_target": g.is_load_balancer_target,
                "tags": dict(g.tags),
                "bootstrap": plan_to_dict(deployment.plans[g.role])["steps"],
            }
        )
    return {
        "cluster": deployment.spec.cluster_name,
        "seed_role": topology.seed_role.value,
        "load_balancer": {
            "internet_facing": topology.internet_facing,
            "listeners": [
                {
                    **to_jsonable(listener),
                    "targets": [g.role.value for g in topology.load_balancer_targets()],
                }
                for listener in topology.listeners
            ],
        },
        "launch_waves": [[g.role.value for g in wave] for wave in topology.launch_waves()],
        "groups": groups,
    }
