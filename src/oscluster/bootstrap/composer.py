# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/composer.py

from __future__ import annotations

import json
import shlex
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..config.models import ClusterSpec
from ..observers.dispatcher import EventBus
from ..observers.events import PlanComposed, new_ctx
from ..topology.models import Role, RoleGroup
from . import metrics_agent
from .heap import resize_heap_command
from .steps import BootstrapPlan, BootstrapStep, PackageInstall, RunCommand, WriteFile
from .templates import ConfigTemplates, load_templates

log = logging.getLogger("oscluster")

HOME = "/home/ec2-user"
OWNER = "ec2-user"
ENGINE_DIR = f"{HOME}/opensearch"
ENGINE_CONFIG = f"{ENGINE_DIR}/config/opensearch.yml"
JVM_OPTIONS = f"{ENGINE_DIR}/config/jvm.options"
DASHBOARDS_DIR = f"{HOME}/opensearch-dashboards"
DASHBOARDS_CONFIG = f"{DASHBOARDS_DIR}/config/opensearch_dashboards.yml"

CANONICAL_ARTIFACT_HOST = "artifacts.opensearch.org"
PLUGIN_MIRROR = "https://ci.opensearch.org/ci/dbc/distribution-build-opensearch"
DISCOVERY_PLUGIN = "discovery-ec2"


@dataclass(frozen=True)
class _Inputs:
    group: RoleGroup
    spec: ClusterSpec
    templates: ConfigTemplates

    @property
    def multi_node(self) -> bool:
        return self.group.role != Role.SINGLE

    @property
    def optional_fatal(self) -> bool:
        return self.spec.optional_step_failure == "abort"


Predicate = Callable[[_Inputs], bool]
Builder = Callable[[_Inputs], List[BootstrapStep]]


def _download(url: str, target: str) -> str:
    return (
        f"mkdir -p {target}; curl -L {shlex.quote(url)} -o {target}.tar.gz; "
        f"tar zxf {target}.tar.gz -C {target} --strip-components=1; "
        f"chown -R {OWNER}:{OWNER} {target}"
    )


# ------------------------------------------------------------------
# step builders, one per phase
# ------------------------------------------------------------------

def _metrics_agent(i: _Inputs) -> List[BootstrapStep]:
    config = metrics_agent.agent_config(
        log_file=f"{ENGINE_DIR}/logs/{i.spec.cluster_name}.log",
        log_group=i.spec.log_group,
    )
    return [
        BootstrapStep("metrics-agent.install", PackageInstall(metrics_agent.AGENT_PACKAGE)),
        BootstrapStep(
            "metrics-agent.config",
            WriteFile(metrics_agent.AGENT_CONFIG_PATH, json.dumps(config, indent=2) + "\n"),
        ),
        BootstrapStep("metrics-agent.stop", RunCommand(metrics_agent.stop_command())),
        BootstrapStep("metrics-agent.start", RunCommand(metrics_agent.start_command())),
    ]


def _kernel_tuning(i: _Inputs) -> List[BootstrapStep]:
    return [
        BootstrapStep(
            "sysctl.max-map-count",
            RunCommand('echo "vm.max_map_count=262144" >> /etc/sysctl.conf; sysctl -p'),
        )
    ]


def _engine_download(i: _Inputs) -> List[BootstrapStep]:
    return [
        BootstrapStep("engine.download", RunCommand(_download(i.spec.distribution_url, "opensearch"), cwd=HOME)),
        BootstrapStep("engine.settle", RunCommand("sleep 15", cwd=HOME)),
    ]


def _engine_config(i: _Inputs) -> List[BootstrapStep]:
    base = i.templates.base_for(i.group)
    base.set("cluster.name", i.spec.cluster_name)
    overlay = i.templates.overlay_for(i.group) if i.multi_node else None

    if overlay is None:
        return [BootstrapStep("config.base", WriteFile(ENGINE_CONFIG, base.dump()))]

    # Overlay values win, but keys already in the base stay in the base write
    # so the appended part never repeats a key.
    merged = base.merged(overlay)
    head = merged.subset(base.keys())
    tail = merged.without(base.keys())
    steps = [BootstrapStep("config.base", WriteFile(ENGINE_CONFIG, head.dump()))]
    if len(tail):
        steps.append(BootstrapStep("config.overlay", WriteFile(ENGINE_CONFIG, tail.dump(), append=True)))
    return steps


def _discovery_plugin(i: _Inputs) -> List[BootstrapStep]:
    spec = i.spec
    if CANONICAL_ARTIFACT_HOST in spec.distribution_url and not spec.min_distribution:
        source = DISCOVERY_PLUGIN
    else:
        source = (
            f"{PLUGIN_MIRROR}/{spec.opensearch_version}/latest/linux/{spec.cpu_arch}"
            f"/tar/builds/opensearch/core-plugins/{DISCOVERY_PLUGIN}-{spec.opensearch_version}.zip"
        )
    return [
        BootstrapStep(
            "plugin.discovery",
            RunCommand(f'echo "y" | sudo -u {OWNER} bin/opensearch-plugin install {shlex.quote(source)}', cwd=ENGINE_DIR),
        )
    ]


def _security_disabled(i: _Inputs) -> List[BootstrapStep]:
    return [
        BootstrapStep(
            "config.security-disabled",
            WriteFile(ENGINE_CONFIG, "plugins.security.disabled: true\n", append=True),
            fatal=i.optional_fatal,
        )
    ]


def _jvm_sys_props(i: _Inputs) -> List[BootstrapStep]:
    props = [p.strip() for p in (i.spec.jvm_sys_props or "").split(",") if p.strip()]
    return [
        BootstrapStep(
            f"jvm.sysprop.{n}",
            WriteFile(JVM_OPTIONS, f"-D{prop}\n", append=True),
            fatal=i.optional_fatal,
        )
        for n, prop in enumerate(props, 1)
    ]


def _heap(i: _Inputs) -> List[BootstrapStep]:
    return [
        BootstrapStep(
            "jvm.heap",
            RunCommand(resize_heap_command("config/jvm.options"), cwd=ENGINE_DIR),
            fatal=i.optional_fatal,
        )
    ]


def _additional_config(i: _Inputs) -> List[BootstrapStep]:
    text = i.spec.additional_config or ""
    if not text.endswith("\n"):
        text += "\n"
    return [
        BootstrapStep(
            "config.additional",
            WriteFile(ENGINE_CONFIG, text, append=True),
            fatal=i.optional_fatal,
        )
    ]


def _engine_start(i: _Inputs) -> List[BootstrapStep]:
    # min builds ship no tar-install launcher; bundles need it for the security setup
    launcher = "./bin/opensearch" if i.spec.min_distribution else "./opensearch-tar-install.sh"
    return [
        BootstrapStep(
            "engine.start",
            RunCommand(f"sudo -u {OWNER} nohup {launcher} >> install.log 2>&1 &", cwd=ENGINE_DIR),
        )
    ]


def _dashboards(i: _Inputs) -> List[BootstrapStep]:
    fatal = i.optional_fatal
    steps = [
        BootstrapStep(
            "dashboards.download",
            RunCommand(_download(i.spec.dashboards_url, "opensearch-dashboards"), cwd=HOME),
            fatal=fatal,
        ),
        BootstrapStep(
            "dashboards.bind",
            WriteFile(DASHBOARDS_CONFIG, "server.host: 0.0.0.0\n", append=True),
            fatal=fatal,
        ),
    ]
    if i.spec.security_disabled and not i.spec.min_distribution:
        steps.append(
            BootstrapStep(
                "dashboards.security-disabled",
                RunCommand(
                    "./bin/opensearch-dashboards-plugin remove securityDashboards --allow-root; "
                    "sed -i /^opensearch_security/d config/opensearch_dashboards.yml; "
                    "sed -i 's/https/http/' config/opensearch_dashboards.yml",
                    cwd=DASHBOARDS_DIR,
                ),
                fatal=fatal,
            )
        )
    steps.append(
        BootstrapStep(
            "dashboards.start",
            RunCommand(
                f"sudo -u {OWNER} nohup ./bin/opensearch-dashboards > dashboard_install.log 2>&1 &",
                cwd=DASHBOARDS_DIR,
            ),
            fatal=fatal,
        )
    )
    return steps


def _always(i: _Inputs) -> bool:
    return True


# Evaluated top to bottom; the order here is the order on the instance.
RULES: Tuple[Tuple[str, Predicate, Builder], ...] = (
    ("metrics-agent", _always, _metrics_agent),
    ("sysctl", _always, _kernel_tuning),
    ("engine-download", _always, _engine_download),
    ("config", _always, _engine_config),
    ("discovery-plugin", lambda i: i.multi_node, _discovery_plugin),
    ("security-disabled", lambda i: i.spec.security_disabled and not i.spec.min_distribution, _security_disabled),
    ("jvm-sys-props", lambda i: bool(i.spec.jvm_sys_props), _jvm_sys_props),
    ("heap", lambda i: i.spec.use_50_percent_heap, _heap),
    ("additional-config", lambda i: bool(i.spec.additional_config), _additional_config),
    ("engine-start", _always, _engine_start),
    ("dashboards", lambda i: i.spec.dashboards_enabled, _dashboards),
)


class Composer:
    """
    Builds the BootstrapPlan for one role group.

    Config templates are injected so composition never touches the
    filesystem; composing the same group and spec twice yields equal plans.
    """

    def __init__(self, templates: ConfigTemplates, bus: Optional[EventBus] = None):
        self.templates = templates
        self.bus = bus

    def compose(self, group: RoleGroup, spec: ClusterSpec, run_ctx: Optional[dict] = None) -> BootstrapPlan:
        inputs = _Inputs(group=group, spec=spec, templates=self.templates)
        steps: List[BootstrapStep] = []
        for rule, predicate, builder in RULES:
            if not predicate(inputs):
                log.debug("[%s] skipping %s", group.role.value, rule)
                continue
            steps.extend(builder(inputs))

        plan = BootstrapPlan(role=group.role, steps=tuple(steps))
        log.info("[%s] composed %d bootstrap steps", group.role.value, len(plan))

        if self.bus:
            ctx = dict(run_ctx or new_ctx(cluster=spec.cluster_name))
            ctx["role"] = group.role.value
            self.bus.emit(PlanComposed(steps=plan.names(), **ctx))
        return plan


def compose(group: RoleGroup, spec: ClusterSpec, templates: Optional[ConfigTemplates] = None) -> BootstrapPlan:
    """Compose with the packaged templates unless *templates* is given."""
    return Composer(templates or load_templates()).compose(group, spec)
