import json

import pytest

from oscluster.bootstrap.composer import Composer, compose
from oscluster.bootstrap.config_document import ConfigDocument
from oscluster.bootstrap.steps import StepKind
from oscluster.bootstrap.templates import ConfigTemplates, load_templates
from oscluster.config.models import ClusterSpec
from oscluster.observers.dispatcher import EventBus
from oscluster.observers.events import PlanComposed
from oscluster.topology.models import Role
from oscluster.topology.planner import plan

CANONICAL_URL = "https://artifacts.opensearch.org/releases/bundle/opensearch/2.11.0/opensearch-2.11.0-linux-x64.tar.gz"
CI_URL = "https://ci.opensearch.org/ci/dbc/distribution-build-opensearch/2.12.0/latest/linux/arm64/tar/dist/opensearch/opensearch-min-2.12.0-linux-arm64.tar.gz"

METRICS = ["metrics-agent.install", "metrics-agent.config", "metrics-agent.stop", "metrics-agent.start"]
DOWNLOAD = ["sysctl.max-map-count", "engine.download", "engine.settle"]


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


def _spec(**kw):
    base = dict(cluster_name="demo", opensearch_version="2.11.0", distribution_url=CANONICAL_URL)
    base.update(kw)
    return ClusterSpec(**base)


def _group(spec, role):
    return plan(spec).group(role)


def _composer():
    return Composer(load_templates())


def test_data_group_full_step_order():
    spec = _spec(
        manager_count=3,
        data_count=4,
        security_disabled=True,
        use_50_percent_heap=True,
        jvm_sys_props="a=1,b=2",
    )
    bootstrap = _composer().compose(_group(spec, Role.DATA), spec)

    assert bootstrap.role == Role.DATA
    assert bootstrap.names() == METRICS + DOWNLOAD + [
        "config.base",
        "config.overlay",
        "plugin.discovery",
        "config.security-disabled",
        "jvm.sysprop.1",
        "jvm.sysprop.2",
        "jvm.heap",
        "engine.start",
    ]
    assert bootstrap.kinds()[0] == StepKind.PACKAGE_INSTALL
    assert bootstrap.step("jvm.sysprop.1").payload.content == "-Da=1\n"
    assert bootstrap.step("jvm.sysprop.2").payload.content == "-Db=2\n"
    assert bootstrap.step("jvm.sysprop.2").payload.append is True
    assert "opensearch-tar-install.sh" in bootstrap.step("engine.start").payload.command
    assert not bootstrap.has("dashboards")


def test_single_node_has_no_overlay_and_no_discovery_plugin():
    spec = _spec(single_node=True)
    bootstrap = _composer().compose(_group(spec, Role.SINGLE), spec)
    assert bootstrap.names() == METRICS + DOWNLOAD + ["config.base", "engine.start"]

    content = bootstrap.step("config.base").payload.content
    assert "cluster.name: demo\n" in content
    assert "discovery.type: single-node" in content
    assert bootstrap.step("config.base").payload.append is False


def test_overlay_is_appended_without_repeating_base_keys():
    spec = _spec(manager_count=3, data_count=2)
    bootstrap = _composer().compose(_group(spec, Role.SEED), spec)

    base = bootstrap.step("config.base").payload
    overlay = bootstrap.step("config.overlay").payload
    assert base.append is False
    assert overlay.append is True
    assert base.content.startswith("cluster.name: demo\n")
    assert overlay.content == "node.name: seed\nnode.roles:\n- cluster_manager\n"
    assert "cluster.name" not in overlay.content


def test_overlay_value_wins_for_a_base_key():
    templates = ConfigTemplates(
        single_node_base=ConfigDocument({"cluster.name": "x"}),
        multi_node_base=ConfigDocument({"cluster.name": "x", "network.host": "0.0.0.0"}),
        overlays={"data": ConfigDocument({"network.host": "_site_", "node.roles": ["data"]})},
    )
    spec = _spec(manager_count=3, data_count=2)
    bootstrap = Composer(templates).compose(_group(spec, Role.DATA), spec)
    assert bootstrap.step("config.base").payload.content == "cluster.name: demo\nnetwork.host: _site_\n"
    assert bootstrap.step("config.overlay").payload.content == "node.roles:\n- data\n"


def test_seed_falls_back_to_manager_overlay():
    templates = ConfigTemplates(
        single_node_base=ConfigDocument({}),
        multi_node_base=ConfigDocument({"cluster.name": "x"}),
        overlays={"manager": ConfigDocument({"node.roles": ["cluster_manager"]})},
    )
    spec = _spec(manager_count=0, data_count=3)
    bootstrap = Composer(templates).compose(_group(spec, Role.SEED), spec)
    assert bootstrap.step("config.overlay").payload.content == "node.roles:\n- cluster_manager\n"


def test_seed_from_data_pool_gets_data_role():
    spec = _spec(manager_count=0, data_count=3)
    bootstrap = _composer().compose(_group(spec, Role.SEED), spec)
    assert "- data\n" in bootstrap.step("config.overlay").payload.content


def test_client_overlay_has_no_roles():
    spec = _spec(manager_count=3, data_count=2, client_count=1)
    bootstrap = _composer().compose(_group(spec, Role.CLIENT), spec)
    assert bootstrap.step("config.overlay").payload.content == "node.roles: []\n"


def test_canonical_bundle_installs_bundled_discovery_plugin():
    spec = _spec()
    cmd = _composer().compose(_group(spec, Role.DATA), spec).step("plugin.discovery").payload.command
    assert cmd.endswith("bin/opensearch-plugin install discovery-ec2")


def test_minimal_distribution_fetches_pinned_plugin_and_uses_own_binary():
    spec = _spec(
        opensearch_version="2.12.0",
        cpu_arch="arm64",
        min_distribution=True,
        security_disabled=True,
        distribution_url=CI_URL,
    )
    bootstrap = _composer().compose(_group(spec, Role.DATA), spec)
    cmd = bootstrap.step("plugin.discovery").payload.command
    assert (
        "https://ci.opensearch.org/ci/dbc/distribution-build-opensearch/2.12.0/latest/linux/arm64"
        "/tar/builds/opensearch/core-plugins/discovery-ec2-2.12.0.zip"
    ) in cmd
    assert bootstrap.step("plugin.discovery").fatal is True
    # no security plugin in a minimal build, so nothing to disable
    assert not bootstrap.has("config.security-disabled")
    start = bootstrap.step("engine.start").payload.command
    assert "./bin/opensearch >> install.log 2>&1 &" in start
    assert "tar-install" not in start


def test_additional_config_is_appended_after_everything_else():
    spec = _spec(additional_config="indices.query.bool.max_clause_count: 4096", security_disabled=True)
    bootstrap = _composer().compose(_group(spec, Role.DATA), spec)
    names = bootstrap.names()
    assert names.index("config.additional") == names.index("engine.start") - 1
    step = bootstrap.step("config.additional")
    assert step.payload.content == "indices.query.bool.max_clause_count: 4096\n"
    assert step.payload.append is True


def test_blank_jvm_props_are_dropped():
    spec = _spec(jvm_sys_props="a=1,, ,b=2,")
    bootstrap = _composer().compose(_group(spec, Role.DATA), spec)
    assert [s.name for s in bootstrap if s.name.startswith("jvm.sysprop")] == ["jvm.sysprop.1", "jvm.sysprop.2"]


def test_dashboards_steps_with_security_disabled():
    spec = _spec(dashboards_url="https://artifacts.opensearch.org/osd.tar.gz", security_disabled=True)
    bootstrap = _composer().compose(_group(spec, Role.DATA), spec)
    names = bootstrap.names()
    assert names[-4:] == [
        "dashboards.download",
        "dashboards.bind",
        "dashboards.security-disabled",
        "dashboards.start",
    ]
    assert names.index("engine.start") < names.index("dashboards.download")
    assert bootstrap.step("dashboards.bind").payload.content == "server.host: 0.0.0.0\n"
    strip = bootstrap.step("dashboards.security-disabled").payload.command
    assert "remove securityDashboards" in strip
    assert "sed -i 's/https/http/'" in strip
    assert "dashboard_install.log" in bootstrap.step("dashboards.start").payload.command


def test_dashboards_keep_security_when_enabled():
    spec = _spec(dashboards_url="https://artifacts.opensearch.org/osd.tar.gz")
    bootstrap = _composer().compose(_group(spec, Role.DATA), spec)
    assert bootstrap.has("dashboards.start")
    assert not bootstrap.has("dashboards.security-disabled")


def test_optional_steps_follow_failure_policy():
    kw = dict(security_disabled=True, jvm_sys_props="a=1", use_50_percent_heap=True, additional_config="x: 1")
    strict = _spec(**kw)
    relaxed = _spec(optional_step_failure="warn", **kw)
    optional = ["config.security-disabled", "jvm.sysprop.1", "jvm.heap", "config.additional"]

    strict_plan = _composer().compose(_group(strict, Role.DATA), strict)
    relaxed_plan = _composer().compose(_group(relaxed, Role.DATA), relaxed)
    assert all(strict_plan.step(n).fatal for n in optional)
    assert not any(relaxed_plan.step(n).fatal for n in optional)
    # core steps stay fatal regardless
    for name in ("metrics-agent.install", "sysctl.max-map-count", "engine.download", "plugin.discovery", "engine.start"):
        assert relaxed_plan.step(name).fatal is True


def test_metrics_agent_ships_engine_log_to_log_group():
    spec = _spec(log_group_name="demoLogGroup/opensearch.log")
    bootstrap = _composer().compose(_group(spec, Role.DATA), spec)
    config = json.loads(bootstrap.step("metrics-agent.config").payload.content)
    collect = config["logs"]["logs_collected"]["files"]["collect_list"][0]
    assert collect["file_path"] == "/home/ec2-user/opensearch/logs/demo.log"
    assert collect["log_group_name"] == "demoLogGroup/opensearch.log"
    assert config["logs"]["force_flush_interval"] == 5
    assert config["agent"]["metrics_collection_interval"] == 60


def test_composition_is_deterministic_and_emits_event():
    spec = _spec(jvm_sys_props="a=1", use_50_percent_heap=True)
    cap = Capture()
    composer = Composer(load_templates(), bus=EventBus([cap]))
    group = _group(spec, Role.DATA)
    assert composer.compose(group, spec) == composer.compose(group, spec)
    ev = next(e for e in cap.events if isinstance(e, PlanComposed))
    assert ev.role == "data"
    assert ev.steps[0] == "metrics-agent.install"


def test_module_level_compose_uses_packaged_templates():
    spec = _spec(single_node=True)
    assert compose(_group(spec, Role.SINGLE), spec).names()[-1] == "engine.start"


def test_plans_are_immutable():
    spec = _spec()
    bootstrap = compose(_group(spec, Role.DATA), spec)
    with pytest.raises(AttributeError):
        bootstrap.steps = ()


def test_download_urls_are_shell_quoted():
    presigned = "https://bucket.s3.amazonaws.com/opensearch.tar.gz?X-Amz-Credential=a%2Fb&X-Amz-Signature=abc"
    dash = "https://bucket.s3.amazonaws.com/dashboards.tar.gz?sig=1&exp=2"
    spec = _spec(distribution_url=presigned, dashboards_url=dash)
    bootstrap = _composer().compose(_group(spec, Role.DATA), spec)

    engine = bootstrap.step("engine.download").payload.command
    assert f"curl -L '{presigned}' -o opensearch.tar.gz" in engine
    dashboards = bootstrap.step("dashboards.download").payload.command
    assert f"curl -L '{dash}' -o opensearch-dashboards.tar.gz" in dashboards


def test_metrics_agent_uses_instance_package_manager():
    bootstrap = compose(_group(_spec(), Role.DATA), _spec())
    assert bootstrap.step("metrics-agent.install").payload.manager is None
