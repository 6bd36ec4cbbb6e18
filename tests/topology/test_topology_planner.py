import pytest

from oscluster.config.models import ClusterSpec
from oscluster.observers.dispatcher import EventBus
from oscluster.observers.events import PlanComputed, PlanFailed
from oscluster.topology.errors import InvalidSpecError
from oscluster.topology.models import Role
from oscluster.topology.planner import plan


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


def _spec(**kw):
    base = dict(
        cluster_name="demo",
        opensearch_version="2.11.0",
        distribution_url="https://artifacts.opensearch.org/releases/bundle/opensearch/2.11.0/opensearch-2.11.0-linux-x64.tar.gz",
        data_instance_type="r5.2xlarge",
        data_storage_gib=200,
        ml_instance_type="g5.xlarge",
        ml_storage_gib=150,
    )
    base.update(kw)
    return ClusterSpec(**base)


def test_single_node_yields_one_load_balanced_group():
    topo = plan(_spec(single_node=True, manager_count=3, data_count=4, client_count=2, ml_count=1))
    assert len(topo.role_groups) == 1
    g = topo.role_groups[0]
    assert g.role == Role.SINGLE
    assert g.capacity == 1
    assert g.is_load_balancer_target is True
    assert g.instance_type == "r5.xlarge"
    assert g.storage_gib == 200
    assert topo.seed_role == Role.SINGLE
    assert topo.launch_waves() == [[g]]


def test_single_node_arm_uses_graviton_type():
    topo = plan(_spec(single_node=True, cpu_arch="arm64"))
    assert topo.role_groups[0].instance_type == "r6g.xlarge"


def test_single_node_accepts_zero_counts():
    topo = plan(_spec(single_node=True, manager_count=0, data_count=0))
    assert topo.roles() == [Role.SINGLE]


def test_seed_carved_from_managers_and_data_takes_client_traffic():
    topo = plan(_spec(manager_count=3, data_count=4, client_count=0))
    assert topo.roles() == [Role.SEED, Role.MANAGER, Role.DATA]

    seed = topo.group(Role.SEED)
    assert seed.capacity == 1
    assert seed.instance_type == "c5.xlarge"
    assert seed.storage_gib == 50
    assert seed.overlay_key == "seed-manager"

    assert topo.group(Role.MANAGER).capacity == 2
    data = topo.group(Role.DATA)
    assert data.capacity == 4
    assert data.is_load_balancer_target is True
    assert topo.group(Role.CLIENT) is None
    assert [g.role for g in topo.load_balancer_targets()] == [Role.DATA]


def test_seed_carved_from_data_when_no_managers():
    topo = plan(_spec(manager_count=0, data_count=5))
    seed = topo.group(Role.SEED)
    assert seed.capacity == 1
    assert seed.instance_type == "r5.2xlarge"
    assert seed.storage_gib == 200
    assert seed.overlay_key == "seed-data"
    assert topo.group(Role.MANAGER) is None
    assert topo.group(Role.DATA).capacity == 4


def test_single_manager_is_absorbed_by_seed():
    topo = plan(_spec(manager_count=1, data_count=2))
    assert topo.group(Role.MANAGER) is None
    assert topo.group(Role.SEED).overlay_key == "seed-manager"
    assert topo.group(Role.DATA).capacity == 2


def test_client_group_takes_traffic_instead_of_data():
    topo = plan(_spec(manager_count=3, data_count=2, client_count=2, ml_count=1))
    assert topo.roles() == [Role.SEED, Role.MANAGER, Role.DATA, Role.CLIENT, Role.ML]
    assert topo.group(Role.DATA).is_load_balancer_target is False
    client = topo.group(Role.CLIENT)
    assert client.is_load_balancer_target is True
    assert client.tags == {"role": "client", "cluster": "demo"}
    ml = topo.group(Role.ML)
    assert ml.capacity == 1
    assert ml.instance_type == "g5.xlarge"
    assert ml.storage_gib == 150
    assert ml.is_load_balancer_target is False


def test_seed_manager_and_ml_never_receive_traffic():
    topo = plan(_spec(manager_count=3, data_count=3, client_count=0, ml_count=2))
    for role in (Role.SEED, Role.MANAGER, Role.ML):
        assert topo.group(role).is_load_balancer_target is False


def test_launch_waves_start_seed_alone():
    topo = plan(_spec(manager_count=3, data_count=2, client_count=1))
    waves = topo.launch_waves()
    assert [g.role for g in waves[0]] == [Role.SEED]
    assert [g.role for g in waves[1]] == [Role.MANAGER, Role.DATA, Role.CLIENT]


def test_listener_ports_follow_security_posture():
    secure = plan(_spec(dashboards_url="https://example.com/osd.tar.gz"))
    assert [(l.name, l.port, l.target_port) for l in secure.listeners] == [
        ("opensearch", 443, 9200),
        ("dashboards", 8443, 5601),
    ]
    insecure = plan(_spec(security_disabled=True))
    assert [(l.name, l.port) for l in insecure.listeners] == [("opensearch", 80)]
    minimal = plan(_spec(min_distribution=True))
    assert minimal.listeners[0].port == 80


def test_internal_load_balancer():
    assert plan(_spec(is_internal=True)).internet_facing is False


@pytest.mark.parametrize(
    "counts",
    [
        dict(manager_count=0, data_count=0, client_count=0, ml_count=0),
        dict(manager_count=1, data_count=0),
        dict(manager_count=3, data_count=0, client_count=2),
        dict(manager_count=0, data_count=1, client_count=0),
    ],
)
def test_impossible_topologies_are_rejected(counts):
    with pytest.raises(InvalidSpecError):
        plan(_spec(**counts))


def test_negative_counts_are_rejected_even_when_unvalidated():
    spec = _spec().model_copy(update={"ml_count": -1})
    with pytest.raises(InvalidSpecError):
        plan(spec)


def test_plan_emits_computed_event():
    cap = Capture()
    plan(_spec(manager_count=3, data_count=4), bus=EventBus([cap]))
    pc = next(e for e in cap.events if isinstance(e, PlanComputed))
    assert pc.groups == ["seed:1", "manager:2", "data:4"]
    assert pc.seed_role == "seed"
    assert pc.cluster == "demo"


def test_plan_failure_emits_event_and_raises():
    cap = Capture()
    with pytest.raises(InvalidSpecError):
        plan(_spec(manager_count=0, data_count=0), bus=EventBus([cap]))
    pf = next(e for e in cap.events if isinstance(e, PlanFailed))
    assert "single_node is false" in pf.error
