import pytest
import yaml

from scalectl.modules.scale.config import DeployConfig
from scalectl.modules.scale.exceptions import ConfigurationError


def test_defaults_describe_ten_node_cluster():
    config = DeployConfig()

    assert config.node_names == [f"node{i}" for i in range(1, 11)]
    assert [n.name for n in config.nodes if n.quorum] == [f"node{i}" for i in range(1, 6)]
    assert [n.name for n in config.nodes if n.gui] == ["node10"]
    assert config.health_node == "node1"
    assert config.toolkit.path == "/usr/lpp/mmfs/5.2.3.2/ansible-toolkit/spectrumscale"
    assert config.nsd_mapping[0].failure_group == 101
    assert config.nsd_mapping[1].failure_group == 102


def test_load_from_yaml(tmp_path):
    path = tmp_path / "scalectl.yaml"
    path.write_text(yaml.safe_dump({
        "cluster": {
            "name": "lab",
            "mgmt_ip": "192.168.10.5",
            "nodes": [
                {"name": "s1", "quorum": True, "manager": True, "device": "/dev/sdb", "failure_group": 1},
                {"name": "s2", "manager": True, "device": "/dev/sdb", "failure_group": 2},
                {"name": "g1", "gui": True},
            ],
        },
        "health": {"node": "s2"},
        "broadcast": {"transport": "threads"},
    }))

    config = DeployConfig.load(path)

    assert config.cluster.name == "lab"
    assert [(e.node, e.failure_group) for e in config.nsd_mapping] == [("s1", 1), ("s2", 2)]
    assert config.health_node == "s2"
    assert config.broadcast.transport == "threads"


def test_missing_explicit_file_is_an_error(tmp_path):
    with pytest.raises(ConfigurationError):
        DeployConfig.load(tmp_path / "absent.yaml")


@pytest.mark.parametrize("nodes", [
    [],
    [{"name": "a"}],
    [{"name": "a", "quorum": True}, {"name": "a"}],
    [{"name": "a", "quorum": True, "device": "/dev/sdb"}],
    [{"name": "a", "quorum": True, "device": "/dev/sdb", "failure_group": 0}],
])
def test_invalid_topology_is_rejected(tmp_path, nodes):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"cluster": {"nodes": nodes}}))

    with pytest.raises(ConfigurationError):
        DeployConfig.load(path)


def test_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "c.yaml"
    path.write_text("ssh:\n  user: admin\n")
    monkeypatch.setenv("SCALECTL_SSH_USER", "deploy")
    monkeypatch.setenv("SCALECTL_BROADCAST", "threads")

    config = DeployConfig.load(path)

    assert config.ssh.user == "deploy"
    assert config.broadcast.transport == "threads"


def test_zero_broadcast_workers_is_rejected(tmp_path):
    path = tmp_path / "c.yaml"
    path.write_text("broadcast:\n  max_workers: 0\n")

    with pytest.raises(ConfigurationError):
        DeployConfig.load(path)


def test_non_mapping_file_is_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigurationError):
        DeployConfig.load(path)
