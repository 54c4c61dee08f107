"""Shared pytest fixtures"""

import copy
from io import StringIO

import pytest
from rich.console import Console

from vpc_compiler import config
from vpc_compiler.models import ResourceKind, ResourceNode

LAB_INTENT = {
    "name": "lab",
    "network": {
        "cidr": "10.0.0.0/16",
        "region": "us-east-1",
        "zones": ["zone-a", "zone-b"],
    },
    "subnets": [
        {"cidr": "10.0.1.0/24", "zone": "zone-a", "tier": "public"},
        {"cidr": "10.0.2.0/24", "zone": "zone-b", "tier": "private"},
    ],
    "nat_egress": ["zone-b"],
    "security_groups": [
        {
            "name": "web",
            "description": "Public web tier",
            "tiers": ["public"],
            "ingress": [
                {"protocol": "tcp", "port": 80, "cidr": "0.0.0.0/0"},
                {"protocol": "tcp", "port": 443, "cidr": "0.0.0.0/0"},
            ],
            "egress": [{"protocol": "all", "cidr": "0.0.0.0/0"}],
        },
        {
            "name": "app",
            "description": "Private application tier",
            "tiers": ["private"],
            "ingress": [
                {"protocol": "tcp", "from_port": 8080, "to_port": 8080, "group": "web"},
                {"protocol": "tcp", "port": 443, "cidr": "10.0.0.0/16"},
            ],
            "egress": [{"protocol": "all", "cidr": "0.0.0.0/0"}],
        },
    ],
    "endpoints": ["ssm", "ssmmessages", "ec2messages", "s3"],
    "roles": [
        {"name": "ssm-managed", "managed_policies": ["AmazonSSMManagedInstanceCore"]}
    ],
    "instances": [
        {
            "name": "web-1",
            "tier": "public",
            "zone": "zone-a",
            "image": "ami-0123456789abcdef0",
            "role": "ssm-managed",
        },
        {
            "name": "app-1",
            "tier": "private",
            "zone": "zone-b",
            "image": "ami-0123456789abcdef0",
            "role": "ssm-managed",
        },
    ],
}


@pytest.fixture
def lab_intent():
    """Two-zone lab: public subnet in zone-a, NAT-backed private subnet in zone-b"""
    return copy.deepcopy(LAB_INTENT)


@pytest.fixture
def minimal_intent():
    """Network with a single public subnet and nothing else"""
    return {
        "network": {"cidr": "10.0.0.0/16"},
        "subnets": [{"cidr": "10.0.1.0/24", "zone": "zone-a", "tier": "public"}],
    }


@pytest.fixture
def make_node():
    """Factory for hand-built resource nodes"""

    def _make(node_id, kind, depends_on=(), **properties):
        return ResourceNode(
            id=node_id,
            kind=ResourceKind(kind),
            properties=properties,
            depends_on=tuple(depends_on),
        )

    return _make


@pytest.fixture
def mock_console():
    """Create a console that captures output"""
    output = StringIO()
    console = Console(file=output, force_terminal=True, highlight=False, width=120)
    console._output = output
    return console


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep persisted defaults out of the user's home directory"""
    config_dir = tmp_path / "config"
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_FILE", config_dir / "config.json")
    config.RuntimeConfig.reset()
    yield config_dir
    config.RuntimeConfig.reset()
