"""Tests for the graph validator"""

import pytest

from vpc_compiler.compiler import build, validate
from vpc_compiler.errors import ValidationError, ValidationKind
from vpc_compiler.models import CIDRBlock, ResourceGraph, ResourceKind


def _graph(*nodes):
    return ResourceGraph.from_nodes(nodes)


@pytest.fixture
def network_nodes(make_node):
    """Network, public subnet with IGW route; the base for hand-built graphs"""
    return [
        make_node("network", "network", cidr="10.0.0.0/16"),
        make_node(
            "subnet/public-a",
            "subnet",
            ["network"],
            network="network",
            cidr="10.0.1.0/24",
            tier="public",
        ),
        make_node("internet-gateway", "internet_gateway", ["network"], network="network"),
        make_node(
            "route-table/public-a",
            "route_table",
            ["subnet/public-a"],
            subnet="subnet/public-a",
        ),
        make_node(
            "route/public-a/default",
            "route",
            ["route-table/public-a", "internet-gateway"],
            route_table="route-table/public-a",
            destination="0.0.0.0/0",
            target="internet-gateway",
        ),
    ]


class TestValidGraphs:
    def test_lab_graph_passes(self, lab_intent):
        graph = build(lab_intent)
        assert validate(graph) is graph

    def test_hand_built_graph_passes(self, network_nodes):
        validate(_graph(*network_nodes))

    def test_isolated_private_subnet_passes(self, lab_intent):
        lab_intent["nat_egress"] = []
        lab_intent["subnets"][1]["isolated"] = True
        validate(build(lab_intent))

    def test_containment_invariant_holds_for_valid_graphs(self, lab_intent):
        graph = validate(build(lab_intent))
        network = CIDRBlock(cidr=graph.get("network").prop("cidr"))
        subnets = [
            CIDRBlock(cidr=s.prop("cidr")) for s in graph.by_kind(ResourceKind.SUBNET)
        ]
        assert all(network.contains(s) for s in subnets)
        for i, a in enumerate(subnets):
            for b in subnets[i + 1 :]:
                assert not a.overlaps(b)


class TestCidrContainment:
    def test_subnet_outside_network(self, lab_intent):
        lab_intent["subnets"][1]["cidr"] = "10.1.2.0/24"
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.kind == ValidationKind.CIDR_CONTAINMENT
        assert exc.value.offending_node_ids == ("subnet/private-zone-b",)

    def test_overlapping_siblings_both_reported(self, lab_intent):
        lab_intent["subnets"][1]["cidr"] = "10.0.0.0/23"
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.kind == ValidationKind.CIDR_CONTAINMENT
        assert exc.value.offending_node_ids == (
            "subnet/private-zone-b",
            "subnet/public-zone-a",
        )

    def test_unparseable_cidr_in_hand_built_graph(self, network_nodes, make_node):
        network_nodes[1] = make_node(
            "subnet/public-a",
            "subnet",
            ["network"],
            network="network",
            cidr="bogus",
            tier="public",
        )
        with pytest.raises(ValidationError) as exc:
            validate(_graph(*network_nodes))
        assert exc.value.kind == ValidationKind.CIDR_CONTAINMENT

    def test_containment_reported_before_policy(self, lab_intent):
        lab_intent["subnets"][1]["cidr"] = "10.1.2.0/24"
        lab_intent["security_groups"][0]["ingress"][0]["protocol"] = "gre"
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.kind == ValidationKind.CIDR_CONTAINMENT


class TestReachability:
    def test_private_subnet_without_nat(self, lab_intent):
        lab_intent["nat_egress"] = []
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.kind == ValidationKind.REACHABILITY
        assert exc.value.offending_node_ids == ("subnet/private-zone-b",)

    def test_public_subnet_without_internet_route(self, network_nodes):
        graph = _graph(*network_nodes[:4])
        with pytest.raises(ValidationError) as exc:
            validate(graph)
        assert exc.value.kind == ValidationKind.REACHABILITY
        assert exc.value.offending_node_ids == ("subnet/public-a",)

    def test_all_unreachable_subnets_reported(self, lab_intent):
        lab_intent["nat_egress"] = []
        lab_intent["subnets"].append(
            {"cidr": "10.0.3.0/24", "zone": "zone-a", "tier": "private"}
        )
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.offending_node_ids == (
            "subnet/private-zone-a",
            "subnet/private-zone-b",
        )


class TestDanglingReferences:
    def test_instance_in_missing_subnet(self, lab_intent):
        lab_intent["instances"][0]["zone"] = "zone-b"
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.kind == ValidationKind.DANGLING_REFERENCE
        assert exc.value.offending_node_ids == ("instance/web-1",)

    def test_unknown_role_and_group(self, lab_intent):
        lab_intent["instances"][0]["role"] = "missing"
        lab_intent["security_groups"][1]["ingress"][0]["group"] = "nobody"
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.offending_node_ids == (
            "instance/web-1",
            "sg-rule/app/ingress/tcp-8080-8080/group-nobody",
        )

    def test_route_to_missing_gateway(self, lab_intent):
        lab_intent["subnets"][0]["routes"] = [
            {"destination": "172.16.0.0/12", "target": "transit-gateway"}
        ]
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.kind == ValidationKind.DANGLING_REFERENCE
        assert exc.value.offending_node_ids == ("route/public-zone-a/172.16.0.0_12",)

    def test_missing_dependency(self, network_nodes, make_node):
        network_nodes.append(make_node("role/x", "role", ["role/ghost"]))
        with pytest.raises(ValidationError) as exc:
            validate(_graph(*network_nodes))
        assert exc.value.offending_node_ids == ("role/x",)


class TestPolicyConsistency:
    @pytest.mark.parametrize(
        "rule, expected_id",
        [
            (
                {"protocol": "tcp", "from_port": 443, "to_port": 80, "cidr": "0.0.0.0/0"},
                "sg-rule/web/ingress/tcp-443-80/cidr-0.0.0.0_0",
            ),
            (
                {"protocol": "gre", "port": 47, "cidr": "0.0.0.0/0"},
                "sg-rule/web/ingress/gre-47-47/cidr-0.0.0.0_0",
            ),
            (
                {"protocol": "udp", "port": 70000, "cidr": "0.0.0.0/0"},
                "sg-rule/web/ingress/udp-70000-70000/cidr-0.0.0.0_0",
            ),
            (
                {"protocol": "tcp", "cidr": "0.0.0.0/0"},
                "sg-rule/web/ingress/tcp--1--1/cidr-0.0.0.0_0",
            ),
        ],
    )
    def test_inconsistent_rule(self, lab_intent, rule, expected_id):
        lab_intent["security_groups"][0]["ingress"].append(rule)
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        assert exc.value.kind == ValidationKind.POLICY_CONSISTENCY
        assert exc.value.offending_node_ids == (expected_id,)

    def test_icmp_wildcard_ports_allowed(self, lab_intent):
        lab_intent["security_groups"][0]["ingress"].append(
            {"protocol": "icmp", "cidr": "10.0.0.0/16"}
        )
        validate(build(lab_intent))

    def test_error_payload(self, lab_intent):
        lab_intent["security_groups"][0]["ingress"][0]["protocol"] = "gre"
        with pytest.raises(ValidationError) as exc:
            validate(build(lab_intent))
        payload = exc.value.to_dict()
        assert payload["kind"] == "policy-consistency"
        assert payload["offending_node_ids"] == [
            "sg-rule/web/ingress/gre-80-80/cidr-0.0.0.0_0"
        ]
