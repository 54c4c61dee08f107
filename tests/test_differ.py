"""Tests for the diff/plan engine"""

import copy

import pytest

from vpc_compiler.compiler import compile_intent, diff, plan, summarize
from vpc_compiler.models import Create, Delete, Replace, Update


@pytest.fixture
def lab_nodes(lab_intent):
    return compile_intent(lab_intent)


class TestNoChange:
    def test_same_graph_is_empty_plan(self, lab_nodes):
        assert diff(lab_nodes, lab_nodes) == []

    def test_same_intent_is_empty_plan(self, lab_intent):
        assert plan(lab_intent, copy.deepcopy(lab_intent)) == []


class TestCreate:
    def test_no_prior_state_creates_everything(self, lab_nodes):
        actions = diff(None, lab_nodes)
        assert all(isinstance(a, Create) for a in actions)
        assert [a.node.id for a in actions] == [n.id for n in lab_nodes]

    def test_new_instance_is_created(self, lab_intent, lab_nodes):
        lab_intent["instances"].append(
            {"name": "app-2", "tier": "private", "zone": "zone-b", "image": "ami-1"}
        )
        actions = diff(lab_nodes, compile_intent(lab_intent))
        assert [(a.action, a.target_id) for a in actions] == [
            ("create", "instance/app-2")
        ]


class TestReplaceAndUpdate:
    def test_subnet_cidr_change_replaces_only_subnet(self, lab_intent, lab_nodes):
        lab_intent["subnets"][1]["cidr"] = "10.0.3.0/24"
        actions = diff(lab_nodes, compile_intent(lab_intent))
        assert len(actions) == 1
        (action,) = actions
        assert isinstance(action, Replace)
        assert action.node_id == "subnet/private-zone-b"
        assert action.changed_fields == ("cidr",)
        assert "cidr" in action.reason

    def test_instance_type_change_is_update(self, lab_intent, lab_nodes):
        lab_intent["instances"][1]["instance_type"] = "t3.large"
        actions = diff(lab_nodes, compile_intent(lab_intent))
        assert actions == [
            Update(
                node_id="instance/app-1",
                changed_fields=("instance_type",),
                node=actions[0].node,
            )
        ]

    def test_instance_image_change_is_replace(self, lab_intent, lab_nodes):
        lab_intent["instances"][1]["image"] = "ami-0fedcba9876543210"
        (action,) = diff(lab_nodes, compile_intent(lab_intent))
        assert isinstance(action, Replace)

    def test_kind_change_is_replace(self, make_node):
        old = (make_node("gateway", "internet_gateway", network="network"),)
        new = (make_node("gateway", "nat_gateway", subnet="subnet/a"),)
        (action,) = diff(old, new)
        assert isinstance(action, Replace)
        assert "kind changed" in action.reason

    def test_dependency_only_change_is_update(self, make_node):
        old = (make_node("instance/a", "instance", ["role/x"]),)
        new = (make_node("instance/a", "instance", ["role/y"]),)
        (action,) = diff(old, new)
        assert isinstance(action, Update)
        assert action.changed_fields == ("depends_on",)


class TestDelete:
    @pytest.fixture
    def shrunk_intent(self, lab_intent):
        lab_intent["nat_egress"] = []
        lab_intent["subnets"][1]["isolated"] = True
        lab_intent["endpoints"] = []
        lab_intent["instances"] = lab_intent["instances"][:1]
        return lab_intent

    def test_removed_nodes_are_deleted(self, lab_nodes, shrunk_intent):
        actions = diff(lab_nodes, compile_intent(shrunk_intent))
        deleted = {a.node_id for a in actions if isinstance(a, Delete)}
        assert deleted == {
            "elastic-ip/zone-b",
            "nat-gateway/zone-b",
            "route/private-zone-b/default",
            "endpoint/ssm",
            "endpoint/ssmmessages",
            "endpoint/ec2messages",
            "endpoint/s3",
            "instance/app-1",
        }

    def test_deletes_come_last(self, lab_nodes, shrunk_intent):
        actions = diff(lab_nodes, compile_intent(shrunk_intent))
        kinds = [a.action for a in actions]
        first_delete = kinds.index("delete")
        assert all(k == "delete" for k in kinds[first_delete:])
        assert ("update", "subnet/private-zone-b") in [
            (a.action, a.target_id) for a in actions[:first_delete]
        ]

    def test_dependents_deleted_before_dependencies(self, lab_nodes, shrunk_intent):
        actions = diff(lab_nodes, compile_intent(shrunk_intent))
        order = [a.node_id for a in actions if isinstance(a, Delete)]
        old = {n.id: n for n in lab_nodes}
        for i, node_id in enumerate(order):
            for dep in old[node_id].depends_on:
                if dep in order:
                    assert order.index(dep) > i, (node_id, dep)

    def test_route_removed_before_nat(self, lab_nodes, shrunk_intent):
        actions = diff(lab_nodes, compile_intent(shrunk_intent))
        order = [a.node_id for a in actions if isinstance(a, Delete)]
        assert order.index("route/private-zone-b/default") < order.index(
            "nat-gateway/zone-b"
        )
        assert order.index("nat-gateway/zone-b") < order.index("elastic-ip/zone-b")

    def test_everything_deleted(self, lab_nodes):
        actions = diff(lab_nodes, ())
        assert [a.node_id for a in actions] == [n.id for n in reversed(lab_nodes)]


class TestSummary:
    def test_counts_by_action(self, lab_intent, lab_nodes):
        lab_intent["subnets"][1]["cidr"] = "10.0.3.0/24"
        lab_intent["instances"][0]["instance_type"] = "t3.small"
        lab_intent["roles"].append({"name": "audit"})
        counts = summarize(diff(lab_nodes, compile_intent(lab_intent)))
        assert counts == {"create": 1, "update": 1, "replace": 1, "delete": 0}
