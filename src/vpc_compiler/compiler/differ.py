"""Diff engine.

Compares a previously emitted graph with a newly emitted one and produces the
plan actions needed to move from the old state to the new one.
"""

from typing import Optional, Sequence

from ..core.logging import get_logger
from ..models.graph import ResourceKind, ResourceNode
from ..models.plan import Create, Delete, PlanAction, Replace, Update

logger = get_logger("differ")

# Properties that cannot change without recreating the resource
REPLACE_FIELDS: dict[ResourceKind, frozenset[str]] = {
    ResourceKind.NETWORK: frozenset({"cidr", "region"}),
    ResourceKind.SUBNET: frozenset({"cidr", "zone", "network", "tier"}),
    ResourceKind.INTERNET_GATEWAY: frozenset({"network"}),
    ResourceKind.ELASTIC_IP: frozenset({"domain"}),
    ResourceKind.NAT_GATEWAY: frozenset({"subnet", "elastic_ip"}),
    ResourceKind.ROUTE_TABLE: frozenset({"network", "subnet"}),
    ResourceKind.ROUTE: frozenset({"route_table", "destination"}),
    ResourceKind.SECURITY_GROUP: frozenset({"network", "name", "description"}),
    ResourceKind.SECURITY_GROUP_RULE: frozenset(
        {"group", "direction", "protocol", "from_port", "to_port", "cidr", "peer_group"}
    ),
    ResourceKind.ENDPOINT: frozenset({"network", "service", "type"}),
    ResourceKind.ROLE: frozenset({"name"}),
    ResourceKind.INSTANCE: frozenset({"subnet", "zone", "image"}),
}


def changed_fields(old: ResourceNode, new: ResourceNode) -> list[str]:
    """Names of properties (and 'depends_on') that differ between two nodes."""
    keys = set(old.properties) | set(new.properties)
    changed = sorted(k for k in keys if old.prop(k) != new.prop(k))
    if old.depends_on != new.depends_on:
        changed.append("depends_on")
    return changed


def classify(old: ResourceNode, new: ResourceNode) -> Optional[PlanAction]:
    """Classify the change of a node present in both graphs."""
    if old.kind != new.kind:
        return Replace(
            node_id=new.id,
            reason=f"kind changed from {old.kind.value} to {new.kind.value}",
            changed_fields=("kind",),
            node=new,
        )
    fields = changed_fields(old, new)
    if not fields:
        return None
    immutable = [f for f in fields if f in REPLACE_FIELDS.get(new.kind, ())]
    if immutable:
        return Replace(
            node_id=new.id,
            reason=f"{', '.join(immutable)} cannot be changed in place",
            changed_fields=tuple(fields),
            node=new,
        )
    return Update(node_id=new.id, changed_fields=tuple(fields), node=new)


def diff(
    old: Optional[Sequence[ResourceNode]], new: Sequence[ResourceNode]
) -> list[PlanAction]:
    """Plan the actions turning ``old`` into ``new``.

    Both sequences are emitter output. Creates, updates and replaces follow
    the new creation order; deletes come last in reverse old order so that
    dependents are removed before their dependencies.

    Args:
        old: Previously emitted nodes, or None when nothing exists yet
        new: Newly emitted nodes

    Returns:
        Ordered plan actions; empty when the graphs are identical
    """
    previous = {node.id: node for node in old or ()}
    current_ids = {node.id for node in new}

    actions: list[PlanAction] = []
    for node in new:
        prior = previous.get(node.id)
        if prior is None:
            actions.append(Create(node=node))
            continue
        action = classify(prior, node)
        if action is not None:
            actions.append(action)

    for node in reversed(list(old or ())):
        if node.id not in current_ids:
            actions.append(Delete(node_id=node.id, kind=node.kind))

    logger.debug(
        "Planned %d action(s) from %d old / %d new nodes",
        len(actions),
        len(previous),
        len(current_ids),
    )
    return actions


def summarize(actions: Sequence[PlanAction]) -> dict[str, int]:
    """Count plan actions by type."""
    counts = {"create": 0, "update": 0, "replace": 0, "delete": 0}
    for action in actions:
        counts[action.action] += 1
    return counts
