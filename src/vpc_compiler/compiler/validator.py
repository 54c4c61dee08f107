"""Graph validator.

Checks run in a fixed order. The first kind with offenders fails, reporting
every offending node of that kind at once. The graph is never modified.
"""

from itertools import combinations
from typing import Callable, Iterator

from ..core.logging import get_logger
from ..errors import ValidationError, ValidationKind
from ..models.base import CIDRBlock
from ..models.graph import ResourceGraph, ResourceKind, ResourceNode

logger = get_logger("validator")

PROTOCOLS = {"tcp", "udp", "icmp", "all"}
MAX_PORT = 65535

# Properties holding identifiers of other nodes, per kind
REFERENCE_FIELDS: dict[ResourceKind, tuple[str, ...]] = {
    ResourceKind.SUBNET: ("network",),
    ResourceKind.INTERNET_GATEWAY: ("network",),
    ResourceKind.NAT_GATEWAY: ("subnet", "elastic_ip"),
    ResourceKind.ROUTE_TABLE: ("network", "subnet"),
    ResourceKind.ROUTE: ("route_table", "target"),
    ResourceKind.SECURITY_GROUP: ("network",),
    ResourceKind.SECURITY_GROUP_RULE: ("group", "peer_group"),
    ResourceKind.ENDPOINT: ("network", "subnets", "route_tables", "security_groups"),
    ResourceKind.INSTANCE: ("subnet", "security_groups", "role"),
}


def _references(node: ResourceNode) -> Iterator[str]:
    for key in REFERENCE_FIELDS.get(node.kind, ()):
        value = node.prop(key)
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            yield from value
        else:
            yield value
    yield from node.depends_on


def check_cidr_containment(graph: ResourceGraph) -> set[str]:
    """Subnets must sit inside their network and not overlap siblings."""
    offenders: set[str] = set()
    blocks: dict[str, CIDRBlock] = {}
    for node in graph.by_kind(ResourceKind.SUBNET):
        try:
            blocks[node.id] = CIDRBlock(cidr=node.prop("cidr"))
        except ValueError:
            offenders.add(node.id)
            continue
        network = graph.get(node.prop("network", ""))
        if network is None:
            # dangling parent, reported by the reference check
            continue
        try:
            parent = CIDRBlock(cidr=network.prop("cidr"))
        except ValueError:
            offenders.update((node.id, network.id))
            continue
        if not parent.contains(blocks[node.id]):
            offenders.add(node.id)

    for (a, a_block), (b, b_block) in combinations(sorted(blocks.items()), 2):
        same_parent = graph.get(a).prop("network") == graph.get(b).prop("network")
        if same_parent and a_block.overlaps(b_block):
            offenders.update((a, b))
    return offenders


def _route_targets(graph: ResourceGraph, subnet: ResourceNode) -> set[ResourceKind]:
    tables = {
        t.id
        for t in graph.by_kind(ResourceKind.ROUTE_TABLE)
        if t.prop("subnet") == subnet.id
    }
    kinds = set()
    for route in graph.by_kind(ResourceKind.ROUTE):
        if route.prop("route_table") not in tables:
            continue
        target = graph.get(route.prop("target", ""))
        if target is not None:
            kinds.add(target.kind)
    return kinds


def check_reachability(graph: ResourceGraph) -> set[str]:
    """Public subnets route to an internet gateway, private ones to a NAT."""
    offenders = set()
    for subnet in graph.by_kind(ResourceKind.SUBNET):
        tier = subnet.prop("tier")
        targets = _route_targets(graph, subnet)
        if tier == "public":
            if ResourceKind.INTERNET_GATEWAY not in targets:
                offenders.add(subnet.id)
        elif not subnet.prop("isolated", False):
            if ResourceKind.NAT_GATEWAY not in targets:
                offenders.add(subnet.id)
    return offenders


def check_references(graph: ResourceGraph) -> set[str]:
    """Every weak reference and dependency must resolve."""
    offenders = set()
    for node in graph:
        for ref in _references(node):
            if ref not in graph:
                logger.debug("%s references missing node %s", node.id, ref)
                offenders.add(node.id)
    return offenders


def _valid_port(port, protocol: str) -> bool:
    if not isinstance(port, int) or isinstance(port, bool):
        return False
    if port == -1:
        return protocol in ("icmp", "all")
    return 0 <= port <= MAX_PORT


def check_policy(graph: ResourceGraph) -> set[str]:
    """Rules use a known protocol and an ordered, in-range port range."""
    offenders = set()
    for rule in graph.by_kind(ResourceKind.SECURITY_GROUP_RULE):
        protocol = rule.prop("protocol")
        low, high = rule.prop("from_port"), rule.prop("to_port")
        if protocol not in PROTOCOLS:
            offenders.add(rule.id)
        elif not (_valid_port(low, protocol) and _valid_port(high, protocol)):
            offenders.add(rule.id)
        elif low > high:
            offenders.add(rule.id)
    return offenders


CHECKS: list[tuple[ValidationKind, Callable[[ResourceGraph], set[str]], str]] = [
    (
        ValidationKind.CIDR_CONTAINMENT,
        check_cidr_containment,
        "Subnet CIDR outside its network or overlapping a sibling",
    ),
    (
        ValidationKind.REACHABILITY,
        check_reachability,
        "Subnet lacks the gateway route its tier requires",
    ),
    (
        ValidationKind.DANGLING_REFERENCE,
        check_references,
        "Reference to a resource that does not exist",
    ),
    (
        ValidationKind.POLICY_CONSISTENCY,
        check_policy,
        "Security group rule with invalid protocol or port range",
    ),
]


def validate(graph: ResourceGraph) -> ResourceGraph:
    """Validate a resource graph.

    Returns:
        The same graph, so stages compose as emit(validate(build(intent)))

    Raises:
        ValidationError: First failing check kind with all of its offenders
    """
    for kind, check, message in CHECKS:
        offenders = check(graph)
        if offenders:
            logger.debug("%s failed for %d node(s)", kind.value, len(offenders))
            raise ValidationError(kind, offenders, message)
        logger.debug("%s passed", kind.value)
    return graph
