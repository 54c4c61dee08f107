"""Entity graph builder.

Turns a topology intent into a flat table of immutable resource nodes with
explicit dependency edges. Identifiers are derived from each entity's place
in the intent, so two builds of the same intent always agree.
"""

from collections.abc import Mapping
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.logging import get_logger
from ..errors import SchemaError
from ..models.base import ANYWHERE
from ..models.graph import ResourceGraph, ResourceKind, ResourceNode
from ..models.intent import (
    PolicyRuleIntent,
    SubnetIntent,
    TopologyIntent,
)

logger = get_logger("builder")

NETWORK_ID = "network"
INTERNET_GATEWAY_ID = "internet-gateway"
SHARED_NAT = "shared"
DEFAULT_NAT_REDUNDANCY = "per-zone"


def subnet_id(tier: str, zone: str) -> str:
    return f"subnet/{tier}-{zone}"


def route_table_id(tier: str, zone: str) -> str:
    return f"route-table/{tier}-{zone}"


def route_id(tier: str, zone: str, destination: str) -> str:
    suffix = "default" if destination == ANYWHERE else destination.replace("/", "_")
    return f"route/{tier}-{zone}/{suffix}"


def nat_gateway_id(zone: str) -> str:
    return f"nat-gateway/{zone}"


def elastic_ip_id(zone: str) -> str:
    return f"elastic-ip/{zone}"


def security_group_id(name: str) -> str:
    return f"security-group/{name}"


def rule_id(group: str, direction: str, rule: PolicyRuleIntent) -> str:
    if rule.cidr is not None:
        peer = "cidr-" + rule.cidr.replace("/", "_")
    else:
        peer = f"group-{rule.group}"
    ports = f"{rule.protocol}-{rule.from_port}-{rule.to_port}"
    return f"sg-rule/{group}/{direction}/{ports}/{peer}"


def endpoint_id(service: str) -> str:
    return f"endpoint/{service}"


def role_id(name: str) -> str:
    return f"role/{name}"


def instance_id(name: str) -> str:
    return f"instance/{name}"


def _schema_error(exc: PydanticValidationError) -> SchemaError:
    """Convert the first pydantic error into a SchemaError with a field path."""
    err = exc.errors()[0]
    path = ".".join(str(part) for part in err.get("loc", ()))
    return SchemaError(err.get("msg", "invalid value"), path)


def load_intent_model(intent: Union[TopologyIntent, Mapping[str, Any]]) -> TopologyIntent:
    """Coerce a mapping into a TopologyIntent, raising SchemaError."""
    if isinstance(intent, TopologyIntent):
        return intent
    if not isinstance(intent, Mapping):
        raise SchemaError(
            f"Topology intent must be a mapping, got {type(intent).__name__}"
        )
    try:
        return TopologyIntent.model_validate(dict(intent))
    except PydanticValidationError as e:
        raise _schema_error(e) from e


class _GraphBuilder:
    def __init__(self, intent: TopologyIntent, nat_redundancy: str):
        self.intent = intent
        self.nat_redundancy = nat_redundancy
        self.nodes: dict[str, ResourceNode] = {}
        self.subnets: list[tuple[int, SubnetIntent]] = sorted(
            enumerate(intent.subnets), key=lambda item: (item[1].zone, item[1].tier)
        )
        self.nat_for_zone: dict[str, str] = {}

    def _add(
        self,
        node_id: str,
        kind: ResourceKind,
        properties: dict,
        depends_on: Iterable[str] = (),
        path: str = "",
    ) -> None:
        if node_id in self.nodes:
            raise SchemaError(f"Duplicate resource identifier '{node_id}'", path)
        self.nodes[node_id] = ResourceNode(
            id=node_id,
            kind=kind,
            properties=properties,
            depends_on=tuple(depends_on),
        )

    def _public_subnets(self) -> list[SubnetIntent]:
        return [s for _, s in self.subnets if s.tier == "public"]

    def _private_subnets(self) -> list[SubnetIntent]:
        return [s for _, s in self.subnets if s.tier == "private"]

    def build(self) -> ResourceGraph:
        self._check_zones()
        self._add_network()
        self._add_subnets()
        self._add_gateways()
        self._add_routing()
        self._add_roles()
        self._add_security_groups()
        self._add_endpoints()
        self._add_instances()
        return ResourceGraph(self.nodes)

    def _check_zones(self) -> None:
        declared = set(self.intent.network.zones)
        seen: set[tuple[str, str]] = set()
        for index, subnet in self.subnets:
            path = f"subnets.{index}"
            if declared and subnet.zone not in declared:
                raise SchemaError(
                    f"Zone '{subnet.zone}' is not declared in network.zones",
                    f"{path}.zone",
                )
            key = (subnet.zone, subnet.tier)
            if key in seen:
                raise SchemaError(
                    f"More than one {subnet.tier} subnet in zone '{subnet.zone}'",
                    path,
                )
            seen.add(key)

        subnet_zones = {s.zone for _, s in self.subnets}
        for index, zone in enumerate(self.intent.nat_egress):
            if zone not in subnet_zones:
                raise SchemaError(
                    f"Zone '{zone}' has no subnets but NAT egress references it",
                    f"nat_egress.{index}",
                )
        if self.intent.nat_egress and not self._public_subnets():
            raise SchemaError(
                "NAT egress requires at least one public subnet", "nat_egress"
            )

    def _add_network(self) -> None:
        network = self.intent.network
        zones = network.zones or sorted({s.zone for _, s in self.subnets})
        self._add(
            NETWORK_ID,
            ResourceKind.NETWORK,
            {
                "name": self.intent.name,
                "cidr": network.cidr,
                "region": network.region,
                "zones": sorted(zones),
                "enable_dns_hostnames": True,
                "enable_dns_support": True,
            },
        )

    def _add_subnets(self) -> None:
        for index, subnet in self.subnets:
            self._add(
                subnet_id(subnet.tier, subnet.zone),
                ResourceKind.SUBNET,
                {
                    "name": subnet.name
                    or f"{self.intent.name}-{subnet.tier}-{subnet.zone}",
                    "network": NETWORK_ID,
                    "cidr": subnet.cidr,
                    "zone": subnet.zone,
                    "tier": subnet.tier,
                    "isolated": subnet.isolated,
                    "map_public_ip": subnet.tier == "public",
                },
                [NETWORK_ID],
                path=f"subnets.{index}",
            )

    def _add_gateways(self) -> None:
        public = self._public_subnets()
        if not public:
            return
        self._add(
            INTERNET_GATEWAY_ID,
            ResourceKind.INTERNET_GATEWAY,
            {"network": NETWORK_ID},
            [NETWORK_ID],
        )

        egress_zones = {
            s.zone for _, s in self.subnets if s.tier == "private" and not s.isolated
        }
        nat_zones = sorted(set(self.intent.nat_egress) & egress_zones)
        skipped = sorted(set(self.intent.nat_egress) - egress_zones)
        if skipped:
            logger.info("No private subnet needs NAT in %s", ", ".join(skipped))
        if not nat_zones:
            return
        public_by_zone = {s.zone: s for s in public}

        if self.nat_redundancy == "single-shared":
            placements = {SHARED_NAT: (public[0], nat_zones)}
        else:
            placements = {
                zone: (public_by_zone.get(zone, public[0]), [zone])
                for zone in nat_zones
            }

        for suffix, (host, served) in sorted(placements.items()):
            nat_id = nat_gateway_id(suffix)
            eip_id = elastic_ip_id(suffix)
            host_id = subnet_id(host.tier, host.zone)
            self._add(
                eip_id,
                ResourceKind.ELASTIC_IP,
                {"domain": "vpc"},
                [INTERNET_GATEWAY_ID],
            )
            self._add(
                nat_id,
                ResourceKind.NAT_GATEWAY,
                {
                    "subnet": host_id,
                    "zone": host.zone,
                    "elastic_ip": eip_id,
                    "serves": list(served),
                },
                [host_id, eip_id],
            )
            for zone in served:
                self.nat_for_zone[zone] = nat_id
        logger.debug(
            "Placed %d NAT gateway(s) (%s)", len(placements), self.nat_redundancy
        )

    def _default_target(self, subnet: SubnetIntent) -> Optional[str]:
        if subnet.tier == "public":
            return INTERNET_GATEWAY_ID
        if subnet.isolated:
            return None
        return self.nat_for_zone.get(subnet.zone)

    def _add_routing(self) -> None:
        for index, subnet in self.subnets:
            sid = subnet_id(subnet.tier, subnet.zone)
            rt_id = route_table_id(subnet.tier, subnet.zone)
            self._add(
                rt_id,
                ResourceKind.ROUTE_TABLE,
                {"network": NETWORK_ID, "subnet": sid, "tier": subnet.tier},
                [NETWORK_ID, sid],
            )

            routes = []
            target = self._default_target(subnet)
            if target:
                routes.append((ANYWHERE, target, False, f"subnets.{index}"))
            for r_index, route in enumerate(subnet.routes):
                routes.append(
                    (
                        route.destination,
                        route.target,
                        True,
                        f"subnets.{index}.routes.{r_index}",
                    )
                )

            for destination, target, explicit, path in routes:
                self._add(
                    route_id(subnet.tier, subnet.zone, destination),
                    ResourceKind.ROUTE,
                    {
                        "route_table": rt_id,
                        "destination": destination,
                        "target": target,
                        "explicit": explicit,
                    },
                    [rt_id, target],
                    path=path,
                )

    def _add_roles(self) -> None:
        for index, role in enumerate(self.intent.roles):
            self._add(
                role_id(role.name),
                ResourceKind.ROLE,
                {"name": role.name, "managed_policies": sorted(role.managed_policies)},
                path=f"roles.{index}",
            )

    def _add_security_groups(self) -> None:
        for index, group in enumerate(self.intent.security_groups):
            sg_id = security_group_id(group.name)
            self._add(
                sg_id,
                ResourceKind.SECURITY_GROUP,
                {
                    "network": NETWORK_ID,
                    "name": group.name,
                    "description": group.description,
                    "tiers": sorted(set(group.tiers)),
                },
                [NETWORK_ID],
                path=f"security_groups.{index}",
            )
            for direction in ("ingress", "egress"):
                for r_index, rule in enumerate(getattr(group, direction)):
                    properties = {
                        "group": sg_id,
                        "direction": direction,
                        "protocol": rule.protocol,
                        "from_port": rule.from_port,
                        "to_port": rule.to_port,
                    }
                    depends_on = [sg_id]
                    if rule.cidr is not None:
                        properties["cidr"] = rule.cidr
                    else:
                        peer = security_group_id(rule.group)
                        properties["peer_group"] = peer
                        depends_on.append(peer)
                    self._add(
                        rule_id(group.name, direction, rule),
                        ResourceKind.SECURITY_GROUP_RULE,
                        properties,
                        depends_on,
                        path=f"security_groups.{index}.{direction}.{r_index}",
                    )

    def _groups_for_tier(self, tier: str) -> list[str]:
        return sorted(
            security_group_id(g.name)
            for g in self.intent.security_groups
            if tier in g.tiers
        )

    def _add_endpoints(self) -> None:
        if not self.intent.endpoints:
            return
        private = self._private_subnets()
        if not private:
            raise SchemaError(
                "Endpoints require at least one private subnet", "endpoints"
            )
        subnet_ids = [subnet_id(s.tier, s.zone) for s in private]
        table_ids = [route_table_id(s.tier, s.zone) for s in private]
        region = self.intent.network.region

        for index, endpoint in enumerate(self.intent.endpoints):
            properties = {
                "network": NETWORK_ID,
                "service": endpoint.service,
                "service_name": f"com.amazonaws.{region}.{endpoint.service}",
                "type": endpoint.type,
            }
            depends_on = [NETWORK_ID]
            if endpoint.type == "gateway":
                properties["route_tables"] = table_ids
                depends_on.extend(table_ids)
            else:
                groups = (
                    sorted(security_group_id(n) for n in endpoint.security_groups)
                    or self._groups_for_tier("private")
                )
                properties.update(
                    subnets=subnet_ids,
                    security_groups=groups,
                    private_dns_enabled=True,
                )
                depends_on.extend(subnet_ids + groups)
            self._add(
                endpoint_id(endpoint.service),
                ResourceKind.ENDPOINT,
                properties,
                depends_on,
                path=f"endpoints.{index}",
            )

    def _add_instances(self) -> None:
        for index, instance in enumerate(self.intent.instances):
            sid = subnet_id(instance.tier, instance.zone)
            if instance.security_groups is None:
                groups = self._groups_for_tier(instance.tier)
            else:
                groups = sorted(security_group_id(n) for n in instance.security_groups)
            role = role_id(instance.role) if instance.role else None
            depends_on = [sid, *groups]
            if role:
                depends_on.append(role)
            self._add(
                instance_id(instance.name),
                ResourceKind.INSTANCE,
                {
                    "name": instance.name,
                    "tier": instance.tier,
                    "zone": instance.zone,
                    "instance_type": instance.instance_type,
                    "image": instance.image,
                    "subnet": sid,
                    "security_groups": groups,
                    "role": role,
                },
                depends_on,
                path=f"instances.{index}",
            )


def build(
    intent: Union[TopologyIntent, Mapping[str, Any]],
    nat_redundancy: Optional[str] = None,
) -> ResourceGraph:
    """Build the resource graph for a topology intent.

    Args:
        intent: Parsed intent model or a raw mapping
        nat_redundancy: Fallback NAT placement when the intent sets none

    Returns:
        Resource graph ready for validation

    Raises:
        SchemaError: The intent is malformed or incomplete
    """
    model = load_intent_model(intent)
    redundancy = model.nat_redundancy or nat_redundancy or DEFAULT_NAT_REDUNDANCY
    if redundancy not in ("per-zone", "single-shared"):
        raise SchemaError(f"Unknown NAT redundancy '{redundancy}'", "nat_redundancy")

    graph = _GraphBuilder(model, redundancy).build()
    logger.debug("Built %d nodes for intent '%s'", len(graph), model.name)
    return graph
