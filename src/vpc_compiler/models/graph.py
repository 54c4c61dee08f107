"""Resource graph models."""

from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ResourceKind(str, Enum):
    """Closed set of resource kinds the compiler emits."""

    NETWORK = "network"
    SUBNET = "subnet"
    INTERNET_GATEWAY = "internet_gateway"
    ELASTIC_IP = "elastic_ip"
    NAT_GATEWAY = "nat_gateway"
    ROUTE_TABLE = "route_table"
    ROUTE = "route"
    SECURITY_GROUP = "security_group"
    SECURITY_GROUP_RULE = "security_group_rule"
    ENDPOINT = "endpoint"
    ROLE = "role"
    INSTANCE = "instance"


def _freeze(value: Any) -> Any:
    """Read-only copy: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Plain dict/list copy of a frozen value."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(v) for v in value]
    return value


class ResourceNode(BaseModel):
    """Immutable compiled resource.

    ``properties`` is a read-only mapping whose sequences are tuples, so a
    node cannot be changed in place once built.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable identifier")
    kind: ResourceKind
    properties: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    depends_on: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("properties")
    @classmethod
    def freeze_properties(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return _freeze(v)

    @field_validator("depends_on")
    @classmethod
    def normalize_depends_on(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(sorted(set(v)))

    @field_serializer("properties")
    def serialize_properties(self, v: Mapping[str, Any]) -> dict[str, Any]:
        return _thaw(v)

    def __hash__(self) -> int:
        return hash((self.id, self.kind, self.depends_on))

    def prop(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "properties": _thaw(self.properties),
            "depends_on": list(self.depends_on),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResourceNode":
        return cls.model_validate(dict(data))


class ResourceGraph:
    """Flat node table indexed by identifier.

    Cross references between nodes are identifier lookups into this table,
    never object back-pointers.
    """

    def __init__(self, nodes: Mapping[str, ResourceNode]):
        self._nodes = dict(sorted(nodes.items()))

    @classmethod
    def from_nodes(cls, nodes: Iterable[ResourceNode]) -> "ResourceGraph":
        table: dict[str, ResourceNode] = {}
        for node in nodes:
            if node.id in table:
                raise ValueError(f"Duplicate resource identifier: {node.id}")
            table[node.id] = node
        return cls(table)

    def get(self, node_id: str) -> Optional[ResourceNode]:
        return self._nodes.get(node_id)

    def by_kind(self, *kinds: ResourceKind) -> list[ResourceNode]:
        return [n for n in self._nodes.values() if n.kind in kinds]

    @property
    def ids(self) -> list[str]:
        return list(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceGraph):
            return NotImplemented
        return self._nodes == other._nodes

    def __repr__(self) -> str:
        return f"ResourceGraph({len(self)} nodes)"
