"""Topology intent models.

The intent is the user-facing description of a segmented network. It is
parsed into these models before the builder turns it into a resource graph.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .base import Tier, parse_cidr

NatRedundancy = Literal["per-zone", "single-shared"]
EndpointType = Literal["interface", "gateway"]

# Services reached through route-table gateway endpoints rather than ENIs
GATEWAY_SERVICES = {"s3", "dynamodb"}


class IntentModel(BaseModel):
    """Base for intent models: unknown fields are schema errors."""

    model_config = ConfigDict(extra="forbid")


def _cidr(v: str) -> str:
    return str(parse_cidr(v))


class NetworkIntent(IntentModel):
    """Network-wide address space and placement."""

    cidr: str = Field(..., description="Network CIDR block")
    region: str = Field(default="us-east-1")
    zones: list[str] = Field(
        default_factory=list, description="Explicit availability zones"
    )

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        return _cidr(v)


class RouteIntent(IntentModel):
    """Explicit route beyond the per-tier default route."""

    destination: str = Field(..., description="Destination CIDR")
    target: str = Field(..., description="Target gateway identifier")

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        return _cidr(v)


class SubnetIntent(IntentModel):
    """Subnet placed in one zone and tier."""

    cidr: str
    zone: str = Field(..., min_length=1)
    tier: Tier
    isolated: bool = Field(
        default=False, description="Private subnet without internet egress"
    )
    name: Optional[str] = None
    routes: list[RouteIntent] = Field(default_factory=list)

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        return _cidr(v)


class PolicyRuleIntent(IntentModel):
    """Single security group rule.

    Protocol and port range are checked by the validator, not here, so that
    inconsistent rules are reported against their resource nodes.
    """

    protocol: str = "tcp"
    from_port: int = -1
    to_port: int = -1
    cidr: Optional[str] = None
    group: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def expand_port(cls, data):
        if isinstance(data, dict) and "port" in data:
            data = dict(data)
            port = data.pop("port")
            data.setdefault("from_port", port)
            data.setdefault("to_port", port)
        return data

    @field_validator("protocol")
    @classmethod
    def normalize_protocol(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: Optional[str]) -> Optional[str]:
        return _cidr(v) if v is not None else v

    @model_validator(mode="after")
    def exactly_one_peer(self):
        if (self.cidr is None) == (self.group is None):
            raise ValueError("Rule needs exactly one of 'cidr' or 'group'")
        return self


class SecurityGroupIntent(IntentModel):
    """Named security policy attached to tiers."""

    name: str = Field(..., min_length=1)
    description: str = ""
    tiers: list[Tier] = Field(default_factory=list)
    ingress: list[PolicyRuleIntent] = Field(default_factory=list)
    egress: list[PolicyRuleIntent] = Field(default_factory=list)


class EndpointIntent(IntentModel):
    """Managed-service endpoint for private tiers."""

    service: str = Field(..., min_length=1)
    type: Optional[EndpointType] = None
    security_groups: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def from_service_name(cls, data):
        if isinstance(data, str):
            return {"service": data}
        return data

    @model_validator(mode="after")
    def default_type(self):
        if self.type is None:
            self.type = "gateway" if self.service in GATEWAY_SERVICES else "interface"
        return self


class RoleIntent(IntentModel):
    """Management role attachable to instances."""

    name: str = Field(..., min_length=1)
    managed_policies: list[str] = Field(default_factory=list)


class InstanceIntent(IntentModel):
    """Compute instance placed by tier and zone."""

    name: str = Field(..., min_length=1)
    tier: Tier
    zone: str = Field(..., min_length=1)
    instance_type: str = "t3.micro"
    image: str = Field(..., min_length=1)
    security_groups: Optional[list[str]] = Field(
        default=None, description="Defaults to the groups attached to the tier"
    )
    role: Optional[str] = None


class TopologyIntent(IntentModel):
    """Complete topology intent."""

    name: str = Field(default="lab", min_length=1)
    network: NetworkIntent
    subnets: list[SubnetIntent] = Field(default_factory=list)
    nat_egress: list[str] = Field(
        default_factory=list, description="Zones whose private subnets need NAT"
    )
    nat_redundancy: Optional[NatRedundancy] = None
    security_groups: list[SecurityGroupIntent] = Field(default_factory=list)
    endpoints: list[EndpointIntent] = Field(default_factory=list)
    roles: list[RoleIntent] = Field(default_factory=list)
    instances: list[InstanceIntent] = Field(default_factory=list)
