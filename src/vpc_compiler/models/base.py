"""Base types shared by intent and graph models."""

from ipaddress import IPv4Network, ip_network
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Tier = Literal["public", "private"]

ANYWHERE = "0.0.0.0/0"


def parse_cidr(value: str) -> IPv4Network:
    """Parse an IPv4 CIDR block, rejecting host bits and IPv6."""
    if not isinstance(value, str) or "/" not in value:
        raise ValueError(f"Invalid CIDR format: {value}")
    try:
        network = ip_network(value, strict=True)
    except ValueError as e:
        raise ValueError(f"Invalid CIDR format: {value} ({e})") from e
    if not isinstance(network, IPv4Network):
        raise ValueError(f"Only IPv4 CIDR blocks are supported: {value}")
    return network


class CIDRBlock(BaseModel):
    """Validated IPv4 CIDR block."""

    model_config = ConfigDict(frozen=True)

    cidr: str = Field(..., description="CIDR notation (e.g., 10.0.0.0/16)")

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        return str(parse_cidr(v))

    @property
    def network(self) -> IPv4Network:
        return parse_cidr(self.cidr)

    def contains(self, other: "CIDRBlock") -> bool:
        return other.network.subnet_of(self.network)

    def overlaps(self, other: "CIDRBlock") -> bool:
        return self.network.overlaps(other.network)
