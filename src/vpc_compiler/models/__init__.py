"""Pydantic models for vpc-compiler."""

from .base import CIDRBlock, Tier, ANYWHERE, parse_cidr
from .intent import (
    TopologyIntent,
    NetworkIntent,
    SubnetIntent,
    RouteIntent,
    PolicyRuleIntent,
    SecurityGroupIntent,
    EndpointIntent,
    RoleIntent,
    InstanceIntent,
)
from .graph import ResourceKind, ResourceNode, ResourceGraph
from .plan import PlanAction, Create, Update, Replace, Delete

__all__ = [
    "CIDRBlock",
    "Tier",
    "ANYWHERE",
    "parse_cidr",
    "TopologyIntent",
    "NetworkIntent",
    "SubnetIntent",
    "RouteIntent",
    "PolicyRuleIntent",
    "SecurityGroupIntent",
    "EndpointIntent",
    "RoleIntent",
    "InstanceIntent",
    "ResourceKind",
    "ResourceNode",
    "ResourceGraph",
    "PlanAction",
    "Create",
    "Update",
    "Replace",
    "Delete",
]
