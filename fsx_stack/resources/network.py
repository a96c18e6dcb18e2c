"""
Network: isolated virtual network with its subnets.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fsx_stack.resources.base import Resource, ResourceKind


class SubnetType(str, Enum):
    """Subnet tiers. Private subnets reach the internet through a NAT gateway."""

    PUBLIC = "public"
    PRIVATE_WITH_EGRESS = "private_with_egress"


@dataclass(frozen=True)
class Subnet:
    """A subnet of the network, pinned to one availability zone slot."""

    name: str
    type: SubnetType
    cidr: str
    az_index: int = 0


@dataclass
class Network(Resource):
    """
    Isolated virtual network.

    With the defaults this is one availability zone holding a public subnet
    (internet gateway, NAT gateway) and a private subnet with egress
    through the NAT.

    Example:
        vpc = Network("VPC")
        vpc.private_subnets[0].name  # "Private1"
    """

    cidr: str = "10.0.0.0/16"
    """Address range of the whole network"""

    max_azs: int = 1
    """Number of availability zones the subnets are spread over"""

    subnets: list[Subnet] = field(default_factory=list)
    """Subnets; generated from ``max_azs`` when left empty"""

    kind = ResourceKind.NETWORK

    def __post_init__(self):
        if self.max_azs < 1:
            raise ValueError(f"max_azs must be at least 1, got {self.max_azs}")
        if not self.subnets:
            self.subnets = self._default_subnets()

    def _default_subnets(self) -> list[Subnet]:
        # The /16 holds four /18 blocks: public subnets first, then private.
        if self.max_azs > 2:
            raise ValueError("default subnet layout supports at most 2 AZs")
        base = self.cidr.split(".")[:2]
        subnets = []
        octet = 0
        for tier, prefix in (
            (SubnetType.PUBLIC, "Public"),
            (SubnetType.PRIVATE_WITH_EGRESS, "Private"),
        ):
            for az in range(self.max_azs):
                subnets.append(
                    Subnet(
                        name=f"{prefix}{az + 1}",
                        type=tier,
                        cidr=".".join(base + [str(octet), "0/18"]),
                        az_index=az,
                    )
                )
                octet += 64
        return subnets

    @property
    def public_subnets(self) -> list[Subnet]:
        return [s for s in self.subnets if s.type == SubnetType.PUBLIC]

    @property
    def private_subnets(self) -> list[Subnet]:
        return [s for s in self.subnets if s.type == SubnetType.PRIVATE_WITH_EGRESS]

    def subnets_of_type(self, subnet_type: SubnetType) -> list[Subnet]:
        return [s for s in self.subnets if s.type == subnet_type]

    def properties(self) -> dict[str, Any]:
        return {
            "cidr": self.cidr,
            "max_azs": self.max_azs,
            "subnets": [
                {
                    "name": s.name,
                    "type": s.type.value,
                    "cidr": s.cidr,
                    "az_index": s.az_index,
                }
                for s in self.subnets
            ],
        }
