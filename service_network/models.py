"""Handles for the pieces of a synthesized topology.

The ``Resource`` descriptors in the graph carry provider arguments. The
handles below carry the derived relationships the components need (which
role a subnet has, which security group may reach a service, ...).
"""

import ipaddress
import json
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from service_network.graph import CidrSubdivision, Ref

ANYWHERE_IPV4 = "0.0.0.0/0"
ANYWHERE_IPV6 = "::/0"


# =============================================================================
# ENUMS
# =============================================================================


class Role(StrEnum):
    """Subnet / route table role."""

    PUBLIC = "public"
    PRIVATE = "private"


class EgressKind(StrEnum):
    """Target of a route table's default route."""

    INTERNET_GATEWAY = "internet_gateway"
    NAT_GATEWAY = "nat_gateway"


class SecurityGroupOwner(StrEnum):
    ALB = "alb"
    SERVICE = "service"


# =============================================================================
# NETWORK
# =============================================================================


@dataclass(frozen=True)
class Vpc:
    name: str
    cidr_block: ipaddress.IPv4Network
    tags: dict[str, str]

    @property
    def id(self) -> Ref:
        return Ref(self.name)

    @property
    def ipv6_cidr_block(self) -> Ref:
        return Ref(self.name, "ipv6_cidr_block")


@dataclass(frozen=True)
class Subnet:
    """One subnet per (zone, role) pair. Never mutated after creation."""

    name: str
    zone: str
    role: Role
    cidr_block: ipaddress.IPv4Network
    vpc: Vpc
    ipv6_cidr_block: CidrSubdivision | None = None
    map_public_ip_on_launch: bool = False

    @property
    def id(self) -> Ref:
        return Ref(self.name)


@dataclass
class RouteTable:
    name: str
    role: Role
    egress: EgressKind
    default_route: Ref
    subnets: list[Subnet] = field(default_factory=list)

    @property
    def id(self) -> Ref:
        return Ref(self.name)


@dataclass(frozen=True)
class NatGateway:
    name: str
    eip: str
    subnet: Subnet

    @property
    def id(self) -> Ref:
        return Ref(self.name)


# =============================================================================
# SECURITY GROUPS
# =============================================================================


@dataclass(frozen=True)
class SecurityGroupRule:
    """A single ingress or egress rule.

    Exactly one source is set: ``source_security_group``, ``self_referencing``
    or the CIDR lists.
    """

    name: str
    type: str  # "ingress" or "egress"
    protocol: str
    from_port: int
    to_port: int
    description: str
    source_security_group: Ref | None = None
    self_referencing: bool = False
    cidr_blocks: tuple[str, ...] = ()
    ipv6_cidr_blocks: tuple[str, ...] = ()

    @property
    def is_cidr_sourced(self) -> bool:
        return bool(self.cidr_blocks or self.ipv6_cidr_blocks)


@dataclass
class SecurityGroup:
    name: str
    owner: SecurityGroupOwner
    ingress: list[SecurityGroupRule] = field(default_factory=list)
    egress: list[SecurityGroupRule] = field(default_factory=list)

    @property
    def id(self) -> Ref:
        return Ref(self.name)


# =============================================================================
# LOAD BALANCING
# =============================================================================


@dataclass(frozen=True)
class HealthCheck:
    """Fixed health-check policy for every target group."""

    protocol: str = "HTTP"
    path: str = "/"
    healthy_threshold: int = 3
    unhealthy_threshold: int = 3
    timeout: int = 30
    interval: int = 60

    def as_properties(self) -> dict:
        return {
            "enabled": True,
            "path": self.path,
            "healthy_threshold": self.healthy_threshold,
            "unhealthy_threshold": self.unhealthy_threshold,
            "timeout": self.timeout,
            "interval": self.interval,
            "protocol": self.protocol,
        }


@dataclass(frozen=True)
class TargetGroup:
    name: str
    port: int
    health_check: HealthCheck

    @property
    def arn(self) -> Ref:
        return Ref(self.name, "arn")


@dataclass(frozen=True)
class Listener:
    name: str
    port: int
    target_group: TargetGroup


@dataclass(frozen=True)
class IngressService:
    """What ``ApplicationLoadBalancer.get_service`` hands to the service binding."""

    port: int
    security_group: SecurityGroup
    target_group: TargetGroup
    listener: Listener


# =============================================================================
# CONTAINERS
# =============================================================================


class PortMapping(BaseModel):
    """Container port mapping (awsvpc: host port equals container port)."""

    model_config = ConfigDict(populate_by_name=True)

    container_port: int = Field(..., alias="containerPort", ge=1, le=65535)
    host_port: int = Field(..., alias="hostPort", ge=1, le=65535)
    protocol: str = Field(default="tcp", pattern=r"^(tcp|udp)$")


class EnvironmentVariable(BaseModel):
    name: str
    value: str


class ContainerDefinition(BaseModel):
    """One entry of an ECS task definition's container definitions."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    image: str = Field(..., min_length=1)
    cpu: int = Field(default=0, ge=0)
    essential: bool = Field(default=True)
    port_mappings: list[PortMapping] = Field(default_factory=list, alias="portMappings")
    environment: list[EnvironmentVariable] = Field(default_factory=list)

    def container_ports(self) -> list[int]:
        return [m.container_port for m in self.port_mappings]


def encode_container_definitions(containers: list[ContainerDefinition]) -> str:
    """Serialize containers to the JSON document ECS expects."""
    return json.dumps([c.model_dump(by_alias=True) for c in containers])


# =============================================================================
# COMPUTE
# =============================================================================


@dataclass(frozen=True)
class EcsCluster:
    name: str

    @property
    def arn(self) -> Ref:
        return Ref(self.name, "arn")


@dataclass(frozen=True)
class TaskDefinition:
    name: str
    family: str
    network_mode: str
    containers: tuple[ContainerDefinition, ...]

    @property
    def arn(self) -> Ref:
        return Ref(self.name, "arn")

    def container(self, name: str) -> ContainerDefinition | None:
        for container in self.containers:
            if container.name == name:
                return container
        return None


@dataclass(frozen=True)
class Service:
    name: str
    task_definition: TaskDefinition
    target_group: TargetGroup
    container_name: str
    container_port: int
    subnets: tuple[Subnet, ...]
    security_group: SecurityGroup
    desired_count: int
    launch_type: str = "FARGATE"
    assign_public_ip: bool = False
