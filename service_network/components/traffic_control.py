"""Subnets, gateways and route tables for the networking stack."""

from service_network.cidr import subnet_blocks
from service_network.components.ingress import ApplicationLoadBalancer
from service_network.components.security import add_security_group, add_security_group_rule
from service_network.errors import DependencyUnresolved, InvalidTopologyInput
from service_network.graph import CidrSubdivision, Resource, ResourceGraph, ResourceKind
from service_network.logging import get_logger
from service_network.models import (
    ANYWHERE_IPV4,
    ANYWHERE_IPV6,
    EgressKind,
    NatGateway,
    Role,
    RouteTable,
    SecurityGroup,
    SecurityGroupOwner,
    SecurityGroupRule,
    Subnet,
    Vpc,
)

log = get_logger("service_network.components.traffic_control")

IPV4_SUBNET_BITS = 4
IPV6_SUBNET_BITS = 8


class TrafficControl:
    """Public and private subnets of a VPC and the paths out of them.

    Creates:
    - One public and one private subnet per zone (on construction)
    - NAT gateway + private route table (``add_private_internet_access``)
    - Internet gateway + public route table + ALB (``create_public_alb``)

    Public subnets route 0.0.0.0/0 to the internet gateway, private
    subnets route it to the NAT gateway. No subnet is associated with
    both.
    """

    def __init__(self, graph: ResourceGraph, name: str, vpc: Vpc, zones: list[str]):
        if not zones:
            raise InvalidTopologyInput("At least one availability zone is required")
        if len(set(zones)) != len(zones):
            raise InvalidTopologyInput(f"Availability zones must be unique: {zones}")

        self.graph = graph
        self.name = name
        self.vpc = vpc
        self.zones = list(zones)

        self._internet_gateway: Resource | None = None
        self._nat_gateway: NatGateway | None = None
        self._public_route_table: RouteTable | None = None
        self._private_route_table: RouteTable | None = None
        self._alb: ApplicationLoadBalancer | None = None

        public_blocks, private_blocks = subnet_blocks(vpc.cidr_block, len(zones), IPV4_SUBNET_BITS)

        self.public_subnets = [
            self._add_subnet(
                Subnet(
                    name=f"{name}-public-subnet-{az}",
                    zone=az,
                    role=Role.PUBLIC,
                    cidr_block=block,
                    vpc=vpc,
                    ipv6_cidr_block=CidrSubdivision(vpc.ipv6_cidr_block, IPV6_SUBNET_BITS, index),
                    map_public_ip_on_launch=True,
                )
            )
            for index, (az, block) in enumerate(zip(zones, public_blocks))
        ]

        self.private_subnets = [
            self._add_subnet(
                Subnet(
                    name=f"{name}-private-subnet-{az}",
                    zone=az,
                    role=Role.PRIVATE,
                    cidr_block=block,
                    vpc=vpc,
                )
            )
            for az, block in zip(zones, private_blocks)
        ]

        log.info(
            "subnets_planned",
            vpc=vpc.name,
            zones=len(zones),
            public=[str(s.cidr_block) for s in self.public_subnets],
            private=[str(s.cidr_block) for s in self.private_subnets],
        )

    @property
    def subnets(self) -> list[Subnet]:
        return self.public_subnets + self.private_subnets

    def add_private_internet_access(self) -> NatGateway:
        """Give private subnets outbound internet access through one NAT gateway.

        The NAT gateway sits in the first public subnet. Calling this again
        is a no-op that returns the existing gateway.
        """
        if self._nat_gateway is not None:
            log.info("already_provisioned", component=self.name, resource=self._nat_gateway.name)
            return self._nat_gateway

        igw = self._ensure_internet_gateway()
        first_public = self.public_subnets[0]

        eip = self.graph.add(
            Resource(
                ResourceKind.EIP,
                f"{self.name}-nat-eip",
                {"domain": "vpc", "tags": self.vpc.tags},
            )
        )

        # NAT needs its EIP allocated and the IGW attached before it can egress
        nat = self.graph.add(
            Resource(
                ResourceKind.NAT_GATEWAY,
                f"{self.name}-nat",
                {
                    "allocation_id": eip.ref(),
                    "subnet_id": first_public.id,
                    "tags": self.vpc.tags,
                },
                depends_on=(eip.name, igw.name),
            )
        )
        self._nat_gateway = NatGateway(nat.name, eip.name, first_public)

        self._private_route_table = self._add_route_table(
            Role.PRIVATE,
            EgressKind.NAT_GATEWAY,
            {"nat_gateway_id": nat.ref()},
            self.private_subnets,
        )

        log.info("private_internet_access_planned", nat=nat.name, subnet=first_public.name)
        return self._nat_gateway

    def create_public_alb(self) -> ApplicationLoadBalancer:
        """Route public subnets to the internet and put an ALB in them.

        Calling this again returns the same load balancer.
        """
        if self._alb is not None:
            log.info("already_provisioned", component=self.name, resource=self._alb.name)
            return self._alb

        security_group = self._add_alb_security_group()
        igw = self._ensure_internet_gateway()

        self._public_route_table = self._add_route_table(
            Role.PUBLIC,
            EgressKind.INTERNET_GATEWAY,
            {"gateway_id": igw.ref()},
            self.public_subnets,
        )

        self._alb = ApplicationLoadBalancer(
            self.graph,
            f"{self.name}-client-alb",
            security_group=security_group,
            subnets=self.public_subnets,
            tags=self.vpc.tags,
        )
        return self._alb

    def route_table_for(self, subnet: Subnet) -> RouteTable:
        """Route table ``subnet`` is associated with."""
        for table in (self._public_route_table, self._private_route_table):
            if table is not None and subnet in table.subnets:
                return table
        raise DependencyUnresolved(f"No route table associated with {subnet.name}")

    def _add_subnet(self, subnet: Subnet) -> Subnet:
        properties = {
            "vpc_id": subnet.vpc.id,
            "availability_zone": subnet.zone,
            "cidr_block": str(subnet.cidr_block),
            "tags": subnet.vpc.tags,
        }
        if subnet.ipv6_cidr_block is not None:
            properties["ipv6_cidr_block"] = subnet.ipv6_cidr_block
            properties["assign_ipv6_address_on_creation"] = True
        if subnet.map_public_ip_on_launch:
            properties["map_public_ip_on_launch"] = True

        self.graph.add(Resource(ResourceKind.SUBNET, subnet.name, properties))
        return subnet

    def _ensure_internet_gateway(self) -> Resource:
        if self._internet_gateway is None:
            self._internet_gateway = self.graph.add(
                Resource(
                    ResourceKind.INTERNET_GATEWAY,
                    f"{self.name}-igw",
                    {"vpc_id": self.vpc.id, "tags": self.vpc.tags},
                )
            )
        return self._internet_gateway

    def _add_route_table(
        self,
        role: Role,
        egress: EgressKind,
        target: dict,
        subnets: list[Subnet],
    ) -> RouteTable:
        table = self.graph.add(
            Resource(
                ResourceKind.ROUTE_TABLE,
                f"{self.name}-{role}-rt",
                {"vpc_id": self.vpc.id, "tags": self.vpc.tags},
            )
        )

        self.graph.add(
            Resource(
                ResourceKind.ROUTE,
                f"{self.name}-{role}-internet-access",
                {
                    "route_table_id": table.ref(),
                    "destination_cidr_block": ANYWHERE_IPV4,
                    **target,
                },
            )
        )

        for subnet in subnets:
            if subnet.role != role:
                raise InvalidTopologyInput(f"{subnet.name} is {subnet.role}, cannot join the {role} route table")
            self.graph.add(
                Resource(
                    ResourceKind.ROUTE_TABLE_ASSOCIATION,
                    f"{self.name}-{role}-rta-{subnet.zone}",
                    {"route_table_id": table.ref(), "subnet_id": subnet.id},
                )
            )

        (target_ref,) = target.values()
        return RouteTable(table.name, role, egress, target_ref, list(subnets))

    def _add_alb_security_group(self) -> SecurityGroup:
        security_group = add_security_group(
            self.graph,
            f"{self.name}-client-alb-sg",
            SecurityGroupOwner.ALB,
            vpc_id=self.vpc.id,
            name_prefix=f"{self.name}-ecs-client-alb",
            description="security group for client service application load balancer",
        )

        allow_http = SecurityGroupRule(
            name=f"{self.name}-client-alb-allow-80",
            type="ingress",
            protocol="tcp",
            from_port=80,
            to_port=80,
            description="Allow HTTP traffic",
            cidr_blocks=(ANYWHERE_IPV4,),
            ipv6_cidr_blocks=(ANYWHERE_IPV6,),
        )
        allow_outbound = SecurityGroupRule(
            name=f"{self.name}-client-alb-allow-outbound",
            type="egress",
            protocol="-1",
            from_port=0,
            to_port=0,
            description="Allow any outbound traffic",
            cidr_blocks=(ANYWHERE_IPV4,),
            ipv6_cidr_blocks=(ANYWHERE_IPV6,),
        )
        add_security_group_rule(self.graph, security_group, allow_http)
        add_security_group_rule(self.graph, security_group, allow_outbound)
        return security_group

