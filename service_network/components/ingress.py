"""Internet-facing application load balancer and the services behind it."""

from service_network.components.security import add_security_group, add_security_group_rule
from service_network.errors import DependencyUnresolved, InvalidTopologyInput
from service_network.graph import Ref, Resource, ResourceGraph, ResourceKind
from service_network.logging import get_logger
from service_network.models import (
    ANYWHERE_IPV4,
    ANYWHERE_IPV6,
    HealthCheck,
    IngressService,
    Listener,
    Role,
    SecurityGroup,
    SecurityGroupOwner,
    SecurityGroupRule,
    Subnet,
    TargetGroup,
    Vpc,
)

log = get_logger("service_network.components.ingress")

LISTENER_PORT = 80


class ApplicationLoadBalancer:
    """ALB in the public subnets plus its security group.

    Only references the VPC and subnets, which belong to ``TrafficControl``.
    Services are attached with ``get_service``; their security groups accept
    traffic from this ALB's security group and nothing else from outside.
    """

    def __init__(
        self,
        graph: ResourceGraph,
        name: str,
        security_group: SecurityGroup,
        subnets: list[Subnet],
        tags: dict[str, str],
        idle_timeout: int = 60,
    ):
        if not subnets:
            raise DependencyUnresolved(f"{name} needs at least one public subnet")
        for subnet in subnets:
            if subnet.role != Role.PUBLIC:
                raise DependencyUnresolved(f"{name} can only be placed in public subnets, got {subnet.name}")

        self.graph = graph
        self.name = name
        self.security_group = security_group
        self.subnets = list(subnets)
        self.listeners: list[Listener] = []
        self._services: dict[int, IngressService] = {}

        self.graph.add(
            Resource(
                ResourceKind.LOAD_BALANCER,
                name,
                {
                    "name_prefix": "cl-",
                    "load_balancer_type": "application",
                    "security_groups": [security_group.id],
                    "subnets": [subnet.id for subnet in self.subnets],
                    "idle_timeout": idle_timeout,
                    "ip_address_type": "dualstack",
                    "tags": tags,
                },
            )
        )

    @property
    def arn(self) -> Ref:
        return Ref(self.name, "arn")

    @property
    def dns_name(self) -> Ref:
        return Ref(self.name, "dns_name")

    def get_service(self, vpc: Vpc, port: int, tags: dict[str, str]) -> IngressService:
        """Expose a container port through this load balancer.

        Creates the target group, the service security group (ingress from
        the ALB on ``port``, from itself on everything, egress anywhere) and,
        for the first service, the HTTP listener on port 80. The service
        binding depends on that listener.

        Args:
            vpc: VPC the target group lives in
            port: Container port traffic is forwarded to
            tags: Tags for the target group

        Returns:
            Security group and target group for ``ServiceBinding``.
        """
        if not 1 <= port <= 65535:
            raise InvalidTopologyInput(f"Service port must be within 1-65535, got {port}")
        if not self.subnets:
            raise DependencyUnresolved(f"{self.name} has no public subnets")

        if port in self._services:
            log.info("already_provisioned", component=self.name, port=port)
            return self._services[port]

        suffix = "" if not self._services else f"-{port}"
        health_check = HealthCheck()

        self.graph.add(
            Resource(
                ResourceKind.TARGET_GROUP,
                f"{self.name}-targets{suffix}",
                {
                    "name_prefix": "cl-",
                    "port": port,
                    "protocol": "HTTP",
                    "vpc_id": vpc.id,
                    "deregistration_delay": 30,
                    "target_type": "ip",
                    "health_check": health_check.as_properties(),
                    "tags": tags,
                },
            )
        )
        target_group = TargetGroup(f"{self.name}-targets{suffix}", port, health_check)

        security_group = add_security_group(
            self.graph,
            f"{self.name}-ecs-client-service{suffix}",
            SecurityGroupOwner.SERVICE,
            vpc_id=vpc.id,
            name_prefix="ecs-client-service",
            description="ECS Client service security group.",
        )

        add_security_group_rule(
            self.graph,
            security_group,
            SecurityGroupRule(
                name=f"{security_group.name}-allow-port",
                type="ingress",
                protocol="tcp",
                from_port=port,
                to_port=port,
                description="Allow incoming traffic from the client ALB into the service container port",
                source_security_group=self.security_group.id,
            ),
        )

        # Extra ports share the first listener, which keeps forwarding to its own target group
        listener = self.listeners[0] if self.listeners else self._add_listener(target_group)

        add_security_group_rule(
            self.graph,
            security_group,
            SecurityGroupRule(
                name=f"{security_group.name}-allow-inbound-self",
                type="ingress",
                protocol="-1",
                from_port=0,
                to_port=0,
                description="Allow traffic from resources with this security group",
                self_referencing=True,
            ),
        )
        add_security_group_rule(
            self.graph,
            security_group,
            SecurityGroupRule(
                name=f"{security_group.name}-allow-outbound",
                type="egress",
                protocol="-1",
                from_port=0,
                to_port=0,
                description="Allow any outbound traffic.",
                cidr_blocks=(ANYWHERE_IPV4,),
                ipv6_cidr_blocks=(ANYWHERE_IPV6,),
            ),
        )

        service = IngressService(port, security_group, target_group, listener)
        self._services[port] = service
        log.info("ingress_service_planned", alb=self.name, port=port, target_group=target_group.name)
        return service

    def _add_listener(self, target_group: TargetGroup) -> Listener:
        name = f"{self.name}-http-{LISTENER_PORT}"
        self.graph.add(
            Resource(
                ResourceKind.LISTENER,
                name,
                {
                    "load_balancer_arn": self.arn,
                    "port": LISTENER_PORT,
                    "protocol": "HTTP",
                    "default_actions": [
                        {"type": "forward", "target_group_arn": target_group.arn},
                    ],
                },
            )
        )
        listener = Listener(name, LISTENER_PORT, target_group)
        self.listeners.append(listener)
        return listener
