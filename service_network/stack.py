"""Compose the networking demo stack into a single resource graph."""

from dataclasses import dataclass

from service_network.cidr import parse_network
from service_network.components.ingress import ApplicationLoadBalancer
from service_network.components.service import ServiceBinding, add_cluster, add_task_definition
from service_network.components.traffic_control import TrafficControl
from service_network.config import StackConfig
from service_network.errors import InvalidTopologyInput
from service_network.graph import Resource, ResourceGraph, ResourceKind
from service_network.logging import get_logger
from service_network.models import (
    ContainerDefinition,
    EnvironmentVariable,
    IngressService,
    PortMapping,
    Vpc,
)

log = get_logger("service_network.stack")

CONTAINER_NAME = "client"


@dataclass(frozen=True)
class Topology:
    """Everything ``synthesize`` built, plus the graph to realize."""

    graph: ResourceGraph
    vpc: Vpc
    traffic: TrafficControl
    alb: ApplicationLoadBalancer
    ingress: IngressService
    binding: ServiceBinding


def add_vpc(graph: ResourceGraph, name: str, cidr_block: str, tags: dict[str, str]) -> Vpc:
    """Add a dual-stack VPC; AWS assigns the IPv6 block."""
    network = parse_network(cidr_block)
    if network.version != 4:
        raise InvalidTopologyInput(f"VPC CIDR must be IPv4, got {cidr_block}")

    graph.add(
        Resource(
            ResourceKind.VPC,
            name,
            {
                "assign_generated_ipv6_cidr_block": True,
                "cidr_block": str(network),
                "enable_dns_hostnames": True,
                "enable_dns_support": True,
                "instance_tenancy": "default",
                "tags": tags,
            },
        )
    )
    return Vpc(name, network, tags)


def client_container(config: StackConfig) -> ContainerDefinition:
    return ContainerDefinition(
        name=CONTAINER_NAME,
        image=config.container_image,
        cpu=0,
        essential=True,
        port_mappings=[
            PortMapping(container_port=config.service_port, host_port=config.service_port, protocol="tcp"),
        ],
        environment=[
            EnvironmentVariable(name="NAME", value="client"),
            EnvironmentVariable(name="MESSAGE", value="Hello World from the client!"),
        ],
    )


def synthesize(config: StackConfig, container: ContainerDefinition | None = None) -> Topology:
    """Build the full resource graph for ``config``.

    Any ``TopologyError`` aborts synthesis; no partial graph is returned.
    """
    project = config.project_name
    graph = ResourceGraph()

    # 1. Network
    vpc = add_vpc(graph, "main", config.vpc_cidr, {"Name": f"{project}-vpc"})
    traffic = TrafficControl(graph, "traffic", vpc, list(config.availability_zones))
    traffic.add_private_internet_access()
    alb = traffic.create_public_alb()
    ingress = alb.get_service(vpc, config.service_port, {"Name": f"{project}-service"})

    # 2. Compute
    cluster = add_cluster(graph, "cluster", f"{project}-cluster")
    container = container or client_container(config)
    task_definition = add_task_definition(graph, "task-definition", f"{project}-client", [container])

    binding = ServiceBinding(
        graph,
        "client",
        service_name=f"{project}-client",
        cluster=cluster,
        task_definition=task_definition,
        ingress=ingress,
        container_name=container.name,
        container_port=container.port_mappings[0].container_port if container.port_mappings else 0,
        private_subnets=traffic.private_subnets,
        desired_count=config.desired_count,
    )

    graph.output("client_alb_dns", alb.dns_name, "DNS name of the AWS ALB for Client service")

    log.info("topology_synthesized", resources=len(graph), edges=len(graph.edges), zones=len(traffic.zones))
    return Topology(graph, vpc, traffic, alb, ingress, binding)
