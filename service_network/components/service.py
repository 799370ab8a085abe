"""ECS cluster, task definition and the Fargate service behind the ALB."""

from service_network.errors import ConfigurationMismatch, DependencyUnresolved, InvalidTopologyInput
from service_network.graph import Resource, ResourceGraph, ResourceKind
from service_network.logging import get_logger
from service_network.models import (
    ContainerDefinition,
    EcsCluster,
    IngressService,
    Role,
    Service,
    Subnet,
    TaskDefinition,
    encode_container_definitions,
)

log = get_logger("service_network.components.service")


def add_cluster(graph: ResourceGraph, name: str, cluster_name: str) -> EcsCluster:
    """Add an ECS cluster."""
    graph.add(Resource(ResourceKind.ECS_CLUSTER, name, {"name": cluster_name}))
    return EcsCluster(name)


def add_task_definition(
    graph: ResourceGraph,
    name: str,
    family: str,
    containers: list[ContainerDefinition],
    cpu: str = "256",
    memory: str = "512",
) -> TaskDefinition:
    """Add a Fargate task definition (awsvpc networking) for ``containers``."""
    if not containers:
        raise InvalidTopologyInput(f"Task definition {family} needs at least one container")

    graph.add(
        Resource(
            ResourceKind.TASK_DEFINITION,
            name,
            {
                "family": family,
                "cpu": cpu,
                "memory": memory,
                "network_mode": "awsvpc",
                "requires_compatibilities": ["FARGATE"],
                "container_definitions": encode_container_definitions(containers),
            },
        )
    )
    return TaskDefinition(name, family, "awsvpc", tuple(containers))


class ServiceBinding:
    """Fargate service wired to an ALB target group in the private subnets.

    References the target group, security group and subnets it is given;
    it owns only the ECS service resource.
    """

    def __init__(
        self,
        graph: ResourceGraph,
        name: str,
        service_name: str,
        cluster: EcsCluster,
        task_definition: TaskDefinition,
        ingress: IngressService,
        container_name: str,
        container_port: int,
        private_subnets: list[Subnet],
        desired_count: int = 1,
    ):
        if container_port != ingress.port:
            raise ConfigurationMismatch("Container port", ingress.port, container_port)

        container = task_definition.container(container_name)
        if container is None:
            raise ConfigurationMismatch(
                "Container name",
                container_name,
                [c.name for c in task_definition.containers],
            )
        if ingress.port not in container.container_ports():
            raise ConfigurationMismatch(
                f"Port mapping of container {container_name}",
                ingress.port,
                container.container_ports(),
            )

        if not private_subnets:
            raise DependencyUnresolved(f"{name} needs at least one private subnet")
        for subnet in private_subnets:
            if subnet.role != Role.PRIVATE:
                raise DependencyUnresolved(f"{name} can only run in private subnets, got {subnet.name}")
            if subnet.name not in graph:
                raise DependencyUnresolved(f"{name} references {subnet.name}, which has not been created")

        for dependency in (
            cluster.name,
            task_definition.name,
            ingress.target_group.name,
            ingress.security_group.name,
            ingress.listener.name,
        ):
            if dependency not in graph:
                raise DependencyUnresolved(f"{name} references {dependency}, which has not been created")

        self.graph = graph
        self.name = name

        graph.add(
            Resource(
                ResourceKind.ECS_SERVICE,
                name,
                {
                    "name": service_name,
                    "cluster": cluster.arn,
                    "task_definition": task_definition.arn,
                    "desired_count": desired_count,
                    "launch_type": "FARGATE",
                    "load_balancers": [
                        {
                            "target_group_arn": ingress.target_group.arn,
                            "container_name": container_name,
                            "container_port": container_port,
                        }
                    ],
                    "network_configuration": {
                        "subnets": [subnet.id for subnet in private_subnets],
                        "assign_public_ip": False,
                        "security_groups": [ingress.security_group.id],
                    },
                },
                # ECS rejects a load balancer binding until the target group is behind a listener
                depends_on=(ingress.listener.name,),
            )
        )

        self.service = Service(
            name=name,
            task_definition=task_definition,
            target_group=ingress.target_group,
            container_name=container_name,
            container_port=container_port,
            subnets=tuple(private_subnets),
            security_group=ingress.security_group,
            desired_count=desired_count,
        )
        log.info("service_bound", service=name, port=container_port, subnets=len(private_subnets))
