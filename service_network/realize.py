"""Realize a resource graph with Pulumi."""

from collections.abc import Callable, Mapping
from typing import Any

import pulumi
import pulumi_aws as aws

from service_network.cidr import subdivide
from service_network.errors import DependencyUnresolved
from service_network.graph import CidrSubdivision, Ref, ResourceGraph, ResourceKind
from service_network.logging import get_logger

log = get_logger("service_network.realize")

RESOURCE_FACTORIES: dict[ResourceKind, Callable[..., pulumi.CustomResource]] = {
    ResourceKind.VPC: aws.ec2.Vpc,
    ResourceKind.SUBNET: aws.ec2.Subnet,
    ResourceKind.INTERNET_GATEWAY: aws.ec2.InternetGateway,
    ResourceKind.EIP: aws.ec2.Eip,
    ResourceKind.NAT_GATEWAY: aws.ec2.NatGateway,
    ResourceKind.ROUTE_TABLE: aws.ec2.RouteTable,
    ResourceKind.ROUTE: aws.ec2.Route,
    ResourceKind.ROUTE_TABLE_ASSOCIATION: aws.ec2.RouteTableAssociation,
    ResourceKind.SECURITY_GROUP: aws.ec2.SecurityGroup,
    ResourceKind.SECURITY_GROUP_RULE: aws.ec2.SecurityGroupRule,
    ResourceKind.LOAD_BALANCER: aws.lb.LoadBalancer,
    ResourceKind.TARGET_GROUP: aws.lb.TargetGroup,
    ResourceKind.LISTENER: aws.lb.Listener,
    ResourceKind.ECS_CLUSTER: aws.ecs.Cluster,
    ResourceKind.TASK_DEFINITION: aws.ecs.TaskDefinition,
    ResourceKind.ECS_SERVICE: aws.ecs.Service,
}


class RealizedTopology(pulumi.ComponentResource):
    """Provider resources for every descriptor in a ``ResourceGraph``.

    Resources are created in the graph's topological order. ``Ref`` values
    become the referenced resource's output attribute and every edge of the
    graph becomes a ``depends_on`` entry, so Pulumi sees the same ordering
    the builders declared.
    """

    def __init__(
        self,
        name: str,
        graph: ResourceGraph,
        provider: aws.Provider,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("service-network:infrastructure:Topology", name, None, opts)

        self.resources: dict[str, pulumi.CustomResource] = {}

        for resource in graph.topological_order():
            factory = RESOURCE_FACTORIES[resource.kind]
            depends_on = [self.resources[d] for d in graph.dependencies_of(resource.name)]

            log.debug("realizing_resource", resource=resource.name, kind=str(resource.kind))
            self.resources[resource.name] = factory(
                resource.name,
                **self._resolve(resource.properties),
                opts=pulumi.ResourceOptions(parent=self, provider=provider, depends_on=depends_on),
            )

        # Export outputs
        self.outputs: dict[str, pulumi.Output[Any]] = {
            binding.name: self._resolve(binding.value) for binding in graph.outputs
        }

        self.register_outputs(self.outputs)

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, Ref):
            return self._attribute(value)
        if isinstance(value, CidrSubdivision):
            return self._attribute(value.parent).apply(
                lambda block: str(subdivide(block, value.new_prefix_bits, value.index))
            )
        if isinstance(value, Mapping):
            return {key: self._resolve(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._resolve(item) for item in value]
        return value

    def _attribute(self, ref: Ref) -> pulumi.Output[Any]:
        try:
            resource = self.resources[ref.resource]
        except KeyError:
            raise DependencyUnresolved(f"{ref.resource} has not been realized") from None
        return getattr(resource, ref.attribute)
