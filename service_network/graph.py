"""Declarative resource graph handed to the provisioner.

The topology components never talk to a cloud API. They add ``Resource``
descriptors to a ``ResourceGraph`` and record which resource has to exist
before which. Provider-computed attributes (ids, ARNs, DNS names) are
represented by ``Ref`` placeholders that only the provisioner resolves.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from service_network.errors import AlreadyProvisioned, DependencyUnresolved
from service_network.logging import get_logger

log = get_logger("service_network.graph")


class ResourceKind(StrEnum):
    """Kinds of resource the provisioner knows how to realize."""

    VPC = "vpc"
    SUBNET = "subnet"
    INTERNET_GATEWAY = "internet_gateway"
    EIP = "eip"
    NAT_GATEWAY = "nat_gateway"
    ROUTE_TABLE = "route_table"
    ROUTE = "route"
    ROUTE_TABLE_ASSOCIATION = "route_table_association"
    SECURITY_GROUP = "security_group"
    SECURITY_GROUP_RULE = "security_group_rule"
    LOAD_BALANCER = "load_balancer"
    TARGET_GROUP = "target_group"
    LISTENER = "listener"
    ECS_CLUSTER = "ecs_cluster"
    TASK_DEFINITION = "task_definition"
    ECS_SERVICE = "ecs_service"


@dataclass(frozen=True)
class Ref:
    """Placeholder for an attribute the provider computes at realization."""

    resource: str
    attribute: str = "id"


@dataclass(frozen=True)
class CidrSubdivision:
    """Subnet of a parent block that is only known after realization.

    The provisioner applies ``cidr.subdivide(parent, new_prefix_bits, index)``
    once ``parent`` resolves.
    """

    parent: Ref
    new_prefix_bits: int
    index: int


@dataclass(frozen=True)
class Resource:
    """Typed descriptor for one provider resource."""

    kind: ResourceKind
    name: str
    properties: Mapping[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()

    def ref(self, attribute: str = "id") -> Ref:
        return Ref(self.name, attribute)


@dataclass(frozen=True)
class Dependency:
    """Directed edge: ``dependent`` must be realized after ``dependency``."""

    dependent: str
    dependency: str
    reason: str


@dataclass(frozen=True)
class OutputBinding:
    """Named stack output pointing at a provider-computed attribute."""

    name: str
    value: Ref
    description: str = ""


def find_refs(value: Any) -> Iterator[Ref]:
    """Yield every ``Ref`` nested anywhere inside ``value``."""
    if isinstance(value, Ref):
        yield value
    elif isinstance(value, CidrSubdivision):
        yield value.parent
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from find_refs(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from find_refs(item)


class ResourceGraph:
    """Resources plus the dependency edges between them.

    Every ``Ref`` found in a resource's properties becomes an edge with
    reason ``"reference"``. Ordering constraints that carry no data
    reference are declared with ``depend`` (or ``Resource.depends_on``) and
    kept in the same edge list.
    """

    def __init__(self) -> None:
        self._resources: dict[str, Resource] = {}
        self._edges: list[Dependency] = []
        self._outputs: dict[str, OutputBinding] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources.values())

    def add(self, resource: Resource) -> Resource:
        """Register ``resource`` and the edges implied by its properties.

        Raises:
            AlreadyProvisioned: If a resource with the same name exists.
            DependencyUnresolved: If a reference or explicit dependency
                names a resource that is not in the graph yet.
        """
        if resource.name in self._resources:
            raise AlreadyProvisioned(resource.name)

        edges: list[Dependency] = []
        seen: set[str] = set()
        for ref in find_refs(resource.properties):
            self._require(ref.resource, resource.name)
            if ref.resource not in seen:
                seen.add(ref.resource)
                edges.append(Dependency(resource.name, ref.resource, "reference"))

        for dependency in resource.depends_on:
            self._require(dependency, resource.name)
            edges.append(Dependency(resource.name, dependency, "depends_on"))

        self._resources[resource.name] = resource
        self._edges.extend(edges)
        log.debug("resource_added", resource=resource.name, kind=str(resource.kind), edges=len(edges))
        return resource

    def depend(self, dependent: str, dependency: str, reason: str) -> Dependency:
        """Declare an ordering constraint between two existing resources."""
        self._require(dependent, dependent)
        self._require(dependency, dependent)
        edge = Dependency(dependent, dependency, reason)
        self._edges.append(edge)
        return edge

    def output(self, name: str, value: Ref, description: str = "") -> OutputBinding:
        """Bind a stack output to a provider-computed attribute."""
        self._require(value.resource, f"output {name}")
        binding = OutputBinding(name, value, description)
        self._outputs[name] = binding
        return binding

    def get(self, name: str) -> Resource:
        try:
            return self._resources[name]
        except KeyError:
            raise DependencyUnresolved(f"Unknown resource: {name}") from None

    def of_kind(self, kind: ResourceKind) -> list[Resource]:
        return [r for r in self._resources.values() if r.kind == kind]

    @property
    def edges(self) -> list[Dependency]:
        return list(self._edges)

    @property
    def outputs(self) -> list[OutputBinding]:
        return list(self._outputs.values())

    def dependencies_of(self, name: str) -> list[str]:
        """Names ``name`` depends on, without duplicates, in declaration order."""
        self._require(name, name)
        result: list[str] = []
        for edge in self._edges:
            if edge.dependent == name and edge.dependency not in result:
                result.append(edge.dependency)
        return result

    def topological_order(self) -> list[Resource]:
        """Resources ordered so that every dependency precedes its dependents.

        Ties are broken by insertion order, so the same graph always yields
        the same sequence.

        Raises:
            DependencyUnresolved: If the edges form a cycle.
        """
        pending = {name: set(self.dependencies_of(name)) for name in self._resources}
        ordered: list[Resource] = []

        while pending:
            ready = [name for name, deps in pending.items() if not deps]
            if not ready:
                raise DependencyUnresolved(
                    f"Dependency cycle between: {', '.join(sorted(pending))}"
                )
            for name in ready:
                ordered.append(self._resources[name])
                del pending[name]
            for deps in pending.values():
                deps.difference_update(ready)

        return ordered

    def _require(self, name: str, wanted_by: str) -> None:
        if name not in self._resources:
            raise DependencyUnresolved(f"{wanted_by} references {name}, which has not been created")
