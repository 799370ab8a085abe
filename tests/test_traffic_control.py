"""Tests for subnet, gateway and route table construction."""

import ipaddress
import itertools

import pytest

from service_network.components.traffic_control import TrafficControl
from service_network.errors import CidrOverflow, DependencyUnresolved, InvalidTopologyInput
from service_network.graph import CidrSubdivision, Dependency, Ref, ResourceGraph, ResourceKind
from service_network.models import EgressKind, Role, Vpc
from service_network.stack import add_vpc

ZONES = ["eu-central-1a", "eu-central-1b", "eu-central-1c"]


def _routes_by_table(graph: ResourceGraph) -> dict[str, dict]:
    return {r.properties["route_table_id"].resource: r.properties for r in graph.of_kind(ResourceKind.ROUTE)}


def _table_by_subnet(graph: ResourceGraph) -> dict[str, list[str]]:
    tables: dict[str, list[str]] = {}
    for association in graph.of_kind(ResourceKind.ROUTE_TABLE_ASSOCIATION):
        subnet = association.properties["subnet_id"].resource
        tables.setdefault(subnet, []).append(association.properties["route_table_id"].resource)
    return tables


class TestSubnets:
    """Subnets created on construction."""

    def test_six_subnets_for_three_zones(self, traffic: TrafficControl) -> None:
        assert [str(s.cidr_block) for s in traffic.public_subnets] == [
            "10.255.0.0/24",
            "10.255.1.0/24",
            "10.255.2.0/24",
        ]
        assert [str(s.cidr_block) for s in traffic.private_subnets] == [
            "10.255.3.0/24",
            "10.255.4.0/24",
            "10.255.5.0/24",
        ]
        assert [s.zone for s in traffic.public_subnets] == ZONES
        assert [s.zone for s in traffic.private_subnets] == ZONES

    def test_subnets_do_not_overlap(self, traffic: TrafficControl, vpc: Vpc) -> None:
        for subnet in traffic.subnets:
            assert subnet.cidr_block.subnet_of(vpc.cidr_block)
        for a, b in itertools.combinations(traffic.subnets, 2):
            assert not a.cidr_block.overlaps(b.cidr_block)

    def test_subnets_registered_against_vpc(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        subnets = graph.of_kind(ResourceKind.SUBNET)

        assert len(subnets) == 6
        for subnet in subnets:
            assert subnet.properties["vpc_id"] == Ref("main")
            assert Dependency(subnet.name, "main", "reference") in graph.edges

    def test_public_subnets_are_dual_stack(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        for index, subnet in enumerate(traffic.public_subnets):
            properties = graph.get(subnet.name).properties
            assert properties["map_public_ip_on_launch"] is True
            assert properties["assign_ipv6_address_on_creation"] is True
            assert properties["ipv6_cidr_block"] == CidrSubdivision(Ref("main", "ipv6_cidr_block"), 8, index)

    def test_private_subnets_have_no_public_addressing(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        for subnet in traffic.private_subnets:
            properties = graph.get(subnet.name).properties
            assert "map_public_ip_on_launch" not in properties
            assert "ipv6_cidr_block" not in properties

    def test_deterministic(self) -> None:
        def build() -> list[tuple[str, str]]:
            graph = ResourceGraph()
            vpc = add_vpc(graph, "main", "10.255.0.0/20", {})
            traffic = TrafficControl(graph, "traffic", vpc, ZONES)
            return [(s.name, str(s.cidr_block)) for s in traffic.subnets]

        assert build() == build()

    def test_empty_zone_list(self, graph: ResourceGraph, vpc: Vpc) -> None:
        with pytest.raises(InvalidTopologyInput):
            TrafficControl(graph, "traffic", vpc, [])

    def test_duplicate_zones(self, graph: ResourceGraph, vpc: Vpc) -> None:
        with pytest.raises(InvalidTopologyInput):
            TrafficControl(graph, "traffic", vpc, ["eu-central-1a", "eu-central-1a"])

    def test_too_many_zones_for_the_vpc(self, graph: ResourceGraph, vpc: Vpc) -> None:
        zones = [f"eu-central-1{c}" for c in "abcdefghi"]

        with pytest.raises(CidrOverflow):
            TrafficControl(graph, "traffic", vpc, zones)

        assert graph.of_kind(ResourceKind.SUBNET) == []

    def test_single_zone(self, graph: ResourceGraph) -> None:
        vpc = add_vpc(graph, "main", "10.0.0.0/16", {})
        traffic = TrafficControl(graph, "traffic", vpc, ["us-east-1a"])

        assert traffic.public_subnets[0].cidr_block == ipaddress.ip_network("10.0.0.0/20")
        assert traffic.private_subnets[0].cidr_block == ipaddress.ip_network("10.0.16.0/20")


class TestPrivateInternetAccess:
    """Tests for add_private_internet_access()."""

    def test_nat_in_first_public_subnet(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        nat = traffic.add_private_internet_access()

        assert nat.subnet == traffic.public_subnets[0]
        assert graph.get(nat.name).properties["subnet_id"] == traffic.public_subnets[0].id

    def test_nat_depends_on_eip_and_internet_gateway(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        nat = traffic.add_private_internet_access()
        igw = graph.of_kind(ResourceKind.INTERNET_GATEWAY)[0]

        explicit = {(e.dependency, e.reason) for e in graph.edges if e.dependent == nat.name and e.reason != "reference"}
        assert explicit == {(nat.eip, "depends_on"), (igw.name, "depends_on")}

    def test_private_subnets_route_through_nat(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        nat = traffic.add_private_internet_access()

        for subnet in traffic.private_subnets:
            table = traffic.route_table_for(subnet)
            assert table.role == Role.PRIVATE
            assert table.egress == EgressKind.NAT_GATEWAY
            assert table.default_route == nat.id

    def test_called_twice_adds_nothing(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        first = traffic.add_private_internet_access()
        count = len(graph)

        second = traffic.add_private_internet_access()

        assert second is first
        assert len(graph) == count
        assert len(graph.of_kind(ResourceKind.NAT_GATEWAY)) == 1
        assert len([r for r in graph.of_kind(ResourceKind.ROUTE) if "nat_gateway_id" in r.properties]) == 1


class TestPublicAlb:
    """Tests for create_public_alb()."""

    def test_public_subnets_route_through_internet_gateway(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        traffic.create_public_alb()
        igw = graph.of_kind(ResourceKind.INTERNET_GATEWAY)[0]

        for subnet in traffic.public_subnets:
            table = traffic.route_table_for(subnet)
            assert table.role == Role.PUBLIC
            assert table.egress == EgressKind.INTERNET_GATEWAY
            assert table.default_route == igw.ref()

    def test_alb_security_group_rules(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        alb = traffic.create_public_alb()

        (http,) = alb.security_group.ingress
        assert (http.protocol, http.from_port, http.to_port) == ("tcp", 80, 80)
        assert http.cidr_blocks == ("0.0.0.0/0",)
        assert http.ipv6_cidr_blocks == ("::/0",)

        (outbound,) = alb.security_group.egress
        assert outbound.protocol == "-1"

    def test_load_balancer_in_public_subnets(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        alb = traffic.create_public_alb()
        properties = graph.get(alb.name).properties

        assert properties["subnets"] == [s.id for s in traffic.public_subnets]
        assert properties["security_groups"] == [alb.security_group.id]
        assert properties["ip_address_type"] == "dualstack"
        assert properties["load_balancer_type"] == "application"
        assert properties["idle_timeout"] == 60

    def test_called_twice_returns_same_alb(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        first = traffic.create_public_alb()
        count = len(graph)

        assert traffic.create_public_alb() is first
        assert len(graph) == count

    def test_shares_internet_gateway_with_nat(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        traffic.add_private_internet_access()
        traffic.create_public_alb()

        assert len(graph.of_kind(ResourceKind.INTERNET_GATEWAY)) == 1


class TestRouteCorrectness:
    def test_every_subnet_has_exactly_one_matching_table(self, graph: ResourceGraph, traffic: TrafficControl) -> None:
        traffic.add_private_internet_access()
        traffic.create_public_alb()

        routes = _routes_by_table(graph)
        tables = _table_by_subnet(graph)

        for subnet in traffic.public_subnets:
            (table,) = tables[subnet.name]
            assert "gateway_id" in routes[table]
            assert "nat_gateway_id" not in routes[table]
        for subnet in traffic.private_subnets:
            (table,) = tables[subnet.name]
            assert "nat_gateway_id" in routes[table]
            assert "gateway_id" not in routes[table]

    def test_route_table_for_unassociated_subnet(self, traffic: TrafficControl) -> None:
        with pytest.raises(DependencyUnresolved):
            traffic.route_table_for(traffic.private_subnets[0])
