"""Tests for subnet CIDR subdivision."""

import ipaddress
import itertools

import pytest

from service_network.cidr import parse_network, subdivide, subnet_blocks
from service_network.errors import CidrOverflow, ErrorCode, InvalidTopologyInput


class TestSubdivide:
    """Tests for subdivide()."""

    def test_first_child(self) -> None:
        assert subdivide("10.255.0.0/20", 4, 0) == ipaddress.ip_network("10.255.0.0/24")

    def test_index_offsets_by_child_size(self) -> None:
        assert subdivide("10.255.0.0/20", 4, 5) == ipaddress.ip_network("10.255.5.0/24")
        assert subdivide("10.0.0.0/16", 8, 200) == ipaddress.ip_network("10.0.200.0/24")

    def test_last_child_fits(self) -> None:
        assert subdivide("10.255.0.0/20", 4, 15) == ipaddress.ip_network("10.255.15.0/24")

    def test_host_bits_are_masked(self) -> None:
        assert subdivide("10.255.3.7/20", 4, 1) == ipaddress.ip_network("10.255.1.0/24")

    def test_accepts_network_objects(self) -> None:
        parent = ipaddress.ip_network("192.168.0.0/24")
        assert subdivide(parent, 2, 3) == ipaddress.ip_network("192.168.0.192/26")

    def test_ipv6(self) -> None:
        parent = "2a05:d014:1c3:de00::/56"
        assert subdivide(parent, 8, 0) == ipaddress.ip_network("2a05:d014:1c3:de00::/64")
        assert subdivide(parent, 8, 2) == ipaddress.ip_network("2a05:d014:1c3:de02::/64")

    def test_index_beyond_children_overflows(self) -> None:
        with pytest.raises(CidrOverflow) as exc_info:
            subdivide("10.255.0.0/20", 4, 20)

        assert exc_info.value.is_code(ErrorCode.CIDR_OVERFLOW)
        assert exc_info.value.index == 20
        assert "16 children" in str(exc_info.value)

    def test_index_equal_to_child_count_overflows(self) -> None:
        with pytest.raises(CidrOverflow):
            subdivide("10.255.0.0/20", 4, 16)

    def test_negative_index_overflows(self) -> None:
        with pytest.raises(CidrOverflow):
            subdivide("10.255.0.0/20", 4, -1)

    def test_prefix_beyond_address_width_overflows(self) -> None:
        with pytest.raises(CidrOverflow, match="address width"):
            subdivide("10.255.0.0/30", 3, 0)

    def test_ipv6_prefix_beyond_address_width_overflows(self) -> None:
        with pytest.raises(CidrOverflow):
            subdivide("2a05:d014:1c3:de00::/120", 9, 0)

    def test_prefix_must_grow(self) -> None:
        with pytest.raises(CidrOverflow):
            subdivide("10.255.0.0/20", 0, 0)

    def test_overflow_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            subdivide("10.255.0.0/20", 4, 99)

    def test_invalid_cidr_string(self) -> None:
        with pytest.raises(InvalidTopologyInput):
            parse_network("10.255.0.300/20")


class TestSubnetBlocks:
    """Tests for subnet_blocks()."""

    def test_three_zones(self) -> None:
        public, private = subnet_blocks("10.255.0.0/20", 3, 4)

        assert [str(b) for b in public] == ["10.255.0.0/24", "10.255.1.0/24", "10.255.2.0/24"]
        assert [str(b) for b in private] == ["10.255.3.0/24", "10.255.4.0/24", "10.255.5.0/24"]

    @pytest.mark.parametrize("zone_count", range(1, 9))
    def test_blocks_are_disjoint_and_contained(self, zone_count: int) -> None:
        parent = ipaddress.ip_network("10.255.0.0/20")
        public, private = subnet_blocks(parent, zone_count, 4)
        blocks = public + private

        assert len(blocks) == 2 * zone_count
        for block in blocks:
            assert block.subnet_of(parent)
            assert block.prefixlen > parent.prefixlen
        for a, b in itertools.combinations(blocks, 2):
            assert not a.overlaps(b)

    def test_same_inputs_same_blocks(self) -> None:
        assert subnet_blocks("10.255.0.0/20", 3, 4) == subnet_blocks("10.255.0.0/20", 3, 4)

    def test_too_many_zones_overflows(self) -> None:
        with pytest.raises(CidrOverflow):
            subnet_blocks("10.255.0.0/20", 9, 4)

    def test_zero_zones(self) -> None:
        with pytest.raises(InvalidTopologyInput):
            subnet_blocks("10.255.0.0/20", 0, 4)
