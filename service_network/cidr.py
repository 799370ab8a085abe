"""Subnet CIDR calculations.

Pure functions with no Pulumi imports, so they can run both while the graph
is being built (on input CIDRs) and inside ``Output.apply`` once the provider
has computed a parent block (the VPC's generated IPv6 range).

``subdivide`` follows Terraform's ``cidrsubnet``: the parent prefix is
widened by ``new_prefix_bits`` and the ``index``-th child of that size is
returned. Host bits in a string parent are masked, as AWS does.
"""

from __future__ import annotations

import ipaddress

from service_network.errors import CidrOverflow, InvalidTopologyInput

Network = ipaddress.IPv4Network | ipaddress.IPv6Network


def parse_network(cidr: str | Network) -> Network:
    """Parse a CIDR string, masking host bits."""
    if isinstance(cidr, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return cidr
    try:
        return ipaddress.ip_network(cidr, strict=False)
    except ValueError as e:
        raise InvalidTopologyInput(f"Invalid CIDR block {cidr!r}: {e}") from e


def subdivide(parent: str | Network, new_prefix_bits: int, index: int) -> Network:
    """Return the ``index``-th child of ``parent`` with ``new_prefix_bits`` more prefix bits.

    Args:
        parent: Parent block, as a string or network object.
        new_prefix_bits: Number of bits to add to the parent prefix.
        index: Zero-based position of the child inside the parent.

    Raises:
        CidrOverflow: If the child prefix would exceed the address width or
            ``index`` is outside ``0 .. 2**new_prefix_bits - 1``.
    """
    network = parse_network(parent)

    if new_prefix_bits < 1:
        raise CidrOverflow(str(network), new_prefix_bits, index, "prefix must grow by at least one bit")

    new_prefix = network.prefixlen + new_prefix_bits
    if new_prefix > network.max_prefixlen:
        raise CidrOverflow(
            str(network),
            new_prefix_bits,
            index,
            f"/{new_prefix} exceeds the {network.max_prefixlen}-bit address width",
        )

    if index < 0 or index >= 2**new_prefix_bits:
        raise CidrOverflow(
            str(network),
            new_prefix_bits,
            index,
            f"only {2**new_prefix_bits} children available",
        )

    child_size = 2 ** (network.max_prefixlen - new_prefix)
    address = network.network_address + index * child_size
    return ipaddress.ip_network((address, new_prefix))


def subnet_blocks(
    parent: str | Network,
    zone_count: int,
    new_prefix_bits: int,
) -> tuple[list[Network], list[Network]]:
    """Split ``parent`` into public and private blocks for ``zone_count`` zones.

    Public blocks take indices ``0 .. Z-1`` and private blocks ``Z .. 2Z-1``,
    so the two sets never overlap.
    """
    if zone_count < 1:
        raise InvalidTopologyInput("At least one availability zone is required")

    public = [subdivide(parent, new_prefix_bits, i) for i in range(zone_count)]
    private = [subdivide(parent, new_prefix_bits, zone_count + i) for i in range(zone_count)]
    return public, private
