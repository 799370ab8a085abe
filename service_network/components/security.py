"""Security group helpers shared by the ingress and topology components."""

from service_network.graph import Ref, Resource, ResourceGraph, ResourceKind
from service_network.models import SecurityGroup, SecurityGroupOwner, SecurityGroupRule


def add_security_group(
    graph: ResourceGraph,
    name: str,
    owner: SecurityGroupOwner,
    vpc_id: Ref,
    name_prefix: str,
    description: str,
) -> SecurityGroup:
    """Add an empty security group; rules are separate resources."""
    graph.add(
        Resource(
            ResourceKind.SECURITY_GROUP,
            name,
            {
                "name_prefix": name_prefix,
                "description": description,
                "vpc_id": vpc_id,
            },
        )
    )
    return SecurityGroup(name, owner)


def add_security_group_rule(
    graph: ResourceGraph,
    security_group: SecurityGroup,
    rule: SecurityGroupRule,
) -> SecurityGroupRule:
    """Add ``rule`` to the graph and to ``security_group``'s rule list."""
    properties: dict = {
        "security_group_id": security_group.id,
        "type": rule.type,
        "protocol": rule.protocol,
        "from_port": rule.from_port,
        "to_port": rule.to_port,
        "description": rule.description,
    }
    if rule.source_security_group is not None:
        properties["source_security_group_id"] = rule.source_security_group
    if rule.self_referencing:
        properties["self"] = True
    if rule.cidr_blocks:
        properties["cidr_blocks"] = list(rule.cidr_blocks)
    if rule.ipv6_cidr_blocks:
        properties["ipv6_cidr_blocks"] = list(rule.ipv6_cidr_blocks)

    graph.add(Resource(ResourceKind.SECURITY_GROUP_RULE, rule.name, properties))

    rules = security_group.ingress if rule.type == "ingress" else security_group.egress
    rules.append(rule)
    return rule
