"""Networking demo - Main entry point for Pulumi infrastructure deployment."""

import pulumi

from service_network.config import load_stack_config
from service_network.providers import create_aws_provider
from service_network.realize import RealizedTopology
from service_network.stack import synthesize

# Load stack configuration from Pulumi stack config
config = load_stack_config()

# 1. Build the resource graph (subnets, gateways, ALB, Fargate service)
topology = synthesize(config)

# 2. AWS provider with region and default tags from config
aws_provider = create_aws_provider(config)

# 3. Realize the graph in dependency order
realized = RealizedTopology(
    name=config.project_name or "service-network",
    graph=topology.graph,
    provider=aws_provider,
)

# Exports
for name, value in realized.outputs.items():
    pulumi.export(name, value)
