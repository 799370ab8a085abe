"""Pytest fixtures and configuration for topology tests."""

from __future__ import annotations

import os

# Set environment variables BEFORE any imports that might load settings
# This is necessary because settings and logging are cached at import time
os.environ.setdefault("SERVICE_NETWORK_APP_MODE", "development")
os.environ.setdefault("SERVICE_NETWORK_LOG_LEVEL", "silent")
os.environ.setdefault("SERVICE_NETWORK_LOG_SINK", "console")

import pytest

from service_network.components.traffic_control import TrafficControl
from service_network.graph import ResourceGraph
from service_network.models import Vpc
from service_network.stack import add_vpc

ZONES = ["eu-central-1a", "eu-central-1b", "eu-central-1c"]


@pytest.fixture
def graph() -> ResourceGraph:
    return ResourceGraph()


@pytest.fixture
def vpc(graph: ResourceGraph) -> Vpc:
    return add_vpc(graph, "main", "10.255.0.0/20", {"Name": "test-vpc"})


@pytest.fixture
def traffic(graph: ResourceGraph, vpc: Vpc) -> TrafficControl:
    return TrafficControl(graph, "traffic", vpc, ZONES)


@pytest.fixture
def alb(traffic: TrafficControl):
    return traffic.create_public_alb()


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "pulumi: Tests that run against Pulumi resource mocks")
