"""Topology components."""

from service_network.components.ingress import ApplicationLoadBalancer
from service_network.components.service import ServiceBinding, add_cluster, add_task_definition
from service_network.components.traffic_control import TrafficControl

__all__ = ["TrafficControl", "ApplicationLoadBalancer", "ServiceBinding", "add_cluster", "add_task_definition"]
