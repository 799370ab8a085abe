"""Stack configuration schema and loader."""

from dataclasses import dataclass, field

import pulumi

DEFAULT_TAGS = {"project": "cdktf-networking-demo"}
DEFAULT_REGION = "eu-central-1"
DEFAULT_ZONE_SUFFIXES = ("a", "b", "c")


@dataclass(frozen=True)
class StackConfig:
    """Inputs for one networking stack.

    Threaded explicitly into the builders instead of being read from
    provider-wide state.
    """

    # Tagging
    default_tags: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TAGS))

    # Networking
    region: str = DEFAULT_REGION
    vpc_cidr: str = "10.255.0.0/20"
    availability_zones: tuple[str, ...] = tuple(f"{DEFAULT_REGION}{s}" for s in DEFAULT_ZONE_SUFFIXES)

    # Client service
    service_port: int = 9090
    container_image: str = "nicholasjackson/fake-service:v0.23.1"
    desired_count: int = 1

    @property
    def project_name(self) -> str:
        return self.default_tags.get("project", "")


def load_stack_config() -> StackConfig:
    """Load stack configuration from Pulumi stack config with defaults."""
    config = pulumi.Config()

    region = config.get("awsRegion") or DEFAULT_REGION

    # Parse availability zones from config (comma-separated string)
    az_config = config.get("availabilityZones")
    if az_config:
        availability_zones = tuple(az.strip() for az in az_config.split(",") if az.strip())
    else:
        availability_zones = tuple(f"{region}{suffix}" for suffix in DEFAULT_ZONE_SUFFIXES)

    # Explicit 0 is kept: a service scaled to zero, or a port get_service rejects
    service_port = config.get_int("servicePort")
    desired_count = config.get_int("desiredCount")

    return StackConfig(
        default_tags=config.get_object("defaultTags") or dict(DEFAULT_TAGS),
        region=region,
        vpc_cidr=config.get("vpcCidr") or "10.255.0.0/20",
        availability_zones=availability_zones,
        service_port=9090 if service_port is None else service_port,
        container_image=config.get("containerImage") or "nicholasjackson/fake-service:v0.23.1",
        desired_count=1 if desired_count is None else desired_count,
    )
