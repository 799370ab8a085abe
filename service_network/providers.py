"""AWS provider configuration."""

import pulumi_aws as aws

from service_network.config import StackConfig


def create_aws_provider(config: StackConfig) -> aws.Provider:
    """Create the AWS provider every realized resource is attached to.

    Region and default tags come from the stack config rather than
    ambient provider settings.
    """
    return aws.Provider(
        f"{config.project_name or 'service-network'}-aws",
        region=config.region,
        default_tags=aws.ProviderDefaultTagsArgs(
            tags=config.default_tags,
        ),
    )
