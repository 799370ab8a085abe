"""VPC, public ALB and Fargate service topology synthesis."""
