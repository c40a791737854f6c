"""fargatectl - deploy and operate services on AWS ECS Fargate."""

__version__ = "0.1.0"
