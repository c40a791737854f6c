"""AWS ECS Fargate deployment helpers."""

from fargatectl.core.deployments.aws_ecs.deploy import (
    DeploymentClients,
    DeploymentError,
    DeploymentPlan,
    DeploymentResult,
    ServiceDeployer,
    StepResult,
    plan_deployment,
)
from fargatectl.core.deployments.aws_ecs.ecr import EcrRepositories
from fargatectl.core.deployments.aws_ecs.ecs_tasks import EcsPlatform
from fargatectl.core.deployments.aws_ecs.elbv2 import LoadBalancers
from fargatectl.core.deployments.aws_ecs.errors import AwsOperationError, ConfigurationError
from fargatectl.core.deployments.aws_ecs.inventory import TaskInventory
from fargatectl.core.deployments.aws_ecs.models import (
    EnvVar,
    LoadBalancer,
    Port,
    Rule,
    ServiceConfiguration,
    Task,
    TaskGroup,
)
from fargatectl.core.deployments.aws_ecs.network import DefaultNetwork
from fargatectl.core.deployments.aws_ecs.runner import TaskRunner
from fargatectl.core.deployments.aws_ecs.session import create_client, create_session
from fargatectl.core.deployments.aws_ecs.started_by import decode_started_by, encode_started_by
from fargatectl.core.deployments.aws_ecs.validation import (
    build_service_configuration,
    parse_env_vars,
    parse_port,
    parse_rules,
    validate_cpu_and_memory,
    validate_name,
)

__all__ = [
    "AwsOperationError",
    "ConfigurationError",
    "DefaultNetwork",
    "DeploymentClients",
    "DeploymentError",
    "DeploymentPlan",
    "DeploymentResult",
    "EcrRepositories",
    "EcsPlatform",
    "EnvVar",
    "LoadBalancer",
    "LoadBalancers",
    "Port",
    "Rule",
    "ServiceConfiguration",
    "ServiceDeployer",
    "StepResult",
    "Task",
    "TaskGroup",
    "TaskInventory",
    "TaskRunner",
    "build_service_configuration",
    "create_client",
    "create_session",
    "decode_started_by",
    "encode_started_by",
    "parse_env_vars",
    "parse_port",
    "parse_rules",
    "plan_deployment",
    "validate_cpu_and_memory",
    "validate_name",
]
