"""CloudWatch Logs helpers for ECS deployment."""

import logging
from typing import Any

from fargatectl.core.deployments.aws_ecs.errors import AWS_ERRORS, AwsOperationError, error_code

logger = logging.getLogger(__name__)


def log_group_name(template: str, name: str) -> str:
    """Render a log group name template such as ``/fargate/service/{name}``."""
    return template.format(name=name)


def ensure_log_group(logs: Any, template: str, name: str) -> tuple[str, bool]:
    """Ensure a CloudWatch log group exists.

    Returns:
        The log group name and whether it was created by this call.
    """
    group_name = log_group_name(template, name)
    try:
        logs.create_log_group(logGroupName=group_name)
    except AWS_ERRORS as exc:
        if error_code(exc) != "ResourceAlreadyExistsException":
            raise AwsOperationError("Could not create log group", exc) from exc
        return group_name, False

    logger.info(f"Created log group {group_name}")
    return group_name, True
