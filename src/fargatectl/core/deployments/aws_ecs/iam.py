"""IAM role helpers for ECS deployment."""

import json
import logging
from typing import Any, cast

from fargatectl.core.deployments.aws_ecs.errors import AWS_ERRORS, AwsOperationError, error_code

logger = logging.getLogger(__name__)

TASK_EXECUTION_ROLE_NAME = "ecsTaskExecutionRole"
TASK_EXECUTION_POLICY_ARN = (
    "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
)


def ensure_task_execution_role(iam: Any, role_name: str = TASK_EXECUTION_ROLE_NAME) -> tuple[str, bool]:
    """Ensure the standard task execution role exists.

    Creating a role that already exists is a no-op.

    Returns:
        The role ARN and whether it was created by this call.
    """
    created = False
    try:
        response = iam.create_role(
            RoleName=role_name,
            AssumeRolePolicyDocument=json.dumps(_ecs_trust_policy()),
        )
        role_arn = cast(str, response["Role"]["Arn"])
        created = True
        logger.info(f"Created IAM role {role_name}")
    except AWS_ERRORS as exc:
        if error_code(exc) != "EntityAlreadyExists":
            raise AwsOperationError(f"Could not create IAM role {role_name}", exc) from exc
        role_arn = _get_role_arn(iam, role_name)

    _attach_managed_policy(iam, role_name, TASK_EXECUTION_POLICY_ARN)
    return role_arn, created


def _get_role_arn(iam: Any, role_name: str) -> str:
    """Return the ARN of an existing role."""
    try:
        response = iam.get_role(RoleName=role_name)
    except AWS_ERRORS as exc:
        raise AwsOperationError(f"Could not read IAM role {role_name}", exc) from exc
    return cast(str, response["Role"]["Arn"])


def _attach_managed_policy(iam: Any, role_name: str, policy_arn: str) -> None:
    """Attach a managed policy if it is missing."""
    try:
        response = iam.list_attached_role_policies(RoleName=role_name)
        attached = {policy["PolicyArn"] for policy in response.get("AttachedPolicies", [])}
        if policy_arn in attached:
            return
        iam.attach_role_policy(RoleName=role_name, PolicyArn=policy_arn)
    except AWS_ERRORS as exc:
        raise AwsOperationError(f"Could not attach policy to IAM role {role_name}", exc) from exc


def _ecs_trust_policy() -> dict[str, Any]:
    """Return the ECS task trust policy."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "ecs-tasks.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }
