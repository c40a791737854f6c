"""Shared fixtures for the fargatectl tests."""

from typing import Any
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from fargatectl.core.deployments.aws_ecs import (
    DefaultNetwork,
    DeploymentClients,
    EcrRepositories,
    EcsPlatform,
    LoadBalancers,
)


def client_error(code: str, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError carrying an AWS error code."""
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


def paginated(client: MagicMock, pages: list[dict[str, Any]]) -> None:
    """Make every paginator of a mocked client return ``pages``."""
    client.get_paginator.return_value.paginate.return_value = pages


@pytest.fixture
def ecr_client() -> MagicMock:
    client = MagicMock()
    client.describe_repositories.side_effect = client_error("RepositoryNotFoundException")
    client.create_repository.return_value = {
        "repository": {"repositoryUri": "123456789012.dkr.ecr.us-east-1.amazonaws.com/web"}
    }
    client.get_authorization_token.return_value = {
        # base64 of "AWS:secret"
        "authorizationData": [{"authorizationToken": "QVdTOnNlY3JldA=="}]
    }
    return client


@pytest.fixture
def ec2_client() -> MagicMock:
    client = MagicMock()
    client.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-1"}]}
    client.describe_security_groups.return_value = {"SecurityGroups": [{"GroupId": "sg-1"}]}
    paginated(client, [{"Subnets": [{"SubnetId": "subnet-a"}, {"SubnetId": "subnet-b"}]}])
    return client


@pytest.fixture
def iam_client() -> MagicMock:
    client = MagicMock()
    client.create_role.return_value = {
        "Role": {"Arn": "arn:aws:iam::123456789012:role/ecsTaskExecutionRole"}
    }
    client.list_attached_role_policies.return_value = {"AttachedPolicies": []}
    return client


@pytest.fixture
def elbv2_client() -> MagicMock:
    client = MagicMock()
    client.describe_load_balancers.return_value = {
        "LoadBalancers": [
            {
                "LoadBalancerName": "my-alb",
                "LoadBalancerArn": "arn:aws:elasticloadbalancing:lb/app/my-alb/1",
                "Type": "application",
            }
        ]
    }
    client.create_target_group.return_value = {
        "TargetGroups": [{"TargetGroupArn": "arn:aws:elasticloadbalancing:tg/my-alb-web/1"}]
    }
    paginated(client, [{"Listeners": [{"ListenerArn": "arn:listener/1"}]}])
    client.create_rule.return_value = {"Rules": [{"RuleArn": "arn:listener-rule/1"}]}
    client.describe_rules.return_value = {
        "Rules": [{"Priority": "default"}, {"Priority": "4"}]
    }
    return client


@pytest.fixture
def ecs_client() -> MagicMock:
    client = MagicMock()
    client.register_task_definition.return_value = {
        "taskDefinition": {"taskDefinitionArn": "arn:aws:ecs:task-definition/web:3"}
    }
    client.create_service.return_value = {"service": {"serviceArn": "arn:aws:ecs:service/web"}}
    return client


@pytest.fixture
def docker_repository() -> MagicMock:
    repository = MagicMock()
    repository.uri_for.side_effect = lambda tag: f"123456789012.dkr.ecr.us-east-1.amazonaws.com/web:{tag}"
    return repository


@pytest.fixture
def clients(
    ecr_client: MagicMock,
    ec2_client: MagicMock,
    iam_client: MagicMock,
    elbv2_client: MagicMock,
    ecs_client: MagicMock,
    docker_repository: MagicMock,
) -> DeploymentClients:
    return DeploymentClients(
        repositories=EcrRepositories(ecr_client),
        network=DefaultNetwork(ec2_client),
        iam=iam_client,
        logs=MagicMock(),
        load_balancers=LoadBalancers(elbv2_client),
        platform=EcsPlatform(ecs_client, "fargate"),
        docker_factory=lambda uri: docker_repository,
        revision_source=lambda: "abc1234",
    )
