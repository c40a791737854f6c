"""Tests for the fargatectl command line."""

from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner
from conftest import client_error, paginated

from fargatectl.cli import main as cli_main
from fargatectl.core.deployments.aws_ecs import (
    DefaultNetwork,
    DeploymentClients,
    EcrRepositories,
    EcsPlatform,
    LoadBalancers,
)


@pytest.fixture
def ecs() -> MagicMock:
    return MagicMock()


@pytest.fixture
def fake_clients(monkeypatch: pytest.MonkeyPatch, ecs: MagicMock) -> DeploymentClients:
    clients = DeploymentClients(
        repositories=EcrRepositories(MagicMock()),
        network=DefaultNetwork(MagicMock()),
        iam=MagicMock(),
        logs=MagicMock(),
        load_balancers=LoadBalancers(MagicMock()),
        platform=EcsPlatform(ecs, "fargate"),
    )
    monkeypatch.setattr(cli_main, "build_clients", lambda settings: clients)
    return clients


def test_task_list_prints_groups(fake_clients: DeploymentClients, ecs: MagicMock) -> None:
    paginated(ecs, [{"taskArns": ["arn:task/fargate/1", "arn:task/fargate/2"]}])
    ecs.describe_tasks.return_value = {
        "tasks": [
            {"taskArn": "arn:task/fargate/1", "startedBy": "fargate:worker"},
            {"taskArn": "arn:task/fargate/2", "startedBy": "ecs-svc/1"},
        ]
    }

    result = CliRunner().invoke(cli_main.cli, ["task", "list"])

    assert result.exit_code == 0, result.output
    assert "worker" in result.output
    assert "ecs-svc" not in result.output


def test_task_list_without_tasks(fake_clients: DeploymentClients, ecs: MagicMock) -> None:
    paginated(ecs, [])

    result = CliRunner().invoke(cli_main.cli, ["task", "list"])

    assert result.exit_code == 0
    assert "No running task groups" in result.output


def test_service_create_reports_every_invalid_flag(fake_clients: DeploymentClients) -> None:
    result = CliRunner().invoke(
        cli_main.cli,
        ["service", "create", "web", "--port", "ftp:70000", "--image", "nginx"],
    )

    assert result.exit_code == 1
    assert "Invalid command line flags" in result.output
    assert "Invalid protocol FTP" in result.output
    assert "Invalid port 70000" in result.output


def test_service_create_rejects_unsupported_compute(fake_clients: DeploymentClients) -> None:
    result = CliRunner().invoke(
        cli_main.cli, ["service", "create", "web", "--cpu", "256", "--memory", "4096"]
    )

    assert result.exit_code == 1
    assert "256 CPU units / 4096 MiB" in result.output


def test_task_stop_with_yes_stops_given_tasks(
    fake_clients: DeploymentClients, ecs: MagicMock
) -> None:
    result = CliRunner().invoke(
        cli_main.cli, ["task", "stop", "worker", "--task", "a", "--task", "b", "--yes"]
    )

    assert result.exit_code == 0, result.output
    assert ecs.stop_task.call_count == 2
    assert "Stopped task b" in result.output


def test_task_stop_cancelled_at_prompt(
    fake_clients: DeploymentClients, ecs: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(cli_main, "confirm", lambda message: False)

    result = CliRunner().invoke(cli_main.cli, ["task", "stop", "worker", "--task", "a"])

    assert result.exit_code == 0
    assert "Cancelled" in result.output
    ecs.stop_task.assert_not_called()


def test_aws_auth_errors_get_a_hint(fake_clients: DeploymentClients, ecs: MagicMock) -> None:
    ecs.get_paginator.return_value.paginate.side_effect = client_error("ExpiredToken")

    result = CliRunner().invoke(cli_main.cli, ["task", "ps", "worker"])

    assert result.exit_code == 1
    assert "AWS authentication failed" in result.output


def test_task_run_requires_positive_count(fake_clients: DeploymentClients) -> None:
    result = CliRunner().invoke(cli_main.cli, ["task", "run", "worker", "--num", "0"])

    assert result.exit_code == 2


def test_late_deployment_failure_lists_steps_and_auth_hint(
    monkeypatch: pytest.MonkeyPatch, clients: DeploymentClients, ecs_client: MagicMock
) -> None:
    ecs_client.describe_clusters.return_value = {
        "clusters": [{"clusterArn": "arn:cluster/fargate", "status": "ACTIVE"}]
    }
    ecs_client.create_service.side_effect = client_error("AccessDeniedException", "CreateService")
    monkeypatch.setattr(cli_main, "build_clients", lambda settings: clients)

    result = CliRunner().invoke(
        cli_main.cli, ["service", "create", "web", "--image", "nginx:latest"]
    )

    assert result.exit_code == 1
    assert "Deployment failed at step service" in result.output
    assert "Completed steps" in result.output
    assert "task-definition" in result.output
    assert "Re-running the command is safe" in result.output
    assert "AWS authentication failed" in result.output
