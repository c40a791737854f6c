"""Ad-hoc task runs grouped under a task group name."""

import dataclasses
from collections.abc import Callable

from fargatectl.core.deployments.aws_ecs.deploy import ServiceDeployer
from fargatectl.core.deployments.aws_ecs.models import RunTaskRequest, ServiceConfiguration

TASK_FAMILY_PREFIX = "fargate-task-"


def task_family(task_group_name: str) -> str:
    """Return the task definition family used for a task group."""
    return f"{TASK_FAMILY_PREFIX}{task_group_name}"


class TaskRunner:
    """Prepares a task definition for a task group and starts copies of it."""

    def __init__(
        self,
        deployer: ServiceDeployer,
        log_group_template: str,
        reporter: Callable[[str], None] | None = None,
    ) -> None:
        self.deployer = deployer
        self.log_group_template = log_group_template
        self._reporter = reporter or (lambda _: None)

    def run(
        self,
        config: ServiceConfiguration,
        count: int = 1,
        subnet_ids: list[str] | None = None,
        security_group_ids: list[str] | None = None,
    ) -> list[str]:
        """Run ``count`` copies of the task group described by ``config``.

        Subnets and security groups default to those of the default VPC.

        Returns:
            The ARNs of the started tasks.
        """
        if count < 1:
            raise ValueError("At least one task must be run.")

        clients = self.deployer.clients

        self._reporter(f"Ensuring ECR repository {config.name}")
        repository_uri, _ = self.deployer.acquire_repository(config.name)

        self._reporter("Ensuring task execution role")
        execution_role_arn, _ = self.deployer.acquire_execution_role()

        self._reporter("Ensuring CloudWatch log group")
        log_group_name, _ = self.deployer.acquire_log_group(config.name, self.log_group_template)

        if config.image is None:
            self._reporter("Building and pushing image")
            config = dataclasses.replace(config, image=self.deployer.build_image(repository_uri))

        self._reporter("Registering task definition")
        task_definition_arn = self.deployer.register_task_definition(
            config,
            execution_role_arn,
            log_group_name,
            family=task_family(config.name),
        )

        if not subnet_ids:
            subnet_ids = clients.network.default_subnet_ids()
        if not security_group_ids:
            security_group_ids = [clients.network.default_security_group_id()]

        self._reporter(f"Running {count} task(s) in task group {config.name}")
        return clients.platform.run_task(
            RunTaskRequest(
                task_name=config.name,
                task_definition_arn=task_definition_arn,
                count=count,
                subnet_ids=tuple(subnet_ids),
                security_group_ids=tuple(security_group_ids),
            )
        )
