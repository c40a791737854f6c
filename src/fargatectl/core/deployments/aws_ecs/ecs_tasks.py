"""ECS task, service and cluster helpers."""

import logging
from typing import Any, cast

from fargatectl.core.deployments.aws_ecs.errors import AWS_ERRORS, AwsOperationError, error_code
from fargatectl.core.deployments.aws_ecs.models import (
    RunTaskRequest,
    ServiceSpec,
    TaskDefinitionSpec,
)
from fargatectl.core.deployments.aws_ecs.started_by import encode_started_by

logger = logging.getLogger(__name__)

LAUNCH_TYPE = "FARGATE"
LOG_STREAM_PREFIX = "fargate"
# DescribeTasks accepts at most this many task identifiers per call.
DESCRIBE_TASKS_LIMIT = 100


def task_id_from_arn(task_arn: str) -> str:
    """Return the task ID, the last path segment of a task ARN."""
    return task_arn.split("/")[-1]


def revision_number(task_definition_arn: str) -> str:
    """Return the revision of a task definition ARN (``family:revision``)."""
    return task_definition_arn.rsplit(":", 1)[-1] if ":" in task_definition_arn else ""


def container_definition(spec: TaskDefinitionSpec) -> dict[str, Any]:
    """Build the single container definition of a task definition."""
    container: dict[str, Any] = {
        "name": spec.family,
        "image": spec.image,
        "essential": True,
        "environment": [{"name": env.key, "value": env.value} for env in spec.env_vars],
        "logConfiguration": {
            "logDriver": "awslogs",
            "options": {
                "awslogs-group": spec.log_group_name,
                "awslogs-region": spec.log_region,
                "awslogs-stream-prefix": LOG_STREAM_PREFIX,
            },
        },
    }
    if spec.port is not None:
        container["portMappings"] = [{"containerPort": spec.port}]
    return container


class EcsPlatform:
    """ECS operations scoped to one cluster."""

    def __init__(self, client: Any, cluster_name: str) -> None:
        self._ecs = client
        self.cluster_name = cluster_name

    def ensure_cluster(self) -> str:
        """Ensure the ECS cluster exists."""
        try:
            response = self._ecs.describe_clusters(clusters=[self.cluster_name])
            clusters = response.get("clusters", [])
            if clusters:
                cluster = clusters[0]
                status = str(cluster.get("status", ""))
                cluster_arn = cast(str, cluster["clusterArn"])
                if status == "ACTIVE":
                    return cluster_arn
                if status != "INACTIVE":
                    raise AwsOperationError(
                        f"ECS cluster {self.cluster_name} is in unexpected status {status} "
                        "and cannot be used"
                    )

            # If the cluster does not exist or is inactive, create it.
            response = self._ecs.create_cluster(clusterName=self.cluster_name)
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not create ECS cluster", exc) from exc

        logger.info(f"Created ECS cluster {self.cluster_name}")
        return cast(str, response["cluster"]["clusterArn"])

    def register_task_definition(self, spec: TaskDefinitionSpec) -> str:
        """Register a new task definition revision and return its ARN."""
        try:
            response = self._ecs.register_task_definition(
                family=spec.family,
                networkMode="awsvpc",
                requiresCompatibilities=[LAUNCH_TYPE],
                cpu=spec.cpu,
                memory=spec.memory,
                executionRoleArn=spec.execution_role_arn,
                containerDefinitions=[container_definition(spec)],
            )
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not register task definition", exc) from exc

        task_definition_arn = cast(str, response["taskDefinition"]["taskDefinitionArn"])
        logger.info(f"Registered task definition {task_definition_arn}")
        return task_definition_arn

    def create_service(self, spec: ServiceSpec) -> str:
        """Create a Fargate service and return its ARN."""
        request: dict[str, Any] = {
            "cluster": self.cluster_name,
            "serviceName": spec.name,
            "taskDefinition": spec.task_definition_arn,
            "desiredCount": spec.desired_count,
            "launchType": LAUNCH_TYPE,
            "networkConfiguration": {
                "awsvpcConfiguration": {
                    "subnets": list(spec.subnet_ids),
                    "assignPublicIp": "ENABLED",
                }
            },
        }
        if spec.target_group_arn:
            request["loadBalancers"] = [
                {
                    "targetGroupArn": spec.target_group_arn,
                    "containerName": spec.name,
                    "containerPort": spec.port,
                }
            ]

        try:
            response = self._ecs.create_service(**request)
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not create ECS service", exc) from exc

        service_arn = cast(str, response["service"]["serviceArn"])
        logger.info(f"Created ECS service {service_arn}")
        return service_arn

    def run_task(self, request: RunTaskRequest) -> list[str]:
        """Start copies of a task definition tagged with a task group name."""
        try:
            response = self._ecs.run_task(
                cluster=self.cluster_name,
                count=request.count,
                taskDefinition=request.task_definition_arn,
                launchType=LAUNCH_TYPE,
                startedBy=encode_started_by(request.task_name),
                networkConfiguration={
                    "awsvpcConfiguration": {
                        "subnets": list(request.subnet_ids),
                        "securityGroups": list(request.security_group_ids),
                        "assignPublicIp": "ENABLED",
                    }
                },
            )
        except AWS_ERRORS as exc:
            if error_code(exc) == "ClusterNotFoundException":
                raise AwsOperationError(
                    f"ECS cluster {self.cluster_name} is missing or inactive"
                ) from exc
            raise AwsOperationError("Could not run ECS task", exc) from exc

        task_arns = [cast(str, task["taskArn"]) for task in response.get("tasks", [])]
        failures = response.get("failures", [])
        if failures or not task_arns:
            if task_arns:
                raise AwsOperationError(
                    f"Started only {len(task_arns)} of {request.count} ECS tasks "
                    f"({', '.join(task_arns)})",
                    failures,
                )
            raise AwsOperationError("Could not run ECS task", failures)
        return task_arns

    def stop_task(self, task_id: str, reason: str | None = None) -> None:
        """Stop one task."""
        request: dict[str, Any] = {"cluster": self.cluster_name, "task": task_id}
        if reason:
            request["reason"] = reason
        try:
            self._ecs.stop_task(**request)
        except AWS_ERRORS as exc:
            raise AwsOperationError(f"Could not stop ECS task {task_id}", exc) from exc

    def stop_tasks(self, task_ids: list[str], reason: str | None = None) -> list[str]:
        """Stop tasks one after another, aborting on the first failure.

        Returns:
            The IDs of the stopped tasks.
        """
        stopped: list[str] = []
        for task_id in task_ids:
            try:
                self.stop_task(task_id, reason)
            except AwsOperationError as exc:
                if stopped:
                    raise AwsOperationError(
                        f"Could not stop ECS task {task_id} after stopping {', '.join(stopped)}",
                        exc.__cause__,
                    ) from exc.__cause__
                raise
            stopped.append(task_id)
        return stopped

    def list_task_arn_batches(self, **filters: Any) -> list[list[str]]:
        """Return task ARNs page by page, consuming every page."""
        batches: list[list[str]] = []
        try:
            paginator = self._ecs.get_paginator("list_tasks")
            for page in paginator.paginate(cluster=self.cluster_name, **filters):
                task_arns = page.get("taskArns", [])
                if task_arns:
                    batches.append(list(task_arns))
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not list ECS tasks", exc) from exc
        return batches

    def describe_tasks(self, task_ids: list[str]) -> list[dict[str, Any]]:
        """Describe tasks by ID or ARN in chunks the API accepts."""
        tasks: list[dict[str, Any]] = []
        for start in range(0, len(task_ids), DESCRIBE_TASKS_LIMIT):
            chunk = task_ids[start : start + DESCRIBE_TASKS_LIMIT]
            try:
                response = self._ecs.describe_tasks(cluster=self.cluster_name, tasks=chunk)
            except AWS_ERRORS as exc:
                raise AwsOperationError("Could not describe ECS tasks", exc) from exc
            tasks.extend(response.get("tasks", []))
        return tasks

    def describe_task_definition(self, task_definition_arn: str) -> dict[str, Any]:
        """Return a task definition."""
        try:
            response = self._ecs.describe_task_definition(taskDefinition=task_definition_arn)
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not describe task definition", exc) from exc
        return cast(dict[str, Any], response["taskDefinition"])
