"""Listing, enrichment and grouping of ECS tasks."""

from typing import Any

from fargatectl.core.deployments.aws_ecs.ecs_tasks import (
    LAUNCH_TYPE,
    EcsPlatform,
    revision_number,
    task_id_from_arn,
)
from fargatectl.core.deployments.aws_ecs.models import EnvVar, Task, TaskGroup
from fargatectl.core.deployments.aws_ecs.started_by import (
    decode_started_by,
    encode_started_by,
)

ENI_ATTACHMENT_TYPE = "ElasticNetworkInterface"
DETAIL_NETWORK_INTERFACE_ID = "networkInterfaceId"
DETAIL_SUBNET_ID = "subnetId"


def eni_details(task: dict[str, Any]) -> tuple[bool, str, str]:
    """Return whether a task has a network interface, and its ENI and subnet IDs."""
    found = False
    eni_id, subnet_id = "", ""

    for attachment in task.get("attachments", []):
        if attachment.get("type") != ENI_ATTACHMENT_TYPE:
            continue
        found = True

        for detail in attachment.get("details", []):
            name = detail.get("name")
            if name == DETAIL_NETWORK_INTERFACE_ID:
                eni_id = str(detail.get("value", ""))
            elif name == DETAIL_SUBNET_ID:
                subnet_id = str(detail.get("value", ""))

    return found, eni_id, subnet_id


class TaskInventory:
    """Materialised views of the tasks in one cluster.

    Every query pages through ``ListTasks`` completely before describing
    the tasks, so callers never see partial results. Task definitions
    are fetched once per query.
    """

    def __init__(self, platform: EcsPlatform) -> None:
        self._platform = platform

    def tasks_for_service(self, service_name: str) -> list[Task]:
        """Return the tasks of a service."""
        return self._list_tasks(serviceName=service_name, launchType=LAUNCH_TYPE)

    def tasks_for_task_group(self, task_group_name: str) -> list[Task]:
        """Return the tasks started under a task group name."""
        return self._list_tasks(startedBy=encode_started_by(task_group_name))

    def all_tasks(self) -> list[Task]:
        """Return every task in the cluster."""
        return self._list_tasks()

    def describe(self, task_ids: list[str]) -> list[Task]:
        """Return tasks by ID."""
        if not task_ids:
            return []
        return self._to_tasks(self._platform.describe_tasks(task_ids), {})

    def task_groups(self) -> list[TaskGroup]:
        """Group the cluster's tasks by the name in their startedBy tag.

        Tasks without a matching tag belong to no group. Groups are
        returned in the order their first task was seen.
        """
        task_groups: dict[str, TaskGroup] = {}
        for task in self.all_tasks():
            name = decode_started_by(task.started_by)
            if name is None:
                continue
            task_group = task_groups.setdefault(name, TaskGroup(name=name))
            task_group.instances += 1
        return list(task_groups.values())

    def _list_tasks(self, **filters: Any) -> list[Task]:
        tasks: list[Task] = []
        task_definitions: dict[str, dict[str, Any]] = {}
        for batch in self._platform.list_task_arn_batches(**filters):
            records = self._platform.describe_tasks(batch)
            tasks.extend(self._to_tasks(records, task_definitions))
        return tasks

    def _to_tasks(
        self,
        records: list[dict[str, Any]],
        task_definitions: dict[str, dict[str, Any]],
    ) -> list[Task]:
        tasks: list[Task] = []
        for record in records:
            task_definition_arn = str(record.get("taskDefinitionArn", ""))
            task = Task(
                task_id=task_id_from_arn(str(record.get("taskArn", ""))),
                cpu=str(record.get("cpu", "")),
                memory=str(record.get("memory", "")),
                created_at=record.get("createdAt"),
                last_status=str(record.get("lastStatus", "")),
                desired_status=str(record.get("desiredStatus", "")),
                deployment_id=revision_number(task_definition_arn),
                started_by=str(record.get("startedBy", "")),
            )

            if task_definition_arn:
                if task_definition_arn not in task_definitions:
                    task_definitions[task_definition_arn] = (
                        self._platform.describe_task_definition(task_definition_arn)
                    )
                _apply_task_definition(task, task_definitions[task_definition_arn])

            found, eni_id, subnet_id = eni_details(record)
            if found:
                task.eni_id = eni_id
                task.subnet_id = subnet_id

            tasks.append(task)
        return tasks


def _apply_task_definition(task: Task, task_definition: dict[str, Any]) -> None:
    """Copy image, role and environment from the first container definition."""
    task.task_role = str(task_definition.get("taskRoleArn", ""))
    containers = task_definition.get("containerDefinitions", [])
    if not containers:
        return

    container = containers[0]
    task.image = str(container.get("image", ""))
    task.env_vars = [
        EnvVar(key=str(env.get("name", "")), value=str(env.get("value", "")))
        for env in container.get("environment", [])
    ]
