"""Encoding of task group names in the ECS ``startedBy`` field."""

import re

STARTED_BY_FORMAT = "fargate:{name}"
TASK_GROUP_STARTED_BY_PATTERN = re.compile(r"fargate:(.*)")


def encode_started_by(task_group_name: str) -> str:
    """Return the startedBy tag for a task group."""
    return STARTED_BY_FORMAT.format(name=task_group_name)


def decode_started_by(started_by: str | None) -> str | None:
    """Return the task group name in a startedBy tag, or None if it has none."""
    if not started_by:
        return None
    match = TASK_GROUP_STARTED_BY_PATTERN.search(started_by)
    if match is None:
        return None
    return match.group(1)
