"""Data models for ECS Fargate deployments and tasks."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

PROTOCOL_TCP = "TCP"
PROTOCOL_HTTP = "HTTP"
PROTOCOL_HTTPS = "HTTPS"
VALID_PROTOCOLS = (PROTOCOL_TCP, PROTOCOL_HTTP, PROTOCOL_HTTPS)

LOAD_BALANCER_NETWORK = "network"
LOAD_BALANCER_APPLICATION = "application"

RULE_TYPE_HOST = "HOST"
RULE_TYPE_PATH = "PATH"


@dataclass(frozen=True)
class Port:
    """A listening port and its protocol."""

    protocol: str
    port: int

    def __str__(self) -> str:
        return f"{self.protocol}:{self.port}"


@dataclass(frozen=True)
class Rule:
    """A load balancer routing rule."""

    type: str
    value: str

    def __str__(self) -> str:
        return f"{self.type}={self.value}"


@dataclass(frozen=True)
class EnvVar:
    """A container environment variable."""

    key: str
    value: str


@dataclass(frozen=True)
class LoadBalancer:
    """A described load balancer."""

    name: str
    arn: str
    kind: str
    vpc_id: str | None = None
    dns_name: str | None = None


@dataclass(frozen=True)
class ServiceConfiguration:
    """Validated configuration for one service deployment."""

    name: str
    cpu: str
    memory: str
    port: Port | None = None
    image: str | None = None
    load_balancer: LoadBalancer | None = None
    rules: tuple[Rule, ...] = ()
    env_vars: tuple[EnvVar, ...] = ()


@dataclass(frozen=True)
class TaskDefinitionSpec:
    """Inputs for registering a task definition revision."""

    family: str
    cpu: str
    memory: str
    image: str
    execution_role_arn: str
    log_group_name: str
    log_region: str
    port: int | None = None
    env_vars: tuple[EnvVar, ...] = ()


@dataclass(frozen=True)
class TargetGroupSpec:
    """Inputs for creating a load balancer target group."""

    name: str
    port: int
    protocol: str
    vpc_id: str


@dataclass(frozen=True)
class ServiceSpec:
    """Inputs for creating an ECS service."""

    name: str
    task_definition_arn: str
    subnet_ids: tuple[str, ...]
    port: int | None = None
    target_group_arn: str | None = None
    desired_count: int = 1


@dataclass(frozen=True)
class RunTaskRequest:
    """Inputs for starting ad-hoc task copies."""

    task_name: str
    task_definition_arn: str
    count: int
    subnet_ids: tuple[str, ...]
    security_group_ids: tuple[str, ...] = ()


@dataclass
class Task:
    """A projection of a live (or recently stopped) ECS task."""

    task_id: str
    cpu: str
    memory: str
    created_at: datetime | None
    last_status: str
    desired_status: str
    deployment_id: str
    started_by: str = ""
    image: str = ""
    task_role: str = ""
    env_vars: list[EnvVar] = field(default_factory=list)
    eni_id: str = ""
    subnet_id: str = ""

    @property
    def running_for(self) -> timedelta:
        """Return how long the task has existed, truncated to whole seconds."""
        if self.created_at is None:
            return timedelta(0)
        elapsed = datetime.now(UTC) - self.created_at
        return timedelta(seconds=int(elapsed.total_seconds()))


@dataclass
class TaskGroup:
    """Tasks sharing a started-by tag."""

    name: str
    instances: int = 0
