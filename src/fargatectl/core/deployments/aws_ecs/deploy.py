"""Service deployment pipeline for ECS Fargate.

A deployment runs a fixed sequence of steps. The first four steps only
create resources that are missing, so they are safe to repeat. Later
steps register new revisions and change routing. Nothing is rolled back
when a step fails: ``DeploymentError`` reports the failed step and what
the completed steps acquired so the caller can decide how to proceed.
"""

import dataclasses
import logging
import subprocess  # nosec B404
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fargatectl.core.deployments.aws_ecs.ecr import EcrRepositories
from fargatectl.core.deployments.aws_ecs.ecs_tasks import EcsPlatform
from fargatectl.core.deployments.aws_ecs.elbv2 import LoadBalancers, target_group_name
from fargatectl.core.deployments.aws_ecs.errors import AWS_ERRORS
from fargatectl.core.deployments.aws_ecs.git import short_revision
from fargatectl.core.deployments.aws_ecs.iam import ensure_task_execution_role
from fargatectl.core.deployments.aws_ecs.images import DockerRepository, generate_tag
from fargatectl.core.deployments.aws_ecs.logs import ensure_log_group
from fargatectl.core.deployments.aws_ecs.models import (
    ServiceConfiguration,
    ServiceSpec,
    TargetGroupSpec,
    TaskDefinitionSpec,
)
from fargatectl.core.deployments.aws_ecs.network import DefaultNetwork
from fargatectl.core.deployments.aws_ecs.session import create_client
from fargatectl.core.settings import FargateSettings

logger = logging.getLogger(__name__)

STEP_REPOSITORY = "repository"
STEP_SUBNETS = "subnets"
STEP_EXECUTION_ROLE = "execution-role"
STEP_LOG_GROUP = "log-group"
STEP_IMAGE = "image"
STEP_LOAD_BALANCER = "load-balancer"
STEP_TASK_DEFINITION = "task-definition"
STEP_SERVICE = "service"

PARTIAL_TARGET_GROUP = "target-group"
PARTIAL_RULE = "listener-rule"
PARTIAL_DEFAULT_ACTION = "default-action"

ROUTING_RULES = "rules"
ROUTING_DEFAULT_ACTION = "default-action"


@dataclass(frozen=True)
class PlannedStep:
    """One step of a deployment plan."""

    name: str
    description: str
    skipped: bool = False


@dataclass(frozen=True)
class DeploymentPlan:
    """The steps a deployment of one configuration performs."""

    service_name: str
    steps: tuple[PlannedStep, ...]
    routing: str | None = None

    def step(self, name: str) -> PlannedStep:
        for planned in self.steps:
            if planned.name == name:
                return planned
        raise KeyError(name)

    @property
    def performed(self) -> list[str]:
        return [planned.name for planned in self.steps if not planned.skipped]


@dataclass(frozen=True)
class StepResult:
    """What a completed step acquired.

    ``created`` is None for steps that only read or always create.
    ``retry_safe`` is false when repeating the step would duplicate state.
    """

    name: str
    resource: str
    created: bool | None = None
    retry_safe: bool = True


@dataclass(frozen=True)
class DeploymentResult:
    """Outcome of a successful deployment."""

    service_name: str
    image: str
    task_definition_arn: str
    service_arn: str
    target_group_arn: str | None
    steps: tuple[StepResult, ...]


class DeploymentError(RuntimeError):
    """A deployment step failed; earlier steps are left in place.

    ``partial`` lists what the failed step itself created before it
    failed, such as a target group or the rules added to some listeners.
    """

    def __init__(
        self,
        step: str,
        cause: BaseException,
        completed: list[StepResult],
        step_retry_safe: bool = True,
        partial: list[StepResult] | None = None,
    ) -> None:
        self.step = step
        self.cause = cause
        self.completed = list(completed)
        self.partial = list(partial or [])
        self.retry_safe = step_retry_safe and all(
            result.retry_safe for result in [*self.completed, *self.partial]
        )
        super().__init__(f"Deployment failed at step {step}: {cause}")


def plan_deployment(config: ServiceConfiguration) -> DeploymentPlan:
    """Return the steps a deployment of ``config`` performs."""
    routing = None
    if config.load_balancer is not None:
        routing = ROUTING_RULES if config.rules else ROUTING_DEFAULT_ACTION

    lb_description = "Skipping load balancer (none configured)"
    if config.load_balancer is not None:
        lb_description = (
            f"Routing {len(config.rules)} rule(s) on {config.load_balancer.name}"
            if config.rules
            else f"Routing default action of {config.load_balancer.name}"
        )

    steps = (
        PlannedStep(STEP_REPOSITORY, f"Ensuring ECR repository {config.name}"),
        PlannedStep(STEP_SUBNETS, "Looking up default subnets"),
        PlannedStep(STEP_EXECUTION_ROLE, "Ensuring task execution role"),
        PlannedStep(STEP_LOG_GROUP, "Ensuring CloudWatch log group"),
        PlannedStep(
            STEP_IMAGE,
            f"Using image {config.image}" if config.image else "Building and pushing image",
            skipped=config.image is not None,
        ),
        PlannedStep(STEP_LOAD_BALANCER, lb_description, skipped=config.load_balancer is None),
        PlannedStep(STEP_TASK_DEFINITION, "Registering task definition"),
        PlannedStep(STEP_SERVICE, f"Creating service {config.name}"),
    )
    return DeploymentPlan(service_name=config.name, steps=steps, routing=routing)


@dataclass
class DeploymentClients:
    """Explicit client capabilities used by deployments and task runs."""

    repositories: EcrRepositories
    network: DefaultNetwork
    iam: Any
    logs: Any
    load_balancers: LoadBalancers
    platform: EcsPlatform
    docker_factory: Callable[[str], DockerRepository] = DockerRepository
    revision_source: Callable[[], str | None] = short_revision

    @classmethod
    def from_session(
        cls,
        session: Any,
        settings: FargateSettings,
        build_dir: Path | None = None,
        reporter: Callable[[str], None] | None = None,
    ) -> "DeploymentClients":
        """Build every client from one boto3 session."""
        return cls(
            repositories=EcrRepositories(create_client(session, "ecr", settings)),
            network=DefaultNetwork(create_client(session, "ec2", settings)),
            iam=create_client(session, "iam", settings),
            logs=create_client(session, "logs", settings),
            load_balancers=LoadBalancers(create_client(session, "elbv2", settings)),
            platform=EcsPlatform(create_client(session, "ecs", settings), settings.cluster_name),
            docker_factory=lambda uri: DockerRepository(uri, build_dir, reporter),
            revision_source=lambda: short_revision(build_dir),
        )


@dataclass
class _DeploymentState:
    config: ServiceConfiguration
    repository_uri: str = ""
    subnet_ids: list[str] = field(default_factory=list)
    execution_role_arn: str = ""
    log_group_name: str = ""
    target_group_arn: str | None = None
    task_definition_arn: str = ""
    service_arn: str = ""
    # Resources the running step has created so far.
    partial: list[StepResult] = field(default_factory=list)


class ServiceDeployer:
    """Deploys services and prepares task definitions."""

    def __init__(
        self,
        clients: DeploymentClients,
        region: str,
        log_group_template: str,
        reporter: Callable[[str], None] | None = None,
    ) -> None:
        self.clients = clients
        self.region = region
        self.log_group_template = log_group_template
        self._reporter = reporter or (lambda _: None)

    def deploy(self, config: ServiceConfiguration) -> DeploymentResult:
        """Run every planned step in order, stopping at the first failure."""
        plan = plan_deployment(config)
        state = _DeploymentState(config=config)
        handlers: dict[str, Callable[[_DeploymentState], StepResult]] = {
            STEP_REPOSITORY: self._repository_step,
            STEP_SUBNETS: self._subnets_step,
            STEP_EXECUTION_ROLE: self._execution_role_step,
            STEP_LOG_GROUP: self._log_group_step,
            STEP_IMAGE: self._image_step,
            STEP_LOAD_BALANCER: self._load_balancer_step,
            STEP_TASK_DEFINITION: self._task_definition_step,
            STEP_SERVICE: self._service_step,
        }

        completed: list[StepResult] = []
        for planned in plan.steps:
            self._reporter(planned.description)
            if planned.skipped:
                continue

            logger.debug(f"Starting deployment step {planned.name} for {config.name}")
            state.partial = []
            try:
                result = handlers[planned.name](state)
            except (RuntimeError, subprocess.CalledProcessError, *AWS_ERRORS) as exc:
                logger.error(f"Deployment step {planned.name} failed: {exc}")
                raise DeploymentError(
                    planned.name,
                    exc,
                    completed,
                    step_retry_safe=not _adds_rules(planned.name, plan),
                    partial=state.partial,
                ) from exc
            completed.append(result)

        return DeploymentResult(
            service_name=config.name,
            image=str(state.config.image),
            task_definition_arn=state.task_definition_arn,
            service_arn=state.service_arn,
            target_group_arn=state.target_group_arn,
            steps=tuple(completed),
        )

    def acquire_repository(self, name: str) -> tuple[str, bool]:
        """Return the URI of the repository named ``name``, creating it if missing."""
        return self.clients.repositories.ensure(name)

    def acquire_execution_role(self) -> tuple[str, bool]:
        return ensure_task_execution_role(self.clients.iam)

    def acquire_log_group(self, name: str, template: str | None = None) -> tuple[str, bool]:
        return ensure_log_group(self.clients.logs, template or self.log_group_template, name)

    def build_image(self, repository_uri: str) -> str:
        """Build and push an image to the repository and return its reference.

        The tag is the short git revision when available, otherwise a
        timestamp.
        """
        username, password = self.clients.repositories.credentials()
        tag = self.clients.revision_source() or generate_tag()

        repository = self.clients.docker_factory(repository_uri)
        repository.login(username, password)
        repository.build(tag)
        repository.push(tag)
        return repository.uri_for(tag)

    def register_task_definition(
        self,
        config: ServiceConfiguration,
        execution_role_arn: str,
        log_group_name: str,
        family: str | None = None,
    ) -> str:
        """Register a new task definition revision for a resolved configuration."""
        if not config.image:
            raise ValueError("The image must be resolved before registering a task definition.")
        return self.clients.platform.register_task_definition(
            TaskDefinitionSpec(
                family=family or config.name,
                cpu=config.cpu,
                memory=config.memory,
                image=config.image,
                execution_role_arn=execution_role_arn,
                log_group_name=log_group_name,
                log_region=self.region,
                port=config.port.port if config.port else None,
                env_vars=config.env_vars,
            )
        )

    def _repository_step(self, state: _DeploymentState) -> StepResult:
        state.repository_uri, created = self.acquire_repository(state.config.name)
        return StepResult(STEP_REPOSITORY, state.repository_uri, created)

    def _subnets_step(self, state: _DeploymentState) -> StepResult:
        state.subnet_ids = self.clients.network.default_subnet_ids()
        return StepResult(STEP_SUBNETS, ", ".join(state.subnet_ids))

    def _execution_role_step(self, state: _DeploymentState) -> StepResult:
        state.execution_role_arn, created = self.acquire_execution_role()
        return StepResult(STEP_EXECUTION_ROLE, state.execution_role_arn, created)

    def _log_group_step(self, state: _DeploymentState) -> StepResult:
        state.log_group_name, created = self.acquire_log_group(state.config.name)
        return StepResult(STEP_LOG_GROUP, state.log_group_name, created)

    def _image_step(self, state: _DeploymentState) -> StepResult:
        image = self.build_image(state.repository_uri)
        state.config = dataclasses.replace(state.config, image=image)
        return StepResult(STEP_IMAGE, image, True)

    def _load_balancer_step(self, state: _DeploymentState) -> StepResult:
        config = state.config
        load_balancer = config.load_balancer
        if load_balancer is None or config.port is None:
            raise ValueError("A load balancer step needs a load balancer and a port.")

        load_balancers = self.clients.load_balancers
        vpc_id = self.clients.network.default_vpc_id()
        state.target_group_arn = load_balancers.create_target_group(
            TargetGroupSpec(
                name=target_group_name(load_balancer.name, config.name),
                port=config.port.port,
                protocol=config.port.protocol,
                vpc_id=vpc_id,
            )
        )
        state.partial.append(StepResult(PARTIAL_TARGET_GROUP, state.target_group_arn))

        if config.rules:
            for rule in config.rules:
                load_balancers.add_rule(
                    load_balancer.arn,
                    state.target_group_arn,
                    rule,
                    on_created=lambda arn: state.partial.append(
                        StepResult(PARTIAL_RULE, arn, True, retry_safe=False)
                    ),
                )
        else:
            load_balancers.set_default_action(
                load_balancer.arn,
                state.target_group_arn,
                on_modified=lambda arn: state.partial.append(
                    StepResult(PARTIAL_DEFAULT_ACTION, arn)
                ),
            )

        return StepResult(
            STEP_LOAD_BALANCER,
            state.target_group_arn,
            retry_safe=not config.rules,
        )

    def _task_definition_step(self, state: _DeploymentState) -> StepResult:
        state.task_definition_arn = self.register_task_definition(
            state.config, state.execution_role_arn, state.log_group_name
        )
        return StepResult(STEP_TASK_DEFINITION, state.task_definition_arn, True)

    def _service_step(self, state: _DeploymentState) -> StepResult:
        config = state.config
        state.service_arn = self.clients.platform.create_service(
            ServiceSpec(
                name=config.name,
                task_definition_arn=state.task_definition_arn,
                subnet_ids=tuple(state.subnet_ids),
                port=config.port.port if config.port else None,
                target_group_arn=state.target_group_arn,
            )
        )
        return StepResult(STEP_SERVICE, state.service_arn, True, retry_safe=False)


def _adds_rules(step: str, plan: DeploymentPlan) -> bool:
    return step == STEP_LOAD_BALANCER and plan.routing == ROUTING_RULES
