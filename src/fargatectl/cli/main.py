"""CLI entrypoint for fargatectl."""

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import click
from pydantic import ValidationError

from fargatectl.cli.errors import report_error
from fargatectl.cli.tables import (
    print_deployment_result,
    print_task_groups,
    print_task_info,
    print_tasks,
)
from fargatectl.cli.ui import confirm, console, report_step
from fargatectl.core.deployments.aws_ecs import (
    DeploymentClients,
    ServiceConfiguration,
    ServiceDeployer,
    TaskInventory,
    TaskRunner,
    build_service_configuration,
    create_session,
    parse_env_vars,
    validate_cpu_and_memory,
    validate_name,
)
from fargatectl.core.settings import FargateSettings, get_settings

F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(func: F) -> F:
    """Report command failures and exit with a non-zero status."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except Exception as exc:  # noqa: BLE001
            report_error(exc)
            raise SystemExit(1) from exc

    return wrapper  # type: ignore[return-value]


def build_clients(settings: FargateSettings) -> DeploymentClients:
    """Create the AWS clients for a command."""
    session = create_session(settings)
    return DeploymentClients.from_session(session, settings, reporter=report_step)


@click.group()
@click.option("--region", help="AWS region [default: FARGATE_REGION or us-east-1]")
@click.option("--profile", help="AWS named profile")
@click.option("--cluster", "cluster_name", help="ECS cluster name [default: fargate]")
@click.option("--verbose", "-v", is_flag=True, help="Log AWS operations")
@click.pass_context
def cli(
    ctx: click.Context,
    region: str | None,
    profile: str | None,
    cluster_name: str | None,
    verbose: bool,
) -> None:
    """Deploy and operate services and tasks on AWS ECS Fargate.

    Args:
        ctx: Click context for the command invocation.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    try:
        ctx.obj = get_settings(region=region, profile=profile, cluster_name=cluster_name)
    except ValidationError as exc:
        raise click.ClickException(f"Invalid settings: {exc}") from exc


@cli.group()
def service() -> None:
    """Manage services."""


@service.command("create")
@click.argument("name")
@click.option("--cpu", "-c", default="256", show_default=True, help="CPU units per task")
@click.option("--memory", "-m", default="512", show_default=True, help="MiB of memory per task")
@click.option("--port", "-p", help="Port to listen on [e.g., 80, http:8080, tcp:1935]")
@click.option(
    "--image",
    "-i",
    help="Docker image to run; if omitted an image is built from the Dockerfile here",
)
@click.option("--lb", "-l", "load_balancer", help="Name of a load balancer to use")
@click.option(
    "--rule",
    "-r",
    "rules",
    multiple=True,
    help="Routing rule [e.g. host=api.example.com, path=/api/*]; "
    "if omitted the service is the default route",
)
@click.option("--env", "-e", "env_vars", multiple=True, help="Environment variable [KEY=value]")
@click.pass_obj
@handle_errors
def service_create(
    settings: FargateSettings,
    name: str,
    cpu: str,
    memory: str,
    port: str | None,
    image: str | None,
    load_balancer: str | None,
    rules: tuple[str, ...],
    env_vars: tuple[str, ...],
) -> None:
    """Create and deploy a new service."""
    clients = build_clients(settings)
    config = build_service_configuration(
        name=name,
        cpu=cpu,
        memory=memory,
        port=port,
        image=image,
        load_balancer_name=load_balancer,
        rules=rules,
        env_vars=env_vars,
        load_balancers=clients.load_balancers,
    )

    console.print(f"[bold]Creating {name}[/bold]")
    clients.platform.ensure_cluster()
    deployer = ServiceDeployer(
        clients,
        settings.region,
        settings.service_log_group_template,
        reporter=report_step,
    )
    result = deployer.deploy(config)
    print_deployment_result(result)


@service.command("ps")
@click.argument("name")
@click.pass_obj
@handle_errors
def service_ps(settings: FargateSettings, name: str) -> None:
    """List the tasks of a service."""
    clients = build_clients(settings)
    print_tasks(TaskInventory(clients.platform).tasks_for_service(name))


@cli.group()
def task() -> None:
    """Manage ad-hoc task groups."""


@task.command("list")
@click.pass_obj
@handle_errors
def task_list(settings: FargateSettings) -> None:
    """List running task groups."""
    clients = build_clients(settings)
    print_task_groups(TaskInventory(clients.platform).task_groups())


@task.command("ps")
@click.argument("name")
@click.pass_obj
@handle_errors
def task_ps(settings: FargateSettings, name: str) -> None:
    """List the tasks of a task group."""
    clients = build_clients(settings)
    print_tasks(TaskInventory(clients.platform).tasks_for_task_group(name))


@task.command("info")
@click.argument("name")
@click.option("--task", "-t", "task_ids", multiple=True, help="Task ID to inspect")
@click.pass_obj
@handle_errors
def task_info(settings: FargateSettings, name: str, task_ids: tuple[str, ...]) -> None:
    """Show details of the tasks in a task group."""
    clients = build_clients(settings)
    inventory = TaskInventory(clients.platform)
    tasks = inventory.describe(list(task_ids)) if task_ids else inventory.tasks_for_task_group(name)
    if not tasks:
        console.print(f"[yellow]No tasks found for {name}[/yellow]")
        return
    for item in tasks:
        print_task_info(item)


@task.command("run")
@click.argument("name")
@click.option("--num", "-n", default=1, show_default=True, type=click.IntRange(min=1))
@click.option("--cpu", "-c", default="256", show_default=True, help="CPU units per task")
@click.option("--memory", "-m", default="512", show_default=True, help="MiB of memory per task")
@click.option("--image", "-i", help="Docker image to run; if omitted one is built here")
@click.option("--env", "-e", "env_vars", multiple=True, help="Environment variable [KEY=value]")
@click.option("--subnet-id", "subnet_ids", multiple=True, help="Subnet to place tasks in")
@click.option(
    "--security-group-id",
    "security_group_ids",
    multiple=True,
    help="Security group to attach",
)
@click.pass_obj
@handle_errors
def task_run(
    settings: FargateSettings,
    name: str,
    num: int,
    cpu: str,
    memory: str,
    image: str | None,
    env_vars: tuple[str, ...],
    subnet_ids: tuple[str, ...],
    security_group_ids: tuple[str, ...],
) -> None:
    """Run copies of a task under a task group name."""
    validate_name(name)
    validate_cpu_and_memory(cpu, memory)
    config = ServiceConfiguration(
        name=name,
        cpu=cpu,
        memory=memory,
        image=image or None,
        env_vars=parse_env_vars(env_vars),
    )

    clients = build_clients(settings)
    clients.platform.ensure_cluster()
    deployer = ServiceDeployer(
        clients,
        settings.region,
        settings.service_log_group_template,
        reporter=report_step,
    )
    runner = TaskRunner(deployer, settings.task_log_group_template, reporter=report_step)
    task_arns = runner.run(config, num, list(subnet_ids), list(security_group_ids))
    console.print(f"[green]Started {len(task_arns)} task(s) in {name}[/green]")


@task.command("stop")
@click.argument("name")
@click.option("--task", "-t", "task_ids", multiple=True, help="Task ID to stop")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
@handle_errors
def task_stop(settings: FargateSettings, name: str, task_ids: tuple[str, ...], yes: bool) -> None:
    """Stop tasks in a task group (all of them unless --task is given)."""
    clients = build_clients(settings)
    ids = list(task_ids)
    if not ids:
        ids = [item.task_id for item in TaskInventory(clients.platform).tasks_for_task_group(name)]
    if not ids:
        console.print(f"[yellow]No tasks found for {name}[/yellow]")
        return

    if not yes and not confirm(f"Stop {len(ids)} task(s) in {name}?"):
        console.print("[dim]Cancelled.[/dim]")
        return

    stopped = clients.platform.stop_tasks(ids, reason=f"Stopped by fargatectl for {name}")
    for task_id in stopped:
        console.print(f"[green]Stopped task {task_id}[/green]")


def main() -> None:
    """Run the CLI."""
    cli()
