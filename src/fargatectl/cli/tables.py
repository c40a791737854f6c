"""Rich renderings of tasks, task groups and deployments."""

from rich.table import Table

from fargatectl.cli.ui import console
from fargatectl.core.deployments.aws_ecs import DeploymentResult, Task, TaskGroup


def print_task_groups(task_groups: list[TaskGroup]) -> None:
    """Print task groups and their instance counts."""
    if not task_groups:
        console.print("[yellow]No running task groups[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Name", style="white", no_wrap=True)
    table.add_column("Instances", style="bright_white", justify="right")
    for task_group in task_groups:
        table.add_row(task_group.name, str(task_group.instances))
    console.print(table)


def print_tasks(tasks: list[Task]) -> None:
    """Print one row per task."""
    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="white", no_wrap=True)
    table.add_column("Image", style="bright_white")
    table.add_column("Status", style="white", no_wrap=True)
    table.add_column("Running", justify="right")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Deployment", justify="right")

    for task in tasks:
        table.add_row(
            task.task_id,
            task.image,
            style_status(task.last_status),
            str(task.running_for),
            task.cpu,
            task.memory,
            task.deployment_id,
        )
    console.print(table)


def print_task_info(task: Task) -> None:
    """Print the details of one task."""
    table = Table(title=f"Task {task.task_id}", show_header=False)
    table.add_column("Field", style="bold cyan", no_wrap=True)
    table.add_column("Value", style="bright_white")

    table.add_row("Status", f"{task.last_status} (desired {task.desired_status})")
    table.add_row("Image", task.image or "-")
    table.add_row("CPU / Memory", f"{task.cpu} / {task.memory}")
    table.add_row("Deployment", task.deployment_id or "-")
    table.add_row("Running for", str(task.running_for))
    table.add_row("Task role", task.task_role or "-")
    table.add_row("Subnet", task.subnet_id or "-")
    table.add_row("Network interface", task.eni_id or "-")
    table.add_row("Started by", task.started_by or "-")
    for env in task.env_vars:
        table.add_row(f"Env {env.key}", env.value)
    console.print(table)


def print_deployment_result(result: DeploymentResult) -> None:
    """Print what a deployment created or reused."""
    table = Table(title=f"Deployed {result.service_name}", show_header=True, header_style="bold cyan")
    table.add_column("Step", style="white", no_wrap=True)
    table.add_column("Resource", style="bright_white")
    for step in result.steps:
        table.add_row(step.name, step.resource)
    console.print(table)


def style_status(status: str) -> str:
    """Colour a task status."""
    if status == "RUNNING":
        return f"[green]{status}[/green]"
    if status in {"STOPPED", "DEPROVISIONING", "STOPPING"}:
        return f"[red]{status}[/red]"
    return f"[yellow]{status}[/yellow]"
