"""Error reporting for the CLI."""

from collections.abc import Iterator

from botocore.exceptions import (
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
    ReadTimeoutError,
)
from rich.markup import escape

from fargatectl.cli.ui import error_console
from fargatectl.core.deployments.aws_ecs import (
    AwsOperationError,
    ConfigurationError,
    DeploymentError,
    StepResult,
)
from fargatectl.core.deployments.aws_ecs.errors import error_code

AUTH_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "ExpiredToken",
        "ExpiredTokenException",
        "InvalidClientTokenId",
        "InvalidSignatureException",
        # spellchecker:ignore-next-line
        "UnrecognizedClientException",
    }
)
EXPIRED_TOKEN_TEXT = "security token included in the request is expired"
UNREACHABLE_ERRORS = (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)


def report_error(exc: Exception) -> None:
    """Render an error with a short category and its cause.

    Credential and connectivity problems anywhere in the cause chain add
    a hint after the main report.

    Args:
        exc: Raised exception from a command.
    """
    if isinstance(exc, ConfigurationError):
        error_console.print(f"[red]{escape(exc.category)}[/red]")
        for violation in exc.violations:
            error_console.print(f"  [dim]-[/dim] {escape(violation)}")
        return

    if isinstance(exc, DeploymentError):
        _report_deployment_error(exc)
    elif isinstance(exc, AwsOperationError):
        error_console.print(f"[red]{escape(str(exc))}[/red]")
    else:
        error_console.print(f"[red]Command failed: {escape(str(exc))}[/red]")

    for hint in aws_hints(exc):
        error_console.print(hint)


def aws_hints(exc: BaseException) -> list[str]:
    """Return guidance for credential or connectivity failures behind an error."""
    causes = list(_causes(exc))
    if any(_is_auth_failure(cause) for cause in causes):
        return [
            "[red]AWS authentication failed. Your credentials are missing, invalid, "
            "or expired.[/red]",
            "[dim]If using AWS profile/SSO, run: aws sso login --profile <profile>. "
            "If using temporary keys, refresh AWS_SESSION_TOKEN and retry.[/dim]",
        ]
    if any(isinstance(cause, UNREACHABLE_ERRORS) for cause in causes):
        return [
            "[red]Could not reach AWS endpoint from this environment.[/red]",
            "[dim]Check network connectivity and AWS region configuration.[/dim]",
        ]
    return []


def _report_deployment_error(exc: DeploymentError) -> None:
    """Print the failed step and what earlier steps left behind."""
    error_console.print(
        f"[red]Deployment failed at step {exc.step}: {escape(str(exc.cause))}[/red]"
    )
    if exc.completed:
        error_console.print("[dim]Completed steps (not rolled back):[/dim]")
        _print_results(exc.completed)
    if exc.partial:
        error_console.print(f"[dim]Created by {exc.step} before it failed:[/dim]")
        _print_results(exc.partial)

    if exc.retry_safe:
        error_console.print("[dim]Re-running the command is safe.[/dim]")
    else:
        error_console.print(
            "[yellow]Re-running would duplicate load balancer rules or the service; "
            "clean up before retrying.[/yellow]"
        )


def _print_results(results: list[StepResult]) -> None:
    for result in results:
        note = {True: " (created)", False: " (existing)"}.get(result.created, "")
        error_console.print(f"  [dim]-[/dim] {result.name}: {escape(result.resource)}{note}")


def _is_auth_failure(exc: BaseException) -> bool:
    if isinstance(exc, (NoCredentialsError, ProfileNotFound)):
        return True
    if error_code(exc) in AUTH_ERROR_CODES:
        return True
    return EXPIRED_TOKEN_TEXT in str(exc).lower()


def _causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield an exception and then its causes, outermost first."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__
