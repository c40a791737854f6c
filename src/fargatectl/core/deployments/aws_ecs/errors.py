"""Error types raised by the ECS deployment helpers."""

from botocore.exceptions import BotoCoreError, ClientError

# Service rejections and client-side failures (credentials, timeouts, endpoints).
AWS_ERRORS = (ClientError, BotoCoreError)


class AwsOperationError(RuntimeError):
    """A remote AWS call failed.

    The original botocore exception is kept as ``__cause__``.
    """

    def __init__(self, category: str, detail: object | None = None) -> None:
        self.category = category
        message = category if detail is None else f"{category}: {detail}"
        super().__init__(message)


class ConfigurationError(ValueError):
    """Caller supplied configuration failed validation.

    Every violation found is reported, not just the first one.
    """

    def __init__(self, category: str, violations: list[str]) -> None:
        self.category = category
        self.violations = list(violations)
        super().__init__(", ".join(self.violations))


def error_code(exc: BaseException | None) -> str | None:
    """Return the AWS error code carried by a client error, if any."""
    if not isinstance(exc, ClientError):
        return None
    return exc.response.get("Error", {}).get("Code")
