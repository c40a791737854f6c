"""Docker build and push helpers."""

import shutil
import subprocess  # nosec B404
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path


def generate_tag() -> str:
    """Return a unique image tag derived from the current time."""
    return datetime.now(UTC).strftime("%Y%m%d%H%M%S")


class DockerRepository:
    """Build and publish images for one ECR repository with the docker CLI."""

    def __init__(
        self,
        uri: str,
        build_dir: Path | None = None,
        reporter: Callable[[str], None] | None = None,
    ) -> None:
        self.uri = uri
        self.build_dir = build_dir or Path.cwd()
        self._reporter = reporter or (lambda _: None)

    def uri_for(self, tag: str) -> str:
        """Return the full image reference for a tag."""
        return f"{self.uri}:{tag}"

    def login(self, username: str, password: str) -> None:
        """Authenticate docker against the repository registry."""
        registry = self.uri.split("/", 1)[0]
        self._reporter("Authenticating Docker with ECR")
        _run(
            ["docker", "login", "--username", username, "--password-stdin", registry],
            self._reporter,
            input_bytes=password.encode("utf-8"),
        )

    def build(self, tag: str) -> None:
        """Build the image from the Dockerfile in the build directory."""
        self._reporter(f"Building image {self.uri_for(tag)}")
        _run(["docker", "build", "-t", self.uri_for(tag), str(self.build_dir)], self._reporter)

    def push(self, tag: str) -> None:
        """Push a built image."""
        self._reporter(f"Pushing image {self.uri_for(tag)}")
        _run(["docker", "push", self.uri_for(tag)], self._reporter)


def _run(
    command: list[str],
    reporter: Callable[[str], None],
    input_bytes: bytes | None = None,
) -> None:
    """Run a subprocess command."""
    executable = shutil.which(command[0])
    if not executable:
        raise RuntimeError(f"Executable not found: {command[0]}")
    resolved_command = [executable, *command[1:]]
    reporter(f"Running: {' '.join(resolved_command)}")
    subprocess.run(resolved_command, check=True, input=input_bytes)  # nosec B603
