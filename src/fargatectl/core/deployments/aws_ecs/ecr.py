"""ECR helpers for ECS deployment."""

import base64
import logging
from typing import Any, cast

from fargatectl.core.deployments.aws_ecs.errors import AWS_ERRORS, AwsOperationError, error_code

logger = logging.getLogger(__name__)


class EcrRepositories:
    """Image repository lookups and creation backed by ECR."""

    def __init__(self, client: Any) -> None:
        self._ecr = client

    def exists(self, name: str) -> bool:
        """Return true when a repository with this name exists."""
        return self._describe(name) is not None

    def uri(self, name: str) -> str:
        """Return the URI of an existing repository."""
        repository = self._describe(name)
        if repository is None:
            raise AwsOperationError(f"Could not find ECR repository {name}")
        return cast(str, repository["repositoryUri"])

    def create(self, name: str) -> str:
        """Create a repository and return its URI."""
        try:
            response = self._ecr.create_repository(repositoryName=name)
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not create ECR repository", exc) from exc
        logger.info(f"Created ECR repository {name}")
        return cast(str, response["repository"]["repositoryUri"])

    def ensure(self, name: str) -> tuple[str, bool]:
        """Ensure a repository exists.

        Returns:
            The repository URI and whether it was created by this call.
        """
        repository = self._describe(name)
        if repository is not None:
            return cast(str, repository["repositoryUri"]), False

        try:
            return self.create(name), True
        except AwsOperationError as exc:
            # Another deployment may have created it in between.
            if _is_already_exists(exc):
                return self.uri(name), False
            raise

    def credentials(self) -> tuple[str, str]:
        """Return Docker login credentials for ECR."""
        try:
            # spellchecker:ignore-next-line
            response = self._ecr.get_authorization_token()
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not authenticate with ECR", exc) from exc

        # spellchecker:ignore-next-line
        auth_data = response["authorizationData"][0]
        # spellchecker:ignore-next-line
        token = base64.b64decode(auth_data["authorizationToken"]).decode("utf-8")
        username, password = token.split(":", 1)
        return username, password

    def _describe(self, name: str) -> dict[str, Any] | None:
        try:
            response = self._ecr.describe_repositories(repositoryNames=[name])
        except AWS_ERRORS as exc:
            if error_code(exc) != "RepositoryNotFoundException":
                raise AwsOperationError(f"Could not read ECR repository {name}", exc) from exc
            return None

        repositories = response.get("repositories", [])
        return repositories[0] if repositories else None


def _is_already_exists(exc: AwsOperationError) -> bool:
    return error_code(exc.__cause__) == "RepositoryAlreadyExistsException"
