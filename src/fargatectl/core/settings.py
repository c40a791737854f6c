"""Runtime settings for fargatectl."""

from pathlib import Path

from platformdirs import user_config_dir
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "fargatectl"


def env_path() -> Path:
    """Return the env file read after the process environment."""
    return Path(user_config_dir(APP_NAME)) / ".env"


ENV_FILE_PATH = str(env_path())


class FargateSettings(BaseSettings):
    """AWS and cluster configuration shared by every command."""

    model_config = SettingsConfigDict(
        env_prefix="FARGATE_",
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    region: str = Field(default="us-east-1", description="AWS region")
    profile: str | None = Field(default=None, description="AWS named profile")
    cluster_name: str = Field(default="fargate", description="ECS cluster name")
    service_log_group_template: str = Field(
        default="/fargate/service/{name}",
        description="CloudWatch log group name for services",
    )
    task_log_group_template: str = Field(
        default="/fargate/task/{name}",
        description="CloudWatch log group name for ad-hoc task groups",
    )

    # Remote call limits applied to every boto3 client
    connect_timeout: int = Field(default=10, ge=1, description="Connect timeout in seconds")
    read_timeout: int = Field(default=60, ge=1, description="Read timeout in seconds")
    max_attempts: int = Field(default=3, ge=1, description="Total attempts per AWS call")


def get_settings(**overrides: object) -> FargateSettings:
    """Load settings from the environment and the user env file.

    Keyword arguments with a value of None are ignored so CLI flags that
    were not given fall back to the environment.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    return FargateSettings(**values)  # type: ignore[arg-type]
