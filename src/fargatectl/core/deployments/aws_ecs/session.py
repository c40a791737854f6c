"""AWS session helpers."""

from typing import Any

import boto3
from botocore.config import Config

from fargatectl.core.settings import FargateSettings


def create_session(settings: FargateSettings) -> boto3.session.Session:
    """Create a boto3 session."""
    if settings.profile:
        return boto3.session.Session(
            profile_name=settings.profile,
            region_name=settings.region,
        )

    return boto3.session.Session(region_name=settings.region)


def client_config(settings: FargateSettings) -> Config:
    """Return the botocore client config with timeouts and retry limits."""
    return Config(
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        retries={"max_attempts": settings.max_attempts, "mode": "standard"},
    )


def create_client(session: Any, service_name: str, settings: FargateSettings) -> Any:
    """Create a service client bound to the configured limits."""
    return session.client(service_name, config=client_config(settings))
