# lambda_layer/python/peering_common/settings.py
"""
Handler settings, read from the Lambda environment exactly once per container.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from peering_common.errors import ConfigurationError

DEFAULT_REGION = "eu-west-1"


@dataclass(frozen=True)
class HandlerSettings:
    """
    Settings shared by the peering handlers. Built at cold start and passed
    into the handler objects so the reconciliation logic never touches os.environ.
    """
    aws_region: str = DEFAULT_REGION
    managed_by_tag: str = "CDK"
    accept_session_name: str = "VpcPeeringAccept"
    routes_session_name: str = "VpcPeeringRoutes"

    def __post_init__(self):
        for name in ("aws_region", "managed_by_tag", "accept_session_name", "routes_session_name"):
            if not getattr(self, name):
                raise ConfigurationError(f"Handler setting '{name}' must not be empty.")
        # STS session names are limited to 2-64 characters
        for name in ("accept_session_name", "routes_session_name"):
            value = getattr(self, name)
            if not 2 <= len(value) <= 64:
                raise ConfigurationError(f"Handler setting '{name}' must be 2-64 characters, got '{value}'.")

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "HandlerSettings":
        env = os.environ if environ is None else environ
        return cls(
            aws_region=env.get("AWS_REGION", DEFAULT_REGION),
            managed_by_tag=env.get("PEERING_MANAGED_BY_TAG", "CDK"),
            accept_session_name=env.get("PEERING_ACCEPT_SESSION_NAME", "VpcPeeringAccept"),
            routes_session_name=env.get("PEERING_ROUTES_SESSION_NAME", "VpcPeeringRoutes"),
        )
