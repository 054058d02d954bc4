"""
Core layer - Raw types and HTTP client.

This layer provides:
- Typed dataclasses for API resources
- Async HTTP client with auth, timeout and retry handling
- Token efficiency transforms and a TTL cache
"""

from databasin_cli.core.auth import AuthTokenProvider
from databasin_cli.core.cache import TTLCache
from databasin_cli.core.client import APIClient, RequestSpec, ResponseMetadata
from databasin_cli.core.config import CliConfig, load_config
from databasin_cli.core.efficiency import TokenEfficiencyOptions, apply_token_efficiency
from databasin_cli.core.errors import (
    APIError,
    AuthError,
    CLIError,
    ConfigError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)
from databasin_cli.core.types import (
    Automation,
    Connector,
    Organization,
    Pipeline,
    Project,
    RunResponse,
    User,
)

__all__ = [
    "APIClient",
    "APIError",
    "AuthError",
    "AuthTokenProvider",
    "Automation",
    "CLIError",
    "CliConfig",
    "ConfigError",
    "Connector",
    "NetworkError",
    "Organization",
    "Pipeline",
    "Project",
    "RequestSpec",
    "RequestTimeoutError",
    "ResponseMetadata",
    "RunResponse",
    "TTLCache",
    "TokenEfficiencyOptions",
    "User",
    "ValidationError",
    "apply_token_efficiency",
    "load_config",
]
