"""
Error taxonomy for the DataBasin CLI.

Every failure surfaced to the user is a CLIError subclass so the CLI layer
can render it uniformly, while callers can still tell apart "could not reach
the server" (NetworkError), "server rejected the request" (APIError) and
"no credential" (AuthError).
"""

import re
from typing import Any

DEFAULT_SUGGESTION = "Check the error message above for details."

_SERVER_TROUBLE = "The DataBasin API is experiencing issues. Please try again later."

# (status, endpoint pattern or None, suggestion). Endpoint-specific rules are
# listed before the generic rule for the same status.
SUGGESTION_RULES: list[tuple[int, re.Pattern[str] | None, str]] = [
    (
        404,
        re.compile(r"/api/connector"),
        "Connector not found. Run 'databasin connectors list --project <id>' to see available connectors.",
    ),
    (
        404,
        re.compile(r"/api/pipeline"),
        "Pipeline not found. Run 'databasin pipelines list --project <id>' to see available pipelines.",
    ),
    (
        404,
        re.compile(r"/api/(my/)?project"),
        "Project not found. Run 'databasin projects list' to see available projects.",
    ),
    (
        404,
        re.compile(r"/api/automations"),
        "Automation not found. Run 'databasin automations list --project <id>' to see available automations.",
    ),
    (
        403,
        re.compile(r"/api/project/"),
        "Access denied to this project. Check that you're a member of the project.",
    ),
    (
        403,
        re.compile(r"/api/connector/"),
        "Access denied to this connector. Verify you have permission for this project's connectors.",
    ),
    (
        403,
        re.compile(r"/api/pipeline/"),
        "Access denied to this pipeline. Verify you have permission for this project's pipelines.",
    ),
    (
        400,
        re.compile(r"/api/pipeline(?!/)"),
        "Invalid pipeline configuration. Check that all required fields are present and properly formatted.",
    ),
    (
        400,
        re.compile(r"/api/connector(?!/)"),
        "Invalid connector configuration. Check that all required fields are present and properly formatted.",
    ),
    (400, None, "Check your request parameters and payload syntax. Verify required fields are present."),
    (401, None, "Your authentication token may be invalid or expired. Run: databasin auth verify"),
    (403, None, "You do not have permission to access this resource. Check your project access rights."),
    (404, None, "The requested resource was not found. Verify the ID and try again."),
    (409, None, "Conflict with existing resource. This name or identifier may already be in use."),
    (422, None, "Validation failed. Check that all fields meet the required format and constraints."),
    (429, None, "Rate limit exceeded. Please wait a moment before retrying."),
    (500, None, _SERVER_TROUBLE),
    (502, None, _SERVER_TROUBLE),
    (503, None, _SERVER_TROUBLE),
    (504, None, _SERVER_TROUBLE),
]


def suggestion_for(status: int, endpoint: str | None = None) -> str:
    """Pick the most specific suggestion for a status code and endpoint."""
    for rule_status, pattern, suggestion in SUGGESTION_RULES:
        if rule_status != status:
            continue
        if pattern is None:
            return suggestion
        if endpoint and pattern.search(endpoint):
            return suggestion
    return DEFAULT_SUGGESTION


class CLIError(Exception):
    """Base error class for CLI errors."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        suggestion: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result


class APIError(CLIError):
    """Non-2xx HTTP response from the API."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        status_text: str = "",
        endpoint: str = "",
        body: Any = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status = status
        self.status_text = status_text
        self.endpoint = endpoint
        self.body = body
        if status:
            self.suggestion = suggestion_for(status, endpoint)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        if self.endpoint:
            result["endpoint"] = self.endpoint
        return result


class AuthError(CLIError):
    """No usable credential was found."""

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(message, suggestion=suggestion or "Run: databasin auth login")


class NetworkError(CLIError):
    """The server could not be reached."""

    def __init__(self, message: str, url: str | None = None, attempts: int = 1):
        super().__init__(
            message,
            suggestion="Check your internet connection and verify the API URL is correct",
        )
        self.url = url
        self.attempts = attempts

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.url:
            result["url"] = self.url
        if self.attempts > 1:
            result["attempts"] = self.attempts
        return result


class RequestTimeoutError(NetworkError):
    """The wall-clock budget for a request elapsed before a response arrived."""

    def __init__(self, timeout: float, url: str | None = None):
        super().__init__(f"Request timed out after {timeout:g} seconds", url=url)
        self.timeout = timeout
        self.suggestion = "The API is responding slowly. Retry later or raise --timeout."


class ValidationError(CLIError):
    """Validation error for local input/data issues (not API errors)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[str] | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.errors = errors or []
        if len(self.errors) == 1:
            self.suggestion = self.errors[0]
        elif self.errors:
            self.suggestion = "Fix the following validation errors:\n  - " + "\n  - ".join(self.errors)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class ConfigError(CLIError):
    """Configuration file or environment problem."""

    def __init__(self, message: str, config_path: str | None = None):
        super().__init__(message, suggestion="Check your configuration file or environment variables")
        self.config_path = config_path

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.config_path:
            result["config_path"] = self.config_path
        return result
