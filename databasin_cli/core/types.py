"""
Core types for DataBasin API resources.

The API mixes casing conventions (internalId vs internalID, createdDate vs
createdAt), so each from_dict accepts the known spellings.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


def _first(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Value of the first key present with a non-None value."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


class Resource:
    """Shared JSON conversion."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        return asdict(self)  # type: ignore[call-overload]


# =============================================================================
# Account Types
# =============================================================================


@dataclass
class Project(Resource):
    """A DataBasin project."""

    id: int | str
    internal_id: str
    name: str
    description: str | None = None
    institution_id: int | None = None
    organization_name: str | None = None
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            internal_id=_first(data, "internalId", "internalID", default=""),
            name=data.get("name") or "",
            description=data.get("description"),
            institution_id=_first(data, "institutionId", "institutionID", "organizationId"),
            organization_name=data.get("organizationName"),
            created_at=_first(data, "createdDate", "createdAt"),
        )


@dataclass
class Organization(Resource):
    """An organization (institution) the user belongs to."""

    id: int | str
    name: str
    short_name: str | None = None
    description: str | None = None
    enabled: bool = True
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Organization":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            short_name=data.get("shortName"),
            description=data.get("description"),
            enabled=data.get("enabled", True),
            created_at=_first(data, "createdDate", "createdAt"),
        )


@dataclass
class User(Resource):
    """A DataBasin user account."""

    id: int | str
    email: str
    first_name: str = ""
    last_name: str = ""
    roles: list[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            email=data.get("email") or "",
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
            roles=data.get("roles") or [],
        )


# =============================================================================
# Connector Types
# =============================================================================


@dataclass
class Connector(Resource):
    """A data source or target connection."""

    connector_id: str
    name: str
    connector_type: str = ""
    sub_type: str | None = None
    status: str | None = None
    internal_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Connector":
        """Create from API response dict."""
        return cls(
            connector_id=str(_first(data, "connectorID", "id", default="")),
            name=data.get("connectorName") or "",
            connector_type=data.get("connectorType") or "",
            sub_type=data.get("connectorSubType"),
            status=_first(data, "connectorHealthStatus", "status"),
            internal_id=data.get("internalID"),
        )


# =============================================================================
# Pipeline Types
# =============================================================================


@dataclass
class Pipeline(Resource):
    """A data pipeline between two connectors."""

    pipeline_id: int | str
    name: str
    internal_id: str | None = None
    institution_id: int | None = None
    owner_id: int | None = None
    source_connector_id: str | None = None
    target_connector_id: str | None = None
    status: str | None = None
    enabled: bool | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Pipeline":
        """Create from API response dict."""
        source = _first(data, "sourceConnectorId", "sourceConnectorID")
        target = _first(data, "targetConnectorId", "targetConnectorID")
        return cls(
            pipeline_id=data["pipelineID"],
            name=data.get("pipelineName") or "",
            internal_id=data.get("internalID"),
            institution_id=data.get("institutionID"),
            owner_id=data.get("ownerID"),
            source_connector_id=str(source) if source is not None else None,
            target_connector_id=str(target) if target is not None else None,
            status=data.get("status"),
            enabled=data.get("enabled"),
        )


# =============================================================================
# Automation Types
# =============================================================================


@dataclass
class Automation(Resource):
    """A scheduled automation."""

    automation_id: int | str
    name: str
    internal_id: str | None = None
    institution_id: int | None = None
    schedule: str | None = None
    is_active: bool = False
    currently_running: bool = False
    last_run: str | None = None
    next_run: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Automation":
        """Create from API response dict."""
        return cls(
            automation_id=data["automationID"],
            name=data.get("automationName") or "",
            internal_id=data.get("internalID"),
            institution_id=data.get("institutionID"),
            schedule=data.get("jobRunSchedule"),
            is_active=bool(data.get("isActive", False)),
            currently_running=bool(data.get("currentlyRunning", False)),
            last_run=data.get("lastRun"),
            next_run=data.get("nextRun"),
        )


@dataclass
class RunResponse(Resource):
    """Result of triggering (or stopping) a pipeline or automation run."""

    status: str
    message: str | None = None
    job_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunResponse":
        """Create from API response dict."""
        job_id = _first(data, "jobId", "jobID")
        return cls(
            status=str(data.get("status") or ("success" if data.get("success") else "unknown")),
            message=data.get("message"),
            job_id=str(job_id) if job_id is not None else None,
        )
