"""
DataBasin SDK - High-level client with nice ergonomics.

This layer provides a clean, typed interface for common DataBasin operations.
Built on top of the core APIClient.
"""

import builtins
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from databasin_cli.core.auth import AuthTokenProvider
from databasin_cli.core.cache import TTLCache
from databasin_cli.core.client import APIClient
from databasin_cli.core.config import CliConfig, get_config_dir, load_config
from databasin_cli.core.efficiency import TokenEfficiencyOptions
from databasin_cli.core.errors import ValidationError
from databasin_cli.core.types import (
    Automation,
    Connector,
    Organization,
    Pipeline,
    Project,
    RunResponse,
    User,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROJECTS_CACHE_KEY = "projects_list"


def _items(data: Any) -> builtins.list[dict[str, Any]]:
    """List payload, tolerating a {"data": [...]} envelope."""
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        data = data["data"]
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _typed_list(
    data: Any,
    parser: Callable[[dict[str, Any]], T],
    efficiency: TokenEfficiencyOptions | None,
) -> Any:
    """Typed objects for a plain listing, the reshaped payload otherwise."""
    if efficiency is not None and efficiency.active:
        return data
    return [parser(item) for item in _items(data)]


def _require(value: Any, field: str, message: str, hint: str) -> None:
    if value is None or value == "":
        raise ValidationError(message, field, [hint])


class DataBasinClient:
    """
    High-level DataBasin API client with typed methods and nice ergonomics.

    Example:
        async with DataBasinClient() as client:
            projects = await client.projects.list()
            count = await client.connectors.list("N1r8Do")
            result = await client.pipelines.run("123")

    """

    def __init__(
        self,
        config: CliConfig | None = None,
        token_provider: AuthTokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: TTLCache | None = None,
        retries: int = 0,
    ):
        """
        Initialize the DataBasin client.

        Args:
            config: Resolved configuration (loaded from file/env if None)
            token_provider: Token provider (DATABASIN_TOKEN / .token files if None)
            transport: Custom httpx transport
            cache: Cache for project lookups (persisted under ~/.databasin/cache if None)
            retries: Network retry budget applied to every request

        """
        self.config = config or load_config()
        self._client = APIClient(self.config, token_provider, transport, retries=retries)
        if cache is None:
            cache = TTLCache(default_ttl=self.config.cache_ttl, cache_dir=get_config_dir() / "cache")
        self.cache = cache

        # Sub-clients for different domains
        self.projects = ProjectOperations(self._client)
        self.connectors = ConnectorOperations(self._client)
        self.pipelines = PipelineOperations(self._client, self.projects)
        self.automations = AutomationOperations(self._client)

    @property
    def api(self) -> APIClient:
        """The underlying request executor (raw calls, diagnostics)."""
        return self._client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DataBasinClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # =========================================================================
    # Project ID resolution
    # =========================================================================

    async def _projects_payload(self, use_cache: bool) -> builtins.list[dict[str, Any]]:
        async def fetch() -> builtins.list[dict[str, Any]]:
            return _items(await self._client.get("/api/my/projects"))

        if use_cache:
            return await self.cache.get(PROJECTS_CACHE_KEY, fetch)

        projects = await fetch()
        self.cache.set(PROJECTS_CACHE_KEY, projects)
        return projects

    async def resolve_project_id(self, project_id: str, use_cache: bool = True) -> str:
        """
        Map a numeric project ID to the internal ID the API expects.

        Non-numeric IDs are assumed to already be internal IDs. Unknown
        numeric IDs are returned unchanged so the API reports the error.

        Args:
            project_id: Numeric ID (e.g. "5") or internal ID (e.g. "N1r8Do")
            use_cache: Use the cached project list when fresh

        Returns:
            Internal project ID

        """
        project_id = project_id.strip()
        if not project_id.isdigit():
            return project_id

        for project in await self._projects_payload(use_cache):
            if str(project.get("id")) == project_id:
                internal_id = project.get("internalId") or project.get("internalID")
                if internal_id:
                    logger.debug("Resolved project %s -> %s", project_id, internal_id)
                    return str(internal_id)

        logger.debug("Project %s not found in project list, passing through", project_id)
        return project_id

    async def resolve_project_ids(
        self,
        project_ids: builtins.list[str],
        use_cache: bool = True,
    ) -> dict[str, str]:
        """Resolve several IDs with a single project list fetch."""
        numeric = [p.strip() for p in project_ids if p.strip().isdigit()]
        mapping: dict[str, str] = {}
        if numeric:
            for project in await self._projects_payload(use_cache):
                internal_id = project.get("internalId") or project.get("internalID")
                if internal_id:
                    mapping[str(project.get("id"))] = str(internal_id)
        return {p: mapping.get(p.strip(), p.strip()) for p in project_ids}

    def clear_projects_cache(self) -> None:
        """Forget the cached project list."""
        self.cache.delete(PROJECTS_CACHE_KEY)


# =============================================================================
# Project Operations
# =============================================================================


class ProjectOperations:
    """Operations for projects, organizations and the current account."""

    def __init__(self, client: APIClient):
        self._client = client

    async def list(self, efficiency: TokenEfficiencyOptions | None = None) -> Any:
        """
        List projects the current user can access.

        Args:
            efficiency: Count/fields/limit reshaping

        Returns:
            List of Projects, or the reshaped payload when efficiency is active

        """
        data = await self._client.get("/api/my/projects", efficiency)
        return _typed_list(data, Project.from_dict, efficiency)

    async def get(self, project_id: str) -> Project:
        """
        Get a project by ID.

        Args:
            project_id: Numeric or internal project ID

        Returns:
            Project details

        """
        _require(project_id, "project_id", "Project ID is required", "Provide a project ID")
        result = await self._client.get(f"/api/project/{project_id}")
        return Project.from_dict(result)

    async def find(self, project_id: str) -> Project:
        """
        Look a project up by numeric or internal ID in the user's project list.

        Raises:
            ValidationError: If the project is not in the list

        """
        wanted = project_id.strip()
        for item in _items(await self._client.get("/api/my/projects")):
            if str(item.get("id")) == wanted or item.get("internalId") == wanted:
                return Project.from_dict(item)
        raise ValidationError(
            f"Project not found: {project_id}",
            "project_id",
            [
                "The specified project does not exist or you do not have access to it",
                "Run 'databasin projects list' to see available projects",
            ],
        )

    async def organizations(self, efficiency: TokenEfficiencyOptions | None = None) -> Any:
        """List organizations the current user belongs to."""
        data = await self._client.get("/api/my/organizations", efficiency)
        return _typed_list(data, Organization.from_dict, efficiency)

    async def current_user(self) -> User:
        """Get the authenticated user's account."""
        result = await self._client.get("/api/my/account")
        return User.from_dict(result)

    async def users(self, project_id: str, efficiency: TokenEfficiencyOptions | None = None) -> Any:
        """List members of a project."""
        _require(project_id, "project_id", "Project ID is required", "Provide a project ID")
        data = await self._client.get(f"/api/project/{project_id}/users", efficiency)
        return _typed_list(data, User.from_dict, efficiency)

    async def stats(self, project_id: str) -> dict[str, Any]:
        """Get usage statistics for a project."""
        _require(project_id, "project_id", "Project ID is required", "Provide a project ID")
        return await self._client.get(f"/api/project/{project_id}/stats")


# =============================================================================
# Connector Operations
# =============================================================================


class ConnectorOperations:
    """
    Operations for connectors.

    Listing defaults to count mode since full connector objects are large.
    """

    def __init__(self, client: APIClient):
        self._client = client

    async def list(
        self,
        project_id: str | None = None,
        efficiency: TokenEfficiencyOptions | None = None,
    ) -> Any:
        """
        List connectors, optionally scoped to a project.

        Args:
            project_id: Internal project ID filter
            efficiency: Count/fields/limit reshaping ({"count": N} if None)

        Returns:
            {"count": N}, reshaped payload, or a list of Connectors

        """
        if efficiency is None:
            efficiency = TokenEfficiencyOptions(count=True)
        params = {"internalID": project_id} if project_id else None
        data = await self._client.get("/api/connector", efficiency, params=params)
        return _typed_list(data, Connector.from_dict, efficiency)

    async def get(self, connector_id: str) -> Connector:
        """Get a connector by ID."""
        _require(connector_id, "connector_id", "Connector ID is required", "Provide a connector ID")
        result = await self._client.get(f"/api/connector/{connector_id}")
        return Connector.from_dict(result)

    async def delete(self, connector_id: str) -> bool:
        """
        Delete a connector.

        Returns:
            True on success

        """
        _require(connector_id, "connector_id", "Connector ID is required", "Provide a connector ID")
        await self._client.delete(f"/api/connector/{connector_id}")
        return True

    async def test(self, connector_id: str) -> dict[str, Any]:
        """Ask the server to test a connector's connection."""
        _require(connector_id, "connector_id", "Connector ID is required", "Provide a connector ID")
        return await self._client.post(f"/api/connector/{connector_id}/test")


# =============================================================================
# Pipeline Operations
# =============================================================================


class PipelineOperations:
    """Operations for pipelines."""

    def __init__(self, client: APIClient, projects: ProjectOperations):
        self._client = client
        self._projects = projects

    async def list(
        self,
        project_id: str,
        efficiency: TokenEfficiencyOptions | None = None,
        status: str | None = None,
        enabled: bool | None = None,
    ) -> Any:
        """
        List pipelines in a project.

        The endpoint needs the project's internal ID, its institution ID and
        the current user's ID, so a project lookup and an account lookup
        precede the listing.

        Args:
            project_id: Numeric or internal project ID
            efficiency: Count/fields/limit reshaping
            status: Filter by status (active, inactive, running, error, pending)
            enabled: Filter by enabled flag

        Returns:
            List of Pipelines, or the reshaped payload when efficiency is active

        Raises:
            ValidationError: Missing project ID or incomplete project/account data

        """
        if not project_id:
            raise ValidationError(
                "Project ID is required for listing pipelines",
                "project_id",
                [
                    "The pipeline listing requires the project's internal ID",
                    "Provide a project ID via --project",
                ],
            )

        project = await self._projects.find(project_id)
        _require(
            project.institution_id,
            "institution_id",
            "Project is missing institutionID",
            "The project does not have a valid institution ID",
        )
        user = await self._projects.current_user()

        params: dict[str, Any] = {
            "internalID": project.internal_id,
            "institutionID": project.institution_id,
            "ownerID": user.id,
            "status": status,
            "enabled": enabled,
        }
        data = await self._client.get("/api/pipeline", efficiency, params=params)
        return _typed_list(data, Pipeline.from_dict, efficiency)

    async def get(self, pipeline_id: str) -> Pipeline:
        """Get a pipeline by ID."""
        _require(pipeline_id, "pipeline_id", "Pipeline ID is required", "Provide a pipeline ID")
        result = await self._client.get(f"/api/pipeline/v2/{pipeline_id}")
        return Pipeline.from_dict(result)

    async def run(self, pipeline_id: str) -> RunResponse:
        """
        Trigger a manual pipeline run.

        Args:
            pipeline_id: Numeric pipeline ID

        Returns:
            RunResponse with status and job ID

        Raises:
            ValidationError: Pipeline lacks institution, project or owner IDs

        """
        pipeline = await self.get(pipeline_id)
        _require(
            pipeline.institution_id,
            "institutionID",
            "Pipeline is missing institutionID",
            "The pipeline does not have a valid institution ID",
        )
        _require(
            pipeline.internal_id,
            "internalID",
            "Pipeline is missing internalID",
            "The pipeline does not have a valid project ID",
        )
        _require(
            pipeline.owner_id,
            "ownerID",
            "Pipeline is missing ownerID",
            "The pipeline does not have a valid owner ID",
        )

        body = {
            "pipelineID": int(pipeline_id) if str(pipeline_id).isdigit() else pipeline_id,
            "institutionID": pipeline.institution_id,
            "internalID": pipeline.internal_id,
            "ownerID": pipeline.owner_id,
            "jobName": pipeline.name or f"Pipeline_{pipeline_id}",
            "runType": "manual",
        }
        result = await self._client.post("/api/pipeline/run", body)
        return RunResponse.from_dict(result)


# =============================================================================
# Automation Operations
# =============================================================================


class AutomationOperations:
    """Operations for automations."""

    def __init__(self, client: APIClient):
        self._client = client

    async def list(
        self,
        project_id: str,
        efficiency: TokenEfficiencyOptions | None = None,
        active: bool | None = None,
    ) -> Any:
        """
        List automations in a project.

        Args:
            project_id: Internal project ID
            efficiency: Count/fields/limit reshaping
            active: Only active (True) or inactive (False) automations

        Returns:
            List of Automations, or the reshaped payload when efficiency is active

        """
        if not project_id:
            raise ValidationError(
                "Project ID is required for listing automations",
                "project_id",
                ["Provide a project ID via --project"],
            )
        params = {"internalID": project_id, "active": active}
        data = await self._client.get("/api/automations", efficiency, params=params)
        return _typed_list(data, Automation.from_dict, efficiency)

    async def get(self, automation_id: str) -> Automation:
        """Get an automation by ID."""
        _require(automation_id, "automation_id", "Automation ID is required", "Provide an automation ID")
        result = await self._client.get(f"/api/automations/{automation_id}")
        return Automation.from_dict(result)

    async def _control_body(self, automation_id: str) -> dict[str, Any]:
        automation = await self.get(automation_id)
        return {
            "automationID": int(automation_id) if str(automation_id).isdigit() else automation_id,
            "institutionID": automation.institution_id,
            "internalID": automation.internal_id,
        }

    async def run(self, automation_id: str) -> RunResponse:
        """Trigger an automation immediately, regardless of its schedule."""
        result = await self._client.post("/api/automations/run", await self._control_body(automation_id))
        return RunResponse.from_dict(result)

    async def stop(self, automation_id: str) -> RunResponse:
        """Stop a running automation. Succeeds if it was not running."""
        result = await self._client.post("/api/automations/stop", await self._control_body(automation_id))
        return RunResponse.from_dict(result)
