"""
Agent Configuration Service Module

Gates imports on workflow validation, ships configs to the orchestrator
and activates stored versions. Version numbering and the active-version
swap belong to a VersionStore; the service only refreshes the
orchestrator cache afterwards.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import structlog

from agentflow_core.admin.client import AdminAPIClient
from agentflow_core.admin.models import (
    BulkImportItem,
    BulkImportParams,
    BulkImportResponse,
    ExportAgentParams,
    ExportAgentResponse,
    ImportAgentParams,
    ImportAgentResponse,
    RefreshAgentCacheParams,
)
from agentflow_core.exceptions import (
    ConfigurationError,
    RemoteApplicationError,
    TimeoutError,
    TransportError,
    VersionNotFoundError,
    WorkflowValidationError,
)
from agentflow_core.workflow.issues import WorkflowValidationResult
from agentflow_core.workflow.validator import WorkflowValidator

logger = structlog.get_logger(__name__)

AgentKey = Tuple[str, str]


# =============================================================================
# Version Storage Interface
# =============================================================================


@dataclass
class StoredVersion:
    """One numbered config version of an agent."""

    tenant_id: str
    agent_id: str
    version: int
    config_json: Dict[str, Any]
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class VersionStore(ABC):
    """Abstract base class for agent config version storage."""

    @abstractmethod
    async def save_version(
        self,
        tenant_id: str,
        agent_id: str,
        config_json: Dict[str, Any],
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> StoredVersion:
        """Store a new version; numbering is per agent."""
        pass

    @abstractmethod
    async def activate(self, tenant_id: str, agent_id: str, version: int) -> None:
        """Make ``version`` the single active version of the agent."""
        pass

    @abstractmethod
    async def get_active_version(self, tenant_id: str, agent_id: str) -> Optional[StoredVersion]:
        pass


class InMemoryVersionStore(VersionStore):
    """In-memory version storage for testing and development."""

    def __init__(self):
        self._versions: Dict[AgentKey, List[StoredVersion]] = {}
        self._active: Dict[AgentKey, int] = {}

    async def save_version(
        self,
        tenant_id: str,
        agent_id: str,
        config_json: Dict[str, Any],
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> StoredVersion:
        versions = self._versions.setdefault((tenant_id, agent_id), [])
        stored = StoredVersion(
            tenant_id=tenant_id,
            agent_id=agent_id,
            version=len(versions) + 1,
            config_json=config_json,
            notes=notes,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
        )
        versions.append(stored)
        return stored

    async def activate(self, tenant_id: str, agent_id: str, version: int) -> None:
        versions = self._versions.get((tenant_id, agent_id), [])
        if not any(v.version == version for v in versions):
            raise VersionNotFoundError(tenant_id, agent_id, version)
        self._active[(tenant_id, agent_id)] = version

    async def get_active_version(self, tenant_id: str, agent_id: str) -> Optional[StoredVersion]:
        active = self._active.get((tenant_id, agent_id))
        for stored in self._versions.get((tenant_id, agent_id), []):
            if stored.version == active:
                return stored
        return None


# =============================================================================
# Agent Config Service
# =============================================================================


@dataclass
class ActivationResult:
    """Outcome of a version activation."""

    tenant_id: str
    agent_id: str
    version: int
    cache_refreshed: bool
    cache_error: Optional[str] = None


class AgentConfigService:
    """
    Import, export and activation of agent configurations.

    Imports are validated locally first; a config with blocking issues
    never reaches the orchestrator.
    """

    def __init__(
        self,
        client: AdminAPIClient,
        validator: Optional[WorkflowValidator] = None,
        store: Optional[VersionStore] = None,
    ):
        self.client = client
        self.validator = validator or WorkflowValidator()
        self.store = store

    def validate(self, agent_json: Dict[str, Any]) -> WorkflowValidationResult:
        return self.validator.validate(agent_json)

    # =========================================================================
    # Import / Export
    # =========================================================================

    async def import_agent(
        self,
        tenant_id: str,
        agent_json: Dict[str, Any],
        phone_numbers: Optional[List[str]] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        dry_run: Optional[bool] = None,
    ) -> ImportAgentResponse:
        """
        Validate an agent config and import it.

        The raw JSON is sent as given so keys this package does not model
        survive the trip.

        Raises:
            WorkflowValidationError: The config has blocking issues
        """
        self.validator.ensure_valid(agent_json)

        params = ImportAgentParams(
            tenant_id=tenant_id,
            agent_json=agent_json,
            phone_numbers=phone_numbers,
            notes=notes,
            created_by=created_by,
            dry_run=dry_run,
        )
        response = await self.client.import_agent_config(params)

        result = response.result
        logger.info(
            "agent_imported",
            tenant_id=tenant_id,
            agent_id=result.agent_id if result else None,
            action=result.action if result else None,
            version=result.version if result else None,
            dry_run=bool(dry_run),
        )
        return response

    async def bulk_import(self, items: Sequence[BulkImportItem]) -> BulkImportResponse:
        """
        Validate every item, then import them in one bulk request.

        Raises:
            WorkflowValidationError: Any item has blocking issues; nothing is sent
        """
        for index, item in enumerate(items):
            result = self.validator.validate(item.agent_json)
            if not result.valid:
                raise WorkflowValidationError(
                    result.errors,
                    result.warnings,
                    message=f"Agent {index + 1} of {len(items)} has {len(result.errors)} validation error(s).",
                )

        response = await self.client.bulk_import_agent_configs(BulkImportParams(agents=list(items)))
        logger.info(
            "agents_bulk_imported",
            total=response.total,
            succeeded=response.succeeded,
            failed=response.failed,
        )
        return response

    async def bulk_import_individually(
        self,
        items: Sequence[BulkImportItem],
    ) -> List[Union[ImportAgentResponse, Exception]]:
        """
        Import each item with its own request.

        One failure never cancels the others; each slot holds either the
        response or the exception raised for that item.
        """
        results = await asyncio.gather(
            *(
                self.import_agent(item.tenant_id, item.agent_json, notes=item.notes)
                for item in items
            ),
            return_exceptions=True,
        )

        failed = sum(1 for r in results if isinstance(r, Exception))
        logger.info(
            "agents_imported_individually",
            total=len(results),
            succeeded=len(results) - failed,
            failed=failed,
        )
        return list(results)

    async def export_agent(
        self,
        tenant_id: str,
        agent_id: str,
        version: Optional[int] = None,
    ) -> ExportAgentResponse:
        return await self.client.export_agent_config(
            ExportAgentParams(tenant_id=tenant_id, agent_id=agent_id, version=version)
        )

    # =========================================================================
    # Activation
    # =========================================================================

    async def activate_version(self, tenant_id: str, agent_id: str, version: int) -> ActivationResult:
        """
        Activate a stored version and refresh the orchestrator cache.

        The cache refresh is best effort: its failure is logged and
        reported on the result, and activation still succeeds.

        Raises:
            ConfigurationError: No version store was given
            VersionNotFoundError: Raised by the store for unknown versions
        """
        if self.store is None:
            raise ConfigurationError("No version store is configured for activation.")

        await self.store.activate(tenant_id, agent_id, version)
        logger.info("agent_version_activated", tenant_id=tenant_id, agent_id=agent_id, version=version)

        try:
            await self.client.refresh_agent_cache(
                RefreshAgentCacheParams(tenant_id=tenant_id, agent_id=agent_id)
            )
        except (RemoteApplicationError, TransportError, TimeoutError, ConfigurationError) as exc:
            logger.warning(
                "agent_cache_refresh_failed",
                tenant_id=tenant_id,
                agent_id=agent_id,
                version=version,
                error_type=type(exc).__name__,
                error=exc.message,
            )
            return ActivationResult(
                tenant_id=tenant_id,
                agent_id=agent_id,
                version=version,
                cache_refreshed=False,
                cache_error=exc.message,
            )

        return ActivationResult(
            tenant_id=tenant_id,
            agent_id=agent_id,
            version=version,
            cache_refreshed=True,
        )
