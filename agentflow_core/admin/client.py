"""
Admin API client.

Async client for the orchestrator's signed management endpoints. Every
request carries a fresh timestamp and nonce and is signed over the exact
body bytes that are sent.
"""

import json
from typing import Any, Dict, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from agentflow_core.admin.models import (
    AdminAPIResponse,
    BulkImportParams,
    BulkImportResponse,
    CallStatusResponse,
    ExportAgentParams,
    ExportAgentResponse,
    ImportAgentParams,
    ImportAgentResponse,
    OutboundCallParams,
    OutboundCallResponse,
    RAGQueryParams,
    RAGQueryResponse,
    RagDeployParams,
    RagDeployResponse,
    RefreshAgentCacheParams,
)
from agentflow_core.admin.signing import generate_signed_headers
from agentflow_core.config import AdminAPISettings, get_settings
from agentflow_core.exceptions import (
    ConfigurationError,
    RemoteApplicationError,
    TimeoutError,
    TransportError,
)

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
BULK_TIMEOUT = 30.0

_BODYLESS_METHODS = ("GET", "DELETE")

ModelT = TypeVar("ModelT", bound=BaseModel)


def serialize_body(body: Optional[Dict[str, Any]]) -> str:
    """Compact JSON; the same string is signed and sent."""
    if body is None:
        return ""
    return json.dumps(body, separators=(",", ":"))


class AdminAPIClient:
    """
    Signed client for the orchestrator Admin API.

    Credentials are injected; use ``from_settings`` to read them from the
    environment. A missing base URL or key raises ConfigurationError
    before any network I/O.

    Example:
        async with AdminAPIClient(base_url="https://engine.example.com", api_key="secret") as client:
            await client.refresh_agent_cache(
                RefreshAgentCacheParams(tenant_id="t1", agent_id="a1")
            )
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        bulk_timeout: float = BULK_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.timeout = timeout
        self.bulk_timeout = bulk_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AdminAPISettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AdminAPIClient":
        settings = settings or get_settings().admin_api
        return cls(
            base_url=settings.base_url,
            api_key=settings.key,
            timeout=settings.timeout_seconds,
            bulk_timeout=settings.bulk_timeout_seconds,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        response_model: Optional[Type[ModelT]] = None,
    ) -> Any:
        """
        Sign and send one request.

        Args:
            method: HTTP method
            path: Request path; signed without the query string
            body: JSON body; ignored for GET and DELETE
            params: Query string parameters
            timeout: Time budget in seconds, defaults to ``self.timeout``
            response_model: Model the 2xx body is validated into

        Returns:
            The validated model, or the decoded JSON body when no model is given

        Raises:
            ConfigurationError: Base URL or key missing
            TimeoutError: The time budget was exceeded
            TransportError: The orchestrator could not be reached
            RemoteApplicationError: Non-2xx response, or a 2xx body that is
                not JSON or does not match ``response_model``
        """
        if not self.is_configured:
            raise ConfigurationError()

        method = method.upper()
        payload = "" if method in _BODYLESS_METHODS else serialize_body(body)
        headers = generate_signed_headers(self.api_key, method, path, payload)
        headers["Content-Type"] = "application/json"
        budget = timeout or self.timeout

        logger.debug("admin_api_request", method=method, path=path, timeout=budget)

        try:
            response = await self._get_client().request(
                method=method,
                url=f"{self.base_url}{path}",
                params=params,
                content=payload.encode("utf-8") if payload else None,
                headers=headers,
                timeout=budget,
            )
        except httpx.TimeoutException as exc:
            logger.warning("admin_api_timeout", method=method, path=path, timeout=budget)
            raise TimeoutError(timeout=budget) from exc
        except httpx.TransportError as exc:
            logger.warning("admin_api_unreachable", method=method, path=path, error=str(exc))
            raise TransportError(f"Failed to connect to the Admin API: {exc}") from exc

        return self._handle_response(response, method, path, response_model)

    def _handle_response(
        self,
        response: httpx.Response,
        method: str,
        path: str,
        response_model: Optional[Type[ModelT]] = None,
    ) -> Any:
        """Decode a response or raise RemoteApplicationError."""
        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "admin_api_error",
                method=method,
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise RemoteApplicationError(
                message,
                status_code=response.status_code,
                response_body=response.text,
            )

        data: Any = {}
        if response.status_code != 204 and response.content:
            try:
                data = response.json()
            except ValueError as exc:
                raise self._invalid_response(response, method, path, "body is not JSON") from exc

        if response_model is None:
            return data
        try:
            return response_model.model_validate(data)
        except ValidationError as exc:
            reason = f"body does not match {response_model.__name__} ({exc.error_count()} error(s))"
            raise self._invalid_response(response, method, path, reason) from exc

    def _invalid_response(
        self,
        response: httpx.Response,
        method: str,
        path: str,
        reason: str,
    ) -> RemoteApplicationError:
        logger.warning(
            "admin_api_invalid_response",
            method=method,
            path=path,
            status_code=response.status_code,
            reason=reason,
        )
        return RemoteApplicationError(
            f"Unexpected Admin API response: {reason}",
            status_code=response.status_code,
            code="invalid_response",
            response_body=response.text,
        )

    # =========================================================================
    # Agent Configs
    # =========================================================================

    async def refresh_agent_cache(self, params: RefreshAgentCacheParams) -> AdminAPIResponse:
        """Drop the orchestrator's cached config for an agent."""
        response = await self._request(
            "POST",
            "/admin/cache/refresh/agent",
            params.to_body(),
            response_model=AdminAPIResponse,
        )
        logger.info("agent_cache_refreshed", tenant_id=params.tenant_id, agent_id=params.agent_id)
        return response

    async def import_agent_config(self, params: ImportAgentParams) -> ImportAgentResponse:
        return await self._request(
            "POST",
            "/admin/agents/import",
            params.to_body(),
            response_model=ImportAgentResponse,
        )

    async def bulk_import_agent_configs(self, params: BulkImportParams) -> BulkImportResponse:
        return await self._request(
            "POST",
            "/admin/agents/import/bulk",
            params.to_body(),
            timeout=self.bulk_timeout,
            response_model=BulkImportResponse,
        )

    async def export_agent_config(self, params: ExportAgentParams) -> ExportAgentResponse:
        """Export the active config version, or a specific one."""
        path = f"/admin/agents/{quote(params.tenant_id, safe='')}/{quote(params.agent_id, safe='')}/export"
        query = {"version": params.version} if params.version is not None else None
        return await self._request("GET", path, params=query, response_model=ExportAgentResponse)

    # =========================================================================
    # RAG
    # =========================================================================

    async def query_rag(self, params: RAGQueryParams) -> RAGQueryResponse:
        return await self._request(
            "POST",
            "/admin/rag/query",
            params.to_body(),
            response_model=RAGQueryResponse,
        )

    async def deploy_rag_from_s3(self, params: RagDeployParams) -> RagDeployResponse:
        return await self._request(
            "POST",
            "/admin/rag/deploy",
            params.to_body(),
            timeout=self.bulk_timeout,
            response_model=RagDeployResponse,
        )

    async def get_rag_deployment_status(self, deployment_id: str) -> RagDeployResponse:
        return await self._request(
            "GET",
            f"/admin/rag/deploy/{quote(deployment_id, safe='')}/status",
            response_model=RagDeployResponse,
        )

    # =========================================================================
    # Calls
    # =========================================================================

    async def initiate_outbound_call(self, params: OutboundCallParams) -> OutboundCallResponse:
        response = await self._request(
            "POST",
            "/admin/calls/outbound",
            params.to_body(),
            response_model=OutboundCallResponse,
        )
        logger.info("outbound_call_initiated", agent_id=params.agent_id, call_id=response.call_id)
        return response

    async def get_call_status(self, call_id: str) -> CallStatusResponse:
        return await self._request(
            "GET",
            f"/admin/calls/{quote(call_id, safe='')}/status",
            response_model=CallStatusResponse,
        )

    async def get_call_debug_trace(self, call_id: str) -> Dict[str, Any]:
        """Raw debug trace of a call; its shape is owned by the orchestrator."""
        return await self._request("GET", f"/admin/calls/{quote(call_id, safe='')}/debug")


def _error_message(response: httpx.Response) -> str:
    """Message from ``detail``, then ``message``, then the reason phrase."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        for key in ("detail", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
            if value:
                return json.dumps(value, separators=(",", ":"))

    return response.reason_phrase or f"HTTP {response.status_code}"
