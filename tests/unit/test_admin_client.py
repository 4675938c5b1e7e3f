"""Unit tests for the Admin API client."""

import asyncio
import json

import httpx
import pytest
import respx
from pydantic import ValidationError

from agentflow_core.admin.client import AdminAPIClient
from agentflow_core.admin.models import (
    BulkImportItem,
    BulkImportParams,
    ExportAgentParams,
    ImportAgentParams,
    OutboundCallParams,
    RAGQueryParams,
    RagDeployParams,
    RefreshAgentCacheParams,
)
from agentflow_core.admin.signing import compute_signature
from agentflow_core.config import AdminAPISettings
from agentflow_core.exceptions import (
    ConfigurationError,
    RemoteApplicationError,
    TimeoutError as AdminTimeoutError,
    TransportError,
    is_retryable,
)

BASE_URL = "https://engine.test"
API_KEY = "test-signing-key"


def _assert_signed(request: httpx.Request, body: str = "") -> None:
    expected = compute_signature(
        API_KEY,
        request.headers["X-Timestamp"],
        request.headers["X-Nonce"],
        request.method,
        request.url.path,
        body,
    )
    assert request.headers["X-Signature"] == expected


class TestConfiguration:
    """Tests for client configuration."""

    def test_is_configured(self):
        assert AdminAPIClient(base_url=BASE_URL, api_key=API_KEY).is_configured is True
        assert AdminAPIClient(base_url=BASE_URL).is_configured is False
        assert AdminAPIClient(api_key=API_KEY).is_configured is False

    def test_from_settings(self):
        """Test credentials and timeouts come from settings."""
        settings = AdminAPISettings(base_url=BASE_URL + "/", key=API_KEY, timeout_seconds=5, bulk_timeout_seconds=60)

        client = AdminAPIClient.from_settings(settings)

        assert client.base_url == BASE_URL
        assert client.api_key == API_KEY
        assert client.timeout == 5
        assert client.bulk_timeout == 60

    @pytest.mark.asyncio
    async def test_unconfigured_client_never_sends(self):
        """Test a missing base URL fails before any request."""
        client = AdminAPIClient(base_url=None, api_key=API_KEY)

        with respx.mock() as respx_mock:
            with pytest.raises(ConfigurationError):
                await client.get_call_status("call_1")

            assert respx_mock.calls.call_count == 0

    @pytest.mark.asyncio
    async def test_missing_key_never_sends(self):
        client = AdminAPIClient(base_url=BASE_URL, api_key="")

        with respx.mock() as respx_mock:
            with pytest.raises(ConfigurationError):
                await client.refresh_agent_cache(RefreshAgentCacheParams(tenant_id="t1", agent_id="a1"))

            assert respx_mock.calls.call_count == 0


class TestSignedRequests:
    """Tests for request signing on the wire."""

    @pytest.mark.asyncio
    async def test_post_body_is_signed(self, admin_client):
        """Test the signed bytes are exactly the sent bytes."""
        with respx.mock() as respx_mock:
            route = respx_mock.post(f"{BASE_URL}/admin/cache/refresh/agent").mock(
                return_value=httpx.Response(200, json={"success": True, "message": "Cache refreshed"})
            )

            response = await admin_client.refresh_agent_cache(
                RefreshAgentCacheParams(tenant_id="t1", agent_id="a1")
            )

        request = route.calls.last.request
        body = request.content.decode("utf-8")
        assert body == '{"tenant_id":"t1","agent_id":"a1"}'
        assert request.headers["Content-Type"] == "application/json"
        _assert_signed(request, body)
        assert response.success is True

    @pytest.mark.asyncio
    async def test_get_signs_empty_body(self, admin_client):
        """Test a bodyless GET signs the empty-string body hash."""
        with respx.mock() as respx_mock:
            route = respx_mock.get(f"{BASE_URL}/admin/calls/call_1/status").mock(
                return_value=httpx.Response(200, json={"call_id": "call_1", "status": "in-progress"})
            )

            status = await admin_client.get_call_status("call_1")

        request = route.calls.last.request
        assert request.content == b""
        _assert_signed(request, "")
        assert status.status == "in-progress"

    @pytest.mark.asyncio
    async def test_export_signs_path_without_query(self, admin_client):
        """Test the version query string is not part of the signed path."""
        with respx.mock() as respx_mock:
            route = respx_mock.get(path="/admin/agents/t1/a1/export").mock(
                return_value=httpx.Response(200, json={
                    "tenant_id": "t1",
                    "agent_id": "a1",
                    "agent_name": "Support",
                    "version": 3,
                    "config_json": {"agent": {"name": "Support"}},
                })
            )

            exported = await admin_client.export_agent_config(
                ExportAgentParams(tenant_id="t1", agent_id="a1", version=3)
            )

        request = route.calls.last.request
        assert request.url.params["version"] == "3"
        _assert_signed(request, "")
        assert exported.version == 3
        assert exported.config_json == {"agent": {"name": "Support"}}

    @pytest.mark.asyncio
    async def test_export_without_version(self, admin_client):
        with respx.mock() as respx_mock:
            route = respx_mock.get(path="/admin/agents/t1/a1/export").mock(
                return_value=httpx.Response(200, json={
                    "tenant_id": "t1",
                    "agent_id": "a1",
                    "version": 1,
                    "config_json": {},
                })
            )

            await admin_client.export_agent_config(ExportAgentParams(tenant_id="t1", agent_id="a1"))

        assert "version" not in route.calls.last.request.url.params

    @pytest.mark.asyncio
    async def test_concurrent_requests_use_distinct_nonces(self, admin_client):
        """Test concurrent calls never share request state."""
        with respx.mock() as respx_mock:
            route = respx_mock.get(path__regex=r"^/admin/calls/[^/]+/debug$").mock(
                return_value=httpx.Response(200, json={"events": []})
            )

            await asyncio.gather(*(admin_client.get_call_debug_trace(f"call_{i}") for i in range(5)))

        nonces = {call.request.headers["X-Nonce"] for call in route.calls}
        assert len(nonces) == 5
        for call in route.calls:
            _assert_signed(call.request, "")


class TestRequestBodies:
    """Tests for operation bodies and optional field omission."""

    @pytest.mark.asyncio
    async def test_import_omits_unset_fields(self, admin_client, minimal_config):
        with respx.mock() as respx_mock:
            route = respx_mock.post(f"{BASE_URL}/admin/agents/import").mock(
                return_value=httpx.Response(200, json={
                    "success": True,
                    "result": {"agent_id": "a1", "agent_name": "Test", "action": "created", "version": 1},
                })
            )

            response = await admin_client.import_agent_config(
                ImportAgentParams(tenant_id="t1", agent_json=minimal_config)
            )

        sent = json.loads(route.calls.last.request.content)
        assert set(sent) == {"tenant_id", "agent_json"}
        assert sent["agent_json"] == minimal_config
        assert response.result.version == 1

    @pytest.mark.asyncio
    async def test_import_sends_provided_options(self, admin_client, minimal_config):
        with respx.mock() as respx_mock:
            route = respx_mock.post(f"{BASE_URL}/admin/agents/import").mock(
                return_value=httpx.Response(200, json={
                    "success": True,
                    "result": {"agent_id": "a1", "action": "validated"},
                })
            )

            await admin_client.import_agent_config(ImportAgentParams(
                tenant_id="t1",
                agent_json=minimal_config,
                phone_numbers=["+14155550100"],
                notes="Initial import",
                dry_run=True,
            ))

        sent = json.loads(route.calls.last.request.content)
        assert sent["phone_numbers"] == ["+14155550100"]
        assert sent["notes"] == "Initial import"
        assert sent["dry_run"] is True
        assert "created_by" not in sent

    @pytest.mark.asyncio
    async def test_rag_query(self, admin_client):
        with respx.mock() as respx_mock:
            route = respx_mock.post(f"{BASE_URL}/admin/rag/query").mock(
                return_value=httpx.Response(200, json={
                    "success": True,
                    "query": "refund policy",
                    "chunks": [{
                        "chunk_id": "c1",
                        "content": "Refunds within 30 days.",
                        "filename": "policy.pdf",
                        "score": 0.91,
                        "document_id": "d1",
                        "chunk_index": 0,
                        "token_count": 6,
                        "s3_key": "kb/policy.pdf",
                    }],
                    "metadata": {
                        "search_mode": "hybrid",
                        "top_k": 5,
                        "processing_time_ms": 12.5,
                        "total_chunks": 1,
                        "rag_config_id": "rag_1",
                        "agent_config_version": 2,
                        "is_active_version": True,
                    },
                })
            )

            result = await admin_client.query_rag(RAGQueryParams(
                tenant_id="t1", agent_id="a1", query="refund policy", search_mode="hybrid", top_k=5,
            ))

        sent = json.loads(route.calls.last.request.content)
        assert sent == {
            "tenant_id": "t1",
            "agent_id": "a1",
            "query": "refund policy",
            "search_mode": "hybrid",
            "top_k": 5,
        }
        assert result.chunks[0].score == 0.91
        assert result.metadata.is_active_version is True

    @pytest.mark.asyncio
    async def test_outbound_call(self, admin_client):
        with respx.mock() as respx_mock:
            route = respx_mock.post(f"{BASE_URL}/admin/calls/outbound").mock(
                return_value=httpx.Response(200, json={
                    "call_id": "call_1",
                    "twilio_call_sid": "CA123",
                    "status": "queued",
                    "direction": "outbound",
                    "from_number": "+14155550100",
                    "to_number": "+14155550199",
                    "agent_id": "a1",
                    "agent_name": "Support",
                    "agent_config_version": 2,
                    "created_at": "2024-01-01T00:00:00Z",
                })
            )

            call = await admin_client.initiate_outbound_call(OutboundCallParams(
                tenant_id="t1", agent_id="a1", to_number="+14155550199",
            ))

        sent = json.loads(route.calls.last.request.content)
        assert sent == {"tenant_id": "t1", "agent_id": "a1", "to_number": "+14155550199"}
        assert call.twilio_call_sid == "CA123"

    @pytest.mark.asyncio
    async def test_rag_deploy_and_status(self, admin_client):
        with respx.mock() as respx_mock:
            deploy = respx_mock.post(f"{BASE_URL}/admin/rag/deploy").mock(
                return_value=httpx.Response(202, json={"deployment_id": "dep_1", "status": "pending"})
            )
            status = respx_mock.get(f"{BASE_URL}/admin/rag/deploy/dep_1/status").mock(
                return_value=httpx.Response(200, json={"deployment_id": "dep_1", "status": "completed"})
            )

            started = await admin_client.deploy_rag_from_s3(RagDeployParams(
                s3_url="s3://bucket/kb.zip", tenant_id="t1", rag_name="Policies",
            ))
            finished = await admin_client.get_rag_deployment_status("dep_1")

        assert json.loads(deploy.calls.last.request.content)["run_async"] is True
        assert started.status == "pending"
        assert finished.status == "completed"
        assert status.called


class TestParameterValidation:
    """Tests for parameter checks done before signing."""

    def test_top_k_range(self):
        with pytest.raises(ValidationError):
            RAGQueryParams(tenant_id="t1", agent_id="a1", query="q", top_k=51)

    @pytest.mark.parametrize("number", ["4155550100", "+0155550100", "+1 415 555 0100"])
    def test_e164_numbers(self, number):
        with pytest.raises(ValidationError):
            OutboundCallParams(tenant_id="t1", agent_id="a1", to_number=number)

    def test_import_phone_numbers(self):
        with pytest.raises(ValidationError):
            ImportAgentParams(tenant_id="t1", agent_json={}, phone_numbers=["555-0100"])

    def test_notes_length(self):
        with pytest.raises(ValidationError):
            ImportAgentParams(tenant_id="t1", agent_json={}, notes="x" * 501)

    def test_bulk_item_limits(self):
        item = BulkImportItem(tenant_id="t1", agent_json={})

        with pytest.raises(ValidationError):
            BulkImportParams(agents=[])
        with pytest.raises(ValidationError):
            BulkImportParams(agents=[item] * 51)
        assert len(BulkImportParams(agents=[item] * 50).agents) == 50

    def test_export_version_minimum(self):
        with pytest.raises(ValidationError):
            ExportAgentParams(tenant_id="t1", agent_id="a1", version=0)


class TestErrorMapping:
    """Tests for the failure taxonomy."""

    @pytest.mark.asyncio
    async def test_timeout(self, admin_client):
        with respx.mock() as respx_mock:
            respx_mock.get(f"{BASE_URL}/admin/calls/call_1/status").mock(
                side_effect=httpx.ReadTimeout("timed out")
            )

            with pytest.raises(AdminTimeoutError) as exc_info:
                await admin_client.get_call_status("call_1")

        assert exc_info.value.timeout == 10.0

    @pytest.mark.asyncio
    async def test_bulk_uses_bulk_timeout(self, admin_client):
        with respx.mock() as respx_mock:
            respx_mock.post(f"{BASE_URL}/admin/agents/import/bulk").mock(
                side_effect=httpx.ReadTimeout("timed out")
            )

            with pytest.raises(AdminTimeoutError) as exc_info:
                await admin_client.bulk_import_agent_configs(
                    BulkImportParams(agents=[BulkImportItem(tenant_id="t1", agent_json={})])
                )

        assert exc_info.value.timeout == 30.0

    @pytest.mark.asyncio
    async def test_transport_failure(self, admin_client):
        with respx.mock() as respx_mock:
            respx_mock.get(f"{BASE_URL}/admin/calls/call_1/status").mock(
                side_effect=httpx.ConnectError("connection refused")
            )

            with pytest.raises(TransportError):
                await admin_client.get_call_status("call_1")

    @pytest.mark.asyncio
    async def test_three_failures_are_distinct(self, admin_client):
        """Test timeout, transport and HTTP failures map to different types."""
        raised = []
        side_effects = [
            httpx.ReadTimeout("timed out"),
            httpx.ConnectError("refused"),
            httpx.Response(503, json={"detail": "Engine restarting"}),
        ]

        with respx.mock() as respx_mock:
            respx_mock.get(f"{BASE_URL}/admin/calls/call_1/status").mock(side_effect=side_effects)
            for _ in side_effects:
                with pytest.raises(Exception) as exc_info:
                    await admin_client.get_call_status("call_1")
                raised.append(type(exc_info.value))

        assert raised == [AdminTimeoutError, TransportError, RemoteApplicationError]

    @pytest.mark.asyncio
    async def test_error_detail(self, admin_client):
        with respx.mock() as respx_mock:
            respx_mock.get(f"{BASE_URL}/admin/calls/missing/status").mock(
                return_value=httpx.Response(404, json={"detail": "Call not found"})
            )

            with pytest.raises(RemoteApplicationError) as exc_info:
                await admin_client.get_call_status("missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Call not found"
        assert is_retryable(exc_info.value) is False

    @pytest.mark.asyncio
    async def test_error_message_fallback(self, admin_client):
        with respx.mock() as respx_mock:
            respx_mock.post(f"{BASE_URL}/admin/rag/query").mock(
                return_value=httpx.Response(400, json={"message": "No RAG configured for agent"})
            )

            with pytest.raises(RemoteApplicationError) as exc_info:
                await admin_client.query_rag(RAGQueryParams(tenant_id="t1", agent_id="a1", query="q"))

        assert exc_info.value.message == "No RAG configured for agent"

    @pytest.mark.asyncio
    async def test_error_reason_phrase_fallback(self, admin_client):
        with respx.mock() as respx_mock:
            respx_mock.get(f"{BASE_URL}/admin/calls/call_1/debug").mock(
                return_value=httpx.Response(502, text="<html>upstream</html>")
            )

            with pytest.raises(RemoteApplicationError) as exc_info:
                await admin_client.get_call_debug_trace("call_1")

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"
        assert exc_info.value.response_body == "<html>upstream</html>"
        assert is_retryable(exc_info.value) is True

    @pytest.mark.asyncio
    async def test_structured_detail(self, admin_client):
        """Test non-string details are kept as compact JSON."""
        detail = [{"loc": ["body", "tenant_id"], "msg": "field required"}]

        with respx.mock() as respx_mock:
            respx_mock.post(f"{BASE_URL}/admin/cache/refresh/agent").mock(
                return_value=httpx.Response(422, json={"detail": detail})
            )

            with pytest.raises(RemoteApplicationError) as exc_info:
                await admin_client.refresh_agent_cache(RefreshAgentCacheParams(tenant_id="t1", agent_id="a1"))

        assert json.loads(exc_info.value.message) == detail

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, admin_client, minimal_config):
        """Test a 2xx body that is not JSON raises a typed error."""
        with respx.mock() as respx_mock:
            respx_mock.post(f"{BASE_URL}/admin/agents/import").mock(
                return_value=httpx.Response(200, text="<html>proxy page</html>")
            )

            with pytest.raises(RemoteApplicationError) as exc_info:
                await admin_client.import_agent_config(
                    ImportAgentParams(tenant_id="t1", agent_json=minimal_config)
                )

        assert exc_info.value.status_code == 200
        assert exc_info.value.code == "invalid_response"
        assert exc_info.value.response_body == "<html>proxy page</html>"
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_mismatched_success_body(self, admin_client, minimal_config):
        """Test a 2xx body of the wrong shape raises a typed error."""
        with respx.mock() as respx_mock:
            respx_mock.post(f"{BASE_URL}/admin/agents/import").mock(
                return_value=httpx.Response(200, json={"status": "queued"})
            )

            with pytest.raises(RemoteApplicationError) as exc_info:
                await admin_client.import_agent_config(
                    ImportAgentParams(tenant_id="t1", agent_json=minimal_config)
                )

        assert exc_info.value.code == "invalid_response"
        assert "ImportAgentResponse" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, ValidationError)

    @pytest.mark.asyncio
    async def test_empty_success_body(self, admin_client):
        """Test an empty 2xx body still decodes into a response."""
        with respx.mock() as respx_mock:
            respx_mock.post(f"{BASE_URL}/admin/cache/refresh/agent").mock(
                return_value=httpx.Response(204)
            )

            response = await admin_client.refresh_agent_cache(
                RefreshAgentCacheParams(tenant_id="t1", agent_id="a1")
            )

        assert response.success is True
