# Orchestrator Admin API access

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
from agentflow_core.admin.signing import (
    compute_signature,
    generate_nonce,
    generate_signed_headers,
    verify_signature,
)

__all__ = [
    "AdminAPIClient",
    "BulkImportItem",
    "BulkImportParams",
    "ExportAgentParams",
    "ImportAgentParams",
    "OutboundCallParams",
    "RAGQueryParams",
    "RagDeployParams",
    "RefreshAgentCacheParams",
    "compute_signature",
    "generate_nonce",
    "generate_signed_headers",
    "verify_signature",
]
