"""
Admin API request and response models.

Request models validate parameters before anything is signed; their
``to_body`` output omits optional fields the caller did not provide.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

E164_PATTERN = r"^\+[1-9]\d{1,14}$"
MAX_BULK_ITEMS = 50
MAX_NOTES_LENGTH = 500

SearchMode = Literal["vector", "fts", "hybrid"]
PhoneNumber = Annotated[str, Field(pattern=E164_PATTERN)]


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def to_body(self) -> Dict[str, Any]:
        """JSON body with unset optional fields left out."""
        return self.model_dump(mode="json", exclude_none=True)


class _Response(BaseModel):
    """Responses keep fields this client does not know about."""

    model_config = ConfigDict(extra="allow", protected_namespaces=())


# =============================================================================
# Request Models
# =============================================================================


class RefreshAgentCacheParams(_Params):
    tenant_id: str = Field(..., min_length=1)
    agent_id: str = Field(..., min_length=1)


class RAGQueryParams(_Params):
    """Query the knowledge base attached to an agent."""

    tenant_id: str = Field(..., min_length=1)
    agent_id: str = Field(..., min_length=1)
    query: str = Field(..., min_length=1)
    version: Optional[int] = Field(default=None, ge=1, description="Config version; active when omitted")
    search_mode: Optional[SearchMode] = None
    top_k: Optional[int] = Field(default=None, ge=1, le=50)


class ImportAgentParams(_Params):
    """Import one agent config. The engine assigns the version number."""

    tenant_id: str = Field(..., min_length=1)
    agent_json: Dict[str, Any]
    phone_numbers: Optional[List[PhoneNumber]] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    created_by: Optional[str] = None
    dry_run: Optional[bool] = None


class BulkImportItem(_Params):
    tenant_id: str = Field(..., min_length=1)
    agent_json: Dict[str, Any]
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)


class BulkImportParams(_Params):
    agents: List[BulkImportItem] = Field(..., min_length=1, max_length=MAX_BULK_ITEMS)


class ExportAgentParams(_Params):
    tenant_id: str = Field(..., min_length=1)
    agent_id: str = Field(..., min_length=1)
    version: Optional[int] = Field(default=None, ge=1)


class OutboundCallParams(_Params):
    """Place an outbound call through an agent."""

    tenant_id: str = Field(..., min_length=1)
    agent_id: str = Field(..., min_length=1)
    to_number: str = Field(..., pattern=E164_PATTERN, description="E.164 destination")
    from_number: Optional[str] = Field(default=None, pattern=E164_PATTERN, description="E.164 caller ID")
    version: Optional[int] = Field(default=None, ge=1)
    metadata: Optional[Dict[str, Any]] = None


class RagDeployParams(_Params):
    """Deploy a knowledge base from a zip archive in S3."""

    s3_url: str = Field(..., min_length=1)
    tenant_id: str = Field(..., min_length=1)
    rag_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    run_async: bool = True


# =============================================================================
# Response Models
# =============================================================================


class AdminAPIResponse(_Response):
    success: bool = True
    message: Optional[str] = None


class RAGChunk(_Response):
    chunk_id: str
    content: str
    filename: Optional[str] = None
    score: float
    document_id: Optional[str] = None
    chunk_index: Optional[int] = None
    token_count: Optional[int] = None
    s3_key: Optional[str] = None


class RAGQueryMetadata(_Response):
    search_mode: str
    top_k: int
    processing_time_ms: float
    total_chunks: int
    rag_config_id: Optional[str] = None
    agent_config_version: Optional[int] = None
    is_active_version: Optional[bool] = None


class RAGQueryResponse(_Response):
    success: bool
    query: str
    chunks: List[RAGChunk] = Field(default_factory=list)
    metadata: RAGQueryMetadata


class ImportResult(_Response):
    agent_id: str
    agent_name: Optional[str] = None
    action: str
    version: Optional[int] = None


class ImportAgentResponse(_Response):
    success: bool
    result: Optional[ImportResult] = None
    error: Optional[str] = None


class BulkImportResponse(_Response):
    total: int
    succeeded: int
    failed: int
    results: List[Dict[str, Any]] = Field(default_factory=list)


class ExportAgentResponse(_Response):
    tenant_id: str
    agent_id: str
    agent_name: Optional[str] = None
    version: int
    config_json: Dict[str, Any]


class OutboundCallResponse(_Response):
    call_id: str
    twilio_call_sid: Optional[str] = None
    status: str
    direction: str = "outbound"
    from_number: Optional[str] = None
    to_number: str
    agent_id: str
    agent_name: Optional[str] = None
    agent_config_version: Optional[int] = None
    created_at: Optional[str] = None


class CallStatusResponse(_Response):
    call_id: str
    twilio_call_sid: Optional[str] = None
    status: str
    direction: Optional[str] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    started_at: Optional[str] = None
    connected_at: Optional[str] = None
    ended_at: Optional[str] = None
    duration_seconds: Optional[float] = None
    error_message: Optional[str] = None


class RagDeployResponse(_Response):
    deployment_id: Optional[str] = None
    status: Optional[str] = None
