"""
Workflow graph model.

Typed representation of an agent workflow configuration as stored in a
config version. Wire JSON is snake_case and maps one-to-one onto these
models. Per-variant refinements live on the node models so a single
validation pass reports every offending node.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError


INTENT_PREFIX = "intent:"


# =============================================================================
# Enums
# =============================================================================


class NodeType(str, Enum):
    """Workflow node variants."""

    STANDARD = "standard"
    RETRIEVE_VARIABLE = "retrieve_variable"
    END_CALL = "end_call"
    AGENT_TRANSFER = "agent_transfer"
    API_CALL = "api_call"


NODE_TYPES: Set[str] = {t.value for t in NodeType}

SearchMode = Literal["vector", "fts", "hybrid"]
ServiceTier = Literal["auto", "default", "flex"]
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class _Model(BaseModel):
    """Base model: unknown keys are kept so configs round-trip."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, protected_namespaces=())


# =============================================================================
# Shared Sub-configurations
# =============================================================================


class Transition(_Model):
    """Directed, conditioned edge to another node."""

    condition: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    priority: int = 0

    @property
    def intent_name(self) -> Optional[str]:
        """Referenced intent name for ``intent:<name>`` conditions."""
        return parse_intent_condition(self.condition)


class NodeActions(_Model):
    on_entry: Optional[List[str]] = None
    on_exit: Optional[List[str]] = None


class RagOverride(_Model):
    """Per-node RAG tuning."""

    enabled: Optional[bool] = None
    search_mode: Optional[SearchMode] = None
    top_k: Optional[int] = Field(default=None, ge=1, le=50)
    relevance_filter: Optional[bool] = None
    rrf_k: Optional[int] = Field(default=None, ge=1)
    vector_weight: Optional[float] = Field(default=None, ge=0, le=1)
    fts_weight: Optional[float] = Field(default=None, ge=0, le=1)
    hnsw_ef_search: Optional[int] = Field(default=None, ge=1)


class LLMOverride(_Model):
    """Per-node LLM tuning."""

    model_name: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    service_tier: Optional[ServiceTier] = None


class Intent(_Model):
    """Node-local, example-driven trigger condition."""

    description: str
    examples: List[str] = Field(default_factory=list)


class IntentConfig(_Model):
    confidence_threshold: Optional[float] = Field(default=None, ge=0, le=1)
    context_scope: Optional[Literal["node", "conversation"]] = None
    context_messages: Optional[int] = Field(default=None, ge=0)


class VariableExtraction(_Model):
    """One variable extracted by a retrieve_variable node."""

    variable_name: str = Field(..., min_length=1)
    extraction_prompt: str = Field(..., min_length=1)
    default_value: Optional[str] = None


class RetryPolicy(_Model):
    max_retries: int = Field(default=2, ge=0, le=10)
    initial_delay_ms: int = Field(default=500, ge=0)
    max_delay_ms: int = Field(default=5000, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)


class ResponseExtraction(_Model):
    """Maps a JSON path in an API response onto a workflow variable."""

    path: str = Field(..., min_length=1)
    variable_name: str = Field(..., min_length=1)
    default_value: Optional[str] = None


class ApiCallConfig(_Model):
    """HTTP request performed by an api_call node."""

    method: HttpMethod = "GET"
    url: str = Field(..., min_length=1)
    headers: Optional[Dict[str, str]] = None
    query_params: Optional[Dict[str, str]] = None
    body: Optional[Dict[str, Any]] = None
    timeout_seconds: float = Field(default=30, ge=1, le=300)
    retry: Optional[RetryPolicy] = None
    response_extraction: Optional[List[ResponseExtraction]] = None
    response_size_limit_bytes: Optional[int] = Field(default=None, ge=1)
    allowed_hosts: Optional[List[str]] = None


# =============================================================================
# Nodes
# =============================================================================


class BaseNode(_Model):
    """Fields shared by every node variant."""

    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    interruptions_enabled: Optional[bool] = None
    transitions: Optional[List[Transition]] = None
    actions: Optional[NodeActions] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, alias="_metadata")


class StandardNode(BaseNode):
    """Conversational node driven by a system prompt or static text."""

    type: Literal["standard"] = "standard"
    system_prompt: Optional[str] = None
    static_text: Optional[str] = None
    rag: Optional[RagOverride] = None
    llm_override: Optional[LLMOverride] = None
    intents: Optional[Dict[str, Intent]] = None
    intent_config: Optional[IntentConfig] = None

    @model_validator(mode="after")
    def _check_prompt_source(self) -> "StandardNode":
        has_prompt = bool(self.system_prompt)
        has_static = bool(self.static_text)
        if has_prompt and has_static:
            raise PydanticCustomError(
                "prompt_source",
                "Node must have either system_prompt or static_text, not both",
            )
        if not has_prompt and not has_static:
            raise PydanticCustomError(
                "prompt_source",
                "Node must have either system_prompt or static_text",
            )
        return self


class RetrieveVariableNode(BaseNode):
    """Extracts one or more variables from the conversation."""

    type: Literal["retrieve_variable"]
    # Batch mode
    variables: Optional[List[VariableExtraction]] = None
    # Legacy single-variable mode
    variable_name: Optional[str] = None
    extraction_prompt: Optional[str] = None
    default_value: Optional[str] = None

    @property
    def batch_mode(self) -> bool:
        return bool(self.variables)

    @property
    def legacy_mode(self) -> bool:
        return bool(self.variable_name) and bool(self.extraction_prompt)

    @model_validator(mode="after")
    def _check_extraction_mode(self) -> "RetrieveVariableNode":
        if self.batch_mode and self.legacy_mode:
            raise PydanticCustomError(
                "extraction_mode",
                "retrieve_variable node cannot use both a variables array and variable_name + extraction_prompt",
            )
        if not self.batch_mode and not self.legacy_mode:
            raise PydanticCustomError(
                "extraction_mode",
                "retrieve_variable node must have either a variables array or variable_name + extraction_prompt",
            )
        return self


class EndCallNode(BaseNode):
    """Terminal node; hangs up the call."""

    type: Literal["end_call"]
    # Declared only so that their presence can be rejected per field
    system_prompt: Optional[Any] = None
    static_text: Optional[Any] = None
    rag: Optional[Any] = None

    @field_validator("transitions", "actions", "system_prompt", "static_text", "rag", mode="before")
    @classmethod
    def _reject_field(cls, value: Any, info: ValidationInfo) -> Any:
        if value:
            raise PydanticCustomError(
                "end_call_field",
                "end_call nodes cannot define {field}",
                {"field": info.field_name},
            )
        return value


class AgentTransferNode(BaseNode):
    """Hands the conversation over to another agent."""

    type: Literal["agent_transfer"]
    target_agent_id: str = Field(..., min_length=1)
    transfer_context: bool = False
    transfer_message: Optional[str] = None

    @field_validator("transitions")
    @classmethod
    def _reject_transitions(cls, value: Optional[List[Transition]]) -> Optional[List[Transition]]:
        if value:
            raise PydanticCustomError(
                "agent_transfer_transitions",
                "agent_transfer nodes cannot define transitions",
            )
        return value


class ApiCallNode(BaseNode):
    """Calls an external HTTP API and stores parts of the response."""

    type: Literal["api_call"]
    api_call: ApiCallConfig
    static_text: Optional[str] = None


def _node_type(value: Any) -> Optional[str]:
    """Discriminator: a missing type tag means a standard node."""
    if isinstance(value, dict):
        tag = value.get("type")
        if tag is None:
            return NodeType.STANDARD.value
        return tag if isinstance(tag, str) else None
    if isinstance(value, BaseNode):
        return getattr(value, "type", None)
    return None


Node = Annotated[
    Union[
        Annotated[StandardNode, Tag("standard")],
        Annotated[RetrieveVariableNode, Tag("retrieve_variable")],
        Annotated[EndCallNode, Tag("end_call")],
        Annotated[AgentTransferNode, Tag("agent_transfer")],
        Annotated[ApiCallNode, Tag("api_call")],
    ],
    Discriminator(
        _node_type,
        custom_error_type="invalid_node_type",
        custom_error_message="Node type must be one of: " + ", ".join(t.value for t in NodeType),
    ),
]


# =============================================================================
# Workflow
# =============================================================================


class InterruptionSettings(_Model):
    enabled: bool = True
    delay_ms: int = Field(default=300, ge=0, le=5000)
    resume_prompt: str = "Go ahead"


class RecordingSettings(_Model):
    enabled: bool = False
    track: Literal["inbound", "outbound", "both"] = "both"
    channels: Literal["mono", "dual"] = "dual"


class WorkflowLLMConfig(_Model):
    """Workflow-level LLM tuning (the only supported home for it)."""

    enabled: bool = True
    model_name: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, ge=1, le=10000)
    service_tier: Optional[ServiceTier] = None


class WorkflowTTSConfig(_Model):
    """Workflow-level TTS tuning (the only supported home for it)."""

    enabled: bool = True
    voice_name: Optional[str] = None
    voice_id: Optional[str] = None
    model: Optional[str] = None
    stability: Optional[float] = Field(default=None, ge=0, le=1)
    similarity_boost: Optional[float] = Field(default=None, ge=0, le=1)
    style: Optional[float] = Field(default=None, ge=0, le=1)
    use_speaker_boost: Optional[bool] = None
    enable_ssml_parsing: Optional[bool] = None
    pronunciation_dictionaries_enabled: Optional[bool] = None
    pronunciation_dictionary_ids: Optional[List[str]] = None
    aggregate_sentences: Optional[bool] = None


class GlobalIntent(_Model):
    """Workflow-wide intent, evaluated ahead of node-local transitions."""

    description: str
    examples: List[str] = Field(default_factory=list)
    target_node: str = Field(..., min_length=1)
    priority: int = 0
    active_from_nodes: Optional[List[str]] = None
    excluded_from_nodes: Optional[List[str]] = None


class GlobalIntentConfig(_Model):
    enabled: bool = True
    confidence_threshold: Optional[float] = Field(default=None, ge=0, le=1)
    context_messages: Optional[int] = Field(default=None, ge=0)


class QuestionChoice(_Model):
    value: str = Field(..., min_length=1)
    label: Optional[str] = None


class PostCallQuestion(_Model):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: Literal["string", "number", "enum", "boolean"] = "string"
    choices: Optional[List[QuestionChoice]] = None
    required: Optional[bool] = None


class PostCallAnalysis(_Model):
    enabled: bool = False
    questions: List[PostCallQuestion] = Field(default_factory=list)
    additional_instructions: Optional[str] = None


class Workflow(_Model):
    """The dialogue graph plus workflow-wide tuning."""

    initial_node: str = Field(..., min_length=1)
    nodes: List[Node] = Field(..., min_length=1)
    global_prompt: Optional[str] = None
    history_window: int = Field(default=0, ge=0)
    max_transitions: int = Field(default=50, ge=1, le=1000)
    interruption_settings: Optional[InterruptionSettings] = None
    recording: Optional[RecordingSettings] = None
    llm: Optional[WorkflowLLMConfig] = None
    tts: Optional[WorkflowTTSConfig] = None
    global_intents: Optional[Dict[str, GlobalIntent]] = None
    global_intent_config: Optional[GlobalIntentConfig] = None
    post_call_analysis: Optional[PostCallAnalysis] = None


class AgentMeta(_Model):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    version: str = "1.0.0"
    tenant_id: Optional[str] = None


class AutoHangup(_Model):
    enabled: bool = True


class LegacyRootTTS(BaseModel):
    """The single tolerated shape of a deprecated root-level ``tts`` block."""

    model_config = ConfigDict(extra="forbid")

    enabled: Optional[bool] = None


class WorkflowConfig(_Model):
    """Root artifact of one agent config version."""

    agent: AgentMeta
    workflow: Workflow
    # Deprecated root-level blocks; see the semantic pass
    llm: Optional[Dict[str, Any]] = None
    tts: Optional[Dict[str, Any]] = None
    stt: Optional[Dict[str, Any]] = None
    rag: Optional[Dict[str, Any]] = None
    auto_hangup: Optional[AutoHangup] = None

    @property
    def node_ids(self) -> List[str]:
        return [node.id for node in self.workflow.nodes]

    def get_node(self, node_id: str) -> Optional[BaseNode]:
        for node in self.workflow.nodes:
            if node.id == node_id:
                return node
        return None


def parse_intent_condition(condition: Any) -> Optional[str]:
    """Return the intent name of an ``intent:<name>`` condition, else None."""
    if isinstance(condition, str) and condition.startswith(INTENT_PREFIX):
        return condition[len(INTENT_PREFIX):].strip()
    return None
