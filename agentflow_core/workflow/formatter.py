"""
Validation result formatting.

Turns issues into path-qualified, human-readable messages for operators.
Output is deterministic for identical input.
"""

import re
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from agentflow_core.exceptions import (
    ConfigurationError,
    RemoteApplicationError,
    TimeoutError,
    TransportError,
    WorkflowValidationError,
)
from agentflow_core.workflow.issues import (
    Issue,
    PathSegment,
    SemanticResult,
    StructureResult,
    WorkflowValidationResult,
)

FormattableResult = Union[WorkflowValidationResult, SemanticResult, StructureResult, Iterable[Issue]]

# Friendly labels for well-known keys
FIELD_NAME_MAPPINGS: Dict[str, str] = {
    "agent": "Agent",
    "workflow": "Workflow",
    "nodes": "Nodes",
    "initial_node": "Initial node",
    "system_prompt": "System prompt",
    "static_text": "Static text",
    "global_prompt": "Global prompt",
    "target": "Target node",
    "target_node": "Target node",
    "target_agent_id": "Target agent",
    "transfer_message": "Transfer message",
    "variable_name": "Variable name",
    "extraction_prompt": "Extraction prompt",
    "max_tokens": "Max tokens",
    "top_k": "Top K",
    "api_call": "API call",
    "url": "URL",
    "llm": "LLM",
    "llm_override": "LLM override",
    "tts": "TTS",
    "stt": "STT",
    "rag": "RAG",
    "global_intents": "Global intents",
    "active_from_nodes": "Active from nodes",
    "excluded_from_nodes": "Excluded from nodes",
    "post_call_analysis": "Post-call analysis",
    "tenant_id": "Tenant",
    "agent_id": "Agent",
    "phone_number": "Phone number",
    # camelCase keys sent by form layers
    "systemPrompt": "System prompt",
    "targetNode": "Target node",
    "conditionType": "Condition type",
    "confidenceThreshold": "Confidence threshold",
    "maxTokens": "Max tokens",
    "apiKey": "API key",
    "ragConfigId": "RAG configuration",
    "voiceConfigId": "Voice configuration",
    "agentId": "Agent",
    "tenantId": "Tenant",
    "phoneNumber": "Phone number",
}

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def format_segment(segment: PathSegment) -> str:
    if isinstance(segment, int):
        return f"item {segment + 1}"

    mapped = FIELD_NAME_MAPPINGS.get(segment)
    if mapped:
        return mapped

    # camelCase and snake_case to Title Case
    words = _CAMEL_BOUNDARY.sub(r"\1 \2", segment).replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def format_field_path(path: Sequence[PathSegment]) -> str:
    """Render an issue path as a human label, e.g. ``Workflow > Nodes > item 2``."""
    if not path:
        return "Value"
    return " > ".join(format_segment(segment) for segment in path)


def format_issue(issue: Issue) -> str:
    label = format_field_path(issue.path)
    if issue.message.lower().startswith(label.lower()):
        return issue.message
    return f"{label}: {issue.message}"


def _split(result: FormattableResult) -> Tuple[List[Issue], List[Issue]]:
    if isinstance(result, (WorkflowValidationResult, SemanticResult)):
        return list(result.errors), list(result.warnings)
    if isinstance(result, StructureResult):
        return list(result.issues), []
    issues = list(result)
    return [i for i in issues if i.is_error], [i for i in issues if not i.is_error]


def format_validation_errors(result: FormattableResult) -> str:
    """
    Render a validation result, errors first, then warnings.

    Args:
        result: Any validation result or a plain iterable of issues

    Returns:
        Multi-line text; ``"No validation issues found"`` when empty
    """
    errors, warnings = _split(result)
    if not errors and not warnings:
        return "No validation issues found"

    lines: List[str] = []
    for title, issues in (("Errors", errors), ("Warnings", warnings)):
        if not issues:
            continue
        lines.append(f"{title} ({len(issues)}):")
        lines.extend(f"  - {format_issue(issue)}" for issue in issues)
    return "\n".join(lines)


def summarize_issues(issues: Sequence[Issue]) -> str:
    """One-line summary of a list of issues."""
    if not issues:
        return "No validation issues found"
    if len(issues) == 1:
        return format_issue(issues[0])

    labels: List[str] = []
    for issue in issues:
        label = format_field_path(issue.path)
        if label not in labels:
            labels.append(label)

    if len(labels) == 1:
        return f"{labels[0]} has {len(issues)} validation errors"
    if len(labels) <= 3:
        return f"Please fix issues with: {', '.join(labels)}"
    return f"Please fix {len(issues)} validation errors"


def extract_field_errors(issues: Iterable[Issue]) -> List[Dict[str, str]]:
    """Field-level errors as ``{"path": <dotted path>, "message": ...}`` dicts, for form layers."""
    return [{"path": issue.dotted_path, "message": format_issue(issue)} for issue in issues]


def format_error(error: Exception) -> str:
    """Map a failure onto an operator-facing sentence."""
    if isinstance(error, WorkflowValidationError):
        return summarize_issues(error.errors)
    if isinstance(error, ConfigurationError):
        return "The orchestrator connection is not configured. Please contact your administrator."
    if isinstance(error, TimeoutError):
        return "The request took too long. Please try again."
    if isinstance(error, TransportError):
        return "Unable to reach the orchestrator. Please try again later."
    if isinstance(error, RemoteApplicationError):
        return _format_remote_error(error)
    return "An unexpected error occurred. Please try again."


def _format_remote_error(error: RemoteApplicationError) -> str:
    status = error.status_code
    if status == 401:
        return "The orchestrator rejected the request signature."
    if status == 403:
        return "You don't have permission to perform this action."
    if status == 429:
        return "Too many requests. Please wait a moment and try again."
    if status >= 500:
        return "Something went wrong on the orchestrator. Please try again later."
    message = error.message.strip()
    if message:
        return message[:1].upper() + message[1:]
    return "The request could not be completed."
