"""
Workflow configuration model and validation.

Structural validation checks field shapes per node variant; semantic
validation checks graph-level invariants. ``validate_workflow`` runs both.
"""

from agentflow_core.workflow.formatter import (
    format_error,
    format_field_path,
    format_validation_errors,
    summarize_issues,
)
from agentflow_core.workflow.issues import (
    Issue,
    IssueSeverity,
    SemanticResult,
    StructureResult,
    WorkflowValidationResult,
)
from agentflow_core.workflow.models import NodeType, WorkflowConfig
from agentflow_core.workflow.semantics import SemanticValidator, validate_semantics
from agentflow_core.workflow.structure import validate_structure
from agentflow_core.workflow.validator import WorkflowValidator, validate_workflow

__all__ = [
    "Issue",
    "IssueSeverity",
    "NodeType",
    "SemanticResult",
    "SemanticValidator",
    "StructureResult",
    "WorkflowConfig",
    "WorkflowValidationResult",
    "WorkflowValidator",
    "format_error",
    "format_field_path",
    "format_validation_errors",
    "summarize_issues",
    "validate_semantics",
    "validate_structure",
    "validate_workflow",
]
