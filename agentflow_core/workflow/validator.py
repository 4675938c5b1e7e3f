"""
Workflow validator.

Runs the structural pass and then the semantic pass. The semantic pass
also runs on structurally broken input so operators see every problem
at once.
"""

from typing import Any

import structlog

from agentflow_core.exceptions import WorkflowValidationError
from agentflow_core.workflow.issues import WorkflowValidationResult
from agentflow_core.workflow.models import WorkflowConfig
from agentflow_core.workflow.semantics import SemanticValidator
from agentflow_core.workflow.structure import validate_structure

logger = structlog.get_logger(__name__)


class WorkflowValidator:
    """
    Two-pass workflow validator.

    Checks:
    - Structure (field shapes and per-variant refinements)
    - Semantics (graph invariants and cross references)
    """

    def __init__(self, warn_unreachable: bool = False):
        self.semantics = SemanticValidator(warn_unreachable=warn_unreachable)

    def validate(self, raw: Any) -> WorkflowValidationResult:
        """
        Validate a raw workflow configuration.

        Args:
            raw: Parsed JSON value

        Returns:
            WorkflowValidationResult; ``config`` is set only when the
            structural pass succeeded
        """
        structure = validate_structure(raw)
        semantic = self.semantics.validate(structure.value if structure.success else raw)

        result = WorkflowValidationResult(
            config=structure.value,
            errors=list(structure.issues) + semantic.errors,
            warnings=list(semantic.warnings),
        )
        logger.info(
            "workflow_validated",
            valid=result.valid,
            structural_issues=len(structure.issues),
            semantic_errors=len(semantic.errors),
            warnings=len(result.warnings),
        )
        return result

    def ensure_valid(self, raw: Any) -> WorkflowConfig:
        """
        Validate and return the typed config.

        Raises:
            WorkflowValidationError: If any blocking issue was found
        """
        result = self.validate(raw)
        if not result.valid or result.config is None:
            raise WorkflowValidationError(result.errors, result.warnings)
        return result.config


def validate_workflow(raw: Any, warn_unreachable: bool = False) -> WorkflowValidationResult:
    """Validate a raw workflow configuration with both passes."""
    return WorkflowValidator(warn_unreachable=warn_unreachable).validate(raw)
