"""
Structural validation.

Checks that every field of a raw workflow configuration has the shape and
type its node variant declares. All problems are collected in one pass.
"""

from typing import Any, List, Mapping, Optional, Sequence

import structlog
from pydantic import ValidationError

from agentflow_core.workflow.issues import Issue, IssuePath, StructureResult
from agentflow_core.workflow.models import NODE_TYPES, WorkflowConfig

logger = structlog.get_logger(__name__)


def validate_structure(raw: Any) -> StructureResult:
    """
    Validate a raw workflow configuration against the graph model.

    Args:
        raw: Parsed JSON value

    Returns:
        StructureResult carrying the typed config, or every issue found
    """
    if not isinstance(raw, Mapping):
        return StructureResult(
            success=False,
            issues=[
                Issue(
                    path=(),
                    message="Workflow configuration must be a JSON object",
                    code="invalid_type",
                )
            ],
        )

    try:
        config = WorkflowConfig.model_validate(dict(raw))
    except ValidationError as exc:
        issues = issues_from_validation_error(exc, raw)
        logger.debug("workflow_structure_invalid", issue_count=len(issues))
        return StructureResult(success=False, issues=issues)

    return StructureResult(success=True, value=config)


def issues_from_validation_error(exc: ValidationError, raw: Any = None) -> List[Issue]:
    """Translate a pydantic ValidationError into issues."""
    issues: List[Issue] = []
    for error in exc.errors(include_url=False):
        path = _clean_location(error["loc"])
        issues.append(
            Issue(
                path=path,
                message=error["msg"],
                code=error["type"],
                node_id=_node_id_at(raw, path),
            )
        )
    return issues


def _clean_location(loc: Sequence[Any]) -> IssuePath:
    """Drop the union tags pydantic inserts after a node index."""
    cleaned: List[Any] = []
    for position, segment in enumerate(loc):
        if (
            isinstance(segment, str)
            and segment in NODE_TYPES
            and position >= 2
            and isinstance(loc[position - 1], int)
            and loc[position - 2] == "nodes"
        ):
            continue
        cleaned.append(segment)
    return tuple(cleaned)


def _node_id_at(raw: Any, path: IssuePath) -> Optional[str]:
    if len(path) < 3 or path[0] != "workflow" or path[1] != "nodes":
        return None
    index = path[2]
    if not isinstance(index, int) or not isinstance(raw, Mapping):
        return None

    workflow = raw.get("workflow")
    nodes = workflow.get("nodes") if isinstance(workflow, Mapping) else None
    if not isinstance(nodes, list) or not 0 <= index < len(nodes):
        return None

    node = nodes[index]
    if isinstance(node, Mapping) and isinstance(node.get("id"), str) and node["id"]:
        return node["id"]
    return None
