"""
Validation issues and results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from agentflow_core.workflow.models import WorkflowConfig

PathSegment = Union[str, int]
IssuePath = Tuple[PathSegment, ...]


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Issue:
    """A single problem found in a workflow configuration."""

    path: IssuePath
    message: str
    code: str
    severity: IssueSeverity = IssueSeverity.ERROR
    node_id: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == IssueSeverity.ERROR

    @property
    def dotted_path(self) -> str:
        """Path as ``workflow.nodes[0].system_prompt``."""
        return format_dotted_path(self.path)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "path": self.dotted_path,
            "message": self.message,
            "code": self.code,
            "severity": self.severity.value,
        }
        if self.node_id is not None:
            result["node_id"] = self.node_id
        return result


def format_dotted_path(path: Sequence[PathSegment]) -> str:
    parts: List[str] = []
    for segment in path:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif parts:
            parts.append(f".{segment}")
        else:
            parts.append(str(segment))
    return "".join(parts)


@dataclass
class StructureResult:
    """Outcome of the structural pass."""

    success: bool
    value: Optional[WorkflowConfig] = None
    issues: List[Issue] = field(default_factory=list)


@dataclass
class SemanticResult:
    """Outcome of the semantic pass."""

    errors: List[Issue] = field(default_factory=list)
    warnings: List[Issue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class WorkflowValidationResult:
    """Combined outcome of both passes."""

    config: Optional[WorkflowConfig] = None
    errors: List[Issue] = field(default_factory=list)
    warnings: List[Issue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }
