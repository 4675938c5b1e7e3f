"""
Semantic validation.

Checks graph-level invariants that no per-field schema can express:
node id uniqueness, transition closure, terminal node existence, intent
cross-references, global intent references, deprecated root blocks and
post-call question choices.

Works on a typed WorkflowConfig or on a raw mapping, so it can run even
when the structural pass failed.
"""

from collections import Counter, deque
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple, Union

import structlog
from pydantic import ValidationError

from agentflow_core.workflow.issues import Issue, IssueSeverity, SemanticResult
from agentflow_core.workflow.models import (
    LegacyRootTTS,
    NodeType,
    WorkflowConfig,
    parse_intent_condition,
)

logger = structlog.get_logger(__name__)

DEPRECATED_ROOT_BLOCKS = ("llm", "tts", "stt", "rag")

ROOT_BLOCK_HOMES = {
    "llm": "workflow.llm",
    "tts": "workflow.tts",
    "stt": "the voice configuration",
    "rag": "the RAG configuration or a node rag override",
}


class SemanticValidator:
    """
    Validates graph-level invariants of a workflow configuration.

    Each check is independent: a failing check never suppresses another.
    Reachability from the initial node is not enforced; it is reported as
    a warning only when ``warn_unreachable`` is set.
    """

    def __init__(self, warn_unreachable: bool = False):
        self.warn_unreachable = warn_unreachable

    def validate(self, config: Union[WorkflowConfig, Mapping[str, Any]]) -> SemanticResult:
        data = _as_mapping(config)
        if data is None:
            return SemanticResult(
                errors=[
                    Issue(
                        path=(),
                        message="Workflow configuration must be a JSON object",
                        code="invalid_type",
                    )
                ]
            )

        workflow = _mapping(data.get("workflow"))
        nodes = list(_indexed_nodes(workflow))
        node_ids = {node["id"] for _, node in nodes if _is_id(node.get("id"))}

        issues: List[Issue] = []
        issues.extend(self._check_initial_node(workflow, node_ids))
        issues.extend(self._check_unique_ids(nodes))
        issues.extend(self._check_transition_targets(nodes, node_ids))
        issues.extend(self._check_end_call(nodes))
        issues.extend(self._check_intent_references(workflow, nodes))
        issues.extend(self._check_global_intents(workflow, node_ids))
        issues.extend(self._check_root_blocks(data))
        issues.extend(self._check_post_call_questions(workflow))
        issues.extend(self._check_agent_transfers(data, nodes))
        if self.warn_unreachable:
            issues.extend(self._check_reachability(workflow, nodes, node_ids))

        result = SemanticResult(
            errors=[i for i in issues if i.severity == IssueSeverity.ERROR],
            warnings=[i for i in issues if i.severity == IssueSeverity.WARNING],
        )
        logger.debug(
            "workflow_semantics_checked",
            node_count=len(nodes),
            error_count=len(result.errors),
            warning_count=len(result.warnings),
        )
        return result

    def _check_initial_node(self, workflow: Mapping[str, Any], node_ids: Set[str]) -> List[Issue]:
        initial = workflow.get("initial_node")
        if not _is_id(initial) or initial in node_ids:
            return []
        return [
            Issue(
                path=("workflow", "initial_node"),
                message=f"Initial node '{initial}' does not exist in the nodes array",
                code="invalid_initial_node",
            )
        ]

    def _check_unique_ids(self, nodes: List[Tuple[int, Mapping[str, Any]]]) -> List[Issue]:
        counts = Counter(node["id"] for _, node in nodes if _is_id(node.get("id")))
        issues = []
        for node_id, count in counts.items():
            if count > 1:
                issues.append(
                    Issue(
                        path=("workflow", "nodes"),
                        message=f"Node ID '{node_id}' is used by {count} nodes; node IDs must be unique",
                        code="duplicate_node_id",
                        node_id=node_id,
                    )
                )
        return issues

    def _check_transition_targets(
        self,
        nodes: List[Tuple[int, Mapping[str, Any]]],
        node_ids: Set[str],
    ) -> List[Issue]:
        issues = []
        for _, node in nodes:
            for position, transition in _transitions(node):
                target = transition.get("target")
                if not _is_id(target) or target in node_ids:
                    continue
                issues.append(
                    Issue(
                        path=("workflow", "nodes"),
                        message=(
                            f"Transition {position + 1} of node '{_label(node)}' "
                            f"targets unknown node '{target}'"
                        ),
                        code="dangling_transition",
                        node_id=_node_id(node),
                    )
                )
        return issues

    def _check_end_call(self, nodes: List[Tuple[int, Mapping[str, Any]]]) -> List[Issue]:
        if any(node.get("type") == NodeType.END_CALL.value for _, node in nodes):
            return []
        return [
            Issue(
                path=("workflow", "nodes"),
                message="Workflow must have at least one end_call node",
                code="missing_end_call",
            )
        ]

    def _check_intent_references(
        self,
        workflow: Mapping[str, Any],
        nodes: List[Tuple[int, Mapping[str, Any]]],
    ) -> List[Issue]:
        global_names = set(_mapping(workflow.get("global_intents")).keys())
        issues = []

        for index, node in nodes:
            local_names = set(_mapping(node.get("intents")).keys())
            missing: List[str] = []
            for _, transition in _transitions(node):
                name = parse_intent_condition(transition.get("condition"))
                if name is None or name in local_names or name in global_names:
                    continue
                if name not in missing:
                    missing.append(name)

            if missing:
                names = ", ".join(f"'{name}'" for name in missing)
                issues.append(
                    Issue(
                        path=("workflow", "nodes", index, "intents"),
                        message=(
                            f"Node '{_label(node)}' has intent transitions without "
                            f"matching intents: {names}"
                        ),
                        code="missing_intents",
                        node_id=_node_id(node),
                    )
                )
        return issues

    def _check_global_intents(self, workflow: Mapping[str, Any], node_ids: Set[str]) -> List[Issue]:
        issues = []
        for name, intent in _mapping(workflow.get("global_intents")).items():
            if not isinstance(intent, Mapping):
                continue
            base = ("workflow", "global_intents", name)

            target = intent.get("target_node")
            if _is_id(target) and target not in node_ids:
                issues.append(
                    Issue(
                        path=base + ("target_node",),
                        message=f"Global intent '{name}' targets unknown node '{target}'",
                        code="invalid_global_intent_target",
                    )
                )

            for scope in ("active_from_nodes", "excluded_from_nodes"):
                entries = intent.get(scope)
                if not isinstance(entries, list):
                    continue
                for position, entry in enumerate(entries):
                    if _is_id(entry) and entry not in node_ids:
                        issues.append(
                            Issue(
                                path=base + (scope, position),
                                message=f"Global intent '{name}' lists unknown node '{entry}' in {scope}",
                                code="invalid_global_intent_scope",
                            )
                        )
        return issues

    def _check_root_blocks(self, data: Mapping[str, Any]) -> List[Issue]:
        issues = []
        for key in DEPRECATED_ROOT_BLOCKS:
            if key not in data or data[key] is None:
                continue
            value = data[key]

            if key == "tts" and _is_legacy_tts(value):
                issues.append(
                    Issue(
                        path=(key,),
                        message="Root-level tts is deprecated; move it to workflow.tts",
                        code="deprecated_root_config",
                        severity=IssueSeverity.WARNING,
                    )
                )
            elif isinstance(value, Mapping) and not value:
                issues.append(
                    Issue(
                        path=(key,),
                        message=f"Empty root-level {key} block is deprecated and can be removed",
                        code="deprecated_root_config",
                        severity=IssueSeverity.WARNING,
                    )
                )
            else:
                issues.append(
                    Issue(
                        path=(key,),
                        message=f"Root-level {key} is no longer supported; configure it in {ROOT_BLOCK_HOMES[key]}",
                        code="forbidden_root_config",
                    )
                )
        return issues

    def _check_post_call_questions(self, workflow: Mapping[str, Any]) -> List[Issue]:
        analysis = _mapping(workflow.get("post_call_analysis"))
        questions = analysis.get("questions")
        if not isinstance(questions, list):
            return []

        issues = []
        for index, question in enumerate(questions):
            if not isinstance(question, Mapping) or question.get("type") != "enum":
                continue
            if not question.get("choices"):
                issues.append(
                    Issue(
                        path=("workflow", "post_call_analysis", "questions", index, "choices"),
                        message=f"Enum question '{question.get('name', index + 1)}' must declare at least one choice",
                        code="missing_enum_choices",
                    )
                )
        return issues

    def _check_agent_transfers(
        self,
        data: Mapping[str, Any],
        nodes: List[Tuple[int, Mapping[str, Any]]],
    ) -> List[Issue]:
        agent_id = _mapping(data.get("agent")).get("id")
        if not _is_id(agent_id):
            return []

        issues = []
        for index, node in nodes:
            if node.get("type") != NodeType.AGENT_TRANSFER.value:
                continue
            if node.get("target_agent_id") == agent_id:
                issues.append(
                    Issue(
                        path=("workflow", "nodes", index, "target_agent_id"),
                        message=f"Agent transfer node '{_label(node)}' cannot transfer to its own agent",
                        code="agent_transfer_self",
                        node_id=_node_id(node),
                    )
                )
        return issues

    def _check_reachability(
        self,
        workflow: Mapping[str, Any],
        nodes: List[Tuple[int, Mapping[str, Any]]],
        node_ids: Set[str],
    ) -> List[Issue]:
        initial = workflow.get("initial_node")
        if not _is_id(initial) or initial not in node_ids:
            return []

        edges: Dict[str, Set[str]] = {}
        for _, node in nodes:
            if not _is_id(node.get("id")):
                continue
            targets = edges.setdefault(node["id"], set())
            for _, transition in _transitions(node):
                target = transition.get("target")
                if _is_id(target) and target in node_ids:
                    targets.add(target)

        # Global intents can fire from any node, so their targets count as roots
        roots = {initial}
        for intent in _mapping(workflow.get("global_intents")).values():
            if not isinstance(intent, Mapping):
                continue
            target = intent.get("target_node")
            if _is_id(target) and target in node_ids:
                roots.add(target)

        reached: Set[str] = set(roots)
        queue = deque(roots)
        while queue:
            for target in edges.get(queue.popleft(), ()):
                if target not in reached:
                    reached.add(target)
                    queue.append(target)

        issues = []
        for index, node in nodes:
            node_id = node.get("id")
            if _is_id(node_id) and node_id not in reached:
                issues.append(
                    Issue(
                        path=("workflow", "nodes", index),
                        message=f"Node '{_label(node)}' is not reachable from the initial node",
                        code="unreachable_node",
                        severity=IssueSeverity.WARNING,
                        node_id=node_id,
                    )
                )
        return issues


def validate_semantics(
    config: Union[WorkflowConfig, Mapping[str, Any]],
    warn_unreachable: bool = False,
) -> SemanticResult:
    """Run every semantic check against a config."""
    return SemanticValidator(warn_unreachable=warn_unreachable).validate(config)


# =============================================================================
# Helpers
# =============================================================================


def _as_mapping(config: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(config, WorkflowConfig):
        return config.model_dump(by_alias=True, exclude_none=True)
    if isinstance(config, Mapping):
        return config
    return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _is_id(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _indexed_nodes(workflow: Mapping[str, Any]) -> Iterator[Tuple[int, Mapping[str, Any]]]:
    nodes = workflow.get("nodes")
    if not isinstance(nodes, list):
        return
    for index, node in enumerate(nodes):
        if isinstance(node, Mapping):
            # A missing type tag means a standard node
            if "type" not in node:
                node = {**node, "type": NodeType.STANDARD.value}
            yield index, node


def _transitions(node: Mapping[str, Any]) -> Iterator[Tuple[int, Mapping[str, Any]]]:
    transitions = node.get("transitions")
    if not isinstance(transitions, list):
        return
    for position, transition in enumerate(transitions):
        if isinstance(transition, Mapping):
            yield position, transition


def _node_id(node: Mapping[str, Any]) -> Optional[str]:
    node_id = node.get("id")
    return node_id if _is_id(node_id) else None


def _label(node: Mapping[str, Any]) -> str:
    return _node_id(node) or "<unnamed>"


def _is_legacy_tts(value: Any) -> bool:
    try:
        LegacyRootTTS.model_validate(value)
    except ValidationError:
        return False
    return True
