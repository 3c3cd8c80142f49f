"""Flow validation.

Validation is an explicit step, separate from export: it returns a
structured result listing every reason the flow is not ready, and never
raises.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .catalog import missing_required_params
from .model import GraphState


class ReasonKind(Enum):
    """Kinds of validation findings."""

    NO_ACTIONS = "NoActions"
    DISCONNECTED_NODE = "DisconnectedNode"
    MISSING_PARAMS = "MissingParams"


@dataclass(frozen=True)
class ValidationReason:
    """One validation finding.

    Attributes:
        kind: What is wrong
        message: Human-readable explanation
        node_id: Offending node, when the finding concerns one
    """

    kind: ReasonKind
    message: str
    node_id: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes:
        valid: True if validation passed
        reasons: Findings that make the flow invalid
        warnings: Findings that do not block export
    """

    valid: bool
    reasons: list[ValidationReason]
    warnings: list[ValidationReason] = field(default_factory=list)

    @classmethod
    def success(cls, *warnings: ValidationReason) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(valid=True, reasons=[], warnings=list(warnings))

    @classmethod
    def failure(cls, *reasons: ValidationReason) -> "ValidationResult":
        """Create a failed validation result."""
        return cls(valid=False, reasons=list(reasons))

    @property
    def errors(self) -> list[str]:
        """Messages of the blocking findings."""
        return [r.message for r in self.reasons]

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid


def no_actions() -> ValidationReason:
    return ValidationReason(ReasonKind.NO_ACTIONS, "Flow must contain at least one action")


def disconnected_node(node_id: str) -> ValidationReason:
    return ValidationReason(
        ReasonKind.DISCONNECTED_NODE,
        f"Node '{node_id}' is not connected to the flow",
        node_id,
    )


def validate_graph(state: GraphState) -> ValidationResult:
    """Validate a graph before export.

    Checks:
    - At least one action node exists
    - Every non-terminal node (action or area) has at least one incident edge

    Actions missing required configuration are reported as warnings only.

    Args:
        state: Graph to validate

    Returns:
        ValidationResult with every blocking reason
    """
    actions = state.actions
    if not actions:
        return ValidationResult.failure(no_actions())

    connected: set[str] = set()
    for edge in state.edges:
        connected.add(edge.source)
        connected.add(edge.target)

    reasons = [
        disconnected_node(n.id)
        for n in state.nodes
        if not n.is_terminal and n.id not in connected
    ]

    warnings: list[ValidationReason] = []
    for action in actions:
        missing = missing_required_params(action.action_type or "", action.config)
        if missing:
            warnings.append(
                ValidationReason(
                    ReasonKind.MISSING_PARAMS,
                    f"Action '{action.label or action.id}' is missing: {', '.join(missing)}",
                    action.id,
                )
            )

    if reasons:
        result = ValidationResult.failure(*reasons)
        result.warnings = warnings
        return result

    return ValidationResult.success(*warnings)
