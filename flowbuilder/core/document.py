"""Wire schema of the exported flow document.

pydantic models mirroring the JSON written on export and accepted on
import. Keys keep their camelCase wire names.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    CHECKPOINT_TIMEOUT_MS,
    CHECKPOINT_TYPE,
    FLOW_AUTHOR,
    FLOW_TAGS,
    FLOW_TYPE,
    FLOW_VERSION,
)

NodeType = Literal["startNode", "endNode", "actionNode", "checkpointArea"]


def default_options() -> dict[str, Any]:
    """Run options written into every exported flow."""
    return {
        "infinite": False,
        "maxRuns": 1,
        "runDelay": 0,
        "metadata": {
            "complexity": "medium",
            "estimatedDuration": 60000,
            "requiresManualInput": False,
            "supportedDevices": ["iOS"],
            "minIOSVersion": "14.0",
        },
    }


class PositionModel(BaseModel):
    x: float
    y: float


class NodeModel(BaseModel):
    """A node of the visual layout."""

    id: str
    type: NodeType
    position: PositionModel
    data: dict[str, Any] = Field(default_factory=dict)


class EdgeModel(BaseModel):
    """An edge of the visual layout."""

    id: str
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None
    type: str = "smoothstep"


class VisualLayoutModel(BaseModel):
    nodes: list[NodeModel]
    edges: list[EdgeModel] = Field(default_factory=list)


class ActionModel(BaseModel):
    """A flattened action; its parameters are extra fields."""

    model_config = ConfigDict(extra="allow")

    type: str
    description: str = ""

    @property
    def params(self) -> dict[str, Any]:
        """Action parameters (every field except type and description)."""
        return dict(self.model_extra or {})


class CheckpointModel(BaseModel):
    id: str
    name: str
    type: str = CHECKPOINT_TYPE
    timeout: int = CHECKPOINT_TIMEOUT_MS
    critical: bool = False
    description: str = ""
    dependencies: list[str] = Field(default_factory=list)
    actions: list[ActionModel] = Field(default_factory=list)


class FlowDefinitionModel(BaseModel):
    """The flow definition; ``name`` and ``checkpoints`` are required."""

    flowId: str = ""
    name: str
    type: str = FLOW_TYPE
    version: str = FLOW_VERSION
    description: str = ""
    author: str = FLOW_AUTHOR
    tags: list[str] = Field(default_factory=lambda: list(FLOW_TAGS))
    selectors: dict[str, str] = Field(default_factory=dict)
    checkpointGroups: dict[str, str] = Field(default_factory=dict)
    checkpoints: list[CheckpointModel]
    visualLayout: Optional[VisualLayoutModel] = None
    options: dict[str, Any] = Field(default_factory=default_options)


class FlowEnvelope(BaseModel):
    """Outer document wrapping a flow definition for upload."""

    flowDefinition: FlowDefinitionModel
    userId: str = FLOW_AUTHOR
    overwrite: bool = False
