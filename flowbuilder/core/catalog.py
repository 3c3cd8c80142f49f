"""Catalog of supported action types.

Maps each ``actionType`` to its category, palette colour, description and
parameter specification. The core only uses it to describe and check
configuration; it never executes an action.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class FieldSpec:
    """One configuration field of an action.

    ``name`` may be dotted (``coordinates.x``) to address a nested value.
    """

    name: str
    label: str
    type: str  # text | number | boolean | select | selector
    required: bool = False
    default: Any = None
    options: tuple[str, ...] = ()
    placeholder: str = ""


@dataclass(frozen=True)
class ActionSpec:
    """Parameter specification for one action type."""

    action_type: str
    description: str
    required_params: tuple[str, ...] = ()
    optional_params: tuple[str, ...] = ()
    fields: tuple[FieldSpec, ...] = ()


@dataclass(frozen=True)
class ActionCategory:
    """A palette group of action types."""

    key: str
    name: str
    color: str
    actions: tuple[str, ...] = field(default_factory=tuple)


CATEGORIES: tuple[ActionCategory, ...] = (
    ActionCategory("basic", "Basic Actions", "#3b82f6", ("click", "findAndClick", "type", "wait")),
    ActionCategory("navigation", "Navigation", "#10b981", ("openApp", "pressButton", "swipe")),
    ActionCategory("advanced", "Advanced", "#8b5cf6", ("waitForElement", "extractText", "performActions")),
    ActionCategory("conditional", "Conditional", "#f59e0b", ("ifExists", "loop")),
    ActionCategory("data", "Data", "#ef4444", ("setContext", "getContext", "apiCall")),
)

CONDITIONAL_ACTIONS: frozenset[str] = frozenset({"ifExists", "loop"})
"""Action types with separate ``true``/``false`` outgoing handles"""

CONDITIONAL_HANDLES: tuple[str, str] = ("true", "false")

_WAIT_AFTER = FieldSpec("waitAfter", "Wait After (ms)", "number")

ACTION_SPECS: dict[str, ActionSpec] = {
    spec.action_type: spec
    for spec in (
        ActionSpec(
            "click", "Click at specific coordinates",
            ("coordinates",), ("waitAfter",),
            (
                FieldSpec("coordinates.x", "X Coordinate", "number", required=True),
                FieldSpec("coordinates.y", "Y Coordinate", "number", required=True),
                _WAIT_AFTER,
            ),
        ),
        ActionSpec(
            "findAndClick", "Find element by selector and click it",
            ("selector",), ("timeout", "waitAfter"),
            (
                FieldSpec("selector", "Element Selector", "selector", required=True),
                FieldSpec("timeout", "Timeout (ms)", "number", default=10000),
                _WAIT_AFTER,
            ),
        ),
        ActionSpec(
            "type", "Type text in element or active field",
            ("text",), ("selector", "clearFirst", "timeout"),
            (
                FieldSpec("text", "Text to Type", "text", required=True),
                FieldSpec("selector", "Element Selector", "selector"),
                FieldSpec("clearFirst", "Clear First", "boolean"),
                FieldSpec("timeout", "Timeout (ms)", "number"),
            ),
        ),
        ActionSpec(
            "wait", "Wait for specified duration",
            ("duration",), (),
            (FieldSpec("duration", "Duration (ms)", "number", required=True, default=2000),),
        ),
        ActionSpec(
            "openApp", "Open application by bundle ID",
            ("bundleId",), ("waitAfter",),
            (
                FieldSpec(
                    "bundleId", "Bundle ID", "text", required=True,
                    placeholder="com.apple.mobileslideshow",
                ),
                _WAIT_AFTER,
            ),
        ),
        ActionSpec(
            "pressButton", "Press device button",
            ("button",), ("waitAfter",),
            (
                FieldSpec(
                    "button", "Button", "select", required=True,
                    options=("home", "volumeUp", "volumeDown", "power"),
                ),
                _WAIT_AFTER,
            ),
        ),
        ActionSpec(
            "swipe", "Swipe from one point to another",
            ("from", "to"), ("duration", "direction"),
            (
                FieldSpec("from.x", "From X", "number", required=True),
                FieldSpec("from.y", "From Y", "number", required=True),
                FieldSpec("to.x", "To X", "number", required=True),
                FieldSpec("to.y", "To Y", "number", required=True),
                FieldSpec("duration", "Duration (ms)", "number", default=1000),
            ),
        ),
        ActionSpec(
            "waitForElement", "Wait for element to appear",
            ("selector",), ("timeout", "interval"),
            (
                FieldSpec("selector", "Element Selector", "selector", required=True),
                FieldSpec("timeout", "Timeout (ms)", "number", default=10000),
                FieldSpec("interval", "Check Interval (ms)", "number", default=1000),
            ),
        ),
        ActionSpec(
            "extractText", "Extract text from element",
            ("selector",), ("saveToContext", "timeout"),
            (
                FieldSpec("selector", "Element Selector", "selector", required=True),
                FieldSpec("saveToContext", "Save to Context Key", "text"),
                FieldSpec("timeout", "Timeout (ms)", "number"),
            ),
        ),
        ActionSpec("performActions", "Perform complex gestures"),
        ActionSpec(
            "ifExists", "Conditional action based on element",
            ("selector",), ("timeout",),
            (
                FieldSpec("selector", "Element Selector", "selector", required=True),
                FieldSpec("timeout", "Timeout (ms)", "number", default=3000),
            ),
        ),
        ActionSpec(
            "loop", "Repeat actions multiple times",
            ("iterations",), ("delayBetween",),
            (
                FieldSpec("iterations", "Number of Iterations", "number", required=True, default=5),
                FieldSpec("delayBetween", "Delay Between (ms)", "number"),
            ),
        ),
        ActionSpec(
            "setContext", "Save value to context",
            ("key", "value"), (),
            (
                FieldSpec("key", "Context Key", "text", required=True),
                FieldSpec("value", "Value", "text", required=True),
            ),
        ),
        ActionSpec(
            "getContext", "Retrieve value from context",
            ("key",), (),
            (FieldSpec("key", "Context Key", "text", required=True),),
        ),
        ActionSpec(
            "apiCall", "Make HTTP API call",
            ("url",), ("method", "headers", "data", "saveToContext", "timeout"),
            (
                FieldSpec("url", "URL", "text", required=True),
                FieldSpec(
                    "method", "Method", "select", default="GET",
                    options=("GET", "POST", "PUT", "DELETE"),
                ),
                FieldSpec("saveToContext", "Save to Context", "text"),
                FieldSpec("timeout", "Timeout (ms)", "number"),
            ),
        ),
    )
}


def get_action_spec(action_type: str) -> Optional[ActionSpec]:
    """Return the spec for ``action_type``, or None when unknown."""
    return ACTION_SPECS.get(action_type)


def category_of(action_type: str) -> Optional[ActionCategory]:
    """Return the palette category containing ``action_type``."""
    for category in CATEGORIES:
        if action_type in category.actions:
            return category
    return None


def color_for(action_type: str) -> Optional[str]:
    """Palette colour of ``action_type``."""
    category = category_of(action_type)
    return category.color if category else None


def description_for(action_type: str) -> str:
    """Human-readable description of ``action_type``."""
    spec = get_action_spec(action_type)
    return spec.description if spec else ""


def is_conditional(action_type: Optional[str]) -> bool:
    """Check if the action branches into ``true``/``false`` handles."""
    return action_type in CONDITIONAL_ACTIONS


def get_field_value(config: Mapping[str, Any], name: str) -> Any:
    """Read a possibly dotted field from ``config``; None when absent."""
    current: Any = config
    for key in name.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    return current


def set_field_value(config: Mapping[str, Any], name: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``config`` with the dotted field ``name`` set."""
    updated = copy.deepcopy(dict(config))
    keys = name.split(".")
    current = updated
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value
    return updated


def missing_required_params(action_type: str, config: Mapping[str, Any]) -> list[str]:
    """List required parameters absent from ``config``.

    A parameter counts as present when it has a non-empty value; for a
    nested parameter such as ``coordinates``, every required field under
    it must be set.
    """
    spec = get_action_spec(action_type)
    if spec is None:
        return []

    missing: list[str] = []
    for param in spec.required_params:
        nested = [f for f in spec.fields if f.required and f.name.startswith(param + ".")]
        names = [f.name for f in nested] or [param]
        if any(get_field_value(config, n) in (None, "") for n in names):
            missing.append(param)
    return missing
