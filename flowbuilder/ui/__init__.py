"""UI components for the flow builder.

This package provides PySide6-based UI components:
- MainWindow: Main application window
- FlowCanvas: Interactive graph canvas
- NodeConfigDialog: Action configuration form
- Common widgets: Banner, log view, sidebar panels
"""

from .canvas import FlowCanvas
from .main_window import MainWindow
from .node_config_dialog import NodeConfigDialog
from .widgets import (
    ActionPalette,
    FlowDetailsPanel,
    LogView,
    SelectorEditor,
    WarningBanner,
)

__all__ = [
    # Main window
    "MainWindow",
    # Canvas
    "FlowCanvas",
    # Dialogs
    "NodeConfigDialog",
    # Widgets
    "WarningBanner",
    "LogView",
    "FlowDetailsPanel",
    "SelectorEditor",
    "ActionPalette",
]
