"""Configuration dialog for action nodes.

Builds a form from the catalog field specs of the action type. Dotted
field names (``coordinates.x``) are written into nested config objects.
"""

from typing import Any, Optional

from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QDoubleSpinBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QVBoxLayout,
    QWidget,
)

from flowbuilder.core.catalog import FieldSpec, get_action_spec, get_field_value, set_field_value
from flowbuilder.core.model import Node


class NodeConfigDialog(QDialog):
    """Edit the configuration of one action node."""

    def __init__(
        self,
        node: Node,
        selectors: Optional[dict[str, str]] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        """Initialize the dialog.

        Args:
            node: Action node to configure
            selectors: Flow selectors offered for selector fields
            parent: Parent widget
        """
        super().__init__(parent)

        self.setWindowTitle(f"Configure {node.label or node.action_type}")
        self.setMinimumWidth(380)

        self._node = node
        self._selectors = selectors or {}
        self._editors: dict[str, QWidget] = {}
        self._fields: list[FieldSpec] = []

        layout = QVBoxLayout(self)

        spec = get_action_spec(node.action_type or "")
        if spec is not None:
            description = QLabel(spec.description)
            description.setWordWrap(True)
            description.setStyleSheet("color: #666;")
            layout.addWidget(description)
            self._fields = list(spec.fields)

        form = QFormLayout()
        for field_spec in self._fields:
            editor = self._create_editor(field_spec, get_field_value(node.config, field_spec.name))
            self._editors[field_spec.name] = editor
            label = field_spec.label + (" *" if field_spec.required else "")
            form.addRow(f"{label}:", editor)
        if not self._fields:
            form.addRow(QLabel("This action has no parameters."))
        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _create_editor(self, field_spec: FieldSpec, value: Any) -> QWidget:
        if value is None:
            value = field_spec.default

        if field_spec.type == "number":
            spin = QDoubleSpinBox()
            spin.setRange(-1e9, 1e9)
            spin.setDecimals(0)
            spin.setSpecialValueText(" ")
            spin.setValue(float(value) if value is not None else spin.minimum())
            return spin

        if field_spec.type == "boolean":
            check = QCheckBox()
            check.setChecked(bool(value))
            return check

        if field_spec.type in ("select", "selector"):
            combo = QComboBox()
            options = field_spec.options if field_spec.type == "select" else tuple(self._selectors)
            combo.setEditable(field_spec.type == "selector")
            combo.addItem("")
            combo.addItems(list(options))
            if value is not None:
                combo.setCurrentText(str(value))
            return combo

        line = QLineEdit()
        line.setPlaceholderText(field_spec.placeholder)
        if value is not None:
            line.setText(str(value))
        return line

    @staticmethod
    def _read_editor(editor: QWidget) -> Any:
        if isinstance(editor, QDoubleSpinBox):
            if editor.value() == editor.minimum():
                return None
            return int(editor.value())
        if isinstance(editor, QCheckBox):
            return editor.isChecked()
        if isinstance(editor, QComboBox):
            return editor.currentText() or None
        if isinstance(editor, QLineEdit):
            return editor.text() or None
        return None

    def config(self) -> dict[str, Any]:
        """Configuration built from the form.

        Fields left empty are not written; other existing keys are kept.
        """
        result: dict[str, Any] = dict(self._node.config)
        for field_spec in self._fields:
            value = self._read_editor(self._editors[field_spec.name])
            if value is not None:
                result = set_field_value(result, field_spec.name, value)
        return result
