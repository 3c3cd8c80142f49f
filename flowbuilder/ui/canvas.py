"""Graph canvas.

Renders the store's nodes, areas and edges on a ``QGraphicsScene`` and
turns mouse gestures into editor requests:

- Drag a node: ``drag_started`` / ``drag_moved`` / ``drag_finished``
- Shift-drag from one node to another: ``connect_requested``
- Double-click an area title: ``rename_requested``
- Double-click an action: ``configure_requested``
- Delete/Backspace: ``delete_requested`` for the selected node

Hit testing uses node geometry from the model, so the scene can be
rebuilt on every change, including mid-drag.
"""

from typing import Optional

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import (
    QBrush,
    QColor,
    QFont,
    QKeyEvent,
    QMouseEvent,
    QPainter,
    QPainterPath,
    QPen,
)
from PySide6.QtWidgets import QGraphicsScene, QGraphicsView, QWidget

from flowbuilder.core.catalog import is_conditional
from flowbuilder.core.constants import (
    AREA_HEADER_HEIGHT,
    NODE_FOOTPRINT_H,
    NODE_FOOTPRINT_W,
    TERMINAL_H,
    TERMINAL_W,
)
from flowbuilder.core.model import Edge, GraphState, Node, NodeKind, Position

AREA_FILL = QColor(59, 130, 246, 25)
AREA_BORDER = QColor(59, 130, 246)
AREA_HIGHLIGHT = QColor(16, 185, 129)
TERMINAL_COLORS = {
    NodeKind.START: QColor("#22c55e"),
    NodeKind.END: QColor("#ef4444"),
}
EDGE_COLOR = QColor("#64748b")
SELECTION_COLOR = QColor("#f59e0b")


def node_rect(node: Node) -> QRectF:
    """Scene rectangle occupied by ``node``."""
    if node.is_area:
        return QRectF(node.position.x, node.position.y, node.width, node.height)
    if node.is_terminal:
        return QRectF(node.position.x, node.position.y, TERMINAL_W, TERMINAL_H)
    return QRectF(node.position.x, node.position.y, NODE_FOOTPRINT_W, NODE_FOOTPRINT_H)


def node_at(state: GraphState, point: QPointF) -> Optional[Node]:
    """Top-most node under ``point``; actions and terminals win over areas."""
    hits = [n for n in state.nodes if node_rect(n).contains(point)]
    for node in reversed(hits):
        if not node.is_area:
            return node
    return hits[-1] if hits else None


class FlowCanvas(QGraphicsView):
    """Interactive view of the flow graph."""

    drag_started = Signal(str)  # node id
    drag_moved = Signal(str, object)  # node id, Position
    drag_finished = Signal()
    connect_requested = Signal(str, str)  # source id, target id
    rename_requested = Signal(str)  # area id
    configure_requested = Signal(str)  # action id
    delete_requested = Signal(str)  # node id
    selection_changed = Signal(object)  # node id or None

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)
        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setDragMode(QGraphicsView.DragMode.NoDrag)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self._state = GraphState()
        self._highlight: Optional[str] = None
        self._selected: Optional[str] = None

        # Gesture state
        self._drag_id: Optional[str] = None
        self._grab_offset = QPointF()
        self._connect_source: Optional[str] = None

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected

    # Rendering

    def set_state(self, state: GraphState) -> None:
        """Redraw the scene from ``state``."""
        self._state = state
        if self._selected is not None and state.node(self._selected) is None:
            self._select(None)
        self._rebuild()

    def set_drop_highlight(self, area_id: Optional[str]) -> None:
        """Highlight the area an action would land in."""
        if area_id != self._highlight:
            self._highlight = area_id
            self._rebuild()

    def _rebuild(self) -> None:
        self._scene.clear()
        for node in self._state.areas:
            self._draw_area(node)
        by_id = {n.id: n for n in self._state.nodes}
        for edge in self._state.edges:
            source, target = by_id.get(edge.source), by_id.get(edge.target)
            if source is not None and target is not None:
                self._draw_edge(edge, source, target)
        for node in self._state.nodes:
            if node.is_action:
                self._draw_action(node)
            elif node.is_terminal:
                self._draw_terminal(node)

        bounds = self._scene.itemsBoundingRect().adjusted(-200, -200, 200, 200)
        self._scene.setSceneRect(bounds)

    def _outline(self, node: Node, color: QColor) -> QPen:
        if node.id == self._selected:
            return QPen(SELECTION_COLOR, 3)
        return QPen(color, 2)

    def _draw_area(self, node: Node) -> None:
        rect = node_rect(node)
        color = AREA_HIGHLIGHT if node.id == self._highlight else AREA_BORDER
        pen = self._outline(node, color)
        pen.setStyle(Qt.PenStyle.DashLine)
        self._scene.addRect(rect, pen, QBrush(AREA_FILL))

        header = QRectF(rect.x(), rect.y(), rect.width(), AREA_HEADER_HEIGHT)
        self._scene.addRect(header, QPen(Qt.PenStyle.NoPen), QBrush(QColor(59, 130, 246, 40)))

        title = node.name + ("  (editing)" if node.is_editing else "")
        text = self._scene.addText(title, QFont("", 11, QFont.Weight.Bold))
        text.setPos(rect.x() + 10, rect.y() + 8)
        count = self._scene.addText(f"{node.action_count} action(s)")
        count.setDefaultTextColor(QColor("#475569"))
        count.setPos(rect.x() + 10, rect.y() + 36)

    def _draw_action(self, node: Node) -> None:
        rect = node_rect(node)
        color = QColor(node.color or "#94a3b8")
        path = QPainterPath()
        path.addRoundedRect(rect, 8, 8)
        self._scene.addPath(path, self._outline(node, color), QBrush(QColor("white")))

        strip = QRectF(rect.x(), rect.y(), 6, rect.height())
        self._scene.addRect(strip, QPen(Qt.PenStyle.NoPen), QBrush(color))

        label = self._scene.addText(node.label or node.action_type or node.id, QFont("", 10, QFont.Weight.Bold))
        label.setPos(rect.x() + 12, rect.y() + 6)
        description = self._scene.addText(node.description)
        description.setDefaultTextColor(QColor("#64748b"))
        description.setTextWidth(rect.width() - 16)
        description.setPos(rect.x() + 12, rect.y() + 28)

        if is_conditional(node.action_type):
            for i, handle in enumerate(("true", "false")):
                marker = self._scene.addText(handle)
                marker.setDefaultTextColor(QColor("#16a34a" if handle == "true" else "#dc2626"))
                marker.setPos(rect.x() + rect.width() * (0.25 + 0.5 * i) - 12, rect.bottom() - 4)

    def _draw_terminal(self, node: Node) -> None:
        rect = node_rect(node)
        color = TERMINAL_COLORS[node.kind]
        path = QPainterPath()
        path.addRoundedRect(rect, rect.height() / 2, rect.height() / 2)
        self._scene.addPath(path, self._outline(node, color.darker()), QBrush(color))
        text = self._scene.addText(node.label, QFont("", 11, QFont.Weight.Bold))
        text.setDefaultTextColor(QColor("white"))
        text.setPos(rect.center().x() - text.boundingRect().width() / 2, rect.y() + 12)

    def _draw_edge(self, edge: Edge, source: Node, target: Node) -> None:
        src_rect, dst_rect = node_rect(source), node_rect(target)
        x_offset = 0.0
        if edge.source_handle == "true":
            x_offset = -src_rect.width() / 4
        elif edge.source_handle == "false":
            x_offset = src_rect.width() / 4

        start = QPointF(src_rect.center().x() + x_offset, src_rect.bottom())
        end = QPointF(dst_rect.center().x(), dst_rect.top())
        mid_y = (start.y() + end.y()) / 2

        # Orthogonal "smoothstep" routing
        path = QPainterPath(start)
        path.lineTo(start.x(), mid_y)
        path.lineTo(end.x(), mid_y)
        path.lineTo(end)
        self._scene.addPath(path, QPen(EDGE_COLOR, 2))

        if edge.source_handle:
            label = self._scene.addText(edge.source_handle)
            label.setDefaultTextColor(EDGE_COLOR)
            label.setPos(start.x() + 4, start.y() + 2)

    # Selection

    def _select(self, node_id: Optional[str]) -> None:
        if node_id != self._selected:
            self._selected = node_id
            self.selection_changed.emit(node_id)

    # Gestures

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return

        point = self.mapToScene(event.position().toPoint())
        node = node_at(self._state, point)
        self._select(node.id if node else None)
        self._rebuild()
        if node is None:
            return

        if event.modifiers() & Qt.KeyboardModifier.ShiftModifier:
            self._connect_source = node.id
            return

        self._drag_id = node.id
        self._grab_offset = point - QPointF(node.position.x, node.position.y)
        self.drag_started.emit(node.id)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if self._drag_id is None:
            super().mouseMoveEvent(event)
            return
        point = self.mapToScene(event.position().toPoint()) - self._grab_offset
        self.drag_moved.emit(self._drag_id, Position(point.x(), point.y()))

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if self._connect_source is not None:
            point = self.mapToScene(event.position().toPoint())
            target = node_at(self._state, point)
            source, self._connect_source = self._connect_source, None
            if target is not None and target.id != source:
                self.connect_requested.emit(source, target.id)
            return

        if self._drag_id is not None:
            self._drag_id = None
            self.drag_finished.emit()
            return

        super().mouseReleaseEvent(event)

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        point = self.mapToScene(event.position().toPoint())
        node = node_at(self._state, point)
        if node is None:
            return
        if node.is_action:
            self.configure_requested.emit(node.id)
        elif node.is_area and point.y() <= node.position.y + AREA_HEADER_HEIGHT:
            self.rename_requested.emit(node.id)

    def keyPressEvent(self, event: QKeyEvent) -> None:
        if event.key() in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace) and self._selected:
            self.delete_requested.emit(self._selected)
            return
        super().keyPressEvent(event)
