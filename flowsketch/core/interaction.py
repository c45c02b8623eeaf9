"""
Interaction controller - Pointer/gesture state machine over a Document.

States:
- Idle
- DraggingNode: a node follows the pointer, keeping the grab offset
- PanningView: the viewport pan follows the pointer in screen space
- Connecting: the next node click commits an edge from `from_id`
- EditingLabel: a blocking label editor; every other event is ignored

Events are handled one at a time, in arrival order. Each handler looks only
at the current state to decide what to do. An event with no transition in
the current state is ignored.
"""

import logging
import math
from dataclasses import dataclass

from . import events as ev
from .document import Document
from .geometry import Hit, HitKind, Point, hit_test, rubber_band
from .models import NodeShape

logger = logging.getLogger(__name__)


def _coerce_shape(shape) -> NodeShape | None:
    try:
        return NodeShape(shape)
    except ValueError:
        logger.debug("Ignoring unknown shape %r", shape)
        return None

WHEEL_SENSITIVITY = 0.001
# Keeps exp() finite for huge wheel deltas
MAX_WHEEL_EXPONENT = 50.0


# --- States ---

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class DraggingNode:
    node_id: str
    grab_dx: float
    grab_dy: float


@dataclass(frozen=True)
class PanningView:
    origin_x: float
    origin_y: float
    origin_pan_x: float
    origin_pan_y: float


@dataclass(frozen=True)
class Connecting:
    from_id: str


@dataclass(frozen=True)
class EditingLabel:
    target_kind: str  # "node" or "edge"
    target_id: str | int
    text: str


State = Idle | DraggingNode | PanningView | Connecting | EditingLabel

IDLE = Idle()


class InteractionController:
    """
    Turns input events into Document mutations and viewport changes.

    The controller lives as long as its Document and has no terminal state.
    """

    def __init__(self, document: Document):
        self.document = document
        self.state: State = IDLE
        self.pointer = Point(0, 0)  # last pointer position, model space
        self._pinch: tuple[float, float] | None = None  # (start distance, start zoom)

    # --- Derived view data ---

    @property
    def rubber_band(self) -> tuple[Point, Point] | None:
        """Line from the connection source center to the pointer, while connecting."""
        if not isinstance(self.state, Connecting):
            return None
        return rubber_band(self.document.graph, self.state.from_id, self.pointer)

    def _to_model(self, sx: float, sy: float) -> Point:
        mx, my = self.document.viewport.to_model(sx, sy)
        return Point(mx, my)

    def _hit(self, sx: float, sy: float, target: Hit | None) -> Hit:
        if target is not None:
            return target
        doc = self.document
        handles = [doc.selected_node] if doc.selected_node else []
        return hit_test(doc.graph, self._to_model(sx, sy), handle_nodes=handles)

    # --- Dispatch ---

    def handle(self, event: ev.Event) -> State:
        """Process one event and return the resulting state."""
        if isinstance(self.state, EditingLabel):
            self._handle_editing(event)
            return self.state

        if isinstance(event, ev.PointerDown):
            self._pointer_down(event)
        elif isinstance(event, ev.PointerMove):
            self._pointer_move(event)
        elif isinstance(event, ev.PointerUp):
            if isinstance(self.state, (DraggingNode, PanningView)):
                self.state = IDLE
        elif isinstance(event, ev.Wheel):
            self._wheel(event.delta_y)
        elif isinstance(event, ev.PinchStart):
            if math.isfinite(event.distance) and event.distance > 0:
                self._pinch = (event.distance, self.document.viewport.zoom)
        elif isinstance(event, ev.PinchMove):
            self._pinch_move(event.distance)
        elif isinstance(event, ev.PinchEnd):
            self._pinch = None
        elif isinstance(event, ev.ZoomBy):
            self.document.set_viewport(self.document.viewport.zoomed_by(event.factor))
        elif isinstance(event, ev.ResetView):
            self.document.reset_viewport()
        elif isinstance(event, ev.DoubleClick):
            self._double_click(event)
        elif isinstance(event, ev.DeleteSelection):
            self._delete_selection()
        elif isinstance(event, ev.ToggleConnect):
            self._toggle_connect()
        elif isinstance(event, ev.AddNode):
            shape = _coerce_shape(event.shape)
            if shape is not None:
                node_id = self.document.add_node(event.label, shape, (event.x, event.y))
                self.document.select_node(node_id)
        elif isinstance(event, ev.SetShape):
            shape = _coerce_shape(event.shape)
            if shape is not None and self.document.selected_node is not None:
                self.document.set_shape(self.document.selected_node, shape)
        elif isinstance(event, ev.BeginEdit):
            self._begin_edit_selection()
        else:
            logger.debug("Ignoring %s in state %s", type(event).__name__, type(self.state).__name__)
        return self.state

    # --- Pointer ---

    def _pointer_down(self, event: ev.PointerDown):
        doc = self.document
        hit = self._hit(event.x, event.y, event.target)
        self.pointer = self._to_model(event.x, event.y)

        if hit.kind == HitKind.HANDLE and hit.node_id is not None:
            self.state = Connecting(hit.node_id)
            return

        if isinstance(self.state, Connecting):
            source = self.state.from_id
            if hit.kind == HitKind.NODE and hit.node_id != source:
                doc.add_edge(source, hit.node_id, "")
            self.state = IDLE
            return

        if hit.kind == HitKind.NODE and hit.node_id is not None:
            node = doc.graph.get_node(hit.node_id)
            if node is None:
                return
            doc.select_node(node.id)
            self.state = DraggingNode(node.id, self.pointer.x - node.x, self.pointer.y - node.y)
        elif hit.kind in (HitKind.EDGE, HitKind.EDGE_LABEL):
            doc.select_edge(hit.edge_index)
            self.state = IDLE
        else:
            doc.clear_selection()
            vp = doc.viewport
            self.state = PanningView(event.x, event.y, vp.pan_x, vp.pan_y)

    def _pointer_move(self, event: ev.PointerMove):
        self.pointer = self._to_model(event.x, event.y)
        state = self.state
        if isinstance(state, DraggingNode):
            self.document.move_node(
                state.node_id,
                self.pointer.x - state.grab_dx,
                self.pointer.y - state.grab_dy,
            )
        elif isinstance(state, PanningView):
            self.document.set_viewport(self.document.viewport.with_pan(
                state.origin_pan_x + (event.x - state.origin_x),
                state.origin_pan_y + (event.y - state.origin_y),
            ))

    # --- Zoom ---

    def _wheel(self, delta_y: float):
        if not math.isfinite(delta_y):
            return
        exponent = max(-MAX_WHEEL_EXPONENT, min(MAX_WHEEL_EXPONENT, -delta_y * WHEEL_SENSITIVITY))
        vp = self.document.viewport
        self.document.set_viewport(vp.zoomed_by(math.exp(exponent)))

    def _pinch_move(self, distance: float):
        if self._pinch is None or not math.isfinite(distance) or distance <= 0:
            return
        start_distance, start_zoom = self._pinch
        vp = self.document.viewport
        self.document.set_viewport(vp.with_zoom(start_zoom * distance / start_distance))

    # --- Label editing ---

    def _double_click(self, event: ev.DoubleClick):
        hit = self._hit(event.x, event.y, event.target)
        graph = self.document.graph
        if hit.kind == HitKind.NODE and hit.node_id in graph.nodes:
            self.state = EditingLabel("node", hit.node_id, graph.nodes[hit.node_id].label)
        elif hit.kind == HitKind.EDGE_LABEL and hit.edge_index is not None:
            edge = graph.get_edge(hit.edge_index)
            if edge is not None:
                self.state = EditingLabel("edge", hit.edge_index, edge.label)

    def _begin_edit_selection(self):
        doc = self.document
        if doc.selected_node is not None:
            self._double_click(ev.DoubleClick(0, 0, Hit(HitKind.NODE, node_id=doc.selected_node)))
        elif doc.selected_edge is not None:
            self._double_click(ev.DoubleClick(0, 0, Hit(HitKind.EDGE_LABEL, edge_index=doc.selected_edge)))

    def _handle_editing(self, event: ev.Event):
        state = self.state
        if isinstance(event, ev.EditText):
            self.state = EditingLabel(state.target_kind, state.target_id, event.text)
        elif isinstance(event, ev.ConfirmEdit):
            if state.target_kind == "node":
                self.document.rename_node(state.target_id, state.text)
            else:
                self.document.set_edge_label(state.target_id, state.text)
            self.state = IDLE
        elif isinstance(event, ev.CancelEdit):
            self.state = IDLE

    # --- Selection actions ---

    def _delete_selection(self):
        doc = self.document
        if doc.selected_node is not None:
            doc.delete_node(doc.selected_node)
        elif doc.selected_edge is not None:
            doc.delete_edge(doc.selected_edge)
        doc.clear_selection()
        self.state = IDLE

    def _toggle_connect(self):
        selected = self.document.selected_node
        if isinstance(self.state, Connecting) and self.state.from_id == selected:
            self.state = IDLE
        elif selected is not None:
            self.state = Connecting(selected)
