"""
Document - The single owner of one open diagram.

This module implements:
- The viewport transform (pan offset and clamped zoom)
- The Document: current Graph, viewport and selection
- Graph mutations that replace the graph and notify listeners
- Change callbacks receiving the new (nodes, edges) snapshot

One Document exists per open diagram; there is no module-level instance.
"""

import logging
import math
from typing import Callable

from pydantic import BaseModel, ConfigDict

from .layout import layout
from .models import Graph, NodeShape
from .parser import parse

logger = logging.getLogger(__name__)

MIN_ZOOM = 0.25
MAX_ZOOM = 2.0
DEFAULT_PAN_X = 40
DEFAULT_PAN_Y = 20
DEFAULT_ZOOM = 0.9


def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


class Viewport(BaseModel):
    """Pan offset and zoom factor mapping model space to screen space."""
    model_config = ConfigDict(frozen=True)

    pan_x: float = DEFAULT_PAN_X
    pan_y: float = DEFAULT_PAN_Y
    zoom: float = DEFAULT_ZOOM

    def to_model(self, sx: float, sy: float) -> tuple[float, float]:
        """Convert a screen point to model coordinates."""
        return ((sx - self.pan_x) / self.zoom, (sy - self.pan_y) / self.zoom)

    def to_screen(self, mx: float, my: float) -> tuple[float, float]:
        """Convert a model point to screen coordinates."""
        return (mx * self.zoom + self.pan_x, my * self.zoom + self.pan_y)

    def with_pan(self, pan_x: float, pan_y: float) -> "Viewport":
        return self.model_copy(update={"pan_x": pan_x, "pan_y": pan_y})

    def with_zoom(self, zoom: float) -> "Viewport":
        """Set the zoom, clamped to [MIN_ZOOM, MAX_ZOOM]. Pan is unchanged."""
        if not math.isfinite(zoom):
            return self
        return self.model_copy(update={"zoom": clamp_zoom(zoom)})

    def zoomed_by(self, factor: float) -> "Viewport":
        if not math.isfinite(factor) or factor <= 0:
            return self
        return self.with_zoom(self.zoom * factor)


class Document:
    """
    Owns one diagram's graph, viewport and selection.

    Every graph mutation goes through this class. An accepted mutation
    (one that produced a new Graph) replaces the graph and notifies the
    registered change callbacks with the new snapshot.
    """

    def __init__(self, graph: Graph | None = None):
        self._graph = graph if graph is not None else Graph()
        self.viewport = Viewport()
        self.selected_node: str | None = None
        self.selected_edge: int | None = None
        self._on_change_callbacks: list[Callable[[dict], None]] = []

    @classmethod
    def from_text(cls, text: str) -> "Document":
        """Create a Document from flowchart text (parsed and laid out)."""
        return cls(layout(parse(text)))

    # --- Properties ---

    @property
    def graph(self) -> Graph:
        """Get the current graph."""
        return self._graph

    @property
    def is_empty(self) -> bool:
        return not self._graph.nodes

    # --- Change Callbacks ---

    def on_change(self, callback: Callable[[dict], None]):
        """Register a callback for graph changes."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self):
        """Notify all registered callbacks of a change."""
        snapshot = self._graph.snapshot()
        for callback in self._on_change_callbacks:
            callback(snapshot)

    def _apply(self, graph: Graph) -> bool:
        """Install `graph` if it differs from the current one."""
        if graph is self._graph:
            return False
        edges_shifted = len(graph.edges) < len(self._graph.edges)
        self._graph = graph
        self._prune_selection(edges_shifted)
        self._notify_change()
        return True

    def _prune_selection(self, edges_shifted: bool = False):
        if self.selected_node is not None and self.selected_node not in self._graph.nodes:
            self.selected_node = None
        # Edge indices move when edges are removed
        if self.selected_edge is not None and (
            edges_shifted or self._graph.get_edge(self.selected_edge) is None
        ):
            self.selected_edge = None

    # --- Whole-graph Operations ---

    def replace_graph(self, graph: Graph):
        """Discard the current diagram and install `graph`."""
        logger.info("Loading diagram with %d nodes and %d edges", len(graph.nodes), len(graph.edges))
        self.clear_selection()
        self._graph = graph
        self._notify_change()

    def load_text(self, text: str) -> Graph:
        """Parse and lay out `text`, replacing the current diagram."""
        self.replace_graph(layout(parse(text)))
        return self._graph

    def relayout(self) -> Graph:
        """Re-run automatic layout on the current graph."""
        self._apply(layout(self._graph))
        return self._graph

    # --- Selection ---

    def select_node(self, node_id: str | None):
        self.selected_node = node_id if node_id in self._graph.nodes else None
        self.selected_edge = None

    def select_edge(self, index: int | None):
        if index is not None and self._graph.get_edge(index) is None:
            index = None
        self.selected_edge = index
        self.selected_node = None

    def clear_selection(self):
        self.selected_node = None
        self.selected_edge = None

    # --- Node Operations ---

    def add_node(
        self,
        label: str = "New Step",
        shape: NodeShape = NodeShape.RECT,
        position: tuple[float, float] = (0, 0),
    ) -> str:
        """Add a node and return its id."""
        graph, node_id = self._graph.add_node(label, shape, position)
        self._apply(graph)
        return node_id

    def rename_node(self, node_id: str, label: str) -> bool:
        return self._apply(self._graph.rename_node(node_id, label))

    def set_shape(self, node_id: str, shape: NodeShape) -> bool:
        return self._apply(self._graph.set_shape(node_id, shape))

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        return self._apply(self._graph.move_node(node_id, x, y))

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and all connected edges."""
        return self._apply(self._graph.delete_node(node_id))

    # --- Edge Operations ---

    def add_edge(self, source: str, target: str, label: str = "") -> bool:
        return self._apply(self._graph.add_edge(source, target, label))

    def delete_edge(self, index: int) -> bool:
        return self._apply(self._graph.delete_edge(index))

    def set_edge_label(self, index: int, label: str) -> bool:
        return self._apply(self._graph.set_edge_label(index, label))

    # --- Viewport ---

    def set_viewport(self, viewport: Viewport):
        self.viewport = viewport

    def reset_viewport(self):
        self.viewport = Viewport()

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        return {
            "diagram": self._graph.snapshot(),
            "direction": self._graph.direction,
            "viewport": self.viewport.model_dump(),
            "selected_node": self.selected_node,
            "selected_edge": self.selected_edge,
        }
