"""
Core data models for flow diagrams.

These models define the canonical graph:
- Nodes with a label, a shape and a top-left position
- Edges connecting nodes (using source/target naming convention)
- The Graph that owns both, plus the fixed node box shared by every node

Every mutation returns a new Graph value. A request that cannot be applied
(unknown id, out-of-range index, self-loop) returns the same instance, so
callers can detect an accepted mutation with an identity check.

Field Naming Convention:
- Edges use `source` and `target`
- For compatibility with the DSL vocabulary, `from`/`to` are accepted on input
"""

import logging
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

# Fixed node box (every node in a diagram shares it)
NODE_WIDTH = 164
NODE_HEIGHT = 52


class NodeShape(str, Enum):
    """Visual shapes for nodes on the canvas."""
    RECT = "rect"
    ROUND = "round"
    STADIUM = "stadium"
    DIAMOND = "diamond"
    SUBROUTINE = "subroutine"
    FLAG = "flag"


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex[:8]}"


def convert_edge_fields(data: Any) -> Any:
    """Map 'from'/'to' (and 'from_node'/'to_node') input keys to 'source'/'target'."""
    if isinstance(data, dict):
        data = dict(data)
        # 'from' is a Python keyword
        if 'from' in data and 'source' not in data:
            data['source'] = data.pop('from')
        if 'from_node' in data and 'source' not in data:
            data['source'] = data.pop('from_node')
        if 'to' in data and 'target' not in data:
            data['target'] = data.pop('to')
        if 'to_node' in data and 'target' not in data:
            data['target'] = data.pop('to_node')
    return data


class Node(BaseModel):
    """A node in the diagram."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_node_id)
    label: str = "New Step"
    shape: NodeShape = NodeShape.RECT
    x: float = 0
    y: float = 0


class Edge(BaseModel):
    """
    A directed edge between two nodes.

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` on input.
    """
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    label: str = ""

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert 'from'/'to' fields to 'source'/'target'."""
        return convert_edge_fields(data)

    def touches(self, node_id: str) -> bool:
        """True if either endpoint is `node_id`."""
        return self.source == node_id or self.target == node_id


class Graph(BaseModel):
    """
    The complete diagram graph.

    `nodes` keeps insertion order; layout picks its BFS root from it.
    """
    model_config = ConfigDict(frozen=True)

    nodes: dict[str, Node] = Field(default_factory=dict)
    edges: list[Edge] = Field(default_factory=list)
    direction: str = "TD"
    node_width: float = NODE_WIDTH
    node_height: float = NODE_HEIGHT

    # --- Queries ---

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def get_edge(self, index: int) -> Edge | None:
        if 0 <= index < len(self.edges):
            return self.edges[index]
        return None

    def center(self, node: Node) -> tuple[float, float]:
        """Get the center point of a node."""
        return (node.x + self.node_width / 2, node.y + self.node_height / 2)

    def bounds(self, node: Node) -> tuple[float, float, float, float]:
        """Get the bounding box (x, y, right, bottom) of a node."""
        return (node.x, node.y, node.x + self.node_width, node.y + self.node_height)

    def snapshot(self) -> dict:
        """Convert to a JSON-serializable dict of nodes and edges."""
        return {
            "nodes": [n.model_dump(mode="json") for n in self.nodes.values()],
            "edges": [e.model_dump(mode="json") for e in self.edges],
        }

    def _evolve(self, nodes: dict[str, Node] | None = None, edges: list[Edge] | None = None) -> "Graph":
        """New Graph owning its own node dict and edge list."""
        return self.model_copy(update={
            "nodes": dict(self.nodes if nodes is None else nodes),
            "edges": list(self.edges if edges is None else edges),
        })

    # --- Node Operations ---

    def _replace_node(self, node_id: str, **changes) -> "Graph":
        node = self.nodes.get(node_id)
        if node is None:
            logger.debug("Ignoring update of unknown node %s", node_id)
            return self
        nodes = dict(self.nodes)
        nodes[node_id] = node.model_copy(update=changes)
        return self._evolve(nodes=nodes)

    def add_node(
        self,
        label: str = "New Step",
        shape: NodeShape = NodeShape.RECT,
        position: tuple[float, float] = (0, 0),
    ) -> tuple["Graph", str]:
        """Add a node with a freshly generated id. Returns (graph, node_id)."""
        node_id = generate_node_id()
        while node_id in self.nodes:
            node_id = generate_node_id()
        x, y = position
        nodes = dict(self.nodes)
        nodes[node_id] = Node(id=node_id, label=label, shape=NodeShape(shape), x=x, y=y)
        return self._evolve(nodes=nodes), node_id

    def rename_node(self, node_id: str, label: str) -> "Graph":
        return self._replace_node(node_id, label=label)

    def set_shape(self, node_id: str, shape: NodeShape) -> "Graph":
        return self._replace_node(node_id, shape=NodeShape(shape))

    def move_node(self, node_id: str, x: float, y: float) -> "Graph":
        return self._replace_node(node_id, x=x, y=y)

    def delete_node(self, node_id: str) -> "Graph":
        """Delete a node and every edge connected to it."""
        if node_id not in self.nodes:
            logger.debug("Ignoring delete of unknown node %s", node_id)
            return self
        nodes = {k: v for k, v in self.nodes.items() if k != node_id}
        edges = [e for e in self.edges if not e.touches(node_id)]
        return self._evolve(nodes=nodes, edges=edges)

    # --- Edge Operations ---

    def add_edge(self, source: str, target: str, label: str = "") -> "Graph":
        """
        Append an edge between two existing nodes.

        Self-loops and edges to unknown nodes are refused. Duplicate edges
        between the same pair are allowed.
        """
        if source == target:
            logger.debug("Ignoring self-loop on %s", source)
            return self
        if source not in self.nodes or target not in self.nodes:
            logger.debug("Ignoring edge %s -> %s with unknown endpoint", source, target)
            return self
        edges = [*self.edges, Edge(source=source, target=target, label=label)]
        return self._evolve(edges=edges)

    def delete_edge(self, index: int) -> "Graph":
        if self.get_edge(index) is None:
            logger.debug("Ignoring delete of edge index %s", index)
            return self
        edges = [e for i, e in enumerate(self.edges) if i != index]
        return self._evolve(edges=edges)

    def set_edge_label(self, index: int, label: str) -> "Graph":
        edge = self.get_edge(index)
        if edge is None:
            logger.debug("Ignoring label of edge index %s", index)
            return self
        edges = list(self.edges)
        edges[index] = edge.model_copy(update={"label": label})
        return self._evolve(edges=edges)


# --- API Request/Response Models ---

class ParseRequest(BaseModel):
    """Request to replace the diagram with parsed flowchart text."""
    text: str = ""


class CreateNodeRequest(BaseModel):
    """Request to create a new node."""
    label: str = "New Step"
    shape: NodeShape = NodeShape.RECT
    x: float = 200
    y: float = 200


class UpdateNodeRequest(BaseModel):
    """Request to update an existing node (partial update)."""
    label: str | None = None
    shape: NodeShape | None = None
    x: float | None = None
    y: float | None = None


class CreateEdgeRequest(BaseModel):
    """Request to create a new edge."""
    source: str = ""
    target: str = ""
    label: str = ""

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert 'from'/'to' fields to 'source'/'target'."""
        return convert_edge_fields(data)


class UpdateEdgeRequest(BaseModel):
    """Request to update an existing edge."""
    label: str = ""
