"""
Layout algorithm for freshly parsed diagrams.

Breadth-first leveling: the first node is the root, every newly discovered
node sits one level below the node that discovered it, and unreachable nodes
fall back to level 0. Nodes are then placed on a grid, one row (or column,
for left-to-right diagrams) per level.

Layout runs once after parsing; interactive edits never re-run it.
"""

from collections import deque
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .models import Edge, Graph, Node


# Default layout parameters
GUTTER_X = 76
GUTTER_Y = 68
MARGIN_X = 60
MARGIN_Y = 60


def assign_levels(nodes: list["Node"], edges: Iterable["Edge"]) -> dict[str, int]:
    """
    Assign a BFS level to every node.

    Args:
        nodes: Nodes in iteration order (the first one is the root)
        edges: Directed edges; edges with unknown endpoints are ignored

    Returns:
        Mapping of node id to level
    """
    if not nodes:
        return {}

    # Build adjacency list (source -> targets)
    children: dict[str, list[str]] = {n.id: [] for n in nodes}
    for edge in edges:
        if edge.source in children and edge.target in children:
            children[edge.source].append(edge.target)

    root = nodes[0].id
    levels: dict[str, int] = {root: 0}
    queue = deque([root])

    while queue:
        current = queue.popleft()
        for child in children[current]:
            if child not in levels:
                levels[child] = levels[current] + 1
                queue.append(child)

    # Handle disconnected nodes
    for node in nodes:
        levels.setdefault(node.id, 0)

    return levels


def layout_nodes(
    nodes: list["Node"],
    edges: Iterable["Edge"],
    node_width: float,
    node_height: float,
    orientation: str = "vertical",  # "vertical" or "horizontal"
    gutter_x: float = GUTTER_X,
    gutter_y: float = GUTTER_Y,
    margin_x: float = MARGIN_X,
    margin_y: float = MARGIN_Y,
) -> list["Node"]:
    """
    Arrange nodes in BFS levels.

    Args:
        nodes: Nodes to arrange, in iteration order
        edges: Edges defining the hierarchy
        node_width: Width of the shared node box
        node_height: Height of the shared node box
        orientation: "vertical" (levels are rows) or "horizontal" (levels are columns)
        gutter_x: Horizontal space between neighbouring boxes
        gutter_y: Vertical space between neighbouring boxes
        margin_x: X coordinate of the first column
        margin_y: Y coordinate of the first row

    Returns:
        New list of positioned nodes, in the same order
    """
    if not nodes:
        return []

    levels = assign_levels(nodes, edges)
    pitch_x = node_width + gutter_x
    pitch_y = node_height + gutter_y

    level_counts: dict[int, int] = {}
    positioned: list["Node"] = []

    for node in nodes:
        level = levels[node.id]
        idx = level_counts.get(level, 0)
        level_counts[level] = idx + 1

        if orientation == "vertical":
            x = idx * pitch_x + margin_x
            y = level * pitch_y + margin_y
        else:  # horizontal
            x = level * pitch_x + margin_x
            y = idx * pitch_y + margin_y
        positioned.append(node.model_copy(update={"x": x, "y": y}))

    return positioned


def layout(graph: "Graph") -> "Graph":
    """Return `graph` with every node positioned by BFS level."""
    if not graph.nodes:
        return graph

    orientation = "horizontal" if graph.direction == "LR" else "vertical"
    positioned = layout_nodes(
        list(graph.nodes.values()),
        graph.edges,
        graph.node_width,
        graph.node_height,
        orientation=orientation,
    )
    return graph.model_copy(update={
        "nodes": {n.id: n for n in positioned},
        "edges": list(graph.edges),
    })
