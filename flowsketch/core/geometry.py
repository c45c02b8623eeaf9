"""
Geometry - Edge curves, anchor points, label boxes, node outlines, hit-testing.

Pure functions over a Graph and its fixed node box. Nothing here mutates the
graph; the interaction controller and the export projector both build on
these results.

Edges are quadratic curves:
- Endpoints start at each node's center and are pulled in along the
  center-to-center direction so the line ends near the node boundary
- A single control point bows every edge the same way, to the left of its
  direction of travel
- The label sits at the curve midpoint (t = 0.5)
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from .models import NodeShape

if TYPE_CHECKING:
    from .models import Graph, Node


# Fraction of the node box the endpoint is inset by along each axis
ANCHOR_INSET = 0.52
# Insets never exceed this share of the center distance
MAX_INSET_RATIO = 0.45
CURVE_BOW = 30

LABEL_CHAR_WIDTH = 6.4
LABEL_PADDING = 12
LABEL_HEIGHT = 18

HANDLE_RADIUS = 7
EDGE_HIT_TOLERANCE = 7
CURVE_SAMPLES = 16

CORNER_RADIUS = 6
DIAMOND_OVERSHOOT = 4
SUBROUTINE_RAIL_INSET = 8
FLAG_NOTCH = 12


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass(frozen=True)
class Box:
    """Axis-aligned box (top-left corner plus size)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom


@dataclass(frozen=True)
class EdgeGeometry:
    """Quadratic curve for one edge plus its label anchor."""
    start: Point
    end: Point
    control: Point
    label_anchor: Point

    def point_at(self, t: float) -> Point:
        """Evaluate the quadratic Bezier at parameter t."""
        u = 1 - t
        return Point(
            u * u * self.start.x + 2 * u * t * self.control.x + t * t * self.end.x,
            u * u * self.start.y + 2 * u * t * self.control.y + t * t * self.end.y,
        )

    def path_data(self) -> str:
        """SVG path data for the curve."""
        return (
            f"M{format_number(self.start.x)},{format_number(self.start.y)} "
            f"Q{format_number(self.control.x)},{format_number(self.control.y)} "
            f"{format_number(self.end.x)},{format_number(self.end.y)}"
        )


@dataclass(frozen=True)
class Outline:
    """
    Shape-specific node outline.

    `points` is empty for rectangular outlines, which use `box` and
    `corner_radius` instead. `rails` are extra line segments drawn inside
    the outline (subroutine shape).
    """
    shape: NodeShape
    box: Box
    corner_radius: float = 0
    points: tuple[Point, ...] = ()
    rails: tuple[tuple[Point, Point], ...] = ()


class HitKind(str, Enum):
    """What a pointer landed on."""
    HANDLE = "handle"
    NODE = "node"
    EDGE_LABEL = "edge_label"
    EDGE = "edge"
    CANVAS = "canvas"


@dataclass(frozen=True)
class Hit:
    kind: HitKind
    node_id: str | None = None
    edge_index: int | None = None


CANVAS_HIT = Hit(HitKind.CANVAS)


def format_number(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _unit(dx: float, dy: float) -> tuple[float, float, float]:
    """Unit vector and length; coincident points fall back to (1, 0)."""
    length = math.hypot(dx, dy)
    if length == 0:
        return 1.0, 0.0, 0.0
    return dx / length, dy / length, length


# --- Edges ---

def edge_geometry(
    source: "Node",
    target: "Node",
    width: float,
    height: float,
) -> EdgeGeometry:
    """
    Compute the curve between two nodes sharing a `width` x `height` box.

    Both endpoints stay strictly between the two centers whenever the
    centers differ.
    """
    sx, sy = source.x + width / 2, source.y + height / 2
    tx, ty = target.x + width / 2, target.y + height / 2
    ux, uy, distance = _unit(tx - sx, ty - sy)

    inset_x = ux * width * ANCHOR_INSET
    inset_y = uy * height * ANCHOR_INSET
    inset = math.hypot(inset_x, inset_y)
    limit = distance * MAX_INSET_RATIO
    if inset > limit:
        scale = limit / inset
        inset_x *= scale
        inset_y *= scale

    start = Point(sx + inset_x, sy + inset_y)
    end = Point(tx - inset_x, ty - inset_y)
    control = Point(
        (start.x + end.x) / 2 - uy * CURVE_BOW,
        (start.y + end.y) / 2 + ux * CURVE_BOW,
    )
    label_anchor = Point(
        (start.x + 2 * control.x + end.x) / 4,
        (start.y + 2 * control.y + end.y) / 4,
    )
    return EdgeGeometry(start=start, end=end, control=control, label_anchor=label_anchor)


def label_box(label: str, anchor: Point) -> Box:
    """Approximate label box centered on `anchor` (width grows with character count)."""
    width = len(label) * LABEL_CHAR_WIDTH + LABEL_PADDING
    return Box(anchor.x - width / 2, anchor.y - LABEL_HEIGHT / 2, width, LABEL_HEIGHT)


def graph_edge_geometry(graph: "Graph", index: int) -> EdgeGeometry | None:
    """Geometry of edge `index`, or None if the index or an endpoint is missing."""
    edge = graph.get_edge(index)
    if edge is None:
        return None
    source = graph.get_node(edge.source)
    target = graph.get_node(edge.target)
    if source is None or target is None:
        return None
    return edge_geometry(source, target, graph.node_width, graph.node_height)


def rubber_band(graph: "Graph", source_id: str, pointer: Point) -> tuple[Point, Point] | None:
    """Transient connection line from the source node center to `pointer`."""
    node = graph.get_node(source_id)
    if node is None:
        return None
    cx, cy = graph.center(node)
    return Point(cx, cy), pointer


# --- Nodes ---

def node_box(node: "Node", width: float, height: float) -> Box:
    return Box(node.x, node.y, width, height)


def node_outline(node: "Node", width: float, height: float) -> Outline:
    """Build the outline for the node's shape."""
    x, y, w, h = node.x, node.y, width, height
    box = Box(x, y, w, h)
    shape = node.shape

    if shape == NodeShape.DIAMOND:
        o = DIAMOND_OVERSHOOT
        points = (
            Point(x + w / 2, y - o),
            Point(x + w + o, y + h / 2),
            Point(x + w / 2, y + h + o),
            Point(x - o, y + h / 2),
        )
        return Outline(shape=shape, box=box, points=points)

    if shape in (NodeShape.ROUND, NodeShape.STADIUM):
        return Outline(shape=shape, box=box, corner_radius=h / 2)

    if shape == NodeShape.SUBROUTINE:
        i = SUBROUTINE_RAIL_INSET
        rails = (
            (Point(x + i, y), Point(x + i, y + h)),
            (Point(x + w - i, y), Point(x + w - i, y + h)),
        )
        return Outline(shape=shape, box=box, corner_radius=CORNER_RADIUS, rails=rails)

    if shape == NodeShape.FLAG:
        points = (
            Point(x, y),
            Point(x + w, y),
            Point(x + w, y + h),
            Point(x, y + h),
            Point(x + FLAG_NOTCH, y + h / 2),
        )
        return Outline(shape=shape, box=box, points=points)

    return Outline(shape=NodeShape.RECT, box=box, corner_radius=CORNER_RADIUS)


def connect_handle(node: "Node", width: float, height: float) -> tuple[Point, float]:
    """Center and radius of the node's connect handle (right edge midpoint)."""
    return Point(node.x + width, node.y + height / 2), HANDLE_RADIUS


# --- Hit testing ---

def _distance_to_segment(p: Point, a: Point, b: Point) -> float:
    dx, dy = b.x - a.x, b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return p.distance_to(a)
    t = max(0.0, min(1.0, ((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq))
    return p.distance_to(Point(a.x + t * dx, a.y + t * dy))


def distance_to_curve(geometry: EdgeGeometry, point: Point, samples: int = CURVE_SAMPLES) -> float:
    """Approximate distance from `point` to the curve using a sampled polyline."""
    pts = [geometry.point_at(i / samples) for i in range(samples + 1)]
    return min(_distance_to_segment(point, a, b) for a, b in zip(pts, pts[1:]))


def hit_test(
    graph: "Graph",
    point: Point,
    handle_nodes: Iterable[str] = (),
) -> Hit:
    """
    Find what lies under a model-space point.

    Checks, in order: connect handles of `handle_nodes`, node bodies (last
    drawn first), edge label boxes, edge curves, and finally the canvas.
    """
    w, h = graph.node_width, graph.node_height

    for node_id in handle_nodes:
        node = graph.get_node(node_id)
        if node is None:
            continue
        center, radius = connect_handle(node, w, h)
        if center.distance_to(point) <= radius:
            return Hit(HitKind.HANDLE, node_id=node_id)

    for node in reversed(list(graph.nodes.values())):
        if node_box(node, w, h).contains(point):
            return Hit(HitKind.NODE, node_id=node.id)

    curves: list[tuple[int, EdgeGeometry]] = []
    for index, edge in enumerate(graph.edges):
        geometry = graph_edge_geometry(graph, index)
        if geometry is None:
            continue
        curves.append((index, geometry))
        if edge.label and label_box(edge.label, geometry.label_anchor).contains(point):
            return Hit(HitKind.EDGE_LABEL, edge_index=index)

    for index, geometry in curves:
        if distance_to_curve(geometry, point) <= EDGE_HIT_TOLERANCE:
            return Hit(HitKind.EDGE, edge_index=index)

    return CANVAS_HIT
