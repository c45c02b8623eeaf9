"""
Export projector - Static, viewport-independent output for a Graph.

Provides:
- project(): crop the graph to its node extents plus padding and build the
  vector description (edge curves, label boxes, node outlines, text)
- render_svg(): a self-contained SVG document for a projection
- Exporter: pluggable rasterizer capability, with a cairosvg implementation
- export_svg() / export_png() / to_data_uri() convenience helpers

Pan and zoom never affect the output.
"""

import base64
import html
import logging
from dataclasses import dataclass, field
from typing import Protocol

from .geometry import (
    Box,
    EdgeGeometry,
    Outline,
    Point,
    edge_geometry,
    label_box,
    node_outline,
    format_number as _fmt,
)
from .models import Graph

logger = logging.getLogger(__name__)

DEFAULT_PADDING = 40
DEFAULT_SCALE = 2.0
LABEL_MAX_CHARS = 20
LABEL_TRUNCATE_AT = 18

BACKGROUND = "#faf7f2"
EDGE_COLOR = "#c4b8a0"
EDGE_LABEL_FILL = "#f5f0e8"
EDGE_LABEL_TEXT = "#5c4a35"
# (fill, stroke, text)
PALETTE = [
    ("#2c1810", "#8b5e3c", "#f5f0e8"),
    ("#1a2a1a", "#5a7a3a", "#f0f5e8"),
    ("#1a1a2a", "#4a5a8a", "#e8ecf5"),
    ("#2a1a10", "#a0622a", "#f5ede0"),
    ("#2a1a2a", "#7a3a6a", "#f5e8f2"),
    ("#101a2a", "#2a6a8a", "#e0eef5"),
]


class ExportError(Exception):
    """Export could not produce output."""


class EmptyDiagramError(ExportError):
    """The graph has no nodes, so there is nothing to project."""


@dataclass(frozen=True)
class ProjectedEdge:
    geometry: EdgeGeometry
    label: str = ""
    label_box: Box | None = None


@dataclass(frozen=True)
class ProjectedNode:
    node_id: str
    outline: Outline
    label: str
    center: Point
    palette_index: int = 0


@dataclass
class Projection:
    """Vector description of a graph in cropped, non-negative coordinates."""
    width: float
    height: float
    offset_x: float
    offset_y: float
    edges: list[ProjectedEdge] = field(default_factory=list)
    nodes: list[ProjectedNode] = field(default_factory=list)


class Exporter(Protocol):
    """Turns an SVG document into raster bytes."""

    def rasterize(self, svg: str, scale: float) -> bytes:
        ...


class CairoExporter:
    """Rasterize to PNG with cairosvg."""

    def rasterize(self, svg: str, scale: float) -> bytes:
        import cairosvg

        try:
            return cairosvg.svg2png(bytestring=svg.encode("utf-8"), scale=scale)
        except Exception as e:
            raise ExportError(f"PNG rendering failed: {e}") from e


def display_label(label: str) -> str:
    """Shorten long labels the way the canvas does."""
    if len(label) > LABEL_MAX_CHARS:
        return label[:LABEL_TRUNCATE_AT] + "…"
    return label


def project(graph: Graph, padding: float = DEFAULT_PADDING) -> Projection:
    """
    Project `graph` into a tightly cropped coordinate space.

    Args:
        graph: The graph to project
        padding: Margin added around the node extents

    Returns:
        Projection whose coordinates are all non-negative

    Raises:
        EmptyDiagramError: if the graph has no nodes
    """
    if not graph.nodes:
        raise EmptyDiagramError("Diagram has no nodes to export")

    w, h = graph.node_width, graph.node_height
    min_x = min(n.x for n in graph.nodes.values())
    min_y = min(n.y for n in graph.nodes.values())
    max_x = max(n.x + w for n in graph.nodes.values())
    max_y = max(n.y + h for n in graph.nodes.values())

    dx = padding - min_x
    dy = padding - min_y
    moved = {
        node_id: n.model_copy(update={"x": n.x + dx, "y": n.y + dy})
        for node_id, n in graph.nodes.items()
    }

    projection = Projection(
        width=(max_x - min_x) + 2 * padding,
        height=(max_y - min_y) + 2 * padding,
        offset_x=dx,
        offset_y=dy,
    )

    for edge in graph.edges:
        source, target = moved.get(edge.source), moved.get(edge.target)
        if source is None or target is None:
            continue
        geometry = edge_geometry(source, target, w, h)
        box = label_box(edge.label, geometry.label_anchor) if edge.label else None
        projection.edges.append(ProjectedEdge(geometry=geometry, label=edge.label, label_box=box))

    for index, node in enumerate(moved.values()):
        projection.nodes.append(ProjectedNode(
            node_id=node.id,
            outline=node_outline(node, w, h),
            label=display_label(node.label),
            center=Point(node.x + w / 2, node.y + h / 2),
            palette_index=index % len(PALETTE),
        ))

    logger.debug(
        "Projected %d nodes and %d edges into %sx%s",
        len(projection.nodes), len(projection.edges),
        _fmt(projection.width), _fmt(projection.height),
    )
    return projection


# --- SVG ---

def _render_outline(outline: Outline, fill: str, stroke: str) -> str:
    style = f'fill="{fill}" stroke="{stroke}" stroke-width="1.5"'
    if outline.points:
        points = " ".join(f"{_fmt(p.x)},{_fmt(p.y)}" for p in outline.points)
        parts = [f'  <polygon points="{points}" {style}/>']
    else:
        b = outline.box
        parts = [
            f'  <rect x="{_fmt(b.x)}" y="{_fmt(b.y)}" width="{_fmt(b.width)}" '
            f'height="{_fmt(b.height)}" rx="{_fmt(outline.corner_radius)}" {style}/>'
        ]
    for a, b in outline.rails:
        parts.append(
            f'  <line x1="{_fmt(a.x)}" y1="{_fmt(a.y)}" x2="{_fmt(b.x)}" y2="{_fmt(b.y)}" '
            f'stroke="{stroke}" stroke-width="1"/>'
        )
    return "\n".join(parts)


def _render_edge(edge: ProjectedEdge) -> str:
    parts = [
        f'  <path d="{edge.geometry.path_data()}" stroke="{EDGE_COLOR}" stroke-width="1.5" '
        f'fill="none" marker-end="url(#arrow)"/>'
    ]
    if edge.label_box is not None:
        b = edge.label_box
        anchor = edge.geometry.label_anchor
        parts.append(
            f'  <rect x="{_fmt(b.x)}" y="{_fmt(b.y)}" width="{_fmt(b.width)}" '
            f'height="{_fmt(b.height)}" rx="{_fmt(b.height / 2)}" fill="{EDGE_LABEL_FILL}" '
            f'stroke="{EDGE_COLOR}" stroke-width="1"/>'
        )
        parts.append(
            f'  <text x="{_fmt(anchor.x)}" y="{_fmt(anchor.y + 1)}" text-anchor="middle" '
            f'dominant-baseline="middle" fill="{EDGE_LABEL_TEXT}" font-size="10" '
            f'font-family="Lora, serif" font-style="italic">{html.escape(edge.label)}</text>'
        )
    return "\n".join(parts)


def _render_node(node: ProjectedNode) -> str:
    fill, stroke, text = PALETTE[node.palette_index]
    c = node.center
    return "\n".join([
        f'<g id="node-{html.escape(node.node_id, quote=True)}">',
        _render_outline(node.outline, fill, stroke),
        f'  <text x="{_fmt(c.x)}" y="{_fmt(c.y + 1)}" text-anchor="middle" '
        f'dominant-baseline="middle" fill="{text}" font-size="11.5" '
        f'font-family="Lora, serif" font-style="italic">{html.escape(node.label)}</text>',
        "</g>",
    ])


def render_svg(projection: Projection) -> str:
    """Render a projection as a standalone SVG document."""
    width, height = _fmt(projection.width), _fmt(projection.height)
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<svg width="{width}" height="{height}" viewBox="0 0 {width} {height}" '
        f'xmlns="http://www.w3.org/2000/svg" style="background:{BACKGROUND}">',
        "<defs>",
        '  <marker id="arrow" markerWidth="10" markerHeight="7" refX="10" refY="3.5" orient="auto">',
        f'    <polygon points="0 0,10 3.5,0 7" fill="{EDGE_COLOR}"/>',
        "  </marker>",
        "</defs>",
        f'<rect width="{width}" height="{height}" fill="{BACKGROUND}"/>',
    ]
    parts.extend(_render_edge(e) for e in projection.edges)
    parts.extend(_render_node(n) for n in projection.nodes)
    parts.append("</svg>")
    return "\n".join(parts)


# --- Convenience ---

def export_svg(graph: Graph, padding: float = DEFAULT_PADDING) -> str:
    return render_svg(project(graph, padding))


def export_png(
    graph: Graph,
    exporter: Exporter | None = None,
    scale: float = DEFAULT_SCALE,
    padding: float = DEFAULT_PADDING,
) -> bytes:
    """Render the graph to SVG and rasterize it at `scale`."""
    svg = export_svg(graph, padding)
    return (exporter or CairoExporter()).rasterize(svg, scale)


def to_data_uri(svg_content: str) -> str:
    """Encode SVG as a base64 data URI."""
    encoded = base64.b64encode(svg_content.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"
