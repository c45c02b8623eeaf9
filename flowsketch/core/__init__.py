"""
flowsketch core - Graph model, DSL parser, layout, geometry, interaction and export.

This package holds every piece of diagram logic; the HTTP service and the
CLI are thin layers over it.
"""

from .models import (
    # Enums
    NodeShape,
    # Core models
    Node,
    Edge,
    Graph,
    NODE_WIDTH,
    NODE_HEIGHT,
)

from .parser import parse, load
from .layout import assign_levels, layout, layout_nodes
from .geometry import (
    Point,
    Box,
    EdgeGeometry,
    Outline,
    Hit,
    HitKind,
    edge_geometry,
    label_box,
    node_outline,
    connect_handle,
    hit_test,
    rubber_band,
)
from .document import Document, Viewport, MIN_ZOOM, MAX_ZOOM
from .interaction import (
    InteractionController,
    Idle,
    DraggingNode,
    PanningView,
    Connecting,
    EditingLabel,
)
from .export import (
    Projection,
    Exporter,
    CairoExporter,
    ExportError,
    EmptyDiagramError,
    project,
    render_svg,
    export_svg,
    export_png,
    to_data_uri,
)
from .validation import validate_graph, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Models
    "NodeShape",
    "Node",
    "Edge",
    "Graph",
    "NODE_WIDTH",
    "NODE_HEIGHT",
    # Parser
    "parse",
    "load",
    # Layout
    "assign_levels",
    "layout",
    "layout_nodes",
    # Geometry
    "Point",
    "Box",
    "EdgeGeometry",
    "Outline",
    "Hit",
    "HitKind",
    "edge_geometry",
    "label_box",
    "node_outline",
    "connect_handle",
    "hit_test",
    "rubber_band",
    # Document and interaction
    "Document",
    "Viewport",
    "MIN_ZOOM",
    "MAX_ZOOM",
    "InteractionController",
    "Idle",
    "DraggingNode",
    "PanningView",
    "Connecting",
    "EditingLabel",
    # Export
    "Projection",
    "Exporter",
    "CairoExporter",
    "ExportError",
    "EmptyDiagramError",
    "project",
    "render_svg",
    "export_svg",
    "export_png",
    "to_data_uri",
    # Validation
    "validate_graph",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]
