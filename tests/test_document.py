"""
Tests for the Document and its viewport.

Covers: change notification, selection pruning, whole-graph loads,
viewport transforms and zoom clamping.
"""

import math

import pytest

from flowsketch.core.document import MAX_ZOOM, MIN_ZOOM, Document, Viewport
from flowsketch.core.models import NodeShape


class TestViewport:
    """Test pan/zoom transforms."""

    def test_defaults(self):
        vp = Viewport()
        assert (vp.pan_x, vp.pan_y, vp.zoom) == (40, 20, 0.9)

    def test_round_trip(self):
        vp = Viewport(pan_x=15, pan_y=-30, zoom=1.5)
        sx, sy = vp.to_screen(100, 200)
        assert (sx, sy) == (165, 270)
        mx, my = vp.to_model(sx, sy)
        assert mx == pytest.approx(100)
        assert my == pytest.approx(200)

    @pytest.mark.parametrize("zoom, expected", [
        (10, MAX_ZOOM),
        (0.01, MIN_ZOOM),
        (1.2, 1.2),
        (-3, MIN_ZOOM),
    ])
    def test_zoom_clamped(self, zoom, expected):
        assert Viewport().with_zoom(zoom).zoom == expected

    def test_zoom_keeps_pan(self):
        vp = Viewport(pan_x=7, pan_y=9).with_zoom(1.7)
        assert (vp.pan_x, vp.pan_y) == (7, 9)

    @pytest.mark.parametrize("factor", [0, -1, math.nan, math.inf])
    def test_bad_zoom_factor_ignored(self, factor):
        vp = Viewport()
        assert vp.zoomed_by(factor) is vp

    def test_nan_zoom_ignored(self):
        vp = Viewport()
        assert vp.with_zoom(math.nan) is vp


class TestChangeNotification:
    """Test on_change callbacks."""

    def test_accepted_mutation_notifies(self, document):
        received = []
        document.on_change(received.append)
        document.rename_node("A", "Begin")
        assert len(received) == 1
        assert received[0]["nodes"][0]["label"] == "Begin"

    def test_rejected_mutation_is_silent(self, document):
        received = []
        document.on_change(received.append)
        assert document.add_edge("A", "A") is False
        assert document.delete_node("missing") is False
        assert document.delete_edge(99) is False
        assert received == []

    def test_every_callback_called(self, document):
        calls = []
        document.on_change(lambda snap: calls.append("first"))
        document.on_change(lambda snap: calls.append("second"))
        document.move_node("A", 1, 2)
        assert calls == ["first", "second"]

    def test_load_text_notifies(self, document):
        received = []
        document.on_change(received.append)
        document.load_text("X --> Y")
        assert [n["id"] for n in received[-1]["nodes"]] == ["X", "Y"]


class TestDocumentOperations:
    """Test graph operations through the Document."""

    def test_from_text_is_laid_out(self, document):
        assert document.graph.nodes["C"].y > document.graph.nodes["A"].y

    def test_add_node(self, document):
        node_id = document.add_node("Extra", NodeShape.FLAG, (10, 20))
        node = document.graph.get_node(node_id)
        assert node.label == "Extra"
        assert (node.x, node.y) == (10, 20)

    def test_is_empty(self):
        doc = Document()
        assert doc.is_empty
        doc.add_node()
        assert not doc.is_empty

    def test_set_edge_label(self, document):
        assert document.set_edge_label(1, "no")
        assert document.graph.edges[1].label == "no"

    def test_relayout_restores_positions(self, document):
        original = document.graph.nodes["B"]
        document.move_node("B", 900, 900)
        document.relayout()
        moved_back = document.graph.nodes["B"]
        assert (moved_back.x, moved_back.y) == (original.x, original.y)

    def test_get_state(self, document):
        state = document.get_state()
        assert set(state) == {"diagram", "direction", "viewport", "selected_node", "selected_edge"}
        assert state["viewport"]["zoom"] == 0.9


class TestSelection:
    """Test selection bookkeeping."""

    def test_select_unknown_node(self, document):
        document.select_node("missing")
        assert document.selected_node is None

    def test_node_and_edge_exclusive(self, document):
        document.select_node("A")
        document.select_edge(0)
        assert document.selected_node is None
        assert document.selected_edge == 0

    def test_deleted_node_deselected(self, document):
        document.select_node("B")
        document.delete_node("B")
        assert document.selected_node is None

    def test_edge_selection_dropped_when_edges_shift(self, document):
        document.select_edge(1)
        document.delete_edge(0)
        assert document.selected_edge is None

    def test_edge_selection_kept_on_relabel(self, document):
        document.select_edge(1)
        document.set_edge_label(1, "maybe")
        assert document.selected_edge == 1

    def test_load_clears_selection(self, document):
        document.select_node("A")
        document.load_text("A --> Z")
        assert document.selected_node is None
