"""
Tests for the interaction controller state machine.

Covers: dragging, panning, connecting, zoom (wheel, pinch, buttons),
label editing, deletion and toolbar actions.
"""

import math

import pytest

from flowsketch.core import events as ev
from flowsketch.core.document import MAX_ZOOM, MIN_ZOOM
from flowsketch.core.geometry import Hit, HitKind
from flowsketch.core.interaction import (
    Connecting,
    DraggingNode,
    EditingLabel,
    Idle,
    InteractionController,
    PanningView,
)
from flowsketch.core.models import NodeShape


@pytest.fixture
def controller(document):
    return InteractionController(document)


def screen(controller, mx, my):
    """Model point -> screen point through the current viewport."""
    return controller.document.viewport.to_screen(mx, my)


def press(controller, mx, my):
    return controller.handle(ev.PointerDown(*screen(controller, mx, my)))


def move(controller, mx, my):
    return controller.handle(ev.PointerMove(*screen(controller, mx, my)))


# Laid out sample: A at (60, 60), B at (60, 180), C at (60, 300)


class TestDragging:
    """Test moving nodes with the pointer."""

    def test_press_on_node_selects_and_drags(self, controller):
        state = press(controller, 100, 80)
        assert isinstance(state, DraggingNode)
        assert state.node_id == "A"
        assert state.grab_dx == pytest.approx(40)
        assert state.grab_dy == pytest.approx(20)
        assert controller.document.selected_node == "A"

    def test_node_follows_pointer_keeping_grab_offset(self, controller):
        press(controller, 100, 80)
        move(controller, 300, 400)
        node = controller.document.graph.nodes["A"]
        assert node.x == pytest.approx(260)
        assert node.y == pytest.approx(380)

    def test_release_returns_to_idle(self, controller):
        press(controller, 100, 80)
        move(controller, 120, 90)
        assert isinstance(controller.handle(ev.PointerUp()), Idle)
        move(controller, 500, 500)
        assert controller.document.graph.nodes["A"].x == pytest.approx(80)

    def test_edges_follow_nodes(self, controller):
        press(controller, 100, 80)
        move(controller, 700, 80)
        edge = controller.document.graph.edges[0]
        assert (edge.source, edge.target) == ("A", "B")


class TestPanning:
    """Test dragging the canvas."""

    def test_press_on_canvas_pans(self, controller):
        doc = controller.document
        doc.select_node("A")
        state = controller.handle(ev.PointerDown(5, 5))
        assert isinstance(state, PanningView)
        assert doc.selected_node is None

        controller.handle(ev.PointerMove(25, 35))
        assert (doc.viewport.pan_x, doc.viewport.pan_y) == (60, 50)
        assert doc.viewport.zoom == 0.9

        assert isinstance(controller.handle(ev.PointerUp()), Idle)

    def test_panning_does_not_move_nodes(self, controller):
        before = controller.document.graph
        controller.handle(ev.PointerDown(5, 5))
        controller.handle(ev.PointerMove(300, 300))
        assert controller.document.graph is before


class TestConnecting:
    """Test drawing edges from the connect handle."""

    def _select_a(self, controller):
        press(controller, 100, 80)
        controller.handle(ev.PointerUp())

    def test_handle_of_selected_node_starts_connecting(self, controller):
        self._select_a(controller)
        state = press(controller, 227, 86)
        assert state == Connecting("A")

    def test_handle_ignored_for_unselected_node(self, controller):
        state = press(controller, 227, 86)
        assert isinstance(state, PanningView)

    def test_rubber_band_follows_pointer(self, controller):
        self._select_a(controller)
        press(controller, 227, 86)
        move(controller, 400, 500)
        start, end = controller.rubber_band
        assert (start.x, start.y) == (142, 86)
        assert end.x == pytest.approx(400)
        assert end.y == pytest.approx(500)

    def test_click_other_node_commits_edge(self, controller):
        self._select_a(controller)
        press(controller, 227, 86)
        state = press(controller, 100, 320)
        assert isinstance(state, Idle)
        edges = controller.document.graph.edges
        assert len(edges) == 3
        assert (edges[-1].source, edges[-1].target, edges[-1].label) == ("A", "C", "")
        assert controller.rubber_band is None

    def test_click_same_node_cancels(self, controller):
        self._select_a(controller)
        press(controller, 227, 86)
        state = press(controller, 100, 80)
        assert isinstance(state, Idle)
        assert len(controller.document.graph.edges) == 2

    def test_click_canvas_cancels_without_panning(self, controller):
        self._select_a(controller)
        press(controller, 227, 86)
        state = controller.handle(ev.PointerDown(5, 5))
        assert isinstance(state, Idle)
        assert len(controller.document.graph.edges) == 2

    def test_pointer_up_keeps_connecting(self, controller):
        controller.handle(ev.PointerDown(0, 0, target=Hit(HitKind.HANDLE, node_id="B")))
        assert controller.handle(ev.PointerUp()) == Connecting("B")

    def test_explicit_target(self, controller):
        controller.handle(ev.PointerDown(0, 0, target=Hit(HitKind.HANDLE, node_id="C")))
        controller.handle(ev.PointerDown(0, 0, target=Hit(HitKind.NODE, node_id="A")))
        edge = controller.document.graph.edges[-1]
        assert (edge.source, edge.target) == ("C", "A")

    def test_toggle_connect(self, controller):
        controller.document.select_node("B")
        assert controller.handle(ev.ToggleConnect()) == Connecting("B")
        assert isinstance(controller.handle(ev.ToggleConnect()), Idle)

    def test_toggle_connect_without_selection(self, controller):
        assert isinstance(controller.handle(ev.ToggleConnect()), Idle)


class TestZoom:
    """Test wheel, pinch and button zoom."""

    def test_wheel_zooms_in_and_out(self, controller):
        vp = controller.document.viewport
        controller.handle(ev.Wheel(-100))
        assert controller.document.viewport.zoom == pytest.approx(0.9 * math.exp(0.1))
        controller.handle(ev.Wheel(100))
        assert controller.document.viewport.zoom == pytest.approx(0.9)
        assert controller.document.viewport.pan_x == vp.pan_x

    @pytest.mark.parametrize("delta, expected", [
        (-1000, MAX_ZOOM),
        (-1e12, MAX_ZOOM),
        (1e12, MIN_ZOOM),
    ])
    def test_wheel_clamped(self, controller, delta, expected):
        controller.handle(ev.Wheel(delta))
        assert controller.document.viewport.zoom == expected

    def test_wheel_nan_ignored(self, controller):
        controller.handle(ev.Wheel(math.nan))
        assert controller.document.viewport.zoom == 0.9

    def test_pinch(self, controller):
        controller.handle(ev.PinchStart(100))
        controller.handle(ev.PinchMove(150))
        assert controller.document.viewport.zoom == pytest.approx(1.35)
        controller.handle(ev.PinchMove(50))
        assert controller.document.viewport.zoom == pytest.approx(0.45)

    def test_pinch_bad_distances_ignored(self, controller):
        controller.handle(ev.PinchStart(100))
        controller.handle(ev.PinchMove(0))
        controller.handle(ev.PinchMove(math.inf))
        assert controller.document.viewport.zoom == 0.9

    def test_pinch_move_without_start_ignored(self, controller):
        controller.handle(ev.PinchStart(100))
        controller.handle(ev.PinchEnd())
        controller.handle(ev.PinchMove(300))
        assert controller.document.viewport.zoom == 0.9

    def test_zoom_buttons_and_reset(self, controller):
        controller.handle(ev.ZoomBy(2))
        assert controller.document.viewport.zoom == pytest.approx(1.8)
        controller.handle(ev.ZoomBy(10))
        assert controller.document.viewport.zoom == MAX_ZOOM
        controller.handle(ev.ResetView())
        vp = controller.document.viewport
        assert (vp.pan_x, vp.pan_y, vp.zoom) == (40, 20, 0.9)


class TestLabelEditing:
    """Test the modal label editor."""

    def test_rename_node(self, controller):
        state = controller.handle(ev.DoubleClick(0, 0, target=Hit(HitKind.NODE, node_id="B")))
        assert state == EditingLabel("node", "B", "Check")
        controller.handle(ev.EditText("Valid?"))
        assert isinstance(controller.handle(ev.ConfirmEdit()), Idle)
        assert controller.document.graph.nodes["B"].label == "Valid?"

    def test_double_click_hit_tests_node(self, controller):
        sx, sy = screen(controller, 100, 320)
        state = controller.handle(ev.DoubleClick(sx, sy))
        assert state == EditingLabel("node", "C", "Done")

    def test_cancel_discards(self, controller):
        controller.handle(ev.DoubleClick(0, 0, target=Hit(HitKind.NODE, node_id="A")))
        controller.handle(ev.EditText("Nope"))
        controller.handle(ev.CancelEdit())
        assert controller.document.graph.nodes["A"].label == "Start"

    def test_edit_edge_label(self, controller):
        state = controller.handle(ev.DoubleClick(0, 0, target=Hit(HitKind.EDGE_LABEL, edge_index=1)))
        assert state == EditingLabel("edge", 1, "yes")
        controller.handle(ev.EditText("no"))
        controller.handle(ev.ConfirmEdit())
        assert controller.document.graph.edges[1].label == "no"

    def test_other_events_ignored_while_editing(self, controller):
        doc = controller.document
        doc.select_node("A")
        controller.handle(ev.DoubleClick(0, 0, target=Hit(HitKind.NODE, node_id="A")))
        before = doc.graph
        for event in (
            ev.DeleteSelection(),
            ev.PointerDown(5, 5),
            ev.Wheel(-500),
            ev.AddNode(),
            ev.ToggleConnect(),
        ):
            assert isinstance(controller.handle(event), EditingLabel)
        assert doc.graph is before
        assert doc.viewport.zoom == 0.9

    def test_begin_edit_for_selection(self, controller):
        controller.document.select_edge(0)
        state = controller.handle(ev.BeginEdit())
        assert state == EditingLabel("edge", 0, "")

    def test_begin_edit_without_selection(self, controller):
        assert isinstance(controller.handle(ev.BeginEdit()), Idle)


class TestSelectionActions:
    """Test delete and toolbar actions."""

    def test_delete_selected_node_cascades(self, controller):
        controller.document.select_node("B")
        assert isinstance(controller.handle(ev.DeleteSelection()), Idle)
        graph = controller.document.graph
        assert list(graph.nodes) == ["A", "C"]
        assert graph.edges == []
        assert controller.document.selected_node is None

    def test_delete_selected_edge(self, controller):
        controller.handle(ev.PointerDown(0, 0, target=Hit(HitKind.EDGE, edge_index=0)))
        assert controller.document.selected_edge == 0
        controller.handle(ev.DeleteSelection())
        edges = controller.document.graph.edges
        assert [(e.source, e.target) for e in edges] == [("B", "C")]

    def test_delete_without_selection(self, controller):
        before = controller.document.graph
        controller.handle(ev.DeleteSelection())
        assert controller.document.graph is before

    def test_add_node_selects_it(self, controller):
        controller.handle(ev.AddNode(label="Extra", x=500, y=40))
        doc = controller.document
        node = doc.graph.get_node(doc.selected_node)
        assert node.label == "Extra"
        assert (node.x, node.y) == (500, 40)

    def test_set_shape(self, controller):
        controller.document.select_node("A")
        controller.handle(ev.SetShape(NodeShape.SUBROUTINE))
        assert controller.document.graph.nodes["A"].shape == NodeShape.SUBROUTINE

    def test_set_shape_by_name(self, controller):
        controller.document.select_node("A")
        controller.handle(ev.SetShape("diamond"))
        assert controller.document.graph.nodes["A"].shape == NodeShape.DIAMOND

    def test_set_unknown_shape_ignored(self, controller):
        controller.document.select_node("A")
        before = controller.document.graph
        assert isinstance(controller.handle(ev.SetShape("hexagon")), Idle)
        assert controller.document.graph is before
        assert before.nodes["A"].shape == NodeShape.RECT

    def test_add_node_unknown_shape_ignored(self, controller):
        count = len(controller.document.graph.nodes)
        assert isinstance(controller.handle(ev.AddNode(shape="hexagon")), Idle)
        assert len(controller.document.graph.nodes) == count

    def test_unmatched_events_ignored(self, controller):
        for event in (ev.PointerUp(), ev.ConfirmEdit(), ev.CancelEdit(), ev.EditText("x"), ev.PinchEnd()):
            assert isinstance(controller.handle(event), Idle)
