"""
Input events consumed by the interaction controller.

A small tagged union independent of any particular input API. Pointer
coordinates are screen coordinates; the controller converts them with the
current viewport. A view layer that already knows what was clicked can pass
it as `target` and skip the controller's own hit-testing.
"""

from dataclasses import dataclass

from .geometry import Hit
from .models import NodeShape


# --- Pointer and gestures ---

@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float
    target: Hit | None = None


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    x: float = 0
    y: float = 0


@dataclass(frozen=True)
class Wheel:
    delta_y: float


@dataclass(frozen=True)
class PinchStart:
    distance: float


@dataclass(frozen=True)
class PinchMove:
    distance: float


@dataclass(frozen=True)
class PinchEnd:
    pass


@dataclass(frozen=True)
class DoubleClick:
    x: float
    y: float
    target: Hit | None = None


# --- Label editing ---

@dataclass(frozen=True)
class EditText:
    text: str


@dataclass(frozen=True)
class ConfirmEdit:
    pass


@dataclass(frozen=True)
class CancelEdit:
    pass


# --- Toolbar actions ---

@dataclass(frozen=True)
class DeleteSelection:
    pass


@dataclass(frozen=True)
class ToggleConnect:
    """Start (or cancel) connecting from the selected node."""


@dataclass(frozen=True)
class AddNode:
    label: str = "New Step"
    shape: NodeShape = NodeShape.RECT
    x: float = 200
    y: float = 200


@dataclass(frozen=True)
class SetShape:
    shape: NodeShape


@dataclass(frozen=True)
class BeginEdit:
    """Open the label editor for the current selection."""


@dataclass(frozen=True)
class ZoomBy:
    factor: float


@dataclass(frozen=True)
class ResetView:
    pass


Event = (
    PointerDown | PointerMove | PointerUp | Wheel | PinchStart | PinchMove | PinchEnd
    | DoubleClick | EditText | ConfirmEdit | CancelEdit | DeleteSelection
    | ToggleConnect | AddNode | SetShape | BeginEdit | ZoomBy | ResetView
)
