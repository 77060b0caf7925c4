"""Interactive resource graph canvas: gestures, highlighting, geometry and selection."""

from .actions import CanvasAction
from .geometry import EdgeGeometry, build_edge_geometry, correct_label_y
from .gestures import GestureClassifier, PointerPhase
from .graph import CanvasFrame, ControlsState, EdgeView, GraphCanvas, NodeView
from .highlight import HoverState, highlight_event_chain
from .models import (
    CanvasSnapshot,
    EdgeLabel,
    EdgeSection,
    EventChainLink,
    GraphEdge,
    GraphNode,
    LayoutState,
    Point,
    SelectionChange,
    Viewport,
)
from .selection import SelectionBridge, TaggingOutcome
from .styles import ContainerLayout
from .viewport import ViewportController

__all__ = [
    "CanvasAction",
    "CanvasFrame",
    "CanvasSnapshot",
    "ContainerLayout",
    "ControlsState",
    "EdgeGeometry",
    "EdgeLabel",
    "EdgeSection",
    "EdgeView",
    "EventChainLink",
    "GestureClassifier",
    "GraphCanvas",
    "GraphEdge",
    "GraphNode",
    "HoverState",
    "LayoutState",
    "NodeView",
    "Point",
    "PointerPhase",
    "SelectionBridge",
    "SelectionChange",
    "TaggingOutcome",
    "Viewport",
    "ViewportController",
    "build_edge_geometry",
    "correct_label_y",
    "highlight_event_chain",
]
