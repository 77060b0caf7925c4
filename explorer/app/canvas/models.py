"""Snapshot payloads consumed by the graph canvas."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Mapping, NamedTuple, Optional, Tuple

from explorer.app.contracts import EnvironmentTag, ResourceEvent, ResourceId

EdgeId = str
NodeId = str


class Point(NamedTuple):
    """Canvas coordinate in layout pixels."""

    x: float
    y: float


@dataclass(frozen=True)
class Dimensions:
    width: float
    height: float


@dataclass(frozen=True)
class EdgeLabel:
    """Label hint produced by the layout engine; any field may be missing."""

    text: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None


@dataclass(frozen=True)
class EdgeSection:
    """Routed path of an edge: start, bend points and end."""

    start_point: Point
    end_point: Point
    bend_points: Tuple[Point, ...] = ()


class LayoutState(str, Enum):
    """Whether the canvas has completed its first stable layout pass."""

    INITIAL = "initial"
    LAID_OUT = "laid_out"


@dataclass(frozen=True)
class GraphNode:
    """Resource node payload supplied by the host application."""

    id: NodeId
    resource_id: ResourceId
    num_children: int = 0
    collapsed: bool = False
    environments: Tuple[EnvironmentTag, ...] = ()
    issue_ids: Tuple[str, ...] = ()
    absolute_position: Point = Point(0.0, 0.0)
    original_parent_id: Optional[NodeId] = None
    original_dimensions: Optional[Dimensions] = None
    parent_resource_id: Optional[ResourceId] = None
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    highlighted: bool = False
    selected: bool = False

    @property
    def collapsible(self) -> bool:
        return self.num_children > 0


@dataclass(frozen=True)
class GraphEdge:
    """Event-group edge payload; ``section`` is absent until routed."""

    id: EdgeId
    original_source_id: NodeId
    original_target_id: NodeId
    label: EdgeLabel = field(default_factory=EdgeLabel)
    section: Optional[EdgeSection] = None
    events: Tuple[ResourceEvent, ...] = ()
    event_chain_hovered: bool = False
    selected: bool = False


@dataclass(frozen=True)
class EventChainLink:
    """One-hop causal/temporal neighbours of an edge."""

    preceding: Tuple[EdgeId, ...] = ()
    following: Tuple[EdgeId, ...] = ()


@dataclass(frozen=True)
class Viewport:
    """Transition descriptor; a new object means a new transition request."""

    x: float
    y: float
    zoom: float
    duration: int = 0


@dataclass(frozen=True)
class SelectionChange:
    """Selection transition reported by the rendering widget."""

    id: str
    selected: bool
    type: str = "select"


@dataclass(frozen=True)
class CanvasSnapshot:
    """Immutable per-update input owned by the host application."""

    nodes: Mapping[NodeId, GraphNode] = field(default_factory=dict)
    edges: Mapping[EdgeId, GraphEdge] = field(default_factory=dict)
    event_chain_links: Mapping[EdgeId, EventChainLink] = field(default_factory=dict)
    layout_state: LayoutState = LayoutState.INITIAL
    viewport: Optional[Viewport] = None

    @staticmethod
    def index_nodes(*nodes: GraphNode) -> Dict[NodeId, GraphNode]:
        """Return a node map keyed by node id."""

        return {node.id: node for node in nodes}

    @staticmethod
    def index_edges(*edges: GraphEdge) -> Dict[EdgeId, GraphEdge]:
        """Return an edge map keyed by edge id."""

        return {edge.id: edge for edge in edges}
