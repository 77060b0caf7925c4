"""Graph canvas orchestration.

A :class:`GraphCanvas` is one mounted canvas. It keeps ephemeral hover state
locally and treats everything else (nodes, edges, event chain links, layout
state, viewport) as an immutable snapshot supplied by the host application on
every update. Interactions are routed to the specialised components and come
back out as outbound actions, telemetry events and a renderable frame.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from explorer.app.canvas.actions import (
    ActionDispatcher,
    CollapseAll,
    ExpandAll,
    FitView,
    InitialRenderCompleted,
    ToggleNodeCollapsed,
)
from explorer.app.canvas.environments import badge_initial, environment_choices, inherited_from_description
from explorer.app.canvas.geometry import EdgeGeometry, build_edge_geometry
from explorer.app.canvas.gestures import GestureClassifier, PointerPhase
from explorer.app.canvas.highlight import HoverState, highlight_event_chain
from explorer.app.canvas.hosts import Navigator, Notifier, PointerHost, TransformHost
from explorer.app.canvas.models import (
    CanvasSnapshot,
    EdgeId,
    GraphEdge,
    GraphNode,
    LayoutState,
    NodeId,
    Point,
    SelectionChange,
)
from explorer.app.canvas.selection import SelectionBridge, TaggingDone, TaggingOutcome
from explorer.app.canvas.styles import (
    ContainerLayout,
    collapse_chevron,
    container_class_names,
    edge_class_names,
    environment_badge_class_names,
    issue_badge_class_names,
    node_container_layout,
    title_class_names,
)
from explorer.app.canvas.viewport import ViewportController
from explorer.app.config import CanvasConfig, NotificationsConfig
from explorer.app.contracts import EnvironmentTag, ResourceId
from explorer.app.observability.telemetry import TelemetrySink

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentBadgeView:
    tag: EnvironmentTag
    initial: str
    class_names: Tuple[str, ...]
    description: Optional[str]
    removable: bool


@dataclass(frozen=True)
class NodeView:
    """Render instructions for one resource node."""

    node: GraphNode
    layout: ContainerLayout
    container_class_names: Tuple[str, ...]
    title_class_names: Tuple[str, ...]
    chevron: Optional[str]
    environments: Tuple[EnvironmentBadgeView, ...]
    has_issues: bool
    issue_badge_class_names: Tuple[str, ...] = ()
    add_environment_choices: Tuple[Tuple[str, bool], ...] = ()


@dataclass(frozen=True)
class EdgeView:
    """Render instructions for one routed edge."""

    edge: GraphEdge
    geometry: EdgeGeometry
    class_names: Tuple[str, ...]


@dataclass(frozen=True)
class ControlsState:
    can_zoom_in: bool
    can_zoom_out: bool


@dataclass(frozen=True)
class CanvasFrame:
    """Everything the widget library needs to draw one cycle."""

    loading: bool
    nodes: Tuple[NodeView, ...]
    edges: Tuple[EdgeView, ...]
    controls: ControlsState


class GraphCanvas:
    """Route interactions of one mounted canvas to its components."""

    def __init__(
        self,
        dispatch: ActionDispatcher,
        telemetry: TelemetrySink,
        transform_host: TransformHost,
        *,
        pointer_host: Optional[PointerHost] = None,
        navigator: Optional[Navigator] = None,
        notifier: Optional[Notifier] = None,
        config: Optional[CanvasConfig] = None,
        notifications: Optional[NotificationsConfig] = None,
    ) -> None:
        self._dispatch = dispatch
        self._telemetry = telemetry
        self._config = config or CanvasConfig()
        self._snapshot = CanvasSnapshot()
        self._hover = HoverState()
        self._gestures: Optional[GestureClassifier] = None
        if pointer_host is not None:
            self._gestures = GestureClassifier(pointer_host, threshold=self._config.click_distance_threshold_px)
        self._click_recovery_warned = False
        self._viewport = ViewportController(
            transform_host,
            min_zoom=self._config.min_zoom,
            max_zoom=self._config.max_zoom,
            zoom_step=self._config.zoom_step,
            zoom_duration=self._config.fit_view_duration_ms,
        )
        self._selection = SelectionBridge(
            dispatch,
            telemetry,
            navigator=navigator,
            notifier=notifier,
            notifications=notifications,
            tagging_timeout=self._config.tagging_timeout_seconds,
        )
        self._layout_state = LayoutState.INITIAL
        self._initial_render_reported = False

    @property
    def snapshot(self) -> CanvasSnapshot:
        return self._snapshot

    @property
    def hover(self) -> HoverState:
        return self._hover

    @property
    def viewport(self) -> ViewportController:
        return self._viewport

    @property
    def selection(self) -> SelectionBridge:
        return self._selection

    @property
    def laid_out(self) -> bool:
        return self._layout_state is LayoutState.LAID_OUT

    def update(self, snapshot: CanvasSnapshot) -> None:
        """Accept a new snapshot from the host application."""

        self._snapshot = snapshot
        self._observe_layout_state(snapshot.layout_state)
        self._viewport.apply(snapshot.viewport)

    def render(self) -> CanvasFrame:
        """Build the frame for the current snapshot and hover state."""

        snapshot = self._snapshot
        edges = highlight_event_chain(self._hover.hovered, snapshot.edges, snapshot.event_chain_links)
        known = self._known_environments()
        return CanvasFrame(
            loading=not self.laid_out,
            nodes=tuple(self._node_view(node, known) for node in snapshot.nodes.values()),
            edges=tuple(self._edge_views(edges.values())),
            controls=ControlsState(
                can_zoom_in=self._viewport.can_zoom_in,
                can_zoom_out=self._viewport.can_zoom_out,
            ),
        )

    def on_pointer(self, phase: PointerPhase, position: Point) -> Optional[object]:
        if self._gestures is None:
            if not self._click_recovery_warned:
                LOGGER.warning("Host offers no hit-testing; click recovery after small drags is unavailable")
                self._click_recovery_warned = True
            return None
        return self._gestures.on_pointer_phase(phase, position)

    def on_edge_hover(self, kind: str, edge_id: EdgeId) -> None:
        self._hover.apply(kind, edge_id)

    def on_nodes_change(self, changes: Iterable[SelectionChange]) -> None:
        self._selection.on_node_selection_change(changes, self._snapshot.nodes)

    def on_edges_change(self, changes: Iterable[SelectionChange]) -> None:
        self._selection.on_edge_selection_change(changes, self._snapshot.edges)

    def on_issue_badge_clicked(self, node_id: NodeId) -> None:
        node = self._snapshot.nodes.get(node_id)
        if node is None:
            LOGGER.debug("Issue badge clicked for unknown node %s", node_id)
            return
        self._selection.on_issue_activated(node)

    def toggle_node_collapsed(self, node_id: NodeId) -> None:
        node = self._snapshot.nodes.get(node_id)
        if node is None or not node.collapsible:
            LOGGER.debug("Ignoring collapse toggle for non-collapsible node %s", node_id)
            return
        self._dispatch(ToggleNodeCollapsed(node_id=node_id))

    async def zoom_in(self) -> None:
        self._track("graph_zoom_in")
        await self._viewport.zoom_in()

    async def zoom_out(self) -> None:
        self._track("graph_zoom_out")
        await self._viewport.zoom_out()

    def fit_view(self) -> None:
        self._track("graph_fit_view")
        self._dispatch(FitView(duration=self._config.fit_view_duration_ms))

    def expand_all(self) -> None:
        self._track("graph_expand_all")
        self._dispatch(ExpandAll())

    def collapse_all(self) -> None:
        self._track("graph_collapse_all")
        self._dispatch(CollapseAll())

    async def tag_environment(
        self,
        resource_id: ResourceId,
        environment: str,
        on_done: Optional[TaggingDone] = None,
    ) -> TaggingOutcome:
        return await self._selection.tag_environment(resource_id, environment, on_done)

    async def untag_environment(
        self,
        resource_id: ResourceId,
        environment: str,
        on_done: Optional[TaggingDone] = None,
    ) -> TaggingOutcome:
        return await self._selection.untag_environment(resource_id, environment, on_done)

    async def close(self) -> None:
        """Let in-flight viewport animations settle and drop hover state."""

        await self._viewport.wait_idle()
        self._hover.clear()

    def _observe_layout_state(self, state: LayoutState) -> None:
        if self._layout_state is LayoutState.LAID_OUT and state is LayoutState.INITIAL:
            LOGGER.warning("Ignoring layout state regression to %s within one mount", state.value)
            return
        self._layout_state = state
        if state is LayoutState.INITIAL and not self._initial_render_reported:
            self._initial_render_reported = True
            self._dispatch(InitialRenderCompleted())

    def add_environment_choices(self, node_id: NodeId, typed: str = "") -> List[Tuple[str, bool]]:
        """Return add-environment dialog entries for a node, including typed text."""

        node = self._snapshot.nodes.get(node_id)
        if node is None:
            return []
        return self._choices_for(node, self._known_environments(), typed)

    def _known_environments(self) -> List[str]:
        names = {tag.name for node in self._snapshot.nodes.values() for tag in node.environments}
        return sorted(names)

    @staticmethod
    def _choices_for(node: GraphNode, known: Sequence[str], typed: str = "") -> List[Tuple[str, bool]]:
        # Tags already on the node are not offered again.
        present = {tag.name for tag in node.environments}
        choices = environment_choices([name for name in known if name not in present], typed)
        return [(name, is_new) for name, is_new in choices if name not in present]

    def _node_view(self, node: GraphNode, known: Sequence[str]) -> NodeView:
        return NodeView(
            node=node,
            layout=node_container_layout(node),
            container_class_names=tuple(container_class_names(node)),
            title_class_names=tuple(title_class_names(node)),
            chevron=collapse_chevron(node),
            environments=tuple(
                EnvironmentBadgeView(
                    tag=tag,
                    initial=badge_initial(tag),
                    class_names=tuple(environment_badge_class_names(tag.color_index, tag.inherited)),
                    description=inherited_from_description(tag),
                    removable=not tag.inherited,
                )
                for tag in node.environments
            ),
            has_issues=bool(node.issue_ids),
            issue_badge_class_names=tuple(issue_badge_class_names()) if node.issue_ids else (),
            add_environment_choices=tuple(self._choices_for(node, known)) if node.selected else (),
        )

    def _edge_views(self, edges: Iterable[GraphEdge]) -> List[EdgeView]:
        offset = self._config.edge_lateral_offset
        views: List[EdgeView] = []
        for edge in edges:
            geometry = build_edge_geometry(edge, offset)
            if geometry is None:
                continue
            views.append(
                EdgeView(
                    edge=edge,
                    geometry=geometry,
                    class_names=tuple(edge_class_names(edge.selected, edge.event_chain_hovered)),
                )
            )
        return views

    def _track(self, event: str) -> None:
        try:
            self._telemetry.capture(event, {})
        except Exception:
            LOGGER.exception("Telemetry capture failed for %s", event)
