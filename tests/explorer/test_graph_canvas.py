from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Tuple

import pytest

from explorer.app.canvas.actions import (
    CanvasAction,
    CollapseAll,
    ExpandAll,
    FitView,
    InitialRenderCompleted,
    SelectResource,
    ToggleNodeCollapsed,
)
from explorer.app.canvas.graph import GraphCanvas
from explorer.app.canvas.gestures import PointerPhase
from explorer.app.canvas.models import (
    CanvasSnapshot,
    EdgeLabel,
    EdgeSection,
    EventChainLink,
    GraphEdge,
    GraphNode,
    LayoutState,
    Point,
    SelectionChange,
)
from explorer.app.canvas.styles import ContainerLayout
from explorer.app.config import AppConfig
from explorer.app.contracts import EnvironmentTag, node_id_from_resource_id, resource_id
from explorer.app.main import create_graph_canvas

ACCOUNT = resource_id(("aws-account", "123"))
BUCKET = resource_id(("aws-account", "123"), ("aws-s3-bucket", "logs"))


class _RecordingTelemetry:
    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, object]]] = []

    def capture(self, event: str, properties: Optional[Mapping[str, object]] = None) -> None:
        self.events.append((event, dict(properties or {})))

    def capture_exception(self, error: BaseException) -> None:
        self.events.append(("$exception", {"message": str(error)}))


class _StubTransformHost:
    def __init__(self) -> None:
        self._zoom = 0.5
        self.calls: List[Tuple[object, ...]] = []

    @property
    def zoom(self) -> float:
        return self._zoom

    async def set_viewport(self, x: float, y: float, zoom: float, *, duration: int) -> None:
        self.calls.append(("set_viewport", x, y, zoom, duration))
        self._zoom = zoom

    async def zoom_to(self, zoom: float, *, duration: int) -> None:
        self.calls.append(("zoom_to", zoom, duration))
        self._zoom = zoom


class _StubPointerHost:
    def __init__(self) -> None:
        self.clicks: List[object] = []

    def element_at(self, position: Point) -> Optional[object]:
        return "bucket-title"

    def dispatch_click(self, element: object, position: Point) -> None:
        self.clicks.append(element)


def _account(collapsed: bool = False) -> GraphNode:
    return GraphNode(
        id=node_id_from_resource_id(ACCOUNT),
        resource_id=ACCOUNT,
        num_children=1,
        collapsed=collapsed,
    )


def _bucket() -> GraphNode:
    return GraphNode(
        id=node_id_from_resource_id(BUCKET),
        resource_id=BUCKET,
        environments=(
            EnvironmentTag(name="prod", color_index=0, inherited_from=ACCOUNT),
            EnvironmentTag(name="dev", color_index=1),
        ),
        issue_ids=("issue-1",),
    )


def _edges() -> Dict[str, GraphEdge]:
    routed = EdgeSection(start_point=Point(100, 0), end_point=Point(100, 80))
    return CanvasSnapshot.index_edges(
        GraphEdge(id="e1", original_source_id="a", original_target_id="b", section=routed, label=EdgeLabel(text="x")),
        GraphEdge(id="e2", original_source_id="b", original_target_id="c", section=routed),
        GraphEdge(id="e3", original_source_id="c", original_target_id="d"),
    )


def _snapshot(layout_state: LayoutState = LayoutState.LAID_OUT, collapsed: bool = False) -> CanvasSnapshot:
    return CanvasSnapshot(
        nodes=CanvasSnapshot.index_nodes(_account(collapsed), _bucket()),
        edges=_edges(),
        event_chain_links={"e1": EventChainLink(following=("e2",))},
        layout_state=layout_state,
    )


def _canvas(dispatched: List[CanvasAction], telemetry=None, **kwargs) -> GraphCanvas:
    return GraphCanvas(dispatched.append, telemetry or _RecordingTelemetry(), _StubTransformHost(), **kwargs)


def test_initial_render_completed_is_reported_once() -> None:
    dispatched: List[CanvasAction] = []
    canvas = _canvas(dispatched)

    canvas.update(_snapshot(LayoutState.INITIAL))
    assert canvas.render().loading
    canvas.update(_snapshot(LayoutState.INITIAL))
    canvas.update(_snapshot(LayoutState.LAID_OUT))

    assert dispatched == [InitialRenderCompleted()]
    assert not canvas.render().loading


def test_layout_state_never_regresses(caplog: pytest.LogCaptureFixture) -> None:
    dispatched: List[CanvasAction] = []
    canvas = _canvas(dispatched)

    canvas.update(_snapshot(LayoutState.LAID_OUT))
    with caplog.at_level(logging.WARNING):
        canvas.update(_snapshot(LayoutState.INITIAL))

    assert canvas.laid_out
    assert dispatched == []
    assert "layout state regression" in caplog.text


def test_collapse_toggle_switches_container_layout() -> None:
    dispatched: List[CanvasAction] = []
    canvas = _canvas(dispatched)
    account_id = node_id_from_resource_id(ACCOUNT)

    canvas.update(_snapshot())
    views = {view.node.id: view for view in canvas.render().nodes}
    assert views[account_id].layout is ContainerLayout.OPEN
    assert "h-[var(--resource-title-height)]" in views[account_id].container_class_names

    canvas.toggle_node_collapsed(account_id)
    canvas.toggle_node_collapsed(node_id_from_resource_id(BUCKET))
    assert dispatched == [ToggleNodeCollapsed(node_id=account_id)]

    canvas.update(_snapshot(collapsed=True))
    views = {view.node.id: view for view in canvas.render().nodes}
    assert views[account_id].layout is ContainerLayout.CLOSED
    assert views[account_id].chevron == "chevron-down"
    assert "h-full" in views[account_id].container_class_names


def test_node_view_environment_badges() -> None:
    canvas = _canvas([])
    canvas.update(_snapshot())

    bucket = next(view for view in canvas.render().nodes if view.node.resource_id == BUCKET)

    assert bucket.has_issues
    assert [badge.initial for badge in bucket.environments] == ["P", "D"]
    assert [badge.removable for badge in bucket.environments] == [False, True]
    assert bucket.environments[0].description == 'Inherited from aws-account "123"'


def test_render_skips_unrouted_edges_and_highlights_chain() -> None:
    canvas = _canvas([])
    canvas.update(_snapshot())

    frame = canvas.render()
    assert [view.edge.id for view in frame.edges] == ["e1", "e2"]
    assert all("opacity-40" in view.class_names for view in frame.edges)
    assert frame.edges[0].geometry.vertices[0] == Point(87, 0)

    canvas.on_edge_hover("mouseenter", "e1")
    frame = canvas.render()
    assert all(view.edge.event_chain_hovered for view in frame.edges)
    assert all("stroke-hover" in view.class_names for view in frame.edges)

    canvas.on_edge_hover("mouseleave", "e1")
    assert not any(view.edge.event_chain_hovered for view in canvas.render().edges)
    assert not canvas.snapshot.edges["e1"].event_chain_hovered


def test_pointer_without_host_warns_once(caplog: pytest.LogCaptureFixture) -> None:
    canvas = _canvas([])

    with caplog.at_level(logging.WARNING):
        canvas.on_pointer(PointerPhase.START, Point(0, 0))
        assert canvas.on_pointer(PointerPhase.END, Point(0, 0)) is None

    assert caplog.text.count("click recovery") == 1


def test_pointer_host_recovers_clicks() -> None:
    pointer_host = _StubPointerHost()
    canvas = _canvas([], pointer_host=pointer_host)

    canvas.on_pointer(PointerPhase.START, Point(0, 0))
    assert canvas.on_pointer(PointerPhase.END, Point(1, 1)) == "bucket-title"
    assert pointer_host.clicks == ["bucket-title"]


def test_selection_changes_use_current_snapshot() -> None:
    dispatched: List[CanvasAction] = []
    telemetry = _RecordingTelemetry()
    canvas = _canvas(dispatched, telemetry)
    canvas.update(_snapshot())
    bucket_id = node_id_from_resource_id(BUCKET)

    canvas.on_nodes_change([SelectionChange(id=bucket_id, selected=True)])
    canvas.on_issue_badge_clicked("missing")

    assert dispatched == [SelectResource(resource_id=bucket_id)]
    assert telemetry.events == [("graph_resource_selected", {"resource_type": "aws-s3-bucket"})]


def test_controls_emit_actions_and_telemetry() -> None:
    dispatched: List[CanvasAction] = []
    telemetry = _RecordingTelemetry()
    canvas = _canvas(dispatched, telemetry)

    async def _run() -> None:
        await canvas.zoom_in()
        await canvas.zoom_out()
        canvas.fit_view()
        canvas.expand_all()
        canvas.collapse_all()
        await canvas.close()

    asyncio.run(_run())

    assert dispatched == [FitView(duration=500), ExpandAll(), CollapseAll()]
    assert [event for event, _ in telemetry.events] == [
        "graph_zoom_in",
        "graph_zoom_out",
        "graph_fit_view",
        "graph_expand_all",
        "graph_collapse_all",
    ]
    controls = canvas.render().controls
    assert controls.can_zoom_in and controls.can_zoom_out


def test_factory_builds_canvas_from_config() -> None:
    dispatched: List[CanvasAction] = []
    config = AppConfig(telemetry={"backend": "none"}, canvas={"issue_badge_size": 10})

    canvas = create_graph_canvas(dispatched.append, _StubTransformHost(), config=config)
    canvas.update(_snapshot())

    assert canvas.render().edges[0].geometry.vertices[0] == Point(95, 0)
    canvas.fit_view()
    assert dispatched == [FitView(duration=500)]


def test_selected_node_offers_issue_badge_and_environment_choices() -> None:
    canvas = _canvas([])
    other = GraphNode(
        id="::aws-account::456",
        resource_id=resource_id(("aws-account", "456")),
        environments=(EnvironmentTag(name="qa"), EnvironmentTag(name="dev")),
    )
    bucket = _bucket()
    selected = GraphNode(
        id=bucket.id,
        resource_id=bucket.resource_id,
        environments=bucket.environments,
        issue_ids=bucket.issue_ids,
        selected=True,
    )
    canvas.update(
        CanvasSnapshot(nodes=CanvasSnapshot.index_nodes(_account(), selected, other), layout_state=LayoutState.LAID_OUT)
    )

    views = {view.node.id: view for view in canvas.render().nodes}

    assert "bg-red-500" in views[bucket.id].issue_badge_class_names
    assert views[other.id].issue_badge_class_names == ()
    assert views[bucket.id].add_environment_choices == (("qa", False),)
    assert views[other.id].add_environment_choices == ()
    assert canvas.add_environment_choices(bucket.id, "perf") == [("qa", False), ("perf", True)]
    assert canvas.add_environment_choices(bucket.id, "dev") == [("qa", False)]
    assert canvas.add_environment_choices("missing") == []
