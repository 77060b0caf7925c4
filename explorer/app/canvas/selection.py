"""Relay canvas selection interactions to the host reducer and telemetry."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import (
    AbstractSet,
    AsyncIterator,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from explorer.app.canvas.actions import (
    ActionDispatcher,
    DeselectEdge,
    DeselectResource,
    SelectEdge,
    SelectIssue,
    SelectResource,
    TagEnvironment,
    UntagEnvironment,
)
from explorer.app.canvas.hosts import Navigator, NotificationHandle, NotificationVariant, Notifier
from explorer.app.canvas.models import EdgeId, GraphEdge, GraphNode, NodeId, SelectionChange
from explorer.app.config import NotificationsConfig
from explorer.app.contracts import EnvironmentTag, ResourceId, node_id_from_resource_id, resource_type_of
from explorer.app.observability.telemetry import TelemetrySink

LOGGER = logging.getLogger(__name__)

SELECT_CHANGE_TYPE = "select"
TAGGING_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class TaggingOutcome:
    """Result of a tag or untag request for one resource."""

    resource_id: ResourceId
    environment: str
    tagged: bool
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


TaggingDone = Callable[[TaggingOutcome], None]


def issues_route(current_path: str) -> Optional[str]:
    """Return the relative route to the issues view, or ``None`` when already there."""

    path = current_path.rstrip("/")
    if path.endswith("/events"):
        return "../issues"
    if path.endswith("/issues"):
        return None
    return "./issues"


class SelectionBridge:
    """Translate node, edge and issue interactions into outbound actions.

    Selection state is owned by the host application; the bridge only emits
    one action and one telemetry event per reported transition.
    """

    def __init__(
        self,
        dispatch: ActionDispatcher,
        telemetry: TelemetrySink,
        *,
        navigator: Optional[Navigator] = None,
        notifier: Optional[Notifier] = None,
        notifications: Optional[NotificationsConfig] = None,
        tagging_timeout: float = TAGGING_TIMEOUT_SECONDS,
    ) -> None:
        self._dispatch = dispatch
        self._telemetry = telemetry
        self._navigator = navigator
        self._notifier = notifier
        self._titles = notifications or NotificationsConfig()
        self._tagging_timeout = tagging_timeout
        self._locks: Dict[NodeId, Tuple[asyncio.Lock, int]] = {}

    def on_node_selection_change(
        self,
        changes: Iterable[SelectionChange],
        nodes: Mapping[NodeId, GraphNode],
    ) -> None:
        for change in changes:
            if change.type != SELECT_CHANGE_TYPE:
                continue
            node = nodes.get(change.id)
            properties = {"resource_type": resource_type_of(node.resource_id) if node else None}
            if change.selected:
                self._track("graph_resource_selected", properties)
                self._dispatch(SelectResource(resource_id=change.id, refit_view=False))
            else:
                self._track("graph_resource_deselected", properties)
                self._dispatch(DeselectResource(resource_id=change.id))

    def on_edge_selection_change(
        self,
        changes: Iterable[SelectionChange],
        edges: Mapping[EdgeId, GraphEdge],
    ) -> None:
        for change in changes:
            if change.type != SELECT_CHANGE_TYPE:
                continue
            properties = self._edge_properties(edges.get(change.id))
            if change.selected:
                self._track("graph_event_selected", properties)
                self._dispatch(SelectEdge(edge_id=change.id, refit_view=False))
            else:
                self._track("graph_event_deselected", properties)
                self._dispatch(DeselectEdge(edge_id=change.id))

    def on_table_selection_change(
        self,
        resources: Iterable[ResourceId],
        previous: AbstractSet[str],
        current: Sequence[str],
    ) -> None:
        """Diff a resources-table row selection against the host selection.

        Args:
            resources: Resource ids listed in the table.
            previous: Node ids selected before the change.
            current: Node ids selected after the change, in table order.
        """

        index = {node_id_from_resource_id(resource): resource for resource in resources}
        current_set = set(current)
        for node_id in current:
            if node_id in previous:
                continue
            self._track("resources_table_row_selected", {"resource_type": resource_type_of(index.get(node_id))})
            self._dispatch(SelectResource(resource_id=node_id))
        for node_id in previous:
            if node_id in current_set:
                continue
            self._track("resources_table_row_deselected", {"resource_type": resource_type_of(index.get(node_id))})
            self._dispatch(DeselectResource(resource_id=node_id))

    def on_issue_activated(self, node: GraphNode) -> None:
        """Open the issues view and select every issue attached to ``node``."""

        self._track("resource_node_issue_badge_clicked", {"resource_type": resource_type_of(node.resource_id)})
        if self._navigator is not None:
            route = issues_route(self._navigator.current_path)
            if route is not None:
                self._navigator.navigate(route, replace=True)
        for issue_id in node.issue_ids:
            self._dispatch(SelectIssue(issue_id=issue_id, refit_view=False))

    def on_environment_tooltip_opened(self, node: GraphNode, tag: EnvironmentTag) -> None:
        self._track(
            "resource_environment_tooltip_opened",
            {
                "resource_type": resource_type_of(node.resource_id),
                "env_inherited_from_resource_type": resource_type_of(tag.inherited_from),
            },
        )

    def on_add_environment_dialog_opened(self, node: GraphNode) -> None:
        self._track("resource_add_environment_dialog_opened", {"resource_type": resource_type_of(node.resource_id)})

    async def on_environment_badge_clicked(
        self,
        node: GraphNode,
        tag: EnvironmentTag,
    ) -> Optional[TaggingOutcome]:
        """Untag ``tag`` from ``node`` unless it is inherited from an ancestor."""

        if tag.inherited:
            return None
        return await self.untag_environment(node.resource_id, tag.name)

    async def tag_environment(
        self,
        resource_id: ResourceId,
        environment: str,
        on_done: Optional[TaggingDone] = None,
    ) -> TaggingOutcome:
        return await self._update_environment(resource_id, environment, True, on_done)

    async def untag_environment(
        self,
        resource_id: ResourceId,
        environment: str,
        on_done: Optional[TaggingDone] = None,
    ) -> TaggingOutcome:
        return await self._update_environment(resource_id, environment, False, on_done)

    async def _update_environment(
        self,
        resource_id: ResourceId,
        environment: str,
        tagged: bool,
        on_done: Optional[TaggingDone],
    ) -> TaggingOutcome:
        async with self._resource_lock(node_id_from_resource_id(resource_id)):
            pending = self._notify(self._titles.pending_title, persistent=True)
            try:
                error = await self._dispatch_and_wait(resource_id, environment, tagged)
            finally:
                if pending is not None:
                    pending.dismiss()
            outcome = TaggingOutcome(resource_id=resource_id, environment=environment, tagged=tagged, error=error)
            self._report(outcome)
        if on_done is not None:
            try:
                on_done(outcome)
            except Exception:
                LOGGER.exception("Tagging completion handler failed for %s", node_id_from_resource_id(resource_id))
        return outcome

    async def _dispatch_and_wait(self, resource_id: ResourceId, environment: str, tagged: bool) -> Optional[str]:
        loop = asyncio.get_running_loop()
        completion: "asyncio.Future[Optional[str]]" = loop.create_future()

        def _resolve(error_message: Optional[str]) -> None:
            if not completion.done():
                completion.set_result(error_message or None)

        def _callback(error_message: Optional[str] = None) -> None:
            loop.call_soon_threadsafe(_resolve, error_message)

        action_type = TagEnvironment if tagged else UntagEnvironment
        try:
            self._dispatch(action_type(resource_id=resource_id, environment=environment, callback=_callback))
        except Exception as exc:
            LOGGER.exception("Dispatching %s failed", action_type.__name__)
            return str(exc) or type(exc).__name__
        try:
            return await asyncio.wait_for(completion, timeout=self._tagging_timeout)
        except asyncio.TimeoutError:
            LOGGER.warning(
                "%s for %s got no completion within %.1fs",
                action_type.__name__,
                node_id_from_resource_id(resource_id),
                self._tagging_timeout,
            )
            return f"No response after {self._tagging_timeout:g} seconds"

    def _report(self, outcome: TaggingOutcome) -> None:
        resource_type = resource_type_of(outcome.resource_id)
        if outcome.ok:
            self._notify(self._titles.success_title)
            event = "resource_tagged_with_environment" if outcome.tagged else "resource_untagged_from_environment"
            self._track(event, {"resource_type": resource_type})
            return

        LOGGER.warning(
            "Environment update failed for %s (%s): %s",
            node_id_from_resource_id(outcome.resource_id),
            outcome.environment,
            outcome.error,
        )
        self._notify(
            self._titles.failure_title,
            description=outcome.error,
            variant="destructive",
            persistent=True,
        )
        verb = "tag resource with" if outcome.tagged else "untag resource from"
        try:
            self._telemetry.capture_exception(RuntimeError(f"Failed to {verb} environment: {outcome.error}"))
        except Exception:
            LOGGER.exception("Telemetry exception capture failed")

    def _notify(
        self,
        title: str,
        *,
        description: Optional[str] = None,
        variant: NotificationVariant = "default",
        persistent: bool = False,
    ) -> Optional[NotificationHandle]:
        if self._notifier is None:
            return None
        try:
            return self._notifier.notify(title, description=description, variant=variant, persistent=persistent)
        except Exception:
            LOGGER.exception("Failed to show notification %r", title)
            return None

    def _track(self, event: str, properties: Mapping[str, object]) -> None:
        try:
            self._telemetry.capture(event, dict(properties))
        except Exception:
            LOGGER.exception("Telemetry capture failed for %s", event)

    @staticmethod
    def _edge_properties(edge: Optional[GraphEdge]) -> Dict[str, object]:
        # Aggregated edges are classified by their first event only.
        first = edge.events[0] if edge is not None and edge.events else None
        return {
            "principal_type": resource_type_of(first.principal) if first else None,
            "event_type": first.type if first else None,
            "resource_type": resource_type_of(first.resource) if first else None,
        }

    @asynccontextmanager
    async def _resource_lock(self, key: NodeId) -> AsyncIterator[None]:
        lock, users = self._locks.get(key, (asyncio.Lock(), 0))
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @property
    def busy_resources(self) -> List[NodeId]:
        """Return node ids with tagging requests in flight or queued."""

        return sorted(self._locks)
