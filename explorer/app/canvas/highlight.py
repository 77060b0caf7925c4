"""Hover state and one-hop event chain highlighting."""
from __future__ import annotations

from dataclasses import replace
from typing import AbstractSet, Dict, FrozenSet, Iterable, Mapping, Set

from explorer.app.canvas.models import EdgeId, EventChainLink, GraphEdge

HOVER_ENTER_EVENTS = frozenset({"enter", "mouseenter", "pointerenter"})


class HoverState:
    """Canvas-local set of hovered edge ids.

    Lives only as long as the canvas that owns it and is never written back to
    the host selection state.
    """

    def __init__(self) -> None:
        self._hovered: Set[EdgeId] = set()

    def enter(self, edge_id: EdgeId) -> None:
        self._hovered.add(edge_id)

    def leave(self, edge_id: EdgeId) -> None:
        self._hovered.discard(edge_id)

    def apply(self, kind: str, edge_id: EdgeId) -> None:
        """Route a hover event from the widget; anything but an enter is a leave."""

        if kind in HOVER_ENTER_EVENTS:
            self.enter(edge_id)
        else:
            self.leave(edge_id)

    def clear(self) -> None:
        self._hovered.clear()

    @property
    def hovered(self) -> FrozenSet[EdgeId]:
        return frozenset(self._hovered)

    def __len__(self) -> int:
        return len(self._hovered)

    def __contains__(self, edge_id: object) -> bool:
        return edge_id in self._hovered


def event_chain_ids(
    hovered: Iterable[EdgeId],
    links: Mapping[EdgeId, EventChainLink],
) -> Set[EdgeId]:
    """Return hovered ids plus their one-hop chain neighbours.

    Hovered ids without a link entry contribute nothing.
    """

    chain: Set[EdgeId] = set()
    for edge_id in hovered:
        link = links.get(edge_id)
        if link is None:
            continue
        chain.add(edge_id)
        chain.update(link.preceding)
        chain.update(link.following)
    return chain


def highlight_event_chain(
    hovered: AbstractSet[EdgeId],
    edges: Mapping[EdgeId, GraphEdge],
    links: Mapping[EdgeId, EventChainLink],
) -> Mapping[EdgeId, GraphEdge]:
    """Mark the event chain around hovered edges.

    Args:
        hovered: Currently hovered edge ids.
        edges: Edge map from the current snapshot.
        links: Precomputed event chain links; may reference stale ids.

    Returns:
        Mapping[EdgeId, GraphEdge]: ``edges`` itself when nothing is hovered,
            otherwise a new map where chain members are shallow copies with
            ``event_chain_hovered`` set and all other edges are passed through.
    """

    if not hovered:
        return edges

    highlighted: Dict[EdgeId, GraphEdge] = dict(edges)
    for edge_id in event_chain_ids(hovered, links):
        edge = edges.get(edge_id)
        if edge is None:
            continue
        highlighted[edge_id] = replace(edge, event_chain_hovered=True)
    return highlighted
