"""Outbound actions consumed by the host application's state reducer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union

from explorer.app.contracts import ResourceId

TaggingCallback = Callable[[Optional[str]], None]
"""Completion handler; receives ``None`` on success or the failure message."""


@dataclass(frozen=True)
class SelectResource:
    resource_id: str
    refit_view: bool = False


@dataclass(frozen=True)
class DeselectResource:
    resource_id: str


@dataclass(frozen=True)
class SelectEdge:
    edge_id: str
    refit_view: bool = False


@dataclass(frozen=True)
class DeselectEdge:
    edge_id: str


@dataclass(frozen=True)
class SelectIssue:
    issue_id: str
    refit_view: bool = False


@dataclass(frozen=True)
class ToggleNodeCollapsed:
    node_id: str


@dataclass(frozen=True)
class ExpandAll:
    pass


@dataclass(frozen=True)
class CollapseAll:
    pass


@dataclass(frozen=True)
class FitView:
    duration: int


@dataclass(frozen=True)
class InitialRenderCompleted:
    pass


@dataclass(frozen=True)
class TagEnvironment:
    """Request to tag a resource; the reducer must call ``callback`` once."""

    resource_id: ResourceId
    environment: str
    callback: TaggingCallback


@dataclass(frozen=True)
class UntagEnvironment:
    """Request to remove a tag; the reducer must call ``callback`` once."""

    resource_id: ResourceId
    environment: str
    callback: TaggingCallback


CanvasAction = Union[
    SelectResource,
    DeselectResource,
    SelectEdge,
    DeselectEdge,
    SelectIssue,
    ToggleNodeCollapsed,
    ExpandAll,
    CollapseAll,
    FitView,
    InitialRenderCompleted,
    TagEnvironment,
    UntagEnvironment,
]

ActionDispatcher = Callable[[CanvasAction], None]

__all__ = [
    "ActionDispatcher",
    "CanvasAction",
    "CollapseAll",
    "DeselectEdge",
    "DeselectResource",
    "ExpandAll",
    "FitView",
    "InitialRenderCompleted",
    "SelectEdge",
    "SelectIssue",
    "SelectResource",
    "TagEnvironment",
    "TaggingCallback",
    "ToggleNodeCollapsed",
    "UntagEnvironment",
]
