"""Structural layout states and class lists handed to the widget library."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence

from explorer.app.canvas.models import GraphNode

ENV_COLORS: Sequence[str] = (
    "env-blue",
    "env-green",
    "env-yellow",
    "env-orange",
    "env-purple",
    "env-pink",
    "env-teal",
)


class ContainerLayout(str, Enum):
    """How a resource node box is laid out.

    Open containers are expanded parents: only the title bar is drawn at
    reduced height and children are placed inside. Closed containers are leaf
    or collapsed nodes drawn at full height.
    """

    OPEN = "open"
    CLOSED = "closed"


def node_container_layout(node: GraphNode) -> ContainerLayout:
    if node.num_children > 0 and not node.collapsed:
        return ContainerLayout.OPEN
    return ContainerLayout.CLOSED


def collapse_chevron(node: GraphNode) -> Optional[str]:
    """Return the chevron icon for collapsible nodes."""

    if not node.collapsible:
        return None
    return "chevron-down" if node.collapsed else "chevron-up"


def edge_class_names(selected: bool = False, event_chain_hovered: bool = False) -> List[str]:
    classes: List[str] = []
    if not event_chain_hovered and not selected:
        classes.append("opacity-40")

    if event_chain_hovered:
        classes.extend(["stroke-hover", "stroke-[2px]"])
    else:
        classes.extend(["stroke-foreground", "dark:stroke-primary"])

    if selected:
        classes.extend(["stroke-primary", "stroke-[2px]", "opacity-80"])
        if event_chain_hovered:
            classes.extend(["stroke-[3px]", "opacity-100"])
    return classes


def container_class_names(node: GraphNode) -> List[str]:
    """Return the node box classes; height depends on the container layout."""

    layout = node_container_layout(node)
    classes = [
        "w-full",
        "h-[var(--resource-title-height)]" if layout is ContainerLayout.OPEN else "h-full",
        "flex-none",
    ]
    if node.selected:
        classes.extend(["before:border-[5px]", "before:border-background", "after:border-[6px]", "after:border-double"])
    else:
        classes.extend(["after:border", "after:border-primary"])
    return classes


def title_class_names(node: GraphNode) -> List[str]:
    open_container = node_container_layout(node) is ContainerLayout.OPEN
    classes = ["flex", "h-full", "pl-3", "pr-2", "items-center", "text-lg"]
    if not node.highlighted:
        classes.extend(["rounded-t-md", "border-b", "border-primary"] if open_container else ["rounded-md"])
        return classes

    classes.extend(["bg-primary", "text-black"])
    if node.selected:
        classes.append("rounded-t-md" if open_container else "rounded-md")
    return classes


def env_color(index: int) -> str:
    return ENV_COLORS[index % len(ENV_COLORS)]


def environment_badge_class_names(color_index: int, inherited: bool) -> List[str]:
    color = env_color(color_index)
    classes = [
        "flex",
        "items-center",
        "size-[var(--env-badge-size)]",
        "rounded-full",
        f"bg-{color}{'-inherited' if inherited else ''}",
        f"border-{color}",
        "pointer-events-auto",
        "cursor-pointer",
    ]
    if inherited:
        classes.extend(["border-dashed", "border-slate-400"])
    return classes


def issue_badge_class_names() -> List[str]:
    return [
        "size-[var(--issue-badge-size)]",
        "rounded-full",
        "bg-red-500",
        "border-red-500",
        "text-background",
        "pointer-events-auto",
    ]
