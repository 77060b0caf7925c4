"""Edge polylines and label placement from routed layout sections."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from explorer.app.canvas.models import EdgeLabel, EdgeSection, GraphEdge, Point

Polyline = Tuple[Point, ...]


@dataclass(frozen=True)
class EdgeGeometry:
    """Renderable geometry for one edge."""

    vertices: Polyline
    path: str
    label_x: Optional[float]
    label_y: Optional[float]


def routed_points(section: EdgeSection) -> Polyline:
    """Return the section's points exactly as routed by the layout engine."""

    return (section.start_point, *section.bend_points, section.end_point)


def build_path(section: EdgeSection, lateral_offset: float) -> Polyline:
    """Build the polyline stroked for an edge.

    The start point is pulled left by ``lateral_offset`` so the stroke clears
    the issue badge drawn on the source node.
    """

    start = Point(section.start_point.x - lateral_offset, section.start_point.y)
    return (start, *section.bend_points, section.end_point)


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def svg_path(vertices: Sequence[Point]) -> str:
    """Return an SVG path made of straight segments through ``vertices``."""

    if not vertices:
        return ""
    first, *rest = vertices
    segments: List[str] = [f"M {_fmt(first.x)} {_fmt(first.y)}"]
    segments.extend(f"L {_fmt(point.x)} {_fmt(point.y)}" for point in rest)
    return " ".join(segments)


def correct_label_y(label: EdgeLabel, vertices: Sequence[Point]) -> Optional[float]:
    """Recompute a label y that sits on the path segment it annotates.

    The layout engine's label y drifts by a few pixels. Every consecutive
    vertex pair whose x-range contains the label's left or right edge is a
    candidate; the endpoint y closest to ``label.y`` wins, the first one found
    on ties.

    Args:
        label: Label hint from the layout engine.
        vertices: Path vertices in drawing order.

    Returns:
        Optional[float]: ``label.y`` unchanged when ``x``, ``y`` or ``width``
            is missing; ``math.inf`` when no segment covers the label.
    """

    if label.x is None or label.y is None or label.width is None:
        return label.y

    left = label.x
    right = label.x + label.width
    closest = math.inf
    for start, end in zip(vertices, vertices[1:]):
        low, high = min(start.x, end.x), max(start.x, end.x)
        if not (low <= left <= high or low <= right <= high):
            continue
        for candidate in (start.y, end.y):
            if abs(candidate - label.y) < abs(closest - label.y):
                closest = candidate
    return closest


def label_anchor(label: EdgeLabel, vertices: Sequence[Point]) -> Optional[float]:
    """Return the corrected label y, falling back to ``label.y`` when uncorrectable."""

    corrected = correct_label_y(label, vertices)
    if corrected is None or not math.isfinite(corrected):
        return label.y
    return corrected


def build_edge_geometry(edge: GraphEdge, lateral_offset: float) -> Optional[EdgeGeometry]:
    """Return the geometry for ``edge`` or ``None`` when it has not been routed."""

    section = edge.section
    if section is None:
        return None
    vertices = build_path(section, lateral_offset)
    return EdgeGeometry(
        vertices=vertices,
        path=svg_path(vertices),
        label_x=edge.label.x,
        label_y=label_anchor(edge.label, routed_points(section)),
    )
