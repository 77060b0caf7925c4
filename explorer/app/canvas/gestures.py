"""Recover click semantics from pointer gestures the canvas reports as pans."""
from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Optional

from explorer.app.canvas.hosts import PointerHost
from explorer.app.canvas.models import Point

LOGGER = logging.getLogger(__name__)

CLICK_DISTANCE_THRESHOLD_PX = 5.0


class PointerPhase(str, Enum):
    START = "start"
    MOVE = "move"
    END = "end"


class GestureClassifier:
    """Track pointer travel for one mounted canvas and synthesise clicks.

    The host canvas classifies any pointer motion, even sub-pixel jitter, as a
    pan, which suppresses click-driven selection. Gestures that travel less
    than ``threshold`` pixels in total are re-dispatched as clicks at the
    release position while the pan itself is left untouched.
    """

    def __init__(self, host: PointerHost, *, threshold: float = CLICK_DISTANCE_THRESHOLD_PX) -> None:
        self._host = host
        self._threshold = threshold
        self._last_position: Optional[Point] = None
        self._accumulated_distance = 0.0

    @property
    def accumulated_distance(self) -> float:
        return self._accumulated_distance

    @property
    def tracking(self) -> bool:
        return self._last_position is not None

    def on_pointer_phase(self, phase: PointerPhase, position: Point) -> Optional[object]:
        """Feed one pointer event into the classifier.

        Args:
            phase: Gesture phase reported by the canvas.
            position: Pointer position in client coordinates.

        Returns:
            Optional[object]: The element that received a synthetic click, if any.
        """

        phase = PointerPhase(phase)
        if phase is PointerPhase.START:
            self._last_position = position
            self._accumulated_distance = 0.0
            return None

        if self._last_position is None:
            return None

        self._accumulated_distance += math.hypot(
            position.x - self._last_position.x,
            position.y - self._last_position.y,
        )
        self._last_position = position

        if phase is not PointerPhase.END:
            return None

        clicked: Optional[object] = None
        try:
            if self._accumulated_distance < self._threshold:
                clicked = self._synthesise_click(position)
        finally:
            self._last_position = None
            self._accumulated_distance = 0.0
        return clicked

    def _synthesise_click(self, position: Point) -> Optional[object]:
        element = self._host.element_at(position)
        if element is None:
            LOGGER.debug("No element under pointer at (%s, %s); skipping click synthesis", position.x, position.y)
            return None
        self._host.dispatch_click(element, position)
        return element
