"""Pan-zoom transitions applied to the host canvas."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set

from explorer.app.canvas.hosts import TransformHost
from explorer.app.canvas.models import Viewport

LOGGER = logging.getLogger(__name__)

MIN_ZOOM = 0.1
MAX_ZOOM = 1.0
ZOOM_STEP = 1.2


class ViewportController:
    """Apply externally driven viewport transitions and zoom controls.

    Animations are fire-and-forget: failures are logged and never block
    further input. There is no cancellation; each call issues its own
    animation against the current transform.
    """

    def __init__(
        self,
        host: TransformHost,
        *,
        min_zoom: float = MIN_ZOOM,
        max_zoom: float = MAX_ZOOM,
        zoom_step: float = ZOOM_STEP,
        zoom_duration: int = 0,
    ) -> None:
        self._host = host
        self._min_zoom = min_zoom
        self._max_zoom = max_zoom
        self._zoom_step = zoom_step
        self._zoom_duration = zoom_duration
        self._last_viewport: Optional[Viewport] = None
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def zoom(self) -> float:
        return self._host.zoom

    @property
    def can_zoom_in(self) -> bool:
        return self.zoom < self._max_zoom

    @property
    def can_zoom_out(self) -> bool:
        return self.zoom > self._min_zoom

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def clamp(self, zoom: float) -> float:
        return max(self._min_zoom, min(self._max_zoom, zoom))

    def apply(self, viewport: Optional[Viewport]) -> bool:
        """Start a transition when a new viewport descriptor arrives.

        Descriptors are compared by identity: re-supplying the same object is
        a no-op, while an equal but new object animates again.

        Args:
            viewport: Descriptor from the current snapshot.

        Returns:
            bool: Whether a transition was scheduled.
        """

        if viewport is None or viewport is self._last_viewport:
            return False
        zoom = self.clamp(viewport.zoom)
        if not self._spawn(self._transition(viewport, zoom)):
            return False
        self._last_viewport = viewport
        return True

    async def zoom_in(self) -> None:
        await self._zoom_to(self.zoom * self._zoom_step, "zoom in")

    async def zoom_out(self) -> None:
        await self._zoom_to(self.zoom / self._zoom_step, "zoom out")

    async def wait_idle(self) -> None:
        """Wait for scheduled transitions to settle."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _transition(self, viewport: Viewport, zoom: float) -> None:
        await self._run_guarded(
            "viewport transition",
            lambda: self._host.set_viewport(viewport.x, viewport.y, zoom, duration=viewport.duration),
        )

    async def _zoom_to(self, target: float, label: str) -> None:
        current = self.zoom
        zoom = self.clamp(target)
        if zoom == current:
            LOGGER.debug("%s ignored at zoom bound %.3f", label, current)
            return
        await self._run_guarded(label, lambda: self._host.zoom_to(zoom, duration=self._zoom_duration))

    @staticmethod
    async def _run_guarded(label: str, animate: Callable[[], Awaitable[None]]) -> None:
        try:
            await animate()
        except Exception:
            LOGGER.exception("%s error", label.capitalize())

    def _spawn(self, coroutine: Coroutine[Any, Any, None]) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.warning("No running event loop; viewport transition skipped")
            coroutine.close()
            return False
        task = loop.create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True
