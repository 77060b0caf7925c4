"""Capabilities the canvas borrows from its host environment."""
from __future__ import annotations

from typing import Optional

from typing_extensions import Literal, Protocol

from explorer.app.canvas.models import Point

NotificationVariant = Literal["default", "destructive"]


class PointerHost(Protocol):
    """Hit-testing and synthetic event dispatch offered by interactive hosts."""

    def element_at(self, position: Point) -> Optional[object]:
        """Return the topmost element under ``position`` or ``None``."""

    def dispatch_click(self, element: object, position: Point) -> None:
        """Dispatch a synthetic activation event at ``element``."""


class TransformHost(Protocol):
    """Pan-zoom transform of the rendering widget."""

    @property
    def zoom(self) -> float:
        """Return the current zoom level."""

    async def set_viewport(self, x: float, y: float, zoom: float, *, duration: int) -> None:
        """Animate the transform to the supplied position over ``duration`` ms."""

    async def zoom_to(self, zoom: float, *, duration: int) -> None:
        """Animate the zoom level about the viewport centre, keeping the pan."""


class Navigator(Protocol):
    """Host application router."""

    @property
    def current_path(self) -> str:
        """Return the path of the active view."""

    def navigate(self, path: str, *, replace: bool = False) -> None:
        """Navigate to ``path`` relative to the active view."""


class NotificationHandle(Protocol):
    def dismiss(self) -> None:
        """Remove the notification from screen."""


class Notifier(Protocol):
    """Toast-style notification surface."""

    def notify(
        self,
        title: str,
        *,
        description: Optional[str] = None,
        variant: NotificationVariant = "default",
        persistent: bool = False,
    ) -> NotificationHandle:
        """Show a notification; persistent ones stay until dismissed."""
