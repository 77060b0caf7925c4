"""Factory wiring a graph canvas to configuration and telemetry."""
from __future__ import annotations

import logging
from typing import Optional

from explorer.app.canvas.actions import ActionDispatcher
from explorer.app.canvas.graph import GraphCanvas
from explorer.app.canvas.hosts import Navigator, Notifier, PointerHost, TransformHost
from explorer.app.config import AppConfig, load_config
from explorer.app.observability.telemetry import TelemetrySink, build_telemetry_sink

LOGGER = logging.getLogger(__name__)


def create_graph_canvas(
    dispatch: ActionDispatcher,
    transform_host: TransformHost,
    *,
    config: Optional[AppConfig] = None,
    telemetry: Optional[TelemetrySink] = None,
    pointer_host: Optional[PointerHost] = None,
    navigator: Optional[Navigator] = None,
    notifier: Optional[Notifier] = None,
) -> GraphCanvas:
    """Create a canvas bound to the host application's capabilities.

    Args:
        dispatch: Reducer entry point receiving outbound actions.
        transform_host: Pan-zoom transform of the rendering widget.
        config: Optional pre-loaded configuration. If omitted, the default
            configuration defined in config.yaml is used.
        telemetry: Optional sink. When omitted one is built from the
            telemetry section of the configuration.
        pointer_host: Hit-testing support; without it click recovery after
            small drags is disabled.
        navigator: Router used to open the issues view.
        notifier: Toast surface used while tagging resources.

    Returns:
        GraphCanvas: Canvas ready to receive snapshots.
    """

    resolved_config = config or load_config()
    sink = telemetry or build_telemetry_sink(resolved_config.telemetry)
    LOGGER.info(
        "Creating graph canvas (telemetry=%s, pointer_host=%s)",
        type(sink).__name__,
        pointer_host is not None,
    )
    return GraphCanvas(
        dispatch,
        sink,
        transform_host,
        pointer_host=pointer_host,
        navigator=navigator,
        notifier=notifier,
        config=resolved_config.canvas,
        notifications=resolved_config.notifications,
    )
