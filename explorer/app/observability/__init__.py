"""Telemetry sinks for canvas interaction events."""

from explorer.app.observability.telemetry import (
    JsonlTelemetrySink,
    NullTelemetrySink,
    PostHogTelemetrySink,
    TelemetrySink,
    build_telemetry_sink,
)

__all__ = [
    "JsonlTelemetrySink",
    "NullTelemetrySink",
    "PostHogTelemetrySink",
    "TelemetrySink",
    "build_telemetry_sink",
]
