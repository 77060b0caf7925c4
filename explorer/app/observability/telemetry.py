"""Fire-and-forget telemetry sinks for canvas interactions."""

from __future__ import annotations

import json
import logging
import platform
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional
from uuid import uuid4

import httpx
from pydantic import BaseModel
from typing_extensions import Protocol

from explorer.app.config import PostHogConfig, TelemetryConfig

LOGGER = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # Naive clocks are assumed to already report UTC.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def _to_json_value(value: object) -> object:
    """Reduce event properties to JSON primitives.

    Contracts such as resource ids are dumped through pydantic, enums to their
    values and timestamps to UTC ISO strings.
    """

    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _as_utc(value).isoformat()
    if isinstance(value, Mapping):
        return {str(key): _to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json_value(item) for item in value]
    return value


class TelemetrySink(Protocol):
    """Destination for interaction events; implementations must not raise."""

    def capture(self, event: str, properties: Optional[Mapping[str, object]] = None) -> None:
        """Record a named interaction event."""

    def capture_exception(self, error: BaseException) -> None:
        """Record a failure surfaced to the user."""


class NullTelemetrySink:
    """Sink used when telemetry is disabled."""

    def capture(self, event: str, properties: Optional[Mapping[str, object]] = None) -> None:
        return None

    def capture_exception(self, error: BaseException) -> None:
        return None


class JsonlTelemetrySink:
    """Append interaction events to a JSON lines file."""

    def __init__(
        self,
        path: Path,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._path = path
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def now(self) -> datetime:
        """Return the current timestamp in UTC."""

        return _as_utc(self._clock())

    def capture(self, event: str, properties: Optional[Mapping[str, object]] = None) -> None:
        payload: Dict[str, object] = {"event": event, "timestamp": self.now()}
        payload["properties"] = {
            key: value for key, value in (properties or {}).items() if value is not None
        }
        self._append_event(payload)

    def capture_exception(self, error: BaseException) -> None:
        self._append_event(
            {
                "event": "$exception",
                "timestamp": self.now(),
                "properties": {
                    "exception_type": type(error).__name__,
                    "exception_message": str(error),
                },
            }
        )

    def _append_event(self, payload: Mapping[str, object]) -> None:
        try:
            line = json.dumps(_to_json_value(dict(payload)), sort_keys=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except (OSError, TypeError, ValueError):
            LOGGER.exception("Dropping telemetry event %s; cannot append to %s", payload.get("event"), self._path)


class PostHogTelemetrySink:
    """Send events to a PostHog ``/capture/`` endpoint on a background worker."""

    def __init__(
        self,
        config: PostHogConfig,
        *,
        distinct_id: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._config = config
        self._distinct_id = distinct_id or str(uuid4())
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.timeout_seconds)
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="telemetry")
        self._url = f"{config.host.rstrip('/')}/capture/"

    @property
    def distinct_id(self) -> str:
        return self._distinct_id

    def capture(self, event: str, properties: Optional[Mapping[str, object]] = None) -> None:
        if not self._config.api_key:
            return
        payload = {
            "api_key": self._config.api_key,
            "event": event,
            "properties": {
                "distinct_id": self._distinct_id,
                "$lib": self._config.library_name,
                "$os": platform.system(),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                **{key: value for key, value in (properties or {}).items() if value is not None},
            },
        }
        self._submit(payload)

    def capture_exception(self, error: BaseException) -> None:
        self.capture(
            "$exception",
            {
                "$exception_type": type(error).__name__,
                "$exception_message": str(error),
            },
        )

    def close(self) -> None:
        """Wait for queued deliveries and release the HTTP client."""

        self._executor.shutdown(wait=True)
        if self._owns_client:
            self._client.close()

    def _submit(self, payload: Mapping[str, object]) -> None:
        try:
            self._executor.submit(self._send, _to_json_value(dict(payload)))
        except RuntimeError:
            LOGGER.warning("Telemetry worker is shut down; dropping event %s", payload.get("event"))

    def _send(self, payload: object) -> None:
        try:
            response = self._client.post(self._url, json=payload)
            if response.status_code >= 400:
                LOGGER.warning(
                    "Telemetry capture rejected",
                    extra={"url": self._url, "status_code": response.status_code},
                )
        except httpx.HTTPError as exc:  # pragma: no cover - network failures are environment dependent
            LOGGER.warning("Telemetry capture failed", extra={"url": self._url, "error": str(exc)})


def build_telemetry_sink(config: TelemetryConfig, *, root_dir: Optional[Path] = None) -> TelemetrySink:
    """Create the sink selected by configuration.

    Args:
        config: Telemetry configuration section.
        root_dir: Base directory for relative ``root_dir`` values; defaults to
            the current working directory.

    Returns:
        TelemetrySink: Configured sink, or a no-op sink when disabled.
    """

    if not config.enabled or config.backend == "none":
        return NullTelemetrySink()
    if config.backend == "posthog":
        if not config.posthog.api_key:
            LOGGER.warning("PostHog telemetry selected without an API key; events will be dropped")
        return PostHogTelemetrySink(config.posthog)
    base_root = root_dir or Path.cwd()
    directory = Path(config.root_dir)
    if not directory.is_absolute():
        directory = (base_root / directory).resolve()
    return JsonlTelemetrySink(directory / config.events_filename)
