"""Workflow Lifecycle Events

Events are delivered through a caller-supplied callback, in execution order.
The callback may be a plain function or a coroutine function; coroutine
results are awaited before the engine moves on.

Key Components:
- EventType: lifecycle event names
- WorkflowEvent: the event payload handed to callbacks
- emit_event: invoke a callback and await it when needed
- LoggingEventSink / CollectingEventSink / HttpEventSink: ready-made callbacks
- default_event_sink: the sink selected by EVENT_SINK_URL
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

from . import config
from .engine.models import now_ms
from .logging_config import get_engine_logger
from .settings import EVENT_HTTP_MAX_CONNECTIONS, EVENT_HTTP_MAX_KEEPALIVE, EVENT_HTTP_TIMEOUT

logger = logging.getLogger(__name__)


class EventType:
    WORKFLOW_START = "workflow_start"
    NODE_START = "node_start"
    NODE_COMPLETE = "node_complete"
    NODE_ERROR = "node_error"
    WORKFLOW_COMPLETE = "workflow_complete"
    WORKFLOW_ERROR = "workflow_error"


@dataclass
class WorkflowEvent:
    type: str
    run_id: str
    node_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "type": self.type,
            "run_id": self.run_id,
            "data": self.data,
            "timestamp": self.timestamp,
        }
        if self.node_id is not None:
            payload["node_id"] = self.node_id
        return payload


EventCallback = Callable[[WorkflowEvent], Union[None, Awaitable[None]]]


async def emit_event(callback: Optional[EventCallback], event: WorkflowEvent) -> None:
    """Deliver one event, awaiting the callback if it returned an awaitable."""
    if callback is None:
        return
    outcome = callback(event)
    if inspect.isawaitable(outcome):
        await outcome


class LoggingEventSink:
    """Write every lifecycle event to the engine log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or get_engine_logger()

    def __call__(self, event: WorkflowEvent) -> None:
        target = f" node={event.node_id}" if event.node_id else ""
        if event.type in (EventType.NODE_ERROR, EventType.WORKFLOW_ERROR):
            self._log.warning(f"[{event.run_id}] {event.type}{target}: {event.data.get('error')}")
        else:
            self._log.info(f"[{event.run_id}] {event.type}{target}")


class CollectingEventSink:
    """Keep events in memory; handy for draining after a run."""

    def __init__(self):
        self.events: List[WorkflowEvent] = []

    def __call__(self, event: WorkflowEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> List[str]:
        return [event.type for event in self.events]

    def for_node(self, node_id: str) -> List[WorkflowEvent]:
        return [event for event in self.events if event.node_id == node_id]


class HttpEventSink:
    """POST lifecycle events to ``{base_url}/api/internal/events/{run_id}``.

    Uses one pooled httpx client per sink. Delivery failures are logged and
    never interrupt the run.
    """

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=EVENT_HTTP_TIMEOUT,
                limits=httpx.Limits(
                    max_connections=EVENT_HTTP_MAX_CONNECTIONS,
                    max_keepalive_connections=EVENT_HTTP_MAX_KEEPALIVE,
                ),
            )
        return self._client

    async def __call__(self, event: WorkflowEvent) -> None:
        if not event.run_id:
            logger.warning(f"No run_id, skipping event: {event.type}")
            return

        url = f"{self.base_url}/api/internal/events/{event.run_id}"
        payload = {"event_type": event.type, "data": event.to_dict()}

        try:
            client = self._get_http_client()
            resp = await client.post(url, json=payload)
            logger.debug(f"Pushed {event.type} to {url}: {resp.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to push event {event.type}: {e}")

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()


def default_event_sink() -> EventCallback:
    """HttpEventSink when EVENT_SINK_URL is configured, otherwise LoggingEventSink."""
    if config.EVENT_SINK_URL:
        return HttpEventSink(config.EVENT_SINK_URL)
    return LoggingEventSink()
