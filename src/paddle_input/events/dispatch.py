"""Event dispatch — async fan-out of control events to downstream consumers.

Architecture
~~~~~~~~~~~~
* **EventHandler** — abstract base for delivery channels.
* **LogHandler / WebhookHandler / CallbackHandler** — concrete channels.
* **EventDispatcher** — ordered fan-out with error isolation and results.
* **create_dispatcher()** — factory that wires handlers from settings.

Adding a new channel
~~~~~~~~~~~~~~~~~~~~
1. Subclass ``EventHandler``.
2. Implement ``async send(event) -> bool``.
3. Optionally set ``name`` and override ``should_handle``.
4. Register via ``dispatcher.add_handler(...)`` or add to the factory.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import httpx
import structlog

from paddle_input.models import ControlEvent, EventType

if TYPE_CHECKING:
    from paddle_input.config import Settings

logger = structlog.get_logger(__name__)


# ── Dispatch result ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome summary for a single ``dispatch()`` call."""

    seq: int
    sent: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return len(self.failed) == 0


# ── Abstract handler ──────────────────────────────────────────


class EventHandler(ABC):
    """Contract for event delivery channels."""

    name: str = "base"

    @abstractmethod
    async def send(self, event: ControlEvent) -> bool:
        """Deliver an event.  Return ``True`` on success."""

    def should_handle(self, event: ControlEvent) -> bool:  # noqa: ARG002
        """Return ``False`` to skip this event (default: handle all)."""
        return True


# ── Concrete handlers ────────────────────────────────────────


class LogHandler(EventHandler):
    """Write events to the structured log."""

    name = "log"

    async def send(self, event: ControlEvent) -> bool:
        logger.info(
            "event.emitted",
            event_type=event.type.value,
            seq=event.seq,
            t=event.t,
            intensity=event.intensity,
            confidence=event.confidence,
        )
        return True


class WebhookHandler(EventHandler):
    """POST event JSON to an external controller endpoint."""

    name = "webhook"

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def send(self, event: ControlEvent) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, json=event.model_dump(mode="json"))
                resp.raise_for_status()
            logger.debug("dispatch.webhook_sent", url=self._url, seq=event.seq)
            return True
        except httpx.HTTPError as exc:
            logger.error("dispatch.webhook_failed", url=self._url, seq=event.seq, error=str(exc))
            return False


class CallbackHandler(EventHandler):
    """Forward events to a plain or async callable.

    The callable receives ``(event, context)``; *types* restricts which
    event types it sees.
    """

    def __init__(
        self,
        fn: Callable[[ControlEvent, Any], Awaitable[None] | None],
        *,
        context: Any = None,
        types: set[EventType] | None = None,
        name: str = "callback",
    ) -> None:
        self._fn = fn
        self._context = context
        self._types = types
        self.name = name

    def should_handle(self, event: ControlEvent) -> bool:
        return self._types is None or event.type in self._types

    async def send(self, event: ControlEvent) -> bool:
        result = self._fn(event, self._context)
        if inspect.isawaitable(result):
            await result
        return True


# ── Dispatcher ────────────────────────────────────────────────


class EventDispatcher:
    """Fan-out events to registered handlers with error isolation.

    Events are delivered strictly in the order they are passed in; a failure
    in one channel never blocks delivery to the others.
    """

    def __init__(self, *, handlers: list[EventHandler] | None = None) -> None:
        self._handlers: list[EventHandler] = handlers if handlers is not None else [LogHandler()]

    # ── Handler management ────────────────────────────────────

    def add_handler(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def remove_handler(self, name: str) -> bool:
        """Remove the first handler matching *name*. Return ``True`` if found."""
        for i, h in enumerate(self._handlers):
            if h.name == name:
                self._handlers.pop(i)
                return True
        return False

    @property
    def handler_names(self) -> list[str]:
        return [h.name for h in self._handlers]

    # ── Dispatch ──────────────────────────────────────────────

    async def dispatch(self, event: ControlEvent) -> DispatchResult:
        """Send *event* to every handler, collecting per-handler outcomes."""
        sent: list[str] = []
        failed: list[str] = []

        for handler in self._handlers:
            if not handler.should_handle(event):
                continue
            try:
                ok = await handler.send(event)
                (sent if ok else failed).append(handler.name)
            except Exception:
                logger.exception("dispatch.handler_error", handler=handler.name, seq=event.seq)
                failed.append(handler.name)

        result = DispatchResult(seq=event.seq, sent=sent, failed=failed)
        if result.failed:
            logger.warning("dispatch.partial_failure", seq=event.seq, failed=result.failed)
        return result

    async def dispatch_many(self, events: list[ControlEvent]) -> list[DispatchResult]:
        """Dispatch a batch of events in order, returning per-event results."""
        return [await self.dispatch(e) for e in events]


# ── Factory ───────────────────────────────────────────────────


def create_dispatcher(settings: Settings) -> EventDispatcher:
    """Build an :class:`EventDispatcher` wired from application settings.

    * **LogHandler** is always registered.
    * **WebhookHandler** is added when ``settings.webhook_url`` is non-empty.
    """
    dispatcher = EventDispatcher()
    if settings.webhook_url:
        dispatcher.add_handler(WebhookHandler(settings.webhook_url, timeout=settings.webhook_timeout))
    return dispatcher
