from paddle_input.events.dispatch import (
    CallbackHandler,
    DispatchResult,
    EventDispatcher,
    EventHandler,
    LogHandler,
    WebhookHandler,
    create_dispatcher,
)
from paddle_input.events.emitter import EventEmitter

__all__ = [
    "CallbackHandler",
    "DispatchResult",
    "EventDispatcher",
    "EventEmitter",
    "EventHandler",
    "LogHandler",
    "WebhookHandler",
    "create_dispatcher",
]
