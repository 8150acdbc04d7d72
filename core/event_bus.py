"""
In-process pub/sub for domain events.

publish() calls every handler for the event's class right away, on the
publisher's thread. A handler that raises is logged and skipped: the store
write that produced the event has already happened.
"""

import logging
from typing import Callable, Dict, List

from core.events import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


class EventBus:
    """
    Handlers are keyed by event class name and run in subscription order.

    Usage:
        bus = EventBus()
        bus.subscribe(InvoiceCreated, on_created)
        bus.publish(InvoiceCreated.create(invoice))
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        self._handlers.setdefault(event_type.__name__, []).append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        """No-op for a handler that was never subscribed."""
        handlers = self._handlers.get(event_type.__name__, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        name = type(event).__name__

        # Copy: a handler may unsubscribe itself
        for handler in list(self._handlers.get(name, [])):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(handler, "__name__", repr(handler)),
                    name,
                    event.event_id,
                )
