"""
Domain events emitted by inventory commands.

Commands publish what happened; the audit log turns it into Transaction
and ShelfLog rows.

    from wms.sync.events import StockChanged

    bus.subscribe(StockChanged, handler)
    await bus.publish(StockChanged(...))
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from wms.utils import Logger, utc_now_iso

logger = Logger("wms.sync.events")


@dataclass(frozen=True)
class ProductCreated:
    product: dict
    actor_name: str
    timestamp: str = field(default_factory=utc_now_iso)


@dataclass(frozen=True)
class StockChanged:
    product: dict
    previous_stock: int
    new_stock: int
    reason: str
    actor_name: str
    timestamp: str = field(default_factory=utc_now_iso)

    @property
    def delta(self) -> int:
        return self.new_stock - self.previous_stock


@dataclass(frozen=True)
class LocationChanged:
    product: dict
    old_location: Optional[str]
    new_location: str
    method: str
    actor_name: str
    timestamp: str = field(default_factory=utc_now_iso)


Handler = Callable[[object], Awaitable[None]]


class EventBus:
    """In-process publish/subscribe keyed by event class."""

    def __init__(self):
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)
        logger.debug(f"Handler {getattr(handler, '__name__', handler)} subscribed to {event_type.__name__}")

    async def publish(self, event) -> None:
        handlers = self._handlers.get(type(event), [])
        if not handlers:
            logger.debug(f"{type(event).__name__} published with no handlers")
            return
        for handler in handlers:
            try:
                await handler(event)
            except Exception as exc:
                # a failing consumer never undoes the command that emitted the event
                logger.exception(f"Handler for {type(event).__name__} failed: {exc}")
