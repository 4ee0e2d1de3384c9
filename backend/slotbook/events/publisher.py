"""Event publishing - synchronous in-process delivery of domain events."""
from collections import defaultdict
import logging
from typing import Any, Callable, DefaultDict, Dict, Iterable, List, Protocol, Type

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


class EventPublisher(Protocol):
    """Anything that can accept a domain event."""

    def publish(self, event: Any) -> None:
        ...


class InProcessEventBus:
    """
    Routes events to handlers registered for their exact type.

    Delivery happens on the publishing thread, after the write transaction
    has committed. A failing handler is logged and the remaining handlers
    still run; projections are rebuilt from scratch, so a missed update is
    repaired by the next one.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[Any], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type[Any], handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[Any], handler: EventHandler) -> None:
        self._handlers[event_type] = [
            existing for existing in self._handlers[event_type] if existing != handler
        ]

    def handlers_for(self, event_type: Type[Any]) -> List[EventHandler]:
        return list(self._handlers.get(event_type, ()))

    def publish(self, event: Any) -> None:
        event_type = type(event)
        for handler in self.handlers_for(event_type):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler %s failed for %s",
                    getattr(handler, "__name__", handler),
                    event_type.__name__,
                )
        logger.debug("event=%s payload=%s", event_type.__name__, _payload(event))


def publish_all(publisher: EventPublisher, events: Iterable[Any]) -> int:
    """Publish events in order; returns how many were published."""
    count = 0
    for event in events:
        publisher.publish(event)
        count += 1
    return count


def _payload(event: Any) -> Dict[str, Any]:
    to_dict = getattr(event, "to_dict", None)
    return to_dict() if callable(to_dict) else {}
