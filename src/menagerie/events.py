import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)

STATE_CHANGED = "state_changed"
ACTION_REJECTED = "action_rejected"


@dataclass(frozen=True)
class Event:
    """Notification published by the store after a dispatch.

    Attributes:
        name: Event name, one of STATE_CHANGED or ACTION_REJECTED.
        payload: For STATE_CHANGED: ``previous``, ``current`` and ``action``.
            For ACTION_REJECTED: ``action`` and ``error``.
    """
    name: str
    payload: Dict[str, Any]


class EventBus:
    """A lightweight synchronous publish/subscribe event bus.

    Callbacks registered for an event name are invoked in registration order.
    A failing subscriber is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._subs: DefaultDict[str, List[Callable[[Event], None]]] = defaultdict(list)

    def subscribe(self, event_name: str, callback: Callable[[Event], None]) -> Callable[[], None]:
        """Subscribe a callback for a given event name.

        Returns:
            A function that removes the subscription when called.
        """
        if not callable(callback):
            raise TypeError("callback must be callable")
        self._subs[event_name].append(callback)
        logger.debug("Subscribed %s to '%s'", getattr(callback, "__name__", str(callback)), event_name)

        def _unsubscribe() -> None:
            self.unsubscribe(event_name, callback)

        return _unsubscribe

    def unsubscribe(self, event_name: str, callback: Callable[[Event], None]) -> None:
        if event_name in self._subs and callback in self._subs[event_name]:
            self._subs[event_name].remove(callback)
            logger.debug("Unsubscribed %s from '%s'", getattr(callback, "__name__", str(callback)), event_name)

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        event = Event(name=event_name, payload=payload)
        subs = list(self._subs.get(event_name, []))
        for cb in subs:
            try:
                cb(event)
            except Exception:  # pragma: no cover - guard rail
                logger.exception("Unhandled exception in event subscriber for '%s'", event_name)
