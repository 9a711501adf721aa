"""
Event Bus for the Content Service.

A small publish/subscribe emitter. Listeners are registered per event name
and invoked synchronously, in registration order, on the thread that emits.
Watch-triggered events therefore arrive on debounce timer threads, so
listeners that touch shared state must do their own locking.

A listener that raises is logged and skipped; the remaining listeners still
receive the event.

Event names emitted by the content service are exposed as constants so
subscribers do not have to repeat string literals.
"""
import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

CONTENT_LOADED = "content-loaded"
CONTENT_UPDATED = "content-updated"
VALIDATION_ERROR = "validation-error"
CONTENT_ERROR = "content-error"
FILE_DELETED = "file-deleted"
FILE_CHANGED = "file-changed"
WATCH_ERROR = "watch-error"

ALL_EVENTS = (
    CONTENT_LOADED,
    CONTENT_UPDATED,
    VALIDATION_ERROR,
    CONTENT_ERROR,
    FILE_DELETED,
    FILE_CHANGED,
    WATCH_ERROR,
)

Listener = Callable[[Dict[str, Any]], None]


class EventEmitter:
    """Registry of listener callbacks keyed by event name.

    Example:
        >>> bus = EventEmitter()
        >>> bus.on("content-updated", lambda payload: print(payload["filePath"]))
        >>> bus.emit("content-updated", {"filePath": "/data/branding.json"})
        /data/branding.json
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._listeners_lock = threading.Lock()

    def on(self, event: str, listener: Listener) -> Listener:
        """Register a listener for an event.

        Returns the listener so it can be used as a decorator.
        """
        with self._listeners_lock:
            self._listeners.setdefault(event, []).append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register a listener that is removed after its first call.

        The listener itself (not an internal wrapper) is returned, and
        off(event, listener) removes it before it has fired.
        """

        def wrapper(payload: Dict[str, Any]) -> None:
            self.off(event, wrapper)
            listener(payload)

        wrapper.listener = listener
        self.on(event, wrapper)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Remove a listener, including one registered with once().

        Unknown listeners are ignored.
        """
        with self._listeners_lock:
            listeners = self._listeners.get(event, [])
            for index, registered in enumerate(listeners):
                if registered == listener or getattr(registered, "listener", None) == listener:
                    del listeners[index]
                    break

    def emit(self, event: str, payload: Dict[str, Any]) -> int:
        """Deliver a payload to every listener of an event.

        Args:
            event: Event name
            payload: Event payload dictionary

        Returns:
            Number of listeners that were invoked
        """
        with self._listeners_lock:
            listeners = list(self._listeners.get(event, []))

        for listener in listeners:
            try:
                listener(payload)
            except Exception as e:
                logger.error(f"Listener error for '{event}': {e}", exc_info=True)

        return len(listeners)

    def listener_count(self, event: str) -> int:
        with self._listeners_lock:
            return len(self._listeners.get(event, []))

    def remove_all_listeners(self, event: str = None) -> None:
        """Drop listeners for one event, or for every event if none is given."""
        with self._listeners_lock:
            if event is None:
                self._listeners.clear()
            else:
                self._listeners.pop(event, None)
