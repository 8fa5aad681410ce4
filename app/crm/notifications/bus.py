from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from app.crm.notifications.events import StorageEvent

logger = logging.getLogger(__name__)

Listener = Callable[[StorageEvent], None]


class EventEmitter:
    """
    Per-context event stream. Listeners run synchronously, in registration order.
    A failing listener is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def on(self, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def off(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: StorageEvent) -> int:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Storage event listener failed (key=%s)", event.key)
        return len(listeners)


class BroadcastHub:
    """
    Store-change broadcast shared by every context of a profile.
    Like the browser `storage` event, it never delivers back to the context that made the change.
    """

    def __init__(self) -> None:
        self._emitters: dict[str, EventEmitter] = {}
        self._lock = threading.Lock()

    def register(self, context_id: str, emitter: EventEmitter) -> None:
        with self._lock:
            self._emitters[context_id] = emitter

    def unregister(self, context_id: str) -> None:
        with self._lock:
            self._emitters.pop(context_id, None)

    def broadcast(self, event: StorageEvent) -> int:
        """Deliver to every registered context except `event.origin`. Returns the number of contexts reached."""
        with self._lock:
            targets = [em for cid, em in self._emitters.items() if cid != event.origin]
        for em in targets:
            em.emit(event)
        return len(targets)
