from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable

from app.crm.notifications.bus import BroadcastHub, EventEmitter
from app.crm.notifications.log import NotificationLog
from app.crm.notifications.relay import EventRelay
from app.crm.notifications.subscriber import RelaySubscriber
from app.crm.notifications.toasts import CUSTOMER, EntityKind, Navigate, ToastPresenter
from app.crm.storage import KeyValueStore

logger = logging.getLogger(__name__)


class ExecutionContext:
    """One open view (a browser tab): its own emitter, toasts, relay and subscriber. The notification log is the profile's."""

    def __init__(
        self,
        profile: "Profile",
        navigate: Navigate | None = None,
        context_id: str | None = None,
    ) -> None:
        self.id = context_id or uuid.uuid4().hex
        self.history: list[str] = []
        self.emitter = EventEmitter()
        self.presenter = ToastPresenter(navigate or self.history.append)
        self.relay = EventRelay(self.id, profile.store, self.emitter, profile.hub, self.presenter, profile.kind)
        self.subscriber = RelaySubscriber(self.id, profile.store, self.emitter, self.presenter, profile.kind)
        self.notification_log = profile.notification_log
        self.last_seen = profile.clock()

    def announce_created(self, entity_id: str, display_name: str | None = None) -> None:
        self.relay.announce_created(entity_id, display_name)


class Profile:
    """
    Everything shared by the contexts of one browser profile: the store, the broadcast hub and the notification log.

    Contexts not looked up for idle_seconds are closed on the next open/lookup (0 disables expiry).
    """

    def __init__(
        self,
        store: KeyValueStore,
        hub: BroadcastHub | None = None,
        kind: EntityKind = CUSTOMER,
        notifications_max: int = 0,
        idle_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.hub = hub or BroadcastHub()
        self.kind = kind
        self.notifications_max = notifications_max
        self.notification_log = NotificationLog(store, max_entries=notifications_max)
        self.idle_seconds = max(0, idle_seconds)
        self.clock = clock
        self._contexts: dict[str, ExecutionContext] = {}
        self._lock = threading.Lock()

    @property
    def contexts(self) -> list[ExecutionContext]:
        with self._lock:
            return list(self._contexts.values())

    def open_context(self, navigate: Navigate | None = None, context_id: str | None = None) -> ExecutionContext:
        self.evict_idle()
        ctx = ExecutionContext(self, navigate=navigate, context_id=context_id)
        with self._lock:
            self._contexts[ctx.id] = ctx
            count = len(self._contexts)
        self.hub.register(ctx.id, ctx.emitter)
        ctx.subscriber.mount()
        logger.info("Opened context %s (open contexts: %d)", ctx.id, count)
        return ctx

    def get_context(self, context_id: str) -> ExecutionContext | None:
        """Look up an open context and mark it as seen."""
        self.evict_idle()
        with self._lock:
            ctx = self._contexts.get(context_id)
            if ctx is not None:
                ctx.last_seen = self.clock()
        return ctx

    def close_context(self, context_id: str) -> bool:
        with self._lock:
            ctx = self._contexts.pop(context_id, None)
        if ctx is None:
            return False
        self.hub.unregister(ctx.id)
        ctx.subscriber.unmount()
        logger.info("Closed context %s", context_id)
        return True

    def evict_idle(self) -> int:
        if not self.idle_seconds:
            return 0
        cutoff = self.clock() - self.idle_seconds
        with self._lock:
            stale = [cid for cid, ctx in self._contexts.items() if ctx.last_seen < cutoff]
        evicted = sum(1 for cid in stale if self.close_context(cid))
        if evicted:
            logger.info("Evicted %d idle contexts (idle > %ss)", evicted, self.idle_seconds)
        return evicted
