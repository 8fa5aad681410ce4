from __future__ import annotations

import enum
import logging

from app.crm.notifications.bus import EventEmitter
from app.crm.notifications.events import ENTITY_ADDED_KEY, RelayEvent, StorageEvent
from app.crm.notifications.toasts import CUSTOMER, EntityKind, ToastPresenter, acknowledgment_for
from app.crm.storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)


class SubscriberState(str, enum.Enum):
    IDLE = "idle"
    CONSUMING = "consuming"
    LISTENING = "listening"
    UNMOUNTED = "unmounted"


class RelaySubscriber:
    """
    Picks up relay events in one context:
    - on mount, claims an event left in the store before this context existed (pending check);
    - afterwards, reacts to store-change events for the relay key.
    Malformed payloads are logged and dropped; nothing raised here reaches the caller.
    """

    def __init__(
        self,
        context_id: str,
        store: KeyValueStore,
        emitter: EventEmitter,
        presenter: ToastPresenter,
        kind: EntityKind = CUSTOMER,
    ) -> None:
        self.context_id = context_id
        self.store = store
        self.emitter = emitter
        self.presenter = presenter
        self.kind = kind
        self.state = SubscriberState.IDLE

    def mount(self) -> None:
        if self.state == SubscriberState.LISTENING:
            return
        self.state = SubscriberState.IDLE
        # Listen before the pending check; an event landing in between is de-duplicated by the presenter.
        self.emitter.on(self._on_storage_event)
        self._consume_pending()
        self.state = SubscriberState.LISTENING

    def unmount(self) -> None:
        self.emitter.off(self._on_storage_event)
        self.state = SubscriberState.UNMOUNTED

    def _consume_pending(self) -> None:
        try:
            raw = self.store.get_item(ENTITY_ADDED_KEY)
        except StorageError as e:
            logger.warning("Pending relay check skipped in context %s: %s", self.context_id, e)
            return
        if raw is None:
            return

        self.state = SubscriberState.CONSUMING
        try:
            event = RelayEvent.from_json(raw)
        except ValueError as e:
            logger.warning("Dropping malformed pending relay event in context %s: %s", self.context_id, e)
            self.state = SubscriberState.IDLE
            return

        try:
            claimed = self.store.remove_if_equals(ENTITY_ADDED_KEY, raw)
        except StorageError as e:
            logger.warning("Could not claim pending relay event in context %s: %s", self.context_id, e)
            claimed = False
        if claimed:
            self.presenter.present(acknowledgment_for(event, self.kind))
        else:
            logger.info("Pending relay event for %s already consumed elsewhere", event.entity_id)
        self.state = SubscriberState.IDLE

    def _on_storage_event(self, change: StorageEvent) -> None:
        if change.key != ENTITY_ADDED_KEY or change.new_value is None:
            return
        try:
            event = RelayEvent.from_json(change.new_value)
        except ValueError as e:
            logger.warning("Dropping malformed relay event in context %s: %s", self.context_id, e)
            return
        self.presenter.present(acknowledgment_for(event, self.kind))
