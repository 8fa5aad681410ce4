from __future__ import annotations

import logging

from app.crm.notifications.bus import BroadcastHub, EventEmitter
from app.crm.notifications.events import ENTITY_ADDED_KEY, RelayEvent, StorageEvent
from app.crm.notifications.toasts import CUSTOMER, EntityKind, ToastPresenter, acknowledgment_for
from app.crm.storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)


class EventRelay:
    """
    Announces "a record was created" to every context of the profile.

    Three deliveries per announcement:
    1. the pending entry under ENTITY_ADDED_KEY, for contexts opened later;
    2. a loopback StorageEvent on this context's own emitter (the hub skips the origin);
    3. the hub broadcast to every other open context.
    The originating context also gets its acknowledgment directly, before any of the above can fail.
    """

    def __init__(
        self,
        context_id: str,
        store: KeyValueStore,
        emitter: EventEmitter,
        hub: BroadcastHub,
        presenter: ToastPresenter,
        kind: EntityKind = CUSTOMER,
    ) -> None:
        self.context_id = context_id
        self.store = store
        self.emitter = emitter
        self.hub = hub
        self.presenter = presenter
        self.kind = kind

    def announce_created(self, entity_id: str, display_name: str | None = None) -> None:
        event = RelayEvent.new(entity_id, display_name)
        payload = event.to_json()

        self.presenter.present(acknowledgment_for(event, self.kind))

        old_value = None
        try:
            old_value = self.store.get_item(ENTITY_ADDED_KEY)
            self.store.set_item(ENTITY_ADDED_KEY, payload)
        except StorageError as e:
            logger.warning(
                "Relay write failed; announcing %s=%s in context %s only: %s",
                self.kind.label.lower(),
                event.entity_id,
                self.context_id,
                e,
            )
            return

        change = StorageEvent(key=ENTITY_ADDED_KEY, new_value=payload, old_value=old_value, origin=self.context_id)
        self.emitter.emit(change)
        reached = self.hub.broadcast(change)
        logger.info(
            "Announced %s=%s from context %s (other contexts reached: %d)",
            self.kind.label.lower(),
            event.entity_id,
            self.context_id,
            reached,
        )
