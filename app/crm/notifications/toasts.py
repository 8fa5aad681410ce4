from __future__ import annotations

import threading
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import asdict, dataclass

from app.crm.notifications.events import RelayEvent

Navigate = Callable[[str], None]

MAX_VISIBLE_TOASTS = 50
MAX_SEEN_EVENTS = 256


@dataclass(frozen=True)
class EntityKind:
    label: str = "Customer"
    path_template: str = "/customers/{id}"
    fallback_name: str = "New customer"

    def path_for(self, entity_id: str) -> str:
        return self.path_template.format(id=entity_id)


CUSTOMER = EntityKind()


@dataclass(frozen=True)
class Acknowledgment:
    id: str
    title: str
    description: str
    action_label: str
    action_path: str
    event_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def acknowledgment_for(event: RelayEvent, kind: EntityKind = CUSTOMER) -> Acknowledgment:
    name = event.display_name or kind.fallback_name
    return Acknowledgment(
        id=uuid.uuid4().hex,
        title=f"{kind.label} Added",
        description=f"{name} has been added successfully!",
        action_label="View",
        action_path=kind.path_for(event.entity_id),
        event_id=event.event_id,
    )


class ToastPresenter:
    """
    Transient acknowledgments shown in one context.
    A relay event is presented at most once per context (among its last MAX_SEEN_EVENTS), whichever path delivered it first.
    Only the newest MAX_VISIBLE_TOASTS stay visible.
    """

    def __init__(self, navigate: Navigate) -> None:
        self._navigate = navigate
        self._toasts: list[Acknowledgment] = []
        self._seen_events: set[str] = set()
        self._seen_order: deque[str] = deque()
        self._delivered: set[str] = set()
        self._lock = threading.Lock()

    def present(self, ack: Acknowledgment) -> bool:
        with self._lock:
            if ack.event_id:
                if ack.event_id in self._seen_events:
                    return False
                self._seen_events.add(ack.event_id)
                self._seen_order.append(ack.event_id)
                while len(self._seen_order) > MAX_SEEN_EVENTS:
                    self._seen_events.discard(self._seen_order.popleft())
            self._toasts.append(ack)
            while len(self._toasts) > MAX_VISIBLE_TOASTS:
                self._delivered.discard(self._toasts.pop(0).id)
        return True

    @property
    def toasts(self) -> list[Acknowledgment]:
        with self._lock:
            return list(self._toasts)

    def drain(self) -> list[Acknowledgment]:
        """Toasts not handed out yet. They stay visible (and activatable) until dismissed."""
        with self._lock:
            out = [t for t in self._toasts if t.id not in self._delivered]
            self._delivered.update(t.id for t in out)
        return out

    def dismiss(self, toast_id: str) -> None:
        with self._lock:
            self._toasts = [t for t in self._toasts if t.id != toast_id]
            self._delivered.discard(toast_id)

    def activate(self, toast_id: str) -> str:
        """Run the toast's action (navigate to its path) and dismiss it."""
        for t in self.toasts:
            if t.id == toast_id:
                self._navigate(t.action_path)
                self.dismiss(toast_id)
                return t.action_path
        raise KeyError(toast_id)
