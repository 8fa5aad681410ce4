from __future__ import annotations

import json
import logging
import threading

from app.crm.notifications.events import NOTIFICATIONS_KEY
from app.crm.storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)


def _parse(raw: str | None) -> list[str]:
    if raw is None:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring malformed notification log: %s", e)
        return []
    if not isinstance(data, list) or not all(isinstance(m, str) for m in data):
        logger.warning("Ignoring notification log that is not a list of strings")
        return []
    return data


class NotificationLog:
    """
    Newest-first list of notification messages, rewritten in full to the store on every change.

    The store is the source of truth: every read and every change starts from what is stored,
    so writers sharing the store (other profiles, other processes) do not overwrite each other's entries.
    Entries that could not be saved stay in memory until the stored value changes underneath.
    max_entries=0 keeps everything.
    """

    def __init__(self, store: KeyValueStore, max_entries: int = 0) -> None:
        self.store = store
        self.max_entries = max(0, max_entries)
        self._lock = threading.Lock()
        self._messages: list[str] = []
        self._last_raw: str | None = None
        with self._lock:
            self._refresh()

    @property
    def notifications(self) -> list[str]:
        with self._lock:
            self._refresh()
            return list(self._messages)

    def add_notification(self, message: str) -> None:
        with self._lock:
            self._refresh()
            self._messages = self._cap([message, *self._messages])
            self._persist()

    def clear_notifications(self) -> None:
        with self._lock:
            self._messages = []
            self._persist()

    def _refresh(self) -> None:
        try:
            raw = self.store.get_item(NOTIFICATIONS_KEY)
        except StorageError as e:
            logger.warning("Notification log not loaded: %s", e)
            return
        if raw == self._last_raw:
            return
        self._last_raw = raw
        self._messages = self._cap(_parse(raw))

    def _cap(self, messages: list[str]) -> list[str]:
        if self.max_entries and len(messages) > self.max_entries:
            return messages[: self.max_entries]
        return messages

    def _persist(self) -> None:
        raw = json.dumps(self._messages)
        try:
            self.store.set_item(NOTIFICATIONS_KEY, raw)
        except StorageError as e:
            logger.warning("Notification log not saved (%d entries kept in memory): %s", len(self._messages), e)
            return
        self._last_raw = raw
