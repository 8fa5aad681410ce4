from __future__ import annotations

import json
import uuid
from dataclasses import dataclass

ENTITY_ADDED_KEY = "entityAdded"
NOTIFICATIONS_KEY = "notifications"


@dataclass(frozen=True)
class StorageEvent:
    """A change to one key of the shared store, as seen by a listening context."""

    key: str
    new_value: str | None
    old_value: str | None = None
    origin: str | None = None  # id of the context that made the change


@dataclass(frozen=True)
class RelayEvent:
    entity_id: str
    display_name: str | None = None
    event_id: str | None = None

    @classmethod
    def new(cls, entity_id: str, display_name: str | None = None) -> "RelayEvent":
        entity_id = str(entity_id or "").strip()
        if not entity_id:
            raise ValueError("entity_id is required")
        name = (display_name or "").strip() or None
        return cls(entity_id=entity_id, display_name=name, event_id=uuid.uuid4().hex)

    def to_json(self) -> str:
        payload: dict[str, str] = {"id": self.entity_id}
        if self.display_name:
            payload["name"] = self.display_name
        if self.event_id:
            payload["eventId"] = self.event_id
        return json.dumps(payload)

    @classmethod
    def from_json(cls, raw: str) -> "RelayEvent":
        """Parse a stored payload. Raises ValueError on anything that is not a relay event."""
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"relay payload is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError("relay payload must be a JSON object")
        entity_id = data.get("id")
        if not isinstance(entity_id, (str, int)) or isinstance(entity_id, bool) or str(entity_id).strip() == "":
            raise ValueError("relay payload has no id")
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            name = None
        event_id = data.get("eventId")
        return cls(
            entity_id=str(entity_id).strip(),
            display_name=name.strip() if name else None,
            event_id=event_id if isinstance(event_id, str) and event_id else None,
        )
