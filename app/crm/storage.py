from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.crm.models import KeyValueItem


class StorageError(RuntimeError):
    pass


class QuotaExceededError(StorageError):
    pass


class StorageUnavailableError(StorageError):
    pass


class KeyValueStore:
    """
    Shared string->string store, addressable by key from every execution context.
    """

    def get_item(self, key: str) -> str | None:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def remove_if_equals(self, key: str, expected: str) -> bool:
        """Delete `key` only if it still holds `expected`. True for the caller that removed it."""
        raise NotImplementedError

    def keys(self) -> list[str]:
        raise NotImplementedError


def _entry_size(key: str, value: str) -> int:
    return len(key) + len(value)


@dataclass
class MemoryStore(KeyValueStore):
    quota_bytes: int = 0
    items: dict[str, str] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            if self.quota_bytes:
                used = sum(_entry_size(k, v) for k, v in self.items.items() if k != key)
                if used + _entry_size(key, value) > self.quota_bytes:
                    raise QuotaExceededError(f"Setting {key!r} exceeds the {self.quota_bytes} byte quota.")
            self.items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self.items.pop(key, None)

    def remove_if_equals(self, key: str, expected: str) -> bool:
        with self._lock:
            if self.items.get(key) != expected:
                return False
            del self.items[key]
            return True

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self.items)


@dataclass(frozen=True)
class SqlStore(KeyValueStore):
    sm: sessionmaker
    quota_bytes: int = 0

    @contextmanager
    def _session(self):
        s: Session = self.sm()
        try:
            yield s
            s.commit()
        except SQLAlchemyError as e:
            s.rollback()
            raise StorageUnavailableError(f"Key-value store unavailable: {e}") from e
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    def get_item(self, key: str) -> str | None:
        with self._session() as s:
            return s.execute(select(KeyValueItem.value).where(KeyValueItem.key == key)).scalar_one_or_none()

    def set_item(self, key: str, value: str) -> None:
        with self._session() as s:
            if self.quota_bytes:
                used = s.execute(
                    select(
                        func.coalesce(func.sum(func.length(KeyValueItem.key) + func.length(KeyValueItem.value)), 0)
                    ).where(KeyValueItem.key != key)
                ).scalar_one()
                if int(used) + _entry_size(key, value) > self.quota_bytes:
                    raise QuotaExceededError(f"Setting {key!r} exceeds the {self.quota_bytes} byte quota.")
            s.merge(KeyValueItem(key=key, value=value, updated_at=datetime.utcnow()))

    def remove_item(self, key: str) -> None:
        with self._session() as s:
            s.execute(delete(KeyValueItem).where(KeyValueItem.key == key))

    def remove_if_equals(self, key: str, expected: str) -> bool:
        # Single DELETE ... WHERE key AND value: the database arbitrates racing consumers.
        with self._session() as s:
            result = s.execute(
                delete(KeyValueItem).where(KeyValueItem.key == key, KeyValueItem.value == expected)
            )
            return result.rowcount == 1

    def keys(self) -> list[str]:
        with self._session() as s:
            return list(s.execute(select(KeyValueItem.key).order_by(KeyValueItem.key.asc())).scalars())


class DisabledStore(KeyValueStore):
    """Storage switched off (private browsing, policy). Every call fails."""

    def _fail(self):
        raise StorageUnavailableError("Key-value storage is disabled.")

    def get_item(self, key: str) -> str | None:
        self._fail()

    def set_item(self, key: str, value: str) -> None:
        self._fail()

    def remove_item(self, key: str) -> None:
        self._fail()

    def remove_if_equals(self, key: str, expected: str) -> bool:
        self._fail()

    def keys(self) -> list[str]:
        self._fail()


def store_from_config(config: dict, sm: sessionmaker | None = None) -> KeyValueStore:
    backend = (config.get("STORE_BACKEND") or "sql").strip().lower()
    quota = int(config.get("STORE_QUOTA_BYTES") or 0)
    if backend == "memory":
        return MemoryStore(quota_bytes=quota)
    if backend == "disabled":
        return DisabledStore()
    if backend != "sql":
        raise StorageError(f"Unknown STORE_BACKEND {backend!r} (expected sql, memory or disabled).")
    if sm is None:
        raise StorageError("sql store backend needs a sessionmaker.")
    return SqlStore(sm=sm, quota_bytes=quota)
