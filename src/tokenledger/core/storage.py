"""
TokenLedger - Key-Value Storage

The ledger only needs logical map operations from its storage provider:
get with an absent default, and unconditional insert. This module defines that
provider contract plus the pieces built on it:

- InMemoryStore: dict-backed provider with snapshot/restore and JSON export
- StateMap: typed view of one namespace with default-on-missing reads
- BufferedStore: write overlay committed or discarded per invocation

Keys are tuples of the form (namespace, *parts). Entries are never deleted;
writing zero leaves a zero-valued entry behind.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)

Key = Tuple[Any, ...]


@runtime_checkable
class KeyValueStore(Protocol):
    """Storage provider consumed by the ledger."""

    def get(self, key: Key) -> Optional[Any]:
        """Return the stored value or None when the key is absent."""
        ...

    def set(self, key: Key, value: Any) -> None:
        """Insert or overwrite a value."""
        ...

    def keys(self, prefix: Key = ()) -> List[Key]:
        """Return all keys starting with prefix, sorted."""
        ...


def _sort_key(key: Key) -> Tuple[str, ...]:
    return tuple(repr(part) for part in key)


class InMemoryStore:
    """
    Dict-backed storage provider.

    Supports deep-copy snapshots for rollback and a JSON-compatible export
    used for persisting ledger state between processes.
    """

    def __init__(self, entries: Optional[Dict[Key, Any]] = None) -> None:
        self._data: Dict[Key, Any] = dict(entries or {})

    def get(self, key: Key) -> Optional[Any]:
        return self._data.get(tuple(key))

    def set(self, key: Key, value: Any) -> None:
        self._data[tuple(key)] = value

    def keys(self, prefix: Key = ()) -> List[Key]:
        prefix = tuple(prefix)
        matched = [k for k in self._data if k[: len(prefix)] == prefix]
        return sorted(matched, key=_sort_key)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Key) -> bool:
        return tuple(key) in self._data

    def snapshot(self) -> Dict[Key, Any]:
        """
        Create a deep copy of every entry.

        Returns:
            Snapshot accepted by restore()
        """
        return copy.deepcopy(self._data)

    def restore(self, snapshot: Dict[Key, Any]) -> None:
        """
        Replace all entries with a snapshot created by snapshot().

        Args:
            snapshot: Previously captured state
        """
        self._data = copy.deepcopy(snapshot)
        logger.info(
            "Store restored from snapshot",
            extra={"event": "storage.restore", "entries": len(self._data)},
        )

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize entries to a JSON-compatible dictionary."""
        return {
            "entries": [
                [list(key), self._data[key]] for key in self.keys()
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryStore":
        """Deserialize entries produced by to_dict()."""
        return cls({tuple(key): value for key, value in data.get("entries", [])})

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def loads(cls, raw: str) -> "InMemoryStore":
        return cls.from_dict(json.loads(raw))


class BufferedStore:
    """
    Write overlay on top of another store.

    Reads see pending writes first, then the base store. Nothing reaches the
    base store until commit(); discard() drops every pending write.
    """

    def __init__(self, base: KeyValueStore) -> None:
        self.base = base
        self.pending_writes: Dict[Key, Any] = {}

    def get(self, key: Key) -> Optional[Any]:
        key = tuple(key)
        if key in self.pending_writes:
            return self.pending_writes[key]
        return self.base.get(key)

    def set(self, key: Key, value: Any) -> None:
        self.pending_writes[tuple(key)] = value

    def keys(self, prefix: Key = ()) -> List[Key]:
        prefix = tuple(prefix)
        merged = set(self.base.keys(prefix))
        merged.update(k for k in self.pending_writes if k[: len(prefix)] == prefix)
        return sorted(merged, key=_sort_key)

    @property
    def dirty(self) -> bool:
        return bool(self.pending_writes)

    def commit(self) -> int:
        """Flush pending writes to the base store; returns how many were written."""
        written = len(self.pending_writes)
        for key, value in self.pending_writes.items():
            self.base.set(key, value)
        self.pending_writes.clear()
        return written

    def discard(self) -> int:
        """Drop pending writes; returns how many were dropped."""
        dropped = len(self.pending_writes)
        self.pending_writes.clear()
        return dropped


class StateMap:
    """
    Namespaced map view over a KeyValueStore.

    Missing keys read as the configured default, like a defaultdict that never
    materializes entries on read. Tuple keys address multi-part entries:

        balances = StateMap(store, "balance", default=0)
        balances["alice", 1] += 5
    """

    def __init__(self, store: KeyValueStore, namespace: str, default: Any = None) -> None:
        self._store = store
        self.namespace = namespace
        self.default = default

    def _key(self, key: Any) -> Key:
        parts = key if isinstance(key, tuple) else (key,)
        return (self.namespace, *parts)

    def __getitem__(self, key: Any) -> Any:
        value = self._store.get(self._key(key))
        if value is None:
            return self.default
        return value

    def __setitem__(self, key: Any, value: Any) -> None:
        self._store.set(self._key(key), value)

    def __contains__(self, key: Any) -> bool:
        return self._store.get(self._key(key)) is not None

    def get(self, key: Any, default: Any = None) -> Any:
        value = self._store.get(self._key(key))
        return default if value is None else value

    def items(self) -> Iterator[Tuple[Any, Any]]:
        """Yield (key, value) for every stored entry in this namespace."""
        for full_key in self._store.keys((self.namespace,)):
            parts = full_key[1:]
            key = parts[0] if len(parts) == 1 else tuple(parts)
            yield key, self._store.get(full_key)
