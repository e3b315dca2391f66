"""
Unit tests for the key-value storage layer.

Coverage targets:
- Default-on-missing reads through StateMap
- Buffered writes are invisible to the base store until commit
- Snapshot/restore and JSON export of the in-memory provider
"""

from tokenledger.core.storage import BufferedStore, InMemoryStore, KeyValueStore, StateMap


def test_in_memory_store_is_a_key_value_store():
    assert isinstance(InMemoryStore(), KeyValueStore)
    assert isinstance(BufferedStore(InMemoryStore()), KeyValueStore)


def test_state_map_defaults_without_materializing(store):
    balances = StateMap(store, "balance", default=0)

    assert balances["alice", 1] == 0
    assert ("balance", "alice", 1) not in store
    assert len(store) == 0


def test_state_map_zero_write_persists(store):
    balances = StateMap(store, "balance", default=0)
    balances["alice", 1] = 0

    assert ("balance", "alice", 1) in store
    assert balances["alice", 1] == 0


def test_state_map_scalar_and_tuple_keys(store):
    supply = StateMap(store, "supply", default=0)
    supply[7] = 12

    assert store.get(("supply", 7)) == 12
    assert list(supply.items()) == [(7, 12)]


def test_state_map_namespaces_are_isolated(store):
    a = StateMap(store, "a", default=0)
    b = StateMap(store, "b", default=0)
    a["x"] = 1

    assert b["x"] == 0
    assert "x" in a
    assert "x" not in b


def test_keys_prefix_filtering(store):
    store.set(("balance", "alice", 1), 5)
    store.set(("balance", "bob", 1), 3)
    store.set(("supply", 1), 8)

    assert store.keys(("balance",)) == [("balance", "alice", 1), ("balance", "bob", 1)]
    assert store.keys(("supply",)) == [("supply", 1)]


def test_buffered_store_reads_through_and_commits(store):
    store.set(("k",), 1)
    buffered = BufferedStore(store)

    assert buffered.get(("k",)) == 1

    buffered.set(("k",), 2)
    buffered.set(("new",), 3)
    assert buffered.get(("k",)) == 2
    assert store.get(("k",)) == 1
    assert buffered.dirty

    assert buffered.commit() == 2
    assert store.get(("k",)) == 2
    assert store.get(("new",)) == 3
    assert not buffered.dirty


def test_buffered_store_discard(store):
    store.set(("k",), 1)
    buffered = BufferedStore(store)
    buffered.set(("k",), 99)

    assert buffered.discard() == 1
    assert buffered.get(("k",)) == 1
    assert store.get(("k",)) == 1


def test_buffered_store_keys_merge_pending(store):
    store.set(("balance", "alice", 1), 1)
    buffered = BufferedStore(store)
    buffered.set(("balance", "bob", 1), 2)

    assert buffered.keys(("balance",)) == [("balance", "alice", 1), ("balance", "bob", 1)]


def test_snapshot_restore(store):
    store.set(("metadata", 1), {"name": "gold"})
    snap = store.snapshot()

    store.set(("metadata", 1), {"name": "lead"})
    store.set(("extra",), True)
    store.restore(snap)

    assert store.get(("metadata", 1)) == {"name": "gold"}
    assert ("extra",) not in store


def test_json_export_preserves_key_types(store):
    store.set(("balance", "alice", 1), 5)
    store.set(("config", "initialized"), True)
    store.set(("config", "admin"), "admin")

    restored = InMemoryStore.loads(store.dumps())

    assert restored.get(("balance", "alice", 1)) == 5
    assert restored.get(("balance", "alice", "1")) is None
    assert restored.get(("config", "initialized")) is True
    assert restored.to_dict() == store.to_dict()
