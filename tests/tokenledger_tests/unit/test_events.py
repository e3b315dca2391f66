"""
Unit tests for ledger events and sinks.
"""

import logging

from tokenledger.core.events import (
    BatchTransferEvent,
    BurnEvent,
    EventSink,
    FanOutEventSink,
    LoggingEventSink,
    MemoryEventSink,
    MintEvent,
)


def test_to_dict_includes_name():
    event = BatchTransferEvent(
        from_address="alice",
        sender="bob",
        to_address="carol",
        token_ids=(1, 2),
        amounts=(3, 4),
    )
    data = event.to_dict()

    assert data["event"] == "BatchTransfer"
    assert data["token_ids"] == (1, 2)
    assert data["sender"] == "bob"
    assert "timestamp" in data


def test_equality_ignores_timestamp():
    a = BurnEvent(owner="alice", token_id=1, amount=2, timestamp=1.0)
    b = BurnEvent(owner="alice", token_id=1, amount=2, timestamp=2.0)
    assert a == b


def test_memory_sink():
    sink = MemoryEventSink()
    assert isinstance(sink, EventSink)
    assert sink.last() is None

    sink.emit(MintEvent(owner="alice", token_id_start=0, total_tokens=1))
    sink.emit(BurnEvent(owner="alice", token_id=1, amount=1))

    assert len(sink) == 2
    assert [e.name for e in sink.of_type("Burn")] == ["Burn"]
    assert sink.last().name == "Burn"

    sink.clear()
    assert len(sink) == 0


def test_fan_out_preserves_order():
    first, second = MemoryEventSink(), MemoryEventSink()
    fan = FanOutEventSink([first])
    fan.add(second)

    event = MintEvent(owner="alice", token_id_start=0, total_tokens=1)
    fan.emit(event)

    assert first.events == [event]
    assert second.events == [event]


def test_fan_out_continues_past_failing_sink():
    class BrokenSink:
        def emit(self, event):
            raise RuntimeError("down")

    healthy = MemoryEventSink()
    fan = FanOutEventSink([BrokenSink(), healthy])

    event = MintEvent(owner="alice", token_id_start=0, total_tokens=1)
    fan.emit(event)

    assert healthy.events == [event]
    assert fan.failures == 1


def test_logging_sink(caplog):
    log = logging.getLogger("tokenledger.test.events")
    sink = LoggingEventSink(log=log)

    with caplog.at_level(logging.INFO, logger="tokenledger.test.events"):
        sink.emit(BurnEvent(owner="alice", token_id=1, amount=2))

    record = caplog.records[-1]
    assert record.event == "ledger.event.burn"
    assert record.owner == "alice"
    assert record.amount == 2
