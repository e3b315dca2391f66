"""
TokenLedger - Ledger Events

Event records emitted by successful ledger operations, and the sinks that
receive them. The ledger only decides what is emitted and when; delivery is
the sink's concern. Events from a failed invocation are never delivered.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEvent:
    """Base class for ledger events."""

    name: ClassVar[str] = "LedgerEvent"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event, including its name."""
        data = asdict(self)
        data["event"] = self.name
        return data


@dataclass(frozen=True)
class ApprovalEvent(LedgerEvent):
    name: ClassVar[str] = "Approval"

    owner: str
    approved: str
    token_id: int
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class BurnEvent(LedgerEvent):
    name: ClassVar[str] = "Burn"

    owner: str
    token_id: int
    amount: int
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class MintEvent(LedgerEvent):
    """Mint record; token_id_start is the minted supply before this mint."""

    name: ClassVar[str] = "Mint"

    owner: str
    token_id_start: int
    total_tokens: int
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class AdminEvent(LedgerEvent):
    name: ClassVar[str] = "Admin"

    admin: str
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class OperatorEvent(LedgerEvent):
    name: ClassVar[str] = "Operator"

    approve: bool
    owner: str
    operator: str
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class TransferEvent(LedgerEvent):
    name: ClassVar[str] = "Transfer"

    from_address: str
    sender: str
    to_address: str
    token_id: int
    amount: int
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class BatchTransferEvent(LedgerEvent):
    name: ClassVar[str] = "BatchTransfer"

    from_address: str
    sender: str
    to_address: str
    token_ids: Tuple[int, ...]
    amounts: Tuple[int, ...]
    timestamp: float = field(default_factory=time.time, compare=False)


# ==================== Sinks ====================


@runtime_checkable
class EventSink(Protocol):
    """External notification sink."""

    def emit(self, event: LedgerEvent) -> None:
        ...


class MemoryEventSink:
    """Collects delivered events in order."""

    def __init__(self) -> None:
        self.events: List[LedgerEvent] = []

    def emit(self, event: LedgerEvent) -> None:
        self.events.append(event)

    def of_type(self, name: str) -> List[LedgerEvent]:
        return [e for e in self.events if e.name == name]

    def last(self) -> Optional[LedgerEvent]:
        return self.events[-1] if self.events else None

    def clear(self) -> None:
        self.events.clear()

    def __len__(self) -> int:
        return len(self.events)


class LoggingEventSink:
    """Writes each event as a structured log record."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self.log = log or logger
        self.level = level

    def emit(self, event: LedgerEvent) -> None:
        payload = event.to_dict()
        payload["event"] = f"ledger.event.{event.name.lower()}"
        self.log.log(self.level, "Ledger event %s", event.name, extra=payload)


class FanOutEventSink:
    """
    Delivers every event to each wrapped sink, in order.

    Events reach the fan-out only after their invocation has committed, so a
    failing sink cannot undo anything. Its error is logged and delivery
    continues with the remaining sinks and events.
    """

    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self.sinks: List[EventSink] = list(sinks)
        self.failures = 0

    def add(self, sink: EventSink) -> None:
        self.sinks.append(sink)

    def emit(self, event: LedgerEvent) -> None:
        for sink in self.sinks:
            try:
                sink.emit(event)
            except Exception as e:
                self.failures += 1
                logger.error(
                    "Event delivery failed: %s",
                    e,
                    extra={
                        "event": "ledger.event_delivery_failed",
                        "ledger_event": event.name,
                        "sink": type(sink).__name__,
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )
