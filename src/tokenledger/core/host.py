"""
TokenLedger - Invocation Host

The ledger core assumes its host gives every call all-or-nothing semantics:
writes made during one invocation become visible only if the whole call
succeeds, and events are delivered only for successful calls. LedgerHost
provides that boundary for an in-process ledger:

- resolves the invoking identity (CallerResolver)
- routes each call through a write buffer over the storage provider
- commits buffered writes and delivers buffered events on success
- discards both on any failure, then re-raises
- serializes invocations with a lock

Usage:
    host = LedgerHost()
    host.invoke("admin-key", "initialize", access_control=True, admin="admin-key")
    host.invoke("admin-key", "mint", to="alice", token_id=1, amount=5)

    with host.invocation("alice") as ledger:
        ledger.transfer_from(from_addr="alice", to_addr="bob", token_id=1, amount=2)
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from functools import partial
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional

from .config import ConfigurationError, LedgerSettings, load_settings
from .contracts.ledger_state import MetadataStore, TokenMetadata
from .contracts.multi_token import OPERATIONS, READ_ONLY_OPERATIONS, MultiTokenLedger
from .events import EventSink, FanOutEventSink, LedgerEvent, LoggingEventSink, MemoryEventSink
from .ledger_exceptions import LedgerError, NotAuthenticatedError, UnknownOperationError
from .logging_config import configure_logging
from .storage import BufferedStore, InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)


class CallerResolver:
    """
    Resolves the authenticated identity of an invocation.

    The default resolver trusts the identity handed in by the transport layer
    and only rejects a missing one. Subclass to plug in real authentication.
    """

    def resolve(self, caller: Optional[str]) -> str:
        if not isinstance(caller, str) or not caller:
            raise NotAuthenticatedError("no authenticated caller for this invocation")
        return caller


class BoundLedger:
    """Ledger view with the invoking identity pre-bound as `caller`."""

    def __init__(self, ledger: MultiTokenLedger, caller: str) -> None:
        self._ledger = ledger
        self.caller = caller
        self.operations: List[str] = []

    def resolve(self, operation: str) -> Callable[..., Any]:
        """
        Look up a public operation by name.

        Raises:
            UnknownOperationError: If operation is not part of the ledger surface
        """
        takes_caller = OPERATIONS.get(operation)
        if takes_caller is None:
            raise UnknownOperationError(
                f"unknown operation {operation!r}",
                details={"operation": operation},
            )
        method = getattr(self._ledger, operation)
        self.operations.append(operation)
        if takes_caller:
            return partial(method, self.caller)
        return method

    def call(self, operation: str, **kwargs: Any) -> Any:
        return self.resolve(operation)(**kwargs)

    def __getattr__(self, item: str) -> Callable[..., Any]:
        if item.startswith("_") or item not in OPERATIONS:
            raise AttributeError(item)
        return self.resolve(item)


class LedgerHost:
    """
    In-process host giving each ledger invocation atomic commit semantics.

    Args:
        store: Committed storage provider (defaults to a fresh InMemoryStore)
        sink: Notification sink for delivered events (defaults to MemoryEventSink)
        settings: Ledger settings (defaults to load_settings())
        resolver: Caller identity resolver
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        sink: Optional[EventSink] = None,
        settings: Optional[LedgerSettings] = None,
        resolver: Optional[CallerResolver] = None,
    ) -> None:
        self.settings = settings or load_settings()
        configure_logging(
            log_file=self.settings.log_file,
            level=self.settings.log_level,
            environment=self.settings.environment,
        )

        self.store: KeyValueStore = store if store is not None else InMemoryStore()
        self.sink: EventSink = sink if sink is not None else MemoryEventSink()
        self.resolver = resolver or CallerResolver()

        self._delivery = FanOutEventSink([self.sink])
        if self.settings.log_events:
            self._delivery.add(LoggingEventSink())

        self._buffer = BufferedStore(self.store)
        self._pending_events: List[LedgerEvent] = []
        self.ledger = MultiTokenLedger(self._buffer, emit=self._pending_events.append)
        self.metadata = MetadataStore(self.store)

        self._lock = threading.RLock()
        self._active = False

    # ==================== Invocation ====================

    @contextmanager
    def invocation(self, caller: Optional[str]) -> Iterator[BoundLedger]:
        """
        Run one atomic invocation on behalf of caller.

        Everything done through the yielded ledger is committed when the block
        exits normally and discarded if it raises.
        """
        with self._lock:
            if self._active:
                raise RuntimeError("ledger invocations cannot be nested")

            identity = self.resolver.resolve(caller)
            bound = BoundLedger(self.ledger, identity)
            self._active = True
            try:
                yield bound
            except LedgerError as e:
                self._discard()
                logger.warning(
                    "Ledger invocation rejected: %s",
                    e.message,
                    extra={
                        "event": "ledger.invocation_rejected",
                        "operation": ",".join(bound.operations),
                        "error_type": type(e).__name__,
                        "error_kind": e.kind,
                    },
                )
                raise
            except Exception:
                self._discard()
                logger.error(
                    "Ledger invocation failed",
                    extra={
                        "event": "ledger.invocation_failed",
                        "operation": ",".join(bound.operations),
                    },
                    exc_info=True,
                )
                raise
            except BaseException:
                # KeyboardInterrupt, SystemExit, GeneratorExit
                self._discard()
                raise
            else:
                self._commit(bound)
            finally:
                self._active = False

    def invoke(self, caller: Optional[str], operation: str, **kwargs: Any) -> Any:
        """
        Resolve caller, run one named ledger operation, and commit atomically.

        Args:
            caller: Invoking identity as supplied by the transport layer
            operation: Public operation name (e.g. "transfer_from")
            **kwargs: Operation arguments, excluding caller

        Returns:
            The operation's result
        """
        with self.invocation(caller) as ledger:
            return ledger.call(operation, **kwargs)

    def query(self, operation: str, **kwargs: Any) -> Any:
        """
        Run a read-only operation against committed state without a caller.

        Raises:
            UnknownOperationError: If operation is not a read-only query
        """
        if operation not in READ_ONLY_OPERATIONS:
            raise UnknownOperationError(
                f"{operation!r} is not a read-only query",
                details={"operation": operation},
            )
        with self._lock:
            return getattr(self.ledger, operation)(**kwargs)

    def _commit(self, bound: BoundLedger) -> None:
        written = self._buffer.commit()
        events = list(self._pending_events)
        self._pending_events.clear()

        for event in events:
            self._delivery.emit(event)

        if written:
            logger.debug(
                "Ledger invocation committed",
                extra={
                    "event": "ledger.invocation_committed",
                    "operation": ",".join(bound.operations),
                    "writes": written,
                    "events": len(events),
                },
            )

    def _discard(self) -> None:
        self._buffer.discard()
        self._pending_events.clear()

    # ==================== Wiring ====================

    def register_metadata(self, token_id: int, metadata: TokenMetadata) -> None:
        """
        Write-once metadata registration; committed immediately.

        Raises:
            RuntimeError: If called from inside an open invocation
            MetadataAlreadySetError: If token_id already has metadata
        """
        with self._lock:
            if self._active:
                raise RuntimeError("metadata cannot be registered inside a ledger invocation")
            self.metadata.register(token_id, metadata)
        logger.info(
            "Token metadata registered",
            extra={"event": "ledger.metadata_registered", "token_id": token_id},
        )

    # ==================== Persistence ====================

    def _state_path(self, path: Optional[str]) -> Path:
        target = path or self.settings.state_file
        if not target:
            raise ConfigurationError("no state file given and TOKENLEDGER_STATE_FILE is not set")
        return Path(target)

    def save(self, path: Optional[str] = None) -> Path:
        """
        Write committed state to a JSON file.

        Returns:
            The path written
        """
        if not isinstance(self.store, InMemoryStore):
            raise TypeError("save() requires an InMemoryStore-backed host")

        target = self._state_path(path)
        with self._lock:
            payload = self.store.to_dict()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(payload, sort_keys=True), encoding="utf-8")

        logger.info(
            "Ledger state saved",
            extra={"event": "ledger.state_saved", "path": str(target), "entries": len(payload["entries"])},
        )
        return target

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        sink: Optional[EventSink] = None,
        settings: Optional[LedgerSettings] = None,
        resolver: Optional[CallerResolver] = None,
    ) -> "LedgerHost":
        """Build a host from a JSON state file written by save()."""
        settings = settings or load_settings()
        target = path or settings.state_file
        if not target:
            raise ConfigurationError("no state file given and TOKENLEDGER_STATE_FILE is not set")

        raw = Path(target).read_text(encoding="utf-8")
        store = InMemoryStore.loads(raw)

        logger.info(
            "Ledger state loaded",
            extra={"event": "ledger.state_loaded", "path": str(target), "entries": len(store)},
        )
        return cls(store=store, sink=sink, settings=settings, resolver=resolver)
