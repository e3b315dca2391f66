
import pytest

from tokenledger.core.config import LedgerSettings
from tokenledger.core.contracts.multi_token import MultiTokenLedger
from tokenledger.core.events import MemoryEventSink
from tokenledger.core.host import LedgerHost
from tokenledger.core.storage import InMemoryStore

ALICE = "alice"
BOB = "bob"
CAROL = "carol"
ADMIN = "admin"


@pytest.fixture
def settings():
    """Quiet settings: no event logging, no state file."""
    return LedgerSettings(log_events=False)


@pytest.fixture
def sink():
    return MemoryEventSink()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def ledger(store, sink):
    """Bare ledger core writing straight to an in-memory store."""
    return MultiTokenLedger(store, emit=sink.emit)


@pytest.fixture
def host(settings, sink):
    """Uninitialized host."""
    return LedgerHost(sink=sink, settings=settings)


@pytest.fixture
def open_host(host):
    """Host initialized without access control: anyone may mint."""
    host.invoke(ALICE, "initialize", access_control=False, admin=None)
    return host


@pytest.fixture
def gated_host(host):
    """Host initialized with access control and ADMIN as admin."""
    host.invoke(ADMIN, "initialize", access_control=True, admin=ADMIN)
    return host
